#!/usr/bin/env python3
"""Decides when deterministic parsing is weak enough to try the AI extractor."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from utils.wnf_models import Category

FallbackReason = Literal[
	"low_confidence",
	"all_items_other",
	"high_other_ratio",
	"empty_categories",
	"missing_expected_items",
]

MIN_CONFIDENCE = 0.6
MAX_OTHER_RATIO = 0.8
MIN_CONTENT_LENGTH = 150
MIN_EXTRACTION_RATIO = 0.5
CHARS_PER_EXPECTED_ITEM = 150
MIN_ESTIMATE_LENGTH = 100


@dataclass(frozen=True)
class QualityAssessment:
	score: float
	should_fallback_to_ai: bool
	reasons: List[str] = field(default_factory=list)


def estimate_expected_items(content_length: int) -> int:
	if content_length < MIN_ESTIMATE_LENGTH:
		return 0
	return content_length // CHARS_PER_EXPECTED_ITEM


class QualityAssessor:
	def __init__(self, confidence_threshold: Optional[float] = None) -> None:
		self.confidence_threshold = MIN_CONFIDENCE if confidence_threshold is None else confidence_threshold

	def assess(self, categories: Sequence[Category], confidence: float, raw_content_length: int) -> QualityAssessment:
		"""Score a parse result and list every reason it looks unreliable.

		Args:
			categories: Deterministic categorized output
			confidence: Confidence of that output
			raw_content_length: Length of the text it was parsed from

		Returns:
			QualityAssessment; ``should_fallback_to_ai`` is set when any reason fired
		"""
		reasons: List[str] = []
		score = confidence

		if confidence < self.confidence_threshold:
			reasons.append("low_confidence")

		total = sum(len(c.items) for c in categories)
		other = sum(len(c.items) for c in categories if c.id == "other")

		if total > 0 and other == total:
			reasons.append("all_items_other")
			score = min(score, 0.4)
		elif total > 0 and other / total > MAX_OTHER_RATIO:
			reasons.append("high_other_ratio")
			score = min(score, 0.5)

		if total == 0 and raw_content_length > MIN_CONTENT_LENGTH:
			reasons.append("empty_categories")
			score = min(score, 0.3)

		expected = estimate_expected_items(raw_content_length)
		if expected > 0 and total / expected < MIN_EXTRACTION_RATIO:
			reasons.append("missing_expected_items")
			score = min(score, 0.5)

		return QualityAssessment(score=score, should_fallback_to_ai=bool(reasons), reasons=reasons)
