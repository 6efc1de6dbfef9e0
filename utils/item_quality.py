#!/usr/bin/env python3
"""Item quality and composite confidence model.

Format detection alone says how well a document *matched a known shape*; it
says nothing about whether the entries are informative. This module scores
each entry on two axes (structural, content) and blends four dimensions
into a composite confidence:

	composite = 0.30 * structural + 0.35 * content
			  + 0.20 * completeness + 0.15 * categorization
			  - max(0, terse_ratio - 0.2) * 0.5

floored at 0.3 and clamped to [0, 1].
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

TERSE_THRESHOLD = 15
LENGTH_IDEAL_MIN = 20
LENGTH_IDEAL_MAX = 200
LENGTH_VERY_SHORT = 10
BARE_DESCRIPTION_MIN = 5

GENERIC_PATTERN = re.compile(r"^(fix|update|change|typo|lint|minor|misc|wip|cleanup|polish)$", re.IGNORECASE)
ACTION_VERB_PATTERN = re.compile(
	r"^(Add|Fix|Update|Remove|Improve|Implement|Support|Enable|Disable|Refactor|Move|Rename|Clean|Bump|Upgrade"
	r"|Resolve|Prevent|Ensure|Handle|Allow|Avoid|Correct|Restore|Revert)",
	re.IGNORECASE,
)

WEIGHT_STRUCTURAL = 0.30
WEIGHT_CONTENT = 0.35
WEIGHT_COMPLETENESS = 0.20
WEIGHT_CATEGORIZATION = 0.15

TERSE_PENALTY_THRESHOLD = 0.2
TERSE_PENALTY_MULTIPLIER = 0.5
COMPOSITE_FLOOR = 0.3

CATEGORIZATION_TIER_SCORES = {
	"explicit_breaking": 1.0,
	"conventional_commit": 0.95,
	"keyword_match": 0.7,
	"source_hint": 0.5,
	"no_signal": 0.3,
}
UNKNOWN_TIER_SCORE = 0.5


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
	return max(lo, min(hi, value))


@dataclass(frozen=True)
class QualityInput:
	"""Minimal view of an item needed for scoring."""
	text: str
	conventional_type: Optional[str] = None
	scope: Optional[str] = None
	refs: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class ItemQuality:
	score: float
	structural: float
	content: float
	terse: bool
	generic: bool
	bare_conventional: bool


@dataclass(frozen=True)
class AggregateQuality:
	average_score: float = 0.0
	average_structural: float = 0.0
	average_content: float = 0.0
	terse_ratio: float = 0.0
	generic_ratio: float = 0.0
	bare_conventional_ratio: float = 0.0
	item_count: int = 0


@dataclass(frozen=True)
class CompositeConfidence:
	composite: float
	structural: float
	quality: float
	completeness: float
	categorization: float
	metrics: AggregateQuality


def is_generic_only(text: str) -> bool:
	return GENERIC_PATTERN.match((text or "").strip()) is not None


def has_action_verb(text: str) -> bool:
	return ACTION_VERB_PATTERN.match((text or "").strip()) is not None


def is_bare_conventional(text: str, conventional_type: Optional[str] = None) -> bool:
	"""A typed entry whose description is missing or under five characters."""
	if not conventional_type:
		return False
	return len((text or "").strip()) < BARE_DESCRIPTION_MIN


def calculate_structural_score(text: str, conventional_type: Optional[str] = None, scope: Optional[str] = None) -> float:
	score = 0.85 if conventional_type else 0.5
	if scope:
		score += 0.05
	if is_bare_conventional(text, conventional_type):
		score *= 0.5
	return clamp(score)


def calculate_content_score(
	text: str,
	conventional_type: Optional[str] = None,
	scope: Optional[str] = None,
	refs: Optional[Sequence[str]] = None,
) -> float:
	trimmed = (text or "").strip()
	length = len(trimmed)
	score = 0.5

	if LENGTH_IDEAL_MIN <= length <= LENGTH_IDEAL_MAX:
		score += 0.15
	elif LENGTH_VERY_SHORT <= length < LENGTH_IDEAL_MIN:
		score += 0.05
	elif length < LENGTH_VERY_SHORT:
		score -= 0.35
	else:
		score -= 0.05

	if conventional_type:
		score += 0.15
	if scope:
		score += 0.1
	if refs:
		score += 0.1

	if has_action_verb(trimmed):
		score += 0.1
	if is_generic_only(trimmed):
		score -= 0.25

	return clamp(score)


def calculate_item_quality(item: QualityInput) -> ItemQuality:
	structural = calculate_structural_score(item.text, item.conventional_type, item.scope)
	content = calculate_content_score(item.text, item.conventional_type, item.scope, item.refs)
	trimmed = (item.text or "").strip()
	return ItemQuality(
		score=clamp(structural * 0.4 + content * 0.6),
		structural=structural,
		content=content,
		terse=len(trimmed) < TERSE_THRESHOLD,
		generic=is_generic_only(trimmed),
		bare_conventional=is_bare_conventional(item.text, item.conventional_type),
	)


def calculate_aggregate_quality(items: Sequence[QualityInput]) -> AggregateQuality:
	if not items:
		return AggregateQuality()
	results = [calculate_item_quality(i) for i in items]
	n = len(results)
	return AggregateQuality(
		average_score=sum(r.score for r in results) / n,
		average_structural=sum(r.structural for r in results) / n,
		average_content=sum(r.content for r in results) / n,
		terse_ratio=sum(1 for r in results if r.terse) / n,
		generic_ratio=sum(1 for r in results if r.generic) / n,
		bare_conventional_ratio=sum(1 for r in results if r.bare_conventional) / n,
		item_count=n,
	)


def calculate_completeness(extracted_count: int, estimated_count: int) -> float:
	if estimated_count <= 0:
		return 1.0
	return clamp(extracted_count / estimated_count)


def calculate_categorization_confidence(inference_reasons: Iterable[str]) -> float:
	reasons = list(inference_reasons or [])
	if not reasons:
		return UNKNOWN_TIER_SCORE
	return sum(CATEGORIZATION_TIER_SCORES.get(r, UNKNOWN_TIER_SCORE) for r in reasons) / len(reasons)


def calculate_composite_confidence(
	format_confidence: float,
	items: Sequence[QualityInput],
	estimated_item_count: Optional[int] = None,
	inference_reasons: Optional[List[str]] = None,
) -> CompositeConfidence:
	"""Blend format confidence with content quality.

	Args:
		format_confidence: Confidence the source matched a known format (0-1)
		items: Items to score
		estimated_item_count: Expected item count; defaults to ``len(items)``
		inference_reasons: Categorizer tier reasons, one per item

	Returns:
		CompositeConfidence with every dimension clamped to [0, 1]
	"""
	metrics = calculate_aggregate_quality(items)

	structural = format_confidence * (1 - metrics.bare_conventional_ratio * 0.3)
	quality = metrics.average_content
	completeness = calculate_completeness(
		len(items), len(items) if estimated_item_count is None else estimated_item_count
	)
	categorization = calculate_categorization_confidence(inference_reasons or [])

	composite = (
		structural * WEIGHT_STRUCTURAL
		+ quality * WEIGHT_CONTENT
		+ completeness * WEIGHT_COMPLETENESS
		+ categorization * WEIGHT_CATEGORIZATION
	)
	penalty = max(0.0, metrics.terse_ratio - TERSE_PENALTY_THRESHOLD) * TERSE_PENALTY_MULTIPLIER
	composite = max(COMPOSITE_FLOOR, composite - penalty)

	return CompositeConfidence(
		composite=clamp(composite),
		structural=clamp(structural),
		quality=clamp(quality),
		completeness=clamp(completeness),
		categorization=clamp(categorization),
		metrics=metrics,
	)
