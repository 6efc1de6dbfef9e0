#!/usr/bin/env python3
"""Universal categorizer.

Extractors only describe *where* an item came from; this module decides
*what* it is, the same way for every format. Tiers, first match wins:

	0. explicit breaking flag
	1. conventional-commit type (pre-extracted, or recovered from the text)
	2. keyword analysis over the text
	3. the extractor's source hint
	4. ``other``
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, List, Literal, Optional, Tuple

from parsers.category_signals import (
	CATEGORY_PRIORITY,
	CATEGORY_SIGNALS,
	CATEGORY_TITLES,
	CONVENTIONAL_COMMIT_MAP,
	KEYWORD_THRESHOLD,
)
from utils.wnf_models import Category, ChangeItem, ExtractedItem

InferenceReason = Literal[
	"explicit_breaking",
	"conventional_commit",
	"keyword_match",
	"source_hint",
	"no_signal",
]

_CC_AT_START = re.compile(r"^(\w+)(?:\s*\([^)]*\))?!?:")
_CC_AFTER_LINK = re.compile(r"^\[[^\]]*\]\([^)]*\)\s*(\w+)(?:\s*\([^)]*\))?!?:")
_CC_ANYWHERE = re.compile(
	r"\b(feat|fix|chore|docs|refactor|perf|test|build|ci|style|revert)(?:\s*\([^)]*\))?!?:\s",
	re.IGNORECASE,
)


@dataclass(frozen=True)
class CategorizationResult:
	category_id: str
	confidence: Literal["high", "medium", "low"]
	reason: InferenceReason


@dataclass(frozen=True)
class KeywordScore:
	category: str
	score: float


@lru_cache(maxsize=None)
def _signal_pattern(signal: str) -> "re.Pattern[str]":
	return re.compile(r"\b" + re.escape(signal) + r"\b")


def extract_conventional_commit_type(text: str) -> Optional[str]:
	"""Recover a known conventional type from free text, or None."""
	text = text or ""
	for pattern in (_CC_AT_START, _CC_AFTER_LINK, _CC_ANYWHERE):
		m = pattern.search(text)
		if m:
			cc_type = m.group(1).lower()
			if cc_type in CONVENTIONAL_COMMIT_MAP:
				return cc_type
	return None


def map_conventional_commit_to_category(cc_type: str) -> str:
	return CONVENTIONAL_COMMIT_MAP.get((cc_type or "").lower(), "other")


def analyze_keywords(text: str) -> KeywordScore:
	"""Score every category by whole-word keyword hits.

	Categories are visited in priority order and only a strictly higher
	score replaces the current best, so ties resolve to the higher-priority
	category.
	"""
	lower = (text or "").lower()
	words = lower.split()
	first_word = words[0] if words else ""

	best_category, best_score = "other", 0.0
	for category_id in CATEGORY_PRIORITY:
		score = 0.0
		for signal in CATEGORY_SIGNALS[category_id]:
			hits = len(_signal_pattern(signal).findall(lower))
			if hits:
				score += hits
				if first_word.startswith(signal):
					score += 0.5
		if score > best_score:
			best_category, best_score = category_id, score
	return KeywordScore(category=best_category, score=best_score)


def infer_item_category(item: ExtractedItem) -> CategorizationResult:
	if item.breaking:
		return CategorizationResult("breaking", "high", "explicit_breaking")

	if item.conventional_type:
		return CategorizationResult(map_conventional_commit_to_category(item.conventional_type), "high", "conventional_commit")

	cc_type = extract_conventional_commit_type(item.text)
	if cc_type:
		return CategorizationResult(map_conventional_commit_to_category(cc_type), "high", "conventional_commit")

	keywords = analyze_keywords(item.text)
	if keywords.score >= KEYWORD_THRESHOLD:
		return CategorizationResult(keywords.category, "medium", "keyword_match")

	if item.source_hint and item.source_hint.suggested_category:
		return CategorizationResult(item.source_hint.suggested_category, "low", "source_hint")

	return CategorizationResult("other", "low", "no_signal")


def _to_change_item(item: ExtractedItem, category_id: str) -> ChangeItem:
	return ChangeItem(
		text=item.text,
		refs=list(item.refs),
		scope=item.scope or None,
		score=item.score,
		breaking=True if (item.breaking or category_id == "breaking") else None,
	)


def categorize_with_reasons(items: Iterable[ExtractedItem]) -> Tuple[List[Category], List[str]]:
	"""Categorize items and also return the tier reason chosen for each one."""
	buckets: Dict[str, List[ChangeItem]] = {}
	reasons: List[str] = []
	for item in items:
		result = infer_item_category(item)
		reasons.append(result.reason)
		buckets.setdefault(result.category_id, []).append(_to_change_item(item, result.category_id))

	categories = [
		Category(id=cid, title=CATEGORY_TITLES[cid], items=buckets[cid])
		for cid in CATEGORY_PRIORITY
		if buckets.get(cid)
	]
	return categories, reasons


def categorize_items(items: Iterable[ExtractedItem]) -> List[Category]:
	"""Assign every item a final category; output follows the fixed priority order."""
	categories, _ = categorize_with_reasons(items)
	return categories
