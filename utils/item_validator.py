#!/usr/bin/env python3
"""Heuristic noise filter for individual changelog entries.

Rejects entries that carry no change information (bare usernames, merge
commits, ``pkg@1.2.3`` tokens, version strings, contributor thanks, single
words) and assigns a 0-1 quality score to the rest.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional

MIN_LENGTH = 5
MIN_SCORE = 0.25

NOISE_PATTERNS = tuple(re.compile(p, flags) for p, flags in (
	# contributor names
	(r"^@[\w-]+$", 0),
	(r"^\[?@[\w-]+\]?\s*\(https://github\.com", 0),
	# git housekeeping
	(r"^Merge (branch|pull request|remote-tracking)", re.IGNORECASE),
	(r"^Merge '[^']+' into", re.IGNORECASE),
	# dependency version tokens
	(r"^[@\w][\w\-/]*@\d+\.\d+", 0),
	(r"^:\w+:$", 0),
	(r"^(Update|Polish|Fix|Merge|Cleanup|WIP|Typo|Bump)\s*$", re.IGNORECASE),
	# contributor acknowledgment
	(r"made their first contribution", re.IGNORECASE),
	(r"thanks\s+to\s+@[\w-]+", re.IGNORECASE),
	(r"contributed\s+by\s+@[\w-]+", re.IGNORECASE),
	# version-only entries
	(r"^v?\d+\.\d+\.\d+(-[\w.]+)?$", 0),
	(r"^Version\s+v?\d+\.\d+\.\d+(-[\w.]+)?$", re.IGNORECASE),
	(r"^\s*$", 0),
	# file path only
	(r"^[\w\-/.]+\.(ts|js|tsx|jsx|json|md|yml|yaml|py|toml)$", 0),
	# single word
	(r"^\S+$", 0),
))

_CONVENTIONAL_PREFIX = re.compile(r"^(feat|fix|chore|docs|refactor|perf|test|build|ci|style)\b", re.IGNORECASE)
_SCOPE_PREFIX = re.compile(r"^\*\*[\w-]+\*\*:|^[\w-]+:")
_ACTION_VERB = re.compile(
	r"^(Add|Fix|Update|Remove|Improve|Implement|Support|Enable|Disable|Refactor|Move|Rename|Clean|Bump|Upgrade)",
	re.IGNORECASE,
)

# zero-width joiner and emoji variation selectors
_EMOJI_JOINERS = {"\u200d", "\ufe0e", "\ufe0f"}


@dataclass(frozen=True)
class ValidationResult:
	valid: bool
	score: float
	reason: Optional[str] = None


def _is_emoji_only(text: str) -> bool:
	has_symbol = False
	for ch in text:
		if ch.isspace() or ch in _EMOJI_JOINERS:
			continue
		cat = unicodedata.category(ch)
		if cat in ("So", "Sk") or 0x1F3FB <= ord(ch) <= 0x1F3FF:
			has_symbol = True
			continue
		return False
	return has_symbol


def _is_punctuation_only(text: str) -> bool:
	return all(ch.isspace() or unicodedata.category(ch)[0] in ("P", "S") for ch in text)


def is_noise_pattern(text: str) -> bool:
	trimmed = (text or "").strip()
	if _is_emoji_only(trimmed) or _is_punctuation_only(trimmed):
		return True
	return any(p.search(trimmed) for p in NOISE_PATTERNS)


def calculate_item_score(text: str) -> float:
	"""Score an entry 0-1 from its shape: conventional prefix, refs, scope, length, verbs."""
	trimmed = (text or "").strip()
	if not trimmed:
		return 0.0
	score = 0.5

	if _CONVENTIONAL_PREFIX.search(trimmed):
		score += 0.25
	if re.search(r"#\d+", trimmed):
		score += 0.1
	if _SCOPE_PREFIX.search(trimmed):
		score += 0.1

	length = len(trimmed)
	if 20 <= length <= 200:
		score += 0.1
	elif length < 10:
		score -= 0.3
	elif length < 20:
		score -= 0.15

	alpha = sum(1 for ch in trimmed if ("a" <= ch <= "z") or ("A" <= ch <= "Z"))
	if alpha / length < 0.4:
		score -= 0.2

	if _ACTION_VERB.search(trimmed):
		score += 0.1

	return max(0.0, min(1.0, score))


def validate_changelog_item(text: str) -> ValidationResult:
	"""Decide whether ``text`` is a real change description.

	Args:
		text: Candidate entry text

	Returns:
		ValidationResult with ``reason`` one of ``empty``, ``too_short``,
		``noise_pattern`` or ``low_score`` when invalid.
	"""
	trimmed = (text or "").strip()
	if not trimmed:
		return ValidationResult(valid=False, score=0.0, reason="empty")
	if len(trimmed) < MIN_LENGTH:
		return ValidationResult(valid=False, score=0.0, reason="too_short")
	if is_noise_pattern(trimmed):
		return ValidationResult(valid=False, score=0.0, reason="noise_pattern")

	score = calculate_item_score(trimmed)
	if score < MIN_SCORE:
		return ValidationResult(valid=False, score=score, reason="low_score")
	return ValidationResult(valid=True, score=score)


def is_contributor_acknowledgment(text: str) -> bool:
	raw = (text or "").strip()
	lower = raw.lower()
	return (
		"made their first contribution" in lower
		or "new contributor" in lower
		or "first-time contributor" in lower
		or re.match(r"^@[\w-]+$", lower) is not None
		or re.match(r"^\[?@[\w-]+\]?\s*\(https://github\.com", raw) is not None
	)


def is_contributor_section(header: str) -> bool:
	lower = (header or "").lower()
	return any(marker in lower for marker in (
		"new contributor",
		"first-time contributor",
		"first time contributor",
		"thanks to",
		"contributors",
	))
