#!/usr/bin/env python3
from __future__ import annotations

import re

_LEADING_REF = re.compile(r"^#\d+\s*[-:]\s*")
_BOLD_SCOPE = re.compile(r"^\*\*[^*]+\*\*:\s*")
_BY_AUTHOR = re.compile(r",?\s*by\s+@[\w-]+", re.IGNORECASE)
_TRAILING_REFS = re.compile(r"\s*\((?:closes|fixes|resolves)?\s*#\d+(?:\s*,\s*#\d+)*\)\s*$", re.IGNORECASE)
_MD_LINK = re.compile(r"\[[^\]]+\]\([^)]+\)")

DEDUP_KEY_LENGTH = 100


def normalize_line_endings(text: str) -> str:
	return (text or "").replace("\r\n", "\n").replace("\r", "\n")


def normalize_whitespace(text: str) -> str:
	return re.sub(r"\s+", " ", text or "").strip()


def normalize_for_comparison(text: str, max_length: int = 50) -> str:
	"""Lowercase, drop punctuation, collapse whitespace and truncate."""
	s = re.sub(r"[^\w\s]", "", (text or "").lower())
	return normalize_whitespace(s)[:max_length]


def normalize_for_deduplication(text: str) -> str:
	"""Key used to decide whether two change descriptions are the same change.

	Strips leading ``#123 -`` prefixes, ``**scope**:`` prefixes, ``by @author``
	attributions, trailing ``(#1, #2)`` / ``(fixes #3)`` refs and markdown links.
	"""
	s = (text or "").lower()
	s = _LEADING_REF.sub("", s)
	s = _BOLD_SCOPE.sub("", s)
	s = _BY_AUTHOR.sub("", s)
	s = _TRAILING_REFS.sub("", s)
	s = _MD_LINK.sub("", s)
	return normalize_whitespace(s)[:DEDUP_KEY_LENGTH]
