#!/usr/bin/env python3
"""Extractor for GitHub's automatically generated release notes.

	## What's Changed
	### Features
	* Add new API endpoint by @contributor in https://github.com/o/r/pull/123

	## New Contributors
	* @newuser made their first contribution in https://github.com/o/r/pull/125

	**Full Changelog**: https://github.com/o/r/compare/v1.0.0...v2.0.0
"""

from __future__ import annotations

import re
import unicodedata
from typing import List, Optional

from parsers.category_signals import GITHUB_CATEGORY_MAP
from utils.refs import strip_trailing_refs
from utils.text_normalize import normalize_line_endings
from utils.wnf_models import ExtractedItem, ExtractedRelease, ExtractionMetadata, FormatKind, SourceHint

FORMAT_CONFIDENCE = 0.5

_TOP_SECTION = re.compile(r"^##\s+", re.MULTILINE)
_SUB_SECTION = re.compile(r"^###\s+", re.MULTILINE)
_ENTRY = re.compile(r"^\*\s+(.+?)\s+by\s+@([\w-]+)\s+in\s+(https://github\.com/\S+/pull/(\d+))")
_SUMMARY = re.compile(r"^(.+?)(?=##\s+What'?s Changed)", re.DOTALL | re.IGNORECASE)


def _strip_emoji(title: str) -> str:
	return "".join(ch for ch in title if unicodedata.category(ch) != "So" and ch not in "\u200d\ufe0f")


def _suggested_category(section_title: str) -> str:
	key = " ".join(_strip_emoji(section_title).lower().split())
	return GITHUB_CATEGORY_MAP.get(key, "other")


def _parse_entries(lines: List[str], section_title: str) -> List[ExtractedItem]:
	hint = SourceHint(section=section_title, suggested_category=_suggested_category(section_title))
	items = []
	for line in lines:
		trimmed = line.strip()
		if not trimmed.startswith("*"):
			continue
		m = _ENTRY.match(trimmed)
		if not m:
			continue
		raw_title, author, pr_url, pr_number = m.groups()
		text = strip_trailing_refs(raw_title.strip())
		if not text:
			continue
		items.append(ExtractedItem(text=text, refs=[pr_number], source_hint=hint, author=author, pr_url=pr_url))
	return items


def _summary(body: str) -> Optional[str]:
	m = _SUMMARY.match(body)
	if m and m.group(1).strip():
		return m.group(1).strip().split("\n")[0]
	return None


def extract_github_auto(body: str) -> ExtractedRelease:
	body = normalize_line_endings(body or "")
	items: List[ExtractedItem] = []

	for section in (s for s in _TOP_SECTION.split(body) if s.strip()):
		lines = section.split("\n")
		header = lines[0].strip()
		lowered = header.lower()

		if lowered.startswith("new contributors"):
			continue

		if lowered.startswith("what's changed") or lowered.startswith("whats changed"):
			content = "\n".join(lines[1:])
			if "### " in content:
				for sub in (s for s in _SUB_SECTION.split(content) if s.strip()):
					sub_lines = sub.split("\n")
					sub_header = sub_lines[0].strip()
					if sub_header:
						items.extend(_parse_entries(sub_lines[1:], sub_header))
			else:
				items.extend(_parse_entries(lines[1:], "Changes"))
			continue

		if "changelog" not in lowered:
			items.extend(_parse_entries(lines[1:], header))

	return ExtractedRelease(
		items=items,
		metadata=ExtractionMetadata(
			format=FormatKind.GITHUB_AUTO,
			format_confidence=FORMAT_CONFIDENCE,
			summary=_summary(body),
		),
	)
