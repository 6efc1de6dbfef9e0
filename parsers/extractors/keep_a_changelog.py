#!/usr/bin/env python3
"""Extractor for Keep-a-Changelog documents (https://keepachangelog.com).

Works on both full CHANGELOG.md files (``## [1.2.0] - 2024-01-15`` version
headers) and single-release bodies that only carry ``### Added``-style
sections. Conventional-changelog section titles (``### Bug Fixes``) are
understood as well.
"""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

from parsers.category_signals import SECTION_TO_CATEGORY
from utils.refs import extract_github_refs, strip_trailing_refs
from utils.text_normalize import normalize_line_endings
from utils.wnf_models import ExtractedItem, ExtractedRelease, ExtractionMetadata, FormatKind, SourceHint

FORMAT_CONFIDENCE = 0.9

_VERSION_HEADER = re.compile(r"^##\s+\[?([^\]]+)\]?\s*-?\s*(\d{4}-\d{2}-\d{2})?", re.MULTILINE)
_FIRST_VERSION = re.compile(r"##\s+\[?([^\]\n]+)\]?[^\n]*\n([\s\S]*?)(?=##\s+\[|\Z)")
_SECTION = re.compile(r"###\s+([^\n]+)\s*([\s\S]*?)(?=###|##|\Z)")
_BULLET = re.compile(r"^[-*]\s+(.+)$")


def _version_section(markdown: str, version: str) -> Optional[str]:
	pattern = re.compile(r"##\s+\[?" + re.escape(version) + r"\]?[^\n]*\n([\s\S]*?)(?=##\s+\[|\Z)", re.IGNORECASE)
	m = pattern.search(markdown)
	return m.group(1) if m else None


def _first_version_section(markdown: str) -> Optional[Tuple[str, str]]:
	m = _FIRST_VERSION.search(markdown)
	if not m:
		return None
	return m.group(1).strip(), m.group(2)


def _section_items(body: str, heading: str, suggested: str) -> List[ExtractedItem]:
	items: List[ExtractedItem] = []
	hint = SourceHint(section=heading, suggested_category=suggested)
	for line in body.split("\n"):
		m = _BULLET.match(line)
		if not m:
			continue
		raw = m.group(1).strip()
		if not raw:
			continue
		text = strip_trailing_refs(raw)
		if not text:
			continue
		items.append(ExtractedItem(text=text, refs=extract_github_refs(raw), source_hint=hint))
	return items


def extract_keep_a_changelog(markdown: str, target_version: Optional[str] = None) -> ExtractedRelease:
	"""Extract items from a Keep-a-Changelog document.

	Args:
		markdown: Release body or full changelog file
		target_version: Version whose section should be read; when omitted
			the first (latest) version section is used

	Returns:
		ExtractedRelease with one item per bullet
	"""
	markdown = normalize_line_endings(markdown or "")
	content = markdown
	summary = None

	if _VERSION_HEADER.search(markdown):
		if target_version:
			section = _version_section(markdown, target_version)
			if section is not None:
				content = section
		else:
			first = _first_version_section(markdown)
			if first:
				version, content = first
				summary = f"Version {version}"

	items: List[ExtractedItem] = []
	for m in _SECTION.finditer(content):
		heading = m.group(1).strip()
		suggested = SECTION_TO_CATEGORY.get(heading.lower(), "other")
		items.extend(_section_items(m.group(2), heading, suggested))

	return ExtractedRelease(
		items=items,
		metadata=ExtractionMetadata(
			format=FormatKind.KEEP_A_CHANGELOG,
			format_confidence=FORMAT_CONFIDENCE,
			summary=summary,
		),
	)
