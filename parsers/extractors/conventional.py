#!/usr/bin/env python3
"""Extractor for release text written as conventional-commit lines.

    feat(api): add new authentication endpoint
    fix(parser): resolve edge case in date parsing (#12)
    feat!: drop the v1 client
    BREAKING CHANGE: removed deprecated methods
"""
from __future__ import annotations

import re
from typing import List, Optional

from parsers.category_signals import CONVENTIONAL_COMMIT_MAP
from utils.breaking import BREAKING_FOOTER, extract_breaking_description
from utils.refs import extract_github_refs, strip_trailing_refs
from utils.text_normalize import normalize_line_endings
from utils.wnf_models import ExtractedItem, ExtractedRelease, ExtractionMetadata, FormatKind, SourceHint

FORMAT_CONFIDENCE = 0.7

_LINE = re.compile(r"^(feat|fix|docs|style|refactor|perf|test|build|ci|chore)(?:\(([^)]+)\))?(!)?:\s*(.+)$", re.IGNORECASE)
_ANY_PREFIX = re.compile(r"^[a-z]+(\([^)]+\))?(!)?:", re.IGNORECASE)

_BREAKING_HINT = SourceHint(section="BREAKING CHANGE", suggested_category="breaking")


def _breaking_item(description: str) -> ExtractedItem:
	return ExtractedItem(
		text=description.strip(),
		conventional_type="breaking",
		breaking=True,
		source_hint=_BREAKING_HINT,
	)


def parse_conventional_line(line: str) -> Optional[ExtractedItem]:
	"""Parse one ``type(scope)!: subject`` line, or return None."""
	trimmed = line.strip()
	m = _LINE.match(trimmed)
	if not m:
		return None
	cc_type, scope, marker, raw_subject = m.groups()
	cc_type = cc_type.lower()
	breaking = marker == "!" or bool(BREAKING_FOOTER.match(raw_subject)) or "BREAKING" in raw_subject.upper()
	subject = strip_trailing_refs(raw_subject)
	if not subject:
		return None
	suggested = "breaking" if breaking else CONVENTIONAL_COMMIT_MAP.get(cc_type, "other")
	return ExtractedItem(
		text=subject,
		refs=extract_github_refs(trimmed),
		conventional_type=cc_type,
		scope=(scope or "").strip() or None,
		breaking=breaking,
		source_hint=SourceHint(section=cc_type, suggested_category=suggested),
	)


def _summary(body: str) -> Optional[str]:
	for line in body.split("\n"):
		trimmed = line.strip()
		if trimmed and not _ANY_PREFIX.match(trimmed):
			return trimmed
	return None


def extract_conventional(body: str) -> ExtractedRelease:
	body = normalize_line_endings(body or "")
	items: List[ExtractedItem] = []
	breaking_description: Optional[str] = None

	for line in body.split("\n"):
		trimmed = line.strip()

		footer = extract_breaking_description(trimmed)
		if footer is not None:
			if breaking_description:
				items.append(_breaking_item(breaking_description))
			breaking_description = footer
			continue

		if breaking_description is not None:
			if trimmed and not _ANY_PREFIX.match(trimmed):
				breaking_description += " " + trimmed
				continue
			if breaking_description:
				items.append(_breaking_item(breaking_description))
			breaking_description = None

		item = parse_conventional_line(trimmed)
		if item:
			items.append(item)

	if breaking_description:
		items.append(_breaking_item(breaking_description))

	return ExtractedRelease(
		items=items,
		metadata=ExtractionMetadata(
			format=FormatKind.CONVENTIONAL,
			format_confidence=FORMAT_CONFIDENCE,
			summary=_summary(body),
		),
	)
