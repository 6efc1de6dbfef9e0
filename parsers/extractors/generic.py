#!/usr/bin/env python3
"""Fallback extractor for unstructured release text.

Picks up bullets (``-``, ``*``, ``•``) and numbered list entries, runs each
through the item validator and skips contributor acknowledgments. When a
body has no list markup at all, plain prose lines that pass validation are
taken instead so a loosely written release still yields something.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from parsers.category_signals import lookup_section_category
from utils.item_validator import is_contributor_acknowledgment, is_contributor_section, validate_changelog_item
from utils.refs import extract_github_refs, strip_trailing_refs
from utils.text_normalize import normalize_line_endings
from utils.wnf_models import ExtractedItem, ExtractedRelease, ExtractionMetadata, FormatKind, SourceHint

logger = logging.getLogger(__name__)

FORMAT_CONFIDENCE = 0.3
DEFAULT_SECTION = "Changes"

_HEADER = re.compile(r"^#{2,3}\s+(.+)$")
_BULLET = re.compile(r"^[-*•]\s+(.+)$")
_NUMBERED = re.compile(r"^\d+[.)]\s+(.+)$")
_LIST_START = re.compile(r"^[-*•\d]")


def _validated_item(raw: str, section: str) -> Optional[ExtractedItem]:
	if is_contributor_acknowledgment(raw):
		return None
	validation = validate_changelog_item(raw)
	if not validation.valid:
		return None
	text = strip_trailing_refs(raw)
	if not text:
		return None
	return ExtractedItem(
		text=text,
		refs=extract_github_refs(raw),
		source_hint=SourceHint(section=section, suggested_category=lookup_section_category(section) or "other"),
		score=validation.score,
	)


def _summary(body: str) -> Optional[str]:
	for line in body.split("\n"):
		trimmed = line.strip()
		if trimmed and not trimmed.startswith("#") and not _LIST_START.match(trimmed):
			return trimmed
	return None


def extract_generic(body: str) -> ExtractedRelease:
	body = normalize_line_endings(body or "")
	items: List[ExtractedItem] = []
	loose: List[ExtractedItem] = []
	section = DEFAULT_SECTION
	skipping = False

	for line in body.split("\n"):
		trimmed = line.strip()
		header = _HEADER.match(trimmed)
		if header:
			section = header.group(1).strip()
			skipping = is_contributor_section(section)
			continue
		if skipping or not trimmed:
			continue

		listed = _BULLET.match(trimmed) or _NUMBERED.match(trimmed)
		if listed:
			item = _validated_item(listed.group(1).strip(), section)
			if item:
				items.append(item)
		elif not trimmed.startswith("#"):
			item = _validated_item(trimmed, section)
			if item:
				loose.append(item)

	if not items and loose:
		logger.debug(f"No list entries found, using {len(loose)} prose lines")
		items = loose

	return ExtractedRelease(
		items=items,
		metadata=ExtractionMetadata(
			format=FormatKind.GENERIC,
			format_confidence=FORMAT_CONFIDENCE,
			summary=_summary(body),
		),
	)
