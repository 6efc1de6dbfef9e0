#!/usr/bin/env python3
"""Extractor for the release format published by gitlab-org/gitlab.

Features sit in ``<details><summary>[Title](docs-url) <code>label</code></summary>``
blocks, grouped under ``#### [Tier](url)`` and ``##### [Stage](url)``
headers. Simpler releases that only list ``- [Title](url)`` bullets are
handled by a fallback pass.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from parsers.category_signals import GITLAB_STAGE_MAP
from utils.refs import extract_gitlab_refs
from utils.text_normalize import normalize_line_endings
from utils.wnf_models import ExtractedItem, ExtractedRelease, ExtractionMetadata, FormatKind, SourceHint

FORMAT_CONFIDENCE = 0.9
EMPTY_FORMAT_CONFIDENCE = 0.5
SUMMARY_MAX_LENGTH = 200

_DETAILS = re.compile(r"<details>\s*<summary>([\s\S]*?)</summary>([\s\S]*?)</details>", re.IGNORECASE)
_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_CODE_TAG = re.compile(r"<code>([^<]+)</code>", re.IGNORECASE)
_ITALIC_TAG = re.compile(r"<i>([^<]+)</i>", re.IGNORECASE)
_TIER_LINE = re.compile(r"^####\s*\[([^\]]+)\]")
_CATEGORY_LINE = re.compile(r"^#####\s*\[([^\]]+)\]")
_SHIELD_BADGE = re.compile(r"!\[[^\]]*\]\(https://img\.shields\.io[^)]+\)")
_HTML_TAG = re.compile(r"<[^>]+>")
_STANDALONE = re.compile(r"^[-*]\s+\[([^\]]+)\]\(([^)]+)\)", re.MULTILINE)


@dataclass
class _Section:
	category: Optional[str]
	tier: Optional[str]
	content: str = ""


def map_stage_to_category(stage: Optional[str]) -> str:
	"""Map a GitLab stage name to a category id; unknown stages are features."""
	if not stage:
		return "features"
	normalized = stage.lower().strip()
	if normalized in GITLAB_STAGE_MAP:
		return GITLAB_STAGE_MAP[normalized]
	for key, value in GITLAB_STAGE_MAP.items():
		if key in normalized or normalized in key:
			return value
	return "features"


def _split_by_headers(body: str) -> List[_Section]:
	sections: List[_Section] = []
	current = _Section(category=None, tier=None)
	for line in body.split("\n"):
		tier = _TIER_LINE.match(line)
		if tier:
			if current.content.strip():
				sections.append(current)
			current = _Section(category=None, tier=tier.group(1).lower())
			continue
		category = _CATEGORY_LINE.match(line)
		if category:
			if current.content.strip():
				sections.append(current)
			current = _Section(category=category.group(1).lower(), tier=current.tier)
			continue
		current.content += line + "\n"
	if current.content.strip():
		sections.append(current)
	return sections


def _clean_html(text: str) -> str:
	return " ".join(_HTML_TAG.sub("", text).split())


def _parse_feature_block(summary: str, content: str, category: Optional[str]) -> Optional[ExtractedItem]:
	hint = SourceHint(section=category or "features", suggested_category=map_stage_to_category(category))
	refs = extract_gitlab_refs(f"{summary} {content}")

	link = _LINK.search(summary)
	if not link:
		cleaned = _clean_html(summary)
		if not cleaned:
			return None
		return ExtractedItem(text=cleaned, refs=refs, source_hint=hint)

	title, docs_url = link.groups()
	text = title.strip()
	labels = [m.strip() for m in _CODE_TAG.findall(summary)]
	annotations = [a for a in (m.strip().replace("(", "").replace(")", "") for m in _ITALIC_TAG.findall(summary)) if a]
	if labels:
		text += f" ({', '.join(labels)})"
	if annotations:
		text += f" [{', '.join(annotations)}]"
	return ExtractedItem(text=text, refs=refs, source_hint=hint, pr_url=docs_url)


def _standalone_features(body: str) -> List[ExtractedItem]:
	hint = SourceHint(section="features", suggested_category="features")
	return [
		ExtractedItem(text=m.group(1).strip(), refs=extract_gitlab_refs(m.group(0)), source_hint=hint, pr_url=m.group(2))
		for m in _STANDALONE.finditer(body)
	]


def _summary(body: str) -> Optional[str]:
	for line in body.split("\n"):
		trimmed = line.strip()
		if not trimmed or _SHIELD_BADGE.search(trimmed):
			continue
		if trimmed.startswith("#") or trimmed.startswith("<"):
			continue
		return trimmed[:SUMMARY_MAX_LENGTH]
	return None


def extract_gitlab_official(body: str) -> ExtractedRelease:
	body = normalize_line_endings(body or "")
	items: List[ExtractedItem] = []

	category = None
	for section in _split_by_headers(body):
		if section.category:
			category = section.category
		for m in _DETAILS.finditer(section.content):
			item = _parse_feature_block(m.group(1).strip(), m.group(2).strip(), category)
			if item:
				items.append(item)

	if not items:
		items = _standalone_features(body)

	return ExtractedRelease(
		items=items,
		metadata=ExtractionMetadata(
			format=FormatKind.GITLAB_OFFICIAL,
			format_confidence=FORMAT_CONFIDENCE if items else EMPTY_FORMAT_CONFIDENCE,
			summary=_summary(body),
		),
	)
