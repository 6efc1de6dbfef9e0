#!/usr/bin/env python3
"""Extractor for changeset-notation release notes.

Handles the ``### Major/Minor/Patch Changes`` layout written by the
changesets tool, including its official ``- [hash] **(pkg)** message``
bullets, the ``- hash: message`` short form, the extended
``- [#PR](url) [`sha`](url) Thanks [@user](url)! - message`` form and
``Updated dependencies [hash]`` entries.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

from utils.breaking import is_major_section
from utils.refs import extract_github_refs, strip_trailing_refs
from utils.text_normalize import normalize_line_endings
from utils.wnf_models import ExtractedItem, ExtractedRelease, ExtractionMetadata, FormatKind, SourceHint

FORMAT_CONFIDENCE = 0.85
DEPENDENCIES_TEXT = "Updated dependencies"

SECTION_HINTS = {
	"major": SourceHint(section="Major Changes", suggested_category="breaking"),
	"minor": SourceHint(section="Minor Changes", suggested_category="features"),
	"patch": SourceHint(section="Patch Changes", suggested_category="fixes"),
}
DEPENDENCIES_HINT = SourceHint(section=DEPENDENCIES_TEXT, suggested_category="deps")

_DEP_LINE = re.compile(r"^-\s+Updated dependencies\s*\[([a-z0-9]+)\]", re.IGNORECASE)
_BARE_DEP_LINE = re.compile(r"^-\s+Updated dependencies\s*$", re.IGNORECASE)
_EXTENDED = re.compile(
	r"^-\s+\[#(\d+)\]\([^)]+\)\s*\[`([a-f0-9]+)`\]\([^)]+\)\s*Thanks\s*\[@[^\]]+\]\([^)]+\)!\s*-\s*(.+)$",
	re.IGNORECASE,
)
_OFFICIAL = re.compile(r"^-\s+\[([a-z0-9]+)\]\s*(?:\*\*\(([^)]+)\)\*\*)?\s*(.+)$", re.IGNORECASE)
_SHORT = re.compile(r"^-\s+([a-z0-9]+):\s+(.+)$", re.IGNORECASE)
_PLAIN = re.compile(r"^-\s+(.+)$")
_PACKAGE_LINE = re.compile(r"^\s+-\s+[@\w][\w\-/]*@[\d.]+")

_MSG_SCOPED_BREAKING = re.compile(r"^(\w+)\s*\(([^)]+)\)!:\s*(.+)$")
_MSG_SCOPED = re.compile(r"^(\w+)\s*\(([^)]+)\):\s*(.+)$")
_MSG_BREAKING_ONLY = re.compile(r"^(BREAKING(?:\s+CHANGE)?|Breaking):\s*(.+)$")
_MSG_BREAKING = re.compile(r"^(\w+)!:\s*(.+)$")
_MSG_TYPED = re.compile(r"^(\w+):\s*(.+)$")


@dataclass
class ParsedMessage:
	text: str
	type: Optional[str] = None
	scope: Optional[str] = None
	breaking: bool = False


@dataclass
class _Pending:
	text: str
	refs: List[str] = field(default_factory=list)
	conventional_type: Optional[str] = None
	scope: Optional[str] = None
	breaking: bool = False


def parse_message(message: str) -> ParsedMessage:
	"""Split an optional ``type(scope)!:`` prefix off a changeset message."""
	m = _MSG_SCOPED_BREAKING.match(message)
	if m:
		return ParsedMessage(m.group(3), m.group(1).lower(), m.group(2).strip(), True)
	m = _MSG_SCOPED.match(message)
	if m:
		return ParsedMessage(m.group(3), m.group(1).lower(), m.group(2).strip(), False)
	m = _MSG_BREAKING_ONLY.match(message)
	if m:
		return ParsedMessage(m.group(2), "breaking", None, True)
	m = _MSG_BREAKING.match(message)
	if m:
		return ParsedMessage(m.group(2), m.group(1).lower(), None, True)
	m = _MSG_TYPED.match(message)
	if m:
		return ParsedMessage(m.group(2), m.group(1).lower(), None, False)
	return ParsedMessage(message)


def _section_body(body: str, heading: str) -> Optional[str]:
	m = re.search(r"###\s*" + re.escape(heading) + r"\s*([\s\S]*?)(?=###|\Z)", body, re.IGNORECASE)
	return m.group(1) if m else None


def _finalize(pending: _Pending, section_type: str) -> ExtractedItem:
	return ExtractedItem(
		text=strip_trailing_refs(pending.text.strip()),
		refs=pending.refs,
		source_hint=SECTION_HINTS[section_type],
		conventional_type=pending.conventional_type,
		scope=pending.scope or None,
		breaking=pending.breaking or None,
	)


def _dependency_item(ref: str) -> ExtractedItem:
	return ExtractedItem(text=DEPENDENCIES_TEXT, refs=[ref], source_hint=DEPENDENCIES_HINT)


def _extract_section(body: str, heading: str, section_type: str) -> List[ExtractedItem]:
	content = _section_body(body, heading)
	if content is None:
		return []

	is_major = is_major_section(section_type)
	items: List[ExtractedItem] = []
	pending: Optional[_Pending] = None

	def flush() -> None:
		nonlocal pending
		if pending is not None and strip_trailing_refs(pending.text):
			items.append(_finalize(pending, section_type))
		pending = None

	for line in content.split("\n"):
		dep = _DEP_LINE.match(line)
		if dep:
			flush()
			items.append(_dependency_item(dep.group(1)))
			continue
		if _BARE_DEP_LINE.match(line):
			flush()
			continue

		ext = _EXTENDED.match(line)
		if ext:
			flush()
			parsed = parse_message(ext.group(3))
			pending = _Pending(parsed.text, [ext.group(1), ext.group(2)[:7]], parsed.type, parsed.scope, parsed.breaking or is_major)
			continue

		official = _OFFICIAL.match(line)
		if official:
			flush()
			parsed = parse_message(official.group(3))
			packages = (official.group(2) or "").strip() or None
			pending = _Pending(parsed.text, [official.group(1)], parsed.type, parsed.scope or packages, parsed.breaking or is_major)
			continue

		short = _SHORT.match(line)
		plain = _PLAIN.match(line)
		if short:
			flush()
			parsed = parse_message(short.group(2))
			pending = _Pending(parsed.text, [short.group(1)], parsed.type, parsed.scope, parsed.breaking or is_major)
		elif plain:
			# hand-written entry without a changeset hash
			flush()
			parsed = parse_message(plain.group(1))
			pending = _Pending(parsed.text, extract_github_refs(plain.group(1)), parsed.type, parsed.scope, parsed.breaking or is_major)
		elif pending is not None and line.strip() and not _PACKAGE_LINE.match(line):
			# continuation line of a multi-line entry
			pending.text += " " + line.strip()

	flush()
	return items


def _extract_dependencies_section(body: str) -> List[ExtractedItem]:
	content = _section_body(body, DEPENDENCIES_TEXT)
	if content is None:
		return []
	return [
		_dependency_item(m.group(1))
		for m in (_DEP_LINE.match(line) for line in content.split("\n"))
		if m
	]


def _first_text_line(body: str) -> Optional[str]:
	for line in body.split("\n"):
		trimmed = line.strip()
		if trimmed and not trimmed.startswith("#"):
			return trimmed
	return None


def extract_changesets(body: str) -> ExtractedRelease:
	body = normalize_line_endings(body or "")
	items: List[ExtractedItem] = []
	items.extend(_extract_section(body, "Major Changes", "major"))
	items.extend(_extract_section(body, "Minor Changes", "minor"))
	items.extend(_extract_section(body, "Patch Changes", "patch"))
	items.extend(_extract_dependencies_section(body))
	return ExtractedRelease(
		items=items,
		metadata=ExtractionMetadata(
			format=FormatKind.CHANGESETS,
			format_confidence=FORMAT_CONFIDENCE,
			summary=_first_text_line(body),
		),
	)
