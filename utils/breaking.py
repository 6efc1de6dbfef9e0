#!/usr/bin/env python3
"""Breaking-change markers shared by the extractors."""
from __future__ import annotations

import re
from typing import Optional

CONVENTIONAL_MARKER = re.compile(r"^[a-z]+(?:\([^)]+\))?!:", re.IGNORECASE)
BREAKING_FOOTER = re.compile(r"^BREAKING[- ]CHANGE:", re.IGNORECASE | re.MULTILINE)
BREAKING_KEYWORD = re.compile(r"\bbreaking\s*change", re.IGNORECASE)
MAJOR_SECTION = re.compile(r"^#+\s*major\s+changes?", re.IGNORECASE | re.MULTILINE)

_FOOTER_BODY = re.compile(r"^BREAKING[- ]CHANGE:\s*(.+)$", re.IGNORECASE | re.MULTILINE)


def is_breaking_change(text: str) -> bool:
	"""True for ``type!:`` markers, ``BREAKING CHANGE:`` footers or the phrase itself."""
	text = text or ""
	return bool(
		CONVENTIONAL_MARKER.search(text)
		or BREAKING_FOOTER.search(text)
		or BREAKING_KEYWORD.search(text)
	)


def has_breaking_marker(message: str) -> bool:
	return bool(CONVENTIONAL_MARKER.search(message or ""))


def extract_breaking_description(body: str) -> Optional[str]:
	m = _FOOTER_BODY.search(body or "")
	return m.group(1).strip() if m else None


def is_major_section(section_type: str) -> bool:
	return (section_type or "").lower() == "major"
