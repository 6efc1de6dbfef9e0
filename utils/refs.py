#!/usr/bin/env python3
"""PR / issue / merge-request reference extraction and stripping."""
from __future__ import annotations

import re
from typing import List

_HASH_REF = re.compile(r"(?<!#)#(\d+)")
_LINK_REF = re.compile(r"\[#(\d+)\]")
_GH_REF = re.compile(r"GH-(\d+)", re.IGNORECASE)

_GITLAB_REF = re.compile(
	r"\[issue\s+(\d+)\]|\[!(\d+)\]|(?<![/\w])!(\d+)(?!\d)|(?<![/\w])#(\d+)(?!\d)",
	re.IGNORECASE,
)

# Applied in order on every pass of strip_trailing_refs
_STRIP_STEPS = (
	(re.compile(r"\[\[#\d+\]\([^)]+\)"), ""),
	(re.compile(r"\[#\d+\]\([^)]+\)"), ""),
	(re.compile(r"\s*\(\[#\d+\]\([^)]+\)\)\s*$"), ""),
	(re.compile(r"\s*\[#\d+\]\([^)]+\)\s*$"), ""),
	(re.compile(r"\s*\((?:closes?|fixes?|resolves?)?\s*#\d+(?:\s*,\s*#\d+)*\)\s*$", re.IGNORECASE), ""),
	(re.compile(r"\s*\(\s*(?:and|,|\s)+\s*\)\s*"), " "),
	(re.compile(r"\s*\(\s*\)\s*"), " "),
)


def extract_github_refs(text: str) -> List[str]:
	"""Return ``#123``, ``[#123]`` and ``GH-123`` numbers, first occurrence order."""
	if not text:
		return []
	found: List[str] = []
	for pattern in (_HASH_REF, _LINK_REF, _GH_REF):
		found.extend(pattern.findall(text))
	return list(dict.fromkeys(found))


def extract_gitlab_refs(text: str) -> List[str]:
	"""Return GitLab MR/issue numbers (``!12``, ``#34``, ``[issue 5]``, ``[!6]``)."""
	if not text:
		return []
	found: List[str] = []
	for m in _GITLAB_REF.finditer(text):
		ref = next((g for g in m.groups() if g), None)
		if ref:
			found.append(ref)
	return list(dict.fromkeys(found))


def strip_trailing_refs(text: str) -> str:
	"""Remove reference links and trailing ``(#123)``-style suffixes from display text.

	Non-reference markdown links are preserved. The function is idempotent:
	``strip_trailing_refs(strip_trailing_refs(x)) == strip_trailing_refs(x)``.

	Examples:
		"Add OAuth support (#123)" -> "Add OAuth support"
		"Fixed ([#10](u) and [#11](u))" -> "Fixed"
	"""
	if not text:
		return ""
	result = text
	previous = None
	while result != previous:
		previous = result
		for pattern, repl in _STRIP_STEPS:
			result = pattern.sub(repl, result)
		result = result.strip()
	return re.sub(r"\s+", " ", result).strip()
