#!/usr/bin/env python3
"""Deterministic reference extraction used to ground AI output."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

_HASH_REF = re.compile(r"#(\d+)")
_URL_REF = re.compile(r"github\.com/[^/]+/[^/]+/(?:pull|issues)/(\d+)")
_GITHUB_URL = re.compile(r"https?://github\.com/[^\s)\]>]+")
_SHA = re.compile(r"\b([a-f0-9]{7,40})\b", re.IGNORECASE)
_HAS_LETTER = re.compile(r"[a-f]", re.IGNORECASE)
_HAS_DIGIT = re.compile(r"[0-9]")

MAX_PROMPT_SHAS = 5


@dataclass(frozen=True)
class Anchors:
	pr_refs: List[str] = field(default_factory=list)
	issue_refs: List[str] = field(default_factory=list)
	commit_shas: List[str] = field(default_factory=list)
	urls: List[str] = field(default_factory=list)


def _unique(values) -> List[str]:
	return list(dict.fromkeys(values))


def extract_anchors(raw_content: str) -> Anchors:
	"""Collect every PR/issue number, commit SHA and GitHub URL in the text.

	PRs and issues cannot be told apart from text alone, so both land in
	``pr_refs``. SHA candidates need at least one letter and one digit.
	"""
	raw_content = raw_content or ""
	refs = _unique(_HASH_REF.findall(raw_content) + _URL_REF.findall(raw_content))
	shas = _unique(s for s in _SHA.findall(raw_content) if _HAS_LETTER.search(s) and _HAS_DIGIT.search(s))
	urls = _unique(_GITHUB_URL.findall(raw_content))
	return Anchors(pr_refs=refs, commit_shas=shas, urls=urls)


def format_anchors_for_prompt(anchors: Anchors) -> str:
	lines = []
	if anchors.pr_refs:
		lines.append("- PR/Issue refs: " + ", ".join(f"#{r}" for r in anchors.pr_refs))
	else:
		lines.append("- PR/Issue refs: (none found)")
	if anchors.commit_shas:
		shown = ", ".join(anchors.commit_shas[:MAX_PROMPT_SHAS])
		extra = len(anchors.commit_shas) - MAX_PROMPT_SHAS
		lines.append(f"- Commit SHAs: {shown}" + (f" (+{extra} more)" if extra > 0 else ""))
	return "\n".join(lines)
