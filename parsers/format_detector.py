#!/usr/bin/env python3
"""Changelog format detection.

Checks run most-specific first so that structured documents never fall
through to the generic extractor.
"""
from __future__ import annotations

import logging
import re

from utils.wnf_models import FormatKind

logger = logging.getLogger(__name__)

_CHANGESET_HEADERS = ("### Major Changes", "### Minor Changes", "### Patch Changes")
_KAC_SECTIONS = ("### Added", "### Changed", "### Deprecated", "### Removed", "### Fixed", "### Security")

_WHATS_CHANGED = re.compile(r"##\s*What'?s Changed", re.IGNORECASE)
_PR_ENTRY = re.compile(r"^\*\s+.+\s+by\s+@[\w-]+\s+in\s+https://github\.com/.+/pull/\d+", re.MULTILINE)
_FULL_CHANGELOG = re.compile(r"\*\*Full Changelog\*?\*?:\*?\*?")
_NEW_CONTRIBUTORS = re.compile(r"##\s*New Contributors", re.IGNORECASE)

_DETAILS_WITH_LINK = re.compile(r"<details>\s*<summary>\s*\[")
_CODE_IN_SUMMARY = re.compile(r"<summary>[^<]*<code>")
_TIER_HEADER = re.compile(r"^####\s*\[(Ultimate|Premium|Free|Core)\]", re.IGNORECASE | re.MULTILINE)
_CATEGORY_HEADER = re.compile(r"^#####\s*\[[^\]]+\]\([^)]+\)", re.MULTILINE)

_VERSION_HEADER = re.compile(r"##\s*\[[\w.-]+\]")
_CONVENTIONAL_LINE = re.compile(r"^(feat|fix|docs|style|refactor|perf|test|build|ci|chore)(\(.+\))?(!)?:", re.MULTILINE)

STRUCTURED_CONFIDENCE = 0.9
CONVENTIONAL_CONFIDENCE = 0.85
HEADERS_ONLY_CONFIDENCE = 0.7
MINIMAL_CONFIDENCE = 0.3
DEFAULT_CONFIDENCE = 0.6
MINIMAL_BODY_LENGTH = 50


class FormatDetector:
	"""Classifies a release body into a FormatKind and scores the match."""

	def detect(self, body: str) -> FormatKind:
		body = body or ""
		if self._is_changesets(body):
			kind = FormatKind.CHANGESETS
		elif self._is_github_auto(body):
			kind = FormatKind.GITHUB_AUTO
		elif self._is_gitlab_official(body):
			kind = FormatKind.GITLAB_OFFICIAL
		elif self._is_keep_a_changelog(body):
			kind = FormatKind.KEEP_A_CHANGELOG
		elif _CONVENTIONAL_LINE.search(body):
			kind = FormatKind.CONVENTIONAL
		else:
			kind = FormatKind.GENERIC
		logger.debug(f"Detected format {kind.value} ({len(body)} chars)")
		return kind

	def confidence(self, body: str) -> float:
		body = body or ""
		kind = self.detect(body)
		if kind in (FormatKind.CHANGESETS, FormatKind.GITHUB_AUTO, FormatKind.GITLAB_OFFICIAL, FormatKind.KEEP_A_CHANGELOG):
			return STRUCTURED_CONFIDENCE
		if kind is FormatKind.CONVENTIONAL:
			return CONVENTIONAL_CONFIDENCE
		if "##" in body:
			return HEADERS_ONLY_CONFIDENCE
		if len(body.strip()) < MINIMAL_BODY_LENGTH:
			return MINIMAL_CONFIDENCE
		return DEFAULT_CONFIDENCE

	@staticmethod
	def _is_changesets(body: str) -> bool:
		return any(h in body for h in _CHANGESET_HEADERS)

	@staticmethod
	def _is_github_auto(body: str) -> bool:
		if _WHATS_CHANGED.search(body):
			return True
		if not _PR_ENTRY.search(body):
			return False
		return bool(_FULL_CHANGELOG.search(body) or _NEW_CONTRIBUTORS.search(body))

	@staticmethod
	def _is_gitlab_official(body: str) -> bool:
		has_tiers = bool(_TIER_HEADER.search(body))
		has_categories = bool(_CATEGORY_HEADER.search(body))
		if _DETAILS_WITH_LINK.search(body):
			return bool(_CODE_IN_SUMMARY.search(body)) or has_tiers or has_categories
		return has_tiers and has_categories

	@staticmethod
	def _is_keep_a_changelog(body: str) -> bool:
		return bool(_VERSION_HEADER.search(body)) or any(s in body for s in _KAC_SECTIONS)
