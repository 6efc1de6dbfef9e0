#!/usr/bin/env python3
"""Format dispatch: detect a release body's format and run its extractor."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Optional

from parsers.categorizer import categorize_with_reasons
from parsers.extractors.changesets import extract_changesets
from parsers.extractors.conventional import extract_conventional
from parsers.extractors.generic import extract_generic
from parsers.extractors.github_auto import extract_github_auto
from parsers.extractors.gitlab_official import extract_gitlab_official
from parsers.extractors.keep_a_changelog import extract_keep_a_changelog
from parsers.format_detector import FormatDetector
from utils.wnf_models import ExtractedRelease, FormatKind

logger = logging.getLogger(__name__)

Extractor = Callable[[str], ExtractedRelease]

EXTRACTORS = MappingProxyType({
	FormatKind.CHANGESETS: extract_changesets,
	FormatKind.KEEP_A_CHANGELOG: extract_keep_a_changelog,
	FormatKind.GITHUB_AUTO: extract_github_auto,
	FormatKind.GITLAB_OFFICIAL: extract_gitlab_official,
	FormatKind.CONVENTIONAL: extract_conventional,
	FormatKind.GENERIC: extract_generic,
})

_missing = set(FormatKind) - set(EXTRACTORS)
if _missing:
	raise RuntimeError(f"No extractor registered for: {sorted(k.value for k in _missing)}")

_detector = FormatDetector()


def get_extractor(kind: FormatKind) -> Extractor:
	return EXTRACTORS[FormatKind(kind)]


def extract_release(body: str, kind: Optional[FormatKind] = None) -> ExtractedRelease:
	"""Run the extractor for ``kind``, detecting the format first when not given."""
	body = body or ""
	if kind is None:
		kind = _detector.detect(body)
	release = get_extractor(kind)(body)
	logger.debug(f"Extracted {len(release.items)} items as {release.metadata.format.value}")
	return release


def parse_release_body(body: str):
	"""Detect, extract and categorize a body in one call.

	Returns:
		Tuple of (categories, format confidence, extracted release, inference reasons)
	"""
	body = body or ""
	kind = _detector.detect(body)
	release = extract_release(body, kind)
	categories, reasons = categorize_with_reasons(release.items)
	return categories, _detector.confidence(body), release, reasons
