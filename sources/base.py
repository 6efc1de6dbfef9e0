#!/usr/bin/env python3
"""Common contract for release data sources.

A source turns one repository (and optional tag) into a categorized
SourceResult, or None when it has nothing to offer. Sources never raise for
missing data; transport failures are logged by the source and reported as
None so the pipeline can move on to the next one.
"""
from types import MappingProxyType
from typing import Optional, Protocol, runtime_checkable

from utils.wnf_models import SourceResult

QUALITY_THRESHOLDS = MappingProxyType({
	"GITHUB_RELEASE": 0.5,
	"CHANGELOG_FILE": 0.4,
	"COMMIT_HISTORY": 0.0,
	"MIN_BODY_LENGTH": 50,
})

COMMITS_SOURCE = "commits"


@runtime_checkable
class DataSource(Protocol):
	name: str
	priority: int
	min_confidence: float

	async def fetch(self, owner: str, repo: str, tag: Optional[str] = None) -> Optional[SourceResult]:
		...
