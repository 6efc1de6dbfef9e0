#!/usr/bin/env python3
"""Release notes attached to a GitHub release."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from clients.github_client import GitHubClient, GitHubClientError
from parsers.extract import parse_release_body
from sources.base import QUALITY_THRESHOLDS
from utils.github_models import GitHubRelease
from utils.version import extract_version
from utils.wnf_models import SourceMetadata, SourceResult

logger = logging.getLogger(__name__)

SHORT_BODY_CONFIDENCE = 0.3


def release_to_source_result(release: GitHubRelease, source: str) -> SourceResult:
	"""Run detect, extract and categorize over a release body."""
	body = release.body or ""
	metadata = SourceMetadata(
		tag=release.tag_name,
		release_url=release.html_url,
		version=extract_version(release.tag_name),
		date=release.published_at,
		raw_content=body,
	)
	if len(body.strip()) < QUALITY_THRESHOLDS["MIN_BODY_LENGTH"]:
		return SourceResult(categories=[], confidence=SHORT_BODY_CONFIDENCE, source=source, metadata=metadata)

	categories, confidence, release_data, _ = parse_release_body(body)
	logger.debug(f"{release.tag_name}: {release_data.metadata.format.value} format, {len(release_data.items)} items")
	return SourceResult(categories=categories, confidence=confidence, source=source, metadata=metadata)


class GitHubReleaseSource:
	name = "github.release"
	priority = 1
	min_confidence = QUALITY_THRESHOLDS["GITHUB_RELEASE"]

	def __init__(self, github: GitHubClient) -> None:
		self.github = github

	def _load(self, owner: str, repo: str, tag: Optional[str]) -> Optional[GitHubRelease]:
		if tag:
			return self.github.get_release_by_tag_or_none(owner, repo, tag)
		return self.github.get_latest_release_or_none(owner, repo)

	async def fetch(self, owner: str, repo: str, tag: Optional[str] = None) -> Optional[SourceResult]:
		try:
			release = await asyncio.to_thread(self._load, owner, repo, tag)
		except GitHubClientError as e:
			logger.warning(f"{self.name}: failed to load release for {owner}/{repo}: {e}")
			return None
		if release is None:
			logger.debug(f"{self.name}: no release found for {owner}/{repo}{'@' + tag if tag else ''}")
			return None
		return release_to_source_result(release, self.name)
