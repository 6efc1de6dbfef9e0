#!/usr/bin/env python3
"""CHANGELOG.md (or equivalent) checked into the repository."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from clients.github_client import GitHubClient, GitHubClientError
from parsers.categorizer import categorize_items
from parsers.extractors.keep_a_changelog import extract_keep_a_changelog
from sources.base import QUALITY_THRESHOLDS
from utils.github_models import ChangelogFile
from utils.version import extract_package_name, extract_version
from utils.wnf_models import SourceMetadata, SourceResult

logger = logging.getLogger(__name__)


class ChangelogFileSource:
	name = "changelog.md"
	priority = 2
	min_confidence = QUALITY_THRESHOLDS["CHANGELOG_FILE"]

	def __init__(self, github: GitHubClient) -> None:
		self.github = github

	def _locate(self, owner: str, repo: str, tag: Optional[str]) -> Optional[ChangelogFile]:
		release_body = None
		if tag:
			# the release body may link straight to the changelog
			try:
				release = self.github.get_release_by_tag_or_none(owner, repo, tag)
				release_body = release.body if release else None
			except GitHubClientError as e:
				logger.debug(f"{self.name}: release lookup for {tag} failed, continuing without it: {e}")
		return self.github.find_changelog(
			owner,
			repo,
			ref=tag,
			package_name=extract_package_name(tag) if tag else None,
			release_body=release_body,
		)

	async def fetch(self, owner: str, repo: str, tag: Optional[str] = None) -> Optional[SourceResult]:
		try:
			changelog = await asyncio.to_thread(self._locate, owner, repo, tag)
		except GitHubClientError as e:
			logger.warning(f"{self.name}: changelog lookup failed for {owner}/{repo}: {e}")
			return None
		if changelog is None:
			return None

		version = extract_version(tag) if tag else None
		extracted = extract_keep_a_changelog(changelog.content, version)
		if not extracted.items:
			logger.debug(f"{self.name}: {changelog.path} has no entries for {version or 'latest'}")
			return None

		return SourceResult(
			categories=categorize_items(extracted.items),
			confidence=extracted.metadata.format_confidence,
			source=self.name,
			metadata=SourceMetadata(tag=tag, version=version, raw_content=changelog.content),
		)
