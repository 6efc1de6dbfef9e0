#!/usr/bin/env python3
"""Commit messages between two tags, used to fill gaps in written notes."""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Iterable, List, Optional, Tuple

from clients.github_client import GitHubApiError, GitHubClient, GitHubClientError
from configs.config import Config
from parsers.categorizer import categorize_items
from sources.base import COMMITS_SOURCE, QUALITY_THRESHOLDS
from utils.github_models import GitHubCommit, GitHubComparison, GitHubRelease
from utils.item_validator import validate_changelog_item
from utils.breaking import is_breaking_change
from utils.refs import extract_github_refs
from utils.version import extract_version
from utils.wnf_models import ExtractedItem, SourceMetadata, SourceResult

logger = logging.getLogger(__name__)

CONVENTIONAL_COMMIT = re.compile(r"^(\w+)(?:\(([^)]+)\))?(!)?:\s*(.+)$")
TRAILING_REF = re.compile(r"\s*\(#\d+\)\s*$")

CONVENTIONAL_CONFIDENCE = 0.75
PLAIN_CONFIDENCE = 0.6
CONVENTIONAL_ITEM_SCORE = 0.8
UNRELEASED_SOURCE = "commits.unreleased"
UNRELEASED_DEEP_LOOKBACK = 300


def extract_items_from_commits(commits: Iterable[GitHubCommit]) -> List[ExtractedItem]:
	"""One item per commit subject; non-conventional subjects must pass validation."""
	items = []
	for commit in commits:
		message = commit.commit.message
		subject = commit.subject
		m = CONVENTIONAL_COMMIT.match(subject)
		if m:
			cc_type, scope, _, raw = m.groups()
			text = TRAILING_REF.sub("", raw).strip()
			if not text:
				continue
			items.append(ExtractedItem(
				text=text,
				refs=extract_github_refs(message),
				conventional_type=cc_type.lower(),
				scope=scope.strip() if scope else None,
				breaking=True if is_breaking_change(message) else None,
				score=CONVENTIONAL_ITEM_SCORE,
			))
			continue
		validation = validate_changelog_item(subject)
		if validation.valid:
			items.append(ExtractedItem(
				text=TRAILING_REF.sub("", subject).strip(),
				refs=extract_github_refs(message),
				score=validation.score,
			))
	return items


def unreleased_result(baseline: Optional[GitHubRelease], comparison: GitHubComparison) -> Optional[SourceResult]:
	if baseline is None:
		return _result(comparison, UNRELEASED_SOURCE, None, "unreleased")
	return _result(comparison, UNRELEASED_SOURCE, baseline.tag_name, "unreleased", date=baseline.published_at)


def has_conventional_commits(commits: Iterable[GitHubCommit]) -> bool:
	return any(CONVENTIONAL_COMMIT.match(c.subject) for c in commits)


def _result(comparison: GitHubComparison, source: str, tag: Optional[str], version: Optional[str],
			date: Optional[str] = None) -> Optional[SourceResult]:
	commits = comparison.commits
	if not commits:
		return None
	return SourceResult(
		categories=categorize_items(extract_items_from_commits(commits)),
		confidence=CONVENTIONAL_CONFIDENCE if has_conventional_commits(commits) else PLAIN_CONFIDENCE,
		source=source,
		metadata=SourceMetadata(
			tag=tag,
			version=version,
			date=date,
			compare_url=comparison.html_url,
			commit_count=len(commits),
		),
	)


class CommitHistorySource:
	name = COMMITS_SOURCE
	priority = 3
	min_confidence = QUALITY_THRESHOLDS["COMMIT_HISTORY"]

	def __init__(self, github: GitHubClient, lookback: Optional[int] = None) -> None:
		self.github = github
		self.lookback = lookback or Config.COMMIT_LOOKBACK

	def _compare_release(self, owner: str, repo: str, tag: Optional[str]) -> Optional[Tuple[str, GitHubComparison]]:
		tags = [t.name for t in self.github.get_tags(owner, repo, per_page=50)]
		if not tags:
			return None
		current = tag or tags[0]
		previous = self.github.find_previous_tag(owner, repo, current, tags=tags)
		base = previous or f"{current}~{self.lookback}"
		logger.debug(f"{self.name}: comparing {base}...{current}")
		return current, self.github.compare(owner, repo, base, current)

	async def fetch(self, owner: str, repo: str, tag: Optional[str] = None) -> Optional[SourceResult]:
		try:
			found = await asyncio.to_thread(self._compare_release, owner, repo, tag)
		except GitHubClientError as e:
			logger.warning(f"{self.name}: commit comparison failed for {owner}/{repo}: {e}")
			return None
		if found is None:
			return None
		current, comparison = found
		return _result(comparison, self.name, current, extract_version(current))

	def compare_unreleased(self, owner: str, repo: str, include_prerelease: bool = False,
						   package_filter: Optional[str] = None) -> Tuple[Optional[GitHubRelease], GitHubComparison]:
		"""Baseline release and its comparison with the default branch.

		Without any release the branch is compared against a deep lookback.

		Raises:
			GitHubClientError: on any transport or API failure
		"""
		if include_prerelease:
			baseline = self.github.get_latest_release_or_none(owner, repo)
		else:
			baseline = self.github.get_latest_stable_release(owner, repo, package_filter=package_filter)

		if baseline:
			return baseline, self.github.compare_to_head(owner, repo, baseline.tag_name)

		branch = self.github.get_default_branch(owner, repo)
		try:
			return None, self.github.compare(owner, repo, f"{branch}~{UNRELEASED_DEEP_LOOKBACK}", branch)
		except GitHubApiError:
			# shallow histories have fewer commits than the deep lookback
			return None, self.github.compare(owner, repo, f"{branch}~{self.lookback}", branch)

	async def fetch_unreleased(self, owner: str, repo: str, include_prerelease: bool = False,
							   package_filter: Optional[str] = None) -> Optional[SourceResult]:
		"""Commits on the default branch since the latest (stable) release."""
		try:
			baseline, comparison = await asyncio.to_thread(
				self.compare_unreleased, owner, repo, include_prerelease, package_filter
			)
		except GitHubClientError as e:
			logger.warning(f"{self.name}: unreleased comparison failed for {owner}/{repo}: {e}")
			return None
		return unreleased_result(baseline, comparison)
