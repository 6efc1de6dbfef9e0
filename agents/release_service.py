#!/usr/bin/env python3
"""High-level release queries: single release, date range, unreleased work."""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from aggregation.date_range import DateLike, iso_utc, normalize_date_range
from aggregation.package_aggregator import PackageAggregator, ParsedRelease
from aggregation.summary_builder import build_aggregated_summary, extract_summary
from agents.data_aggregator import DataAggregator, now_iso
from ai.ai_extractor import AIExtractor
from clients.github_client import GitHubClient, MonorepoInfo
from configs.config import Config
from parsers.extract import parse_release_body
from sources.commit_history import UNRELEASED_SOURCE, CommitHistorySource, unreleased_result
from utils.github_models import GitHubRelease
from utils.version import extract_version
from utils.wnf_models import (
	AggregatedLinks,
	AggregatedSource,
	Category,
	DateRange,
	DocumentLinks,
	DocumentSource,
	WNFAggregatedDocument,
	WNFDocument,
)

logger = logging.getLogger(__name__)

RELEASE_SOURCE = "github.release"
RANGE_SOURCE = "github.releases"
EMPTY_RANGE_SUMMARY = "No releases found in the specified date range"
CHANGELOG_REFERENCE_MAX_LENGTH = 300
_CHANGELOG_REFERENCE = re.compile(r"\[CHANGELOG(?:\.md)?\]\(https://github\.com/[^)]+\)", re.IGNORECASE)


@dataclass
class UnreleasedResult:
	document: WNFDocument
	baseline_tag: Optional[str]
	commit_count: int
	baseline_date: Optional[str] = None


def is_changelog_reference(body: str) -> bool:
	"""Short bodies that only point at a CHANGELOG file."""
	if len(body) > CHANGELOG_REFERENCE_MAX_LENGTH:
		return False
	return _CHANGELOG_REFERENCE.search(body) is not None


def build_unreleased_summary(categories: List[Category], commit_count: int) -> str:
	item_count = sum(len(c.items) for c in categories)
	breaking = sum(len(c.items) for c in categories if c.id == "breaking")
	summary = f"{commit_count} commits with {item_count} changes since last release"
	if breaking:
		summary += f" ({breaking} breaking)"
	return summary


class ReleaseService:
	def __init__(self, github: Optional[GitHubClient] = None, enable_fallback: Optional[bool] = None,
				 ai_extractor: Optional[AIExtractor] = None, aggregator: Optional[DataAggregator] = None) -> None:
		self.github = github or GitHubClient()
		self.enable_fallback = Config.ENABLE_FALLBACK if enable_fallback is None else enable_fallback
		self.aggregator = None
		if self.enable_fallback:
			self.aggregator = aggregator or DataAggregator(self.github, ai_extractor=ai_extractor)

	def _release_document(self, owner: str, repo: str, release: GitHubRelease) -> WNFDocument:
		"""Single-source document straight from a release body."""
		body = release.body or ""
		categories, confidence, _, _ = parse_release_body(body)
		return WNFDocument(
			source=DocumentSource(platform="github", repo=f"{owner}/{repo}", tag=release.tag_name),
			version=extract_version(release.tag_name),
			released_at=release.published_at,
			summary=extract_summary(body),
			categories=categories,
			links=DocumentLinks(release=release.html_url),
			confidence=confidence,
			generated_from=[RELEASE_SOURCE],
			generated_at=now_iso(),
		)

	async def get_latest_release_wnf(self, owner: str, repo: str, package_name: Optional[str] = None) -> WNFDocument:
		"""Latest release; with ``package_name``, the latest release tagged for that package."""
		if self.aggregator is not None and not package_name:
			return await self.aggregator.get_release(owner, repo)

		if package_name:
			releases = await asyncio.to_thread(
				self.github.get_recent_releases, owner, repo, per_page=10, package_filter=package_name
			)
			if not releases:
				raise LookupError(f"No releases found for package: {package_name}")
			release = releases[0]
		else:
			release = await asyncio.to_thread(self.github.get_latest_release, owner, repo)
		return self._release_document(owner, repo, release)

	async def get_release_by_tag_wnf(self, owner: str, repo: str, tag: str) -> WNFDocument:
		if self.aggregator is not None:
			return await self.aggregator.get_release_by_tag(owner, repo, tag)
		release = await asyncio.to_thread(self.github.get_release_by_tag, owner, repo, tag)
		return self._release_document(owner, repo, release)

	async def detect_monorepo(self, owner: str, repo: str) -> MonorepoInfo:
		return await asyncio.to_thread(self.github.detect_monorepo, owner, repo)

	def _resolve_body(self, owner: str, repo: str, release: GitHubRelease) -> str:
		body = release.body or ""
		if not is_changelog_reference(body):
			return body
		changelog = self.github.find_changelog(owner, repo, ref=release.tag_name, release_body=body)
		if changelog is None:
			return body
		logger.debug(f"{release.tag_name}: body links to {changelog.path}, using it instead")
		return changelog.content

	async def _parse_for_aggregation(self, owner: str, repo: str, release: GitHubRelease) -> ParsedRelease:
		body = await asyncio.to_thread(self._resolve_body, owner, repo, release)
		categories, confidence, _, _ = parse_release_body(body)
		return ParsedRelease(
			tag_name=release.tag_name,
			categories=categories,
			confidence=confidence,
			published_at=release.published_at,
			html_url=release.html_url,
		)

	async def get_releases_in_range(self, owner: str, repo: str, since: DateLike, until: Optional[DateLike] = None,
									package_filter: Optional[str] = None) -> WNFAggregatedDocument:
		"""Aggregate every release published in ``[since, until]``, grouped by package."""
		start, end = normalize_date_range(since, until)
		releases = await asyncio.to_thread(
			self.github.get_releases_in_range, owner, repo, start, end, package_filter=package_filter
		)

		source = AggregatedSource(
			platform="github",
			repo=f"{owner}/{repo}",
			date_range=DateRange(since=iso_utc(start), until=iso_utc(end)),
			package_filter=package_filter,
		)
		links = AggregatedLinks(releases=f"https://github.com/{owner}/{repo}/releases")

		if not releases:
			return WNFAggregatedDocument(
				source=source,
				summary=EMPTY_RANGE_SUMMARY,
				links=links,
				confidence=0.0,
				generated_from=[RANGE_SOURCE],
				generated_at=now_iso(),
			)

		parsed = await asyncio.gather(*(self._parse_for_aggregation(owner, repo, r) for r in releases))
		packages, summaries = PackageAggregator(repo).aggregate(list(parsed))
		confidence = sum(p.confidence for p in packages) / len(packages) if packages else 0.0

		return WNFAggregatedDocument(
			source=source,
			summary=build_aggregated_summary(packages, len(releases)),
			packages=packages,
			releases=summaries,
			release_count=len(releases),
			links=links,
			confidence=confidence,
			generated_from=[RANGE_SOURCE],
			generated_at=now_iso(),
		)

	async def get_unreleased_changes(self, owner: str, repo: str, include_prerelease: bool = False,
									 package_filter: Optional[str] = None) -> UnreleasedResult:
		"""Changes on the default branch since the latest (stable) release."""
		self.github.validate_repo_params(owner, repo)
		# transport failures propagate to the caller
		baseline, comparison = await asyncio.to_thread(
			CommitHistorySource(self.github).compare_unreleased, owner, repo, include_prerelease, package_filter
		)
		result = unreleased_result(baseline, comparison)

		if result is None:
			baseline_tag = baseline.tag_name if baseline else None
			document = WNFDocument(
				source=DocumentSource(platform="github", repo=f"{owner}/{repo}", tag=baseline_tag),
				version="unreleased",
				summary=f"No unreleased changes since {baseline_tag}" if baseline else "No releases found",
				confidence=1.0,
				generated_from=[UNRELEASED_SOURCE],
				generated_at=now_iso(),
			)
			return UnreleasedResult(
				document=document,
				baseline_tag=baseline_tag,
				commit_count=0,
				baseline_date=baseline.published_at if baseline else None,
			)

		commit_count = result.metadata.commit_count or 0
		document = WNFDocument(
			source=DocumentSource(platform="github", repo=f"{owner}/{repo}", tag=result.metadata.tag),
			version="unreleased",
			summary=build_unreleased_summary(result.categories, commit_count),
			categories=result.categories,
			links=DocumentLinks(compare=result.metadata.compare_url),
			confidence=result.confidence,
			generated_from=[UNRELEASED_SOURCE],
			generated_at=now_iso(),
		)
		return UnreleasedResult(
			document=document,
			baseline_tag=result.metadata.tag,
			commit_count=commit_count,
			baseline_date=result.metadata.date,
		)
