#!/usr/bin/env python3
"""Multi-source aggregator for a single release.

Combines the GitHub release body, the repository changelog and the commit
history into one WNF document, falling back to AI extraction when the
deterministic result looks unreliable.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from langsmith.run_helpers import traceable

from ai.ai_extractor import AIExtractor
from ai.quality_assessor import QualityAssessor
from aggregation.summary_builder import build_category_summary
from clients.github_client import GitHubClient
from configs.config import Config
from pipeline.context import PipelineContext
from pipeline.stages import enhance_with_ai, fetch_sources, filter_quality, merge_sources
from sources.base import DataSource
from sources.changelog_file import ChangelogFileSource
from sources.commit_history import CommitHistorySource
from sources.github_release import GitHubReleaseSource
from utils.item_quality import QualityInput, calculate_composite_confidence
from utils.wnf_models import (
	ConfidenceBreakdown,
	DocumentLinks,
	DocumentSource,
	SourceResult,
	WNFDocument,
)

logger = logging.getLogger(__name__)

_CONVENTIONAL_TYPE = re.compile(r"^(feat|fix|docs|style|refactor|perf|test|build|ci|chore)(?:\([^)]+\))?!?:", re.IGNORECASE)


class NoReleaseDataError(LookupError):
	"""Raised when no source produced anything for the requested release."""

	def __init__(self, owner: str, repo: str, tag: Optional[str] = None) -> None:
		self.owner = owner
		self.repo = repo
		self.tag = tag
		super().__init__(f"No release data available for {owner}/{repo}{'@' + tag if tag else ''}")


def extract_conventional_type(text: str) -> Optional[str]:
	m = _CONVENTIONAL_TYPE.match(text)
	return m.group(1).lower() if m else None


def now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def default_sources(github: GitHubClient) -> List[DataSource]:
	return [
		GitHubReleaseSource(github),
		ChangelogFileSource(github),
		CommitHistorySource(github),
	]


def to_wnf_document(result: SourceResult, owner: str, repo: str, tag: Optional[str],
					sources_used: Sequence[str], ai_enhanced: bool = False) -> WNFDocument:
	"""Wrap a final SourceResult in a WNF document with composite confidence."""
	original_tag = result.metadata.tag or tag
	version = result.metadata.version or (tag[1:] if tag and tag.startswith("v") else tag) or "unknown"

	items = [
		QualityInput(
			text=item.text,
			conventional_type=extract_conventional_type(item.text),
			scope=item.scope,
			refs=tuple(item.refs or ()),
		)
		for category in result.categories
		for item in category.items
	]
	confidence = calculate_composite_confidence(result.confidence, items, len(items))

	return WNFDocument(
		source=DocumentSource(platform="github", repo=f"{owner}/{repo}", tag=original_tag or version),
		version=version,
		released_at=result.metadata.date,
		summary=build_category_summary(result.categories),
		categories=result.categories,
		links=DocumentLinks(
			release=result.metadata.release_url
			or f"https://github.com/{owner}/{repo}/releases/tag/{original_tag or version}",
			compare=result.metadata.compare_url,
		),
		confidence=confidence.composite,
		confidence_breakdown=ConfidenceBreakdown(
			composite=confidence.composite,
			structural=confidence.structural,
			quality=confidence.quality,
			terse_ratio=confidence.metrics.terse_ratio,
			item_count=confidence.metrics.item_count,
		),
		generated_from=list(sources_used),
		generated_at=now_iso(),
		ai_enhanced=True if ai_enhanced else None,
	)


class DataAggregator:
	"""Runs the release pipeline over a fixed, priority-ordered set of sources."""

	def __init__(self, github: GitHubClient, sources: Optional[Sequence[DataSource]] = None,
				 ai_extractor: Optional[AIExtractor] = None, assessor: Optional[QualityAssessor] = None) -> None:
		"""
		Args:
			github: Client shared by the default sources; also validates identifiers
			sources: Overrides the default release/changelog/commits sources
			ai_extractor: Defaults to an AIExtractor honoring Config.AI_ENABLED
			assessor: Defaults to a QualityAssessor at Config.AI_CONFIDENCE_THRESHOLD
		"""
		self.github = github
		self.sources = list(sources) if sources is not None else default_sources(github)
		self.ai_extractor = ai_extractor or AIExtractor()
		self.assessor = assessor or QualityAssessor(Config.get_ai_config()["confidence_threshold"])

	@traceable(name="get_release")
	async def get_release(self, owner: str, repo: str, tag: Optional[str] = None) -> WNFDocument:
		"""Build the WNF document for ``tag`` (latest release when omitted).

		Raises:
			GitHubValidationError: owner or repo is malformed
			NoReleaseDataError: no source produced anything
		"""
		self.github.validate_repo_params(owner, repo)

		ctx = PipelineContext(owner=owner, repo=repo, tag=tag)
		ctx = await fetch_sources(ctx, self.sources)
		ctx = merge_sources(ctx)
		if ctx.final_result is None:
			raise NoReleaseDataError(owner, repo, tag)

		ctx = await enhance_with_ai(ctx, self.assessor, self.ai_extractor)
		ctx = filter_quality(ctx)

		logger.info(f"{ctx.label}: built from {', '.join(ctx.sources_used)}")
		return to_wnf_document(ctx.final_result, owner, repo, tag, ctx.sources_used, ctx.ai_enhanced)

	async def get_release_by_tag(self, owner: str, repo: str, tag: str) -> WNFDocument:
		return await self.get_release(owner, repo, tag)
