#!/usr/bin/env python3
"""Pipeline stages for a single release.

Each stage takes a PipelineContext and returns a new one:

    fetch_sources   primary source and commit history, fetched concurrently
    merge_sources   primary + commits -> final_result
    enhance_with_ai replace weak deterministic output with a grounded AI parse
    filter_quality  drop items that score below MIN_SCORE
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Set

from ai.ai_extractor import AIExtractor
from ai.quality_assessor import QualityAssessor
from clients.github_client import GitHubClientError
from sources.base import COMMITS_SOURCE, DataSource
from utils.item_validator import validate_changelog_item
from utils.text_normalize import normalize_for_deduplication
from utils.wnf_models import Category, SourceResult, category_rank
from pipeline.context import PipelineContext

logger = logging.getLogger(__name__)

AI_SOURCE = "ai"
AI_CONFIDENCE_FLOOR = 0.8
MIN_SCORE = 0.25


def _primary_sources(sources: Sequence[DataSource]) -> List[DataSource]:
	return sorted((s for s in sources if s.name != COMMITS_SOURCE), key=lambda s: s.priority)


async def fetch_primary(ctx: PipelineContext, sources: Sequence[DataSource]) -> PipelineContext:
	"""Walk primary sources in priority order.

	The first result that clears its source's ``min_confidence`` wins. Until
	then the most confident result seen so far is kept as a fallback.
	"""
	best: Optional[SourceResult] = None
	best_name: Optional[str] = None

	for source in _primary_sources(sources):
		try:
			result = await source.fetch(ctx.owner, ctx.repo, ctx.tag)
		except GitHubClientError as e:
			logger.warning(f"Error fetching from {source.name}: {e}")
			continue

		if result is None:
			continue
		if result.confidence >= source.min_confidence:
			logger.debug(f"{ctx.label}: {source.name} accepted at {result.confidence:.2f}")
			best, best_name = result, source.name
			break
		if best is None or result.confidence > best.confidence:
			logger.debug(f"{ctx.label}: {source.name} kept as fallback at {result.confidence:.2f}")
			best, best_name = result, source.name

	if best_name is None:
		return ctx
	return ctx.update(primary=best).add_source(best_name)


async def fetch_commits(ctx: PipelineContext, sources: Sequence[DataSource]) -> PipelineContext:
	"""Commit history is optional augmentation; failures leave the context untouched."""
	commit_source = next((s for s in sources if s.name == COMMITS_SOURCE), None)
	if commit_source is None:
		return ctx

	try:
		result = await commit_source.fetch(ctx.owner, ctx.repo, ctx.tag)
	except GitHubClientError as e:
		logger.warning(f"Error fetching from {COMMITS_SOURCE}: {e}")
		return ctx

	if result is None or not result.categories:
		return ctx
	return ctx.update(commits=result).add_source(COMMITS_SOURCE)


async def fetch_sources(ctx: PipelineContext, sources: Sequence[DataSource]) -> PipelineContext:
	"""Run fetch_primary and fetch_commits concurrently and join their results."""
	primary_ctx, commits_ctx = await asyncio.gather(fetch_primary(ctx, sources), fetch_commits(ctx, sources))
	return primary_ctx.update(
		commits=commits_ctx.commits,
		sources_used=primary_ctx.sources_used + commits_ctx.sources_used[len(ctx.sources_used):],
	)


def sort_categories(categories: Sequence[Category]) -> List[Category]:
	"""Fold categories sharing an id together, drop empty ones and apply priority order."""
	by_id: Dict[str, Category] = {}
	for category in categories:
		if category.id in by_id:
			by_id[category.id].items.extend(category.items)
		else:
			by_id[category.id] = category.model_copy(update={"items": list(category.items)})
	return sorted((c for c in by_id.values() if c.items), key=lambda c: category_rank(c.id))


def merge_with_commits(primary: SourceResult, commits: SourceResult) -> SourceResult:
	"""Add commit items the primary result does not already cover.

	A commit item is a duplicate when it shares any ref with an item already
	kept, or when its normalized text matches one. Primary items always win.
	"""
	seen_refs: Set[str] = set()
	seen_texts: Set[str] = set()
	merged: Dict[str, Category] = {}

	for category in primary.categories:
		for item in category.items:
			seen_refs.update(item.refs or [])
			seen_texts.add(normalize_for_deduplication(item.text))
		merged[category.id] = category.model_copy(update={"items": list(category.items)})

	added = 0
	for category in commits.categories:
		for item in category.items:
			if any(ref in seen_refs for ref in item.refs or []):
				continue
			key = normalize_for_deduplication(item.text)
			if key in seen_texts:
				continue
			if category.id not in merged:
				merged[category.id] = Category(id=category.id, title=category.title, items=[])
			merged[category.id].items.append(item)
			seen_refs.update(item.refs or [])
			seen_texts.add(key)
			added += 1

	logger.debug(f"merged {added} commit items into {primary.source}")
	categories = sort_categories(list(merged.values()))
	return primary.model_copy(update={
		"categories": categories,
		"confidence": max(primary.confidence, commits.confidence),
		"metadata": primary.metadata,
	})


def merge_sources(ctx: PipelineContext) -> PipelineContext:
	if ctx.primary is not None and ctx.commits is not None:
		return ctx.update(final_result=merge_with_commits(ctx.primary, ctx.commits))
	if ctx.primary is not None:
		return ctx.update(final_result=ctx.primary)
	if ctx.commits is not None:
		return ctx.update(final_result=ctx.commits)
	return ctx


async def enhance_with_ai(ctx: PipelineContext, assessor: QualityAssessor, extractor: AIExtractor) -> PipelineContext:
	"""Swap in AI-extracted categories when the deterministic parse looks weak."""
	result = ctx.final_result
	if result is None:
		return ctx

	raw_content = result.metadata.raw_content or ""
	assessment = assessor.assess(result.categories, result.confidence, len(raw_content))
	if not assessment.should_fallback_to_ai or not raw_content or not extractor.is_available():
		return ctx

	logger.info(f"{ctx.label}: quality {assessment.score:.2f} ({', '.join(assessment.reasons)}), trying AI extraction")
	ai_result = await asyncio.to_thread(extractor.extract, raw_content)
	if ai_result is None or not ai_result.categories:
		return ctx

	enhanced = result.model_copy(update={
		"categories": sort_categories(ai_result.categories),
		"confidence": max(result.confidence, AI_CONFIDENCE_FLOOR),
	})
	return ctx.update(final_result=enhanced, ai_enhanced=True).add_source(AI_SOURCE)


def filter_low_quality_items(result: SourceResult) -> SourceResult:
	categories = []
	for category in result.categories:
		items = []
		for item in category.items:
			if item.score is None:
				# unscored items (AI output, merged commits) get validated here
				if not validate_changelog_item(item.text).valid:
					continue
			elif item.score < MIN_SCORE:
				continue
			items.append(item)
		if items:
			categories.append(category.model_copy(update={"items": items}))
	return result.model_copy(update={"categories": categories})


def filter_quality(ctx: PipelineContext) -> PipelineContext:
	if ctx.final_result is None:
		return ctx
	return ctx.update(final_result=filter_low_quality_items(ctx.final_result))
