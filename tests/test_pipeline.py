"""
Tests for the pipeline stages and the multi-source DataAggregator.
"""
import asyncio
import json

import pytest

from agents.data_aggregator import DataAggregator, NoReleaseDataError, to_wnf_document
from ai.ai_extractor import AIExtractor
from clients.github_client import GitHubApiError, GitHubValidationError
from pipeline.context import PipelineContext
from pipeline.stages import fetch_primary, fetch_sources, filter_low_quality_items, merge_with_commits
from utils.wnf_models import Category, ChangeItem, SourceResult

from conftest import FakeGitHub, FakeSource, make_result

RAW_NOTES = (
	"This release brings a handful of improvements.\n\n"
	"OAuth support was added for GitHub login (#12). The cache warmer no longer races "
	"with the scheduler, and several crashes around missing configuration files were fixed. "
	"Startup time improved noticeably on large repositories, and the docs were reorganized.\n"
)


def _aggregator(sources, ai_extractor=None):
	return DataAggregator(FakeGitHub(), sources=sources, ai_extractor=ai_extractor or AIExtractor(enabled=False))


class TestMergeWithCommits:
	"""Primary + commit merge"""

	def test_shared_ref_keeps_primary_text(self):
		primary = make_result("github.release", 0.9, {"features": [("Add OAuth support for GitHub login", ["12"])]})
		commits = make_result("commits", 0.75, {"features": [("feat: oauth (#12)", ["12"])]})
		merged = merge_with_commits(primary, commits)
		assert merged.item_count() == 1
		assert merged.categories[0].items[0].text == "Add OAuth support for GitHub login"

	def test_normalized_text_dedup(self):
		primary = make_result("github.release", 0.6, {"fixes": ["**cli**: Fix crash on empty input (#3)"]})
		commits = make_result("commits", 0.75, {"fixes": ["Fix crash on  empty input"]})
		merged = merge_with_commits(primary, commits)
		assert merged.item_count() == 1
		assert merged.confidence == pytest.approx(0.75)

	def test_new_commit_items_are_added_in_priority_order(self):
		primary = make_result("github.release", 0.9, {"fixes": [("Fix crash on empty input", ["3"])]}, tag="v1.0.0")
		commits = make_result("commits", 0.6, {
			"docs": [("Document the retry settings", ["7"])],
			"features": [("Add streaming API", ["5"])],
		})
		merged = merge_with_commits(primary, commits)
		assert [c.id for c in merged.categories] == ["features", "fixes", "docs"]
		assert merged.metadata.tag == "v1.0.0"
		assert merged.source == "github.release"

	def test_commit_duplicates_within_commits_collapse(self):
		primary = make_result("github.release", 0.9, {"fixes": ["Fix crash on empty input"]})
		commits = make_result("commits", 0.6, {"perf": [("Speed up parsing", ["9"]), ("Speed up parser hot loop", ["9"])]})
		merged = merge_with_commits(primary, commits)
		assert [i.text for i in merged.categories[1].items] == ["Speed up parsing"]


class TestFetchStages:
	"""Primary selection and commit augmentation"""

	def test_first_confident_source_wins(self):
		release = FakeSource("github.release", 1, 0.5, make_result("github.release", 0.9, {"fixes": ["Fix crash on empty input"]}))
		changelog = FakeSource("changelog.md", 2, 0.4, make_result("changelog.md", 0.9, {"fixes": ["Other"]}))
		ctx = asyncio.run(fetch_primary(PipelineContext("acme", "widgets"), [changelog, release]))
		assert ctx.primary.source == "github.release"
		assert ctx.sources_used == ("github.release",)
		assert changelog.calls == []

	def test_best_fallback_kept_when_none_confident(self):
		release = FakeSource("github.release", 1, 0.5, make_result("github.release", 0.3, {}))
		changelog = FakeSource("changelog.md", 2, 0.4, make_result("changelog.md", 0.35, {"fixes": ["Fix crash on empty input"]}))
		ctx = asyncio.run(fetch_primary(PipelineContext("acme", "widgets"), [release, changelog]))
		assert ctx.primary.source == "changelog.md"
		assert ctx.sources_used == ("changelog.md",)

	def test_transport_error_skips_source(self):
		release = FakeSource("github.release", 1, 0.5, error=GitHubApiError("boom", code="HTTP_500"))
		changelog = FakeSource("changelog.md", 2, 0.4, make_result("changelog.md", 0.9, {"fixes": ["Fix crash on empty input"]}))
		ctx = asyncio.run(fetch_primary(PipelineContext("acme", "widgets"), [release, changelog]))
		assert ctx.primary.source == "changelog.md"

	def test_commits_fetched_alongside_primary(self):
		release = FakeSource("github.release", 1, 0.5, make_result("github.release", 0.9, {"fixes": ["Fix crash on empty input"]}))
		commits = FakeSource("commits", 3, 0.0, make_result("commits", 0.75, {"features": ["Add streaming API"]}))
		ctx = asyncio.run(fetch_sources(PipelineContext("acme", "widgets", "v1.0.0"), [release, commits]))
		assert ctx.sources_used == ("github.release", "commits")
		assert commits.calls == [("acme", "widgets", "v1.0.0")]

	def test_empty_commit_result_is_ignored(self):
		commits = FakeSource("commits", 3, 0.0, make_result("commits", 0.75, {}))
		ctx = asyncio.run(fetch_sources(PipelineContext("acme", "widgets"), [commits]))
		assert ctx.commits is None
		assert ctx.sources_used == ()


class TestFilterQuality:
	"""Low-score item removal"""

	def test_filters_by_score_and_validation(self):
		result = SourceResult(
			source="github.release",
			confidence=0.8,
			categories=[
				Category(id="features", title="New Features", items=[
					ChangeItem(text="Add streaming API for large files", score=0.8),
					ChangeItem(text="Add something", score=0.1),
				]),
				Category(id="other", title="Other Changes", items=[ChangeItem(text="@bob")]),
			],
		)
		filtered = filter_low_quality_items(result)
		assert [c.id for c in filtered.categories] == ["features"]
		assert [i.text for i in filtered.categories[0].items] == ["Add streaming API for large files"]


class TestDataAggregator:
	"""End-to-end pipeline over fake sources"""

	def test_merges_release_and_commits(self):
		release = FakeSource("github.release", 1, 0.5, make_result(
			"github.release", 0.9, {"features": [("Add OAuth support for GitHub login", ["12"])]}
		))
		commits = FakeSource("commits", 3, 0.0, make_result("commits", 0.75, {"fixes": [
			("Fix race in cache warmer", ["12"]),
			("Fix crash when config file is missing", ["15"]),
		]}))
		doc = asyncio.run(_aggregator([release, commits]).get_release("acme", "widgets", "v1.2.0"))

		assert doc.generated_from == ["github.release", "commits"]
		assert [c.id for c in doc.categories] == ["features", "fixes"]
		assert [i.text for i in doc.categories[1].items] == ["Fix crash when config file is missing"]
		assert doc.version == "1.2.0"
		assert doc.links.release == "https://github.com/acme/widgets/releases/tag/v1.2.0"
		assert doc.summary == "1 feature, 1 fix"
		assert 0.0 <= doc.confidence <= 1.0
		assert doc.confidence_breakdown.item_count == 2
		assert doc.ai_enhanced is None

	def test_no_data_raises(self):
		release = FakeSource("github.release", 1, 0.5, None)
		commits = FakeSource("commits", 3, 0.0, None)
		with pytest.raises(NoReleaseDataError, match="No release data available for acme/widgets@v9"):
			asyncio.run(_aggregator([release, commits]).get_release("acme", "widgets", "v9"))

	def test_invalid_repo_rejected_before_fetch(self):
		release = FakeSource("github.release", 1, 0.5, None)
		with pytest.raises(GitHubValidationError):
			asyncio.run(_aggregator([release]).get_release("acme", "bad repo!"))
		assert release.calls == []

	def test_commits_only(self):
		commits = FakeSource("commits", 3, 0.0, make_result("commits", 0.6, {"fixes": ["Fix crash when config file is missing"]}))
		doc = asyncio.run(_aggregator([commits]).get_release("acme", "widgets"))
		assert doc.generated_from == ["commits"]
		assert doc.version == "unknown"

	def test_metadata_tag_preferred(self):
		result = make_result("github.release", 0.9, {"fixes": ["Fix crash on empty input"]},
							 tag="v2.0.0", version="2.0.0", release_url="https://github.com/acme/widgets/releases/tag/v2.0.0")
		doc = to_wnf_document(result, "acme", "widgets", None, ["github.release"])
		assert doc.source.tag == "v2.0.0"
		assert doc.links.release == "https://github.com/acme/widgets/releases/tag/v2.0.0"


class TestAIEnhancement:
	"""AI fallback through the full pipeline"""

	@pytest.fixture
	def weak_release(self):
		return FakeSource("github.release", 1, 0.5, make_result(
			"github.release", 0.5, {"other": ["Assorted changes to the project"]}, raw_content=RAW_NOTES
		))

	def test_ai_result_replaces_weak_output_and_refs_are_grounded(self, weak_release):
		response = json.dumps({
			"categories": [{
				"id": "features",
				"title": "Features",
				"items": [{
					"text": "Add OAuth support for GitHub login",
					"sourceQuote": "OAuth support was added for GitHub login (#12)",
					"refs": ["#12", "999"],
					"breaking": None,
				}],
			}],
			"version": None,
			"hasBreakingChanges": False,
			"notes": None,
		})
		prompts = []

		def complete(prompt):
			prompts.append(prompt)
			return "Here you go:\n```json\n" + response + "\n```"

		doc = asyncio.run(_aggregator([weak_release], AIExtractor(enabled=True, complete=complete)).get_release("acme", "widgets"))

		assert "#12" in prompts[0]
		assert doc.ai_enhanced is True
		assert doc.generated_from == ["github.release", "ai"]
		assert [c.id for c in doc.categories] == ["features"]
		assert doc.categories[0].title == "Features"
		assert doc.categories[0].items[0].refs == ["12"]

	@pytest.mark.parametrize("complete", [
		lambda prompt: "I could not parse these notes.",
		lambda prompt: '{"categories": [{"id": "nonsense", "items": []}]}',
	])
	def test_bad_ai_output_keeps_deterministic_result(self, weak_release, complete):
		doc = asyncio.run(_aggregator([weak_release], AIExtractor(enabled=True, complete=complete)).get_release("acme", "widgets"))
		assert doc.ai_enhanced is None
		assert doc.generated_from == ["github.release"]
		assert doc.categories[0].id == "other"

	def test_ai_exception_is_swallowed(self, weak_release):
		def complete(prompt):
			raise RuntimeError("model unavailable")

		doc = asyncio.run(_aggregator([weak_release], AIExtractor(enabled=True, complete=complete)).get_release("acme", "widgets"))
		assert doc.ai_enhanced is None

	def test_ai_categories_folded_and_ordered(self, weak_release):
		def item(text):
			return {"text": text, "sourceQuote": None, "refs": [], "breaking": None}

		response = json.dumps({"categories": [
			{"id": "fixes", "title": "Fixes", "items": [item("Fix crashes around missing configuration files")]},
			{"id": "features", "title": "Features", "items": [item("Add OAuth support for GitHub login")]},
			{"id": "features", "title": "Features", "items": [item("Improve startup time on large repositories")]},
		]})
		extractor = AIExtractor(enabled=True, complete=lambda prompt: response)
		doc = asyncio.run(_aggregator([weak_release], extractor).get_release("acme", "widgets"))

		assert [c.id for c in doc.categories] == ["features", "fixes"]
		assert [i.text for i in doc.categories[0].items] == [
			"Add OAuth support for GitHub login",
			"Improve startup time on large repositories",
		]

	def test_confident_result_skips_ai(self):
		release = FakeSource("github.release", 1, 0.5, make_result(
			"github.release", 0.9, {"features": ["Add streaming API for large files"]}, raw_content="short"
		))
		calls = []
		extractor = AIExtractor(enabled=True, complete=lambda p: calls.append(p) or "{}")
		asyncio.run(_aggregator([release], extractor).get_release("acme", "widgets"))
		assert calls == []
