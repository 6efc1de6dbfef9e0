#!/usr/bin/env python3
"""WNF ("What's New Format") models.

Two layers live here: the intermediate extraction layer (ExtractedItem /
ExtractedRelease) produced by the format-specific extractors, and the wire
layer (ChangeItem, Category, WNFDocument, WNFAggregatedDocument) produced by
the categorizer and the aggregation pipeline. Wire models serialize with
camelCase aliases via ``to_wire``.
"""
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, confloat, conint, conlist
from pydantic.alias_generators import to_camel

SPEC_VERSION = "wnf/0.1"

CategoryId = Literal[
	"breaking",
	"security",
	"features",
	"fixes",
	"perf",
	"deps",
	"refactor",
	"chore",
	"docs",
	"other",
]

# Fixed display / tie-break order
CATEGORY_PRIORITY: Tuple[CategoryId, ...] = (
	"breaking",
	"security",
	"features",
	"fixes",
	"perf",
	"deps",
	"refactor",
	"chore",
	"docs",
	"other",
)

CATEGORY_TITLES = MappingProxyType({
	"breaking": "Breaking Changes",
	"features": "New Features",
	"fixes": "Bug Fixes",
	"security": "Security",
	"perf": "Performance",
	"deps": "Dependencies",
	"docs": "Documentation",
	"refactor": "Refactoring",
	"chore": "Chores",
	"other": "Other Changes",
})

IMPORTANT_CATEGORIES: Tuple[CategoryId, ...] = ("breaking", "security", "features", "fixes", "perf")
MAINTENANCE_CATEGORIES: Tuple[CategoryId, ...] = ("deps", "refactor", "chore", "docs", "other")

NoteType = Literal["upgrade", "migration", "deprecation", "info"]
Score = confloat(ge=0.0, le=1.0)


class FormatKind(str, Enum):
	"""Changelog formats recognised by the format detector."""

	CHANGESETS = "changesets"
	KEEP_A_CHANGELOG = "keep-a-changelog"
	GITHUB_AUTO = "github-auto-generated"
	GITLAB_OFFICIAL = "gitlab-official"
	CONVENTIONAL = "conventional-commits"
	GENERIC = "generic"


def category_rank(category_id: str) -> int:
	try:
		return CATEGORY_PRIORITY.index(category_id)
	except ValueError:
		return len(CATEGORY_PRIORITY)


class _StrictModel(BaseModel):
	model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class _FrozenModel(_StrictModel):
	model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True, frozen=True)


# --- Extraction layer ---

class SourceHint(_FrozenModel):
	"""Where an item came from in the source document. Never authoritative."""

	section: str
	suggested_category: Optional[CategoryId] = None


class ExtractedItem(_FrozenModel):
	"""One change entry as recovered by an extractor, before categorization."""

	text: str
	refs: List[str] = Field(default_factory=list)
	source_hint: Optional[SourceHint] = None
	conventional_type: Optional[str] = None
	scope: Optional[str] = None
	breaking: Optional[bool] = None
	author: Optional[str] = None
	pr_url: Optional[str] = None
	score: Optional[Score] = None


class ExtractionMetadata(_StrictModel):
	format: FormatKind
	format_confidence: Score
	summary: Optional[str] = None
	title: Optional[str] = None


class ExtractedRelease(_StrictModel):
	items: List[ExtractedItem] = Field(default_factory=list)
	metadata: ExtractionMetadata


# --- Wire layer ---

class ChangeItem(_StrictModel):
	text: str
	refs: Optional[List[str]] = None
	scope: Optional[str] = None
	breaking: Optional[bool] = None
	score: Optional[Score] = None


class Category(_StrictModel):
	id: CategoryId
	title: str
	items: List[ChangeItem] = Field(default_factory=list)


class Note(_StrictModel):
	type: NoteType
	text: str


class ConfidenceBreakdown(_StrictModel):
	composite: Score
	structural: Score
	quality: Score
	terse_ratio: Score
	item_count: conint(ge=0)


class SourceMetadata(_StrictModel):
	tag: Optional[str] = None
	release_url: Optional[str] = None
	version: Optional[str] = None
	date: Optional[str] = None
	compare_url: Optional[str] = None
	commit_count: Optional[int] = None
	raw_content: Optional[str] = None


class SourceResult(_StrictModel):
	"""Categorized output of one data source (or of a merge of several)."""

	categories: List[Category] = Field(default_factory=list)
	confidence: Score
	confidence_breakdown: Optional[ConfidenceBreakdown] = None
	source: str
	metadata: SourceMetadata = Field(default_factory=SourceMetadata)

	def item_count(self) -> int:
		return sum(len(c.items) for c in self.categories)


class DocumentSource(_StrictModel):
	platform: Literal["github", "gitlab"] = "github"
	repo: str
	tag: Optional[str] = None


class DocumentLinks(_StrictModel):
	release: Optional[str] = None
	compare: Optional[str] = None
	changelog: Optional[str] = None


class WNFDocument(_StrictModel):
	spec: Literal["wnf/0.1"] = SPEC_VERSION
	source: DocumentSource
	version: Optional[str] = None
	released_at: Optional[str] = None
	summary: str
	categories: List[Category] = Field(default_factory=list)
	notes: Optional[List[Note]] = None
	links: DocumentLinks = Field(default_factory=DocumentLinks)
	confidence: Score
	confidence_breakdown: Optional[ConfidenceBreakdown] = None
	generated_from: conlist(str, min_length=1)
	generated_at: Optional[str] = None
	ai_enhanced: Optional[bool] = None


class ReleaseSummary(_StrictModel):
	tag: str
	version: str
	released_at: Optional[str] = None
	url: Optional[str] = None
	package_name: Optional[str] = None


class PackageChanges(_StrictModel):
	name: str
	is_main: Optional[bool] = None
	categories: List[Category] = Field(default_factory=list)
	notes: Optional[List[Note]] = None
	releases: List[ReleaseSummary] = Field(default_factory=list)
	release_count: conint(ge=0) = 0
	latest_version: Optional[str] = None
	confidence: Score = 0.0


class DateRange(_StrictModel):
	since: str
	until: str


class AggregatedSource(_StrictModel):
	platform: Literal["github", "gitlab"] = "github"
	repo: str
	date_range: Optional[DateRange] = None
	package_filter: Optional[str] = None


class AggregatedLinks(_StrictModel):
	releases: str


class WNFAggregatedDocument(_StrictModel):
	spec: Literal["wnf/0.1"] = SPEC_VERSION
	source: AggregatedSource
	summary: str
	packages: List[PackageChanges] = Field(default_factory=list)
	releases: List[ReleaseSummary] = Field(default_factory=list)
	release_count: conint(ge=0) = 0
	links: AggregatedLinks
	confidence: Score
	generated_from: conlist(str, min_length=1)
	generated_at: Optional[str] = None


def to_wire(model: BaseModel) -> Dict[str, Any]:
	"""Serialize a model to its camelCase JSON-ready wire form."""
	return model.model_dump(mode="json", by_alias=True, exclude_none=True)
