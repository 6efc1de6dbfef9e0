#!/usr/bin/env python3
"""Structured output contract for the AI fallback extractor.

The model is asked to return JSON matching ``WNFExtraction``. Nullable
fields are preferred over optional ones because models comply with them
more reliably. Refs are bare numbers and are later checked against the
anchors found in the raw text.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from utils.wnf_models import Category, CategoryId, Note


class _ExtractionModel(BaseModel):
	model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class ExtractionItem(_ExtractionModel):
	text: str = Field(..., min_length=1, description="Clean, concise description of the change")
	source_quote: Optional[str] = Field(None, description="Exact quote from the raw content this item summarizes")
	refs: List[str] = Field(default_factory=list, description="PR/issue numbers from the available anchors, no '#'")
	breaking: Optional[bool] = Field(None, description="True if this is a breaking change")


class ExtractionCategory(_ExtractionModel):
	id: CategoryId
	title: str = ""
	items: List[ExtractionItem] = Field(default_factory=list)


class ExtractionNote(_ExtractionModel):
	type: Literal["migration", "deprecation", "upgrade", "info"]
	text: str


class WNFExtraction(_ExtractionModel):
	categories: List[ExtractionCategory] = Field(default_factory=list)
	version: Optional[str] = Field(None, description="Version number if mentioned")
	has_breaking_changes: bool = Field(False, description="True if any breaking changes were identified")
	notes: Optional[List[ExtractionNote]] = Field(None, description="Migration guides or deprecation warnings")


class AIExtractionResult(BaseModel):
	"""Validated AI output in wire shape."""

	categories: List[Category]
	version: Optional[str] = None
	has_breaking_changes: bool = False
	notes: Optional[List[Note]] = None
