#!/usr/bin/env python3
"""AI fallback extractor.

Used only when the deterministic result looks unreliable. The prompt lists
the references found in the raw text (anchors), and any reference the model
returns that is not one of them is dropped before the result is used.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from langsmith.run_helpers import traceable

from ai.anchor_extractor import Anchors, extract_anchors, format_anchors_for_prompt
from ai.extraction_models import AIExtractionResult, WNFExtraction
from aggregation.summary_builder import format_category_title
from clients.bedrock_client import BedrockClient, BedrockError, credentials_available
from configs.config import Config
from utils.json_sanitizer import JSONSanitizerError, extract_and_validate
from utils.wnf_models import Category, ChangeItem, Note

logger = logging.getLogger(__name__)

Completion = Callable[[str], str]

PROMPT_TEMPLATE = """You are a changelog parser. Extract structured information from the following release notes.

IMPORTANT RULES:
1. Only extract information that is explicitly present in the text - do not invent or hallucinate content
2. Categorize changes correctly:
   - "breaking" - Breaking changes that require code modifications
   - "features" - New features, enhancements, improvements
   - "fixes" - Bug fixes, error corrections
   - "security" - Security patches or vulnerabilities
   - "perf" - Performance improvements
   - "deps" - Dependency updates
   - "docs" - Documentation changes
   - "refactor" - Code refactoring without behavior changes
   - "chore" - Maintenance, tooling, CI/CD
   - "other" - Only use if truly uncategorizable
3. Do NOT include contributor names or "New Contributors" sections as changelog items

GROUNDING REQUIREMENTS (CRITICAL):
1. For each change item, include "sourceQuote" - the exact text snippet from the raw content that this item summarizes
2. ONLY use refs from the AVAILABLE_ANCHORS list below - do not invent PR/issue numbers
3. Map each change to its corresponding ref by finding which anchor appears near the sourceQuote
4. Extract refs as NUMBERS ONLY (e.g., "123", "456") - do NOT include the # symbol
5. If a change has no associated ref in the content, leave refs as an empty array

AVAILABLE_ANCHORS (extracted from raw content):
{anchors}

RELEASE NOTES:
{content}

Respond with a single JSON object and nothing else, using this shape:
{{"categories": [{{"id": "features", "title": "Features", "items": [{{"text": "...", "sourceQuote": "...", "refs": ["123"], "breaking": null}}]}}],
 "version": null, "hasBreakingChanges": false, "notes": null}}
"notes" entries are {{"type": "migration|deprecation|upgrade|info", "text": "..."}}.

Extract all changes, categorizing them appropriately. Be thorough but accurate. Ensure each item is grounded with a sourceQuote."""


def build_prompt(raw_content: str, anchors: Anchors) -> str:
	return PROMPT_TEMPLATE.format(anchors=format_anchors_for_prompt(anchors), content=raw_content)


def validate_refs(extraction: WNFExtraction, anchors: Anchors) -> WNFExtraction:
	"""Drop every ref that does not appear among the anchors."""
	known = set(anchors.pr_refs)
	categories = []
	for category in extraction.categories:
		items = [
			item.model_copy(update={"refs": [r for r in (ref.lstrip("#") for ref in item.refs) if r in known]})
			for item in category.items
		]
		categories.append(category.model_copy(update={"items": items}))
	return extraction.model_copy(update={"categories": categories})


def to_result(extraction: WNFExtraction) -> AIExtractionResult:
	categories = [
		Category(
			id=c.id,
			title=format_category_title(c.id),
			items=[ChangeItem(text=i.text, refs=list(i.refs), breaking=i.breaking) for i in c.items],
		)
		for c in extraction.categories
		if c.items
	]
	notes = [Note(type=n.type, text=n.text) for n in extraction.notes] if extraction.notes else None
	return AIExtractionResult(
		categories=categories,
		version=extraction.version,
		has_breaking_changes=extraction.has_breaking_changes,
		notes=notes,
	)


class AIExtractor:
	"""Grounded LLM extraction behind an injectable completion function."""

	def __init__(self, enabled: Optional[bool] = None, complete: Optional[Completion] = None) -> None:
		"""
		Args:
			enabled: Overrides Config.AI_ENABLED
			complete: ``prompt -> raw text`` callable; defaults to Bedrock
		"""
		ai_config = Config.get_ai_config()
		self.enabled = ai_config["enabled"] if enabled is None else enabled
		self._complete = complete

	def is_available(self) -> bool:
		if not self.enabled:
			return False
		if self._complete is not None:
			return True
		return credentials_available()

	def _completion(self) -> Completion:
		if self._complete is None:
			self._complete = BedrockClient().complete_json
		return self._complete

	@traceable(name="ai_extract")
	def extract(self, raw_content: str) -> Optional[AIExtractionResult]:
		"""Extract categories from raw release text, or None on any failure."""
		if not raw_content or not self.is_available():
			return None

		anchors = extract_anchors(raw_content)
		try:
			raw = self._completion()(build_prompt(raw_content, anchors))
			extraction = extract_and_validate(raw, WNFExtraction)
		except (BedrockError, JSONSanitizerError) as e:
			logger.warning(f"AI extraction failed ({e.code}): {e}")
			return None
		except Exception as e:
			logger.warning(f"AI extraction failed: {e}")
			return None

		result = to_result(validate_refs(extraction, anchors))
		logger.info(f"AI extraction produced {sum(len(c.items) for c in result.categories)} items")
		return result
