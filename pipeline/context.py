#!/usr/bin/env python3
"""Immutable state threaded through the release pipeline stages."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from utils.wnf_models import SourceResult


@dataclass(frozen=True)
class PipelineContext:
	owner: str
	repo: str
	tag: Optional[str] = None

	primary: Optional[SourceResult] = None
	commits: Optional[SourceResult] = None
	final_result: Optional[SourceResult] = None

	sources_used: Tuple[str, ...] = ()
	ai_enhanced: bool = False

	def add_source(self, name: str) -> "PipelineContext":
		return replace(self, sources_used=self.sources_used + (name,))

	def update(self, **changes) -> "PipelineContext":
		return replace(self, **changes)

	@property
	def label(self) -> str:
		return f"{self.owner}/{self.repo}{'@' + self.tag if self.tag else ''}"
