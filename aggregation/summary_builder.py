#!/usr/bin/env python3
"""One-line summaries for single-release and aggregated documents."""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, List, Sequence

from utils.wnf_models import Category, PackageChanges

NO_CHANGES = "No changes documented"
NO_SUMMARY = "No summary available"

# Short titles used for AI-produced categories
SHORT_CATEGORY_TITLES = MappingProxyType({
	"breaking": "Breaking Changes",
	"features": "Features",
	"fixes": "Bug Fixes",
	"security": "Security",
	"perf": "Performance",
	"deps": "Dependencies",
	"docs": "Documentation",
	"refactor": "Refactoring",
	"chore": "Chores",
	"other": "Other",
})


def format_category_title(category_id: str) -> str:
	return SHORT_CATEGORY_TITLES.get(category_id, category_id)


def extract_summary(body: str) -> str:
	"""First non-empty line of ``body``."""
	for line in (body or "").split("\n"):
		if line.strip():
			return line
	return NO_SUMMARY


def _plural(count: int, singular: str, plural: str) -> str:
	return f"{count} {singular if count == 1 else plural}"


def _headline_parts(categories: Iterable[Category]) -> List[str]:
	counts = {"breaking": 0, "features": 0, "fixes": 0}
	for category in categories:
		if category.id in counts:
			counts[category.id] += len(category.items)
	parts = []
	if counts["breaking"]:
		parts.append(_plural(counts["breaking"], "breaking change", "breaking changes"))
	if counts["features"]:
		parts.append(_plural(counts["features"], "feature", "features"))
	if counts["fixes"]:
		parts.append(_plural(counts["fixes"], "fix", "fixes"))
	return parts


def build_category_summary(categories: Sequence[Category]) -> str:
	"""E.g. ``"2 breaking changes, 3 features, 1 fix"``; ``"N changes"`` when none of those apply."""
	total = sum(len(c.items) for c in categories)
	if total == 0:
		return NO_CHANGES
	parts = _headline_parts(categories)
	if not parts:
		return _plural(total, "change", "changes")
	return ", ".join(parts)


def build_aggregated_summary(packages: Sequence[PackageChanges], release_count: int) -> str:
	"""E.g. ``"3 breaking changes, 5 features across 2 packages in 4 releases"``."""
	categories = [c for p in packages for c in p.categories]
	total = sum(len(c.items) for c in categories)
	parts = _headline_parts(categories)
	change_summary = ", ".join(parts) if parts else f"{total} changes"
	package_info = f" across {len(packages)} packages" if len(packages) > 1 else ""
	return f"{change_summary}{package_info} in {_plural(release_count, 'release', 'releases')}"
