#!/usr/bin/env python3
"""Static lookup tables for categorization and filtering."""
from types import MappingProxyType

from utils.wnf_models import (  # noqa: F401  (re-exported)
	CATEGORY_PRIORITY,
	CATEGORY_TITLES,
	IMPORTANT_CATEGORIES,
	MAINTENANCE_CATEGORIES,
)

# Minimum keyword score for tier-2 categorization
KEYWORD_THRESHOLD = 1

CONVENTIONAL_COMMIT_MAP = MappingProxyType({
	"feat": "features",
	"feature": "features",
	"fix": "fixes",
	"bug": "fixes",
	"docs": "docs",
	"doc": "docs",
	"refactor": "refactor",
	"perf": "perf",
	"performance": "perf",
	"chore": "chore",
	"build": "chore",
	"ci": "chore",
	"style": "other",
	"test": "other",
	"tests": "other",
	"revert": "other",
	"breaking": "breaking",
})

CATEGORY_SIGNALS = MappingProxyType({
	"breaking": ("breaking", "remove", "removed", "delete", "deleted", "deprecate", "deprecated", "migrate", "migration"),
	"security": ("security", "vulnerability", "cve", "exploit"),
	"features": (
		"add", "added", "adding", "new", "introduce", "introducing", "implement",
		"implemented", "support", "enable", "allow", "create", "created",
	),
	"fixes": (
		"fix", "fixes", "fixed", "fixing", "resolve", "resolved", "bug", "issue",
		"error", "correct", "patch", "repair", "handle",
	),
	"perf": ("performance", "perf", "speed", "faster", "optimize", "optimized", "efficient"),
	"deps": ("bump", "upgrade", "dependency", "dependencies"),
	"refactor": (
		"refactor", "refactored", "restructure", "reorganize", "cleanup", "clean up",
		"consolidate", "move", "rename", "renamed",
	),
	"chore": ("chore", "maintain", "maintenance", "internal", "tooling"),
	"docs": ("document", "documentation", "docs", "readme", "jsdoc", "comment"),
	"other": (),
})

# Section/header title -> suggested category, shared by the markdown extractors
SECTION_TO_CATEGORY = MappingProxyType({
	# keep-a-changelog
	"added": "features",
	"changed": "other",
	"deprecated": "other",
	"removed": "breaking",
	"fixed": "fixes",
	"security": "security",
	# conventional-changelog style
	"bug fixes": "fixes",
	"features": "features",
	"performance improvements": "perf",
	"miscellaneous chores": "chore",
	"code refactoring": "refactor",
	"documentation": "docs",
	"breaking changes": "breaking",
	"tests": "chore",
	"build": "chore",
	"ci": "chore",
	"chore": "chore",
	"style": "chore",
	"refactor": "refactor",
	"perf": "perf",
})

# Release-note section titles used by hosted auto-generated notes
GITHUB_CATEGORY_MAP = MappingProxyType({
	"features": "features",
	"new features": "features",
	"exciting new features": "features",
	"enhancements": "features",
	"enhancement": "features",
	"bug fixes": "fixes",
	"bug fix": "fixes",
	"bugfixes": "fixes",
	"fixes": "fixes",
	"fixed": "fixes",
	"breaking changes": "breaking",
	"breaking": "breaking",
	"security": "security",
	"security fixes": "security",
	"documentation": "docs",
	"docs": "docs",
	"dependencies": "deps",
	"dependency updates": "deps",
	"performance": "perf",
	"performance improvements": "perf",
	"refactoring": "refactor",
	"refactor": "refactor",
	"chore": "chore",
	"chores": "chore",
	"maintenance": "chore",
	"other": "other",
	"other changes": "other",
	"changes": "other",
})

GITLAB_STAGE_MAP = MappingProxyType({
	"security": "security",
	"security risk management": "security",
	"software supply chain security": "security",
	"vulnerability management": "security",
	"compliance": "security",
	"create": "features",
	"plan": "features",
	"verify": "features",
	"package": "features",
	"deploy": "features",
	"release": "features",
	"configure": "features",
	"monitor": "features",
	"govern": "features",
	"documentation": "docs",
	"enablement": "other",
	"growth": "other",
})


def lookup_section_category(title: str):
	"""Map a free-form section title to a suggested category, or None."""
	key = " ".join((title or "").lower().split())
	return SECTION_TO_CATEGORY.get(key) or GITHUB_CATEGORY_MAP.get(key)
