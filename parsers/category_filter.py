#!/usr/bin/env python3
"""Important / maintenance views over categorized output."""
from __future__ import annotations

from typing import List, Literal, Optional

from parsers.category_signals import IMPORTANT_CATEGORIES, MAINTENANCE_CATEGORIES
from utils.wnf_models import Category

CategoryFilter = Literal["important", "maintenance", "all"]


def is_important_category(category_id: str) -> bool:
	return category_id in IMPORTANT_CATEGORIES


def is_maintenance_category(category_id: str) -> bool:
	return category_id in MAINTENANCE_CATEGORIES


def _filter_one(category: Category, view: str) -> Optional[Category]:
	if view == "important":
		if is_important_category(category.id):
			return category
		# breaking items stay visible wherever they were categorized
		items = [i for i in category.items if i.breaking]
	else:
		if not is_maintenance_category(category.id):
			return None
		items = [i for i in category.items if not i.breaking]
	if not items:
		return None
	return category.model_copy(update={"items": items})


def filter_categories(categories: List[Category], view: CategoryFilter = "all") -> List[Category]:
	"""Return the subset of categories for the given view; ``all`` is a no-op."""
	if view == "all":
		return list(categories)
	out: List[Category] = []
	for category in categories:
		kept = _filter_one(category, view)
		if kept is not None and kept.items:
			out.append(kept)
	return out
