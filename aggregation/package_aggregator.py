#!/usr/bin/env python3
"""Groups parsed releases by package for date-range documents.

Tags of the form ``name@version`` (``@scope/pkg@1.2.0``) belong to that
package; every other tag belongs to the repository's main package.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from utils.version import extract_package_name, extract_version, parse_version
from utils.wnf_models import Category, PackageChanges, ReleaseSummary, category_rank

MAIN_TAG = re.compile(r"^v?\d")


@dataclass
class ParsedRelease:
	tag_name: str
	categories: List[Category]
	confidence: float
	published_at: Optional[str] = None
	html_url: Optional[str] = None


@dataclass
class _PackageData:
	latest_version: str
	releases: List[ParsedRelease] = field(default_factory=list)
	categories: Dict[str, Category] = field(default_factory=dict)
	total_confidence: float = 0.0


def _is_newer(candidate: str, current: str) -> bool:
	"""Semver comparison; a stable version outranks its own pre-releases. Unparseable versions never win."""
	a, b = parse_version(candidate), parse_version(current)
	if a is None or b is None:
		return False
	return (a.major, a.minor, a.patch, a.prerelease is None) > (b.major, b.minor, b.patch, b.prerelease is None)


def _summary(release: ParsedRelease, package_name: str) -> ReleaseSummary:
	return ReleaseSummary(
		tag=release.tag_name,
		version=extract_version(release.tag_name),
		released_at=release.published_at,
		url=release.html_url,
		package_name=package_name,
	)


class PackageAggregator:
	def __init__(self, repo_name: str) -> None:
		self.repo_name = repo_name

	def package_name(self, tag_name: str) -> str:
		return extract_package_name(tag_name) or self.repo_name

	def is_main_package(self, name: str, releases: List[ParsedRelease]) -> bool:
		return name == self.repo_name or any(MAIN_TAG.match(r.tag_name) for r in releases)

	@staticmethod
	def _merge_categories(target: Dict[str, Category], categories: List[Category]) -> None:
		# exact text match only; releases of one package rarely reword the same entry
		for category in categories:
			existing = target.get(category.id)
			if existing is None:
				target[category.id] = category.model_copy(update={"items": list(category.items)})
				continue
			texts = {item.text for item in existing.items}
			for item in category.items:
				if item.text not in texts:
					existing.items.append(item)
					texts.add(item.text)

	def aggregate(self, releases: List[ParsedRelease]) -> Tuple[List[PackageChanges], List[ReleaseSummary]]:
		"""Group releases (newest first) into per-package changes.

		Returns:
			(packages, release summaries for every input release, in input order)
		"""
		packages: Dict[str, _PackageData] = {}
		summaries: List[ReleaseSummary] = []

		for release in releases:
			name = self.package_name(release.tag_name)
			data = packages.get(name)
			if data is None:
				data = packages[name] = _PackageData(latest_version=extract_version(release.tag_name))
			elif _is_newer(extract_version(release.tag_name), data.latest_version):
				data.latest_version = extract_version(release.tag_name)
			data.releases.append(release)
			data.total_confidence += release.confidence
			self._merge_categories(data.categories, release.categories)
			summaries.append(_summary(release, name))

		result = []
		for name, data in packages.items():
			result.append(PackageChanges(
				name=name,
				is_main=self.is_main_package(name, data.releases),
				categories=sorted(data.categories.values(), key=lambda c: category_rank(c.id)),
				releases=[_summary(r, name) for r in data.releases],
				release_count=len(data.releases),
				latest_version=data.latest_version,
				confidence=data.total_confidence / len(data.releases),
			))

		result.sort(key=lambda p: (not p.is_main, p.name))
		return result, summaries
