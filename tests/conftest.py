"""
Test-wide fixtures and in-memory fakes.

No test touches the network: sources, the GitHub client and the AI
completion function are all replaced by the fakes below.
"""
from typing import Dict, List, Optional

import pytest

from clients.github_client import GitHubClient
from utils.github_models import ChangelogFile, GitHubCommit, GitHubComparison, GitHubRelease, GitHubTag
from utils.version import extract_package_name
from utils.wnf_models import CATEGORY_TITLES, Category, ChangeItem, SourceMetadata, SourceResult


def make_result(source: str, confidence: float, categories: Dict[str, List], raw_content: Optional[str] = None,
				**metadata) -> SourceResult:
	"""Build a SourceResult from ``{"fixes": ["text", ("text", ["12"])]}``."""
	built = []
	for category_id, entries in categories.items():
		items = []
		for entry in entries:
			if isinstance(entry, tuple):
				text, refs = entry
				items.append(ChangeItem(text=text, refs=refs))
			else:
				items.append(ChangeItem(text=entry))
		built.append(Category(id=category_id, title=CATEGORY_TITLES[category_id], items=items))
	return SourceResult(
		categories=built,
		confidence=confidence,
		source=source,
		metadata=SourceMetadata(raw_content=raw_content, **metadata),
	)


class FakeSource:
	def __init__(self, name: str, priority: int, min_confidence: float,
				 result: Optional[SourceResult] = None, error: Optional[Exception] = None) -> None:
		self.name = name
		self.priority = priority
		self.min_confidence = min_confidence
		self.result = result
		self.error = error
		self.calls = []

	async def fetch(self, owner, repo, tag=None):
		self.calls.append((owner, repo, tag))
		if self.error is not None:
			raise self.error
		return self.result


class FakeGitHub:
	"""Just enough of GitHubClient for the services and sources under test."""

	validate_repo_params = staticmethod(GitHubClient.validate_repo_params)

	def __init__(self, releases: Optional[List[GitHubRelease]] = None, tags: Optional[List[str]] = None,
				 comparison: Optional[GitHubComparison] = None, changelog: Optional[ChangelogFile] = None) -> None:
		self.releases = releases or []
		self.tags = tags or []
		self.comparison = comparison or GitHubComparison()
		self.changelog = changelog
		self.compared = []
		self.closed = False

	def get_latest_release(self, owner, repo):
		return self.releases[0]

	def get_latest_release_or_none(self, owner, repo):
		return self.releases[0] if self.releases else None

	def get_latest_stable_release(self, owner, repo, package_filter=None):
		return next((r for r in self.releases if not r.prerelease), None)

	def get_release_by_tag_or_none(self, owner, repo, tag):
		return next((r for r in self.releases if r.tag_name == tag), None)

	def get_recent_releases(self, owner, repo, per_page=30, package_filter=None):
		releases = self.releases[:per_page]
		if package_filter:
			releases = [r for r in releases if extract_package_name(r.tag_name) == package_filter]
		return releases

	def get_releases_in_range(self, owner, repo, since, until=None, package_filter=None, max_pages=None):
		self.validate_repo_params(owner, repo)
		return list(self.releases)

	def get_tags(self, owner, repo, per_page=30):
		return [GitHubTag(name=t) for t in self.tags]

	def find_previous_tag(self, owner, repo, current_tag, tags=None):
		names = tags if tags is not None else self.tags
		if current_tag in names:
			index = names.index(current_tag)
			if index + 1 < len(names):
				return names[index + 1]
		return None

	def compare(self, owner, repo, base, head):
		self.compared.append((base, head))
		return self.comparison

	def compare_to_head(self, owner, repo, base):
		return self.compare(owner, repo, base, "HEAD")

	def get_default_branch(self, owner, repo):
		return "main"

	def find_changelog(self, owner, repo, ref=None, package_name=None, release_body=None):
		return self.changelog

	def close(self):
		self.closed = True


def commit(message: str, sha: str = "abc1234def") -> GitHubCommit:
	return GitHubCommit.model_validate({"sha": sha, "commit": {"message": message}})


@pytest.fixture
def release_factory():
	def _make(tag: str, body: str = "", published_at: str = "2024-05-01T10:00:00Z", prerelease: bool = False):
		return GitHubRelease(
			tag_name=tag,
			body=body,
			published_at=published_at,
			html_url=f"https://github.com/acme/widgets/releases/tag/{tag}",
			prerelease=prerelease,
		)
	return _make
