#!/usr/bin/env python3
"""GitHub REST API client for release, tag, comparison and file lookups.

All calls are synchronous ``requests`` calls over a shared Session with
urllib3 retries for transient 5xx responses. Optional lookups return None
on 404 instead of raising. Async callers wrap these methods with
``asyncio.to_thread``.
"""

import base64
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from configs.config import Config
from utils.github_models import ChangelogFile, GitHubComparison, GitHubRelease, GitHubTag
from utils.version import extract_package_name, is_monorepo_tag, is_prerelease_tag

logger = logging.getLogger(__name__)

VALID_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")
API_VERSION = "2022-11-28"

ROOT_CHANGELOG_FILES = (
	"CHANGELOG.md",
	"CHANGELOG",
	"HISTORY.md",
	"CHANGES.md",
	"NEWS.md",
	"RELEASES.md",
	"docs/CHANGELOG.md",
	"doc/CHANGELOG.md",
)
MONOREPO_DIRS = ("packages", "apps", "libs", "modules")
MONOREPO_SUBDIR_LIMIT = 10

_BODY_CHANGELOG_LINK = re.compile(r"\[CHANGELOG(?:\.md)?\]\((https://github\.com/[^)]+)\)", re.IGNORECASE)


class GitHubClientError(Exception):
	"""Base class for GitHub client failures."""

	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code


class GitHubValidationError(GitHubClientError):
	"""Raised before any I/O when owner or repo is malformed."""

	def __init__(self, message: str) -> None:
		super().__init__(message, code="VALIDATION")


class GitHubRateLimitError(GitHubClientError):
	"""Raised when the API reports the rate limit as exhausted."""

	def __init__(self, limit: int, remaining: int, reset_at: datetime) -> None:
		super().__init__(
			f"GitHub API rate limit exceeded ({remaining}/{limit}), resets at {reset_at.isoformat()}",
			code="RATE_LIMIT",
		)
		self.limit = limit
		self.remaining = remaining
		self.reset_at = reset_at


class GitHubTimeoutError(GitHubClientError):
	def __init__(self, endpoint: str, timeout_s: float) -> None:
		super().__init__(f"GitHub API request timed out after {timeout_s}s: {endpoint}", code="TIMEOUT")
		self.endpoint = endpoint


class GitHubApiError(GitHubClientError):
	"""Any other transport or HTTP failure."""


@dataclass(frozen=True)
class RateLimitStatus:
	limit: int
	remaining: int
	reset_at: datetime


@dataclass(frozen=True)
class MonorepoInfo:
	is_monorepo: bool
	packages: List[str]


def _encode_path(path: str) -> str:
	return "/".join(quote(segment, safe="") for segment in path.split("/"))


def package_changelog_paths(package_name: str) -> List[str]:
	"""Candidate changelog paths for a package, e.g. ``@scope/name`` -> ``packages/name/CHANGELOG.md``."""
	name = package_name.split("/")[1] if package_name.startswith("@") and "/" in package_name else package_name
	return [
		f"packages/{name}/CHANGELOG.md",
		f"packages/{name}/CHANGELOG",
		f"packages/{package_name}/CHANGELOG.md",
		f"apps/{name}/CHANGELOG.md",
		f"libs/{name}/CHANGELOG.md",
		f"modules/{name}/CHANGELOG.md",
	]


def changelog_path_from_body(body: str, owner: str, repo: str) -> Optional[str]:
	"""Path of a ``[CHANGELOG.md](https://github.com/o/r/blob/ref/path)`` link in a release body."""
	m = _BODY_CHANGELOG_LINK.search(body or "")
	if not m:
		return None
	path = re.search(rf"github\.com/{re.escape(owner)}/{re.escape(repo)}/blob/[^/]+/(.+)$", m.group(1), re.IGNORECASE)
	return path.group(1) if path else None


class GitHubClient:
	"""Thin typed wrapper over the GitHub REST endpoints used by the sources."""

	def __init__(self, token: Optional[str] = None, timeout_s: Optional[int] = None,
				 base_url: Optional[str] = None, session: Optional[requests.Session] = None):
		"""Initialize the client.

		Args:
			token: Personal access token (defaults to Config.GITHUB_TOKEN); anonymous when unset
			timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
			base_url: API root (defaults to Config.GITHUB_API_URL)
			session: Pre-built session, mainly for tests
		"""
		github_config = Config.get_github_config()
		self.token = token or github_config["token"]
		self.timeout_s = timeout_s or github_config["timeout_s"]
		self.base_url = (base_url or github_config["base_url"]).rstrip("/")
		self._rate_limit: Optional[RateLimitStatus] = None

		self.session = session or requests.Session()
		self.session.headers.update({
			"Accept": "application/vnd.github+json",
			"X-GitHub-Api-Version": API_VERSION,
			"User-Agent": "whatsnew-changelog/1.0",
		})
		if self.token:
			self.session.headers["Authorization"] = f"Bearer {self.token}"

		# 403/429 are rate-limit signals and must reach _track_rate_limit
		retry_strategy = Retry(
			total=github_config.get("retry_total", 3),
			status_forcelist=[500, 502, 503, 504],
			backoff_factor=1,
			allowed_methods=["HEAD", "GET", "OPTIONS"],
			raise_on_status=False,
		)
		adapter = HTTPAdapter(max_retries=retry_strategy)
		self.session.mount("https://", adapter)
		self.session.mount("http://", adapter)

		logger.debug(f"GitHub client initialized ({'authenticated' if self.token else 'anonymous'})")

	# --- transport ---

	@staticmethod
	def validate_repo_params(owner: str, repo: str) -> None:
		if not owner or not VALID_NAME_PATTERN.match(owner):
			raise GitHubValidationError(f"Invalid owner: {owner!r}")
		if not repo or not VALID_NAME_PATTERN.match(repo):
			raise GitHubValidationError(f"Invalid repo: {repo!r}")

	def _track_rate_limit(self, response: requests.Response) -> None:
		limit = response.headers.get("X-RateLimit-Limit")
		remaining = response.headers.get("X-RateLimit-Remaining")
		reset = response.headers.get("X-RateLimit-Reset")
		if not (limit and remaining and reset):
			return
		self._rate_limit = RateLimitStatus(
			limit=int(limit),
			remaining=int(remaining),
			reset_at=datetime.fromtimestamp(int(reset), tz=timezone.utc),
		)
		if response.status_code in (403, 429) and self._rate_limit.remaining == 0:
			raise GitHubRateLimitError(self._rate_limit.limit, 0, self._rate_limit.reset_at)
		if self._rate_limit.remaining < 100:
			logger.warning(f"GitHub API rate limit low: {self._rate_limit.remaining} requests remaining")

	def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None, allow_missing: bool = False) -> Any:
		url = f"{self.base_url}{endpoint}"
		try:
			logger.debug(f"GET {endpoint} {params or ''}")
			response = self.session.get(url, params=params, timeout=self.timeout_s)
		except requests.Timeout as e:
			raise GitHubTimeoutError(endpoint, self.timeout_s) from e
		except requests.RequestException as e:
			raise GitHubApiError(f"GitHub request failed for {endpoint}: {e}", code="NETWORK") from e

		self._track_rate_limit(response)

		if response.status_code == 404 and allow_missing:
			return None
		if response.status_code != 200:
			raise GitHubApiError(
				f"GitHub API error: HTTP {response.status_code} for {endpoint}",
				code=f"HTTP_{response.status_code}",
			)
		return response.json()

	def get_rate_limit_status(self) -> Optional[RateLimitStatus]:
		"""Rate-limit values seen on the most recent response, if any."""
		return self._rate_limit

	# --- releases ---

	def get_latest_release(self, owner: str, repo: str) -> GitHubRelease:
		self.validate_repo_params(owner, repo)
		return GitHubRelease.model_validate(self._request(f"/repos/{owner}/{repo}/releases/latest"))

	def get_latest_release_or_none(self, owner: str, repo: str) -> Optional[GitHubRelease]:
		self.validate_repo_params(owner, repo)
		data = self._request(f"/repos/{owner}/{repo}/releases/latest", allow_missing=True)
		return GitHubRelease.model_validate(data) if data else None

	def get_release_by_tag(self, owner: str, repo: str, tag: str) -> GitHubRelease:
		self.validate_repo_params(owner, repo)
		return GitHubRelease.model_validate(self._request(f"/repos/{owner}/{repo}/releases/tags/{quote(tag, safe='')}"))

	def get_release_by_tag_or_none(self, owner: str, repo: str, tag: str) -> Optional[GitHubRelease]:
		self.validate_repo_params(owner, repo)
		data = self._request(f"/repos/{owner}/{repo}/releases/tags/{quote(tag, safe='')}", allow_missing=True)
		return GitHubRelease.model_validate(data) if data else None

	def get_recent_releases(self, owner: str, repo: str, per_page: int = 30,
							package_filter: Optional[str] = None) -> List[GitHubRelease]:
		"""Fetch the newest releases, optionally keeping one package's tags only.

		Args:
			owner: Repository owner
			repo: Repository name
			per_page: Number of releases to request
			package_filter: Exact package name as found in ``name@version`` tags

		Returns:
			Releases, newest first
		"""
		self.validate_repo_params(owner, repo)
		data = self._request(f"/repos/{owner}/{repo}/releases", params={"per_page": per_page}) or []
		releases = [GitHubRelease.model_validate(r) for r in data]
		if package_filter:
			releases = [r for r in releases if extract_package_name(r.tag_name) == package_filter]
		return releases

	def get_latest_stable_release(self, owner: str, repo: str,
								  package_filter: Optional[str] = None) -> Optional[GitHubRelease]:
		"""Newest release that is neither a draft nor a pre-release (flag or tag pattern)."""
		for release in self.get_recent_releases(owner, repo, per_page=30, package_filter=package_filter):
			if not release.published_at:
				continue
			if release.prerelease or is_prerelease_tag(release.tag_name):
				continue
			return release
		return None

	def get_releases_in_range(self, owner: str, repo: str, since: datetime, until: Optional[datetime] = None,
							  package_filter: Optional[str] = None, max_pages: Optional[int] = None) -> List[GitHubRelease]:
		"""Fetch published releases whose publish date falls in ``[since, until]``.

		Pages are read newest-first and reading stops at the first release
		older than ``since``. ``package_filter`` ending in ``*`` is a tag
		prefix match (``ai@*``); otherwise it must equal the tag's package name.

		Args:
			owner: Repository owner
			repo: Repository name
			since: Inclusive lower bound (timezone-aware)
			until: Inclusive upper bound, defaults to now
			package_filter: Optional package name or ``prefix*`` pattern
			max_pages: Page cap (defaults to Config.RANGE_MAX_PAGES)

		Returns:
			Matching releases, newest first
		"""
		self.validate_repo_params(owner, repo)
		until = until or datetime.now(timezone.utc)
		max_pages = max_pages or Config.RANGE_MAX_PAGES

		found: List[GitHubRelease] = []
		for page in range(1, max_pages + 1):
			data = self._request(f"/repos/{owner}/{repo}/releases", params={"per_page": 100, "page": page}) or []
			if not data:
				break

			reached_older = False
			for raw in data:
				release = GitHubRelease.model_validate(raw)
				if not release.published_at:
					continue
				published = datetime.fromisoformat(release.published_at.replace("Z", "+00:00"))
				if published < since:
					reached_older = True
					break
				if published > until:
					continue
				if package_filter:
					if package_filter.endswith("*"):
						if not release.tag_name.startswith(package_filter[:-1]):
							continue
					elif extract_package_name(release.tag_name) != package_filter:
						continue
				found.append(release)

			if reached_older:
				break

		logger.info(f"Found {len(found)} releases in range for {owner}/{repo}")
		return found

	def detect_monorepo(self, owner: str, repo: str) -> MonorepoInfo:
		"""A repository is a monorepo when its recent tags name more than one package."""
		releases = self.get_recent_releases(owner, repo, per_page=50)
		packages = {extract_package_name(r.tag_name) for r in releases if is_monorepo_tag(r.tag_name)}
		return MonorepoInfo(is_monorepo=len(packages) > 1, packages=sorted(packages))

	# --- tags and comparisons ---

	def get_tags(self, owner: str, repo: str, per_page: int = 30) -> List[GitHubTag]:
		self.validate_repo_params(owner, repo)
		data = self._request(f"/repos/{owner}/{repo}/tags", params={"per_page": per_page}) or []
		return [GitHubTag.model_validate(t) for t in data]

	def find_previous_tag(self, owner: str, repo: str, current_tag: str,
						  tags: Optional[List[str]] = None) -> Optional[str]:
		"""Tag preceding ``current_tag`` in tag order.

		When the current tag is a stable release, pre-release tags in between
		are skipped so ``v2.0.0`` diffs against ``v1.9.0`` rather than ``v2.0.0-rc.3``.
		"""
		if tags is None:
			tags = [t.name for t in self.get_tags(owner, repo, per_page=50)]
		if current_tag not in tags:
			return None
		skip_prereleases = not is_prerelease_tag(current_tag)
		for candidate in tags[tags.index(current_tag) + 1:]:
			if skip_prereleases and is_prerelease_tag(candidate):
				continue
			return candidate
		return None

	def compare(self, owner: str, repo: str, base: str, head: str) -> GitHubComparison:
		self.validate_repo_params(owner, repo)
		data = self._request(f"/repos/{owner}/{repo}/compare/{quote(base, safe='~^')}...{quote(head, safe='~^')}")
		return GitHubComparison.model_validate(data)

	def get_default_branch(self, owner: str, repo: str) -> str:
		self.validate_repo_params(owner, repo)
		return self._request(f"/repos/{owner}/{repo}")["default_branch"]

	def compare_to_head(self, owner: str, repo: str, base: str) -> GitHubComparison:
		"""Compare a tag or commit with the tip of the default branch."""
		return self.compare(owner, repo, base, self.get_default_branch(owner, repo))

	# --- repository contents ---

	def get_file_content_or_none(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> Optional[str]:
		"""Decoded text of a file, or None when it does not exist at ``ref``."""
		self.validate_repo_params(owner, repo)
		params = {"ref": ref} if ref else None
		data = self._request(f"/repos/{owner}/{repo}/contents/{_encode_path(path)}", params=params, allow_missing=True)
		if not isinstance(data, dict) or data.get("type") != "file":
			return None
		return base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace")

	def list_directory_contents(self, owner: str, repo: str, path: str,
								ref: Optional[str] = None) -> Optional[List[Dict[str, str]]]:
		"""Entries of a directory as ``{"name", "type"}`` dicts, or None when missing."""
		self.validate_repo_params(owner, repo)
		params = {"ref": ref} if ref else None
		data = self._request(f"/repos/{owner}/{repo}/contents/{_encode_path(path)}", params=params, allow_missing=True)
		if not isinstance(data, list):
			return None
		return [{"name": item["name"], "type": "dir" if item.get("type") == "dir" else "file"} for item in data]

	def _discover_monorepo_changelog(self, owner: str, repo: str, ref: Optional[str]) -> Optional[ChangelogFile]:
		for directory in MONOREPO_DIRS:
			contents = self.list_directory_contents(owner, repo, directory, ref)
			if not contents:
				continue
			subdirs = [c for c in contents if c["type"] == "dir"][:MONOREPO_SUBDIR_LIMIT]
			for subdir in subdirs:
				path = f"{directory}/{subdir['name']}/CHANGELOG.md"
				content = self.get_file_content_or_none(owner, repo, path, ref)
				if content:
					return ChangelogFile(path=path, content=content)
		return None

	def find_changelog(self, owner: str, repo: str, ref: Optional[str] = None,
					   package_name: Optional[str] = None, release_body: Optional[str] = None) -> Optional[ChangelogFile]:
		"""Locate a changelog file, cheapest lookup first.

		1. a CHANGELOG link in the release body
		2. package-specific paths when ``package_name`` is given
		3. conventional root-level files
		4. enumeration of monorepo package directories (only for detected monorepos)

		Args:
			owner: Repository owner
			repo: Repository name
			ref: Git ref to read from (tag or branch)
			package_name: Package whose changelog is wanted
			release_body: Release notes that may link to the changelog

		Returns:
			ChangelogFile or None
		"""
		self.validate_repo_params(owner, repo)

		if release_body:
			linked = changelog_path_from_body(release_body, owner, repo)
			if linked:
				content = self.get_file_content_or_none(owner, repo, linked, ref)
				if content:
					return ChangelogFile(path=linked, content=content)

		if package_name:
			for path in package_changelog_paths(package_name):
				content = self.get_file_content_or_none(owner, repo, path, ref)
				if content:
					return ChangelogFile(path=path, content=content)

		for path in ROOT_CHANGELOG_FILES:
			content = self.get_file_content_or_none(owner, repo, path, ref)
			if content:
				return ChangelogFile(path=path, content=content)

		if not package_name and self.detect_monorepo(owner, repo).is_monorepo:
			return self._discover_monorepo_changelog(owner, repo, ref)

		return None

	def close(self) -> None:
		"""Close the underlying session."""
		if self.session:
			self.session.close()
			logger.debug("GitHub client session closed")
