"""
Tests for the GitHub REST client. The session's ``get`` is replaced with a
canned responder so no request leaves the process.
"""
import base64
import json
from datetime import datetime, timezone

import pytest
import requests

from clients.github_client import (
	GitHubApiError,
	GitHubClient,
	GitHubRateLimitError,
	GitHubValidationError,
	changelog_path_from_body,
	package_changelog_paths,
)


def _response(status, payload=None, headers=None):
	response = requests.Response()
	response.status_code = status
	response._content = json.dumps(payload).encode("utf-8") if payload is not None else b""
	response.headers.update(headers or {})
	return response


class FakeGet:
	"""Maps an endpoint suffix to a response; anything unknown is a 404."""

	def __init__(self, routes):
		self.routes = routes
		self.calls = []

	def __call__(self, url, params=None, timeout=None):
		self.calls.append((url, params))
		for suffix, response in self.routes.items():
			if url.endswith(suffix):
				return response
		return _response(404, {"message": "Not Found"})


@pytest.fixture
def make_client():
	def _make(routes):
		session = requests.Session()
		fake = FakeGet(routes)
		session.get = fake
		return GitHubClient(token="test-token", base_url="https://api.github.test", session=session), fake
	return _make


def _release(tag, published_at, **extra):
	return {"tag_name": tag, "published_at": published_at, "body": "", "html_url": f"https://github.com/acme/widgets/releases/tag/{tag}", **extra}


class TestTransport:
	"""Validation, errors and rate limits"""

	def test_token_sets_authorization_header(self, make_client):
		client, _ = make_client({})
		assert client.session.headers["Authorization"] == "Bearer test-token"

	@pytest.mark.parametrize("owner,repo", [("acme", "bad repo"), ("", "widgets"), ("ac/me", "widgets")])
	def test_invalid_names_fail_before_io(self, make_client, owner, repo):
		client, fake = make_client({})
		with pytest.raises(GitHubValidationError):
			client.get_latest_release(owner, repo)
		assert fake.calls == []

	def test_missing_release_is_none(self, make_client):
		client, _ = make_client({})
		assert client.get_release_by_tag_or_none("acme", "widgets", "v9.9.9") is None

	def test_http_error_raises(self, make_client):
		client, _ = make_client({"/releases/latest": _response(500, {"message": "boom"})})
		with pytest.raises(GitHubApiError) as exc:
			client.get_latest_release("acme", "widgets")
		assert exc.value.code == "HTTP_500"

	def test_rate_limit_exhausted(self, make_client):
		headers = {"X-RateLimit-Limit": "60", "X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"}
		client, _ = make_client({"/releases/latest": _response(403, {"message": "limit"}, headers)})
		with pytest.raises(GitHubRateLimitError) as exc:
			client.get_latest_release("acme", "widgets")
		assert exc.value.code == "RATE_LIMIT"
		assert client.get_rate_limit_status().remaining == 0

	def test_latest_release_parsed(self, make_client):
		client, _ = make_client({"/releases/latest": _response(200, _release("v1.2.0", "2024-05-01T10:00:00Z"))})
		release = client.get_latest_release("acme", "widgets")
		assert release.tag_name == "v1.2.0"
		assert release.prerelease is False


class TestReleases:
	"""Release listing and filtering"""

	@pytest.fixture
	def page(self):
		return [
			_release("v3.0.0", "2024-07-01T00:00:00Z"),
			_release("ai@3.1.0", "2024-05-01T00:00:00Z"),
			_release("other@1.0.0", "2024-04-01T00:00:00Z"),
			_release("ai@3.0.1", None, draft=True),
			_release("ai@3.0.0", "2023-12-01T00:00:00Z"),
		]

	def test_range_stops_at_older_release(self, make_client, page):
		client, fake = make_client({"/releases": _response(200, page)})
		since = datetime(2024, 1, 1, tzinfo=timezone.utc)
		until = datetime(2024, 6, 1, tzinfo=timezone.utc)
		releases = client.get_releases_in_range("acme", "widgets", since, until)
		assert [r.tag_name for r in releases] == ["ai@3.1.0", "other@1.0.0"]
		assert len(fake.calls) == 1

	@pytest.mark.parametrize("package_filter", ["ai@*", "ai"])
	def test_range_package_filter(self, make_client, page, package_filter):
		client, _ = make_client({"/releases": _response(200, page)})
		since = datetime(2024, 1, 1, tzinfo=timezone.utc)
		until = datetime(2024, 6, 1, tzinfo=timezone.utc)
		releases = client.get_releases_in_range("acme", "widgets", since, until, package_filter=package_filter)
		assert [r.tag_name for r in releases] == ["ai@3.1.0"]

	def test_latest_stable_skips_prereleases(self, make_client):
		page = [
			_release("v2.0.0-rc.1", "2024-05-02T00:00:00Z"),
			_release("v1.9.1", "2024-05-01T00:00:00Z", prerelease=True),
			_release("v1.9.0", "2024-04-01T00:00:00Z"),
		]
		client, _ = make_client({"/releases": _response(200, page)})
		assert client.get_latest_stable_release("acme", "widgets").tag_name == "v1.9.0"

	def test_detect_monorepo(self, make_client):
		page = [_release("ai@3.1.0", "2024-05-01T00:00:00Z"), _release("@ai-sdk/openai@1.0.0", "2024-04-01T00:00:00Z")]
		client, _ = make_client({"/releases": _response(200, page)})
		info = client.detect_monorepo("acme", "widgets")
		assert info.is_monorepo is True
		assert info.packages == ["@ai-sdk/openai", "ai"]


class TestTags:
	"""Previous-tag lookup"""

	@pytest.fixture
	def client(self, make_client):
		return make_client({})[0]

	def test_stable_tag_skips_prereleases(self, client):
		tags = ["v2.0.0", "v2.0.0-rc.2", "v2.0.0-rc.1", "v1.9.0"]
		assert client.find_previous_tag("acme", "widgets", "v2.0.0", tags=tags) == "v1.9.0"

	def test_prerelease_tag_takes_next(self, client):
		tags = ["v2.0.0-rc.2", "v2.0.0-rc.1", "v1.9.0"]
		assert client.find_previous_tag("acme", "widgets", "v2.0.0-rc.2", tags=tags) == "v2.0.0-rc.1"

	def test_unknown_or_oldest_tag(self, client):
		assert client.find_previous_tag("acme", "widgets", "v0.0.1", tags=["v1.0.0"]) is None
		assert client.find_previous_tag("acme", "widgets", "v1.0.0", tags=["v1.0.0"]) is None


class TestChangelogLookup:
	"""File contents and changelog discovery"""

	def test_file_content_decoded(self, make_client):
		encoded = base64.b64encode("# Changelog\n".encode("utf-8")).decode("ascii")
		client, _ = make_client({"/contents/CHANGELOG.md": _response(200, {"type": "file", "content": encoded})})
		assert client.get_file_content_or_none("acme", "widgets", "CHANGELOG.md") == "# Changelog\n"

	def test_directory_is_not_a_file(self, make_client):
		client, _ = make_client({"/contents/packages": _response(200, [{"name": "core", "type": "dir"}])})
		assert client.get_file_content_or_none("acme", "widgets", "packages") is None
		assert client.list_directory_contents("acme", "widgets", "packages") == [{"name": "core", "type": "dir"}]

	def test_root_file_found_in_order(self, make_client):
		encoded = base64.b64encode(b"## 1.0.0\n- Initial release\n").decode("ascii")
		client, fake = make_client({"/contents/HISTORY.md": _response(200, {"type": "file", "content": encoded})})
		changelog = client.find_changelog("acme", "widgets", package_name="core")
		assert changelog.path == "HISTORY.md"
		assert "Initial release" in changelog.content
		assert not any(url.endswith("/releases") for url, _ in fake.calls)

	def test_body_link_path(self):
		body = "See [CHANGELOG.md](https://github.com/acme/widgets/blob/v1.0.0/packages/core/CHANGELOG.md)"
		assert changelog_path_from_body(body, "acme", "widgets") == "packages/core/CHANGELOG.md"
		assert changelog_path_from_body(body, "other", "repo") is None

	def test_package_paths(self):
		paths = package_changelog_paths("@scope/core")
		assert paths[0] == "packages/core/CHANGELOG.md"
		assert "packages/@scope/core/CHANGELOG.md" in paths
