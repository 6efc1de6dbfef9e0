"""
Tests for the whatsnew CLI: offline parsing, rendering, views and exit codes.
"""
import json
import sys

import pytest

from agents.whatsnew_agent import apply_filter, main, parse_text, render
from utils.wnf_models import (
	AggregatedLinks,
	AggregatedSource,
	Category,
	ChangeItem,
	PackageChanges,
	WNFAggregatedDocument,
)

NOTES = """## What's Changed
### Features
* Add streaming API for large uploads by @alice in https://github.com/acme/widgets/pull/101
### Maintenance
* Bump lint tooling to the latest version by @bob in https://github.com/acme/widgets/pull/102
"""


class TestParseText:
	"""Offline parse command"""

	def test_document_shape(self):
		doc = parse_text(NOTES)
		assert doc.source.repo == "local/file"
		assert doc.generated_from == ["file"]
		assert doc.version == "unknown"
		assert doc.links.release is None
		assert doc.categories[0].id == "features"

	def test_json_wire_format(self):
		wire = json.loads(render(parse_text(NOTES), "json"))
		assert wire["spec"] == "wnf/0.1"
		assert wire["generatedFrom"] == ["file"]
		assert "confidenceBreakdown" in wire
		assert "aiEnhanced" not in wire

	def test_markdown(self):
		text = render(parse_text(NOTES), "markdown")
		assert text.startswith("# local/file unknown")
		assert "## New Features" in text
		assert "(#101)" in text


class TestApplyFilter:
	"""Category views"""

	def test_important_view(self):
		doc = apply_filter(parse_text(NOTES), "important")
		assert [c.id for c in doc.categories] == ["features"]

	def test_aggregated_packages_filtered(self):
		doc = WNFAggregatedDocument(
			source=AggregatedSource(repo="acme/widgets"),
			summary="1 feature",
			packages=[PackageChanges(name="widgets", categories=[
				Category(id="features", title="New Features", items=[ChangeItem(text="Add export")]),
				Category(id="docs", title="Documentation", items=[ChangeItem(text="Document export")]),
			])],
			links=AggregatedLinks(releases="https://github.com/acme/widgets/releases"),
			confidence=0.8,
			generated_from=["github.releases"],
		)
		filtered = apply_filter(doc, "maintenance")
		assert [c.id for c in filtered.packages[0].categories] == ["docs"]
		assert "## widgets" in render(filtered, "markdown")


class TestMain:
	"""Entry point"""

	def test_parse_file(self, tmp_path, monkeypatch, capsys):
		notes = tmp_path / "notes.md"
		notes.write_text(NOTES, encoding="utf-8")
		monkeypatch.setattr(sys, "argv", ["whatsnew", "--format", "json", "parse", "--file", str(notes)])
		main()
		wire = json.loads(capsys.readouterr().out)
		assert wire["source"]["repo"] == "local/file"

	def test_missing_file_exits_1(self, tmp_path, monkeypatch, capsys):
		monkeypatch.setattr(sys, "argv", ["whatsnew", "parse", "--file", str(tmp_path / "missing.md")])
		with pytest.raises(SystemExit) as exc:
			main()
		assert exc.value.code == 1
		assert "Error:" in capsys.readouterr().err

	def test_invalid_repo_exits_2(self, monkeypatch, capsys):
		monkeypatch.setattr(sys, "argv", ["whatsnew", "--no-ai", "release", "--owner", "acme", "--repo", "bad repo!"])
		with pytest.raises(SystemExit) as exc:
			main()
		assert exc.value.code == 2

	def test_no_command_prints_help(self, monkeypatch):
		monkeypatch.setattr(sys, "argv", ["whatsnew"])
		with pytest.raises(SystemExit) as exc:
			main()
		assert exc.value.code == 1
