#!/usr/bin/env python3
from __future__ import annotations

from typing import List

from utils.wnf_models import Category, ChangeItem, PackageChanges, WNFAggregatedDocument, WNFDocument

EMPTY_PLACEHOLDER = "No user-facing changes detected."


def escape_md(s: str) -> str:
	if not s:
		return s
	for ch in ["*", "_", "`", "|"]:
		s = s.replace(ch, f"\\{ch}")
	return s


def _item_line(item: ChangeItem) -> str:
	scope_prefix = f"**{escape_md(item.scope)}:** " if item.scope else ""
	breaking_suffix = " **(breaking)**" if item.breaking else ""
	refs_suffix = f" ({', '.join('#' + r for r in item.refs)})" if item.refs else ""
	return f"- {scope_prefix}{escape_md(item.text)}{breaking_suffix}{refs_suffix}"


def render_categories(categories: List[Category], level: int = 2) -> str:
	heading = "#" * level
	blocks = []
	for category in categories:
		if not category.items:
			continue
		lines = [f"{heading} {category.title}", ""]
		lines.extend(_item_line(item) for item in category.items)
		blocks.append("\n".join(lines))
	return "\n\n".join(blocks)


def render_wnf_markdown(doc: WNFDocument) -> str:
	title = f"# {doc.source.repo} {doc.version}" if doc.version else f"# {doc.source.repo}"
	meta = []
	if doc.released_at:
		meta.append(f"Released {doc.released_at}")
	meta.append(f"confidence {doc.confidence:.2f}")
	meta.append("sources: " + ", ".join(doc.generated_from))
	if doc.ai_enhanced:
		meta.append("AI-enhanced")

	out = [title, "", f"_{' · '.join(meta)}_", "", escape_md(doc.summary), ""]
	body = render_categories(doc.categories)
	out.append(body if body else EMPTY_PLACEHOLDER)

	if doc.notes:
		out.extend(["", "## Notes", ""])
		out.extend(f"- **{note.type}:** {escape_md(note.text)}" for note in doc.notes)

	links = [f"[{name}]({url})" for name, url in (
		("Release", doc.links.release),
		("Compare", doc.links.compare),
		("Changelog", doc.links.changelog),
	) if url]
	if links:
		out.extend(["", " · ".join(links)])
	return "\n".join(out) + "\n"


def _package_block(package: PackageChanges) -> str:
	versions = ", ".join(r.version for r in package.releases)
	lines = [f"## {package.name}{' (main)' if package.is_main else ''}", ""]
	lines.append(f"_{package.release_count} release(s): {versions}_")
	body = render_categories(package.categories, level=3)
	lines.extend(["", body if body else EMPTY_PLACEHOLDER])
	return "\n".join(lines)


def render_aggregated_markdown(doc: WNFAggregatedDocument) -> str:
	out = [f"# {doc.source.repo}", ""]
	if doc.source.date_range:
		out.extend([f"_{doc.source.date_range.since} to {doc.source.date_range.until}_", ""])
	out.append(escape_md(doc.summary))
	for package in doc.packages:
		out.extend(["", _package_block(package)])
	out.extend(["", f"[All releases]({doc.links.releases})"])
	return "\n".join(out) + "\n"
