#!/usr/bin/env python3
"""whatsnew CLI: structured "what's new" documents for GitHub repositories.

Fetches release notes, changelogs and commit history, and prints a WNF
document as JSON or markdown.
"""

import asyncio
import json
import logging
import sys
from typing import Optional

from agents.data_aggregator import to_wnf_document
from agents.release_service import ReleaseService
from ai.ai_extractor import AIExtractor
from clients.github_client import GitHubClient, GitHubClientError, GitHubValidationError
from parsers.category_filter import filter_categories
from parsers.extract import parse_release_body
from utils.markdown_renderer import render_aggregated_markdown, render_wnf_markdown
from utils.wnf_models import SourceMetadata, SourceResult, WNFAggregatedDocument, WNFDocument, to_wire

# Set up logging
logger = logging.getLogger(__name__)

PARSE_SOURCE = "file"


def apply_filter(doc, view: str):
	"""Restrict a document's categories to the important/maintenance view."""
	if view == "all":
		return doc
	if isinstance(doc, WNFAggregatedDocument):
		packages = [p.model_copy(update={"categories": filter_categories(p.categories, view)}) for p in doc.packages]
		return doc.model_copy(update={"packages": packages})
	return doc.model_copy(update={"categories": filter_categories(doc.categories, view)})


def render(doc, output_format: str) -> str:
	if output_format == "markdown":
		if isinstance(doc, WNFAggregatedDocument):
			return render_aggregated_markdown(doc)
		return render_wnf_markdown(doc)
	return json.dumps(to_wire(doc), indent=2)


def parse_text(body: str, source_name: str = PARSE_SOURCE) -> WNFDocument:
	"""Offline detect -> extract -> categorize -> score over raw text."""
	categories, confidence, release, _ = parse_release_body(body)
	result = SourceResult(
		categories=categories,
		confidence=confidence,
		source=source_name,
		metadata=SourceMetadata(version="unknown", raw_content=body),
	)
	doc = to_wnf_document(result, "local", "file", None, [source_name])
	return doc.model_copy(update={"links": doc.links.model_copy(update={"release": None})})


def _read_input(path: str) -> str:
	if path == "-":
		return sys.stdin.read()
	with open(path, "r", encoding="utf-8") as f:
		return f.read()


def build_service(no_ai: bool, no_fallback: bool, github: Optional[GitHubClient] = None) -> ReleaseService:
	ai_extractor = AIExtractor(enabled=False) if no_ai else None
	return ReleaseService(github=github, enable_fallback=not no_fallback, ai_extractor=ai_extractor)


async def run_command(args, service: ReleaseService):
	if args.command == "release":
		if args.tag:
			return await service.get_release_by_tag_wnf(args.owner, args.repo, args.tag)
		return await service.get_latest_release_wnf(args.owner, args.repo, package_name=args.package)
	if args.command == "range":
		return await service.get_releases_in_range(
			args.owner, args.repo, args.since, args.until, package_filter=args.package
		)
	if args.command == "unreleased":
		result = await service.get_unreleased_changes(
			args.owner, args.repo, include_prerelease=args.include_prerelease, package_filter=args.package
		)
		logger.info(f"{result.commit_count} unreleased commits since {result.baseline_tag or 'repository start'}")
		return result.document
	raise ValueError(f"Unknown command: {args.command}")


def main():
	"""CLI entry point for whatsnew."""
	import argparse
	from dotenv import load_dotenv

	load_dotenv()

	parser = argparse.ArgumentParser(
		description="whatsnew - Structured release notes from GitHub releases, changelogs and commits",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  whatsnew release --owner vercel --repo next.js
  whatsnew release --owner vercel --repo ai --package @ai-sdk/openai --format markdown
  whatsnew range --owner vercel --repo ai --since 2024-01-01 --filter important
  whatsnew unreleased --owner pallets --repo flask
  whatsnew parse --file CHANGELOG.md
		"""
	)
	parser.add_argument("--format", choices=["json", "markdown"], default="json", help="Output format")
	parser.add_argument("--filter", choices=["important", "maintenance", "all"], default="all",
						help="Category view to keep")
	parser.add_argument("--no-ai", action="store_true", help="Never call the AI fallback extractor")
	parser.add_argument("--no-fallback", action="store_true", help="Release body only, no changelog/commit sources")
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

	sub = parser.add_subparsers(dest="command")

	rel = sub.add_parser("release", help="Latest release, or the release for --tag")
	rel.add_argument("--owner", required=True, help="Repository owner (user or organization)")
	rel.add_argument("--repo", required=True, help="Repository name")
	rel.add_argument("--tag", required=False)
	rel.add_argument("--package", required=False, help="Latest release of this monorepo package")

	rng = sub.add_parser("range", help="Every release published in a date range, grouped by package")
	rng.add_argument("--owner", required=True)
	rng.add_argument("--repo", required=True)
	rng.add_argument("--since", required=True, help="ISO date or datetime")
	rng.add_argument("--until", required=False, help="ISO date or datetime (default: now)")
	rng.add_argument("--package", required=False, help="Package name or prefix pattern such as ai@*")

	unr = sub.add_parser("unreleased", help="Commits on the default branch since the latest release")
	unr.add_argument("--owner", required=True)
	unr.add_argument("--repo", required=True)
	unr.add_argument("--include-prerelease", action="store_true")
	unr.add_argument("--package", required=False)

	prs = sub.add_parser("parse", help="Parse a local release notes or changelog file")
	prs.add_argument("--file", required=True, help="Path to read, or - for stdin")

	args = parser.parse_args()

	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)

	# Suppress verbose logs from libraries unless in debug mode
	if not args.verbose:
		logging.getLogger("clients.github_client").setLevel(logging.WARNING)
		logging.getLogger("urllib3").setLevel(logging.WARNING)

	if args.command is None:
		parser.print_help()
		sys.exit(1)

	service = None
	try:
		if args.command == "parse":
			doc = parse_text(_read_input(args.file))
		else:
			service = build_service(args.no_ai, args.no_fallback)
			doc = asyncio.run(run_command(args, service))
		print(render(apply_filter(doc, args.filter), args.format))
	except GitHubValidationError as e:
		print(f"Error: {e}", file=sys.stderr)
		sys.exit(2)
	except (GitHubClientError, LookupError, ValueError, OSError) as e:
		print(f"Error: {e}", file=sys.stderr)
		sys.exit(1)
	finally:
		if service is not None:
			service.github.close()


if __name__ == "__main__":
	main()
