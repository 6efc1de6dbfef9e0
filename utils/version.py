#!/usr/bin/env python3
"""Tag / version helpers for single-package and monorepo release tags."""
from __future__ import annotations

import re
from typing import NamedTuple, Optional

_PACKAGE_PREFIX = re.compile(r"^@?[^@]+@")
_PACKAGE_NAME = re.compile(r"^(@?[^@]+)@")
_SEMVER = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-(.+))?$")

PRERELEASE_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in (
	r"-rc\.",
	r"-rc\d",
	r"-alpha",
	r"-beta",
	r"-canary",
	r"-preview",
	r"-dev",
	r"-next",
	r"-nightly",
))


class ParsedVersion(NamedTuple):
	major: int
	minor: int
	patch: int
	prerelease: Optional[str] = None


def extract_version(tag_name: str) -> str:
	"""``v1.2.3`` -> ``1.2.3``; ``@scope/pkg@1.2.3`` -> ``1.2.3``."""
	s = re.sub(r"^v", "", tag_name or "")
	return _PACKAGE_PREFIX.sub("", s)


def extract_package_name(tag_name: str) -> Optional[str]:
	"""``@scope/pkg@1.2.3`` -> ``@scope/pkg``; plain version tags -> None."""
	m = _PACKAGE_NAME.match(tag_name or "")
	return m.group(1) if m else None


def is_monorepo_tag(tag_name: str) -> bool:
	return extract_package_name(tag_name) is not None


def parse_version(version: str) -> Optional[ParsedVersion]:
	m = _SEMVER.match(version or "")
	if not m:
		return None
	return ParsedVersion(int(m.group(1)), int(m.group(2)), int(m.group(3)), m.group(4))


def is_prerelease_tag(tag: str) -> bool:
	return any(p.search(tag or "") for p in PRERELEASE_PATTERNS)
