#!/usr/bin/env python3
"""Recover a JSON object from free-form model output and validate it.

Models wrap JSON in prose or code fences and sometimes leave trailing commas
or typographic quotes behind. Only those mechanical slips are repaired;
nothing is ever added to the payload.
"""
from __future__ import annotations

import json
import re
from typing import Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE = re.compile(r"```[a-zA-Z]*\n?")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_APOSTROPHES = str.maketrans({"\u2018": "'", "\u2019": "'"})
_CURLY_DOUBLE = str.maketrans({"\u201c": '"', "\u201d": '"'})


class JSONSanitizerError(Exception):
	def __init__(self, message: str, code: str = "SANITIZE_ERROR") -> None:
		super().__init__(message)
		self.code = code


def _clean(text: str) -> str:
	return _CONTROL_CHARS.sub(" ", _FENCE.sub("", text))


def _balanced_object(text: str) -> Optional[str]:
	"""First top-level ``{...}`` span, skipping braces inside string literals."""
	depth = 0
	start = -1
	in_string = escaped = False
	for i, ch in enumerate(text):
		if in_string:
			if escaped:
				escaped = False
			elif ch == "\\":
				escaped = True
			elif ch == '"':
				in_string = False
		elif ch == '"':
			in_string = True
		elif ch == "{":
			if depth == 0:
				start = i
			depth += 1
		elif ch == "}" and depth:
			depth -= 1
			if depth == 0:
				return text[start:i + 1]
	return None


def _candidates(text: str) -> Iterator[str]:
	balanced = _balanced_object(text)
	if balanced:
		yield balanced
	first, last = text.find("{"), text.rfind("}")
	if 0 <= first < last:
		yield text[first:last + 1]
	if text.strip():
		yield text


def extract_json_objects(raw_text: str) -> List[str]:
	"""Candidate JSON object strings in ``raw_text``, most likely first."""
	if not raw_text:
		return []
	unique: List[str] = []
	for candidate in _candidates(_clean(raw_text)):
		if candidate not in unique:
			unique.append(candidate)
	return unique


def minimal_json_repairs(s: str) -> str:
	# curly double quotes are delimiters only when no straight ones are present
	s = s.translate(_APOSTROPHES)
	if '"' not in s:
		s = s.translate(_CURLY_DOUBLE)
	return _TRAILING_COMMA.sub(r"\1", s).strip()


def extract_and_validate(raw_text: str, model: Type[ModelT]) -> ModelT:
	"""Parse the first decodable candidate and validate it against ``model``.

	Raises:
		JSONSanitizerError: ``NO_JSON``, ``JSON_DECODE`` or ``VALIDATION``
	"""
	candidates = extract_json_objects(raw_text)
	if not candidates:
		raise JSONSanitizerError("No JSON object candidates found", code="NO_JSON")

	decode_error: Optional[json.JSONDecodeError] = None
	for candidate in candidates:
		try:
			data = json.loads(minimal_json_repairs(candidate))
		except json.JSONDecodeError as e:
			decode_error = e
			continue
		try:
			return model.model_validate(data)
		except ValidationError as e:
			raise JSONSanitizerError(str(e), code="VALIDATION") from e
	raise JSONSanitizerError(f"Could not decode model output: {decode_error}", code="JSON_DECODE")
