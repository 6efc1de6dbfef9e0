#!/usr/bin/env python3
"""Bedrock runtime wrapper used by the AI changelog extractor.

Sends one user message to an Anthropic model on Bedrock and returns the
model's text. Throttling, timeouts and connection failures are retried a
couple of times; everything else surfaces as a BedrockError with a code.
"""
from __future__ import annotations

import json
import logging
import math
import random
import time
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError, ReadTimeoutError

from configs.config import Config

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"
SYSTEM_PROMPT = "You extract structured changelog data. Reply with a single JSON object and nothing else."
MAX_ATTEMPTS = 3
MAX_BACKOFF_S = 2.5
TOKEN_CAP = 100000  # prompt + response
DEADLINE_S = 120
RETRYABLE = frozenset({"TIMEOUT", "NETWORK", "RATE_LIMIT"})


class BedrockError(Exception):
	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code


def credentials_available(region: Optional[str] = None) -> bool:
	"""True when boto3 can resolve AWS credentials without calling Bedrock."""
	try:
		return boto3.Session(region_name=region or Config.AWS_REGION).get_credentials() is not None
	except BotoCoreError as e:
		logger.debug(f"AWS credential resolution failed: {e}")
		return False


def classify_client_error(error: ClientError) -> str:
	details = error.response.get("Error", {})
	text = f"{details.get('Code', '')} {details.get('Message', '')}".lower()
	if any(marker in text for marker in ("throttl", "429", "too many requests")):
		return "RATE_LIMIT"
	if any(marker in text for marker in ("accessdenied", "unauthorized", "401", "403")):
		return "UNAUTHORIZED"
	if "validation" in text:
		return "INVALID_REQUEST"
	return "UNKNOWN"


def message_text(payload: Dict[str, Any]) -> str:
	"""Concatenate the text blocks of a Messages API response."""
	return "".join(
		block.get("text", "")
		for block in payload.get("content", [])
		if isinstance(block, dict) and block.get("type") == "text"
	)


class BedrockClient:
	def __init__(self, model_id: Optional[str] = None, max_output_tokens: Optional[int] = None, runtime=None) -> None:
		cfg = Config.get_bedrock_config()
		self.model_id = model_id or cfg["model_id"]
		self.max_output_tokens = max_output_tokens or Config.AI_MAX_OUTPUT_TOKENS
		self.chars_per_token = max(1.0, Config.AI_CHARS_PER_TOKEN)
		self._runtime = runtime or boto3.client("bedrock-runtime", region_name=cfg["region_name"])

	def _check_budget(self, prompt: str) -> None:
		estimate = math.ceil(len(prompt) / self.chars_per_token) + self.max_output_tokens
		if estimate > TOKEN_CAP:
			raise BedrockError(f"Prompt too large: ~{estimate} tokens (cap {TOKEN_CAP})", code="TOO_LARGE")

	def _request_body(self, prompt: str) -> bytes:
		return json.dumps({
			"anthropic_version": ANTHROPIC_VERSION,
			"max_tokens": self.max_output_tokens,
			"temperature": 0.0,
			"system": SYSTEM_PROMPT,
			"messages": [{"role": "user", "content": [{"type": "text", "text": prompt}]}],
		}).encode("utf-8")

	def _invoke(self, prompt: str) -> str:
		response = self._runtime.invoke_model(
			modelId=self.model_id,
			contentType="application/json",
			accept="application/json",
			body=self._request_body(prompt),
		)
		raw = response["body"].read().decode("utf-8", errors="replace")
		try:
			payload = json.loads(raw)
		except json.JSONDecodeError:
			return raw
		return message_text(payload) or raw

	def complete_json(self, prompt: str) -> str:
		"""Model reply for ``prompt``; the caller is responsible for parsing JSON out of it."""
		self._check_budget(prompt)
		deadline = time.monotonic() + DEADLINE_S

		for attempt in range(1, MAX_ATTEMPTS + 1):
			try:
				return self._invoke(prompt)
			except ReadTimeoutError as e:
				code, cause = "TIMEOUT", e
			except EndpointConnectionError as e:
				code, cause = "NETWORK", e
			except ClientError as e:
				code, cause = classify_client_error(e), e
			except BotoCoreError as e:
				code, cause = "UNKNOWN", e

			if code not in RETRYABLE or attempt == MAX_ATTEMPTS or time.monotonic() >= deadline:
				raise BedrockError(f"Bedrock call failed ({code}): {cause}", code=code) from cause
			backoff = min(2 ** (attempt - 1) + random.random(), MAX_BACKOFF_S)
			logger.info(f"Bedrock {code} on attempt {attempt}/{MAX_ATTEMPTS}, retrying in {backoff:.1f}s")
			time.sleep(backoff)

		raise BedrockError("Bedrock call failed", code="UNKNOWN")
