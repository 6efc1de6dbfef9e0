import os
from typing import Dict, Any

class Config:
	"""Configuration for the changelog synthesis pipeline."""

	# GitHub REST configuration
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	GITHUB_TOKEN = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))
	HTTP_RETRY_TOTAL = int(os.getenv("HTTP_RETRY_TOTAL", "3"))

	# AWS Bedrock Configuration (AI fallback extractor)
	AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
	BEDROCK_MODEL_ID = os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-haiku-20240307-v1:0")
	AI_ENABLED = bool(int(os.getenv("AI_ENABLED", "1")))
	AI_CONFIDENCE_THRESHOLD = float(os.getenv("AI_CONFIDENCE_THRESHOLD", "0.6"))
	AI_MAX_OUTPUT_TOKENS = int(os.getenv("AI_MAX_OUTPUT_TOKENS", "4000"))
	AI_CHARS_PER_TOKEN = float(os.getenv("AI_CHARS_PER_TOKEN", "4.0"))

	# LangSmith Configuration
	LANGSMITH_API_KEY = os.getenv("LANGSMITH_API_KEY", "")
	LANGSMITH_PROJECT = os.getenv("LANGSMITH_PROJECT", "whatsnew")
	LANGSMITH_ENDPOINT = os.getenv("LANGSMITH_ENDPOINT", "https://api.smith.langchain.com")

	# Multi-source behaviour
	ENABLE_FALLBACK = bool(int(os.getenv("ENABLE_FALLBACK", "1")))
	RANGE_MAX_PAGES = int(os.getenv("RANGE_MAX_PAGES", "10"))
	COMMIT_LOOKBACK = int(os.getenv("COMMIT_LOOKBACK", "30"))

	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub REST client configuration."""
		return {
			"base_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN,
			"timeout_s": cls.HTTP_TIMEOUT_S,
			"retry_total": cls.HTTP_RETRY_TOTAL,
		}

	@classmethod
	def get_bedrock_config(cls) -> Dict[str, Any]:
		"""Get Bedrock configuration."""
		return {
			"region_name": cls.AWS_REGION,
			"model_id": cls.BEDROCK_MODEL_ID
		}

	@classmethod
	def get_ai_config(cls) -> Dict[str, Any]:
		"""Get AI fallback configuration.

		Returns:
			Mapping with enabled flag, quality threshold and output token budget.
		"""
		return {
			"enabled": cls.AI_ENABLED,
			"confidence_threshold": cls.AI_CONFIDENCE_THRESHOLD,
			"max_output_tokens": cls.AI_MAX_OUTPUT_TOKENS,
		}

	@classmethod
	def get_langsmith_config(cls) -> Dict[str, Any]:
		"""Get LangSmith configuration."""
		return {
			"api_key": cls.LANGSMITH_API_KEY,
			"project": cls.LANGSMITH_PROJECT,
			"endpoint": cls.LANGSMITH_ENDPOINT
		}
