"""
Tests for the AI fallback pieces: quality assessment, anchors, JSON
recovery and ref grounding. Bedrock is never called.
"""

import json

import pytest
from botocore.exceptions import ClientError

from ai.ai_extractor import AIExtractor, build_prompt, validate_refs
from ai.anchor_extractor import Anchors, extract_anchors, format_anchors_for_prompt
from ai.extraction_models import WNFExtraction
from ai.quality_assessor import QualityAssessor, estimate_expected_items
from clients.bedrock_client import BedrockClient, BedrockError
from utils.json_sanitizer import JSONSanitizerError, extract_and_validate, extract_json_objects
from utils.wnf_models import Category, ChangeItem


def _categories(**items_by_id):
	return [
		Category(id=cid, title=cid, items=[ChangeItem(text=t) for t in texts])
		for cid, texts in items_by_id.items()
	]


class TestQualityAssessor:
	"""Fallback reasons"""

	@pytest.fixture
	def assessor(self):
		return QualityAssessor(0.6)

	def test_good_result_passes(self, assessor):
		assessment = assessor.assess(_categories(features=["a", "b"], fixes=["c"]), 0.9, 300)
		assert assessment.should_fallback_to_ai is False
		assert assessment.reasons == []

	def test_all_other(self, assessor):
		assessment = assessor.assess(_categories(other=["a", "b"]), 0.9, 200)
		assert "all_items_other" in assessment.reasons
		assert assessment.score <= 0.4

	def test_high_other_ratio(self, assessor):
		assessment = assessor.assess(_categories(features=["a"], other=["b"] * 9), 0.9, 200)
		assert "high_other_ratio" in assessment.reasons

	def test_empty_categories_with_long_content(self, assessor):
		assessment = assessor.assess([], 0.9, 400)
		assert {"empty_categories", "missing_expected_items"} <= set(assessment.reasons)
		assert assessment.score == pytest.approx(0.3)

	def test_low_confidence(self, assessor):
		assessment = assessor.assess(_categories(features=["a"]), 0.4, 50)
		assert assessment.reasons == ["low_confidence"]
		assert assessment.should_fallback_to_ai is True

	def test_expected_items(self):
		assert estimate_expected_items(99) == 0
		assert estimate_expected_items(450) == 3


class TestAnchors:
	"""Grounding anchors"""

	def test_refs_shas_and_urls(self):
		raw = (
			"Fix login (#12) in https://github.com/acme/widgets/pull/34\n"
			"commit 1a2b3c4d and deadbeef99, not abcdefg or 1234567"
		)
		anchors = extract_anchors(raw)
		assert anchors.pr_refs == ["12", "34"]
		assert anchors.commit_shas == ["1a2b3c4d", "deadbeef99"]
		assert anchors.urls == ["https://github.com/acme/widgets/pull/34"]

	def test_prompt_formatting(self):
		anchors = Anchors(pr_refs=["1", "2"], commit_shas=[f"abc{i}def" for i in range(7)])
		text = format_anchors_for_prompt(anchors)
		assert "#1, #2" in text
		assert "(+2 more)" in text
		assert "(none found)" in format_anchors_for_prompt(Anchors())

	def test_prompt_includes_content(self):
		prompt = build_prompt("raw notes here", Anchors(pr_refs=["5"]))
		assert "raw notes here" in prompt
		assert "#5" in prompt


class TestSanitizer:
	"""JSON recovery from model output"""

	def test_fenced_json_with_trailing_comma(self):
		raw = 'Sure!\n```json\n{"categories": [], "hasBreakingChanges": true,}\n```'
		extraction = extract_and_validate(raw, WNFExtraction)
		assert extraction.has_breaking_changes is True

	def test_braces_inside_strings(self):
		raw = 'x {"version": "v{1}", "categories": []} y'
		assert extract_json_objects(raw)[0] == '{"version": "v{1}", "categories": []}'

	def test_curly_quotes(self):
		delimited = "{\u201cversion\u201d: \u201cv2\u201d, \u201ccategories\u201d: []}"
		assert extract_and_validate(delimited, WNFExtraction).version == "v2"
		quoted = '{"version": "the \u201cnext\u201d release", "categories": []}'
		assert extract_and_validate(quoted, WNFExtraction).version == "the \u201cnext\u201d release"

	def test_error_codes(self):
		with pytest.raises(JSONSanitizerError) as exc:
			extract_and_validate("", WNFExtraction)
		assert exc.value.code == "NO_JSON"
		with pytest.raises(JSONSanitizerError) as exc:
			extract_and_validate('{"categories": [{"id": "bogus"}]}', WNFExtraction)
		assert exc.value.code == "VALIDATION"


class TestAIExtractor:
	"""Extractor wiring"""

	def test_validate_refs_drops_unknown(self):
		extraction = WNFExtraction.model_validate({
			"categories": [{"id": "fixes", "items": [{"text": "Fix login", "refs": ["#12", "13", "99"]}]}],
		})
		grounded = validate_refs(extraction, Anchors(pr_refs=["12", "13"]))
		assert grounded.categories[0].items[0].refs == ["12", "13"]

	def test_disabled_extractor(self):
		extractor = AIExtractor(enabled=False, complete=lambda p: "{}")
		assert extractor.is_available() is False
		assert extractor.extract("some notes") is None

	def test_empty_input(self):
		assert AIExtractor(enabled=True, complete=lambda p: "{}").extract("") is None

	def test_empty_categories_dropped(self):
		response = '{"categories": [{"id": "fixes", "items": []}, {"id": "docs", "items": [{"text": "Document retries"}]}]}'
		result = AIExtractor(enabled=True, complete=lambda p: response).extract("Document retries")
		assert [c.id for c in result.categories] == ["docs"]
		assert result.categories[0].title == "Documentation"


class _Body:
	def __init__(self, payload):
		self._raw = json.dumps(payload).encode("utf-8")

	def read(self):
		return self._raw


class FakeRuntime:
	def __init__(self, outcomes):
		self.outcomes = list(outcomes)
		self.requests = []

	def invoke_model(self, **kwargs):
		self.requests.append(json.loads(kwargs["body"]))
		outcome = self.outcomes.pop(0)
		if isinstance(outcome, Exception):
			raise outcome
		return {"body": _Body(outcome)}


def _client_error(code, message):
	return ClientError({"Error": {"Code": code, "Message": message}}, "InvokeModel")


class TestBedrockClient:
	"""Bedrock runtime wrapper with a fake runtime"""

	@pytest.fixture(autouse=True)
	def no_sleep(self, monkeypatch):
		monkeypatch.setattr("clients.bedrock_client.time.sleep", lambda s: None)

	def test_text_blocks_joined(self):
		runtime = FakeRuntime([{"content": [{"type": "text", "text": '{"categories": '}, {"type": "text", "text": "[]}"}]}])
		client = BedrockClient(model_id="test-model", runtime=runtime)
		assert client.complete_json("notes") == '{"categories": []}'
		assert runtime.requests[0]["messages"][0]["content"][0]["text"] == "notes"

	def test_throttling_is_retried(self):
		runtime = FakeRuntime([
			_client_error("ThrottlingException", "Rate exceeded"),
			{"content": [{"type": "text", "text": "{}"}]},
		])
		assert BedrockClient(model_id="test-model", runtime=runtime).complete_json("notes") == "{}"
		assert len(runtime.requests) == 2

	def test_access_denied_is_not_retried(self):
		runtime = FakeRuntime([_client_error("AccessDeniedException", "not allowed")])
		with pytest.raises(BedrockError) as exc:
			BedrockClient(model_id="test-model", runtime=runtime).complete_json("notes")
		assert exc.value.code == "UNAUTHORIZED"
		assert len(runtime.requests) == 1

	def test_oversized_prompt_rejected(self):
		runtime = FakeRuntime([])
		with pytest.raises(BedrockError) as exc:
			BedrockClient(model_id="test-model", runtime=runtime).complete_json("x" * 500000)
		assert exc.value.code == "TOO_LARGE"
		assert runtime.requests == []
