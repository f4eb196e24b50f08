import asyncio
import json

import httpx

from requirements_api.perplexity_client import (
	ChatErrorKind,
	PerplexityClient,
	build_enhancement_prompt,
	decode_analysis,
	decode_enhancement,
	extract_json_object,
)
from requirements_api.schemas import QualityIssue


def _client(handler, api_key="test-key"):
	return PerplexityClient(
		api_key=api_key,
		base_url="https://perplexity.test",
		model="test-model",
		transport=httpx.MockTransport(handler),
	)


def _run(client, prompt="hello"):
	async def go():
		try:
			return await client.complete(prompt)
		finally:
			await client.aclose()

	return asyncio.run(go())


def _chat_reply(content):
	return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def test_complete_sends_chat_request_and_returns_content():
	seen = {}

	def handler(request: httpx.Request) -> httpx.Response:
		seen["url"] = str(request.url)
		seen["auth"] = request.headers.get("authorization")
		seen["body"] = json.loads(request.content)
		return _chat_reply("OK")

	outcome = _run(_client(handler), "ping")

	assert outcome.ok
	assert outcome.text == "OK"
	assert seen["url"] == "https://perplexity.test/chat/completions"
	assert seen["auth"] == "Bearer test-key"
	assert seen["body"]["model"] == "test-model"
	assert seen["body"]["stream"] is False
	assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user"]
	assert seen["body"]["messages"][1]["content"] == "ping"


def test_complete_without_key_is_not_configured():
	def handler(request):
		raise AssertionError("no request expected")

	outcome = _run(_client(handler, api_key=""))

	assert not outcome.ok
	assert outcome.error == ChatErrorKind.NOT_CONFIGURED


def test_http_error_status_becomes_failure_value():
	outcome = _run(_client(lambda request: httpx.Response(429, text="rate limited")))

	assert outcome.error == ChatErrorKind.HTTP_STATUS
	assert "429" in outcome.detail


def test_network_and_timeout_errors_become_failure_values():
	def refuse(request):
		raise httpx.ConnectError("refused", request=request)

	def slow(request):
		raise httpx.ReadTimeout("too slow", request=request)

	assert _run(_client(refuse)).error == ChatErrorKind.NETWORK
	assert _run(_client(slow)).error == ChatErrorKind.TIMEOUT


def test_unexpected_payload_is_bad_response():
	outcome = _run(_client(lambda request: httpx.Response(200, json={"choices": []})))

	assert outcome.error == ChatErrorKind.BAD_RESPONSE


def test_extract_json_object_strips_surrounding_prose():
	raw = 'Here you go:\n```json\n{"a": {"b": 1}}\n```\nThanks'

	assert extract_json_object(raw) == '{"a": {"b": 1}}'
	assert extract_json_object("no json") == "no json"


def test_decode_analysis_accepts_camel_case_payload():
	raw = json.dumps(
		{
			"overallScore": 62,
			"issues": [
				{
					"type": "ambiguity",
					"severity": "major",
					"description": "vague",
					"problematicText": "fast",
					"suggestion": "quantify",
				}
			],
			"analyzedAt": "2025-01-01T00:00:00Z",
		}
	)

	result = decode_analysis("Analysis:\n" + raw)

	assert result is not None
	assert result.overall_score == 62
	assert result.issues[0].problematic_text == "fast"


def test_decode_returns_none_for_malformed_payloads():
	assert decode_analysis("not json at all") is None
	assert decode_analysis('{"issues": []}') is None
	assert decode_enhancement('{"enhancements": [{"text": 1}]}') is None


def test_decode_enhancement():
	raw = json.dumps(
		{
			"enhancements": [
				{"text": "The system shall respond within 2 seconds.", "changes": ["timing"], "improvements": [], "qualityScore": 90, "rationale": "measurable"}
			],
			"recommendedIndex": 0,
		}
	)

	result = decode_enhancement(raw)

	assert result is not None
	assert result.enhancements[0].quality_score == 90


def test_enhancement_prompt_lists_issues():
	issues = [QualityIssue(type="ambiguity", severity="major", description="Contains vague terms")]

	assert "- ambiguity (major): Contains vague terms" in build_enhancement_prompt("text", issues)
	assert "General quality improvements needed" in build_enhancement_prompt("text", None)
