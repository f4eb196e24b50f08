from __future__ import annotations
import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .schemas import AnalysisResult, EnhancementResult, QualityIssue
from .settings import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
	"You are an expert in software requirements engineering and quality analysis. "
	"You follow IEEE 830 standards and requirements engineering best practices. "
	"Always respond in valid JSON format as requested. "
	"Be precise, analytical, and provide actionable suggestions."
)
CONNECTION_PROBE_PROMPT = "Test connection. Respond with just 'OK' if you can process this message."


class ChatErrorKind(str, enum.Enum):
	NOT_CONFIGURED = "not_configured"
	TIMEOUT = "timeout"
	NETWORK = "network"
	HTTP_STATUS = "http_status"
	BAD_RESPONSE = "bad_response"


@dataclass(frozen=True)
class ChatOutcome:
	text: Optional[str] = None
	error: Optional[ChatErrorKind] = None
	detail: str = ""

	@property
	def ok(self) -> bool:
		return self.error is None

	@classmethod
	def success(cls, text: str) -> "ChatOutcome":
		return cls(text=text)

	@classmethod
	def failure(cls, error: ChatErrorKind, detail: str = "") -> "ChatOutcome":
		return cls(error=error, detail=detail)


class PerplexityClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		max_tokens: Optional[int] = None,
		temperature: Optional[float] = None,
		timeout_seconds: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key if api_key is not None else settings.perplexity_api_key
		self.base_url = (base_url or settings.perplexity_base_url).rstrip("/")
		self.model = model or settings.perplexity_model
		self.max_tokens = max_tokens if max_tokens is not None else settings.perplexity_max_tokens
		self.temperature = temperature if temperature is not None else settings.perplexity_temperature
		timeout = timeout_seconds if timeout_seconds is not None else settings.perplexity_timeout_seconds
		headers = {"User-Agent": "RequirementsAnalyzer/1.0", "Content-Type": "application/json"}
		if self.api_key:
			headers["Authorization"] = f"Bearer {self.api_key}"
		self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport, headers=headers)

	@property
	def configured(self) -> bool:
		return bool(self.api_key)

	async def complete(self, prompt: str) -> ChatOutcome:
		if not self.configured:
			return ChatOutcome.failure(ChatErrorKind.NOT_CONFIGURED, "PERPLEXITY_API_KEY is not configured")
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": [
				{"role": "system", "content": SYSTEM_PROMPT},
				{"role": "user", "content": prompt},
			],
			"temperature": self.temperature,
			"max_tokens": self.max_tokens,
			"stream": False,
		}
		logger.debug("Calling Perplexity API with model: %s", self.model)
		try:
			r = await self._client.post("/chat/completions", json=payload)
		except httpx.TimeoutException as err:
			return ChatOutcome.failure(ChatErrorKind.TIMEOUT, str(err) or "request timed out")
		except httpx.RequestError as err:
			return ChatOutcome.failure(ChatErrorKind.NETWORK, str(err))
		if r.is_error:
			logger.error("Perplexity API error: %s - %s", r.status_code, r.text[:500])
			return ChatOutcome.failure(ChatErrorKind.HTTP_STATUS, f"{r.status_code} - {r.text[:500]}")
		try:
			data = r.json()
			content = data["choices"][0]["message"]["content"]
		except (ValueError, KeyError, IndexError, TypeError):
			return ChatOutcome.failure(ChatErrorKind.BAD_RESPONSE, f"Unexpected Perplexity response: {r.text[:500]}")
		if not isinstance(content, str):
			return ChatOutcome.failure(ChatErrorKind.BAD_RESPONSE, "Perplexity response content is not text")
		logger.debug("Perplexity response content length: %s", len(content))
		return ChatOutcome.success(content)

	async def aclose(self) -> None:
		await self._client.aclose()


# ---- Prompts ----

def build_analysis_prompt(requirement: str) -> str:
	return (
		"Analyze this software requirement for quality issues according to IEEE 830 standards "
		"and requirements engineering best practices.\n\n"
		f"REQUIREMENT TO ANALYZE:\n\"{requirement}\"\n\n"
		"Evaluate these quality dimensions:\n"
		"1. AMBIGUITY: vague terms (user-friendly, fast, efficient, reasonable), unclear pronouns, subjective language\n"
		"2. COMPLETENESS: missing actors, conditions, exceptions, outcomes, preconditions, postconditions\n"
		"3. CONSISTENCY: conflicts with standard terminology, inconsistent language patterns\n"
		"4. VERIFIABILITY: whether the requirement can be tested or measured objectively\n"
		"5. TRACEABILITY: clear identification, categorization and reference capability\n\n"
		"For each issue give: type (ambiguity/completeness/consistency/verifiability/traceability), "
		"severity (critical/major/minor), the problematic text, a description and an actionable suggestion.\n"
		"Compute an overall quality score (0-100) from the number and severity of issues, clarity, "
		"completeness and measurability.\n\n"
		"Return ONLY a JSON object in this shape:\n"
		"{\n"
		"  \"overallScore\": 75,\n"
		"  \"issues\": [\n"
		"    {\"type\": \"ambiguity\", \"severity\": \"major\", "
		"\"description\": \"The term 'user-friendly' is subjective and not measurable\", "
		"\"problematicText\": \"user-friendly\", "
		"\"suggestion\": \"Replace with specific usability metrics like '95% of users can complete the primary task within 2 minutes without assistance'\"}\n"
		"  ],\n"
		"  \"analyzedAt\": \"<ISO-8601 UTC timestamp>\"\n"
		"}"
	)


def build_enhancement_prompt(requirement: str, issues: Optional[Sequence[QualityIssue]] = None) -> str:
	if issues:
		issues_text = "\n".join(f"- {i.type} ({i.severity}): {i.description}" for i in issues)
	else:
		issues_text = "General quality improvements needed"
	return (
		"Rewrite this software requirement to address the identified quality issues.\n\n"
		f"ORIGINAL REQUIREMENT:\n\"{requirement}\"\n\n"
		f"IDENTIFIED QUALITY ISSUES:\n{issues_text}\n\n"
		"Guidelines:\n"
		"- Use active voice and definitive verbs (shall, must, will) instead of should, may, might\n"
		"- Include measurable, testable criteria with numbers, percentages and timeframes\n"
		"- Specify actors, preconditions, expected outcomes and error conditions\n"
		"- Avoid ambiguous terms (user-friendly, fast, efficient, reasonable, good, bad)\n"
		"- Follow the pattern \"The [system/actor] shall [action] [object] [conditions]\"\n\n"
		"Provide 2-3 enhanced versions ranked by quality improvement. Return ONLY a JSON object:\n"
		"{\n"
		"  \"enhancements\": [\n"
		"    {\"text\": \"The authentication system shall validate user credentials within 2 seconds of submission.\", "
		"\"changes\": [\"Added specific timing requirement (2 seconds)\"], "
		"\"improvements\": [\"Measurable performance criteria\"], "
		"\"qualityScore\": 92, "
		"\"rationale\": \"Specific timing makes the requirement testable\"}\n"
		"  ],\n"
		"  \"recommendedIndex\": 0\n"
		"}"
	)


# ---- Decoding ----

_M = TypeVar("_M", bound=BaseModel)


def extract_json_object(raw: str) -> str:
	first = raw.find("{")
	last = raw.rfind("}")
	if first != -1 and last > first:
		return raw[first : last + 1]
	return raw


def _decode(raw: str, model: Type[_M]) -> Optional[_M]:
	try:
		return model.model_validate_json(extract_json_object(raw))
	except (ValidationError, json.JSONDecodeError, ValueError):
		logger.error("Failed to parse %s from Perplexity: %s", model.__name__, raw[:500])
		return None


def decode_analysis(raw: str) -> Optional[AnalysisResult]:
	return _decode(raw, AnalysisResult)


def decode_enhancement(raw: str) -> Optional[EnhancementResult]:
	return _decode(raw, EnhancementResult)
