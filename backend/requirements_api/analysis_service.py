from __future__ import annotations
import asyncio
import logging
from typing import AsyncIterator, List, Optional, Sequence

from .mock_engine import MockAnalysisEngine, utc_timestamp
from .perplexity_client import (
	CONNECTION_PROBE_PROMPT,
	PerplexityClient,
	build_analysis_prompt,
	build_enhancement_prompt,
	decode_analysis,
	decode_enhancement,
)
from .schemas import AnalysisResult, EnhancementResult, QualityIssue
from .settings import settings

logger = logging.getLogger(__name__)

PROCESSING_ERROR = "processing_error"


def _preview(text: str, limit: int = 100) -> str:
	return text[:limit]


def processing_error_result(text: str) -> AnalysisResult:
	return AnalysisResult(
		overall_score=0,
		issues=[
			QualityIssue(
				type=PROCESSING_ERROR,
				severity="critical",
				description="Failed to process this requirement",
				problematic_text=text[:20] + "...",
				suggestion="Please review the requirement format and try again",
			)
		],
		analyzed_at=utc_timestamp(),
	)


def is_processing_error(result: AnalysisResult) -> bool:
	return any(issue.type == PROCESSING_ERROR for issue in result.issues)


class RequirementAnalyzer:
	"""Runs analysis through Perplexity and falls back to the mock engine.

	Upstream problems never reach the caller: a missing key, a failed call
	or an undecodable reply all end in the mock engine's result for the
	same text.
	"""

	def __init__(
		self,
		client: Optional[PerplexityClient] = None,
		engine: Optional[MockAnalysisEngine] = None,
		*,
		batch_delay_seconds: Optional[float] = None,
	) -> None:
		self.client = client if client is not None and client.configured else None
		self.engine = engine or MockAnalysisEngine()
		self.batch_delay_seconds = settings.batch_delay_seconds if batch_delay_seconds is None else batch_delay_seconds

	@property
	def uses_perplexity(self) -> bool:
		return self.client is not None

	async def analyze(self, text: str) -> AnalysisResult:
		if self.client is None:
			logger.warning("No API key configured, using mock analysis")
			return self.engine.analyze(text)
		logger.info("Starting analysis for requirement: %s", _preview(text))
		outcome = await self.client.complete(build_analysis_prompt(text))
		if not outcome.ok:
			logger.error("Perplexity analysis failed (%s): %s", outcome.error.value, outcome.detail)
			logger.info("Falling back to mock analysis")
			return self.engine.analyze(text)
		result = decode_analysis(outcome.text or "")
		if result is None:
			logger.warning("Using mock analysis due to parsing failure")
			return self.engine.analyze(text)
		logger.info("Analysis completed with score: %s", result.overall_score)
		return result

	async def enhance(self, text: str, issues: Optional[Sequence[QualityIssue]] = None) -> EnhancementResult:
		if self.client is None:
			logger.warning("No API key configured, using mock enhancement")
			return self.engine.enhance(text, issues)
		logger.info("Starting enhancement for requirement: %s", _preview(text))
		outcome = await self.client.complete(build_enhancement_prompt(text, issues))
		if not outcome.ok:
			logger.error("Perplexity enhancement failed (%s): %s", outcome.error.value, outcome.detail)
			logger.info("Falling back to mock enhancement")
			return self.engine.enhance(text, issues)
		result = decode_enhancement(outcome.text or "")
		if result is None or not result.enhancements:
			logger.warning("Using mock enhancement due to parsing failure")
			return self.engine.enhance(text, issues)
		if not 0 <= result.recommended_index < len(result.enhancements):
			result.recommended_index = 0
		logger.info("Enhancement completed with %s versions", len(result.enhancements))
		return result

	async def batch_analyze(self, texts: Sequence[str]) -> List[AnalysisResult]:
		results: List[AnalysisResult] = []
		total = len(texts)
		logger.info("Starting batch analysis for %s requirements", total)
		for i, text in enumerate(texts):
			logger.info("Analyzing requirement %s/%s", i + 1, total)
			try:
				results.append(await self.analyze(text))
			except Exception:
				logger.exception("Error in batch analysis for requirement %s: %s", i + 1, _preview(text, 50))
				results.append(processing_error_result(text))
			# Spacing only matters for the rate-limited upstream API
			if self.uses_perplexity and self.batch_delay_seconds > 0 and i < total - 1:
				await self._pause()
		logger.info(
			"Batch analysis completed: %s/%s successful",
			sum(1 for r in results if r.overall_score > 0),
			total,
		)
		return results

	async def _pause(self) -> None:
		await asyncio.sleep(self.batch_delay_seconds)

	async def test_connection(self) -> bool:
		if self.client is None:
			logger.warning("No API key configured for connection test")
			return False
		logger.info("Testing Perplexity API connection...")
		outcome = await self.client.complete(CONNECTION_PROBE_PROMPT)
		if not outcome.ok:
			logger.error("Perplexity API connection test failed (%s): %s", outcome.error.value, outcome.detail)
			return False
		connected = "ok" in (outcome.text or "").lower()
		logger.info("Perplexity API connection %s", "successful" if connected else "test inconclusive")
		return connected

	async def aclose(self) -> None:
		if self.client is not None:
			await self.client.aclose()


async def get_analyzer() -> AsyncIterator[RequirementAnalyzer]:
	client = PerplexityClient() if settings.perplexity_configured else None
	analyzer = RequirementAnalyzer(client)
	try:
		yield analyzer
	finally:
		if client is not None:
			await client.aclose()
