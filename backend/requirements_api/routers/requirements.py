from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..analysis_service import RequirementAnalyzer, get_analyzer
from ..schemas import MAX_REQUIREMENT_LENGTH, AnalysisResult, AnalyzeRequest, BatchAnalyzeRequest, EnhanceRequest, EnhancementResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/requirements", tags=["requirements"])


def _require_text(text: str) -> str:
	if not (text or "").strip():
		raise HTTPException(status_code=400, detail="Requirement text is required")
	return text


@router.get("/health")
async def health(analyzer: RequirementAnalyzer = Depends(get_analyzer)):
	connected = await analyzer.test_connection()
	return {
		"status": "healthy" if connected else "degraded",
		"message": "Requirements API is running",
		"perplexityConnected": connected,
		"timestamp": datetime.now(timezone.utc).isoformat(),
	}


@router.post("/analyze", response_model=AnalysisResult)
async def analyze(req: AnalyzeRequest, analyzer: RequirementAnalyzer = Depends(get_analyzer)):
	text = _require_text(req.text)
	logger.info("Analyzing requirement with %s characters", len(text))
	result = await analyzer.analyze(text)
	logger.info("Analysis completed - score: %s, issues: %s", result.overall_score, len(result.issues))
	return result


@router.post("/enhance", response_model=EnhancementResult)
async def enhance(req: EnhanceRequest, analyzer: RequirementAnalyzer = Depends(get_analyzer)):
	text = _require_text(req.text)
	logger.info("Enhancing requirement with %s identified issues", len(req.issues or []))
	result = await analyzer.enhance(text, req.issues)
	logger.info("Enhancement completed - %s versions generated", len(result.enhancements))
	return result


@router.post("/batch-analyze", response_model=List[AnalysisResult])
async def batch_analyze(req: BatchAnalyzeRequest, analyzer: RequirementAnalyzer = Depends(get_analyzer)):
	if not req.requirements:
		raise HTTPException(status_code=400, detail="At least one requirement is required")
	if any(not (r or "").strip() for r in req.requirements):
		raise HTTPException(status_code=400, detail="All requirements must contain text")
	if any(len(r) > MAX_REQUIREMENT_LENGTH for r in req.requirements):
		raise HTTPException(status_code=400, detail=f"Requirements must be at most {MAX_REQUIREMENT_LENGTH} characters")
	return await analyzer.batch_analyze(req.requirements)
