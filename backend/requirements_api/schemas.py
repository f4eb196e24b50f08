from __future__ import annotations
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


MAX_REQUIREMENT_LENGTH = 5000


class CamelModel(BaseModel):
	# JSON uses camelCase; Python code may use either spelling
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Analysis / enhancement payloads ----

class QualityIssue(CamelModel):
	type: str
	severity: str
	description: str
	problematic_text: str = ""
	suggestion: str = ""


class AnalysisResult(CamelModel):
	overall_score: int
	issues: List[QualityIssue] = Field(default_factory=list)
	analyzed_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class EnhancementCandidate(CamelModel):
	text: str
	changes: List[str] = Field(default_factory=list)
	improvements: List[str] = Field(default_factory=list)
	quality_score: int
	rationale: Optional[str] = None


class EnhancementResult(CamelModel):
	enhancements: List[EnhancementCandidate] = Field(default_factory=list)
	recommended_index: int = 0


class AnalyzeRequest(CamelModel):
	text: str = Field(max_length=MAX_REQUIREMENT_LENGTH)


class EnhanceRequest(CamelModel):
	text: str = Field(max_length=MAX_REQUIREMENT_LENGTH)
	issues: Optional[List[QualityIssue]] = None


class BatchAnalyzeRequest(CamelModel):
	requirements: List[str] = Field(default_factory=list)


# ---- Projects / requirements ----

class ProjectCreate(CamelModel):
	name: str = Field(min_length=1, max_length=200)
	description: Optional[str] = Field(default=None, max_length=1000)


class ProjectUpdate(ProjectCreate):
	pass


class RequirementCreate(CamelModel):
	text: str = Field(min_length=1, max_length=MAX_REQUIREMENT_LENGTH)
	title: Optional[str] = Field(default=None, max_length=200)


class RequirementUpdate(RequirementCreate):
	pass


class RequirementOut(CamelModel):
	id: int
	project_id: int
	text: str
	title: Optional[str] = None
	status: str
	quality_score: Optional[int] = None
	created_at: datetime
	updated_at: datetime
	analysis: Optional[AnalysisResult] = None
	enhancements: Optional[EnhancementResult] = None


class ProjectOut(CamelModel):
	id: int
	name: str
	description: Optional[str] = None
	created_at: datetime
	updated_at: datetime
	requirement_count: int = 0
	analyzed_count: int = 0
	average_quality_score: Optional[float] = None
	requirements: Optional[List[RequirementOut]] = None


class ProjectStats(CamelModel):
	project_id: int
	total_requirements: int = 0
	analyzed_requirements: int = 0
	enhanced_requirements: int = 0
	average_quality_score: Optional[float] = None
	status_breakdown: Dict[str, int] = Field(default_factory=dict)
	quality_distribution: Dict[str, int] = Field(default_factory=dict)
	common_issues: Dict[str, int] = Field(default_factory=dict)
	last_analyzed: Optional[datetime] = None


class BatchAnalysisResponse(CamelModel):
	message: str
	analyzed_count: int
	results: List[AnalysisResult]


class MessageResponse(BaseModel):
	message: str
