from __future__ import annotations
import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy.orm import Session

from .db import get_db
from .models import Project, Requirement, RequirementStatus
from .schemas import (
	AnalysisResult,
	EnhancementResult,
	ProjectCreate,
	ProjectOut,
	ProjectStats,
	ProjectUpdate,
	RequirementCreate,
	RequirementOut,
	RequirementUpdate,
)

logger = logging.getLogger(__name__)


def quality_band(score: int) -> str:
	if score >= 80:
		return "Excellent"
	if score >= 60:
		return "Good"
	if score >= 40:
		return "Fair"
	return "Poor"


def decode_stored_analysis(requirement: Requirement) -> Optional[AnalysisResult]:
	if not requirement.analysis_data:
		return None
	try:
		return AnalysisResult.model_validate_json(requirement.analysis_data)
	except ValidationError:
		logger.warning("Failed to parse analysis data for requirement %s", requirement.id)
		return None


def decode_stored_enhancement(requirement: Requirement) -> Optional[EnhancementResult]:
	if not requirement.enhancement_data:
		return None
	try:
		return EnhancementResult.model_validate_json(requirement.enhancement_data)
	except ValidationError:
		logger.warning("Failed to parse enhancement data for requirement %s", requirement.id)
		return None


def _average(scores: List[int]) -> Optional[float]:
	if not scores:
		return None
	return sum(scores) / len(scores)


def requirement_to_out(requirement: Requirement) -> RequirementOut:
	return RequirementOut(
		id=requirement.id,
		project_id=requirement.project_id,
		text=requirement.text,
		title=requirement.title,
		status=RequirementStatus(requirement.status).value,
		quality_score=requirement.quality_score,
		created_at=requirement.created_at,
		updated_at=requirement.updated_at,
		analysis=decode_stored_analysis(requirement),
		enhancements=decode_stored_enhancement(requirement),
	)


def project_to_out(project: Project, *, include_requirements: bool = False) -> ProjectOut:
	requirements = list(project.requirements)
	return ProjectOut(
		id=project.id,
		name=project.name,
		description=project.description,
		created_at=project.created_at,
		updated_at=project.updated_at,
		requirement_count=len(requirements),
		analyzed_count=sum(1 for r in requirements if r.status != RequirementStatus.DRAFT),
		average_quality_score=_average([r.quality_score for r in requirements if r.quality_score is not None]),
		requirements=[requirement_to_out(r) for r in requirements] if include_requirements else None,
	)


class ProjectRepository:
	"""Create/read/update/delete for projects and their requirements."""

	def __init__(self, db: Session) -> None:
		self.db = db

	# ---- projects ----

	def list_projects(self) -> List[Project]:
		return self.db.query(Project).order_by(Project.id).all()

	def get_project(self, project_id: int) -> Optional[Project]:
		return self.db.get(Project, project_id)

	def create_project(self, data: ProjectCreate) -> Project:
		now = datetime.utcnow()
		project = Project(name=data.name, description=data.description, created_at=now, updated_at=now)
		self.db.add(project)
		self.db.commit()
		self.db.refresh(project)
		logger.info("Created project %s: %s", project.id, project.name)
		return project

	def update_project(self, project_id: int, data: ProjectUpdate) -> Optional[Project]:
		project = self.get_project(project_id)
		if project is None:
			return None
		project.name = data.name
		project.description = data.description
		project.updated_at = datetime.utcnow()
		self.db.commit()
		self.db.refresh(project)
		return project

	def delete_project(self, project_id: int) -> bool:
		project = self.get_project(project_id)
		if project is None:
			return False
		# Requirements go with it (delete-orphan cascade)
		self.db.delete(project)
		self.db.commit()
		logger.info("Deleted project %s", project_id)
		return True

	def _touch_project(self, project_id: int) -> None:
		project = self.get_project(project_id)
		if project is not None:
			project.updated_at = datetime.utcnow()

	# ---- requirements ----

	def list_requirements(self, project_id: int) -> List[Requirement]:
		return (
			self.db.query(Requirement)
			.filter(Requirement.project_id == project_id)
			.order_by(Requirement.id)
			.all()
		)

	def get_requirement(self, project_id: int, requirement_id: int) -> Optional[Requirement]:
		return (
			self.db.query(Requirement)
			.filter(Requirement.project_id == project_id, Requirement.id == requirement_id)
			.first()
		)

	def add_requirement(self, project_id: int, data: RequirementCreate) -> Optional[Requirement]:
		project = self.get_project(project_id)
		if project is None:
			return None
		now = datetime.utcnow()
		requirement = Requirement(
			project_id=project_id,
			text=data.text,
			title=data.title,
			status=RequirementStatus.DRAFT,
			created_at=now,
			updated_at=now,
		)
		self.db.add(requirement)
		project.updated_at = now
		self.db.commit()
		self.db.refresh(requirement)
		return requirement

	def update_requirement(self, project_id: int, requirement_id: int, data: RequirementUpdate) -> Optional[Requirement]:
		requirement = self.get_requirement(project_id, requirement_id)
		if requirement is None:
			return None
		requirement.text = data.text
		requirement.title = data.title
		# New text invalidates earlier analysis
		requirement.status = RequirementStatus.DRAFT
		requirement.quality_score = None
		requirement.analysis_data = None
		requirement.enhancement_data = None
		requirement.updated_at = datetime.utcnow()
		self._touch_project(project_id)
		self.db.commit()
		self.db.refresh(requirement)
		return requirement

	def delete_requirement(self, project_id: int, requirement_id: int) -> bool:
		requirement = self.get_requirement(project_id, requirement_id)
		if requirement is None:
			return False
		self.db.delete(requirement)
		self._touch_project(project_id)
		self.db.commit()
		return True

	def save_analysis(self, requirement: Requirement, analysis: AnalysisResult) -> Requirement:
		requirement.analysis_data = analysis.model_dump_json(by_alias=True)
		requirement.quality_score = int(analysis.overall_score)
		requirement.status = RequirementStatus.ANALYZED
		requirement.updated_at = datetime.utcnow()
		self._touch_project(requirement.project_id)
		self.db.commit()
		return requirement

	def save_enhancement(self, requirement: Requirement, enhancement: EnhancementResult) -> Requirement:
		requirement.enhancement_data = enhancement.model_dump_json(by_alias=True)
		requirement.status = RequirementStatus.ENHANCED
		requirement.updated_at = datetime.utcnow()
		self._touch_project(requirement.project_id)
		self.db.commit()
		return requirement

	def mark_failed(self, requirement: Requirement) -> None:
		self.db.rollback()
		requirement.status = RequirementStatus.FAILED
		requirement.updated_at = datetime.utcnow()
		self.db.commit()

	# ---- stats ----

	def project_stats(self, project_id: int) -> Optional[ProjectStats]:
		project = self.get_project(project_id)
		if project is None:
			return None
		requirements = list(project.requirements)
		analyzed = [r for r in requirements if r.status != RequirementStatus.DRAFT]
		scored = [r.quality_score for r in analyzed if r.quality_score is not None]

		status_breakdown: Dict[str, int] = {}
		for r in requirements:
			key = RequirementStatus(r.status).value
			status_breakdown[key] = status_breakdown.get(key, 0) + 1

		quality_distribution: Dict[str, int] = {}
		for score in scored:
			band = quality_band(score)
			quality_distribution[band] = quality_distribution.get(band, 0) + 1

		common_issues: Dict[str, int] = {}
		for r in analyzed:
			analysis = decode_stored_analysis(r)
			if analysis is None:
				continue
			for issue in analysis.issues:
				if issue.type:
					common_issues[issue.type] = common_issues.get(issue.type, 0) + 1

		return ProjectStats(
			project_id=project.id,
			total_requirements=len(requirements),
			analyzed_requirements=len(analyzed),
			enhanced_requirements=sum(1 for r in requirements if r.status == RequirementStatus.ENHANCED),
			average_quality_score=_average(scored),
			status_breakdown=status_breakdown,
			quality_distribution=quality_distribution,
			common_issues=common_issues,
			last_analyzed=max((r.updated_at for r in analyzed), default=None),
		)


def get_repository(db: Session = Depends(get_db)) -> ProjectRepository:
	return ProjectRepository(db)
