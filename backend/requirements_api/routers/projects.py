from __future__ import annotations
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..analysis_service import RequirementAnalyzer, get_analyzer, is_processing_error
from ..repository import ProjectRepository, decode_stored_analysis, get_repository, project_to_out, requirement_to_out
from ..schemas import (
	AnalysisResult,
	BatchAnalysisResponse,
	EnhancementResult,
	MessageResponse,
	ProjectCreate,
	ProjectOut,
	ProjectStats,
	ProjectUpdate,
	RequirementCreate,
	RequirementOut,
	RequirementUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])

PROJECT_NOT_FOUND = "Project not found"
REQUIREMENT_NOT_FOUND = "Requirement not found"


@router.get("", response_model=List[ProjectOut])
def list_projects(repo: ProjectRepository = Depends(get_repository)):
	return [project_to_out(p) for p in repo.list_projects()]


@router.post("", response_model=ProjectOut, status_code=201)
def create_project(req: ProjectCreate, repo: ProjectRepository = Depends(get_repository)):
	name = req.name.strip()
	if not name:
		raise HTTPException(status_code=400, detail="name is required")
	project = repo.create_project(ProjectCreate(name=name, description=req.description))
	return project_to_out(project)


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: int, repo: ProjectRepository = Depends(get_repository)):
	project = repo.get_project(project_id)
	if project is None:
		raise HTTPException(status_code=404, detail=PROJECT_NOT_FOUND)
	return project_to_out(project, include_requirements=True)


@router.put("/{project_id}", response_model=ProjectOut)
def update_project(project_id: int, req: ProjectUpdate, repo: ProjectRepository = Depends(get_repository)):
	name = req.name.strip()
	if not name:
		raise HTTPException(status_code=400, detail="name is required")
	project = repo.update_project(project_id, ProjectUpdate(name=name, description=req.description))
	if project is None:
		raise HTTPException(status_code=404, detail=PROJECT_NOT_FOUND)
	logger.info("Updated project %s", project_id)
	return project_to_out(project)


@router.delete("/{project_id}", response_model=MessageResponse)
def delete_project(project_id: int, repo: ProjectRepository = Depends(get_repository)):
	if not repo.delete_project(project_id):
		raise HTTPException(status_code=404, detail=PROJECT_NOT_FOUND)
	return MessageResponse(message="Project deleted successfully")


@router.get("/{project_id}/stats", response_model=ProjectStats)
def project_stats(project_id: int, repo: ProjectRepository = Depends(get_repository)):
	stats = repo.project_stats(project_id)
	if stats is None:
		raise HTTPException(status_code=404, detail=PROJECT_NOT_FOUND)
	return stats


# ---- requirements of a project ----

@router.get("/{project_id}/requirements", response_model=List[RequirementOut])
def list_requirements(project_id: int, repo: ProjectRepository = Depends(get_repository)):
	return [requirement_to_out(r) for r in repo.list_requirements(project_id)]


@router.post("/{project_id}/requirements", response_model=RequirementOut, status_code=201)
def add_requirement(project_id: int, req: RequirementCreate, repo: ProjectRepository = Depends(get_repository)):
	if not req.text.strip():
		raise HTTPException(status_code=400, detail="Requirement text is required")
	requirement = repo.add_requirement(project_id, req)
	if requirement is None:
		raise HTTPException(status_code=404, detail=PROJECT_NOT_FOUND)
	logger.info("Added requirement %s to project %s", requirement.id, project_id)
	return requirement_to_out(requirement)


@router.get("/{project_id}/requirements/{requirement_id}", response_model=RequirementOut)
def get_requirement(project_id: int, requirement_id: int, repo: ProjectRepository = Depends(get_repository)):
	requirement = repo.get_requirement(project_id, requirement_id)
	if requirement is None:
		raise HTTPException(status_code=404, detail=REQUIREMENT_NOT_FOUND)
	return requirement_to_out(requirement)


@router.put("/{project_id}/requirements/{requirement_id}", response_model=RequirementOut)
def update_requirement(
	project_id: int,
	requirement_id: int,
	req: RequirementUpdate,
	repo: ProjectRepository = Depends(get_repository),
):
	if not req.text.strip():
		raise HTTPException(status_code=400, detail="Requirement text is required")
	requirement = repo.update_requirement(project_id, requirement_id, req)
	if requirement is None:
		raise HTTPException(status_code=404, detail=REQUIREMENT_NOT_FOUND)
	logger.info("Updated requirement %s in project %s", requirement_id, project_id)
	return requirement_to_out(requirement)


@router.delete("/{project_id}/requirements/{requirement_id}", response_model=MessageResponse)
def delete_requirement(project_id: int, requirement_id: int, repo: ProjectRepository = Depends(get_repository)):
	if not repo.delete_requirement(project_id, requirement_id):
		raise HTTPException(status_code=404, detail=REQUIREMENT_NOT_FOUND)
	logger.info("Deleted requirement %s from project %s", requirement_id, project_id)
	return MessageResponse(message="Requirement deleted successfully")


@router.post("/{project_id}/requirements/{requirement_id}/analyze", response_model=AnalysisResult)
async def analyze_requirement(
	project_id: int,
	requirement_id: int,
	repo: ProjectRepository = Depends(get_repository),
	analyzer: RequirementAnalyzer = Depends(get_analyzer),
):
	requirement = repo.get_requirement(project_id, requirement_id)
	if requirement is None:
		raise HTTPException(status_code=404, detail=REQUIREMENT_NOT_FOUND)
	try:
		analysis = await analyzer.analyze(requirement.text)
		repo.save_analysis(requirement, analysis)
	except Exception:
		logger.exception("Error analyzing requirement %s in project %s", requirement_id, project_id)
		repo.mark_failed(requirement)
		raise HTTPException(status_code=500, detail="Failed to analyze requirement")
	logger.info("Analyzed requirement %s in project %s", requirement_id, project_id)
	return analysis


@router.post("/{project_id}/requirements/{requirement_id}/enhance", response_model=EnhancementResult)
async def enhance_requirement(
	project_id: int,
	requirement_id: int,
	repo: ProjectRepository = Depends(get_repository),
	analyzer: RequirementAnalyzer = Depends(get_analyzer),
):
	requirement = repo.get_requirement(project_id, requirement_id)
	analysis = decode_stored_analysis(requirement) if requirement is not None else None
	if requirement is None or analysis is None:
		raise HTTPException(status_code=404, detail="Requirement not found or not analyzed")
	try:
		enhancement = await analyzer.enhance(requirement.text, analysis.issues)
		repo.save_enhancement(requirement, enhancement)
	except Exception:
		logger.exception("Error enhancing requirement %s in project %s", requirement_id, project_id)
		raise HTTPException(status_code=500, detail="Failed to enhance requirement")
	logger.info("Generated enhancements for requirement %s in project %s", requirement_id, project_id)
	return enhancement


@router.post("/{project_id}/analyze-all", response_model=BatchAnalysisResponse)
async def analyze_all(
	project_id: int,
	repo: ProjectRepository = Depends(get_repository),
	analyzer: RequirementAnalyzer = Depends(get_analyzer),
):
	if repo.get_project(project_id) is None:
		raise HTTPException(status_code=404, detail=PROJECT_NOT_FOUND)
	requirements = repo.list_requirements(project_id)
	results = await analyzer.batch_analyze([r.text for r in requirements])
	for requirement, analysis in zip(requirements, results):
		if is_processing_error(analysis):
			repo.mark_failed(requirement)
		else:
			repo.save_analysis(requirement, analysis)
	logger.info("Analyzed all requirements in project %s", project_id)
	return BatchAnalysisResponse(message="Batch analysis completed", analyzed_count=len(results), results=results)
