from __future__ import annotations
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
from .db import Base


class RequirementStatus(str, enum.Enum):
	DRAFT = "Draft"
	ANALYZED = "Analyzed"
	ENHANCED = "Enhanced"
	FAILED = "Failed"


class Project(Base):
	__tablename__ = "projects"
	id = Column(Integer, primary_key=True, index=True)
	name = Column(String(200), nullable=False)
	description = Column(String(1000), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	requirements = relationship(
		"Requirement",
		back_populates="project",
		cascade="all, delete-orphan",
		order_by="Requirement.id",
	)


class Requirement(Base):
	__tablename__ = "requirements"
	id = Column(Integer, primary_key=True, index=True)
	project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
	text = Column(String(5000), nullable=False)
	title = Column(String(200), nullable=True)
	status = Column(
		Enum(RequirementStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
		default=RequirementStatus.DRAFT,
		nullable=False,
	)
	quality_score = Column(Integer, nullable=True)
	analysis_data = Column(Text, nullable=True)  # JSON string of AnalysisResult
	enhancement_data = Column(Text, nullable=True)  # JSON string of EnhancementResult
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	project = relationship("Project", back_populates="requirements")
