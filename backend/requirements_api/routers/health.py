from __future__ import annotations
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy.sql import text

from ..db import get_db
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])


def _now() -> str:
	return datetime.now(timezone.utc).isoformat()


def check_database(db: Session) -> bool:
	try:
		return bool(db.execute(text("SELECT 1")).scalar())
	except Exception:
		logger.exception("Database health check failed")
		return False


@router.get("")
def get_health():
	return {
		"status": "healthy",
		"message": "Requirements Analyzer API is running",
		"timestamp": _now(),
		"environment": settings.environment,
	}


@router.get("/database")
def get_database_health(db: Session = Depends(get_db)):
	try:
		ok = bool(db.execute(text("SELECT 1")).scalar())
	except Exception as e:
		logger.exception("Database health check failed")
		return JSONResponse(
			status_code=500,
			content={"status": "unhealthy", "message": f"Database connection failed: {e}", "timestamp": _now()},
		)
	if not ok:
		return JSONResponse(
			status_code=500,
			content={"status": "unhealthy", "message": "Database query failed", "timestamp": _now()},
		)
	bind = db.get_bind()
	return {
		"status": "healthy",
		"message": "Database connection successful",
		"database": bind.url.database,
		"dialect": bind.dialect.name,
		"timestamp": _now(),
	}
