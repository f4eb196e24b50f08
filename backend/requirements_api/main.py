from __future__ import annotations
import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .analysis_service import RequirementAnalyzer, get_analyzer
from .db import get_db, init_db
from .logging_config import configure_logging
from .settings import settings
from .routers import health, projects, requirements
from .routers.health import check_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	configure_logging()
	init_db()
	logger.info("Requirements Quality Analyzer API starting up...")
	logger.info("Environment: %s", settings.environment)
	if settings.perplexity_configured:
		logger.info("Perplexity API key configured successfully")
	else:
		logger.warning("Perplexity API key is not configured. The service will use mock data.")
	yield
	logger.info("Requirements Quality Analyzer API shutting down")


app = FastAPI(
	title="Requirements Quality Analyzer API",
	description="API for analyzing and enhancing software requirements quality using AI",
	version="1.0.0",
	lifespan=lifespan,
)
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
app.include_router(health.router)
app.include_router(requirements.router)
app.include_router(projects.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
	start = time.perf_counter()
	response = await call_next(request)
	elapsed_ms = (time.perf_counter() - start) * 1000
	logger.info(
		"HTTP %s %s responded %s in %.4f ms",
		request.method,
		request.url.path,
		response.status_code,
		elapsed_ms,
	)
	return response


@app.get("/health")
async def aggregate_health(db: Session = Depends(get_db), analyzer: RequirementAnalyzer = Depends(get_analyzer)):
	database_ok = check_database(db)
	perplexity_ok = await analyzer.test_connection()
	if not database_ok:
		status = "unhealthy"
	elif not perplexity_ok:
		# Mock engine keeps analysis available
		status = "degraded"
	else:
		status = "healthy"
	body = {"status": status, "checks": {"database": database_ok, "perplexity": perplexity_ok}}
	return JSONResponse(status_code=503 if status == "unhealthy" else 200, content=body)


@app.get("/info")
def info():
	return {
		"name": app.title,
		"version": app.version,
		"environment": settings.environment,
		"perplexityConfigured": settings.perplexity_configured,
	}
