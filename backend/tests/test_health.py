from sqlalchemy.exc import OperationalError

from requirements_api.db import get_db
from requirements_api.main import app


def test_api_health(client):
	resp = client.get("/api/health")

	assert resp.status_code == 200
	data = resp.json()
	assert data["status"] == "healthy"
	assert data["environment"]


def test_database_health(client):
	resp = client.get("/api/health/database")

	assert resp.status_code == 200
	assert resp.json()["status"] == "healthy"
	assert resp.json()["dialect"] == "sqlite"


def test_aggregate_health_is_degraded_without_perplexity(client):
	resp = client.get("/health")

	assert resp.status_code == 200
	assert resp.json() == {"status": "degraded", "checks": {"database": True, "perplexity": False}}


class BrokenSession:
	def execute(self, *args, **kwargs):
		raise OperationalError("SELECT 1", {}, Exception("database is locked"))


def test_broken_database_reports_unhealthy(client):
	def _broken_db():
		yield BrokenSession()

	app.dependency_overrides[get_db] = _broken_db

	aggregate = client.get("/health")
	database = client.get("/api/health/database")

	assert aggregate.status_code == 503
	assert aggregate.json()["status"] == "unhealthy"
	assert database.status_code == 500
	assert database.json()["status"] == "unhealthy"


def test_info(client):
	data = client.get("/info").json()

	assert data["name"] == "Requirements Quality Analyzer API"
	assert data["perplexityConfigured"] is False
