import os

import pytest

# Settings are read at import time; keep tests off the real key, DB and log dir
os.environ["PERPLEXITY_API_KEY"] = ""
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = ""

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from requirements_api.analysis_service import RequirementAnalyzer, get_analyzer
from requirements_api.db import Base, get_db
from requirements_api.main import app
from requirements_api import models  # noqa: F401


@pytest.fixture
def db_session():
	engine = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(bind=engine)
	TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
	session = TestingSession()
	try:
		yield session
	finally:
		session.close()
		Base.metadata.drop_all(bind=engine)
		engine.dispose()


@pytest.fixture
def mock_analyzer():
	return RequirementAnalyzer(client=None, batch_delay_seconds=0)


@pytest.fixture
def client(db_session, mock_analyzer):
	def _get_db():
		yield db_session

	async def _get_analyzer():
		yield mock_analyzer

	app.dependency_overrides[get_db] = _get_db
	app.dependency_overrides[get_analyzer] = _get_analyzer
	try:
		yield TestClient(app)
	finally:
		app.dependency_overrides.clear()
