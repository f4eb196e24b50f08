import pytest

from requirements_api.models import Requirement, RequirementStatus

TEXT = "The system should be user-friendly and fast"


@pytest.fixture
def project(client):
	resp = client.post("/api/projects", json={"name": "Checkout", "description": "Payment flow"})
	assert resp.status_code == 201
	return resp.json()


def _add(client, project_id, text=TEXT, title=None):
	resp = client.post(f"/api/projects/{project_id}/requirements", json={"text": text, "title": title})
	assert resp.status_code == 201
	return resp.json()


def test_project_crud(client, project):
	assert project["name"] == "Checkout"
	assert project["requirementCount"] == 0
	assert project["averageQualityScore"] is None

	listed = client.get("/api/projects").json()
	assert [p["id"] for p in listed] == [project["id"]]

	updated = client.put(f"/api/projects/{project['id']}", json={"name": "Checkout v2", "description": None})
	assert updated.status_code == 200
	assert updated.json()["name"] == "Checkout v2"
	assert updated.json()["description"] is None

	deleted = client.delete(f"/api/projects/{project['id']}")
	assert deleted.json() == {"message": "Project deleted successfully"}
	assert client.get(f"/api/projects/{project['id']}").status_code == 404


def test_missing_project_returns_404(client):
	assert client.get("/api/projects/999").json()["detail"] == "Project not found"
	assert client.put("/api/projects/999", json={"name": "x"}).status_code == 404
	assert client.delete("/api/projects/999").status_code == 404
	assert client.get("/api/projects/999/stats").status_code == 404
	assert client.post("/api/projects/999/requirements", json={"text": "x"}).status_code == 404


def test_project_name_validation(client):
	assert client.post("/api/projects", json={"name": "   "}).status_code == 400
	assert client.post("/api/projects", json={"name": "x" * 201}).status_code == 422


def test_requirement_crud(client, project):
	pid = project["id"]
	created = _add(client, pid, title="Login")
	assert created["status"] == "Draft"
	assert created["projectId"] == pid
	assert created["analysis"] is None

	fetched = client.get(f"/api/projects/{pid}/requirements/{created['id']}")
	assert fetched.json()["title"] == "Login"

	detail = client.get(f"/api/projects/{pid}").json()
	assert detail["requirementCount"] == 1
	assert [r["id"] for r in detail["requirements"]] == [created["id"]]

	deleted = client.delete(f"/api/projects/{pid}/requirements/{created['id']}")
	assert deleted.json() == {"message": "Requirement deleted successfully"}
	assert client.get(f"/api/projects/{pid}/requirements").json() == []
	missing = client.get(f"/api/projects/{pid}/requirements/{created['id']}")
	assert missing.status_code == 404
	assert missing.json()["detail"] == "Requirement not found"


def test_analyze_then_enhance_requirement(client, project):
	pid = project["id"]
	rid = _add(client, pid)["id"]

	analysis = client.post(f"/api/projects/{pid}/requirements/{rid}/analyze")
	assert analysis.status_code == 200
	assert analysis.json()["overallScore"] == 25

	stored = client.get(f"/api/projects/{pid}/requirements/{rid}").json()
	assert stored["status"] == "Analyzed"
	assert stored["qualityScore"] == 25
	assert stored["analysis"]["overallScore"] == 25

	enhancement = client.post(f"/api/projects/{pid}/requirements/{rid}/enhance")
	assert enhancement.status_code == 200
	assert [e["qualityScore"] for e in enhancement.json()["enhancements"]] == [85, 78]

	stored = client.get(f"/api/projects/{pid}/requirements/{rid}").json()
	assert stored["status"] == "Enhanced"
	assert stored["enhancements"]["recommendedIndex"] == 0


def test_enhance_requires_prior_analysis(client, project):
	rid = _add(client, project["id"])["id"]

	resp = client.post(f"/api/projects/{project['id']}/requirements/{rid}/enhance")

	assert resp.status_code == 404
	assert resp.json()["detail"] == "Requirement not found or not analyzed"


def test_update_requirement_resets_analysis(client, project):
	pid = project["id"]
	rid = _add(client, pid)["id"]
	client.post(f"/api/projects/{pid}/requirements/{rid}/analyze")

	resp = client.put(
		f"/api/projects/{pid}/requirements/{rid}",
		json={"text": "The system shall respond within 2 seconds", "title": "Speed"},
	)

	data = resp.json()
	assert data["status"] == "Draft"
	assert data["qualityScore"] is None
	assert data["analysis"] is None
	assert data["enhancements"] is None


def test_analyze_all_and_stats(client, project):
	pid = project["id"]
	_add(client, pid, TEXT)
	_add(client, pid, "The API shall answer within 200 ms")
	_add(client, pid, "The report could be good")

	batch = client.post(f"/api/projects/{pid}/analyze-all")
	assert batch.status_code == 200
	body = batch.json()
	assert body["message"] == "Batch analysis completed"
	assert body["analyzedCount"] == 3
	assert [r["overallScore"] for r in body["results"]] == [25, 75, 25]

	stats = client.get(f"/api/projects/{pid}/stats").json()
	assert stats["totalRequirements"] == 3
	assert stats["analyzedRequirements"] == 3
	assert stats["enhancedRequirements"] == 0
	assert stats["averageQualityScore"] == pytest.approx((25 + 75 + 25) / 3)
	assert stats["statusBreakdown"] == {"Analyzed": 3}
	assert stats["qualityDistribution"] == {"Poor": 2, "Good": 1}
	assert stats["commonIssues"] == {"ambiguity": 2, "completeness": 2, "verifiability": 2, "consistency": 2}
	assert stats["lastAnalyzed"] is not None

	listed = client.get("/api/projects").json()[0]
	assert listed["analyzedCount"] == 3


def test_deleting_project_removes_requirements(client, project, db_session):
	_add(client, project["id"])

	client.delete(f"/api/projects/{project['id']}")

	assert db_session.query(Requirement).count() == 0


def test_undecodable_stored_analysis_is_reported_as_null(client, project, db_session):
	rid = _add(client, project["id"])["id"]
	row = db_session.get(Requirement, rid)
	row.analysis_data = "{broken"
	row.status = RequirementStatus.ANALYZED
	db_session.commit()

	data = client.get(f"/api/projects/{project['id']}/requirements/{rid}").json()

	assert data["status"] == "Analyzed"
	assert data["analysis"] is None
