"""API tests through FastAPI's TestClient.

The identity arrives in X-User-Id / X-User-Role headers; the database is the
in-memory SQLite fixture wired in through a get_db override.
"""

import pytest

API = "/api/v1"


def _headers(user_id: str, role: str = "student") -> dict:
    return {"X-User-Id": user_id, "X-User-Role": role}


STUDENT_A = _headers("student-a")
STUDENT_B = _headers("student-b")
EDUCATOR = _headers("educator-1", "educator")


@pytest.fixture
def objective_id(client, project_id):
    response = client.post(f"{API}/objectives", headers=STUDENT_A, json={
        "student_id": "student-a",
        "project_id": project_id,
        "objective_description": "Prototype a solar dryer",
        "competency_level": 3,
    })
    assert response.status_code == 201
    return response.json()["data"]["objective"]["id"]


class TestIdentity:
    def test_missing_headers(self, client) -> None:
        response = client.get(f"{API}/profiles/me")
        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTHENTICATION_FAILED"

    def test_profile_me(self, client) -> None:
        response = client.get(f"{API}/profiles/me", headers=STUDENT_A)
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "a@example.edu"

    def test_create_profile(self, client) -> None:
        headers = _headers("student-c")
        response = client.post(f"{API}/profiles", headers=headers, json={"email": "c@example.edu"})
        assert response.status_code == 201
        assert response.json()["data"]["id"] == "student-c"

    def test_profile_role_escalation_denied(self, client) -> None:
        headers = _headers("student-d")
        response = client.post(f"{API}/profiles", headers=headers, json={"email": "d@example.edu", "role": "admin"})
        assert response.status_code == 403

    def test_duplicate_profile(self, client) -> None:
        response = client.post(f"{API}/profiles", headers=STUDENT_A, json={"email": "again@example.edu"})
        assert response.status_code == 409


class TestObjectivesAPI:
    def test_create_returns_validation(self, client, project_id) -> None:
        response = client.post(f"{API}/objectives", headers=STUDENT_A, json={
            "student_id": "student-a",
            "project_id": project_id,
            "objective_description": "Survey household energy use",
        })
        body = response.json()
        assert response.status_code == 201
        assert body["success"] is True
        assert body["data"]["validation"]["is_valid"] is True

    def test_created_objective_starts_as_draft(self, client, project_id) -> None:
        response = client.post(f"{API}/objectives", headers=STUDENT_A, json={
            "student_id": "student-a",
            "project_id": project_id,
            "objective_description": "Map local water sources",
            "progress_status": "revised",
        })
        assert response.status_code == 201
        assert response.json()["data"]["objective"]["progress_status"] == "draft"

    def test_team_phrase_is_422(self, client, project_id) -> None:
        response = client.post(f"{API}/objectives", headers=STUDENT_A, json={
            "student_id": "student-a",
            "project_id": project_id,
            "objective_description": "Collective assessment of our prototype",
        })
        body = response.json()
        assert response.status_code == 422
        assert body["success"] is False
        assert body["error_code"] == "INTEGRITY_VIOLATION"
        assert '"collective assessment"' in body["extra"]["errors"][0]

    def test_cross_student_read_is_403(self, client, objective_id) -> None:
        response = client.get(f"{API}/objectives/{objective_id}", headers=STUDENT_B)
        assert response.status_code == 403
        assert response.json()["error_code"] == "ACCESS_DENIED"

    def test_missing_objective_is_404(self, client) -> None:
        response = client.get(f"{API}/objectives/missing", headers=STUDENT_A)
        assert response.status_code == 404

    def test_transition_and_conflict(self, client, objective_id) -> None:
        ok = client.post(f"{API}/objectives/{objective_id}/transition", headers=STUDENT_A, json={"target_status": "active"})
        assert ok.status_code == 200
        assert ok.json()["data"]["progress_status"] == "active"

        conflict = client.post(f"{API}/objectives/{objective_id}/transition", headers=STUDENT_A, json={"target_status": "draft"})
        assert conflict.status_code == 409

    def test_list_and_minimum(self, client, objective_id, project_id) -> None:
        listed = client.get(f"{API}/students/student-a/projects/{project_id}/objectives", headers=STUDENT_A)
        assert [o["id"] for o in listed.json()["data"]] == [objective_id]

        minimum = client.get(f"{API}/students/student-a/projects/{project_id}/objectives/minimum", headers=STUDENT_A)
        assert minimum.json()["data"]["is_valid"] is False

    def test_progress(self, client, objective_id, project_id) -> None:
        response = client.get(f"{API}/students/student-a/projects/{project_id}/objectives/progress", headers=STUDENT_A)
        entry = response.json()["data"][0]
        assert entry["objective"]["id"] == objective_id
        assert entry["evidence_count"] == 0


class TestEvidenceAndAssessmentAPI:
    def test_full_flow(self, client, objective_id, project_id) -> None:
        evidence = client.post(f"{API}/evidence", headers=STUDENT_A, json={
            "learning_objective_id": objective_id,
            "student_id": "student-a",
            "type": "image",
            "title": "Dryer photo",
            "external_url": "https://example.org/dryer.jpg",
        })
        assert evidence.status_code == 201

        portfolio = client.get(f"{API}/students/student-a/projects/{project_id}/portfolio", headers=STUDENT_A)
        assert portfolio.json()["data"] == {"current": 1, "target": 10, "percentage": 10}

        submitted = client.post(f"{API}/assessments", headers=STUDENT_A, json={
            "student_id": "student-a",
            "project_id": project_id,
            "learning_objective_id": objective_id,
            "competency_achievement": 4,
        })
        assert submitted.status_code == 201
        assessment_id = submitted.json()["data"]["assessment"]["id"]

        feedback = client.post(f"{API}/assessments/{assessment_id}/feedback", headers=EDUCATOR, json={
            "educator_feedback": "Well documented",
            "assessment_score": 91,
        })
        assert feedback.status_code == 200
        assert feedback.json()["data"]["assessment"]["status"] == "under_review"

        deleted = client.delete(f"{API}/assessments/{assessment_id}", headers=STUDENT_A)
        assert deleted.status_code == 403

    def test_team_grade_field_is_422(self, client, objective_id, project_id) -> None:
        response = client.post(f"{API}/assessments", headers=STUDENT_A, json={
            "student_id": "student-a",
            "project_id": project_id,
            "learning_objective_id": objective_id,
            "group_score": 70,
        })
        assert response.status_code == 422
        assert response.json()["error_code"] == "INTEGRITY_VIOLATION"

    def test_educator_submission_is_403(self, client, objective_id, project_id) -> None:
        response = client.post(f"{API}/assessments", headers=EDUCATOR, json={
            "student_id": "student-a",
            "project_id": project_id,
            "learning_objective_id": objective_id,
        })
        assert response.status_code == 403


class TestValidationAPI:
    def test_dry_run_objective(self, client) -> None:
        response = client.post(f"{API}/validation/objective", headers=STUDENT_A, json={
            "student_id": "s1", "objective_description": "", "competency_level": 3,
        })
        assert response.status_code == 200
        assert response.json()["data"]["errors"] == ["Learning objective must have a description"]

    def test_dry_run_permissions(self, client) -> None:
        response = client.post(f"{API}/validation/permissions", headers=EDUCATOR, json={
            "user_id": "educator-1", "role": "educator", "operation": "create", "target_student_id": "student-a",
        })
        assert response.json()["data"]["is_valid"] is False

    def test_dry_run_access(self, client) -> None:
        response = client.post(f"{API}/validation/access", headers=STUDENT_A, json={
            "record": {"id": "o1", "student_id": "student-b", "objective_description": "x"},
            "requester_id": "student-a",
            "requester_role": "student",
            "operation": "select",
        })
        assert response.json()["data"]["allowed"] is False

    def test_malformed_record(self, client) -> None:
        response = client.post(f"{API}/validation/objective", headers=STUDENT_A, json={
            "student_id": "s1", "objective_description": "x", "competency_level": "high",
        })
        assert response.status_code == 422
        assert response.json()["error_code"] == "MALFORMED_RECORD"


class TestMetricsEndpoint:
    def test_prometheus_exposition(self, client) -> None:
        client.post(f"{API}/validation/objective", headers=STUDENT_A, json={"student_id": "s1"})
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "pblab_validations_total" in response.text
