"""Integration tests for IndividualAssessmentService over SQLite.

Exercises the full flow: candidate → validator → access policy → repository.
"""

import pytest

from pblab.api.exceptions import (
    AccessDeniedError,
    IntegrityViolationError,
    InvalidTransitionError,
    RecordNotFoundError,
)


@pytest.fixture
def objective(service, student_a, project_id):
    created, _ = service.create_objective(student_a, {
        "student_id": "student-a",
        "project_id": project_id,
        "objective_description": "Design a rainwater harvesting system",
        "competency_level": 3,
    })
    return created


@pytest.fixture
def artifact(service, student_a, objective):
    created, _ = service.add_evidence(student_a, {
        "learning_objective_id": objective.id,
        "student_id": "student-a",
        "type": "document",
        "title": "Catchment calculations",
        "file_path": "evidence/student-a/catchment.pdf",
    })
    return created


@pytest.fixture
def assessment(service, student_a, objective, artifact, project_id):
    created, _ = service.submit_assessment(student_a, {
        "student_id": "student-a",
        "project_id": project_id,
        "learning_objective_id": objective.id,
        "competency_achievement": 3,
    })
    return created


# ===================================================================
# Objectives
# ===================================================================

class TestObjectives:
    def test_create(self, objective) -> None:
        assert objective.id
        assert objective.progress_status == "draft"

    def test_client_status_ignored_on_create(self, service, student_a, project_id) -> None:
        created, _ = service.create_objective(student_a, {
            "student_id": "student-a",
            "project_id": project_id,
            "objective_description": "Build a soil moisture sensor",
            "progress_status": "completed",
        })
        assert created.progress_status == "draft"
        assert service.get_objective(student_a, created.id).progress_status == "draft"

    def test_team_language_rejected(self, service, student_a, project_id) -> None:
        with pytest.raises(IntegrityViolationError) as exc_info:
            service.create_objective(student_a, {
                "student_id": "student-a",
                "project_id": project_id,
                "objective_description": "Maximise our team score",
            })
        assert exc_info.value.status_code == 422
        assert '"team score"' in exc_info.value.extra["errors"][0]

    def test_cannot_create_for_another_student(self, service, student_a, project_id) -> None:
        with pytest.raises(AccessDeniedError):
            service.create_objective(student_a, {
                "student_id": "student-b",
                "project_id": project_id,
                "objective_description": "Write a report",
            })

    def test_educator_cannot_author(self, service, educator, project_id) -> None:
        with pytest.raises(AccessDeniedError):
            service.create_objective(educator, {
                "student_id": "educator-1",
                "project_id": project_id,
                "objective_description": "Write a report",
            })

    def test_unknown_project(self, service, student_a, seeded) -> None:
        with pytest.raises(RecordNotFoundError):
            service.create_objective(student_a, {
                "student_id": "student-a",
                "project_id": "no-such-project",
                "objective_description": "Write a report",
            })

    def test_list_is_row_filtered(self, service, student_a, student_b, objective, project_id) -> None:
        assert [o.id for o in service.list_objectives(student_a, "student-a", project_id)] == [objective.id]
        assert service.list_objectives(student_b, "student-a", project_id) == []

    def test_get_other_students_objective_denied(self, service, student_b, objective) -> None:
        with pytest.raises(AccessDeniedError):
            service.get_objective(student_b, objective.id)

    def test_minimum_objectives(self, service, student_a, objective, project_id) -> None:
        result = service.check_minimum_objectives(student_a, "student-a", project_id)
        assert result.errors == ["Minimum 3 individual learning objectives required. Currently have 1."]

    def test_progress(self, service, student_a, artifact, project_id) -> None:
        progress = service.list_objectives_with_progress(student_a, "student-a", project_id)
        assert len(progress) == 1
        assert progress[0]["evidence_count"] == 1
        assert progress[0]["progress_percentage"] == 10


class TestObjectiveLifecycle:
    def test_transition_path(self, service, student_a, objective) -> None:
        active = service.transition_objective(student_a, objective.id, "active")
        completed = service.transition_objective(student_a, active.id, "completed")
        assert completed.progress_status == "completed"

    def test_invalid_transition(self, service, student_a, objective) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            service.transition_objective(student_a, objective.id, "completed")
        assert exc_info.value.status_code == 409

    def test_non_owner_transition_denied(self, service, student_b, objective) -> None:
        with pytest.raises(AccessDeniedError):
            service.transition_objective(student_b, objective.id, "active")

    def test_editing_completed_objective_revises_it(self, service, student_a, objective) -> None:
        service.transition_objective(student_a, objective.id, "active")
        service.transition_objective(student_a, objective.id, "completed")

        updated, _ = service.update_objective(student_a, objective.id, {"competency_level": 4})
        assert updated.progress_status == "revised"
        assert updated.competency_level == 4

    def test_editing_completed_objective_with_same_status_revises_it(self, service, student_a, objective) -> None:
        service.transition_objective(student_a, objective.id, "active")
        service.transition_objective(student_a, objective.id, "completed")

        updated, _ = service.update_objective(student_a, objective.id, {
            "objective_description": "Rewritten goal",
            "progress_status": "completed",
        })
        assert updated.progress_status == "revised"
        assert updated.objective_description == "Rewritten goal"

    def test_student_id_cannot_change(self, service, student_a, objective) -> None:
        with pytest.raises(IntegrityViolationError):
            service.update_objective(student_a, objective.id, {"student_id": "student-b"})

    def test_owner_delete(self, service, student_a, objective) -> None:
        assert service.delete_objective(student_a, objective.id) is True
        with pytest.raises(RecordNotFoundError):
            service.get_objective(student_a, objective.id)


# ===================================================================
# Evidence
# ===================================================================

class TestEvidence:
    def test_add_and_list(self, service, student_a, objective, artifact) -> None:
        assert [a.id for a in service.list_evidence(student_a, objective.id)] == [artifact.id]

    def test_team_language_warns(self, service, student_a, objective) -> None:
        _, result = service.add_evidence(student_a, {
            "learning_objective_id": objective.id,
            "student_id": "student-a",
            "title": "Group work minutes",
            "external_url": "https://example.org/minutes",
        })
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_missing_locator_rejected(self, service, student_a, objective) -> None:
        with pytest.raises(IntegrityViolationError):
            service.add_evidence(student_a, {
                "learning_objective_id": objective.id,
                "student_id": "student-a",
                "title": "No content",
            })

    def test_evidence_on_other_students_objective(self, service, student_b, objective) -> None:
        with pytest.raises(IntegrityViolationError) as exc_info:
            service.add_evidence(student_b, {
                "learning_objective_id": objective.id,
                "student_id": "student-b",
                "title": "Sneaky upload",
                "file_path": "x.pdf",
            })
        assert exc_info.value.extra["errors"] == [
            "Evidence artifact student_id must match learning objective student_id"
        ]

    def test_portfolio_count(self, service, student_a, artifact, project_id) -> None:
        assert service.get_portfolio_count(student_a, "student-a", project_id) == {
            "current": 1, "target": 10, "percentage": 10,
        }

    def test_portfolio_count_without_objectives(self, service, student_b, project_id) -> None:
        assert service.get_portfolio_count(student_b, "student-b", project_id) == {
            "current": 0, "target": 10, "percentage": 0,
        }

    def test_delete_by_non_owner_denied(self, service, student_b, artifact) -> None:
        with pytest.raises(AccessDeniedError):
            service.delete_evidence(student_b, artifact.id)


# ===================================================================
# Assessments
# ===================================================================

class TestAssessments:
    def test_submit(self, assessment) -> None:
        assert assessment.status == "submitted"
        assert assessment.assessed_by is None

    def test_educator_fields_stripped_on_submit(self, service, student_a, objective, artifact, project_id) -> None:
        created, _ = service.submit_assessment(student_a, {
            "student_id": "student-a",
            "project_id": project_id,
            "learning_objective_id": objective.id,
            "assessment_score": 100,
            "educator_feedback": "Self-awarded",
            "status": "completed",
        })
        assert created.assessment_score is None
        assert created.educator_feedback is None
        assert created.status == "submitted"

    def test_team_field_rejected(self, service, student_a, objective, project_id) -> None:
        with pytest.raises(IntegrityViolationError) as exc_info:
            service.submit_assessment(student_a, {
                "student_id": "student-a",
                "project_id": project_id,
                "learning_objective_id": objective.id,
                "team_grade": 95,
            })
        assert any('"team_grade"' in e for e in exc_info.value.extra["errors"])

    def test_educator_cannot_submit(self, service, educator, objective, project_id) -> None:
        with pytest.raises(AccessDeniedError):
            service.submit_assessment(educator, {
                "student_id": "student-a",
                "project_id": project_id,
                "learning_objective_id": objective.id,
            })

    def test_project_mismatch_rejected(self, service, student_a, objective) -> None:
        with pytest.raises(IntegrityViolationError) as exc_info:
            service.submit_assessment(student_a, {
                "student_id": "student-a",
                "project_id": "another-project",
                "learning_objective_id": objective.id,
            })
        assert exc_info.value.extra["errors"] == [
            "Assessment project_id must match learning objective project_id"
        ]

    def test_other_student_cannot_read(self, service, student_b, assessment) -> None:
        with pytest.raises(AccessDeniedError):
            service.get_assessment(student_b, assessment.id)

    def test_course_educator_attaches_feedback(self, service, educator, assessment) -> None:
        updated, _ = service.attach_feedback(
            educator, assessment.id, educator_feedback="Clear calculations", assessment_score=88
        )
        assert updated.status == "under_review"
        assert updated.assessed_by == "educator-1"
        assert service.get_assessment(educator, assessment.id).assessment_score == 88

    def test_other_educator_has_no_grant(self, service, other_educator, assessment) -> None:
        with pytest.raises(AccessDeniedError):
            service.attach_feedback(other_educator, assessment.id, educator_feedback="Nice")
        with pytest.raises(AccessDeniedError):
            service.get_assessment(other_educator, assessment.id)

    def test_student_cannot_attach_feedback(self, service, student_a, assessment) -> None:
        with pytest.raises(AccessDeniedError):
            service.attach_feedback(student_a, assessment.id, assessment_score=100)

    def test_feedback_score_range(self, service, educator, assessment) -> None:
        with pytest.raises(IntegrityViolationError):
            service.attach_feedback(educator, assessment.id, assessment_score=150)

    def test_feedback_cannot_reset_to_submitted(self, service, educator, assessment) -> None:
        with pytest.raises(IntegrityViolationError):
            service.attach_feedback(educator, assessment.id, educator_feedback="x", status="submitted")

    def test_student_cannot_delete(self, service, student_a, assessment) -> None:
        with pytest.raises(AccessDeniedError):
            service.delete_assessment(student_a, assessment.id)

    def test_admin_can_delete(self, service, admin, assessment) -> None:
        assert service.delete_assessment(admin, assessment.id) is True

    def test_list_assessments_visibility(self, service, student_a, educator, other_educator, assessment) -> None:
        assert [a.id for a in service.list_assessments(student_a, "student-a")] == [assessment.id]
        assert [a.id for a in service.list_assessments(educator, "student-a")] == [assessment.id]
        assert service.list_assessments(other_educator, "student-a") == []
