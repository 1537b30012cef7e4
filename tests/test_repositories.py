"""Persistence tests against an in-memory SQLite database."""

import pytest
from sqlalchemy.exc import IntegrityError

from pblab.database.models import EvidenceArtifactDB, IndividualAssessmentDB
from pblab.database.repositories import (
    AssessmentRepository,
    EvidenceRepository,
    ObjectiveRepository,
    ProjectRepository,
    UserProfileRepository,
)
from pblab.models.assessment import IndividualAssessment
from pblab.models.evidence import EvidenceArtifact
from pblab.models.objective import LearningObjective


@pytest.fixture
def objectives(db_session):
    return ObjectiveRepository(db_session)


@pytest.fixture
def evidence(db_session):
    return EvidenceRepository(db_session)


@pytest.fixture
def assessments(db_session):
    return AssessmentRepository(db_session)


def _new_objective(objectives, project_id, student_id="student-a", description="Measure soil moisture", level=3):
    return objectives.create(LearningObjective(
        student_id=student_id,
        project_id=project_id,
        objective_description=description,
        competency_level=level,
    ))


class TestProfiles:
    def test_email_stored_lowercase(self, db_session, seeded) -> None:
        repo = UserProfileRepository(db_session)
        assert repo.get_by_email("A@Example.edu").id == "student-a"

    def test_invalid_role_rejected_by_store(self, db_session) -> None:
        repo = UserProfileRepository(db_session)
        with pytest.raises(IntegrityError):
            repo.create("x-1", "x@example.edu", role="superuser")


class TestProjects:
    def test_educator_teaches_project(self, db_session, seeded) -> None:
        repo = ProjectRepository(db_session)
        assert repo.educator_teaches_project("educator-1", seeded["project_id"]) is True
        assert repo.educator_teaches_project("educator-2", seeded["project_id"]) is False


class TestObjectiveRepository:
    def test_create_defaults_to_draft(self, objectives, project_id) -> None:
        created = _new_objective(objectives, project_id)
        assert created.id
        assert created.progress_status == "draft"
        assert objectives.count_by_student_project("student-a", project_id) == 1

    def test_scoped_by_student(self, objectives, project_id) -> None:
        _new_objective(objectives, project_id, "student-a")
        _new_objective(objectives, project_id, "student-b")
        rows = objectives.get_by_student_project("student-a", project_id)
        assert [r.student_id for r in rows] == ["student-a"]

    def test_update_rejects_immutable_fields(self, objectives, project_id) -> None:
        created = _new_objective(objectives, project_id)
        with pytest.raises(ValueError):
            objectives.update_fields(created.id, student_id="student-b")

    def test_update_status(self, objectives, project_id) -> None:
        created = _new_objective(objectives, project_id)
        updated = objectives.update_status(created.id, "active")
        assert updated.progress_status == "active"

    def test_update_missing_returns_none(self, objectives) -> None:
        assert objectives.update_status("missing", "active") is None

    def test_out_of_range_level_rejected_by_store(self, objectives, project_id) -> None:
        with pytest.raises(IntegrityError):
            _new_objective(objectives, project_id, level=9)

    def test_progress_counts_evidence(self, objectives, evidence, project_id) -> None:
        first = _new_objective(objectives, project_id, description="One")
        _new_objective(objectives, project_id, description="Two")
        for n in range(3):
            evidence.create(EvidenceArtifact(
                learning_objective_id=first.id,
                student_id="student-a",
                title=f"Log {n}",
                file_path=f"logs/{n}.txt",
            ))

        progress = objectives.get_with_progress("student-a", project_id)
        counts = {p["objective"].objective_description: p["evidence_count"] for p in progress}
        assert counts == {"One": 3, "Two": 0}
        first_entry = next(p for p in progress if p["objective"].id == first.id)
        assert first_entry["progress_percentage"] == 30
        assert first_entry["total_evidence_target"] == 10

    def test_delete_cascades(self, db_session, objectives, evidence, project_id) -> None:
        created = _new_objective(objectives, project_id)
        evidence.create(EvidenceArtifact(
            learning_objective_id=created.id,
            student_id="student-a",
            title="Photo",
            external_url="https://example.org/photo.jpg",
        ))
        assert objectives.delete(created.id) is True
        assert db_session.query(EvidenceArtifactDB).count() == 0


class TestEvidenceRepository:
    def test_single_locator_enforced_by_store(self, objectives, evidence, project_id) -> None:
        created = _new_objective(objectives, project_id)
        with pytest.raises(IntegrityError):
            evidence.create(EvidenceArtifact(
                learning_objective_id=created.id,
                student_id="student-a",
                title="Both",
                file_path="a.pdf",
                external_url="https://example.org/a.pdf",
            ))

    def test_portfolio_count(self, objectives, evidence, project_id) -> None:
        created = _new_objective(objectives, project_id)
        evidence.create(EvidenceArtifact(
            learning_objective_id=created.id, student_id="student-a", title="A", file_path="a.pdf"
        ))
        assert evidence.count_for_student_objectives("student-a", [created.id]) == 1
        assert evidence.count_for_student_objectives("student-a", []) == 0


class TestAssessmentRepository:
    def test_create_and_attach_feedback(self, objectives, assessments, project_id) -> None:
        objective = _new_objective(objectives, project_id)
        created = assessments.create(IndividualAssessment(
            student_id="student-a",
            project_id=project_id,
            learning_objective_id=objective.id,
            competency_achievement=3,
            competency_framework={"competency_areas": [{"name": "Research"}]},
        ))
        assert created.status == "submitted"
        assert created.competency_framework["competency_areas"][0]["name"] == "Research"

        updated = assessments.attach_feedback(
            created.id,
            assessed_by="educator-1",
            status="under_review",
            educator_feedback="Solid sampling plan",
            assessment_score=82.5,
        )
        assert updated.assessed_by == "educator-1"
        assert updated.assessment_score == 82.5
        assert updated.competency_achievement == 3
        assert updated.assessment_date is not None

    def test_score_range_enforced_by_store(self, db_session, objectives, assessments, project_id) -> None:
        objective = _new_objective(objectives, project_id)
        with pytest.raises(IntegrityError):
            assessments.create(IndividualAssessment(
                student_id="student-a",
                project_id=project_id,
                learning_objective_id=objective.id,
                assessment_score=120,
            ))
        assert db_session.query(IndividualAssessmentDB).count() == 0

    def test_get_by_student_filters_project(self, objectives, assessments, project_id) -> None:
        objective = _new_objective(objectives, project_id)
        assessments.create(IndividualAssessment(
            student_id="student-a", project_id=project_id, learning_objective_id=objective.id
        ))
        assert len(assessments.get_by_student("student-a", project_id)) == 1
        assert assessments.get_by_student("student-a", "other-project") == []
