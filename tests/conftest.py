"""Shared fixtures: in-memory SQLite database, seeded course data, API client."""

import pytest
from fastapi.testclient import TestClient

from pblab.database.config import DatabaseConfig, get_db
from pblab.database.repositories import (
    AssessmentRepository,
    CourseRepository,
    EvidenceRepository,
    ObjectiveRepository,
    ProjectRepository,
    UserProfileRepository,
)
from pblab.models.user import Identity
from pblab.services.integrity_service import IndividualAssessmentService

STUDENT_A = "student-a"
STUDENT_B = "student-b"
EDUCATOR = "educator-1"
OTHER_EDUCATOR = "educator-2"
ADMIN = "admin-1"


@pytest.fixture
def db_config():
    config = DatabaseConfig(database_url="sqlite://", echo=False)
    config.create_all()
    yield config
    config.drop_all()
    config.engine.dispose()


@pytest.fixture
def db_session(db_config):
    session = db_config.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db_session):
    """Profiles, one course per educator and one project in the first course."""
    profiles = UserProfileRepository(db_session)
    profiles.create(STUDENT_A, "a@example.edu", "student", "Student A")
    profiles.create(STUDENT_B, "b@example.edu", "student", "Student B")
    profiles.create(EDUCATOR, "teacher@example.edu", "educator", "Teacher One")
    profiles.create(OTHER_EDUCATOR, "other@example.edu", "educator", "Teacher Two")
    profiles.create(ADMIN, "admin@example.edu", "admin")

    courses = CourseRepository(db_session)
    course = courses.create("Sustainable Cities", "PBL-101", EDUCATOR)
    courses.create("Robotics", "PBL-202", OTHER_EDUCATOR)

    project = ProjectRepository(db_session).create(course.id, "Urban Garden")
    return {"course_id": course.id, "project_id": project.id}


@pytest.fixture
def project_id(seeded):
    return seeded["project_id"]


@pytest.fixture
def service(db_session):
    return IndividualAssessmentService(
        objective_repo=ObjectiveRepository(db_session),
        evidence_repo=EvidenceRepository(db_session),
        assessment_repo=AssessmentRepository(db_session),
        project_repo=ProjectRepository(db_session),
    )


@pytest.fixture
def student_a():
    return Identity(user_id=STUDENT_A, role="student")


@pytest.fixture
def student_b():
    return Identity(user_id=STUDENT_B, role="student")


@pytest.fixture
def educator():
    return Identity(user_id=EDUCATOR, role="educator")


@pytest.fixture
def other_educator():
    return Identity(user_id=OTHER_EDUCATOR, role="educator")


@pytest.fixture
def admin():
    return Identity(user_id=ADMIN, role="admin")


@pytest.fixture
def client(db_config, seeded):
    from pblab.api.main import create_app

    app = create_app(init_db=False)

    def _override_get_db():
        with db_config.session_scope() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()