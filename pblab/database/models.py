"""
SQLAlchemy ORM models for persistence

Models:
- UserProfileDB: identity profile (student / educator / admin)
- CourseDB / ProjectDB: course owned by an educator, projects within it
- LearningObjectiveDB: individual learning objectives
- EvidenceArtifactDB: evidence portfolio items
- IndividualAssessmentDB: individual assessments (no team-scoped table exists)

Check constraints mirror the IntegrityValidator invariants so the store
rejects rows that bypassed the application layer.
"""
from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from .base import Base, BaseModel, _utc_now


class JSONBCompatible(TypeDecorator):
    """
    A JSON type that uses JSONB on PostgreSQL and JSON on other databases (e.g., SQLite).
    This allows tests to run with SQLite while production uses PostgreSQL with JSONB.
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


class UserProfileDB(Base, BaseModel):
    """
    Profile of an authenticated user.

    The id is the identity issued by the authentication collaborator, so it
    is supplied by the caller instead of generated.
    """

    __tablename__ = "user_profiles"

    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="student")

    courses = relationship("CourseDB", back_populates="educator")

    __table_args__ = (
        CheckConstraint(
            "role IN ('student', 'educator', 'admin')",
            name='ck_profile_role_valid'
        ),
    )


class CourseDB(Base, BaseModel):
    """Course taught by one educator"""

    __tablename__ = "courses"

    course_name = Column(String(255), nullable=False)
    course_code = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    educator_id = Column(String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    educator = relationship("UserProfileDB", back_populates="courses")
    projects = relationship("ProjectDB", back_populates="course", cascade="all, delete-orphan")


class ProjectDB(Base, BaseModel):
    """Project-based learning unit inside a course"""

    __tablename__ = "projects"

    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    project_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    problem_statement = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    course = relationship("CourseDB", back_populates="projects")
    objectives = relationship("LearningObjectiveDB", back_populates="project", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date >= start_date",
            name='ck_project_dates'
        ),
    )


class LearningObjectiveDB(Base, BaseModel):
    """
    Database model for individual learning objectives

    student_id comes from the identity collaborator and is never updated
    after creation. team_id is informational only.
    """

    __tablename__ = "individual_learning_objectives"

    student_id = Column(String(36), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(String(36), nullable=True)
    objective_description = Column(Text, nullable=False)
    competency_level = Column(Integer, nullable=True)  # 1-5
    progress_status = Column(String(20), nullable=False, default="draft")

    project = relationship("ProjectDB", back_populates="objectives")
    evidence_artifacts = relationship(
        "EvidenceArtifactDB", back_populates="learning_objective", cascade="all, delete-orphan"
    )
    assessments = relationship(
        "IndividualAssessmentDB", back_populates="learning_objective", cascade="all, delete-orphan"
    )

    __table_args__ = (
        # Query: objectives of a student in a project, oldest first
        Index('idx_objective_student_project', 'student_id', 'project_id', 'created_at'),
        CheckConstraint(
            "competency_level IS NULL OR (competency_level >= 1 AND competency_level <= 5)",
            name='ck_objective_competency_range'
        ),
        CheckConstraint(
            "progress_status IN ('draft', 'active', 'completed', 'revised')",
            name='ck_objective_status_valid'
        ),
    )


class EvidenceArtifactDB(Base, BaseModel):
    """Database model for evidence artifacts (immutable once created)"""

    __tablename__ = "evidence_artifacts"

    learning_objective_id = Column(
        String(36),
        ForeignKey("individual_learning_objectives.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(String(36), nullable=False, index=True)
    type = Column(String(20), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_path = Column(String(1024), nullable=True)
    external_url = Column(String(2048), nullable=True)
    upload_date = Column(DateTime, default=_utc_now, nullable=False)

    learning_objective = relationship("LearningObjectiveDB", back_populates="evidence_artifacts")

    __table_args__ = (
        Index('idx_evidence_objective_uploaded', 'learning_objective_id', 'upload_date'),
        # Exactly one content locator
        CheckConstraint(
            "(file_path IS NULL) <> (external_url IS NULL)",
            name='ck_evidence_single_locator'
        ),
        CheckConstraint(
            "type IS NULL OR type IN ('document', 'presentation', 'code', 'reflection', 'video', 'image', 'link')",
            name='ck_evidence_type_valid'
        ),
    )


class IndividualAssessmentDB(Base, BaseModel):
    """Database model for individual assessments"""

    __tablename__ = "individual_assessments"

    student_id = Column(String(36), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    learning_objective_id = Column(
        String(36),
        ForeignKey("individual_learning_objectives.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    competency_achievement = Column(Integer, nullable=True)  # 1-5
    assessment_score = Column(Float, nullable=True)  # 0-100
    educator_feedback = Column(Text, nullable=True)
    assessed_by = Column(String(36), nullable=True)
    assessment_date = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default="submitted")
    competency_framework = Column(JSONBCompatible, nullable=True)

    learning_objective = relationship("LearningObjectiveDB", back_populates="assessments")

    __table_args__ = (
        Index('idx_assessment_student_project', 'student_id', 'project_id'),
        CheckConstraint(
            "competency_achievement IS NULL OR (competency_achievement >= 1 AND competency_achievement <= 5)",
            name='ck_assessment_competency_range'
        ),
        CheckConstraint(
            "assessment_score IS NULL OR (assessment_score >= 0 AND assessment_score <= 100)",
            name='ck_assessment_score_range'
        ),
        CheckConstraint(
            "status IN ('submitted', 'under_review', 'completed')",
            name='ck_assessment_status_valid'
        ),
    )
