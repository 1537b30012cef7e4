"""
Repository pattern for database operations

Provides:
- UserProfileRepository: Manage user profiles
- CourseRepository / ProjectRepository: Courses, projects and educator ownership
- ObjectiveRepository: Manage individual learning objectives and progress
- EvidenceRepository: Manage evidence artifacts
- AssessmentRepository: Manage individual assessments and educator feedback

Repositories are the persistence collaborator: they store what the service
layer hands them and do not apply integrity or access rules themselves.
Individual methods commit immediately; failures are rolled back, logged
and re-raised.
"""
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.constants import EVIDENCE_TARGET_PER_OBJECTIVE, utc_now
from ..models.assessment import IndividualAssessment
from ..models.evidence import EvidenceArtifact
from ..models.objective import LearningObjective, ObjectiveStatus
from .models import (
    CourseDB,
    EvidenceArtifactDB,
    IndividualAssessmentDB,
    LearningObjectiveDB,
    ProjectDB,
    UserProfileDB,
)

logger = logging.getLogger(__name__)

# Objective columns a student may change after creation
OBJECTIVE_MUTABLE_FIELDS = ("objective_description", "competency_level", "progress_status")


def _enum_value(value: Any) -> Any:
    """Store enums by value; leave everything else untouched"""
    if isinstance(value, Enum):
        return value.value
    return value


class UserProfileRepository:
    """Repository for user profiles"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(
        self,
        user_id: str,
        email: str,
        role: str = "student",
        full_name: Optional[str] = None,
    ) -> UserProfileDB:
        """
        Create a profile for an identity issued by the auth collaborator

        Args:
            user_id: Identity id (used as primary key)
            email: Contact email, stored lowercase
            role: student | educator | admin
            full_name: Optional display name

        Returns:
            Created UserProfileDB instance
        """
        try:
            profile = UserProfileDB(
                id=user_id,
                email=email.lower(),
                role=_enum_value(role),
                full_name=full_name,
            )
            self.db.add(profile)
            self.db.commit()
            self.db.refresh(profile)
            logger.info("User profile created", extra={"user_id": user_id, "role": profile.role})
            return profile
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create user profile: {e}", extra={"user_id": user_id})
            raise

    def get_by_id(self, user_id: str) -> Optional[UserProfileDB]:
        """Get profile by identity id"""
        return self.db.query(UserProfileDB).filter(UserProfileDB.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[UserProfileDB]:
        return self.db.query(UserProfileDB).filter(UserProfileDB.email == email.lower()).first()


class CourseRepository:
    """Repository for courses"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(
        self,
        course_name: str,
        course_code: str,
        educator_id: str,
        description: Optional[str] = None,
    ) -> CourseDB:
        try:
            course = CourseDB(
                id=str(uuid4()),
                course_name=course_name,
                course_code=course_code,
                educator_id=educator_id,
                description=description,
            )
            self.db.add(course)
            self.db.commit()
            self.db.refresh(course)
            return course
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create course: {e}", extra={"educator_id": educator_id})
            raise

    def get_by_id(self, course_id: str) -> Optional[CourseDB]:
        return self.db.query(CourseDB).filter(CourseDB.id == course_id).first()


class ProjectRepository:
    """Repository for projects"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(
        self,
        course_id: str,
        project_name: str,
        description: Optional[str] = None,
        problem_statement: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> ProjectDB:
        try:
            project = ProjectDB(
                id=str(uuid4()),
                course_id=course_id,
                project_name=project_name,
                description=description,
                problem_statement=problem_statement,
                start_date=start_date,
                end_date=end_date,
            )
            self.db.add(project)
            self.db.commit()
            self.db.refresh(project)
            return project
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create project: {e}", extra={"course_id": course_id})
            raise

    def get_by_id(self, project_id: str) -> Optional[ProjectDB]:
        return self.db.query(ProjectDB).filter(ProjectDB.id == project_id).first()

    def educator_teaches_project(self, educator_id: str, project_id: str) -> bool:
        """
        Check whether the educator owns the course the project belongs to.

        This is the source of educator feedback grants: an educator may
        annotate assessments of projects in their own courses.
        """
        count = (
            self.db.query(func.count(ProjectDB.id))
            .join(CourseDB, ProjectDB.course_id == CourseDB.id)
            .filter(ProjectDB.id == project_id, CourseDB.educator_id == educator_id)
            .scalar()
        )
        return bool(count)


class ObjectiveRepository:
    """Repository for individual learning objectives"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, objective: LearningObjective) -> LearningObjectiveDB:
        """
        Persist a validated learning objective.

        Args:
            objective: Candidate already approved by the IntegrityValidator

        Returns:
            Created LearningObjectiveDB instance
        """
        try:
            db_objective = LearningObjectiveDB(
                id=objective.id or str(uuid4()),
                student_id=objective.student_id,
                project_id=objective.project_id,
                team_id=objective.team_id,
                objective_description=objective.objective_description.strip(),
                competency_level=objective.competency_level,
                progress_status=_enum_value(objective.progress_status) or ObjectiveStatus.DRAFT.value,
            )
            self.db.add(db_objective)
            self.db.commit()
            self.db.refresh(db_objective)
            return db_objective
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create learning objective: {e}", extra={
                "student_id": objective.student_id,
                "project_id": objective.project_id,
            })
            raise

    def get_by_id(self, objective_id: str) -> Optional[LearningObjectiveDB]:
        """Get objective by ID"""
        return self.db.query(LearningObjectiveDB).filter(LearningObjectiveDB.id == objective_id).first()

    def get_by_student_project(self, student_id: str, project_id: str) -> List[LearningObjectiveDB]:
        """Objectives of one student in one project, oldest first"""
        return (
            self.db.query(LearningObjectiveDB)
            .filter(
                LearningObjectiveDB.student_id == student_id,
                LearningObjectiveDB.project_id == project_id,
            )
            .order_by(LearningObjectiveDB.created_at.asc())
            .all()
        )

    def count_by_student_project(self, student_id: str, project_id: str) -> int:
        return (
            self.db.query(func.count(LearningObjectiveDB.id))
            .filter(
                LearningObjectiveDB.student_id == student_id,
                LearningObjectiveDB.project_id == project_id,
            )
            .scalar()
        )

    def get_with_progress(
        self,
        student_id: str,
        project_id: str,
        evidence_target: int = EVIDENCE_TARGET_PER_OBJECTIVE,
    ) -> List[Dict[str, Any]]:
        """
        Objectives with evidence counts in a single query.

        Returns:
            List of dicts with keys objective, evidence_count,
            total_evidence_target and progress_percentage (capped at 100)
        """
        evidence_counts = (
            self.db.query(
                EvidenceArtifactDB.learning_objective_id.label("objective_id"),
                func.count(EvidenceArtifactDB.id).label("evidence_count"),
            )
            .group_by(EvidenceArtifactDB.learning_objective_id)
            .subquery()
        )

        rows = (
            self.db.query(LearningObjectiveDB, evidence_counts.c.evidence_count)
            .outerjoin(evidence_counts, LearningObjectiveDB.id == evidence_counts.c.objective_id)
            .filter(
                LearningObjectiveDB.student_id == student_id,
                LearningObjectiveDB.project_id == project_id,
            )
            .order_by(LearningObjectiveDB.created_at.asc())
            .all()
        )

        progress = []
        for objective, evidence_count in rows:
            evidence_count = evidence_count or 0
            percentage = round(evidence_count / evidence_target * 100) if evidence_target else 0
            progress.append({
                "objective": objective,
                "evidence_count": evidence_count,
                "total_evidence_target": evidence_target,
                "progress_percentage": min(percentage, 100),
            })
        return progress

    def update_fields(self, objective_id: str, **fields: Any) -> Optional[LearningObjectiveDB]:
        """
        Update mutable objective fields.

        Only objective_description, competency_level and progress_status
        can change; anything else raises ValueError.
        """
        unknown = set(fields) - set(OBJECTIVE_MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update objective fields: {sorted(unknown)}")

        objective = self.get_by_id(objective_id)
        if not objective:
            return None

        try:
            for name, value in fields.items():
                setattr(objective, name, _enum_value(value))
            objective.updated_at = utc_now()
            self.db.commit()
            self.db.refresh(objective)
            return objective
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update learning objective {objective_id}: {e}")
            raise

    def update_status(self, objective_id: str, status: str) -> Optional[LearningObjectiveDB]:
        return self.update_fields(objective_id, progress_status=status)

    def delete(self, objective_id: str) -> bool:
        """Delete objective (evidence and assessments cascade)"""
        objective = self.get_by_id(objective_id)
        if not objective:
            return False
        try:
            self.db.delete(objective)
            self.db.commit()
            logger.info("Learning objective deleted", extra={"objective_id": objective_id})
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete learning objective {objective_id}: {e}")
            raise


class EvidenceRepository:
    """Repository for evidence artifacts"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, artifact: EvidenceArtifact) -> EvidenceArtifactDB:
        """Persist an artifact; upload_date is always set by the store"""
        try:
            db_artifact = EvidenceArtifactDB(
                id=artifact.id or str(uuid4()),
                learning_objective_id=artifact.learning_objective_id,
                student_id=artifact.student_id,
                type=_enum_value(artifact.type),
                title=artifact.title.strip(),
                description=artifact.description,
                file_path=artifact.file_path or None,
                external_url=artifact.external_url or None,
                upload_date=utc_now(),
            )
            self.db.add(db_artifact)
            self.db.commit()
            self.db.refresh(db_artifact)
            return db_artifact
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create evidence artifact: {e}", extra={
                "student_id": artifact.student_id,
                "learning_objective_id": artifact.learning_objective_id,
            })
            raise

    def get_by_id(self, artifact_id: str) -> Optional[EvidenceArtifactDB]:
        return self.db.query(EvidenceArtifactDB).filter(EvidenceArtifactDB.id == artifact_id).first()

    def get_by_objective(self, learning_objective_id: str) -> List[EvidenceArtifactDB]:
        """Artifacts of an objective, newest first"""
        return (
            self.db.query(EvidenceArtifactDB)
            .filter(EvidenceArtifactDB.learning_objective_id == learning_objective_id)
            .order_by(EvidenceArtifactDB.upload_date.desc())
            .all()
        )

    def count_for_student_objectives(self, student_id: str, objective_ids: Sequence[str]) -> int:
        if not objective_ids:
            return 0
        return (
            self.db.query(func.count(EvidenceArtifactDB.id))
            .filter(
                EvidenceArtifactDB.student_id == student_id,
                EvidenceArtifactDB.learning_objective_id.in_(list(objective_ids)),
            )
            .scalar()
        )

    def delete(self, artifact_id: str) -> bool:
        artifact = self.get_by_id(artifact_id)
        if not artifact:
            return False
        try:
            self.db.delete(artifact)
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete evidence artifact {artifact_id}: {e}")
            raise


class AssessmentRepository:
    """Repository for individual assessments"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, assessment: IndividualAssessment) -> IndividualAssessmentDB:
        """Persist an assessment approved by validate_assessment_integrity"""
        framework = None
        if assessment.competency_framework is not None:
            framework = assessment.competency_framework.model_dump()

        try:
            db_assessment = IndividualAssessmentDB(
                id=assessment.id or str(uuid4()),
                student_id=assessment.student_id,
                project_id=assessment.project_id,
                learning_objective_id=assessment.learning_objective_id,
                competency_achievement=assessment.competency_achievement,
                assessment_score=assessment.assessment_score,
                educator_feedback=assessment.educator_feedback,
                assessed_by=assessment.assessed_by,
                assessment_date=assessment.assessment_date,
                status=_enum_value(assessment.status),
                competency_framework=framework,
            )
            self.db.add(db_assessment)
            self.db.commit()
            self.db.refresh(db_assessment)
            return db_assessment
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create assessment: {e}", extra={
                "student_id": assessment.student_id,
                "learning_objective_id": assessment.learning_objective_id,
            })
            raise

    def get_by_id(self, assessment_id: str) -> Optional[IndividualAssessmentDB]:
        return self.db.query(IndividualAssessmentDB).filter(IndividualAssessmentDB.id == assessment_id).first()

    def get_by_objective(self, learning_objective_id: str) -> List[IndividualAssessmentDB]:
        """Assessment history of an objective, oldest first"""
        return (
            self.db.query(IndividualAssessmentDB)
            .filter(IndividualAssessmentDB.learning_objective_id == learning_objective_id)
            .order_by(IndividualAssessmentDB.created_at.asc())
            .all()
        )

    def get_by_student(self, student_id: str, project_id: Optional[str] = None) -> List[IndividualAssessmentDB]:
        query = self.db.query(IndividualAssessmentDB).filter(IndividualAssessmentDB.student_id == student_id)
        if project_id is not None:
            query = query.filter(IndividualAssessmentDB.project_id == project_id)
        return query.order_by(IndividualAssessmentDB.created_at.asc()).all()

    def attach_feedback(
        self,
        assessment_id: str,
        assessed_by: str,
        status: str,
        educator_feedback: Optional[str] = None,
        assessment_score: Optional[float] = None,
        competency_achievement: Optional[int] = None,
    ) -> Optional[IndividualAssessmentDB]:
        """
        Record an educator's evaluation on an existing assessment.

        Fields passed as None keep their stored value.
        """
        assessment = self.get_by_id(assessment_id)
        if not assessment:
            return None

        try:
            if educator_feedback is not None:
                assessment.educator_feedback = educator_feedback
            if assessment_score is not None:
                assessment.assessment_score = assessment_score
            if competency_achievement is not None:
                assessment.competency_achievement = competency_achievement
            assessment.assessed_by = assessed_by
            assessment.assessment_date = utc_now()
            assessment.status = _enum_value(status)
            assessment.updated_at = utc_now()
            self.db.commit()
            self.db.refresh(assessment)
            logger.info(
                "Assessment feedback attached",
                extra={"assessment_id": assessment_id, "assessed_by": assessed_by, "status": assessment.status},
            )
            return assessment
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to attach feedback to assessment {assessment_id}: {e}")
            raise

    def delete(self, assessment_id: str) -> bool:
        assessment = self.get_by_id(assessment_id)
        if not assessment:
            return False
        try:
            self.db.delete(assessment)
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete assessment {assessment_id}: {e}")
            raise
