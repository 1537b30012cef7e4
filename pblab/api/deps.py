"""
Dependencias de FastAPI

La identidad la emite el colaborador de sesión (gateway / proveedor de
auth) en las cabeceras X-User-Id y X-User-Role; aquí solo se leen.
"""
from typing import Optional
import logging

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ..core.access_policy import AccessPolicyEvaluator
from ..core.constants import IntegrityRules
from ..core.integrity_validator import IntegrityValidator
from ..database.config import get_db
from ..database.repositories import (
    AssessmentRepository,
    CourseRepository,
    EvidenceRepository,
    ObjectiveRepository,
    ProjectRepository,
    UserProfileRepository,
)
from ..models.user import Identity
from ..services.integrity_service import IndividualAssessmentService
from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_validator: Optional[IntegrityValidator] = None


def get_current_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Identity:
    """
    Identidad autenticada de la petición.

    El rol no se valida aquí: un rol desconocido llega al evaluador de
    políticas, que lo rechaza.
    """
    if not x_user_id or not x_user_role:
        raise AuthenticationError("Missing X-User-Id or X-User-Role header")
    return Identity(user_id=x_user_id.strip(), role=x_user_role.strip().lower())


def get_integrity_validator() -> IntegrityValidator:
    """Validador compartido, configurado desde el entorno una sola vez"""
    global _validator
    if _validator is None:
        _validator = IntegrityValidator(IntegrityRules.from_env())
    return _validator


def get_access_policy() -> AccessPolicyEvaluator:
    return AccessPolicyEvaluator()


def get_profile_repository(db: Session = Depends(get_db)) -> UserProfileRepository:
    return UserProfileRepository(db)


def get_course_repository(db: Session = Depends(get_db)) -> CourseRepository:
    return CourseRepository(db)


def get_project_repository(db: Session = Depends(get_db)) -> ProjectRepository:
    return ProjectRepository(db)


def get_objective_repository(db: Session = Depends(get_db)) -> ObjectiveRepository:
    return ObjectiveRepository(db)


def get_evidence_repository(db: Session = Depends(get_db)) -> EvidenceRepository:
    return EvidenceRepository(db)


def get_assessment_repository(db: Session = Depends(get_db)) -> AssessmentRepository:
    return AssessmentRepository(db)


def get_assessment_service(
    objective_repo: ObjectiveRepository = Depends(get_objective_repository),
    evidence_repo: EvidenceRepository = Depends(get_evidence_repository),
    assessment_repo: AssessmentRepository = Depends(get_assessment_repository),
    project_repo: ProjectRepository = Depends(get_project_repository),
    validator: IntegrityValidator = Depends(get_integrity_validator),
    policy: AccessPolicyEvaluator = Depends(get_access_policy),
) -> IndividualAssessmentService:
    return IndividualAssessmentService(
        objective_repo=objective_repo,
        evidence_repo=evidence_repo,
        assessment_repo=assessment_repo,
        project_repo=project_repo,
        validator=validator,
        policy=policy,
    )
