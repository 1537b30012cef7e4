"""
Schemas de objetivos, evidencias y evaluaciones individuales

Los requests de creación aceptan claves no declaradas (extra="allow"): un
campo de equipo enviado por el cliente debe llegar al IntegrityValidator y
ser rechazado con su mensaje, no descartarse en silencio.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...core.validation import ValidationResult
from ...models.assessment import AssessmentStatus, CompetencyFramework, IndividualAssessment
from ...models.evidence import EvidenceArtifact
from ...models.objective import LearningObjective


# =============================================================================
# REQUESTS
# =============================================================================

class ObjectiveCreateRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    student_id: Optional[str] = None
    project_id: Optional[str] = None
    objective_description: Optional[str] = None
    competency_level: Optional[int] = None


class ObjectiveUpdateRequest(BaseModel):
    """Solo se aplican los campos enviados"""
    model_config = ConfigDict(extra="allow")

    objective_description: Optional[str] = None
    competency_level: Optional[int] = None
    progress_status: Optional[str] = None


class ObjectiveTransitionRequest(BaseModel):
    target_status: str


class EvidenceCreateRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    learning_objective_id: Optional[str] = None
    student_id: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    file_path: Optional[str] = None
    external_url: Optional[str] = None


class AssessmentSubmitRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    student_id: Optional[str] = None
    project_id: Optional[str] = None
    learning_objective_id: Optional[str] = None
    competency_achievement: Optional[int] = None
    competency_framework: Optional[CompetencyFramework] = None


class FeedbackRequest(BaseModel):
    educator_feedback: Optional[str] = None
    assessment_score: Optional[float] = None
    competency_achievement: Optional[int] = None
    status: str = AssessmentStatus.UNDER_REVIEW.value


class ProfileCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    full_name: Optional[str] = None
    role: str = "student"


# Dry-run validation requests

class AssessmentIntegrityRequest(BaseModel):
    assessment: Dict[str, Any]
    objective: Dict[str, Any]
    artifacts: List[Dict[str, Any]] = Field(default_factory=list)


class PermissionCheckRequest(BaseModel):
    user_id: str
    role: str
    operation: str
    target_student_id: Optional[str] = None


class AccessCheckRequest(BaseModel):
    record: Dict[str, Any]
    requester_id: str
    requester_role: str
    operation: str
    feedback_grants: List[str] = Field(default_factory=list)


# =============================================================================
# RESPONSES
# =============================================================================

class ObjectiveResult(BaseModel):
    objective: LearningObjective
    validation: ValidationResult


class EvidenceResult(BaseModel):
    artifact: EvidenceArtifact
    validation: ValidationResult


class AssessmentResult(BaseModel):
    assessment: IndividualAssessment
    validation: ValidationResult


class ObjectiveProgress(BaseModel):
    objective: LearningObjective
    evidence_count: int
    total_evidence_target: int
    progress_percentage: int


class PortfolioCount(BaseModel):
    current: int
    target: int
    percentage: int


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None


class AccessDecisionResponse(BaseModel):
    allowed: bool
    reason: str


def to_candidate(request: BaseModel) -> Dict[str, Any]:
    """Campos enviados por el cliente, incluidas las claves no declaradas"""
    return {**request.model_dump(exclude_unset=True), **(request.model_extra or {})}
