"""
Individual Assessment Service - Flujo candidato → validador → política → persistencia

Orquesta el IntegrityValidator y el AccessPolicyEvaluator sobre los
repositorios inyectados. El core devuelve violaciones como datos; este
servicio decide: rechaza con IntegrityViolationError / AccessDeniedError o
reenvía la operación aprobada al repositorio.

Uso:
    service = IndividualAssessmentService(
        objective_repo=ObjectiveRepository(db),
        evidence_repo=EvidenceRepository(db),
        assessment_repo=AssessmentRepository(db),
        project_repo=ProjectRepository(db),
    )
    objective, validation = service.create_objective(identity, candidate)
"""
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple
import logging

from ..api.exceptions import (
    AccessDeniedError,
    IntegrityViolationError,
    InvalidTransitionError,
    RecordNotFoundError,
)
from ..core.access_policy import AccessPolicyEvaluator, ObjectiveLifecycle
from ..core.constants import PORTFOLIO_EVIDENCE_TARGET
from ..core.integrity_validator import IntegrityValidator, coerce_record
from ..core.metrics import record_access_decision, record_validation
from ..core.validation import ErrorCategory, ValidationIssue, ValidationResult
from ..database.repositories import (
    AssessmentRepository,
    EvidenceRepository,
    ObjectiveRepository,
    OBJECTIVE_MUTABLE_FIELDS,
    ProjectRepository,
)
from ..models.assessment import AssessmentStatus, IndividualAssessment
from ..models.evidence import EvidenceArtifact
from ..models.objective import LearningObjective, ObjectiveStatus
from ..models.user import Identity, UserRole

logger = logging.getLogger(__name__)

FEEDBACK_STATUSES = (AssessmentStatus.UNDER_REVIEW.value, AssessmentStatus.COMPLETED.value)

# Fields only an educator sets; stripped from student submissions
EDUCATOR_ONLY_FIELDS = ("assessment_score", "educator_feedback", "assessed_by", "assessment_date")


class IndividualAssessmentService:
    """
    Servicio de objetivos, evidencias y evaluaciones individuales.

    Responsabilidad: aplicar validación e isolación antes de cada escritura
    y filtrar lecturas como lo haría la seguridad por filas.
    """

    def __init__(
        self,
        objective_repo: ObjectiveRepository,
        evidence_repo: EvidenceRepository,
        assessment_repo: AssessmentRepository,
        project_repo: ProjectRepository,
        validator: Optional[IntegrityValidator] = None,
        policy: Optional[AccessPolicyEvaluator] = None,
    ):
        self.objective_repo = objective_repo
        self.evidence_repo = evidence_repo
        self.assessment_repo = assessment_repo
        self.project_repo = project_repo
        self.validator = validator or IntegrityValidator()
        self.policy = policy or AccessPolicyEvaluator()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_valid(self, check: str, result: ValidationResult, message: str) -> ValidationResult:
        record_validation(check, result.is_valid)
        if not result.is_valid:
            logger.warning(
                f"{check} rejected",
                extra={"check": check, "errors": result.errors},
            )
            raise IntegrityViolationError(result, message)
        return result

    def _require_access(
        self,
        record: Any,
        identity: Identity,
        operation: str,
        feedback_grants: FrozenSet[str] = frozenset(),
    ) -> None:
        decision = self.policy.evaluate(record, identity.user_id, identity.role, operation, feedback_grants)
        record_access_decision(operation, decision.allowed)
        if not decision.allowed:
            logger.warning(
                "Access denied",
                extra={
                    "requester_id": identity.user_id,
                    "role": identity.role,
                    "operation": operation,
                    "reason": decision.reason,
                },
            )
            raise AccessDeniedError(decision.reason, operation)

    def _require_permission(self, identity: Identity, operation: str, target_student_id: Optional[str]) -> None:
        result = self.validator.validate_user_permissions(
            identity.user_id, identity.role, operation, target_student_id
        )
        record_validation("user_permissions", result.is_valid)
        if not result.is_valid:
            logger.warning(
                "Assessment permission rejected",
                extra={"requester_id": identity.user_id, "operation": operation, "errors": result.errors},
            )
            raise AccessDeniedError("; ".join(result.errors), operation)

    def _get_objective(self, objective_id: Optional[str]) -> LearningObjective:
        db_objective = self.objective_repo.get_by_id(objective_id) if objective_id else None
        if db_objective is None:
            raise RecordNotFoundError("learning objective", objective_id)
        return LearningObjective.model_validate(db_objective)

    def _get_assessment(self, assessment_id: str) -> IndividualAssessment:
        db_assessment = self.assessment_repo.get_by_id(assessment_id)
        if db_assessment is None:
            raise RecordNotFoundError("assessment", assessment_id)
        return IndividualAssessment.model_validate(db_assessment)

    def _feedback_grants(self, identity: Identity, assessment: IndividualAssessment) -> FrozenSet[str]:
        """Educators may annotate assessments of projects in their own courses"""
        if identity.role != UserRole.EDUCATOR.value or not assessment.project_id:
            return frozenset()
        if self.project_repo.educator_teaches_project(identity.user_id, assessment.project_id):
            return frozenset({assessment.id})
        return frozenset()

    def _visible(self, identity: Identity, records: List[Any]) -> List[Any]:
        return [
            r for r in records
            if self.policy.can_access(r, identity.user_id, identity.role, "select")
        ]

    # ------------------------------------------------------------------
    # Objectives
    # ------------------------------------------------------------------

    def create_objective(
        self,
        identity: Identity,
        candidate: Mapping[str, Any],
    ) -> Tuple[LearningObjective, ValidationResult]:
        """
        Crea un objetivo tras validarlo y comprobar que el autor es el estudiante.
        Todo objetivo nace en draft; el estado enviado por el cliente se ignora.

        Raises:
            IntegrityViolationError: si el objetivo no supera validate_objective
            AccessDeniedError: si se intenta crear bajo otra identidad
            RecordNotFoundError: si el proyecto no existe
        """
        objective = coerce_record(LearningObjective, candidate).model_copy(
            update={
                "id": None,
                "created_at": None,
                "updated_at": None,
                "progress_status": ObjectiveStatus.DRAFT.value,
            }
        )

        result = self._require_valid(
            "objective",
            self.validator.validate_objective(objective),
            "Learning objective rejected",
        )
        self._require_access(objective, identity, "insert")

        if self.project_repo.get_by_id(objective.project_id) is None:
            raise RecordNotFoundError("project", objective.project_id)

        db_objective = self.objective_repo.create(objective)
        logger.info(
            "Learning objective created",
            extra={"objective_id": db_objective.id, "student_id": db_objective.student_id},
        )
        return LearningObjective.model_validate(db_objective), result

    def get_objective(self, identity: Identity, objective_id: str) -> LearningObjective:
        objective = self._get_objective(objective_id)
        self._require_access(objective, identity, "select")
        return objective

    def list_objectives(self, identity: Identity, student_id: str, project_id: str) -> List[LearningObjective]:
        """Objetivos visibles para el solicitante (filtrado por fila, sin error)"""
        rows = self.objective_repo.get_by_student_project(student_id, project_id)
        return self._visible(identity, [LearningObjective.model_validate(r) for r in rows])

    def list_objectives_with_progress(
        self,
        identity: Identity,
        student_id: str,
        project_id: str,
    ) -> List[Dict[str, Any]]:
        progress = []
        for entry in self.objective_repo.get_with_progress(student_id, project_id):
            objective = LearningObjective.model_validate(entry["objective"])
            if self.policy.can_access(objective, identity.user_id, identity.role, "select"):
                progress.append({**entry, "objective": objective})
        return progress

    def check_minimum_objectives(self, identity: Identity, student_id: str, project_id: str) -> ValidationResult:
        objectives = self.list_objectives(identity, student_id, project_id)
        result = self.validator.check_minimum_objectives(objectives)
        record_validation("minimum_objectives", result.is_valid)
        return result

    def update_objective(
        self,
        identity: Identity,
        objective_id: str,
        changes: Mapping[str, Any],
    ) -> Tuple[LearningObjective, ValidationResult]:
        """
        Actualiza descripción, nivel o estado de un objetivo propio.

        Editar la descripción o el nivel de un objetivo completed lo pasa a
        revised (se registra un nuevo estado, no se borra historia).
        """
        existing = self._get_objective(objective_id)
        self._require_access(existing, identity, "update")

        result = self._require_valid(
            "objective_update",
            self.validator.validate_objective_update(existing, changes),
            "Learning objective update rejected",
        )

        updates = {k: v for k, v in changes.items() if k in OBJECTIVE_MUTABLE_FIELDS}
        if not updates:
            return existing, result

        target = updates.get("progress_status")
        content_changed = any(
            k in updates and updates[k] != getattr(existing, k)
            for k in ("objective_description", "competency_level")
        )
        if (
            content_changed
            and existing.progress_status == ObjectiveStatus.COMPLETED.value
            and target in (None, existing.progress_status)
        ):
            target = ObjectiveStatus.REVISED.value
            updates["progress_status"] = target

        if target is not None and target != existing.progress_status:
            if not ObjectiveLifecycle.can_transition(existing.progress_status, target):
                raise InvalidTransitionError(existing.progress_status, target)
        elif target is not None:
            updates.pop("progress_status")

        db_objective = self.objective_repo.update_fields(objective_id, **updates)
        logger.info(
            "Learning objective updated",
            extra={"objective_id": objective_id, "fields": sorted(updates)},
        )
        return LearningObjective.model_validate(db_objective), result

    def transition_objective(self, identity: Identity, objective_id: str, target_status: str) -> LearningObjective:
        existing = self._get_objective(objective_id)
        self._require_access(existing, identity, "update")

        decision = self.policy.can_transition_objective(existing, identity.user_id, identity.role, target_status)
        if not decision.allowed:
            raise InvalidTransitionError(existing.progress_status, target_status)

        db_objective = self.objective_repo.update_status(objective_id, target_status)
        logger.info(
            "Learning objective status changed",
            extra={"objective_id": objective_id, "from": existing.progress_status, "to": target_status},
        )
        return LearningObjective.model_validate(db_objective)

    def delete_objective(self, identity: Identity, objective_id: str) -> bool:
        existing = self._get_objective(objective_id)
        self._require_access(existing, identity, "delete")
        return self.objective_repo.delete(objective_id)

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def add_evidence(
        self,
        identity: Identity,
        candidate: Mapping[str, Any],
    ) -> Tuple[EvidenceArtifact, ValidationResult]:
        """Valida la evidencia, su vínculo con el objetivo padre y la autoría"""
        artifact = coerce_record(EvidenceArtifact, candidate).model_copy(
            update={"id": None, "upload_date": None}
        )

        result = self.validator.validate_evidence_portfolio([artifact])
        if artifact.learning_objective_id:
            objective = self._get_objective(artifact.learning_objective_id)
            result = ValidationResult.merge(result, self.validator.validate_artifact_link(artifact, objective))
        self._require_valid("evidence", result, "Evidence artifact rejected")
        self._require_access(artifact, identity, "insert")

        db_artifact = self.evidence_repo.create(artifact)
        logger.info(
            "Evidence artifact created",
            extra={"artifact_id": db_artifact.id, "learning_objective_id": db_artifact.learning_objective_id},
        )
        return EvidenceArtifact.model_validate(db_artifact), result

    def list_evidence(self, identity: Identity, objective_id: str) -> List[EvidenceArtifact]:
        objective = self._get_objective(objective_id)
        self._require_access(objective, identity, "select")
        rows = self.evidence_repo.get_by_objective(objective_id)
        return self._visible(identity, [EvidenceArtifact.model_validate(r) for r in rows])

    def validate_portfolio(self, identity: Identity, objective_id: str) -> ValidationResult:
        result = self.validator.validate_evidence_portfolio(self.list_evidence(identity, objective_id))
        record_validation("evidence_portfolio", result.is_valid)
        return result

    def delete_evidence(self, identity: Identity, artifact_id: str) -> bool:
        db_artifact = self.evidence_repo.get_by_id(artifact_id)
        if db_artifact is None:
            raise RecordNotFoundError("evidence artifact", artifact_id)
        self._require_access(EvidenceArtifact.model_validate(db_artifact), identity, "delete")
        return self.evidence_repo.delete(artifact_id)

    def get_portfolio_count(self, identity: Identity, student_id: str, project_id: str) -> Dict[str, int]:
        """Evidencias actuales frente al objetivo de portafolio del proyecto"""
        target = PORTFOLIO_EVIDENCE_TARGET
        objectives = self.list_objectives(identity, student_id, project_id)
        if not objectives:
            return {"current": 0, "target": target, "percentage": 0}

        current = self.evidence_repo.count_for_student_objectives(student_id, [o.id for o in objectives])
        return {"current": current, "target": target, "percentage": round(current / target * 100)}

    # ------------------------------------------------------------------
    # Assessments
    # ------------------------------------------------------------------

    def submit_assessment(
        self,
        identity: Identity,
        candidate: Mapping[str, Any],
    ) -> Tuple[IndividualAssessment, ValidationResult]:
        """
        Registra la evaluación individual enviada por el propio estudiante.

        Los educadores no pueden ser autores (validate_user_permissions); los
        campos reservados al educador se descartan y el estado inicial es
        submitted.

        Raises:
            AccessDeniedError: autoría invertida o identidad ajena
            RecordNotFoundError: el objetivo referenciado no existe
            IntegrityViolationError: falla validate_assessment_integrity
        """
        stripped = {name: None for name in EDUCATOR_ONLY_FIELDS}
        assessment = coerce_record(IndividualAssessment, candidate).model_copy(
            update={"id": None, "status": AssessmentStatus.SUBMITTED.value, **stripped}
        )

        self._require_permission(identity, "create", assessment.student_id)

        if assessment.learning_objective_id:
            objective = self._get_objective(assessment.learning_objective_id)
            artifacts = [
                EvidenceArtifact.model_validate(a)
                for a in self.evidence_repo.get_by_objective(objective.id)
            ]
        else:
            objective = LearningObjective()
            artifacts = []

        result = self._require_valid(
            "assessment_integrity",
            self.validator.validate_assessment_integrity(assessment, objective, artifacts),
            "Individual assessment rejected",
        )
        self._require_access(assessment, identity, "insert")

        db_assessment = self.assessment_repo.create(assessment)
        logger.info(
            "Individual assessment submitted",
            extra={"assessment_id": db_assessment.id, "student_id": db_assessment.student_id},
        )
        return IndividualAssessment.model_validate(db_assessment), result

    def get_assessment(self, identity: Identity, assessment_id: str) -> IndividualAssessment:
        assessment = self._get_assessment(assessment_id)
        self._require_permission(identity, "read", assessment.student_id)
        self._require_access(assessment, identity, "select", self._feedback_grants(identity, assessment))
        return assessment

    def list_assessments(self, identity: Identity, student_id: str, project_id: Optional[str] = None) -> List[IndividualAssessment]:
        rows = self.assessment_repo.get_by_student(student_id, project_id)
        visible = []
        for row in rows:
            assessment = IndividualAssessment.model_validate(row)
            grants = self._feedback_grants(identity, assessment)
            if self.policy.can_access(assessment, identity.user_id, identity.role, "select", grants):
                visible.append(assessment)
        return visible

    def attach_feedback(
        self,
        identity: Identity,
        assessment_id: str,
        educator_feedback: Optional[str] = None,
        assessment_score: Optional[float] = None,
        competency_achievement: Optional[int] = None,
        status: str = AssessmentStatus.UNDER_REVIEW.value,
    ) -> Tuple[IndividualAssessment, ValidationResult]:
        """
        Adjunta feedback/puntaje de un educador a una evaluación existente.

        Requiere un permiso de feedback (el educador dicta el curso del
        proyecto). El registro resultante se vuelve a pasar por
        prevent_team_grading.
        """
        if identity.role not in (UserRole.EDUCATOR.value, UserRole.ADMIN.value):
            raise AccessDeniedError("only educators attach assessment feedback", "update")

        existing = self._get_assessment(assessment_id)
        self._require_access(existing, identity, "update", self._feedback_grants(identity, existing))

        updated = existing.model_copy(update={
            k: v for k, v in {
                "educator_feedback": educator_feedback,
                "assessment_score": assessment_score,
                "competency_achievement": competency_achievement,
                "status": status,
            }.items() if v is not None
        })
        result = self.validator.prevent_team_grading(updated)
        if status not in FEEDBACK_STATUSES:
            result = ValidationResult.merge(result, ValidationResult.from_issues([
                ValidationIssue(
                    category=ErrorCategory.STRUCTURAL,
                    message=f'Feedback status must be one of {", ".join(FEEDBACK_STATUSES)}',
                    field="status",
                )
            ]))
        self._require_valid("assessment_feedback", result, "Assessment feedback rejected")

        db_assessment = self.assessment_repo.attach_feedback(
            assessment_id,
            assessed_by=identity.user_id,
            status=status,
            educator_feedback=educator_feedback,
            assessment_score=assessment_score,
            competency_achievement=competency_achievement,
        )
        return IndividualAssessment.model_validate(db_assessment), result

    def delete_assessment(self, identity: Identity, assessment_id: str) -> bool:
        existing = self._get_assessment(assessment_id)
        self._require_permission(identity, "delete", existing.student_id)
        self._require_access(existing, identity, "delete", self._feedback_grants(identity, existing))
        return self.assessment_repo.delete(assessment_id)
