"""
Access Policy Evaluator - Aislamiento por estudiante a nivel de registro

Reproduce en Python lo que haría la seguridad por filas (RLS) del backend,
de forma que las mismas invariantes se puedan probar sin base de datos.
Es la definición autoritativa de la política; el control de acceso del
almacén de datos queda como respaldo operativo.

Sin estado y sin I/O: los permisos de feedback del educador llegan ya
resueltos como una colección de ids de evaluación.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Dict, FrozenSet, Mapping, Optional, Union
import logging

from pydantic import BaseModel

from ..models.assessment import AssessmentStatus, IndividualAssessment
from ..models.evidence import EvidenceArtifact
from ..models.objective import LearningObjective, ObjectiveStatus
from ..models.user import UserRole

logger = logging.getLogger(__name__)

Record = Union[BaseModel, Mapping[str, Any]]

OWNERSHIP_FIELDS = ("id", "student_id", "user_id")
# Profiles and other unknown records fall back to user_id, then id
DECLARED_OWNER_FIELDS = ("student_id", "user_id", "id")

# Students may never delete an assessment once it reached one of these states
PROTECTED_ASSESSMENT_STATUSES = frozenset({
    AssessmentStatus.SUBMITTED.value,
    AssessmentStatus.COMPLETED.value,
})


class AccessOperation(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ResourceKind(str, Enum):
    OBJECTIVE = "objective"
    EVIDENCE = "evidence"
    ASSESSMENT = "assessment"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AccessDecision:
    """Resultado de una evaluación de acceso con su motivo"""
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def _field(record: Record, name: str) -> Optional[Any]:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def resource_kind_of(record: Record) -> ResourceKind:
    """
    Determina el tipo de registro.

    Los modelos tipados se reconocen por clase; para mappings se infiere por
    los campos característicos de cada entidad.
    """
    if isinstance(record, IndividualAssessment):
        return ResourceKind.ASSESSMENT
    if isinstance(record, LearningObjective):
        return ResourceKind.OBJECTIVE
    if isinstance(record, EvidenceArtifact):
        return ResourceKind.EVIDENCE
    if isinstance(record, Mapping):
        if "progress_status" in record or "objective_description" in record:
            return ResourceKind.OBJECTIVE
        if "learning_objective_id" in record and "status" in record:
            return ResourceKind.ASSESSMENT
        if "learning_objective_id" in record:
            return ResourceKind.EVIDENCE
    return ResourceKind.UNKNOWN


def _normalize(value: Any, enum_cls) -> Optional[str]:
    raw = value.value if isinstance(value, Enum) else value
    if isinstance(raw, str) and raw.lower() in {m.value for m in enum_cls}:
        return raw.lower()
    return None


class ObjectiveLifecycle:
    """
    Máquina de estados de un objetivo:

        draft -> active -> completed
        active | completed -> revised
        revised -> active | completed

    revised reabre el ciclo sin borrar historia: se registra un nuevo estado.
    """

    TRANSITIONS: Dict[str, FrozenSet[str]] = {
        ObjectiveStatus.DRAFT.value: frozenset({ObjectiveStatus.ACTIVE.value}),
        ObjectiveStatus.ACTIVE.value: frozenset({
            ObjectiveStatus.COMPLETED.value,
            ObjectiveStatus.REVISED.value,
        }),
        ObjectiveStatus.COMPLETED.value: frozenset({ObjectiveStatus.REVISED.value}),
        ObjectiveStatus.REVISED.value: frozenset({
            ObjectiveStatus.ACTIVE.value,
            ObjectiveStatus.COMPLETED.value,
        }),
    }

    @classmethod
    def can_transition(cls, current: str, target: str) -> bool:
        current = _normalize(current, ObjectiveStatus)
        target = _normalize(target, ObjectiveStatus)
        if current is None or target is None:
            return False
        return target in cls.TRANSITIONS[current]

    @classmethod
    def allowed_targets(cls, current: str) -> FrozenSet[str]:
        current = _normalize(current, ObjectiveStatus)
        return cls.TRANSITIONS.get(current, frozenset())


class AccessPolicyEvaluator:
    """
    Decide si una identidad puede leer o escribir un registro concreto.

    Reglas:
    - Propiedad: el registro es del solicitante si id, student_id o user_id
      coinciden con su id.
    - select / update / delete: solo el propietario.
    - insert: el campo propietario declarado debe ser el solicitante.
    - student: nunca borra una evaluación submitted/completed.
    - educator: no puede insertar objetivos, evidencias ni evaluaciones; puede leer y anotar
      evaluaciones para las que tiene permiso de feedback.
    - admin: bypass administrativo.
    - Rol u operación desconocidos: se deniega (fail closed).
    """

    def is_owner(self, record: Record, requester_id: str) -> bool:
        if not requester_id:
            return False
        return any(_field(record, name) == requester_id for name in OWNERSHIP_FIELDS)

    def declared_owner(self, record: Record) -> Optional[str]:
        if resource_kind_of(record) != ResourceKind.UNKNOWN:
            return _field(record, "student_id")
        for name in DECLARED_OWNER_FIELDS:
            value = _field(record, name)
            if value:
                return value
        return None

    def evaluate(
        self,
        record: Record,
        requester_id: str,
        requester_role: Union[str, UserRole],
        operation: Union[str, AccessOperation],
        feedback_grants: Collection[str] = (),
    ) -> AccessDecision:
        """
        Evalúa una solicitud de acceso.

        Args:
            record: Registro objetivo (existente para select/update/delete,
                candidato para insert)
            requester_id: Id del usuario autenticado
            requester_role: student | educator | admin
            operation: select | insert | update | delete
            feedback_grants: Ids de evaluaciones que el educador puede anotar

        Returns:
            AccessDecision con allowed y el motivo
        """
        role = _normalize(requester_role, UserRole)
        if role is None:
            logger.warning(
                "Access denied: unknown role",
                extra={"requester_id": requester_id, "role": str(requester_role)},
            )
            return AccessDecision(False, f"unknown role: {requester_role}")

        op = _normalize(operation, AccessOperation)
        if op is None:
            logger.warning(
                "Access denied: unknown operation",
                extra={"requester_id": requester_id, "operation": str(operation)},
            )
            return AccessDecision(False, f"unknown operation: {operation}")

        if not requester_id:
            return AccessDecision(False, "anonymous requester")

        if role == UserRole.ADMIN.value:
            return AccessDecision(True, "administrative override")

        kind = resource_kind_of(record)

        if op == AccessOperation.INSERT.value:
            if role == UserRole.EDUCATOR.value and kind != ResourceKind.UNKNOWN:
                return AccessDecision(False, "educators cannot author student records")
            if self.declared_owner(record) == requester_id:
                return AccessDecision(True, "requester is declared owner")
            return AccessDecision(False, "cannot create a record under another identity")

        if self.is_owner(record, requester_id):
            if (
                op == AccessOperation.DELETE.value
                and role == UserRole.STUDENT.value
                and kind == ResourceKind.ASSESSMENT
                and _field(record, "status") in PROTECTED_ASSESSMENT_STATUSES
            ):
                return AccessDecision(False, "submitted or completed assessments cannot be deleted")
            return AccessDecision(True, "requester owns record")

        if (
            role == UserRole.EDUCATOR.value
            and kind == ResourceKind.ASSESSMENT
            and op in (AccessOperation.SELECT.value, AccessOperation.UPDATE.value)
            and _field(record, "id") in feedback_grants
        ):
            return AccessDecision(True, "educator feedback grant")

        return AccessDecision(False, "requester does not own record")

    def can_access(
        self,
        record: Record,
        requester_id: str,
        requester_role: Union[str, UserRole],
        operation: Union[str, AccessOperation],
        feedback_grants: Collection[str] = (),
    ) -> bool:
        return self.evaluate(record, requester_id, requester_role, operation, feedback_grants).allowed

    def can_transition_objective(
        self,
        objective: Record,
        requester_id: str,
        requester_role: Union[str, UserRole],
        target_status: Union[str, ObjectiveStatus],
    ) -> AccessDecision:
        """Solo el propietario (o admin) mueve un objetivo por transiciones válidas"""
        decision = self.evaluate(objective, requester_id, requester_role, AccessOperation.UPDATE)
        if not decision.allowed:
            return decision

        current = _field(objective, "progress_status") or ObjectiveStatus.DRAFT.value
        target = target_status.value if isinstance(target_status, Enum) else target_status
        if not ObjectiveLifecycle.can_transition(current, target):
            return AccessDecision(False, f"invalid transition {current} -> {target}")
        return AccessDecision(True, f"transition {current} -> {target}")
