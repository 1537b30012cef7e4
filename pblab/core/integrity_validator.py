"""
Integrity Validator - Garantiza evaluación estrictamente individual

Motor de reglas sin estado que inspecciona objetivos, evaluaciones y
evidencias candidatas antes de persistirlas. Cada verificación devuelve un
ValidationResult (errores bloqueantes + advertencias) y nunca lanza
excepciones por violaciones de negocio.

Uso:
    from pblab.core.integrity_validator import IntegrityValidator

    validator = IntegrityValidator()
    result = validator.validate_objective({"student_id": "s1", "objective_description": ""})
    result.is_valid   # False
    result.errors     # ["Learning objective must have a description"]
"""
from typing import Any, Iterable, Mapping, Optional, Sequence, Type, TypeVar, Union
import logging

from pydantic import BaseModel

from ..models.assessment import AssessmentStatus, CompetencyFramework, IndividualAssessment
from ..models.evidence import EvidenceArtifact, EvidenceType
from ..models.objective import LearningObjective, ObjectiveStatus
from ..models.user import UserRole
from .constants import IntegrityRules
from .validation import ErrorCategory, ValidationCollector, ValidationResult

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
Candidate = Union[BaseModel, Mapping[str, Any]]

PERMISSION_OPERATIONS = ("create", "read", "update", "delete")
IMMUTABLE_OBJECTIVE_FIELDS = ("student_id", "project_id")


def coerce_record(model_cls: Type[ModelT], candidate: Candidate) -> ModelT:
    """
    Convierte un registro candidato (modelo o mapping) al modelo tipado.

    Las claves no declaradas se conservan en model_extra, que es donde se
    buscan los campos de equipo prohibidos.
    """
    if isinstance(candidate, model_cls):
        return candidate
    if isinstance(candidate, BaseModel):
        return model_cls.model_validate(candidate.model_dump())
    return model_cls.model_validate(dict(candidate))


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _out_of_range(value, bounds) -> bool:
    low, high = bounds
    return value is not None and (value < low or value > high)


def _extra_keys(model: BaseModel) -> Iterable[str]:
    return (model.model_extra or {}).keys()


class IntegrityValidator:
    """
    Valida que todo objetivo, evidencia y evaluación pertenezca a un único
    estudiante y que ninguna calificación grupal pueda introducirse.

    Stateless: la única configuración son las IntegrityRules inyectadas, que
    no se modifican. Llamar dos veces con la misma entrada produce el mismo
    resultado.
    """

    def __init__(self, rules: Optional[IntegrityRules] = None):
        self.rules = rules or IntegrityRules()

    # ------------------------------------------------------------------
    # Objectives
    # ------------------------------------------------------------------

    def validate_objective(self, objective: Candidate) -> ValidationResult:
        """
        Valida un objetivo de aprendizaje individual.

        Args:
            objective: LearningObjective o mapping equivalente

        Returns:
            ValidationResult con errores estructurales, de rango y de
            lenguaje de equipo en la descripción
        """
        objective = coerce_record(LearningObjective, objective)
        collector = ValidationCollector()

        if _is_blank(objective.student_id):
            collector.error(
                ErrorCategory.STRUCTURAL,
                "Learning objective must have a student_id (individual assessment required)",
                field="student_id",
            )

        if _is_blank(objective.objective_description):
            collector.error(
                ErrorCategory.STRUCTURAL,
                "Learning objective must have a description",
                field="objective_description",
            )

        low, high = self.rules.competency_range
        if _out_of_range(objective.competency_level, self.rules.competency_range):
            collector.error(
                ErrorCategory.RANGE,
                f"Competency level must be between {low} and {high}",
                field="competency_level",
            )

        if objective.progress_status not in ObjectiveStatus.values():
            collector.error(
                ErrorCategory.STRUCTURAL,
                f'Progress status "{objective.progress_status}" is not one of '
                f'{", ".join(ObjectiveStatus.values())}',
                field="progress_status",
            )

        description = (objective.objective_description or "").lower()
        for phrase in self.rules.objective_team_phrases:
            if phrase in description:
                collector.error(
                    ErrorCategory.POLICY_VIOLATION,
                    f'Learning objective description contains team-based language: "{phrase}". '
                    f"Individual assessment only.",
                    field="objective_description",
                )

        return collector.result()

    def validate_objective_update(
        self,
        existing: Candidate,
        changes: Mapping[str, Any],
    ) -> ValidationResult:
        """Rechaza cambios de propietario/proyecto y revalida el objetivo resultante"""
        existing = coerce_record(LearningObjective, existing)
        collector = ValidationCollector()

        for field_name in IMMUTABLE_OBJECTIVE_FIELDS:
            if field_name in changes and changes[field_name] != getattr(existing, field_name):
                collector.error(
                    ErrorCategory.POLICY_VIOLATION,
                    f"Learning objective {field_name} is immutable after creation",
                    field=field_name,
                )

        merged = LearningObjective.model_validate({**existing.model_dump(), **dict(changes)})
        collector.extend(self.validate_objective(merged))
        return collector.result()

    def check_minimum_objectives(self, objectives: Sequence[Candidate]) -> ValidationResult:
        """
        Verifica el mínimo de objetivos por estudiante y proyecto.

        Las descripciones duplicadas (sin distinguir mayúsculas, recortadas) y
        un nivel medio de competencia bajo solo generan advertencias.
        """
        objectives = [coerce_record(LearningObjective, o) for o in objectives]
        collector = ValidationCollector()
        required = self.rules.minimum_objectives

        if len(objectives) < required:
            collector.error(
                ErrorCategory.RANGE,
                f"Minimum {required} individual learning objectives required. "
                f"Currently have {len(objectives)}.",
            )

        descriptions = [(o.objective_description or "").strip().lower() for o in objectives]
        if len(set(descriptions)) < len(descriptions):
            collector.warn("Duplicate learning objectives detected. Consider consolidating similar objectives.")

        levels = [o.competency_level for o in objectives if o.competency_level is not None]
        if levels and sum(levels) / len(levels) < self.rules.low_competency_average:
            collector.warn("Consider setting higher competency level targets for learning objectives")

        return collector.result()

    # ------------------------------------------------------------------
    # Assessments
    # ------------------------------------------------------------------

    def prevent_team_grading(self, assessment: Candidate) -> ValidationResult:
        """
        CRÍTICO: impide cualquier forma de calificación grupal.

        Busca campos de equipo en el bolsillo de campos desconocidos de la
        evaluación y, si hay un marco de competencias, en el marco y en cada
        área / criterio (indicando el índice). Además exige student_id y
        learning_objective_id y controla los rangos de logro y puntaje.
        """
        assessment = coerce_record(IndividualAssessment, assessment)
        collector = ValidationCollector()

        extra = set(_extra_keys(assessment))
        for field_name in self.rules.forbidden_assessment_fields:
            if field_name in extra:
                collector.error(
                    ErrorCategory.POLICY_VIOLATION,
                    f'FORBIDDEN: Team-based property "{field_name}" detected. '
                    f"Individual assessment architecture requires individual-only grading.",
                    field=field_name,
                )

        if assessment.competency_framework is not None:
            self._check_competency_framework(assessment.competency_framework, collector)

        if _is_blank(assessment.student_id):
            collector.error(
                ErrorCategory.STRUCTURAL,
                "Assessment must have student_id for individual assessment",
                field="student_id",
            )

        if _is_blank(assessment.learning_objective_id):
            collector.error(
                ErrorCategory.STRUCTURAL,
                "Assessment must be linked to an individual learning objective",
                field="learning_objective_id",
            )

        low, high = self.rules.competency_range
        if _out_of_range(assessment.competency_achievement, self.rules.competency_range):
            collector.error(
                ErrorCategory.RANGE,
                f"Competency achievement must be between {low} and {high}",
                field="competency_achievement",
            )

        low, high = self.rules.score_range
        if _out_of_range(assessment.assessment_score, self.rules.score_range):
            collector.error(
                ErrorCategory.RANGE,
                f"Assessment score must be between {low:g} and {high:g}",
                field="assessment_score",
            )

        if assessment.status not in AssessmentStatus.values():
            collector.error(
                ErrorCategory.STRUCTURAL,
                f'Assessment status "{assessment.status}" is not one of '
                f'{", ".join(AssessmentStatus.values())}',
                field="status",
            )

        return collector.result()

    def _check_competency_framework(
        self,
        framework: CompetencyFramework,
        collector: ValidationCollector,
    ) -> None:
        forbidden = self.rules.forbidden_framework_fields

        framework_extra = set(_extra_keys(framework))
        for field_name in forbidden:
            if field_name in framework_extra:
                collector.error(
                    ErrorCategory.POLICY_VIOLATION,
                    f'FORBIDDEN: Team-based competency framework property "{field_name}" detected.',
                    field=field_name,
                )

        sections = (
            ("competency area", framework.competency_areas),
            ("assessment criteria", framework.assessment_criteria),
        )
        for label, entries in sections:
            for index, entry in enumerate(entries):
                entry_extra = set(_extra_keys(entry))
                for field_name in forbidden:
                    if field_name in entry_extra:
                        collector.error(
                            ErrorCategory.POLICY_VIOLATION,
                            f'FORBIDDEN: Team-based property "{field_name}" found in {label} {index}',
                            field=field_name,
                            index=index,
                        )

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def validate_evidence_portfolio(self, artifacts: Optional[Sequence[Candidate]]) -> ValidationResult:
        """
        Valida el portafolio de evidencias de un estudiante.

        Los mensajes usan numeración desde 1 ("Evidence artifact 1 ...") para
        poder rastrear cada elemento del lote.
        """
        collector = ValidationCollector()

        if not artifacts:
            collector.warn("No evidence artifacts found. Portfolio development encouraged.")
            return collector.result()

        for index, raw in enumerate(artifacts):
            artifact = coerce_record(EvidenceArtifact, raw)
            number = index + 1

            if _is_blank(artifact.learning_objective_id):
                collector.error(
                    ErrorCategory.STRUCTURAL,
                    f"Evidence artifact {number} must be linked to an individual learning objective",
                    field="learning_objective_id",
                    index=index,
                )

            if _is_blank(artifact.student_id):
                collector.error(
                    ErrorCategory.STRUCTURAL,
                    f"Evidence artifact {number} must have student_id for individual assessment",
                    field="student_id",
                    index=index,
                )

            has_file = not _is_blank(artifact.file_path)
            has_url = not _is_blank(artifact.external_url)
            if not has_file and not has_url:
                collector.error(
                    ErrorCategory.STRUCTURAL,
                    f"Evidence artifact {number} must have either file_path or external_url",
                    field="file_path",
                    index=index,
                )
            elif has_file and has_url:
                collector.error(
                    ErrorCategory.STRUCTURAL,
                    f"Evidence artifact {number} must have only one of file_path or external_url",
                    field="external_url",
                    index=index,
                )

            if _is_blank(artifact.title):
                collector.error(
                    ErrorCategory.STRUCTURAL,
                    f"Evidence artifact {number} must have a title",
                    field="title",
                    index=index,
                )

            if artifact.type is not None and artifact.type not in EvidenceType.values():
                collector.error(
                    ErrorCategory.STRUCTURAL,
                    f'Evidence artifact {number} has unknown type "{artifact.type}"',
                    field="type",
                    index=index,
                )

            title = (artifact.title or "").lower()
            description = (artifact.description or "").lower()
            matched = [
                phrase for phrase in self.rules.artifact_team_phrases
                if phrase in title or phrase in description
            ]
            if matched:
                collector.warn(
                    f'Evidence artifact "{artifact.title}" may contain team-based work '
                    f'({", ".join(matched)}). Ensure individual contribution is clearly identified.',
                    index=index,
                )

        return collector.result()

    def validate_artifact_link(self, artifact: Candidate, objective: Candidate) -> ValidationResult:
        """La evidencia debe pertenecer al mismo estudiante que su objetivo padre"""
        artifact = coerce_record(EvidenceArtifact, artifact)
        objective = coerce_record(LearningObjective, objective)
        collector = ValidationCollector()

        if artifact.student_id != objective.student_id:
            collector.error(
                ErrorCategory.REFERENTIAL,
                "Evidence artifact student_id must match learning objective student_id",
                field="student_id",
            )
        if artifact.learning_objective_id != objective.id:
            collector.error(
                ErrorCategory.REFERENTIAL,
                "Evidence artifact must be linked to its learning objective",
                field="learning_objective_id",
            )
        return collector.result()

    # ------------------------------------------------------------------
    # Aggregate
    # ------------------------------------------------------------------

    def validate_assessment_integrity(
        self,
        assessment: Candidate,
        objective: Candidate,
        artifacts: Sequence[Candidate],
    ) -> ValidationResult:
        """
        Verificación integral de una evaluación.

        Agrega prevent_team_grading + validate_objective +
        validate_evidence_portfolio sin cortocircuito y luego comprueba la
        consistencia referencial entre evaluación, objetivo y evidencias.

        Args:
            assessment: Evaluación candidata
            objective: Objetivo al que apunta la evaluación
            artifacts: Evidencias del objetivo

        Returns:
            ValidationResult con todas las violaciones encontradas
        """
        assessment = coerce_record(IndividualAssessment, assessment)
        objective = coerce_record(LearningObjective, objective)
        artifacts = [coerce_record(EvidenceArtifact, a) for a in artifacts or []]

        collector = ValidationCollector()
        collector.extend(self.prevent_team_grading(assessment))
        collector.extend(self.validate_objective(objective))
        collector.extend(self.validate_evidence_portfolio(artifacts))

        if assessment.student_id != objective.student_id:
            collector.error(
                ErrorCategory.REFERENTIAL,
                "Assessment student_id must match learning objective student_id",
                field="student_id",
            )

        if assessment.project_id != objective.project_id:
            collector.error(
                ErrorCategory.REFERENTIAL,
                "Assessment project_id must match learning objective project_id",
                field="project_id",
            )

        if assessment.learning_objective_id != objective.id:
            collector.error(
                ErrorCategory.REFERENTIAL,
                "Assessment must be linked to the correct learning objective",
                field="learning_objective_id",
            )

        for index, artifact in enumerate(artifacts):
            number = index + 1
            if artifact.student_id != assessment.student_id:
                collector.error(
                    ErrorCategory.REFERENTIAL,
                    f"Evidence artifact {number} student_id must match assessment student_id",
                    field="student_id",
                    index=index,
                )
            if artifact.learning_objective_id != assessment.learning_objective_id:
                collector.error(
                    ErrorCategory.REFERENTIAL,
                    f"Evidence artifact {number} must be linked to the same learning objective",
                    field="learning_objective_id",
                    index=index,
                )

        result = collector.result()
        logger.debug(
            "Assessment integrity checked",
            extra={
                "learning_objective_id": assessment.learning_objective_id,
                "artifact_count": len(artifacts),
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
            },
        )
        return result

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def validate_user_permissions(
        self,
        user_id: str,
        role: str,
        operation: str,
        target_student_id: Optional[str],
    ) -> ValidationResult:
        """
        Verifica permisos sobre evaluaciones individuales.

        - student: solo sobre sí mismo, y nunca delete
        - educator: nunca create (no puede ser autor en nombre de un estudiante)
        - admin: sin reglas explícitas
        Un rol u operación desconocidos se rechazan.
        """
        collector = ValidationCollector()
        role_value = role.value if isinstance(role, UserRole) else role
        if isinstance(role_value, str):
            role_value = role_value.lower()

        if role_value not in UserRole.values():
            collector.error(
                ErrorCategory.POLICY_VIOLATION,
                f'Unknown role "{role_value}". Access denied.',
                field="role",
            )
            return collector.result()

        if operation not in PERMISSION_OPERATIONS:
            collector.error(
                ErrorCategory.STRUCTURAL,
                f'Unknown operation "{operation}". Expected one of {", ".join(PERMISSION_OPERATIONS)}',
                field="operation",
            )
            return collector.result()

        if role_value == UserRole.STUDENT.value:
            if user_id != target_student_id:
                collector.error(
                    ErrorCategory.POLICY_VIOLATION,
                    "Students can only access their own individual assessments",
                    field="student_id",
                )
            if operation == "delete":
                collector.error(
                    ErrorCategory.POLICY_VIOLATION,
                    "Students cannot delete submitted assessments",
                )

        if role_value == UserRole.EDUCATOR.value and operation == "create":
            collector.error(
                ErrorCategory.POLICY_VIOLATION,
                "Educators cannot create assessments on behalf of students. "
                "Students must submit their own individual assessments.",
            )

        return collector.result()
