"""
Constantes y reglas de integridad para evaluación individual

Las listas de frases y campos prohibidos son datos de configuración, no
lógica: el IntegrityValidator las recibe por constructor y pueden
ampliarse desde variables de entorno sin tocar el código de matching.
"""
import os
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Tuple


def utc_now() -> datetime:
    """Timestamp timezone-aware en UTC"""
    return datetime.now(timezone.utc)


# Frases que implican calificación grupal en la descripción de un objetivo (error)
OBJECTIVE_TEAM_PHRASES: Tuple[str, ...] = (
    "team grade",
    "team score",
    "group grade",
    "collective assessment",
)

# Frases que sugieren trabajo grupal en una evidencia (solo advertencia)
ARTIFACT_TEAM_PHRASES: Tuple[str, ...] = (
    "team project",
    "group work",
    "collective",
    "shared",
)

# Campos de evaluación que representarían una nota de equipo
FORBIDDEN_ASSESSMENT_FIELDS: Tuple[str, ...] = (
    "team_grade",
    "team_score",
    "group_grade",
    "group_score",
    "team_assessment",
    "group_assessment",
    "team_competency",
    "group_competency",
    "collective_grade",
    "shared_grade",
)

# Campos prohibidos dentro del marco de competencias y sus entradas
FORBIDDEN_FRAMEWORK_FIELDS: Tuple[str, ...] = (
    "team_competencies",
    "group_competencies",
    "team_criteria",
    "group_criteria",
    "team_weight",
    "group_weight",
)

MINIMUM_OBJECTIVES = 3
COMPETENCY_RANGE: Tuple[int, int] = (1, 5)
SCORE_RANGE: Tuple[float, float] = (0.0, 100.0)
LOW_COMPETENCY_AVERAGE = 2.0

# Portfolio targets used by progress reporting
EVIDENCE_TARGET_PER_OBJECTIVE = 10
PORTFOLIO_EVIDENCE_TARGET = 10

EXTRA_OBJECTIVE_PHRASES_ENV = "PBLAB_EXTRA_OBJECTIVE_TEAM_PHRASES"
EXTRA_ARTIFACT_PHRASES_ENV = "PBLAB_EXTRA_ARTIFACT_TEAM_PHRASES"


def _split_env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(p.strip().lower() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class IntegrityRules:
    """
    Reglas que aplica el IntegrityValidator.

    Usage:
        >>> rules = IntegrityRules()
        >>> rules.minimum_objectives
        3
        >>> rules.with_extra_phrases(objective=["squad mark"]).objective_team_phrases[-1]
        'squad mark'
    """
    objective_team_phrases: Tuple[str, ...] = OBJECTIVE_TEAM_PHRASES
    artifact_team_phrases: Tuple[str, ...] = ARTIFACT_TEAM_PHRASES
    forbidden_assessment_fields: Tuple[str, ...] = FORBIDDEN_ASSESSMENT_FIELDS
    forbidden_framework_fields: Tuple[str, ...] = FORBIDDEN_FRAMEWORK_FIELDS
    minimum_objectives: int = MINIMUM_OBJECTIVES
    competency_range: Tuple[int, int] = COMPETENCY_RANGE
    score_range: Tuple[float, float] = SCORE_RANGE
    low_competency_average: float = LOW_COMPETENCY_AVERAGE

    def with_extra_phrases(self, objective=(), artifact=()) -> "IntegrityRules":
        """Return a copy with additional lowercase phrases appended (duplicates skipped)"""
        def _extend(base: Tuple[str, ...], extra) -> Tuple[str, ...]:
            merged = list(base)
            for phrase in extra:
                phrase = phrase.strip().lower()
                if phrase and phrase not in merged:
                    merged.append(phrase)
            return tuple(merged)

        return replace(
            self,
            objective_team_phrases=_extend(self.objective_team_phrases, objective),
            artifact_team_phrases=_extend(self.artifact_team_phrases, artifact),
        )

    @classmethod
    def from_env(cls) -> "IntegrityRules":
        """Default rules extended with comma-separated phrases from the environment"""
        return cls().with_extra_phrases(
            objective=_split_env_list(EXTRA_OBJECTIVE_PHRASES_ENV),
            artifact=_split_env_list(EXTRA_ARTIFACT_PHRASES_ENV),
        )
