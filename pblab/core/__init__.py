"""
Núcleo de integridad de evaluación individual

- IntegrityValidator: reglas de negocio sobre objetivos, evidencias y evaluaciones
- AccessPolicyEvaluator: permisos por registro, espejo de la seguridad por filas
"""
from .constants import IntegrityRules, utc_now
from .validation import ErrorCategory, ValidationIssue, ValidationResult
from .integrity_validator import IntegrityValidator, coerce_record
from .access_policy import (
    AccessDecision,
    AccessOperation,
    AccessPolicyEvaluator,
    ObjectiveLifecycle,
    ResourceKind,
    resource_kind_of,
)

__all__ = [
    "IntegrityRules",
    "utc_now",
    "ErrorCategory",
    "ValidationIssue",
    "ValidationResult",
    "IntegrityValidator",
    "coerce_record",
    "AccessDecision",
    "AccessOperation",
    "AccessPolicyEvaluator",
    "ObjectiveLifecycle",
    "ResourceKind",
    "resource_kind_of",
]
