"""
Router de validación (dry-run)

Ejecuta las verificaciones del IntegrityValidator y del evaluador de
políticas sobre registros candidatos sin persistir nada. Las violaciones se
devuelven como datos con 200: el cliente decide qué hacer con ellas.
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends

from ...core.access_policy import AccessPolicyEvaluator
from ...core.integrity_validator import IntegrityValidator
from ...core.metrics import record_validation
from ...core.validation import ValidationResult
from ...models.user import Identity
from ..deps import get_access_policy, get_current_identity, get_integrity_validator
from ..schemas.common import APIResponse
from ..schemas.integrity import (
    AccessCheckRequest,
    AccessDecisionResponse,
    AssessmentIntegrityRequest,
    PermissionCheckRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/validation", tags=["Validation"])


def _report(check: str, result: ValidationResult) -> APIResponse[ValidationResult]:
    record_validation(check, result.is_valid)
    return APIResponse(
        success=True,
        data=result,
        message="valid" if result.is_valid else f"{len(result.errors)} integrity error(s)",
    )


@router.post("/objective", response_model=APIResponse[ValidationResult])
async def validate_objective(
    objective: Dict[str, Any] = Body(...),
    identity: Identity = Depends(get_current_identity),
    validator: IntegrityValidator = Depends(get_integrity_validator),
) -> APIResponse[ValidationResult]:
    return _report("objective", validator.validate_objective(objective))


@router.post("/objectives/minimum", response_model=APIResponse[ValidationResult])
async def check_minimum_objectives(
    objectives: List[Dict[str, Any]] = Body(...),
    identity: Identity = Depends(get_current_identity),
    validator: IntegrityValidator = Depends(get_integrity_validator),
) -> APIResponse[ValidationResult]:
    return _report("minimum_objectives", validator.check_minimum_objectives(objectives))


@router.post("/team-grading", response_model=APIResponse[ValidationResult])
async def prevent_team_grading(
    assessment: Dict[str, Any] = Body(...),
    identity: Identity = Depends(get_current_identity),
    validator: IntegrityValidator = Depends(get_integrity_validator),
) -> APIResponse[ValidationResult]:
    return _report("team_grading", validator.prevent_team_grading(assessment))


@router.post("/evidence", response_model=APIResponse[ValidationResult])
async def validate_evidence_portfolio(
    artifacts: List[Dict[str, Any]] = Body(...),
    identity: Identity = Depends(get_current_identity),
    validator: IntegrityValidator = Depends(get_integrity_validator),
) -> APIResponse[ValidationResult]:
    return _report("evidence_portfolio", validator.validate_evidence_portfolio(artifacts))


@router.post("/assessment-integrity", response_model=APIResponse[ValidationResult])
async def validate_assessment_integrity(
    request: AssessmentIntegrityRequest,
    identity: Identity = Depends(get_current_identity),
    validator: IntegrityValidator = Depends(get_integrity_validator),
) -> APIResponse[ValidationResult]:
    result = validator.validate_assessment_integrity(request.assessment, request.objective, request.artifacts)
    return _report("assessment_integrity", result)


@router.post("/permissions", response_model=APIResponse[ValidationResult])
async def validate_user_permissions(
    request: PermissionCheckRequest,
    identity: Identity = Depends(get_current_identity),
    validator: IntegrityValidator = Depends(get_integrity_validator),
) -> APIResponse[ValidationResult]:
    result = validator.validate_user_permissions(
        request.user_id, request.role, request.operation, request.target_student_id
    )
    return _report("user_permissions", result)


@router.post("/access", response_model=APIResponse[AccessDecisionResponse])
async def evaluate_access(
    request: AccessCheckRequest,
    identity: Identity = Depends(get_current_identity),
    policy: AccessPolicyEvaluator = Depends(get_access_policy),
) -> APIResponse[AccessDecisionResponse]:
    decision = policy.evaluate(
        request.record,
        request.requester_id,
        request.requester_role,
        request.operation,
        frozenset(request.feedback_grants),
    )
    return APIResponse(
        success=True,
        data=AccessDecisionResponse(allowed=decision.allowed, reason=decision.reason),
    )
