"""
Router de evidencias de portafolio
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...core.validation import ValidationResult
from ...models.evidence import EvidenceArtifact
from ...models.user import Identity
from ...services.integrity_service import IndividualAssessmentService
from ..deps import get_assessment_service, get_current_identity
from ..schemas.common import APIResponse
from ..schemas.integrity import EvidenceCreateRequest, EvidenceResult, PortfolioCount, to_candidate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Evidence"])


@router.post(
    "/evidence",
    response_model=APIResponse[EvidenceResult],
    status_code=status.HTTP_201_CREATED,
    summary="Subir evidencia",
    description="Exactamente uno de file_path o external_url. La evidencia debe pertenecer al mismo estudiante que su objetivo.",
)
async def add_evidence(
    request: EvidenceCreateRequest,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[EvidenceResult]:
    artifact, validation = service.add_evidence(identity, to_candidate(request))
    return APIResponse(
        success=True,
        data=EvidenceResult(artifact=artifact, validation=validation),
        message="Evidence artifact created",
    )


@router.get(
    "/objectives/{objective_id}/evidence",
    response_model=APIResponse[List[EvidenceArtifact]],
)
async def list_evidence(
    objective_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[List[EvidenceArtifact]]:
    return APIResponse(success=True, data=service.list_evidence(identity, objective_id))


@router.get(
    "/objectives/{objective_id}/evidence/validation",
    response_model=APIResponse[ValidationResult],
)
async def validate_portfolio(
    objective_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[ValidationResult]:
    return APIResponse(success=True, data=service.validate_portfolio(identity, objective_id))


@router.delete(
    "/evidence/{artifact_id}",
    response_model=APIResponse[bool],
)
async def delete_evidence(
    artifact_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[bool]:
    return APIResponse(success=True, data=service.delete_evidence(identity, artifact_id))


@router.get(
    "/students/{student_id}/projects/{project_id}/portfolio",
    response_model=APIResponse[PortfolioCount],
    summary="Conteo de portafolio",
)
async def get_portfolio_count(
    student_id: str,
    project_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[PortfolioCount]:
    counts = service.get_portfolio_count(identity, student_id, project_id)
    return APIResponse(success=True, data=PortfolioCount(**counts))
