"""
Router de evaluaciones individuales

Los estudiantes envían su propia evaluación; los educadores solo adjuntan
feedback a evaluaciones de proyectos de sus cursos.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...models.assessment import IndividualAssessment
from ...models.user import Identity
from ...services.integrity_service import IndividualAssessmentService
from ..deps import get_assessment_service, get_current_identity
from ..schemas.common import APIResponse
from ..schemas.integrity import AssessmentResult, AssessmentSubmitRequest, FeedbackRequest, to_candidate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assessments", tags=["Individual Assessments"])


@router.post(
    "",
    response_model=APIResponse[AssessmentResult],
    status_code=status.HTTP_201_CREATED,
    summary="Enviar evaluación individual",
)
async def submit_assessment(
    request: AssessmentSubmitRequest,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[AssessmentResult]:
    assessment, validation = service.submit_assessment(identity, to_candidate(request))
    return APIResponse(
        success=True,
        data=AssessmentResult(assessment=assessment, validation=validation),
        message="Individual assessment submitted",
    )


@router.get(
    "",
    response_model=APIResponse[List[IndividualAssessment]],
)
async def list_assessments(
    student_id: str = Query(...),
    project_id: Optional[str] = Query(default=None),
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[List[IndividualAssessment]]:
    return APIResponse(success=True, data=service.list_assessments(identity, student_id, project_id))


@router.get(
    "/{assessment_id}",
    response_model=APIResponse[IndividualAssessment],
)
async def get_assessment(
    assessment_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[IndividualAssessment]:
    return APIResponse(success=True, data=service.get_assessment(identity, assessment_id))


@router.post(
    "/{assessment_id}/feedback",
    response_model=APIResponse[AssessmentResult],
    summary="Adjuntar feedback del educador",
)
async def attach_feedback(
    assessment_id: str,
    request: FeedbackRequest,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[AssessmentResult]:
    assessment, validation = service.attach_feedback(
        identity,
        assessment_id,
        educator_feedback=request.educator_feedback,
        assessment_score=request.assessment_score,
        competency_achievement=request.competency_achievement,
        status=request.status,
    )
    return APIResponse(
        success=True,
        data=AssessmentResult(assessment=assessment, validation=validation),
        message="Feedback attached",
    )


@router.delete(
    "/{assessment_id}",
    response_model=APIResponse[bool],
)
async def delete_assessment(
    assessment_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[bool]:
    return APIResponse(success=True, data=service.delete_assessment(identity, assessment_id))
