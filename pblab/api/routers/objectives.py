"""
Router de objetivos de aprendizaje individuales

Endpoints:
- POST   /objectives                               - Crear objetivo propio
- GET    /objectives/{objective_id}                - Obtener objetivo
- PATCH  /objectives/{objective_id}                - Editar descripción / nivel / estado
- POST   /objectives/{objective_id}/transition     - Cambiar estado
- DELETE /objectives/{objective_id}                - Borrar objetivo
- GET    /students/{student_id}/projects/{project_id}/objectives
- GET    /students/{student_id}/projects/{project_id}/objectives/progress
- GET    /students/{student_id}/projects/{project_id}/objectives/minimum
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...core.validation import ValidationResult
from ...models.objective import LearningObjective
from ...models.user import Identity
from ...services.integrity_service import IndividualAssessmentService
from ..deps import get_assessment_service, get_current_identity
from ..schemas.common import APIResponse
from ..schemas.integrity import (
    ObjectiveCreateRequest,
    ObjectiveProgress,
    ObjectiveResult,
    ObjectiveTransitionRequest,
    ObjectiveUpdateRequest,
    to_candidate,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Learning Objectives"])


@router.post(
    "/objectives",
    response_model=APIResponse[ObjectiveResult],
    status_code=status.HTTP_201_CREATED,
    summary="Crear objetivo individual",
)
async def create_objective(
    request: ObjectiveCreateRequest,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[ObjectiveResult]:
    objective, validation = service.create_objective(identity, to_candidate(request))
    return APIResponse(
        success=True,
        data=ObjectiveResult(objective=objective, validation=validation),
        message="Learning objective created",
    )


@router.get(
    "/objectives/{objective_id}",
    response_model=APIResponse[LearningObjective],
)
async def get_objective(
    objective_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[LearningObjective]:
    return APIResponse(success=True, data=service.get_objective(identity, objective_id))


@router.patch(
    "/objectives/{objective_id}",
    response_model=APIResponse[ObjectiveResult],
    summary="Editar objetivo",
    description="Editar la descripción o el nivel de un objetivo completed lo pasa a revised.",
)
async def update_objective(
    objective_id: str,
    request: ObjectiveUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[ObjectiveResult]:
    objective, validation = service.update_objective(
        identity, objective_id, to_candidate(request)
    )
    return APIResponse(
        success=True,
        data=ObjectiveResult(objective=objective, validation=validation),
        message="Learning objective updated",
    )


@router.post(
    "/objectives/{objective_id}/transition",
    response_model=APIResponse[LearningObjective],
)
async def transition_objective(
    objective_id: str,
    request: ObjectiveTransitionRequest,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[LearningObjective]:
    objective = service.transition_objective(identity, objective_id, request.target_status)
    return APIResponse(success=True, data=objective, message=f"Status changed to {objective.progress_status}")


@router.delete(
    "/objectives/{objective_id}",
    response_model=APIResponse[bool],
)
async def delete_objective(
    objective_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[bool]:
    return APIResponse(success=True, data=service.delete_objective(identity, objective_id))


@router.get(
    "/students/{student_id}/projects/{project_id}/objectives",
    response_model=APIResponse[List[LearningObjective]],
)
async def list_objectives(
    student_id: str,
    project_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[List[LearningObjective]]:
    return APIResponse(success=True, data=service.list_objectives(identity, student_id, project_id))


@router.get(
    "/students/{student_id}/projects/{project_id}/objectives/progress",
    response_model=APIResponse[List[ObjectiveProgress]],
)
async def list_objectives_with_progress(
    student_id: str,
    project_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[List[ObjectiveProgress]]:
    progress = service.list_objectives_with_progress(identity, student_id, project_id)
    return APIResponse(success=True, data=[ObjectiveProgress(**entry) for entry in progress])


@router.get(
    "/students/{student_id}/projects/{project_id}/objectives/minimum",
    response_model=APIResponse[ValidationResult],
    summary="Verificar mínimo de objetivos",
)
async def check_minimum_objectives(
    student_id: str,
    project_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IndividualAssessmentService = Depends(get_assessment_service),
) -> APIResponse[ValidationResult]:
    return APIResponse(success=True, data=service.check_minimum_objectives(identity, student_id, project_id))
