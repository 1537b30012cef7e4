"""
Router de perfiles de usuario

El perfil se crea para la identidad que emitió el colaborador de sesión; su
id es el id de esa identidad.
"""
import logging

from fastapi import APIRouter, Depends, status

from ...core.access_policy import AccessPolicyEvaluator
from ...core.metrics import record_access_decision
from ...database.repositories import UserProfileRepository
from ...models.user import Identity, UserRole
from ..deps import get_access_policy, get_current_identity, get_profile_repository
from ..exceptions import AccessDeniedError, PBLabAPIException, RecordNotFoundError
from ..schemas.common import APIResponse
from ..schemas.integrity import ProfileCreateRequest, ProfileResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.post(
    "",
    response_model=APIResponse[ProfileResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_profile(
    request: ProfileCreateRequest,
    identity: Identity = Depends(get_current_identity),
    profile_repo: UserProfileRepository = Depends(get_profile_repository),
    policy: AccessPolicyEvaluator = Depends(get_access_policy),
) -> APIResponse[ProfileResponse]:
    role = request.role.lower()
    if role not in UserRole.values():
        raise AccessDeniedError(f"unknown role: {request.role}", "insert")
    if role != identity.role and not identity.is_admin:
        raise AccessDeniedError("profile role must match the authenticated role", "insert")

    record = {"user_id": identity.user_id, "email": request.email, "role": role}
    decision = policy.evaluate(record, identity.user_id, identity.role, "insert")
    record_access_decision("insert", decision.allowed)
    if not decision.allowed:
        raise AccessDeniedError(decision.reason, "insert")

    if profile_repo.get_by_id(identity.user_id) is not None:
        raise PBLabAPIException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Profile already exists",
            error_code="PROFILE_EXISTS",
        )
    if profile_repo.get_by_email(request.email) is not None:
        raise PBLabAPIException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
            error_code="EMAIL_EXISTS",
        )

    profile = profile_repo.create(
        user_id=identity.user_id,
        email=request.email,
        role=role,
        full_name=request.full_name,
    )
    return APIResponse(success=True, data=ProfileResponse.model_validate(profile), message="Profile created")


@router.get("/me", response_model=APIResponse[ProfileResponse])
async def get_my_profile(
    identity: Identity = Depends(get_current_identity),
    profile_repo: UserProfileRepository = Depends(get_profile_repository),
) -> APIResponse[ProfileResponse]:
    profile = profile_repo.get_by_id(identity.user_id)
    if profile is None:
        raise RecordNotFoundError("profile", identity.user_id)
    return APIResponse(success=True, data=ProfileResponse.model_validate(profile))
