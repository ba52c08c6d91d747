"""Admin endpoints for user provisioning."""

from fastapi import APIRouter, Depends

from metered_api.auth.dependencies import require_admin
from metered_api.models.responses import ProvisionUserRequest, ProvisionUserResponse
from metered_api.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.post(
    "/users",
    response_model=ProvisionUserResponse,
    status_code=201,
    summary="Provision User",
    description="Create or refresh a user from an externally verified identity.",
)
async def provision_user(
    body: ProvisionUserRequest,
    user_service: UserService = Depends(get_user_service),
) -> ProvisionUserResponse:
    """
    Called by the sign-in flow once the identity provider has verified the user.

    Returns the user's API key. Repeated calls for the same identity return the
    same user and key.
    """
    user = await user_service.provision_user(
        external_id=body.external_id,
        email=body.email,
        name=body.name,
        image=body.image,
    )
    return ProvisionUserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        image=user.image,
        api_key=user.api_key,
        credits_remaining=user.credits,
        can_recharge=user.can_recharge,
    )
