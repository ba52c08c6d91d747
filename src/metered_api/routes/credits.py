"""Credit recharge endpoint."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from metered_api.auth.dependencies import get_current_user
from metered_api.errors.exceptions import (
    AlreadyRechargedError,
    MeteredAPIError,
    StorageUnavailableError,
    UserNotFoundError,
)
from metered_api.models.responses import RechargeResponse
from metered_api.models.user import UserRef
from metered_api.services.recharge_service import (
    RechargeController,
    RechargeError,
    get_recharge_controller,
)

router = APIRouter(prefix="/credits", tags=["Credits"])

RECHARGE_ERRORS: dict[RechargeError, type[MeteredAPIError]] = {
    RechargeError.USER_NOT_FOUND: UserNotFoundError,
    RechargeError.ALREADY_RECHARGED: AlreadyRechargedError,
    RechargeError.STORAGE_UNAVAILABLE: StorageUnavailableError,
}


@router.post(
    "/recharge",
    response_model=RechargeResponse,
    summary="Recharge Credits",
    description="Use the one-time credit top-up. The amount is fixed by the server.",
)
async def recharge(
    body: dict[str, Any] | None = Body(default=None),
    user: UserRef = Depends(get_current_user),
    controller: RechargeController = Depends(get_recharge_controller),
) -> RechargeResponse:
    """
    Recharge the caller's credits once.

    The user is taken from the API key, never from the body. Any `amount`
    in the body is ignored.
    """
    requested = body.get("amount") if body else None
    result = await controller.recharge(
        user.id,
        amount=requested if isinstance(requested, int) else None,
    )

    if result.error is not None:
        raise RECHARGE_ERRORS[result.error]()

    assert result.user is not None
    return RechargeResponse(
        id=result.user.id,
        email=result.user.email,
        credits_remaining=result.user.credits,
        can_recharge=result.user.can_recharge,
        message=f"Successfully recharged {result.amount} credits.",
    )
