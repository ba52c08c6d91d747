"""Account endpoints. Authenticated but not metered."""

from fastapi import APIRouter, Depends

from metered_api.auth.dependencies import get_current_user
from metered_api.models.responses import AccountResponse, UsageStatsResponse
from metered_api.models.user import UserRef
from metered_api.services.account_service import AccountService, get_account_service

router = APIRouter(prefix="/account", tags=["Account"])


@router.get(
    "",
    response_model=AccountResponse,
    summary="Get Account",
    description="Get profile and credit balance for the authenticated user.",
)
async def get_account(
    user: UserRef = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """
    Get account details.

    Returns:
    - Profile (email, name, avatar)
    - API key
    - Remaining and used credits
    - Whether the one-time recharge is still available
    """
    return await account_service.get_account(user)


@router.get(
    "/usage",
    response_model=UsageStatsResponse,
    summary="Get Usage",
    description="Get request counts by endpoint and status code.",
)
async def get_usage(
    user: UserRef = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service),
) -> UsageStatsResponse:
    return await account_service.get_usage_stats(user)
