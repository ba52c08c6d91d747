"""FastAPI authentication and metering dependencies."""

import secrets

from fastapi import Depends, Header, Request

from metered_api.auth.api_keys import extract_api_key
from metered_api.config import get_settings
from metered_api.errors.exceptions import (
    InsufficientCreditsError,
    InvalidAdminKeyError,
    InvalidAPIKeyError,
    MeteredAPIError,
    MissingCredentialError,
    StorageUnavailableError,
)
from metered_api.models.user import UserRef
from metered_api.services.credit_gate import CreditGate, GateError, GateResult, get_credit_gate

GATE_ERRORS: dict[GateError, type[MeteredAPIError]] = {
    GateError.MISSING_CREDENTIAL: MissingCredentialError,
    GateError.INVALID_KEY: InvalidAPIKeyError,
    GateError.INSUFFICIENT_CREDITS: InsufficientCreditsError,
    GateError.STORAGE_UNAVAILABLE: StorageUnavailableError,
}


def raise_for_gate_error(result: GateResult) -> UserRef:
    """Turn a rejected gate result into the matching API error."""
    if result.error is not None:
        raise GATE_ERRORS[result.error]()
    assert result.user is not None
    return result.user


async def get_api_key(
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str:
    """Extract API key from the Authorization or X-API-Key header."""
    api_key = extract_api_key(authorization, x_api_key)
    if api_key is None:
        raise MissingCredentialError()
    return api_key


async def charge_credit(
    request: Request,
    api_key: str = Depends(get_api_key),
    gate: CreditGate = Depends(get_credit_gate),
) -> UserRef:
    """
    Authorize the request and charge one credit.

    Runs before the request body is handled, so a request that fails
    validation afterwards has still been billed.
    """
    user = raise_for_gate_error(await gate.authorize_and_charge(api_key))
    # Marks the request as admitted for usage logging
    request.state.user_id = user.id
    return user


async def get_current_user(
    api_key: str = Depends(get_api_key),
    gate: CreditGate = Depends(get_credit_gate),
) -> UserRef:
    """Authenticate without charging. For account and recharge endpoints."""
    return raise_for_gate_error(await gate.authenticate(api_key))


async def require_admin(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    """Require the configured admin key. Admin endpoints are closed when none is set."""
    expected = get_settings().admin_api_key
    if not expected or not x_admin_key:
        raise InvalidAdminKeyError()
    if not secrets.compare_digest(x_admin_key, expected):
        raise InvalidAdminKeyError()
