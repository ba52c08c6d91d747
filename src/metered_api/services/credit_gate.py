"""Credit gate: API key authentication and per-request metering."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from metered_api.auth.api_keys import mask_api_key
from metered_api.config import get_settings
from metered_api.errors.exceptions import StorageError
from metered_api.models.user import User, UserRef
from metered_api.storage.base import CredentialStore, call_store
from metered_api.storage.manager import get_storage

logger = logging.getLogger(__name__)


class GateError(str, Enum):
    """Reasons the gate rejects a request."""

    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
    INVALID_KEY = "INVALID_KEY"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


@dataclass(frozen=True)
class GateResult:
    """Outcome of a gate check. Exactly one of ``user`` and ``error`` is set."""

    user: UserRef | None = None
    error: GateError | None = None

    @property
    def allowed(self) -> bool:
        return self.error is None

    @classmethod
    def admit(cls, user_id: str) -> "GateResult":
        return cls(user=UserRef(id=user_id))

    @classmethod
    def reject(cls, error: GateError) -> "GateResult":
        return cls(error=error)


class CreditGate:
    """
    Authorizes requests by API key and charges one credit per admitted request.

    The charge is a conditioned update in the credential store: it only
    applies if the user still has a credit when the store commits it. The
    earlier balance read merely short-circuits obvious rejections; it is never
    the basis of the write.

    A credit spent on an admitted request is not returned if the business
    logic afterwards fails.
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        timeout: float | None = None,
    ):
        self._store = store
        self._timeout = timeout

    @property
    def credentials(self) -> CredentialStore:
        """Get credential store."""
        if self._store is None:
            self._store = get_storage().credentials
        return self._store

    @property
    def timeout(self) -> float:
        if self._timeout is None:
            self._timeout = get_settings().storage_timeout_seconds
        return self._timeout

    async def _lookup(self, api_key: str) -> User | GateResult:
        if not api_key or not api_key.strip():
            return GateResult.reject(GateError.MISSING_CREDENTIAL)

        try:
            user = await call_store(self.credentials.get_by_api_key(api_key), self.timeout)
        except StorageError as e:
            logger.error("Credential lookup failed: %s", e)
            return GateResult.reject(GateError.STORAGE_UNAVAILABLE)

        if user is None:
            logger.info(
                "Rejected unknown API key %s",
                mask_api_key(api_key, get_settings().api_key_prefix),
            )
            return GateResult.reject(GateError.INVALID_KEY)

        return user

    async def authenticate(self, api_key: str) -> GateResult:
        """Validate the API key without charging a credit."""
        found = await self._lookup(api_key)
        if isinstance(found, GateResult):
            return found
        return GateResult.admit(found.id)

    async def authorize_and_charge(self, api_key: str) -> GateResult:
        """
        Validate the API key and take one credit.

        Args:
            api_key: Raw token from the request

        Returns:
            GateResult admitting the user, or carrying the rejection reason.
            Storage mutation happens only on admission.
        """
        found = await self._lookup(api_key)
        if isinstance(found, GateResult):
            return found
        user = found

        if user.credits <= 0:
            logger.info("User %s has no credits left", user.id)
            return GateResult.reject(GateError.INSUFFICIENT_CREDITS)

        try:
            # Runs to completion even if the request is cancelled
            charged = await asyncio.shield(
                call_store(self.credentials.conditional_decrement(user.id), self.timeout)
            )
        except StorageError as e:
            logger.error("Credit charge failed for user %s: %s", user.id, e)
            return GateResult.reject(GateError.STORAGE_UNAVAILABLE)

        if not charged:
            logger.info("User %s lost the race for the last credit", user.id)
            return GateResult.reject(GateError.INSUFFICIENT_CREDITS)

        return GateResult.admit(user.id)


# Singleton instance
_credit_gate: CreditGate | None = None


def get_credit_gate() -> CreditGate:
    """Get credit gate instance."""
    global _credit_gate
    if _credit_gate is None:
        _credit_gate = CreditGate()
    return _credit_gate


def reset_credit_gate() -> None:
    """Reset credit gate (for testing)."""
    global _credit_gate
    _credit_gate = None
