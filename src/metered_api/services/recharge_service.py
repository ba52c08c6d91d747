"""One-time credit recharge."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from metered_api.config import get_settings
from metered_api.errors.exceptions import StorageError
from metered_api.models.user import User
from metered_api.services.usage_recorder import UsageRecorder, get_usage_recorder
from metered_api.storage.base import CredentialStore, call_store
from metered_api.storage.manager import get_storage

logger = logging.getLogger(__name__)


class RechargeError(str, Enum):
    """Reasons a recharge is refused."""

    USER_NOT_FOUND = "USER_NOT_FOUND"
    ALREADY_RECHARGED = "ALREADY_RECHARGED"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


@dataclass(frozen=True)
class RechargeResult:
    """Outcome of a recharge attempt."""

    user: User | None = None
    amount: int = 0
    error: RechargeError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class RechargeController:
    """Grants each user a single fixed-amount credit top-up."""

    def __init__(
        self,
        store: CredentialStore | None = None,
        recorder: UsageRecorder | None = None,
        amount: int | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self._store = store
        self._recorder = recorder
        self._amount = settings.recharge_amount if amount is None else amount
        if self._amount <= 0:
            raise ValueError(f"Recharge amount must be positive, got {self._amount}")
        self._timeout = settings.storage_timeout_seconds if timeout is None else timeout

    @property
    def credentials(self) -> CredentialStore:
        """Get credential store."""
        if self._store is None:
            self._store = get_storage().credentials
        return self._store

    @property
    def recorder(self) -> UsageRecorder:
        """Get usage recorder."""
        if self._recorder is None:
            self._recorder = get_usage_recorder()
        return self._recorder

    @property
    def amount(self) -> int:
        return self._amount

    async def recharge(self, user_id: str, amount: int | None = None) -> RechargeResult:
        """
        Top up a user's credits once.

        Args:
            user_id: Internal user id
            amount: Ignored. The configured recharge amount always applies.

        Returns:
            RechargeResult with the updated user, or the refusal reason
        """
        if amount is not None and amount != self._amount:
            logger.info(
                "Ignoring requested recharge amount %s for user %s, using %s",
                amount,
                user_id,
                self._amount,
            )

        try:
            user = await call_store(self.credentials.get_user(user_id), self._timeout)
        except StorageError as e:
            logger.error("Recharge lookup failed for user %s: %s", user_id, e)
            return RechargeResult(error=RechargeError.STORAGE_UNAVAILABLE)

        if user is None:
            return RechargeResult(error=RechargeError.USER_NOT_FOUND)

        if not user.can_recharge:
            self.recorder.record_recharge(user_id, successful=False)
            return RechargeResult(user=user, error=RechargeError.ALREADY_RECHARGED)

        try:
            applied = await asyncio.shield(
                call_store(
                    self.credentials.conditional_recharge_once(user_id, self._amount),
                    self._timeout,
                )
            )
        except StorageError as e:
            logger.error("Recharge failed for user %s: %s", user_id, e)
            return RechargeResult(error=RechargeError.STORAGE_UNAVAILABLE)

        self.recorder.record_recharge(user_id, successful=applied)

        if not applied:
            logger.info("Concurrent recharge already consumed for user %s", user_id)
            return RechargeResult(user=user, error=RechargeError.ALREADY_RECHARGED)

        logger.info("Recharged %s credits for user %s", self._amount, user_id)

        try:
            updated = await call_store(self.credentials.get_user(user_id), self._timeout)
        except StorageError as e:
            logger.warning("Could not reload user %s after recharge: %s", user_id, e)
            updated = None

        if updated is None:
            updated = user.model_copy(
                update={"credits": user.credits + self._amount, "recharged": True}
            )

        return RechargeResult(user=updated, amount=self._amount)


# Singleton instance
_recharge_controller: RechargeController | None = None


def get_recharge_controller() -> RechargeController:
    """Get recharge controller instance."""
    global _recharge_controller
    if _recharge_controller is None:
        _recharge_controller = RechargeController()
    return _recharge_controller


def reset_recharge_controller() -> None:
    """Reset recharge controller (for testing)."""
    global _recharge_controller
    _recharge_controller = None
