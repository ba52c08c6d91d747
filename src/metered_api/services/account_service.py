"""Account service for balance and usage views."""

import logging
from collections import Counter

from metered_api.config import get_settings
from metered_api.errors.exceptions import StorageError, StorageUnavailableError, UserNotFoundError
from metered_api.models.responses import (
    AccountResponse,
    EndpointCount,
    StatusCodeCount,
    UsageStatsResponse,
)
from metered_api.models.user import UserRef
from metered_api.storage.base import call_store
from metered_api.storage.manager import StorageManager, get_storage

logger = logging.getLogger(__name__)


class AccountService:
    """Service for account and usage operations."""

    def __init__(self, storage: StorageManager | None = None):
        self._storage = storage

    @property
    def storage(self) -> StorageManager:
        """Get storage manager."""
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    async def get_account(self, user: UserRef) -> AccountResponse:
        """Get profile and credit balance for a user."""
        timeout = get_settings().storage_timeout_seconds
        try:
            record = await call_store(self.storage.credentials.get_user(user.id), timeout)
        except StorageError as e:
            logger.error("Account lookup failed for user %s: %s", user.id, e)
            raise StorageUnavailableError() from e

        if record is None:
            raise UserNotFoundError()

        return AccountResponse(
            id=record.id,
            email=record.email,
            name=record.name,
            image=record.image,
            api_key=record.api_key,
            credits_remaining=record.credits,
            credits_used=record.credits_used,
            can_recharge=record.can_recharge,
        )

    async def get_usage_stats(self, user: UserRef) -> UsageStatsResponse:
        """
        Get usage statistics for a user.

        Counts recorded requests grouped by endpoint and by status code.
        """
        timeout = get_settings().storage_timeout_seconds
        try:
            entries = await call_store(self.storage.usage.list_usage(user.id), timeout)
        except StorageError as e:
            logger.error("Usage lookup failed for user %s: %s", user.id, e)
            raise StorageUnavailableError() from e

        by_endpoint = Counter(entry.endpoint for entry in entries)
        by_status = Counter(entry.status_code for entry in entries)

        return UsageStatsResponse(
            user_id=user.id,
            total_count=len(entries),
            endpoint_stats=[
                EndpointCount(endpoint=endpoint, count=count)
                for endpoint, count in by_endpoint.most_common()
            ],
            status_stats=[
                StatusCodeCount(status_code=status_code, count=count)
                for status_code, count in sorted(by_status.items())
            ],
        )


# Singleton instance
_account_service: AccountService | None = None


def get_account_service() -> AccountService:
    """Get account service instance."""
    global _account_service
    if _account_service is None:
        _account_service = AccountService()
    return _account_service


def reset_account_service() -> None:
    """Reset account service (for testing)."""
    global _account_service
    _account_service = None
