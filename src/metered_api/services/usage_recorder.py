"""Best-effort usage and recharge audit logging."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from metered_api.config import get_settings
from metered_api.models.usage import RechargeLogEntry, UsageLogEntry
from metered_api.storage.base import UsageStore, call_store
from metered_api.storage.manager import get_storage

logger = logging.getLogger(__name__)


class UsageRecorder:
    """
    Fire-and-forget audit trail.

    ``record`` and ``record_recharge`` only schedule a background write and
    return immediately. Write failures are logged and dropped; they never
    reach the request that triggered them.
    """

    def __init__(
        self,
        store: UsageStore | None = None,
        enabled: bool | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self._store = store
        self._enabled = settings.usage_logging_enabled if enabled is None else enabled
        self._timeout = settings.storage_timeout_seconds if timeout is None else timeout
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def store(self) -> UsageStore:
        """Get usage store."""
        if self._store is None:
            self._store = get_storage().usage
        return self._store

    def record(self, user_id: str, endpoint: str, method: str, status_code: int) -> None:
        """Schedule a usage log write for an admitted request."""
        if not self._enabled:
            return
        entry = UsageLogEntry(
            user_id=user_id,
            endpoint=f"{method} {endpoint}",
            status_code=status_code,
        )
        self._schedule(self._write_usage(entry))

    def record_recharge(self, user_id: str, successful: bool) -> None:
        """Schedule a recharge log write."""
        entry = RechargeLogEntry(user_id=user_id, successful=successful)
        self._schedule(self._write_recharge(entry))

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping audit log entry")
            coro.close()
            return

        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write_usage(self, entry: UsageLogEntry) -> None:
        try:
            await call_store(self.store.append_usage(entry), self._timeout)
        except Exception as e:
            logger.warning("Failed to record usage for user %s: %s", entry.user_id, e)

    async def _write_recharge(self, entry: RechargeLogEntry) -> None:
        try:
            await call_store(self.store.append_recharge(entry), self._timeout)
        except Exception as e:
            logger.warning("Failed to record recharge for user %s: %s", entry.user_id, e)

    async def drain(self) -> None:
        """Wait for scheduled writes to finish (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


# Singleton instance
_usage_recorder: UsageRecorder | None = None


def get_usage_recorder() -> UsageRecorder:
    """Get usage recorder instance."""
    global _usage_recorder
    if _usage_recorder is None:
        _usage_recorder = UsageRecorder()
    return _usage_recorder


def reset_usage_recorder() -> None:
    """Reset usage recorder (for testing)."""
    global _usage_recorder
    _usage_recorder = None
