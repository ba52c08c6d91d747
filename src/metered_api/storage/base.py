"""Storage collaborator interfaces.

Every backend exposes credit mutations only as conditioned atomic updates
(``conditional_decrement`` and ``conditional_recharge_once``). There is no
generic "set credits" call.
"""

import asyncio
from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

from redis.exceptions import RedisError

from metered_api.errors.exceptions import StorageError
from metered_api.models.item import Item
from metered_api.models.usage import RechargeLogEntry, UsageLogEntry
from metered_api.models.user import User

R = TypeVar("R")


class CredentialStore(Protocol):
    """Durable mapping of API key to user and credit state."""

    async def get_by_api_key(self, api_key: str) -> User | None: ...

    async def get_user(self, user_id: str) -> User | None: ...

    async def get_by_external_id(self, external_id: str) -> User | None: ...

    async def create_user(self, user: User) -> User: ...

    async def update_profile(
        self, user_id: str, name: str | None, image: str | None
    ) -> User | None: ...

    async def conditional_decrement(self, user_id: str, expected_min_credits: int = 1) -> bool:
        """Take one credit if at least ``expected_min_credits`` remain at commit time."""
        ...

    async def conditional_recharge_once(self, user_id: str, amount: int) -> bool:
        """Add ``amount`` credits and mark recharged, only if not yet recharged."""
        ...

    async def health_check(self) -> dict[str, Any]: ...


class ItemStore(Protocol):
    """Item persistence. Mutations are filtered by owner."""

    async def create(self, item: Item) -> Item: ...

    async def get(self, item_id: str) -> Item | None: ...

    async def find_by_tx_hash(self, user_id: str, tx_hash: str) -> Item | None: ...

    async def list_for_user(
        self, user_id: str, offset: int = 0, limit: int = 20
    ) -> tuple[list[Item], int]: ...

    async def update_owned(
        self,
        item_id: str,
        user_id: str,
        value: float | None = None,
        tx_hash: str | None = None,
    ) -> Item | None: ...

    async def delete_owned(self, item_id: str, user_id: str) -> bool: ...


class UsageStore(Protocol):
    """Append-only audit trail."""

    async def append_usage(self, entry: UsageLogEntry) -> None: ...

    async def append_recharge(self, entry: RechargeLogEntry) -> None: ...

    async def list_usage(self, user_id: str) -> list[UsageLogEntry]: ...

    async def list_recharges(self, user_id: str) -> list[RechargeLogEntry]: ...


async def call_store(operation: Awaitable[R], timeout: float) -> R:
    """
    Await a storage operation with a deadline.

    Timeouts and backend errors are raised as StorageError so callers have a
    single failure type to map to StorageUnavailable.
    """
    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except TimeoutError as e:
        raise StorageError(f"storage operation timed out after {timeout}s") from e
    except (RedisError, OSError) as e:
        raise StorageError(str(e)) from e
