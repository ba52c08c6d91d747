"""In-memory storage implementation.

Suitable for a single process. Each store guards its dictionaries with a
lock, and no critical section awaits, so a conditioned update is applied
in full before any other request can observe the record.
"""

import builtins
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from metered_api.errors.exceptions import StorageError
from metered_api.models.item import Item
from metered_api.models.usage import RechargeLogEntry, UsageLogEntry
from metered_api.models.user import User

T = TypeVar("T", bound=BaseModel)


class InMemoryStorage(Generic[T]):
    """Generic in-memory storage using dictionaries."""

    def __init__(self, id_field: str = "id"):
        self._store: dict[str, T] = {}
        self._id_field = id_field

    def get(self, id: str) -> T | None:
        """Get a record by ID."""
        return self._store.get(id)

    def list(
        self,
        offset: int = 0,
        limit: int = 20,
        filter_fn: Callable[[T], bool] | None = None,
        sort_key: str | None = None,
        sort_desc: bool = True,
    ) -> tuple[builtins.list[T], int]:
        """
        List records with pagination and optional filtering.

        Returns:
            Tuple of (records, total_count)
        """
        records = list(self._store.values())

        if filter_fn:
            records = [record for record in records if filter_fn(record)]

        total = len(records)

        if sort_key:
            records.sort(
                key=lambda x: getattr(x, sort_key, datetime.min),
                reverse=sort_desc,
            )

        records = records[offset : offset + limit]

        return records, total

    def create(self, record: T) -> T:
        """Create a new record."""
        record_id = getattr(record, self._id_field)
        self._store[record_id] = record
        return record

    def update(self, id: str, record: T) -> T | None:
        """Replace an existing record."""
        if id not in self._store:
            return None
        self._store[id] = record
        return record

    def delete(self, id: str) -> bool:
        """Delete a record by ID."""
        if id in self._store:
            del self._store[id]
            return True
        return False

    def count(self, filter_fn: Callable[[T], bool] | None = None) -> int:
        """Count records, optionally filtered."""
        if filter_fn:
            return sum(1 for record in self._store.values() if filter_fn(record))
        return len(self._store)

    def clear(self) -> None:
        """Clear all records."""
        self._store.clear()

    def find_one(self, filter_fn: Callable[[T], bool]) -> T | None:
        """Find a single record matching the filter."""
        for record in self._store.values():
            if filter_fn(record):
                return record
        return None


class InMemoryCredentialStore:
    """Credential store backed by process memory."""

    def __init__(self) -> None:
        self._users = InMemoryStorage[User]()
        self._by_api_key: dict[str, str] = {}
        self._by_external_id: dict[str, str] = {}
        self._lock = threading.Lock()

    async def get_by_api_key(self, api_key: str) -> User | None:
        with self._lock:
            user_id = self._by_api_key.get(api_key)
            if user_id is None:
                return None
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    async def get_user(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    async def get_by_external_id(self, external_id: str) -> User | None:
        with self._lock:
            user_id = self._by_external_id.get(external_id)
            if user_id is None:
                return None
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    async def create_user(self, user: User) -> User:
        with self._lock:
            if user.api_key in self._by_api_key:
                raise StorageError("API key already issued")
            if user.external_id in self._by_external_id:
                raise StorageError("External identity already provisioned")
            self._users.create(user.model_copy())
            self._by_api_key[user.api_key] = user.id
            self._by_external_id[user.external_id] = user.id
            return user

    async def update_profile(self, user_id: str, name: str | None, image: str | None) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(update={"name": name, "image": image})
            self._users.update(user_id, updated)
            return updated.model_copy()

    async def conditional_decrement(self, user_id: str, expected_min_credits: int = 1) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.credits < expected_min_credits:
                return False
            self._users.update(
                user_id,
                user.model_copy(
                    update={
                        "credits": user.credits - 1,
                        "credits_used": user.credits_used + 1,
                    }
                ),
            )
            return True

    async def conditional_recharge_once(self, user_id: str, amount: int) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.recharged:
                return False
            self._users.update(
                user_id,
                user.model_copy(update={"credits": user.credits + amount, "recharged": True}),
            )
            return True

    async def health_check(self) -> dict[str, Any]:
        return {"status": "up", "latency_ms": 0, "type": "in-memory"}

    def clear(self) -> None:
        with self._lock:
            self._users.clear()
            self._by_api_key.clear()
            self._by_external_id.clear()


class InMemoryItemStore:
    """Item store backed by process memory."""

    def __init__(self) -> None:
        self._items = InMemoryStorage[Item]()
        self._lock = threading.Lock()

    async def create(self, item: Item) -> Item:
        with self._lock:
            self._items.create(item.model_copy())
            return item

    async def get(self, item_id: str) -> Item | None:
        with self._lock:
            item = self._items.get(item_id)
            return item.model_copy() if item else None

    async def find_by_tx_hash(self, user_id: str, tx_hash: str) -> Item | None:
        with self._lock:
            item = self._items.find_one(lambda i: i.user_id == user_id and i.tx_hash == tx_hash)
            return item.model_copy() if item else None

    async def list_for_user(
        self, user_id: str, offset: int = 0, limit: int = 20
    ) -> tuple[list[Item], int]:
        with self._lock:
            items, total = self._items.list(
                offset=offset,
                limit=limit,
                filter_fn=lambda i: i.user_id == user_id,
                sort_key="created_at",
                sort_desc=True,
            )
            return [item.model_copy() for item in items], total

    async def update_owned(
        self,
        item_id: str,
        user_id: str,
        value: float | None = None,
        tx_hash: str | None = None,
    ) -> Item | None:
        with self._lock:
            item = self._items.get(item_id)
            if item is None or item.user_id != user_id:
                return None
            changes: dict[str, Any] = {"updated_at": datetime.now(UTC)}
            if value is not None:
                changes["value"] = value
            if tx_hash is not None:
                changes["tx_hash"] = tx_hash
            updated = item.model_copy(update=changes)
            self._items.update(item_id, updated)
            return updated.model_copy()

    async def delete_owned(self, item_id: str, user_id: str) -> bool:
        with self._lock:
            item = self._items.get(item_id)
            if item is None or item.user_id != user_id:
                return False
            return self._items.delete(item_id)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


class InMemoryUsageStore:
    """Append-only usage and recharge logs."""

    def __init__(self) -> None:
        self._usage: list[UsageLogEntry] = []
        self._recharges: list[RechargeLogEntry] = []
        self._lock = threading.Lock()

    async def append_usage(self, entry: UsageLogEntry) -> None:
        with self._lock:
            self._usage.append(entry)

    async def append_recharge(self, entry: RechargeLogEntry) -> None:
        with self._lock:
            self._recharges.append(entry)

    async def list_usage(self, user_id: str) -> list[UsageLogEntry]:
        with self._lock:
            entries = [e for e in self._usage if e.user_id == user_id]
        return sorted(entries, key=lambda e: e.occurred_at, reverse=True)

    async def list_recharges(self, user_id: str) -> list[RechargeLogEntry]:
        with self._lock:
            return [e for e in self._recharges if e.user_id == user_id]

    def clear(self) -> None:
        with self._lock:
            self._usage.clear()
            self._recharges.clear()
