"""Backend selection for credential, item and usage stores."""

import logging
from typing import Optional

from metered_api.config import StorageBackend, get_settings
from metered_api.storage.base import CredentialStore, ItemStore, UsageStore
from metered_api.storage.memory import (
    InMemoryCredentialStore,
    InMemoryItemStore,
    InMemoryUsageStore,
)
from metered_api.storage.redis_store import (
    RedisCredentialStore,
    RedisItemStore,
    RedisUsageStore,
)

logger = logging.getLogger(__name__)


class StorageManager:
    """Central manager for all stores."""

    _instance: Optional["StorageManager"] = None

    def __init__(
        self,
        credentials: CredentialStore,
        items: ItemStore,
        usage: UsageStore,
    ):
        self.credentials = credentials
        self.items = items
        self.usage = usage

    @classmethod
    def in_memory(cls) -> "StorageManager":
        return cls(
            credentials=InMemoryCredentialStore(),
            items=InMemoryItemStore(),
            usage=InMemoryUsageStore(),
        )

    @classmethod
    def redis(cls) -> "StorageManager":
        return cls(
            credentials=RedisCredentialStore(),
            items=RedisItemStore(),
            usage=RedisUsageStore(),
        )

    @classmethod
    def get_instance(cls) -> "StorageManager":
        """Get singleton instance for the configured backend."""
        if cls._instance is None:
            backend = get_settings().storage_backend
            if backend == StorageBackend.REDIS:
                cls._instance = cls.redis()
            else:
                cls._instance = cls.in_memory()
            logger.info("Using %s storage backend", backend.value)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None


def get_storage() -> StorageManager:
    """Dependency to get storage manager."""
    return StorageManager.get_instance()
