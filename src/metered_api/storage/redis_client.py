"""Redis connection lifecycle for the shared credit store."""

import logging
import time
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from metered_api.config import Settings, get_settings
from metered_api.storage.lua_scripts import SCRIPTS, lua_scripts

logger = logging.getLogger(__name__)


class RedisManager:
    """
    Owns the connection pool used by every Redis-backed store.

    Connecting also registers the credit and ownership scripts, so stores
    can run them by SHA from the first request on.
    """

    _instance: Optional["RedisManager"] = None

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._pool: redis.ConnectionPool | None = None
        self._redis: Redis | None = None

    @classmethod
    def get_instance(cls) -> "RedisManager":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def client(self) -> Redis | None:
        return self._redis

    async def connect(self) -> None:
        """Open the pool, verify the server and load scripts."""
        if self._redis is not None:
            return

        # Per-call deadline matches the gate's storage timeout
        pool = redis.ConnectionPool.from_url(
            self._settings.redis_url,
            max_connections=self._settings.redis_max_connections,
            decode_responses=True,
            socket_timeout=self._settings.storage_timeout_seconds,
            socket_connect_timeout=self._settings.storage_timeout_seconds,
        )
        client = Redis(connection_pool=pool)

        try:
            await client.ping()  # type: ignore[misc]
            await lua_scripts.load(client)
        except RedisError as e:
            logger.error("Could not connect to Redis at %s: %s", self._settings.redis_url, e)
            await client.aclose()
            await pool.disconnect()
            raise

        self._pool = pool
        self._redis = client
        logger.info(
            "Connected to Redis at %s, %d scripts loaded",
            self._settings.redis_url,
            len(lua_scripts.shas),
        )

    async def disconnect(self) -> None:
        """Close the client and its pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis")

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

        lua_scripts.reset()

    async def health_check(self) -> dict[str, Any]:
        """Ping Redis and report latency and script registration."""
        if self._redis is None:
            return {"status": "disconnected", "latency_ms": None, "type": "redis"}

        try:
            start = time.perf_counter()
            await self._redis.ping()  # type: ignore[misc]
            latency = (time.perf_counter() - start) * 1000
        except RedisError as e:
            return {"status": "error", "error": str(e), "latency_ms": None, "type": "redis"}

        return {
            "status": "up",
            "latency_ms": round(latency, 2),
            "type": "redis",
            "scripts_loaded": len(lua_scripts.shas) == len(SCRIPTS),
        }

    @classmethod
    async def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        if cls._instance:
            await cls._instance.disconnect()
        cls._instance = None


async def init_redis() -> None:
    """Connect the shared Redis client (call at startup)."""
    await RedisManager.get_instance().connect()


async def close_redis() -> None:
    """Close the shared Redis client (call at shutdown)."""
    await RedisManager.reset()
