"""Redis-backed stores.

Credit mutations run as Lua scripts, which Redis executes atomically, so the
conditioned update holds across any number of API processes sharing the
same Redis instance.

Layout:
    user:{id}              hash of user fields
    apikey:{key}           -> user id
    external:{subject}     -> user id
    item:{id}              hash of item fields
    user_items:{user_id}   sorted set of item ids scored by creation time
    usage:{user_id}        list of JSON usage entries (newest first)
    recharge_log:{user_id} list of JSON recharge entries
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import NoScriptError

from metered_api.errors.exceptions import StorageError
from metered_api.models.item import Item
from metered_api.models.usage import RechargeLogEntry, UsageLogEntry
from metered_api.models.user import User
from metered_api.storage.lua_scripts import SCRIPTS, lua_scripts
from metered_api.storage.redis_client import RedisManager

logger = logging.getLogger(__name__)

ClientProvider = Callable[[], Redis | None]


def _default_client() -> Redis | None:
    return RedisManager.get_instance().client


class RedisScriptRunner:
    """Shared plumbing for Redis-backed stores."""

    def __init__(self, client: ClientProvider = _default_client):
        self._client_provider = client

    @property
    def redis(self) -> Redis:
        client = self._client_provider()
        if client is None:
            raise StorageError("Redis is not connected")
        return client

    async def run_script(self, name: str, keys: list[str], args: list[Any]) -> Any:
        """Run a registered script by SHA, falling back to EVAL."""
        redis = self.redis
        sha = lua_scripts.sha(name)
        if sha:
            try:
                return await redis.evalsha(sha, len(keys), *keys, *args)  # type: ignore[misc]
            except NoScriptError:
                logger.warning("Script %s missing from Redis cache, re-sending", name)
        return await redis.eval(SCRIPTS[name], len(keys), *keys, *args)  # type: ignore[misc]


def _user_key(user_id: str) -> str:
    return f"user:{user_id}"


def _user_to_hash(user: User) -> dict[str, str]:
    return {
        "id": user.id,
        "api_key": user.api_key,
        "email": user.email,
        "name": user.name or "",
        "image": user.image or "",
        "external_id": user.external_id,
        "credits": str(user.credits),
        "credits_used": str(user.credits_used),
        "recharged": "1" if user.recharged else "0",
        "created_at": user.created_at.isoformat(),
    }


def _user_from_hash(data: dict[str, str]) -> User | None:
    if not data:
        return None
    return User(
        id=data["id"],
        api_key=data["api_key"],
        email=data["email"],
        name=data.get("name") or None,
        image=data.get("image") or None,
        external_id=data["external_id"],
        credits=int(data.get("credits", 0)),
        credits_used=int(data.get("credits_used", 0)),
        recharged=data.get("recharged") == "1",
        created_at=datetime.fromisoformat(data["created_at"]),
    )


class RedisCredentialStore(RedisScriptRunner):
    """Credential store on Redis hashes."""

    async def _get_by_index(self, index_key: str) -> User | None:
        user_id = await self.redis.get(index_key)
        if user_id is None:
            return None
        return await self.get_user(user_id)

    async def get_by_api_key(self, api_key: str) -> User | None:
        return await self._get_by_index(f"apikey:{api_key}")

    async def get_user(self, user_id: str) -> User | None:
        data = await self.redis.hgetall(_user_key(user_id))  # type: ignore[misc]
        return _user_from_hash(data)

    async def get_by_external_id(self, external_id: str) -> User | None:
        return await self._get_by_index(f"external:{external_id}")

    async def create_user(self, user: User) -> User:
        fields: list[str] = []
        for field, value in _user_to_hash(user).items():
            fields.extend([field, value])

        created = await self.run_script(
            "create_user",
            keys=[
                _user_key(user.id),
                f"apikey:{user.api_key}",
                f"external:{user.external_id}",
            ],
            args=[user.id, *fields],
        )
        if int(created) != 1:
            raise StorageError("API key or external identity already provisioned")
        return user

    async def update_profile(self, user_id: str, name: str | None, image: str | None) -> User | None:
        key = _user_key(user_id)
        if not await self.redis.exists(key):
            return None
        await self.redis.hset(key, mapping={"name": name or "", "image": image or ""})  # type: ignore[misc]
        return await self.get_user(user_id)

    async def conditional_decrement(self, user_id: str, expected_min_credits: int = 1) -> bool:
        result = await self.run_script(
            "conditional_decrement",
            keys=[_user_key(user_id)],
            args=[expected_min_credits],
        )
        return int(result) == 1

    async def conditional_recharge_once(self, user_id: str, amount: int) -> bool:
        result = await self.run_script(
            "conditional_recharge",
            keys=[_user_key(user_id)],
            args=[amount],
        )
        return int(result) == 1

    async def health_check(self) -> dict[str, Any]:
        return await RedisManager.get_instance().health_check()


def _item_key(item_id: str) -> str:
    return f"item:{item_id}"


def _user_items_key(user_id: str) -> str:
    return f"user_items:{user_id}"


def _item_from_hash(data: dict[str, str]) -> Item | None:
    if not data:
        return None
    return Item(
        id=data["id"],
        user_id=data["user_id"],
        value=float(data["value"]),
        tx_hash=data["tx_hash"],
        created_at=datetime.fromisoformat(data["created_at"]),
        updated_at=datetime.fromisoformat(data["updated_at"]),
    )


class RedisItemStore(RedisScriptRunner):
    """Item store on Redis hashes with a per-user index."""

    async def create(self, item: Item) -> Item:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                _item_key(item.id),
                mapping={
                    "id": item.id,
                    "user_id": item.user_id,
                    "value": repr(item.value),
                    "tx_hash": item.tx_hash,
                    "created_at": item.created_at.isoformat(),
                    "updated_at": item.updated_at.isoformat(),
                },
            )
            pipe.zadd(_user_items_key(item.user_id), {item.id: item.created_at.timestamp()})
            await pipe.execute()
        return item

    async def get(self, item_id: str) -> Item | None:
        data = await self.redis.hgetall(_item_key(item_id))  # type: ignore[misc]
        return _item_from_hash(data)

    async def find_by_tx_hash(self, user_id: str, tx_hash: str) -> Item | None:
        item_ids = await self.redis.zrevrange(_user_items_key(user_id), 0, -1)
        for item_id in item_ids:
            item = await self.get(item_id)
            if item is not None and item.tx_hash == tx_hash:
                return item
        return None

    async def list_for_user(
        self, user_id: str, offset: int = 0, limit: int = 20
    ) -> tuple[list[Item], int]:
        key = _user_items_key(user_id)
        total = await self.redis.zcard(key)
        item_ids = await self.redis.zrevrange(key, offset, offset + limit - 1)

        items = []
        for item_id in item_ids:
            item = await self.get(item_id)
            if item is not None:
                items.append(item)
        return items, total

    async def update_owned(
        self,
        item_id: str,
        user_id: str,
        value: float | None = None,
        tx_hash: str | None = None,
    ) -> Item | None:
        fields = ["updated_at", datetime.now(UTC).isoformat()]
        if value is not None:
            fields.extend(["value", repr(value)])
        if tx_hash is not None:
            fields.extend(["tx_hash", tx_hash])

        updated = await self.run_script(
            "item_update_owned",
            keys=[_item_key(item_id)],
            args=[user_id, *fields],
        )
        if int(updated) != 1:
            return None
        return await self.get(item_id)

    async def delete_owned(self, item_id: str, user_id: str) -> bool:
        deleted = await self.run_script(
            "item_delete_owned",
            keys=[_item_key(item_id), _user_items_key(user_id)],
            args=[user_id, item_id],
        )
        return int(deleted) == 1


class RedisUsageStore(RedisScriptRunner):
    """Usage and recharge logs as Redis lists."""

    async def append_usage(self, entry: UsageLogEntry) -> None:
        await self.redis.lpush(f"usage:{entry.user_id}", entry.model_dump_json())  # type: ignore[misc]

    async def append_recharge(self, entry: RechargeLogEntry) -> None:
        await self.redis.lpush(f"recharge_log:{entry.user_id}", entry.model_dump_json())  # type: ignore[misc]

    async def list_usage(self, user_id: str) -> list[UsageLogEntry]:
        raw = await self.redis.lrange(f"usage:{user_id}", 0, -1)  # type: ignore[misc]
        return [UsageLogEntry.model_validate_json(entry) for entry in raw]

    async def list_recharges(self, user_id: str) -> list[RechargeLogEntry]:
        raw = await self.redis.lrange(f"recharge_log:{user_id}", 0, -1)  # type: ignore[misc]
        return [RechargeLogEntry.model_validate_json(entry) for entry in raw]
