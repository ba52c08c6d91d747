"""Tests for Redis-backed stores with a mocked client."""

from datetime import UTC, datetime

import pytest
from redis.exceptions import NoScriptError

from metered_api.config import Settings
from metered_api.errors.exceptions import StorageError
from metered_api.models.user import User
from metered_api.storage.lua_scripts import SCRIPTS, lua_scripts
from metered_api.storage.redis_client import RedisManager
from metered_api.storage.redis_store import (
    RedisCredentialStore,
    RedisItemStore,
    _user_from_hash,
    _user_to_hash,
)


@pytest.fixture(autouse=True)
def clear_script_shas():
    lua_scripts.reset()
    yield
    lua_scripts.reset()


def make_user() -> User:
    return User(
        id="user_001",
        api_key="clapi_redis_key",
        email="redis@test.com",
        external_id="google-redis",
        credits=3,
        credits_used=1,
        created_at=datetime(2025, 1, 1, tzinfo=UTC),
    )


class TestRedisCredentialStore:
    """Tests for RedisCredentialStore."""

    @pytest.fixture
    def store(self, mock_redis):
        return RedisCredentialStore(client=lambda: mock_redis)

    @pytest.mark.asyncio
    async def test_decrement_applied(self, store, mock_redis):
        mock_redis.eval.return_value = 1

        assert await store.conditional_decrement("user_001") is True

        mock_redis.eval.assert_awaited_once_with(
            SCRIPTS["conditional_decrement"], 1, "user:user_001", 1
        )

    @pytest.mark.parametrize("script_result", [0, -1])
    @pytest.mark.asyncio
    async def test_decrement_refused(self, store, mock_redis, script_result):
        mock_redis.eval.return_value = script_result

        assert await store.conditional_decrement("user_001") is False

    @pytest.mark.asyncio
    async def test_uses_loaded_script_sha(self, store, mock_redis):
        await lua_scripts.load(mock_redis)
        mock_redis.evalsha.return_value = 1

        assert await store.conditional_decrement("user_001") is True

        mock_redis.evalsha.assert_awaited_once_with("sha256hash", 1, "user:user_001", 1)
        mock_redis.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_to_eval_when_script_evicted(self, store, mock_redis):
        await lua_scripts.load(mock_redis)
        mock_redis.evalsha.side_effect = NoScriptError("NOSCRIPT")
        mock_redis.eval.return_value = 1

        assert await store.conditional_recharge_once("user_001", 4) is True

        mock_redis.eval.assert_awaited_once_with(
            SCRIPTS["conditional_recharge"], 1, "user:user_001", 4
        )

    @pytest.mark.asyncio
    async def test_recharge_refused(self, store, mock_redis):
        mock_redis.eval.return_value = 0

        assert await store.conditional_recharge_once("user_001", 4) is False

    @pytest.mark.asyncio
    async def test_get_by_api_key(self, store, mock_redis):
        user = make_user()
        mock_redis.get.return_value = "user_001"
        mock_redis.hgetall.return_value = _user_to_hash(user)

        found = await store.get_by_api_key("clapi_redis_key")

        assert found == user
        mock_redis.get.assert_awaited_once_with("apikey:clapi_redis_key")
        mock_redis.hgetall.assert_awaited_once_with("user:user_001")

    @pytest.mark.asyncio
    async def test_unknown_api_key(self, store, mock_redis):
        mock_redis.get.return_value = None

        assert await store.get_by_api_key("nope") is None
        mock_redis.hgetall.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_user_conflict(self, store, mock_redis):
        mock_redis.eval.return_value = 0

        with pytest.raises(StorageError):
            await store.create_user(make_user())

    @pytest.mark.asyncio
    async def test_create_user_indexes_keys(self, store, mock_redis):
        mock_redis.eval.return_value = 1

        await store.create_user(make_user())

        args = mock_redis.eval.await_args.args
        assert args[0] == SCRIPTS["create_user"]
        assert args[1] == 3
        assert args[2:5] == ("user:user_001", "apikey:clapi_redis_key", "external:google-redis")

    @pytest.mark.asyncio
    async def test_not_connected(self):
        store = RedisCredentialStore(client=lambda: None)

        with pytest.raises(StorageError):
            await store.get_user("user_001")


class TestRedisItemStore:
    """Tests for RedisItemStore ownership scripts."""

    @pytest.fixture
    def store(self, mock_redis):
        return RedisItemStore(client=lambda: mock_redis)

    @pytest.mark.asyncio
    async def test_delete_owned_refused_for_other_user(self, store, mock_redis):
        mock_redis.eval.return_value = 0

        assert await store.delete_owned("item_1", "user_002") is False

        mock_redis.eval.assert_awaited_once_with(
            SCRIPTS["item_delete_owned"],
            2,
            "item:item_1",
            "user_items:user_002",
            "user_002",
            "item_1",
        )

    @pytest.mark.asyncio
    async def test_update_owned_refused(self, store, mock_redis):
        mock_redis.eval.return_value = 0

        assert await store.update_owned("item_1", "user_002", value=5.0) is None
        mock_redis.hgetall.assert_not_awaited()


def test_user_hash_round_trip():
    user = make_user().model_copy(update={"name": "Ada", "recharged": True})
    assert _user_from_hash(_user_to_hash(user)) == user


def test_empty_hash_is_missing_user():
    assert _user_from_hash({}) is None


class TestRedisManager:
    """Tests for RedisManager health reporting."""

    @pytest.mark.asyncio
    async def test_health_check_disconnected(self):
        manager = RedisManager(settings=Settings())

        health = await manager.health_check()

        assert health["status"] == "disconnected"

    @pytest.mark.asyncio
    async def test_health_check_reports_scripts(self, mock_redis):
        manager = RedisManager(settings=Settings())
        manager._redis = mock_redis
        await lua_scripts.load(mock_redis)

        health = await manager.health_check()

        assert health["status"] == "up"
        assert health["scripts_loaded"] is True
