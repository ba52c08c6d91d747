"""Pytest configuration and fixtures."""

import asyncio
import itertools
from collections.abc import Callable, Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from metered_api.config import get_settings
from metered_api.main import create_app
from metered_api.models.user import User
from metered_api.services.account_service import reset_account_service
from metered_api.services.credit_gate import reset_credit_gate
from metered_api.services.item_service import reset_item_service
from metered_api.services.recharge_service import reset_recharge_controller
from metered_api.services.usage_recorder import get_usage_recorder, reset_usage_recorder
from metered_api.services.user_service import reset_user_service
from metered_api.storage.lua_scripts import lua_scripts
from metered_api.storage.manager import StorageManager

ADMIN_KEY = "test_admin_key"


@pytest.fixture
def reset_singletons(monkeypatch):
    """Reset all singleton services before each test."""
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("ADMIN_API_KEY", ADMIN_KEY)
    monkeypatch.setenv("INITIAL_CREDITS", "4")
    monkeypatch.setenv("RECHARGE_AMOUNT", "4")
    get_settings.cache_clear()

    StorageManager.reset()
    reset_credit_gate()
    reset_item_service()
    reset_account_service()
    reset_recharge_controller()
    reset_usage_recorder()
    reset_user_service()
    lua_scripts.reset()

    yield

    # Cleanup after test
    StorageManager.reset()
    get_settings.cache_clear()


@pytest.fixture
def storage(reset_singletons) -> StorageManager:
    """In-memory storage shared by the app under test."""
    return StorageManager.get_instance()


@pytest.fixture
def app(storage):
    """Create FastAPI app for testing."""
    return create_app()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create test client."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def drain_usage(client) -> Callable[[], None]:
    """Wait for background usage log writes on the app's event loop."""

    def _drain() -> None:
        client.portal.call(get_usage_recorder().drain)

    return _drain


@pytest.fixture
def seed_user(storage) -> Callable[..., User]:
    """Factory that inserts users straight into the credential store."""
    counter = itertools.count(1)

    def _seed(credits: int = 4, credits_used: int = 0, recharged: bool = False) -> User:
        n = next(counter)
        user = User(
            id=f"user_{n:03d}",
            api_key=f"clapi_test_key_{n:03d}",
            email=f"user{n}@test.com",
            name=f"Test User {n}",
            external_id=f"google-{n}",
            credits=credits,
            credits_used=credits_used,
            recharged=recharged,
        )
        asyncio.run(storage.credentials.create_user(user))
        return user

    return _seed


@pytest.fixture
def load_user(storage) -> Callable[[str], User | None]:
    """Read the current stored state of a user."""

    def _load(user_id: str) -> User | None:
        return asyncio.run(storage.credentials.get_user(user_id))

    return _load


@pytest.fixture
def admin_headers():
    """Headers carrying the admin key."""
    return {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.ping = AsyncMock(return_value=True)
    redis.eval = AsyncMock(return_value=1)
    redis.evalsha = AsyncMock(return_value=1)
    redis.get = AsyncMock(return_value=None)
    redis.hgetall = AsyncMock(return_value={})
    redis.exists = AsyncMock(return_value=0)
    redis.script_load = AsyncMock(return_value="sha256hash")
    return redis
