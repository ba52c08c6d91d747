"""Tests for the usage recorder."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from metered_api.services.usage_recorder import UsageRecorder
from metered_api.storage.memory import InMemoryUsageStore


class TestUsageRecorder:
    """Tests for UsageRecorder."""

    @pytest.mark.asyncio
    async def test_record_writes_entry(self):
        store = InMemoryUsageStore()
        recorder = UsageRecorder(store=store, enabled=True, timeout=1.0)

        recorder.record("user_001", "/v1/items", "GET", 200)
        await recorder.drain()

        entries = await store.list_usage("user_001")
        assert len(entries) == 1
        assert entries[0].endpoint == "GET /v1/items"
        assert entries[0].status_code == 200

    @pytest.mark.asyncio
    async def test_entries_are_per_user(self):
        store = InMemoryUsageStore()
        recorder = UsageRecorder(store=store, enabled=True, timeout=1.0)

        recorder.record("user_001", "/v1/items", "POST", 201)
        recorder.record("user_002", "/v1/items", "GET", 200)
        recorder.record("user_001", "/v1/items/item_1", "GET", 404)
        await recorder.drain()

        assert len(await store.list_usage("user_001")) == 2
        assert len(await store.list_usage("user_002")) == 1

    @pytest.mark.asyncio
    async def test_disabled_recorder_skips_usage(self):
        store = InMemoryUsageStore()
        recorder = UsageRecorder(store=store, enabled=False, timeout=1.0)

        recorder.record("user_001", "/v1/items", "GET", 200)
        await recorder.drain()

        assert await store.list_usage("user_001") == []

    @pytest.mark.asyncio
    async def test_write_failure_is_logged_not_raised(self, caplog):
        store = MagicMock()
        store.append_usage = AsyncMock(side_effect=RuntimeError("write failed"))
        recorder = UsageRecorder(store=store, enabled=True, timeout=1.0)

        with caplog.at_level(logging.WARNING):
            recorder.record("user_001", "/v1/items", "GET", 200)
            await recorder.drain()

        store.append_usage.assert_awaited_once()
        assert "Failed to record usage for user user_001" in caplog.text

    @pytest.mark.asyncio
    async def test_recharge_entries(self):
        store = InMemoryUsageStore()
        recorder = UsageRecorder(store=store, enabled=True, timeout=1.0)

        recorder.record_recharge("user_001", successful=True)
        await recorder.drain()

        entries = await store.list_recharges("user_001")
        assert len(entries) == 1
        assert entries[0].successful is True

    def test_record_without_event_loop_is_dropped(self):
        store = MagicMock()
        store.append_usage = AsyncMock()
        recorder = UsageRecorder(store=store, enabled=True, timeout=1.0)

        recorder.record("user_001", "/v1/items", "GET", 200)

        store.append_usage.assert_not_called()
