"""
Tests for the sliding-window rate limiter.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from visa_api.core import rate_limit
from visa_api.core.rate_limit import check_rate_limit


@pytest.fixture(autouse=True)
def clear_memory_store(monkeypatch):
    rate_limit._memory_store.clear()
    rate_limit._memory_expiry.clear()
    monkeypatch.setattr(rate_limit, "_last_sweep", 0.0)
    yield
    rate_limit._memory_store.clear()
    rate_limit._memory_expiry.clear()


class TestMemoryFallback:
    @pytest.mark.asyncio
    async def test_blocks_after_limit(self):
        key = f"rate_limit:test:{uuid4()}"
        with patch("visa_api.core.rate_limit.get_redis_client", return_value=None):
            results = [await check_rate_limit(key, 3, 60) for _ in range(4)]
        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        with patch("visa_api.core.rate_limit.get_redis_client", return_value=None):
            assert await check_rate_limit("rate_limit:a", 1, 60)
            assert await check_rate_limit("rate_limit:b", 1, 60)
            assert not await check_rate_limit("rate_limit:a", 1, 60)

    @pytest.mark.asyncio
    async def test_idle_keys_are_evicted(self):
        with (
            patch("visa_api.core.rate_limit.get_redis_client", return_value=None),
            patch("visa_api.core.rate_limit.time.time") as mock_time,
        ):
            mock_time.return_value = 1_000.0
            assert await check_rate_limit("rate_limit:idle", 2, 60)

            # Well past the idle key's window
            mock_time.return_value = 1_200.0
            assert await check_rate_limit("rate_limit:busy", 2, 60)

        assert "rate_limit:idle" not in rate_limit._memory_store
        assert "rate_limit:idle" not in rate_limit._memory_expiry
        assert "rate_limit:busy" in rate_limit._memory_store

    @pytest.mark.asyncio
    async def test_key_inside_its_window_is_kept(self):
        with (
            patch("visa_api.core.rate_limit.get_redis_client", return_value=None),
            patch("visa_api.core.rate_limit.time.time") as mock_time,
        ):
            mock_time.return_value = 1_000.0
            assert await check_rate_limit("rate_limit:login", 1, 300)

            mock_time.return_value = 1_100.0
            assert await check_rate_limit("rate_limit:other", 1, 300)
            assert not await check_rate_limit("rate_limit:login", 1, 300)

        assert rate_limit._memory_store["rate_limit:login"] == [1_000.0]


class TestRedisBackend:
    @pytest.mark.asyncio
    async def test_uses_sorted_set_count(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[0, 5, 1, True])
        client = MagicMock()
        client.pipeline.return_value = pipe

        with patch("visa_api.core.rate_limit.get_redis_client", return_value=client):
            assert await check_rate_limit("rate_limit:x", 5, 60) is False
        pipe.zcard.assert_called_once_with("rate_limit:x")

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_memory(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=ConnectionError("redis down"))
        client = MagicMock()
        client.pipeline.return_value = pipe

        with patch("visa_api.core.rate_limit.get_redis_client", return_value=client):
            assert await check_rate_limit("rate_limit:y", 1, 60) is True
        assert "rate_limit:y" in rate_limit._memory_store
