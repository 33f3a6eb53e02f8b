"""Unit tests for TTLCache."""

from typing import Any

import pytest
from freezegun import freeze_time

from scanlyf.infrastructure.resilience.cache import BARCODE_TTL_SECONDS, TTLCache


class TestTTLCache:
    """Test TTL cache functionality."""

    def test_set_and_get(self) -> None:
        cache = TTLCache()
        cache.set("barcode:123", {"name": "wafer"}, ttl_seconds=60)

        assert cache.get("barcode:123") == {"name": "wafer"}
        assert cache.size() == 1

    def test_miss(self) -> None:
        assert TTLCache().get("barcode:missing") is None

    def test_entry_expires_at_ttl(self) -> None:
        with freeze_time("2026-01-01 12:00:00") as frozen:
            cache = TTLCache()
            cache.set("k", "v", ttl_seconds=BARCODE_TTL_SECONDS)

            frozen.tick(BARCODE_TTL_SECONDS - 1)
            assert cache.get("k") == "v"

            frozen.tick(1)
            assert cache.get("k") is None
            assert cache.size() == 0

    def test_injected_clock_sets_expiry(self) -> None:
        cache = TTLCache(clock=lambda: 1000.0)
        cache.set("k", "v", ttl_seconds=30)

        assert cache.expires_at("k") == 1030.0
        assert cache.expires_at("other") is None

    def test_non_positive_ttl_rejected(self) -> None:
        with pytest.raises(ValueError):
            TTLCache().set("k", "v", ttl_seconds=0)

    def test_delete_and_clear(self) -> None:
        cache = TTLCache()
        cache.set("a", 1, ttl_seconds=10)
        cache.set("b", 2, ttl_seconds=10)

        assert cache.delete("a")
        assert not cache.delete("a")
        cache.clear()
        assert cache.size() == 0

    def test_purge_expired(self) -> None:
        now = [0.0]
        cache = TTLCache(clock=lambda: now[0])
        cache.set("short", 1, ttl_seconds=5)
        cache.set("long", 2, ttl_seconds=50)

        now[0] = 10.0

        assert cache.purge_expired() == 1
        assert cache.get("long") == 2

    @pytest.mark.asyncio
    async def test_get_or_set_calls_factory_once(self) -> None:
        cache = TTLCache()
        calls: list[int] = []

        async def factory() -> Any:
            calls.append(1)
            return "value"

        first = await cache.get_or_set("k", factory, ttl_seconds=60)
        second = await cache.get_or_set("k", factory, ttl_seconds=60)

        assert first == second == "value"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_get_or_set_does_not_cache_none(self) -> None:
        cache = TTLCache()
        calls: list[int] = []

        async def factory() -> Any:
            calls.append(1)
            return None

        await cache.get_or_set("k", factory, ttl_seconds=60)
        await cache.get_or_set("k", factory, ttl_seconds=60)

        assert len(calls) == 2
        assert cache.size() == 0
