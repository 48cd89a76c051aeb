"""Unit tests for MemoryCacheProvider."""

from __future__ import annotations

import pytest

from src.providers.cache.memory_cache import MemoryCacheProvider


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestMemoryCacheProvider:
    @pytest.fixture()
    def cache(self) -> MemoryCacheProvider:
        return MemoryCacheProvider(max_size=100, ttl=3600)

    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self, cache: MemoryCacheProvider) -> None:
        assert await cache.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache: MemoryCacheProvider) -> None:
        await cache.set("key1", "value1")
        assert await cache.get("key1") == "value1"

    @pytest.mark.asyncio
    async def test_set_overwrites_existing(self, cache: MemoryCacheProvider) -> None:
        await cache.set("key1", "old")
        await cache.set("key1", "new")
        assert await cache.get("key1") == "new"

    @pytest.mark.asyncio
    async def test_delete_removes_key(self, cache: MemoryCacheProvider) -> None:
        await cache.set("key1", "value1")
        await cache.delete("key1")
        assert await cache.get("key1") is None

    @pytest.mark.asyncio
    async def test_delete_nonexistent_is_noop(self, cache: MemoryCacheProvider) -> None:
        await cache.delete("nonexistent")

    @pytest.mark.asyncio
    async def test_exists(self, cache: MemoryCacheProvider) -> None:
        await cache.set("key1", "value1")
        assert await cache.exists("key1") is True
        assert await cache.exists("missing") is False

    @pytest.mark.asyncio
    async def test_clear(self, cache: MemoryCacheProvider) -> None:
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.clear()
        assert await cache.exists("a") is False
        assert await cache.exists("b") is False

    @pytest.mark.asyncio
    async def test_stores_result_lists(self, cache: MemoryCacheProvider) -> None:
        data = [{"content_type": "product", "content_id": "42"}]
        await cache.set("search:abc", data)
        assert await cache.get("search:abc") == data

    @pytest.mark.asyncio
    async def test_entries_expire_after_ttl(self) -> None:
        clock = FakeClock()
        cache = MemoryCacheProvider(max_size=10, ttl=300, timer=clock)
        await cache.set("key", "value")

        clock.now = 299.0
        assert await cache.get("key") == "value"
        clock.now = 301.0
        assert await cache.get("key") is None

    @pytest.mark.asyncio
    async def test_per_item_ttl_falls_back_to_default(self) -> None:
        clock = FakeClock()
        cache = MemoryCacheProvider(max_size=10, ttl=300, timer=clock)
        await cache.set("key", "value", ttl=5)

        clock.now = 100.0
        assert await cache.get("key") == "value"

    @pytest.mark.asyncio
    async def test_max_size_evicts(self) -> None:
        cache = MemoryCacheProvider(max_size=2, ttl=3600)
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.set("c", 3)
        assert await cache.get("c") == 3
        assert sum([await cache.exists(k) for k in ("a", "b", "c")]) == 2
