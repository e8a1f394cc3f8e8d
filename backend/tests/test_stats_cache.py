"""Tests for the home page statistics cache."""
import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.services.stats_cache import StatsCache
from conftest import upload


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self):
        return self.now


class CountingLoader:
    def __init__(self):
        self.calls = 0
        self.fail = False

    async def __call__(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("database down")
        return {"total_images": self.calls}


class BrokenRedis:
    async def get(self, key):
        raise RedisConnectionError("redis down")

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("redis down")

    async def delete(self, key):
        raise RedisConnectionError("redis down")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loader():
    return CountingLoader()


@pytest.fixture
def cache(memory_redis, clock):
    return StatsCache(redis=memory_redis, ttl_seconds=60, clock=clock)


class TestGetOrLoad:

    @pytest.mark.asyncio
    async def test_fresh_entry_is_reused(self, cache, loader, clock):
        first = await cache.get_or_load(loader)
        clock.now += 59
        second = await cache.get_or_load(loader)

        assert loader.calls == 1
        assert second == first
        assert second.cached_at == 1_000.0

    @pytest.mark.asyncio
    async def test_expired_entry_is_reloaded(self, cache, loader, clock):
        await cache.get_or_load(loader)
        clock.now += 60
        entry = await cache.get_or_load(loader)

        assert loader.calls == 2
        assert entry.value == {"total_images": 2}
        assert entry.cached_at == 1_060.0

    @pytest.mark.asyncio
    async def test_stale_entry_served_when_reload_fails(self, cache, loader, clock):
        await cache.get_or_load(loader)
        loader.fail = True
        clock.now += 100

        entry = await cache.get_or_load(loader)

        assert entry.value == {"total_images": 1}
        assert entry.cached_at == 1_000.0

    @pytest.mark.asyncio
    async def test_too_stale_entry_is_not_served(self, cache, loader, clock):
        await cache.get_or_load(loader)
        loader.fail = True
        clock.now += 120

        with pytest.raises(RuntimeError):
            await cache.get_or_load(loader)

    @pytest.mark.asyncio
    async def test_failure_without_entry_propagates(self, cache, loader):
        loader.fail = True
        with pytest.raises(RuntimeError):
            await cache.get_or_load(loader)

    @pytest.mark.asyncio
    async def test_entry_stored_with_stale_window_expiry(self, cache, loader, memory_redis):
        await cache.get_or_load(loader)

        stored = json.loads(memory_redis.data["cache:portal_stats"])
        assert stored == {"value": {"total_images": 1}, "cached_at": 1_000.0}
        assert memory_redis.expiry["cache:portal_stats"] == 120

    @pytest.mark.asyncio
    async def test_invalidate(self, cache, loader):
        await cache.get_or_load(loader)
        await cache.invalidate()
        await cache.get_or_load(loader)
        assert loader.calls == 2


class TestWithoutRedis:

    @pytest.mark.asyncio
    async def test_no_client_always_loads(self, loader, clock):
        cache = StatsCache(redis=None, ttl_seconds=60, clock=clock)
        await cache.get_or_load(loader)
        await cache.get_or_load(loader)
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_redis_errors_fall_through_to_loader(self, loader, clock):
        cache = StatsCache(redis=BrokenRedis(), ttl_seconds=60, clock=clock)

        entry = await cache.get_or_load(loader)
        await cache.invalidate()

        assert entry.value == {"total_images": 1}


class TestSummaryEndpoint:

    def test_summary_is_public_and_cached(self, api_client, alice, memory_redis):
        upload(api_client, alice)
        upload(api_client, alice, isPublic="false")

        r = api_client.get("/api/stats/summary")
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["totalImages"] == 2
        assert data["publicImages"] == 1
        assert data["contributors"] == 1
        assert "cachedAt" in data
        assert "cache:portal_stats" in memory_redis.data

        again = api_client.get("/api/stats/summary").json()["data"]
        assert again["cachedAt"] == data["cachedAt"]

    def test_upload_and_delete_invalidate_summary(self, api_client, alice, bob, memory_redis):
        upload(api_client, alice)
        assert api_client.get("/api/stats/summary").json()["data"]["totalImages"] == 1

        created = upload(api_client, bob).json()["data"]
        assert "cache:portal_stats" not in memory_redis.data
        summary = api_client.get("/api/stats/summary").json()["data"]
        assert summary["totalImages"] == 2
        assert summary["contributors"] == 2

        api_client.delete(f"/api/images/{created['id']}", headers=bob["headers"])
        assert "cache:portal_stats" not in memory_redis.data
        summary = api_client.get("/api/stats/summary").json()["data"]
        assert summary["totalImages"] == 1
        assert summary["contributors"] == 1
