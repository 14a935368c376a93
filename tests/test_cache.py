"""
Cache Tests

Tests for the in-memory TTL cache, cache keys and TTL configuration, the
per-key mutex and the optional Redis cache.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from aeo.cache import (
    CacheConfig,
    CacheTTL,
    MemoryCache,
    RedisCache,
    generate_cache_key,
    get_all_cache_stats,
    get_service_cache,
    prune_all_caches,
    service_caches,
    with_mutex,
)
from aeo.cache.mutex import active_locks


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    """Controllable monotonic clock for expiry tests."""
    now = [1000.0]
    with patch("aeo.cache.memory.time.monotonic", side_effect=lambda: now[0]):
        yield now


# =============================================================================
# MEMORY CACHE
# =============================================================================

class TestMemoryCache:
    """Tests for get/set/expiry and statistics."""

    def test_set_and_get(self):
        cache = MemoryCache()
        cache.set("k", {"v": 1})
        assert cache.get("k") == {"v": 1}
        assert cache.has("k")
        assert cache.size() == 1

    def test_missing_key(self):
        cache = MemoryCache()
        assert cache.get("nope") is None
        assert cache.misses == 1

    def test_entries_expire(self, clock):
        cache = MemoryCache(default_ttl=10)
        cache.set("k", "v")

        clock[0] += 9
        assert cache.get("k") == "v"

        clock[0] += 1
        assert cache.get("k") is None
        assert cache.size() == 0

    def test_per_entry_ttl(self, clock):
        cache = MemoryCache(default_ttl=100)
        cache.set("short", 1, ttl=1)
        cache.set("long", 2)

        clock[0] += 5
        assert cache.has("short") is False
        assert cache.has("long") is True

    def test_prune_removes_expired(self, clock):
        cache = MemoryCache(default_ttl=10)
        cache.set("a", 1)
        cache.set("b", 2, ttl=60)

        clock[0] += 20
        assert cache.prune() == 1
        assert cache.keys() == ["b"]

    def test_delete_and_clear(self):
        cache = MemoryCache()
        cache.set("a", 1)
        assert cache.delete("a") is True
        assert cache.delete("a") is False

        cache.set("b", 2)
        cache.get("b")
        cache.clear()
        assert cache.size() == 0
        assert cache.hits == 0

    def test_stats(self):
        cache = MemoryCache(name="jina")
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")

        stats = cache.stats()
        assert stats["name"] == "jina"
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5

    @pytest.mark.asyncio
    async def test_get_or_set_computes_once(self):
        cache = MemoryCache()
        calls = []

        async def factory():
            calls.append(1)
            return "value"

        assert await cache.get_or_set("k", factory) == "value"
        assert await cache.get_or_set("k", factory) == "value"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_get_or_set_accepts_sync_factory(self):
        cache = MemoryCache()
        assert await cache.get_or_set("k", lambda: 5) == 5


class TestCacheKeys:
    """Tests for the normalized key builder."""

    def test_normalized(self):
        assert generate_cache_key("Keywords", "SEO Tools", None, 2840) == "keywords:seo_tools:2840"


class TestServiceCaches:
    """Tests for the per-vendor cache registry."""

    def test_known_services(self):
        assert {"dataforseo", "perplexity", "jina", "apify"} <= set(service_caches)
        assert service_caches["jina"].default_ttl == 7200

    def test_unknown_service_is_created(self):
        cache = get_service_cache("firecrawl-test")
        try:
            assert cache is get_service_cache("firecrawl-test")
        finally:
            service_caches.pop("firecrawl-test", None)

    def test_prune_all_and_stats(self):
        assert isinstance(prune_all_caches(), int)
        stats = get_all_cache_stats()
        assert "degradation" in stats
        assert "dataforseo" in stats


# =============================================================================
# CONFIG
# =============================================================================

class TestCacheConfig:
    """Tests for TTLs and Redis opt-in."""

    def test_ttl_by_provider(self):
        assert CacheTTL.for_provider("dataforseo") == timedelta(hours=1)
        assert CacheTTL.for_provider("perplexity") == timedelta(minutes=30)
        assert CacheTTL.for_provider("jina") == timedelta(hours=2)
        assert CacheTTL.for_provider("unknown") == timedelta(hours=1)

    def test_redis_requires_url(self):
        assert CacheConfig(redis_url=None).redis_configured is False
        assert CacheConfig(redis_url="redis://localhost:6379").redis_configured is True
        assert CacheConfig(redis_url="redis://localhost:6379", enabled=False).redis_configured is False




# =============================================================================
# REDIS
# =============================================================================

def redis_cache(redis, threshold=5):
    config = CacheConfig(redis_url="redis://localhost:6379", namespace="aeo-test")
    config.circuit_breaker_threshold = threshold
    return RedisCache(config, redis=redis)


class TestRedisCache:
    """Tests for the shared cache with an injected client."""

    @pytest.mark.asyncio
    async def test_set_then_get_uses_namespace(self):
        redis = AsyncMock()
        redis.get.return_value = '{"rank": 3}'
        cache = redis_cache(redis)

        assert await cache.set("dataforseo:serp", {"rank": 3}, ttl=timedelta(hours=1))
        assert await cache.get("dataforseo:serp") == {"rank": 3}

        redis.set.assert_awaited_once_with("aeo-test:dataforseo:serp", '{"rank": 3}', ex=timedelta(hours=1))
        redis.get.assert_awaited_once_with("aeo-test:dataforseo:serp")
        assert cache.get_stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_miss_and_bad_json(self):
        redis = AsyncMock()
        redis.get.side_effect = [None, "not json"]
        cache = redis_cache(redis)

        assert await cache.get("a") is None
        assert await cache.get("b") is None
        assert cache.get_stats()["misses"] == 1
        assert cache.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_errors_open_breaker(self):
        redis = AsyncMock()
        redis.get.side_effect = RedisConnectionError("refused")
        cache = redis_cache(redis, threshold=2)

        assert await cache.get("a") is None
        assert await cache.get("a") is None
        assert cache.get_stats()["circuit_open"]

        assert await cache.get("a") is None
        assert redis.get.await_count == 2
        assert await cache.set("a", 1) is False

    @pytest.mark.asyncio
    async def test_disabled_cache_never_calls_redis(self):
        redis = AsyncMock()
        cache = RedisCache(CacheConfig(redis_url="redis://x", enabled=False), redis=redis)

        assert await cache.get("a") is None
        assert await cache.set("a", 1) is False
        redis.get.assert_not_awaited()


# =============================================================================
# MUTEX
# =============================================================================

class TestWithMutex:
    """Tests for the per-key async lock."""

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        events = []

        async def worker(name):
            async def body():
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")
            await with_mutex("user-1", body)

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self):
        started = []
        release = asyncio.Event()

        async def body(name):
            started.append(name)
            await release.wait()

        tasks = [
            asyncio.create_task(with_mutex("user-1", lambda: body("a"))),
            asyncio.create_task(with_mutex("user-2", lambda: body("b"))),
        ]
        await asyncio.sleep(0.01)
        assert sorted(started) == ["a", "b"]

        release.set()
        await asyncio.gather(*tasks)

    @pytest.mark.asyncio
    async def test_locks_are_released(self):
        async def body():
            return 42

        assert await with_mutex("user-9", body) == 42
        assert "user-9" not in active_locks()

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        async def body():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await with_mutex("user-7", body)
        assert "user-7" not in active_locks()
