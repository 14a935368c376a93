"""
Redis Cache

Optional shared store for vendor responses. Values are JSON encoded and
written under the configured namespace. Every operation degrades to a
miss (None / False) when Redis misbehaves, and repeated connection
failures trip a breaker so requests stop waiting on a dead server.
"""

import asyncio
import json
import logging
import time
from datetime import timedelta
from typing import Any, Dict, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from aeo.cache.config import CacheConfig, get_cache_config

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Open after `threshold` consecutive failures, half-open after `cooldown` seconds."""

    def __init__(self, threshold: int = 5, cooldown: int = 60):
        self.threshold = threshold
        self.cooldown = cooldown
        self.failures = 0
        self.opened_at: Optional[float] = None

    @property
    def is_open(self) -> bool:
        if self.opened_at is None:
            return False
        if time.monotonic() - self.opened_at >= self.cooldown:
            logger.info("Redis breaker half-open, letting a request through")
            self.opened_at = None
            self.failures = 0
            return False
        return True

    def success(self) -> None:
        self.failures = 0
        self.opened_at = None

    def failure(self) -> None:
        self.failures += 1
        if self.failures >= self.threshold and self.opened_at is None:
            self.opened_at = time.monotonic()
            logger.warning(
                f"Redis breaker opened after {self.failures} failures, "
                f"pausing for {self.cooldown}s"
            )


class RedisCache:
    """
    Async JSON cache backed by Redis.

    A connected client may be injected (tests do this); otherwise the pool
    is created lazily from REDIS_URL on first use.
    """

    def __init__(self, config: Optional[CacheConfig] = None, redis: Optional[Redis] = None):
        self.config = config or get_cache_config()
        self._redis = redis
        self._pool: Optional[ConnectionPool] = None
        self._connect_lock = asyncio.Lock()
        self.breaker = (
            CircuitBreaker(self.config.circuit_breaker_threshold, self.config.circuit_breaker_timeout)
            if self.config.circuit_breaker_enabled else None
        )
        self.hits = 0
        self.misses = 0
        self.errors = 0

    async def initialize(self) -> None:
        if self._redis is not None:
            return
        async with self._connect_lock:
            if self._redis is not None:
                return
            self._pool = ConnectionPool.from_url(
                self.config.redis_url,
                max_connections=self.config.redis_max_connections,
                socket_timeout=self.config.redis_socket_timeout,
                socket_connect_timeout=self.config.redis_connect_timeout,
                decode_responses=True,
            )
            client = Redis(connection_pool=self._pool)
            await client.ping()
            self._redis = client
            logger.info(f"Redis cache connected (namespace={self.config.namespace})")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    def make_key(self, *parts: Any) -> str:
        return ":".join([self.config.namespace, *(str(p) for p in parts)])

    def _usable(self) -> bool:
        if not self.config.enabled:
            return False
        return not (self.breaker and self.breaker.is_open)

    def _record(self, error: Optional[Exception], op: str, key: str) -> None:
        if error is None:
            if self.breaker:
                self.breaker.success()
            return
        self.errors += 1
        if self.breaker and isinstance(error, RedisError):
            self.breaker.failure()
        logger.warning(f"Redis {op} failed for {key}: {error}")

    async def get(self, key: str) -> Optional[Any]:
        """Decoded value for `key`, or None on miss or any Redis problem."""
        if not self._usable():
            return None
        try:
            await self.initialize()
            raw = await self._redis.get(self.make_key(key))
        except (RedisError, OSError) as e:
            self._record(e, "get", key)
            return None
        self._record(None, "get", key)

        if raw is None:
            self.misses += 1
            logger.debug(f"Redis miss: {key}")
            return None
        try:
            value = json.loads(raw)
        except ValueError as e:
            self._record(e, "decode", key)
            return None
        self.hits += 1
        logger.debug(f"Redis hit: {key}")
        return value

    async def set(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> bool:
        if not self._usable():
            return False
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            self._record(e, "encode", key)
            return False
        try:
            await self.initialize()
            await self._redis.set(self.make_key(key), payload, ex=ttl)
        except (RedisError, OSError) as e:
            self._record(e, "set", key)
            return False
        self._record(None, "set", key)
        return True

    async def delete(self, key: str) -> bool:
        if not self._usable() or self._redis is None:
            return False
        try:
            removed = await self._redis.delete(self.make_key(key))
        except (RedisError, OSError) as e:
            self._record(e, "delete", key)
            return False
        self._record(None, "delete", key)
        return bool(removed)

    def get_stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "hit_rate": round(self.hits / lookups, 3) if lookups else 0.0,
            "circuit_open": bool(self.breaker and self.breaker.opened_at is not None),
        }


_redis_cache: Optional[RedisCache] = None


def get_redis_cache() -> Optional[RedisCache]:
    """Shared Redis cache, or None when REDIS_URL is not configured."""
    global _redis_cache
    config = get_cache_config()
    if not config.redis_configured:
        return None
    if _redis_cache is None:
        _redis_cache = RedisCache(config)
    return _redis_cache
