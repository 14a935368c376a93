"""
In-Memory TTL Cache

Process-local cache for vendor responses. Best-effort only: entries are not
shared across instances and vanish on restart.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600  # 1 hour


@dataclass
class CacheEntry:
    value: Any
    expires_at: float

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class MemoryCache:
    """
    Dict-backed cache with per-entry TTL (seconds).

    Usage:
        cache = MemoryCache(default_ttl=1800)
        cache.set("key", {"a": 1})
        value = cache.get("key")

        data = await cache.get_or_set("key", fetch_data, ttl=60)
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL, name: str = "default"):
        self.default_ttl = default_ttl
        self.name = name
        self._store: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Get a value, evicting it if expired."""
        entry = self._store.get(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.expired:
            del self._store[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._store[key] = CacheEntry(value=value, expires_at=time.monotonic() + ttl)

    def has(self, key: str) -> bool:
        entry = self._store.get(key)
        if entry is None:
            return False
        if entry.expired:
            del self._store[key]
            return False
        return True

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()
        self.hits = 0
        self.misses = 0

    def size(self) -> int:
        return len(self._store)

    def prune(self) -> int:
        """Remove all expired entries. Returns number removed."""
        expired = [key for key, entry in self._store.items() if entry.expired]
        for key in expired:
            del self._store[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired entries from {self.name} cache")
        return len(expired)

    def keys(self) -> List[str]:
        return [key for key, entry in self._store.items() if not entry.expired]

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Union[Any, Awaitable[Any]]],
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the cached value or compute, store, and return it."""
        if self.has(key):
            return self.get(key)

        value = factory()
        if asyncio.iscoroutine(value):
            value = await value
        self.set(key, value, ttl)
        return value

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "name": self.name,
            "size": self.size(),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total > 0 else 0.0,
        }


def generate_cache_key(prefix: str, *parts: Any) -> str:
    """
    Build a normalized cache key.

    None parts are dropped; the result is lowercased with spaces as underscores.
    """
    pieces = [str(prefix)] + [str(part) for part in parts if part is not None]
    return ":".join(pieces).lower().replace(" ", "_")


# Per-service caches
service_caches: Dict[str, MemoryCache] = {
    "dataforseo": MemoryCache(default_ttl=3600, name="dataforseo"),
    "perplexity": MemoryCache(default_ttl=1800, name="perplexity"),
    "jina": MemoryCache(default_ttl=7200, name="jina"),
    "apify": MemoryCache(default_ttl=1800, name="apify"),
}

# Shared cache used by graceful degradation
degradation_cache = MemoryCache(default_ttl=DEFAULT_TTL, name="degradation")


def get_service_cache(service: str) -> MemoryCache:
    """Get the cache for a service, creating a default one if unknown."""
    if service not in service_caches:
        service_caches[service] = MemoryCache(name=service)
    return service_caches[service]


def prune_all_caches() -> int:
    """Prune every service cache. Returns total entries removed."""
    removed = sum(cache.prune() for cache in service_caches.values())
    return removed + degradation_cache.prune()


def get_all_cache_stats() -> Dict[str, Dict[str, Any]]:
    stats = {name: cache.stats() for name, cache in service_caches.items()}
    stats["degradation"] = degradation_cache.stats()
    return stats
