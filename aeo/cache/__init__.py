"""
Caching Layer

- MemoryCache: process-local TTL cache, one per vendor
- RedisCache: optional shared cache with circuit breaker
- with_mutex: per-key async lock

All of it is best-effort: nothing here is required for correctness.
"""

from aeo.cache.config import CacheConfig, CacheTTL, get_cache_config
from aeo.cache.memory import (
    MemoryCache,
    degradation_cache,
    generate_cache_key,
    get_all_cache_stats,
    get_service_cache,
    prune_all_caches,
    service_caches,
)
from aeo.cache.mutex import with_mutex
from aeo.cache.redis_cache import RedisCache, get_redis_cache

__all__ = [
    "CacheConfig",
    "CacheTTL",
    "get_cache_config",
    "MemoryCache",
    "degradation_cache",
    "generate_cache_key",
    "get_all_cache_stats",
    "get_service_cache",
    "prune_all_caches",
    "service_caches",
    "with_mutex",
    "RedisCache",
    "get_redis_cache",
]
