"""
Cache Configuration

Centralized configuration for the caching layer.

The in-memory caches always work. Redis is optional and only used when
REDIS_URL is set; it lets cached vendor responses survive restarts and be
shared across instances.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from typing import Optional


@dataclass(frozen=True)
class CacheTTL:
    """Cache TTLs by vendor."""

    DATAFORSEO: timedelta = timedelta(hours=1)
    PERPLEXITY: timedelta = timedelta(minutes=30)
    JINA: timedelta = timedelta(hours=2)
    APIFY: timedelta = timedelta(minutes=30)
    DEGRADATION: timedelta = timedelta(hours=1)

    @classmethod
    def for_provider(cls, provider: str) -> timedelta:
        mapping = {
            "dataforseo": cls.DATAFORSEO,
            "perplexity": cls.PERPLEXITY,
            "jina": cls.JINA,
            "apify": cls.APIFY,
        }
        return mapping.get(provider, cls.DEGRADATION)


@dataclass
class CacheConfig:
    """
    Main cache configuration.

    Settings can be overridden via environment variables:
    - REDIS_URL: Enables the shared Redis cache
    - CACHE_ENABLED: Enable/disable Redis caching globally
    - CACHE_NAMESPACE: Key prefix
    """

    redis_url: Optional[str] = field(default_factory=lambda: os.getenv("REDIS_URL"))

    namespace: str = field(default_factory=lambda: os.getenv(
        "CACHE_NAMESPACE",
        "aeo"
    ))

    enabled: bool = field(default_factory=lambda: os.getenv(
        "CACHE_ENABLED",
        "true"
    ).lower() == "true")

    redis_max_connections: int = field(default_factory=lambda: int(os.getenv(
        "REDIS_MAX_CONNECTIONS",
        "20"
    )))
    redis_socket_timeout: float = 2.0
    redis_connect_timeout: float = 2.0

    circuit_breaker_enabled: bool = True
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout: int = 60

    @property
    def redis_configured(self) -> bool:
        return self.enabled and bool(self.redis_url)


@lru_cache(maxsize=1)
def get_cache_config() -> CacheConfig:
    """Get singleton cache configuration."""
    return CacheConfig()
