"""
Graceful Degradation

Static per-provider fallback policy consulted when a vendor call fails:
1. Serve a previously cached response (keyed on sorted-JSON params)
2. Serve partial results carried by the error
3. Signal that the caller may wait and retry
4. Otherwise give up and re-raise
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from aeo.cache.config import CacheTTL
from aeo.cache.memory import MemoryCache, degradation_cache
from aeo.cache.redis_cache import RedisCache, get_redis_cache

from .types import ProviderError, is_retryable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackStrategy:
    """Fallback options for one provider. wait_and_retry is in seconds."""

    use_cache: bool = True
    use_partial_results: bool = False
    wait_and_retry: Optional[float] = None
    alternative_provider: Optional[str] = None


FALLBACK_STRATEGIES: Dict[str, FallbackStrategy] = {
    "dataforseo": FallbackStrategy(use_cache=True, use_partial_results=False, wait_and_retry=5.0),
    "firecrawl": FallbackStrategy(use_cache=True, use_partial_results=True, wait_and_retry=3.0),
    "perplexity": FallbackStrategy(use_cache=True, use_partial_results=False, alternative_provider="openai"),
    "jina": FallbackStrategy(use_cache=True, use_partial_results=True, wait_and_retry=2.0),
    "openai": FallbackStrategy(use_cache=True, wait_and_retry=10.0),
    "gemini": FallbackStrategy(use_cache=True, wait_and_retry=5.0),
    "default": FallbackStrategy(use_cache=True),
}


@dataclass
class DegradationResult:
    """Outcome of a degradation attempt."""

    success: bool
    data: Any = None
    cached: bool = False
    partial: bool = False
    fallback_used: Optional[str] = None
    error: Optional[BaseException] = None


def get_strategy(provider: str) -> FallbackStrategy:
    return FALLBACK_STRATEGIES.get(provider.lower(), FALLBACK_STRATEGIES["default"])


def generate_cache_key(provider: str, operation: str, params: Dict[str, Any]) -> str:
    """Deterministic key: provider:operation:<params JSON with sorted keys>."""
    return f"{provider}:{operation}:{json.dumps(params, sort_keys=True, default=str)}"


async def _cache_lookup(
    key: str,
    cache: MemoryCache,
    redis_cache: Optional[RedisCache],
) -> Any:
    if redis_cache is not None:
        value = await redis_cache.get(key)
        if value is not None:
            return value
    return cache.get(key)


async def attempt_graceful_degradation(
    provider: str,
    operation: str,
    error: BaseException,
    params: Dict[str, Any],
    cache: Optional[MemoryCache] = None,
    redis_cache: Optional[RedisCache] = None,
) -> DegradationResult:
    """
    Try to produce a fallback result for a failed vendor call.

    Args:
        provider: Provider name (dataforseo, jina, ...)
        operation: Operation name used in the cache key
        error: The error raised by the primary call
        params: Call parameters used in the cache key
        cache: In-memory cache (defaults to the shared degradation cache)
        redis_cache: Optional shared cache checked before memory

    Returns:
        DegradationResult; success=True only when data could be served
    """
    strategy = get_strategy(provider)
    cache = cache if cache is not None else degradation_cache

    if strategy.use_cache:
        key = generate_cache_key(provider, operation, params)
        cached = await _cache_lookup(key, cache, redis_cache)
        if cached is not None:
            logger.warning(f"{provider}.{operation} failed, serving cached response: {error}")
            return DegradationResult(success=True, data=cached, cached=True, fallback_used="cache")

    if strategy.use_partial_results:
        partial = getattr(error, "partial_results", None)
        if partial:
            logger.warning(f"{provider}.{operation} failed, serving partial results: {error}")
            return DegradationResult(success=True, data=partial, partial=True, fallback_used="partial")

    if strategy.wait_and_retry and is_retryable(error):
        return DegradationResult(success=False, fallback_used="wait_and_retry", error=error)

    return DegradationResult(success=False, error=error)


async def with_graceful_degradation(
    provider: str,
    operation: str,
    api_call: Callable[[], Awaitable[Any]],
    params: Dict[str, Any],
    cache: Optional[MemoryCache] = None,
    redis_cache: Optional[RedisCache] = None,
) -> Any:
    """
    Run a vendor call, caching successes and degrading on failure.

    Raises:
        The original error when no fallback can serve data.
    """
    cache = cache if cache is not None else degradation_cache
    if redis_cache is None:
        redis_cache = get_redis_cache()
    key = generate_cache_key(provider, operation, params)

    try:
        result = await api_call()
    except asyncio.CancelledError:
        raise
    except Exception as error:
        degraded = await attempt_graceful_degradation(
            provider, operation, error, params, cache=cache, redis_cache=redis_cache
        )
        if degraded.success:
            return degraded.data
        raise

    ttl = CacheTTL.for_provider(provider)
    cache.set(key, result, ttl=ttl.total_seconds())
    if redis_cache is not None:
        await redis_cache.set(key, result, ttl=ttl)
    return result


def can_degrade_gracefully(provider: str) -> bool:
    strategy = get_strategy(provider)
    return strategy.use_cache or strategy.use_partial_results or bool(strategy.alternative_provider)


def get_fallback_suggestion(provider: str, error: Optional[BaseException] = None) -> str:
    """Human-readable hint shown alongside a degraded or failed response."""
    strategy = get_strategy(provider)
    if isinstance(error, ProviderError) and error.status_code == 429:
        return f"{provider} is rate limiting requests. Please wait a moment and try again."
    if strategy.alternative_provider:
        return f"{provider} is unavailable. Try again or switch to {strategy.alternative_provider}."
    if strategy.wait_and_retry:
        return f"{provider} is temporarily unavailable. Retry in about {int(strategy.wait_and_retry)} seconds."
    return f"{provider} is unavailable. Showing cached data where possible."
