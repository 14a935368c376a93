"""
Error Handling

- types: AppError taxonomy and the is_retryable predicate
- retry: with_agent_retry exponential backoff wrapper
- degradation: per-provider fallback policy (cache / partial / wait)
- handler: handle_api_error and FastAPI exception handlers
- abort: check_aborted for cooperative cancellation
"""

from .abort import check_aborted
from .degradation import (
    FALLBACK_STRATEGIES,
    DegradationResult,
    FallbackStrategy,
    attempt_graceful_degradation,
    can_degrade_gracefully,
    generate_cache_key,
    get_fallback_suggestion,
    with_graceful_degradation,
)
from .handler import handle_api_error, register_exception_handlers
from .retry import Backoff, with_agent_retry
from .types import (
    AbortError,
    AppError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    ValidationError,
    get_error_metadata,
    is_abort_error,
    is_retryable,
)

__all__ = [
    "check_aborted",
    "FALLBACK_STRATEGIES",
    "DegradationResult",
    "FallbackStrategy",
    "attempt_graceful_degradation",
    "can_degrade_gracefully",
    "generate_cache_key",
    "get_fallback_suggestion",
    "with_graceful_degradation",
    "handle_api_error",
    "register_exception_handlers",
    "Backoff",
    "with_agent_retry",
    "AbortError",
    "AppError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ProviderError",
    "RateLimitError",
    "ValidationError",
    "get_error_metadata",
    "is_abort_error",
    "is_retryable",
]
