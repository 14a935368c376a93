"""
Agent Retry Wrapper

Exponential backoff with a cap and a retryability predicate:
- delay(n) = min(initial * factor ** n, max)
- aborts are never retried
- non-retryable errors are wrapped and raised immediately
- terminal unknown errors become ProviderError
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .types import AppError, ProviderError, is_abort_error, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Backoff:
    """Backoff settings in seconds."""

    initial: float = 0.2
    factor: float = 2.0
    max: float = 10.0

    def delay(self, attempt: int) -> float:
        return min(self.initial * (self.factor ** attempt), self.max)


def _wrap(err: BaseException, provider: Optional[str], agent: Optional[str], retryable: bool) -> ProviderError:
    status_code = getattr(err, "status_code", None)
    return ProviderError(
        str(err) or type(err).__name__,
        provider=provider or "unknown",
        status_code=status_code if isinstance(status_code, int) and status_code > 0 else 502,
        retryable=retryable,
        original_error=err,
        agent=agent,
    )


async def with_agent_retry(
    fn: Callable[[], Awaitable[T]],
    retries: int = 2,
    backoff: Optional[Backoff] = None,
    on_retry: Optional[Callable[[BaseException, int, float], Any]] = None,
    agent: Optional[str] = None,
    provider: Optional[str] = None,
) -> T:
    """
    Run an async callable with exponential backoff.

    Args:
        fn: Zero-argument coroutine function to invoke
        retries: Number of retries after the first attempt
        backoff: Backoff settings (defaults to 200ms initial, x2, 10s cap)
        on_retry: Optional callback (error, attempt_number, delay_seconds)
        agent: Agent name attached to wrapped errors
        provider: Provider name attached to wrapped errors

    Returns:
        Whatever fn returns

    Raises:
        AbortError / CancelledError: Immediately, never retried
        AppError: Re-raised as-is when not retryable or out of attempts
        ProviderError: Wrapping any other terminal error
    """
    backoff = backoff or Backoff()

    for attempt in range(retries + 1):
        try:
            return await fn()
        except asyncio.CancelledError:
            raise
        except Exception as err:
            if is_abort_error(err):
                raise

            if not is_retryable(err):
                if isinstance(err, AppError):
                    raise
                raise _wrap(err, provider, agent, retryable=False) from err

            if attempt >= retries:
                logger.warning(
                    f"{agent or provider or 'operation'} failed after {attempt + 1} attempts: {err}"
                )
                if isinstance(err, AppError):
                    raise
                raise _wrap(err, provider, agent, retryable=True) from err

            delay = backoff.delay(attempt)
            logger.warning(
                f"{agent or provider or 'operation'} failed "
                f"(attempt {attempt + 1}/{retries + 1}), retrying in {delay:.2f}s: {err}"
            )
            if on_retry:
                result = on_retry(err, attempt + 1, delay)
                if asyncio.iscoroutine(result):
                    await result
            await asyncio.sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry loop exited without result")
