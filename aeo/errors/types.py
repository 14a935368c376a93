"""
Application Error Types

Typed exception hierarchy shared by routes, services, and the retry layer:
- AppError: base class carrying code, HTTP status, and context
- ProviderError: any vendor or network failure
- RateLimitError: quota exhaustion with reset/remaining info
- ValidationError / AuthenticationError / AuthorizationError / NotFoundError
- AbortError: cooperative cancellation (client disconnect)
"""

import asyncio
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base application error with an HTTP status and a machine-readable code."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
        agent: Optional[str] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.request_id = request_id
        self.agent = agent
        self.provider = provider

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON responses and structured logs."""
        data = {
            "code": self.code,
            "message": self.message,
            "statusCode": self.status_code,
        }
        if self.details:
            data["details"] = self.details
        if self.request_id:
            data["requestId"] = self.request_id
        if self.agent:
            data["agent"] = self.agent
        if self.provider:
            data["provider"] = self.provider
        return data

    def __repr__(self):
        return f"<{type(self).__name__} {self.code} ({self.status_code}): {self.message}>"


class ProviderError(AppError):
    """
    Failure of an external provider (HTTP error, timeout, bad payload).

    Retryable by default for 5xx and 429 responses. A provider error may carry
    partial results that graceful degradation can serve instead of failing.
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int = 502,
        retryable: Optional[bool] = None,
        original_error: Optional[BaseException] = None,
        partial_results: Any = None,
        **kwargs,
    ):
        super().__init__(
            message,
            code=kwargs.pop("code", f"PROVIDER_ERROR_{provider.upper()}"),
            status_code=status_code,
            provider=provider,
            **kwargs,
        )
        if retryable is None:
            retryable = status_code >= 500 or status_code == 429
        self.retryable = retryable
        self.original_error = original_error
        self.partial_results = partial_results


class RateLimitError(AppError):
    """Rate limit exceeded. `reset` is a unix timestamp in seconds."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        reset: Optional[float] = None,
        remaining: int = 0,
        limit: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, code="RATE_LIMIT_EXCEEDED", status_code=429, **kwargs)
        self.reset = reset
        self.remaining = remaining
        self.limit = limit


class ValidationError(AppError):
    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, **kwargs)


class AuthenticationError(AppError):
    def __init__(self, message: str = "Unauthorized", **kwargs):
        super().__init__(message, code="AUTHENTICATION_ERROR", status_code=401, **kwargs)


class AuthorizationError(AppError):
    def __init__(self, message: str = "Forbidden", **kwargs):
        super().__init__(message, code="AUTHORIZATION_ERROR", status_code=403, **kwargs)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found", **kwargs):
        super().__init__(message, code="NOT_FOUND", status_code=404, **kwargs)


class AbortError(AppError):
    """Raised when an operation is cancelled, e.g. the SSE client disconnected."""

    def __init__(self, message: str = "Operation was aborted", **kwargs):
        super().__init__(message, code="ABORTED", status_code=499, **kwargs)


def is_abort_error(err: BaseException) -> bool:
    """Check for cooperative or task-level cancellation."""
    return isinstance(err, (AbortError, asyncio.CancelledError))


def is_retryable(err: BaseException) -> bool:
    """
    Decide whether an error is worth retrying.

    Aborts and client-side errors are fatal; provider errors decide for
    themselves; unknown errors are assumed transient.
    """
    if is_abort_error(err):
        return False
    if isinstance(err, ProviderError):
        return err.retryable
    if isinstance(err, RateLimitError):
        return True
    if isinstance(err, (ValidationError, AuthenticationError, AuthorizationError, NotFoundError)):
        return False
    if isinstance(err, AppError):
        return err.status_code >= 500

    status_code = getattr(err, "status_code", None)
    if isinstance(status_code, int):
        return status_code >= 500 or status_code == 429

    return True


def get_error_metadata(err: BaseException) -> Dict[str, Any]:
    """Flatten an error into a dict for structured logging."""
    if isinstance(err, AppError):
        meta = err.to_dict()
        meta["type"] = type(err).__name__
        meta["retryable"] = is_retryable(err)
        return meta

    return {
        "type": type(err).__name__,
        "message": str(err),
        "statusCode": getattr(err, "status_code", None),
        "retryable": is_retryable(err),
    }
