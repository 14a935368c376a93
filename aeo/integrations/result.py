"""
Vendor Result Envelope

Every vendor-facing function returns an ApiResult instead of raising for
expected failures (HTTP non-2xx, network errors):

    result = await client.keyword_research(["seo tools"])
    if result.success:
        use(result.data)
    else:
        log(result.error.code, result.error.status_code)

Raising is reserved for programmer error such as missing credentials.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

from aeo.errors.types import ProviderError

T = TypeVar("T")


@dataclass(frozen=True)
class ApiError:
    """Normalized vendor failure. status_code is 0 for network failures."""

    code: str
    message: str
    status_code: int

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "statusCode": self.status_code}


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Tagged success/error envelope."""

    success: bool
    data: Optional[T] = None
    error: Optional[ApiError] = None

    @classmethod
    def ok(cls, data: T) -> "ApiResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str, status_code: int) -> "ApiResult[Any]":
        return cls(success=False, error=ApiError(code=code, message=message, status_code=status_code))

    def unwrap(self, provider: Optional[str] = None) -> T:
        """
        Return data or raise ProviderError built from the error.

        Status 0 (network failure) is reported as 502 and stays retryable.
        """
        if self.success:
            return self.data

        provider = provider or self.error.code.split("_", 1)[0].lower()
        raise ProviderError(
            self.error.message,
            provider=provider,
            status_code=error_status(self.error),
            retryable=True if self.error.status_code == 0 else None,
            details={"vendorCode": self.error.code, "vendorStatus": self.error.status_code},
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error.to_dict()}


def http_error(prefix: str, status_code: int, text: str = "") -> ApiResult[Any]:
    """Build the `<PREFIX>_HTTP_ERROR` failure for a non-2xx response."""
    return ApiResult.fail(
        f"{prefix}_HTTP_ERROR",
        f"HTTP {status_code}: {text[:500]}" if text else f"HTTP {status_code}",
        status_code,
    )


def network_error(prefix: str, exc: BaseException) -> ApiResult[Any]:
    """Build the `<PREFIX>_NETWORK_ERROR` failure for a transport exception."""
    return ApiResult.fail(
        f"{prefix}_NETWORK_ERROR",
        str(exc) or type(exc).__name__,
        0,
    )


def error_status(error: ApiError) -> int:
    """HTTP status a route should answer with for a vendor failure."""
    if error.status_code and 400 <= error.status_code < 600:
        return error.status_code
    return 502
