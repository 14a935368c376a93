"""
Shared HTTP plumbing for vendor clients.

Each client owns one pooled httpx.AsyncClient and funnels every call through
`_request`, which turns non-2xx responses and transport errors into failed
ApiResults instead of exceptions.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .result import ApiResult, http_error, network_error

logger = logging.getLogger(__name__)


class VendorClient:
    """Base class for vendor clients returning ApiResult."""

    BASE_URL = ""
    ERROR_PREFIX = "VENDOR"

    def __init__(
        self,
        headers: Dict[str, str],
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        max_connections: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or self.BASE_URL,
            headers=headers,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    async def _request(self, method: str, url: str, **kwargs: Any) -> ApiResult[Any]:
        """
        Perform one HTTP call.

        Returns:
            ApiResult with the decoded JSON body (or text for non-JSON bodies)
        """
        if self._closed:
            raise RuntimeError(f"{type(self).__name__} is closed")

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{self.ERROR_PREFIX} network error on {method} {url}: {e}")
            return network_error(self.ERROR_PREFIX, e)

        if not response.is_success:
            logger.warning(f"{self.ERROR_PREFIX} HTTP {response.status_code} on {method} {url}")
            return http_error(self.ERROR_PREFIX, response.status_code, response.text)

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return ApiResult.ok(response.json())
            except ValueError as e:
                return ApiResult.fail(
                    f"{self.ERROR_PREFIX}_PARSE_ERROR",
                    f"Invalid JSON response: {e}",
                    response.status_code,
                )
        return ApiResult.ok(response.text)

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
