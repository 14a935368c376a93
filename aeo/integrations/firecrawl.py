"""
Firecrawl API Client

Website scraping and search.

Firecrawl handles:
- JavaScript rendering
- Anti-bot bypass
- Clean markdown output

The same capabilities are exposed to agents through the Firecrawl MCP
server (see aeo.mcp); this client is the direct REST path.

API: https://firecrawl.dev
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import VendorClient
from .result import ApiResult

logger = logging.getLogger(__name__)


class FirecrawlClient(VendorClient):
    """
    Async client for the Firecrawl v1 API.

    Usage:
        client = FirecrawlClient(api_key="your_api_key")

        result = await client.scrape_url("https://example.com")
        if result.success:
            markdown = result.data["markdown"]

        await client.close()
    """

    BASE_URL = "https://api.firecrawl.dev/v1"
    ERROR_PREFIX = "FIRECRAWL"

    def __init__(
        self,
        api_key: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("FIRECRAWL_API_KEY not provided")

        super().__init__(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def scrape_url(
        self,
        url: str,
        formats: Optional[List[str]] = None,
        only_main_content: bool = True,
        wait_for: Optional[int] = None,
    ) -> ApiResult[Dict[str, Any]]:
        """
        Scrape a single URL.

        Args:
            url: URL to scrape
            formats: Output formats (markdown, html, rawHtml, links, screenshot)
            only_main_content: Extract only main content (no nav/footer)
            wait_for: Wait time in ms for JS rendering

        Returns:
            ApiResult with {"markdown": ..., "metadata": {...}} on success
        """
        payload: Dict[str, Any] = {
            "url": url,
            "formats": formats or ["markdown"],
            "onlyMainContent": only_main_content,
        }
        if wait_for:
            payload["waitFor"] = wait_for

        result = await self._request("POST", "/scrape", json=payload)
        if not result.success:
            return result

        body = result.data if isinstance(result.data, dict) else {}
        if not body.get("success", True):
            return ApiResult.fail("FIRECRAWL_SCRAPE_ERROR", body.get("error", "Scrape failed"), 502)
        return ApiResult.ok(body.get("data") or {})

    async def search(
        self,
        query: str,
        limit: int = 5,
        scrape_results: bool = False,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Web search; optionally scrape each hit as markdown."""
        payload: Dict[str, Any] = {"query": query, "limit": limit}
        if scrape_results:
            payload["scrapeOptions"] = {"formats": ["markdown"], "onlyMainContent": True}

        result = await self._request("POST", "/search", json=payload)
        if not result.success:
            return result

        body = result.data if isinstance(result.data, dict) else {}
        return ApiResult.ok(body.get("data") or [])

    async def scrape_multiple(
        self,
        urls: List[str],
        concurrency: int = 3,
        **scrape_kwargs,
    ) -> List[ApiResult[Dict[str, Any]]]:
        """
        Scrape multiple URLs with concurrency control.

        Returns:
            List of results in the same order as the input URLs
        """
        semaphore = asyncio.Semaphore(concurrency)

        async def scrape_with_semaphore(url: str) -> ApiResult[Dict[str, Any]]:
            async with semaphore:
                return await self.scrape_url(url, **scrape_kwargs)

        return await asyncio.gather(*(scrape_with_semaphore(url) for url in urls))
