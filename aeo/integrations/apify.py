"""
Apify API Client

Runs Apify actors synchronously and returns their dataset items.
Used for scraping sources DataForSEO does not cover (e.g. Google Maps
listings for local competitors).
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import VendorClient
from .result import ApiResult

logger = logging.getLogger(__name__)

GOOGLE_MAPS_ACTOR = "compass~crawler-google-places"


class ApifyClient(VendorClient):
    """
    Async client for the Apify v2 API.

    Usage:
        async with ApifyClient(api_key="...") as apify:
            result = await apify.scrape_google_maps("dentist in Austin", max_results=10)
    """

    BASE_URL = "https://api.apify.com/v2"
    ERROR_PREFIX = "APIFY"

    def __init__(
        self,
        api_key: str,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("APIFY_API_KEY not provided")

        super().__init__(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            max_connections=5,
            transport=transport,
        )

    async def run_actor(
        self,
        actor_id: str,
        run_input: Dict[str, Any],
        timeout_secs: int = 120,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """
        Run an actor and wait for its dataset items.

        Args:
            actor_id: Actor ID or "username~actor-name"
            run_input: Actor input object
            timeout_secs: Actor run timeout on the Apify side

        Returns:
            ApiResult with the dataset items
        """
        result = await self._request(
            "POST",
            f"/acts/{actor_id}/run-sync-get-dataset-items",
            params={"timeout": timeout_secs},
            json=run_input,
        )
        if not result.success:
            return result

        items = result.data if isinstance(result.data, list) else []
        logger.info(f"Apify actor {actor_id} returned {len(items)} items")
        return ApiResult.ok(items)

    async def scrape_google_maps(
        self,
        query: str,
        max_results: int = 20,
        language: str = "en",
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Google Maps places for a search query, reduced to the useful fields."""
        result = await self.run_actor(
            GOOGLE_MAPS_ACTOR,
            {
                "searchStringsArray": [query],
                "maxCrawledPlacesPerSearch": max_results,
                "language": language,
            },
        )
        if not result.success:
            return result

        places = [
            {
                "name": item.get("title"),
                "website": item.get("website"),
                "address": item.get("address"),
                "category": item.get("categoryName"),
                "rating": item.get("totalScore"),
                "reviews": item.get("reviewsCount"),
            }
            for item in result.data
        ]
        return ApiResult.ok(places)
