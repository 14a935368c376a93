"""
DataForSEO API Client

Async client with:
- Basic auth from login/password
- Connection pooling
- One call per endpoint, each returning an ApiResult
- No retry and no caching (callers wrap with with_agent_retry /
  with_graceful_degradation when they want those)
"""

import base64
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .base import VendorClient
from .result import ApiResult

logger = logging.getLogger(__name__)

DEFAULT_LOCATION_CODE = 2840  # United States
DEFAULT_LANGUAGE_CODE = "en"


def safe_get_result(response: Dict, get_items: bool = True) -> Any:
    """
    Safely extract result data from a DataForSEO response.

    Handles cases where result is None, empty, or malformed.

    Args:
        response: Raw API response dict
        get_items: If True, returns items list. If False, returns first result object.

    Returns:
        List of items, result dict, or empty list/dict on failure
    """
    try:
        tasks = response.get("tasks")
        if not tasks or not isinstance(tasks, list):
            return [] if get_items else {}

        result = tasks[0].get("result")
        if not result or not isinstance(result, list):
            return [] if get_items else {}

        first_result = result[0]
        if not first_result or not isinstance(first_result, dict):
            return [] if get_items else {}

        if get_items:
            items = first_result.get("items")
            return items if items and isinstance(items, list) else []
        return first_result
    except (AttributeError, TypeError, IndexError, KeyError) as e:
        logger.debug(f"Safe result extraction failed: {e}")
        return [] if get_items else {}


def task_results(response: Dict) -> List[Dict[str, Any]]:
    """Return `tasks[0].result` as a list (endpoints that return rows directly)."""
    tasks = response.get("tasks") or []
    if not tasks or not isinstance(tasks[0], dict):
        return []
    result = tasks[0].get("result")
    return [row for row in result if isinstance(row, dict)] if isinstance(result, list) else []


# ============================================================================
# RESPONSE MODELS
# ============================================================================

@dataclass
class KeywordData:
    keyword: str
    search_volume: int = 0
    cpc: float = 0.0
    competition: float = 0.0
    competition_level: Optional[str] = None
    monthly_searches: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CompetitorData:
    domain: str
    avg_position: float = 0.0
    intersections: int = 0
    organic_traffic: float = 0.0
    organic_keywords: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SerpResult:
    position: int
    url: str
    domain: str
    title: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SerpAnalysis:
    keyword: str
    organic_results: List[SerpResult] = field(default_factory=list)
    total_results: int = 0
    has_featured_snippet: bool = False
    has_people_also_ask: bool = False
    has_ai_overview: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.keyword,
            "organic_results": [r.to_dict() for r in self.organic_results],
            "total_results": self.total_results,
            "has_featured_snippet": self.has_featured_snippet,
            "has_people_also_ask": self.has_people_also_ask,
            "has_ai_overview": self.has_ai_overview,
        }


@dataclass
class DomainMetrics:
    domain: str
    organic_traffic: float = 0.0
    organic_keywords: int = 0
    top3_keywords: int = 0
    top10_keywords: int = 0
    traffic_value: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BacklinkSummary:
    domain: str
    rank: int = 0
    backlinks: int = 0
    referring_domains: int = 0
    referring_main_domains: int = 0
    broken_backlinks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_keyword_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten a DataForSEO Labs keyword item (ranked_keywords, domain_intersection).

    Returns keyword, search_volume, cpc, competition, difficulty, intent.
    """
    data = item.get("keyword_data") or item
    info = data.get("keyword_info") or {}
    props = data.get("keyword_properties") or {}
    intent = (data.get("search_intent_info") or {}).get("main_intent")
    return {
        "keyword": data.get("keyword", ""),
        "search_volume": info.get("search_volume") or 0,
        "cpc": info.get("cpc") or 0.0,
        "competition": info.get("competition") or 0.0,
        "difficulty": props.get("keyword_difficulty") or 0,
        "intent": intent,
    }


def serp_position(element: Optional[Dict[str, Any]]) -> Optional[int]:
    """Rank group of a SERP element, or None when the domain does not rank."""
    if not element:
        return None
    serp_item = element.get("serp_item") or element
    position = serp_item.get("rank_group") or serp_item.get("rank_absolute")
    return int(position) if position else None


# ============================================================================
# CLIENT
# ============================================================================

class DataForSEOClient(VendorClient):
    """
    Async client for the DataForSEO v3 API.

    Usage:
        client = DataForSEOClient(login="your_login", password="your_password")

        result = await client.keyword_research(["seo tools"])
        if result.success:
            for kw in result.data:
                print(kw.keyword, kw.search_volume)

        await client.close()
    """

    BASE_URL = "https://api.dataforseo.com/v3"
    ERROR_PREFIX = "DATAFORSEO"

    def __init__(
        self,
        login: str,
        password: str,
        max_connections: int = 50,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize DataForSEO client.

        Args:
            login: DataForSEO login email
            password: DataForSEO API password
            max_connections: Maximum concurrent connections
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        if not login or not password:
            raise ValueError("DataForSEO login and password are required")

        credentials = f"{login}:{password}"
        auth_token = base64.b64encode(credentials.encode()).decode()

        super().__init__(
            headers={
                "Authorization": f"Basic {auth_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            max_connections=max_connections,
            transport=transport,
        )
        self.login = login

    async def post(self, endpoint: str, body: Dict[str, Any]) -> ApiResult[Dict[str, Any]]:
        """
        POST a single task to an endpoint.

        Args:
            endpoint: API endpoint path (e.g., "dataforseo_labs/google/ranked_keywords/live")
            body: Task object; sent as a one-element list

        Returns:
            ApiResult with the raw response dict
        """
        result = await self._request("POST", f"/{endpoint.lstrip('/')}", json=[body])
        if not result.success:
            return result

        response = result.data if isinstance(result.data, dict) else {}
        status_code = response.get("status_code")
        if status_code != 20000:
            message = response.get("status_message", "Unknown error")
            logger.warning(f"DataForSEO API error on {endpoint}: {message} ({status_code})")
            return ApiResult.fail("DATAFORSEO_API_ERROR", f"API error: {message}", 200)

        for task in response.get("tasks") or []:
            task_status = task.get("status_code")
            if task_status not in (20000, 20100):
                logger.error(
                    f"DataForSEO task error in {endpoint}: "
                    f"{task.get('status_message', 'Task error')} (status: {task_status})"
                )

        return ApiResult.ok(response)

    # ========================================================================
    # KEYWORDS
    # ========================================================================

    async def keyword_research(
        self,
        keywords: List[str],
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
    ) -> ApiResult[List[KeywordData]]:
        """Google Ads search volume, CPC, and competition for keywords."""
        result = await self.post(
            "keywords_data/google_ads/search_volume/live",
            {"keywords": keywords, "location_code": location_code, "language_code": language_code},
        )
        if not result.success:
            return result

        rows = [
            KeywordData(
                keyword=row.get("keyword", ""),
                search_volume=row.get("search_volume") or 0,
                cpc=row.get("cpc") or 0.0,
                competition=row.get("competition_index", 0) / 100 if row.get("competition_index") else 0.0,
                competition_level=row.get("competition"),
                monthly_searches=row.get("monthly_searches") or [],
            )
            for row in task_results(result.data)
        ]
        return ApiResult.ok(rows)

    async def keywords_for_keywords(
        self,
        keywords: List[str],
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Keyword ideas from Google Ads for seed keywords."""
        result = await self.post(
            "keywords_data/google_ads/keywords_for_keywords/live",
            {"keywords": keywords, "location_code": location_code, "language_code": language_code},
        )
        if not result.success:
            return result
        return ApiResult.ok(task_results(result.data))

    async def bulk_keyword_difficulty(
        self,
        keywords: List[str],
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
    ) -> ApiResult[Dict[str, int]]:
        """Keyword difficulty (0-100) keyed by keyword."""
        result = await self.post(
            "dataforseo_labs/google/bulk_keyword_difficulty/live",
            {"keywords": keywords, "location_code": location_code, "language_code": language_code},
        )
        if not result.success:
            return result

        difficulties = {
            item.get("keyword", ""): item.get("keyword_difficulty") or 0
            for item in safe_get_result(result.data)
        }
        return ApiResult.ok(difficulties)

    async def ai_keyword_search_volume(
        self,
        keywords: List[str],
        location_name: str = "United States",
        language_code: str = DEFAULT_LANGUAGE_CODE,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Search volume of keywords inside AI assistants (AI Optimization API)."""
        result = await self.post(
            "ai_optimization/ai_keyword_data/keywords_search_volume/live",
            {"keywords": keywords, "location_name": location_name, "language_code": language_code},
        )
        if not result.success:
            return result
        return ApiResult.ok(safe_get_result(result.data))

    async def chatgpt_llm_responses(
        self,
        prompt: str,
        model: str = "gpt-4o",
    ) -> ApiResult[Dict[str, Any]]:
        """Ask ChatGPT through DataForSEO and return the first result object."""
        result = await self.post(
            "ai_optimization/chat_gpt/llm_responses/live",
            {"user_prompt": prompt, "model_name": model},
        )
        if not result.success:
            return result
        return ApiResult.ok(safe_get_result(result.data, get_items=False))

    # ========================================================================
    # SERP
    # ========================================================================

    async def serp_analysis(
        self,
        keyword: str,
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
        device: str = "desktop",
        depth: int = 10,
    ) -> ApiResult[SerpAnalysis]:
        """Organic SERP results plus SERP feature flags."""
        result = await self.post(
            "serp/google/organic/live/advanced",
            {
                "keyword": keyword,
                "location_code": location_code,
                "language_code": language_code,
                "device": device,
                "depth": depth,
            },
        )
        if not result.success:
            return result

        first = safe_get_result(result.data, get_items=False)
        items = first.get("items") or []
        analysis = SerpAnalysis(keyword=keyword, total_results=first.get("se_results_count") or 0)

        for item in items:
            item_type = item.get("type")
            if item_type == "organic":
                analysis.organic_results.append(
                    SerpResult(
                        position=item.get("rank_group") or item.get("rank_absolute") or 0,
                        url=item.get("url", ""),
                        domain=item.get("domain", ""),
                        title=item.get("title") or "",
                        description=item.get("description") or "",
                    )
                )
            elif item_type == "featured_snippet":
                analysis.has_featured_snippet = True
            elif item_type == "people_also_ask":
                analysis.has_people_also_ask = True
            elif item_type == "ai_overview":
                analysis.has_ai_overview = True

        return ApiResult.ok(analysis)

    # ========================================================================
    # DOMAINS
    # ========================================================================

    async def competitor_analysis(
        self,
        domain: str,
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
        limit: int = 10,
    ) -> ApiResult[List[CompetitorData]]:
        """Domains competing with `domain` in organic search."""
        result = await self.post(
            "dataforseo_labs/google/competitors_domain/live",
            {
                "target": domain,
                "location_code": location_code,
                "language_code": language_code,
                "limit": limit,
            },
        )
        if not result.success:
            return result

        competitors = []
        for item in safe_get_result(result.data):
            organic = ((item.get("full_domain_metrics") or item.get("metrics") or {}).get("organic")) or {}
            competitor_domain = item.get("domain", "")
            if not competitor_domain or competitor_domain == domain:
                continue
            competitors.append(
                CompetitorData(
                    domain=competitor_domain,
                    avg_position=item.get("avg_position") or 0.0,
                    intersections=item.get("intersections") or 0,
                    organic_traffic=organic.get("etv") or 0.0,
                    organic_keywords=organic.get("count") or 0,
                )
            )
        return ApiResult.ok(competitors)

    async def domain_metrics(
        self,
        domain: str,
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
    ) -> ApiResult[DomainMetrics]:
        """Organic traffic and keyword distribution for a domain."""
        result = await self.post(
            "dataforseo_labs/google/domain_rank_overview/live",
            {"target": domain, "location_code": location_code, "language_code": language_code},
        )
        if not result.success:
            return result

        items = safe_get_result(result.data)
        organic = ((items[0].get("metrics") or {}).get("organic") or {}) if items else {}
        return ApiResult.ok(
            DomainMetrics(
                domain=domain,
                organic_traffic=organic.get("etv") or 0.0,
                organic_keywords=organic.get("count") or 0,
                top3_keywords=(organic.get("pos_1") or 0) + (organic.get("pos_2_3") or 0),
                top10_keywords=(
                    (organic.get("pos_1") or 0)
                    + (organic.get("pos_2_3") or 0)
                    + (organic.get("pos_4_10") or 0)
                ),
                traffic_value=organic.get("estimated_paid_traffic_cost") or 0.0,
            )
        )

    async def backlink_analysis(self, domain: str, limit: int = 100) -> ApiResult[BacklinkSummary]:
        """Backlink profile summary (rank on a 0-100 scale). `limit` caps the embedded top lists."""
        result = await self.post(
            "backlinks/summary/live",
            {
                "target": domain,
                "rank_scale": "one_hundred",
                "include_subdomains": True,
                "internal_list_limit": limit,
            },
        )
        if not result.success:
            return result

        summary = safe_get_result(result.data, get_items=False)
        return ApiResult.ok(
            BacklinkSummary(
                domain=domain,
                rank=summary.get("rank") or 0,
                backlinks=summary.get("backlinks") or 0,
                referring_domains=summary.get("referring_domains") or 0,
                referring_main_domains=summary.get("referring_main_domains") or 0,
                broken_backlinks=summary.get("broken_backlinks") or 0,
            )
        )

    async def domain_intersection(
        self,
        target1: str,
        target2: str,
        intersections: bool = True,
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
        limit: int = 100,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """
        Keywords shared by (or exclusive to) two domains.

        With intersections=False only keywords target1 ranks for and target2
        does not are returned.
        """
        result = await self.post(
            "dataforseo_labs/google/domain_intersection/live",
            {
                "target1": target1,
                "target2": target2,
                "intersections": intersections,
                "location_code": location_code,
                "language_code": language_code,
                "limit": limit,
            },
        )
        if not result.success:
            return result
        return ApiResult.ok(safe_get_result(result.data))

    async def ranked_keywords(
        self,
        domain: str,
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
        limit: int = 100,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Keywords a domain ranks for, flattened with their positions."""
        result = await self.post(
            "dataforseo_labs/google/ranked_keywords/live",
            {
                "target": domain,
                "location_code": location_code,
                "language_code": language_code,
                "limit": limit,
            },
        )
        if not result.success:
            return result

        rows = []
        for item in safe_get_result(result.data):
            row = parse_keyword_item(item)
            row["position"] = serp_position(item.get("ranked_serp_element"))
            rows.append(row)
        return ApiResult.ok(rows)

    async def relevant_pages(
        self,
        domain: str,
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = DEFAULT_LANGUAGE_CODE,
        limit: int = 100,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Top pages of a domain by organic traffic."""
        result = await self.post(
            "dataforseo_labs/google/relevant_pages/live",
            {
                "target": domain,
                "location_code": location_code,
                "language_code": language_code,
                "limit": limit,
            },
        )
        if not result.success:
            return result
        return ApiResult.ok(safe_get_result(result.data))
