"""
Remote Tool Catalogs

Static descriptions of the hosted tools the agents use, and a ToolSet that
binds a catalog to a RemoteToolClient.

Environment:
- DATAFORSEO_MCP_URL (default https://mcp.dataforseo.com/http), Basic auth
  from DATAFORSEO_LOGIN / DATAFORSEO_PASSWORD
- FIRECRAWL_MCP_URL (default built from FIRECRAWL_API_KEY)
- JINA_MCP_URL (default https://mcp.jina.ai/sse), Bearer JINA_API_KEY
"""

import base64
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from aeo.integrations.result import ApiResult

from .client import RemoteToolClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def as_llm_tool(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "input_schema": self.parameters}


def _schema(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_LOCATION = {"type": "string", "description": "Full country name, e.g. 'United States'", "default": "United States"}
_LANGUAGE = {"type": "string", "description": "Language code, e.g. 'en'", "default": "en"}
_LIMIT = {"type": "integer", "minimum": 1, "maximum": 1000, "default": 10}
_TARGET = {"type": "string", "description": "Domain without https:// or www., or a full page URL"}


# =============================================================================
# CATALOGS
# =============================================================================

DATAFORSEO_TOOLS = [
    ToolSpec(
        "dataforseo_labs_google_ranked_keywords",
        "Keywords a domain or page ranks for, with positions and search volume.",
        _schema({"target": _TARGET, "location_name": _LOCATION, "language_code": _LANGUAGE, "limit": _LIMIT}, ["target"]),
    ),
    ToolSpec(
        "dataforseo_labs_google_competitors_domain",
        "Domains competing with the target in organic search.",
        _schema({"target": _TARGET, "location_name": _LOCATION, "language_code": _LANGUAGE, "limit": _LIMIT}, ["target"]),
    ),
    ToolSpec(
        "dataforseo_labs_google_domain_intersection",
        "Keywords for which both domains rank in the same SERP.",
        _schema(
            {
                "target1": _TARGET,
                "target2": _TARGET,
                "intersections": {"type": "boolean", "default": True},
                "location_name": _LOCATION,
                "language_code": _LANGUAGE,
                "limit": _LIMIT,
            },
            ["target1", "target2"],
        ),
    ),
    ToolSpec(
        "dataforseo_labs_google_keyword_suggestions",
        "Long-tail keyword suggestions containing the seed keyword.",
        _schema({"keyword": {"type": "string"}, "location_name": _LOCATION, "language_code": _LANGUAGE, "limit": _LIMIT}, ["keyword"]),
    ),
    ToolSpec(
        "dataforseo_labs_bulk_keyword_difficulty",
        "Keyword difficulty (0-100) for up to 1000 keywords.",
        _schema(
            {"keywords": {"type": "array", "items": {"type": "string"}}, "location_name": _LOCATION, "language_code": _LANGUAGE},
            ["keywords"],
        ),
    ),
    ToolSpec(
        "serp_organic_live_advanced",
        "Live Google organic SERP for a keyword.",
        _schema(
            {
                "keyword": {"type": "string"},
                "location_name": _LOCATION,
                "language_code": _LANGUAGE,
                "depth": {"type": "integer", "minimum": 10, "maximum": 700, "default": 10},
            },
            ["keyword"],
        ),
    ),
    ToolSpec(
        "keywords_data_google_ads_search_volume",
        "Google Ads search volume, CPC and competition for keywords.",
        _schema(
            {"keywords": {"type": "array", "items": {"type": "string"}}, "location_name": _LOCATION, "language_code": _LANGUAGE},
            ["keywords"],
        ),
    ),
    ToolSpec(
        "backlinks_summary",
        "Backlink profile overview: rank, backlinks, referring domains.",
        _schema({"target": _TARGET}, ["target"]),
    ),
]

FIRECRAWL_TOOLS = [
    ToolSpec(
        "firecrawl_scrape",
        "Scrape a single URL and return markdown (JS rendered).",
        _schema(
            {
                "url": {"type": "string", "format": "uri"},
                "formats": {"type": "array", "items": {"type": "string"}, "default": ["markdown"]},
                "onlyMainContent": {"type": "boolean", "default": True},
                "maxAge": {"type": "integer", "description": "Accept cached data up to this age (ms)"},
            },
            ["url"],
        ),
    ),
    ToolSpec(
        "firecrawl_search",
        "Search the web and optionally scrape the results.",
        _schema(
            {
                "query": {"type": "string"},
                "limit": {"type": "integer", "default": 5},
                "scrapeOptions": {"type": "object"},
            },
            ["query"],
        ),
    ),
]

JINA_TOOLS = [
    ToolSpec(
        "read_url",
        "Read a web page and return clean markdown.",
        _schema({"url": {"type": "string", "format": "uri"}}, ["url"]),
    ),
    ToolSpec(
        "search_web",
        "Web search returning titles, URLs and snippets.",
        _schema({"query": {"type": "string"}, "num": {"type": "integer", "default": 5}}, ["query"]),
    ),
]


class ToolSet:
    """A tool catalog bound to the server that executes it."""

    def __init__(self, client: RemoteToolClient, specs: List[ToolSpec]):
        self.client = client
        self.specs = {spec.name: spec for spec in specs}

    @property
    def names(self) -> List[str]:
        return list(self.specs)

    def as_llm_tools(self) -> List[Dict[str, Any]]:
        """Tool definitions in the Anthropic `tools=` format."""
        return [spec.as_llm_tool() for spec in self.specs.values()]

    async def execute(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ApiResult[str]:
        if name not in self.specs:
            return ApiResult.fail("MCP_UNKNOWN_TOOL", f"Unknown tool: {name}", 400)

        args = {k: v for k, v in (arguments or {}).items() if v is not None}
        return await self.client.call(name, args)


# =============================================================================
# FACTORIES
# =============================================================================

def get_dataforseo_tools() -> Optional[ToolSet]:
    login = os.environ.get("DATAFORSEO_LOGIN")
    password = os.environ.get("DATAFORSEO_PASSWORD")
    if not login or not password:
        logger.warning("DataForSEO credentials not configured, tools unavailable")
        return None

    token = base64.b64encode(f"{login}:{password}".encode()).decode()
    client = RemoteToolClient(
        os.environ.get("DATAFORSEO_MCP_URL", "https://mcp.dataforseo.com/http"),
        headers={"Authorization": f"Basic {token}"},
        name="dataforseo",
    )
    return ToolSet(client, DATAFORSEO_TOOLS)


def get_firecrawl_tools() -> Optional[ToolSet]:
    url = os.environ.get("FIRECRAWL_MCP_URL")
    if not url:
        api_key = os.environ.get("FIRECRAWL_API_KEY")
        if not api_key:
            logger.warning("Firecrawl not configured, tools unavailable")
            return None
        url = f"https://mcp.firecrawl.dev/{api_key}/v2/mcp"

    return ToolSet(RemoteToolClient(url, name="firecrawl"), FIRECRAWL_TOOLS)


def get_jina_tools() -> Optional[ToolSet]:
    api_key = os.environ.get("JINA_API_KEY")
    if not api_key:
        logger.warning("JINA_API_KEY not configured, tools unavailable")
        return None

    client = RemoteToolClient(
        os.environ.get("JINA_MCP_URL", "https://mcp.jina.ai/sse"),
        headers={"Authorization": f"Bearer {api_key}"},
        transport="sse",
        name="jina",
    )
    return ToolSet(client, JINA_TOOLS)


TOOLSET_FACTORIES = {
    "dataforseo": get_dataforseo_tools,
    "firecrawl": get_firecrawl_tools,
    "jina": get_jina_tools,
}


def get_toolset(provider: str) -> Optional[ToolSet]:
    """ToolSet for a provider name, None when unknown or unconfigured."""
    factory = TOOLSET_FACTORIES.get(provider)
    return factory() if factory else None
