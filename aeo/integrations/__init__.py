"""
Vendor Integrations

Async clients for the third-party APIs behind the platform:
- DataForSEO: keywords, SERPs, competitors, domain metrics, backlinks
- Jina Reader: clean markdown extraction from any URL
- Perplexity: web-grounded research and competitor discovery
- Firecrawl: JS-rendered scraping and web search
- Apify: actor runs (Google Maps listings)
- LLM / Images: Anthropic, OpenAI, Gemini
- Config: unified configuration and client management

Every operation returns an ApiResult.
"""

from .result import ApiError, ApiResult, error_status, http_error, network_error
from .apify import ApifyClient
from .dataforseo import (
    BacklinkSummary,
    CompetitorData,
    DataForSEOClient,
    DomainMetrics,
    KeywordData,
    SerpAnalysis,
    SerpResult,
)
from .firecrawl import FirecrawlClient
from .images import GeminiClient, GeneratedImageData, ImageClient
from .jina import ExtractedContent, JinaClient
from .llm import LLMClient, LLMResponse, TokenUsage
from .perplexity import DiscoveredCompetitor, PerplexityClient, PerplexityResult
from .config import (
    ExternalAPIClients,
    ExternalAPIConfig,
    create_dataforseo_client,
    create_jina_client,
    create_llm_client,
    create_perplexity_client,
    get_env_bool,
    get_external_config,
)

__all__ = [
    # Envelope
    "ApiError",
    "ApiResult",
    "error_status",
    "http_error",
    "network_error",
    # Vendors
    "ApifyClient",
    "DataForSEOClient",
    "KeywordData",
    "CompetitorData",
    "SerpResult",
    "SerpAnalysis",
    "DomainMetrics",
    "BacklinkSummary",
    "FirecrawlClient",
    "GeminiClient",
    "GeneratedImageData",
    "ImageClient",
    "JinaClient",
    "ExtractedContent",
    "LLMClient",
    "LLMResponse",
    "TokenUsage",
    "PerplexityClient",
    "PerplexityResult",
    "DiscoveredCompetitor",
    # Config
    "ExternalAPIConfig",
    "ExternalAPIClients",
    "get_env_bool",
    "get_external_config",
    "create_dataforseo_client",
    "create_jina_client",
    "create_llm_client",
    "create_perplexity_client",
]
