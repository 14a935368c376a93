"""
External API Configuration

Configuration and factory functions for vendor clients.
Loads credentials from environment variables.

Vendor credentials:
- DATAFORSEO_LOGIN / DATAFORSEO_PASSWORD
- JINA_API_KEY, PERPLEXITY_API_KEY, FIRECRAWL_API_KEY, APIFY_API_KEY
- ANTHROPIC_API_KEY, OPENAI_API_KEY, GOOGLE_API_KEY

Optional:
- PERPLEXITY_MODEL: Model to use (default: sonar)
- <VENDOR>_ENABLED: Set to false to disable a configured vendor
"""

import logging
import os
from functools import lru_cache
from typing import Optional

from .apify import ApifyClient
from .dataforseo import DataForSEOClient
from .firecrawl import FirecrawlClient
from .images import GeminiClient, ImageClient
from .jina import JinaClient
from .llm import LLMClient
from .perplexity import PerplexityClient

logger = logging.getLogger(__name__)


def get_env_bool(key: str, default: bool = True) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("false", "0", "no", "off"):
        return False
    if val in ("true", "1", "yes", "on"):
        return True
    return default


class ExternalAPIConfig:
    """Configuration for vendor APIs."""

    def __init__(
        self,
        dataforseo_login: Optional[str] = None,
        dataforseo_password: Optional[str] = None,
        jina_api_key: Optional[str] = None,
        perplexity_api_key: Optional[str] = None,
        firecrawl_api_key: Optional[str] = None,
        apify_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
        perplexity_model: Optional[str] = None,
    ):
        """
        Initialize vendor configuration.

        Every argument falls back to its environment variable.
        """
        self.dataforseo_login = dataforseo_login or os.environ.get("DATAFORSEO_LOGIN")
        self.dataforseo_password = dataforseo_password or os.environ.get("DATAFORSEO_PASSWORD")
        self.jina_api_key = jina_api_key or os.environ.get("JINA_API_KEY")
        self.perplexity_api_key = perplexity_api_key or os.environ.get("PERPLEXITY_API_KEY")
        self.firecrawl_api_key = firecrawl_api_key or os.environ.get("FIRECRAWL_API_KEY")
        self.apify_api_key = apify_api_key or os.environ.get("APIFY_API_KEY")
        self.anthropic_api_key = anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.openai_api_key = openai_api_key or os.environ.get("OPENAI_API_KEY")
        self.google_api_key = google_api_key or os.environ.get("GOOGLE_API_KEY")
        self.perplexity_model = perplexity_model or os.environ.get("PERPLEXITY_MODEL", "sonar")

    @property
    def has_dataforseo(self) -> bool:
        return get_env_bool("DATAFORSEO_ENABLED") and bool(self.dataforseo_login and self.dataforseo_password)

    @property
    def has_jina(self) -> bool:
        return get_env_bool("JINA_ENABLED") and bool(self.jina_api_key)

    @property
    def has_perplexity(self) -> bool:
        return get_env_bool("PERPLEXITY_ENABLED") and bool(self.perplexity_api_key)

    @property
    def has_firecrawl(self) -> bool:
        return get_env_bool("FIRECRAWL_ENABLED") and bool(self.firecrawl_api_key)

    @property
    def has_apify(self) -> bool:
        return get_env_bool("APIFY_ENABLED") and bool(self.apify_api_key)

    @property
    def has_llm(self) -> bool:
        return bool(self.anthropic_api_key or self.openai_api_key)

    @property
    def has_gemini(self) -> bool:
        return get_env_bool("GEMINI_ENABLED") and bool(self.google_api_key)

    def log_status(self):
        """Log configuration status."""
        flags = {
            "DataForSEO": self.has_dataforseo,
            "Jina": self.has_jina,
            "Perplexity": self.has_perplexity,
            "Firecrawl": self.has_firecrawl,
            "Apify": self.has_apify,
            "LLM": self.has_llm,
            "Gemini": self.has_gemini,
        }
        logger.info(
            "External API status: "
            + ", ".join(f"{name}={'enabled' if on else 'disabled'}" for name, on in flags.items())
        )


@lru_cache()
def get_external_config() -> ExternalAPIConfig:
    """Get cached vendor configuration."""
    config = ExternalAPIConfig()
    config.log_status()
    return config


class ExternalAPIClients:
    """
    Lazily built vendor clients sharing one configuration.

    Properties return None when a vendor is not configured, so callers
    can skip optional enrichment:

        clients = ExternalAPIClients()
        if clients.perplexity:
            result = await clients.perplexity.query("...")
        await clients.close()
    """

    def __init__(self, config: Optional[ExternalAPIConfig] = None):
        self.config = config or get_external_config()
        self._dataforseo: Optional[DataForSEOClient] = None
        self._jina: Optional[JinaClient] = None
        self._perplexity: Optional[PerplexityClient] = None
        self._firecrawl: Optional[FirecrawlClient] = None
        self._apify: Optional[ApifyClient] = None
        self._llm: Optional[LLMClient] = None
        self._images: Optional[ImageClient] = None

    @property
    def dataforseo(self) -> Optional[DataForSEOClient]:
        if not self.config.has_dataforseo:
            return None
        if self._dataforseo is None:
            self._dataforseo = DataForSEOClient(self.config.dataforseo_login, self.config.dataforseo_password)
            logger.info("Initialized DataForSEO client")
        return self._dataforseo

    @property
    def jina(self) -> Optional[JinaClient]:
        if not self.config.has_jina:
            return None
        if self._jina is None:
            self._jina = JinaClient(self.config.jina_api_key)
            logger.info("Initialized Jina client")
        return self._jina

    @property
    def perplexity(self) -> Optional[PerplexityClient]:
        if not self.config.has_perplexity:
            return None
        if self._perplexity is None:
            self._perplexity = PerplexityClient(
                api_key=self.config.perplexity_api_key,
                default_model=self.config.perplexity_model,
            )
            logger.info("Initialized Perplexity client")
        return self._perplexity

    @property
    def firecrawl(self) -> Optional[FirecrawlClient]:
        if not self.config.has_firecrawl:
            return None
        if self._firecrawl is None:
            self._firecrawl = FirecrawlClient(self.config.firecrawl_api_key)
            logger.info("Initialized Firecrawl client")
        return self._firecrawl

    @property
    def apify(self) -> Optional[ApifyClient]:
        if not self.config.has_apify:
            return None
        if self._apify is None:
            self._apify = ApifyClient(self.config.apify_api_key)
            logger.info("Initialized Apify client")
        return self._apify

    @property
    def llm(self) -> Optional[LLMClient]:
        if not self.config.has_llm:
            return None
        if self._llm is None:
            self._llm = LLMClient(
                anthropic_api_key=self.config.anthropic_api_key,
                openai_api_key=self.config.openai_api_key,
            )
            logger.info(f"Initialized LLM client ({self._llm.default_provider})")
        return self._llm

    @property
    def images(self) -> ImageClient:
        if self._images is None:
            gemini = GeminiClient(self.config.google_api_key) if self.config.has_gemini else None
            self._images = ImageClient(llm=self.llm, gemini=gemini)
        return self._images

    async def close(self):
        """Close all clients."""
        for client in (self._dataforseo, self._jina, self._perplexity, self._firecrawl, self._apify, self._images):
            if client is not None:
                await client.close()
        self._dataforseo = self._jina = self._perplexity = None
        self._firecrawl = self._apify = self._images = None
        logger.info("Closed external API clients")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# Convenience functions

def create_dataforseo_client() -> Optional[DataForSEOClient]:
    """DataForSEO client from env, or None when credentials are missing."""
    login = os.environ.get("DATAFORSEO_LOGIN")
    password = os.environ.get("DATAFORSEO_PASSWORD")
    if not login or not password:
        logger.warning("DataForSEO credentials not configured")
        return None
    return DataForSEOClient(login, password)


def create_jina_client(api_key: Optional[str] = None) -> Optional[JinaClient]:
    key = api_key or os.environ.get("JINA_API_KEY")
    if not key:
        logger.warning("Jina API key not configured")
        return None
    return JinaClient(key)


def create_perplexity_client(
    api_key: Optional[str] = None,
    model: str = "sonar",
) -> Optional[PerplexityClient]:
    """
    Create a Perplexity client.

    Args:
        api_key: API key (defaults to PERPLEXITY_API_KEY env var)
        model: Model to use

    Returns:
        PerplexityClient or None if not configured
    """
    key = api_key or os.environ.get("PERPLEXITY_API_KEY")
    if not key:
        logger.warning("Perplexity API key not configured")
        return None
    return PerplexityClient(api_key=key, default_model=model)


def create_llm_client() -> Optional[LLMClient]:
    if not (os.environ.get("ANTHROPIC_API_KEY") or os.environ.get("OPENAI_API_KEY")):
        logger.warning("No LLM API key configured")
        return None
    return LLMClient()
