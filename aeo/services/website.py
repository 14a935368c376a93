"""
Website Analysis Service

Turns a website URL into structured business context:
1. Extract clean page text (Jina Reader)
2. Ask the LLM for a JSON analysis of the business
3. Ask the LLM for the brand voice (tone, style, personality)

Persistence is left to the caller so the service stays usable outside a
request (the onboarding flow and the routes both call it).
"""

import logging
from typing import Any, Dict, List, Optional

from aeo.errors import ProviderError, with_agent_retry, with_graceful_degradation
from aeo.integrations.jina import JinaClient
from aeo.integrations.llm import LLMClient

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 20000
MAX_VOICE_CHARS = 15000

ANALYSIS_SYSTEM = "You are an expert SEO analyst. Output ONLY valid JSON."

ANALYSIS_PROMPT = """Analyze this website content and provide a structured analysis in JSON format.

URL: {url}

Content:
{content}

Return the following structure:
{{
  "business_name": string,
  "industry": string,
  "description": string (one paragraph),
  "target_audience": [string],
  "products_services": [string],
  "locations": [string],
  "main_topics": [string],
  "health_score": number (0-100),
  "content_quality": number (0-100),
  "issues": [
    {{"type": "critical" | "warning" | "info", "category": "seo" | "performance" | "accessibility" | "content", "message": string, "impact": "high" | "medium" | "low"}}
  ],
  "opportunities": [
    {{"title": string, "description": string, "potential_impact": "high" | "medium" | "low", "difficulty": "hard" | "medium" | "easy"}}
  ]
}}

Ensure the JSON is valid and parseable."""

BRAND_VOICE_PROMPT = """Analyze this website content and extract the brand voice characteristics.

Website: {url}

Content:
{content}

Identify:
1. The primary communication TONE (e.g., professional, casual, friendly, authoritative)
2. The writing STYLE (e.g., conversational, formal, technical, educational)
3. Key PERSONALITY traits that come through in the content
4. SAMPLE PHRASES that exemplify the brand voice
5. Who the TARGET AUDIENCE appears to be
6. The INDUSTRY CONTEXT
7. Any UNIQUE VOICE ELEMENTS that make this brand distinctive

Focus on how the brand communicates, not just what it says.

Return JSON:
{{"tone": string, "style": string, "personality": [string], "sample_phrases": [string],
  "target_audience": string, "industry_context": string, "unique_voice_elements": [string]}}"""


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    return [str(v) for v in value if v]


def normalize_analysis(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce the model's JSON into the BusinessProfile field shapes."""
    if not isinstance(raw, dict):
        raise ProviderError("Website analysis was not a JSON object", provider="anthropic", status_code=502)

    return {
        "business_name": raw.get("business_name") or raw.get("title"),
        "industry": raw.get("industry"),
        "description": raw.get("description"),
        "target_audience": ", ".join(_as_list(raw.get("target_audience"))) or None,
        "products_services": _as_list(raw.get("products_services")),
        "locations": _as_list(raw.get("locations")),
        "goals": _as_list(raw.get("goals")),
        "analysis": raw,
    }


class WebsiteService:
    """Website extraction plus LLM analysis."""

    def __init__(self, jina_client: Optional[JinaClient], llm_client: Optional[LLMClient]):
        self.jina = jina_client
        self.llm = llm_client

    def _require_clients(self):
        if self.jina is None:
            raise ProviderError("Jina Reader is not configured", provider="jina", status_code=503, retryable=False)
        if self.llm is None:
            raise ProviderError("No LLM provider is configured", provider="anthropic", status_code=503, retryable=False)

    async def extract(self, url: str) -> Dict[str, Any]:
        """
        Extracted page content as a dict, served from cache when Jina fails.

        Raises:
            ProviderError: When extraction fails and nothing is cached
        """

        async def call() -> Dict[str, Any]:
            result = await self.jina.extract_clean_text(url)
            return result.unwrap("jina").to_dict()

        return await with_graceful_degradation("jina", "extract_clean_text", call, {"url": url})

    async def _complete_json(self, prompt: str, system: Optional[str], agent: str) -> Any:
        async def call():
            result = await self.llm.complete_json(prompt, system=system)
            return result.unwrap(self.llm.default_provider)

        return await with_agent_retry(call, retries=1, agent=agent, provider=self.llm.default_provider)

    async def analyze_website(self, url: str) -> Dict[str, Any]:
        """
        Analyze a website.

        Args:
            url: Website URL

        Returns:
            {"url", "title", "profile": normalized profile fields, "analysis": raw model JSON}
        """
        self._require_clients()

        page = await self.extract(url)
        content = (page.get("content") or "")[:MAX_CONTENT_CHARS]
        logger.info(f"Analyzing {url} ({len(content)} chars)")

        raw = await self._complete_json(
            ANALYSIS_PROMPT.format(url=url, content=content),
            ANALYSIS_SYSTEM,
            agent="website_analysis",
        )
        profile = normalize_analysis(raw)
        return {
            "url": url,
            "title": page.get("title", ""),
            "profile": profile,
            "analysis": raw,
        }

    async def extract_brand_voice(self, url: str) -> Dict[str, Any]:
        """Brand voice (tone, style, personality, sample phrases) of a website."""
        self._require_clients()

        page = await self.extract(url)
        content = (page.get("content") or "")[:MAX_VOICE_CHARS]

        raw = await self._complete_json(
            BRAND_VOICE_PROMPT.format(url=url, content=content),
            "You are a brand strategist. Output ONLY valid JSON.",
            agent="brand_voice",
        )
        if not isinstance(raw, dict):
            raise ProviderError("Brand voice was not a JSON object", provider="anthropic", status_code=502)

        return {
            "tone": raw.get("tone") or "neutral",
            "style": raw.get("style") or "informative",
            "personality": _as_list(raw.get("personality")),
            "sample_phrases": _as_list(raw.get("sample_phrases")),
            "target_audience": raw.get("target_audience"),
            "industry_context": raw.get("industry_context"),
            "unique_voice_elements": _as_list(raw.get("unique_voice_elements")),
        }
