"""
Perplexity API Client

AI-powered web search used for topic research and competitor discovery.

Perplexity provides:
- Real-time web search with AI understanding
- Contextual answers with citations

API: https://docs.perplexity.ai/
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .base import VendorClient
from .result import ApiResult

logger = logging.getLogger(__name__)


@dataclass
class DiscoveredCompetitor:
    """Competitor mentioned in a Perplexity answer."""

    name: str
    domain: Optional[str] = None
    confidence: float = 0.5
    raw_mention: str = ""


@dataclass
class PerplexityResult:
    """Result from a Perplexity query."""

    answer: str
    citations: List[str] = field(default_factory=list)
    competitors: List[DiscoveredCompetitor] = field(default_factory=list)
    query: str = ""
    model: str = ""
    tokens_used: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "citations": self.citations,
            "competitors": [
                {"name": c.name, "domain": c.domain, "confidence": c.confidence}
                for c in self.competitors
            ],
            "model": self.model,
            "tokens_used": self.tokens_used,
        }


class PerplexityClient(VendorClient):
    """
    Async client for Perplexity chat completions.

    Usage:
        client = PerplexityClient(api_key="your_api_key")

        result = await client.query("Who are the main competitors to Notion?")
        if result.success:
            print(result.data.answer, result.data.citations)

        await client.close()
    """

    BASE_URL = "https://api.perplexity.ai"
    ERROR_PREFIX = "PERPLEXITY"

    MODELS = {
        "sonar": "sonar",
        "sonar-pro": "sonar-pro",
        "sonar-reasoning": "sonar-reasoning",
    }

    def __init__(
        self,
        api_key: str,
        default_model: str = "sonar",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Perplexity client.

        Args:
            api_key: Perplexity API key
            default_model: Default model to use (sonar, sonar-pro, sonar-reasoning)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        if not api_key:
            raise ValueError("PERPLEXITY_API_KEY not provided")

        super().__init__(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )
        self.default_model = self.MODELS.get(default_model, default_model)

    async def query(
        self,
        question: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        search_recency_filter: Optional[str] = None,
    ) -> ApiResult[PerplexityResult]:
        """
        Query Perplexity with a question.

        Args:
            question: The question to ask
            system_prompt: Optional system prompt for context
            model: Model to use (overrides default)
            temperature: Response temperature (0-1)
            max_tokens: Maximum tokens in response
            search_recency_filter: Filter by recency (day, week, month, year)

        Returns:
            ApiResult with answer and citations
        """
        model_name = self.MODELS.get(model, model) if model else self.default_model

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": question})

        payload = {
            "model": model_name,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if search_recency_filter:
            payload["search_recency_filter"] = search_recency_filter

        result = await self._request("POST", "/chat/completions", json=payload)
        if not result.success:
            return result

        response = result.data if isinstance(result.data, dict) else {}
        choices = response.get("choices") or []
        answer = choices[0].get("message", {}).get("content", "") if choices else ""

        return ApiResult.ok(
            PerplexityResult(
                answer=answer,
                citations=response.get("citations") or [],
                query=question,
                model=model_name,
                tokens_used=(response.get("usage") or {}).get("total_tokens", 0),
            )
        )

    async def query_for_competitors(
        self,
        question: str,
        system_prompt: Optional[str] = None,
        **kwargs,
    ) -> ApiResult[PerplexityResult]:
        """Query Perplexity and extract competitor mentions from the answer."""
        if not system_prompt:
            system_prompt = (
                "You are a business intelligence analyst helping identify competitors. "
                "When listing competitors, always include their company name and website domain "
                "in parentheses if known. Be specific and factual. Focus on direct competitors "
                "in the same market segment."
            )

        result = await self.query(question, system_prompt=system_prompt, **kwargs)
        if result.success:
            result.data.competitors = extract_competitors(result.data.answer)
        return result

    async def research_topic(
        self,
        topic: str,
        keywords: Optional[List[str]] = None,
    ) -> ApiResult[PerplexityResult]:
        """Research a content topic: key facts, statistics, and questions people ask."""
        question = f"Research the topic '{topic}'"
        if keywords:
            question += f" with focus on: {', '.join(keywords)}"
        question += (
            ". Summarize the most important facts, recent statistics with sources, "
            "and the questions people most often ask about it."
        )
        return await self.query(
            question,
            system_prompt="You are a meticulous research assistant for content writers. Cite sources.",
            max_tokens=2048,
            search_recency_filter="year",
        )


def extract_competitors(text: str) -> List[DiscoveredCompetitor]:
    """
    Extract competitor names and domains from answer text.

    Recognizes:
    - Company Name (domain.com)
    - **Company Name** with a domain mentioned nearby
    """
    competitors = []
    seen_names = set()

    for match in re.finditer(
        r"([A-Z][a-zA-Z0-9&\-\. ]+?)\s*[\(\[]((?:https?://)?(?:www\.)?[a-zA-Z0-9\-]+\.[a-zA-Z]{2,})[^\)\]]*[\)\]]",
        text,
    ):
        name = match.group(1).strip()
        domain = re.sub(r"^(https?://)?(www\.)?", "", match.group(2).lower())
        if name.lower() not in seen_names and len(name) > 2:
            seen_names.add(name.lower())
            competitors.append(
                DiscoveredCompetitor(name=name, domain=domain, raw_mention=match.group(0), confidence=0.9)
            )

    for match in re.finditer(r"\*\*([A-Z][a-zA-Z0-9&\-\. ]+?)\*\*", text):
        name = match.group(1).strip()
        if name.lower() not in seen_names and len(name) > 2:
            domain = _find_nearby_domain(text, match.start(), match.end())
            seen_names.add(name.lower())
            competitors.append(
                DiscoveredCompetitor(
                    name=name,
                    domain=domain,
                    raw_mention=match.group(0),
                    confidence=0.7 if domain else 0.5,
                )
            )

    competitors.sort(key=lambda c: c.confidence, reverse=True)
    return competitors


def _find_nearby_domain(text: str, start: int, end: int, search_range: int = 100) -> Optional[str]:
    search_text = text[max(0, start - 20): min(len(text), end + search_range)]
    match = re.search(r"([a-zA-Z0-9\-]+\.(?:com|io|co|org|net|ai|app|dev))", search_text)
    return match.group(1).lower() if match else None
