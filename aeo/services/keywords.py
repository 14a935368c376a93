"""
Keyword Research Service

- research(): search volume + difficulty from DataForSEO, opportunity
  scores, priority buckets
- analyze_keyword(): one keyword's metrics, top-3 SERP competitors and a
  recommended content format/title for the writer
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from aeo.errors import NotFoundError, ProviderError, with_graceful_degradation
from aeo.integrations.dataforseo import DataForSEOClient
from aeo.scoring import classify_intent, score_keywords

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_GAPS = [
    "Include latest statistics and data",
    "Add comparison tables for clarity",
    "Create actionable how-to sections",
    "Include expert quotes or case studies",
]

# First match wins
FORMAT_RULES = [
    (re.compile(r"\b(best|top)\b"), "Listicle + Comparison Guide"),
    (re.compile(r"\bhow to\b|\bguide\b"), "Step-by-Step Tutorial"),
    (re.compile(r"\b(vs|versus)\b"), "Comparison Article"),
    (re.compile(r"\breview\b"), "Product Review + Buyer's Guide"),
]
DEFAULT_FORMAT = "Informational Guide"

ESTIMATED_CTR = 0.2


def recommended_format(keyword: str) -> str:
    lowered = keyword.lower()
    for pattern, content_format in FORMAT_RULES:
        if pattern.search(lowered):
            return content_format
    return DEFAULT_FORMAT


def recommended_title(keyword: str, year: Optional[int] = None) -> str:
    year = year or datetime.now(timezone.utc).year
    title_keyword = " ".join(word[:1].upper() + word[1:] for word in keyword.split())
    if "best" in keyword.lower():
        return f"{title_keyword} {year}: Complete Guide"
    return f"{title_keyword}: Everything You Need to Know ({year})"


def priority_for_score(score: float) -> str:
    if score >= 70:
        return "high"
    if score >= 50:
        return "medium"
    return "low"


def strip_scheme(url: str) -> str:
    return re.sub(r"^https?://(www\.)?", "", url or "")


class KeywordService:
    """DataForSEO-backed keyword research."""

    def __init__(self, dataforseo_client: Optional[DataForSEOClient]):
        self.client = dataforseo_client

    def _require_client(self):
        if self.client is None:
            raise ProviderError("DataForSEO is not configured", provider="dataforseo", status_code=503, retryable=False)

    async def _search_volume(self, keywords: List[str], location_code: int, language_code: str) -> List[Dict[str, Any]]:
        async def call():
            result = await self.client.keyword_research(keywords, location_code, language_code)
            return [k.to_dict() for k in result.unwrap("dataforseo")]

        return await with_graceful_degradation(
            "dataforseo",
            "keyword_research",
            call,
            {"keywords": keywords, "location_code": location_code, "language_code": language_code},
        )

    async def research(
        self,
        keywords: List[str],
        location_code: int = 2840,
        language_code: str = "en",
    ) -> List[Dict[str, Any]]:
        """
        Research and score keywords.

        Difficulty is best-effort: if the difficulty call fails the keywords
        are scored with the default difficulty.

        Returns:
            Keyword dicts (keyword, search_volume, keyword_difficulty, cpc,
            intent, opportunity_score, priority, metadata), best first
        """
        self._require_client()
        keywords = [k.strip().lower() for k in keywords if k and k.strip()]
        if not keywords:
            return []

        volumes = await self._search_volume(keywords, location_code, language_code)

        difficulty_result = await self.client.bulk_keyword_difficulty(keywords, location_code, language_code)
        if difficulty_result.success:
            difficulties = {k.lower(): v for k, v in difficulty_result.data.items()}
        else:
            logger.warning(f"Keyword difficulty unavailable: {difficulty_result.error.code}")
            difficulties = {}

        by_keyword = {row["keyword"].lower(): row for row in volumes if row.get("keyword")}
        rows = []
        for keyword in keywords:
            data = by_keyword.get(keyword, {})
            rows.append({
                "keyword": keyword,
                "search_volume": data.get("search_volume") or 0,
                "keyword_difficulty": difficulties.get(keyword),
                "cpc": data.get("cpc") or 0.0,
                "intent": classify_intent(keyword),
                "competition": data.get("competition") or 0.0,
            })

        results = []
        for analysis in score_keywords(rows):
            row = next(r for r in rows if r["keyword"] == analysis.keyword)
            results.append({
                "keyword": analysis.keyword,
                "search_volume": analysis.search_volume,
                "keyword_difficulty": row["keyword_difficulty"],
                "cpc": row["cpc"],
                "intent": analysis.intent,
                "opportunity_score": analysis.opportunity_score,
                "priority": priority_for_score(analysis.opportunity_score),
                "metadata": {
                    "opportunity_type": analysis.opportunity_type.value,
                    "competition": row["competition"],
                    "estimated_traffic_gain": analysis.estimated_traffic_gain,
                },
            })

        logger.info(f"Researched {len(results)} keywords")
        return results

    async def analyze_keyword(
        self,
        keyword: str,
        location_code: int = 2840,
        language_code: str = "en",
    ) -> Dict[str, Any]:
        """Keyword metrics, the top 3 organic results and content recommendations."""
        self._require_client()

        volumes = await self._search_volume([keyword], location_code, language_code)
        if not volumes:
            raise NotFoundError("No keyword data found")
        data = volumes[0]

        difficulty = None
        difficulty_result = await self.client.bulk_keyword_difficulty([keyword], location_code, language_code)
        if difficulty_result.success:
            difficulty = next(iter(difficulty_result.data.values()), None)

        top_competitors = []
        serp = await self.client.serp_analysis(keyword, location_code, language_code)
        if serp.success:
            top_competitors = [
                {
                    "url": strip_scheme(r.url),
                    "position": r.position,
                    "title": r.title,
                    # Rough length estimate from the snippet
                    "wordCount": (len(r.description or "") or 500) * 3,
                }
                for r in serp.data.organic_results[:3]
            ]
        else:
            logger.warning(f"SERP analysis failed for '{keyword}': {serp.error.code}")

        related = []
        ideas = await self.client.keywords_for_keywords([keyword], location_code, language_code)
        if ideas.success:
            related = [i.get("keyword") for i in ideas.data if i.get("keyword") and i.get("keyword") != keyword][:5]

        search_volume = data.get("search_volume") or 0
        return {
            "keyword": data.get("keyword") or keyword,
            "volume": search_volume,
            "difficulty": difficulty,
            "cpc": data.get("cpc") or 0.0,
            "competition": data.get("competition") or 0.0,
            "relatedKeywords": related,
            "recommendedFormat": recommended_format(keyword),
            "recommendedTitle": recommended_title(keyword),
            "topCompetitors": top_competitors,
            "contentGaps": list(DEFAULT_CONTENT_GAPS),
            "estimatedTraffic": round(search_volume * ESTIMATED_CTR),
        }
