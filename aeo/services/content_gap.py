"""
Content Gap Analysis

For each competitor, two DataForSEO domain_intersection queries:
- intersections=False: keywords the competitor ranks for and the target
  does not rank for at all
- intersections=True: shared keywords, kept when the target ranks worse
  than position 20

Gaps from all competitors are merged by keyword, scored with the keyword
opportunity scorer and sorted best first.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from aeo.errors import ProviderError, ValidationError, with_graceful_degradation
from aeo.integrations.dataforseo import DataForSEOClient, parse_keyword_item, serp_position
from aeo.scoring import analyze_keyword

logger = logging.getLogger(__name__)

DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{0,61}[a-zA-Z0-9](?:\.[a-zA-Z]{2,})+$")
MAX_COMPETITORS = 5
WEAK_POSITION = 20
SUMMARY_TOP_N = 10


def validate_domains(target_domain: str, competitor_domains: List[str]) -> None:
    """
    Raises:
        ValidationError: Bad target, bad competitor, or wrong competitor count
    """
    if not target_domain or not DOMAIN_PATTERN.match(target_domain):
        raise ValidationError("Invalid target domain format")
    if not competitor_domains:
        raise ValidationError("Competitor domains are required and must be a non-empty array")
    if len(competitor_domains) > MAX_COMPETITORS:
        raise ValidationError(f"Maximum {MAX_COMPETITORS} competitor domains allowed")
    for domain in competitor_domains:
        if not isinstance(domain, str) or not DOMAIN_PATTERN.match(domain):
            raise ValidationError(f"Invalid competitor domain format: {domain}")


class ContentGapService:

    def __init__(self, dataforseo_client: Optional[DataForSEOClient]):
        self.client = dataforseo_client

    async def _intersection(self, competitor: str, target: str, shared: bool, limit: int) -> List[Dict[str, Any]]:
        async def call():
            result = await self.client.domain_intersection(competitor, target, intersections=shared, limit=limit)
            return result.unwrap("dataforseo")

        params = {"target1": competitor, "target2": target, "intersections": shared, "limit": limit}
        return await with_graceful_degradation("dataforseo", "domain_intersection", call, params)

    async def competitor_gaps(self, target: str, competitor: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Gap rows for one competitor: keyword metrics plus both positions."""
        gaps = []

        for item in await self._intersection(competitor, target, shared=False, limit=limit):
            row = parse_keyword_item(item)
            row["competitor_position"] = serp_position(item.get("first_domain_serp_element"))
            row["target_position"] = None
            gaps.append(row)

        for item in await self._intersection(competitor, target, shared=True, limit=limit):
            target_position = serp_position(item.get("second_domain_serp_element"))
            if target_position is not None and target_position <= WEAK_POSITION:
                continue
            row = parse_keyword_item(item)
            row["competitor_position"] = serp_position(item.get("first_domain_serp_element"))
            row["target_position"] = target_position
            gaps.append(row)

        logger.debug(f"{competitor} vs {target}: {len(gaps)} gap keywords")
        return gaps

    async def analyze(
        self,
        target_domain: str,
        competitor_domains: List[str],
        limit: int = 100,
        summary_only: bool = False,
    ) -> Dict[str, Any]:
        """
        Run the gap analysis.

        Args:
            target_domain: The user's domain
            competitor_domains: 1-5 competitor domains
            limit: Max keywords per intersection query, and max gaps returned
            summary_only: Return counts and the top 10 gaps only

        Raises:
            ValidationError: Invalid domains
            ProviderError: DataForSEO failed and nothing was cached
        """
        validate_domains(target_domain, competitor_domains)
        if self.client is None:
            raise ProviderError("DataForSEO is not configured", provider="dataforseo", status_code=503, retryable=False)

        merged: Dict[str, Dict[str, Any]] = {}
        per_competitor: Dict[str, int] = {}

        for competitor in competitor_domains:
            rows = await self.competitor_gaps(target_domain, competitor, limit)
            per_competitor[competitor] = len(rows)
            for row in rows:
                keyword = row["keyword"].lower()
                if not keyword:
                    continue
                gap = merged.setdefault(keyword, {**row, "keyword": keyword, "competitors": []})
                gap["competitors"].append({"domain": competitor, "position": row["competitor_position"]})
                positions = [c["position"] for c in gap["competitors"] if c["position"]]
                gap["competitor_position"] = min(positions) if positions else None

        max_volume = max((g["search_volume"] for g in merged.values()), default=0) or 1
        gaps = []
        for gap in merged.values():
            analysis = analyze_keyword(
                {
                    "keyword": gap["keyword"],
                    "search_volume": gap["search_volume"],
                    "keyword_difficulty": gap["difficulty"],
                    "cpc": gap["cpc"],
                    "intent": gap["intent"],
                    "position": gap["target_position"],
                },
                max_volume,
            )
            gaps.append({
                "keyword": gap["keyword"],
                "search_volume": gap["search_volume"],
                "keyword_difficulty": gap["difficulty"],
                "cpc": gap["cpc"],
                "intent": analysis.intent,
                "target_position": gap["target_position"],
                "best_competitor_position": gap["competitor_position"],
                "competitors": gap["competitors"],
                "opportunity_score": analysis.opportunity_score,
                "opportunity_type": analysis.opportunity_type.value,
            })

        gaps.sort(key=lambda g: g["opportunity_score"], reverse=True)

        summary = {
            "target_domain": target_domain,
            "competitor_domains": competitor_domains,
            "total_gaps": len(gaps),
            "missing_keywords": sum(1 for g in gaps if g["target_position"] is None),
            "weak_keywords": sum(1 for g in gaps if g["target_position"] is not None),
            "gaps_by_competitor": per_competitor,
            "top_gaps": gaps[:SUMMARY_TOP_N],
        }
        logger.info(f"Content gap for {target_domain}: {len(gaps)} gaps across {len(competitor_domains)} competitors")

        if summary_only:
            return summary
        return {
            "target_domain": target_domain,
            "competitor_domains": competitor_domains,
            "gaps": gaps[:limit],
            "summary": {k: v for k, v in summary.items() if k != "top_gaps"},
        }
