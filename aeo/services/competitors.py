"""
Competitor Service

Discovery:
    DataForSEO competitors_domain for the user's site, optionally enriched
    with competitors Perplexity names for the business.

Monitoring:
    For every saved competitor take a snapshot (domain metrics, backlink
    rank, SERP positions for up to 10 tracked keywords), diff it against
    the previous snapshot and raise alerts:
    - ranking_improved / ranking_dropped: position moved 5+ places
    - domain_authority_change: authority moved 5+ points
    Severity is high for a change of 10+, otherwise medium.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from aeo.database import repository
from aeo.database.models import (
    AlertSeverity,
    AlertType,
    Competitor,
    CompetitorAlert,
    CompetitorSnapshot,
    utcnow,
)
from aeo.errors import AppError, ProviderError, with_graceful_degradation
from aeo.integrations.dataforseo import DataForSEOClient
from aeo.integrations.perplexity import PerplexityClient

logger = logging.getLogger(__name__)

MAX_TRACKED_KEYWORDS = 10
SERP_DELAY_SECONDS = 0.1
POSITION_ALERT_THRESHOLD = 5
AUTHORITY_ALERT_THRESHOLD = 5
HIGH_SEVERITY_THRESHOLD = 10


def alert_severity(change: float) -> str:
    if abs(change) >= HIGH_SEVERITY_THRESHOLD:
        return AlertSeverity.HIGH.value
    return AlertSeverity.MEDIUM.value


def detect_changes(
    domain: str,
    previous: Optional[CompetitorSnapshot],
    rankings: Dict[str, Optional[int]],
    domain_authority: Optional[float],
) -> List[Dict[str, Any]]:
    """
    Compare a fresh measurement with the previous snapshot.

    Args:
        domain: Competitor domain (used in messages)
        previous: Last stored snapshot, None on first run
        rankings: {keyword: position or None}
        domain_authority: Current authority score

    Returns:
        Alert dicts (alert_type, severity, keyword, previous_value,
        current_value, message)
    """
    if previous is None:
        return []

    alerts = []
    previous_rankings = previous.keyword_rankings or {}

    for keyword, position in rankings.items():
        before = previous_rankings.get(keyword)
        if not before or not position:
            continue
        change = before - position
        if abs(change) < POSITION_ALERT_THRESHOLD:
            continue
        alert_type = AlertType.RANKING_IMPROVED if change > 0 else AlertType.RANKING_DROPPED
        alerts.append({
            "alert_type": alert_type.value,
            "severity": alert_severity(change),
            "keyword": keyword,
            "previous_value": float(before),
            "current_value": float(position),
            "message": f'{domain} for "{keyword}" - {int(change):+d} positions',
        })

    if previous.domain_authority and domain_authority:
        change = domain_authority - previous.domain_authority
        if abs(change) >= AUTHORITY_ALERT_THRESHOLD:
            alerts.append({
                "alert_type": AlertType.DOMAIN_AUTHORITY_CHANGE.value,
                "severity": alert_severity(change),
                "keyword": None,
                "previous_value": float(previous.domain_authority),
                "current_value": float(domain_authority),
                "message": f"{domain} - {change:+.0f} points",
            })

    return alerts


def _domain_matches(result_domain: str, competitor_domain: str) -> bool:
    result_domain = repository.normalize_domain(result_domain or "")
    return result_domain == competitor_domain or result_domain.endswith(f".{competitor_domain}")


class CompetitorService:
    """Competitor discovery and monitoring."""

    def __init__(
        self,
        dataforseo_client: Optional[DataForSEOClient],
        perplexity_client: Optional[PerplexityClient] = None,
    ):
        self.client = dataforseo_client
        self.perplexity_client = perplexity_client

    def _require_dataforseo(self):
        if self.client is None:
            raise ProviderError("DataForSEO is not configured", provider="dataforseo", status_code=503, retryable=False)

    # =========================================================================
    # DISCOVERY
    # =========================================================================

    async def discover(
        self,
        domain: str,
        industry: Optional[str] = None,
        limit: int = 10,
        use_perplexity: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        Find competitors for a domain.

        Returns:
            Competitor dicts ready for repository.upsert_competitors, ordered
            by keyword overlap with DataForSEO results first.
        """
        self._require_dataforseo()
        domain = repository.normalize_domain(domain)

        async def call() -> List[Dict[str, Any]]:
            result = await self.client.competitor_analysis(domain, limit=limit)
            return [c.to_dict() for c in result.unwrap("dataforseo")]

        rows = await with_graceful_degradation(
            "dataforseo", "competitor_analysis", call, {"domain": domain, "limit": limit}
        )

        discovered: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            competitor_domain = repository.normalize_domain(row.get("domain") or "")
            if not competitor_domain or competitor_domain == domain:
                continue
            discovered[competitor_domain] = {
                "domain": competitor_domain,
                "monthly_traffic": int(row.get("organic_traffic") or 0),
                "source": "dataforseo",
                "metadata": {
                    "avg_position": row.get("avg_position"),
                    "intersections": row.get("intersections"),
                    "organic_keywords": row.get("organic_keywords"),
                },
            }

        if use_perplexity and self.perplexity_client is not None:
            for found in await self._perplexity_competitors(domain, industry):
                existing = discovered.get(found["domain"])
                if existing:
                    existing["name"] = existing.get("name") or found["name"]
                    existing["metadata"]["perplexity_confidence"] = found["metadata"]["confidence"]
                else:
                    discovered[found["domain"]] = found

        logger.info(f"Discovered {len(discovered)} competitors for {domain}")
        return list(discovered.values())[: max(limit, 1) * 2]

    async def _perplexity_competitors(self, domain: str, industry: Optional[str]) -> List[Dict[str, Any]]:
        question = f"Who are the main competitors of {domain}"
        if industry:
            question += f" in the {industry} industry"
        question += "? List each company with its website domain."

        result = await self.perplexity_client.query_for_competitors(question)
        if not result.success:
            logger.warning(f"Perplexity competitor discovery failed: {result.error.code} {result.error.message}")
            return []

        found = []
        for competitor in result.data.competitors:
            if not competitor.domain:
                continue
            competitor_domain = repository.normalize_domain(competitor.domain)
            if competitor_domain == domain:
                continue
            found.append({
                "domain": competitor_domain,
                "name": competitor.name,
                "source": "perplexity",
                "metadata": {"confidence": competitor.confidence},
            })
        return found

    # =========================================================================
    # MONITORING
    # =========================================================================

    async def _keyword_positions(self, domain: str, keywords: List[str]) -> Dict[str, Optional[int]]:
        rankings: Dict[str, Optional[int]] = {}
        for index, keyword in enumerate(keywords[:MAX_TRACKED_KEYWORDS]):
            if index:
                await asyncio.sleep(SERP_DELAY_SECONDS)
            result = await self.client.serp_analysis(keyword)
            if not result.success:
                logger.warning(f"SERP lookup failed for '{keyword}': {result.error.code}")
                continue
            rankings[keyword] = next(
                (r.position for r in result.data.organic_results if _domain_matches(r.domain, domain)),
                None,
            )
        return rankings

    async def measure(self, competitor: Competitor, keywords: List[str]) -> Tuple[Dict[str, Any], Dict[str, Optional[int]]]:
        """Current metrics and keyword positions for one competitor."""
        metrics = (await self.client.domain_metrics(competitor.domain)).unwrap("dataforseo")

        backlinks = await self.client.backlink_analysis(competitor.domain)
        if backlinks.success:
            authority = float(backlinks.data.rank)
        else:
            logger.warning(f"Backlink summary failed for {competitor.domain}: {backlinks.error.code}")
            authority = None

        rankings = await self._keyword_positions(competitor.domain, keywords)
        return {
            "organic_traffic": metrics.organic_traffic,
            "organic_keywords": metrics.organic_keywords,
            "domain_authority": authority,
        }, rankings

    async def monitor(self, db: Session, user_id: str) -> Dict[str, Any]:
        """
        Snapshot every competitor of the user and store alerts.

        A competitor whose measurement fails is reported under "failed" and
        the run continues with the next one.
        """
        self._require_dataforseo()

        competitors = repository.list_competitors(db, user_id)
        keywords = repository.tracked_keywords(db, user_id, limit=MAX_TRACKED_KEYWORDS)

        snapshots: List[Dict[str, Any]] = []
        alerts: List[Dict[str, Any]] = []
        failed: List[Dict[str, str]] = []

        for competitor in competitors:
            try:
                metrics, rankings = await self.measure(competitor, keywords)
            except AppError as e:
                logger.warning(f"Failed to monitor competitor {competitor.domain}: {e.message}")
                failed.append({"domain": competitor.domain, "error": e.message})
                continue

            previous = repository.latest_snapshot(db, competitor.id)
            changes = detect_changes(competitor.domain, previous, rankings, metrics["domain_authority"])

            snapshot = CompetitorSnapshot(
                competitor_id=competitor.id,
                organic_traffic=metrics["organic_traffic"],
                organic_keywords=metrics["organic_keywords"],
                domain_authority=metrics["domain_authority"],
                keyword_rankings=rankings,
                created_at=utcnow(),
            )
            alert_rows = [
                CompetitorAlert(user_id=user_id, competitor_id=competitor.id, **change)
                for change in changes
            ]
            repository.insert_snapshot_with_alerts(db, snapshot, alert_rows)

            if metrics["domain_authority"] is not None:
                competitor.domain_authority = int(metrics["domain_authority"])
            competitor.monthly_traffic = int(metrics["organic_traffic"] or 0)
            db.commit()

            snapshots.append(repository.snapshot_to_dict(snapshot))
            alerts.extend(repository.alert_to_dict(a) for a in alert_rows)

        logger.info(
            f"Monitored {len(snapshots)} competitors for {user_id}: "
            f"{len(alerts)} alerts, {len(failed)} failed"
        )
        return {
            "snapshots_created": len(snapshots),
            "alerts_generated": len(alerts),
            "snapshots": snapshots,
            "alerts": alerts,
            "failed": failed,
        }
