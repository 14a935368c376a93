"""
DataForSEO API

Endpoints:
- POST /api/dataforseo/content-gap - Keywords competitors rank for and the target does not
- GET /api/dataforseo/content-gap - Same, from query parameters
- POST /api/dataforseo/serp - Live organic SERP for a keyword
- POST /api/dataforseo/domain-metrics - Traffic, keyword distribution and backlink rank
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from aeo.auth import get_current_user, rate_limit
from aeo.errors import ProviderError, with_graceful_degradation
from aeo.integrations import DataForSEOClient, ExternalAPIClients
from aeo.services import ContentGapService

from api.dependencies import get_clients, get_content_gap_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/dataforseo",
    tags=["DataForSEO"],
    dependencies=[Depends(get_current_user), Depends(rate_limit("api"))],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class ContentGapRequest(BaseModel):
    """Accepts camelCase keys as sent by the dashboard."""
    model_config = ConfigDict(populate_by_name=True)

    target_domain: str = Field("", alias="targetDomain")
    competitor_domains: List[str] = Field(default_factory=list, alias="competitorDomains")
    limit: int = Field(100, ge=1, le=1000)
    summary_only: bool = Field(False, alias="summaryOnly")


class SerpRequest(BaseModel):
    keyword: str = Field(..., min_length=1, max_length=700)
    location_code: int = 2840
    language_code: str = "en"
    device: str = Field("desktop", pattern="^(desktop|mobile)$")
    depth: int = Field(10, ge=1, le=100)


class DomainMetricsRequest(BaseModel):
    domain: str = Field(..., min_length=3, max_length=255)
    location_code: int = 2840
    language_code: str = "en"
    include_backlinks: bool = True


# =============================================================================
# HELPERS
# =============================================================================

def require_dataforseo(clients: ExternalAPIClients) -> DataForSEOClient:
    client = clients.dataforseo
    if client is None:
        raise ProviderError("DataForSEO is not configured", provider="dataforseo", status_code=503, retryable=False)
    return client


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/content-gap")
async def content_gap(
    request: ContentGapRequest,
    service: ContentGapService = Depends(get_content_gap_service),
):
    """
    Content gap analysis against 1-5 competitors.

    Invalid domains give 400. summary_only returns counts and the top 10 gaps.
    """
    data = await service.analyze(
        request.target_domain,
        request.competitor_domains,
        limit=request.limit,
        summary_only=request.summary_only,
    )
    return {"success": True, "data": data}


@router.get("/content-gap")
async def content_gap_query(
    target: str = Query(""),
    competitors: Optional[str] = Query(None, description="Comma-separated domains"),
    summary: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000),
    service: ContentGapService = Depends(get_content_gap_service),
):
    competitor_domains = [d.strip() for d in (competitors or "").split(",") if d.strip()]
    data = await service.analyze(target, competitor_domains, limit=limit, summary_only=summary)
    return {"success": True, "data": data}


@router.post("/serp")
async def serp(
    request: SerpRequest,
    clients: ExternalAPIClients = Depends(get_clients),
):
    client = require_dataforseo(clients)

    async def call():
        result = await client.serp_analysis(
            request.keyword,
            request.location_code,
            request.language_code,
            device=request.device,
            depth=request.depth,
        )
        return result.unwrap("dataforseo").to_dict()

    data = await with_graceful_degradation(
        "dataforseo", "serp_analysis", call, request.model_dump()
    )
    return {"success": True, "data": data}


@router.post("/domain-metrics")
async def domain_metrics(
    request: DomainMetricsRequest,
    clients: ExternalAPIClients = Depends(get_clients),
):
    """Domain metrics are required; the backlink summary is best-effort."""
    client = require_dataforseo(clients)

    async def call():
        result = await client.domain_metrics(request.domain, request.location_code, request.language_code)
        return result.unwrap("dataforseo").to_dict()

    metrics = await with_graceful_degradation(
        "dataforseo",
        "domain_metrics",
        call,
        {"domain": request.domain, "location_code": request.location_code, "language_code": request.language_code},
    )

    backlinks = None
    if request.include_backlinks:
        backlink_result = await client.backlink_analysis(request.domain)
        if backlink_result.success:
            backlinks = backlink_result.data.to_dict()
        else:
            logger.warning(f"Backlink summary unavailable for {request.domain}: {backlink_result.error.code}")

    return {"success": True, "data": {"metrics": metrics, "backlinks": backlinks}}
