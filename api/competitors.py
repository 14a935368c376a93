"""
Competitor API

Endpoints:
- POST /api/competitors/discover - Discover and store competitors
- GET /api/competitors - List the user's competitors
- DELETE /api/competitors/{competitor_id} - Remove a competitor
- POST /api/competitors/monitor - Snapshot competitors and raise alerts
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from aeo.auth import get_current_user, rate_limit
from aeo.database import User, get_db
from aeo.database.repository import (
    competitor_to_dict,
    delete_competitor,
    list_competitors,
    upsert_competitors,
)
from aeo.services import CompetitorService

from api.dependencies import get_competitor_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/competitors",
    tags=["Competitors"],
    dependencies=[Depends(get_current_user)],
)


class DiscoverCompetitorsRequest(BaseModel):
    domain: str = Field(..., min_length=3, max_length=255)
    industry: Optional[str] = None
    limit: int = Field(10, ge=1, le=50)
    use_perplexity: bool = True


@router.post("/discover")
async def discover_competitors(
    request: DiscoverCompetitorsRequest,
    current_user: User = Depends(rate_limit("api")),
    service: CompetitorService = Depends(get_competitor_service),
    db: Session = Depends(get_db),
):
    """DataForSEO competitors, enriched by Perplexity when configured, upserted per domain."""
    discovered = await service.discover(
        request.domain,
        industry=request.industry,
        limit=request.limit,
        use_perplexity=request.use_perplexity,
    )
    rows = upsert_competitors(db, current_user.id, discovered)

    return {
        "success": True,
        "competitors": [competitor_to_dict(row) for row in rows],
        "total": len(rows),
    }


@router.get("")
async def get_competitors(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    competitors = list_competitors(db, current_user.id)
    return {
        "competitors": [competitor_to_dict(c) for c in competitors],
        "total": len(competitors),
    }


@router.delete("/{competitor_id}")
async def remove_competitor(
    competitor_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not delete_competitor(db, current_user.id, competitor_id):
        raise HTTPException(status_code=404, detail="Competitor not found")
    logger.info(f"User {current_user.id} removed competitor {competitor_id}")
    return {"success": True}


@router.post("/monitor")
async def monitor_competitors(
    current_user: User = Depends(rate_limit("api")),
    service: CompetitorService = Depends(get_competitor_service),
    db: Session = Depends(get_db),
):
    result = await service.monitor(db, current_user.id)
    return {"success": True, **result}
