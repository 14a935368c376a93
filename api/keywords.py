"""
Keyword Research API

Endpoints:
- POST /api/keywords/research - Volume, difficulty and opportunity scores, stored per user
- GET /api/keywords - The user's keywords, best opportunities first
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from aeo.auth import get_current_user, rate_limit
from aeo.database import User, get_db
from aeo.database.repository import keyword_to_dict, list_keywords, upsert_keywords
from aeo.services import KeywordService

from api.dependencies import get_keyword_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/keywords",
    tags=["Keywords"],
    dependencies=[Depends(get_current_user)],
)


class KeywordResearchRequest(BaseModel):
    keywords: List[str] = Field(..., min_length=1, max_length=100)
    location_code: int = 2840
    language_code: str = "en"


@router.post("/research")
async def research_keywords(
    request: KeywordResearchRequest,
    current_user: User = Depends(rate_limit("api")),
    service: KeywordService = Depends(get_keyword_service),
    db: Session = Depends(get_db),
):
    results = await service.research(request.keywords, request.location_code, request.language_code)
    rows = upsert_keywords(db, current_user.id, results)

    return {
        "success": True,
        "keywords": results,
        "saved": len(rows),
    }


@router.get("")
async def get_keywords(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    limit: int = Query(200, ge=1, le=1000),
):
    keywords = list_keywords(db, current_user.id, limit=limit)
    return {
        "keywords": [keyword_to_dict(k) for k in keywords],
        "total": len(keywords),
    }
