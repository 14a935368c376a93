"""
Website Analysis & Brand Voice API

Endpoints:
- POST /api/analyze-website - Extract a site and store the business profile
- GET /api/business-profile - The user's stored profile
- POST /api/brand-voice/extract - Extract and store a brand voice
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from aeo.auth import get_current_user, rate_limit
from aeo.database import User, get_db
from aeo.database.repository import (
    brand_voice_to_dict,
    get_business_profile,
    insert_brand_voice,
    profile_to_dict,
    upsert_business_profile,
)
from aeo.services import WebsiteService

from api.dependencies import get_website_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Website"],
    dependencies=[Depends(get_current_user)],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class AnalyzeWebsiteRequest(BaseModel):
    url: str = Field(..., min_length=4, max_length=2048)


class BrandVoiceRequest(BaseModel):
    url: str = Field(..., min_length=4, max_length=2048)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/analyze-website")
async def analyze_website(
    request: AnalyzeWebsiteRequest,
    current_user: User = Depends(rate_limit("api")),
    service: WebsiteService = Depends(get_website_service),
    db: Session = Depends(get_db),
):
    """
    Extract the website with Jina, analyze it with the LLM, and upsert the
    business profile.
    """
    result = await service.analyze_website(request.url)
    profile = upsert_business_profile(db, current_user.id, request.url, result["profile"])
    logger.info(f"Business profile updated for user {current_user.id} from {request.url}")

    return {
        "success": True,
        "profile": profile_to_dict(profile),
        "analysis": result["analysis"],
    }


@router.get("/business-profile")
async def read_business_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    profile = get_business_profile(db, current_user.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Business profile not found")
    return {"profile": profile_to_dict(profile)}


@router.post("/brand-voice/extract")
async def extract_brand_voice(
    request: BrandVoiceRequest,
    current_user: User = Depends(rate_limit("api")),
    service: WebsiteService = Depends(get_website_service),
    db: Session = Depends(get_db),
):
    voice = await service.extract_brand_voice(request.url)
    row = insert_brand_voice(db, current_user.id, source=request.url, data=voice)

    return {
        "success": True,
        "brandVoice": {**voice, **brand_voice_to_dict(row)},
    }
