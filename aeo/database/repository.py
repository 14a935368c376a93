"""
Repository Layer

Reads and upserts for user-owned rows. Every function takes the caller's
session and commits its own work; upserts select by the unique key and
then update or insert.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from .models import (
    BrandVoice,
    BusinessProfile,
    Competitor,
    CompetitorAlert,
    CompetitorSnapshot,
    Content,
    GeneratedImage,
    Keyword,
    User,
)

logger = logging.getLogger(__name__)


# =============================================================================
# USERS
# =============================================================================

def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_or_create_user(db: Session, user_id: str, email: Optional[str] = None, **fields: Any) -> User:
    """Return the user, creating it on first sight."""
    user = get_user(db, user_id)
    if user is None:
        user = User(id=user_id, email=email, **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Created user {user_id}")
    return user


# =============================================================================
# BUSINESS PROFILE / BRAND VOICE
# =============================================================================

PROFILE_FIELDS = (
    "business_name", "industry", "description", "target_audience",
    "products_services", "locations", "goals", "content_frequency", "analysis",
)


def upsert_business_profile(db: Session, user_id: str, website_url: str, data: Dict[str, Any]) -> BusinessProfile:
    """Create or update the user's single business profile."""
    profile = db.query(BusinessProfile).filter(BusinessProfile.user_id == user_id).first()
    if profile is None:
        profile = BusinessProfile(user_id=user_id, website_url=website_url)
        db.add(profile)

    profile.website_url = website_url
    for field in PROFILE_FIELDS:
        if field in data and data[field] is not None:
            setattr(profile, field, data[field])

    db.commit()
    db.refresh(profile)
    return profile


def get_business_profile(db: Session, user_id: str) -> Optional[BusinessProfile]:
    return db.query(BusinessProfile).filter(BusinessProfile.user_id == user_id).first()


def insert_brand_voice(db: Session, user_id: str, source: str, data: Dict[str, Any]) -> BrandVoice:
    voice = BrandVoice(
        user_id=user_id,
        source=source,
        tone=data.get("tone") or "neutral",
        style=data.get("style") or "informative",
        personality=data.get("personality") or [],
        sample_phrases=data.get("sample_phrases") or [],
    )
    db.add(voice)
    db.commit()
    db.refresh(voice)
    return voice


# =============================================================================
# COMPETITORS
# =============================================================================

def upsert_competitors(db: Session, user_id: str, competitors: Iterable[Dict[str, Any]]) -> List[Competitor]:
    """
    Upsert competitors on (user_id, domain).

    Args:
        competitors: dicts with domain and optional name, domain_authority,
            monthly_traffic, source, metadata
    """
    rows = []
    for data in competitors:
        domain = normalize_domain(data.get("domain") or "")
        if not domain:
            continue

        row = (
            db.query(Competitor)
            .filter(Competitor.user_id == user_id, Competitor.domain == domain)
            .first()
        )
        if row is None:
            row = Competitor(user_id=user_id, domain=domain)
            db.add(row)

        row.name = data.get("name") or row.name
        row.source = data.get("source") or row.source
        if data.get("domain_authority") is not None:
            row.domain_authority = int(data["domain_authority"])
        if data.get("monthly_traffic") is not None:
            row.monthly_traffic = int(data["monthly_traffic"])
        if data.get("metadata"):
            row.metadata_ = {**(row.metadata_ or {}), **data["metadata"]}
        rows.append(row)

    db.commit()
    logger.info(f"Upserted {len(rows)} competitors for user {user_id}")
    return rows


def list_competitors(db: Session, user_id: str) -> List[Competitor]:
    return (
        db.query(Competitor)
        .filter(Competitor.user_id == user_id)
        .order_by(Competitor.created_at.desc())
        .all()
    )


def delete_competitor(db: Session, user_id: str, competitor_id: str) -> bool:
    """Delete a competitor the user owns. Returns False if not found."""
    row = (
        db.query(Competitor)
        .filter(Competitor.id == competitor_id, Competitor.user_id == user_id)
        .first()
    )
    if row is None:
        return False
    db.delete(row)
    db.commit()
    return True


def latest_snapshot(db: Session, competitor_id: str) -> Optional[CompetitorSnapshot]:
    return (
        db.query(CompetitorSnapshot)
        .filter(CompetitorSnapshot.competitor_id == competitor_id)
        .order_by(CompetitorSnapshot.created_at.desc())
        .first()
    )


def insert_snapshot_with_alerts(
    db: Session,
    snapshot: CompetitorSnapshot,
    alerts: List[CompetitorAlert],
) -> None:
    db.add(snapshot)
    db.add_all(alerts)
    db.commit()


# =============================================================================
# KEYWORDS
# =============================================================================

KEYWORD_FIELDS = (
    "search_volume", "keyword_difficulty", "cpc", "current_ranking",
    "intent", "opportunity_score", "priority",
)


def upsert_keywords(db: Session, user_id: str, keywords: Iterable[Dict[str, Any]]) -> List[Keyword]:
    """Upsert keywords on (user_id, keyword). Keyword text is normalized to lower case."""
    rows = []
    for data in keywords:
        text = (data.get("keyword") or "").strip().lower()
        if not text:
            continue

        row = db.query(Keyword).filter(Keyword.user_id == user_id, Keyword.keyword == text).first()
        if row is None:
            row = Keyword(user_id=user_id, keyword=text)
            db.add(row)

        for field in KEYWORD_FIELDS:
            if data.get(field) is not None:
                setattr(row, field, data[field])
        if data.get("metadata"):
            row.metadata_ = {**(row.metadata_ or {}), **data["metadata"]}
        rows.append(row)

    db.commit()
    logger.info(f"Upserted {len(rows)} keywords for user {user_id}")
    return rows


def list_keywords(db: Session, user_id: str, limit: int = 200) -> List[Keyword]:
    return (
        db.query(Keyword)
        .filter(Keyword.user_id == user_id)
        .order_by(Keyword.opportunity_score.desc(), Keyword.created_at.desc())
        .limit(limit)
        .all()
    )


def tracked_keywords(db: Session, user_id: str, limit: int = 10) -> List[str]:
    rows = (
        db.query(Keyword.keyword)
        .filter(Keyword.user_id == user_id, Keyword.status == "active")
        .order_by(Keyword.created_at.asc())
        .limit(limit)
        .all()
    )
    return [row[0] for row in rows]


# =============================================================================
# CONTENT & IMAGES
# =============================================================================

def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:200] or "untitled"


def create_content(
    db: Session,
    user_id: str,
    title: str,
    body: str,
    content_type: str,
    target_keyword: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Content:
    row = Content(
        user_id=user_id,
        title=title,
        slug=slugify(title),
        body=body,
        content_type=content_type,
        target_keyword=target_keyword,
        word_count=len(body.split()),
        metadata_=metadata or {},
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_content(db: Session, content_id: str, **fields: Any) -> Optional[Content]:
    row = db.query(Content).filter(Content.id == content_id).first()
    if row is None:
        return None
    if "body" in fields:
        fields["word_count"] = len((fields["body"] or "").split())
    for key, value in fields.items():
        setattr(row, key, value)
    db.commit()
    return row


def list_content(db: Session, user_id: str, limit: int = 50) -> List[Content]:
    return (
        db.query(Content)
        .filter(Content.user_id == user_id)
        .order_by(Content.created_at.desc())
        .limit(limit)
        .all()
    )


def save_generated_image(
    db: Session,
    user_id: str,
    image_url: str,
    alt_text: str,
    caption: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> GeneratedImage:
    row = GeneratedImage(
        user_id=user_id,
        image_url=image_url,
        alt_text=alt_text,
        caption=caption,
        metadata_={**(metadata or {}), "generated_at": datetime.now(timezone.utc).isoformat()},
    )
    db.add(row)
    db.commit()
    return row


def list_images(db: Session, user_id: str, limit: int = 50) -> List[GeneratedImage]:
    return (
        db.query(GeneratedImage)
        .filter(GeneratedImage.user_id == user_id)
        .order_by(GeneratedImage.created_at.desc())
        .limit(limit)
        .all()
    )


def delete_image(db: Session, user_id: str, image_id: str) -> bool:
    row = (
        db.query(GeneratedImage)
        .filter(GeneratedImage.id == image_id, GeneratedImage.user_id == user_id)
        .first()
    )
    if row is None:
        return False
    db.delete(row)
    db.commit()
    return True


# =============================================================================
# SERIALIZATION
# =============================================================================

def normalize_domain(value: str) -> str:
    """example.com from https://www.Example.com/path"""
    value = value.strip().lower()
    value = re.sub(r"^https?://", "", value)
    value = re.sub(r"^www\.", "", value)
    return value.split("/")[0]


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def profile_to_dict(p: BusinessProfile) -> Dict[str, Any]:
    return {
        "id": p.id,
        "website_url": p.website_url,
        "business_name": p.business_name,
        "industry": p.industry,
        "description": p.description,
        "target_audience": p.target_audience,
        "products_services": p.products_services or [],
        "locations": p.locations or [],
        "goals": p.goals or [],
        "content_frequency": p.content_frequency,
        "updated_at": _iso(p.updated_at),
    }


def brand_voice_to_dict(v: BrandVoice) -> Dict[str, Any]:
    return {
        "id": v.id,
        "tone": v.tone,
        "style": v.style,
        "personality": v.personality or [],
        "sample_phrases": v.sample_phrases or [],
        "source": v.source,
        "created_at": _iso(v.created_at),
    }


def competitor_to_dict(c: Competitor) -> Dict[str, Any]:
    return {
        "id": c.id,
        "domain": c.domain,
        "name": c.name,
        "domain_authority": c.domain_authority,
        "monthly_traffic": c.monthly_traffic,
        "priority": c.priority,
        "source": c.source,
        "metadata": c.metadata_ or {},
        "created_at": _iso(c.created_at),
    }


def snapshot_to_dict(s: CompetitorSnapshot) -> Dict[str, Any]:
    return {
        "id": s.id,
        "competitor_id": s.competitor_id,
        "organic_traffic": s.organic_traffic,
        "organic_keywords": s.organic_keywords,
        "domain_authority": s.domain_authority,
        "keyword_rankings": s.keyword_rankings or {},
        "created_at": _iso(s.created_at),
    }


def alert_to_dict(a: CompetitorAlert) -> Dict[str, Any]:
    return {
        "id": a.id,
        "competitor_id": a.competitor_id,
        "alert_type": a.alert_type,
        "severity": a.severity,
        "keyword": a.keyword,
        "previous_value": a.previous_value,
        "current_value": a.current_value,
        "message": a.message,
        "created_at": _iso(a.created_at),
    }


def keyword_to_dict(k: Keyword) -> Dict[str, Any]:
    return {
        "id": k.id,
        "keyword": k.keyword,
        "search_volume": k.search_volume,
        "keyword_difficulty": k.keyword_difficulty,
        "cpc": k.cpc,
        "current_ranking": k.current_ranking,
        "intent": k.intent,
        "opportunity_score": k.opportunity_score,
        "priority": k.priority,
        "status": k.status,
    }


def content_to_dict(c: Content, include_body: bool = False) -> Dict[str, Any]:
    data = {
        "id": c.id,
        "title": c.title,
        "slug": c.slug,
        "content_type": c.content_type,
        "target_keyword": c.target_keyword,
        "word_count": c.word_count,
        "seo_score": c.seo_score,
        "status": c.status,
        "metadata": c.metadata_ or {},
        "created_at": _iso(c.created_at),
    }
    if include_body:
        data["body"] = c.body
    return data


def image_to_dict(i: GeneratedImage) -> Dict[str, Any]:
    return {
        "id": i.id,
        "image_url": i.image_url,
        "alt_text": i.alt_text,
        "caption": i.caption,
        "metadata": i.metadata_ or {},
        "created_at": _iso(i.created_at),
    }
