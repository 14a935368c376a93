"""
SQLAlchemy Models for the AEO Platform

Design Principles:
1. User ids are the auth provider's subject string
2. Everything a user owns cascades with the user
3. Vendor payloads we don't normalize go into JSON `metadata` columns
4. Snapshots are append-only so monitoring can diff against history
"""

import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Index, Integer,
    String, Text, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (DateTime columns are naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# ENUMS
# =============================================================================

class SubscriptionStatus(enum.Enum):
    """Subscription state as reported by billing webhooks"""
    FREE = "free"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    REVOKED = "revoked"


class AlertType(enum.Enum):
    RANKING_IMPROVED = "ranking_improved"
    RANKING_DROPPED = "ranking_dropped"
    DOMAIN_AUTHORITY_CHANGE = "domain_authority_change"


class AlertSeverity(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ContentStatus(enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """
    Local user record.

    Created by the auth dependency on first request or by the Clerk
    webhook; subscription fields are maintained by the Polar webhook.
    """
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)

    email = Column(String(255), unique=True)
    first_name = Column(String(255))
    last_name = Column(String(255))
    avatar_url = Column(String(2000))
    is_admin = Column(Boolean, default=False, nullable=False)

    # Billing (Polar)
    subscription_status = Column(String(50), default=SubscriptionStatus.FREE.value, nullable=False)
    polar_customer_id = Column(String(255))
    polar_subscription_id = Column(String(255), index=True)
    current_period_end = Column(DateTime)

    # Soft delete
    deleted_at = Column(DateTime)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    business_profile = relationship("BusinessProfile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    competitors = relationship("Competitor", back_populates="user", cascade="all, delete-orphan")
    keywords = relationship("Keyword", back_populates="user", cascade="all, delete-orphan")
    contents = relationship("Content", back_populates="user", cascade="all, delete-orphan")
    brand_voices = relationship("BrandVoice", back_populates="user", cascade="all, delete-orphan")
    images = relationship("GeneratedImage", back_populates="user", cascade="all, delete-orphan")
    alerts = relationship("CompetitorAlert", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_user_email", "email"),
    )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    def __repr__(self):
        return f"<User {self.id} ({self.email})>"


# =============================================================================
# BUSINESS CONTEXT
# =============================================================================

class BusinessProfile(Base):
    """One per user: what the website is and who it serves"""
    __tablename__ = "business_profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    website_url = Column(String(2000), nullable=False)
    business_name = Column(String(255))
    industry = Column(String(255))
    description = Column(Text)
    target_audience = Column(Text)
    products_services = Column(JSON, default=list)
    locations = Column(JSON, default=list)
    goals = Column(JSON, default=list)
    content_frequency = Column(String(50))
    analysis = Column(JSON, default=dict)  # Raw LLM analysis

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="business_profile")

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_business_profile_user"),
    )


class BrandVoice(Base):
    """Tone and style extracted from a sample page"""
    __tablename__ = "brand_voices"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    tone = Column(String(255), nullable=False)
    style = Column(String(255), nullable=False)
    personality = Column(JSON, default=list)
    sample_phrases = Column(JSON, default=list)
    source = Column(String(2000), nullable=False)  # URL the voice was extracted from

    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="brand_voices")


# =============================================================================
# COMPETITORS
# =============================================================================

class Competitor(Base):
    """Competitor domain tracked by a user"""
    __tablename__ = "competitors"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    domain = Column(String(255), nullable=False)
    name = Column(String(255))
    domain_authority = Column(Integer)
    monthly_traffic = Column(Integer)
    priority = Column(String(20), default="medium", nullable=False)
    source = Column(String(50))  # dataforseo, perplexity, manual
    metadata_ = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="competitors")
    snapshots = relationship(
        "CompetitorSnapshot",
        back_populates="competitor",
        cascade="all, delete-orphan",
        order_by="CompetitorSnapshot.created_at",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "domain", name="uq_user_competitor_domain"),
        Index("idx_competitor_user", "user_id"),
    )


class CompetitorSnapshot(Base):
    """Point-in-time metrics for a competitor"""
    __tablename__ = "competitor_snapshots"

    id = Column(String(36), primary_key=True, default=new_id)
    competitor_id = Column(String(36), ForeignKey("competitors.id", ondelete="CASCADE"), nullable=False)

    organic_traffic = Column(Float)
    organic_keywords = Column(Integer)
    domain_authority = Column(Float)
    keyword_rankings = Column(JSON, default=dict)  # {keyword: position or None}

    created_at = Column(DateTime, default=utcnow, index=True)

    competitor = relationship("Competitor", back_populates="snapshots")


class CompetitorAlert(Base):
    """Change detected between two snapshots"""
    __tablename__ = "competitor_alerts"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    competitor_id = Column(String(36), ForeignKey("competitors.id", ondelete="CASCADE"), nullable=False)

    alert_type = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False)
    keyword = Column(String(500))
    previous_value = Column(Float)
    current_value = Column(Float)
    message = Column(Text)
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="alerts")

    __table_args__ = (
        Index("idx_alert_user_created", "user_id", "created_at"),
    )


# =============================================================================
# KEYWORDS & CONTENT
# =============================================================================

class Keyword(Base):
    """Keyword tracked by a user with its latest metrics"""
    __tablename__ = "keywords"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    keyword = Column(String(500), nullable=False)
    search_volume = Column(Integer)
    keyword_difficulty = Column(Integer)
    cpc = Column(Float)
    current_ranking = Column(Integer)
    intent = Column(String(50))
    opportunity_score = Column(Float)
    priority = Column(String(20), default="medium", nullable=False)
    status = Column(String(20), default="active", nullable=False)
    metadata_ = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="keywords")

    __table_args__ = (
        UniqueConstraint("user_id", "keyword", name="uq_user_keyword"),
        Index("idx_keyword_user", "user_id"),
    )


class Content(Base):
    """Generated article"""
    __tablename__ = "content"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(500), nullable=False)
    slug = Column(String(500), nullable=False)
    content_type = Column(String(50), nullable=False)
    body = Column(Text)
    target_keyword = Column(String(500))
    word_count = Column(Integer)
    seo_score = Column(Integer)
    status = Column(String(20), default=ContentStatus.DRAFT.value, nullable=False)
    metadata_ = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="contents")

    __table_args__ = (
        Index("idx_content_user_created", "user_id", "created_at"),
    )


class GeneratedImage(Base):
    """Image generated for (or alongside) an article"""
    __tablename__ = "generated_images"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content_id = Column(String(36), ForeignKey("content.id", ondelete="SET NULL"))

    image_url = Column(Text, nullable=False)
    alt_text = Column(String(500), nullable=False)
    caption = Column(Text)
    metadata_ = Column("metadata", JSON, default=dict)  # prompt, style, size, provider
    status = Column(String(20), default="generated", nullable=False)

    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="images")

    __table_args__ = (
        Index("idx_image_user_created", "user_id", "created_at"),
    )
