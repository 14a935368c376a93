"""
Database Package

SQLAlchemy models, session management and repository functions.
"""

from .models import (
    Base,
    BrandVoice,
    BusinessProfile,
    Competitor,
    CompetitorAlert,
    CompetitorSnapshot,
    Content,
    GeneratedImage,
    Keyword,
    SubscriptionStatus,
    User,
)
from .session import (
    check_db_connection,
    configure_engine,
    create_db_engine,
    get_db,
    get_db_context,
    get_engine,
    init_db,
)

__all__ = [
    "Base",
    "User",
    "SubscriptionStatus",
    "BusinessProfile",
    "BrandVoice",
    "Competitor",
    "CompetitorSnapshot",
    "CompetitorAlert",
    "Keyword",
    "Content",
    "GeneratedImage",
    "get_db",
    "get_db_context",
    "get_engine",
    "create_db_engine",
    "configure_engine",
    "init_db",
    "check_db_connection",
]
