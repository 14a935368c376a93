"""
Health Check

GET /api/health - liveness plus database, cache and vendor status
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from aeo.cache import get_all_cache_stats, get_redis_cache
from aeo.database import check_db_connection
from aeo.integrations import get_external_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health")
async def health_check():
    """Unauthenticated. Never raises: each check reports its own state."""
    config = get_external_config()
    redis_cache = get_redis_cache()

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected" if check_db_connection() else "unavailable",
        "redis": redis_cache.get_stats() if redis_cache is not None else "disabled",
        "providers": {
            "dataforseo": config.has_dataforseo,
            "jina": config.has_jina,
            "perplexity": config.has_perplexity,
            "firecrawl": config.has_firecrawl,
            "apify": config.has_apify,
            "llm": config.has_llm,
            "gemini": config.has_gemini,
        },
        "caches": get_all_cache_stats(),
    }
