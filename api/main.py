"""
AEO Platform API

FastAPI application wiring: logging, error handlers, CORS and routers.

Run locally:
    uvicorn api.main:app --reload
"""

import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from aeo.cache import get_redis_cache, prune_all_caches  # noqa: E402
from aeo.database import check_db_connection, init_db  # noqa: E402
from aeo.errors import register_exception_handlers  # noqa: E402
from aeo.integrations import get_external_config  # noqa: E402

from api import competitors, content, dataforseo, health, images, keywords, tools, webhooks, website  # noqa: E402

# Configure logging to stdout (Railway treats stderr as errors)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(
    title="AEO Platform API",
    description="SEO and answer-engine optimization services over DataForSEO, Jina, Perplexity and LLMs",
    version="1.0.0",
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(website.router)
app.include_router(competitors.router)
app.include_router(keywords.router)
app.include_router(dataforseo.router)
app.include_router(content.router)
app.include_router(images.router)
app.include_router(tools.router)
app.include_router(webhooks.router)


# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    logger.info("Initializing database...")
    try:
        init_db()
        if check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed - continuing anyway")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    get_external_config()

    redis_cache = get_redis_cache()
    if redis_cache is not None:
        try:
            await redis_cache.initialize()
        except Exception as e:
            logger.warning(f"Redis unavailable, using in-memory caches only: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    pruned = prune_all_caches()
    logger.info(f"Pruned {pruned} expired cache entries")

    redis_cache = get_redis_cache()
    if redis_cache is not None:
        await redis_cache.close()


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
