"""
Content API

Endpoints:
- POST /api/content/analyze-keyword - Keyword data, top SERP competitors, recommended format
- POST /api/content/stream - Generate an article, streaming progress as SSE
- POST /api/content/generate - Same, aborting generation when the client disconnects
- GET /api/content - The user's articles

SSE events: progress, complete, aborted, error (JSON data).
"""

import logging
from typing import Any, Callable, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse

from aeo.auth import get_current_user, rate_limit
from aeo.content import ContentOrchestrator, ContentRequest, ProgressStream
from aeo.database import User, get_db, get_db_context
from aeo.database.repository import content_to_dict, create_content, list_content, update_content
from aeo.errors import AppError
from aeo.integrations import ExternalAPIClients
from aeo.services import KeywordService

from api.dependencies import get_client_factory, get_keyword_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/content",
    tags=["Content"],
    dependencies=[Depends(get_current_user)],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class AnalyzeKeywordRequest(BaseModel):
    keyword: str = Field(..., min_length=1, max_length=500)
    location_code: int = 2840
    language_code: str = "en"


class GenerateContentRequest(BaseModel):
    """Accepts camelCase keys as sent by the editor."""
    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(..., min_length=1, max_length=500)
    type: Literal["blog_post", "article", "social_media", "landing_page"]
    keywords: List[str]
    tone: Optional[str] = None
    word_count: Optional[int] = Field(None, alias="wordCount", ge=100, le=10000)
    competitor_urls: Optional[List[str]] = Field(None, alias="competitorUrls")

    def to_content_request(self, user_id: str) -> ContentRequest:
        return ContentRequest(
            topic=self.topic,
            type=self.type,
            keywords=self.keywords,
            tone=self.tone,
            word_count=self.word_count,
            competitor_urls=self.competitor_urls,
            user_id=user_id,
        )


# =============================================================================
# HELPERS
# =============================================================================

def build_persist(user_id: str, request: ContentRequest) -> Callable[[str, Optional[str], Dict[str, Any]], str]:
    """
    Persist callback for the orchestrator.

    The first call (no content id) inserts the draft; later calls update it.
    Each call uses its own session since the request session is gone by the
    time the stream runs.
    """

    def persist(body: str, content_id: Optional[str], fields: Dict[str, Any]) -> str:
        with get_db_context() as db:
            if content_id is None:
                row = create_content(
                    db,
                    user_id,
                    title=request.topic,
                    body=body,
                    content_type=request.type,
                    target_keyword=request.target_keyword,
                    metadata={"keywords": request.keywords, "tone": request.tone},
                )
                logger.info(f"Saved draft {row.id} for user {user_id}")
                return row.id

            updates: Dict[str, Any] = {"body": body}
            if "status" in fields:
                updates["status"] = fields["status"]
            if "seo_score" in fields:
                updates["seo_score"] = fields["seo_score"]
            if "metadata" in fields:
                updates["metadata_"] = fields["metadata"]
            update_content(db, content_id, **updates)
            return content_id

    return persist


async def stream_generation(
    http_request: Request,
    body: GenerateContentRequest,
    user: User,
    client_factory: Callable[[], ExternalAPIClients],
    abort_on_disconnect: bool,
) -> EventSourceResponse:
    """
    Start generation in the background and stream its progress.

    Configuration errors (no LLM) are raised before the stream opens so the
    client gets a plain JSON error.
    """
    clients = client_factory()
    try:
        orchestrator = ContentOrchestrator(clients.llm, clients.perplexity)
    except AppError:
        await clients.close()
        raise

    content_request = body.to_content_request(user.id)
    persist = build_persist(user.id, content_request)
    stream = ProgressStream(abort_on_disconnect=abort_on_disconnect)

    async def job():
        try:
            return await orchestrator.generate_content(
                content_request,
                on_progress=stream.progress,
                abort_event=stream.abort_event,
                persist=persist,
            )
        finally:
            await clients.close()

    logger.info(f"Content generation started for user {user.id}: {content_request.topic}")
    stream.start(job)
    return EventSourceResponse(stream.events(http_request))


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/analyze-keyword")
async def analyze_keyword(
    request: AnalyzeKeywordRequest,
    current_user: User = Depends(rate_limit("api")),
    service: KeywordService = Depends(get_keyword_service),
):
    """404 when DataForSEO has no data for the keyword."""
    analysis = await service.analyze_keyword(request.keyword, request.location_code, request.language_code)
    return {"success": True, "analysis": analysis}


@router.post("/stream")
async def stream_content(
    http_request: Request,
    body: GenerateContentRequest,
    current_user: User = Depends(rate_limit("content_generation")),
    client_factory: Callable[[], ExternalAPIClients] = Depends(get_client_factory),
):
    """Generation keeps running (and saving) if the client goes away."""
    return await stream_generation(http_request, body, current_user, client_factory, abort_on_disconnect=False)


@router.post("/generate")
async def generate_content(
    http_request: Request,
    body: GenerateContentRequest,
    current_user: User = Depends(rate_limit("content_generation")),
    client_factory: Callable[[], ExternalAPIClients] = Depends(get_client_factory),
):
    """Generation stops at its next checkpoint once the client disconnects."""
    return await stream_generation(http_request, body, current_user, client_factory, abort_on_disconnect=True)


@router.get("")
async def get_content(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=200),
):
    rows = list_content(db, current_user.id, limit=limit)
    return {
        "content": [content_to_dict(row) for row in rows],
        "total": len(rows),
    }
