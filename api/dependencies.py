"""
Shared Route Dependencies

Vendor clients are built per request and closed afterwards. Tests swap
them out with app.dependency_overrides[get_clients] (and
get_client_factory for the streaming routes).
"""

from typing import AsyncGenerator, Callable

from fastapi import Depends

from aeo.integrations import ExternalAPIClients
from aeo.services import CompetitorService, ContentGapService, KeywordService, WebsiteService


async def get_clients() -> AsyncGenerator[ExternalAPIClients, None]:
    clients = ExternalAPIClients()
    try:
        yield clients
    finally:
        await clients.close()


def get_client_factory() -> Callable[[], ExternalAPIClients]:
    """
    Client constructor for streaming routes.

    A yield dependency is torn down when the handler returns, before the SSE
    body is produced, so streaming jobs build and close their own clients.
    """
    return ExternalAPIClients


def get_website_service(clients: ExternalAPIClients = Depends(get_clients)) -> WebsiteService:
    return WebsiteService(clients.jina, clients.llm)


def get_competitor_service(clients: ExternalAPIClients = Depends(get_clients)) -> CompetitorService:
    return CompetitorService(clients.dataforseo, clients.perplexity)


def get_keyword_service(clients: ExternalAPIClients = Depends(get_clients)) -> KeywordService:
    return KeywordService(clients.dataforseo)


def get_content_gap_service(clients: ExternalAPIClients = Depends(get_clients)) -> ContentGapService:
    return ContentGapService(clients.dataforseo)
