"""
Remote Tool (MCP) Passthrough

Endpoints:
- GET /api/mcp/{provider}/tools - The tool catalog in LLM tool format
- POST /api/mcp/{provider}/call - Execute one tool and return its text output

Providers: dataforseo, firecrawl, jina.
"""

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from aeo.auth import get_current_user, rate_limit
from aeo.errors import ProviderError
from aeo.mcp import ToolSet, get_toolset
from aeo.mcp.tools import TOOLSET_FACTORIES

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/mcp",
    tags=["MCP"],
    dependencies=[Depends(get_current_user)],
)


class ToolCallRequest(BaseModel):
    tool: str = Field(..., min_length=1, max_length=200)
    arguments: Dict[str, Any] = Field(default_factory=dict)


def get_toolset_factory() -> Callable[[str], Optional[ToolSet]]:
    return get_toolset


def resolve_toolset(provider: str, factory: Callable[[str], Optional[ToolSet]]) -> ToolSet:
    if provider not in TOOLSET_FACTORIES:
        raise HTTPException(status_code=404, detail=f"Unknown tool provider: {provider}")
    toolset = factory(provider)
    if toolset is None:
        raise ProviderError(f"{provider} tools are not configured", provider=provider, status_code=503, retryable=False)
    return toolset


@router.get("/{provider}/tools")
async def list_provider_tools(
    provider: str,
    factory: Callable[[str], Optional[ToolSet]] = Depends(get_toolset_factory),
):
    toolset = resolve_toolset(provider, factory)
    return {"provider": provider, "tools": toolset.as_llm_tools()}


@router.post("/{provider}/call")
async def call_provider_tool(
    provider: str,
    request: ToolCallRequest,
    current_user=Depends(rate_limit("api")),
    factory: Callable[[str], Optional[ToolSet]] = Depends(get_toolset_factory),
):
    """
    Arguments are forwarded unchanged (None values dropped). Tool failures
    come back as 502 with the tool's error text.
    """
    toolset = resolve_toolset(provider, factory)
    logger.info(f"User {current_user.id} calling {provider} tool {request.tool}")

    result = await toolset.execute(request.tool, request.arguments)
    return {"success": True, "provider": provider, "tool": request.tool, "result": result.unwrap(provider)}
