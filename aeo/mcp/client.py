"""
Remote Tool Client

Thin adapter over the `mcp` client SDK for hosted tool servers
(DataForSEO, Firecrawl, Jina). Each call opens a session, initializes it,
invokes one tool, and flattens the response content to a string.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import TextContent

from aeo.integrations.result import ApiResult

logger = logging.getLogger(__name__)

TRANSPORTS = ("streamable_http", "sse")


def stringify_content(content: Any) -> str:
    """
    Flatten tool result content.

    Text items become their text, anything else is JSON-encoded; items
    are joined with newlines.
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return json.dumps(_plain(content), default=str)

    parts = []
    for item in content:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, TextContent):
            parts.append(item.text)
        else:
            parts.append(json.dumps(_plain(item), default=str))
    return "\n".join(parts)


def _plain(item: Any) -> Any:
    if hasattr(item, "model_dump"):
        return item.model_dump(mode="json", exclude_none=True)
    return item


class RemoteToolClient:
    """
    Client for one remote tool server.

    Usage:
        client = RemoteToolClient("https://mcp.dataforseo.com/http", headers={...})
        result = await client.call("backlinks_summary", {"target": "example.com"})
        if result.success:
            print(result.data)
    """

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        transport: str = "streamable_http",
        name: str = "mcp",
    ):
        if not url:
            raise ValueError("Tool server URL not provided")
        if transport not in TRANSPORTS:
            raise ValueError(f"Unknown transport: {transport}")

        self.url = url
        self.headers = headers or {}
        self.transport = transport
        self.name = name

    @asynccontextmanager
    async def session(self) -> AsyncIterator[ClientSession]:
        """Open and initialize a session for the configured transport."""
        if self.transport == "sse":
            async with sse_client(self.url, headers=self.headers) as (read, write):
                async with ClientSession(read, write) as session:
                    await session.initialize()
                    yield session
        else:
            async with streamablehttp_client(self.url, headers=self.headers) as (read, write, _):
                async with ClientSession(read, write) as session:
                    await session.initialize()
                    yield session

    async def call(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> ApiResult[str]:
        """
        Invoke a tool.

        Args:
            tool_name: Tool name as registered on the server
            arguments: Tool arguments, passed through unchanged

        Returns:
            ApiResult with the stringified tool output, or MCP_TOOL_ERROR
        """
        try:
            async with self.session() as session:
                result = await session.call_tool(tool_name, arguments or {})
        except Exception as e:
            logger.warning(f"{self.name} tool {tool_name} failed: {e}")
            return ApiResult.fail("MCP_TOOL_ERROR", f"{self.name} tool {tool_name} failed: {e}", 502)

        text = stringify_content(result.content)
        if result.isError:
            logger.warning(f"{self.name} tool {tool_name} returned an error: {text[:200]}")
            return ApiResult.fail("MCP_TOOL_ERROR", text or f"{tool_name} returned an error", 502)

        return ApiResult.ok(text)

    async def list_tools(self) -> ApiResult[List[Dict[str, Any]]]:
        """Names, descriptions and input schemas the server advertises."""
        try:
            async with self.session() as session:
                listing = await session.list_tools()
        except Exception as e:
            logger.warning(f"{self.name} list_tools failed: {e}")
            return ApiResult.fail("MCP_TOOL_ERROR", f"{self.name} list_tools failed: {e}", 502)

        return ApiResult.ok(
            [
                {"name": tool.name, "description": tool.description or "", "parameters": tool.inputSchema}
                for tool in listing.tools
            ]
        )
