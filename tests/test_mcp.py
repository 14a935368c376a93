"""
Remote Tool Tests

Tests for the MCP tool client (with the SDK session mocked), content
flattening, tool catalogs and toolset factories.
"""

from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from mcp.types import ImageContent, TextContent

from aeo.integrations import ApiResult
from aeo.mcp import (
    DATAFORSEO_TOOLS,
    RemoteToolClient,
    ToolSet,
    get_dataforseo_tools,
    get_firecrawl_tools,
    get_jina_tools,
    get_toolset,
    stringify_content,
)


# =============================================================================
# FIXTURES
# =============================================================================

def fake_session(call_result=None, tools=None, error=None):
    session = MagicMock()
    session.call_tool = AsyncMock(return_value=call_result, side_effect=error)
    session.list_tools = AsyncMock(return_value=SimpleNamespace(tools=tools or []))

    @asynccontextmanager
    async def open_session():
        yield session

    return session, open_session


# =============================================================================
# CONTENT
# =============================================================================

class TestStringifyContent:
    """Tests for flattening tool output."""

    def test_text_items_joined(self):
        content = [TextContent(type="text", text="line one"), TextContent(type="text", text="line two")]
        assert stringify_content(content) == "line one\nline two"

    def test_non_text_items_json_encoded(self):
        content = [ImageContent(type="image", data="aGk=", mimeType="image/png")]
        assert '"mimeType": "image/png"' in stringify_content(content)

    def test_plain_values(self):
        assert stringify_content("already text") == "already text"
        assert stringify_content({"a": 1}) == '{"a": 1}'
        assert stringify_content(["x", {"b": 2}]) == 'x\n{"b": 2}'


# =============================================================================
# CLIENT
# =============================================================================

class TestRemoteToolClient:
    """Tests for tool invocation."""

    def test_validation(self):
        with pytest.raises(ValueError):
            RemoteToolClient("")
        with pytest.raises(ValueError, match="transport"):
            RemoteToolClient("https://tools.example", transport="carrier-pigeon")

    @pytest.mark.asyncio
    async def test_call_success(self):
        client = RemoteToolClient("https://tools.example/http", name="dataforseo")
        session, open_session = fake_session(
            SimpleNamespace(content=[TextContent(type="text", text='{"rank": 50}')], isError=False)
        )

        with patch.object(client, "session", open_session):
            result = await client.call("backlinks_summary", {"target": "example.com"})

        assert result.data == '{"rank": 50}'
        session.call_tool.assert_awaited_once_with("backlinks_summary", {"target": "example.com"})

    @pytest.mark.asyncio
    async def test_tool_reported_error(self):
        client = RemoteToolClient("https://tools.example/http")
        _, open_session = fake_session(
            SimpleNamespace(content=[TextContent(type="text", text="Invalid target")], isError=True)
        )

        with patch.object(client, "session", open_session):
            result = await client.call("backlinks_summary", {})

        assert result.error.code == "MCP_TOOL_ERROR"
        assert result.error.message == "Invalid target"
        assert result.error.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        client = RemoteToolClient("https://tools.example/http", name="jina")
        _, open_session = fake_session(error=ConnectionError("refused"))

        with patch.object(client, "session", open_session):
            result = await client.call("read_url", {"url": "https://a.com"})

        assert result.error.code == "MCP_TOOL_ERROR"
        assert "jina tool read_url failed" in result.error.message

    @pytest.mark.asyncio
    async def test_list_tools(self):
        client = RemoteToolClient("https://tools.example/http")
        tool = SimpleNamespace(name="read_url", description=None, inputSchema={"type": "object"})
        _, open_session = fake_session(tools=[tool])

        with patch.object(client, "session", open_session):
            result = await client.list_tools()

        assert result.data == [{"name": "read_url", "description": "", "parameters": {"type": "object"}}]

    @pytest.mark.asyncio
    async def test_streamable_http_session(self):
        """The default transport opens the SDK's streamable HTTP client and initializes the session."""
        opened = []

        @asynccontextmanager
        async def transport(url, headers=None):
            opened.append((url, headers))
            yield "read", "write", lambda: None

        session = MagicMock()
        session.initialize = AsyncMock()
        session_cm = MagicMock()
        session_cm.__aenter__ = AsyncMock(return_value=session)
        session_cm.__aexit__ = AsyncMock(return_value=False)
        client = RemoteToolClient("https://tools.example/http", headers={"Authorization": "Bearer k"})

        with patch("aeo.mcp.client.streamablehttp_client", transport), \
                patch("aeo.mcp.client.ClientSession", return_value=session_cm) as session_cls:
            async with client.session() as active:
                assert active is session

        assert opened == [("https://tools.example/http", {"Authorization": "Bearer k"})]
        session_cls.assert_called_once_with("read", "write")
        session.initialize.assert_awaited_once()


# =============================================================================
# TOOLSETS
# =============================================================================

class TestToolSet:
    """Tests for catalog binding and dispatch."""

    def test_llm_tool_format(self):
        toolset = ToolSet(MagicMock(), DATAFORSEO_TOOLS)
        tools = toolset.as_llm_tools()

        assert "backlinks_summary" in toolset.names
        assert all(set(tool) == {"name", "description", "input_schema"} for tool in tools)
        ranked = next(t for t in tools if t["name"] == "dataforseo_labs_google_ranked_keywords")
        assert ranked["input_schema"]["required"] == ["target"]

    @pytest.mark.asyncio
    async def test_execute_drops_none_arguments(self):
        client = MagicMock()
        client.call = AsyncMock(return_value=ApiResult.ok("ok"))
        toolset = ToolSet(client, DATAFORSEO_TOOLS)

        await toolset.execute("backlinks_summary", {"target": "example.com", "filters": None})

        client.call.assert_awaited_once_with("backlinks_summary", {"target": "example.com"})

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        client = MagicMock()
        client.call = AsyncMock()
        toolset = ToolSet(client, DATAFORSEO_TOOLS)

        result = await toolset.execute("drop_database", {})

        assert result.error.code == "MCP_UNKNOWN_TOOL"
        assert result.error.status_code == 400
        client.call.assert_not_awaited()


class TestFactories:
    """Tests for env-driven toolset construction."""

    def test_dataforseo(self, monkeypatch):
        monkeypatch.setenv("DATAFORSEO_LOGIN", "l")
        monkeypatch.setenv("DATAFORSEO_PASSWORD", "p")
        monkeypatch.delenv("DATAFORSEO_MCP_URL", raising=False)

        toolset = get_dataforseo_tools()

        assert toolset.client.url == "https://mcp.dataforseo.com/http"
        assert toolset.client.headers["Authorization"].startswith("Basic ")

    def test_dataforseo_unconfigured(self, monkeypatch):
        monkeypatch.delenv("DATAFORSEO_LOGIN", raising=False)
        assert get_dataforseo_tools() is None

    def test_firecrawl_url_from_key(self, monkeypatch):
        monkeypatch.delenv("FIRECRAWL_MCP_URL", raising=False)
        monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-123")

        assert get_firecrawl_tools().client.url == "https://mcp.firecrawl.dev/fc-123/v2/mcp"

    def test_jina_uses_sse(self, monkeypatch):
        monkeypatch.setenv("JINA_API_KEY", "jina-key")

        toolset = get_jina_tools()

        assert toolset.client.transport == "sse"
        assert toolset.client.headers == {"Authorization": "Bearer jina-key"}

    def test_unknown_provider(self):
        assert get_toolset("semrush") is None
