"""
API Route Tests

Tests for the FastAPI routes with auth and vendor clients overridden and
an in-memory SQLite database: happy paths, validation, unconfigured
providers, rate limits and the JSON error envelope.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from aeo.integrations import ApiResult, GeneratedImageData
from aeo.integrations.dataforseo import (
    BacklinkSummary,
    CompetitorData,
    DomainMetrics,
    KeywordData,
    SerpAnalysis,
    SerpResult,
)
from aeo.integrations.jina import parse_markdown
from aeo.mcp import DATAFORSEO_TOOLS, ToolSet

from conftest import make_llm


# =============================================================================
# FIXTURES
# =============================================================================

ARTICLE_BODY = {"topic": "CRM for small teams", "type": "blog_post", "keywords": ["best crm software"]}


@pytest.fixture
def dfs(fake_clients):
    client = MagicMock()
    client.keyword_research = AsyncMock(return_value=ApiResult.ok([
        KeywordData("best crm software", search_volume=1000, cpc=2.0),
        KeywordData("crm", search_volume=100, cpc=1.0),
    ]))
    client.bulk_keyword_difficulty = AsyncMock(return_value=ApiResult.ok({"best crm software": 30}))
    client.keywords_for_keywords = AsyncMock(return_value=ApiResult.ok([{"keyword": "crm tools"}]))
    client.serp_analysis = AsyncMock(return_value=ApiResult.ok(SerpAnalysis(
        keyword="best crm software",
        organic_results=[SerpResult(1, "https://hubspot.com/crm", "hubspot.com", "HubSpot")],
    )))
    client.competitor_analysis = AsyncMock(return_value=ApiResult.ok([
        CompetitorData("rival.com", avg_position=6.0, intersections=50, organic_traffic=1200.0),
    ]))
    client.domain_metrics = AsyncMock(return_value=ApiResult.ok(DomainMetrics("example.com", organic_traffic=900.0)))
    client.backlink_analysis = AsyncMock(return_value=ApiResult.ok(BacklinkSummary("example.com", rank=41)))
    fake_clients.dataforseo = client
    return client


@pytest.fixture
def website_clients(fake_clients):
    jina = MagicMock()
    jina.extract_clean_text = AsyncMock(return_value=ApiResult.ok(parse_markdown(
        "https://acme.com",
        "# Acme\n\nAcme builds project planning software for small agencies and studios.\n",
    )))
    fake_clients.jina = jina
    return fake_clients


# =============================================================================
# HEALTH
# =============================================================================

class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert set(data["providers"]) >= {"dataforseo", "jina", "perplexity", "llm"}
        assert "degradation" in data["caches"]


# =============================================================================
# WEBSITE
# =============================================================================

class TestWebsiteRoutes:
    """Tests for website analysis and brand voice."""

    def test_analyze_website_stores_profile(self, client, website_clients):
        website_clients.llm = make_llm(ApiResult.ok({
            "business_name": "Acme", "industry": "Software", "target_audience": ["agencies"],
        }))

        response = client.post("/api/analyze-website", json={"url": "https://acme.com"})

        assert response.status_code == 200
        assert response.json()["profile"]["business_name"] == "Acme"

        stored = client.get("/api/business-profile").json()["profile"]
        assert stored["industry"] == "Software"
        assert stored["target_audience"] == "agencies"

    def test_profile_not_found(self, client):
        response = client.get("/api/business-profile")

        assert response.status_code == 404
        assert response.json() == {"detail": "Business profile not found"}

    def test_jina_not_configured(self, client, fake_clients):
        fake_clients.llm = make_llm()

        response = client.post("/api/analyze-website", json={"url": "https://acme.com"})

        assert response.status_code == 503
        assert response.json()["code"] == "PROVIDER_ERROR_JINA"

    def test_invalid_body(self, client):
        response = client.post("/api/analyze-website", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request body"
        assert body["details"][0]["loc"] == ["body", "url"]

    def test_brand_voice(self, client, website_clients):
        website_clients.llm = make_llm(ApiResult.ok({"tone": "friendly", "personality": ["warm"]}))

        response = client.post("/api/brand-voice/extract", json={"url": "https://acme.com"})

        assert response.status_code == 200
        voice = response.json()["brandVoice"]
        assert voice["tone"] == "friendly"
        assert voice["source"] == "https://acme.com"
        assert voice["id"]


# =============================================================================
# COMPETITORS & KEYWORDS
# =============================================================================

class TestCompetitorRoutes:
    """Tests for discovery, listing and removal."""

    def test_discover_list_delete(self, client, dfs):
        response = client.post("/api/competitors/discover", json={"domain": "example.com", "use_perplexity": False})

        assert response.status_code == 200
        assert response.json()["total"] == 1

        competitors = client.get("/api/competitors").json()["competitors"]
        assert competitors[0]["domain"] == "rival.com"
        assert competitors[0]["monthly_traffic"] == 1200

        competitor_id = competitors[0]["id"]
        assert client.delete(f"/api/competitors/{competitor_id}").status_code == 200
        assert client.delete(f"/api/competitors/{competitor_id}").status_code == 404

    def test_monitor_requires_dataforseo(self, client):
        response = client.post("/api/competitors/monitor")

        assert response.status_code == 503
        assert response.json()["error"] == "DataForSEO is not configured"


class TestKeywordRoutes:
    """Tests for keyword research and listing."""

    def test_research_and_list(self, client, dfs):
        response = client.post("/api/keywords/research", json={"keywords": ["best crm software", "crm"]})

        assert response.status_code == 200
        assert response.json()["saved"] == 2

        keywords = client.get("/api/keywords").json()["keywords"]
        assert [k["keyword"] for k in keywords] == ["best crm software", "crm"]
        assert keywords[0]["priority"] == "high"

    def test_empty_keyword_list_rejected(self, client, dfs):
        assert client.post("/api/keywords/research", json={"keywords": []}).status_code == 400

    def test_unexpected_error_is_500(self, app, dfs):
        dfs.keyword_research.side_effect = RuntimeError("socket exploded")
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post("/api/keywords/research", json={"keywords": ["crm"]})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


# =============================================================================
# DATAFORSEO
# =============================================================================

class TestDataForSEORoutes:
    """Tests for content gap, SERP and domain metrics."""

    def test_content_gap_invalid_target(self, client, dfs):
        response = client.post("/api/dataforseo/content-gap", json={
            "targetDomain": "not a domain", "competitorDomains": ["rival.com"],
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid target domain format", "code": "VALIDATION_ERROR"}

    def test_content_gap_too_many_competitors(self, client, dfs):
        response = client.post("/api/dataforseo/content-gap", json={
            "targetDomain": "example.com", "competitorDomains": [f"rival{i}.com" for i in range(6)],
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Maximum 5 competitor domains allowed"

    def test_content_gap_not_configured(self, client):
        response = client.post("/api/dataforseo/content-gap", json={
            "targetDomain": "example.com", "competitorDomains": ["rival.com"],
        })

        assert response.status_code == 503

    def test_content_gap_query_parameters(self, client, dfs):
        dfs.domain_intersection = AsyncMock(return_value=ApiResult.ok([{
            "keyword_data": {"keyword": "crm tools", "keyword_info": {"search_volume": 500}},
            "first_domain_serp_element": {"serp_item": {"rank_group": 2}},
        }]))

        response = client.get(
            "/api/dataforseo/content-gap",
            params={"target": "example.com", "competitors": "rival.com, other.com", "summary": "true"},
        )

        assert response.status_code == 200
        summary = response.json()["data"]
        assert summary["competitor_domains"] == ["rival.com", "other.com"]
        assert summary["total_gaps"] == 1
        assert summary["top_gaps"][0]["keyword"] == "crm tools"

    def test_serp(self, client, dfs):
        response = client.post("/api/dataforseo/serp", json={"keyword": "best crm software", "device": "mobile"})

        assert response.status_code == 200
        assert response.json()["data"]["organic_results"][0]["domain"] == "hubspot.com"
        assert dfs.serp_analysis.await_args.kwargs["device"] == "mobile"

    def test_serp_invalid_device(self, client, dfs):
        assert client.post("/api/dataforseo/serp", json={"keyword": "crm", "device": "tv"}).status_code == 400

    def test_serp_vendor_error(self, client, dfs):
        dfs.serp_analysis.return_value = ApiResult.fail("DATAFORSEO_HTTP_ERROR", "HTTP 401: Unauthorized", 401)

        response = client.post("/api/dataforseo/serp", json={"keyword": "crm"})

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "PROVIDER_ERROR_DATAFORSEO"
        assert body["details"] == {"vendorCode": "DATAFORSEO_HTTP_ERROR", "vendorStatus": 401}

    def test_domain_metrics_backlinks_best_effort(self, client, dfs):
        dfs.backlink_analysis.return_value = ApiResult.fail("DATAFORSEO_HTTP_ERROR", "HTTP 500", 500)

        response = client.post("/api/dataforseo/domain-metrics", json={"domain": "example.com"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["metrics"]["organic_traffic"] == 900.0
        assert data["backlinks"] is None


# =============================================================================
# CONTENT
# =============================================================================

class TestContentRoutes:
    """Tests for keyword analysis and the streaming entry points."""

    def test_analyze_keyword(self, client, dfs):
        response = client.post("/api/content/analyze-keyword", json={"keyword": "best crm software"})

        assert response.status_code == 200
        analysis = response.json()["analysis"]
        assert analysis["recommendedFormat"] == "Listicle + Comparison Guide"
        assert analysis["topCompetitors"][0]["url"] == "hubspot.com/crm"

    def test_analyze_keyword_not_found(self, client, dfs):
        dfs.keyword_research.return_value = ApiResult.ok([])

        response = client.post("/api/content/analyze-keyword", json={"keyword": "zzzz"})

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_generate_invalid_type(self, client):
        response = client.post("/api/content/generate", json={**ARTICLE_BODY, "type": "poem"})

        assert response.status_code == 400

    def test_generate_without_llm(self, client, fake_clients):
        response = client.post("/api/content/stream", json=ARTICLE_BODY)

        assert response.status_code == 503
        assert response.json()["error"] == "No LLM provider is configured"
        assert fake_clients.closed

    def test_generation_rate_limit(self, client):
        for _ in range(10):
            assert client.post("/api/content/generate", json=ARTICLE_BODY).status_code == 503

        response = client.post("/api/content/generate", json=ARTICLE_BODY)

        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert response.headers["X-RateLimit-Limit"] == "10"
        assert int(response.headers["Retry-After"]) >= 1

    def test_list_content_empty(self, client):
        assert client.get("/api/content").json() == {"content": [], "total": 0}


# =============================================================================
# IMAGES
# =============================================================================

class TestImageRoutes:
    """Tests for image actions and history."""

    def test_generate_stores_and_lists(self, client, fake_clients):
        fake_clients.images.generate_openai = AsyncMock(return_value=ApiResult.ok([
            GeneratedImageData("https://img.example/1.png", "Team at work", "Professional photograph", {"model": "dall-e-3"}),
        ]))

        response = client.post("/api/images/generate", json={
            "action": "generate", "prompt": "Team at work", "articleContext": "Remote teams",
        })

        assert response.status_code == 200
        assert response.json()["data"][0]["url"] == "https://img.example/1.png"
        assert fake_clients.images.generate_openai.await_args.kwargs["article_context"] == "Remote teams"

        history = client.get("/api/images").json()["data"]
        assert len(history) == 1
        assert history[0]["metadata"]["model"] == "dall-e-3"

        image_id = history[0]["id"]
        assert client.delete(f"/api/images/{image_id}").status_code == 200
        assert client.delete(f"/api/images/{image_id}").status_code == 404

    def test_invalid_action(self, client):
        response = client.post("/api/images/generate", json={"action": "paint"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action"

    def test_missing_prompt(self, client):
        response = client.post("/api/images/generate", json={"action": "generate-gemini"})

        assert response.status_code == 400
        assert response.json()["error"] == "prompt is required"

    def test_missing_provider_key(self, client, fake_clients):
        fake_clients.images.generate_gemini = AsyncMock(side_effect=ValueError("GOOGLE_API_KEY is not set"))

        response = client.post("/api/images/generate", json={"action": "generate-gemini", "prompt": "A lighthouse"})

        assert response.status_code == 503

    def test_gemini_variations_report_failures(self, client, fake_clients):
        fake_clients.images.variations_gemini = AsyncMock(return_value=ApiResult.ok({
            "images": [GeneratedImageData("data:image/png;base64,aW1n", "Lighthouse", "Illustration")],
            "failed": [{"style": "artistic", "error": "HTTP 500"}],
        }))

        response = client.post("/api/images/generate", json={"action": "variations-gemini", "basePrompt": "A lighthouse"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["images"]) == 1
        assert data["failed"][0]["style"] == "artistic"


# =============================================================================
# REMOTE TOOLS
# =============================================================================

class TestToolRoutes:
    """Tests for the MCP passthrough."""

    @pytest.fixture
    def tool_client(self, app):
        from api.tools import get_toolset_factory

        remote = MagicMock()
        remote.call = AsyncMock(return_value=ApiResult.ok('{"rank": 41}'))
        toolset = ToolSet(remote, DATAFORSEO_TOOLS)
        app.dependency_overrides[get_toolset_factory] = lambda: (
            lambda provider: toolset if provider == "dataforseo" else None
        )
        return remote

    def test_list_tools(self, client, tool_client):
        response = client.get("/api/mcp/dataforseo/tools")

        assert response.status_code == 200
        names = [t["name"] for t in response.json()["tools"]]
        assert "backlinks_summary" in names

    def test_call_tool(self, client, tool_client):
        response = client.post("/api/mcp/dataforseo/call", json={
            "tool": "backlinks_summary", "arguments": {"target": "example.com"},
        })

        assert response.status_code == 200
        assert response.json()["result"] == '{"rank": 41}'

    def test_unknown_tool(self, client, tool_client):
        response = client.post("/api/mcp/dataforseo/call", json={"tool": "drop_database"})

        assert response.status_code == 400
        assert response.json()["details"]["vendorCode"] == "MCP_UNKNOWN_TOOL"
        tool_client.call.assert_not_awaited()

    def test_unknown_provider(self, client, tool_client):
        assert client.get("/api/mcp/semrush/tools").status_code == 404

    def test_unconfigured_provider(self, client, tool_client):
        response = client.get("/api/mcp/jina/tools")

        assert response.status_code == 503
        assert response.json()["error"] == "jina tools are not configured"
