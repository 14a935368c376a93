"""
Service Tests

Tests for keyword research, content gap analysis, competitor discovery
and monitoring, and website analysis with vendor clients mocked.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from aeo.database.models import Competitor, CompetitorAlert, CompetitorSnapshot, Keyword
from aeo.errors import NotFoundError, ProviderError, ValidationError
from aeo.integrations import ApiResult
from aeo.integrations.dataforseo import (
    BacklinkSummary,
    CompetitorData,
    DomainMetrics,
    KeywordData,
    SerpAnalysis,
    SerpResult,
)
from aeo.integrations.jina import parse_markdown
from aeo.integrations.perplexity import DiscoveredCompetitor, PerplexityResult
from aeo.services import (
    CompetitorService,
    ContentGapService,
    KeywordService,
    WebsiteService,
)
from aeo.services.competitors import detect_changes
from aeo.services.content_gap import validate_domains
from aeo.services.keywords import recommended_format, recommended_title
from aeo.services.website import normalize_analysis

from conftest import make_llm


# =============================================================================
# FIXTURES
# =============================================================================

def http_failure(status: int = 500) -> ApiResult:
    return ApiResult.fail("DATAFORSEO_HTTP_ERROR", f"HTTP {status}: error", status)


def intersection_item(keyword, volume, competitor_position, target_position=None):
    item = {
        "keyword_data": {
            "keyword": keyword,
            "keyword_info": {"search_volume": volume, "cpc": 1.5},
            "keyword_properties": {"keyword_difficulty": 35},
        },
        "first_domain_serp_element": {"serp_item": {"rank_group": competitor_position}},
    }
    if target_position is not None:
        item["second_domain_serp_element"] = {"serp_item": {"rank_group": target_position}}
    return item


@pytest.fixture
def dfs():
    client = MagicMock()
    client.keyword_research = AsyncMock(return_value=ApiResult.ok([
        KeywordData("best crm software", search_volume=1000, cpc=2.0, competition=0.4),
        KeywordData("crm", search_volume=100, cpc=1.0),
    ]))
    client.bulk_keyword_difficulty = AsyncMock(return_value=ApiResult.ok({"best crm software": 30}))
    return client


# =============================================================================
# KEYWORDS
# =============================================================================

class TestKeywordHelpers:
    """Tests for format and title recommendations."""

    @pytest.mark.parametrize("keyword,expected", [
        ("best crm software", "Listicle + Comparison Guide"),
        ("how to choose a crm", "Step-by-Step Tutorial"),
        ("hubspot vs salesforce", "Comparison Article"),
        ("pipedrive review", "Product Review + Buyer's Guide"),
        ("crm", "Informational Guide"),
        ("topical authority", "Informational Guide"),
    ])
    def test_recommended_format(self, keyword, expected):
        assert recommended_format(keyword) == expected

    def test_recommended_title(self):
        assert recommended_title("best crm software", 2026) == "Best Crm Software 2026: Complete Guide"
        assert recommended_title("crm", 2026) == "Crm: Everything You Need to Know (2026)"


class TestKeywordService:
    """Tests for research and single-keyword analysis."""

    @pytest.mark.asyncio
    async def test_requires_client(self):
        with pytest.raises(ProviderError) as exc_info:
            await KeywordService(None).research(["crm"])
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_research_scores_and_sorts(self, dfs):
        results = await KeywordService(dfs).research([" Best CRM Software ", "crm", ""])

        assert [r["keyword"] for r in results] == ["best crm software", "crm"]
        best = results[0]
        assert best["opportunity_score"] == 86.0
        assert best["priority"] == "high"
        assert best["intent"] == "commercial"
        assert best["metadata"]["opportunity_type"] == "quick_win"
        assert results[1]["keyword_difficulty"] is None
        assert dfs.keyword_research.await_args.args[0] == ["best crm software", "crm"]

    @pytest.mark.asyncio
    async def test_difficulty_is_best_effort(self, dfs):
        dfs.bulk_keyword_difficulty.return_value = http_failure()

        results = await KeywordService(dfs).research(["best crm software"])

        assert results[0]["keyword_difficulty"] is None
        assert results[0]["search_volume"] == 1000

    @pytest.mark.asyncio
    async def test_volume_failure_raises(self, dfs):
        dfs.keyword_research.return_value = http_failure(500)

        with pytest.raises(ProviderError):
            await KeywordService(dfs).research(["crm"])

    @pytest.mark.asyncio
    async def test_volume_failure_served_from_cache(self, dfs):
        service = KeywordService(dfs)
        first = await service.research(["crm"])

        dfs.keyword_research.return_value = http_failure(503)
        second = await service.research(["crm"])

        assert second == first

    @pytest.mark.asyncio
    async def test_analyze_keyword(self, dfs):
        dfs.keyword_research.return_value = ApiResult.ok([
            KeywordData("best crm software", search_volume=1000, cpc=2.0, competition=0.4),
        ])
        dfs.serp_analysis = AsyncMock(return_value=ApiResult.ok(SerpAnalysis(
            keyword="best crm software",
            organic_results=[
                SerpResult(1, "https://www.hubspot.com/crm", "hubspot.com", "HubSpot CRM", "d" * 100),
                SerpResult(2, "https://salesforce.com", "salesforce.com", "Salesforce"),
                SerpResult(3, "http://zoho.com/crm", "zoho.com", "Zoho"),
                SerpResult(4, "https://pipedrive.com", "pipedrive.com", "Pipedrive"),
            ],
        )))
        dfs.keywords_for_keywords = AsyncMock(return_value=ApiResult.ok([
            {"keyword": "best crm software"},
            {"keyword": "crm tools"},
            {"keyword": None},
            {"keyword": "free crm"},
        ]))

        analysis = await KeywordService(dfs).analyze_keyword("best crm software")

        assert analysis["volume"] == 1000
        assert analysis["difficulty"] == 30
        assert analysis["relatedKeywords"] == ["crm tools", "free crm"]
        assert analysis["recommendedFormat"] == "Listicle + Comparison Guide"
        assert analysis["estimatedTraffic"] == 200
        assert len(analysis["contentGaps"]) == 4

        competitors = analysis["topCompetitors"]
        assert len(competitors) == 3
        assert competitors[0]["url"] == "hubspot.com/crm"
        assert competitors[0]["wordCount"] == 300
        assert competitors[1]["wordCount"] == 1500
        assert competitors[2]["url"] == "zoho.com/crm"

    @pytest.mark.asyncio
    async def test_analyze_keyword_survives_serp_failure(self, dfs):
        dfs.serp_analysis = AsyncMock(return_value=http_failure())
        dfs.keywords_for_keywords = AsyncMock(return_value=http_failure())

        analysis = await KeywordService(dfs).analyze_keyword("best crm software")

        assert analysis["topCompetitors"] == []
        assert analysis["relatedKeywords"] == []

    @pytest.mark.asyncio
    async def test_analyze_keyword_not_found(self, dfs):
        dfs.keyword_research.return_value = ApiResult.ok([])

        with pytest.raises(NotFoundError, match="No keyword data found"):
            await KeywordService(dfs).analyze_keyword("zzzz")


# =============================================================================
# CONTENT GAP
# =============================================================================

class TestContentGapValidation:
    """Tests for domain validation."""

    def test_invalid_target(self):
        with pytest.raises(ValidationError, match="Invalid target domain format"):
            validate_domains("not a domain", ["rival.com"])

    def test_competitors_required(self):
        with pytest.raises(ValidationError, match="non-empty array"):
            validate_domains("example.com", [])

    def test_too_many_competitors(self):
        domains = [f"rival{i}.com" for i in range(6)]
        with pytest.raises(ValidationError, match="Maximum 5 competitor domains allowed"):
            validate_domains("example.com", domains)

    def test_invalid_competitor(self):
        with pytest.raises(ValidationError, match="Invalid competitor domain format: https://rival.com"):
            validate_domains("example.com", ["https://rival.com"])

    @pytest.mark.asyncio
    async def test_validation_runs_before_client_check(self):
        with pytest.raises(ValidationError):
            await ContentGapService(None).analyze("bad", ["rival.com"])

        with pytest.raises(ProviderError) as exc_info:
            await ContentGapService(None).analyze("example.com", ["rival.com"])
        assert exc_info.value.status_code == 503


class TestContentGapService:
    """Tests for gap collection and merging."""

    @pytest.fixture
    def gap_client(self):
        async def intersection(competitor, target, intersections=True, limit=100):
            if not intersections:
                return ApiResult.ok([intersection_item("crm tools", 5000, 3)])
            return ApiResult.ok([
                intersection_item("crm software", 9000, 2, target_position=35),
                intersection_item("crm", 20000, 1, target_position=4),
            ])

        client = MagicMock()
        client.domain_intersection = AsyncMock(side_effect=intersection)
        return client

    @pytest.mark.asyncio
    async def test_missing_and_weak_keywords(self, gap_client):
        gaps = await ContentGapService(gap_client).competitor_gaps("example.com", "rival.com")

        by_keyword = {g["keyword"]: g for g in gaps}
        assert set(by_keyword) == {"crm tools", "crm software"}
        assert by_keyword["crm tools"]["target_position"] is None
        assert by_keyword["crm tools"]["competitor_position"] == 3
        assert by_keyword["crm software"]["target_position"] == 35

    @pytest.mark.asyncio
    async def test_analyze_merges_competitors(self, gap_client):
        result = await ContentGapService(gap_client).analyze("example.com", ["rival.com", "other.com"])

        scores = [g["opportunity_score"] for g in result["gaps"]]
        assert scores == sorted(scores, reverse=True)
        crm_tools = next(g for g in result["gaps"] if g["keyword"] == "crm tools")
        assert [c["domain"] for c in crm_tools["competitors"]] == ["rival.com", "other.com"]
        assert crm_tools["best_competitor_position"] == 3

        summary = result["summary"]
        assert summary["total_gaps"] == 2
        assert summary["missing_keywords"] == 1
        assert summary["weak_keywords"] == 1
        assert summary["gaps_by_competitor"] == {"rival.com": 2, "other.com": 2}
        assert "top_gaps" not in summary

    @pytest.mark.asyncio
    async def test_summary_only(self, gap_client):
        summary = await ContentGapService(gap_client).analyze("example.com", ["rival.com"], summary_only=True)

        assert summary["target_domain"] == "example.com"
        assert len(summary["top_gaps"]) == 2
        assert "gaps" not in summary
        assert gap_client.domain_intersection.await_count == 2


# =============================================================================
# COMPETITORS
# =============================================================================

class TestDetectChanges:
    """Tests for snapshot diffing."""

    def test_first_snapshot_has_no_alerts(self):
        assert detect_changes("rival.com", None, {"crm": 1}, 50.0) == []

    def test_small_moves_ignored(self):
        previous = CompetitorSnapshot(keyword_rankings={"crm": 8}, domain_authority=40.0)
        assert detect_changes("rival.com", previous, {"crm": 5}, 43.0) == []

    def test_ranking_drop(self):
        previous = CompetitorSnapshot(keyword_rankings={"crm": 3}, domain_authority=None)

        alerts = detect_changes("rival.com", previous, {"crm": 9}, 40.0)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert["alert_type"] == "ranking_dropped"
        assert alert["severity"] == "medium"
        assert alert["previous_value"] == 3.0
        assert alert["current_value"] == 9.0
        assert "-6 positions" in alert["message"]

    def test_improvement_and_authority_high_severity(self):
        previous = CompetitorSnapshot(keyword_rankings={"crm": 15, "erp": 4}, domain_authority=30.0)

        alerts = detect_changes("rival.com", previous, {"crm": 4, "erp": None}, 48.0)

        types = {a["alert_type"]: a for a in alerts}
        assert set(types) == {"ranking_improved", "domain_authority_change"}
        assert types["ranking_improved"]["severity"] == "high"
        assert types["domain_authority_change"]["severity"] == "high"
        assert types["domain_authority_change"]["keyword"] is None


class TestCompetitorDiscovery:
    """Tests for DataForSEO plus Perplexity discovery."""

    @pytest.mark.asyncio
    async def test_merges_sources(self):
        dfs = MagicMock()
        dfs.competitor_analysis = AsyncMock(return_value=ApiResult.ok([
            CompetitorData("rival.com", avg_position=8.2, intersections=120, organic_traffic=5400.5, organic_keywords=830),
            CompetitorData("www.example.com"),
        ]))
        perplexity = MagicMock()
        perplexity.query_for_competitors = AsyncMock(return_value=ApiResult.ok(PerplexityResult(
            answer="",
            competitors=[
                DiscoveredCompetitor("Rival", "rival.com", 0.9),
                DiscoveredCompetitor("Other", "https://www.other.io", 0.7),
                DiscoveredCompetitor("Unknown"),
            ],
        )))

        found = await CompetitorService(dfs, perplexity).discover("https://example.com/", industry="crm")

        assert [c["domain"] for c in found] == ["rival.com", "other.io"]
        rival = found[0]
        assert rival["name"] == "Rival"
        assert rival["monthly_traffic"] == 5400
        assert rival["metadata"]["perplexity_confidence"] == 0.9
        assert found[1]["source"] == "perplexity"
        assert "crm industry" in perplexity.query_for_competitors.await_args.args[0]

    @pytest.mark.asyncio
    async def test_perplexity_failure_is_ignored(self):
        dfs = MagicMock()
        dfs.competitor_analysis = AsyncMock(return_value=ApiResult.ok([CompetitorData("rival.com")]))
        perplexity = MagicMock()
        perplexity.query_for_competitors = AsyncMock(return_value=ApiResult.fail("PERPLEXITY_HTTP_ERROR", "down", 503))

        found = await CompetitorService(dfs, perplexity).discover("example.com")

        assert [c["domain"] for c in found] == ["rival.com"]

    @pytest.mark.asyncio
    async def test_requires_dataforseo(self):
        with pytest.raises(ProviderError):
            await CompetitorService(None).discover("example.com")


class TestCompetitorMonitoring:
    """Tests for snapshots and stored alerts."""

    @pytest.fixture(autouse=True)
    def no_serp_delay(self, monkeypatch):
        monkeypatch.setattr("aeo.services.competitors.SERP_DELAY_SECONDS", 0)

    @pytest.fixture
    def monitor_client(self):
        async def serp(keyword, *args, **kwargs):
            results = []
            if keyword == "crm software":
                results = [SerpResult(4, "https://www.rival.com/crm", "www.rival.com", "Rival CRM")]
            return ApiResult.ok(SerpAnalysis(keyword=keyword, organic_results=results))

        client = MagicMock()
        client.domain_metrics = AsyncMock(return_value=ApiResult.ok(
            DomainMetrics("rival.com", organic_traffic=5400.0, organic_keywords=830)
        ))
        client.backlink_analysis = AsyncMock(return_value=ApiResult.ok(BacklinkSummary("rival.com", rank=48)))
        client.serp_analysis = AsyncMock(side_effect=serp)
        return client

    @pytest.fixture
    def tracked(self, db_session, test_user):
        competitor = Competitor(user_id=test_user.id, domain="rival.com")
        db_session.add(competitor)
        db_session.add_all([
            Keyword(user_id=test_user.id, keyword="crm software"),
            Keyword(user_id=test_user.id, keyword="crm tools"),
        ])
        db_session.commit()
        return competitor

    @pytest.mark.asyncio
    async def test_first_run(self, db_session, test_user, tracked, monitor_client):
        result = await CompetitorService(monitor_client).monitor(db_session, test_user.id)

        assert result["snapshots_created"] == 1
        assert result["alerts_generated"] == 0
        assert result["failed"] == []
        assert result["snapshots"][0]["keyword_rankings"] == {"crm software": 4, "crm tools": None}

        db_session.refresh(tracked)
        assert tracked.domain_authority == 48
        assert tracked.monthly_traffic == 5400

    @pytest.mark.asyncio
    async def test_alerts_against_previous_snapshot(self, db_session, test_user, tracked, monitor_client):
        db_session.add(CompetitorSnapshot(
            competitor_id=tracked.id,
            domain_authority=30.0,
            keyword_rankings={"crm software": 15},
            created_at=datetime(2026, 1, 1),
        ))
        db_session.commit()

        result = await CompetitorService(monitor_client).monitor(db_session, test_user.id)

        assert result["alerts_generated"] == 2
        assert {a["alert_type"] for a in result["alerts"]} == {"ranking_improved", "domain_authority_change"}
        assert db_session.query(CompetitorAlert).filter(CompetitorAlert.user_id == test_user.id).count() == 2

    @pytest.mark.asyncio
    async def test_failed_competitor_is_reported(self, db_session, test_user, tracked, monitor_client):
        db_session.add(Competitor(user_id=test_user.id, domain="broken.com"))
        db_session.commit()

        async def metrics(domain, *args, **kwargs):
            if domain == "broken.com":
                return http_failure(500)
            return ApiResult.ok(DomainMetrics(domain, organic_traffic=100.0))

        monitor_client.domain_metrics = AsyncMock(side_effect=metrics)

        result = await CompetitorService(monitor_client).monitor(db_session, test_user.id)

        assert result["snapshots_created"] == 1
        assert result["failed"][0]["domain"] == "broken.com"

    @pytest.mark.asyncio
    async def test_missing_backlinks_keep_authority(self, db_session, test_user, tracked, monitor_client):
        monitor_client.backlink_analysis.return_value = http_failure()

        result = await CompetitorService(monitor_client).monitor(db_session, test_user.id)

        assert result["snapshots"][0]["domain_authority"] is None


# =============================================================================
# WEBSITE
# =============================================================================

PAGE = parse_markdown(
    "https://acme.com",
    "# Acme\n\nAcme builds project planning software for small agencies and studios.\n",
)


class TestWebsiteService:
    """Tests for website and brand voice analysis."""

    @pytest.fixture
    def jina(self):
        client = MagicMock()
        client.extract_clean_text = AsyncMock(return_value=ApiResult.ok(PAGE))
        return client

    def test_normalize_analysis(self):
        profile = normalize_analysis({
            "title": "Acme",
            "target_audience": ["agencies", "studios"],
            "products_services": "Planner",
            "locations": None,
        })

        assert profile["business_name"] == "Acme"
        assert profile["target_audience"] == "agencies, studios"
        assert profile["products_services"] == ["Planner"]
        assert profile["locations"] == []

    def test_normalize_rejects_non_object(self):
        with pytest.raises(ProviderError):
            normalize_analysis(["not", "an", "object"])

    @pytest.mark.asyncio
    async def test_requires_clients(self, jina):
        with pytest.raises(ProviderError) as exc_info:
            await WebsiteService(None, make_llm()).analyze_website("https://acme.com")
        assert exc_info.value.status_code == 503

        with pytest.raises(ProviderError):
            await WebsiteService(jina, None).analyze_website("https://acme.com")

    @pytest.mark.asyncio
    async def test_analyze_website(self, jina):
        llm = make_llm(ApiResult.ok({"business_name": "Acme", "industry": "Software", "health_score": 72}))

        result = await WebsiteService(jina, llm).analyze_website("https://acme.com")

        assert result["title"] == "Acme"
        assert result["profile"]["industry"] == "Software"
        assert result["analysis"]["health_score"] == 72
        prompt = llm.complete_json.await_args.args[0]
        assert "project planning software" in prompt

    @pytest.mark.asyncio
    async def test_brand_voice_defaults(self, jina):
        llm = make_llm(ApiResult.ok({"personality": "bold", "sample_phrases": ["Ship faster"]}))

        voice = await WebsiteService(jina, llm).extract_brand_voice("https://acme.com")

        assert voice["tone"] == "neutral"
        assert voice["style"] == "informative"
        assert voice["personality"] == ["bold"]
        assert voice["unique_voice_elements"] == []
