"""
Unit tests for RankPilot Audit Engine.

Tests the single-page pipeline: fetch, parse, the five analyzers,
recommendations and the composite score.
"""
import pytest

from rankpilot.core.exceptions import (
    AnalysisFailure,
    CompetitorAnalysisFailure,
    FetchTimeout,
    NetworkError,
    UpstreamHTTPError,
)
from rankpilot.services.audit_engine import (
    AuditEngine,
    AuditMetrics,
    build_competitor_gap,
    composite_score,
)
from rankpilot.services.recommendations import Priority
from tests.fixtures.sample_pages import (
    BASICS_SCENARIO_HTML,
    MOBILE_UNFRIENDLY_HTML,
    NOINDEX_PAGE_HTML,
    PERFECT_PAGE_HTML,
)

PRIMARY_URL = "https://example.com/guides/vegetable-gardening"
COMPETITOR_URL = "https://competitor.com/"


class TestCompositeScore:
    """Test composite scoring."""

    def test_unweighted_rounded_mean(self):
        metrics = AuditMetrics(
            page_speed=100,
            seo_basics=75,
            content_quality=55,
            technical_seo=89,
            mobile_optimization=100,
        )
        assert composite_score(metrics) == 84

    def test_rounds_up(self):
        metrics = AuditMetrics(
            page_speed=90,
            seo_basics=90,
            content_quality=90,
            technical_seo=91,
            mobile_optimization=92,
        )
        # 453 / 5 = 90.6
        assert composite_score(metrics) == 91


class TestAnalyzeHtml:
    """Test analysis of already-fetched HTML."""

    @pytest.fixture
    def engine(self, make_fetcher):
        return AuditEngine(fetcher=make_fetcher({}))

    def test_basics_scenario(self, engine):
        """No title, no description, one H1, viewport, 300ms."""
        result = engine.analyze_html(PRIMARY_URL, BASICS_SCENARIO_HTML, elapsed_ms=300)

        assert result.metrics.page_speed == 100
        assert result.metrics.seo_basics == 75
        assert result.metrics.mobile_optimization == 100
        assert result.score == round(sum(result.metrics.values()) / 5)
        assert result.score == 84

    def test_perfect_page(self, engine):
        result = engine.analyze_html(PRIMARY_URL, PERFECT_PAGE_HTML, elapsed_ms=300)

        assert result.score == 100
        assert result.issues == []
        assert result.recommendations == []

    def test_noindex_page(self, engine):
        result = engine.analyze_html(PRIMARY_URL, NOINDEX_PAGE_HTML, elapsed_ms=300)

        assert result.metrics.technical_seo <= 50
        assert [r.title for r in result.recommendations][0] == "Fix Critical Technical Issues"

    def test_sub_scores_in_range(self, engine):
        for html in (BASICS_SCENARIO_HTML, MOBILE_UNFRIENDLY_HTML, NOINDEX_PAGE_HTML, ""):
            result = engine.analyze_html(PRIMARY_URL, html, elapsed_ms=12000)
            assert all(0 <= v <= 100 for v in result.metrics.values())
            assert result.score == round(sum(result.metrics.values()) / 5)

    def test_same_html_same_result(self, engine):
        first = engine.analyze_html(PRIMARY_URL, MOBILE_UNFRIENDLY_HTML, elapsed_ms=800)
        second = engine.analyze_html(PRIMARY_URL, MOBILE_UNFRIENDLY_HTML, elapsed_ms=800)

        assert first.to_dict() == second.to_dict()

    def test_to_dict(self, engine):
        data = engine.analyze_html(PRIMARY_URL, MOBILE_UNFRIENDLY_HTML, elapsed_ms=800).to_dict()

        assert set(data["metrics"]) == {
            "page_speed",
            "seo_basics",
            "content_quality",
            "technical_seo",
            "mobile_optimization",
        }
        assert data["metrics"]["page_speed"] == 90
        assert {"type", "category", "title", "description", "impact", "fix"} <= set(data["issues"][0])


class TestAnalyzePage:
    """Test the fetch-driven entry point."""

    @pytest.mark.asyncio
    async def test_analyze_page_uses_fetch_latency(self, make_fetcher):
        engine = AuditEngine(fetcher=make_fetcher({PRIMARY_URL: PERFECT_PAGE_HTML}, elapsed_ms=2500))

        result = await engine.analyze_page(PRIMARY_URL)

        assert result.url == PRIMARY_URL
        assert result.metrics.page_speed == 60
        assert result.elapsed_ms == 2500
        engine.fetcher.fetch.assert_awaited_once_with(PRIMARY_URL)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            FetchTimeout(PRIMARY_URL, 30),
            NetworkError(PRIMARY_URL, "ConnectError"),
            UpstreamHTTPError(PRIMARY_URL, 503, "Service Unavailable"),
        ],
    )
    async def test_fetch_errors_propagate(self, make_fetcher, error):
        engine = AuditEngine(fetcher=make_fetcher({PRIMARY_URL: error}))

        with pytest.raises(type(error)):
            await engine.analyze_page(PRIMARY_URL)

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_analysis_failure(self, make_fetcher, monkeypatch):
        engine = AuditEngine(fetcher=make_fetcher({PRIMARY_URL: PERFECT_PAGE_HTML}))

        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine, "analyze_html", explode)

        with pytest.raises(AnalysisFailure) as exc_info:
            await engine.analyze_page(PRIMARY_URL)

        assert exc_info.value.url == PRIMARY_URL
        assert "boom" in str(exc_info.value)


class TestCompetitorAnalysis:
    """Test competitor gap analysis."""

    @pytest.mark.asyncio
    async def test_competitor_gap(self, make_fetcher):
        """The competitor page is served from the host its absolute links point at."""
        peer_url = "https://example.com/compare"
        engine = AuditEngine(
            fetcher=make_fetcher({
                PRIMARY_URL: NOINDEX_PAGE_HTML,
                peer_url: PERFECT_PAGE_HTML,
            })
        )
        primary = await engine.analyze_page(PRIMARY_URL)

        gap = await engine.analyze_competitor(peer_url, primary)

        assert gap.url == peer_url
        assert gap.score == 100
        assert gap.strengths == []
        assert gap.weaknesses == []
        assert gap.gaps == [
            r.title for r in primary.recommendations if r.priority == Priority.HIGH
        ]
        assert "Fix Critical Technical Issues" in gap.gaps

    def test_build_competitor_gap_weaknesses(self, make_fetcher):
        engine = AuditEngine(fetcher=make_fetcher({}))
        primary = engine.analyze_html(PRIMARY_URL, PERFECT_PAGE_HTML, elapsed_ms=300)
        competitor = engine.analyze_html(COMPETITOR_URL, NOINDEX_PAGE_HTML, elapsed_ms=300)

        gap = build_competitor_gap(primary, competitor)

        assert "Page Blocked from Indexing" in gap.weaknesses
        assert "Fix Critical Technical Issues" in gap.strengths
        assert gap.gaps == []

    @pytest.mark.asyncio
    async def test_competitor_failure_is_wrapped(self, make_fetcher):
        engine = AuditEngine(fetcher=make_fetcher({PRIMARY_URL: PERFECT_PAGE_HTML}))
        primary = await engine.analyze_page(PRIMARY_URL)

        with pytest.raises(CompetitorAnalysisFailure) as exc_info:
            await engine.analyze_competitor(COMPETITOR_URL, primary)

        gap = exc_info.value.to_gap()
        assert gap["url"] == COMPETITOR_URL
        assert gap["error"].startswith("Analysis failed: Failed to fetch page")
        assert set(gap) == {"url", "error"}
