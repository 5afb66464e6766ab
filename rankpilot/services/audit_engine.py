"""
RankPilot Audit Engine - single-page SEO analysis

Pipeline: fetch -> parse -> five heuristic analyzers -> recommendations ->
composite score. The composite is the unweighted, rounded mean of the five
sub-scores:

1. Page Speed
2. SEO Basics
3. Content Quality
4. Technical SEO
5. Mobile Optimization
"""

import logging
from dataclasses import dataclass, field

from rankpilot.core.exceptions import AnalysisFailure, CompetitorAnalysisFailure
from rankpilot.core.rounding import round_half_up
from rankpilot.services.analyzers import ANALYZERS, AnalysisContext, Impact, Issue
from rankpilot.services.document import ParsedDocument
from rankpilot.services.fetcher import PageFetcher
from rankpilot.services.recommendations import Priority, Recommendation, generate_recommendations

logger = logging.getLogger(__name__)


@dataclass
class AuditMetrics:
    page_speed: int
    seo_basics: int
    content_quality: int
    technical_seo: int
    mobile_optimization: int

    def values(self) -> list[int]:
        return [
            self.page_speed,
            self.seo_basics,
            self.content_quality,
            self.technical_seo,
            self.mobile_optimization,
        ]

    def to_dict(self) -> dict[str, int]:
        return {
            "page_speed": self.page_speed,
            "seo_basics": self.seo_basics,
            "content_quality": self.content_quality,
            "technical_seo": self.technical_seo,
            "mobile_optimization": self.mobile_optimization,
        }


@dataclass
class SEOAnalysisResult:
    url: str
    score: int
    metrics: AuditMetrics
    issues: list[Issue] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    elapsed_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "score": self.score,
            "metrics": self.metrics.to_dict(),
            "issues": [i.to_dict() for i in self.issues],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass
class CompetitorGap:
    """How a competitor page compares with the primary audited page."""
    url: str
    score: int
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "score": self.score,
            "strengths": self.strengths,
            "weaknesses": self.weaknesses,
            "gaps": self.gaps,
        }


def composite_score(metrics: AuditMetrics) -> int:
    values = metrics.values()
    return round_half_up(sum(values) / len(values))


def build_competitor_gap(primary: SEOAnalysisResult, competitor: SEOAnalysisResult) -> CompetitorGap:
    return CompetitorGap(
        url=competitor.url,
        score=competitor.score,
        strengths=[r.title for r in competitor.recommendations if r.priority == Priority.HIGH],
        weaknesses=[i.title for i in competitor.issues if i.impact == Impact.HIGH],
        gaps=[r.title for r in primary.recommendations if r.priority == Priority.HIGH],
    )


class AuditEngine:
    """Orchestrates fetch, parse, analyzers and recommendations for one URL."""

    def __init__(self, fetcher: PageFetcher | None = None):
        self.fetcher = fetcher or PageFetcher()

    async def analyze_page(self, url: str) -> SEOAnalysisResult:
        """Fetch and analyze ``url``.

        Fetch errors (FetchTimeout, NetworkError, UpstreamHTTPError) propagate
        unchanged; anything else going wrong after the fetch is raised as
        AnalysisFailure.
        """
        logger.info(f"Starting SEO analysis for: {url}")

        page = await self.fetcher.fetch(url)

        try:
            result = self.analyze_html(url, page.html, page.elapsed_ms)
        except Exception as e:
            logger.error(f"Analysis of {url} failed: {type(e).__name__}: {e}")
            raise AnalysisFailure(url, f"Analysis failed: {e}") from e

        logger.info(f"SEO analysis completed for {url}. Score: {result.score}/100 ({len(result.issues)} issues)")
        return result

    def analyze_html(self, url: str, html: str, elapsed_ms: int = 0) -> SEOAnalysisResult:
        """Analyze already-fetched HTML. Pure: same input, same result."""
        document = ParsedDocument.from_html(url, html)
        context = AnalysisContext(url=url, elapsed_ms=elapsed_ms)

        scores: dict[str, int] = {}
        issues: list[Issue] = []
        for name, analyzer in ANALYZERS:
            result = analyzer(document, context)
            scores[name] = result.score
            issues.extend(result.issues)

        metrics = AuditMetrics(**scores)
        return SEOAnalysisResult(
            url=url,
            score=composite_score(metrics),
            metrics=metrics,
            issues=issues,
            recommendations=generate_recommendations(issues),
            elapsed_ms=elapsed_ms,
        )

    async def analyze_competitor(self, url: str, primary: SEOAnalysisResult) -> CompetitorGap:
        """Analyze a competitor page; any failure surfaces as CompetitorAnalysisFailure."""
        try:
            competitor = await self.analyze_page(url)
        except Exception as e:
            raise CompetitorAnalysisFailure(url, str(e)) from e
        return build_competitor_gap(primary, competitor)
