"""
Heuristic page analyzers.

Five independent scorers, each a pure function of a parsed document and the
fetch context:

1. Page speed (fetch latency buckets)
2. SEO basics (title, meta description, headings, image alt text)
3. Content quality (length, keyword stuffing)
4. Technical SEO (canonical, robots, structured data, internal links)
5. Mobile optimization (viewport, touch targets)

Every analyzer starts at 100 and subtracts a fixed or length-scaled penalty
per defect; the result is clamped to [0, 100]. A check that raises is logged
and omitted, so a single unreadable signal never fails the audit.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator
from urllib.parse import urljoin, urlparse

from rankpilot.services.document import ParsedDocument

logger = logging.getLogger(__name__)

MAX_SCORE = 100
MIN_SCORE = 0


class IssueType(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(str, Enum):
    TECHNICAL = "technical"
    CONTENT = "content"
    PERFORMANCE = "performance"
    MOBILE = "mobile"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Issue:
    type: IssueType
    category: IssueCategory
    title: str
    description: str
    impact: Impact
    fix: str

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "impact": self.impact.value,
            "fix": self.fix,
        }


@dataclass
class AnalysisContext:
    """Raw signals gathered alongside the document."""
    url: str
    elapsed_ms: int = 0


@dataclass
class AnalyzerResult:
    score: int
    issues: list[Issue] = field(default_factory=list)


# A check yields (penalty, issue) pairs for each defect it detects
Check = Callable[[ParsedDocument, AnalysisContext], Iterator[tuple[int, Issue]]]


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, score))


def run_checks(name: str, checks: list[Check], document: ParsedDocument, context: AnalysisContext) -> AnalyzerResult:
    """Apply ``checks`` from a base of 100, skipping any check that raises."""
    score = MAX_SCORE
    issues: list[Issue] = []

    for check in checks:
        try:
            findings = list(check(document, context))
        except Exception as e:
            logger.warning(f"{name}: {check.__name__} could not be evaluated for {context.url}: {type(e).__name__}: {e}")
            continue
        for penalty, issue in findings:
            score -= penalty
            issues.append(issue)

    return AnalyzerResult(score=clamp_score(score), issues=issues)


# =========================================================================
# Page Speed
# =========================================================================

# (upper bound in ms, score); anything slower scores SLOWEST_PAGE_SCORE
PAGE_SPEED_BUCKETS = [
    (500, 100),
    (1000, 90),
    (2000, 75),
    (3000, 60),
    (5000, 40),
]
SLOWEST_PAGE_SCORE = 20


def score_response_time(elapsed_ms: int) -> int:
    for upper_bound, score in PAGE_SPEED_BUCKETS:
        if elapsed_ms < upper_bound:
            return score
    return SLOWEST_PAGE_SCORE


def analyze_page_speed(document: ParsedDocument, context: AnalysisContext) -> AnalyzerResult:
    """Score derived purely from fetch latency; produces no issues."""
    return AnalyzerResult(score=score_response_time(context.elapsed_ms))


# =========================================================================
# SEO Basics
# =========================================================================

TITLE_MAX_LENGTH = 60
META_DESCRIPTION_MAX_LENGTH = 160
ALT_TEXT_PENALTY_PER_IMAGE = 2
ALT_TEXT_PENALTY_CAP = 10


def _check_title(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    title = document.title()
    if not title:
        yield 15, Issue(
            type=IssueType.ERROR,
            category=IssueCategory.TECHNICAL,
            title="Missing Title Tag",
            description="Every page should have a unique, descriptive title tag.",
            impact=Impact.HIGH,
            fix="Add a unique title tag that describes the page content (50-60 characters).",
        )
    elif len(title) > TITLE_MAX_LENGTH:
        yield 5, Issue(
            type=IssueType.WARNING,
            category=IssueCategory.TECHNICAL,
            title="Title Too Long",
            description=f"Title tag is {len(title)} characters, longer than the recommended {TITLE_MAX_LENGTH}.",
            impact=Impact.MEDIUM,
            fix="Shorten the title to 50-60 characters for better display in search results.",
        )


def _check_meta_description(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    description = (document.meta_content("description") or "").strip()
    if not description:
        yield 10, Issue(
            type=IssueType.ERROR,
            category=IssueCategory.TECHNICAL,
            title="Missing Meta Description",
            description="Meta description helps with click-through rates from search results.",
            impact=Impact.HIGH,
            fix="Add a compelling meta description (150-160 characters) that summarizes the page content.",
        )
    elif len(description) > META_DESCRIPTION_MAX_LENGTH:
        yield 3, Issue(
            type=IssueType.WARNING,
            category=IssueCategory.TECHNICAL,
            title="Meta Description Too Long",
            description=f"Meta description exceeds recommended {META_DESCRIPTION_MAX_LENGTH} characters.",
            impact=Impact.MEDIUM,
            fix="Shorten the meta description to 150-160 characters.",
        )


def _check_h1(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    h1_count = len(document.soup.find_all("h1"))
    if h1_count == 0:
        yield 10, Issue(
            type=IssueType.ERROR,
            category=IssueCategory.CONTENT,
            title="Missing H1 Tag",
            description="Every page should have exactly one H1 tag.",
            impact=Impact.HIGH,
            fix="Add a single H1 tag that describes the main topic of the page.",
        )
    elif h1_count > 1:
        yield 5, Issue(
            type=IssueType.WARNING,
            category=IssueCategory.CONTENT,
            title="Multiple H1 Tags",
            description=f"Page has {h1_count} H1 tags, which can confuse search engines.",
            impact=Impact.MEDIUM,
            fix="Use only one H1 tag per page and use H2-H6 for other headings.",
        )


def _check_image_alt_text(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    missing_alt = [img for img in document.soup.find_all("img") if not img.get("alt")]
    if missing_alt:
        yield min(ALT_TEXT_PENALTY_CAP, len(missing_alt) * ALT_TEXT_PENALTY_PER_IMAGE), Issue(
            type=IssueType.WARNING,
            category=IssueCategory.TECHNICAL,
            title="Images Missing Alt Text",
            description=f"{len(missing_alt)} images are missing alt text.",
            impact=Impact.MEDIUM,
            fix="Add descriptive alt text to all images for accessibility and SEO.",
        )


def analyze_seo_basics(document: ParsedDocument, context: AnalysisContext) -> AnalyzerResult:
    return run_checks(
        "seo_basics",
        [_check_title, _check_meta_description, _check_h1, _check_image_alt_text],
        document,
        context,
    )


# =========================================================================
# Content Quality
# =========================================================================

THIN_CONTENT_WORDS = 300
SHORT_CONTENT_WORDS = 500
KEYWORD_MIN_LENGTH = 4
KEYWORD_DENSITY_LIMIT = 5.0


def candidate_keywords(document: ParsedDocument) -> list[str]:
    """Distinct words longer than three characters from the title and first H1."""
    words = document.title().lower().split() + document.first_h1().lower().split()
    return list(dict.fromkeys(w for w in words if len(w) >= KEYWORD_MIN_LENGTH))


def _check_content_length(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    word_count = len(document.main_text().split())
    if word_count < THIN_CONTENT_WORDS:
        yield 15, Issue(
            type=IssueType.WARNING,
            category=IssueCategory.CONTENT,
            title="Content Too Short",
            description=f"Page has only {word_count} words. Longer content typically ranks better.",
            impact=Impact.MEDIUM,
            fix="Add more valuable, relevant content to provide comprehensive information.",
        )
    elif word_count < SHORT_CONTENT_WORDS:
        yield 5, Issue(
            type=IssueType.INFO,
            category=IssueCategory.CONTENT,
            title="Content Could Be Longer",
            description=f"Page has {word_count} words. Consider adding more content for better rankings.",
            impact=Impact.LOW,
            fix="Expand the content with more detailed information and examples.",
        )


def _check_keyword_stuffing(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    content = document.main_text().lower()
    word_count = len(content.split())
    if word_count == 0:
        return

    for keyword in candidate_keywords(document):
        keyword_count = len(re.findall(re.escape(keyword), content))
        density = keyword_count / word_count * 100
        if density > KEYWORD_DENSITY_LIMIT:
            yield 10, Issue(
                type=IssueType.WARNING,
                category=IssueCategory.CONTENT,
                title="Potential Keyword Stuffing",
                description=f'Keyword "{keyword}" appears {keyword_count} times ({density:.1f}% density).',
                impact=Impact.MEDIUM,
                fix="Reduce keyword density to 1-3% and focus on natural, valuable content.",
            )


def analyze_content_quality(document: ParsedDocument, context: AnalysisContext) -> AnalyzerResult:
    return run_checks(
        "content_quality",
        [_check_content_length, _check_keyword_stuffing],
        document,
        context,
    )


# =========================================================================
# Technical SEO
# =========================================================================

MIN_INTERNAL_LINKS = 3


def is_internal_link(href: str, page_url: str, host: str) -> bool:
    """Root-relative links and links resolving to the page's own host."""
    href = href.strip()
    if not href or href.startswith(("#", "mailto:", "tel:", "javascript:")):
        return False
    if href.startswith("/") and not href.startswith("//"):
        return True
    parsed = urlparse(urljoin(page_url, href))
    return parsed.scheme in ("http", "https") and (parsed.hostname or "").lower() == host


def _check_canonical(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    if document.soup.find("link", rel="canonical") is None:
        yield 5, Issue(
            type=IssueType.WARNING,
            category=IssueCategory.TECHNICAL,
            title="Missing Canonical URL",
            description="Canonical URL helps prevent duplicate content issues.",
            impact=Impact.MEDIUM,
            fix="Add a canonical URL pointing to the preferred version of this page.",
        )


def _check_robots_noindex(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    robots = document.meta_content("robots")
    if robots and "noindex" in robots.lower():
        yield 50, Issue(
            type=IssueType.ERROR,
            category=IssueCategory.TECHNICAL,
            title="Page Blocked from Indexing",
            description="This page is set to not be indexed by search engines.",
            impact=Impact.HIGH,
            fix='Remove "noindex" from robots meta tag if you want this page to rank in search results.',
        )


def _check_structured_data(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    if not document.soup.find_all("script", type="application/ld+json"):
        yield 3, Issue(
            type=IssueType.INFO,
            category=IssueCategory.TECHNICAL,
            title="No Structured Data",
            description="Structured data helps search engines understand your content better.",
            impact=Impact.LOW,
            fix="Add structured data (JSON-LD) to help search engines understand your content.",
        )


def _check_internal_links(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    host = document.host
    internal_links = [
        a for a in document.soup.find_all("a", href=True)
        if is_internal_link(a["href"], document.url, host)
    ]
    if len(internal_links) < MIN_INTERNAL_LINKS:
        yield 3, Issue(
            type=IssueType.INFO,
            category=IssueCategory.TECHNICAL,
            title="Few Internal Links",
            description=f"Page has only {len(internal_links)} internal links.",
            impact=Impact.LOW,
            fix="Add more internal links to help users navigate and improve SEO.",
        )


def analyze_technical_seo(document: ParsedDocument, context: AnalysisContext) -> AnalyzerResult:
    return run_checks(
        "technical_seo",
        [_check_canonical, _check_robots_noindex, _check_structured_data, _check_internal_links],
        document,
        context,
    )


# =========================================================================
# Mobile Optimization
# =========================================================================

MIN_TOUCH_TARGET_PX = 44
_WIDTH_RE = re.compile(r"width:\s*(\d+)px")
_HEIGHT_RE = re.compile(r"height:\s*(\d+)px")


def _is_small_touch_target(tag) -> bool:
    style = tag.get("style") or ""
    for pattern in (_WIDTH_RE, _HEIGHT_RE):
        match = pattern.search(style)
        if match and int(match.group(1)) < MIN_TOUCH_TARGET_PX:
            return True
    return False


def _clickable_elements(document: ParsedDocument) -> list:
    elements = document.soup.find_all(["button", "a"])
    elements += [
        tag for tag in document.soup.find_all("input")
        if (tag.get("type") or "").lower() in ("button", "submit")
    ]
    return elements


def _check_viewport(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    if document.soup.find("meta", attrs={"name": "viewport"}) is None:
        yield 20, Issue(
            type=IssueType.ERROR,
            category=IssueCategory.MOBILE,
            title="Missing Viewport Meta Tag",
            description="Viewport meta tag is essential for mobile optimization.",
            impact=Impact.HIGH,
            fix='Add viewport meta tag: <meta name="viewport" content="width=device-width, initial-scale=1">',
        )


def _check_touch_targets(document: ParsedDocument, context: AnalysisContext) -> Iterator[tuple[int, Issue]]:
    small = [tag for tag in _clickable_elements(document) if _is_small_touch_target(tag)]
    if small:
        # Flat penalty regardless of how many targets are undersized
        yield 10, Issue(
            type=IssueType.WARNING,
            category=IssueCategory.MOBILE,
            title="Small Touch Targets",
            description=f"{len(small)} elements may be too small for mobile users.",
            impact=Impact.MEDIUM,
            fix=f"Ensure all clickable elements are at least {MIN_TOUCH_TARGET_PX}x{MIN_TOUCH_TARGET_PX} pixels for mobile usability.",
        )


def analyze_mobile_optimization(document: ParsedDocument, context: AnalysisContext) -> AnalyzerResult:
    return run_checks(
        "mobile_optimization",
        [_check_viewport, _check_touch_targets],
        document,
        context,
    )


# Fixed evaluation order; order does not change scores, only issue ordering
ANALYZERS: tuple[tuple[str, Callable[[ParsedDocument, AnalysisContext], AnalyzerResult]], ...] = (
    ("page_speed", analyze_page_speed),
    ("seo_basics", analyze_seo_basics),
    ("content_quality", analyze_content_quality),
    ("technical_seo", analyze_technical_seo),
    ("mobile_optimization", analyze_mobile_optimization),
)
