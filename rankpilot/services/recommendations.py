"""
Recommendation synthesis.

Turns the combined issue list of an analysis into at most one recommendation
per category/priority tier. ``effort`` and ``impact`` are display hints for
ordering only; they never feed quota or billing.
"""

from dataclasses import dataclass
from enum import Enum

from rankpilot.services.analyzers import Impact, Issue, IssueCategory


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Effort(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class Recommendation:
    priority: Priority
    category: str
    title: str
    description: str
    effort: Effort
    impact: int

    def to_dict(self) -> dict:
        return {
            "priority": self.priority.value,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "effort": self.effort.value,
            "impact": self.impact,
        }


TECHNICAL_RECOMMENDATION = Recommendation(
    priority=Priority.HIGH,
    category="Technical SEO",
    title="Fix Critical Technical Issues",
    description="Address high-impact technical SEO issues to improve search rankings.",
    effort=Effort.MEDIUM,
    impact=85,
)

CONTENT_RECOMMENDATION = Recommendation(
    priority=Priority.HIGH,
    category="Content",
    title="Improve Content Quality",
    description="Enhance content to provide more value to users and search engines.",
    effort=Effort.HARD,
    impact=90,
)

PERFORMANCE_RECOMMENDATION = Recommendation(
    priority=Priority.MEDIUM,
    category="Performance",
    title="Optimize Page Speed",
    description="Improve page loading speed for better user experience and rankings.",
    effort=Effort.MEDIUM,
    impact=70,
)

MOBILE_RECOMMENDATION = Recommendation(
    priority=Priority.MEDIUM,
    category="Mobile",
    title="Enhance Mobile Experience",
    description="Improve mobile optimization for better mobile search rankings.",
    effort=Effort.MEDIUM,
    impact=65,
)


def generate_recommendations(issues: list[Issue]) -> list[Recommendation]:
    """Derive prioritized recommendations from the aggregated issue set."""
    by_category: dict[IssueCategory, list[Issue]] = {category: [] for category in IssueCategory}
    for issue in issues:
        by_category[issue.category].append(issue)

    recommendations = []

    # High priority
    if any(i.impact == Impact.HIGH for i in by_category[IssueCategory.TECHNICAL]):
        recommendations.append(TECHNICAL_RECOMMENDATION)
    if any(i.impact == Impact.HIGH for i in by_category[IssueCategory.CONTENT]):
        recommendations.append(CONTENT_RECOMMENDATION)

    # Medium priority
    if by_category[IssueCategory.PERFORMANCE]:
        recommendations.append(PERFORMANCE_RECOMMENDATION)
    if by_category[IssueCategory.MOBILE]:
        recommendations.append(MOBILE_RECOMMENDATION)

    return recommendations
