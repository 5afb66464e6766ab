"""
Unit tests for recommendation synthesis.
"""
from rankpilot.services.analyzers import Impact, Issue, IssueCategory, IssueType
from rankpilot.services.recommendations import (
    CONTENT_RECOMMENDATION,
    MOBILE_RECOMMENDATION,
    PERFORMANCE_RECOMMENDATION,
    TECHNICAL_RECOMMENDATION,
    Effort,
    Priority,
    generate_recommendations,
)


def _issue(category: IssueCategory, impact: Impact) -> Issue:
    return Issue(
        type=IssueType.WARNING,
        category=category,
        title="Some issue",
        description="Something is off.",
        impact=impact,
        fix="Fix it.",
    )


class TestGenerateRecommendations:
    """Test issue to recommendation mapping."""

    def test_no_issues(self):
        assert generate_recommendations([]) == []

    def test_high_impact_technical(self):
        recs = generate_recommendations([_issue(IssueCategory.TECHNICAL, Impact.HIGH)])

        assert recs == [TECHNICAL_RECOMMENDATION]
        assert recs[0].priority == Priority.HIGH
        assert recs[0].impact == 85

    def test_medium_impact_technical_is_ignored(self):
        assert generate_recommendations([_issue(IssueCategory.TECHNICAL, Impact.MEDIUM)]) == []

    def test_high_impact_content(self):
        recs = generate_recommendations([_issue(IssueCategory.CONTENT, Impact.HIGH)])

        assert recs == [CONTENT_RECOMMENDATION]
        assert recs[0].effort == Effort.HARD

    def test_any_mobile_issue(self):
        recs = generate_recommendations([_issue(IssueCategory.MOBILE, Impact.LOW)])

        assert recs == [MOBILE_RECOMMENDATION]
        assert recs[0].priority == Priority.MEDIUM

    def test_any_performance_issue(self):
        recs = generate_recommendations([_issue(IssueCategory.PERFORMANCE, Impact.LOW)])

        assert recs == [PERFORMANCE_RECOMMENDATION]

    def test_one_recommendation_per_category(self):
        issues = [
            _issue(IssueCategory.TECHNICAL, Impact.HIGH),
            _issue(IssueCategory.TECHNICAL, Impact.HIGH),
            _issue(IssueCategory.CONTENT, Impact.HIGH),
            _issue(IssueCategory.MOBILE, Impact.MEDIUM),
            _issue(IssueCategory.MOBILE, Impact.HIGH),
            _issue(IssueCategory.PERFORMANCE, Impact.MEDIUM),
        ]
        recs = generate_recommendations(issues)

        assert recs == [
            TECHNICAL_RECOMMENDATION,
            CONTENT_RECOMMENDATION,
            PERFORMANCE_RECOMMENDATION,
            MOBILE_RECOMMENDATION,
        ]

    def test_to_dict(self):
        data = MOBILE_RECOMMENDATION.to_dict()

        assert data == {
            "priority": "medium",
            "category": "Mobile",
            "title": "Enhance Mobile Experience",
            "description": "Improve mobile optimization for better mobile search rankings.",
            "effort": "medium",
            "impact": 65,
        }
