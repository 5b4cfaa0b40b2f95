"""
Tests for the sprint statistics helpers used by the renderers.
"""

import pytest

from sprint_export.models import Issue, SprintMetrics
from sprint_export.sprint_stats import (
    business_impact,
    checklist_quality_score,
    epic_breakdown,
    executive_metrics,
    executive_recommendations,
    group_counts,
    is_issue_completed,
    rating,
    sprint_summary,
    velocity_percent,
)


@pytest.mark.parametrize("status,expected", [
    ("Done", True),
    ("Closed", True),
    ("Resolved - Won't Fix", True),
    ("In Progress", False),
    ("", False),
    (None, False),
])
def test_is_issue_completed(status, expected):
    assert is_issue_completed(status) is expected


def test_epic_breakdown(issues):
    breakdown = epic_breakdown(issues)

    assert [epic.name for epic in breakdown] == ["Exports", "Other"]
    exports = breakdown[0]
    assert (exports.total, exports.completed) == (2, 1)
    assert (exports.total_points, exports.completed_points) == (11, 8)
    assert exports.percent == 50
    assert exports.to_dict()["percent_points"] == 73


def test_checklist_quality_score():
    assert checklist_quality_score({"a": "yes", "b": "partial", "c": "na"}) == 75
    assert checklist_quality_score({"a": "na"}) == 0
    assert checklist_quality_score({}) == 0


def test_rating():
    assert rating(95, 90, 75, 60) == "excellent"
    assert rating(80, 90, 75, 60) == "good"
    assert rating(60, 90, 75, 60) == "fair"
    assert rating(10, 90, 75, 60) == "poor"


def test_executive_metrics(issues, metrics):
    kpis = executive_metrics(metrics, issues)

    assert kpis.velocity == 77
    assert kpis.velocity_status == "good"
    assert kpis.quality_score == 75
    assert kpis.completion_rate == 67
    assert kpis.efficiency_score == 73


def test_executive_metrics_without_metrics(issues):
    assert executive_metrics(None, issues).velocity_status == "poor"


def test_business_impact(issues):
    impact = business_impact(issues)
    assert impact.completed_issues == 2
    assert impact.high_value_deliverables == 1
    assert impact.high_value_percentage == 80
    assert impact.bug_fixes == 0


def test_recommendations(issues, metrics):
    recommendations = executive_recommendations(metrics, issues)
    assert recommendations == ["Analyze blockers and dependencies to improve sprint completion rates"]

    on_track = SprintMetrics(estimated_points=10, completed_total_points=10, test_coverage=90,
                             quality_checklist={"review": "yes"})
    done = [Issue(id="1", key="A-1", summary="x", status="Done")]
    assert executive_recommendations(on_track, done) == ["Continue current practices - performance is on track"]


def test_sprint_summary(issues, metrics):
    summary = sprint_summary(metrics, issues)
    assert summary["total_issues"] == 3
    assert summary["completed_points"] == 10
    assert summary["completion_rate"] == 67


def test_group_counts(issues):
    by_type = group_counts(issues, "issue_type", "Other")
    assert [(group.name, group.total) for group in by_type] == [("Story", 2), ("Bug", 1)]

    by_assignee = group_counts(issues, "assignee", "Unassigned")
    assert by_assignee[-1].name == "Unassigned"


def test_velocity_percent(metrics):
    assert velocity_percent(metrics) == 76.9
    assert velocity_percent(None) == 0.0
    assert velocity_percent(SprintMetrics()) == 0.0
