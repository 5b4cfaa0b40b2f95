"""
Sprint statistics shared by the renderers.

Completion checks, per-epic breakdowns, checklist scoring and the
executive KPI set. All functions are pure over their inputs.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from sprint_export.models import Issue, SprintMetrics


COMPLETED_STATUSES = ("done", "closed", "resolved")
HIGH_VALUE_POINTS = 8
NO_EPIC = "No Epic"


def is_issue_completed(status: Optional[str]) -> bool:
    """Check whether an issue status counts as completed."""
    lowered = (status or "").lower()
    return any(done in lowered for done in COMPLETED_STATUSES)


def completed_issues(issues: Iterable[Issue]) -> List[Issue]:
    return [issue for issue in issues if is_issue_completed(issue.status)]


def total_points(issues: Iterable[Issue]) -> float:
    return sum(issue.story_points or 0 for issue in issues)


def _percent(part: float, whole: float) -> int:
    return round(part / whole * 100) if whole else 0


@dataclass(frozen=True)
class EpicBreakdown:
    """Completion counts for the issues of one epic."""
    key: str
    name: str
    color: Optional[str]
    total: int
    completed: int
    total_points: float
    completed_points: float

    @property
    def percent(self) -> int:
        return _percent(self.completed, self.total)

    @property
    def percent_points(self) -> int:
        return _percent(self.completed_points, self.total_points)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["percent"] = self.percent
        data["percent_points"] = self.percent_points
        return data


def epic_breakdown(issues: Sequence[Issue]) -> List[EpicBreakdown]:
    """Group issues by epic, in first-seen order.

    Issues without an epic are grouped under "Other".
    """
    groups: Dict[str, List[Issue]] = {}
    names: Dict[str, str] = {}
    colors: Dict[str, Optional[str]] = {}

    for issue in issues:
        key = issue.epic_key or NO_EPIC
        if key not in groups:
            groups[key] = []
            names[key] = issue.epic_name or ("Other" if key == NO_EPIC else key)
            colors[key] = issue.epic_color
        groups[key].append(issue)

    breakdown = []
    for key, epic_issues in groups.items():
        done = completed_issues(epic_issues)
        breakdown.append(EpicBreakdown(
            key=key,
            name=names[key],
            color=colors[key],
            total=len(epic_issues),
            completed=len(done),
            total_points=total_points(epic_issues),
            completed_points=total_points(done),
        ))
    return breakdown


def checklist_quality_score(checklist: Dict[str, str]) -> int:
    """Score a quality checklist: yes=1, partial=0.5, no=0; "na" items are skipped."""
    weights = {"yes": 1.0, "partial": 0.5, "no": 0.0}
    items = [value for value in checklist.values() if value != "na"]
    if not items:
        return 0
    return round(sum(weights.get(value, 0.0) for value in items) / len(items) * 100)


def rating(score: float, excellent: float, good: float, fair: float) -> str:
    if score >= excellent:
        return "excellent"
    if score >= good:
        return "good"
    if score >= fair:
        return "fair"
    return "poor"


@dataclass(frozen=True)
class ExecutiveMetrics:
    """Headline KPIs for the executive summary."""
    velocity: int = 0
    velocity_status: str = "poor"
    quality_score: int = 0
    quality_status: str = "poor"
    completion_rate: int = 0
    completion_status: str = "poor"
    efficiency_score: int = 0
    efficiency_status: str = "poor"

    def to_dict(self) -> Dict:
        return asdict(self)


def executive_metrics(metrics: Optional[SprintMetrics], issues: Sequence[Issue]) -> ExecutiveMetrics:
    """Compute velocity, quality, completion and overall efficiency."""
    if metrics is None:
        return ExecutiveMetrics()

    velocity = _percent(metrics.completed_total_points, metrics.estimated_points)
    quality = checklist_quality_score(metrics.quality_checklist)
    completion = _percent(len(completed_issues(issues)), len(issues))
    efficiency = round((velocity + quality + completion) / 3)

    return ExecutiveMetrics(
        velocity=velocity,
        velocity_status=rating(velocity, 90, 75, 60),
        quality_score=quality,
        quality_status=rating(quality, 80, 60, 40),
        completion_rate=completion,
        completion_status=rating(completion, 90, 75, 60),
        efficiency_score=efficiency,
        efficiency_status=rating(efficiency, 80, 60, 40),
    )


@dataclass(frozen=True)
class BusinessImpact:
    """What the completed work delivered."""
    high_value_deliverables: int
    high_value_percentage: int
    completed_issues: int
    bug_fixes: int
    technical_debt: int

    def to_dict(self) -> Dict:
        return asdict(self)


def business_impact(issues: Sequence[Issue]) -> BusinessImpact:
    done = completed_issues(issues)
    high_value = [issue for issue in done if (issue.story_points or 0) >= HIGH_VALUE_POINTS]
    return BusinessImpact(
        high_value_deliverables=len(high_value),
        high_value_percentage=_percent(total_points(high_value), total_points(done)),
        completed_issues=len(done),
        bug_fixes=sum(1 for issue in done if issue.issue_type == "Bug"),
        technical_debt=sum(1 for issue in done if issue.issue_type == "Technical task"),
    )


def executive_recommendations(metrics: Optional[SprintMetrics], issues: Sequence[Issue]) -> List[str]:
    """Actionable recommendations derived from the sprint KPIs."""
    if metrics is None:
        return ["Implement sprint metrics tracking to improve visibility and decision-making"]

    kpis = executive_metrics(metrics, issues)
    recommendations = []

    if kpis.velocity < 75:
        recommendations.append(
            "Review sprint planning process to improve estimation accuracy and scope management"
        )
    if kpis.quality_score < 70:
        recommendations.append(
            "Strengthen quality gates and review processes to maintain high standards"
        )
    if kpis.completion_rate < 80:
        recommendations.append(
            "Analyze blockers and dependencies to improve sprint completion rates"
        )
    if metrics.test_coverage < 80:
        recommendations.append(
            "Increase test coverage through additional unit and integration testing"
        )

    return recommendations or ["Continue current practices - performance is on track"]


def sprint_summary(metrics: Optional[SprintMetrics], issues: Sequence[Issue]) -> Dict:
    """Flat summary used by several templates."""
    done = completed_issues(issues)
    return {
        "total_issues": len(issues),
        "completed_issues": len(done),
        "completion_rate": _percent(len(done), len(issues)),
        "total_points": total_points(issues),
        "completed_points": total_points(done),
        "test_coverage": metrics.test_coverage if metrics else None,
        "quality_score": checklist_quality_score(metrics.quality_checklist) if metrics else None,
    }


@dataclass(frozen=True)
class GroupCount:
    """Completed/total counts for one value of an issue attribute."""
    name: str
    total: int
    completed: int
    points: float


def group_counts(issues: Sequence[Issue], attribute: str, default: str) -> List[GroupCount]:
    """Group issues by an attribute (issue_type, assignee, ...) in first-seen order."""
    groups: Dict[str, List[Issue]] = {}
    for issue in issues:
        groups.setdefault(getattr(issue, attribute) or default, []).append(issue)
    return [
        GroupCount(
            name=name,
            total=len(members),
            completed=len(completed_issues(members)),
            points=total_points(members),
        )
        for name, members in groups.items()
    ]


def velocity_percent(metrics: Optional[SprintMetrics]) -> float:
    """Completed over estimated points, as a percentage with one decimal."""
    if metrics is None or not metrics.estimated_points:
        return 0.0
    return round(metrics.completed_total_points / metrics.estimated_points * 100, 1)
