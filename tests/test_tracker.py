"""
Tests for issue tracker payload normalization.
"""

from typing import List

import pytest

from sprint_export.errors import InputValidationError
from sprint_export.models import Issue
from sprint_export.tracker import (
    EPIC_NAME_FIELD,
    STORY_POINTS_FIELD,
    IssueTrackerClient,
    Sprint,
    normalize_jira_issue,
    normalize_jira_sprint,
    normalize_search_response,
)


def jira_issue(**fields):
    base = {
        "summary": "Retry failed exports",
        "status": {"name": "Done"},
        "assignee": {"displayName": "Dana"},
        "issuetype": {"name": "Story"},
        STORY_POINTS_FIELD: 5,
    }
    base.update(fields)
    return {"id": "10001", "key": "PROJ-1", "fields": base}


class TestNormalizeIssue:
    def test_basic_fields(self):
        issue = normalize_jira_issue(jira_issue())

        assert issue.key == "PROJ-1"
        assert issue.status == "Done"
        assert issue.assignee == "Dana"
        assert issue.story_points == 5.0
        assert issue.is_subtask is False
        assert issue.epic_key is None

    def test_epic_field_wins(self):
        issue = normalize_jira_issue(jira_issue(
            epic={"key": "PROJ-100", "name": "Exports", "color": {"key": "color_4"}},
            **{EPIC_NAME_FIELD: "Other epic"},
        ))
        assert (issue.epic_key, issue.epic_name, issue.epic_color) == ("PROJ-100", "Exports", "color_4")

    def test_custom_epic_name(self):
        named = normalize_jira_issue(jira_issue(**{EPIC_NAME_FIELD: "Platform"}))
        assert (named.epic_key, named.epic_name) == (None, "Platform")

        keyed = normalize_jira_issue(jira_issue(**{EPIC_NAME_FIELD: "PROJ-7"}))
        assert (keyed.epic_key, keyed.epic_name) == ("PROJ-7", "PROJ-7")

    def test_parent_as_epic(self):
        issue = normalize_jira_issue(jira_issue(
            parent={"key": "PROJ-200", "fields": {"summary": "Reporting"}},
        ))
        assert (issue.epic_key, issue.epic_name) == ("PROJ-200", "Reporting")
        assert issue.is_subtask is True

    def test_rich_text_description(self):
        description = {
            "type": "doc",
            "content": [
                {"type": "paragraph", "content": [
                    {"type": "text", "text": "First "},
                    {"type": "text", "text": "line"},
                ]},
                {"type": "paragraph", "content": [{"type": "text", "text": "Second"}]},
            ],
        }
        issue = normalize_jira_issue(jira_issue(description=description))
        assert issue.description == "First line\nSecond"

    def test_missing_optional_fields(self):
        raw = {"id": "1", "key": "PROJ-9", "fields": {"summary": "Bare", STORY_POINTS_FIELD: "n/a"}}
        issue = normalize_jira_issue(raw)
        assert issue.assignee is None
        assert issue.story_points is None
        assert issue.issue_type == "Story"

    @pytest.mark.parametrize("raw", [
        {"key": "PROJ-1", "fields": {}},
        {"id": "1", "fields": {}},
        {"id": "1", "key": "PROJ-1", "fields": None},
    ])
    def test_invalid_payload(self, raw):
        with pytest.raises(InputValidationError, match="Invalid issue payload"):
            normalize_jira_issue(raw)


class TestNormalizeSprint:
    def test_sprint(self):
        sprint = normalize_jira_sprint({
            "id": 42,
            "name": "Sprint 42",
            "state": "active",
            "startDate": "2026-03-02T09:00:00.000Z",
            "endDate": "2026-03-16T17:00:00.000Z",
            "originBoardId": 7,
        })
        assert sprint == Sprint(
            id="42", name="Sprint 42", state="active",
            start_date="2026-03-02", end_date="2026-03-16", board_id="7",
        )

    def test_defaults(self):
        sprint = normalize_jira_sprint({"id": 1, "name": "Next"})
        assert sprint.state == "future"
        assert sprint.board_id == "0"
        assert sprint.start_date is None

    def test_invalid(self):
        with pytest.raises(InputValidationError):
            normalize_jira_sprint({"id": "42", "name": "Sprint 42"})


def test_search_response():
    issues = normalize_search_response({"issues": [jira_issue()]})
    assert [issue.key for issue in issues] == ["PROJ-1"]

    with pytest.raises(InputValidationError, match="Invalid response format"):
        normalize_search_response({"total": 0})


class StaticTracker:
    def __init__(self, issues: List[Issue]):
        self.issues = issues

    async def fetch_sprints(self, board_id: str) -> List[Sprint]:
        return [Sprint(id="42", name="Sprint 42", state="active", board_id=board_id)]

    async def fetch_sprint_issues(self, sprint_id: str) -> List[Issue]:
        return self.issues


@pytest.mark.asyncio
async def test_tracker_protocol(issues):
    tracker = StaticTracker(issues)
    assert isinstance(tracker, IssueTrackerClient)
    assert not isinstance(object(), IssueTrackerClient)
    assert await tracker.fetch_sprint_issues("42") == issues
