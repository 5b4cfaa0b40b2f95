"""
Issue tracker collaborator.

The export pipeline consumes issues and sprints as plain data. A tracker
client implements IssueTrackerClient; the helpers here normalize raw Jira
REST payloads into the pipeline's Issue and Sprint models.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from sprint_export.errors import InputValidationError
from sprint_export.models import Issue


STORY_POINTS_FIELD = "customfield_10127"
EPIC_NAME_FIELD = "customfield_10015"
RELEASE_NOTES_FIELD = "customfield_10113"

ISSUE_FIELDS = [
    "summary",
    "description",
    "status",
    "assignee",
    "issuetype",
    "parent",
    "issuelinks",
    "epic",
    STORY_POINTS_FIELD,
    EPIC_NAME_FIELD,
    RELEASE_NOTES_FIELD,
]

_ISSUE_KEY = re.compile(r"^[A-Z]+-\d+")


class Sprint(BaseModel):
    """Normalized sprint record."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    state: Literal["active", "closed", "future"]
    start_date: Optional[str] = Field(default=None, description="ISO date (YYYY-MM-DD)")
    end_date: Optional[str] = Field(default=None, description="ISO date (YYYY-MM-DD)")
    board_id: str = "0"
    goal: Optional[str] = None


@runtime_checkable
class IssueTrackerClient(Protocol):
    """Source of sprint data. Network and auth live in the implementation."""

    async def fetch_sprints(self, board_id: str) -> List[Sprint]:
        ...

    async def fetch_sprint_issues(self, sprint_id: str) -> List[Issue]:
        ...


def _iso_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()


def _plain_text(value: Any) -> Optional[str]:
    """Flatten a description that may be a rich-text document."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, dict):
        if value.get("type") == "text":
            return value.get("text", "")
        parts = [_plain_text(child) or "" for child in value.get("content", [])]
        separator = "\n" if value.get("type") in ("doc", "bulletList", "orderedList") else ""
        return separator.join(part for part in parts if part)
    return str(value)


def normalize_jira_sprint(raw: Dict[str, Any]) -> Sprint:
    """Convert a Jira agile sprint payload into a Sprint."""
    if not isinstance(raw.get("id"), int) or not isinstance(raw.get("name"), str):
        raise InputValidationError(
            "Invalid sprint payload",
            field_name="sprint",
            expected="numeric id and string name",
        )
    board_id = raw.get("originBoardId")
    return Sprint(
        id=str(raw["id"]),
        name=raw["name"],
        state=raw.get("state", "future"),
        start_date=_iso_date(raw.get("startDate")),
        end_date=_iso_date(raw.get("endDate")),
        board_id=str(board_id) if board_id else "0",
        goal=raw.get("goal"),
    )


def normalize_jira_issue(raw: Dict[str, Any]) -> Issue:
    """Convert a Jira REST issue payload into an Issue.

    Epic information is taken from the ``epic`` field when present, then
    from the epic-name custom field, and finally from the parent issue.

    Raises:
        InputValidationError: If the payload lacks id, key or fields
    """
    fields = raw.get("fields")
    if not raw.get("id") or not raw.get("key") or not isinstance(fields, dict):
        raise InputValidationError(
            "Invalid issue payload",
            field_name="issue",
            expected="id, key and fields",
            actual=str(raw.get("key")),
        )

    epic_key = epic_name = epic_color = None
    epic = fields.get("epic")
    if epic:
        epic_key = epic.get("key")
        epic_name = epic.get("name")
        epic_color = (epic.get("color") or {}).get("key")
    else:
        custom_name = fields.get(EPIC_NAME_FIELD)
        if isinstance(custom_name, str) and custom_name:
            epic_name = custom_name
            if _ISSUE_KEY.match(custom_name):
                epic_key = custom_name

    parent = fields.get("parent")
    if not epic_key and not epic_name and parent:
        epic_key = parent.get("key")
        epic_name = (parent.get("fields") or {}).get("summary")

    points = fields.get(STORY_POINTS_FIELD)
    return Issue(
        id=str(raw["id"]),
        key=raw["key"],
        summary=fields.get("summary") or "",
        description=_plain_text(fields.get("description")),
        status=(fields.get("status") or {}).get("name", ""),
        assignee=(fields.get("assignee") or {}).get("displayName"),
        story_points=float(points) if isinstance(points, (int, float)) else None,
        issue_type=(fields.get("issuetype") or {}).get("name", "Story"),
        is_subtask=bool(parent),
        epic_key=epic_key,
        epic_name=epic_name,
        epic_color=epic_color,
        release_notes=_plain_text(fields.get(RELEASE_NOTES_FIELD)),
    )


def normalize_search_response(data: Dict[str, Any]) -> List[Issue]:
    """Normalize every issue of a Jira search response."""
    issues = data.get("issues") if isinstance(data, dict) else None
    if not isinstance(issues, list):
        raise InputValidationError("Invalid response format from issue search", field_name="issues")
    return [normalize_jira_issue(issue) for issue in issues]
