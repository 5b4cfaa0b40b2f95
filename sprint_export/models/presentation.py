"""
Presentation and sprint data models.

These are the caller-owned inputs of an export: the generated presentation
(an ordered list of slides plus metadata), the normalized issue records the
slides refer to, and the optional sprint metrics collected from the user.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class SlideType(str, Enum):
    """Kinds of slide a presentation can carry."""
    TITLE = "title"
    SUMMARY = "summary"
    METRICS = "metrics"
    DEMO_STORY = "demo-story"
    CORPORATE = "corporate"
    CUSTOM = "custom"


class SlideContent(BaseModel):
    """Structured slide payload (e.g. a demo story's accomplishments)."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Payload discriminator, e.g. 'demo-story'")
    data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Arbitrary payload data"
    )

    def as_text(self) -> str:
        """Flatten the payload into readable text."""
        parts = []
        for key, value in self.data.items():
            if value in (None, ""):
                continue
            parts.append(f"{key}: {value}")
        return "\n".join(parts)


class Slide(BaseModel):
    """A single slide of a generated presentation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Slide identifier")
    title: str = Field(..., description="Slide title")
    content: Union[str, SlideContent] = Field(
        default="",
        description="Free text or structured payload"
    )
    type: SlideType = Field(..., description="Slide category")
    order: int = Field(default=0, description="Ordering index within the deck")
    corporate_slide_url: Optional[str] = Field(
        default=None,
        description="Image URL for corporate slides"
    )
    story_id: Optional[str] = Field(
        default=None,
        description="Issue id referenced by a demo-story slide"
    )

    @property
    def text(self) -> str:
        if isinstance(self.content, SlideContent):
            return self.content.as_text()
        return self.content


class PresentationMetadata(BaseModel):
    """Counts and labels describing a presentation."""

    model_config = ConfigDict(frozen=True)

    sprint_name: str = Field(default="", description="Name of the sprint")
    total_slides: int = Field(default=0, ge=0)
    has_metrics: bool = Field(default=False)
    demo_stories_count: int = Field(default=0, ge=0)
    custom_slides_count: int = Field(default=0, ge=0)


class Presentation(BaseModel):
    """A generated sprint review presentation.

    Immutable once handed to the export pipeline. The orchestrator still
    deep-copies it before passing it to a renderer so a misbehaving
    renderer cannot reach back into caller state.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Presentation identifier")
    title: str = Field(..., description="Presentation title")
    slides: List[Slide] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp"
    )
    metadata: PresentationMetadata = Field(default_factory=PresentationMetadata)

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return value.isoformat()

    @property
    def sprint_name(self) -> str:
        return self.metadata.sprint_name or self.title

    def ordered_slides(self) -> List[Slide]:
        """Return slides sorted by their ordering index."""
        return sorted(self.slides, key=lambda slide: slide.order)


class Issue(BaseModel):
    """Normalized issue-tracker record."""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    summary: str
    description: Optional[str] = None
    status: str = ""
    assignee: Optional[str] = None
    story_points: Optional[float] = None
    issue_type: str = "Story"
    is_subtask: bool = False
    epic_key: Optional[str] = None
    epic_name: Optional[str] = None
    epic_color: Optional[str] = None
    release_notes: Optional[str] = None


ChecklistValue = Literal["yes", "no", "partial", "na"]


class SprintMetrics(BaseModel):
    """User-entered sprint metrics and quality checklist."""

    model_config = ConfigDict(frozen=True)

    planned_items: int = 0
    estimated_points: float = 0
    carry_forward_points: float = 0
    committed_buffer_points: float = 0
    completed_buffer_points: float = 0
    test_coverage: float = Field(default=0, ge=0, le=100)
    sprint_number: str = ""
    completed_total_points: float = 0
    completed_adjusted_points: float = 0
    quality_checklist: Dict[str, ChecklistValue] = Field(default_factory=dict)
