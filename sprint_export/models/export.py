"""
Export request and result models.

ExportOptions describes a single export call; ExportResult is the artifact a
renderer produces; ExportProgress is the event shape handed to progress
callbacks.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sprint_export.errors import ExportErrorCode, InputValidationError


class ExportFormat(str, Enum):
    """Closed set of output formats."""
    PDF = "pdf"
    HTML = "html"
    MARKDOWN = "markdown"
    METRICS = "metrics"
    EXECUTIVE = "executive"
    DIGEST = "digest"
    ADVANCED_DIGEST = "advanced-digest"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class QualityTier(str, Enum):
    """Output quality tiers."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class ProgressStage(str, Enum):
    """Coarse stages reported through progress callbacks."""
    PREPARING = "preparing"
    RENDERING = "rendering"
    PROCESSING = "processing"
    FINALIZING = "finalizing"


MAX_FILE_NAME_LENGTH = 255


def check_file_name(value: Optional[str]) -> Optional[str]:
    """Validate an output file name override.

    The name must be a single path component: no directory separators, no
    control characters and not ``.`` or ``..``. Blank names mean "no
    override".

    Raises:
        ValueError: If the name cannot be used as a file name
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if "/" in value or "\\" in value:
        raise ValueError("file_name must not contain path separators")
    if any(ord(char) < 32 or ord(char) == 127 for char in value):
        raise ValueError("file_name must not contain control characters")
    if value in (".", ".."):
        raise ValueError("file_name must name a file")
    if len(value.encode("utf-8")) > MAX_FILE_NAME_LENGTH:
        raise ValueError(f"file_name must be at most {MAX_FILE_NAME_LENGTH} bytes")
    return value


# Options that change the bytes a renderer produces. Everything else on
# ExportOptions is bookkeeping and must not affect cache keys.
OUTPUT_AFFECTING_FIELDS = (
    "format",
    "quality",
    "include_images",
    "compression",
    "interactive",
)


class ExportOptions(BaseModel):
    """Options for a single export call.

    ``format`` and ``quality`` are kept as plain strings so that an
    unknown value reaches the orchestrator, which rejects it with a
    classified error instead of a schema error.
    """

    model_config = ConfigDict(frozen=True)

    format: str = Field(..., description="Target format (pdf, html, markdown, ...)")
    quality: str = Field(default=QualityTier.MEDIUM.value, description="low, medium or high")
    include_images: bool = Field(default=True, description="Embed slide images")
    compression: bool = Field(default=False, description="Compress output where supported")
    interactive: bool = Field(default=False, description="Allow scripts in HTML output")
    batch_size: int = Field(default=10, ge=1, description="Slides processed per batch")
    progressive: bool = Field(default=False, description="Progressive loading for large decks")
    executive_format: Optional[str] = Field(
        default=None,
        description="Sub-format for executive exports (html only)"
    )
    file_name: Optional[str] = Field(default=None, description="Override output file name")
    track_analytics: bool = Field(default=True, description="Emit analytics events")

    @field_validator("format", "quality")
    @classmethod
    def normalize(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, value: Optional[str]) -> Optional[str]:
        return check_file_name(value)

    @classmethod
    def parse(cls, raw: Dict[str, Any]) -> "ExportOptions":
        """Build options from raw values, rejecting unknown formats and tiers.

        Raises:
            InputValidationError: If the format or quality is not recognized,
                or the payload fails schema validation
        """
        try:
            options = cls.model_validate(raw)
        except ValidationError as e:
            raise InputValidationError(f"Invalid export options: {e}", field_name="options") from e
        if not options.is_known_format:
            raise InputValidationError(
                f"Unsupported export format: {options.format}",
                field_name="format",
                expected=", ".join(ExportFormat.values()),
                actual=options.format,
                code=ExportErrorCode.FORMAT_ERROR,
            )
        if not options.is_known_quality:
            raise InputValidationError(
                f"Invalid quality setting: {options.quality}",
                field_name="quality",
                expected=", ".join(QualityTier.values()),
                actual=options.quality,
            )
        return options

    def output_affecting(self) -> Dict[str, Any]:
        """Return the subset of options that affects output bytes."""
        return {name: getattr(self, name) for name in OUTPUT_AFFECTING_FIELDS}

    @property
    def is_known_format(self) -> bool:
        return self.format in ExportFormat.values()

    @property
    def is_known_quality(self) -> bool:
        return self.quality in QualityTier.values()


class ExportMetadata(BaseModel):
    """Metadata stamped onto every result."""

    model_config = ConfigDict(frozen=True)

    slide_count: int = 0
    processing_time: float = Field(default=0.0, description="Milliseconds spent rendering")
    quality: str = QualityTier.MEDIUM.value
    warnings: List[str] = Field(
        default_factory=list,
        description="Partial failures swallowed during rendering"
    )


class ExportResult(BaseModel):
    """A produced export artifact."""

    model_config = ConfigDict(frozen=True)

    content: bytes = Field(..., description="Artifact payload")
    file_name: str
    file_size: int = Field(..., ge=0)
    format: str
    mime_type: str = "application/octet-stream"
    metadata: ExportMetadata = Field(default_factory=ExportMetadata)
    quality_report: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Quality gate report attached after validation"
    )

    def with_metadata(self, **changes: Any) -> "ExportResult":
        """Return a copy with metadata fields replaced."""
        metadata = self.metadata.model_copy(update=changes)
        return self.model_copy(update={"metadata": metadata})

    def text(self, encoding: str = "utf-8") -> str:
        return self.content.decode(encoding, errors="replace")


class ExportProgress(BaseModel):
    """Progress event delivered to ``on_progress`` callbacks."""

    model_config = ConfigDict(frozen=True)

    current: int
    total: int
    stage: ProgressStage
    message: str = ""
    percentage: float = Field(..., ge=0, le=100)
