"""Data models for the sprint export pipeline."""

from sprint_export.models.presentation import (
    Issue,
    Presentation,
    PresentationMetadata,
    Slide,
    SlideContent,
    SlideType,
    SprintMetrics,
)
from sprint_export.models.bundle import ExportBundle
from sprint_export.models.export import (
    ExportFormat,
    ExportMetadata,
    ExportOptions,
    ExportProgress,
    ExportResult,
    OUTPUT_AFFECTING_FIELDS,
    ProgressStage,
    QualityTier,
    check_file_name,
)

__all__ = [
    "ExportBundle",
    "Issue",
    "Presentation",
    "PresentationMetadata",
    "Slide",
    "SlideContent",
    "SlideType",
    "SprintMetrics",
    "ExportFormat",
    "ExportMetadata",
    "ExportOptions",
    "ExportProgress",
    "ExportResult",
    "OUTPUT_AFFECTING_FIELDS",
    "ProgressStage",
    "QualityTier",
    "check_file_name",
]
