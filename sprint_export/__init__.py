"""
Sprint review export pipeline.

Renders sprint review presentations into PDF, HTML, Markdown, metrics,
executive and digest artifacts through a cached, retrying, quality-gated
orchestrator.
"""

from sprint_export.errors import ExportErrorCode, ExportFailedError, ExportPipelineError
from sprint_export.models import ExportOptions, ExportResult, Presentation
from sprint_export.orchestrator import ExportOrchestrator

__version__ = "0.1.0"

__all__ = [
    "ExportErrorCode",
    "ExportFailedError",
    "ExportPipelineError",
    "ExportOptions",
    "ExportResult",
    "Presentation",
    "ExportOrchestrator",
    "__version__",
]
