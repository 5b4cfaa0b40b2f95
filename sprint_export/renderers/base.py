"""
Base renderer class for export formats.

Provides common functionality for all renderers including:
- Result assembly (file name, size, metadata)
- Progress reporting proportional to slide count
- Per-slide partial failure handling
- Cooperative cancellation between slides
"""

import inspect
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from sprint_export.errors import ExportCancelledError
from sprint_export.models import (
    ExportMetadata,
    ExportOptions,
    ExportProgress,
    ExportResult,
    Issue,
    Presentation,
    ProgressStage,
    Slide,
    SprintMetrics,
)
from sprint_export.renderers.assets import AssetEmbedder
from sprint_export.renderers.template_engine import TemplateEngine
from sprint_export.retry import CancellationToken


logger = logging.getLogger(__name__)


ProgressCallback = Callable[[ExportProgress], None]


FILE_EXTENSIONS: Dict[str, str] = {
    "pdf": "pdf",
    "html": "html",
    "markdown": "md",
    "metrics": "html",
    "executive": "html",
    "digest": "pdf",
    "advanced-digest": "pdf",
}

MIME_TYPES: Dict[str, str] = {
    "pdf": "application/pdf",
    "html": "text/html; charset=utf-8",
    "md": "text/markdown; charset=utf-8",
}


def sanitize_name(name: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return re.sub(r"[^a-zA-Z0-9]", "_", name or "Sprint")


@dataclass
class RendererConfig:
    """Shared collaborators for renderers.

    Attributes:
        template_engine: TemplateEngine for text formats
        asset_embedder: AssetEmbedder for slide images
    """
    template_engine: TemplateEngine = field(default_factory=TemplateEngine)
    asset_embedder: AssetEmbedder = field(default_factory=AssetEmbedder)


@dataclass
class RenderContext:
    """Inputs and scratch state of one render call."""
    presentation: Presentation
    issues: Sequence[Issue]
    upcoming_issues: Sequence[Issue]
    metrics: Optional[SprintMetrics]
    options: ExportOptions
    on_progress: Optional[ProgressCallback] = None
    cancel_token: Optional[CancellationToken] = None
    warnings: List[str] = field(default_factory=list)

    def issue_for(self, slide: Slide) -> Optional[Issue]:
        if not slide.story_id:
            return None
        for issue in self.issues:
            if slide.story_id in (issue.id, issue.key):
                return issue
        return None

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


class BaseRenderer(ABC):
    """Abstract base class for all export renderers.

    Subclasses must set ``format_name`` and implement the
    _render_content() coroutine returning the artifact bytes.
    """

    format_name: str = ""
    file_prefix = "Sprint_Review"

    def __init__(self, config: Optional[RendererConfig] = None):
        self.config = config or RendererConfig()
        self._template_engine = self.config.template_engine
        self._assets = self.config.asset_embedder

    @property
    def format(self) -> str:
        """Return the format key this renderer produces."""
        return self.format_name

    @property
    def extension(self) -> str:
        return FILE_EXTENSIONS.get(self.format, self.format)

    @property
    def mime_type(self) -> str:
        return MIME_TYPES.get(self.extension, "application/octet-stream")

    @abstractmethod
    async def _render_content(self, ctx: RenderContext) -> bytes:
        """Produce the artifact bytes."""
        ...

    async def render(
        self,
        presentation: Presentation,
        issues: Sequence[Issue],
        upcoming_issues: Sequence[Issue],
        metrics: Optional[SprintMetrics],
        options: ExportOptions,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExportResult:
        """Render a presentation into this renderer's format.

        Args:
            presentation: Presentation to render (never mutated)
            issues: All sprint issues
            upcoming_issues: Issues planned for the next sprint
            metrics: Optional sprint metrics
            options: Export options
            on_progress: Optional progress callback (percentages 0-100)
            cancel_token: Optional cancellation signal checked between slides

        Returns:
            ExportResult whose format equals this renderer's format key
        """
        start = time.perf_counter()
        ctx = RenderContext(
            presentation=presentation,
            issues=list(issues),
            upcoming_issues=list(upcoming_issues),
            metrics=metrics,
            options=options,
            on_progress=on_progress,
            cancel_token=cancel_token,
        )

        content = await self._render_content(ctx)
        self.report_progress(ctx, 1, 1, "Render complete", stage=ProgressStage.FINALIZING)

        return ExportResult(
            content=content,
            file_name=self.file_name(presentation, options),
            file_size=len(content),
            format=self.format,
            mime_type=self.mime_type,
            metadata=ExportMetadata(
                slide_count=self.slide_count(presentation),
                processing_time=(time.perf_counter() - start) * 1000,
                quality=options.quality,
                warnings=list(ctx.warnings),
            ),
        )

    def slide_count(self, presentation: Presentation) -> int:
        return len(presentation.slides)

    def file_name(self, presentation: Presentation, options: ExportOptions) -> str:
        if options.file_name:
            return options.file_name
        date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return f"{self.file_prefix}_{sanitize_name(presentation.sprint_name)}_{date}.{self.extension}"

    def report_progress(
        self,
        ctx: RenderContext,
        current: int,
        total: int,
        message: str,
        stage: ProgressStage = ProgressStage.RENDERING,
    ) -> None:
        if ctx.on_progress is None:
            return
        total = max(total, 1)
        ctx.on_progress(ExportProgress(
            current=current,
            total=total,
            stage=stage,
            message=message,
            percentage=min(100.0, current / total * 100),
        ))

    def check_cancelled(self, ctx: RenderContext) -> None:
        if ctx.cancel_token is not None and ctx.cancel_token.cancelled:
            raise ExportCancelledError(ctx.presentation.id)

    async def render_slides(
        self,
        ctx: RenderContext,
        render_one: Callable[[Slide, int], Any],
    ) -> List[Any]:
        """Render every slide in order, isolating per-slide failures.

        ``render_one`` may be sync or async. A slide that raises is replaced
        by a placeholder from ``slide_placeholder`` and recorded as a
        warning; progress is reported after each slide.
        """
        slides = ctx.presentation.ordered_slides()
        rendered = []
        for index, slide in enumerate(slides, start=1):
            self.check_cancelled(ctx)
            try:
                part = render_one(slide, index)
                if inspect.isawaitable(part):
                    part = await part
            except ExportCancelledError:
                raise
            except Exception as e:
                ctx.warn(f"Slide {slide.id} ({slide.title}) could not be rendered: {e}")
                part = self.slide_placeholder(slide, e)
            rendered.append(part)
            self.report_progress(ctx, index, len(slides), f"Rendered slide {index} of {len(slides)}")
        return rendered

    def slide_placeholder(self, slide: Slide, error: Exception) -> Any:
        return f"[Slide '{slide.title}' could not be rendered]"

    def base_context(self, ctx: RenderContext) -> Dict[str, Any]:
        """Template variables shared by the text renderers."""
        presentation = ctx.presentation
        return {
            "presentation": presentation,
            "sprint_name": presentation.sprint_name,
            "options": ctx.options,
            "metrics": ctx.metrics,
            "issues": ctx.issues,
            "upcoming_issues": ctx.upcoming_issues,
            "generated_at": datetime.now(timezone.utc),
        }
