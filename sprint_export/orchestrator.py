"""
Export Orchestrator

Coordinates one export call across all pipeline components:
request validation, cache lookup, renderer selection, the retry loop,
post-processing, caching and the quality gate.

Every collaborator is passed in explicitly so that several isolated
pipelines can live in one process.
"""

import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from sprint_export.analytics import AnalyticsRecorder
from sprint_export.cache import ResultCache, generate_cache_key
from sprint_export.classifier import ErrorClassifier
from sprint_export.errors import (
    ErrorContext,
    ExportCancelledError,
    ExportError,
    ExportFailedError,
    InputValidationError,
    RendererNotFoundError,
    RenderTimeoutError,
)
from sprint_export.models import (
    ExportFormat,
    ExportOptions,
    ExportProgress,
    ExportResult,
    Issue,
    Presentation,
    PresentationMetadata,
    ProgressStage,
    Slide,
    SlideType,
    SprintMetrics,
)
from sprint_export.quality import QualityGate, QualityReport
from sprint_export.renderers import BaseRenderer, RendererRegistry
from sprint_export.retry import CancellationToken, RecoveryStrategy, RetryContext, SleepFunc
from sprint_export.validation import ensure_valid_request


logger = logging.getLogger(__name__)


ProgressCallback = Callable[[ExportProgress], None]

MAX_STORED_REPORTS = 100

# Percentage band each stage occupies on the overall progress bar.
STAGE_BANDS: Dict[ProgressStage, Tuple[float, float]] = {
    ProgressStage.PREPARING: (0.0, 10.0),
    ProgressStage.RENDERING: (10.0, 80.0),
    ProgressStage.PROCESSING: (80.0, 95.0),
    ProgressStage.FINALIZING: (95.0, 100.0),
}


class ProgressTracker:
    """Maps stage-local progress onto one monotonic 0-100 stream.

    Renderer progress (0-100 within the render) lands in the rendering
    band. Percentages never go backwards, including across retries. The
    callback is called synchronously and anything it raises is logged and
    dropped.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.percentage = 0.0

    def emit(
        self,
        stage: ProgressStage,
        fraction: float,
        message: str,
        current: int = 0,
        total: int = 1,
    ) -> None:
        low, high = STAGE_BANDS[stage]
        fraction = min(max(fraction, 0.0), 1.0)
        self.percentage = max(self.percentage, round(low + (high - low) * fraction, 2))
        if self.callback is None:
            return

        event = ExportProgress(
            current=current,
            total=max(total, 1),
            stage=stage,
            message=message,
            percentage=self.percentage,
        )
        try:
            self.callback(event)
        except Exception as e:
            logger.warning(f"Progress callback raised {type(e).__name__}: {e}")

    def renderer_callback(self) -> ProgressCallback:
        """Callback handed to renderers."""
        def forward(event: ExportProgress) -> None:
            self.emit(
                ProgressStage.RENDERING,
                event.percentage / 100,
                event.message,
                current=event.current,
                total=event.total,
            )
        return forward


class ExportOrchestrator:
    """Runs exports through the full pipeline.

    Example:
        >>> orchestrator = ExportOrchestrator(registry, cache, classifier, gate)
        >>> result = await orchestrator.export(
        ...     presentation, issues, [], metrics, ExportOptions(format="markdown")
        ... )
        >>> result.format
        'markdown'
    """

    def __init__(
        self,
        registry: RendererRegistry,
        cache: ResultCache,
        classifier: ErrorClassifier,
        quality_gate: QualityGate,
        analytics: Optional[AnalyticsRecorder] = None,
        strategy: Optional[RecoveryStrategy] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize orchestrator.

        Args:
            registry: Renderer registry, populated before the first export
            cache: Result cache shared by all exports of this pipeline
            classifier: Error classifier holding the error history
            quality_gate: Gate run against every freshly rendered result
            analytics: Optional analytics recorder
            strategy: Retry policy (defaults to 3 attempts, 1s base delay)
            sleep: Awaitable sleep used for backoff (injectable for tests)
        """
        self.registry = registry
        self.cache = cache
        self.classifier = classifier
        self.quality_gate = quality_gate
        self.analytics = analytics
        self.strategy = strategy or RecoveryStrategy()
        self.sleep = sleep or asyncio.sleep
        self._reports: "OrderedDict[str, QualityReport]" = OrderedDict()

    async def export(
        self,
        presentation: Presentation,
        issues: Sequence[Issue],
        upcoming_issues: Sequence[Issue],
        metrics: Optional[SprintMetrics],
        options: ExportOptions,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExportResult:
        """Export a presentation.

        Args:
            presentation: Presentation to export (copied, never mutated)
            issues: All sprint issues (copied)
            upcoming_issues: Issues planned for the next sprint (copied)
            metrics: Optional sprint metrics
            options: Export options
            on_progress: Optional synchronous progress callback
            cancel_token: Optional cancellation signal, checked between attempts

        Returns:
            ExportResult, with the quality report attached when freshly rendered

        Raises:
            ExportFailedError: On invalid input, unknown format, a terminal
                failure or exhausted retries
            ExportCancelledError: If the export was cancelled
        """
        export_id = uuid.uuid4().hex
        start = time.perf_counter()
        progress = ProgressTracker(on_progress)

        presentation = presentation.model_copy(deep=True)
        issues = [issue.model_copy(deep=True) for issue in issues]
        upcoming_issues = [issue.model_copy(deep=True) for issue in upcoming_issues]
        metrics = metrics.model_copy(deep=True) if metrics is not None else None

        context = ErrorContext(
            format=options.format,
            quality=options.quality,
            slide_count=len(presentation.slides),
            export_id=export_id,
        )
        track = options.track_analytics

        logger.info(
            f"Starting {options.format} export {export_id[:8]} "
            f"({len(presentation.slides)} slides, quality={options.quality})"
        )
        progress.emit(ProgressStage.PREPARING, 0.0, "Validating export request")
        if track:
            self._notify(
                "track_export_start", export_id, options.format, options.quality, len(presentation.slides)
            )

        # 1. Input validation
        try:
            ensure_valid_request(presentation, options)
        except InputValidationError as e:
            error = self.classifier.classify(e, context, attempt=1)
            raise self._failed(error, e, 0, context, start, track) from e

        # 2. Cache lookup
        progress.emit(ProgressStage.PREPARING, 0.5, "Checking cache")
        cache_key = generate_cache_key(presentation, options)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(f"Cache hit for {options.format} export: {cache_key[:12]}")
            progress.emit(ProgressStage.FINALIZING, 1.0, "Export loaded from cache")
            self._succeeded(export_id, cached, start, track)
            return cached

        # 3. Renderer selection
        try:
            renderer = self.registry.get(options.format)
        except RendererNotFoundError as e:
            error = self.classifier.classify(e, context, attempt=1)
            raise self._failed(error, e, 0, context, start, track) from e
        progress.emit(ProgressStage.PREPARING, 1.0, f"Using {renderer.format} renderer")

        # 4. Retry loop
        result = await self._render_with_retry(
            renderer,
            presentation,
            issues,
            upcoming_issues,
            metrics,
            options,
            context,
            progress,
            cancel_token,
            start,
            track,
        )

        # 5. Post-processing
        progress.emit(ProgressStage.PROCESSING, 0.0, "Processing export result")
        result = result.with_metadata(
            processing_time=(time.perf_counter() - start) * 1000,
            slide_count=renderer.slide_count(presentation),
            quality=options.quality,
        )
        self.cache.set(cache_key, result, presentation, options)

        progress.emit(ProgressStage.PROCESSING, 0.5, "Running quality checks")
        report = self.quality_gate.validate(result, presentation, options)
        self._store_report(cache_key, report)
        if not report.passed:
            logger.warning(
                f"Quality gate failed for {options.format} export {export_id[:8]}: "
                f"{len(report.critical_failures)} critical issue(s), score {report.score}%"
            )
        elif report.failures:
            logger.info(
                f"Quality gate passed with {len(report.failures)} warning(s) "
                f"for {options.format} export {export_id[:8]}"
            )
        result = result.model_copy(update={"quality_report": report.to_dict()})

        progress.emit(ProgressStage.FINALIZING, 1.0, "Export complete")
        self._succeeded(export_id, result, start, track)
        return result

    async def export_executive_metrics(
        self,
        metrics: SprintMetrics,
        issues: Sequence[Issue],
        options: Optional[ExportOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        """Export the executive dashboard without a generated deck.

        Builds a one-slide summary presentation from the metrics.
        """
        options = options or ExportOptions(format=ExportFormat.EXECUTIVE.value)
        sprint_label = f"Sprint {metrics.sprint_number}" if metrics.sprint_number else "Executive Summary"
        presentation = Presentation(
            id=f"executive-{uuid.uuid4().hex[:8]}",
            title="Executive Metrics Dashboard",
            slides=[
                Slide(
                    id="executive-summary",
                    title="Executive Summary",
                    content=f"Executive metrics for {sprint_label}",
                    type=SlideType.SUMMARY,
                    order=0,
                )
            ],
            metadata=PresentationMetadata(
                sprint_name=sprint_label,
                total_slides=1,
                has_metrics=True,
            ),
        )
        return await self.export(presentation, issues, [], metrics, options, on_progress=on_progress)

    def last_quality_report(self, cache_key: str) -> Optional[QualityReport]:
        """Quality report of the most recent render for a cache key."""
        return self._reports.get(cache_key)

    async def _render_with_retry(
        self,
        renderer: BaseRenderer,
        presentation: Presentation,
        issues: Sequence[Issue],
        upcoming_issues: Sequence[Issue],
        metrics: Optional[SprintMetrics],
        options: ExportOptions,
        context: ErrorContext,
        progress: ProgressTracker,
        cancel_token: Optional[CancellationToken],
        start: float,
        track: bool,
    ) -> ExportResult:
        retry_ctx = RetryContext(self.strategy, sleep=self.sleep, cancel_token=cancel_token)

        for attempt in retry_ctx:
            if retry_ctx.cancelled:
                raise self._cancelled(context, attempt - 1, start, track)

            progress.emit(ProgressStage.RENDERING, 0.0, f"Rendering {options.format} (attempt {attempt})")
            try:
                return await asyncio.wait_for(
                    renderer.render(
                        presentation,
                        issues,
                        upcoming_issues,
                        metrics,
                        options,
                        on_progress=progress.renderer_callback(),
                        cancel_token=cancel_token,
                    ),
                    timeout=self.strategy.timeout,
                )
            except ExportCancelledError:
                raise self._cancelled(context, attempt, start, track)
            except asyncio.TimeoutError:
                raw: BaseException = RenderTimeoutError(options.format, self.strategy.timeout, attempt)
            except Exception as e:
                raw = e

            error = self.classifier.classify(raw, context, attempt=attempt)
            if not retry_ctx.should_retry(error):
                if retry_ctx.cancelled:
                    raise self._cancelled(context, attempt, start, track)
                raise self._failed(error, raw, attempt, context, start, track) from raw

            logger.warning(
                f"Export attempt {attempt}/{self.strategy.max_retries} failed "
                f"({error.code.value}): {error.message}"
            )
            await retry_ctx.wait()

        # max_retries >= 1, so the loop always returns or raises
        raise RuntimeError("Retry loop exited without a result")

    def _store_report(self, cache_key: str, report: QualityReport) -> None:
        self._reports[cache_key] = report
        self._reports.move_to_end(cache_key)
        while len(self._reports) > MAX_STORED_REPORTS:
            self._reports.popitem(last=False)

    def _failed(
        self,
        error: ExportError,
        raw: BaseException,
        attempts: int,
        context: ErrorContext,
        start: float,
        track: bool,
    ) -> ExportFailedError:
        message = self.classifier.user_message(error)
        suggestions = self.classifier.suggest_recovery_actions(error)
        logger.error(
            f"Export {context.export_id[:8]} failed after {attempts} attempt(s) "
            f"[{error.code.value}]: {error.message}"
        )
        self.classifier.record_outcome(False)
        if track:
            self._notify(
                "track_export_failure",
                context.export_id,
                context.format,
                context.quality,
                context.slide_count,
                error.message,
                (time.perf_counter() - start) * 1000,
            )
        return ExportFailedError(
            error,
            message,
            suggestions=suggestions,
            attempts=attempts,
            original_error=raw,
        )

    def _cancelled(
        self,
        context: ErrorContext,
        attempts: int,
        start: float,
        track: bool,
    ) -> ExportCancelledError:
        logger.info(f"Export {context.export_id[:8]} cancelled after {attempts} attempt(s)")
        self.classifier.record_outcome(False)
        if track:
            self._notify(
                "track_export_failure",
                context.export_id,
                context.format,
                context.quality,
                context.slide_count,
                "Export cancelled",
                (time.perf_counter() - start) * 1000,
                cancelled=True,
            )
        return ExportCancelledError(context.export_id, attempts)

    def _succeeded(self, export_id: str, result: ExportResult, start: float, track: bool) -> None:
        elapsed = (time.perf_counter() - start) * 1000
        logger.info(
            f"Export {export_id[:8]} complete: {result.file_name} "
            f"({result.file_size} bytes, {elapsed:.0f}ms)"
        )
        self.classifier.record_outcome(True)
        if track:
            self._notify("track_export_complete", export_id, result, elapsed)

    def _notify(self, method: str, *args: Any, **kwargs: Any) -> None:
        if self.analytics is None:
            return
        try:
            getattr(self.analytics, method)(*args, **kwargs)
        except Exception as e:
            logger.warning(f"Analytics {method} failed: {e}")
