"""
Export analytics.

The orchestrator reports every export's start and outcome to an
AnalyticsRecorder. Recording is fire-and-forget: the orchestrator logs and
drops any exception a recorder raises.

InMemoryAnalyticsRecorder keeps a bounded event log and derives usage,
error and health summaries from it.
"""

import logging
import threading
import time
import uuid
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol, runtime_checkable

from sprint_export.models import ExportResult


logger = logging.getLogger(__name__)


MAX_EVENTS = 10_000

TIME_RANGES = {
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
    "month": 30 * 24 * 60 * 60,
    "all": None,
}

EVENT_STARTED = "export_started"
EVENT_COMPLETED = "export_completed"
EVENT_FAILED = "export_failed"
EVENT_CANCELLED = "export_cancelled"

TERMINAL_EVENTS = (EVENT_COMPLETED, EVENT_FAILED, EVENT_CANCELLED)

ERROR_CATEGORIES = [
    ("Memory Error", ("memory",)),
    ("Timeout Error", ("timeout", "time out", "timed out")),
    ("Network Error", ("network", "connection")),
    ("Permission Error", ("permission", "access")),
    ("Format Error", ("format", "invalid")),
]


@runtime_checkable
class AnalyticsRecorder(Protocol):
    """Sink for export lifecycle events."""

    def track_export_start(self, export_id: str, format: str, quality: str, slide_count: int) -> None:
        ...

    def track_export_complete(self, export_id: str, result: ExportResult, processing_time: float) -> None:
        ...

    def track_export_failure(
        self,
        export_id: str,
        format: str,
        quality: str,
        slide_count: int,
        error_message: str,
        processing_time: float,
        cancelled: bool = False,
    ) -> None:
        ...


@dataclass(frozen=True)
class ExportEvent:
    """One recorded lifecycle event."""
    id: str
    export_id: str
    timestamp: float
    event_type: str
    format: str
    quality: str
    slide_count: int
    file_size: int = 0
    processing_time: float = 0.0
    success: bool = False
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def categorize_error(message: str) -> str:
    lowered = (message or "").lower()
    for category, keywords in ERROR_CATEGORIES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "General Error"


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _most_common(counter: Counter, default: str = "None") -> str:
    top = counter.most_common(1)
    return str(top[0][0]) if top else default


@dataclass
class InMemoryAnalyticsRecorder:
    """Bounded in-memory event log.

    Example:
        >>> recorder = InMemoryAnalyticsRecorder()
        >>> recorder.track_export_start("abc", "pdf", "high", 12)
        >>> recorder.get_metrics()["total_exports"]
        0
    """

    max_events: int = MAX_EVENTS
    clock: Callable[[], float] = time.time
    _events: Deque[ExportEvent] = field(init=False, repr=False)
    _lock: threading.Lock = field(init=False, repr=False, default_factory=threading.Lock)

    def __post_init__(self):
        if self.max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._events = deque(maxlen=self.max_events)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def track_export_start(self, export_id: str, format: str, quality: str, slide_count: int) -> None:
        self._track(ExportEvent(
            id=uuid.uuid4().hex,
            export_id=export_id,
            timestamp=self.clock(),
            event_type=EVENT_STARTED,
            format=format,
            quality=quality,
            slide_count=slide_count,
        ))

    def track_export_complete(self, export_id: str, result: ExportResult, processing_time: float) -> None:
        self._track(ExportEvent(
            id=uuid.uuid4().hex,
            export_id=export_id,
            timestamp=self.clock(),
            event_type=EVENT_COMPLETED,
            format=result.format,
            quality=result.metadata.quality,
            slide_count=result.metadata.slide_count,
            file_size=result.file_size,
            processing_time=processing_time,
            success=True,
        ))

    def track_export_failure(
        self,
        export_id: str,
        format: str,
        quality: str,
        slide_count: int,
        error_message: str,
        processing_time: float,
        cancelled: bool = False,
    ) -> None:
        self._track(ExportEvent(
            id=uuid.uuid4().hex,
            export_id=export_id,
            timestamp=self.clock(),
            event_type=EVENT_CANCELLED if cancelled else EVENT_FAILED,
            format=format,
            quality=quality,
            slide_count=slide_count,
            processing_time=processing_time,
            error_message=error_message,
        ))

    def _track(self, event: ExportEvent) -> None:
        with self._lock:
            self._events.append(event)
        logger.debug(f"Analytics event tracked: {event.event_type} for {event.format}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def events(self, time_range: str = "all") -> List[ExportEvent]:
        """Events within a time range (day, week, month or all).

        Raises:
            ValueError: If the time range is unknown
        """
        if time_range not in TIME_RANGES:
            raise ValueError(f"Unknown time range: {time_range}. Available: {list(TIME_RANGES)}")
        with self._lock:
            events = list(self._events)
        window = TIME_RANGES[time_range]
        if window is None:
            return events
        cutoff = self.clock() - window
        return [event for event in events if event.timestamp >= cutoff]

    def outcomes(self, time_range: str = "all") -> List[ExportEvent]:
        """Terminal events only (completed, failed, cancelled)."""
        return [event for event in self.events(time_range) if event.event_type in TERMINAL_EVENTS]

    def get_metrics(self, time_range: str = "all") -> Dict[str, Any]:
        events = self.events(time_range)
        outcomes = [event for event in events if event.event_type in TERMINAL_EVENTS]
        started = sum(1 for event in events if event.event_type == EVENT_STARTED)

        if not outcomes:
            return {
                "total_exports": 0,
                "started_exports": started,
                "successful_exports": 0,
                "failed_exports": 0,
                "cancelled_exports": 0,
                "average_processing_time": 0.0,
                "average_file_size": 0.0,
                "most_popular_format": "None",
                "most_popular_quality": "None",
                "average_slide_count": 0.0,
                "success_rate": 0.0,
                "peak_usage_hour": 0,
                "peak_usage_day": "None",
            }

        successful = [event for event in outcomes if event.success]
        timestamps = [datetime.fromtimestamp(event.timestamp, tz=timezone.utc) for event in outcomes]
        return {
            "total_exports": len(outcomes),
            "started_exports": started,
            "successful_exports": len(successful),
            "failed_exports": sum(1 for event in outcomes if event.event_type == EVENT_FAILED),
            "cancelled_exports": sum(1 for event in outcomes if event.event_type == EVENT_CANCELLED),
            "average_processing_time": _average([event.processing_time for event in outcomes]),
            "average_file_size": _average([event.file_size for event in successful]),
            "most_popular_format": _most_common(Counter(event.format for event in outcomes)),
            "most_popular_quality": _most_common(Counter(event.quality for event in outcomes)),
            "average_slide_count": _average([event.slide_count for event in outcomes]),
            "success_rate": len(successful) / len(outcomes) * 100,
            "peak_usage_hour": int(_most_common(Counter(ts.hour for ts in timestamps), "0")),
            "peak_usage_day": _most_common(Counter(ts.strftime("%A") for ts in timestamps)),
        }

    def get_usage_patterns(self, time_range: str = "all") -> List[Dict[str, Any]]:
        """Per-format usage, most used first."""
        outcomes = self.outcomes(time_range)
        groups: Dict[str, List[ExportEvent]] = {}
        for event in outcomes:
            groups.setdefault(event.format, []).append(event)

        patterns = []
        for format_name, events in groups.items():
            successful = [event for event in events if event.success]
            patterns.append({
                "format": format_name,
                "count": len(events),
                "percentage": len(events) / len(outcomes) * 100,
                "average_processing_time": _average([event.processing_time for event in events]),
                "average_file_size": _average([event.file_size for event in successful]),
                "success_rate": len(successful) / len(events) * 100,
            })
        return sorted(patterns, key=lambda pattern: pattern["count"], reverse=True)

    def get_error_analysis(self, time_range: str = "all") -> Dict[str, Any]:
        outcomes = self.outcomes(time_range)
        failed = [event for event in outcomes if not event.success and event.error_message]
        error_types = Counter(categorize_error(event.error_message) for event in failed)
        return {
            "total_errors": len(failed),
            "error_types": dict(error_types),
            "most_common_error": _most_common(error_types, "Unknown"),
            "error_rate": len(failed) / len(outcomes) * 100 if outcomes else 0.0,
        }

    def get_system_health(self) -> Dict[str, Any]:
        """Health rating over the last 24 hours."""
        recent = self.outcomes("day")
        if not recent:
            return {
                "overall_health": "good",
                "metrics": {
                    "success_rate": 100.0,
                    "average_response_time": 0.0,
                    "error_rate": 0.0,
                    "throughput": 0.0,
                },
                "recommendations": ["No recent activity to analyze"],
            }

        success_rate = sum(1 for event in recent if event.success) / len(recent) * 100
        response_time = _average([event.processing_time for event in recent])
        error_rate = 100 - success_rate
        throughput = len(recent) / 24

        if success_rate >= 95 and response_time < 10_000:
            health = "excellent"
        elif success_rate >= 85 and response_time < 30_000:
            health = "good"
        elif success_rate >= 70 and response_time < 60_000:
            health = "fair"
        else:
            health = "poor"

        recommendations = []
        if success_rate < 90:
            recommendations.append("Success rate is below target - investigate recent failures")
        if response_time > 30_000:
            recommendations.append("Average response time is high - consider optimization")
        if error_rate > 10:
            recommendations.append("Error rate is elevated - review error patterns")
        if throughput < 1:
            recommendations.append("Low throughput - consider performance improvements")

        return {
            "overall_health": health,
            "metrics": {
                "success_rate": success_rate,
                "average_response_time": response_time,
                "error_rate": error_rate,
                "throughput": throughput,
            },
            "recommendations": recommendations,
        }

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
