"""Cache entry record."""

from dataclasses import dataclass, field
from typing import Any, Dict

from sprint_export.models import ExportOptions, ExportResult, Presentation


@dataclass
class CacheEntry:
    """A cached export result plus its bookkeeping.

    ``result``, ``presentation`` and ``options`` are frozen models and are
    never replaced after insertion; only ``access_count`` and
    ``last_accessed`` change, and only under the owning cache's lock.
    """
    key: str
    result: ExportResult
    presentation: Presentation
    options: ExportOptions
    timestamp: float
    size: int
    access_count: int = 1
    last_accessed: float = field(default=0.0)

    def __post_init__(self):
        if not self.last_accessed:
            self.last_accessed = self.timestamp

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.timestamp > ttl_seconds

    def estimated_memory(self) -> int:
        """Approximate in-memory footprint in bytes."""
        return (
            self.size
            + len(self.presentation.model_dump_json())
            + len(self.options.model_dump_json())
            + 1000
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "format": self.result.format,
            "file_name": self.result.file_name,
            "size": self.size,
            "timestamp": self.timestamp,
            "access_count": self.access_count,
            "last_accessed": self.last_accessed,
        }
