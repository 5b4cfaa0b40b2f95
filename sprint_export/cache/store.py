"""
In-process result cache.

Maps export fingerprints to previously produced results. Bounded by a byte
budget, an entry budget and a TTL; eviction order comes from a pluggable
strategy that can be swapped at runtime without losing entries.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from sprint_export.cache.entry import CacheEntry
from sprint_export.cache.strategies import EvictionStrategy, LRUStrategy, get_strategy
from sprint_export.models import ExportOptions, ExportResult, Presentation


logger = logging.getLogger(__name__)


@dataclass
class CacheConfig:
    """Result cache limits.

    Attributes:
        max_size_bytes: Byte budget across all entries
        max_entries: Entry-count budget
        ttl_seconds: Age after which an entry counts as a miss
        cleanup_interval_seconds: Period of the background sweep
    """
    max_size_bytes: int = 100 * 1024 * 1024
    max_entries: int = 50
    ttl_seconds: float = 24 * 60 * 60
    cleanup_interval_seconds: float = 60 * 60

    def validate(self) -> List[str]:
        errors = []
        if self.max_size_bytes <= 0:
            errors.append("cache.max_size_bytes must be positive")
        if self.max_entries <= 0:
            errors.append("cache.max_entries must be positive")
        if self.ttl_seconds <= 0:
            errors.append("cache.ttl_seconds must be positive")
        if self.cleanup_interval_seconds <= 0:
            errors.append("cache.cleanup_interval_seconds must be positive")
        return errors


def format_file_size(size: float) -> str:
    """Format a byte count for display."""
    for unit in ("Bytes", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "Bytes" else f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"


class ResultCache:
    """Bounded, TTL-aware cache of export results.

    All bookkeeping (insert, evict, access count, hit/miss counters) is
    guarded by one re-entrant lock, so concurrent exports on the same key
    never observe a half-written entry or lose an update.

    Example:
        >>> cache = ResultCache()
        >>> cache.set(key, result, presentation, options)
        >>> cache.get(key) is result
        True
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        strategy: Optional[EvictionStrategy] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or CacheConfig()
        self._strategy = strategy or LRUStrategy()
        self._clock = clock or time.time
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._cleanup_task: Optional[asyncio.Task] = None

    # -- strategy -------------------------------------------------------

    @property
    def strategy(self) -> EvictionStrategy:
        return self._strategy

    def set_strategy(self, strategy: Union[str, EvictionStrategy]) -> None:
        """Swap the eviction strategy; stored entries are kept."""
        if isinstance(strategy, str):
            strategy = get_strategy(strategy)
        with self._lock:
            self._strategy = strategy
        logger.info(f"Cache strategy changed to: {strategy.name}")

    def record_memory_pressure(self, sample: float) -> None:
        with self._lock:
            self._strategy.record_memory_pressure(sample)

    # -- core operations ------------------------------------------------

    def get(self, key: str) -> Optional[ExportResult]:
        """Return the cached result, or None on a miss.

        Expired entries are removed lazily and count as misses.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            now = self._clock()
            if entry.is_expired(now, self.config.ttl_seconds):
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Cache entry expired: {key}")
                return None

            entry.access_count += 1
            entry.last_accessed = now
            self._hits += 1
            return entry.result

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry without touching statistics."""
        with self._lock:
            return self._entries.get(key)

    def set(
        self,
        key: str,
        result: ExportResult,
        presentation: Presentation,
        options: ExportOptions,
    ) -> bool:
        """Store a result.

        Returns:
            True if stored, False if the result alone exceeds the byte budget
        """
        size = result.file_size
        if size > self.config.max_size_bytes:
            logger.warning(
                f"Not caching {key}: {format_file_size(size)} exceeds the "
                f"{format_file_size(self.config.max_size_bytes)} cache budget"
            )
            return False

        with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            self._purge_expired(now)
            self._ensure_space(size, extra_entries=1)

            self._entries[key] = CacheEntry(
                key=key,
                result=result,
                presentation=presentation,
                options=options,
                timestamp=now,
                size=size,
                access_count=1,
                last_accessed=now,
            )

        logger.info(f"Cached export: {key} ({format_file_size(size)})")
        return True

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock(), self.config.ttl_seconds):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop all entries and reset hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Cache cleared")

    def cleanup(self) -> int:
        """Remove expired entries and enforce both budgets.

        Returns:
            Number of entries removed
        """
        with self._lock:
            before_count = len(self._entries)
            before_size = self._total_size()

            self._purge_expired(self._clock())
            self._ensure_space(0, extra_entries=0)

            removed = before_count - len(self._entries)
            freed = before_size - self._total_size()

        logger.info(f"Cache cleanup: {removed} entries removed, {format_file_size(freed)} freed")
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    # -- eviction -------------------------------------------------------

    def _total_size(self) -> int:
        return sum(entry.size for entry in self._entries.values())

    def _purge_expired(self, now: float) -> None:
        expired = [
            key for key, entry in self._entries.items()
            if entry.is_expired(now, self.config.ttl_seconds)
        ]
        for key in expired:
            del self._entries[key]

    def _ensure_space(self, required_size: int, extra_entries: int) -> None:
        current_size = self._total_size()
        fits = (
            current_size + required_size <= self.config.max_size_bytes
            and len(self._entries) + extra_entries <= self.config.max_entries
        )
        if fits:
            return

        freed = 0
        for entry in self._strategy.eviction_order(list(self._entries.values())):
            if (
                current_size - freed + required_size <= self.config.max_size_bytes
                and len(self._entries) + extra_entries <= self.config.max_entries
            ):
                break
            del self._entries[entry.key]
            freed += entry.size

        if freed:
            logger.info(f"Freed {format_file_size(freed)} from cache")

    # -- statistics -----------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """Return cumulative cache statistics."""
        with self._lock:
            entries = list(self._entries.values())
            hits, misses = self._hits, self._misses

        total_requests = hits + misses
        total_size = sum(entry.size for entry in entries)
        timestamps = [entry.timestamp for entry in entries]

        return {
            "total_entries": len(entries),
            "total_size": total_size,
            "hits": hits,
            "misses": misses,
            "hit_rate": hits / total_requests * 100 if total_requests else 0.0,
            "miss_rate": misses / total_requests * 100 if total_requests else 0.0,
            "average_entry_size": total_size / len(entries) if entries else 0.0,
            "oldest_entry": min(timestamps) if timestamps else None,
            "newest_entry": max(timestamps) if timestamps else None,
            "memory_usage": sum(entry.estimated_memory() for entry in entries),
            "strategy": self._strategy.name,
        }

    def entries(self) -> List[CacheEntry]:
        with self._lock:
            return list(self._entries.values())

    def get_most_accessed_entries(self, limit: int = 10) -> List[CacheEntry]:
        return sorted(self.entries(), key=lambda entry: entry.access_count, reverse=True)[:limit]

    def get_largest_entries(self, limit: int = 10) -> List[CacheEntry]:
        return sorted(self.entries(), key=lambda entry: entry.size, reverse=True)[:limit]

    def get_oldest_entries(self, limit: int = 10) -> List[CacheEntry]:
        return sorted(self.entries(), key=lambda entry: entry.timestamp)[:limit]

    def is_healthy(self) -> Dict[str, Any]:
        """Check fill levels and hit rate.

        Returns:
            Dict with ``healthy`` flag and a list of ``issues``
        """
        stats = self.get_stats()
        issues = []

        if stats["total_size"] > self.config.max_size_bytes * 0.9:
            issues.append("Cache is nearly full")
        if stats["hits"] + stats["misses"] > 0 and stats["hit_rate"] < 20:
            issues.append("Low cache hit rate")
        if stats["total_entries"] > self.config.max_entries * 0.9:
            issues.append("Cache has too many entries")

        return {"healthy": not issues, "issues": issues}

    # -- periodic cleanup -----------------------------------------------

    def start_cleanup_task(self) -> asyncio.Task:
        """Start the periodic cleanup sweep on the running event loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.get_running_loop().create_task(self._cleanup_loop())
        return self._cleanup_task

    async def stop_cleanup_task(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            self.cleanup()
