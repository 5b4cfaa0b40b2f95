"""
Cache eviction strategies.

A strategy only decides the order in which entries are evicted; the cache
itself decides how many to evict. Swapping strategies therefore never
touches the stored entries.
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, Iterable, List, Type

from sprint_export.cache.entry import CacheEntry


class EvictionStrategy(ABC):
    """Orders cache entries from first-to-evict to last-to-evict."""

    name: str = ""

    @abstractmethod
    def eviction_order(self, entries: Iterable[CacheEntry]) -> List[CacheEntry]:
        """Return entries sorted so that the first one is evicted first."""
        pass

    def record_memory_pressure(self, sample: float) -> None:
        """Observe a memory-pressure sample in [0, 1]. Ignored by default."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LRUStrategy(EvictionStrategy):
    """Least recently accessed entries go first."""

    name = "lru"

    def eviction_order(self, entries: Iterable[CacheEntry]) -> List[CacheEntry]:
        return sorted(entries, key=lambda entry: (entry.last_accessed, entry.timestamp))


class FIFOStrategy(EvictionStrategy):
    """Oldest inserted entries go first."""

    name = "fifo"

    def eviction_order(self, entries: Iterable[CacheEntry]) -> List[CacheEntry]:
        return sorted(entries, key=lambda entry: entry.timestamp)


class AdaptiveStrategy(EvictionStrategy):
    """LRU under memory pressure, FIFO otherwise.

    The decision uses the mean of the most recent ``window`` samples; with
    no samples it behaves like FIFO.
    """

    name = "adaptive"

    def __init__(self, threshold: float = 0.7, window: int = 10):
        self.threshold = threshold
        self._samples: Deque[float] = deque(maxlen=window)
        self._lru = LRUStrategy()
        self._fifo = FIFOStrategy()

    def record_memory_pressure(self, sample: float) -> None:
        self._samples.append(min(max(sample, 0.0), 1.0))

    @property
    def average_pressure(self) -> float:
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)

    @property
    def active(self) -> EvictionStrategy:
        if self.average_pressure > self.threshold:
            return self._lru
        return self._fifo

    def eviction_order(self, entries: Iterable[CacheEntry]) -> List[CacheEntry]:
        return self.active.eviction_order(entries)

    def __repr__(self) -> str:
        return f"AdaptiveStrategy(active={self.active.name}, pressure={self.average_pressure:.2f})"


STRATEGIES: Dict[str, Type[EvictionStrategy]] = {
    LRUStrategy.name: LRUStrategy,
    FIFOStrategy.name: FIFOStrategy,
    AdaptiveStrategy.name: AdaptiveStrategy,
}


def get_strategy(name: str) -> EvictionStrategy:
    """Create a strategy by name.

    Raises:
        ValueError: If the name is unknown
    """
    strategy_class = STRATEGIES.get(name.lower())
    if strategy_class is None:
        raise ValueError(
            f"Unknown cache strategy: {name}. Available strategies: {list(STRATEGIES.keys())}"
        )
    return strategy_class()
