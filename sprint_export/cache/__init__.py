"""
Result cache for the export pipeline.

Fingerprinting, eviction strategies and the bounded in-process store.
"""

from sprint_export.cache.entry import CacheEntry
from sprint_export.cache.fingerprint import generate_cache_key, hash_options, hash_presentation
from sprint_export.cache.store import CacheConfig, ResultCache, format_file_size
from sprint_export.cache.strategies import (
    AdaptiveStrategy,
    EvictionStrategy,
    FIFOStrategy,
    LRUStrategy,
    get_strategy,
)

__all__ = [
    "CacheEntry",
    "CacheConfig",
    "ResultCache",
    "format_file_size",
    "generate_cache_key",
    "hash_options",
    "hash_presentation",
    "AdaptiveStrategy",
    "EvictionStrategy",
    "FIFOStrategy",
    "LRUStrategy",
    "get_strategy",
]
