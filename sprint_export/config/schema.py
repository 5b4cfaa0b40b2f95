"""
Configuration schema for the sprint export pipeline.

Each section is a dataclass in the units people write in YAML (megabytes,
hours). The ``to_*`` helpers convert a section into the runtime object
the pipeline component takes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sprint_export.cache import CacheConfig
from sprint_export.cache.strategies import STRATEGIES
from sprint_export.quality import QualityGateConfig, QualityThresholds, Severity
from sprint_export.retry import RecoveryStrategy


MB = 1024 * 1024


class LogLevel(Enum):
    """Supported logging levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class CacheSettings:
    """Result cache section.

    Attributes:
        max_size_mb: Byte budget in megabytes
        max_entries: Entry-count budget
        ttl_hours: Entry lifetime in hours
        cleanup_interval_minutes: Period of the background sweep
        strategy: Eviction strategy (lru, fifo, adaptive)
    """
    max_size_mb: float = 100.0
    max_entries: int = 50
    ttl_hours: float = 24.0
    cleanup_interval_minutes: float = 60.0
    strategy: str = "lru"

    def to_cache_config(self) -> CacheConfig:
        return CacheConfig(
            max_size_bytes=int(self.max_size_mb * MB),
            max_entries=self.max_entries,
            ttl_seconds=self.ttl_hours * 60 * 60,
            cleanup_interval_seconds=self.cleanup_interval_minutes * 60,
        )


@dataclass
class RetrySettings:
    """Retry policy section."""
    max_retries: int = 3
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0
    timeout: float = 30.0

    def to_strategy(self) -> RecoveryStrategy:
        return RecoveryStrategy(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            backoff_multiplier=self.backoff_multiplier,
            timeout=self.timeout,
        )


@dataclass
class QualitySettings:
    """Quality gate section.

    The weights and threshold default to the product's historical values.
    """
    pass_threshold: float = 80.0
    critical_weight: float = 0.5
    warning_weight: float = 0.3
    info_weight: float = 0.2
    max_processing_time_ms: float = 30_000.0

    def to_gate_config(self) -> QualityGateConfig:
        return QualityGateConfig(
            severity_weights={
                Severity.CRITICAL: self.critical_weight,
                Severity.WARNING: self.warning_weight,
                Severity.INFO: self.info_weight,
            },
            pass_threshold=self.pass_threshold,
            thresholds=QualityThresholds(max_processing_time_ms=self.max_processing_time_ms),
        )


@dataclass
class AssetSettings:
    """Image embedding section.

    Attributes:
        timeout: Per-request timeout in seconds
        max_asset_mb: Largest single image that is embedded
        local_root: Directory local image paths are read from; unset refuses
            local files
        allowed_hosts: Hosts remote images may be fetched from; unset accepts
            any public host, an empty list refuses remote images
        max_cache_entries: Images kept in memory between renders
        max_cache_mb: Image bytes kept in memory between renders
    """
    timeout: float = 10.0
    max_asset_mb: float = 10.0
    local_root: Optional[str] = None
    allowed_hosts: Optional[List[str]] = None
    max_cache_entries: int = 100
    max_cache_mb: float = 50.0


@dataclass
class AnalyticsSettings:
    """Analytics recorder section."""
    enabled: bool = True
    max_events: int = 10_000


@dataclass
class PipelineConfig:
    """Complete export pipeline configuration."""

    output_dir: str = "./exports"
    log_level: str = LogLevel.INFO.value
    log_file: Optional[str] = None
    templates_dir: Optional[str] = None

    cache: CacheSettings = field(default_factory=CacheSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    quality: QualitySettings = field(default_factory=QualitySettings)
    assets: AssetSettings = field(default_factory=AssetSettings)
    analytics: AnalyticsSettings = field(default_factory=AnalyticsSettings)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        try:
            LogLevel(self.log_level)
        except ValueError:
            valid_levels = [level.value for level in LogLevel]
            errors.append(f"Invalid log_level '{self.log_level}'. Valid options: {valid_levels}")

        if self.cache.strategy not in STRATEGIES:
            errors.append(
                f"Invalid cache.strategy '{self.cache.strategy}'. Valid options: {sorted(STRATEGIES)}"
            )
        errors.extend(self.cache.to_cache_config().validate())

        try:
            self.retry.to_strategy().validate()
        except ValueError as e:
            errors.append(f"retry: {e}")

        errors.extend(self.quality.to_gate_config().validate())
        if self.quality.max_processing_time_ms <= 0:
            errors.append("quality.max_processing_time_ms must be positive")

        if self.assets.timeout <= 0:
            errors.append("assets.timeout must be positive")
        if self.assets.max_asset_mb <= 0:
            errors.append("assets.max_asset_mb must be positive")
        if self.assets.allowed_hosts is not None and not isinstance(self.assets.allowed_hosts, list):
            errors.append("assets.allowed_hosts must be a list of host names")
        if self.assets.max_cache_entries < 1:
            errors.append("assets.max_cache_entries must be at least 1")
        if self.assets.max_cache_mb <= 0:
            errors.append("assets.max_cache_mb must be positive")
        if self.analytics.max_events < 1:
            errors.append("analytics.max_events must be at least 1")

        return errors
