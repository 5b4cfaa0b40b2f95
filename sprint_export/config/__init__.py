"""
Configuration for the sprint export pipeline.

Layered YAML/environment configuration and the builder that wires a
pipeline from it.
"""

from .builder import build_orchestrator, build_renderer_config
from .environment import EnvironmentVariables
from .manager import ConfigurationManager
from .schema import (
    AnalyticsSettings,
    AssetSettings,
    CacheSettings,
    LogLevel,
    PipelineConfig,
    QualitySettings,
    RetrySettings,
)

__all__ = [
    "build_orchestrator",
    "build_renderer_config",
    "EnvironmentVariables",
    "ConfigurationManager",
    "AnalyticsSettings",
    "AssetSettings",
    "CacheSettings",
    "LogLevel",
    "PipelineConfig",
    "QualitySettings",
    "RetrySettings",
]
