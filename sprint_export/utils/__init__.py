"""Shared utilities."""

from sprint_export.utils.logging_config import (
    LoggingConfig,
    ProgressIndicator,
    configure_logging,
    logging_config,
)

__all__ = ["LoggingConfig", "ProgressIndicator", "configure_logging", "logging_config"]
