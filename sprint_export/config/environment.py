"""
Environment variable integration for the export pipeline configuration.

Centralizes the SPRINT_EXPORT_* variable names, the config path each one
overrides, and how its string value is converted.
"""

import os
from typing import Any, Callable, Dict, List, Tuple


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class EnvironmentVariables:
    """Centralized environment variable definitions and utilities."""

    OUTPUT_DIR = "SPRINT_EXPORT_OUTPUT_DIR"
    LOG_LEVEL = "SPRINT_EXPORT_LOG_LEVEL"
    LOG_FILE = "SPRINT_EXPORT_LOG_FILE"
    TEMPLATES_DIR = "SPRINT_EXPORT_TEMPLATES_DIR"

    CACHE_MAX_SIZE_MB = "SPRINT_EXPORT_CACHE_MAX_SIZE_MB"
    CACHE_MAX_ENTRIES = "SPRINT_EXPORT_CACHE_MAX_ENTRIES"
    CACHE_TTL_HOURS = "SPRINT_EXPORT_CACHE_TTL_HOURS"
    CACHE_STRATEGY = "SPRINT_EXPORT_CACHE_STRATEGY"

    MAX_RETRIES = "SPRINT_EXPORT_MAX_RETRIES"
    RETRY_BASE_DELAY = "SPRINT_EXPORT_RETRY_BASE_DELAY"
    RENDER_TIMEOUT = "SPRINT_EXPORT_RENDER_TIMEOUT"

    ASSET_HOSTS = "SPRINT_EXPORT_ASSET_HOSTS"

    QUALITY_PASS_THRESHOLD = "SPRINT_EXPORT_QUALITY_PASS_THRESHOLD"
    ANALYTICS_ENABLED = "SPRINT_EXPORT_ANALYTICS_ENABLED"

    # variable -> (config path, converter, description)
    MAPPING: Dict[str, Tuple[Tuple[str, ...], Callable[[str], Any], str]] = {
        OUTPUT_DIR: (("output_dir",), str, "Directory exports are written to"),
        LOG_LEVEL: (("log_level",), str.lower, "Logging level (debug, info, warning, error)"),
        LOG_FILE: (("log_file",), str, "Optional rotating log file"),
        TEMPLATES_DIR: (("templates_dir",), str, "Directory with template overrides"),
        CACHE_MAX_SIZE_MB: (("cache", "max_size_mb"), float, "Result cache budget in MB"),
        CACHE_MAX_ENTRIES: (("cache", "max_entries"), int, "Result cache entry limit"),
        CACHE_TTL_HOURS: (("cache", "ttl_hours"), float, "Result cache entry lifetime in hours"),
        CACHE_STRATEGY: (("cache", "strategy"), str.lower, "Eviction strategy (lru, fifo, adaptive)"),
        MAX_RETRIES: (("retry", "max_retries"), int, "Render attempts per export"),
        RETRY_BASE_DELAY: (("retry", "base_delay"), float, "First backoff delay in seconds"),
        RENDER_TIMEOUT: (("retry", "timeout"), float, "Per-attempt render timeout in seconds"),
        ASSET_HOSTS: (("assets", "allowed_hosts"), _parse_list, "Comma-separated hosts images may be fetched from"),
        QUALITY_PASS_THRESHOLD: (("quality", "pass_threshold"), float, "Quality score for a clean pass"),
        ANALYTICS_ENABLED: (("analytics", "enabled"), _parse_bool, "Record export analytics events"),
    }

    @classmethod
    def get_all_variables(cls) -> List[str]:
        """Get list of all supported environment variables."""
        return list(cls.MAPPING)

    @classmethod
    def get_variable_documentation(cls) -> Dict[str, str]:
        """Get documentation for all environment variables."""
        return {name: description for name, (_, _, description) in cls.MAPPING.items()}

    @classmethod
    def load_overrides(cls) -> Dict[str, Any]:
        """Build a nested override dict from the variables that are set.

        Raises:
            ValueError: If a variable holds a value of the wrong type
        """
        overrides: Dict[str, Any] = {}
        for name, (path, convert, _) in cls.MAPPING.items():
            if name not in os.environ:
                continue
            try:
                value = convert(os.environ[name])
            except ValueError as e:
                raise ValueError(f"Invalid value for {name}: {os.environ[name]!r}") from e

            target = overrides
            for key in path[:-1]:
                target = target.setdefault(key, {})
            target[path[-1]] = value
        return overrides
