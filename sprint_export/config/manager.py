"""
Configuration Manager for the sprint export pipeline.

Loads, validates and merges configuration from multiple sources:
- System defaults
- User configuration (~/.sprint-export/config.yaml)
- Project configuration (./.sprint-export/config.yaml)
- Explicit configuration (--config file.yaml)
- Environment variables (SPRINT_EXPORT_*)
- CLI arguments (highest precedence)
"""

import logging
import os
import re
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .environment import EnvironmentVariables
from .schema import (
    AnalyticsSettings,
    AssetSettings,
    CacheSettings,
    PipelineConfig,
    QualitySettings,
    RetrySettings,
)


logger = logging.getLogger(__name__)


CONFIG_DIR_NAME = ".sprint-export"

SECTIONS = {
    "cache": CacheSettings,
    "retry": RetrySettings,
    "quality": QualitySettings,
    "assets": AssetSettings,
    "analytics": AnalyticsSettings,
}

_VARIABLE = re.compile(r"\$\{([^}]+)\}")


def _coerce(section_class, values: Dict[str, Any]) -> Dict[str, Any]:
    """Convert substituted string values to the type of the field default."""
    defaults = asdict(section_class())
    coerced = {}
    for key, value in values.items():
        default = defaults.get(key)
        if isinstance(value, str) and default is not None and not isinstance(default, str):
            if isinstance(default, bool):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            else:
                value = type(default)(value)
        coerced[key] = value
    return coerced


class ConfigurationManager:
    """Manages configuration loading, validation, and environment variable integration."""

    def __init__(self, user_dir: Optional[Path] = None, project_dir: Optional[Path] = None):
        self.user_config_path = (user_dir or Path.home()) / CONFIG_DIR_NAME / "config.yaml"
        self.project_config_path = (project_dir or Path.cwd()) / CONFIG_DIR_NAME / "config.yaml"

    def load_configuration(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
    ) -> PipelineConfig:
        """
        Load configuration from all sources with proper precedence.

        Precedence order (highest to lowest):
        1. CLI arguments (cli_overrides)
        2. Environment variables
        3. Explicit config file (--config)
        4. Project config (./.sprint-export/config.yaml)
        5. User config (~/.sprint-export/config.yaml)
        6. System defaults

        Args:
            config_file: Optional explicit configuration file path
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            PipelineConfig: Merged configuration

        Raises:
            ValueError: If configuration files contain invalid YAML or values
        """
        config_dict = self._get_default_config()

        if self.user_config_path.exists():
            config_dict = self._merge_configs(config_dict, self._load_yaml_file(self.user_config_path))

        if self.project_config_path.exists():
            config_dict = self._merge_configs(config_dict, self._load_yaml_file(self.project_config_path))

        if config_file:
            config_dict = self._merge_configs(config_dict, self._load_yaml_file(Path(config_file)))

        config_dict = self._merge_configs(config_dict, EnvironmentVariables.load_overrides())

        if cli_overrides:
            cleaned = {key: value for key, value in cli_overrides.items() if value is not None}
            config_dict = self._merge_configs(config_dict, cleaned)

        config_dict = self.substitute_environment_variables(config_dict)

        try:
            config = self._dict_to_config(config_dict)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Failed to create configuration object: {e}") from e

        logger.debug(f"Configuration loaded: {config}")
        return config

    def validate_configuration(self, config: PipelineConfig) -> List[str]:
        """Validate configuration and return any errors."""
        return config.validate()

    def substitute_environment_variables(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Substitute ${VAR} and ${VAR:-default} syntax with environment variable values.

        Raises:
            ValueError: If a required environment variable is missing
        """
        def replace_var(match):
            var_expr = match.group(1)
            if ":-" in var_expr:
                var_name, default_value = var_expr.split(":-", 1)
                return os.environ.get(var_name, default_value)
            if var_expr not in os.environ:
                raise ValueError(f"Required environment variable '{var_expr}' is not set")
            return os.environ[var_expr]

        def substitute_recursive(obj):
            if isinstance(obj, dict):
                return {key: substitute_recursive(value) for key, value in obj.items()}
            if isinstance(obj, list):
                return [substitute_recursive(item) for item in obj]
            if isinstance(obj, str):
                return _VARIABLE.sub(replace_var, obj)
            return obj

        return substitute_recursive(config_dict)

    def save_configuration(self, config: PipelineConfig, file_path: str) -> None:
        """Save configuration to a YAML file."""
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write("# Sprint Export configuration\n")
            yaml.safe_dump(asdict(config), f, sort_keys=False)

    def generate_default_config(self) -> str:
        """Default configuration as YAML."""
        return yaml.safe_dump(asdict(PipelineConfig()), sort_keys=False)

    def _get_default_config(self) -> Dict[str, Any]:
        """Get system default configuration values."""
        return asdict(PipelineConfig())

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load and parse a YAML configuration file."""
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ValueError(f"Configuration file not found: {file_path}") from e
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {file_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {file_path} must contain a mapping")

        unknown = set(data) - {f.name for f in fields(PipelineConfig)}
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys in {file_path}: {sorted(unknown)}")
        return data

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value
        return result

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> PipelineConfig:
        """Convert configuration dictionary to a PipelineConfig object."""
        sections = {
            name: section_class(**_coerce(section_class, config_dict.get(name) or {}))
            for name, section_class in SECTIONS.items()
        }
        return PipelineConfig(
            output_dir=str(config_dict.get("output_dir", "./exports")),
            log_level=str(config_dict.get("log_level", "info")).lower(),
            log_file=config_dict.get("log_file"),
            templates_dir=config_dict.get("templates_dir"),
            **sections,
        )
