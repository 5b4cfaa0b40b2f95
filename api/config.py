"""Settings for the HTTP service, read from SPRINT_EXPORT_API_* variables."""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# variable -> (APIConfig field, converter)
API_ENVIRONMENT: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "SPRINT_EXPORT_API_HOST": ("host", str),
    "SPRINT_EXPORT_API_PORT": ("port", int),
    "SPRINT_EXPORT_API_KEY": ("api_key", str),
    "SPRINT_EXPORT_API_DEBUG": ("debug", lambda value: value.strip().lower() in ("1", "true", "yes")),
    "SPRINT_EXPORT_API_CORS_ORIGINS": ("cors_origins", _split_list),
    "SPRINT_EXPORT_API_IMAGE_HOSTS": ("image_hosts", _split_list),
    "SPRINT_EXPORT_CONFIG": ("config_file", str),
}


@dataclass
class APIConfig:
    """HTTP service settings.

    ``config_file`` points at the pipeline YAML used when the application
    builds its own orchestrator. ``image_hosts`` lists the hosts that
    orchestrator may fetch slide images from; by default it fetches none.
    """
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    api_key: Optional[str] = None
    debug: bool = False
    config_file: Optional[str] = None
    image_hosts: List[str] = field(default_factory=list)

    @classmethod
    def load(cls) -> "APIConfig":
        """Defaults overridden by whichever variables are set and non-empty."""
        config = cls()
        for variable, (attribute, convert) in API_ENVIRONMENT.items():
            value = os.environ.get(variable)
            if value:
                setattr(config, attribute, convert(value))
        return config
