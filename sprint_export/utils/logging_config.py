"""
Logging Configuration and Progress Reporting

Configurable logging levels, an optional rotating log file, and a
console progress indicator fed by export progress events.
"""

import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from sprint_export.models import ExportProgress


LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

SENSITIVE_MARKERS = ("key", "password", "secret", "token")


class ProgressIndicator:
    """
    Text progress bar for export progress events.

    Redraws at most every ``min_interval`` seconds, except for the final
    100% event which is always shown.
    """

    def __init__(self, description: str, stream: Optional[TextIO] = None, min_interval: float = 0.2):
        self.description = description
        self.stream = stream or sys.stderr
        self.min_interval = min_interval
        self.start_time = time.time()
        self._last_update = 0.0
        self.last_event: Optional[ExportProgress] = None

    def __call__(self, event: ExportProgress) -> None:
        self.update(event)

    def update(self, event: ExportProgress) -> None:
        self.last_event = event
        now = time.time()
        if event.percentage < 100 and now - self._last_update < self.min_interval:
            return
        self._last_update = now

        elapsed = now - self.start_time
        bar = self._create_progress_bar(event.percentage)
        message = event.message or self.description
        self.stream.write(f"\r{bar} {event.percentage:5.1f}% {event.stage.value}: {message} [{elapsed:.1f}s]")
        self.stream.flush()

    def finish(self, message: Optional[str] = None) -> None:
        elapsed = time.time() - self.start_time
        final_message = message or f"{self.description} completed"
        self.stream.write(f"\r{final_message} [OK] [{elapsed:.1f}s]\n")
        self.stream.flush()

    def _create_progress_bar(self, percentage: float, width: int = 20) -> str:
        filled = int(width * percentage / 100)
        return "[" + "#" * filled + "-" * (width - filled) + "]"


class LoggingConfig:
    """
    Centralized logging configuration for the export pipeline.

    Configures the root logger once; later calls are ignored unless
    ``force`` is passed.
    """

    def __init__(self):
        self._configured = False
        self._log_file_handler: Optional[logging.Handler] = None
        self._console_handler: Optional[logging.Handler] = None

    def configure_logging(
        self,
        level: str = "info",
        log_file: Optional[str] = None,
        include_timestamps: bool = True,
        max_log_file_size: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        force: bool = False,
    ) -> None:
        """
        Configure logging for the application.

        Args:
            level: Logging level (debug, info, warning, error)
            log_file: Optional log file path
            include_timestamps: Whether to include timestamps in console output
            max_log_file_size: Maximum log file size before rotation
            backup_count: Number of backup log files to keep
            force: Reconfigure even if logging was already configured
        """
        if self._configured and not force:
            return

        log_level = LOG_LEVELS.get(level.lower(), logging.INFO)
        debug_mode = log_level == logging.DEBUG

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        root_logger.handlers.clear()

        self._console_handler = logging.StreamHandler(sys.stderr)
        self._console_handler.setLevel(log_level)
        self._console_handler.setFormatter(self._create_console_formatter(include_timestamps, debug_mode))
        root_logger.addHandler(self._console_handler)

        if log_file:
            self._configure_file_logging(log_file, log_level, max_log_file_size, backup_count)

        self._configured = True
        logging.getLogger(__name__).debug(f"Logging configured: level={level}, file={log_file}")

    def _create_console_formatter(self, include_timestamps: bool, debug_mode: bool) -> logging.Formatter:
        parts = []
        if include_timestamps:
            parts.append("%(asctime)s")
        if debug_mode:
            parts.append("%(name)s")
        parts.extend(["%(levelname)s", "%(message)s"])
        return logging.Formatter(
            " - ".join(parts),
            datefmt="%Y-%m-%d %H:%M:%S" if debug_mode else "%H:%M:%S",
        )

    def _configure_file_logging(self, log_file: str, log_level: int, max_size: int, backup_count: int) -> None:
        """Configure file logging with rotation."""
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            self._log_file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            logging.getLogger(__name__).warning(f"Failed to setup log file {log_file}: {e}")
            return

        self._log_file_handler.setLevel(log_level)
        self._log_file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logging.getLogger().addHandler(self._log_file_handler)

    def log_configuration_details(self, config: Dict[str, Any]) -> None:
        """Log configuration details at debug level, masking secrets."""
        logger = logging.getLogger(__name__)
        if not logger.isEnabledFor(logging.DEBUG):
            return

        logger.debug("=== Configuration Details ===")
        for key, value in config.items():
            if any(marker in key.lower() for marker in SENSITIVE_MARKERS):
                value = "***MASKED***" if value else None
            logger.debug(f"  {key}: {value}")
        logger.debug("=== End Configuration ===")

    def is_debug_enabled(self) -> bool:
        return logging.getLogger().isEnabledFor(logging.DEBUG)


# Global logging configuration instance
logging_config = LoggingConfig()


def configure_logging(level: str = "info", log_file: Optional[str] = None, force: bool = False) -> None:
    """
    Convenience function to configure logging.

    Args:
        level: Logging level (debug, info, warning, error)
        log_file: Optional log file path
        force: Reconfigure even if already configured
    """
    logging_config.configure_logging(level=level, log_file=log_file, force=force)
