"""
Tests for logging configuration and the console progress indicator.
"""

import io
import logging

import pytest

from sprint_export.models import ExportProgress, ProgressStage
from sprint_export.utils.logging_config import LoggingConfig, ProgressIndicator


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def event(percentage, message="Rendering"):
    return ExportProgress(current=int(percentage), total=100, stage=ProgressStage.RENDERING,
                          message=message, percentage=percentage)


class TestProgressIndicator:
    def test_draws_bar(self):
        stream = io.StringIO()
        indicator = ProgressIndicator("Exporting pdf", stream=stream, min_interval=0)

        indicator(event(50))

        output = stream.getvalue()
        assert "[##########----------]" in output
        assert " 50.0% rendering: Rendering" in output

    def test_throttles_but_always_shows_completion(self):
        stream = io.StringIO()
        indicator = ProgressIndicator("Exporting pdf", stream=stream, min_interval=3600)

        indicator(event(10))
        indicator(event(20))
        indicator(event(100, "Done"))

        output = stream.getvalue()
        assert " 10.0%" in output
        assert " 20.0%" not in output
        assert "100.0% rendering: Done" in output
        assert indicator.last_event.percentage == 100

    def test_finish(self):
        stream = io.StringIO()
        ProgressIndicator("Exporting pdf", stream=stream).finish()
        assert stream.getvalue().startswith("\rExporting pdf completed [OK]")


class TestLoggingConfig:
    def test_configures_once(self, restore_root_logger):
        config = LoggingConfig()
        config.configure_logging("debug")
        assert restore_root_logger.level == logging.DEBUG
        assert config.is_debug_enabled()

        config.configure_logging("error")
        assert restore_root_logger.level == logging.DEBUG

        config.configure_logging("error", force=True)
        assert restore_root_logger.level == logging.ERROR

    def test_rotating_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "export.log"
        LoggingConfig().configure_logging("info", log_file=str(log_file))

        logging.getLogger("sprint_export.test").info("hello file")

        assert "hello file" in log_file.read_text(encoding="utf-8")

    def test_masks_secrets(self, caplog):
        config = LoggingConfig()
        with caplog.at_level(logging.DEBUG, logger="sprint_export.utils.logging_config"):
            config.log_configuration_details({"api_key": "abc123", "output_dir": "out"})

        assert "abc123" not in caplog.text
        assert "api_key: ***MASKED***" in caplog.text
        assert "output_dir: out" in caplog.text
