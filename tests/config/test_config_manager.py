"""
Tests for layered configuration loading.
"""

import logging

import pytest
import yaml

from sprint_export.config import ConfigurationManager, EnvironmentVariables, PipelineConfig


def write_yaml(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.fixture
def user_config(tmp_path):
    return tmp_path / "home" / ".sprint-export" / "config.yaml"


@pytest.fixture
def project_config(tmp_path):
    return tmp_path / ".sprint-export" / "config.yaml"


class TestPrecedence:
    def test_defaults(self):
        config = ConfigurationManager().load_configuration()
        assert config == PipelineConfig()

    def test_user_then_project(self, user_config, project_config):
        write_yaml(user_config, {"output_dir": "user-out", "cache": {"max_entries": 5}})
        write_yaml(project_config, {"output_dir": "project-out"})

        config = ConfigurationManager().load_configuration()

        assert config.output_dir == "project-out"
        assert config.cache.max_entries == 5
        assert config.cache.strategy == "lru"

    def test_explicit_file_overrides_project(self, tmp_path, project_config):
        write_yaml(project_config, {"retry": {"max_retries": 2, "timeout": 10}})
        explicit = write_yaml(tmp_path / "custom.yaml", {"retry": {"max_retries": 5}})

        config = ConfigurationManager().load_configuration(config_file=str(explicit))

        assert config.retry.max_retries == 5
        assert config.retry.timeout == 10

    def test_environment_overrides_files(self, tmp_path, monkeypatch):
        explicit = write_yaml(tmp_path / "custom.yaml", {"cache": {"strategy": "fifo"}})
        monkeypatch.setenv(EnvironmentVariables.CACHE_STRATEGY, "ADAPTIVE")

        config = ConfigurationManager().load_configuration(config_file=str(explicit))

        assert config.cache.strategy == "adaptive"

    def test_cli_overrides_environment(self, monkeypatch):
        monkeypatch.setenv(EnvironmentVariables.OUTPUT_DIR, "env-out")

        config = ConfigurationManager().load_configuration(
            cli_overrides={"output_dir": "cli-out", "log_level": None}
        )

        assert config.output_dir == "cli-out"
        assert config.log_level == "info"


class TestSubstitution:
    def test_variable_with_default(self, tmp_path, monkeypatch):
        explicit = write_yaml(tmp_path / "custom.yaml", {
            "output_dir": "${EXPORT_ROOT:-/srv/exports}",
            "cache": {"max_entries": "${CACHE_ENTRIES:-20}"},
            "analytics": {"enabled": "${ANALYTICS:-false}"},
        })

        config = ConfigurationManager().load_configuration(config_file=str(explicit))

        assert config.output_dir == "/srv/exports"
        assert config.cache.max_entries == 20
        assert config.analytics.enabled is False

        monkeypatch.setenv("CACHE_ENTRIES", "7")
        assert ConfigurationManager().load_configuration(config_file=str(explicit)).cache.max_entries == 7

    def test_required_variable_missing(self, tmp_path):
        explicit = write_yaml(tmp_path / "custom.yaml", {"output_dir": "${EXPORT_ROOT}"})
        with pytest.raises(ValueError, match="EXPORT_ROOT"):
            ConfigurationManager().load_configuration(config_file=str(explicit))

    def test_uncoercible_value(self, tmp_path):
        explicit = write_yaml(tmp_path / "custom.yaml", {"cache": {"max_entries": "${N:-many}"}})
        with pytest.raises(ValueError, match="Failed to create configuration object"):
            ConfigurationManager().load_configuration(config_file=str(explicit))


class TestFileErrors:
    def test_invalid_yaml(self, tmp_path):
        broken = tmp_path / "broken.yaml"
        broken.write_text("cache: [unclosed", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid YAML"):
            ConfigurationManager().load_configuration(config_file=str(broken))

    def test_non_mapping(self, tmp_path):
        listing = tmp_path / "list.yaml"
        listing.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="must contain a mapping"):
            ConfigurationManager().load_configuration(config_file=str(listing))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            ConfigurationManager().load_configuration(config_file=str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path):
        empty = tmp_path / "empty.yaml"
        empty.write_text("", encoding="utf-8")
        assert ConfigurationManager().load_configuration(config_file=str(empty)) == PipelineConfig()

    def test_unknown_top_level_keys_warn(self, tmp_path, caplog):
        extra = write_yaml(tmp_path / "extra.yaml", {"mystery": 1})
        with caplog.at_level(logging.WARNING, logger="sprint_export.config.manager"):
            ConfigurationManager().load_configuration(config_file=str(extra))
        assert "mystery" in caplog.text

    def test_unknown_section_key_fails(self, tmp_path):
        extra = write_yaml(tmp_path / "extra.yaml", {"cache": {"bogus": 1}})
        with pytest.raises(ValueError, match="Failed to create configuration object"):
            ConfigurationManager().load_configuration(config_file=str(extra))


def test_save_and_reload(tmp_path):
    manager = ConfigurationManager()
    config = PipelineConfig(output_dir="saved")
    config.cache.strategy = "fifo"
    target = tmp_path / "nested" / "config.yaml"

    manager.save_configuration(config, str(target))

    assert target.read_text(encoding="utf-8").startswith("# Sprint Export configuration\n")
    assert manager.load_configuration(config_file=str(target)) == config


def test_generate_default_config():
    data = yaml.safe_load(ConfigurationManager().generate_default_config())
    assert data["cache"]["strategy"] == "lru"
    assert data["quality"]["pass_threshold"] == 80.0
