"""
Unit tests for configuration and logging setup.
"""

import logging
import pytest
import yaml

from lagscript.utils import (
    LagscriptConfig, ConfigError, load_config, setup_logging, get_logger, script_logger,
)


class TestConfig:
    """Test loading and validating configuration."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LAGSCRIPT_LOG_LEVEL", raising=False)
        monkeypatch.delenv("LAGSCRIPT_RELOAD_WORKERS", raising=False)
        config = load_config()
        assert config.checker.max_errors == 20
        assert config.reload.workers == 0
        assert config.logging.level == "INFO"
        assert config.logging.log_file is None

    def test_load_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LAGSCRIPT_LOG_LEVEL", raising=False)
        monkeypatch.delenv("LAGSCRIPT_RELOAD_WORKERS", raising=False)
        path = tmp_path / "lagscript.yaml"
        path.write_text("checker:\n  max_errors: 5\nreload:\n  workers: 2\n")
        config = load_config(path)
        assert config.checker.max_errors == 5
        assert config.reload.workers == 2
        assert config.logging.level == "INFO"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert isinstance(load_config(path), LagscriptConfig)

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "lagscript.yaml"
        path.write_text("logging:\n  level: INFO\n")
        monkeypatch.setenv("LAGSCRIPT_LOG_LEVEL", "debug")
        monkeypatch.setenv("LAGSCRIPT_RELOAD_WORKERS", "4")
        config = load_config(path)
        assert config.logging.level == "DEBUG"
        assert config.reload.workers == 4

    def test_bad_env_worker_count(self, monkeypatch):
        monkeypatch.setenv("LAGSCRIPT_RELOAD_WORKERS", "many")
        with pytest.raises(ConfigError):
            load_config()

    def test_unknown_section(self):
        with pytest.raises(ConfigError):
            LagscriptConfig.from_dict({"render": {}})

    def test_unknown_key(self):
        with pytest.raises(ConfigError):
            LagscriptConfig.from_dict({"checker": {"max_warnings": 3}})

    def test_invalid_values(self):
        with pytest.raises(ConfigError):
            LagscriptConfig.from_dict({"checker": {"max_errors": 0}})
        with pytest.raises(ConfigError):
            LagscriptConfig.from_dict({"reload": {"workers": -1}})
        with pytest.raises(ConfigError):
            LagscriptConfig.from_dict({"logging": {"level": "LOUD"}})

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("checker: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yaml")

    def test_save_round_trip(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LAGSCRIPT_LOG_LEVEL", raising=False)
        monkeypatch.delenv("LAGSCRIPT_RELOAD_WORKERS", raising=False)
        config = LagscriptConfig()
        config.checker.max_errors = 7
        path = tmp_path / "saved.yaml"
        config.save(path)
        assert yaml.safe_load(path.read_text())["checker"]["max_errors"] == 7
        assert load_config(path).to_dict() == config.to_dict()


class TestLogging:
    """Test logging helpers."""

    def test_setup_logging(self, tmp_path):
        log_file = tmp_path / "lag.log"
        logger = setup_logging("DEBUG", str(log_file))
        assert logger.name == "lagscript"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert logger.propagate is False

        get_logger("runtime.test").debug("hello file")
        for handler in logger.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_repeated_setup_does_not_duplicate(self):
        setup_logging("INFO")
        logger = setup_logging("INFO")
        assert len(logger.handlers) == 1

    def test_logger_names(self):
        assert get_logger("lagscript.runtime").name == "lagscript.runtime"
        assert get_logger("cli").name == "lagscript.cli"
        assert script_logger("player").name == "lagscript.scripts.player"
