"""
Configuration for the lagscript pipeline.

Settings are grouped in dataclass sections and loaded from a YAML file,
with environment variables taking precedence:

    checker:
      max_errors: 20
    reload:
      workers: 0          # 0 = reload inline in check_for_changes
    logging:
      level: INFO
      log_file: null

Environment overrides: LAGSCRIPT_LOG_LEVEL, LAGSCRIPT_RELOAD_WORKERS.
"""

import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

from .logging import get_logger

logger = get_logger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised for unreadable or invalid configuration."""
    pass


@dataclass
class CheckerConfig:
    """Type checker configuration."""

    max_errors: int = 20


@dataclass
class ReloadConfig:
    """Hot-reload configuration."""

    workers: int = 0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class LagscriptConfig:
    """Top-level configuration with one attribute per section."""

    checker: CheckerConfig = field(default_factory=CheckerConfig)
    reload: ReloadConfig = field(default_factory=ReloadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Raise ConfigError if any setting is out of range."""
        if not isinstance(self.checker.max_errors, int) or self.checker.max_errors < 1:
            raise ConfigError(
                f"checker.max_errors must be a positive integer, got {self.checker.max_errors!r}"
            )
        if not isinstance(self.reload.workers, int) or self.reload.workers < 0:
            raise ConfigError(
                f"reload.workers must be a non-negative integer, got {self.reload.workers!r}"
            )
        if str(self.logging.level).upper() not in LOG_LEVELS:
            raise ConfigError(
                f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {self.logging.level!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save(self, path: Union[str, Path]) -> None:
        """Write the configuration as YAML."""
        path = Path(path)
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        logger.info(f"Saved configuration to {path}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LagscriptConfig":
        """Build a configuration from a parsed mapping."""
        if not isinstance(data, dict):
            raise ConfigError("configuration root must be a mapping")

        sections = {
            "checker": CheckerConfig,
            "reload": ReloadConfig,
            "logging": LoggingConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ConfigError(f"unknown configuration section(s): {', '.join(sorted(unknown))}")

        values = {}
        for name, section_cls in sections.items():
            section_data = data.get(name) or {}
            if not isinstance(section_data, dict):
                raise ConfigError(f"section '{name}' must be a mapping")
            try:
                values[name] = section_cls(**section_data)
            except TypeError as e:
                raise ConfigError(f"invalid keys in section '{name}': {e}") from e

        config = cls(**values)
        config.validate()
        return config


def _apply_env_overrides(config: LagscriptConfig) -> None:
    level = os.getenv("LAGSCRIPT_LOG_LEVEL")
    if level:
        config.logging.level = level.upper()

    workers = os.getenv("LAGSCRIPT_RELOAD_WORKERS")
    if workers:
        try:
            config.reload.workers = int(workers)
        except ValueError as e:
            raise ConfigError(f"LAGSCRIPT_RELOAD_WORKERS must be an integer, got {workers!r}") from e


def load_config(path: Optional[Union[str, Path]] = None) -> LagscriptConfig:
    """
    Load configuration from a YAML file, then apply environment overrides.

    Args:
        path: Optional YAML file. When omitted, defaults are used.

    Returns:
        Validated LagscriptConfig

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    if path is None:
        config = LagscriptConfig()
    else:
        path = Path(path)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"cannot read configuration file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
        config = LagscriptConfig.from_dict(data)
        logger.info(f"Loaded configuration from {path}")

    _apply_env_overrides(config)
    config.validate()
    return config
