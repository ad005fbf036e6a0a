"""Shared utilities: logging setup and configuration loading."""

from .logging import setup_logging, get_logger, script_logger
from .config import (
    LagscriptConfig,
    CheckerConfig,
    ReloadConfig,
    LoggingConfig,
    ConfigError,
    load_config,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'script_logger',
    'LagscriptConfig',
    'CheckerConfig',
    'ReloadConfig',
    'LoggingConfig',
    'ConfigError',
    'load_config',
]
