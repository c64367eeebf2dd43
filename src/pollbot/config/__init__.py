"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    ApiConfig,
    BotConfig,
    FileLoggingConfig,
    LoggingConfig,
    PollingConfig,
    RetryConfig,
    RuntimeConfig,
    SessionConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "BotConfig",
    # Sections
    "ApiConfig",
    "PollingConfig",
    "SessionConfig",
    "RuntimeConfig",
    "RetryConfig",
    "LoggingConfig",
    "FileLoggingConfig",
]
