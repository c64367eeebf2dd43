"""Utility functions and helpers.

This module provides various utilities for pollbot:
- async_helpers: Error hierarchy, transport retries, timeouts
- security: Bot token redaction and validation
- logging: Structured logging with secret sanitization
- health: Health check utilities
- metrics: Dispatch engine metrics collection
"""

from pollbot.utils.async_helpers import (
    ApiError,
    BotError,
    ClassificationError,
    RouterError,
    RoutingError,
    TransportError,
    UnauthorizedError,
    UpdateError,
)
from pollbot.utils.health import (
    HealthChecker,
    HealthReport,
    HealthStatus,
)
from pollbot.utils.logging import (
    LogFormat,
    LogLevel,
    configure_from_config,
    configure_logging,
)
from pollbot.utils.metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    Timer,
    get_metrics,
)
from pollbot.utils.security import (
    RedactionError,
    SecretRedactor,
    SecurityError,
)

__all__ = [
    # Errors
    "ApiError",
    "BotError",
    "ClassificationError",
    "RouterError",
    "RoutingError",
    "TransportError",
    "UnauthorizedError",
    "UpdateError",
    # Metrics
    "Counter",
    "Gauge",
    "Histogram",
    "MetricsRegistry",
    "Timer",
    "get_metrics",
    # Health
    "HealthChecker",
    "HealthReport",
    "HealthStatus",
    # Logging
    "LogFormat",
    "LogLevel",
    "configure_from_config",
    "configure_logging",
    # Security
    "RedactionError",
    "SecretRedactor",
    "SecurityError",
]
