"""Structured logging for pollbot.

Every entry goes through structlog with the bot token scrubbed out, since
the token is part of every request URL the transport builds. Dispatch code
binds ``update_id``, ``session_key`` and ``route`` with structlog's
contextvars; ``merge_contextvars`` folds them into each entry here.

Output is JSON for production or colored console text for development,
optionally mirrored to a file.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

import structlog

from pollbot.utils.security import SecretRedactor

if TYPE_CHECKING:
    from pollbot.config.schema import LoggingConfig


class LogFormat(StrEnum):
    """Log output format options."""

    JSON = "json"
    CONSOLE = "console"


class LogLevel(StrEnum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_redactor = SecretRedactor(placeholder="[REDACTED]")

# Loggers of libraries that print request URLs at INFO
_URL_LOGGERS = ("httpx", "httpcore")


def sanitize_log_value(value: Any) -> Any:
    """Redact bot tokens from ``value``, descending into dicts, lists and tuples."""
    match value:
        case str():
            return _redactor.redact(value)
        case dict():
            return {key: sanitize_log_value(item) for key, item in value.items()}
        case list() | tuple():
            return type(value)(sanitize_log_value(item) for item in value)
        case _:
            return value


def secret_sanitizer(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor that strips bot tokens from every log entry."""
    return cast(MutableMapping[str, Any], sanitize_log_value(event_dict))


def add_context_processor(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Add ``service`` and ``version`` fields to all log entries."""
    event_dict["service"] = "pollbot"

    try:
        from pollbot._version import __version__

        event_dict["version"] = __version__
    except (ImportError, RuntimeError):
        pass

    return event_dict


def _renderer(log_format: LogFormat) -> Any:
    if log_format is LogFormat.JSON:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True, exception_formatter=structlog.dev.plain_traceback
    )


def _handlers(numeric_level: int, file_path: Path | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if file_path is not None:
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(file_path))
        except OSError as e:
            # Console only
            logging.getLogger("pollbot.logging").warning(
                "Could not open log file %s: %s", file_path, e
            )

    for handler in handlers:
        handler.setLevel(numeric_level)
    return handlers


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    log_format: LogFormat | str = LogFormat.JSON,
    file_path: Path | str | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL), any case
        log_format: Output format (json or console), any case
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to also write to ``file_path``

    Example:
        configure_logging(level="DEBUG", log_format="console")
    """
    level = LogLevel(level.upper())
    log_format = LogFormat(log_format.lower())
    numeric_level = getattr(logging, level.value)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_context_processor,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            secret_sanitizer,
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    log_file = Path(file_path) if file_enabled and file_path else None
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=_handlers(numeric_level, log_file),
        force=True,
    )

    for name in _URL_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def configure_from_config(config: LoggingConfig, debug: bool = False) -> None:
    """Apply the ``logging`` section of a bot config; ``debug`` forces DEBUG."""
    configure_logging(
        level=LogLevel.DEBUG if debug else config.level,
        log_format=config.format,
        file_path=config.file.path,
        file_enabled=config.file.enabled,
    )
