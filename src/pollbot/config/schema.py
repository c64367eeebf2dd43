"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiConfig(BaseModel):
    """Remote Bot API connection settings."""

    token: str
    base_url: str = "https://api.telegram.org"
    request_timeout: float = Field(10.0, gt=0, le=300)

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Validate bot token format."""
        from ..utils.security import validate_bot_token

        if not validate_bot_token(v):
            raise ValueError("Bot token must look like <bot id>:<secret>")
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL without a trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid API base URL: {v}")
        return v.rstrip("/")


class PollingConfig(BaseModel):
    """Long-poll loop settings."""

    timeout: int = Field(60, ge=0, le=600, description="Server-side long-poll timeout in seconds")
    limit: int = Field(100, ge=1, le=100, description="Max updates per getUpdates call")
    retry_delay: float = Field(1.0, ge=0.0, le=60.0, description="Pause after a failed poll")


class SessionConfig(BaseModel):
    """Session state store settings.

    Leaving both fields unset keeps every session for the process lifetime.
    """

    max_sessions: int | None = Field(None, ge=1)
    ttl: float | None = Field(None, gt=0, description="Evict sessions idle this many seconds")


class RuntimeConfig(BaseModel):
    """Runtime configuration."""

    drain_on_shutdown: bool = False
    shutdown_timeout: float = Field(30.0, ge=0.0, le=600.0)


class RetryConfig(BaseModel):
    """Retry configuration for transient transport failures."""

    max_attempts: int = Field(3, ge=1, le=10)
    initial_delay: float = Field(1.0, ge=0.0, le=10.0)
    max_delay: float = Field(30.0, ge=0.0, le=300.0)


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("/var/log/pollbot/bot.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class BotConfig(BaseSettings):
    """Root configuration for a pollbot process."""

    api: ApiConfig
    polling: PollingConfig = PollingConfig()
    sessions: SessionConfig = SessionConfig()
    runtime: RuntimeConfig = RuntimeConfig()
    retry: RetryConfig = RetryConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="POLLBOT_",
        env_file=".env",
        env_nested_delimiter="__",
    )
