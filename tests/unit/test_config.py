"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from pollbot.config.loader import load_config, substitute_env_vars, validate_config
from pollbot.config.schema import (
    ApiConfig,
    BotConfig,
    PollingConfig,
    RetryConfig,
    RuntimeConfig,
    SessionConfig,
)

TOKEN = "123456789:AAFakeTokenForTestsOnly_0123456789abc"


class TestSubstituteEnvVars:
    """Test environment variable substitution."""

    def test_substitute_single_var(self, monkeypatch):
        """Test substituting a single environment variable."""
        monkeypatch.setenv("BOT_TOKEN", TOKEN)
        assert substitute_env_vars("token: ${BOT_TOKEN}") == f"token: {TOKEN}"

    def test_substitute_multiple_vars(self, monkeypatch):
        """Test substituting multiple environment variables."""
        monkeypatch.setenv("VAR1", "value1")
        monkeypatch.setenv("VAR2", "value2")
        assert substitute_env_vars("${VAR1} and ${VAR2}") == "value1 and value2"

    def test_missing_env_var_raises(self, monkeypatch):
        """Test that missing environment variables raise ValueError."""
        monkeypatch.delenv("MISSING", raising=False)
        with pytest.raises(ValueError, match="Environment variable MISSING not found"):
            substitute_env_vars("Value is ${MISSING}")

    def test_no_substitution_needed(self):
        """Test text without environment variables passes through unchanged."""
        assert substitute_env_vars("plain text") == "plain text"


class TestApiConfig:
    """Test ApiConfig validation."""

    def test_defaults(self):
        config = ApiConfig(token=TOKEN)
        assert config.base_url == "https://api.telegram.org"
        assert config.request_timeout == 10.0

    def test_invalid_token_rejected(self):
        """Test tokens without the <id>:<secret> shape fail."""
        with pytest.raises(ValidationError, match="Bot token"):
            ApiConfig(token="not-a-token")

    def test_base_url_trailing_slash_stripped(self):
        config = ApiConfig(token=TOKEN, base_url="http://localhost:8081/")
        assert config.base_url == "http://localhost:8081"

    def test_base_url_scheme_required(self):
        with pytest.raises(ValidationError, match="Invalid API base URL"):
            ApiConfig(token=TOKEN, base_url="ftp://example.org")


class TestSectionDefaults:
    """Test the defaults and bounds of the smaller sections."""

    def test_polling_defaults(self):
        config = PollingConfig()
        assert (config.timeout, config.limit, config.retry_delay) == (60, 100, 1.0)

    def test_polling_limit_bounds(self):
        """Test the service's batch limit is enforced."""
        with pytest.raises(ValidationError):
            PollingConfig(limit=0)
        with pytest.raises(ValidationError):
            PollingConfig(limit=101)

    def test_sessions_unbounded_by_default(self):
        config = SessionConfig()
        assert config.max_sessions is None
        assert config.ttl is None

    def test_sessions_bounds(self):
        with pytest.raises(ValidationError):
            SessionConfig(max_sessions=0)
        with pytest.raises(ValidationError):
            SessionConfig(ttl=0)

    def test_runtime_defaults(self):
        config = RuntimeConfig()
        assert config.drain_on_shutdown is False
        assert config.shutdown_timeout == 30.0


class TestBotConfig:
    """Test the root settings object."""

    def test_nested_env_override(self, monkeypatch):
        """Test POLLBOT_ variables fill nested sections."""
        monkeypatch.setenv("POLLBOT_API__TOKEN", TOKEN)
        monkeypatch.setenv("POLLBOT_POLLING__TIMEOUT", "5")

        config = BotConfig()

        assert config.api.token == TOKEN
        assert config.polling.timeout == 5

    def test_missing_token_rejected(self, monkeypatch):
        monkeypatch.delenv("POLLBOT_API__TOKEN", raising=False)
        with pytest.raises(ValidationError):
            BotConfig(_env_file=None)


class TestLoadConfig:
    """Test loading YAML files."""

    def test_load_valid_config(self, tmp_path: Path, monkeypatch):
        """Test a full file with env substitution."""
        monkeypatch.setenv("TEST_BOT_TOKEN", TOKEN)
        path = tmp_path / "config.yaml"
        path.write_text(
            """
api:
  token: ${TEST_BOT_TOKEN}
  base_url: http://localhost:8081
polling:
  timeout: 30
  limit: 50
sessions:
  max_sessions: 1000
  ttl: 3600
runtime:
  drain_on_shutdown: true
  shutdown_timeout: 5
logging:
  level: DEBUG
  format: console
"""
        )

        config = load_config(path)

        assert config.api.token == TOKEN
        assert config.api.base_url == "http://localhost:8081"
        assert config.polling.timeout == 30
        assert config.sessions.max_sessions == 1000
        assert config.runtime.drain_on_shutdown is True
        assert config.logging.format == "console"

    def test_load_config_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_config(tmp_path / "absent.yaml")

    def test_load_config_missing_env_var(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("UNSET_BOT_TOKEN", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("api:\n  token: ${UNSET_BOT_TOKEN}\n")

        with pytest.raises(ValueError, match="UNSET_BOT_TOKEN"):
            load_config(path)

    def test_load_config_non_mapping(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="must be a mapping"):
            load_config(path)


class TestValidateConfig:
    """Test cross-field validation."""

    def test_valid_config_passes(self, bot_config: BotConfig):
        validate_config(bot_config)

    def test_retry_delays_must_be_ordered(self):
        config = BotConfig(
            api=ApiConfig(token=TOKEN),
            retry=RetryConfig(initial_delay=5.0, max_delay=1.0),
        )
        with pytest.raises(ValueError, match="max_delay"):
            validate_config(config)

    def test_drain_needs_timeout(self):
        config = BotConfig(
            api=ApiConfig(token=TOKEN),
            runtime=RuntimeConfig(drain_on_shutdown=True, shutdown_timeout=0),
        )
        with pytest.raises(ValueError, match="shutdown_timeout"):
            validate_config(config)
