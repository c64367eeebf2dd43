"""Tests for the command line entry point and the ping bot."""

from pathlib import Path

import pytest

from pollbot import __main__ as cli
from pollbot.core.api import API
from pollbot.core.event import Event
from pollbot.core.handler import Action
from pollbot.core.route import Route
from pollbot.core.router import Router
from pollbot.core.state import State

TOKEN = "123456789:AAFakeTokenForTestsOnly_0123456789abc"


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep run_bot from reconfiguring global logging."""
    monkeypatch.setattr("pollbot.utils.logging.configure_logging", lambda **kwargs: None)


class TestParseArgs:
    def test_defaults(self) -> None:
        args = cli.parse_args([])
        assert args.config == Path("config/config.yaml")
        assert not args.debug
        assert not args.dry_run
        assert args.format == "console"

    def test_flags(self) -> None:
        args = cli.parse_args(["-c", "bot.yaml", "-d", "--dry-run", "--format", "json"])
        assert args.config == Path("bot.yaml")
        assert args.debug
        assert args.dry_run
        assert args.format == "json"

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            cli.parse_args(["--version"])
        assert "pollbot" in capsys.readouterr().out


class TestRunBot:
    """Test the exit codes of run_bot."""

    async def test_dry_run_valid_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(f"api:\n  token: \"{TOKEN}\"\n")

        assert await cli.run_bot(path, dry_run=True) == 0

    async def test_missing_config(self, tmp_path: Path) -> None:
        assert await cli.run_bot(tmp_path / "absent.yaml", dry_run=True) == 1

    async def test_invalid_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("api:\n  token: nope\n")

        assert await cli.run_bot(path, dry_run=True) == 1


class TestPingBot:
    """Test the bundled ping handler."""

    async def test_counts_pings(self, make_message_update) -> None:
        state = State(cli.PingState())
        event = Event(API(None), make_message_update(1, "ping"))  # type: ignore[arg-type]

        assert await cli.ping(event, state) == Action.reply_text("pong(1): ping")
        assert await cli.ping(event, state) == Action.reply_text("pong(2): ping")
        assert (await state.snapshot()).counter == 2

    def test_build_router_registers_message_route(self, fake_api: API) -> None:
        router = cli.build_router(Router(fake_api))
        assert Route.message() in router._routes

