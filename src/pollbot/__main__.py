"""Entry point for running a pollbot process.

This module runs a small ping bot on top of the dispatch engine. It handles:
- Configuration loading
- Logging setup with secret sanitization
- Transport and router construction
- Signal handling for graceful shutdown
"""

import argparse
import asyncio
import signal
import sys
from dataclasses import dataclass
from pathlib import Path

import structlog

from pollbot._version import __version__
from pollbot.core.event import Event
from pollbot.core.handler import Action, Handler
from pollbot.core.route import Matcher, Route
from pollbot.core.router import Router
from pollbot.core.state import State

log = structlog.get_logger()


@dataclass
class PingState:
    """Number of pings seen in one chat."""

    counter: int = 0


async def ping(event: Event, state: State[PingState]) -> Action:
    async with state.write() as ping_state:
        ping_state.counter += 1
        return Action.reply_text(f"pong({ping_state.counter}): {event.update.text}")


def build_router(router: Router) -> Router:
    """Install the ping bot's routes on ``router``."""
    return router.add_route(Route.message(Matcher.prefix("ping")), Handler(ping, PingState()))


def setup_logging(
    debug: bool = False,
    log_format: str = "console",
    file_path: Path | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structured logging with secret sanitization.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to enable file logging
    """
    from pollbot.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.INFO

    configure_logging(
        level=level,
        log_format=LogFormat(log_format.lower()),
        file_path=file_path,
        file_enabled=file_enabled,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="pollbot",
        description="pollbot - long-polling chat-bot dispatch engine (ping bot)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse config and validate without starting the bot",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="console",
        help="Log output format (default: console)",
    )

    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Run health check and exit",
    )

    return parser.parse_args(argv)


async def run_bot(
    config_path: Path,
    dry_run: bool = False,
    health_check: bool = False,
) -> int:
    """Run the ping bot.

    Args:
        config_path: Path to configuration file
        dry_run: If True, only validate config without starting
        health_check: If True, run health check and exit

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    log.info("starting_pollbot", version=__version__, config_path=str(config_path))

    try:
        from pollbot.config.loader import load_config

        log.info("loading_configuration", path=str(config_path))
        config = load_config(config_path)
        log.info("configuration_loaded")

        from pollbot.utils.logging import configure_from_config

        configure_from_config(config.logging)

        if dry_run:
            log.info("dry_run_mode_config_valid")
            return 0

        router = build_router(Router.from_config(config))

        if health_check:
            from pollbot.utils.health import HealthChecker

            checker = HealthChecker(config, router.api)
            try:
                result = await checker.run_all_checks()
            finally:
                await router.api.close()

            if result.healthy:
                log.info("health_check_passed", details=result.details)
                return 0
            log.error("health_check_failed", details=result.to_dict())
            return 1

        shutdown = router.shutdown()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown.request)
            log.debug("signal_handler_registered", signal=sig.name)

        try:
            await router.start()
        finally:
            await router.api.close()

        return 0

    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1


def main() -> int:
    """Main entry point."""
    args = parse_args()

    setup_logging(
        debug=args.debug,
        log_format=args.format,
    )

    try:
        return asyncio.run(run_bot(args.config, args.dry_run, args.health_check))
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
