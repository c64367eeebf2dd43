"""Health check utilities for monitoring a bot process.

This module provides health check capabilities for pollbot:
- Check configuration consistency
- Check that the remote API accepts the bot token (``getMe``)
- Flag session stores that can grow without bound
- Generate health status reports
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from pollbot.config.schema import BotConfig
    from pollbot.core.api import API

log = structlog.get_logger()


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str
    latency_ms: float | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    """Overall health report."""

    healthy: bool
    status: HealthStatus
    timestamp: datetime
    checks: list[CheckResult]
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "healthy": self.healthy,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                    "details": c.details,
                }
                for c in self.checks
            ],
            "details": self.details,
        }


class HealthChecker:
    """Checks configuration and connectivity of a bot.

    Example:
        checker = HealthChecker(config, API(HttpTransport.from_config(config.api, config.retry)))
        report = await checker.run_all_checks()
        if not report.healthy:
            print(report.to_dict())
    """

    def __init__(self, config: BotConfig, api: API | None = None) -> None:
        """Initialize the health checker.

        Args:
            config: Bot configuration
            api: API client for the connectivity check; skipped when None
        """
        self._config = config
        self._api = api

    async def run_all_checks(self) -> HealthReport:
        """Run all health checks and return a report."""
        log.info("health_check_start")
        start_time = datetime.now(UTC)

        checks: list[CheckResult] = []

        results = await asyncio.gather(
            self._check_config(),
            self._check_api(),
            self._check_sessions(),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, BaseException):
                checks.append(
                    CheckResult(
                        name="unknown",
                        status=HealthStatus.UNHEALTHY,
                        message=f"Check failed with exception: {result}",
                    )
                )
            elif isinstance(result, CheckResult):
                checks.append(result)

        if all(c.status == HealthStatus.HEALTHY for c in checks):
            overall_status = HealthStatus.HEALTHY
            healthy = True
        elif any(c.status == HealthStatus.UNHEALTHY for c in checks):
            overall_status = HealthStatus.UNHEALTHY
            healthy = False
        else:
            overall_status = HealthStatus.DEGRADED
            healthy = True

        report = HealthReport(
            healthy=healthy,
            status=overall_status,
            timestamp=start_time,
            checks=checks,
            details={
                "total_checks": len(checks),
                "healthy_checks": sum(1 for c in checks if c.status == HealthStatus.HEALTHY),
                "degraded_checks": sum(1 for c in checks if c.status == HealthStatus.DEGRADED),
                "unhealthy_checks": sum(1 for c in checks if c.status == HealthStatus.UNHEALTHY),
            },
        )

        log.info(
            "health_check_complete",
            healthy=healthy,
            status=overall_status.value,
            checks_run=len(checks),
        )

        return report

    async def _check_config(self) -> CheckResult:
        """Check that config sections agree with each other."""
        polling = self._config.polling
        retry = self._config.retry

        if retry.max_delay < retry.initial_delay:
            return CheckResult(
                name="config",
                status=HealthStatus.UNHEALTHY,
                message="retry.max_delay is smaller than retry.initial_delay",
            )

        if polling.timeout == 0:
            return CheckResult(
                name="config",
                status=HealthStatus.DEGRADED,
                message="Long polling disabled (polling.timeout = 0); the bot will busy-poll",
            )

        return CheckResult(
            name="config",
            status=HealthStatus.HEALTHY,
            message="Configuration valid",
            details={
                "base_url": self._config.api.base_url,
                "poll_timeout": polling.timeout,
                "poll_limit": polling.limit,
            },
        )

    async def _check_api(self) -> CheckResult:
        """Call getMe to confirm the service is reachable and the token accepted."""
        if self._api is None:
            return CheckResult(
                name="api",
                status=HealthStatus.HEALTHY,
                message="API check skipped",
            )

        start = time.monotonic()
        try:
            me = await self._api.get_me()
        except Exception as e:
            return CheckResult(
                name="api",
                status=HealthStatus.UNHEALTHY,
                message=f"API check failed: {e}",
                latency_ms=(time.monotonic() - start) * 1000,
            )

        return CheckResult(
            name="api",
            status=HealthStatus.HEALTHY,
            message="API reachable",
            latency_ms=(time.monotonic() - start) * 1000,
            details={"bot_id": me.id, "username": me.username},
        )

    async def _check_sessions(self) -> CheckResult:
        sessions = self._config.sessions
        if sessions.max_sessions is None and sessions.ttl is None:
            return CheckResult(
                name="sessions",
                status=HealthStatus.DEGRADED,
                message="Session store is unbounded; set sessions.max_sessions or sessions.ttl",
            )
        return CheckResult(
            name="sessions",
            status=HealthStatus.HEALTHY,
            message="Session store bounded",
            details={"max_sessions": sessions.max_sessions, "ttl": sessions.ttl},
        )
