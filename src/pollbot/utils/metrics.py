"""Metrics collection for observability.

Counters, gauges and histograms for the dispatch engine:
- Updates received, dispatched and dropped
- Handler errors and replies sent
- Poll failures
- Active dispatch tasks and live sessions
- Dispatch duration

Metrics can be exported in Prometheus text format.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from threading import Lock
from typing import Any

import structlog

log = structlog.get_logger()

LabelKey = tuple[tuple[str, str], ...]


def _label_key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted(labels.items())) if labels else ()


class MetricType(StrEnum):
    """Types of metrics."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass
class MetricValue:
    """A single metric value with metadata."""

    name: str
    type: MetricType
    value: float
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    help_text: str = ""


class Counter:
    """A monotonically increasing counter.

    Example:
        counter = Counter("updates_received", "Total updates received")
        counter.inc()
        counter.inc(labels={"route": "message"})
    """

    def __init__(self, name: str, help_text: str = "") -> None:
        self.name = name
        self.help_text = help_text
        self._values: dict[LabelKey, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        """Increment the counter.

        Raises:
            ValueError: If ``value`` is negative.
        """
        if value < 0:
            raise ValueError("Counter can only increase")

        with self._lock:
            self._values[_label_key(labels)] += value

    def get(self, labels: dict[str, str] | None = None) -> float:
        """Get current counter value for a label set."""
        with self._lock:
            return self._values.get(_label_key(labels), 0)

    def total(self) -> float:
        """Sum across all label sets."""
        with self._lock:
            return sum(self._values.values())

    def get_all(self) -> list[MetricValue]:
        """Get all counter values with their labels."""
        with self._lock:
            return [
                MetricValue(
                    name=self.name,
                    type=MetricType.COUNTER,
                    value=value,
                    labels=dict(label_key),
                    help_text=self.help_text,
                )
                for label_key, value in self._values.items()
            ]


class Gauge:
    """A metric that can go up or down.

    Example:
        gauge = Gauge("active_dispatches", "Dispatch tasks in flight")
        gauge.inc()
        gauge.dec()
    """

    def __init__(self, name: str, help_text: str = "") -> None:
        self.name = name
        self.help_text = help_text
        self._values: dict[LabelKey, float] = defaultdict(float)
        self._lock = Lock()

    def set(self, value: float, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] = value

    def inc(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] += value

    def dec(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] -= value

    def get(self, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._values.get(_label_key(labels), 0)

    def get_all(self) -> list[MetricValue]:
        with self._lock:
            return [
                MetricValue(
                    name=self.name,
                    type=MetricType.GAUGE,
                    value=value,
                    labels=dict(label_key),
                    help_text=self.help_text,
                )
                for label_key, value in self._values.items()
            ]


class Histogram:
    """A histogram metric for tracking value distributions.

    Example:
        histogram = Histogram("dispatch_duration_seconds", "Dispatch duration")
        histogram.observe(0.5)
    """

    # Default buckets for timing (in seconds)
    DEFAULT_BUCKETS = (0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf"))

    def __init__(
        self,
        name: str,
        help_text: str = "",
        buckets: tuple[float, ...] | None = None,
    ) -> None:
        self.name = name
        self.help_text = help_text
        self._buckets = buckets or self.DEFAULT_BUCKETS
        self._observations: dict[LabelKey, list[float]] = defaultdict(list)
        self._lock = Lock()

    def observe(self, value: float, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._observations[_label_key(labels)].append(value)

    def get_stats(self, labels: dict[str, str] | None = None) -> dict[str, float]:
        """Get count, sum, min, max and mean for a label set."""
        with self._lock:
            values = list(self._observations.get(_label_key(labels), []))

        if not values:
            return {"count": 0, "sum": 0, "min": 0, "max": 0, "mean": 0}

        return {
            "count": len(values),
            "sum": sum(values),
            "min": min(values),
            "max": max(values),
            "mean": sum(values) / len(values),
        }

    def get_buckets(self, labels: dict[str, str] | None = None) -> dict[float, int]:
        """Get bucket counts for a label set."""
        with self._lock:
            values = list(self._observations.get(_label_key(labels), []))

        bucket_counts: dict[float, int] = dict.fromkeys(self._buckets, 0)
        for value in values:
            for bucket in self._buckets:
                if value <= bucket:
                    bucket_counts[bucket] += 1
                    break

        return bucket_counts


class MetricsRegistry:
    """Registry for the dispatch engine's metrics.

    Each router owns one registry by default; ``get_metrics()`` returns a
    process-wide instance for applications that want a single export point.

    Example:
        registry = MetricsRegistry()
        registry.updates_received.inc()
        print(registry.to_prometheus_format())
    """

    _instance: MetricsRegistry | None = None
    _lock = Lock()

    def __init__(self) -> None:
        self.updates_received = Counter(
            "pollbot_updates_received_total",
            "Total updates fetched from the remote service",
        )
        self.updates_dispatched = Counter(
            "pollbot_updates_dispatched_total",
            "Total updates routed to a handler chain",
        )
        self.updates_dropped = Counter(
            "pollbot_updates_dropped_total",
            "Total updates that could not be classified",
        )
        self.handler_errors = Counter(
            "pollbot_handler_errors_total",
            "Total errors reported through the error policy",
        )
        self.replies_sent = Counter(
            "pollbot_replies_sent_total",
            "Total outbound calls issued for reply actions",
        )
        self.poll_errors = Counter(
            "pollbot_poll_errors_total",
            "Total failed getUpdates calls",
        )

        self.active_dispatches = Gauge(
            "pollbot_active_dispatches",
            "Number of dispatch tasks in flight",
        )
        self.sessions = Gauge(
            "pollbot_sessions",
            "Number of live session state cells",
        )

        self.dispatch_duration = Histogram(
            "pollbot_dispatch_duration_seconds",
            "Time spent dispatching one update",
        )

        self._start_time = time.time()

    @classmethod
    def get_instance(cls) -> MetricsRegistry:
        """Get the process-wide metrics registry."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_uptime_seconds(self) -> float:
        return time.time() - self._start_time

    def get_all_metrics(self) -> dict[str, Any]:
        """Get all metrics as a dictionary."""
        return {
            "uptime_seconds": self.get_uptime_seconds(),
            "updates": {
                "received": self.updates_received.total(),
                "dispatched": self.updates_dispatched.total(),
                "dropped": self.updates_dropped.total(),
            },
            "handlers": {
                "errors": self.handler_errors.total(),
                "replies_sent": self.replies_sent.total(),
            },
            "polling": {
                "errors": self.poll_errors.total(),
            },
            "processing": {
                "active_dispatches": self.active_dispatches.get(),
                "sessions": self.sessions.get(),
                "duration_stats": self.dispatch_duration.get_stats(),
            },
        }

    def to_prometheus_format(self) -> str:
        """Export metrics in Prometheus text format."""
        lines: list[str] = []

        series: list[tuple[Counter | Gauge, str]] = [
            (self.updates_received, "counter"),
            (self.updates_dispatched, "counter"),
            (self.updates_dropped, "counter"),
            (self.handler_errors, "counter"),
            (self.replies_sent, "counter"),
            (self.poll_errors, "counter"),
            (self.active_dispatches, "gauge"),
            (self.sessions, "gauge"),
        ]
        for metric, kind in series:
            if metric.help_text:
                lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {kind}")
            for value in metric.get_all():
                if value.labels:
                    label_str = ",".join(f'{k}="{v}"' for k, v in value.labels.items())
                    lines.append(f"{metric.name}{{{label_str}}} {value.value}")
                else:
                    lines.append(f"{metric.name} {value.value}")

        lines.append("# HELP pollbot_uptime_seconds Process uptime in seconds")
        lines.append("# TYPE pollbot_uptime_seconds gauge")
        lines.append(f"pollbot_uptime_seconds {self.get_uptime_seconds()}")

        return "\n".join(lines)


def get_metrics() -> MetricsRegistry:
    """Get the process-wide metrics registry."""
    return MetricsRegistry.get_instance()


class Timer:
    """Context manager for timing operations.

    Example:
        with Timer(metrics.dispatch_duration, labels={"route": "message"}):
            await router.dispatch(update)
    """

    def __init__(
        self,
        histogram: Histogram,
        labels: dict[str, str] | None = None,
    ) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start: float | None = None

    def __enter__(self) -> Timer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        if self._start is not None:
            duration = time.perf_counter() - self._start
            self._histogram.observe(duration, labels=self._labels)
