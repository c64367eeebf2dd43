"""Tests for the metrics collection module."""

import pytest

from pollbot.utils.metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    MetricType,
    Timer,
    get_metrics,
)


class TestCounter:
    """Tests for Counter metric."""

    def test_starts_at_zero(self) -> None:
        """Test counter starts at zero."""
        assert Counter("updates").get() == 0

    def test_increments(self) -> None:
        """Test default and explicit increments add up."""
        counter = Counter("updates")
        counter.inc()
        counter.inc(4)
        assert counter.get() == 5

    def test_labels_are_separate_series(self) -> None:
        """Test labelled increments and the cross-label total."""
        counter = Counter("updates")
        counter.inc(labels={"kind": "message"})
        counter.inc(labels={"kind": "message"})
        counter.inc(labels={"kind": "callback_query"})

        assert counter.get(labels={"kind": "message"}) == 2
        assert counter.get(labels={"kind": "inline_query"}) == 0
        assert counter.get() == 0
        assert counter.total() == 3

    def test_label_order_is_irrelevant(self) -> None:
        """Test label dicts are normalized."""
        counter = Counter("updates")
        counter.inc(labels={"a": "1", "b": "2"})
        assert counter.get(labels={"b": "2", "a": "1"}) == 1

    def test_cannot_decrease(self) -> None:
        """Test that counter rejects negative values."""
        with pytest.raises(ValueError, match="can only increase"):
            Counter("updates").inc(-1)

    def test_get_all(self) -> None:
        """Test exporting every series."""
        counter = Counter("updates", "Help text")
        counter.inc(labels={"kind": "message"})
        counter.inc(2, labels={"kind": "edited_message"})

        values = counter.get_all()
        assert {v.labels["kind"]: v.value for v in values} == {
            "message": 1,
            "edited_message": 2,
        }
        assert all(v.type is MetricType.COUNTER for v in values)


class TestGauge:
    """Tests for Gauge metric."""

    def test_set_inc_dec(self) -> None:
        """Test the gauge moves both ways."""
        gauge = Gauge("active")
        gauge.set(3)
        gauge.inc()
        gauge.dec(5)
        assert gauge.get() == -1

    def test_labels(self) -> None:
        """Test labelled gauges."""
        gauge = Gauge("sessions")
        gauge.set(10, labels={"store": "a"})
        gauge.set(20, labels={"store": "b"})
        assert gauge.get(labels={"store": "a"}) == 10
        assert {v.value for v in gauge.get_all()} == {10, 20}


class TestHistogram:
    """Tests for Histogram metric."""

    def test_stats(self) -> None:
        """Test count, sum, min, max and mean."""
        histogram = Histogram("duration")
        for value in (0.5, 1.0, 1.5):
            histogram.observe(value)

        assert histogram.get_stats() == {
            "count": 3,
            "sum": 3.0,
            "min": 0.5,
            "max": 1.5,
            "mean": 1.0,
        }

    def test_empty(self) -> None:
        """Test stats without observations."""
        assert Histogram("duration").get_stats()["count"] == 0

    def test_buckets(self) -> None:
        """Test each observation lands in its first fitting bucket."""
        histogram = Histogram("duration", buckets=(1.0, 5.0, float("inf")))
        for value in (0.5, 1.0, 3.0, 50.0):
            histogram.observe(value)

        assert histogram.get_buckets() == {1.0: 2, 5.0: 1, float("inf"): 1}


class TestTimer:
    """Tests for Timer context manager."""

    def test_records_duration(self) -> None:
        """Test a timed block is observed once."""
        histogram = Histogram("duration")
        with Timer(histogram, labels={"route": "message"}):
            pass

        stats = histogram.get_stats(labels={"route": "message"})
        assert stats["count"] == 1
        assert stats["sum"] >= 0

    def test_records_on_exception(self) -> None:
        """Test that timer records even if the block raises."""
        histogram = Histogram("duration")
        with pytest.raises(ValueError), Timer(histogram):
            raise ValueError("handler failed")

        assert histogram.get_stats()["count"] == 1


class TestMetricsRegistry:
    """Tests for MetricsRegistry."""

    def test_singleton_instance(self) -> None:
        """Test that get_metrics returns one process-wide registry."""
        assert get_metrics() is MetricsRegistry.get_instance()

    def test_fresh_registries_are_independent(self) -> None:
        """Test routers can own private registries."""
        a = MetricsRegistry()
        b = MetricsRegistry()
        a.updates_received.inc()
        assert b.updates_received.total() == 0

    def test_get_all_metrics(self) -> None:
        """Test the dictionary export."""
        registry = MetricsRegistry()
        registry.updates_received.inc(labels={"kind": "message"})
        registry.updates_received.inc(labels={"kind": "callback_query"})
        registry.updates_dispatched.inc()
        registry.handler_errors.inc()
        registry.poll_errors.inc(2)
        registry.sessions.set(4)

        metrics = registry.get_all_metrics()

        assert metrics["uptime_seconds"] >= 0
        assert metrics["updates"] == {"received": 2, "dispatched": 1, "dropped": 0}
        assert metrics["handlers"] == {"errors": 1, "replies_sent": 0}
        assert metrics["polling"] == {"errors": 2}
        assert metrics["processing"]["sessions"] == 4

    def test_prometheus_format(self) -> None:
        """Test the Prometheus text export."""
        registry = MetricsRegistry()
        registry.updates_received.inc(labels={"kind": "message"})
        registry.active_dispatches.inc()

        output = registry.to_prometheus_format()

        assert "# TYPE pollbot_updates_received_total counter" in output
        assert 'pollbot_updates_received_total{kind="message"} 1' in output
        assert "# TYPE pollbot_active_dispatches gauge" in output
        assert "pollbot_uptime_seconds" in output
