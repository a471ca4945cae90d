"""Tests for the Prometheus metrics collector."""

from prometheus_client import REGISTRY

from livesheet.observability.metrics import get_metrics
from livesheet.streams.schemas import ArchiveResult, CommitResult, Platform


def _value(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricsCollector:
    def test_singleton(self):
        assert get_metrics() is get_metrics()

    def test_record_check(self):
        labels = {"platform": "Twitch", "result": "live"}
        before = _value("livesheet_stream_checks_total", labels)

        get_metrics().record_check(Platform.TWITCH, "live")

        assert _value("livesheet_stream_checks_total", labels) == before + 1

    def test_record_commit_counts_outcomes(self):
        before = _value("livesheet_commit_rows_total", {"outcome": "conflict"})

        get_metrics().record_commit(CommitResult(updated=2, conflicts=3))

        assert _value("livesheet_commit_rows_total", {"outcome": "conflict"}) == before + 3

    def test_record_archive(self):
        before = _value("livesheet_archive_streams_total", {"outcome": "archived"})

        get_metrics().record_archive(ArchiveResult(archived_count=4))

        assert _value("livesheet_archive_streams_total", {"outcome": "archived"}) == before + 4

    def test_gauges(self):
        metrics = get_metrics()

        metrics.set_pending_updates(7)
        metrics.set_store_request_delay(0.4)

        assert _value("livesheet_pending_updates") == 7
        assert _value("livesheet_store_request_delay_seconds") == 0.4
