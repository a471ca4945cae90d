"""
Prometheus metrics for monitoring the stream polling loop.

Defines and exposes metrics for:
- Stream checks by platform and result
- Batch commit outcomes
- Archive and promotion outcomes
- Cycle duration and loop errors
- Backing-store request pacing

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from livesheet.config.settings import get_settings
from livesheet.streams.schemas import ArchiveResult, CommitResult, Platform, PromotionSummary

logger = logging.getLogger(__name__)

# Cycles include every sequential page fetch, so buckets run long
CYCLE_BUCKETS = (1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the livesheet updater.

    Usage:
        metrics = MetricsCollector()
        metrics.start_server()

        metrics.record_check(Platform.TWITCH, "live")
        metrics.record_commit(result)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.stream_checks = Counter(
            "livesheet_stream_checks_total",
            "Total stream status checks",
            ["platform", "result"],  # result: live, offline, failed
        )

        self.stream_skips = Counter(
            "livesheet_stream_skips_total",
            "Streams skipped without a check",
            ["reason"],  # invalid_url, rate_limit
        )

        self.commit_rows = Counter(
            "livesheet_commit_rows_total",
            "Batch commit outcomes per staged update",
            ["outcome"],  # updated, deleted, conflict, failed
        )

        self.pending_updates = Gauge(
            "livesheet_pending_updates",
            "Staged updates waiting for the batch commit",
        )

        self.archived_streams = Counter(
            "livesheet_archive_streams_total",
            "Archive outcomes per candidate",
            ["outcome"],  # archived, skipped, error
        )

        self.promotions = Counter(
            "livesheet_promotions_total",
            "Watch-list pass outcomes per entry",
            ["outcome"],  # added, offline, failed, already_active, rate_limited, deferred, invalid
        )

        self.cycle_duration = Histogram(
            "livesheet_cycle_duration_seconds",
            "Time to run one scheduler cycle",
            ["mode"],  # normal, known_only
            buckets=CYCLE_BUCKETS,
        )

        self.cycle_errors = Counter(
            "livesheet_cycle_errors_total",
            "Cycles aborted by an unhandled error",
            ["error_type"],
        )

        self.store_request_delay = Gauge(
            "livesheet_store_request_delay_seconds",
            "Current pause between backing-store requests",
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_check(self, platform: Platform | str, result: str) -> None:
        """
        Record one status check.

        Args:
            platform: Stream platform
            result: live, offline or failed
        """
        platform_str = platform.value if isinstance(platform, Platform) else platform
        self.stream_checks.labels(platform=platform_str, result=result).inc()

    def record_skip(self, reason: str) -> None:
        self.stream_skips.labels(reason=reason).inc()

    def record_commit(self, result: CommitResult) -> None:
        """Record the per-row outcomes of a batch commit."""
        for outcome, count in (
            ("updated", result.updated),
            ("deleted", result.deleted),
            ("conflict", result.conflicts),
            ("failed", result.failed),
        ):
            if count:
                self.commit_rows.labels(outcome=outcome).inc(count)

    def set_pending_updates(self, count: int) -> None:
        self.pending_updates.set(count)

    def record_archive(self, result: ArchiveResult) -> None:
        for outcome, count in (
            ("archived", result.archived_count),
            ("skipped", result.skipped_count),
            ("error", result.error_count),
        ):
            if count:
                self.archived_streams.labels(outcome=outcome).inc(count)

    def record_promotion(self, summary: PromotionSummary) -> None:
        for outcome, count in (
            ("added", summary.added),
            ("offline", summary.offline),
            ("failed", summary.failed),
            ("already_active", summary.already_active),
            ("rate_limited", summary.skipped_rate_limit),
            ("deferred", summary.deferred),
            ("invalid", summary.skipped_invalid),
        ):
            if count:
                self.promotions.labels(outcome=outcome).inc(count)

    def record_cycle(self, mode: str, latency: float) -> None:
        """
        Record a completed cycle.

        Args:
            mode: normal or known_only
            latency: Cycle duration in seconds
        """
        self.cycle_duration.labels(mode=mode).observe(latency)

    def record_cycle_error(self, error_type: str) -> None:
        self.cycle_errors.labels(error_type=error_type).inc()

    def set_store_request_delay(self, seconds: float) -> None:
        self.store_request_delay.set(seconds)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
