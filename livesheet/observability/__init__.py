"""Observability layer - logging and metrics."""

from livesheet.observability.logging import setup_logging
from livesheet.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
