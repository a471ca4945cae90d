"""
Check orchestrator - runs status checks over the prioritized active set.

Checks are strictly sequential. Results are only staged into the
scheduler's pending-update map; nothing is written to the backing store
here. A failed detection stages nothing, so the stream keeps its old
``last_checked_at`` and comes due again on the next cycle.
"""

from collections.abc import Callable, Iterable
from datetime import datetime

import structlog

from livesheet.observability.metrics import get_metrics
from livesheet.streams.config import SchedulerConfig
from livesheet.streams.rate_limiter import is_active_due
from livesheet.streams.schemas import (
    CheckSummary,
    DetectFn,
    Entity,
    PendingUpdate,
    SchedulerState,
    utc_now,
)
from livesheet.streams.urls import clean_url, is_valid_live_url

logger = structlog.get_logger(__name__)


class CheckOrchestrator:
    """
    Walks prioritized streams, checks the due ones, stages the results.

    Usage:
        orchestrator = CheckOrchestrator(detector, config)
        summary = await orchestrator.run(prioritized, state)
    """

    def __init__(
        self,
        detector: DetectFn,
        config: SchedulerConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._detect = detector
        self._config = config or SchedulerConfig()
        self._clock = clock

    async def check_stream(
        self,
        entity: Entity,
        state: SchedulerState,
        summary: CheckSummary,
    ) -> None:
        """Check one stream and stage its result if the detector answered."""
        summary.considered += 1
        metrics = get_metrics()

        url = clean_url(entity.url)
        if not url:
            logger.debug("Stream has no URL", stream_id=entity.id)
            summary.skipped_invalid += 1
            metrics.record_skip("invalid_url")
            return

        if url != entity.url:
            logger.debug("Cleaned URL", stream_id=entity.id, original=entity.url, cleaned=url)

        if not is_valid_live_url(url):
            logger.info("Skip invalid URL", stream_id=entity.id, url=url)
            summary.skipped_invalid += 1
            metrics.record_skip("invalid_url")
            return

        now = self._clock()
        if not is_active_due(entity, now, self._config):
            seconds_ago = round((now - entity.last_checked_at).total_seconds())
            logger.debug("Skip (rate limit)", stream_id=entity.id, url=url, seconds_ago=seconds_ago)
            summary.skipped_rate_limit += 1
            metrics.record_skip("rate_limit")
            return

        logger.info("Checking stream", stream_id=entity.id, url=url)
        result = await self._detect(url)

        if result is None:
            logger.info("Failed to fetch status", stream_id=entity.id, url=url)
            summary.failed += 1
            metrics.record_check(entity.platform, "failed")
            return

        # Last check of a URL within a cycle wins
        state.pending_updates[url] = PendingUpdate(
            status=result.status,
            checked_at=self._clock(),
            entity_id=entity.id,
        )
        summary.staged += 1
        metrics.record_check(result.platform, result.status.value)
        logger.info("Stream status", stream_id=entity.id, url=url, status=result.status.value)

    async def run(self, entities: Iterable[Entity], state: SchedulerState) -> CheckSummary:
        """Check every due stream in the given order."""
        summary = CheckSummary()
        for entity in entities:
            await self.check_stream(entity, state, summary)

        get_metrics().set_pending_updates(len(state.pending_updates))
        logger.info(
            "Checks complete",
            considered=summary.considered,
            staged=summary.staged,
            failed=summary.failed,
            skipped_rate_limit=summary.skipped_rate_limit,
            skipped_invalid=summary.skipped_invalid,
        )
        return summary
