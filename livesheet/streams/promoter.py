"""
Known entity promoter - moves live watch-list streamers into the active set.

Entries are visited in priority order. URLs already in the active set are
skipped before any rate or budget bookkeeping, so they never use up the
per-cycle check cap. Once the cap of performed checks is reached, the
remaining due entries are deferred to the next cycle; since the walk is
priority-sorted, low-priority entries never starve high-priority ones.
"""

from collections.abc import Callable, Iterable
from datetime import datetime

import structlog

from livesheet.observability.metrics import get_metrics
from livesheet.storage.base import StreamStore
from livesheet.streams.config import SchedulerConfig
from livesheet.streams.rate_limiter import is_watch_due, watch_interval
from livesheet.streams.schemas import (
    DetectFn,
    Entity,
    PromotionSummary,
    SchedulerState,
    StreamStatus,
    WatchEntry,
    utc_now,
)
from livesheet.streams.urls import clean_url, is_valid_live_url

logger = structlog.get_logger(__name__)


def priority_distribution(entries: Iterable[WatchEntry]) -> dict[str, int]:
    """Bucket counts used for the start-of-pass log line."""
    groups: dict[str, int] = {}
    for entry in entries:
        if entry.priority >= 100:
            key = "100+"
        elif entry.priority >= 10:
            key = "10-99"
        elif entry.priority >= 1:
            key = "1-9"
        else:
            key = "0 or unset"
        groups[key] = groups.get(key, 0) + 1
    return groups


class KnownEntityPromoter:
    """
    Checks due watch-list entries and inserts the live ones as streams.

    Usage:
        promoter = KnownEntityPromoter(store, detector, config)
        summary = await promoter.promote(active, watch_list, state)
    """

    def __init__(
        self,
        store: StreamStore,
        detector: DetectFn,
        config: SchedulerConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._detect = detector
        self._config = config or SchedulerConfig()
        self._clock = clock

    async def promote(
        self,
        active: Iterable[Entity],
        watch_list: list[WatchEntry],
        state: SchedulerState,
    ) -> PromotionSummary:
        """
        Run one pass over the watch list.

        Args:
            active: Current active-set snapshot
            watch_list: Watch-list entries in any order
            state: Scheduler state holding per-URL last-check times

        Returns:
            PromotionSummary with per-outcome counts
        """
        summary = PromotionSummary(total=len(watch_list))
        if not watch_list:
            logger.info("No known streamers found in watch list")
            return summary

        max_checks = self._config.max_known_checks_per_cycle
        active_urls = {url for url in (clean_url(e.url) for e in active) if url}
        ordered = sorted(watch_list, key=lambda entry: entry.priority, reverse=True)

        logger.info(
            "Starting known streamers check",
            total=len(watch_list),
            priority_distribution=priority_distribution(ordered),
        )

        for entry in ordered:
            url = clean_url(entry.url)
            if not url:
                logger.info("Skipping known streamer with no URL", source=entry.source)
                summary.skipped_invalid += 1
                continue
            if not is_valid_live_url(url):
                logger.info("Skip invalid known streamer URL", url=url)
                summary.skipped_invalid += 1
                continue

            if url in active_urls:
                logger.debug("Already in active set", url=url)
                summary.already_active += 1
                continue

            now = self._clock()
            if not is_watch_due(url, entry.priority, now, state.watch_last_check, self._config):
                interval = watch_interval(entry.priority, self._config)
                logger.debug(
                    "Skip known streamer (rate limit)",
                    url=url,
                    priority=entry.priority,
                    interval_minutes=round(interval.total_seconds() / 60),
                )
                summary.skipped_rate_limit += 1
                continue

            if summary.checked >= max_checks:
                logger.debug("Max known checks reached, deferring", url=url, max_checks=max_checks)
                summary.deferred += 1
                continue

            state.watch_last_check[url] = now
            summary.checked += 1
            logger.info("Checking known streamer", url=url, priority=entry.priority)

            result = await self._detect(url)
            if result is None:
                logger.info("Failed to fetch known streamer status", url=url)
                summary.failed += 1
                continue

            if result.status != StreamStatus.LIVE:
                logger.debug("Known streamer offline", url=url)
                summary.offline += 1
                continue

            await self._insert_live(entry, url, result.platform, summary)
            active_urls.add(url)

        self._log_summary(summary, max_checks)
        get_metrics().record_promotion(summary)
        return summary

    async def _insert_live(self, entry: WatchEntry, url: str, platform, summary: PromotionSummary) -> None:
        now = self._clock()
        try:
            created = await self._store.insert(
                {
                    "url": url,
                    "platform": platform,
                    "status": StreamStatus.LIVE,
                    "last_checked_at": now,
                    "last_live_at": now,
                    "added_at": now,
                    "source": entry.source,
                    "city": entry.city,
                    "state": entry.state,
                }
            )
        except Exception as e:
            logger.error("Failed to add live known streamer", url=url, error=str(e))
            summary.errors += 1
            return

        summary.added += 1
        logger.info(
            "Known streamer live, added to active set",
            url=url,
            stream_id=created.id,
            source=entry.source or None,
            city=entry.city or None,
            state=entry.state or None,
        )

    @staticmethod
    def _log_summary(summary: PromotionSummary, max_checks: int) -> None:
        logger.info(
            "Known streamers check complete",
            total=summary.total,
            checked=summary.checked,
            max_checks=max_checks,
            added=summary.added,
            already_active=summary.already_active,
            offline=summary.offline,
            failed=summary.failed,
            rate_limited=summary.skipped_rate_limit,
            deferred=summary.deferred,
            invalid=summary.skipped_invalid,
        )
        if summary.deferred:
            logger.info("Reached max checks per cycle, remaining streamers deferred to next cycle")
