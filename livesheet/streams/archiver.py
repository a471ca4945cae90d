"""
Archiver - retires streams that have been offline past a threshold.

Candidates come from a fresh read of the active set. Each one is read
again right before archiving and must still qualify; a stream that went
live in between is skipped, not counted as an error. Archive calls are
paced by a fixed short pause.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

import structlog

from livesheet.observability.metrics import get_metrics
from livesheet.storage.base import StreamStore
from livesheet.streams.schemas import ArchiveResult, Entity, StreamStatus, utc_now

logger = structlog.get_logger(__name__)

ARCHIVABLE_STATUSES = frozenset({StreamStatus.OFFLINE, StreamStatus.UNKNOWN})
DEFAULT_PACING_SECONDS = 0.1


def offline_since(entity: Entity) -> datetime | None:
    """Reference time for the offline age: last live, else last update."""
    return entity.last_live_at or entity.updated_at


def is_expired(entity: Entity, threshold_minutes: float, now: datetime) -> bool:
    """Return True if a stream qualifies for archiving."""
    if entity.archived or entity.status not in ARCHIVABLE_STATUSES:
        return False
    reference = offline_since(entity)
    if reference is None:
        return False
    return now - reference > timedelta(minutes=threshold_minutes)


def should_run_archive(
    enabled: bool,
    last_run: datetime | None,
    interval: timedelta,
    now: datetime,
) -> bool:
    """Time gate for the archiver; a gate that never ran is open."""
    if not enabled:
        return False
    return last_run is None or now - last_run >= interval


class Archiver:
    """
    Archives long-offline streams one at a time.

    Usage:
        archiver = Archiver(store)
        result = await archiver.archive(threshold_minutes=30)
    """

    def __init__(
        self,
        store: StreamStore,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
        pacing_seconds: float = DEFAULT_PACING_SECONDS,
    ):
        self._store = store
        self._sleep = sleep
        self._clock = clock
        self._pacing_seconds = pacing_seconds

    async def find_candidates(self, threshold_minutes: float) -> list[Entity]:
        """Active streams that currently look expired."""
        now = self._clock()
        entities = await self._store.list_active()
        return [e for e in entities if is_expired(e, threshold_minutes, now)]

    async def archive(self, threshold_minutes: float) -> ArchiveResult:
        """
        Archive every stream offline longer than the threshold.

        Args:
            threshold_minutes: Offline age beyond which a stream is archived

        Returns:
            ArchiveResult with archived, skipped and error counts

        Raises:
            Exception: If the candidate query itself fails
        """
        logger.info("Checking for expired streams to archive", threshold_minutes=threshold_minutes)
        result = ArchiveResult()

        candidates = await self.find_candidates(threshold_minutes)
        if not candidates:
            logger.info("No expired streams found to archive")
            return result

        logger.info("Found expired streams to archive", count=len(candidates))

        for candidate in candidates:
            try:
                current = await self._store.get(candidate.id)
                now = self._clock()
                if current is None or not is_expired(current, threshold_minutes, now):
                    logger.info("Stream state changed, skipping archive", stream_id=candidate.id)
                    result.skipped_count += 1
                    continue

                try:
                    await self._store.archive(current.id)
                finally:
                    await self._sleep(self._pacing_seconds)
                result.archived_count += 1
                offline_minutes = (now - offline_since(current)).total_seconds() / 60
                logger.info(
                    "Archived stream",
                    stream_id=current.id,
                    url=current.url,
                    offline_minutes=round(offline_minutes, 1),
                )
            except Exception as e:
                result.error_count += 1
                logger.error("Failed to archive stream", stream_id=candidate.id, error=str(e))

        logger.info(
            "Archive complete",
            archived=result.archived_count,
            skipped=result.skipped_count,
            errors=result.error_count,
        )
        get_metrics().record_archive(result)
        return result
