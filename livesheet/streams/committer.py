"""
Batch committer - writes staged statuses back under an optimistic check.

The commit re-reads the active set instead of trusting the snapshot the
cycle started with. A staged update is dropped when its row is gone, or
when the row's ``last_checked_at`` moved past the cycle start (another
writer checked it meanwhile). Only that one timestamp is compared.

The pending map is emptied on every path out of ``commit``.
"""

from collections.abc import Callable
from datetime import datetime

import structlog

from livesheet.observability.metrics import get_metrics
from livesheet.storage.base import StreamStore
from livesheet.streams.schemas import CommitResult, Entity, PendingUpdate, StreamStatus, utc_now
from livesheet.streams.urls import clean_url

logger = structlog.get_logger(__name__)


def build_update_fields(fresh: Entity, update: PendingUpdate, now: datetime) -> dict:
    """Fields to persist for one staged update."""
    fields = {
        "status": update.status,
        "last_checked_at": now,
    }
    if update.status == StreamStatus.LIVE:
        fields["last_live_at"] = now
    if fresh.added_at is None:
        fields["added_at"] = now
    return fields


class BatchCommitter:
    """
    Commits the pending-update map to the backing store.

    Usage:
        committer = BatchCommitter(store)
        result = await committer.commit(state.pending_updates, cycle_start)
    """

    def __init__(
        self,
        store: StreamStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._clock = clock

    async def commit(
        self,
        pending: dict[str, PendingUpdate],
        cycle_start: datetime,
    ) -> CommitResult:
        """
        Write every staged update that survives the freshness checks.

        Args:
            pending: Staged updates keyed by cleaned URL (cleared on return)
            cycle_start: When the current cycle began

        Returns:
            CommitResult with updated and skipped counts

        Raises:
            Exception: Whatever the backing store raised on the fresh read;
                the whole commit is abandoned in that case
        """
        result = CommitResult()
        try:
            if not pending:
                logger.info("No updates to process")
                return result

            logger.info("Starting batch update", rows=len(pending))

            fresh_rows = await self._store.list_active()
            rows_by_url: dict[str, Entity] = {}
            for row in fresh_rows:
                url = clean_url(row.url)
                if url:
                    rows_by_url[url] = row

            for url, update in pending.items():
                fresh = rows_by_url.get(url)

                if fresh is None:
                    logger.info("Row deleted concurrently, skipping", url=url)
                    result.deleted += 1
                    continue

                if fresh.last_checked_at is not None and fresh.last_checked_at > cycle_start:
                    logger.info("Row updated by another process, skipping", url=url, stream_id=fresh.id)
                    result.conflicts += 1
                    continue

                try:
                    await self._store.write(
                        fresh.id,
                        build_update_fields(fresh, update, self._clock()),
                    )
                    result.updated += 1
                except Exception as e:
                    logger.error("Failed to save row", url=url, stream_id=fresh.id, error=str(e))
                    result.failed += 1

            logger.info(
                "Batch update complete",
                updated=result.updated,
                skipped=result.skipped,
                deleted=result.deleted,
                conflicts=result.conflicts,
                failed=result.failed,
            )
            get_metrics().record_commit(result)
            return result
        finally:
            pending.clear()
            get_metrics().set_pending_updates(0)
