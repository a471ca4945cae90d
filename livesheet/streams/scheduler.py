"""
Stream scheduler - the single polling loop.

One tick is:
1. Fresh snapshot of the active set, prioritized
2. Sequential checks, staged into the pending map
3. Batch commit of the staged map
4. Time-gated archive of long-offline streams
5. Watch-list promotion

Known-only mode runs step 5 alone. Between ticks the loop sleeps a random
delay so concurrent instances drift apart. A failing tick is logged and
retried after a fixed delay; the loop only ends when its stop event is set.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from datetime import datetime

import structlog

from livesheet.observability.logging import cycle_context
from livesheet.observability.metrics import get_metrics
from livesheet.storage.base import StreamStore, WatchListUnavailableError
from livesheet.streams.archiver import Archiver, should_run_archive
from livesheet.streams.checker import CheckOrchestrator
from livesheet.streams.committer import BatchCommitter
from livesheet.streams.config import SchedulerConfig
from livesheet.streams.prioritizer import prioritize
from livesheet.streams.promoter import KnownEntityPromoter
from livesheet.streams.schemas import (
    ArchiveResult,
    CycleOutcome,
    DetectFn,
    PromotionSummary,
    SchedulerState,
    utc_now,
)

logger = structlog.get_logger(__name__)


class StreamScheduler:
    """
    Drives checks, commits, archiving and promotion against one store.

    Usage:
        scheduler = StreamScheduler(store, detector, config)
        stop = asyncio.Event()
        await scheduler.run(stop)

    For a single cycle:
        outcome = await scheduler.tick()
    """

    def __init__(
        self,
        store: StreamStore,
        detector: DetectFn,
        config: SchedulerConfig | None = None,
        known_only: bool = False,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            store: Backing store for the active set and watch list
            detector: Async status detector
            config: Rate, delay and archive settings
            known_only: Skip the active set and only run promotion
            clock: Source of "now"
            sleep: Pause between cycles (default waits on the stop event)
            rng: Random source for the loop delay
        """
        self.store = store
        self.config = config or SchedulerConfig()
        self.known_only = known_only
        self.state = SchedulerState()

        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()

        self._checker = CheckOrchestrator(detector, self.config, clock)
        self._committer = BatchCommitter(store, clock)
        self._archiver = Archiver(
            store,
            sleep=sleep or asyncio.sleep,
            clock=clock,
            pacing_seconds=self.config.archive_pacing_seconds,
        )
        self._promoter = KnownEntityPromoter(store, detector, self.config, clock)

    @property
    def mode(self) -> str:
        return "known_only" if self.known_only else "normal"

    def ensure_ready(self) -> None:
        """
        Check startup preconditions.

        Raises:
            WatchListUnavailableError: Known-only mode without a watch list
        """
        if self.known_only and not self.store.watch_list_available:
            raise WatchListUnavailableError(
                "Known-only mode requires a watch list, but the store has none"
            )

    async def tick(self) -> CycleOutcome:
        """
        Run one full cycle.

        Returns:
            CycleOutcome describing each step and the delay before the next

        Raises:
            Exception: Snapshot, commit re-read or watch-list read failures;
                the pending map is cleared before the error propagates
        """
        self.state.cycles += 1
        with cycle_context(self.state.cycles, self.mode):
            return await self._run_cycle()

    async def _run_cycle(self) -> CycleOutcome:
        cycle_start = self._clock()
        started = time.monotonic()
        outcome = CycleOutcome(
            cycle=self.state.cycles,
            started_at=cycle_start,
            known_only=self.known_only,
        )

        logger.info("Starting cycle")

        try:
            if not self.known_only:
                entities = await self.store.list_active()
                ordered = prioritize(
                    entities,
                    cycle_start,
                    self.config.recently_live_threshold,
                )
                logger.info("Loaded active streams", count=len(ordered))

                outcome.checks = await self._checker.run(ordered, self.state)
                outcome.commit = await self._committer.commit(
                    self.state.pending_updates,
                    cycle_start,
                )
                outcome.archive = await self._maybe_archive()

            outcome.promotion = await self._promote()
        finally:
            self.state.pending_updates.clear()

        outcome.sleep_seconds = self._rng.uniform(
            self.config.loop_delay_min_seconds,
            self.config.loop_delay_max_seconds,
        )
        elapsed = time.monotonic() - started
        get_metrics().record_cycle(self.mode, elapsed)
        logger.info(
            "Cycle complete",
            elapsed_seconds=round(elapsed, 2),
            next_check_seconds=round(outcome.sleep_seconds, 1),
        )
        return outcome

    async def _maybe_archive(self) -> ArchiveResult | None:
        now = self._clock()
        if not should_run_archive(
            self.config.archive_enabled,
            self.state.last_archive_run,
            self.config.archive_check_interval,
            now,
        ):
            return None

        self.state.last_archive_run = now
        try:
            return await self._archiver.archive(self.config.archive_threshold_minutes)
        except Exception as e:
            logger.error("Archive step failed", error=str(e))
            return None

    async def _promote(self) -> PromotionSummary | None:
        if not self.store.watch_list_available:
            logger.info("No watch list configured, skipping known streamers")
            return None

        watch_list = await self.store.list_watch()
        active = await self.store.list_active()
        return await self._promoter.promote(active, watch_list, self.state)

    async def _pause(self, seconds: float, stop_event: asyncio.Event) -> None:
        if self._sleep is not None:
            await self._sleep(seconds)
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Loop until the stop event is set.

        Raises:
            WatchListUnavailableError: Known-only mode without a watch list
        """
        self.ensure_ready()
        logger.info(
            "Starting stream scheduler",
            mode=self.mode,
            archive_enabled=self.config.archive_enabled,
        )

        while not stop_event.is_set():
            try:
                outcome = await self.tick()
                delay = outcome.sleep_seconds
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "Error in main loop",
                    cycle=self.state.cycles,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                get_metrics().record_cycle_error(type(e).__name__)
                delay = self.config.error_retry_delay_seconds

            if stop_event.is_set():
                break
            await self._pause(delay, stop_event)

        logger.info("Stream scheduler stopped", cycles=self.state.cycles)
