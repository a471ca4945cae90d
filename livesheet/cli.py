"""
Command-line interface for the livesheet updater.

Provides commands to run the polling loop, run a single cycle,
archive long-offline streams, and check one URL by hand.

Usage:
    livesheet run                # Poll forever
    livesheet run --known-only   # Only promote from the watch list
    livesheet tick               # Run one cycle and print the outcome
    livesheet archive --dry-run  # List streams that would be archived
    livesheet check URL          # Detect the status of one stream
"""

import asyncio
import signal
import sys

import click

from livesheet.config.settings import Settings, get_settings
from livesheet.observability.logging import get_logger, setup_logging
from livesheet.observability.metrics import get_metrics
from livesheet.storage.base import StreamStore, WatchListUnavailableError
from livesheet.streams.config import SchedulerConfig
from livesheet.streams.schemas import CycleOutcome

logger = get_logger(__name__)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Livesheet Updater - keeps live-stream statuses current."""
    setup_logging("DEBUG" if debug else None)


def build_store(settings: Settings, mock: bool) -> StreamStore:
    """Create the backing store for a command."""
    if mock:
        from livesheet.detection.mock import generate_entities, generate_watch_list
        from livesheet.storage.memory import MemoryStore

        return MemoryStore(generate_entities(), generate_watch_list())

    from livesheet.storage.streamsource import StreamSourceStore
    from livesheet.storage.streamsource_client import StreamSourceClient

    if not settings.streamsource_configured:
        raise click.ClickException(
            "StreamSource credentials missing: set STREAMSOURCE_EMAIL and STREAMSOURCE_PASSWORD"
        )

    client = StreamSourceClient(
        api_url=settings.streamsource_api_url,
        email=settings.streamsource_email,
        password=settings.streamsource_password.get_secret_value(),
        timeout=settings.streamsource_timeout_seconds,
    )
    return StreamSourceStore(client, settings.watch_list_path)


def build_detector(settings: Settings, mock: bool):
    if mock:
        from livesheet.detection.mock import MockDetector

        return MockDetector()

    from livesheet.detection.detector import StatusDetector

    return StatusDetector(timeout=settings.detector_timeout_seconds)


async def _close(detector) -> None:
    close = getattr(detector, "close", None)
    if close is not None:
        await close()


def _echo_outcome(outcome: CycleOutcome) -> None:
    click.echo(f"\nCycle {outcome.cycle} ({'known-only' if outcome.known_only else 'normal'}):")
    if outcome.checks:
        c = outcome.checks
        click.echo(
            f"  checks: {c.staged} staged, {c.failed} failed, "
            f"{c.skipped_rate_limit} rate limited, {c.skipped_invalid} invalid"
        )
    if outcome.commit:
        c = outcome.commit
        click.echo(f"  commit: {c.updated} updated, {c.skipped} skipped")
    if outcome.archive:
        a = outcome.archive
        click.echo(
            f"  archive: {a.archived_count} archived, {a.skipped_count} skipped, {a.error_count} errors"
        )
    if outcome.promotion:
        p = outcome.promotion
        click.echo(
            f"  known streamers: {p.checked} checked, {p.added} added, "
            f"{p.already_active} already active, {p.deferred} deferred"
        )
    click.echo(f"  next cycle in {outcome.sleep_seconds:.1f}s")


@main.command()
@click.option("--known-only", is_flag=True, help="Only check the watch list")
@click.option("--mock", is_flag=True, help="Use in-memory store and mock detector")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def run(known_only: bool, mock: bool, metrics: bool) -> None:
    """Run the polling loop until interrupted."""
    from livesheet.streams.scheduler import StreamScheduler

    settings = get_settings()
    known_only = known_only or settings.known_streamers_only

    async def _run() -> None:
        store = build_store(settings, mock)
        detector = build_detector(settings, mock)
        scheduler = StreamScheduler(store, detector, SchedulerConfig(), known_only=known_only)

        if metrics:
            get_metrics().start_server()

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

        try:
            await scheduler.run(stop_event)
        finally:
            await _close(detector)
            await store.close()

    try:
        asyncio.run(_run())
    except WatchListUnavailableError as e:
        logger.error("Cannot start", error=str(e))
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


@main.command()
@click.option("--known-only", is_flag=True, help="Only check the watch list")
@click.option("--mock", is_flag=True, help="Use in-memory store and mock detector")
def tick(known_only: bool, mock: bool) -> None:
    """Run exactly one cycle and print what it did."""
    from livesheet.streams.scheduler import StreamScheduler

    settings = get_settings()
    known_only = known_only or settings.known_streamers_only

    async def _tick() -> CycleOutcome:
        store = build_store(settings, mock)
        detector = build_detector(settings, mock)
        scheduler = StreamScheduler(store, detector, SchedulerConfig(), known_only=known_only)
        try:
            scheduler.ensure_ready()
            return await scheduler.tick()
        finally:
            await _close(detector)
            await store.close()

    try:
        outcome = asyncio.run(_tick())
    except WatchListUnavailableError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    _echo_outcome(outcome)


@main.command()
@click.option("--threshold", default=None, type=float, help="Minutes offline before archiving")
@click.option("--dry-run", is_flag=True, help="List candidates without archiving")
@click.option("--mock", is_flag=True, help="Use in-memory store")
def archive(threshold: float | None, dry_run: bool, mock: bool) -> None:
    """Archive streams that have been offline too long.

    Example:
        livesheet archive --threshold 60 --dry-run   # Preview
        livesheet archive --threshold 60             # Archive
    """
    from livesheet.streams.archiver import Archiver

    settings = get_settings()
    config = SchedulerConfig()
    minutes = threshold if threshold is not None else config.archive_threshold_minutes

    async def _archive() -> None:
        store = build_store(settings, mock)
        archiver = Archiver(store, pacing_seconds=config.archive_pacing_seconds)
        try:
            if dry_run:
                candidates = await archiver.find_candidates(minutes)
                click.echo(f"\nDry run - would archive {len(candidates)} streams offline over {minutes:g} minutes")
                for entity in candidates:
                    click.echo(f"  {entity.id}: {entity.url} ({entity.status.value})")
                click.echo("\nRun without --dry-run to actually archive.")
                return

            result = await archiver.archive(minutes)
            click.echo(
                f"\nArchived {result.archived_count} streams "
                f"({result.skipped_count} skipped, {result.error_count} errors)"
            )
        finally:
            await store.close()

    asyncio.run(_archive())


@main.command()
@click.argument("url")
@click.option("--mock", is_flag=True, help="Use the mock detector")
def check(url: str, mock: bool) -> None:
    """Detect the live status of a single stream URL."""
    from livesheet.streams.urls import clean_url, is_valid_live_url

    settings = get_settings()
    cleaned = clean_url(url)
    if not is_valid_live_url(cleaned):
        click.echo(click.style(f"Not a supported live URL: {cleaned or url}", fg="yellow"))

    async def _check():
        detector = build_detector(settings, mock)
        try:
            return await detector(cleaned)
        finally:
            await _close(detector)

    result = asyncio.run(_check())
    if result is None:
        click.echo(click.style(f"✗ Could not determine status of {cleaned}", fg="red"))
        sys.exit(1)

    color = "green" if result.status.value == "live" else "white"
    click.echo(click.style(f"{result.platform.value}: {result.status.value}", fg=color))


if __name__ == "__main__":
    main()
