"""Pytest fixtures for livesheet tests."""

from datetime import datetime, timedelta, timezone

import pytest

from livesheet.config.settings import Settings
from livesheet.streams.config import SchedulerConfig
from livesheet.streams.schemas import DetectionResult, Entity, Platform, StreamStatus
from livesheet.streams.urls import get_platform

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeDetector:
    """Detector returning canned results by URL and recording calls."""

    def __init__(self, results: dict[str, StreamStatus | None] | None = None, default=StreamStatus.OFFLINE):
        self.results = results or {}
        self.default = default
        self.calls: list[str] = []

    async def __call__(self, url: str) -> DetectionResult | None:
        self.calls.append(url)
        status = self.results.get(url, self.default)
        if status is None:
            return None
        return DetectionResult(status=status, platform=get_platform(url))


class RecordingSleep:
    """Awaitable sleep that only records durations."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_entity(
    entity_id: str = "1",
    url: str | None = None,
    status: StreamStatus = StreamStatus.OFFLINE,
    last_checked_at: datetime | None = None,
    last_live_at: datetime | None = None,
    **kwargs,
) -> Entity:
    """Build an Entity with a valid Twitch URL by default."""
    return Entity(
        id=entity_id,
        url=url or f"https://www.twitch.tv/streamer{entity_id}",
        platform=kwargs.pop("platform", Platform.TWITCH),
        status=status,
        last_checked_at=last_checked_at,
        last_live_at=last_live_at,
        **kwargs,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def detector() -> FakeDetector:
    return FakeDetector()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    """Scheduler config with defaults, isolated from the environment."""
    return SchedulerConfig(
        _env_file=None,
        rate_live_seconds=120,
        rate_off_seconds=420,
        max_known_checks_per_cycle=10,
        loop_delay_min_seconds=10,
        loop_delay_max_seconds=20,
        error_retry_delay_seconds=30,
        archive_enabled=False,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        _env_file=None,
        environment="development",
        log_level="DEBUG",
        streamsource_api_url="https://streamsource.test",
        streamsource_email="bot@example.com",
        streamsource_password="secret",
    )
