"""
Mock detector and sample data for development runs.

Generates synthetic streams and watch-list entries on the supported
platforms, and answers status checks at random. Useful for:
- Running the scheduler without StreamSource credentials
- Exercising archive and promotion paths locally
"""

import random
from datetime import datetime, timedelta

from livesheet.streams.schemas import (
    DetectionResult,
    Entity,
    StreamStatus,
    WatchEntry,
    utc_now,
)
from livesheet.streams.urls import get_platform

SAMPLE_HANDLES = [
    "cityhallwatch",
    "streetmedic",
    "northsidelive",
    "riverfrontcam",
    "downtownreport",
    "marchtracker",
    "eastendnews",
    "bridgecam",
]

SAMPLE_LOCATIONS = [
    ("Portland", "OR"),
    ("Seattle", "WA"),
    ("Chicago", "IL"),
    ("Austin", "TX"),
    ("Atlanta", "GA"),
]


def _sample_url(rng: random.Random, handle: str) -> str:
    choice = rng.randrange(3)
    if choice == 0:
        return f"https://www.twitch.tv/{handle}"
    if choice == 1:
        return f"https://www.tiktok.com/@{handle}/live"
    return f"https://www.youtube.com/watch?v={handle}"


def generate_entities(count: int = 6, seed: int | None = None, now: datetime | None = None) -> list[Entity]:
    """Build an active set with a mix of live, offline and unchecked streams."""
    rng = random.Random(seed)
    now = now or utc_now()
    entities = []
    for i in range(count):
        handle = SAMPLE_HANDLES[i % len(SAMPLE_HANDLES)]
        city, state = rng.choice(SAMPLE_LOCATIONS)
        url = _sample_url(rng, handle)
        status = rng.choice([StreamStatus.LIVE, StreamStatus.OFFLINE, StreamStatus.UNKNOWN])
        checked = None if i == 0 else now - timedelta(minutes=rng.randint(1, 15))
        last_live = now - timedelta(minutes=rng.randint(0, 90)) if status != StreamStatus.UNKNOWN else None
        entities.append(
            Entity(
                id=str(i + 1),
                url=url,
                platform=get_platform(url),
                status=status,
                last_checked_at=checked,
                last_live_at=last_live,
                added_at=now - timedelta(hours=rng.randint(1, 48)),
                updated_at=checked,
                source="mock",
                city=city,
                state=state,
            )
        )
    return entities


def generate_watch_list(count: int = 4, seed: int | None = None) -> list[WatchEntry]:
    """Build watch-list entries across the priority range."""
    rng = random.Random(seed)
    entries = []
    for i in range(count):
        handle = f"{SAMPLE_HANDLES[(i + 3) % len(SAMPLE_HANDLES)]}{i}"
        city, state = rng.choice(SAMPLE_LOCATIONS)
        entries.append(
            WatchEntry(
                url=_sample_url(rng, handle),
                priority=rng.choice([0, 5, 50, 100]),
                source="mock",
                city=city,
                state=state,
            )
        )
    return entries


class MockDetector:
    """
    Detector stand-in that answers at random.

    Args:
        live_probability: Chance a check reports live
        failure_probability: Chance a check fails (returns None)
        seed: Random seed for reproducible runs
    """

    def __init__(
        self,
        live_probability: float = 0.3,
        failure_probability: float = 0.05,
        seed: int | None = None,
    ):
        self.live_probability = live_probability
        self.failure_probability = failure_probability
        self.calls: list[str] = []
        self._rng = random.Random(seed)

    async def __call__(self, url: str) -> DetectionResult | None:
        self.calls.append(url)
        roll = self._rng.random()
        if roll < self.failure_probability:
            return None
        live = roll < self.failure_probability + self.live_probability
        return DetectionResult(
            status=StreamStatus.LIVE if live else StreamStatus.OFFLINE,
            platform=get_platform(url),
        )
