"""Tests for mock data and the mock detector."""

import pytest

from livesheet.detection.mock import MockDetector, generate_entities, generate_watch_list
from livesheet.streams.schemas import StreamStatus
from livesheet.streams.urls import is_valid_live_url


def test_generated_urls_are_valid():
    entities = generate_entities(count=8, seed=1)
    entries = generate_watch_list(count=8, seed=1)

    assert all(is_valid_live_url(e.url) for e in entities)
    assert all(is_valid_live_url(e.url) for e in entries)
    assert len({e.id for e in entities}) == 8


def test_generation_is_reproducible():
    assert generate_watch_list(seed=3) == generate_watch_list(seed=3)


@pytest.mark.asyncio
async def test_mock_detector_extremes():
    always_live = MockDetector(live_probability=1.0, failure_probability=0.0, seed=1)
    always_fails = MockDetector(failure_probability=1.0, seed=1)

    result = await always_live("https://www.twitch.tv/a")

    assert result.status == StreamStatus.LIVE
    assert await always_fails("https://www.twitch.tv/a") is None
    assert always_live.calls == ["https://www.twitch.tv/a"]
