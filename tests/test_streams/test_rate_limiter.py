"""Tests for check rate limiting."""

from datetime import timedelta

import pytest

from livesheet.streams.config import SchedulerConfig
from livesheet.streams.rate_limiter import (
    active_interval,
    clamp_priority,
    coerce_priority,
    is_active_due,
    is_watch_due,
    watch_interval,
    watch_interval_ms,
)
from livesheet.streams.schemas import StreamStatus
from tests.conftest import NOW, make_entity

URL = "https://www.twitch.tv/someone"


class TestActivePolicy:
    def test_never_checked_is_due(self, scheduler_config: SchedulerConfig):
        assert is_active_due(make_entity(), NOW, scheduler_config)

    def test_live_uses_live_rate(self, scheduler_config: SchedulerConfig):
        entity = make_entity(status=StreamStatus.LIVE, last_checked_at=NOW - timedelta(seconds=119))
        assert not is_active_due(entity, NOW, scheduler_config)
        entity.last_checked_at = NOW - timedelta(seconds=120)
        assert is_active_due(entity, NOW, scheduler_config)

    def test_offline_uses_offline_rate(self, scheduler_config: SchedulerConfig):
        entity = make_entity(last_checked_at=NOW - timedelta(minutes=5))
        assert active_interval(entity, NOW, scheduler_config) == timedelta(seconds=420)
        assert not is_active_due(entity, NOW, scheduler_config)

        entity.last_checked_at = NOW - timedelta(minutes=7)
        assert is_active_due(entity, NOW, scheduler_config)

    def test_recently_live_offline_uses_live_rate(self, scheduler_config: SchedulerConfig):
        entity = make_entity(
            status=StreamStatus.OFFLINE,
            last_checked_at=NOW - timedelta(minutes=3),
            last_live_at=NOW - timedelta(minutes=10),
        )
        assert active_interval(entity, NOW, scheduler_config) == timedelta(seconds=120)
        assert is_active_due(entity, NOW, scheduler_config)

    def test_unknown_uses_offline_rate(self, scheduler_config: SchedulerConfig):
        entity = make_entity(status=StreamStatus.UNKNOWN, last_checked_at=NOW - timedelta(minutes=3))
        assert active_interval(entity, NOW, scheduler_config) == timedelta(seconds=420)


class TestPriorityParsing:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (42, 42),
            ("42", 42),
            (" 7.9 ", 7),
            (None, 0),
            ("", 0),
            ("high", 0),
            (True, 0),
            (float("nan"), 0),
        ],
    )
    def test_coerce(self, raw, expected):
        assert coerce_priority(raw) == expected

    def test_clamp(self):
        assert clamp_priority(-5) == 0
        assert clamp_priority(250) == 100
        assert clamp_priority("55") == 55


class TestWatchInterval:
    def test_priority_100_always_due(self):
        assert watch_interval_ms(100) == 0

    def test_priority_0_is_max(self):
        assert watch_interval_ms(0) == 5_400_000

    def test_priority_50(self):
        assert watch_interval_ms(50) == 2_025_000

    def test_non_increasing(self):
        values = [watch_interval_ms(p) for p in range(101)]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_floor_is_base_below_100(self):
        assert watch_interval_ms(99) >= 900_000

    @pytest.mark.parametrize("raw", ["abc", None, -10, "-3"])
    def test_invalid_or_negative_is_max(self, raw):
        assert watch_interval_ms(raw) == 5_400_000

    @pytest.mark.parametrize("raw", [101, 1000, "150"])
    def test_above_100_is_always_due(self, raw):
        assert watch_interval_ms(raw) == 0

    def test_uses_config(self):
        config = SchedulerConfig(
            _env_file=None,
            watch_base_rate_seconds=60,
            watch_max_rate_seconds=120,
            watch_steepness=2.0,
        )
        assert watch_interval(0, config) == timedelta(seconds=120)
        # 60s + 60s * 2^-1
        assert watch_interval(50, config) == timedelta(seconds=90)
        assert watch_interval(100, config) == timedelta(0)


class TestWatchDue:
    def test_never_checked_is_due(self, scheduler_config: SchedulerConfig):
        assert is_watch_due(URL, 0, NOW, {}, scheduler_config)

    def test_low_priority_waits_max(self, scheduler_config: SchedulerConfig):
        last = {URL: NOW - timedelta(minutes=89)}
        assert not is_watch_due(URL, 0, NOW, last, scheduler_config)
        last = {URL: NOW - timedelta(minutes=90)}
        assert is_watch_due(URL, 0, NOW, last, scheduler_config)

    def test_priority_100_due_right_after_check(self, scheduler_config: SchedulerConfig):
        assert is_watch_due(URL, 100, NOW, {URL: NOW}, scheduler_config)
