"""
Due-for-check decisions for active streams and watch-list entries.

Two policies:
- Active set: fixed thresholds. Live or recently-live streams use the
  short live rate, everything else the offline rate.
- Watch list: a continuous interval derived from the entry's priority
  percentile. Priority 100 is always due; below that the interval decays
  from ``max`` at priority 0 towards ``base``:

      interval = base + (max - base) * 2^(-k * p / 100)

  With the defaults (15 min, 90 min, k=4) priority 50 waits 33.75 minutes.
"""

import math
from collections.abc import Mapping
from datetime import datetime, timedelta

from livesheet.streams.config import SchedulerConfig
from livesheet.streams.schemas import Entity, StreamStatus

PRIORITY_MIN = 0
PRIORITY_MAX = 100
PRIORITY_ALWAYS_CHECK = 100

MS_PER_MINUTE = 60_000
DEFAULT_WATCH_BASE_MS = 15 * MS_PER_MINUTE
DEFAULT_WATCH_MAX_MS = 90 * MS_PER_MINUTE
DEFAULT_WATCH_STEEPNESS = 4.0


def is_recently_live(entity: Entity, now: datetime, threshold: timedelta) -> bool:
    return entity.last_live_at is not None and now - entity.last_live_at <= threshold


def active_interval(entity: Entity, now: datetime, config: SchedulerConfig) -> timedelta:
    """Minimum time between checks for an active-set stream."""
    if entity.status == StreamStatus.LIVE:
        return config.live_rate
    if is_recently_live(entity, now, config.recently_live_threshold):
        return config.live_rate
    return config.offline_rate


def is_active_due(entity: Entity, now: datetime, config: SchedulerConfig) -> bool:
    """Return True if an active-set stream should be checked now."""
    if entity.last_checked_at is None:
        return True
    return now - entity.last_checked_at >= active_interval(entity, now, config)


def coerce_priority(value: object) -> int:
    """Parse a raw priority cell into an int; unparseable values become 0.

    Accepts ints, floats and numeric strings ("42", " 7.9 "). Floats are
    truncated toward zero.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return 0
    if not math.isfinite(number):
        return 0
    return int(number)


def clamp_priority(value: object) -> int:
    """Coerce and clamp a priority into [0, 100]."""
    return max(PRIORITY_MIN, min(PRIORITY_MAX, coerce_priority(value)))


def watch_interval_ms(
    priority: object,
    base_ms: float = DEFAULT_WATCH_BASE_MS,
    max_ms: float = DEFAULT_WATCH_MAX_MS,
    steepness: float = DEFAULT_WATCH_STEEPNESS,
) -> int:
    """Check interval in milliseconds for a watch-list priority.

    Non-increasing over [0, 99]; drops to 0 exactly at 100.
    """
    p = clamp_priority(priority)
    if p >= PRIORITY_ALWAYS_CHECK:
        return 0

    extra = (max_ms - base_ms) * 2 ** (-steepness * p / PRIORITY_MAX)
    # Half-up; round() would bank to even
    return int(math.floor(base_ms + extra + 0.5))


def watch_interval(priority: object, config: SchedulerConfig) -> timedelta:
    """Watch-list interval using the configured base, max and steepness."""
    ms = watch_interval_ms(
        priority,
        base_ms=config.watch_base_rate_seconds * 1000,
        max_ms=config.watch_max_rate_seconds * 1000,
        steepness=config.watch_steepness,
    )
    return timedelta(milliseconds=ms)


def is_watch_due(
    url: str,
    priority: object,
    now: datetime,
    last_checks: Mapping[str, datetime],
    config: SchedulerConfig,
) -> bool:
    """Return True if a watch-list URL is due, given per-URL last-check times."""
    last_check = last_checks.get(url)
    if last_check is None:
        return True
    return now - last_check >= watch_interval(priority, config)
