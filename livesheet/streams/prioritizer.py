"""Check ordering for the active set.

Tiers, highest first:
    3  never checked
    2  currently live
    1  live within the recently-live window
    0  everything else
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from livesheet.streams.schemas import Entity, StreamStatus

TIER_NEVER_CHECKED = 3
TIER_LIVE = 2
TIER_RECENTLY_LIVE = 1
TIER_OTHER = 0

DEFAULT_RECENTLY_LIVE_THRESHOLD = timedelta(minutes=20)


def stream_tier(
    entity: Entity,
    now: datetime,
    recently_live_threshold: timedelta = DEFAULT_RECENTLY_LIVE_THRESHOLD,
) -> int:
    """Return the priority tier of a stream (higher is checked first)."""
    if entity.last_checked_at is None:
        return TIER_NEVER_CHECKED
    if entity.status == StreamStatus.LIVE:
        return TIER_LIVE
    if entity.last_live_at is not None and now - entity.last_live_at <= recently_live_threshold:
        return TIER_RECENTLY_LIVE
    return TIER_OTHER


def prioritize(
    entities: Iterable[Entity],
    now: datetime,
    recently_live_threshold: timedelta = DEFAULT_RECENTLY_LIVE_THRESHOLD,
) -> list[Entity]:
    """Return a new list ordered by tier, preserving input order within a tier."""
    return sorted(
        entities,
        key=lambda entity: stream_tier(entity, now, recently_live_threshold),
        reverse=True,
    )
