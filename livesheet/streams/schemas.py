"""
Data models for stream monitoring.

Entities are the typed view of a backing-store row. Stores convert their
own column names to these fields once, at the boundary; nothing past the
store looks up columns by name.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class StreamStatus(str, Enum):
    """Live state of a stream as last observed."""

    LIVE = "live"
    OFFLINE = "offline"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> "StreamStatus":
        """Case-insensitive parse; anything unrecognised is UNKNOWN."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Platform(str, Enum):
    """Streaming platforms with live detection support."""

    TIKTOK = "TikTok"
    YOUTUBE = "YouTube"
    TWITCH = "Twitch"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: object) -> "Platform":
        if isinstance(value, cls):
            return value
        if not value:
            return cls.UNKNOWN
        lowered = str(value).strip().lower()
        for platform in cls:
            if platform.value.lower() == lowered:
                return platform
        return cls.UNKNOWN


@dataclass
class Entity:
    """A monitored stream in the active set.

    ``url`` is stored as read from the backing store; callers compare
    streams by ``clean_url(entity.url)``.
    """

    id: str
    url: str
    platform: Platform = Platform.UNKNOWN
    status: StreamStatus = StreamStatus.UNKNOWN
    last_checked_at: datetime | None = None
    last_live_at: datetime | None = None
    added_at: datetime | None = None
    updated_at: datetime | None = None
    archived: bool = False
    source: str = ""
    city: str = ""
    state: str = ""


@dataclass
class WatchEntry:
    """A known streamer on the watch list, not yet in the active set."""

    url: str
    priority: int = 0
    source: str = ""
    city: str = ""
    state: str = ""


@dataclass
class PendingUpdate:
    """A status staged during a cycle, waiting for the batch commit."""

    status: StreamStatus
    checked_at: datetime
    entity_id: str | None = None


@dataclass
class DetectionResult:
    """Outcome of a successful status fetch."""

    status: StreamStatus
    platform: Platform


# Signature of a status detector: URL in, result or None out, never raises
DetectFn = Callable[[str], Awaitable[DetectionResult | None]]


@dataclass
class CheckSummary:
    """Counts from one pass of the check orchestrator."""

    considered: int = 0
    staged: int = 0
    failed: int = 0
    skipped_invalid: int = 0
    skipped_rate_limit: int = 0


@dataclass
class CommitResult:
    """Counts from one batch commit.

    ``skipped`` is the sum of rows deleted concurrently, rows modified by
    another process, and rows whose individual write failed.
    """

    updated: int = 0
    deleted: int = 0
    conflicts: int = 0
    failed: int = 0

    @property
    def skipped(self) -> int:
        return self.deleted + self.conflicts + self.failed


@dataclass
class ArchiveResult:
    archived_count: int = 0
    error_count: int = 0
    skipped_count: int = 0


@dataclass
class PromotionSummary:
    """Counts from one pass over the watch list."""

    total: int = 0
    checked: int = 0
    added: int = 0
    already_active: int = 0
    offline: int = 0
    failed: int = 0
    skipped_rate_limit: int = 0
    deferred: int = 0
    skipped_invalid: int = 0
    errors: int = 0


@dataclass
class CycleOutcome:
    """What one scheduler tick did, plus how long to sleep before the next."""

    cycle: int
    started_at: datetime
    known_only: bool = False
    checks: CheckSummary | None = None
    commit: CommitResult | None = None
    archive: ArchiveResult | None = None
    promotion: PromotionSummary | None = None
    sleep_seconds: float = 0.0


@dataclass
class SchedulerState:
    """Mutable state owned by a single scheduler instance.

    ``pending_updates`` and ``watch_last_check`` are keyed by cleaned URL.
    Nothing here survives a restart.
    """

    pending_updates: dict[str, PendingUpdate] = field(default_factory=dict)
    watch_last_check: dict[str, datetime] = field(default_factory=dict)
    last_archive_run: datetime | None = None
    cycles: int = 0
