"""
Backing-store interface for the active set and the watch list.

Write and insert payloads use ``Entity`` attribute names
(``status``, ``last_checked_at``, ...). Each implementation maps those
to its own columns exactly once.

Every read is fresh: implementations must not serve ``list_active`` or
``get`` from a cache, since the batch commit and the archiver rely on
seeing concurrent writes.
"""

from abc import ABC, abstractmethod
from typing import Any

from livesheet.streams.schemas import Entity, WatchEntry

# Fields the scheduler writes; stores reject anything else
WRITABLE_FIELDS = frozenset(
    {
        "url",
        "platform",
        "status",
        "last_checked_at",
        "last_live_at",
        "added_at",
        "archived",
        "source",
        "city",
        "state",
    }
)


class StoreError(Exception):
    """Base exception for backing-store failures."""


class WatchListUnavailableError(StoreError):
    """Raised when the watch list is required but the store has none."""


def check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown stream fields: {sorted(unknown)}")


class StreamStore(ABC):
    """Abstract backing store for stream entities."""

    @abstractmethod
    async def list_active(self) -> list[Entity]:
        """Return every non-archived stream (all pages)."""

    @abstractmethod
    async def get(self, entity_id: str) -> Entity | None:
        """Fetch one stream by key, or None if it no longer exists."""

    @abstractmethod
    async def write(self, entity_id: str, fields: dict[str, Any]) -> None:
        """Persist the given fields on one stream."""

    @abstractmethod
    async def insert(self, fields: dict[str, Any]) -> Entity:
        """Create a stream and return it as stored."""

    async def archive(self, entity_id: str) -> None:
        """Mark a stream archived so it leaves active polling."""
        await self.write(entity_id, {"archived": True})

    @property
    @abstractmethod
    def watch_list_available(self) -> bool:
        """Whether this store has a watch list to promote from."""

    @abstractmethod
    async def list_watch(self) -> list[WatchEntry]:
        """Return the watch list.

        Raises:
            WatchListUnavailableError: If the store has no watch list.
        """

    async def close(self) -> None:
        """Release any held resources."""
