"""In-memory stream store for tests and ``--mock`` runs."""

import copy
import itertools
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from livesheet.storage.base import StreamStore, WatchListUnavailableError, check_fields
from livesheet.streams.schemas import Entity, Platform, StreamStatus, WatchEntry, utc_now

logger = logging.getLogger(__name__)


class MemoryStore(StreamStore):
    """Dict-backed store honouring the same contract as the REST store.

    Reads return copies, so callers can't mutate stored rows behind the
    store's back (which would hide concurrent-write bugs in tests).
    """

    def __init__(
        self,
        entities: list[Entity] | None = None,
        watch_list: list[WatchEntry] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._clock = clock
        self._entities: dict[str, Entity] = {}
        self._ids = itertools.count(1)
        for entity in entities or []:
            self._entities[entity.id] = copy.deepcopy(entity)
        self._watch_list = list(watch_list) if watch_list is not None else None

    async def list_active(self) -> list[Entity]:
        return [copy.deepcopy(e) for e in self._entities.values() if not e.archived]

    async def get(self, entity_id: str) -> Entity | None:
        entity = self._entities.get(entity_id)
        return copy.deepcopy(entity) if entity else None

    async def write(self, entity_id: str, fields: dict[str, Any]) -> None:
        check_fields(fields)
        entity = self._entities.get(entity_id)
        if entity is None:
            raise KeyError(f"Stream {entity_id} not found")
        self._entities[entity_id] = replace(
            entity,
            **fields,
            updated_at=self._clock(),
        )

    async def insert(self, fields: dict[str, Any]) -> Entity:
        check_fields(fields)
        entity_id = str(next(self._ids))
        while entity_id in self._entities:
            entity_id = str(next(self._ids))

        values = {
            "platform": Platform.UNKNOWN,
            "status": StreamStatus.UNKNOWN,
            **fields,
        }
        entity = Entity(
            id=entity_id,
            updated_at=self._clock(),
            **values,
        )
        self._entities[entity_id] = entity
        logger.debug("Inserted stream %s: %s", entity_id, entity.url)
        return copy.deepcopy(entity)

    @property
    def watch_list_available(self) -> bool:
        return self._watch_list is not None

    async def list_watch(self) -> list[WatchEntry]:
        if self._watch_list is None:
            raise WatchListUnavailableError("No watch list configured")
        return [copy.deepcopy(w) for w in self._watch_list]

    def remove(self, entity_id: str) -> None:
        """Delete a stream, as an out-of-band user edit would."""
        self._entities.pop(entity_id, None)

    def snapshot(self) -> dict[str, Entity]:
        """All stored streams, archived included, keyed by id."""
        return copy.deepcopy(self._entities)
