"""StreamSource-backed stream store with a JSON-file watch list."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from livesheet.storage.base import StreamStore, WatchListUnavailableError, check_fields
from livesheet.storage.streamsource_client import StreamSourceClient
from livesheet.streams.rate_limiter import coerce_priority
from livesheet.streams.schemas import Entity, Platform, StreamStatus, WatchEntry

logger = logging.getLogger(__name__)

# Entity attribute -> StreamSource JSON column
FIELD_COLUMNS: dict[str, str] = {
    "url": "link",
    "platform": "platform",
    "status": "status",
    "last_checked_at": "last_checked_at",
    "last_live_at": "last_live_at",
    "added_at": "added_at",
    "archived": "is_archived",
    "source": "source",
    "city": "city",
    "state": "state",
}


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an API timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug("Unparseable timestamp %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, StreamStatus):
        return value.value
    if isinstance(value, Platform):
        return value.value
    return value


def record_to_entity(record: dict[str, Any]) -> Entity:
    """Convert a StreamSource stream object to an Entity."""
    return Entity(
        id=str(record["id"]),
        url=record.get("link") or "",
        platform=Platform.parse(record.get("platform")),
        status=StreamStatus.parse(record.get("status")),
        last_checked_at=parse_timestamp(record.get("last_checked_at")),
        last_live_at=parse_timestamp(record.get("last_live_at")),
        added_at=parse_timestamp(record.get("added_at")),
        updated_at=parse_timestamp(record.get("updated_at")),
        archived=bool(record.get("is_archived", False)),
        source=record.get("source") or "",
        city=record.get("city") or "",
        state=record.get("state") or "",
    )


def fields_to_record(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert Entity-named fields to a StreamSource payload."""
    check_fields(fields)
    return {FIELD_COLUMNS[name]: _format_value(value) for name, value in fields.items()}


def load_watch_list(path: Path) -> list[WatchEntry]:
    """Read a watch list JSON file (a list of objects).

    Keys are matched case-insensitively: ``URL``/``url``,
    ``Priority``/``priority``, ``Source``, ``City``, ``State``.
    """
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError(f"Watch list {path} must be a JSON array")

    entries = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        row = {str(k).strip().lower(): v for k, v in item.items()}
        entries.append(
            WatchEntry(
                url=str(row.get("url") or ""),
                priority=coerce_priority(row.get("priority")),
                source=str(row.get("source") or ""),
                city=str(row.get("city") or ""),
                state=str(row.get("state") or ""),
            )
        )
    return entries


class StreamSourceStore(StreamStore):
    """Active set in StreamSource, watch list in a local JSON file."""

    def __init__(
        self,
        client: StreamSourceClient,
        watch_list_path: str | Path | None = None,
    ) -> None:
        self._client = client
        self._watch_list_path = Path(watch_list_path) if watch_list_path else None

    async def list_active(self) -> list[Entity]:
        records = await self._client.list_all_streams(is_archived=False)
        entities = [record_to_entity(r) for r in records]
        # Filter again in case the API ignores the flag
        return [e for e in entities if not e.archived]

    async def get(self, entity_id: str) -> Entity | None:
        record = await self._client.get_stream(entity_id)
        return record_to_entity(record) if record else None

    async def write(self, entity_id: str, fields: dict[str, Any]) -> None:
        await self._client.update_stream(entity_id, fields_to_record(fields))

    async def insert(self, fields: dict[str, Any]) -> Entity:
        record = await self._client.create_stream(fields_to_record(fields))
        return record_to_entity(record)

    async def archive(self, entity_id: str) -> None:
        await self._client.archive_stream(entity_id)

    @property
    def watch_list_available(self) -> bool:
        return self._watch_list_path is not None and self._watch_list_path.is_file()

    async def list_watch(self) -> list[WatchEntry]:
        if not self.watch_list_available:
            raise WatchListUnavailableError(
                f"Watch list file not found: {self._watch_list_path}"
            )
        return load_watch_list(self._watch_list_path)

    async def close(self) -> None:
        await self._client.close()
