"""Tests for the StreamSource store mapping and watch-list file."""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from livesheet.storage.base import WatchListUnavailableError
from livesheet.storage.streamsource import (
    StreamSourceStore,
    fields_to_record,
    load_watch_list,
    parse_timestamp,
    record_to_entity,
)
from livesheet.streams.schemas import Platform, StreamStatus
from tests.conftest import NOW


@pytest.fixture
def sample_record() -> dict:
    """A stream object as returned by the StreamSource API."""
    return {
        "id": 42,
        "link": "https://www.twitch.tv/alice",
        "platform": "Twitch",
        "status": "Live",
        "last_checked_at": "2025-06-01T11:58:00Z",
        "last_live_at": "2025-06-01T11:58:00.000Z",
        "added_at": "2025-05-30T08:00:00+00:00",
        "updated_at": "2025-06-01T11:58:01",
        "is_archived": False,
        "source": "tips",
        "city": "Portland",
        "state": "OR",
    }


@pytest.fixture
def mock_client() -> AsyncMock:
    """Mock StreamSourceClient matching the client API."""
    client = AsyncMock()
    client.list_all_streams = AsyncMock(return_value=[])
    client.get_stream = AsyncMock(return_value=None)
    client.update_stream = AsyncMock(return_value={})
    client.create_stream = AsyncMock(return_value={})
    client.archive_stream = AsyncMock(return_value={})
    return client


class TestMapping:
    def test_parse_timestamp_variants(self):
        assert parse_timestamp("2025-06-01T12:00:00Z") == NOW
        assert parse_timestamp("2025-06-01T12:00:00") == NOW
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None
        assert parse_timestamp("yesterday") is None

    def test_record_to_entity(self, sample_record: dict):
        entity = record_to_entity(sample_record)

        assert entity.id == "42"
        assert entity.url == "https://www.twitch.tv/alice"
        assert entity.platform == Platform.TWITCH
        assert entity.status == StreamStatus.LIVE
        assert entity.last_checked_at == datetime(2025, 6, 1, 11, 58, tzinfo=timezone.utc)
        assert entity.updated_at.tzinfo is not None
        assert entity.city == "Portland"
        assert not entity.archived

    def test_record_with_missing_fields(self):
        entity = record_to_entity({"id": 1, "status": None})

        assert entity.url == ""
        assert entity.status == StreamStatus.UNKNOWN
        assert entity.platform == Platform.UNKNOWN
        assert entity.last_checked_at is None

    def test_fields_to_record(self):
        record = fields_to_record(
            {"status": StreamStatus.OFFLINE, "last_checked_at": NOW, "archived": True, "url": "u"}
        )

        assert record == {
            "status": "offline",
            "last_checked_at": "2025-06-01T12:00:00+00:00",
            "is_archived": True,
            "link": "u",
        }

    def test_fields_to_record_rejects_unknown(self):
        with pytest.raises(ValueError):
            fields_to_record({"link": "u"})


class TestWatchListFile:
    def test_load(self, tmp_path: Path):
        path = tmp_path / "watch.json"
        path.write_text(
            json.dumps(
                [
                    {"URL": "https://www.twitch.tv/a", "Priority": "80", "Source": "x", "City": "Austin"},
                    {"url": "https://www.twitch.tv/b", "priority": None},
                    "not an object",
                ]
            )
        )

        entries = load_watch_list(path)

        assert [(e.url, e.priority) for e in entries] == [
            ("https://www.twitch.tv/a", 80),
            ("https://www.twitch.tv/b", 0),
        ]
        assert entries[0].source == "x"
        assert entries[0].city == "Austin"

    def test_must_be_array(self, tmp_path: Path):
        path = tmp_path / "watch.json"
        path.write_text('{"url": "x"}')
        with pytest.raises(ValueError):
            load_watch_list(path)


class TestStreamSourceStore:
    @pytest.mark.asyncio
    async def test_list_active_filters_archived(self, mock_client: AsyncMock, sample_record: dict):
        archived = {**sample_record, "id": 43, "is_archived": True}
        mock_client.list_all_streams.return_value = [sample_record, archived]

        entities = await StreamSourceStore(mock_client).list_active()

        assert [e.id for e in entities] == ["42"]
        mock_client.list_all_streams.assert_awaited_once_with(is_archived=False)

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_client: AsyncMock):
        assert await StreamSourceStore(mock_client).get("1") is None

    @pytest.mark.asyncio
    async def test_write_maps_columns(self, mock_client: AsyncMock):
        await StreamSourceStore(mock_client).write("42", {"status": StreamStatus.LIVE, "last_live_at": NOW})

        mock_client.update_stream.assert_awaited_once_with(
            "42", {"status": "live", "last_live_at": "2025-06-01T12:00:00+00:00"}
        )

    @pytest.mark.asyncio
    async def test_insert_returns_entity(self, mock_client: AsyncMock, sample_record: dict):
        mock_client.create_stream.return_value = sample_record

        created = await StreamSourceStore(mock_client).insert(
            {"url": "https://www.twitch.tv/alice", "platform": Platform.TWITCH}
        )

        assert created.id == "42"
        mock_client.create_stream.assert_awaited_once_with(
            {"link": "https://www.twitch.tv/alice", "platform": "Twitch"}
        )

    @pytest.mark.asyncio
    async def test_archive(self, mock_client: AsyncMock):
        await StreamSourceStore(mock_client).archive("42")
        mock_client.archive_stream.assert_awaited_once_with("42")

    @pytest.mark.asyncio
    async def test_watch_list_availability(self, mock_client: AsyncMock, tmp_path: Path):
        path = tmp_path / "watch.json"

        store = StreamSourceStore(mock_client, path)
        assert not store.watch_list_available
        with pytest.raises(WatchListUnavailableError):
            await store.list_watch()

        path.write_text(json.dumps([{"url": "https://www.twitch.tv/a", "priority": 3}]))
        assert store.watch_list_available
        assert [e.priority for e in await store.list_watch()] == [3]

    def test_no_path_means_no_watch_list(self, mock_client: AsyncMock):
        assert not StreamSourceStore(mock_client).watch_list_available
