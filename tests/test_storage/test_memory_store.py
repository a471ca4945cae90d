"""Tests for the in-memory stream store."""

import pytest

from livesheet.storage.base import WatchListUnavailableError
from livesheet.storage.memory import MemoryStore
from livesheet.streams.schemas import Platform, StreamStatus, WatchEntry
from tests.conftest import NOW, FakeClock, make_entity


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_reads_are_copies(self, clock: FakeClock):
        store = MemoryStore([make_entity("1")], clock=clock)

        entity = await store.get("1")
        entity.status = StreamStatus.LIVE

        assert (await store.get("1")).status == StreamStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_write_sets_updated_at(self, clock: FakeClock):
        store = MemoryStore([make_entity("1")], clock=clock)

        await store.write("1", {"status": StreamStatus.LIVE})

        stored = await store.get("1")
        assert stored.status == StreamStatus.LIVE
        assert stored.updated_at == NOW

    @pytest.mark.asyncio
    async def test_write_rejects_unknown_fields(self, clock: FakeClock):
        store = MemoryStore([make_entity("1")], clock=clock)
        with pytest.raises(ValueError):
            await store.write("1", {"colour": "red"})

    @pytest.mark.asyncio
    async def test_write_missing_row(self, clock: FakeClock):
        with pytest.raises(KeyError):
            await MemoryStore(clock=clock).write("404", {"status": StreamStatus.LIVE})

    @pytest.mark.asyncio
    async def test_insert_assigns_unused_id(self, clock: FakeClock):
        store = MemoryStore([make_entity("1")], clock=clock)

        created = await store.insert({"url": "https://www.twitch.tv/new"})

        assert created.id == "2"
        assert created.platform == Platform.UNKNOWN
        assert created.status == StreamStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_archive_hides_from_active(self, clock: FakeClock):
        store = MemoryStore([make_entity("1"), make_entity("2")], clock=clock)

        await store.archive("1")

        assert [e.id for e in await store.list_active()] == ["2"]
        assert store.snapshot()["1"].archived

    @pytest.mark.asyncio
    async def test_watch_list(self, clock: FakeClock):
        entries = [WatchEntry(url="https://www.twitch.tv/a", priority=5)]
        store = MemoryStore(watch_list=entries, clock=clock)

        assert store.watch_list_available
        assert await store.list_watch() == entries

    @pytest.mark.asyncio
    async def test_no_watch_list(self, clock: FakeClock):
        store = MemoryStore(clock=clock)

        assert not store.watch_list_available
        with pytest.raises(WatchListUnavailableError):
            await store.list_watch()
