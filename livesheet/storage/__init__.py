"""Storage layer - backing stores for the active set and the watch list."""

from livesheet.storage.base import StoreError, StreamStore, WatchListUnavailableError
from livesheet.storage.memory import MemoryStore
from livesheet.storage.streamsource import StreamSourceStore
from livesheet.storage.streamsource_client import (
    AuthenticationError,
    RateLimitError,
    StreamSourceClient,
    StreamSourceError,
)

__all__ = [
    "AuthenticationError",
    "MemoryStore",
    "RateLimitError",
    "StoreError",
    "StreamSourceClient",
    "StreamSourceError",
    "StreamSourceStore",
    "StreamStore",
    "WatchListUnavailableError",
]
