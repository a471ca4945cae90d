"""Streams: scheduling, checking, committing, archiving and promotion of live streams."""

from livesheet.streams.schemas import (
    CycleOutcome,
    DetectionResult,
    Entity,
    Platform,
    SchedulerState,
    StreamStatus,
    WatchEntry,
)
from livesheet.streams.urls import clean_url, get_platform, is_valid_live_url

__all__ = [
    "CycleOutcome",
    "DetectionResult",
    "Entity",
    "Platform",
    "SchedulerState",
    "StreamStatus",
    "WatchEntry",
    "clean_url",
    "get_platform",
    "is_valid_live_url",
]
