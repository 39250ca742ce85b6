"""Data models for the stream manager."""

from stream_manager.models.stream import (
    RUNNING,
    STOPPED,
    RunnerSlot,
    StreamRecord,
    StreamState,
    StreamStatus,
    StreamView,
)

__all__ = [
    "RUNNING",
    "STOPPED",
    "RunnerSlot",
    "StreamRecord",
    "StreamState",
    "StreamStatus",
    "StreamView",
]
