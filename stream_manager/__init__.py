"""
Stream Manager

Supervises named FFmpeg processes that republish media sources to an RTSP
server, with optional Redis persistence of stream definitions.
"""

__version__ = "0.1.0"

from stream_manager.config import ManagerConfig, StreamConfig
from stream_manager.models import StreamRecord, StreamState, StreamStatus, StreamView
from stream_manager.registry import StreamRegistry
from stream_manager.store import MemoryStore, RedisStore, StreamStore, create_store
from stream_manager.utils import (
    AlreadyRunningError,
    DuplicateNameError,
    NotFoundError,
    SpawnError,
    StreamManagerError,
    StreamRuntimeError,
    ValidationError,
    get_logger,
    setup_logger,
)

__all__ = [
    "__version__",
    # Core
    "ManagerConfig",
    "StreamConfig",
    "StreamRecord",
    "StreamRegistry",
    "StreamState",
    "StreamStatus",
    "StreamView",
    # Stores
    "MemoryStore",
    "RedisStore",
    "StreamStore",
    "create_store",
    # Errors
    "AlreadyRunningError",
    "DuplicateNameError",
    "NotFoundError",
    "SpawnError",
    "StreamManagerError",
    "StreamRuntimeError",
    "ValidationError",
    # Logging
    "get_logger",
    "setup_logger",
]
