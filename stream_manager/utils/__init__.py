"""Shared utilities: errors, logging and helpers."""

from stream_manager.utils.errors import (
    AlreadyRunningError,
    ConfigurationError,
    DuplicateNameError,
    NotFoundError,
    ProbeError,
    SpawnError,
    StoreError,
    StreamManagerError,
    StreamRuntimeError,
    ValidationError,
)
from stream_manager.utils.helpers import (
    format_duration,
    format_number,
    parse_time_to_seconds,
    truncate_head,
)
from stream_manager.utils.logger import get_logger, log_performance, setup_logger

__all__ = [
    # Errors
    "AlreadyRunningError",
    "ConfigurationError",
    "DuplicateNameError",
    "NotFoundError",
    "ProbeError",
    "SpawnError",
    "StoreError",
    "StreamManagerError",
    "StreamRuntimeError",
    "ValidationError",
    # Helpers
    "format_duration",
    "format_number",
    "parse_time_to_seconds",
    "truncate_head",
    # Logging
    "get_logger",
    "log_performance",
    "setup_logger",
]
