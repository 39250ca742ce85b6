"""Configuration management for the stream manager."""

from stream_manager.config.manager import (
    ConfigManager,
    get_config_manager,
)
from stream_manager.config.models import (
    NAME_PATTERN,
    ManagerConfig,
    RunnerConfig,
    StoreConfig,
    StreamConfig,
    TranscodeConfig,
)

__all__ = [
    # Manager
    "ConfigManager",
    "get_config_manager",
    # Models
    "NAME_PATTERN",
    "ManagerConfig",
    "RunnerConfig",
    "StoreConfig",
    "StreamConfig",
    "TranscodeConfig",
]
