"""Durable storage of stream configurations."""

from typing import Optional

from stream_manager.config.models import StoreConfig
from stream_manager.store.base import MemoryStore, StreamStore
from stream_manager.store.redis import RedisStore


def create_store(config: StoreConfig) -> Optional[StreamStore]:
    """
    Create the store described by the configuration.

    Returns:
        RedisStore when a URL is configured, else None (in-memory only)
    """
    if not config.redis_url:
        return None
    return RedisStore.from_url(config.redis_url, prefix=config.key_prefix)


__all__ = [
    "MemoryStore",
    "RedisStore",
    "StreamStore",
    "create_store",
]
