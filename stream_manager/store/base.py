"""
Durable store interface for stream configurations.

Stores map a stream name to the JSON entry produced by
StreamConfig.dump_entry(). Only configuration is stored, never process state.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class StreamStore(Protocol):
    """Async key-value store. Implementations raise StoreError on failure."""

    async def keys(self) -> list[str]: ...

    async def get(self, key: str) -> Optional[str]: ...

    async def put(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def aclose(self) -> None: ...


class MemoryStore:
    """Dict-backed store, for tests and single-process use."""

    def __init__(self, entries: Optional[dict[str, str]] = None):
        self.entries: dict[str, str] = dict(entries or {})

    async def keys(self) -> list[str]:
        return list(self.entries)

    async def get(self, key: str) -> Optional[str]:
        return self.entries.get(key)

    async def put(self, key: str, value: str) -> None:
        self.entries[key] = value

    async def delete(self, key: str) -> None:
        self.entries.pop(key, None)

    async def aclose(self) -> None:
        pass
