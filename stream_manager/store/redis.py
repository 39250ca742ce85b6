"""
Redis-backed durable store.

Each stream is stored as a plain string key holding its JSON entry,
optionally namespaced by a key prefix.
"""

from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..utils import StoreError, get_logger

logger = get_logger(__name__)


class RedisStore:
    """Stream store on top of an asyncio Redis client."""

    SCAN_COUNT = 100

    def __init__(self, client: Any, prefix: str = ""):
        """
        Initialize store around an existing client.

        Args:
            client: redis.asyncio.Redis client (decode_responses=True)
            prefix: Prefix prepended to every stream name
        """
        self._client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "") -> "RedisStore":
        """
        Create a store connected to the given Redis URL.

        Args:
            url: Redis URL (e.g., redis://localhost:6379/0)
            prefix: Prefix prepended to every stream name
        """
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=3,
            health_check_interval=30,
        )
        logger.info(f"Using Redis store at {url}")
        return cls(client, prefix)

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    async def keys(self) -> list[str]:
        names = []
        try:
            async for key in self._client.scan_iter(match=f"{self.prefix}*", count=self.SCAN_COUNT):
                names.append(key[len(self.prefix) :])
        except RedisError as e:
            raise StoreError(f"redis SCAN failed: {e}") from e
        return names

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(self._key(key))
        except RedisError as e:
            raise StoreError(f"redis GET {key} failed: {e}") from e

    async def put(self, key: str, value: str) -> None:
        try:
            await self._client.set(self._key(key), value)
        except RedisError as e:
            raise StoreError(f"redis SET {key} failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except RedisError as e:
            raise StoreError(f"redis DEL {key} failed: {e}") from e

    async def aclose(self) -> None:
        try:
            await self._client.aclose()
        except RedisError as e:
            logger.debug(f"Error while closing Redis client: {e}")
