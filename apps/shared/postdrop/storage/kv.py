"""Key-value backends for the post store.

The store only needs four string operations: get, set, delete and
multi-get. ``RedisKeyValueStore`` is the production backend;
``MemoryKeyValueStore`` keeps everything in-process for local runs and tests.
"""

import logging
from threading import Lock
from typing import Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Async key-value capability over string keys and string values."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, *keys: str) -> int: ...

    async def mget(self, keys: list[str]) -> list[str | None]: ...

    async def close(self) -> None: ...


class RedisKeyValueStore:
    """Key-value store backed by Redis strings."""

    def __init__(self, redis_url: str) -> None:
        self._redis = redis.from_url(redis_url, decode_responses=True)

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._redis.aclose()

    async def get(self, key: str) -> str | None:
        return await self._redis.get(key)

    async def set(self, key: str, value: str) -> None:
        await self._redis.set(key, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._redis.delete(*keys)

    async def mget(self, keys: list[str]) -> list[str | None]:
        if not keys:
            return []
        return await self._redis.mget(keys)


class MemoryKeyValueStore:
    """Thread-safe in-process key-value store.

    Example:
        kv = MemoryKeyValueStore()
        await kv.set("post:1", "{...}")
        await kv.get("post:1")
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = Lock()

    async def close(self) -> None:
        with self._lock:
            self._data.clear()

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    async def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._data.pop(key, None) is not None:
                    removed += 1
        return removed

    async def mget(self, keys: list[str]) -> list[str | None]:
        with self._lock:
            return [self._data.get(key) for key in keys]

    def __len__(self) -> int:
        return len(self._data)


def create_kv_store(backend: str, redis_url: str) -> KeyValueStore:
    """Build the configured backend (``redis`` or ``memory``)."""
    if backend == "memory":
        logger.info("Using in-memory key-value store")
        return MemoryKeyValueStore()
    if backend == "redis":
        logger.info("Using Redis key-value store")
        return RedisKeyValueStore(redis_url)
    raise ValueError(f"Unknown storage backend: {backend!r}")
