"""TTL cache backends.

Values are opaque bytes: call sites serialise with orjson on write and
deserialise on read, so every reader works on its own copy and a cached
empty payload (``b"[]"``) is never mistaken for a miss.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from marketlens.core.logging import get_logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = get_logger(__name__)


@runtime_checkable
class Cache(Protocol):
    """Key/value store with per-entry absolute expiration."""

    async def get(self, key: str) -> bytes | None:
        """Return the cached payload, or None when absent or expired."""
        ...

    async def set(self, key: str, value: bytes | str, ttl_seconds: float) -> None:
        """Store a payload that expires ``ttl_seconds`` from now."""
        ...

    async def delete(self, key: str) -> None:
        """Drop a key. Missing keys are ignored."""
        ...


class MemoryCache:
    """In-process cache that lives as long as the process.

    Safe to share between concurrent tasks and threads. There is no size
    bound; entries only leave when they expire or are deleted.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, bytes]] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss", key=key)
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                logger.debug("Cache entry expired", key=key)
                return None
        logger.debug("Cache hit", key=key)
        return value

    async def set(self, key: str, value: bytes | str, ttl_seconds: float) -> None:
        payload = value.encode() if isinstance(value, str) else bytes(value)
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, payload)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCache:
    """Cache backed by Redis, for deployments that share or persist the cache.

    Keys are namespaced as ``{prefix}:{key}``.
    """

    def __init__(self, redis: Redis, prefix: str = "marketlens") -> None:
        self._redis = redis
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> bytes | None:
        cached = await self._redis.get(self._key(key))
        if cached is None:
            return None
        return cached.encode() if isinstance(cached, str) else bytes(cached)

    async def set(self, key: str, value: bytes | str, ttl_seconds: float) -> None:
        # Redis EX needs whole seconds
        await self._redis.set(self._key(key), value, ex=max(1, int(ttl_seconds)))

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))
