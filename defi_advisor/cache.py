"""Short-lived response cache shared by the read-only endpoints."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from cachetools import TTLCache

logger = structlog.get_logger()


class ResponseCache:
    """TTL cache keyed by request method and path.

    Entries expire after ``ttl_seconds``; there is no other invalidation.
    Concurrent misses on the same key share a single in-flight computation.
    """

    def __init__(self, ttl_seconds: float = 60, max_entries: int = 256, timer=None) -> None:
        kwargs = {"timer": timer} if timer is not None else {}
        self._entries: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_seconds, **kwargs)
        self._locks: dict[str, asyncio.Lock] = {}
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(method: str, path: str) -> str:
        return f"{method.upper()} {path}"

    def get(self, key: str) -> Any | None:
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    async def get_or_set(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        cached = self._entries.get(key)
        if cached is not None:
            logger.debug("cache_hit", key=key)
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self._entries.get(key)
            if cached is not None:
                return cached
            logger.debug("cache_miss", key=key)
            value = await factory()
            self._entries[key] = value
            return value

    def clear(self) -> None:
        self._entries.clear()
        self._locks.clear()

    def __len__(self) -> int:
        return len(self._entries)
