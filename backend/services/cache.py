"""
Read-through caches in front of the remote data sources.

Two instances exist per application: pilot id -> pilot name (LRU, no TTL) and
Discord id -> identity profile (LRU + 24h TTL). Only successful fetches are
stored; a failed fetch returns None and leaves the key uncached so the next
lookup retries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Generic, Hashable, Iterable, Optional, Tuple, TypeVar

from cachetools import Cache, LRUCache, TTLCache

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Fetcher = Callable[[K], Awaitable[Optional[V]]]


class ReadThroughCache(Generic[K, V]):
    """Capacity-bounded cache that fills itself from ``fetcher`` on a miss.

    Concurrent misses for the same key share one in-flight fetch.
    """

    def __init__(self, name: str, store: Cache, fetcher: Fetcher) -> None:
        self.name = name
        self._store = store
        self._fetcher = fetcher
        self._inflight: Dict[K, asyncio.Future] = {}

    @classmethod
    def lru(cls, name: str, maxsize: int, fetcher: Fetcher) -> "ReadThroughCache[K, V]":
        return cls(name, LRUCache(maxsize=maxsize), fetcher)

    @classmethod
    def ttl(
        cls,
        name: str,
        maxsize: int,
        ttl_seconds: float,
        fetcher: Fetcher,
        timer: Callable[[], float] = time.monotonic,
    ) -> "ReadThroughCache[K, V]":
        return cls(name, TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer), fetcher)

    @property
    def maxsize(self) -> int:
        return int(self._store.maxsize)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: K) -> bool:
        return key in self._store

    def peek(self, key: K) -> Optional[V]:
        """Return a live entry (refreshing its LRU position) without fetching."""
        return self._store.get(key)

    def put(self, key: K, value: V) -> None:
        self._store[key] = value

    def warm(self, items: Iterable[Tuple[K, V]]) -> int:
        count = 0
        for key, value in items:
            self._store[key] = value
            count += 1
        return count

    async def get_or_fetch(self, key: K) -> Optional[V]:
        """Return the cached value for ``key``, fetching and storing it on a miss."""
        cached = self._store.get(key)
        if cached is not None:
            return cached

        pending = self._inflight.get(key)
        if pending is not None:
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                # the leading fetch was cancelled; take over instead of reporting a miss
                return await self.get_or_fetch(key)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await self._fetch(key)
        except BaseException:
            future.cancel()
            raise
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]
        future.set_result(value)
        return value

    async def _fetch(self, key: K) -> Optional[V]:
        try:
            value = await self._fetcher(key)
        except Exception:
            logger.exception("%s cache: fetch for %r failed", self.name, key)
            return None
        if value is None:
            logger.debug("%s cache: no value for %r", self.name, key)
            return None
        self._store[key] = value
        logger.debug("%s cache: stored %r", self.name, key)
        return value
