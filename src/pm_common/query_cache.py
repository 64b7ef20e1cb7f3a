"""Explicit key-value query cache.

Keys are tuples such as ("usdcBalance", "0xabc..."). Each key is registered
with an async fetcher. A value goes stale when invalidate() hits it or when
it is older than stale_time; get() refetches stale values. refetch() runs
fetchers concurrently. Matching is by tuple prefix, so
invalidate("usdcBalance") hits every address while
invalidate("usdcBalance", addr) hits one.

Entries not read or registered for evict_after seconds are dropped on the
next register().
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from config.settings import settings
from src.pm_common.datetime_utils import utc_now

logger = logging.getLogger(__name__)

QueryKey = tuple[str, ...]
Fetcher = Callable[[], Awaitable[Any]]


@dataclass
class _Entry:
    fetcher: Fetcher
    last_used: float
    value: Any = None
    has_value: bool = False
    stale: bool = True
    fetched_at: float = 0.0
    fetch_count: int = 0


class QueryCache:
    def __init__(
        self,
        stale_time: float | None = None,
        evict_after: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_time = settings.QUERY_STALE_SECONDS if stale_time is None else stale_time
        self.evict_after = settings.QUERY_EVICT_SECONDS if evict_after is None else evict_after
        self._clock = clock
        self._entries: dict[QueryKey, _Entry] = {}
        self.last_refetch_at: dict[QueryKey, Any] = {}

    def register(self, key: QueryKey, fetcher: Fetcher) -> None:
        """Register or replace the fetcher for key. Cached value is kept."""
        now = self._clock()
        self._evict_idle(now)
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = _Entry(fetcher=fetcher, last_used=now)
        else:
            entry.fetcher = fetcher
            entry.last_used = now

    def is_registered(self, key: QueryKey) -> bool:
        return key in self._entries

    def keys(self, *prefix: str) -> list[QueryKey]:
        return [k for k in self._entries if k[: len(prefix)] == prefix]

    def peek(self, key: QueryKey) -> Any:
        """Cached value without fetching (None if never fetched)."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def is_stale(self, key: QueryKey) -> bool:
        return self._is_stale(self._entries[key], self._clock())

    def fetch_count(self, key: QueryKey) -> int:
        return self._entries[key].fetch_count

    async def get(self, key: QueryKey) -> Any:
        """Return the cached value, fetching first when missing or stale.

        Raises KeyError for an unregistered key.
        """
        entry = self._entries[key]
        now = self._clock()
        entry.last_used = now
        if self._is_stale(entry, now):
            await self._fetch(key, entry)
        return entry.value

    def invalidate(self, *prefix: str) -> int:
        """Mark every entry under prefix stale. Returns how many matched."""
        matched = self.keys(*prefix)
        for key in matched:
            self._entries[key].stale = True
        return len(matched)

    async def refetch(self, *prefix: str) -> int:
        """Fetch every entry under prefix now. Returns how many succeeded.

        A failing fetcher leaves its entry stale with the previous value; the
        failure is logged, not raised.
        """
        matched = self.keys(*prefix)
        results = await asyncio.gather(
            *(self._fetch(k, self._entries[k]) for k in matched),
            return_exceptions=True,
        )
        ok = 0
        for key, result in zip(matched, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Refetch of %s failed: %s", key, result)
            else:
                ok += 1
        return ok

    def _is_stale(self, entry: _Entry, now: float) -> bool:
        if entry.stale or not entry.has_value:
            return True
        return now - entry.fetched_at >= self.stale_time

    def _evict_idle(self, now: float) -> None:
        idle = [k for k, e in self._entries.items() if now - e.last_used >= self.evict_after]
        for key in idle:
            del self._entries[key]
            self.last_refetch_at.pop(key, None)
        if idle:
            logger.debug("Evicted %d idle queries", len(idle))

    async def _fetch(self, key: QueryKey, entry: _Entry) -> None:
        value = await entry.fetcher()
        entry.value = value
        entry.has_value = True
        entry.stale = False
        entry.fetched_at = self._clock()
        entry.fetch_count += 1
        self.last_refetch_at[key] = utc_now()
