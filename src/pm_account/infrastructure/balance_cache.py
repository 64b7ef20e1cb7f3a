"""Balance cache backends: process-local dict, or Redis when several workers share it."""
import json
import time
from collections.abc import Callable
from decimal import Decimal

import redis.asyncio as aioredis

from src.pm_account.domain.cache import address_suffix, cache_key

# Redis keeps entries this many TTLs so stale fallbacks survive a while.
_STALE_RETENTION_FACTOR = 10


class InMemoryBalanceCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Decimal, float]] = {}

    async def get(self, kind: str, address: str, allow_stale: bool = False) -> Decimal | None:
        entry = self._entries.get(cache_key(kind, address))
        if entry is None:
            return None
        value, stored_at = entry
        if allow_stale or self._clock() - stored_at < self._ttl:
            return value
        return None

    async def set(self, kind: str, address: str, value: Decimal) -> None:
        self._entries[cache_key(kind, address)] = (value, self._clock())

    async def clear(self, address: str | None = None) -> None:
        if address is None:
            self._entries.clear()
            return
        suffix = address_suffix(address)
        for key in [k for k in self._entries if k.endswith(suffix)]:
            del self._entries[key]


class RedisBalanceCache:
    def __init__(
        self,
        redis: aioredis.Redis,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._ttl = ttl_seconds
        self._clock = clock

    async def get(self, kind: str, address: str, allow_stale: bool = False) -> Decimal | None:
        raw = await self._redis.get(cache_key(kind, address))
        if raw is None:
            return None
        entry = json.loads(raw)
        if allow_stale or self._clock() - float(entry["ts"]) < self._ttl:
            return Decimal(entry["v"])
        return None

    async def set(self, kind: str, address: str, value: Decimal) -> None:
        payload = json.dumps({"v": str(value), "ts": self._clock()})
        await self._redis.set(
            cache_key(kind, address), payload, ex=self._ttl * _STALE_RETENTION_FACTOR
        )

    async def clear(self, address: str | None = None) -> None:
        pattern = "account:*" if address is None else f"account:*{address_suffix(address)}"
        keys = [key async for key in self._redis.scan_iter(match=pattern)]
        if keys:
            await self._redis.delete(*keys)
