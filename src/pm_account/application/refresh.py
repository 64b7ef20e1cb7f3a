# src/pm_account/application/refresh.py
"""Post-fill refresh cascade.

A fill changes balance, allowance and position on chain, but indexers and
RPC nodes catch up at different speeds. After a confirmed fill the cascade
clears the balance cache, invalidates the account queries, refetches at once
and then refetches again after each configured delay.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from config.settings import settings
from src.pm_account.application.service import (
    ALLOWANCE_QUERY,
    BALANCE_QUERY,
    OPEN_ORDERS_QUERY,
    POSITIONS_QUERY,
)
from src.pm_account.domain.cache import BalanceCacheProtocol
from src.pm_common.query_cache import QueryCache

logger = logging.getLogger(__name__)

_INVALIDATED = (BALANCE_QUERY, ALLOWANCE_QUERY, POSITIONS_QUERY, OPEN_ORDERS_QUERY)
_REFETCHED = (BALANCE_QUERY, ALLOWANCE_QUERY, POSITIONS_QUERY)


class PostFillRefresher:
    def __init__(
        self,
        query_cache: QueryCache,
        balance_cache: BalanceCacheProtocol,
        delays: Sequence[float] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._queries = query_cache
        self._balance_cache = balance_cache
        self._delays = list(settings.POST_FILL_REFETCH_DELAYS if delays is None else delays)
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, address: str) -> asyncio.Task:
        """Start the cascade for address in the background and return its task."""
        task = asyncio.create_task(self.run_cascade(address))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run_cascade(self, address: str) -> None:
        addr = address.lower()
        try:
            await self._balance_cache.clear(addr)
            for name in _INVALIDATED:
                self._queries.invalidate(name, addr)
            await self._refetch(addr)

            elapsed = 0.0
            for delay in self._delays:
                await self._sleep(max(0.0, delay - elapsed))
                elapsed = max(elapsed, delay)
                await self._balance_cache.clear(addr)
                await self._refetch(addr)
        except asyncio.CancelledError:
            logger.info("Post-fill refresh for %s cancelled", addr)
            raise
        except Exception:
            logger.exception("Post-fill refresh for %s failed", addr)

    async def _refetch(self, addr: str) -> None:
        refreshed = 0
        for name in _REFETCHED:
            refreshed += await self._queries.refetch(name, addr)
        logger.debug("Refetched %d account queries for %s", refreshed, addr)

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
