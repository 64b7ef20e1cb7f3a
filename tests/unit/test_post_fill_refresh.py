"""Post-fill refresh cascade: ordering of clears, invalidations and delayed refetches."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, call

import pytest

from src.pm_account.application.refresh import PostFillRefresher
from src.pm_common.query_cache import QueryCache

MIXED = "0xAbC0000000000000000000000000000000000001"
ADDR = MIXED.lower()


def _queries() -> tuple[QueryCache, dict[str, AsyncMock]]:
    queries = QueryCache()
    fetchers = {
        "balance": AsyncMock(return_value=Decimal("10")),
        "allowance": AsyncMock(return_value=Decimal("100")),
        "positions": AsyncMock(return_value=Decimal("0")),
        "orders": AsyncMock(return_value=[]),
    }
    queries.register(("usdcBalance", ADDR), fetchers["balance"])
    queries.register(("usdcAllowance", ADDR, "0xspender"), fetchers["allowance"])
    queries.register(("userPositions", ADDR, "tok"), fetchers["positions"])
    queries.register(("openOrders", ADDR), fetchers["orders"])
    return queries, fetchers


class TestRunCascade:
    async def test_immediate_then_delayed_refetches(self) -> None:
        queries, fetchers = _queries()
        await queries.get(("openOrders", ADDR))
        balance_cache = AsyncMock()
        sleep = AsyncMock()

        await PostFillRefresher(queries, balance_cache, delays=[1, 3, 5], sleep=sleep).run_cascade(MIXED)

        assert sleep.await_args_list == [call(1), call(2), call(2)]
        assert balance_cache.clear.await_args_list == [call(ADDR)] * 4
        assert fetchers["balance"].await_count == 4
        assert fetchers["allowance"].await_count == 4
        assert fetchers["positions"].await_count == 4

    async def test_open_orders_invalidated_not_refetched(self) -> None:
        queries, fetchers = _queries()
        await queries.get(("openOrders", ADDR))

        await PostFillRefresher(queries, AsyncMock(), delays=[], sleep=AsyncMock()).run_cascade(ADDR)

        assert queries.is_stale(("openOrders", ADDR))
        assert fetchers["orders"].await_count == 1
        assert not queries.is_stale(("usdcBalance", ADDR))

    async def test_other_addresses_untouched(self) -> None:
        queries, _ = _queries()
        other = AsyncMock(return_value=Decimal("1"))
        queries.register(("usdcBalance", "0xother"), other)
        await queries.get(("usdcBalance", "0xother"))

        await PostFillRefresher(queries, AsyncMock(), delays=[1], sleep=AsyncMock()).run_cascade(ADDR)

        assert other.await_count == 1
        assert not queries.is_stale(("usdcBalance", "0xother"))

    async def test_refetch_failures_do_not_stop_the_cascade(self) -> None:
        queries = QueryCache()
        failing = AsyncMock(side_effect=RuntimeError("rpc down"))
        queries.register(("usdcBalance", ADDR), failing)
        sleep = AsyncMock()

        await PostFillRefresher(queries, AsyncMock(), delays=[1, 3, 5], sleep=sleep).run_cascade(ADDR)

        assert sleep.await_count == 3
        assert failing.await_count == 4

    async def test_cache_failure_is_logged_not_raised(self) -> None:
        queries, _ = _queries()
        balance_cache = AsyncMock()
        balance_cache.clear.side_effect = RuntimeError("redis down")

        await PostFillRefresher(queries, balance_cache, delays=[1], sleep=AsyncMock()).run_cascade(ADDR)

    async def test_default_delays_from_settings(self) -> None:
        queries, _ = _queries()
        sleep = AsyncMock()
        await PostFillRefresher(queries, AsyncMock(), sleep=sleep).run_cascade(ADDR)
        assert sleep.await_args_list == [call(1.0), call(2.0), call(2.0)]


class TestScheduling:
    async def test_schedule_and_drain(self) -> None:
        queries, fetchers = _queries()
        refresher = PostFillRefresher(queries, AsyncMock(), delays=[1], sleep=AsyncMock())

        task = refresher.schedule(MIXED)
        assert refresher.pending == 1
        await refresher.drain()
        await asyncio.sleep(0)

        assert task.done()
        assert refresher.pending == 0
        assert fetchers["balance"].await_count == 2

    async def test_drain_with_nothing_pending(self) -> None:
        await PostFillRefresher(QueryCache(), AsyncMock(), delays=[]).drain()

    async def test_cancellation_propagates(self) -> None:
        blocker = asyncio.Event()

        async def sleep(_: float) -> None:
            await blocker.wait()

        queries, _ = _queries()
        refresher = PostFillRefresher(queries, AsyncMock(), delays=[1], sleep=sleep)
        task = refresher.schedule(ADDR)
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
