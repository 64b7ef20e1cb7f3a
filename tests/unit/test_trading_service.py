"""TradingService: preparation pipeline, presigned placement and per-address controllers."""

import asyncio
from dataclasses import replace
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.pm_account.application.service import AccountService
from src.pm_common.enums import (
    BlockReason,
    ClobOrderType,
    ExchangeOrderStatus,
    OrderLifecycleState,
    OrderSide,
    PriceSource,
)
from src.pm_common.errors import (
    IntentValidationError,
    InvalidTickSizeError,
    LifecycleBusyError,
    PreparedOrderMismatchError,
)
from src.pm_common.query_cache import QueryCache
from src.pm_market.domain.models import (
    MarketConstraints,
    OrderBookLevel,
    OrderBookSnapshot,
    OutcomeQuote,
)
from src.pm_market.infrastructure.book_store import InMemoryBookFeed
from src.pm_order.application.service import PresignedSigner, TradingService
from src.pm_order.domain.collaborators import SubmitReceipt
from src.pm_order.domain.models import OrderIntent

ADDR = "0xAbC0000000000000000000000000000000000001"
TOKEN = "tok-1"


def _service(
    balance: str = "50",
    allowance: str = "1000",
    position: str = "0",
    asks: list[tuple[str, str]] | None = None,
) -> tuple[TradingService, AsyncMock]:
    feed = InMemoryBookFeed()
    if asks is not None:
        feed.publish(
            OrderBookSnapshot(
                token_id=TOKEN,
                asks=tuple(OrderBookLevel(Decimal(p), Decimal(s)) for p, s in asks),
            )
        )
    chain = AsyncMock()
    chain.get_balance.return_value = Decimal(balance)
    chain.get_allowance.return_value = Decimal(allowance)
    positions = AsyncMock()
    positions.get_position_size.return_value = Decimal(position)
    accounts = AccountService(chain, positions, QueryCache(), collateral_token="0xusdc")

    exchange = AsyncMock()
    exchange.submit_order.return_value = SubmitReceipt(
        order_id="0xorder", status=ExchangeOrderStatus.MATCHED
    )
    return TradingService(feed, accounts, exchange), exchange


class TestPrepare:
    async def test_market_buy_priced_from_book(self) -> None:
        svc, _ = _service(asks=[("0.60", "50")])
        intent = OrderIntent.market(TOKEN, OrderSide.BUY, "30")

        prepared = await svc.prepare(intent, ADDR)

        assert prepared.resolved.price == Decimal("0.61")
        assert prepared.resolved.total_notional == Decimal("18.0")
        assert prepared.resolved.source is PriceSource.BOOK_DEPTH
        assert prepared.execution.order_type is ClobOrderType.FAK
        assert prepared.execution.expiration == 0
        assert prepared.payload.maker_amount == 18_300_000
        assert prepared.payload.taker_amount == 30_000_000
        assert prepared.address == ADDR
        assert not prepared.eligibility.is_blocked

    async def test_quote_fallback_without_book(self) -> None:
        svc, _ = _service()
        intent = OrderIntent.market(TOKEN, OrderSide.BUY, "10", allow_partial_fill=False)
        quote = OutcomeQuote(token_id=TOKEN, reference_price=Decimal("0.50"))

        prepared = await svc.prepare(intent, ADDR, quote=quote)

        assert prepared.resolved.price == Decimal("0.51")
        assert prepared.resolved.source is PriceSource.REFERENCE_QUOTE
        assert prepared.execution.order_type is ClobOrderType.FOK

    async def test_unpriceable_market_order(self) -> None:
        svc, _ = _service()
        with pytest.raises(IntentValidationError):
            await svc.prepare(OrderIntent.market(TOKEN, OrderSide.BUY, "10"), ADDR)

    async def test_blocked_order_is_still_prepared(self) -> None:
        svc, _ = _service(balance="5", asks=[("0.60", "50")])
        prepared = await svc.prepare(OrderIntent.market(TOKEN, OrderSide.BUY, "30"), ADDR)
        assert prepared.eligibility.is_blocked
        assert prepared.eligibility.primary_reason is BlockReason.INSUFFICIENT_BALANCE

    async def test_sell_above_position_blocked(self) -> None:
        svc, _ = _service(position="3")
        intent = OrderIntent.limit_gtc(TOKEN, OrderSide.SELL, "10", "0.40")
        prepared = await svc.prepare(intent, ADDR)
        assert BlockReason.EXCEEDS_POSITION in prepared.eligibility.reasons

    async def test_gtd_limit_gets_buffered_expiration(self) -> None:
        svc, _ = _service()
        intent = OrderIntent.limit_gtd(TOKEN, OrderSide.BUY, "10", "0.45", expiration_seconds=3600)
        prepared = await svc.prepare(intent, ADDR)
        assert prepared.execution.order_type is ClobOrderType.GTD
        assert prepared.payload.expiration == prepared.execution.expiration > 3600 + 60

    async def test_invalid_tick_size(self) -> None:
        svc, _ = _service()
        with pytest.raises(InvalidTickSizeError):
            await svc.prepare(
                OrderIntent.limit_gtc(TOKEN, OrderSide.BUY, "10", "0.45"),
                ADDR,
                constraints=MarketConstraints(tick_size=Decimal("1")),
            )

    async def test_invalid_intent(self) -> None:
        svc, _ = _service()
        with pytest.raises(IntentValidationError):
            await svc.prepare(OrderIntent.market(TOKEN, OrderSide.BUY, "0"), ADDR)

    async def test_caller_salt_and_nonce_carried(self) -> None:
        svc, _ = _service()
        intent = OrderIntent.limit_gtc(TOKEN, OrderSide.BUY, "10", "0.45")
        prepared = await svc.prepare(intent, ADDR, nonce=7, fee_rate_bps=10, salt="0x99")
        assert prepared.payload.salt == "0x99"
        assert prepared.payload.nonce == 7
        assert prepared.payload.fee_rate_bps == 10


class TestPlacePresigned:
    async def test_matching_payload_is_submitted(self) -> None:
        svc, exchange = _service(asks=[("0.60", "50")])
        intent = OrderIntent.market(TOKEN, OrderSide.BUY, "30")
        preview = await svc.prepare(intent, ADDR)

        result = await svc.place_presigned(intent, ADDR, preview.payload, "0xsig")

        assert result.state is OrderLifecycleState.CONFIRMED
        signed, order_type = exchange.submit_order.await_args.args
        assert signed.signature == "0xsig"
        assert signed.order == preview.payload
        assert order_type is ClobOrderType.FAK

    async def test_address_case_ignored(self) -> None:
        svc, _ = _service()
        intent = OrderIntent.limit_gtc(TOKEN, OrderSide.BUY, "10", "0.45")
        preview = await svc.prepare(intent, ADDR)
        signed = replace(preview.payload, maker=ADDR.lower(), signer=ADDR.lower())

        result = await svc.place_presigned(intent, ADDR, signed, "0xsig")
        assert result.confirmed

    async def test_tampered_amount_rejected(self) -> None:
        svc, exchange = _service(asks=[("0.60", "50")])
        intent = OrderIntent.market(TOKEN, OrderSide.BUY, "30")
        preview = await svc.prepare(intent, ADDR)
        tampered = replace(preview.payload, maker_amount=1)

        with pytest.raises(PreparedOrderMismatchError, match="maker_amount"):
            await svc.place_presigned(intent, ADDR, tampered, "0xsig")
        exchange.submit_order.assert_not_awaited()

    async def test_missing_expiration_on_gtd_rejected(self) -> None:
        svc, _ = _service()
        intent = OrderIntent.limit_gtd(TOKEN, OrderSide.BUY, "10", "0.45", expiration_seconds=600)
        preview = await svc.prepare(intent, ADDR)

        with pytest.raises(PreparedOrderMismatchError):
            await svc.place_presigned(intent, ADDR, replace(preview.payload, expiration=0), "0xsig")

    async def test_blocked_order_not_submitted(self) -> None:
        svc, exchange = _service(balance="1", asks=[("0.60", "50")])
        intent = OrderIntent.market(TOKEN, OrderSide.BUY, "30")
        preview = await svc.prepare(intent, ADDR)

        result = await svc.place_presigned(intent, ADDR, preview.payload, "0xsig")

        assert result.state is OrderLifecycleState.IDLE
        assert result.error_code == 2001
        exchange.submit_order.assert_not_awaited()


class TestPresignedSigner:
    async def test_returns_signature_for_same_salt(self) -> None:
        svc, _ = _service()
        preview = await svc.prepare(OrderIntent.limit_gtc(TOKEN, OrderSide.BUY, "10", "0.45"), ADDR)
        signer = PresignedSigner(preview.payload.salt, "0xsig")
        assert await signer.sign(preview.payload) == "0xsig"

    async def test_other_salt_rejected(self) -> None:
        svc, _ = _service()
        preview = await svc.prepare(OrderIntent.limit_gtc(TOKEN, OrderSide.BUY, "10", "0.45"), ADDR)
        with pytest.raises(PreparedOrderMismatchError):
            await PresignedSigner("0xother", "0xsig").sign(preview.payload)


class TestControllers:
    def test_one_controller_per_address(self) -> None:
        svc, _ = _service()
        assert svc.controller_for(ADDR) is svc.controller_for(ADDR.lower())
        assert svc.controller_for(ADDR) is not svc.controller_for("0x" + "2" * 40)

    async def test_cancel_delegates(self) -> None:
        svc, exchange = _service()
        exchange.cancel_order.return_value = True
        assert await svc.cancel("0xorder") is True
        exchange.cancel_order.assert_awaited_once_with("0xorder")

    async def test_controller_released_after_placement(self) -> None:
        svc, _ = _service(asks=[("0.60", "50")])
        intent = OrderIntent.market(TOKEN, OrderSide.BUY, "30")
        preview = await svc.prepare(intent, ADDR)

        result = await svc.place_presigned(intent, ADDR, preview.payload, "0xsig")

        assert result.confirmed
        assert svc._controllers == {}

    async def test_busy_controller_kept_while_in_flight(self) -> None:
        svc, exchange = _service(asks=[("0.60", "50")])
        release = asyncio.Event()

        async def slow_submit(*args):
            await release.wait()
            return SubmitReceipt(order_id="0xorder", status=ExchangeOrderStatus.MATCHED)

        exchange.submit_order.side_effect = slow_submit
        intent = OrderIntent.market(TOKEN, OrderSide.BUY, "30")
        prepared = await svc.prepare(intent, ADDR)
        signer = PresignedSigner(prepared.payload.salt, "0xsig")

        first = asyncio.create_task(svc.place(prepared, signer))
        await asyncio.sleep(0)
        controller = svc.controller_for(ADDR)
        assert controller.in_flight

        with pytest.raises(LifecycleBusyError):
            await svc.place(prepared, signer)
        assert svc.controller_for(ADDR) is controller

        release.set()
        assert (await first).confirmed
        assert ADDR.lower() not in svc._controllers
