"""Eligibility gate rules and their priority ordering."""

from decimal import Decimal

from src.pm_common.enums import BlockReason, OrderSide
from src.pm_market.domain.models import SlippageResult
from src.pm_order.domain.models import OrderIntent
from src.pm_risk.domain.models import EligibilitySnapshot
from src.pm_risk.gate import evaluate_eligibility
from src.pm_risk.rules.allowance_check import has_no_allowance, is_insufficient_allowance
from src.pm_risk.rules.balance_check import is_insufficient_balance
from src.pm_risk.rules.fill_check import cannot_fully_fill
from src.pm_risk.rules.marketable import is_below_min_notional, is_marketable_buy
from src.pm_risk.rules.order_limit import exceeds_position, is_below_min_size


def _snapshot(
    balance: str | None = "100",
    allowance: str | None = "100",
    required: str = "10",
    min_notional: str = "1",
    min_size: str = "5",
    max_sell: str = "0",
) -> EligibilitySnapshot:
    return EligibilitySnapshot(
        collateral_balance=Decimal(balance) if balance is not None else None,
        spender_allowance=Decimal(allowance) if allowance is not None else None,
        required_notional=Decimal(required),
        min_notional=Decimal(min_notional),
        min_size=Decimal(min_size),
        max_sell_size=Decimal(max_sell),
    )


def _slippage(can_fill: bool) -> SlippageResult:
    return SlippageResult(
        requested_size=Decimal("20"),
        filled_size=Decimal("20") if can_fill else Decimal("5"),
        total_notional=Decimal("10"),
        can_fill=can_fill,
        worst_price=Decimal("0.5"),
        best_price=Decimal("0.5"),
    )


BUY_LIMIT = OrderIntent.limit_gtc("tok", OrderSide.BUY, "20", "0.50")


class TestRules:
    def test_balance_only_for_buys(self) -> None:
        assert is_insufficient_balance(OrderSide.BUY, Decimal("10"), Decimal("5"))
        assert not is_insufficient_balance(OrderSide.SELL, Decimal("10"), Decimal("5"))

    def test_unknown_balance_never_blocks(self) -> None:
        assert not is_insufficient_balance(OrderSide.BUY, Decimal("10"), None)

    def test_allowance(self) -> None:
        assert is_insufficient_allowance(Decimal("10"), Decimal("9.99"))
        assert not is_insufficient_allowance(Decimal("10"), Decimal("10"))
        assert not is_insufficient_allowance(Decimal("10"), None)

    def test_no_allowance(self) -> None:
        assert has_no_allowance(Decimal("0"))
        assert not has_no_allowance(None)

    def test_marketable_buy(self) -> None:
        market = OrderIntent.market("tok", OrderSide.BUY, "5")
        assert is_marketable_buy(market, None, None)
        assert is_marketable_buy(BUY_LIMIT, Decimal("0.50"), Decimal("0.50"))
        assert not is_marketable_buy(BUY_LIMIT, Decimal("0.50"), Decimal("0.51"))
        assert not is_marketable_buy(BUY_LIMIT, Decimal("0.50"), None)
        sell = OrderIntent.market("tok", OrderSide.SELL, "5")
        assert not is_marketable_buy(sell, None, Decimal("0.5"))

    def test_min_notional(self) -> None:
        assert is_below_min_notional(True, Decimal("0.99"), Decimal("1"))
        assert not is_below_min_notional(False, Decimal("0.99"), Decimal("1"))

    def test_min_size_for_buys_only(self) -> None:
        assert is_below_min_size(OrderSide.BUY, Decimal("4"), Decimal("5"))
        assert not is_below_min_size(OrderSide.SELL, Decimal("4"), Decimal("5"))

    def test_exceeds_position_for_sells_only(self) -> None:
        assert exceeds_position(OrderSide.SELL, Decimal("11"), Decimal("10"))
        assert not exceeds_position(OrderSide.SELL, Decimal("10"), Decimal("10"))
        assert not exceeds_position(OrderSide.BUY, Decimal("11"), Decimal("0"))

    def test_cannot_fully_fill(self) -> None:
        fok = OrderIntent.market("tok", OrderSide.BUY, "20", allow_partial_fill=False)
        fak = OrderIntent.market("tok", OrderSide.BUY, "20")
        assert cannot_fully_fill(fok, _slippage(False))
        assert not cannot_fully_fill(fok, _slippage(True))
        assert not cannot_fully_fill(fak, _slippage(False))
        assert not cannot_fully_fill(fok, None)
        assert not cannot_fully_fill(BUY_LIMIT, _slippage(False))


class TestGate:
    def test_funded_order_passes(self) -> None:
        result = evaluate_eligibility(_snapshot(), BUY_LIMIT, price=Decimal("0.50"))
        assert not result.is_blocked
        assert result.reasons == []
        assert result.primary_reason is None
        assert result.primary_message is None

    def test_insufficient_balance_only(self) -> None:
        result = evaluate_eligibility(
            _snapshot(balance="5", allowance="100", required="10"), BUY_LIMIT, price=Decimal("0.50")
        )
        assert result.insufficient_balance
        assert not result.insufficient_allowance
        assert result.reasons == [BlockReason.INSUFFICIENT_BALANCE]
        assert "$10.00" in result.primary_message

    def test_unloaded_funding_does_not_block(self) -> None:
        result = evaluate_eligibility(_snapshot(balance=None, allowance=None), BUY_LIMIT)
        assert not result.is_blocked

    def test_multiple_reasons_in_priority_order(self) -> None:
        intent = OrderIntent.market("tok", OrderSide.BUY, "2", allow_partial_fill=False)
        result = evaluate_eligibility(
            _snapshot(balance="0.5", allowance="0", required="0.8"),
            intent,
            slippage=_slippage(False),
        )
        assert result.reasons == [
            BlockReason.INSUFFICIENT_BALANCE,
            BlockReason.INSUFFICIENT_ALLOWANCE,
            BlockReason.NO_ALLOWANCE,
            BlockReason.BELOW_MIN_NOTIONAL,
            BlockReason.BELOW_MIN_SIZE,
            BlockReason.CANNOT_FULLY_FILL,
        ]
        assert result.primary_reason is BlockReason.INSUFFICIENT_BALANCE

    def test_sell_beyond_position(self) -> None:
        intent = OrderIntent.limit_gtc("tok", OrderSide.SELL, "20", "0.50")
        result = evaluate_eligibility(_snapshot(max_sell="12"), intent, price=Decimal("0.50"))
        assert result.reasons == [BlockReason.EXCEEDS_POSITION]
        assert "12" in result.primary_message

    def test_resting_limit_buy_exempt_from_min_notional(self) -> None:
        result = evaluate_eligibility(
            _snapshot(required="0.5", min_size="1"),
            BUY_LIMIT,
            price=Decimal("0.50"),
            best_ask=Decimal("0.60"),
        )
        assert not result.below_min_notional

    def test_crossing_limit_buy_needs_min_notional(self) -> None:
        result = evaluate_eligibility(
            _snapshot(required="0.5", min_size="1"),
            BUY_LIMIT,
            price=Decimal("0.50"),
            best_ask=Decimal("0.50"),
        )
        assert result.reasons == [BlockReason.BELOW_MIN_NOTIONAL]
