"""Eligibility gate: every blocking condition for an order, evaluated independently.

Nothing short-circuits: several conditions can hold at once and the caller
picks what to show (EligibilityResult.reasons is already in priority order).
The gate never raises.
"""
from decimal import Decimal

from src.pm_common.enums import BlockReason
from src.pm_common.ticks import notional_to_display
from src.pm_market.domain.models import SlippageResult
from src.pm_order.domain.models import OrderIntent
from src.pm_risk.domain.models import EligibilityResult, EligibilitySnapshot
from src.pm_risk.rules.allowance_check import has_no_allowance, is_insufficient_allowance
from src.pm_risk.rules.balance_check import is_insufficient_balance
from src.pm_risk.rules.fill_check import cannot_fully_fill
from src.pm_risk.rules.marketable import is_below_min_notional, is_marketable_buy
from src.pm_risk.rules.order_limit import exceeds_position, is_below_min_size


def evaluate_eligibility(
    snapshot: EligibilitySnapshot,
    intent: OrderIntent,
    price: Decimal | None = None,
    slippage: SlippageResult | None = None,
    best_ask: Decimal | None = None,
) -> EligibilityResult:
    """price is the resolved execution price; it decides whether a LIMIT buy is marketable."""
    required = snapshot.required_notional
    marketable = is_marketable_buy(intent, price, best_ask)

    return EligibilityResult(
        insufficient_balance=is_insufficient_balance(
            intent.side, required, snapshot.collateral_balance
        ),
        insufficient_allowance=is_insufficient_allowance(required, snapshot.spender_allowance),
        no_allowance=has_no_allowance(snapshot.spender_allowance),
        below_min_notional=is_below_min_notional(marketable, required, snapshot.min_notional),
        below_min_size=is_below_min_size(intent.side, intent.size, snapshot.min_size),
        exceeds_position=exceeds_position(intent.side, intent.size, snapshot.max_sell_size),
        cannot_fully_fill=cannot_fully_fill(intent, slippage),
        messages=_messages(snapshot),
    )


def _messages(snapshot: EligibilitySnapshot) -> dict[BlockReason, str]:
    return {
        BlockReason.INSUFFICIENT_BALANCE: (
            f"Insufficient balance: order needs {notional_to_display(snapshot.required_notional)}"
        ),
        BlockReason.INSUFFICIENT_ALLOWANCE: "Allowance too low for this order; approve more collateral",
        BlockReason.NO_ALLOWANCE: "Collateral spending has not been approved",
        BlockReason.BELOW_MIN_NOTIONAL: (
            f"Marketable buys must be at least {notional_to_display(snapshot.min_notional)}"
        ),
        BlockReason.BELOW_MIN_SIZE: f"Minimum order size is {snapshot.min_size} shares",
        BlockReason.EXCEEDS_POSITION: f"You can sell at most {snapshot.max_sell_size} shares",
        BlockReason.CANNOT_FULLY_FILL: "Not enough liquidity to fill the full order",
    }
