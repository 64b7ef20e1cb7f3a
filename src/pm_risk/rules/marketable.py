"""Marketable-buy minimum notional.

The exchange enforces a notional floor on buys that take liquidity
immediately: any MARKET buy, or a LIMIT buy priced at or through the best
ask. Resting limit buys are exempt.
"""
from decimal import Decimal

from src.pm_order.domain.models import OrderIntent


def is_marketable_buy(
    intent: OrderIntent, price: Decimal | None, best_ask: Decimal | None
) -> bool:
    if not intent.is_buy:
        return False
    if intent.is_market:
        return True
    if best_ask is None or price is None:
        return False
    return price >= best_ask


def is_below_min_notional(
    marketable: bool, required_notional: Decimal, min_notional: Decimal
) -> bool:
    return marketable and required_notional < min_notional
