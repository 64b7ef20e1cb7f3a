"""Book depth walker: how much of a requested size the book can fill, and at what price.

A BUY consumes asks from the lowest price up; a SELL consumes bids from the
highest price down. Pure function of the snapshot passed in.
"""
from decimal import Decimal

from src.pm_common.enums import OrderSide
from src.pm_market.domain.models import Fill, OrderBookSnapshot, SlippageResult


def walk_book(snapshot: OrderBookSnapshot, side: OrderSide, size: Decimal) -> SlippageResult:
    """Walk the side of `snapshot` that a `side` order takes from.

    worst_price is the deepest level touched (None on an empty side).
    can_fill compares exact Decimals: filled_size >= size.
    Raises ValueError if size <= 0; callers must not ask for an empty order.
    """
    if size <= 0:
        raise ValueError(f"Order size must be greater than 0, got {size}")

    levels = snapshot.levels_for(side)
    remaining = size
    notional = Decimal(0)
    worst: Decimal | None = None
    fills: list[Fill] = []

    for level in levels:
        if remaining <= 0:
            break
        take = min(remaining, level.size)
        cost = take * level.price
        fills.append(Fill(price=level.price, size=take, notional=cost))
        notional += cost
        remaining -= take
        worst = level.price

    filled = size - remaining
    return SlippageResult(
        requested_size=size,
        filled_size=filled,
        total_notional=notional,
        can_fill=filled >= size,
        worst_price=worst,
        best_price=levels[0].price if levels else None,
        fills=tuple(fills),
    )
