"""Raw book payload → OrderBookSnapshot.

The exchange returns levels as strings ({"price": "0.61", "size": "120.5"}),
not necessarily sorted. Unusable levels are dropped rather than rejected:
unparsable or non-finite numbers, size <= 0, price outside (0, 1). Duplicate
prices on one side are merged.
"""
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from src.pm_common.datetime_utils import utc_now
from src.pm_market.domain.models import OrderBookLevel, OrderBookSnapshot


def parse_level(raw: Mapping[str, Any]) -> OrderBookLevel | None:
    try:
        price = Decimal(str(raw["price"]))
        size = Decimal(str(raw["size"]))
    except (KeyError, TypeError, InvalidOperation):
        return None
    if not price.is_finite() or not size.is_finite():
        return None
    if size <= 0 or not (Decimal(0) < price < Decimal(1)):
        return None
    return OrderBookLevel(price=price, size=size)


def _normalise(raw_levels: Iterable[Mapping[str, Any]] | None, descending: bool) -> tuple[OrderBookLevel, ...]:
    merged: dict[Decimal, Decimal] = {}
    for raw in raw_levels or ():
        lvl = parse_level(raw)
        if lvl is None:
            continue
        merged[lvl.price] = merged.get(lvl.price, Decimal(0)) + lvl.size
    return tuple(
        OrderBookLevel(price=p, size=merged[p]) for p in sorted(merged, reverse=descending)
    )


def parse_order_book(raw: Mapping[str, Any], token_id: str | None = None) -> OrderBookSnapshot:
    """Build a snapshot from a JSON-like book payload.

    token_id falls back to the payload's "asset_id" field.
    """
    tid = token_id or str(raw.get("asset_id", ""))
    return OrderBookSnapshot(
        token_id=tid,
        bids=_normalise(raw.get("bids"), descending=True),
        asks=_normalise(raw.get("asks"), descending=False),
        timestamp=utc_now(),
    )
