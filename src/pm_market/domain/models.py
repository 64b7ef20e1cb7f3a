"""Market domain models: immutable value types, Decimal throughout."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from math import ceil

from src.pm_common.enums import OrderSide


@dataclass(frozen=True)
class OrderBookLevel:
    price: Decimal  # (0, 1)
    size: Decimal  # > 0


@dataclass(frozen=True)
class OrderBookSnapshot:
    """One side-consistent view of a token's book.

    bids are descending by price, asks ascending; both strictly monotonic
    with positive sizes. A newer snapshot replaces this one, it is never
    updated in place.
    """

    token_id: str
    bids: tuple[OrderBookLevel, ...] = ()
    asks: tuple[OrderBookLevel, ...] = ()
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        _check_side(self.bids, descending=True)
        _check_side(self.asks, descending=False)

    @property
    def best_bid(self) -> Decimal | None:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Decimal | None:
        return self.asks[0].price if self.asks else None

    def levels_for(self, side: OrderSide) -> tuple[OrderBookLevel, ...]:
        """Levels a taker on `side` consumes: asks for BUY, bids for SELL."""
        return self.asks if side == OrderSide.BUY else self.bids

    def depth(self, side: OrderSide) -> Decimal:
        return sum((lvl.size for lvl in self.levels_for(side)), Decimal(0))


def _check_side(levels: tuple[OrderBookLevel, ...], descending: bool) -> None:
    prev: Decimal | None = None
    for lvl in levels:
        if lvl.size <= 0:
            raise ValueError(f"Level size must be positive, got {lvl.size}")
        if not (Decimal(0) < lvl.price < Decimal(1)):
            raise ValueError(f"Level price must be in (0, 1), got {lvl.price}")
        if prev is not None:
            ordered = lvl.price < prev if descending else lvl.price > prev
            if not ordered:
                raise ValueError("Book side prices must be strictly monotonic")
        prev = lvl.price


@dataclass(frozen=True)
class OutcomeQuote:
    """Last-known price for an outcome; fallback when the book can't price an order."""

    token_id: str
    reference_price: Decimal


@dataclass(frozen=True)
class MarketConstraints:
    tick_size: Decimal = Decimal("0.01")
    min_order_size: Decimal = Decimal("1")
    min_notional: Decimal = Decimal("1")  # applies to marketable buys only
    neg_risk: bool = False

    @property
    def min_shares(self) -> Decimal:
        """Minimum BUY size: whole shares, never below one."""
        return Decimal(max(1, ceil(self.min_order_size)))


@dataclass(frozen=True)
class Fill:
    price: Decimal
    size: Decimal
    notional: Decimal  # cost for BUY, proceeds for SELL


@dataclass(frozen=True)
class SlippageResult:
    requested_size: Decimal
    filled_size: Decimal
    total_notional: Decimal
    can_fill: bool
    worst_price: Decimal | None  # None when the relevant side is empty
    best_price: Decimal | None
    fills: tuple[Fill, ...] = field(default=())

    @property
    def unfilled_size(self) -> Decimal:
        return self.requested_size - self.filled_size

    @property
    def avg_fill_price(self) -> Decimal | None:
        if self.filled_size == 0:
            return None
        return self.total_notional / self.filled_size

    @property
    def slippage(self) -> Decimal:
        """How far the average fill is from the best price, always >= 0."""
        avg = self.avg_fill_price
        if avg is None or self.best_price is None:
            return Decimal(0)
        return abs(avg - self.best_price)

    @property
    def slippage_percent(self) -> Decimal:
        if not self.best_price:
            return Decimal(0)
        return self.slippage / self.best_price * 100
