"""Price resolver: the single execution price for an order intent.

The exchange has no native market order, so a MARKET intent becomes an
aggressive limit order:

- book can fill the size → worst touched level padded by `market_buffer`
  (up for BUY, down for SELL), rounded directionally to the tick grid, and
  never past the best level moved by `max_slippage_percent`; notional is the
  walker's exact total. When the worst level lies beyond that bound the
  bound is used and `exceeds_max_slippage` is set.
- otherwise → reference quote moved by `max_slippage_percent` in the filling
  direction, rounded directionally; notional is price x size.

LIMIT intents use the user's price rounded to the nearest tick and never
look at the book.
"""
from dataclasses import dataclass, field
from decimal import Decimal

from config.settings import settings
from src.pm_common.enums import OrderSide, PriceSource
from src.pm_common.ticks import round_down_to_tick, round_to_tick, round_up_to_tick
from src.pm_market.domain.models import (
    MarketConstraints,
    OrderBookSnapshot,
    OutcomeQuote,
    SlippageResult,
)
from src.pm_market.engine.depth_walker import walk_book
from src.pm_order.domain.models import OrderIntent


@dataclass(frozen=True)
class PricingPolicy:
    market_buffer: Decimal = field(default_factory=lambda: settings.MARKET_ORDER_BUFFER)
    max_slippage_percent: Decimal = field(default_factory=lambda: settings.MAX_SLIPPAGE_PERCENT)


@dataclass(frozen=True)
class ResolvedPrice:
    price: Decimal
    total_notional: Decimal  # cost for BUY, proceeds for SELL
    source: PriceSource
    slippage: SlippageResult | None = None  # MARKET with a book only
    exceeds_max_slippage: bool = False


def resolve_price(
    intent: OrderIntent,
    constraints: MarketConstraints,
    quote: OutcomeQuote | None = None,
    book: OrderBookSnapshot | None = None,
    policy: PricingPolicy | None = None,
) -> ResolvedPrice:
    """Raise ValueError for a LIMIT intent without a price, or a MARKET
    intent that neither the book nor a quote can price.
    """
    tick = constraints.tick_size
    if not intent.is_market:
        if intent.limit_price is None:
            raise ValueError("LIMIT intent has no limit_price")
        price = round_to_tick(intent.limit_price, tick)
        return ResolvedPrice(price=price, total_notional=price * intent.size, source=PriceSource.LIMIT)

    policy = policy or PricingPolicy()
    slippage = walk_book(book, intent.side, intent.size) if book is not None else None

    if slippage is not None and slippage.can_fill and slippage.worst_price is not None:
        price, exceeds = _cap_to_best(slippage, policy, intent.side, tick)
        return ResolvedPrice(
            price=price,
            total_notional=slippage.total_notional,
            source=PriceSource.BOOK_DEPTH,
            slippage=slippage,
            exceeds_max_slippage=exceeds,
        )

    if quote is None:
        raise ValueError(f"No book depth or reference quote to price {intent.token_id}")
    price = _pad(quote.reference_price, policy.max_slippage_percent / 100, intent.side, tick)
    return ResolvedPrice(
        price=price,
        total_notional=price * intent.size,
        source=PriceSource.REFERENCE_QUOTE,
        slippage=slippage,
    )


def _pad(base: Decimal, fraction: Decimal, side: OrderSide, tick: Decimal) -> Decimal:
    if side == OrderSide.BUY:
        return round_up_to_tick(base * (1 + fraction), tick)
    return round_down_to_tick(base * (1 - fraction), tick)


def _cap_to_best(
    slippage: SlippageResult, policy: PricingPolicy, side: OrderSide, tick: Decimal
) -> tuple[Decimal, bool]:
    """Padded worst price, bounded by the best level +/- max slippage."""
    fraction = policy.max_slippage_percent / 100
    padded = _pad(slippage.worst_price, policy.market_buffer, side, tick)
    bound = _pad(slippage.best_price, fraction, side, tick)
    if side == OrderSide.BUY:
        return min(padded, bound), slippage.worst_price > slippage.best_price * (1 + fraction)
    return max(padded, bound), slippage.worst_price < slippage.best_price * (1 - fraction)


@dataclass(frozen=True)
class PnlEstimate:
    cost: Decimal
    potential_win: Decimal
    potential_loss: Decimal


def estimate_pnl(price: Decimal, size: Decimal, side: OrderSide) -> PnlEstimate:
    """Binary payout of 1 per share.

    BUY pays price per share; SELL is priced as buying the complement at
    1 - price.
    """
    unit_cost = price if side == OrderSide.BUY else 1 - price
    cost = unit_cost * size
    return PnlEstimate(cost=cost, potential_win=size - cost, potential_loss=cost)
