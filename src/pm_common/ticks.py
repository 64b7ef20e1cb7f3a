"""Tick-grid arithmetic for binary-outcome prices.

All prices are Decimal in the open interval (0, 1). Rounding snaps to the
exchange tick grid and then clamps to [tick, 1 - tick]. Ties round half-up,
so 0.555 at tick 0.01 becomes 0.56.

Directional variants exist for market-order padding: a buyer rounds up so the
price still crosses the ask, a seller rounds down so it still crosses the bid.
"""

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal

from src.pm_common.errors import InvalidTickSizeError

_ZERO = Decimal(0)
_ONE = Decimal(1)


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert via str so 0.555 stays 0.555 instead of its binary expansion."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def validate_tick_size(tick: Decimal | float | str) -> Decimal:
    """Return tick as Decimal; raise InvalidTickSizeError unless 0 < tick < 1."""
    tick_d = to_decimal(tick)
    if not tick_d.is_finite() or not (_ZERO < tick_d < _ONE):
        raise InvalidTickSizeError(tick)
    return tick_d


def clamp_price(price: Decimal | float | str, tick: Decimal | float | str) -> Decimal:
    """Clamp to [tick, 1 - tick]. NaN clamps to the lower bound."""
    tick_d = validate_tick_size(tick)
    p = to_decimal(price)
    if p.is_nan():
        return tick_d
    return max(tick_d, min(_ONE - tick_d, p))


def _snap(price: Decimal | float | str, tick: Decimal | float | str, rounding: str) -> Decimal:
    tick_d = validate_tick_size(tick)
    p = to_decimal(price)
    if p.is_nan():
        return tick_d
    # Anything outside [0, 1] clamps to the same bound, and bounding first
    # keeps the quantize below within context precision.
    p = max(_ZERO, min(_ONE, p))
    steps = (p / tick_d).quantize(_ONE, rounding=rounding)
    return clamp_price(steps * tick_d, tick_d)


def round_to_tick(price: Decimal | float | str, tick: Decimal | float | str) -> Decimal:
    return _snap(price, tick, ROUND_HALF_UP)


def round_up_to_tick(price: Decimal | float | str, tick: Decimal | float | str) -> Decimal:
    """Ceiling to the tick grid (BUY padding)."""
    return _snap(price, tick, ROUND_CEILING)


def round_down_to_tick(price: Decimal | float | str, tick: Decimal | float | str) -> Decimal:
    """Floor to the tick grid (SELL padding)."""
    return _snap(price, tick, ROUND_FLOOR)


def price_to_display(price: Decimal) -> str:
    """0.555 -> '55.5¢'."""
    return f"{price * 100:.1f}¢"


def notional_to_display(amount: Decimal) -> str:
    """18 -> '$18.00', -1.5 -> '-$1.50'."""
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"
