from decimal import Decimal

from src.pm_common.enums import OrderSide


def is_below_min_size(side: OrderSide, size: Decimal, min_size: Decimal) -> bool:
    """Market minimum applies to buys; sells may unwind any remainder."""
    return side == OrderSide.BUY and size < min_size


def exceeds_position(side: OrderSide, size: Decimal, max_sell_size: Decimal) -> bool:
    return side == OrderSide.SELL and size > max_sell_size
