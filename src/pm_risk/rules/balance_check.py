from decimal import Decimal

from src.pm_common.enums import OrderSide


def is_insufficient_balance(
    side: OrderSide, required_notional: Decimal, collateral_balance: Decimal | None
) -> bool:
    """BUY needs collateral covering the notional; SELL spends shares, not collateral.

    An unknown (not yet loaded) balance never blocks.
    """
    if side != OrderSide.BUY or collateral_balance is None:
        return False
    return required_notional > collateral_balance
