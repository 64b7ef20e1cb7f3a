from src.pm_market.domain.models import SlippageResult
from src.pm_order.domain.models import OrderIntent


def cannot_fully_fill(intent: OrderIntent, slippage: SlippageResult | None) -> bool:
    """MARKET order the book can't fully fill while partial fills are off.

    With no book estimate (slippage None) feasibility is unknown and does not block.
    """
    if not intent.is_market or intent.allow_partial_fill or slippage is None:
        return False
    return not slippage.can_fill
