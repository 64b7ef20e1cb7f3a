"""Domain models for pm_account: pure dataclasses."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class FundingState:
    """What the trading address can fund right now. None = could not be read."""

    address: str
    balance: Decimal | None
    allowance: Decimal | None
    position_size: Decimal = Decimal(0)  # shares of the order's token
