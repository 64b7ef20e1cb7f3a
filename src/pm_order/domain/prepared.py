"""A fully resolved order, ready to sign: the unit handed to the lifecycle controller."""
from dataclasses import dataclass

from src.pm_order.domain.models import OrderIntent
from src.pm_order.domain.order_type import ExecutionSpec
from src.pm_order.domain.payload import UnsignedOrder
from src.pm_order.pricing.price_resolver import ResolvedPrice
from src.pm_risk.domain.models import EligibilityResult


@dataclass(frozen=True)
class PreparedOrder:
    intent: OrderIntent
    resolved: ResolvedPrice
    execution: ExecutionSpec
    payload: UnsignedOrder
    eligibility: EligibilityResult

    @property
    def address(self) -> str:
        return self.payload.maker
