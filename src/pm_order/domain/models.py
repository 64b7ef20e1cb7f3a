"""Order intent: a frozen dataclass built by one constructor per order shape.

Construct through OrderIntent.market / limit_gtc / limit_gtd rather than the
raw initializer so every (order type, expiration policy) pair is fully formed
up front. A retry derives a new intent; the submitted one is never mutated.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from src.pm_common.enums import ExpirationPolicy, OrderSide, OrderTypeSelection
from src.pm_common.ticks import to_decimal


@dataclass(frozen=True)
class OrderIntent:
    token_id: str
    side: OrderSide
    size: Decimal  # shares
    order_type: OrderTypeSelection
    limit_price: Decimal | None = None  # LIMIT only
    expiration_policy: ExpirationPolicy = ExpirationPolicy.GTC
    expiration_seconds: int | None = None  # GTD only: requested lifetime
    allow_partial_fill: bool = True  # MARKET only: FAK vs FOK

    @classmethod
    def market(
        cls,
        token_id: str,
        side: OrderSide | str,
        size: Decimal | float | str,
        allow_partial_fill: bool = True,
    ) -> "OrderIntent":
        return cls(
            token_id=token_id,
            side=OrderSide(side),
            size=to_decimal(size),
            order_type=OrderTypeSelection.MARKET,
            allow_partial_fill=allow_partial_fill,
        )

    @classmethod
    def limit_gtc(
        cls,
        token_id: str,
        side: OrderSide | str,
        size: Decimal | float | str,
        limit_price: Decimal | float | str,
    ) -> "OrderIntent":
        return cls(
            token_id=token_id,
            side=OrderSide(side),
            size=to_decimal(size),
            order_type=OrderTypeSelection.LIMIT,
            limit_price=to_decimal(limit_price),
            expiration_policy=ExpirationPolicy.GTC,
        )

    @classmethod
    def limit_gtd(
        cls,
        token_id: str,
        side: OrderSide | str,
        size: Decimal | float | str,
        limit_price: Decimal | float | str,
        expiration_seconds: int,
    ) -> "OrderIntent":
        return cls(
            token_id=token_id,
            side=OrderSide(side),
            size=to_decimal(size),
            order_type=OrderTypeSelection.LIMIT,
            limit_price=to_decimal(limit_price),
            expiration_policy=ExpirationPolicy.GTD,
            expiration_seconds=expiration_seconds,
        )

    def derive(self, **changes: Any) -> "OrderIntent":
        """New intent with `changes` applied (e.g. for a retry at a new size)."""
        return replace(self, **changes)

    @property
    def is_market(self) -> bool:
        return self.order_type == OrderTypeSelection.MARKET

    @property
    def is_buy(self) -> bool:
        return self.side == OrderSide.BUY
