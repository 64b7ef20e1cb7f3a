# src/pm_order/application/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.pm_market.domain.models import MarketConstraints, OutcomeQuote
from src.pm_order.domain.models import OrderIntent


class PreviewRequest(BaseModel):
    address: str
    token_id: str
    side: Literal["BUY", "SELL"]
    size: Decimal = Field(gt=0)
    order_type: Literal["LIMIT", "MARKET"]
    limit_price: Decimal | None = None
    expiration_policy: Literal["GTC", "GTD"] = "GTC"
    expiration_seconds: int | None = None
    allow_partial_fill: bool = True

    # Market metadata; defaults come from settings when omitted
    tick_size: Decimal | None = None
    min_order_size: Decimal | None = None
    neg_risk: bool = False
    reference_price: Decimal | None = Field(default=None, gt=0, lt=1)
    nonce: int = Field(default=0, ge=0)
    fee_rate_bps: int = Field(default=0, ge=0)

    @field_validator("address")
    @classmethod
    def looks_like_address(cls, v: str) -> str:
        if not v.startswith("0x") or len(v) != 42:
            raise ValueError("address must be a 0x-prefixed 20-byte hex string")
        return v

    @model_validator(mode="after")
    def limit_needs_price(self) -> "PreviewRequest":
        if self.order_type == "LIMIT" and self.limit_price is None:
            raise ValueError("limit_price is required for LIMIT orders")
        if self.expiration_policy == "GTD" and self.order_type == "MARKET":
            raise ValueError("MARKET orders cannot be GTD")
        return self

    def to_intent(self) -> OrderIntent:
        if self.order_type == "MARKET":
            return OrderIntent.market(
                self.token_id, self.side, self.size, allow_partial_fill=self.allow_partial_fill
            )
        if self.expiration_policy == "GTD":
            return OrderIntent.limit_gtd(
                self.token_id,
                self.side,
                self.size,
                self.limit_price,
                expiration_seconds=self.expiration_seconds or 0,
            )
        return OrderIntent.limit_gtc(self.token_id, self.side, self.size, self.limit_price)

    def to_constraints(self, defaults: MarketConstraints) -> MarketConstraints:
        return MarketConstraints(
            tick_size=self.tick_size if self.tick_size is not None else defaults.tick_size,
            min_order_size=(
                self.min_order_size
                if self.min_order_size is not None
                else defaults.min_order_size
            ),
            min_notional=defaults.min_notional,
            neg_risk=self.neg_risk,
        )

    def to_quote(self) -> OutcomeQuote | None:
        if self.reference_price is None:
            return None
        return OutcomeQuote(token_id=self.token_id, reference_price=self.reference_price)


class SlippageView(BaseModel):
    requested_size: Decimal
    filled_size: Decimal
    total_notional: Decimal
    can_fill: bool
    best_price: Decimal | None
    worst_price: Decimal | None
    avg_fill_price: Decimal | None
    slippage_percent: Decimal | None


class EligibilityView(BaseModel):
    is_blocked: bool
    reasons: list[str]
    primary_reason: str | None
    primary_message: str | None


class PnlView(BaseModel):
    cost: Decimal
    potential_win: Decimal
    potential_loss: Decimal


class PreviewResponse(BaseModel):
    price: Decimal
    price_display: str
    total_notional: Decimal
    notional_display: str
    source: str
    exceeds_max_slippage: bool = False
    order_type: str
    expiration: int
    expires_at: datetime | None = None
    slippage: SlippageView | None = None
    eligibility: EligibilityView
    pnl: PnlView
    payload: dict[str, Any]
    typed_data: dict[str, Any]


class PlaceOrderRequest(PreviewRequest):
    """The preview request again, plus the previewed payload and the wallet signature over it."""
    payload: dict[str, Any]
    signature: str = Field(min_length=4)
    supersede: bool = False

    @field_validator("signature")
    @classmethod
    def hex_signature(cls, v: str) -> str:
        if not v.startswith("0x"):
            raise ValueError("signature must be 0x-prefixed hex")
        return v


class PlaceOrderResponse(BaseModel):
    state: str
    order_id: str | None = None
    exchange_status: str | None = None
    reason: str | None = None
    error_code: int | None = None
    status_unknown: bool = False
    abandoned: bool = False
    blocked_reasons: list[str] = []
    validation_issues: list[str] = []


class CancelOrderResponse(BaseModel):
    order_id: str
    canceled: bool
