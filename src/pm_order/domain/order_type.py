"""Order intent → exchange order type and expiration.

- MARKET → FAK when partial fills are allowed, FOK when not
- LIMIT GTC → GTC
- LIMIT GTD → GTD, expiring at now + requested lifetime + security buffer

The exchange rejects GTD orders that expire inside its one-minute security
threshold, so the buffer keeps the order alive for the full requested time.
Every type other than GTD carries expiration 0.
"""
from dataclasses import dataclass

from config.settings import settings
from src.pm_common.enums import ClobOrderType, ExpirationPolicy
from src.pm_order.domain.models import OrderIntent


@dataclass(frozen=True)
class ExecutionSpec:
    order_type: ClobOrderType
    expiration: int  # unix seconds; 0 = none


def resolve_execution(
    intent: OrderIntent,
    now: int,
    security_buffer_seconds: int | None = None,
) -> ExecutionSpec:
    if intent.is_market:
        order_type = ClobOrderType.FAK if intent.allow_partial_fill else ClobOrderType.FOK
        return ExecutionSpec(order_type=order_type, expiration=0)

    if intent.expiration_policy == ExpirationPolicy.GTC:
        return ExecutionSpec(order_type=ClobOrderType.GTC, expiration=0)

    buffer = (
        settings.GTD_SECURITY_BUFFER_SECONDS
        if security_buffer_seconds is None
        else security_buffer_seconds
    )
    lifetime = intent.expiration_seconds or 0
    return ExecutionSpec(order_type=ClobOrderType.GTD, expiration=now + lifetime + buffer)
