"""Structural checks on an OrderIntent, run before any collaborator call.

validate_intent returns the problems as strings; the lifecycle controller
reports them without leaving IDLE. check_intent raises for callers (the HTTP
layer) that want an exception.
"""
from decimal import Decimal

from src.pm_common.enums import ExpirationPolicy, OrderTypeSelection
from src.pm_common.errors import IntentValidationError
from src.pm_order.domain.models import OrderIntent


def validate_intent(intent: OrderIntent) -> list[str]:
    issues: list[str] = []
    if not intent.token_id or not intent.token_id.strip():
        issues.append("token_id is required")
    if not intent.size.is_finite() or intent.size <= 0:
        issues.append(f"size must be positive, got {intent.size}")

    if intent.order_type == OrderTypeSelection.LIMIT:
        price = intent.limit_price
        if price is None:
            issues.append("limit orders require a limit_price")
        elif not price.is_finite() or not (Decimal(0) < price < Decimal(1)):
            issues.append(f"limit_price must be in (0, 1), got {price}")
    elif intent.expiration_policy == ExpirationPolicy.GTD:
        issues.append("market orders cannot carry an expiration")

    if intent.expiration_policy == ExpirationPolicy.GTD:
        if intent.expiration_seconds is None or intent.expiration_seconds <= 0:
            issues.append("GTD orders require a positive expiration_seconds")
    elif intent.expiration_seconds is not None:
        issues.append("expiration_seconds is only valid for GTD orders")
    return issues


def check_intent(intent: OrderIntent) -> None:
    """Raise IntentValidationError(1001) listing every problem found."""
    issues = validate_intent(intent)
    if issues:
        raise IntentValidationError(issues)
