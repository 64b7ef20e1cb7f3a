"""Spender allowance rules. An allowance that has not been read yet never blocks."""
from decimal import Decimal


def is_insufficient_allowance(required_notional: Decimal, allowance: Decimal | None) -> bool:
    return allowance is not None and required_notional > allowance


def has_no_allowance(allowance: Decimal | None) -> bool:
    return allowance is not None and allowance == 0
