"""Eligibility gate inputs and outputs. Plain values, recomputed on every change."""
from dataclasses import dataclass, field
from decimal import Decimal

from src.pm_common.enums import BlockReason

# Display priority: balance > allowance > minimums > position size > fill feasibility
REASON_PRIORITY: tuple[BlockReason, ...] = tuple(BlockReason)


@dataclass(frozen=True)
class EligibilitySnapshot:
    collateral_balance: Decimal | None  # None = not loaded yet
    spender_allowance: Decimal | None  # None = not loaded yet
    required_notional: Decimal
    min_notional: Decimal
    min_size: Decimal
    max_sell_size: Decimal


@dataclass(frozen=True)
class EligibilityResult:
    insufficient_balance: bool = False
    insufficient_allowance: bool = False
    no_allowance: bool = False
    below_min_notional: bool = False
    below_min_size: bool = False
    exceeds_position: bool = False
    cannot_fully_fill: bool = False
    messages: dict[BlockReason, str] = field(default_factory=dict)

    @property
    def reasons(self) -> list[BlockReason]:
        """Every active condition, highest display priority first."""
        flags = {
            BlockReason.INSUFFICIENT_BALANCE: self.insufficient_balance,
            BlockReason.INSUFFICIENT_ALLOWANCE: self.insufficient_allowance,
            BlockReason.NO_ALLOWANCE: self.no_allowance,
            BlockReason.BELOW_MIN_NOTIONAL: self.below_min_notional,
            BlockReason.BELOW_MIN_SIZE: self.below_min_size,
            BlockReason.EXCEEDS_POSITION: self.exceeds_position,
            BlockReason.CANNOT_FULLY_FILL: self.cannot_fully_fill,
        }
        return [r for r in REASON_PRIORITY if flags[r]]

    @property
    def is_blocked(self) -> bool:
        return bool(self.reasons)

    @property
    def primary_reason(self) -> BlockReason | None:
        reasons = self.reasons
        return reasons[0] if reasons else None

    @property
    def primary_message(self) -> str | None:
        reason = self.primary_reason
        return self.messages.get(reason) if reason else None
