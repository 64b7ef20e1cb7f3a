"""Global enums. Values match the exchange's wire strings where one exists."""

from enum import Enum


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderTypeSelection(str, Enum):
    """What the user asked for; the exchange itself only knows limit orders."""
    LIMIT = "LIMIT"
    MARKET = "MARKET"


class ExpirationPolicy(str, Enum):
    GTC = "GTC"
    GTD = "GTD"


class ClobOrderType(str, Enum):
    GTC = "GTC"  # rests until cancelled
    GTD = "GTD"  # rests until expiration
    FOK = "FOK"  # fill entirely now or cancel
    FAK = "FAK"  # fill what is available now, cancel the rest

    @property
    def rests_on_book(self) -> bool:
        return self in (ClobOrderType.GTC, ClobOrderType.GTD)


class ExchangeOrderStatus(str, Enum):
    LIVE = "LIVE"
    MATCHED = "MATCHED"
    DELAYED = "DELAYED"
    UNMATCHED = "UNMATCHED"
    CANCELED = "CANCELED"


class OrderLifecycleState(str, Enum):
    IDLE = "IDLE"
    SIGNING = "SIGNING"
    SUBMITTING = "SUBMITTING"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


class PriceSource(str, Enum):
    LIMIT = "LIMIT"
    BOOK_DEPTH = "BOOK_DEPTH"
    REFERENCE_QUOTE = "REFERENCE_QUOTE"


class BlockReason(str, Enum):
    """Eligibility gate conditions, declared in display priority order."""
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INSUFFICIENT_ALLOWANCE = "INSUFFICIENT_ALLOWANCE"
    NO_ALLOWANCE = "NO_ALLOWANCE"
    BELOW_MIN_NOTIONAL = "BELOW_MIN_NOTIONAL"
    BELOW_MIN_SIZE = "BELOW_MIN_SIZE"
    EXCEEDS_POSITION = "EXCEEDS_POSITION"
    CANNOT_FULLY_FILL = "CANNOT_FULLY_FILL"


class SignatureType(int, Enum):
    EOA = 0
    POLY_PROXY = 1
    POLY_GNOSIS_SAFE = 2
