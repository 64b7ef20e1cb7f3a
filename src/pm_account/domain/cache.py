"""Balance cache contract.

Entries are keyed by (kind, lowercase address). kind is "balance" or
"allowance:<spender>", since the regular and neg-risk exchanges hold
separate allowances. A fresh entry is younger than the TTL; a stale one is
still returned when the caller asks for it, so a failed chain read can fall
back to the last known value.

After a fill the whole address is cleared before any refetch, otherwise the
refetch would just read the pre-fill value back out of the cache.
"""
from decimal import Decimal
from typing import Protocol

BALANCE = "balance"
ALLOWANCE = "allowance"


def allowance_kind(spender: str) -> str:
    return f"{ALLOWANCE}:{spender.lower()}"


def cache_key(kind: str, address: str) -> str:
    return f"account:{kind}:{address.lower()}"


def address_suffix(address: str) -> str:
    """Every key for address ends with this."""
    return f":{address.lower()}"


class BalanceCacheProtocol(Protocol):
    async def get(self, kind: str, address: str, allow_stale: bool = False) -> Decimal | None: ...

    async def set(self, kind: str, address: str, value: Decimal) -> None: ...

    async def clear(self, address: str | None = None) -> None:
        """Drop every entry for address, or everything when address is None."""
        ...
