# src/pm_account/domain/repository.py
"""Chain and position reader Protocols consumed by AccountService."""
from decimal import Decimal
from typing import Protocol


class ChainReaderProtocol(Protocol):
    async def get_balance(self, address: str, token: str) -> Decimal: ...

    async def get_allowance(self, owner: str, spender: str, token: str) -> Decimal: ...


class PositionReaderProtocol(Protocol):
    async def get_position_size(self, address: str, token_id: str) -> Decimal:
        """Shares of token_id held by address; 0 when there is no position."""
        ...
