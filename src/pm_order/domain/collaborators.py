# src/pm_order/domain/collaborators.py
"""Signer and exchange Protocols: all the lifecycle controller sees of the outside."""
from dataclasses import dataclass
from typing import Protocol

from src.pm_common.enums import ClobOrderType, ExchangeOrderStatus
from src.pm_order.domain.payload import SignedOrder, UnsignedOrder


@dataclass(frozen=True)
class SubmitReceipt:
    order_id: str
    status: ExchangeOrderStatus


class SignerProtocol(Protocol):
    async def sign(self, payload: UnsignedOrder) -> str:
        """Signature over payload.

        Raises UserRejectedError or ProviderUnavailableError.
        """
        ...


class ExchangeClientProtocol(Protocol):
    async def submit_order(
        self, signed_order: SignedOrder, order_type: ClobOrderType
    ) -> SubmitReceipt:
        """Raises RejectedByExchangeError or NetworkFailureError."""
        ...

    async def poll_order(self, order_id: str) -> ExchangeOrderStatus: ...

    async def cancel_order(self, order_id: str) -> bool: ...
