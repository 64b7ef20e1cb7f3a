"""CLOB REST adapter implementing ExchangeClientProtocol.

Error mapping:
  transport error, timeout, 5xx, 429  → NetworkFailureError (transient)
  other 4xx, or success=false body    → RejectedByExchangeError(reason)
  2xx body that is not JSON           → NetworkFailureError (outcome unknown)
  accepted without an order id        → SubmissionRejectedError
"""
import logging
from typing import Any

import httpx

from src.pm_common.enums import ClobOrderType, ExchangeOrderStatus
from src.pm_common.errors import (
    NetworkFailureError,
    RejectedByExchangeError,
    SubmissionRejectedError,
)
from src.pm_order.domain.collaborators import SubmitReceipt
from src.pm_order.domain.payload import SignedOrder

logger = logging.getLogger(__name__)

_STATUS_ALIASES = {
    "CANCELLED": ExchangeOrderStatus.CANCELED,
    "CANCELED_MARKET_RESOLVED": ExchangeOrderStatus.CANCELED,
    "INVALID": ExchangeOrderStatus.CANCELED,
}


def parse_status(raw: Any) -> ExchangeOrderStatus:
    """Exchange status strings come lowercase on submit, uppercase on lookup."""
    text = str(raw or "").strip().upper()
    if text.startswith("ORDER_STATUS_"):
        text = text.removeprefix("ORDER_STATUS_")
    if text in _STATUS_ALIASES:
        return _STATUS_ALIASES[text]
    try:
        return ExchangeOrderStatus(text)
    except ValueError:
        # Unknown strings keep the caller polling
        logger.warning("Unknown order status %r, treating as DELAYED", raw)
        return ExchangeOrderStatus.DELAYED


def _error_reason(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        for key in ("errorMsg", "error", "message"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {resp.status_code}"


class HttpExchangeClient:
    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self._base_url}{path}"
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise NetworkFailureError(f"{method} {path}: {exc}") from exc

        if resp.status_code >= 500 or resp.status_code == 429:
            raise NetworkFailureError(f"{method} {path}: HTTP {resp.status_code}")
        if resp.status_code >= 400:
            reason = _error_reason(resp)
            logger.warning("%s %s rejected (%d): %s", method, path, resp.status_code, reason)
            raise RejectedByExchangeError(reason)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise NetworkFailureError(
                f"{method} {path}: unreadable response body (HTTP {resp.status_code})"
            ) from exc

    async def submit_order(
        self, signed_order: SignedOrder, order_type: ClobOrderType
    ) -> SubmitReceipt:
        body = {
            "order": signed_order.to_wire(),
            "owner": signed_order.order.maker,
            "orderType": order_type.value,
        }
        data = await self._request("POST", "/order", json=body) or {}
        if data.get("success") is False:
            raise RejectedByExchangeError(data.get("errorMsg") or "order was not accepted")
        if not data.get("orderID"):
            raise SubmissionRejectedError("Exchange accepted the request but returned no order id")
        return SubmitReceipt(order_id=str(data["orderID"]), status=parse_status(data.get("status")))

    async def poll_order(self, order_id: str) -> ExchangeOrderStatus:
        data = await self._request("GET", f"/data/order/{order_id}") or {}
        return parse_status(data.get("status"))

    async def cancel_order(self, order_id: str) -> bool:
        data = await self._request("DELETE", "/order", json={"orderID": order_id}) or {}
        canceled = data.get("canceled") or []
        return order_id in canceled

    async def get_order_book(self, token_id: str) -> dict[str, Any]:
        """Raw book JSON; parse with parse_order_book."""
        return await self._request("GET", "/book", params={"token_id": token_id}) or {}
