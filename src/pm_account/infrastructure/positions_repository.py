# src/pm_account/infrastructure/positions_repository.py
"""Read-only position lookups against the public data API."""
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from src.pm_common.errors import NetworkFailureError


class HttpPositionReader:
    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def list_positions(self, address: str) -> list[dict[str, Any]]:
        try:
            resp = await self._client.get(
                f"{self._base_url}/positions", params={"user": address}
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise NetworkFailureError(f"positions for {address}: {exc}") from exc
        body = resp.json()
        # The API has answered both a bare list and {"positions": [...]}
        if isinstance(body, dict):
            body = body.get("positions") or []
        return [p for p in body if isinstance(p, dict)]

    async def get_position_size(self, address: str, token_id: str) -> Decimal:
        for position in await self.list_positions(address):
            if str(position.get("asset")) == token_id:
                return _to_size(position.get("size"))
        return Decimal(0)


def _to_size(raw: Any) -> Decimal:
    try:
        size = Decimal(str(raw))
    except InvalidOperation:
        return Decimal(0)
    return size if size.is_finite() and size > 0 else Decimal(0)
