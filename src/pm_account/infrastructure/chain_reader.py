"""Collateral balance and allowance readers.

JsonRpcChainReader talks to a Polygon JSON-RPC node directly (ERC-20
balanceOf / allowance through eth_call). CachedChainReader puts a balance
cache in front of any ChainReaderProtocol.
"""
import itertools
import logging
from decimal import Decimal

import httpx

from src.pm_account.domain.cache import BALANCE, BalanceCacheProtocol, allowance_kind
from src.pm_account.domain.repository import ChainReaderProtocol
from src.pm_common.errors import AppError, NetworkFailureError

logger = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)
ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)
COLLATERAL_DECIMALS = 6


def encode_address(address: str) -> str:
    """ABI-encode an address as a 32-byte word (no 0x)."""
    return address.lower().removeprefix("0x").rjust(64, "0")


class JsonRpcChainReader:
    def __init__(
        self,
        client: httpx.AsyncClient,
        rpc_url: str,
        decimals: int = COLLATERAL_DECIMALS,
    ) -> None:
        self._client = client
        self._rpc_url = rpc_url
        self._scale = Decimal(10) ** decimals
        self._ids = itertools.count(1)

    async def get_balance(self, address: str, token: str) -> Decimal:
        raw = await self._eth_call(token, BALANCE_OF_SELECTOR + encode_address(address))
        return Decimal(raw) / self._scale

    async def get_allowance(self, owner: str, spender: str, token: str) -> Decimal:
        data = ALLOWANCE_SELECTOR + encode_address(owner) + encode_address(spender)
        raw = await self._eth_call(token, data)
        return Decimal(raw) / self._scale

    async def _eth_call(self, to: str, data: str) -> int:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "eth_call",
            "params": [{"to": to, "data": data}, "latest"],
        }
        try:
            resp = await self._client.post(self._rpc_url, json=body)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise NetworkFailureError(f"eth_call to {to} failed: {exc}") from exc

        payload = resp.json()
        if payload.get("error"):
            raise NetworkFailureError(f"eth_call error: {payload['error'].get('message', payload['error'])}")
        result = payload.get("result") or "0x"
        return int(result, 16) if result != "0x" else 0


class CachedChainReader:
    """Read-through cache. On a failed read, fall back to the last known value."""

    def __init__(self, reader: ChainReaderProtocol, cache: BalanceCacheProtocol) -> None:
        self._reader = reader
        self._cache = cache

    async def get_balance(self, address: str, token: str) -> Decimal:
        cached = await self._cache.get(BALANCE, address)
        if cached is not None:
            return cached
        try:
            value = await self._reader.get_balance(address, token)
        except AppError as exc:
            return await self._stale_or_raise(BALANCE, address, exc)
        await self._cache.set(BALANCE, address, value)
        return value

    async def get_allowance(self, owner: str, spender: str, token: str) -> Decimal:
        kind = allowance_kind(spender)
        cached = await self._cache.get(kind, owner)
        if cached is not None:
            return cached
        try:
            value = await self._reader.get_allowance(owner, spender, token)
        except AppError as exc:
            return await self._stale_or_raise(kind, owner, exc)
        await self._cache.set(kind, owner, value)
        return value

    async def _stale_or_raise(self, kind: str, address: str, exc: AppError) -> Decimal:
        stale = await self._cache.get(kind, address, allow_stale=True)
        if stale is None:
            raise exc
        logger.warning("Using stale %s for %s after failed chain read", kind, address)
        return stale
