# src/pm_account/application/service.py
"""Funding reads for the trading address, routed through the query cache.

Query keys (all addresses lowercased):
  ("usdcBalance", address)
  ("usdcAllowance", address, spender)
  ("userPositions", address, token_id)
  ("openOrders", address)           (registered by whoever lists open orders)
"""
import asyncio
import logging
from decimal import Decimal

from config.settings import settings
from src.pm_account.domain.models import FundingState
from src.pm_account.domain.repository import ChainReaderProtocol, PositionReaderProtocol
from src.pm_common.query_cache import QueryCache

logger = logging.getLogger(__name__)

BALANCE_QUERY = "usdcBalance"
ALLOWANCE_QUERY = "usdcAllowance"
POSITIONS_QUERY = "userPositions"
OPEN_ORDERS_QUERY = "openOrders"


def spender_for(neg_risk: bool) -> str:
    return settings.NEG_RISK_EXCHANGE_ADDRESS if neg_risk else settings.EXCHANGE_ADDRESS


class AccountService:
    def __init__(
        self,
        chain_reader: ChainReaderProtocol,
        position_reader: PositionReaderProtocol,
        query_cache: QueryCache,
        collateral_token: str | None = None,
    ) -> None:
        self._chain = chain_reader
        self._positions = position_reader
        self.query_cache = query_cache
        self._token = collateral_token or settings.COLLATERAL_TOKEN_ADDRESS

    def register_queries(
        self, address: str, token_id: str, neg_risk: bool = False
    ) -> tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]:
        addr = address.lower()
        spender = spender_for(neg_risk)
        balance_key = (BALANCE_QUERY, addr)
        allowance_key = (ALLOWANCE_QUERY, addr, spender.lower())
        position_key = (POSITIONS_QUERY, addr, token_id)

        self.query_cache.register(balance_key, lambda: self._chain.get_balance(addr, self._token))
        self.query_cache.register(
            allowance_key, lambda: self._chain.get_allowance(addr, spender, self._token)
        )
        self.query_cache.register(
            position_key, lambda: self._positions.get_position_size(addr, token_id)
        )
        return balance_key, allowance_key, position_key

    async def load_funding(
        self, address: str, token_id: str, neg_risk: bool = False
    ) -> FundingState:
        """Balance/allowance that can't be read come back None (unknown, not zero);
        an unreadable position counts as no position.
        """
        keys = self.register_queries(address, token_id, neg_risk)
        balance, allowance, position = await asyncio.gather(
            *(self.query_cache.get(k) for k in keys), return_exceptions=True
        )
        if isinstance(balance, BaseException):
            logger.warning("Balance read for %s failed: %s", address, balance)
            balance = None
        if isinstance(allowance, BaseException):
            logger.warning("Allowance read for %s failed: %s", address, allowance)
            allowance = None
        if isinstance(position, BaseException):
            logger.warning("Position read for %s/%s failed: %s", address, token_id, position)
            position = Decimal(0)
        return FundingState(
            address=address,
            balance=balance,
            allowance=allowance,
            position_size=position,
        )
