"""Integration-test fixtures.

The API runs against a real TradingService whose outer collaborators (chain,
positions, exchange) are mocks, so no network, chain or Redis is needed.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.main import app
from src.pm_account.application.service import AccountService
from src.pm_common.enums import ExchangeOrderStatus
from src.pm_common.query_cache import QueryCache
from src.pm_market.domain.models import OrderBookLevel, OrderBookSnapshot
from src.pm_market.infrastructure.book_store import InMemoryBookFeed
from src.pm_order.application.service import TradingService, get_trading_service
from src.pm_order.domain.collaborators import SubmitReceipt

TOKEN = "12345"


@pytest.fixture
def chain() -> AsyncMock:
    reader = AsyncMock()
    reader.get_balance.return_value = Decimal("50")
    reader.get_allowance.return_value = Decimal("1000")
    return reader


@pytest.fixture
def exchange() -> AsyncMock:
    client = AsyncMock()
    client.submit_order.return_value = SubmitReceipt(
        order_id="0xorder", status=ExchangeOrderStatus.MATCHED
    )
    client.cancel_order.return_value = True
    return client


@pytest.fixture
def trading(chain: AsyncMock, exchange: AsyncMock) -> TradingService:
    feed = InMemoryBookFeed()
    feed.publish(
        OrderBookSnapshot(token_id=TOKEN, asks=(OrderBookLevel(Decimal("0.60"), Decimal("50")),))
    )
    positions = AsyncMock()
    positions.get_position_size.return_value = Decimal("0")
    accounts = AccountService(chain, positions, QueryCache(), collateral_token="0xusdc")
    return TradingService(feed, accounts, exchange)


@pytest.fixture(autouse=True)
def override_trading_service(trading: TradingService) -> None:
    app.dependency_overrides[get_trading_service] = lambda: trading
