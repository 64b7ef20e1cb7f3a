# src/pm_order/application/service.py
"""Trading application service: prepare (preview), place and cancel.

prepare() is everything up to the signature: book lookup, price resolution,
funding read, eligibility and the unsigned payload. place() hands a prepared
order to the per-address lifecycle controller.
"""
import logging
from dataclasses import replace

import httpx

from config.settings import settings
from src.pm_account.application.refresh import PostFillRefresher
from src.pm_account.application.service import AccountService
from src.pm_account.domain.cache import BalanceCacheProtocol
from src.pm_account.infrastructure.balance_cache import InMemoryBalanceCache, RedisBalanceCache
from src.pm_account.infrastructure.chain_reader import CachedChainReader, JsonRpcChainReader
from src.pm_account.infrastructure.positions_repository import HttpPositionReader
from src.pm_common.datetime_utils import unix_now
from src.pm_common.errors import IntentValidationError, PreparedOrderMismatchError
from src.pm_common.query_cache import QueryCache
from src.pm_common.redis_client import get_redis
from src.pm_common.ticks import validate_tick_size
from src.pm_market.domain.models import MarketConstraints, OutcomeQuote
from src.pm_market.domain.repository import BookFeedProtocol
from src.pm_market.infrastructure.book_store import InMemoryBookFeed
from src.pm_order.domain.collaborators import ExchangeClientProtocol, SignerProtocol
from src.pm_order.domain.models import OrderIntent
from src.pm_order.domain.order_type import resolve_execution
from src.pm_order.domain.payload import UnsignedOrder, build_order_payload
from src.pm_order.domain.prepared import PreparedOrder
from src.pm_order.domain.validation import check_intent
from src.pm_order.infrastructure.http_exchange import HttpExchangeClient
from src.pm_order.lifecycle.controller import LifecycleResult, OrderLifecycleController
from src.pm_order.pricing.price_resolver import PricingPolicy, resolve_price
from src.pm_risk.domain.models import EligibilitySnapshot
from src.pm_risk.gate import evaluate_eligibility

logger = logging.getLogger(__name__)

# Fields the signature covers that must agree with a fresh preparation.
_BOUND_FIELDS = ("token_id", "side", "maker", "signer", "maker_amount", "taker_amount", "neg_risk")


def default_constraints() -> MarketConstraints:
    return MarketConstraints(
        tick_size=settings.DEFAULT_TICK_SIZE,
        min_order_size=settings.DEFAULT_MIN_ORDER_SIZE,
        min_notional=settings.MIN_MARKETABLE_BUY_NOTIONAL,
    )


class PresignedSigner:
    """Signer for a signature the client produced over a previewed payload."""

    def __init__(self, salt: str, signature: str) -> None:
        self._salt = salt
        self._signature = signature

    async def sign(self, payload: UnsignedOrder) -> str:
        if payload.salt != self._salt:
            raise PreparedOrderMismatchError("salt differs from the signed payload")
        return self._signature


class TradingService:
    def __init__(
        self,
        book_feed: BookFeedProtocol,
        accounts: AccountService,
        exchange: ExchangeClientProtocol,
        refresher: PostFillRefresher | None = None,
        policy: PricingPolicy | None = None,
    ) -> None:
        self.book_feed = book_feed
        self.accounts = accounts
        self.exchange = exchange
        self.refresher = refresher
        self.policy = policy or PricingPolicy()
        self._controllers: dict[str, OrderLifecycleController] = {}

    def controller_for(self, address: str) -> OrderLifecycleController:
        """One controller per address while it has an attempt in flight."""
        key = address.lower()
        controller = self._controllers.get(key)
        if controller is None:
            controller = OrderLifecycleController(self.exchange, self.refresher)
            self._controllers[key] = controller
        return controller

    async def prepare(
        self,
        intent: OrderIntent,
        address: str,
        constraints: MarketConstraints | None = None,
        quote: OutcomeQuote | None = None,
        nonce: int = 0,
        fee_rate_bps: int = 0,
        salt: str | None = None,
    ) -> PreparedOrder:
        """Raises IntentValidationError / InvalidTickSizeError. A blocked
        order is still prepared; the result carries the eligibility.
        """
        constraints = constraints or default_constraints()
        validate_tick_size(constraints.tick_size)
        check_intent(intent)

        book = await self.book_feed.get_snapshot(intent.token_id)
        try:
            resolved = resolve_price(intent, constraints, quote, book, self.policy)
        except ValueError as exc:
            raise IntentValidationError([str(exc)]) from exc

        funding = await self.accounts.load_funding(address, intent.token_id, constraints.neg_risk)
        snapshot = EligibilitySnapshot(
            collateral_balance=funding.balance,
            spender_allowance=funding.allowance,
            required_notional=resolved.total_notional,
            min_notional=constraints.min_notional,
            min_size=constraints.min_shares,
            max_sell_size=funding.position_size,
        )
        eligibility = evaluate_eligibility(
            snapshot,
            intent,
            price=resolved.price,
            slippage=resolved.slippage,
            best_ask=book.best_ask if book is not None else None,
        )
        if eligibility.is_blocked:
            logger.info(
                "Order for %s on %s blocked: %s",
                address, intent.token_id, [r.value for r in eligibility.reasons],
            )

        execution = resolve_execution(intent, unix_now())
        payload = build_order_payload(
            token_id=intent.token_id,
            side=intent.side,
            price=resolved.price,
            size=intent.size,
            maker=address,
            expiration=execution.expiration,
            nonce=nonce,
            fee_rate_bps=fee_rate_bps,
            neg_risk=constraints.neg_risk,
            salt=salt,
        )
        return PreparedOrder(
            intent=intent,
            resolved=resolved,
            execution=execution,
            payload=payload,
            eligibility=eligibility,
        )

    async def place(
        self,
        prepared: PreparedOrder,
        signer: SignerProtocol,
        supersede: bool = False,
    ) -> LifecycleResult:
        key = prepared.address.lower()
        controller = self.controller_for(key)
        try:
            return await controller.submit(prepared, signer, supersede=supersede)
        finally:
            # drop once idle
            if not controller.in_flight and self._controllers.get(key) is controller:
                del self._controllers[key]

    async def place_presigned(
        self,
        intent: OrderIntent,
        address: str,
        signed_payload: UnsignedOrder,
        signature: str,
        constraints: MarketConstraints | None = None,
        quote: OutcomeQuote | None = None,
        supersede: bool = False,
    ) -> LifecycleResult:
        """Place a payload the client already signed.

        The order is prepared again so eligibility reflects current funding;
        the signed payload must still match what that preparation produces.
        """
        fresh = await self.prepare(
            intent,
            address,
            constraints,
            quote,
            nonce=signed_payload.nonce,
            fee_rate_bps=signed_payload.fee_rate_bps,
            salt=signed_payload.salt,
        )
        for name in _BOUND_FIELDS:
            expected, got = getattr(fresh.payload, name), getattr(signed_payload, name)
            if isinstance(expected, str) and isinstance(got, str):
                expected, got = expected.lower(), got.lower()
            if expected != got:
                raise PreparedOrderMismatchError(f"{name} is {got}, expected {expected}")
        if (signed_payload.expiration == 0) != (fresh.payload.expiration == 0):
            raise PreparedOrderMismatchError("expiration does not match the order type")

        prepared = replace(fresh, payload=signed_payload)
        return await self.place(
            prepared, PresignedSigner(signed_payload.salt, signature), supersede=supersede
        )

    async def cancel(self, order_id: str) -> bool:
        return await self.exchange.cancel_order(order_id)


# ---------------------------------------------------------------------------
# Module-level singleton wired from settings
# ---------------------------------------------------------------------------

_service: TradingService | None = None
_http: httpx.AsyncClient | None = None


def _balance_cache() -> BalanceCacheProtocol:
    if settings.BALANCE_CACHE_BACKEND == "redis":
        return RedisBalanceCache(get_redis(), settings.BALANCE_CACHE_TTL_SECONDS)
    return InMemoryBalanceCache(settings.BALANCE_CACHE_TTL_SECONDS)


async def get_trading_service() -> TradingService:
    global _service, _http
    if _service is None:
        _http = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
        exchange = HttpExchangeClient(_http, settings.CLOB_API_URL)
        balance_cache = _balance_cache()
        query_cache = QueryCache()
        accounts = AccountService(
            chain_reader=CachedChainReader(
                JsonRpcChainReader(_http, settings.POLYGON_RPC_URL), balance_cache
            ),
            position_reader=HttpPositionReader(_http, settings.DATA_API_URL),
            query_cache=query_cache,
        )
        _service = TradingService(
            book_feed=InMemoryBookFeed(loader=exchange.get_order_book),
            accounts=accounts,
            exchange=exchange,
            refresher=PostFillRefresher(query_cache, balance_cache),
        )
    return _service


async def close_trading_service() -> None:
    global _service, _http
    if _service is not None and _service.refresher is not None:
        await _service.refresher.drain()
    if _http is not None:
        await _http.aclose()
    _service = None
    _http = None
