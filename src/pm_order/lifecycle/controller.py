# src/pm_order/lifecycle/controller.py
"""Order Lifecycle Controller: drives one prepared order to a terminal state.

    IDLE → SIGNING → SUBMITTING → PENDING → CONFIRMED
                                          ↘ FAILED   (from any step)

Invalid intents and blocked eligibility are returned without leaving IDLE.
Only one attempt is in flight per controller. Nothing is retried here; a
retry is a new submit() with a new PreparedOrder.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from config.settings import settings
from src.pm_account.application.refresh import PostFillRefresher
from src.pm_common.enums import (
    BlockReason,
    ClobOrderType,
    ExchangeOrderStatus,
    OrderLifecycleState,
)
from src.pm_common.errors import (
    AppError,
    ConfirmationTimeoutError,
    EligibilityBlockedError,
    IntentValidationError,
    InternalError,
    LifecycleBusyError,
)
from src.pm_order.domain.collaborators import ExchangeClientProtocol, SignerProtocol
from src.pm_order.domain.payload import SignedOrder
from src.pm_order.domain.prepared import PreparedOrder
from src.pm_order.domain.validation import validate_intent

logger = logging.getLogger(__name__)

_FAILED_STATUSES = frozenset({ExchangeOrderStatus.UNMATCHED, ExchangeOrderStatus.CANCELED})


def classify_status(
    status: ExchangeOrderStatus, order_type: ClobOrderType
) -> OrderLifecycleState | None:
    """CONFIRMED / FAILED for terminal statuses, None to keep polling."""
    if status == ExchangeOrderStatus.MATCHED:
        return OrderLifecycleState.CONFIRMED
    if status == ExchangeOrderStatus.LIVE and order_type.rests_on_book:
        return OrderLifecycleState.CONFIRMED
    if status in _FAILED_STATUSES:
        return OrderLifecycleState.FAILED
    return None


@dataclass
class LifecycleResult:
    state: OrderLifecycleState
    order_id: str | None = None
    exchange_status: ExchangeOrderStatus | None = None
    reason: str | None = None
    error_code: int | None = None
    status_unknown: bool = False
    abandoned: bool = False
    blocked_reasons: list[BlockReason] = field(default_factory=list)
    validation_issues: list[str] = field(default_factory=list)

    @property
    def confirmed(self) -> bool:
        return self.state == OrderLifecycleState.CONFIRMED


class _Attempt:
    def __init__(self) -> None:
        self.order_id: str | None = None
        self.abandoned = asyncio.Event()


class _Abandoned(Exception):
    pass


class OrderLifecycleController:
    def __init__(
        self,
        exchange: ExchangeClientProtocol,
        refresher: PostFillRefresher | None = None,
        max_attempts: int | None = None,
        poll_interval: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._exchange = exchange
        self._refresher = refresher
        self._max_attempts = (
            settings.CONFIRM_POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        )
        self._interval = (
            settings.CONFIRM_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        )
        self._sleep = sleep
        self._state = OrderLifecycleState.IDLE
        self._attempt: _Attempt | None = None
        self.history: list[OrderLifecycleState] = [OrderLifecycleState.IDLE]

    @property
    def state(self) -> OrderLifecycleState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._attempt is not None

    async def submit(
        self,
        prepared: PreparedOrder,
        signer: SignerProtocol,
        supersede: bool = False,
    ) -> LifecycleResult:
        if self._attempt is not None:
            if not supersede:
                raise LifecycleBusyError()
            self.abandon()
        self._state = OrderLifecycleState.IDLE
        self.history = [OrderLifecycleState.IDLE]

        issues = validate_intent(prepared.intent)
        if issues:
            return LifecycleResult(
                state=OrderLifecycleState.IDLE,
                reason=IntentValidationError(issues).message,
                error_code=1001,
                validation_issues=issues,
            )
        if prepared.eligibility.is_blocked:
            reasons = prepared.eligibility.reasons
            return LifecycleResult(
                state=OrderLifecycleState.IDLE,
                reason=prepared.eligibility.primary_message
                or EligibilityBlockedError([r.value for r in reasons]).message,
                error_code=2001,
                blocked_reasons=reasons,
            )

        attempt = _Attempt()
        self._attempt = attempt
        try:
            return await self._run(attempt, prepared, signer)
        except _Abandoned:
            logger.info("Order attempt abandoned (order_id=%s)", attempt.order_id)
            return LifecycleResult(
                state=OrderLifecycleState.IDLE,
                order_id=attempt.order_id,
                reason="Abandoned; the order may still be live on the exchange"
                if attempt.order_id
                else "Abandoned before submission",
                abandoned=True,
            )
        finally:
            if self._attempt is attempt:
                self._attempt = None

    def abandon(self) -> str | None:
        """Stop waiting on the current attempt and return to IDLE.

        Returns the remote order id when the order had already been submitted;
        that order may still be live and is not cancelled here.
        """
        attempt = self._attempt
        if attempt is None:
            return None
        attempt.abandoned.set()
        self._attempt = None
        self._state = OrderLifecycleState.IDLE
        return attempt.order_id

    def reset(self) -> None:
        if self._attempt is not None:
            raise LifecycleBusyError()
        self._state = OrderLifecycleState.IDLE
        self.history = [OrderLifecycleState.IDLE]

    async def cancel_remote(self, order_id: str) -> bool:
        return await self._exchange.cancel_order(order_id)

    def _enter(self, attempt: _Attempt, state: OrderLifecycleState) -> None:
        if attempt.abandoned.is_set():
            raise _Abandoned()
        logger.info("Order lifecycle %s → %s", self._state.value, state.value)
        self._state = state
        self.history.append(state)

    def _fail(self, attempt: _Attempt, exc: Exception, **extra) -> LifecycleResult:
        if not isinstance(exc, AppError):
            logger.exception("Order attempt failed unexpectedly")
            exc = InternalError("Unexpected error during order submission")
        else:
            logger.warning("Order attempt failed (%d): %s", exc.code, exc.message)
        code, reason = exc.code, exc.message
        self._enter(attempt, OrderLifecycleState.FAILED)
        return LifecycleResult(
            state=OrderLifecycleState.FAILED,
            order_id=attempt.order_id,
            reason=reason,
            error_code=code,
            **extra,
        )

    async def _run(
        self, attempt: _Attempt, prepared: PreparedOrder, signer: SignerProtocol
    ) -> LifecycleResult:
        order_type = prepared.execution.order_type

        self._enter(attempt, OrderLifecycleState.SIGNING)
        try:
            signature = await signer.sign(prepared.payload)
        except Exception as exc:
            return self._fail(attempt, exc)

        self._enter(attempt, OrderLifecycleState.SUBMITTING)
        try:
            receipt = await self._exchange.submit_order(
                SignedOrder(order=prepared.payload, signature=signature), order_type
            )
        except Exception as exc:
            return self._fail(attempt, exc)
        attempt.order_id = receipt.order_id

        self._enter(attempt, OrderLifecycleState.PENDING)
        status = receipt.status
        outcome = classify_status(status, order_type)
        polls = 0
        while outcome is None and polls < self._max_attempts:
            await self._sleep(self._interval)
            if attempt.abandoned.is_set():
                raise _Abandoned()
            polls += 1
            try:
                status = await self._exchange.poll_order(receipt.order_id)
            except Exception as exc:
                return self._fail(attempt, exc, exchange_status=status, status_unknown=True)
            outcome = classify_status(status, order_type)

        if outcome is None:
            return self._fail(
                attempt,
                ConfirmationTimeoutError(receipt.order_id, polls),
                exchange_status=status,
                status_unknown=True,
            )

        self._enter(attempt, outcome)
        if outcome == OrderLifecycleState.FAILED:
            return LifecycleResult(
                state=outcome,
                order_id=receipt.order_id,
                exchange_status=status,
                reason=f"Order {status.value.lower()} by exchange",
            )

        if self._refresher is not None:
            self._refresher.schedule(prepared.address)
        return LifecycleResult(state=outcome, order_id=receipt.order_id, exchange_status=status)
