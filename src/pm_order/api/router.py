# src/pm_order/api/router.py
"""Order endpoints: preview (unsigned payload), place (signed payload), cancel."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from config.settings import settings
from src.pm_common.datetime_utils import from_unix
from src.pm_common.errors import AppError
from src.pm_common.response import ApiResponse, success_response
from src.pm_common.ticks import notional_to_display, price_to_display
from src.pm_order.application.schemas import (
    CancelOrderResponse,
    EligibilityView,
    PlaceOrderRequest,
    PlaceOrderResponse,
    PnlView,
    PreviewRequest,
    PreviewResponse,
    SlippageView,
)
from src.pm_order.application.service import (
    TradingService,
    default_constraints,
    get_trading_service,
)
from src.pm_order.domain.payload import UnsignedOrder
from src.pm_order.domain.prepared import PreparedOrder
from src.pm_order.lifecycle.controller import LifecycleResult
from src.pm_order.pricing.price_resolver import estimate_pnl

router = APIRouter(prefix="/orders", tags=["orders"])

Service = Annotated[TradingService, Depends(get_trading_service)]


def _preview_to_response(prepared: PreparedOrder) -> PreviewResponse:
    resolved = prepared.resolved
    slip = resolved.slippage
    elig = prepared.eligibility
    pnl = estimate_pnl(resolved.price, prepared.intent.size, prepared.intent.side)
    exchange = (
        settings.NEG_RISK_EXCHANGE_ADDRESS if prepared.payload.neg_risk else settings.EXCHANGE_ADDRESS
    )
    return PreviewResponse(
        price=resolved.price,
        price_display=price_to_display(resolved.price),
        total_notional=resolved.total_notional,
        notional_display=notional_to_display(resolved.total_notional),
        source=resolved.source.value,
        exceeds_max_slippage=resolved.exceeds_max_slippage,
        order_type=prepared.execution.order_type.value,
        expiration=prepared.execution.expiration,
        expires_at=from_unix(prepared.execution.expiration),
        slippage=SlippageView(
            requested_size=slip.requested_size,
            filled_size=slip.filled_size,
            total_notional=slip.total_notional,
            can_fill=slip.can_fill,
            best_price=slip.best_price,
            worst_price=slip.worst_price,
            avg_fill_price=slip.avg_fill_price,
            slippage_percent=slip.slippage_percent,
        )
        if slip is not None
        else None,
        eligibility=EligibilityView(
            is_blocked=elig.is_blocked,
            reasons=[r.value for r in elig.reasons],
            primary_reason=elig.primary_reason.value if elig.primary_reason else None,
            primary_message=elig.primary_message,
        ),
        pnl=PnlView(cost=pnl.cost, potential_win=pnl.potential_win, potential_loss=pnl.potential_loss),
        payload=prepared.payload.to_dict(),
        typed_data=prepared.payload.typed_data(settings.CHAIN_ID, exchange),
    )


def _result_to_response(result: LifecycleResult) -> PlaceOrderResponse:
    return PlaceOrderResponse(
        state=result.state.value,
        order_id=result.order_id,
        exchange_status=result.exchange_status.value if result.exchange_status else None,
        reason=result.reason,
        error_code=result.error_code,
        status_unknown=result.status_unknown,
        abandoned=result.abandoned,
        blocked_reasons=[r.value for r in result.blocked_reasons],
        validation_issues=result.validation_issues,
    )


@router.post("/preview")
async def preview_order(body: PreviewRequest, service: Service, request: Request) -> ApiResponse:
    prepared = await service.prepare(
        body.to_intent(),
        body.address,
        body.to_constraints(default_constraints()),
        body.to_quote(),
        nonce=body.nonce,
        fee_rate_bps=body.fee_rate_bps,
    )
    return success_response(_preview_to_response(prepared).model_dump(mode="json"), request)


@router.post("")
async def place_order(body: PlaceOrderRequest, service: Service, request: Request) -> ApiResponse:
    try:
        signed_payload = UnsignedOrder.from_dict(body.payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise AppError(1001, f"Malformed order payload: {exc}", 422) from exc

    result = await service.place_presigned(
        body.to_intent(),
        body.address,
        signed_payload,
        body.signature,
        constraints=body.to_constraints(default_constraints()),
        quote=body.to_quote(),
        supersede=body.supersede,
    )
    return success_response(_result_to_response(result).model_dump(mode="json"), request)


@router.post("/{order_id}/cancel")
async def cancel_order(order_id: str, service: Service, request: Request) -> ApiResponse:
    canceled = await service.cancel(order_id)
    data = CancelOrderResponse(order_id=order_id, canceled=canceled)
    return success_response(data.model_dump(), request)
