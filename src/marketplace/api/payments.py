"""FastAPI routes for payments — request, verify and the gateway callback."""

import json

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.access import Actor
from marketplace.api.dependencies import current_actor
from marketplace.api.schemas import (
    CallbackResponse,
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    PaymentRequestBody,
    PaymentRequestResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from marketplace.config import get_settings
from marketplace.errors import Forbidden, ReplayDetected, SignatureInvalid, StaleCallback
from marketplace.gateway import get_gateway
from marketplace.gateway.fake_adapter import FakeGateway
from marketplace.payment.reconciler import PaymentReconciler
from marketplace.payment.results import FailureKind
from marketplace.throttling import get_store
from marketplace.throttling.rate_limit import FixedWindowRateLimiter

# Callback rejections answered with an error status instead of a 200 body
_CALLBACK_ERRORS = {
    FailureKind.SIGNATURE_INVALID: SignatureInvalid,
    FailureKind.STALE_CALLBACK: StaleCallback,
    FailureKind.REPLAY_DETECTED: ReplayDetected,
}


def _limit(key: str, limit: int) -> None:
    FixedWindowRateLimiter(get_store()).hit(key, limit, get_settings().rate_limit_window_seconds)


payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/request", status_code=201, response_model=PaymentRequestResponse)
def request_payment(body: PaymentRequestBody, actor: Actor = Depends(current_actor)) -> PaymentRequestResponse:
    """Open (or reopen) a gateway payment for the caller's order and return the pay link."""
    if not actor.is_customer:
        raise Forbidden("Only customers can pay for orders")
    _limit(f"payment-request:{actor.id}", get_settings().payment_request_limit)

    outcome = PaymentReconciler().request_payment(body.order_id, actor.id)
    return PaymentRequestResponse(
        payment_id=str(outcome.payment.id),
        track_id=outcome.payment.track_id,
        pay_link=outcome.pay_link,
        status=outcome.payment.status,
    )


@payment_router.post("/verify", response_model=VerifyPaymentResponse)
def verify_payment(body: VerifyPaymentRequest) -> VerifyPaymentResponse:
    _limit(f"payment-verify:{body.track_id}", get_settings().payment_verify_limit)

    payload = {"orderId": body.order_id} if body.order_id else {}
    result = PaymentReconciler().verify(body.track_id, payload)
    if result.success:
        return VerifyPaymentResponse(success=True, payment_status=result.status, already_settled=result.already_settled)
    if result.kind is FailureKind.NOT_FOUND:
        raise ObjectNotFoundError(result.reason)
    return VerifyPaymentResponse(
        success=False,
        payment_status=result.status,
        kind=result.kind.value,
        reason=result.reason,
    )


@payment_router.post("/callback", response_model=CallbackResponse)
async def payment_callback(request: Request) -> CallbackResponse:
    """Gateway server-to-server notification. The raw body is what the signature covers."""
    raw_body = (await request.body()).decode("utf-8")
    return await run_in_threadpool(_reconcile_callback, raw_body, dict(request.headers))


def _reconcile_callback(raw_body: str, headers: dict) -> CallbackResponse:
    try:
        payload = json.loads(raw_body) if raw_body else {}
    except ValueError:
        raise ValidationError({"body": ["Callback body must be JSON"]}) from None
    if not isinstance(payload, dict):
        raise ValidationError({"body": ["Callback body must be a JSON object"]})

    track_id = payload.get("trackId")
    if track_id:
        _limit(f"payment-callback:{track_id}", get_settings().payment_callback_limit)

    outcome = PaymentReconciler().handle_callback(payload, headers, raw_body)
    if outcome.success:
        return CallbackResponse(status="ok", payment_status=outcome.payment_status)

    failure = outcome.failure
    if failure.kind in _CALLBACK_ERRORS:
        raise _CALLBACK_ERRORS[failure.kind](failure.reason)
    if failure.kind is FailureKind.MALFORMED:
        raise ValidationError({"trackId": [failure.reason]})
    if failure.kind is FailureKind.NOT_FOUND:
        raise ObjectNotFoundError(failure.reason)
    return CallbackResponse(
        status="rejected",
        payment_status=outcome.payment_status,
        kind=failure.kind.value,
        reason=failure.reason,
    )


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if get_settings().is_production:
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        unreachable=body.unreachable,
        amount_override=body.amount_override,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        unreachable=gateway.unreachable,
        amount_override=gateway.amount_override,
    )
