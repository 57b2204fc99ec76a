"""Payment reconciler — request, verify and callback against the gateway.

All three entry points share one reconciliation core. Gateway calls never
happen inside a unit of work; the resulting state change (payment, order
payment status, history note, attempt ledger) is then written in a single
one. Notifications and audit events follow the commit.

Idempotency: a PAID payment is terminal and a FAILED one stays failed until
a new request cycle. Verifying either returns immediately without another
gateway call, which is also how concurrent verify / callback races settle:
whichever commits first wins, the other observes the terminal state.
"""

import json
from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.audit import record_safely
from marketplace.config import get_settings
from marketplace.errors import ExternalGatewayError, ReplayDetected, SignatureInvalid, StaleCallback
from marketplace.gateway import get_gateway
from marketplace.gateway.port import GatewayUnavailable, GatewayVerifyResult, PaymentGateway
from marketplace.notification.orchestrator import NotificationOrchestrator, get_orchestrator
from marketplace.order.lifecycle import OrderLifecycle
from marketplace.order.order import Order, OrderStatus, PaymentStatus
from marketplace.payment.payment import AttemptKind, Payment
from marketplace.payment.results import CallbackOutcome, Failure, FailureKind, PaymentRequestOutcome, Success
from marketplace.payment.signature import CallbackAuthenticator, ReplayGuard
from marketplace.throttling import get_store
from marketplace.throttling.store import ExpiringStore

logger = structlog.get_logger(__name__)

_TRUTHY_FLAGS = {"1", "true", "yes", "ok", "success"}


def _callback_succeeded(payload: dict) -> bool:
    """Zibal sends ``success=1``; some integrations send ``result=100`` instead."""
    flag = payload.get("success")
    if flag is not None:
        if isinstance(flag, bool):
            return flag
        return str(flag).strip().lower() in _TRUTHY_FLAGS
    result = payload.get("result")
    return result is not None and str(result) == "100"


def _as_amount(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(str(value))
    except ValueError:
        return None


class PaymentReconciler:
    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        store: ExpiringStore | None = None,
        orchestrator: NotificationOrchestrator | None = None,
        clock=None,
    ):
        self._gateway = gateway
        self._store = store
        self._orchestrator = orchestrator
        self._clock = clock

    @property
    def gateway(self) -> PaymentGateway:
        return self._gateway or get_gateway()

    @property
    def orchestrator(self) -> NotificationOrchestrator:
        return self._orchestrator or get_orchestrator()

    def _authenticator(self) -> CallbackAuthenticator:
        settings = get_settings()
        kwargs = {"clock": self._clock} if self._clock else {}
        return CallbackAuthenticator(
            secret=settings.callback_secret,
            production=settings.is_production,
            max_skew_seconds=settings.callback_max_skew_seconds,
            **kwargs,
        )

    def _replay_guard(self) -> ReplayGuard:
        return ReplayGuard(self._store or get_store(), ttl_seconds=get_settings().callback_replay_ttl_seconds)

    # -------------------------------------------------------------------
    # Request
    # -------------------------------------------------------------------
    def request_payment(self, order_id, user_id) -> PaymentRequestOutcome:
        order_repo = current_domain.repository_for(Order)
        payment_repo = current_domain.repository_for(Payment)

        order = order_repo.get(order_id)
        if str(order.customer_id) != str(user_id):
            # Someone else's order looks exactly like a missing one
            raise ObjectNotFoundError(f"Order {order_id} not found")
        if order.payment_status == PaymentStatus.NONE.value:
            raise ValidationError({"order": ["This order is paid on delivery and needs no online payment"]})
        if order.payment_status == PaymentStatus.PAID.value:
            raise ValidationError({"order": ["Order is already paid"]})
        if order.status != OrderStatus.PLACED.value:
            raise ValidationError({"order": [f"Payment can only be requested for placed orders, not {order.status}"]})

        gateway = self.gateway
        settings = get_settings()
        try:
            result = gateway.request(order.total, str(order.id), settings.zibal_callback_url)
            failure_reason = None
            if not result.success:
                failure_reason = result.message or f"Gateway rejected request ({result.result_code})"
            raw = result.raw
        except GatewayUnavailable as exc:
            result = None
            failure_reason = f"Gateway unreachable: {exc}"
            raw = {"error": str(exc)}

        with UnitOfWork():
            order = order_repo.get(order_id)
            payment = payment_repo.find_by_order(order.id)
            if payment is None:
                payment = Payment.open(
                    order_id=str(order.id), user_id=str(user_id), amount=order.total, provider=gateway.name
                )
            else:
                payment.restart(amount=order.total, provider=gateway.name)

            request_id = uuid4().hex
            if failure_reason is None:
                payment.mark_requested(result.track_id, result.pay_link)
                order.set_payment_status(PaymentStatus.PENDING)
            else:
                # Keep a traceable id even when the gateway issued none
                fallback_id = f"{int(datetime.now(UTC).timestamp() * 1000)}-{str(order.id)[:6]}"
                payment.track_id = payment.track_id or fallback_id
                payment.mark_failed(failure_reason)
                order.fail_payment()
            payment.record_attempt(AttemptKind.REQUEST, raw, request_id=request_id)

            payment_repo.add(payment)
            order_repo.add(order)

        audit = {
            "order_id": str(order.id),
            "user_id": str(user_id),
            "vendor_id": str(order.vendor_id),
            "payment_id": str(payment.id),
            "track_id": payment.track_id,
            "amount": payment.amount,
        }
        if failure_reason is not None:
            logger.warning("Payment request failed", reason=failure_reason, **audit)
            record_safely("payment_failed", {**audit, "stage": "request", "reason": failure_reason})
            self.orchestrator.on_payment_failed(order, reason=failure_reason)
            raise ExternalGatewayError(failure_reason, order_id=str(order.id), retryable=True)

        logger.info("Payment requested", **audit)
        record_safely("payment_requested", audit)
        return PaymentRequestOutcome(payment=payment, pay_link=payment.pay_link)

    # -------------------------------------------------------------------
    # Verify
    # -------------------------------------------------------------------
    def verify(self, track_id, payload: dict | None = None, headers: dict | None = None):
        """Ask the gateway whether ``track_id`` is paid and settle the payment accordingly."""
        payload = payload or {}
        payment = current_domain.repository_for(Payment).find_by_track_id(track_id) if track_id else None
        if payment is None:
            return Failure(FailureKind.NOT_FOUND, f"No payment for track id {track_id}")

        if payment.is_paid:
            return Success(payment=payment, already_settled=True)
        if payment.is_failed:
            return Failure(FailureKind.ALREADY_FAILED, payment.failure_reason or "Payment already failed", payment)

        return self._verify_with_gateway(payment, payload.get("orderId"), AttemptKind.VERIFY)

    def _verify_with_gateway(self, payment: Payment, expected_order_id, attempt_kind: AttemptKind):
        try:
            result = self.gateway.verify(payment.track_id)
            raw = result.raw
        except GatewayUnavailable as exc:
            result = None
            raw = {"error": str(exc)}

        kind, reason = self._judge(payment, result, expected_order_id)
        if kind is None:
            return self._settle_paid(payment, result, raw, attempt_kind)
        return self._settle_failed(payment, kind, reason, raw, attempt_kind)

    @staticmethod
    def _judge(payment: Payment, result: GatewayVerifyResult | None, expected_order_id):
        """Return ``(None, None)`` when all success conditions hold, else the failure."""
        if result is None:
            return FailureKind.GATEWAY_UNAVAILABLE, "Gateway unreachable during verification"
        if not result.success:
            return FailureKind.GATEWAY_REJECTED, result.message or f"Gateway result {result.result_code}"
        if result.amount != payment.amount:
            return FailureKind.AMOUNT_MISMATCH, f"Gateway reported {result.amount}, expected {payment.amount}"
        if expected_order_id and str(expected_order_id) != str(payment.order_id):
            return FailureKind.ORDER_MISMATCH, "Order correlation does not match the payment"
        return None, None

    def _settle_paid(self, payment: Payment, result: GatewayVerifyResult, raw: dict, attempt_kind: AttemptKind):
        payment_repo = current_domain.repository_for(Payment)
        order_repo = current_domain.repository_for(Order)

        with UnitOfWork():
            payment = payment_repo.get(payment.id)
            if payment.is_paid:
                return Success(payment=payment, already_settled=True)
            order = order_repo.get(payment.order_id)

            payment.mark_paid(ref_number=result.ref_number)
            payment.record_attempt(attempt_kind, raw, amount=result.amount)
            OrderLifecycle.record_payment_confirmed(order)

            payment_repo.add(payment)
            order_repo.add(order)

        audit = {
            "order_id": str(order.id),
            "user_id": str(payment.user_id),
            "vendor_id": str(order.vendor_id),
            "payment_id": str(payment.id),
            "track_id": payment.track_id,
            "amount": payment.amount,
            "ref_number": payment.ref_number,
        }
        logger.info("Payment verified", **audit)
        record_safely("payment_verified", audit)
        record_safely("payment_paid", audit)
        self.orchestrator.on_payment_success(order, payment)
        return Success(payment=payment)

    def _settle_failed(self, payment: Payment, kind: FailureKind, reason: str, raw: dict, attempt_kind: AttemptKind):
        payment_repo = current_domain.repository_for(Payment)
        order_repo = current_domain.repository_for(Order)

        with UnitOfWork():
            payment = payment_repo.get(payment.id)
            if payment.is_paid:
                # A concurrent verify won; never downgrade a settled payment
                return Success(payment=payment, already_settled=True)
            order = order_repo.get(payment.order_id)

            if not payment.is_failed:
                payment.mark_failed(reason)
            payment.record_attempt(attempt_kind, raw)
            order.fail_payment()

            payment_repo.add(payment)
            order_repo.add(order)

        logger.warning(
            "Payment verification failed",
            order_id=str(order.id),
            payment_id=str(payment.id),
            track_id=payment.track_id,
            kind=kind.value,
            reason=reason,
        )
        record_safely(
            "payment_failed",
            {
                "order_id": str(order.id),
                "user_id": str(payment.user_id),
                "vendor_id": str(order.vendor_id),
                "payment_id": str(payment.id),
                "track_id": payment.track_id,
                "kind": kind.value,
                "reason": reason,
            },
        )
        self.orchestrator.on_payment_failed(order, reason=reason)
        return Failure(kind, reason, payment)

    # -------------------------------------------------------------------
    # Callback
    # -------------------------------------------------------------------
    def handle_callback(self, payload: dict, headers: dict | None = None, raw_body: str | bytes | None = None):
        """Authenticate a gateway callback, then settle through the verify core.

        Rejections come back inside the CallbackOutcome; they are never raised.
        """
        return CallbackOutcome.from_result(self._reconcile_callback(payload, headers, raw_body))

    def _reconcile_callback(self, payload, headers, raw_body):
        payload = payload or {}
        headers = headers or {}
        if raw_body is None:
            raw_body = json.dumps(payload, separators=(",", ":"), sort_keys=True)

        track_id = payload.get("trackId")
        if not track_id:
            return Failure(FailureKind.MALFORMED, "Callback without trackId")
        track_id = str(track_id)

        try:
            signature = self._authenticator().authenticate(headers, raw_body)
            self._replay_guard().claim(track_id, signature)
        except SignatureInvalid as exc:
            logger.warning("Callback signature rejected", track_id=track_id, reason=exc.message)
            return Failure(FailureKind.SIGNATURE_INVALID, exc.message)
        except StaleCallback as exc:
            logger.warning("Stale callback rejected", track_id=track_id, **exc.context)
            return Failure(FailureKind.STALE_CALLBACK, exc.message)
        except ReplayDetected as exc:
            logger.warning("Callback replay rejected", track_id=track_id)
            return Failure(FailureKind.REPLAY_DETECTED, exc.message)

        payment_repo = current_domain.repository_for(Payment)
        payment = payment_repo.find_by_track_id(track_id)
        if payment is None:
            return Failure(FailureKind.NOT_FOUND, f"No payment for track id {track_id}")

        if payment.is_paid:
            self._record_callback(payment, payload)
            return Success(payment=payment, already_settled=True)

        mismatch = self._callback_mismatch(payment, payload)
        if mismatch is not None:
            kind, reason = mismatch
            if payment.is_failed:
                self._record_callback(payment, payload)
                return Failure(FailureKind.ALREADY_FAILED, payment.failure_reason or reason, payment)
            # Fail closed on anything that does not match what we asked for
            return self._settle_failed(payment, kind, reason, payload, AttemptKind.CALLBACK)

        if payment.is_failed:
            self._record_callback(payment, payload)
            return Failure(FailureKind.ALREADY_FAILED, payment.failure_reason or "Payment already failed", payment)

        self._record_callback(payment, payload)
        return self._verify_with_gateway(payment, payload.get("orderId"), AttemptKind.VERIFY)

    @staticmethod
    def _callback_mismatch(payment: Payment, payload: dict):
        if not _callback_succeeded(payload):
            return FailureKind.NOT_SUCCESSFUL, "Gateway reported an unsuccessful payment"
        amount = _as_amount(payload.get("amount"))
        if amount is None or amount != payment.amount:
            reason = f"Callback amount {payload.get('amount')} does not match {payment.amount}"
            return FailureKind.AMOUNT_MISMATCH, reason
        order_id = payload.get("orderId")
        if order_id and str(order_id) != str(payment.order_id):
            return FailureKind.ORDER_MISMATCH, "Callback order does not match the payment"
        return None

    @staticmethod
    def _record_callback(payment: Payment, payload: dict) -> None:
        repo = current_domain.repository_for(Payment)
        with UnitOfWork():
            fresh = repo.get(payment.id)
            fresh.record_attempt(AttemptKind.CALLBACK, payload, amount=_as_amount(payload.get("amount")))
            repo.add(fresh)
