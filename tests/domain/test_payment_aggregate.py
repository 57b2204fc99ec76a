"""Tests for the Payment aggregate and its attempt ledger."""

import json

import pytest
from protean.exceptions import ValidationError

from marketplace.payment.events import PaymentConfirmed, PaymentFailed
from marketplace.payment.payment import AttemptKind, Payment


def _payment(amount=500_000):
    payment = Payment.open(order_id="order-1", user_id="cust-1", amount=amount, provider="fake")
    payment.mark_requested("track-1", "https://gateway.example/start/track-1")
    return payment


class TestPaymentLifecycle:
    def test_opens_pending(self):
        payment = Payment.open(order_id="order-1", user_id="cust-1", amount=500_000, provider="fake")
        assert payment.status == "PENDING"
        assert payment.is_paid is False

    def test_mark_paid_records_reference(self):
        payment = _payment()
        payment.mark_paid(ref_number="REF-9")

        assert payment.is_paid is True
        assert payment.ref_number == "REF-9"
        assert payment.verified_at is not None
        assert any(isinstance(event, PaymentConfirmed) for event in payment._events)

    def test_paid_is_terminal(self):
        payment = _payment()
        payment.mark_paid()
        with pytest.raises(ValidationError):
            payment.mark_failed("late failure")
        with pytest.raises(ValidationError):
            payment.restart(amount=500_000, provider="fake")

    def test_mark_failed_keeps_reason(self):
        payment = _payment()
        payment.mark_failed("Amount mismatch")
        assert payment.is_failed is True
        assert payment.failure_reason == "Amount mismatch"
        assert any(isinstance(event, PaymentFailed) for event in payment._events)

    def test_failed_payment_can_restart(self):
        payment = _payment()
        payment.mark_failed("Declined")
        payment.restart(amount=520_000, provider="fake")

        assert payment.status == "PENDING"
        assert payment.amount == 520_000
        assert payment.failure_reason is None

    def test_failed_cannot_jump_to_paid(self):
        payment = _payment()
        payment.mark_failed("Declined")
        with pytest.raises(ValidationError):
            payment.mark_paid()


class TestPaymentAttempts:
    def test_attempts_keep_raw_response(self):
        payment = _payment()
        payment.record_attempt(AttemptKind.REQUEST, {"result": 100, "trackId": "track-1"})

        attempt = payment.attempts_of(AttemptKind.REQUEST)[0]
        assert json.loads(attempt.raw_response) == {"result": 100, "trackId": "track-1"}
        assert attempt.track_id == "track-1"
        assert attempt.amount == 500_000

    def test_attempts_filtered_by_kind(self):
        payment = _payment()
        payment.record_attempt(AttemptKind.REQUEST, {})
        payment.record_attempt(AttemptKind.CALLBACK, {"success": 1})
        payment.record_attempt(AttemptKind.VERIFY, {"result": 100})

        assert len(payment.attempts) == 3
        assert len(payment.attempts_of(AttemptKind.CALLBACK)) == 1
