"""Payment aggregate — one row per order, driven by the gateway protocol.

State Machine:
    PENDING → PAID (terminal)
    PENDING → FAILED
    FAILED → PENDING (a new request cycle reuses the same row)

Every interaction with the gateway appends a PaymentAttempt holding the raw
provider response verbatim. Attempts are never edited.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.order.order import PaymentStatus
from marketplace.payment.events import PaymentConfirmed, PaymentFailed, PaymentRequested


class AttemptKind(Enum):
    REQUEST = "REQUEST"
    VERIFY = "VERIFY"
    CALLBACK = "CALLBACK"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING},
    PaymentStatus.PAID: set(),  # Terminal
}


@marketplace.entity(part_of="Payment")
class PaymentAttempt:
    kind = String(choices=AttemptKind, required=True)
    track_id = String(max_length=100)
    request_id = String(max_length=100)
    amount = Integer()
    status = String(max_length=20)
    raw_response = Text()  # JSON, verbatim from the provider
    attempted_at = DateTime(required=True)


@marketplace.aggregate
class Payment:
    order_id = Identifier(required=True, unique=True)
    user_id = Identifier(required=True)
    provider = String(max_length=50, required=True)
    track_id = String(max_length=100)
    amount = Integer(required=True, min_value=0)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    pay_link = String(max_length=500)
    verified_at = DateTime()
    ref_number = String(max_length=100)
    failure_reason = String(max_length=500)
    attempts = HasMany(PaymentAttempt)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, order_id, user_id, amount, provider):
        now = datetime.now(UTC)
        return cls(
            order_id=order_id,
            user_id=user_id,
            amount=amount,
            provider=provider,
            status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID.value

    @property
    def is_failed(self) -> bool:
        return self.status == PaymentStatus.FAILED.value

    def _assert_can_transition(self, target_status: PaymentStatus):
        current = PaymentStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"status": [f"Cannot transition payment from {current.value} to {target_status.value}"]}
            )

    def restart(self, amount, provider):
        """Begin a new request cycle on this row. Only allowed after a failure."""
        if self.status != PaymentStatus.PENDING.value:
            self._assert_can_transition(PaymentStatus.PENDING)
        self.status = PaymentStatus.PENDING.value
        self.amount = amount
        self.provider = provider
        self.failure_reason = None
        self.updated_at = datetime.now(UTC)

    def mark_requested(self, track_id, pay_link):
        now = datetime.now(UTC)
        self.track_id = track_id
        self.pay_link = pay_link
        self.updated_at = now
        self.raise_(
            PaymentRequested(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                track_id=track_id,
                amount=self.amount,
                requested_at=now,
            )
        )

    def mark_paid(self, ref_number=None, verified_at=None):
        self._assert_can_transition(PaymentStatus.PAID)
        now = verified_at or datetime.now(UTC)
        self.status = PaymentStatus.PAID.value
        self.verified_at = now
        self.ref_number = ref_number
        self.failure_reason = None
        self.updated_at = now
        self.raise_(
            PaymentConfirmed(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                track_id=self.track_id,
                amount=self.amount,
                ref_number=ref_number,
                verified_at=now,
            )
        )

    def mark_failed(self, reason):
        self._assert_can_transition(PaymentStatus.FAILED)
        now = datetime.now(UTC)
        self.status = PaymentStatus.FAILED.value
        self.failure_reason = reason[:500] if reason else reason
        self.updated_at = now
        self.raise_(
            PaymentFailed(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                track_id=self.track_id,
                reason=reason or "unknown",
                failed_at=now,
            )
        )

    def record_attempt(self, kind: AttemptKind, raw_response, status=None, amount=None, request_id=None):
        attempt = PaymentAttempt(
            kind=kind.value,
            track_id=self.track_id,
            request_id=request_id,
            amount=amount if amount is not None else self.amount,
            status=status or self.status,
            raw_response=json.dumps(raw_response, default=str),
            attempted_at=datetime.now(UTC),
        )
        self.add_attempts(attempt)
        return attempt

    def attempts_of(self, kind: AttemptKind) -> list[PaymentAttempt]:
        return [attempt for attempt in self.attempts if attempt.kind == kind.value]
