"""Outcome values for payment verification and callbacks.

Business rejections (amount mismatch, replay, bad signature) come back as a
``Failure`` with a specific kind rather than as exceptions, so the API layer
can answer the gateway without try/except ladders.
"""

from dataclasses import dataclass
from enum import Enum


class FailureKind(Enum):
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    ALREADY_FAILED = "already_failed"
    GATEWAY_REJECTED = "gateway_rejected"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    AMOUNT_MISMATCH = "amount_mismatch"
    ORDER_MISMATCH = "order_mismatch"
    NOT_SUCCESSFUL = "not_successful"
    SIGNATURE_INVALID = "signature_invalid"
    STALE_CALLBACK = "stale_callback"
    REPLAY_DETECTED = "replay_detected"


@dataclass(frozen=True)
class Success:
    payment: object
    already_settled: bool = False

    success = True

    @property
    def status(self) -> str:
        return self.payment.status


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    reason: str
    payment: object | None = None

    success = False

    @property
    def status(self) -> str | None:
        return self.payment.status if self.payment is not None else None


@dataclass(frozen=True)
class PaymentRequestOutcome:
    payment: object
    pay_link: str | None


@dataclass(frozen=True)
class CallbackOutcome:
    """What a gateway callback amounted to: the payment's status now, and why it was refused if it was."""

    payment_status: str | None
    failure: Failure | None = None
    already_settled: bool = False

    @property
    def success(self) -> bool:
        return self.failure is None

    @classmethod
    def from_result(cls, result: "Success | Failure") -> "CallbackOutcome":
        if result.success:
            return cls(payment_status=result.status, already_settled=result.already_settled)
        return cls(payment_status=result.status, failure=result)
