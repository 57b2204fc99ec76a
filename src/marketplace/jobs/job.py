"""Notification job variants carried on the work queue.

A job only references its NotificationRecord; the record stays the source
of truth for status and attempts. Payload shape on the wire:

    {"kind": "chat" | "sms", "recordId", "channel", "recipient", "message",
     "correlation": {"orderId", "userId", "vendorId"}, "attempt",
     "target", "replyMarkup"}
"""

from dataclasses import dataclass, field, replace

from marketplace.notification.record import NotificationChannel, NotificationTarget


@dataclass(frozen=True)
class Correlation:
    order_id: str | None = None
    user_id: str | None = None
    vendor_id: str | None = None

    def to_payload(self) -> dict:
        payload = {"orderId": self.order_id, "userId": self.user_id, "vendorId": self.vendor_id}
        return {key: value for key, value in payload.items() if value is not None}

    @classmethod
    def from_payload(cls, payload: dict | None) -> "Correlation":
        payload = payload or {}
        return cls(
            order_id=payload.get("orderId"),
            user_id=payload.get("userId"),
            vendor_id=payload.get("vendorId"),
        )

    def as_dict(self) -> dict:
        return {"order_id": self.order_id, "user_id": self.user_id, "vendor_id": self.vendor_id}


@dataclass(frozen=True)
class ChatJob:
    record_id: str
    recipient: str
    message: str
    correlation: Correlation = field(default_factory=Correlation)
    target: str = NotificationTarget.CUSTOMER.value
    reply_markup: dict | None = None
    attempt: int = 1

    kind = "chat"
    channel = NotificationChannel.CHAT


@dataclass(frozen=True)
class SmsJob:
    record_id: str
    recipient: str
    message: str
    correlation: Correlation = field(default_factory=Correlation)
    attempt: int = 1

    kind = "sms"
    channel = NotificationChannel.SMS


NotificationJob = ChatJob | SmsJob


def next_attempt(job: NotificationJob) -> NotificationJob:
    return replace(job, attempt=job.attempt + 1)


def job_to_payload(job: NotificationJob) -> dict:
    payload = {
        "kind": job.kind,
        "recordId": job.record_id,
        "channel": job.channel.value,
        "recipient": job.recipient,
        "message": job.message,
        "correlation": job.correlation.to_payload(),
        "attempt": job.attempt,
    }
    if isinstance(job, ChatJob):
        payload["target"] = job.target
        payload["replyMarkup"] = job.reply_markup
    return payload


def job_from_payload(payload: dict) -> NotificationJob:
    kind = payload.get("kind")
    common = {
        "record_id": payload["recordId"],
        "recipient": payload["recipient"],
        "message": payload["message"],
        "correlation": Correlation.from_payload(payload.get("correlation")),
        "attempt": int(payload.get("attempt", 1)),
    }
    if kind == ChatJob.kind:
        return ChatJob(
            target=payload.get("target") or NotificationTarget.CUSTOMER.value,
            reply_markup=payload.get("replyMarkup"),
            **common,
        )
    elif kind == SmsJob.kind:
        return SmsJob(**common)
    else:
        raise ValueError(f"Unknown notification job kind: {kind}")
