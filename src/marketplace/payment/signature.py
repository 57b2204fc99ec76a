"""Callback authentication: HMAC signature, freshness window, replay guard.

The gateway signs ``"{timestamp}.{raw body}"`` with the shared secret using
HMAC-SHA256 and sends the hex digest in ``X-Zibal-Signature`` and the unix
timestamp in ``X-Zibal-Timestamp``.
"""

import hashlib
import hmac
import time

import structlog

from marketplace.errors import ReplayDetected, SignatureInvalid, StaleCallback
from marketplace.throttling.store import ExpiringStore

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "x-zibal-signature"
TIMESTAMP_HEADER = "x-zibal-timestamp"


def _header(headers: dict, name: str) -> str | None:
    for key, value in (headers or {}).items():
        if key.lower() == name:
            return value
    return None


def sign_payload(secret: str, timestamp: str | int, raw_body: str | bytes) -> str:
    if isinstance(raw_body, bytes):
        raw_body = raw_body.decode("utf-8")
    message = f"{timestamp}.{raw_body}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class CallbackAuthenticator:
    """Checks signature then freshness. Raises on the first failed check."""

    def __init__(self, secret: str | None, production: bool, max_skew_seconds: int = 300, clock=time.time):
        self.secret = secret
        self.production = production
        self.max_skew_seconds = max_skew_seconds
        self._clock = clock

    def authenticate(self, headers: dict, raw_body: str | bytes) -> str:
        """Return the signature used for replay keys ("" when checks are skipped)."""
        signature = _header(headers, SIGNATURE_HEADER) or ""

        if not self.secret:
            if self.production:
                raise SignatureInvalid("Callback secret is not configured")
            logger.warning("Callback signature check skipped, no secret configured")
            return signature

        timestamp = _header(headers, TIMESTAMP_HEADER)
        if not signature or not timestamp:
            raise SignatureInvalid("Missing callback signature or timestamp")

        expected = sign_payload(self.secret, timestamp, raw_body)
        if not hmac.compare_digest(expected, signature):
            raise SignatureInvalid("Callback signature does not match")

        try:
            sent_at = float(timestamp)
        except ValueError:
            raise SignatureInvalid("Callback timestamp is not a number") from None
        skew = abs(self._clock() - sent_at)
        if skew > self.max_skew_seconds:
            raise StaleCallback("Callback timestamp outside the freshness window", skew_seconds=int(skew))

        return signature


class ReplayGuard:
    """Claims ``(track id, signature)`` pairs for a short TTL."""

    def __init__(self, store: ExpiringStore, ttl_seconds: int = 600):
        self._store = store
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(track_id: str, signature: str) -> str:
        digest = hashlib.sha256(f"{track_id}:{signature}".encode()).hexdigest()
        return f"callback-replay:{digest}"

    def claim(self, track_id: str, signature: str) -> None:
        if not self._store.set_if_absent(self.key(track_id, signature), "1", self.ttl_seconds):
            raise ReplayDetected("Callback already processed", track_id=track_id)
