"""Tests for gateway callback authentication and replay protection."""

import pytest

from marketplace.errors import ReplayDetected, SignatureInvalid, StaleCallback
from marketplace.payment.signature import CallbackAuthenticator, ReplayGuard, sign_payload
from marketplace.throttling.store import InMemoryExpiringStore

SECRET = "callback-secret"
BODY = '{"success":1,"trackId":"track-1"}'
NOW = 1_700_000_000


def _headers(timestamp=NOW, body=BODY, secret=SECRET):
    return {
        "X-Zibal-Signature": sign_payload(secret, timestamp, body),
        "X-Zibal-Timestamp": str(timestamp),
    }


def _authenticator(secret=SECRET, production=True):
    return CallbackAuthenticator(secret, production=production, max_skew_seconds=300, clock=lambda: NOW)


class TestSignPayload:
    def test_bytes_and_text_bodies_agree(self):
        assert sign_payload(SECRET, NOW, BODY) == sign_payload(SECRET, NOW, BODY.encode())

    def test_timestamp_is_part_of_the_signature(self):
        assert sign_payload(SECRET, NOW, BODY) != sign_payload(SECRET, NOW + 1, BODY)


class TestCallbackAuthenticator:
    def test_valid_signature_returned(self):
        headers = _headers()
        assert _authenticator().authenticate(headers, BODY) == headers["X-Zibal-Signature"]

    def test_tampered_body_rejected(self):
        with pytest.raises(SignatureInvalid):
            _authenticator().authenticate(_headers(), BODY.replace("track-1", "track-2"))

    def test_wrong_secret_rejected(self):
        with pytest.raises(SignatureInvalid):
            _authenticator().authenticate(_headers(secret="other"), BODY)

    def test_missing_headers_rejected(self):
        with pytest.raises(SignatureInvalid):
            _authenticator().authenticate({}, BODY)

    def test_stale_timestamp_rejected(self):
        with pytest.raises(StaleCallback):
            _authenticator().authenticate(_headers(timestamp=NOW - 301), BODY)

    def test_timestamp_within_window_accepted(self):
        _authenticator().authenticate(_headers(timestamp=NOW - 299), BODY)

    def test_missing_secret_fails_closed_in_production(self):
        with pytest.raises(SignatureInvalid):
            _authenticator(secret=None, production=True).authenticate(_headers(), BODY)

    def test_missing_secret_tolerated_outside_production(self):
        assert _authenticator(secret=None, production=False).authenticate({}, BODY) == ""


class TestReplayGuard:
    def test_second_claim_is_a_replay(self):
        guard = ReplayGuard(InMemoryExpiringStore(), ttl_seconds=600)
        guard.claim("track-1", "sig")
        with pytest.raises(ReplayDetected):
            guard.claim("track-1", "sig")

    def test_new_signature_is_not_a_replay(self):
        guard = ReplayGuard(InMemoryExpiringStore(), ttl_seconds=600)
        guard.claim("track-1", "sig-a")
        guard.claim("track-1", "sig-b")

    def test_claim_expires(self):
        now = [0.0]
        guard = ReplayGuard(InMemoryExpiringStore(clock=lambda: now[0]), ttl_seconds=600)
        guard.claim("track-1", "sig")
        now[0] = 600.0
        guard.claim("track-1", "sig")
