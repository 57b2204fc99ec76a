"""Configurable fake payment gateway for development and testing.

Simulates the request/verify protocol in memory. It can be configured at
runtime to reject requests, fail verification, report a different amount
than was requested, or be unreachable altogether. Every call is recorded in
``calls`` so tests can assert that idempotent paths never reach the gateway.
"""

from uuid import uuid4

from marketplace.gateway.port import (
    SUCCESS_CODE,
    GatewayRequestResult,
    GatewayUnavailable,
    GatewayVerifyResult,
    PaymentGateway,
)


class FakeGateway(PaymentGateway):
    name = "fake"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment declined"
        self.unreachable: bool = False
        self.amount_override: int | None = None
        self.calls: list[dict] = []
        self._requested: dict[str, dict] = {}

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Payment declined",
        unreachable: bool = False,
        amount_override: int | None = None,
    ) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unreachable = unreachable
        self.amount_override = amount_override

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def request(self, amount, order_id, callback_url):
        self.calls.append({"method": "request", "amount": amount, "order_id": order_id, "callback_url": callback_url})
        if self.unreachable:
            raise GatewayUnavailable("Fake gateway unreachable")

        if not self.should_succeed:
            raw = {"result": 102, "message": self.failure_reason}
            return GatewayRequestResult(success=False, result_code=102, message=self.failure_reason, raw=raw)

        track_id = f"fake-{uuid4().hex[:12]}"
        self._requested[track_id] = {"amount": amount, "order_id": order_id}
        raw = {"result": SUCCESS_CODE, "trackId": track_id, "message": "success"}
        return GatewayRequestResult(
            success=True,
            track_id=track_id,
            pay_link=f"https://fake-gateway.local/start/{track_id}",
            result_code=SUCCESS_CODE,
            message="success",
            raw=raw,
        )

    def verify(self, track_id):
        self.calls.append({"method": "verify", "track_id": track_id})
        if self.unreachable:
            raise GatewayUnavailable("Fake gateway unreachable")

        requested = self._requested.get(track_id, {})
        if not self.should_succeed:
            raw = {"result": 202, "message": self.failure_reason}
            return GatewayVerifyResult(result_code=202, message=self.failure_reason, raw=raw)

        amount = self.amount_override if self.amount_override is not None else requested.get("amount")
        ref_number = f"ref-{uuid4().hex[:10]}"
        raw = {
            "result": SUCCESS_CODE,
            "amount": amount,
            "refNumber": ref_number,
            "orderId": requested.get("order_id"),
            "message": "success",
        }
        return GatewayVerifyResult(
            result_code=SUCCESS_CODE,
            amount=amount,
            ref_number=ref_number,
            order_id=requested.get("order_id"),
            message="success",
            raw=raw,
        )

    def register_track(self, track_id: str, amount: int, order_id: str) -> None:
        """Seed a track id, as if ``request`` had issued it."""
        self._requested[track_id] = {"amount": amount, "order_id": order_id}
