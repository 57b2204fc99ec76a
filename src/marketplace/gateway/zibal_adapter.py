"""Zibal payment gateway adapter (production)."""

import requests
import structlog

from marketplace.gateway.port import (
    SUCCESS_CODE,
    GatewayRequestResult,
    GatewayUnavailable,
    GatewayVerifyResult,
    PaymentGateway,
)

logger = structlog.get_logger(__name__)


class ZibalGateway(PaymentGateway):
    name = "zibal"

    def __init__(self, merchant: str, base_url: str = "https://gateway.zibal.ir", timeout: float = 10.0, session=None):
        self.merchant = merchant
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, body: dict) -> dict:
        try:
            response = self.session.post(f"{self.base_url}{path}", json=body, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Zibal call failed", path=path, error=str(exc))
            raise GatewayUnavailable(str(exc)) from exc

    def request(self, amount, order_id, callback_url):
        data = self._post(
            "/v1/request",
            {
                "merchant": self.merchant,
                "amount": amount,
                "callbackUrl": callback_url,
                "orderId": order_id,
            },
        )
        result = data.get("result")
        track_id = data.get("trackId")
        if result != SUCCESS_CODE or not track_id:
            return GatewayRequestResult(success=False, result_code=result, message=data.get("message"), raw=data)

        return GatewayRequestResult(
            success=True,
            track_id=str(track_id),
            pay_link=data.get("payLink") or f"{self.base_url}/start/{track_id}",
            result_code=result,
            message=data.get("message"),
            raw=data,
        )

    def verify(self, track_id):
        data = self._post("/v1/verify", {"merchant": self.merchant, "trackId": track_id})
        amount = data.get("amount")
        return GatewayVerifyResult(
            result_code=data.get("result"),
            amount=int(amount) if amount is not None else None,
            ref_number=str(data["refNumber"]) if data.get("refNumber") is not None else None,
            paid_at=data.get("paidAt"),
            order_id=data.get("orderId"),
            message=data.get("message"),
            raw=data,
        )
