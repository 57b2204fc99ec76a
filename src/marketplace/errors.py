"""Business exceptions raised by the fulfillment core.

Malformed input and missing records use Protean's own ``ValidationError`` and
``ObjectNotFoundError``. Everything else derives from ``MarketplaceError`` and
carries a stable ``kind`` that the API layer maps to an HTTP status.
"""


class MarketplaceError(Exception):
    kind = "marketplace_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, **self.context}


class InvalidTransition(MarketplaceError):
    kind = "invalid_transition"


class Forbidden(MarketplaceError):
    kind = "forbidden"


# Matching-time rejections. The order is never created.
class VendorInactive(MarketplaceError):
    kind = "vendor_inactive"


class CapacityExceeded(MarketplaceError):
    kind = "capacity_exceeded"


class OutOfServiceArea(MarketplaceError):
    kind = "out_of_service_area"


class CodConfirmationRequired(MarketplaceError):
    kind = "cod_confirmation_required"


class ExternalGatewayError(MarketplaceError):
    """The payment gateway was unreachable or rejected the request. Retryable."""

    kind = "external_gateway_error"


class RateLimitExceeded(MarketplaceError):
    kind = "rate_limited"

    def __init__(self, message: str, retry_after: int = 0, **context):
        super().__init__(message, **context)
        self.retry_after = retry_after


# Webhook rejections
class SignatureInvalid(MarketplaceError):
    kind = "signature_invalid"


class StaleCallback(MarketplaceError):
    kind = "stale_callback"


class ReplayDetected(MarketplaceError):
    kind = "replay_detected"
