"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (default)
- ZibalGateway when DISHDASH_GATEWAY=zibal
"""

from marketplace.config import get_settings
from marketplace.gateway.fake_adapter import FakeGateway
from marketplace.gateway.port import PaymentGateway
from marketplace.gateway.zibal_adapter import ZibalGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.gateway == "zibal":
            _current_gateway = ZibalGateway(
                merchant=settings.zibal_merchant,
                base_url=settings.zibal_base_url,
                timeout=settings.zibal_timeout_seconds,
            )
        else:
            _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
