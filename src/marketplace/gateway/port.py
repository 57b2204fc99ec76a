"""Payment gateway port (abstract interface).

Follows the Zibal request/verify protocol: ``request`` registers an amount
and returns a track id plus a pay link for the customer, ``verify`` asks the
gateway whether that track id was actually paid. Result code 100 means
success for both calls.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

SUCCESS_CODE = 100


class GatewayUnavailable(Exception):
    """The gateway could not be reached or answered with garbage."""


@dataclass(frozen=True)
class GatewayRequestResult:
    success: bool
    track_id: str | None = None
    pay_link: str | None = None
    result_code: int | None = None
    message: str | None = None
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayVerifyResult:
    result_code: int | None
    amount: int | None = None
    ref_number: str | None = None
    paid_at: str | None = None
    order_id: str | None = None
    message: str | None = None
    raw: dict = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.result_code == SUCCESS_CODE


class PaymentGateway(ABC):
    name = "gateway"

    @abstractmethod
    def request(self, amount: int, order_id: str, callback_url: str) -> GatewayRequestResult:
        """Register a payment and obtain a pay link. Raises GatewayUnavailable."""
        ...

    @abstractmethod
    def verify(self, track_id: str) -> GatewayVerifyResult:
        """Ask the gateway for the settled state of ``track_id``. Raises GatewayUnavailable."""
        ...
