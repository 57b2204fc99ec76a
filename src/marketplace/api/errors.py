"""HTTP mapping for marketplace errors.

Protean's own exceptions (ValidationError → 400, ObjectNotFoundError → 404)
are handled by ``protean.integrations.fastapi``; this module adds the
marketplace kinds on top.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from marketplace.errors import (
    CapacityExceeded,
    CodConfirmationRequired,
    ExternalGatewayError,
    Forbidden,
    InvalidTransition,
    MarketplaceError,
    OutOfServiceArea,
    RateLimitExceeded,
    ReplayDetected,
    SignatureInvalid,
    StaleCallback,
    VendorInactive,
)

STATUS_CODES: dict[type[MarketplaceError], int] = {
    Forbidden: 403,
    InvalidTransition: 409,
    VendorInactive: 422,
    CapacityExceeded: 422,
    OutOfServiceArea: 422,
    CodConfirmationRequired: 422,
    ExternalGatewayError: 502,
    RateLimitExceeded: 429,
    SignatureInvalid: 401,
    StaleCallback: 400,
    ReplayDetected: 409,
}


def status_code_for(exc: MarketplaceError) -> int:
    for exc_type in type(exc).__mro__:
        if exc_type in STATUS_CODES:
            return STATUS_CODES[exc_type]
    return 400


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    register_protean_handlers(app)
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
