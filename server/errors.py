"""
Translation of marketplace errors into HTTP responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketplace.core.exceptions import (
    AuctionClosedError,
    BidTooLowError,
    InvalidItemStateError,
    MarketplaceError,
    NotForSaleError,
    NotFoundError,
    PermissionDeniedError,
    SelfBidError,
    SelfPurchaseError,
    StaleBidError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    NotFoundError: 404,
    PermissionDeniedError: 403,
    SelfBidError: 409,
    SelfPurchaseError: 409,
    AuctionClosedError: 409,
    BidTooLowError: 409,
    StaleBidError: 409,
    NotForSaleError: 409,
    InvalidItemStateError: 409,
    ValidationError: 422,
}


def status_for(exc: MarketplaceError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return 400


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    status = status_for(exc)
    logger.debug(f"{request.method} {request.url.path} -> {status} {exc.kind}: {exc.message}")
    return JSONResponse(status_code=status, content={"error": exc.kind, "message": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "Invalid request"
    return JSONResponse(status_code=422, content={"error": ValidationError.kind, "message": message})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal", "message": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
