import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import RateLimitError, SendGridError, StateStoreError, TelnyxError

logger = logging.getLogger(__name__)


async def telnyx_error_handler(_request: Request, exc: TelnyxError) -> JSONResponse:
    logger.error("Telnyx error: %s (status=%s)", exc.message, exc.status_code)
    return JSONResponse(
        status_code=502,
        content={"detail": f"Telnyx error: {exc.message}"},
    )


async def sendgrid_error_handler(_request: Request, exc: SendGridError) -> JSONResponse:
    logger.error("SendGrid error: %s (status=%s)", exc.message, exc.status_code)
    return JSONResponse(
        status_code=502,
        content={"detail": f"SendGrid error: {exc.message}"},
    )


async def state_store_error_handler(_request: Request, exc: StateStoreError) -> JSONResponse:
    logger.error("State store error for call %s: %s", exc.call_id, exc.message)
    return JSONResponse(
        status_code=503,
        content={"detail": f"State store unavailable: {exc.message}"},
    )


async def rate_limit_error_handler(_request: Request, exc: RateLimitError) -> JSONResponse:
    logger.warning("Rate limit hit for %s", exc.service)
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded for {exc.service}"},
    )
