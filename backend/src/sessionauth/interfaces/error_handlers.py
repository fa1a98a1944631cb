"""Map application errors onto HTTP responses.

Authentication sub-reasons stay in the logs; clients only learn whether to
sign in again, retry later, or fix their input.
"""
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from sessionauth.application.identity.errors import (
    AccountAlreadyExistsError,
    AccountNotProvisionedError,
    AuthError,
    InvalidCredentialError,
    RateLimitedError,
    StoreUnavailableError,
)

logger = structlog.get_logger(__name__)

STORE_RETRY_AFTER_SECONDS = 5


def create_json_error_response(
    status_code: int, message: str, error_type: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Create JSON error response with a type for machine parsing."""
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "type": error_type},
        headers=headers,
    )


async def auth_error_handler(request: Request, exc: Exception) -> Response:
    code = getattr(exc, "code", "auth_error")
    logger.info("request_rejected", path=request.url.path, reason=code)

    if isinstance(exc, StoreUnavailableError):
        return create_json_error_response(
            503, "Service temporarily unavailable, please retry.", "store_unavailable",
            headers={"Retry-After": str(STORE_RETRY_AFTER_SECONDS)},
        )
    if isinstance(exc, RateLimitedError):
        return create_json_error_response(
            429, "Too many attempts, please wait.", "rate_limited",
            headers={"Retry-After": str(exc.retry_after)},
        )
    if isinstance(exc, AccountAlreadyExistsError):
        return create_json_error_response(409, str(exc), "conflict")
    if isinstance(exc, (InvalidCredentialError, AccountNotProvisionedError)):
        return create_json_error_response(
            401, "Invalid credentials", "authentication_error",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return create_json_error_response(
        401, "Please sign in again", "authentication_error",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def value_error_handler(_: Request, exc: Exception) -> Response:
    return create_json_error_response(422, str(exc), "validation_error")


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("unexpected_error", error=str(exc))
    return create_json_error_response(500, "An unexpected error occurred.", "internal_server_error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
