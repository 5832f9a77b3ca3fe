import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from notekeeper.errors import (
    AuthenticationError,
    NotFoundError,
    SessionInvalidError,
    TokenBadSignatureError,
    TokenExpiredError,
    TokenMalformedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first
AUTHENTICATION_ERROR_TYPES: list[tuple[type[AuthenticationError], str]] = [
    (TokenExpiredError, "token_expired"),
    (TokenBadSignatureError, "token_bad_signature"),
    (TokenMalformedError, "token_malformed"),
    (SessionInvalidError, "session_invalid"),
]


def create_json_error_response(
    status_code: int, message: str, error_type: str | None = None, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def authentication_error_type(exc: AuthenticationError) -> str:
    for error_class, error_type in AUTHENTICATION_ERROR_TYPES:
        if isinstance(exc, error_class):
            return error_type
    return "authentication_error"


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, AuthenticationError):
        return create_json_error_response(
            status_code=401,
            message=str(exc),
            error_type=authentication_error_type(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )

    if isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    else:
        # Default for any other UserError subclass
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def store_unavailable_handler(_: Request, exc: Exception) -> Response:
    """Database outages are server faults, never reported as authentication failures."""
    logger.error("Store unavailable: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
