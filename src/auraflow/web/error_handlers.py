import structlog
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from auraflow.errors import (
    AccessDeniedError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    RateLimitedError,
    ValidationError,
)
from auraflow.web.cookies import clear_auth_cookies

logger = structlog.get_logger(__name__)


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(request: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, AuthenticationError):
        # Client must re-authenticate; stale auth cookies go away with the 401
        response = create_json_error_response(401, str(exc), "authentication_error")
        clear_auth_cookies(response, request.app.state.config)
        return response

    if isinstance(exc, RateLimitedError):
        return JSONResponse(
            status_code=429,
            content={"message": str(exc), "type": "rate_limited", "retry_after": exc.retry_after},
            headers={"Retry-After": str(exc.retry_after)},
        )

    if isinstance(exc, AccessDeniedError):
        status_code = 403
        error_type = "access_denied"
    elif isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, ConflictError):
        status_code = 409
        error_type = "conflict"
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    else:
        # Default for any other UserError subclass
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def persistence_error_handler(request: Request, exc: Exception) -> Response:
    """Storage is unavailable: ask the client to retry, leave its cookies alone."""
    logger.warning("persistence_error", path=request.url.path, error=str(exc))
    return create_json_error_response(
        status_code=503, message="Service temporarily unavailable, please retry.", error_type="service_unavailable"
    )


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("unexpected_error", error=str(exc))
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
