"""
HTTP error mapping.

Translates domain exceptions, request validation failures and routing
errors into the uniform failure envelope. Status codes are decided here,
not in the domain.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.models import ErrorResponse
from src.domain.exceptions import RateLimited, RegistrationError, ValidationFailed

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[str, int] = {
    "already_exists": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid_code": status.HTTP_400_BAD_REQUEST,
    "too_many_attempts": status.HTTP_403_FORBIDDEN,
    "no_pending_registration": status.HTTP_404_NOT_FOUND,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "not_verified": status.HTTP_403_FORBIDDEN,
    "already_complete": status.HTTP_409_CONFLICT,
    "duplicate_registration_number": status.HTTP_409_CONFLICT,
    "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
    "deactivated": status.HTTP_403_FORBIDDEN,
    "unauthorized": status.HTTP_401_UNAUTHORIZED,
    "vendor_not_found": status.HTTP_404_NOT_FOUND,
    "validation_failed": 422,
}

# Kinds for errors raised by the router rather than the domain
HTTP_KIND_BY_STATUS: dict[int, str] = {
    status.HTTP_404_NOT_FOUND: "route_not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def error_response(exc: RegistrationError) -> JSONResponse:
    """Render a domain exception as a failure envelope."""
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    body = ErrorResponse(status_code=status_code, kind=exc.kind, message=exc.message)
    headers = None

    if isinstance(exc, RateLimited):
        body.retry_after = exc.remaining_seconds
        headers = {"Retry-After": str(exc.remaining_seconds)}
    elif isinstance(exc, ValidationFailed):
        body.errors = exc.errors
    elif status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


async def registration_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    logger.info("%s %s failed: %s", request.method, request.url.path, exc.kind)
    return error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in error["loc"] if part != "body"), "message": error["msg"]}
        for error in exc.errors()
    ]
    return error_response(ValidationFailed(errors))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and other framework HTTP errors."""
    body = ErrorResponse(
        status_code=exc.status_code,
        kind=HTTP_KIND_BY_STATUS.get(exc.status_code, "http_error"),
        message=str(exc.detail),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=exc.headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RegistrationError, registration_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
