"""
Error taxonomy and the handlers that turn it into response envelopes.

Every domain failure is an ``AuthServiceError`` carrying the HTTP status and
the message the client sees.  Anything else that escapes a route is logged
and collapsed to a bare 500.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.responses import error_response

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing."""


class AuthServiceError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.message
        self.errors = errors or []
        super().__init__(self.message)


class RequestValidationFailed(AuthServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class DuplicateCredentialError(AuthServiceError):
    status_code = status.HTTP_409_CONFLICT
    message = "User already exists with this email"


class InvalidCredentialsError(AuthServiceError):
    # Same message for unknown email and wrong password.
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid email or password"


class NotFoundError(AuthServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class InternalError(AuthServiceError):
    pass


class AuthReason(str, Enum):
    MISSING_HEADER = "missing_header"
    BAD_FORMAT = "bad_format"
    MISSING_TOKEN = "missing_token"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED = "malformed"
    NOT_YET_VALID = "not_yet_valid"
    INVALID_CLAIMS = "invalid_claims"
    EXPIRED = "expired"
    USER_MISSING = "user_missing"


_AUTH_MESSAGES = {
    AuthReason.MISSING_HEADER: "Authorization header missing",
    AuthReason.BAD_FORMAT: "Invalid authorization header format. Use: Bearer <token>",
    AuthReason.MISSING_TOKEN: "Access token missing",
    AuthReason.INVALID_SIGNATURE: "Invalid access token",
    AuthReason.MALFORMED: "Malformed access token",
    AuthReason.NOT_YET_VALID: "Access token not active yet",
    AuthReason.INVALID_CLAIMS: "Invalid access token",
    AuthReason.EXPIRED: "Access token has expired",
    AuthReason.USER_MISSING: "User no longer exists",
}


class AuthenticationError(AuthServiceError):
    """
    Request could not be authenticated.

    ``reason`` is the internal diagnosis; the client only sees a 401 and a
    short message derived from it.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication failed"

    def __init__(self, reason: AuthReason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or _AUTH_MESSAGES.get(reason))


# ── Handlers ───────────────────────────────────────────────────────────


def _format_validation_errors(exc: RequestValidationError) -> List[str]:
    messages = []
    for issue in exc.errors():
        # drop the leading "body" / "query" segment
        loc = [str(part) for part in issue.get("loc", ())[1:]]
        field = ".".join(loc) or "body"
        msg = issue.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{field}: {msg}")
    return messages


async def _service_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    if isinstance(exc, AuthenticationError):
        logger.info(
            "Authentication failed on %s %s: %s",
            request.method, request.url.path, exc.reason.value,
        )
    elif exc.status_code >= 500:
        logger.error("Service error on %s %s: %s", request.method, request.url.path, exc.message)
    return error_response(exc.message, exc.errors, exc.status_code)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _format_validation_errors(exc)
    logger.debug("Validation failed on %s: %s", request.url.path, errors)
    return error_response("Validation failed", errors, status.HTTP_400_BAD_REQUEST)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return error_response(message, status_code=exc.status_code, headers=exc.headers)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(InternalError.message, status_code=InternalError.status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto response envelopes."""
    app.add_exception_handler(AuthServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
