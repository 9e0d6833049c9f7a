"""
PLAYHUB API - Error Hierarchy
=============================

Typed errors shared by every layer of the API. Each error carries the
HTTP status it maps to and a human-readable message; the exception
handlers registered in ``main.create_app`` render all of them as
``{"code": <status>, "message": <text>}``.

Error Categories:
    - AccessError: authentication / authorization failures (401, 403)
    - NotFoundError: missing entities (404)
    - ConflictError: uniqueness and dependency conflicts (409)
    - BadRequestError: invalid input (400)
"""

import logging
from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException


logger = logging.getLogger(__name__)


class AccessFailure(Enum):
    """Closed set of access-layer failures with their HTTP status."""

    AUTHENTICATION_REQUIRED = (401, "Authentication required")
    FORBIDDEN = (403, "You do not have permission to do this")
    INVALID_CREDENTIALS = (401, "Invalid username or password")

    def __init__(self, status_code: int, default_message: str):
        self.status_code = status_code
        self.default_message = default_message


class PlayhubError(Exception):
    """
    Base exception for all PLAYHUB API errors.

    Attributes:
        status_code: HTTP status the error maps to
        message: Human-readable error description
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"code": self.status_code, "message": self.message}

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.message}"


class AccessError(PlayhubError):
    """Authentication or authorization rejected the request."""

    def __init__(self, failure: AccessFailure, message: str | None = None):
        super().__init__(message or failure.default_message, failure.status_code)
        self.failure = failure


class NotFoundError(PlayhubError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PlayhubError):
    status_code = status.HTTP_409_CONFLICT


class BadRequestError(PlayhubError):
    status_code = status.HTTP_400_BAD_REQUEST


# ============================================================
# Exception handlers
# ============================================================


def _error_response(status_code: int, message: str) -> JSONResponse:
    if status_code >= 500:
        logger.error("ERROR %s: %s", status_code, message)
    else:
        logger.info("ERROR %s: %s", status_code, message)
    return JSONResponse(
        status_code=status_code,
        content={"code": status_code, "message": message},
    )


async def playhub_error_handler(request: Request, exc: PlayhubError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the ``{code, message}`` error rendering on an app."""
    app.add_exception_handler(PlayhubError, playhub_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
