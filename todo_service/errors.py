"""Error taxonomy for the todo service and its HTTP mapping.

Business code raises the exceptions below; :func:`register_exception_handlers`
turns each one into a ``{"detail": ...}`` JSON response. Messages are fixed
per class so callers never learn more than the category of failure.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TodoServiceError(Exception):
    """Base class for errors surfaced through the HTTP layer."""

    status_code: int = 500
    detail: str = "Internal server error"
    headers: Optional[Dict[str, str]] = None


class DuplicateUsername(TodoServiceError):
    status_code = 400
    detail = "Username already registered"


class AuthenticationFailure(TodoServiceError):
    """Wrong username or password; never says which."""

    status_code = 404
    detail = "The username or password entered is not correct"


class AuthorizationFailure(TodoServiceError):
    """Missing, malformed, expired or foreign bearer token."""

    status_code = 401
    detail = "Could not validate credentials"
    headers = {"WWW-Authenticate": "Bearer"}


class InvalidToken(AuthorizationFailure):
    pass


class UserNotFound(TodoServiceError):
    status_code = 404
    detail = "User not found"


class WriteConflict(TodoServiceError):
    """The todo list changed between read and write."""

    status_code = 409
    detail = "Todo list was modified concurrently, retry"


class InternalError(TodoServiceError):
    pass


class StorageFailure(InternalError):
    pass


class MalformedHash(InternalError):
    pass


async def _handle_service_error(request: Request, exc: TodoServiceError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TodoServiceError, _handle_service_error)
