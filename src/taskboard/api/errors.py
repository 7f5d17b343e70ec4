from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class TaskboardError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors


class NotFoundError(TaskboardError):
    """Raised for absent records and for records owned by someone else alike."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(TaskboardError):
    """A uniqueness constraint was violated on ``field``."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, errors=[{"field": field, "message": message}])
        self.field = field


class AuthenticationError(TaskboardError):
    status_code = status.HTTP_401_UNAUTHORIZED


def _failure(status_code: int, message: str, errors: Optional[List[Any]] = None, headers=None) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    """Flatten pydantic error details into ``{field, message}`` pairs."""
    out: List[Dict[str, str]] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        # Drop the leading 'body' / 'query' / 'path' segment
        field = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc)
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        out.append({"field": field, "message": message})
    return out


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "success": false,
            "message": "Validation failed",
            "errors": [{"field": "title", "message": "..."}]
        }
    """
    return _failure(status.HTTP_400_BAD_REQUEST, "Validation failed", _field_errors(exc))


async def taskboard_exception_handler(request: Request, exc: TaskboardError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return _failure(exc.status_code, exc.message, exc.errors, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _failure(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on ``app``."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(TaskboardError, taskboard_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
