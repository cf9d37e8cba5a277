"""Error taxonomy and the exception handlers that render it.

Every error leaving the API has the shape::

    {"error": "<kind>", "message": "<human readable>", "details": [...]}

``details`` is only present for field-level validation failures.
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Base class for errors carrying a machine-readable ``kind``."""

    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        details: list[dict[str, str]] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """Malformed or out-of-bounds input."""

    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls("Invalid data", details=[{"field": field, "message": message}])


class AuthError(AppError):
    """Missing, invalid or expired credential."""

    kind = "auth_error"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class NotFound(AppError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    """Uniqueness or referential-integrity violation."""

    kind = "conflict"
    status_code = status.HTTP_400_BAD_REQUEST


class StorageError(AppError):
    kind = "storage_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _field_name(loc: tuple) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "body"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework-raised HTTP errors (404 routes, 429 throttling) uniformly."""
    kinds = {
        status.HTTP_401_UNAUTHORIZED: AuthError.kind,
        status.HTTP_404_NOT_FOUND: NotFound.kind,
        status.HTTP_429_TOO_MANY_REQUESTS: "rate_limited",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": kinds.get(exc.status_code, "error"), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Translate pydantic failures into a 400 with one entry per field."""
    details = [
        {"field": _field_name(tuple(error.get("loc", ()))), "message": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": ValidationError.kind,
            "message": "Invalid data",
            "details": details,
        },
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.info("Integrity violation on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=Conflict.status_code,
        content={
            "error": Conflict.kind,
            "message": "The operation conflicts with existing data",
        },
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "Storage failure on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=StorageError.status_code,
        content={"error": StorageError.kind, "message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Install the handlers rendering the error taxonomy on ``app``.

    Args:
        app (FastAPI): Application instance.
    """
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
