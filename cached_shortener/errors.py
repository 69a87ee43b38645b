"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all errors that reach the HTTP boundary. The
registered handler converts them to ``{"error": ..., "code": ...}`` JSON
responses with the class status code.

DuplicateRecord and CacheDegraded are internal: the shortening engine turns
the first into a lookup or a retry, and the cache policy absorbs the second.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.error_code}


class InvalidInput(AppError):
    status_code = 400
    error_code = "invalid_input"


class NotFound(AppError):
    status_code = 404
    error_code = "not_found"


class StorageUnavailable(AppError):
    """Durable store unreachable or an operation on it failed. Not retried."""

    status_code = 500
    error_code = "storage_unavailable"


class DuplicateRecord(Exception):
    """A unique constraint (original URL or short code) rejected an insert."""


class CacheDegraded(Exception):
    """The volatile cache backend failed. Never surfaced to callers."""


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
