"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from classbook.shared.intervals import Interval

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "app_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def details(self) -> dict[str, Any] | None:
        """Extra diagnostic payload for the error body."""
        return None


class ValidationException(AppException):
    """Raised when input fails domain validation."""

    status_code = 422
    code = "validation_error"


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404
    code = "not_found"


class ConflictException(AppException):
    """Raised when a write would double-book a classroom."""

    status_code = 409
    code = "conflict"

    def __init__(self, classroom: str, intervals: list[Interval]) -> None:
        self.classroom = classroom
        self.intervals = list(intervals)
        booked = ", ".join(
            f"from {interval.start.isoformat()} to {interval.end.isoformat()}"
            for interval in self.intervals
        )
        super().__init__(f"Classroom {classroom} is already booked {booked}")

    def details(self) -> dict[str, Any]:
        return {
            "classroom": self.classroom,
            "intervals": [
                {"start": interval.start.isoformat(), "end": interval.end.isoformat()}
                for interval in self.intervals
            ],
        }


class StorageException(AppException):
    """Raised when the storage layer fails; the whole operation may be retried."""

    status_code = 503
    code = "storage_error"


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    error: dict[str, Any] = {"code": exc.code, "message": exc.message}
    details = exc.details()
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=exc.status_code, content={"error": error})


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "http_error", "message": str(exc.detail)}},
    )


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "internal_error", "message": "Internal server error"}},
    )


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
