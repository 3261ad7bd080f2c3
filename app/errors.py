"""
Service error types and their JSON rendering.

Every error raised by the API layer subclasses ServiceError and is rendered
as `{"error": message}` (plus `details` when available) with the error's
HTTP status code.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


class ServiceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InputValidationError(ServiceError):
    """Missing or malformed request input."""

    status_code = status.HTTP_400_BAD_REQUEST


class ScanStateError(ServiceError):
    """Operation not allowed in the current scan state."""

    status_code = status.HTTP_409_CONFLICT


class UpstreamError(ServiceError):
    """The external completion call failed. Never retried."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.warning(f"Rejected request to {request.url.path}: {errors}")
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"{location}: {message}" if location else message},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install JSON error handlers on the application."""
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
