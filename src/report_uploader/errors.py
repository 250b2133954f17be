"""Exception types and the FastAPI handlers that render them."""
import logging
from typing import Optional

import pydantic
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ReportUploaderError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(ReportUploaderError):
    """Required settings are missing or invalid."""


class AuthenticationError(ReportUploaderError):
    """The sign-in handshake could not be completed."""


class UploadError(ReportUploaderError):
    """No upload destination accepted the file."""


class GraphAPIError(ReportUploaderError):
    """A Microsoft Graph call returned a non-success status."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"Graph API error {status_code}{f' ({code})' if code else ''}: {message}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == status.HTTP_404_NOT_FOUND

    @property
    def is_conflict(self) -> bool:
        return self.status_code == status.HTTP_409_CONFLICT

    @property
    def is_transient(self) -> bool:
        return self.status_code == status.HTTP_429_TOO_MANY_REQUESTS or self.status_code >= 500


class APIError(ReportUploaderError):
    """An error a route handler wants returned to the caller as `{"message": ...}`."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


async def handle_api_errors(request: Request, exc: APIError) -> JSONResponse:
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "message": "Validation failed",
            "detail": [{"msg": error["msg"], "loc": list(error.get("loc", ()))} for error in errors],
        },
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception:  # pylint: disable=broad-except
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )
