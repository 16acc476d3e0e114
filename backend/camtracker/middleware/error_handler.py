# backend/camtracker/middleware/error_handler.py
"""
Error handling for the FastAPI application.

Domain errors raised anywhere below a router are mapped to HTTP status codes
by the exception handlers registered here. Anything else bubbles up to
ErrorHandlerMiddleware, which logs it under a correlation id and returns a
generic 500 without exposing internals.
"""

import uuid
from typing import Dict, Type

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from ..exceptions import (
    CamTrackerError,
    CompressionError,
    DownloadError,
    DuplicateError,
    ExternalServiceError,
    ImageProcessingError,
    JobTimeoutError,
    NotFoundError,
    ValidationError,
)
from ..utils.time_utils import utc_now

# Most specific first; the first isinstance match wins
ERROR_STATUS_CODES: Dict[Type[CamTrackerError], int] = {
    NotFoundError: 404,
    ValidationError: 400,
    DuplicateError: 409,
    DownloadError: 502,
    CompressionError: 502,
    ImageProcessingError: 502,
    ExternalServiceError: 502,
    JobTimeoutError: 504,
}

ERROR_TYPES: Dict[Type[CamTrackerError], str] = {
    NotFoundError: "not_found",
    ValidationError: "validation_error",
    DuplicateError: "duplicate",
    DownloadError: "download_error",
    CompressionError: "compression_error",
    ImageProcessingError: "image_processing_error",
    ExternalServiceError: "external_service_error",
    JobTimeoutError: "job_timeout",
}


def status_code_for(exc: CamTrackerError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_class):
            return status_code
    return 500


def _error_type_for(exc: CamTrackerError) -> str:
    for error_class, error_type in ERROR_TYPES.items():
        if isinstance(exc, error_class):
            return error_type
    return "internal_error"


def _correlation_id(request: Request) -> str:
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id
    return correlation_id


async def camtracker_error_handler(request: Request, exc: CamTrackerError) -> JSONResponse:
    """Map a domain error to its HTTP status."""
    status_code = status_code_for(exc)
    correlation_id = _correlation_id(request)
    # Unmapped domain errors (database) keep their details in the log
    message = str(exc) if status_code != 500 else "An internal server error occurred"

    if status_code >= 500:
        logger.error(
            f"🚨 {type(exc).__name__} in {request.method} {request.url.path}: {exc} "
            f"[{correlation_id}]"
        )
    else:
        logger.debug(f"{type(exc).__name__} in {request.method} {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": message,
            "error": {
                "type": _error_type_for(exc),
                "message": message,
                "status_code": status_code,
                "correlation_id": correlation_id,
                "timestamp": utc_now().isoformat(),
            },
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CamTrackerError, camtracker_error_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Centralized error handling middleware.

    Assigns a correlation id to every request and turns unhandled
    exceptions into a logged, user-friendly 500 response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        try:
            return await call_next(request)
        except Exception as exc:
            self._log_error(exc, request, correlation_id)
            return self._create_error_response(correlation_id)

    def _log_error(self, exc: Exception, request: Request, correlation_id: str) -> None:
        logger.opt(exception=exc).error(
            f"🚨 Unhandled exception in {request.method} {request.url.path} "
            f"[{correlation_id}]: {type(exc).__name__}: {exc}"
        )

    def _create_error_response(self, correlation_id: str) -> JSONResponse:
        response_data = {
            "detail": "An internal server error occurred",
            "error": {
                "type": "internal_error",
                "message": "An internal server error occurred",
                "status_code": 500,
                "correlation_id": correlation_id,
                "timestamp": utc_now().isoformat(),
            },
        }
        return JSONResponse(status_code=500, content=response_data)
