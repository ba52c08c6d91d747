"""Exception handlers producing the ``{"error": {...}}`` envelope."""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from metered_api.config import get_settings
from metered_api.errors.exceptions import MeteredAPIError
from metered_api.models.responses import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)

AUTH_CHALLENGE = {"WWW-Authenticate": 'Bearer realm="metered-api"'}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def error_response(
    code: str,
    message: str,
    status_code: int,
    request_id: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON error envelope."""
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details or None,
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


async def handle_api_error(request: Request, exc: MeteredAPIError) -> JSONResponse:
    """Map MeteredAPIError subclasses to their status and code."""
    request_id = _request_id(request)

    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s", exc.error_code, request.method, request.url.path)

    return error_response(
        code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        request_id=request_id,
        details=exc.details,
        headers=AUTH_CHALLENGE if exc.status_code == 401 else None,
    )


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body, path and query validation failures as 400."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.info("Validation failed on %s %s: %s", request.method, request.url.path, errors)

    return error_response(
        code="VALIDATION_ERROR",
        message="Request validation failed",
        status_code=400,
        request_id=_request_id(request),
        details={"errors": errors},
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort 500. Exception text is only exposed in debug development mode."""
    request_id = _request_id(request)
    logger.exception("Unhandled exception (request %s)", request_id)

    details = None
    if get_settings().expose_error_details:
        details = {"exception": f"{type(exc).__name__}: {exc}"}

    return error_response(
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        status_code=500,
        request_id=request_id,
        details=details,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(MeteredAPIError, handle_api_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected)
