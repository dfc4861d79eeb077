"""Standard error responses and exception handlers."""

from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mobile_auth.exceptions import AuthServiceError, ServiceError, ServiceUnavailableError
from mobile_auth.models.api_models import ErrorResponse

logger = structlog.get_logger()


def get_correlation_id(request: Request) -> str:
    correlation_id = getattr(request.state, "correlation_id", None)
    return correlation_id or request.headers.get("X-Call-ID", "unknown")


def create_error_response(
    error_type: str,
    message: str,
    correlation_id: str,
    status_code: int = 500
) -> JSONResponse:
    """Create standardized error response."""
    error_response = ErrorResponse(
        error=error_type,
        message=message,
        correlation_id=correlation_id,
        timestamp=datetime.now(timezone.utc)
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json")
    )


def error_response_for(exc: ServiceError, correlation_id: str) -> JSONResponse:
    return create_error_response(exc.error_type, exc.message, correlation_id, exc.status_code)


async def auth_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    return error_response_for(exc, get_correlation_id(request))


async def unavailable_handler(request: Request, exc: ServiceUnavailableError) -> JSONResponse:
    """Infrastructure faults are logged as errors, apart from authentication rejections."""
    logger.error(
        "Request failed: backing service unavailable",
        path=request.url.path,
        error=exc.error_type,
        message=exc.message
    )
    return error_response_for(exc, get_correlation_id(request))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report schema errors (missing or mistyped fields) as a ValidationError."""
    missing = [
        str(error["loc"][-1])
        for error in exc.errors()
        if error.get("type") == "missing" and error.get("loc")
    ]
    if missing:
        message = f"Missing required field(s): {', '.join(missing)}"
    else:
        message = "Invalid request body"

    logger.info("Request body rejected", path=request.url.path, errors=len(exc.errors()))
    return create_error_response("ValidationError", message, get_correlation_id(request), 400)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthServiceError, auth_error_handler)
    app.add_exception_handler(ServiceUnavailableError, unavailable_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
