"""
Custom middleware for the mobile OTP authentication service.
"""

import time
from typing import Callable, Dict, Any, Iterable, Optional
from datetime import datetime, timezone

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from mobile_auth.api.errors import error_response_for, get_correlation_id
from mobile_auth.exceptions import AuthServiceError
from mobile_auth.observability import record_token_rejection

logger = structlog.get_logger()

PUBLIC_PATHS = frozenset({
    "/api",
    "/api/v1/auth/send-otp",
    "/api/v1/auth/verify-otp",
    "/api/v1/auth/health",
    "/healthz",
    "/metrics",
    "/docs",
    "/docs/oauth2-redirect",
    "/redoc",
    "/openapi.json",
})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging with correlation ID support.
    """

    def __init__(self, app, exclude_paths: set = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or {"/healthz", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        correlation_id = request.headers.get("X-Call-ID", f"req_{int(time.time() * 1000)}")
        request.state.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        start_time = time.time()
        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            user_agent=request.headers.get("User-Agent", "unknown"),
        )

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            logger.info(
                "Request completed",
                status_code=response.status_code,
                process_time_ms=round(process_time * 1000, 2),
            )

            response.headers["X-Call-ID"] = correlation_id
            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                process_time_ms=round(process_time * 1000, 2),
            )

            return JSONResponse(
                status_code=500,
                content={
                    "error": "InternalServerError",
                    "message": "An unexpected error occurred",
                    "correlation_id": correlation_id,
                    "timestamp": datetime.now(timezone.utc).isoformat()
                },
                headers={"X-Call-ID": correlation_id}
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.update({
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "X-XSS-Protection": "1; mode=block",
            "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "Cache-Control": "no-store"
        })

        return response


class RequestMetrics:
    """In-process request counters shared by every MetricsMiddleware instance."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.request_count = 0
        self.error_count = 0
        self.total_processing_time = 0.0

    def record(self, processing_time: float, failed: bool) -> None:
        self.request_count += 1
        self.total_processing_time += processing_time
        if failed:
            self.error_count += 1

    def snapshot(self) -> Dict[str, Any]:
        avg_processing_time = (
            self.total_processing_time / self.request_count
            if self.request_count > 0 else 0
        )

        return {
            "total_requests": self.request_count,
            "error_count": self.error_count,
            "error_rate": self.error_count / self.request_count if self.request_count > 0 else 0,
            "avg_processing_time_ms": round(avg_processing_time * 1000, 2)
        }


request_metrics = RequestMetrics()


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect basic metrics about requests.
    """

    def __init__(self, app, metrics: Optional[RequestMetrics] = None):
        super().__init__(app)
        self.metrics = metrics or request_metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            self.metrics.record(time.time() - start_time, failed=True)
            raise

        self.metrics.record(time.time() - start_time, failed=response.status_code >= 400)
        return response


def get_metrics() -> Dict[str, Any]:
    """Get current application metrics."""
    return request_metrics.snapshot()


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests to protected paths that lack a valid bearer token.

    Accepted identities are attached to ``request.state.identity``. The gate
    is looked up on ``app.state.container`` at request time.
    """

    def __init__(self, app, public_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.public_paths = frozenset(public_paths) if public_paths is not None else PUBLIC_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS" or request.url.path in self.public_paths:
            return await call_next(request)

        access_gate = request.app.state.container.access_gate
        try:
            request.state.identity = access_gate.authenticate(request.headers)
        except AuthServiceError as e:
            record_token_rejection(e.error_type)
            logger.info(
                "Rejected unauthenticated request",
                path=request.url.path,
                reason=e.error_type,
            )
            return error_response_for(e, get_correlation_id(request))

        structlog.contextvars.bind_contextvars(user_id=request.state.identity.user_id)
        return await call_next(request)
