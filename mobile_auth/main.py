"""Main FastAPI application for the mobile OTP authentication service."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mobile_auth import __version__
from mobile_auth.config import Settings, settings as default_settings
from mobile_auth.api.auth import router as auth_router
from mobile_auth.api.errors import register_exception_handlers
from mobile_auth.middleware import (
    BearerAuthMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    MetricsMiddleware,
    get_metrics
)
from mobile_auth.models.api_models import HealthResponse
from mobile_auth.observability import (
    setup_observability,
    instrument_fastapi_app,
    TracingContextMiddleware
)
from mobile_auth.services.container import ServiceContainer


def configure_logging(log_level: str = "INFO") -> None:
    """Configure stdlib logging and structlog for JSON output."""
    logging.basicConfig(format="%(message)s", level=log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    app_settings: Settings = app.state.settings

    logger.info(
        "Starting mobile OTP authentication service",
        port=app_settings.port,
        host=app_settings.host,
        dev_mode=app_settings.dev_mode
    )

    if app_settings.otel_enabled:
        setup_observability(
            service_name="mobile-otp-auth",
            service_version=__version__,
            otlp_endpoint=app_settings.otlp_endpoint,
            enable_console_export=app_settings.otel_console_export
        )
        instrument_fastapi_app(app)

    # A container supplied by the caller is owned by the caller
    owns_container = getattr(app.state, "container", None) is None
    if owns_container:
        app.state.container = ServiceContainer(app_settings)
        await app.state.container.startup()

    logger.info("Service container ready")

    yield

    logger.info("Shutting down mobile OTP authentication service")
    if owns_container:
        await app.state.container.shutdown()
        app.state.container = None


def create_app(
    app_settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to run with, defaults to the environment
        container: Pre-built services, mainly for tests
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="Mobile OTP Authentication Service",
        description="Passwordless mobile-number authentication with one-time codes and signed session tokens",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = app_settings
    app.state.container = container

    register_exception_handlers(app)

    # Add middleware (order matters - last added is executed first)
    app.add_middleware(BearerAuthMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(TracingContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)

    @app.get("/api")
    async def api_index():
        """List the public API surface."""
        return {
            "message": "Mobile OTP Authentication API",
            "version": __version__,
            "endpoints": {
                "send_otp": "/api/v1/auth/send-otp",
                "verify_otp": "/api/v1/auth/verify-otp",
                "me": "/api/v1/auth/me"
            }
        }

    @app.get("/healthz", response_model=HealthResponse, response_model_exclude_none=True)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc),
            version=__version__
        )

    @app.get("/metrics")
    async def metrics_endpoint():
        """Application metrics endpoint."""
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metrics": get_metrics()
        }

    return app


configure_logging(default_settings.log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mobile_auth.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
        reload=False
    )
