"""
Observability and monitoring setup for the mobile OTP authentication service.
"""

import inspect
from typing import Optional, Dict, Any, Callable
from contextlib import contextmanager
from functools import wraps

import structlog
from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor

logger = structlog.get_logger()

# Global tracer and meter
tracer: Optional[trace.Tracer] = None
meter: Optional[metrics.Meter] = None

# Metrics instruments
request_duration: Optional[metrics.Histogram] = None
challenge_counter: Optional[metrics.Counter] = None
verification_counter: Optional[metrics.Counter] = None
token_rejection_counter: Optional[metrics.Counter] = None


def setup_observability(
    service_name: str = "mobile-otp-auth",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    enable_console_export: bool = False
) -> None:
    """
    Set up OpenTelemetry tracing and metrics.

    Args:
        service_name: Name of the service for tracing
        service_version: Version of the service
        otlp_endpoint: OTLP endpoint for trace/metric export
        enable_console_export: Whether to enable console export for development
    """
    global tracer, meter
    global request_duration, challenge_counter, verification_counter, token_rejection_counter

    logger.info(
        "Setting up observability",
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint
    )

    resource = Resource.create({
        "service.name": service_name,
        "service.version": service_version,
    })

    # Set up tracing
    trace_provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))

    if enable_console_export:
        trace_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer(__name__)

    # Set up metrics
    metric_readers = []

    if otlp_endpoint:
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=OTLPMetricExporter(endpoint=otlp_endpoint),
                export_interval_millis=30000  # 30 seconds
            )
        )

    if enable_console_export:
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=ConsoleMetricExporter(),
                export_interval_millis=60000  # 60 seconds
            )
        )

    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=metric_readers))
    meter = metrics.get_meter(__name__)

    request_duration = meter.create_histogram(
        name="auth_operation_duration_seconds",
        description="Duration of authentication operations in seconds",
        unit="s"
    )

    challenge_counter = meter.create_counter(
        name="otp_challenges_total",
        description="Total number of OTP challenge requests",
        unit="1"
    )

    verification_counter = meter.create_counter(
        name="otp_verifications_total",
        description="Total number of OTP verification attempts",
        unit="1"
    )

    token_rejection_counter = meter.create_counter(
        name="token_rejections_total",
        description="Total number of rejected bearer credentials",
        unit="1"
    )

    logger.info("Observability setup completed")


def instrument_fastapi_app(app) -> None:
    """
    Instrument FastAPI application with OpenTelemetry.

    Args:
        app: FastAPI application instance
    """
    if tracer is None:
        logger.warning("Tracer not initialized, call setup_observability() first")
        return

    FastAPIInstrumentor.instrument_app(app)

    # SMS gateway calls go through httpx
    HTTPXClientInstrumentor().instrument()

    LoggingInstrumentor().instrument(set_logging_format=True)

    logger.info("FastAPI application instrumented with OpenTelemetry")


@contextmanager
def _operation_span(span_name: str, func: Callable):
    """Span around one call that records the outcome and re-raises failures."""
    with tracer.start_as_current_span(span_name) as span:
        span.set_attribute("function.name", func.__name__)
        span.set_attribute("function.module", func.__module__)
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_attribute("success", False)
            span.set_attribute("error.type", type(e).__name__)
            raise
        span.set_attribute("success", True)


def trace_function(operation_name: Optional[str] = None):
    """
    Decorator to trace function execution.

    Tracing is a no-op until ``setup_observability`` has run.

    Args:
        operation_name: Optional custom operation name for the span
    """
    def decorator(func: Callable) -> Callable:
        span_name = operation_name or f"{func.__module__}.{func.__name__}"

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                if tracer is None:
                    return await func(*args, **kwargs)
                with _operation_span(span_name, func):
                    return await func(*args, **kwargs)

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            if tracer is None:
                return func(*args, **kwargs)
            with _operation_span(span_name, func):
                return func(*args, **kwargs)

        return sync_wrapper

    return decorator


def record_challenge_metrics(success: bool, processing_time: float, is_new_user: Optional[bool] = None) -> None:
    """
    Record metrics for challenge requests.

    Args:
        success: Whether a challenge was issued
        processing_time: Time taken in seconds
        is_new_user: Whether the request created the user
    """
    if challenge_counter is None or request_duration is None:
        return

    attributes = {
        "operation": "issue_challenge",
        "success": str(success).lower(),
    }
    if is_new_user is not None:
        attributes["new_user"] = str(is_new_user).lower()

    challenge_counter.add(1, attributes)
    request_duration.record(processing_time, {"operation": "issue_challenge"})


def record_verification_metrics(success: bool, processing_time: float, outcome: str) -> None:
    """
    Record metrics for verification attempts.

    Args:
        success: Whether the code was accepted
        processing_time: Time taken in seconds
        outcome: ``verified`` or the error type that rejected the attempt
    """
    if verification_counter is None or request_duration is None:
        return

    verification_counter.add(1, {
        "operation": "verify_challenge",
        "success": str(success).lower(),
        "outcome": outcome
    })
    request_duration.record(processing_time, {"operation": "verify_challenge"})


def record_token_rejection(reason: str) -> None:
    """Count a bearer credential rejected by the access gate."""
    if token_rejection_counter is None:
        return
    token_rejection_counter.add(1, {"reason": reason})


def get_trace_context() -> Dict[str, Any]:
    """
    Get current trace context information.

    Returns:
        Dict with trace ID and span ID if available
    """
    current_span = trace.get_current_span()
    if current_span is None or not current_span.is_recording():
        return {}

    span_context = current_span.get_span_context()
    return {
        "trace_id": f"{span_context.trace_id:032x}",
        "span_id": f"{span_context.span_id:016x}",
        "trace_flags": int(span_context.trace_flags)
    }


class TracingContextMiddleware:
    """
    Middleware to add tracing context to structured logs.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        trace_context = get_trace_context()
        if trace_context:
            structlog.contextvars.bind_contextvars(**trace_context)

        await self.app(scope, receive, send)
