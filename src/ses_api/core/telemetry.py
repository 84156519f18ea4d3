"""OpenTelemetry tracing setup."""

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

if TYPE_CHECKING:
    from fastapi import FastAPI

from ses_api import __version__
from ses_api.core.config import Settings

logger = logging.getLogger(__name__)


def setup_telemetry(app: "FastAPI", settings: Settings) -> None:
    """Install a tracer provider and instrument the FastAPI app.

    Development builds only print spans to the console, and only in debug
    mode; other environments export over OTLP/gRPC.

    Args:
        app: FastAPI application instance
        settings: Application settings
    """
    if not settings.otel_enabled:
        logger.info("OpenTelemetry disabled")
        return

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)

    if settings.environment == "development":
        if settings.debug:
            provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    else:
        try:
            exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_endpoint)
            provider.add_span_processor(BatchSpanProcessor(exporter))
        except Exception as e:
            logger.warning(f"Failed to configure OTLP exporter: {e}")

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)

    logger.info(
        f"OpenTelemetry configured: service={settings.otel_service_name}, "
        f"environment={settings.environment}"
    )


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for the given module name (typically ``__name__``)."""
    return trace.get_tracer(name)
