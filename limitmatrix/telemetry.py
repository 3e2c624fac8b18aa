"""OpenTelemetry configuration for the limits matrix service."""

import os
import sys

from opentelemetry import metrics, trace
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from prometheus_client import start_http_server

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)

METRICS_PORT = 9464


def setup_telemetry(app) -> bool:
    """Configure tracing and metrics for the FastAPI application.

    Returns True when instrumentation was installed.
    """
    if not settings.enable_telemetry:
        return False

    if "pytest" in sys.modules or os.getenv("TESTING"):
        logger.info("Skipping OpenTelemetry setup during tests")
        return False

    try:
        prometheus_reader = PrometheusMetricReader()
        metrics.set_meter_provider(MeterProvider(metric_readers=[prometheus_reader]))

        metrics_port = METRICS_PORT
        try:
            start_http_server(metrics_port)
        except OSError:
            metrics_port += 1
            start_http_server(metrics_port)
        logger.info("Prometheus metrics server started", port=metrics_port)

        trace.set_tracer_provider(TracerProvider())
        tracer_provider = trace.get_tracer_provider()
        # Console exporter until an OTLP collector is deployed
        tracer_provider.add_span_processor(  # type: ignore[attr-defined]
            BatchSpanProcessor(ConsoleSpanExporter())
        )

        FastAPIInstrumentor.instrument_app(app)
        HTTPXClientInstrumentor().instrument()
        SQLAlchemyInstrumentor().instrument()
        logger.info("OpenTelemetry tracing and metrics setup completed")
        return True

    except Exception as e:
        # Telemetry is optional; the service keeps running without it
        logger.error("Failed to setup OpenTelemetry", error=str(e))
        return False
