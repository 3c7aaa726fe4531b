"""
OpenTelemetry tracing configuration.

Provides:
- Auto-instrumentation for the FastAPI facade (SSE channels excluded)
- OTLP export (Jaeger / Tempo) when OTEL_EXPORTER_OTLP_ENDPOINT is set

Use cases and controllers open their own spans via `trace.get_tracer(__name__)`.
"""

import os
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON

from src.platform.config.core_setting import settings


# A live channel is open for minutes to hours: one request span per stream is useless
EXCLUDED_URLS = 'health,metrics,/sse'

# The global provider can only be set once per process, lifespans may run many times
_provider: TracerProvider | None = None


class TracingConfig:
    """
    Usage:
        tracing = TracingConfig(service_name='hold-chat-service')
        tracing.setup()     # lifespan startup
        tracing.shutdown()  # lifespan shutdown, flushes pending spans
    """

    def __init__(
        self,
        *,
        service_name: str,
        otlp_endpoint: str | None = None,
        enable_console: bool = False,
    ) -> None:
        self.service_name = service_name
        self.otlp_endpoint = otlp_endpoint or os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
        self.enable_console = (
            enable_console or os.getenv('OTEL_CONSOLE_EXPORT', 'false').lower() == 'true'
        )

    def setup(self) -> None:
        """
        Install the tracer provider (first call only).

        Without an OTLP endpoint or console export, spans are recorded and dropped.
        """
        global _provider
        if _provider is not None:
            return

        resource = Resource(
            attributes={SERVICE_NAME: self.service_name, SERVICE_VERSION: settings.VERSION}
        )
        # Tail-based sampling belongs in the collector
        _provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

        if self.otlp_endpoint:
            _provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=self.otlp_endpoint))
            )
        if self.enable_console:
            _provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(_provider)

    def instrument_fastapi(self, *, app: Any, excluded_urls: str = EXCLUDED_URLS) -> None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded_urls)

    def shutdown(self) -> None:
        if _provider is not None:
            _provider.force_flush()
