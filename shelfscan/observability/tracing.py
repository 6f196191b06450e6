"""
OpenTelemetry tracing setup.

Global tracer for application code:
    from shelfscan.observability import tracer
    with tracer.start_as_current_span("ingest.extract"):
        ...

Console export is enabled only with SHELFSCAN_TRACE_CONSOLE=1; production
deployments swap in an OTLP exporter.
"""

import os

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource

from shelfscan import __version__

_resource = Resource.create({"service.name": "shelfscan", "service.version": __version__})

_provider = TracerProvider(resource=_resource)

if os.getenv("SHELFSCAN_TRACE_CONSOLE", "0") == "1":
    _provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

trace.set_tracer_provider(_provider)

tracer = trace.get_tracer("shelfscan", __version__)
