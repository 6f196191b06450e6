"""
Observability: OpenTelemetry tracing + Prometheus metrics.

Usage:
    from shelfscan.observability import setup_observability, metrics, tracer

    setup_observability(app)

    with tracer.start_as_current_span("ingest.resolve"):
        ...

    metrics.ingest_batches_total.labels(status="success").inc()
"""

from shelfscan.observability.setup import setup_observability
from shelfscan.observability.metrics import metrics
from shelfscan.observability.tracing import tracer

__all__ = ["setup_observability", "metrics", "tracer"]
