"""
One-shot observability wiring: middleware + /metrics endpoint + app info.
"""

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from shelfscan import __version__
from shelfscan.observability.middleware import ObservabilityMiddleware
from shelfscan.observability.metrics import metrics
from shelfscan.log import get_logger

logger = get_logger(__name__)


def setup_observability(app: FastAPI) -> None:
    """
    Mount observability on a FastAPI app.

    Call after routers are registered and before startup.
    """
    app.add_middleware(ObservabilityMiddleware)

    @app.get("/metrics", include_in_schema=False)
    def prometheus_metrics():
        return PlainTextResponse(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
        )

    metrics.app_info.info({"version": __version__, "service": "shelfscan"})

    logger.info("[observability] middleware + /metrics registered")
