"""
FastAPI middleware: HTTP latency / count / status metrics plus a trace span
per request.
"""

import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from shelfscan.observability.metrics import metrics
from shelfscan.observability.tracing import tracer


def _normalize_path(path: str) -> str:
    """
    Replace dynamic ids in the path with a placeholder to keep label
    cardinality bounded.
    e.g. /api/books/42/details -> /api/books/{id}/details
    """
    parts = path.strip("/").split("/")
    normalized = []
    skip_next = False
    for part in parts:
        if skip_next:
            normalized.append("{id}")
            skip_next = False
            continue
        normalized.append(part)
        if part in ("books", "uploads") and part != parts[-1]:
            skip_next = True
    # /api/books/search is a route, not an id
    if len(parts) >= 3 and parts[-1] == "search" and parts[-2] == "books":
        normalized[-1] = "search"
    return "/" + "/".join(normalized)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Record latency and count per HTTP request and open a trace span."""

    async def dispatch(self, request: Request, call_next):
        method = request.method
        path = _normalize_path(request.url.path)

        if request.url.path in ("/metrics", "/api/health"):
            return await call_next(request)

        with tracer.start_as_current_span(
            f"{method} {path}",
            attributes={"http.method": method, "http.url": str(request.url)},
        ) as span:
            start = time.perf_counter()
            response: Response = await call_next(request)
            elapsed = time.perf_counter() - start

            status_code = str(response.status_code)
            span.set_attribute("http.status_code", response.status_code)

            metrics.http_requests_total.labels(
                method=method, endpoint=path, status_code=status_code
            ).inc()
            metrics.http_request_duration_seconds.labels(
                method=method, endpoint=path
            ).observe(elapsed)

            return response
