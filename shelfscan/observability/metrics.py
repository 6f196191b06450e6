"""
Prometheus metric definitions.

All custom metrics live here; modules use them via
`from shelfscan.observability.metrics import metrics`.
"""

from prometheus_client import Counter, Histogram, Info


class _Metrics:
    """Central registry of application metrics"""

    def __init__(self):
        # ── HTTP ──
        self.http_requests_total = Counter(
            "shelfscan_http_requests_total",
            "HTTP requests",
            ["method", "endpoint", "status_code"],
        )
        self.http_request_duration_seconds = Histogram(
            "shelfscan_http_request_duration_seconds",
            "HTTP request latency (seconds)",
            ["method", "endpoint"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
        )
        self.rate_limited_total = Counter(
            "shelfscan_rate_limited_total",
            "Requests rejected by a rate limiter",
            ["limiter"],  # api / upload
        )

        # ── Vision model ──
        self.vision_requests_total = Counter(
            "shelfscan_vision_requests_total",
            "Vision model calls",
            ["model"],
        )
        self.vision_duration_seconds = Histogram(
            "shelfscan_vision_duration_seconds",
            "Vision model latency (seconds)",
            ["model"],
            buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0),
        )
        self.vision_errors_total = Counter(
            "shelfscan_vision_errors_total",
            "Vision model failures",
            ["model"],
        )

        # ── Catalog ──
        self.catalog_requests_total = Counter(
            "shelfscan_catalog_requests_total",
            "Catalog API calls",
            ["operation", "status"],  # status: hit / miss / error
        )
        self.catalog_duration_seconds = Histogram(
            "shelfscan_catalog_duration_seconds",
            "Catalog API latency (seconds)",
            ["operation"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0),
        )

        # ── Ingest ──
        self.ingest_batches_total = Counter(
            "shelfscan_ingest_batches_total",
            "Ingestion batches",
            ["status"],  # success / extraction_failed / quota_exceeded / storage_error / invalid
        )
        self.ingest_duration_seconds = Histogram(
            "shelfscan_ingest_duration_seconds",
            "End-to-end ingestion latency (seconds)",
            buckets=(1, 2.5, 5, 10, 30, 60, 120, 300),
        )
        self.ingest_candidates_total = Counter(
            "shelfscan_ingest_candidates_total",
            "Extracted candidates by outcome",
            ["outcome"],  # resolved / no_match / validation_failed / resolution_error / quota_rejected
        )
        self.undo_total = Counter(
            "shelfscan_undo_total",
            "Upload batches undone",
        )

        # ── System ──
        self.app_info = Info(
            "shelfscan_app",
            "Application metadata",
        )


# singleton
metrics = _Metrics()
