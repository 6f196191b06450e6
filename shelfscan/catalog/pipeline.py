"""
Ingestion pipeline: photo -> candidates -> catalog matches -> stored records.

One call to ``IngestionPipeline.run`` is one upload batch:

  1. validate input and mint a batch id
  2. extract candidates from the image (failure aborts, nothing stored)
  3. admit the batch against the monthly quota (all-or-nothing)
  4. resolve, validate and store each candidate independently

Per-candidate failures (no match, catalog error, schema error, strict-mode
quota rejection) drop only that candidate and are reported as tagged
outcomes. A storage fault aborts the whole call; rows already written for
the batch stay and can be removed with ``undo``.
"""

from __future__ import annotations

import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import ValidationError

from shelfscan.catalog.models import (
    Candidate,
    CandidateOutcome,
    IngestionResult,
    NoMatch,
    QuotaRejected,
    Resolved,
    ResolutionError,
    ValidationFailed,
)
from shelfscan.catalog.quota import QuotaLedger
from shelfscan.catalog.resolver import CatalogResolver
from shelfscan.catalog.store import QuotaGuard, RecordStore
from shelfscan.catalog.vision import VisionExtractor
from shelfscan.errors import (
    ExtractionFailed,
    InvalidInput,
    QuotaExceeded,
    ResolutionFailed,
    StorageError,
)
from shelfscan.log import get_logger
from shelfscan.observability.metrics import metrics
from shelfscan.observability.tracing import tracer
from shelfscan.utils.limiter import ConcurrencyLimiter

logger = get_logger(__name__)


def _new_batch_id() -> str:
    return uuid.uuid4().hex


class IngestionPipeline:
    def __init__(
        self,
        extractor: VisionExtractor,
        resolver: CatalogResolver,
        store: RecordStore,
        ledger: QuotaLedger,
        *,
        max_parallel: int = 1,
        strict_quota: bool = False,
        batch_id_factory: Callable[[], str] = _new_batch_id,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.extractor = extractor
        self.resolver = resolver
        self.store = store
        self.ledger = ledger
        self.strict_quota = strict_quota
        self._limiter = ConcurrencyLimiter(max_parallel)
        self._batch_id_factory = batch_id_factory
        self._clock = clock

    # ── per candidate ────────────────────────────────────────────────────────

    def _process_candidate(
        self,
        candidate: Candidate,
        batch_id: str,
        owner: str,
        guard: Optional[QuotaGuard],
    ) -> CandidateOutcome:
        query = candidate.search_query()
        try:
            matches = self._limiter.run(self.resolver.search, query)
        except ResolutionFailed as e:
            return ResolutionError(candidate=candidate, error=str(e))
        if not matches:
            return NoMatch(candidate=candidate, query=query)

        try:
            new_record = matches[0].to_new_record()
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            return ValidationFailed(candidate=candidate, errors=fields)

        try:
            stored = self.store.create(new_record, batch_id, owner, quota=guard)
        except QuotaExceeded:
            return QuotaRejected(candidate=candidate)
        return Resolved(candidate=candidate, record=stored)

    def _resolve_all(
        self,
        candidates: List[Candidate],
        batch_id: str,
        owner: str,
        guard: Optional[QuotaGuard],
    ) -> List[CandidateOutcome]:
        if self._limiter.max_parallel <= 1 or len(candidates) <= 1:
            return [self._process_candidate(c, batch_id, owner, guard) for c in candidates]

        workers = min(self._limiter.max_parallel, len(candidates))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shelfscan-resolve") as pool:
            futures = [
                pool.submit(self._process_candidate, c, batch_id, owner, guard)
                for c in candidates
            ]
            # input order, not completion order; StorageError re-raises here
            return [f.result() for f in futures]

    # ── public ──────────────────────────────────────────────────────────────

    def run(self, image: bytes, owner: str, content_type: str = "image/jpeg") -> IngestionResult:
        if not image:
            metrics.ingest_batches_total.labels(status="invalid").inc()
            raise InvalidInput("No image provided")
        if not owner:
            metrics.ingest_batches_total.labels(status="invalid").inc()
            raise InvalidInput("Owner is required")

        batch_id = self._batch_id_factory()
        start = time.perf_counter()
        logger.info("ingest start batch=%s owner=%s bytes=%d", batch_id, owner, len(image))

        with tracer.start_as_current_span("ingest.run", attributes={"batch_id": batch_id}) as span:
            with tracer.start_as_current_span("ingest.extract"):
                try:
                    extraction = self.extractor.extract(image, content_type)
                except ExtractionFailed:
                    metrics.ingest_batches_total.labels(status="extraction_failed").inc()
                    raise
            candidates = extraction.candidates
            span.set_attribute("candidates", len(candidates))

            now = self._clock()
            with tracer.start_as_current_span("ingest.admission"):
                try:
                    used = self.ledger.check_admission(owner, len(candidates), now=now)
                except QuotaExceeded:
                    metrics.ingest_batches_total.labels(status="quota_exceeded").inc()
                    raise
            logger.info(
                "batch=%s admitted %d candidate(s), %d/%d used this month",
                batch_id, len(candidates), used, self.ledger.monthly_limit,
            )

            guard = self.ledger.guard(now) if self.strict_quota else None
            with tracer.start_as_current_span("ingest.resolve"):
                try:
                    outcomes = self._resolve_all(candidates, batch_id, owner, guard)
                except StorageError:
                    metrics.ingest_batches_total.labels(status="storage_error").inc()
                    logger.error("batch=%s aborted by storage error", batch_id)
                    raise

        records = []
        for outcome in outcomes:
            metrics.ingest_candidates_total.labels(outcome=outcome.kind).inc()
            if isinstance(outcome, Resolved):
                records.append(outcome.record)
            else:
                logger.info("batch=%s dropped %r: %s", batch_id, outcome.candidate.title, outcome.reason)

        metrics.ingest_batches_total.labels(status="success").inc()
        metrics.ingest_duration_seconds.observe(time.perf_counter() - start)
        logger.info(
            "ingest done batch=%s stored=%d dropped=%d",
            batch_id, len(records), len(outcomes) - len(records),
        )
        return IngestionResult(batch_id=batch_id, records=records, outcomes=outcomes)

    def undo(self, batch_id: str, owner: str) -> int:
        """Remove every record of (owner, batch_id). Idempotent."""
        if not batch_id or not owner:
            raise InvalidInput("batch id and owner are required")
        removed = self.store.delete_by_batch(batch_id, owner)
        metrics.undo_total.inc()
        return removed
