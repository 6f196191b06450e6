"""
FastAPI entry point - book cataloging API.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import Settings, settings
from shelfscan import __version__
from shelfscan.api.deps import Services
from shelfscan.api.routes_billing import router as billing_router
from shelfscan.api.routes_export import router as export_router
from shelfscan.api.routes_health import router as health_router
from shelfscan.api.routes_ingest import router as ingest_router
from shelfscan.api.routes_records import router as records_router
from shelfscan.billing.store import InMemoryEntitlementStore, SqlEntitlementStore
from shelfscan.catalog.pipeline import IngestionPipeline
from shelfscan.catalog.quota import QuotaLedger
from shelfscan.catalog.resolver import CatalogResolver, GoogleBooksResolver
from shelfscan.catalog.store import InMemoryRecordStore, SqlRecordStore
from shelfscan.catalog.vision import OpenAIVisionExtractor, VisionExtractor
from shelfscan.errors import RateLimited, ShelfscanError
from shelfscan.log import cleanup_logs, get_logger
from shelfscan.observability import setup_observability
from shelfscan.utils.limiter import SlidingWindowRateLimiter

logger = get_logger(__name__)

_DEFAULT_SECRET = "change-me-in-local"


def build_services(
    cfg: Settings = settings,
    *,
    engine=None,
    extractor: Optional[VisionExtractor] = None,
    resolver: Optional[CatalogResolver] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> Services:
    """Wire stores, clients and limiters from configuration.

    The storage backend is chosen here once; nothing downstream switches on it.
    """
    backend = cfg.storage.backend
    if backend == "sql":
        from shelfscan.db.engine import get_engine, init_db
        engine = engine or get_engine()
        init_db(engine)
        store = SqlRecordStore(engine, clock=clock)
        entitlements = SqlEntitlementStore(engine, clock=clock)
    elif backend == "memory":
        store = InMemoryRecordStore(clock=clock)
        entitlements = InMemoryEntitlementStore(clock=clock)
    else:
        raise ValueError(f"unknown storage backend {backend!r} (expected 'sql' or 'memory')")

    extractor = extractor or OpenAIVisionExtractor.from_settings(cfg.vision)
    resolver = resolver or GoogleBooksResolver.from_settings(cfg.catalog)
    ledger = QuotaLedger(store, cfg.quota.monthly_limit, clock=clock)
    pipeline = IngestionPipeline(
        extractor,
        resolver,
        store,
        ledger,
        max_parallel=cfg.catalog.max_parallel,
        strict_quota=cfg.quota.strict,
        clock=clock,
    )
    rl = cfg.rate_limit
    logger.info("[startup] storage=%s strict_quota=%s", backend, cfg.quota.strict)
    return Services(
        store=store,
        entitlements=entitlements,
        resolver=resolver,
        ledger=ledger,
        pipeline=pipeline,
        api_limiter=SlidingWindowRateLimiter(rl.api_limit, rl.api_window_seconds),
        upload_limiter=SlidingWindowRateLimiter(
            rl.upload_limit,
            rl.upload_window_seconds,
            message="Too many uploads, please try again later",
        ),
        max_image_bytes=cfg.upload.max_image_bytes,
        enforce_subscription=cfg.billing.enforce_subscription,
        webhook_secret=cfg.billing.webhook_secret,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: secret check, then wire services unless the caller injected them."""
    if settings.auth.secret_key == _DEFAULT_SECRET:
        logger.warning(
            "[startup] SECURITY WARNING: auth.secret_key is still the default value '%s'. "
            "Set it to the identity provider's signing key in "
            "config/shelfscan_config.local.json or SHELFSCAN_AUTH_SECRET.",
            _DEFAULT_SECRET,
        )
    if not settings.billing.webhook_secret:
        logger.warning("[startup] billing.webhook_secret is empty; webhook calls will be rejected")

    try:
        report = cleanup_logs()
        deleted = len(report["deleted_by_age"]) + len(report["deleted_by_size"])
        if deleted:
            logger.info("[startup] removed %d old log file(s), %.1f MB kept", deleted, report["remaining_mb"])
    except OSError as e:
        logger.warning("[startup] log cleanup failed: %s", e)

    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)
    yield


async def _handle_shelfscan_error(request: Request, exc: ShelfscanError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    headers = None
    if isinstance(exc, RateLimited) and isinstance(exc.detail, dict):
        headers = {"Retry-After": str(exc.detail.get("retry_after", 1))}
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title="shelfscan API",
        description="Catalog a bookshelf from a photo",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ShelfscanError, _handle_shelfscan_error)

    app.include_router(health_router)
    app.include_router(billing_router)
    app.include_router(ingest_router)
    app.include_router(records_router)
    app.include_router(export_router)

    # Observability: middleware + /metrics
    setup_observability(app)
    return app


app = create_app()
