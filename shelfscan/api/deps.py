"""
FastAPI dependencies: service container access, owner identity,
entitlement gate and per-IP rate limits.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, Request

from shelfscan.auth.session import verify_token
from shelfscan.billing.store import EntitlementStore
from shelfscan.catalog.pipeline import IngestionPipeline
from shelfscan.catalog.quota import QuotaLedger
from shelfscan.catalog.resolver import CatalogResolver
from shelfscan.catalog.store import RecordStore
from shelfscan.errors import EntitlementRequired, RateLimited, Unauthenticated
from shelfscan.observability.metrics import metrics
from shelfscan.utils.limiter import SlidingWindowRateLimiter


@dataclass
class Services:
    """Everything a request handler needs, wired once at startup."""

    store: RecordStore
    entitlements: EntitlementStore
    resolver: CatalogResolver
    ledger: QuotaLedger
    pipeline: IngestionPipeline
    api_limiter: SlidingWindowRateLimiter
    upload_limiter: SlidingWindowRateLimiter
    max_image_bytes: int
    enforce_subscription: bool
    webhook_secret: str


def get_services(request: Request) -> Services:
    return request.app.state.services


def _get_token_from_header(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


def get_current_owner(authorization: str | None = Header(None)) -> str:
    """Owner id from the bearer token; 401 when missing or invalid."""
    token = _get_token_from_header(authorization)
    owner = verify_token(token) if token else None
    if not owner:
        raise Unauthenticated("Unauthorized")
    return owner


def require_entitlement(
    owner: str = Depends(get_current_owner),
    services: Services = Depends(get_services),
) -> str:
    if services.enforce_subscription and not services.entitlements.is_active(owner):
        raise EntitlementRequired()
    return owner


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


def _check(limiter: SlidingWindowRateLimiter, name: str, request: Request) -> None:
    try:
        limiter.check(client_ip(request))
    except RateLimited:
        metrics.rate_limited_total.labels(limiter=name).inc()
        raise


def api_rate_limit(request: Request, services: Services = Depends(get_services)) -> None:
    _check(services.api_limiter, "api", request)


def upload_rate_limit(
    request: Request,
    owner: str = Depends(require_entitlement),
    services: Services = Depends(get_services),
) -> str:
    """Upload budget, spent only by admitted owners; returns the owner."""
    _check(services.upload_limiter, "upload", request)
    return owner
