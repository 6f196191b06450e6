"""
Shared fixtures: stub vision / catalog clients, fixed clock, in-memory
stores and a TestClient wired through build_services.
"""

import sys
import threading
from datetime import datetime, timedelta
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from shelfscan.catalog.models import Candidate, CandidateMetadata, ExtractionResult
from shelfscan.catalog.quota import QuotaLedger
from shelfscan.catalog.resolver import CatalogResolver
from shelfscan.catalog.store import InMemoryRecordStore
from shelfscan.catalog.vision import VisionExtractor
from shelfscan.errors import NotFound, ResolutionFailed


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StubExtractor(VisionExtractor):
    def __init__(self, books=None, error: Exception | None = None):
        self.books = list(books or [])
        self.error = error
        self.calls = 0

    def extract(self, image, content_type="image/jpeg"):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ExtractionResult(candidates=[Candidate(title=t, author=a) for t, a in self.books])


class StubResolver(CatalogResolver):
    """Answers from a query -> [volume] table; queries in ``failing`` raise."""

    def __init__(self, volumes=None, failing=(), details=None):
        self.volumes = dict(volumes or {})
        self.failing = set(failing)
        self.details = dict(details or {})
        self.queries = []
        self._lock = threading.Lock()

    def search(self, query):
        with self._lock:
            self.queries.append(query)
        if query in self.failing:
            raise ResolutionFailed(f"Google Books API error: boom for {query}")
        return [CandidateMetadata.from_volume(v) for v in self.volumes.get(query, [])]

    def get_by_id(self, external_id):
        if external_id not in self.details:
            raise NotFound("Book not found")
        return self.details[external_id]


def volume(volume_id, title, authors=("Some Author",), **info):
    """A Google Books volume payload."""
    volume_info = {"title": title}
    if authors is not None:
        volume_info["authors"] = list(authors)
    volume_info.update(info)
    return {"id": volume_id, "volumeInfo": volume_info}


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 15, 12, 0, 0))


@pytest.fixture
def memory_store(clock):
    return InMemoryRecordStore(clock=clock)


@pytest.fixture
def ledger(memory_store, clock):
    return QuotaLedger(memory_store, monthly_limit=50, clock=clock)


@pytest.fixture
def shelf_books():
    return [("Dune", "Frank Herbert"), ("Emma", "Jane Austen"), ("Zzyzx Unknowable", None)]


@pytest.fixture
def shelf_resolver():
    return StubResolver(
        volumes={
            "Dune Frank Herbert": [
                volume("dune-1", "Dune", ("Frank Herbert",), pageCount=412,
                       industryIdentifiers=[{"type": "ISBN_13", "identifier": "9780441013593"}],
                       imageLinks={"thumbnail": "http://covers/dune.jpg"},
                       categories=["Fiction"], publisher="Ace", publishedDate="1965"),
                volume("dune-2", "Dune Messiah", ("Frank Herbert",)),
            ],
            "Emma Jane Austen": [volume("emma-1", "Emma", ("Jane Austen",))],
        },
        details={"dune-1": {"id": "dune-1", "volumeInfo": {"title": "Dune"}}},
    )


@pytest.fixture
def test_settings():
    from config.settings import Settings

    cfg = Settings()
    cfg.storage.backend = "memory"
    cfg.quota.monthly_limit = 50
    cfg.quota.strict = False
    cfg.catalog.max_parallel = 4
    cfg.rate_limit.api_limit = 1000
    cfg.rate_limit.upload_limit = 1000
    cfg.upload.max_image_bytes = 1024
    cfg.billing.enforce_subscription = True
    cfg.billing.webhook_secret = "whsec-test"
    return cfg


@pytest.fixture
def services(test_settings, shelf_books, shelf_resolver, clock):
    from shelfscan.api.server import build_services

    return build_services(
        test_settings,
        extractor=StubExtractor(shelf_books),
        resolver=shelf_resolver,
        clock=clock,
    )


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient
    from shelfscan.api.server import create_app

    return TestClient(create_app(services))


def auth_headers(owner: str) -> dict:
    from shelfscan.auth import create_token

    return {"Authorization": f"Bearer {create_token(owner)}"}


@pytest.fixture
def alice(services):
    """Subscribed owner's auth headers."""
    services.entitlements.upsert("alice", "active")
    return auth_headers("alice")
