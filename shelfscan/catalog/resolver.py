"""
Catalog resolver: free-text book search and single-volume lookup against the
Google Books API.

Results are returned in upstream rank order and are not cached here. The
ingestion pipeline always keeps the first hit, so an ambiguous title or a
common author name resolves to whatever Google ranks first.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from shelfscan.catalog.models import CandidateMetadata
from shelfscan.errors import NotFound, ResolutionFailed
from shelfscan.log import get_logger
from shelfscan.observability.metrics import metrics

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://www.googleapis.com/books/v1"


class CatalogResolver(ABC):
    @abstractmethod
    def search(self, query: str) -> List[CandidateMetadata]:
        """Ranked candidates for *query*; an empty list means no match."""

    @abstractmethod
    def get_by_id(self, external_id: str) -> Dict[str, Any]:
        """Full upstream record for *external_id*; raises NotFound."""


class GoogleBooksResolver(CatalogResolver):
    def __init__(
        self,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        max_results: int = 5,
        timeout_seconds: int = 15,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.max_results = max(1, int(max_results))
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, catalog_settings) -> "GoogleBooksResolver":
        return cls(
            api_key=catalog_settings.api_key,
            base_url=catalog_settings.base_url,
            max_results=catalog_settings.max_results,
            timeout_seconds=catalog_settings.timeout_seconds,
        )

    def _params(self, **extra: str) -> Dict[str, str]:
        params = dict(extra)
        if self.api_key:
            params["key"] = self.api_key
        return params

    def search(self, query: str) -> List[CandidateMetadata]:
        query = (query or "").strip()
        if not query:
            return []
        url = f"{self.base_url}/volumes"
        start = time.perf_counter()
        try:
            resp = self._session.get(
                url,
                params=self._params(q=query, maxResults=str(self.max_results)),
                timeout=self.timeout_seconds,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.RequestException as e:
            metrics.catalog_requests_total.labels(operation="search", status="error").inc()
            logger.warning("Google Books search failed for %r: %s", query, e)
            raise ResolutionFailed(f"Google Books API error: {e}") from e
        except ValueError as e:
            metrics.catalog_requests_total.labels(operation="search", status="error").inc()
            raise ResolutionFailed("Google Books returned invalid JSON") from e
        finally:
            metrics.catalog_duration_seconds.labels(operation="search").observe(time.perf_counter() - start)

        items = (data.get("items") or []) if isinstance(data, dict) else []
        results = [CandidateMetadata.from_volume(item) for item in items if isinstance(item, dict)]
        results = results[: self.max_results]
        metrics.catalog_requests_total.labels(
            operation="search", status="hit" if results else "miss"
        ).inc()
        logger.debug("Google Books search %r -> %d result(s)", query, len(results))
        return results

    def get_by_id(self, external_id: str) -> Dict[str, Any]:
        external_id = (external_id or "").strip()
        if not external_id:
            raise NotFound("Book not found")
        url = f"{self.base_url}/volumes/{quote(external_id, safe='')}"
        start = time.perf_counter()
        try:
            resp = self._session.get(url, params=self._params(), timeout=self.timeout_seconds)
            resp.raise_for_status()
            data = resp.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            metrics.catalog_requests_total.labels(operation="get_by_id", status="error").inc()
            logger.warning("Google Books lookup failed for %s: %s", external_id, e)
            raise NotFound("Book not found") from e
        finally:
            metrics.catalog_duration_seconds.labels(operation="get_by_id").observe(time.perf_counter() - start)
        metrics.catalog_requests_total.labels(operation="get_by_id", status="hit").inc()
        return data
