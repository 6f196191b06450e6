"""
Catalog domain types.

NewCatalogRecord is the insert schema every resolved candidate must pass
before it reaches a store; CatalogRecord is what a store hands back.
CandidateOutcome subclasses tag why each extracted candidate did or did not
become a record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_AUTHOR = "Unknown"


class BookMetadata(BaseModel):
    categories: Optional[List[str]] = None
    published_date: Optional[str] = None
    publisher: Optional[str] = None


class NewCatalogRecord(BaseModel):
    """Validated shape of a record about to be persisted."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    isbn: Optional[str] = None
    cover_url: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = Field(None, ge=0)
    external_id: Optional[str] = None
    metadata: BookMetadata = Field(default_factory=BookMetadata)


class CatalogRecord(NewCatalogRecord):
    id: int
    owner_id: str
    batch_id: str
    created_at: datetime


class Candidate(BaseModel):
    """A raw (title, author?) guess read off the photo."""

    title: str = Field(..., min_length=1)
    author: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("author")
    @classmethod
    def _blank_author_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def search_query(self) -> str:
        return f"{self.title} {self.author or ''}".strip()


class ExtractionResult(BaseModel):
    candidates: List[Candidate] = Field(default_factory=list)


@dataclass(frozen=True)
class CandidateMetadata:
    """One ranked catalog hit, kept close to the upstream volume payload."""

    external_id: str
    volume_info: Dict[str, Any]

    @classmethod
    def from_volume(cls, item: Dict[str, Any]) -> "CandidateMetadata":
        return cls(external_id=str(item.get("id") or ""), volume_info=dict(item.get("volumeInfo") or {}))

    @property
    def title(self) -> Optional[str]:
        return self.volume_info.get("title")

    def to_record_payload(self) -> Dict[str, Any]:
        """Map the volume onto the NewCatalogRecord shape (not yet validated)."""
        info = self.volume_info
        authors = info.get("authors") or []
        identifiers = info.get("industryIdentifiers") or []
        isbn = identifiers[0].get("identifier") if identifiers and isinstance(identifiers[0], dict) else None
        image_links = info.get("imageLinks") or {}
        return {
            "title": info.get("title"),
            "author": authors[0] if authors else UNKNOWN_AUTHOR,
            "isbn": isbn,
            "cover_url": image_links.get("thumbnail") if isinstance(image_links, dict) else None,
            "description": info.get("description"),
            "page_count": info.get("pageCount"),
            "external_id": self.external_id or None,
            "metadata": {
                "categories": info.get("categories"),
                "published_date": info.get("publishedDate"),
                "publisher": info.get("publisher"),
            },
        }

    def to_new_record(self) -> NewCatalogRecord:
        """Mapped and validated; raises pydantic.ValidationError."""
        return NewCatalogRecord.model_validate(self.to_record_payload())


# ── per-candidate outcomes ────────────────────────────────────────────────────

@dataclass(frozen=True)
class CandidateOutcome:
    candidate: Candidate
    kind = "unknown"

    @property
    def reason(self) -> str:
        return self.kind


@dataclass(frozen=True)
class Resolved(CandidateOutcome):
    record: CatalogRecord
    kind = "resolved"


@dataclass(frozen=True)
class NoMatch(CandidateOutcome):
    query: str = ""
    kind = "no_match"


@dataclass(frozen=True)
class ValidationFailed(CandidateOutcome):
    errors: str = ""
    kind = "validation_failed"

    @property
    def reason(self) -> str:
        return f"{self.kind}: {self.errors}" if self.errors else self.kind


@dataclass(frozen=True)
class ResolutionError(CandidateOutcome):
    error: str = ""
    kind = "resolution_error"

    @property
    def reason(self) -> str:
        return f"{self.kind}: {self.error}" if self.error else self.kind


@dataclass(frozen=True)
class QuotaRejected(CandidateOutcome):
    kind = "quota_rejected"


@dataclass
class IngestionResult:
    batch_id: str
    records: List[CatalogRecord]
    outcomes: List[CandidateOutcome]

    @property
    def dropped(self) -> List[CandidateOutcome]:
        return [o for o in self.outcomes if not isinstance(o, Resolved)]
