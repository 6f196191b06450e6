"""
API response models.

Field names are snake_case in Python and camelCase on the wire
(``cover_url`` -> ``coverUrl``, ``batch_id`` -> ``uploadId``).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shelfscan.catalog.models import CandidateOutcome, CatalogRecord


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookMetadataOut(_CamelModel):
    categories: Optional[List[str]] = None
    published_date: Optional[str] = None
    publisher: Optional[str] = None


class BookOut(_CamelModel):
    """One catalogued book"""

    id: int
    title: str
    author: str
    isbn: Optional[str] = None
    cover_url: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    external_id: Optional[str] = None
    metadata: BookMetadataOut = Field(default_factory=BookMetadataOut)
    upload_id: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: CatalogRecord) -> "BookOut":
        return cls(
            id=record.id,
            title=record.title,
            author=record.author,
            isbn=record.isbn,
            cover_url=record.cover_url,
            description=record.description,
            page_count=record.page_count,
            external_id=record.external_id,
            metadata=BookMetadataOut(**record.metadata.model_dump()),
            upload_id=record.batch_id,
            created_at=record.created_at,
        )


class DroppedCandidateOut(_CamelModel):
    """An extracted title that did not become a record"""

    title: str
    author: Optional[str] = None
    reason: str

    @classmethod
    def from_outcome(cls, outcome: CandidateOutcome) -> "DroppedCandidateOut":
        return cls(title=outcome.candidate.title, author=outcome.candidate.author, reason=outcome.reason)


class AnalyzeResponse(_CamelModel):
    books: List[BookOut]
    upload_id: str
    dropped: List[DroppedCandidateOut] = Field(default_factory=list)


class SubscriptionResponse(_CamelModel):
    is_subscribed: bool
    subscription: Optional[Dict[str, Any]] = None


class WebhookAck(BaseModel):
    received: bool = True
