"""
SQLModel table definitions.

Design rules (SQLModel compatibility):
  - primary_key=True / index=True are set in Field() only, never combined
    with sa_column (SQLModel raises RuntimeError otherwise).
  - JSON list columns stay as TEXT with Python-side serialization so SQLite
    and PostgreSQL are both supported transparently.
"""

import json
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, Index, Integer, Text
from sqlmodel import Field, SQLModel

from shelfscan.catalog.models import BookMetadata, CatalogRecord, NewCatalogRecord


# ──────────────────────────────────────────────────────────────────────────────
# 1. Books  (one row per catalogued book, per owner)
# ──────────────────────────────────────────────────────────────────────────────

class BookRow(SQLModel, table=True):
    __tablename__ = "books"
    __table_args__ = (
        Index("idx_books_owner_created", "owner_id", "created_at"),
        Index("idx_books_owner_batch", "owner_id", "batch_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: str = Field(index=True)
    batch_id: str = Field(index=True)
    title: str = Field(sa_column=Column(Text, nullable=False))
    author: str = Field(sa_column=Column(Text, nullable=False))
    isbn: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    cover_url: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    page_count: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True))
    external_id: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    categories_json: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    published_date: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    publisher: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=datetime.now, index=True)

    def get_categories(self) -> Optional[List[str]]:
        if self.categories_json is None:
            return None
        try:
            value = json.loads(self.categories_json)
        except ValueError:
            return None
        return value if isinstance(value, list) else None

    @classmethod
    def from_new(cls, record: NewCatalogRecord, batch_id: str, owner_id: str, created_at: datetime) -> "BookRow":
        categories = record.metadata.categories
        return cls(
            owner_id=owner_id,
            batch_id=batch_id,
            title=record.title,
            author=record.author,
            isbn=record.isbn,
            cover_url=record.cover_url,
            description=record.description,
            page_count=record.page_count,
            external_id=record.external_id,
            categories_json=json.dumps(categories, ensure_ascii=False) if categories is not None else None,
            published_date=record.metadata.published_date,
            publisher=record.metadata.publisher,
            created_at=created_at,
        )

    def to_record(self) -> CatalogRecord:
        return CatalogRecord(
            id=self.id or 0,
            owner_id=self.owner_id,
            batch_id=self.batch_id,
            title=self.title,
            author=self.author,
            isbn=self.isbn,
            cover_url=self.cover_url,
            description=self.description,
            page_count=self.page_count,
            external_id=self.external_id,
            metadata=BookMetadata(
                categories=self.get_categories(),
                published_date=self.published_date,
                publisher=self.publisher,
            ),
            created_at=self.created_at,
        )


# ──────────────────────────────────────────────────────────────────────────────
# 2. Subscriptions  (entitlement state, written by the billing webhook)
# ──────────────────────────────────────────────────────────────────────────────

class SubscriptionRow(SQLModel, table=True):
    __tablename__ = "subscriptions"

    owner_id: str = Field(primary_key=True)
    status: str = Field(default="inactive", sa_column=Column(Text, nullable=False, server_default="inactive"))
    customer_id: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    subscription_id: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    current_period_end: Optional[datetime] = Field(default=None)
    updated_at: datetime = Field(default_factory=datetime.now)
