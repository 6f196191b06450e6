"""
Record store: owner-scoped persistence of catalogued books.

Two implementations share the RecordStore interface and are picked once at
startup (see shelfscan.api.server.build_services):

  - SqlRecordStore       SQLModel over the configured database (default)
  - InMemoryRecordStore  process-local dict, for development and tests

Every operation takes the owner explicitly. A record that exists but belongs
to someone else is indistinguishable from a missing one.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from shelfscan.catalog.models import CatalogRecord, NewCatalogRecord
from shelfscan.db.models import BookRow
from shelfscan.errors import QuotaExceeded, StorageError
from shelfscan.log import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class QuotaGuard:
    """Write-time quota check: at most ``limit`` rows created since ``since``."""

    limit: int
    since: datetime


def _newest_first(records: List[CatalogRecord]) -> List[CatalogRecord]:
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)


class RecordStore(ABC):

    @abstractmethod
    def create(
        self,
        record: NewCatalogRecord,
        batch_id: str,
        owner: str,
        *,
        quota: Optional[QuotaGuard] = None,
    ) -> CatalogRecord:
        """Persist *record*; assigns id and created_at."""

    @abstractmethod
    def get_by_id(self, record_id: int, owner: str) -> Optional[CatalogRecord]:
        """None when absent or owned by someone else."""

    @abstractmethod
    def list_by_owner(self, owner: str) -> List[CatalogRecord]:
        """All of owner's records, newest first."""

    @abstractmethod
    def delete_by_id(self, record_id: int, owner: str) -> bool:
        """True if a row was removed; absent/foreign ids are a no-op."""

    @abstractmethod
    def delete_by_batch(self, batch_id: str, owner: str) -> int:
        """Remove every row of (owner, batch_id) atomically; returns the count."""

    @abstractmethod
    def search_by_text(self, query: str, owner: str) -> List[CatalogRecord]:
        """Case-insensitive substring match on title or author."""

    @abstractmethod
    def count_since(self, owner: str, since: datetime) -> int:
        """Rows of owner with created_at >= since."""


class InMemoryRecordStore(RecordStore):
    def __init__(self, clock: Clock = datetime.now):
        self._clock = clock
        self._rows: Dict[int, CatalogRecord] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def create(self, record, batch_id, owner, *, quota=None):
        with self._lock:
            if quota is not None:
                used = self.count_since(owner, quota.since)
                if used + 1 > quota.limit:
                    raise QuotaExceeded(quota.limit, used, 1)
            stored = CatalogRecord(
                **record.model_dump(),
                id=self._next_id,
                owner_id=owner,
                batch_id=batch_id,
                created_at=self._clock(),
            )
            self._rows[stored.id] = stored
            self._next_id += 1
        logger.debug("created book id=%s owner=%s batch=%s", stored.id, owner, batch_id)
        return stored

    def get_by_id(self, record_id, owner):
        with self._lock:
            rec = self._rows.get(record_id)
        return rec if rec is not None and rec.owner_id == owner else None

    def list_by_owner(self, owner):
        with self._lock:
            rows = [r for r in self._rows.values() if r.owner_id == owner]
        return _newest_first(rows)

    def delete_by_id(self, record_id, owner):
        with self._lock:
            rec = self._rows.get(record_id)
            if rec is None or rec.owner_id != owner:
                return False
            del self._rows[record_id]
        return True

    def delete_by_batch(self, batch_id, owner):
        with self._lock:
            ids = [i for i, r in self._rows.items() if r.batch_id == batch_id and r.owner_id == owner]
            for i in ids:
                del self._rows[i]
        logger.info("deleted %d books from upload %s for owner %s", len(ids), batch_id, owner)
        return len(ids)

    def search_by_text(self, query, owner):
        needle = (query or "").lower()
        with self._lock:
            rows = [
                r for r in self._rows.values()
                if r.owner_id == owner and (needle in r.title.lower() or needle in r.author.lower())
            ]
        return _newest_first(rows)

    def count_since(self, owner, since):
        with self._lock:
            return sum(1 for r in self._rows.values() if r.owner_id == owner and r.created_at >= since)


class SqlRecordStore(RecordStore):
    # serialises count-then-insert when a QuotaGuard is supplied
    _quota_lock = threading.Lock()

    def __init__(self, engine: Engine, clock: Clock = datetime.now):
        self._engine = engine
        self._clock = clock

    def _count_since(self, session: Session, owner: str, since: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(BookRow)
            .where(BookRow.owner_id == owner)
            .where(BookRow.created_at >= since)
        )
        return int(session.exec(stmt).one())

    def _insert(self, record: NewCatalogRecord, batch_id: str, owner: str, quota: Optional[QuotaGuard]) -> CatalogRecord:
        with Session(self._engine) as session:
            if quota is not None:
                used = self._count_since(session, owner, quota.since)
                if used + 1 > quota.limit:
                    raise QuotaExceeded(quota.limit, used, 1)
            row = BookRow.from_new(record, batch_id, owner, self._clock())
            session.add(row)
            session.commit()
            session.refresh(row)
            return row.to_record()

    def create(self, record, batch_id, owner, *, quota=None):
        try:
            if quota is None:
                stored = self._insert(record, batch_id, owner, None)
            else:
                with self._quota_lock:
                    stored = self._insert(record, batch_id, owner, quota)
        except SQLAlchemyError as e:
            logger.error("create book failed owner=%s batch=%s: %s", owner, batch_id, e)
            raise StorageError(f"failed to save book: {e}") from e
        logger.debug("created book id=%s owner=%s batch=%s", stored.id, owner, batch_id)
        return stored

    def get_by_id(self, record_id, owner):
        try:
            with Session(self._engine) as session:
                row = session.get(BookRow, record_id)
                if row is None or row.owner_id != owner:
                    return None
                return row.to_record()
        except SQLAlchemyError as e:
            raise StorageError(f"failed to load book: {e}") from e

    def list_by_owner(self, owner):
        stmt = (
            select(BookRow)
            .where(BookRow.owner_id == owner)
            .order_by(BookRow.created_at.desc(), BookRow.id.desc())
        )
        try:
            with Session(self._engine) as session:
                rows = session.exec(stmt).all()
                return [r.to_record() for r in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"failed to list books: {e}") from e

    def delete_by_id(self, record_id, owner):
        try:
            with Session(self._engine) as session:
                row = session.get(BookRow, record_id)
                if row is None or row.owner_id != owner:
                    return False
                session.delete(row)
                session.commit()
            return True
        except SQLAlchemyError as e:
            raise StorageError(f"failed to delete book: {e}") from e

    def delete_by_batch(self, batch_id, owner):
        stmt = (
            select(BookRow)
            .where(BookRow.batch_id == batch_id)
            .where(BookRow.owner_id == owner)
        )
        try:
            with Session(self._engine) as session:
                rows = session.exec(stmt).all()
                count = len(rows)
                for row in rows:
                    session.delete(row)
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"failed to undo upload: {e}") from e
        logger.info("deleted %d books from upload %s for owner %s", count, batch_id, owner)
        return count

    def search_by_text(self, query, owner):
        needle = (query or "").lower()
        stmt = (
            select(BookRow)
            .where(BookRow.owner_id == owner)
            .where(
                func.lower(BookRow.title).contains(needle, autoescape=True)
                | func.lower(BookRow.author).contains(needle, autoescape=True)
            )
            .order_by(BookRow.created_at.desc(), BookRow.id.desc())
        )
        try:
            with Session(self._engine) as session:
                return [r.to_record() for r in session.exec(stmt).all()]
        except SQLAlchemyError as e:
            raise StorageError(f"failed to search books: {e}") from e

    def count_since(self, owner, since):
        try:
            with Session(self._engine) as session:
                return self._count_since(session, owner, since)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to count books: {e}") from e
