"""
Record store behaviour, run against both backends:
- owner isolation (foreign ids look absent)
- newest-first ordering with id tie-break
- batch undo is scoped and idempotent
- substring search over title / author
- write-time quota guard
"""

from datetime import datetime

import pytest

from shelfscan.catalog.models import BookMetadata, NewCatalogRecord
from shelfscan.catalog.store import InMemoryRecordStore, QuotaGuard, SqlRecordStore
from shelfscan.db.engine import create_db_engine, init_db
from shelfscan.errors import QuotaExceeded


def _rec(title="Dune", author="Frank Herbert", **kw) -> NewCatalogRecord:
    return NewCatalogRecord(title=title, author=author, **kw)


@pytest.fixture(params=["memory", "sql"])
def store(request, clock, tmp_path):
    if request.param == "memory":
        return InMemoryRecordStore(clock=clock)
    engine = create_db_engine(f"sqlite:///{tmp_path / 'books.db'}")
    init_db(engine)
    sql_store = SqlRecordStore(engine, clock=clock)
    request.addfinalizer(engine.dispose)
    return sql_store


def test_create_assigns_identity_and_timestamp(store, clock):
    rec = store.create(_rec(isbn="123", metadata=BookMetadata(categories=["Fiction", "SF"])), "b1", "alice")
    assert rec.id > 0
    assert rec.owner_id == "alice"
    assert rec.batch_id == "b1"
    assert rec.created_at == clock.now
    assert rec.metadata.categories == ["Fiction", "SF"]
    assert store.get_by_id(rec.id, "alice") == rec


def test_foreign_record_is_not_found(store):
    rec = store.create(_rec(), "b1", "alice")
    assert store.get_by_id(rec.id, "bob") is None
    assert store.delete_by_id(rec.id, "bob") is False
    assert store.get_by_id(rec.id, "alice") is not None
    assert store.list_by_owner("bob") == []


def test_list_newest_first_with_id_tiebreak(store, clock):
    a = store.create(_rec("A"), "b1", "alice")
    b = store.create(_rec("B"), "b1", "alice")  # same timestamp as A
    clock.advance(minutes=1)
    c = store.create(_rec("C"), "b2", "alice")
    assert [r.id for r in store.list_by_owner("alice")] == [c.id, b.id, a.id]


def test_delete_by_id(store):
    rec = store.create(_rec(), "b1", "alice")
    assert store.delete_by_id(rec.id, "alice") is True
    assert store.get_by_id(rec.id, "alice") is None
    assert store.delete_by_id(rec.id, "alice") is False


def test_delete_by_batch_is_scoped_and_idempotent(store):
    store.create(_rec("A"), "b1", "alice")
    store.create(_rec("B"), "b1", "alice")
    keep_other_batch = store.create(_rec("C"), "b2", "alice")
    keep_other_owner = store.create(_rec("D"), "b1", "bob")

    assert store.delete_by_batch("b1", "alice") == 2
    assert [r.id for r in store.list_by_owner("alice")] == [keep_other_batch.id]
    assert [r.id for r in store.list_by_owner("bob")] == [keep_other_owner.id]

    assert store.delete_by_batch("b1", "alice") == 0
    assert store.delete_by_batch("no-such-batch", "alice") == 0


def test_search_matches_title_or_author_case_insensitively(store):
    dune = store.create(_rec("Dune", "Frank Herbert"), "b1", "alice")
    emma = store.create(_rec("Emma", "Jane Austen"), "b1", "alice")
    store.create(_rec("Dune", "Frank Herbert"), "b1", "bob")

    assert [r.id for r in store.search_by_text("dUNe", "alice")] == [dune.id]
    assert [r.id for r in store.search_by_text("austen", "alice")] == [emma.id]
    assert store.search_by_text("tolkien", "alice") == []


def test_search_treats_wildcards_literally(store):
    store.create(_rec("500 Days", "A. Writer"), "b1", "alice")
    pct = store.create(_rec("Growth by 50%", "B. Writer"), "b1", "alice")
    assert [r.id for r in store.search_by_text("50%", "alice")] == [pct.id]
    assert store.search_by_text("_ays", "alice") == []


def test_count_since(store, clock):
    store.create(_rec("old"), "b1", "alice")
    clock.advance(days=1)
    cutoff = clock.now
    store.create(_rec("new"), "b2", "alice")
    store.create(_rec("other"), "b2", "bob")
    assert store.count_since("alice", cutoff) == 1
    assert store.count_since("alice", datetime(2000, 1, 1)) == 2


def test_quota_guard_rejects_at_write_time(store, clock):
    guard = QuotaGuard(limit=1, since=datetime(2026, 3, 1))
    store.create(_rec("A"), "b1", "alice", quota=guard)
    with pytest.raises(QuotaExceeded) as exc:
        store.create(_rec("B"), "b1", "alice", quota=guard)
    assert exc.value.used == 1
    assert store.count_since("alice", guard.since) == 1
    # other owners have their own budget
    store.create(_rec("C"), "b1", "bob", quota=guard)
