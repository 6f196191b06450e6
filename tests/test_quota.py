"""
Monthly quota window:
- window opens at local midnight on the 1st
- admission is all-or-nothing on the incoming count
- exactly reaching the limit is allowed
"""

from datetime import datetime

import pytest

from shelfscan.catalog.models import NewCatalogRecord
from shelfscan.catalog.quota import QuotaLedger, start_of_month
from shelfscan.errors import QuotaExceeded


def _fill(store, owner, n):
    for i in range(n):
        store.create(NewCatalogRecord(title=f"Book {i}", author="A"), "seed", owner)


def test_start_of_month():
    assert start_of_month(datetime(2026, 3, 31, 23, 59, 59, 999)) == datetime(2026, 3, 1)
    assert start_of_month(datetime(2026, 1, 1, 0, 0)) == datetime(2026, 1, 1)


def test_admission_allows_reaching_the_limit(memory_store, clock):
    ledger = QuotaLedger(memory_store, monthly_limit=5, clock=clock)
    _fill(memory_store, "alice", 3)
    assert ledger.check_admission("alice", 2) == 3
    assert ledger.remaining("alice") == 2


def test_admission_rejects_whole_batch_with_message(memory_store, clock):
    ledger = QuotaLedger(memory_store, monthly_limit=5, clock=clock)
    _fill(memory_store, "alice", 3)
    with pytest.raises(QuotaExceeded) as exc:
        ledger.check_admission("alice", 3)
    assert exc.value.status_code == 403
    assert str(exc.value) == (
        "Adding 3 books would exceed your monthly limit of 5 books. "
        "You have added 3 books this month."
    )


def test_zero_candidates_always_admitted(memory_store, clock):
    ledger = QuotaLedger(memory_store, monthly_limit=0, clock=clock)
    assert ledger.check_admission("alice", 0) == 0


def test_window_resets_at_month_boundary(memory_store, clock):
    ledger = QuotaLedger(memory_store, monthly_limit=2, clock=clock)
    clock.now = datetime(2026, 3, 31, 23, 59, 59)
    _fill(memory_store, "alice", 2)
    with pytest.raises(QuotaExceeded):
        ledger.check_admission("alice", 1)

    clock.now = datetime(2026, 4, 1, 0, 0, 0)
    assert ledger.monthly_count("alice") == 0
    assert ledger.check_admission("alice", 2) == 0


def test_other_owners_do_not_count(memory_store, clock):
    ledger = QuotaLedger(memory_store, monthly_limit=2, clock=clock)
    _fill(memory_store, "bob", 2)
    assert ledger.check_admission("alice", 2) == 0


def test_negative_limit_rejected(memory_store):
    with pytest.raises(ValueError):
        QuotaLedger(memory_store, monthly_limit=-1)
