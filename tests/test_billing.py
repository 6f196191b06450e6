"""
Billing: webhook signature, event -> subscription state, both entitlement
store backends.
"""

from datetime import datetime

import pytest

from shelfscan.billing import (
    InMemoryEntitlementStore,
    SqlEntitlementStore,
    apply_billing_event,
    sign,
    verify_signature,
)
from shelfscan.db.engine import create_db_engine, init_db
from shelfscan.errors import InvalidInput


@pytest.fixture(params=["memory", "sql"])
def entitlements(request, clock, tmp_path):
    if request.param == "memory":
        return InMemoryEntitlementStore(clock=clock)
    engine = create_db_engine(f"sqlite:///{tmp_path / 'billing.db'}")
    init_db(engine)
    request.addfinalizer(engine.dispose)
    return SqlEntitlementStore(engine, clock=clock)


def _event(kind, **data):
    return {"type": kind, "data": data}


def test_signature_round_trip():
    body = b'{"type": "invoice.payment_succeeded"}'
    verify_signature("whsec", body, sign("whsec", body))


@pytest.mark.parametrize("secret, signature", [
    ("", "abc"),
    ("whsec", None),
    ("whsec", ""),
    ("whsec", "deadbeef"),
])
def test_signature_rejected(secret, signature):
    with pytest.raises(InvalidInput):
        verify_signature(secret, b"{}", signature)


def test_signature_covers_the_exact_body():
    sig = sign("whsec", b'{"a": 1}')
    with pytest.raises(InvalidInput):
        verify_signature("whsec", b'{"a":1}', sig)


def test_unknown_owner_is_not_entitled(entitlements):
    assert entitlements.get("alice") is None
    assert entitlements.is_active("alice") is False


def test_checkout_activates(entitlements, clock):
    assert apply_billing_event(entitlements, _event(
        "checkout.session.completed", owner_id="alice", customer_id="cus_1", subscription_id="sub_1",
    )) is True
    sub = entitlements.get("alice")
    assert sub.status == "active"
    assert sub.customer_id == "cus_1"
    assert sub.updated_at == clock.now
    assert entitlements.is_active("alice")


def test_update_then_delete(entitlements):
    apply_billing_event(entitlements, _event(
        "customer.subscription.updated", owner_id="alice", status="active",
        subscription_id="sub_1", current_period_end=1775000000,
    ))
    assert entitlements.get("alice").current_period_end == datetime.fromtimestamp(1775000000)

    apply_billing_event(entitlements, _event("customer.subscription.updated", owner_id="alice", status="past_due"))
    assert entitlements.is_active("alice") is False

    apply_billing_event(entitlements, _event("invoice.payment_succeeded", owner_id="alice"))
    assert entitlements.is_active("alice") is True

    apply_billing_event(entitlements, _event("customer.subscription.deleted", owner_id="alice"))
    sub = entitlements.get("alice")
    assert sub.status == "canceled"
    # earlier identifiers survive a status-only update
    assert sub.subscription_id == "sub_1"


def test_ignored_events(entitlements):
    assert apply_billing_event(entitlements, _event("charge.refunded", owner_id="alice")) is False
    assert apply_billing_event(entitlements, _event("checkout.session.completed")) is False
    assert apply_billing_event(entitlements, _event("customer.subscription.updated", owner_id="alice")) is False
    assert entitlements.get("alice") is None


def test_non_object_data_rejected(entitlements):
    with pytest.raises(InvalidInput):
        apply_billing_event(entitlements, {"type": "checkout.session.completed", "data": ["alice"]})
