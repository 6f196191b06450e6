# Billing: entitlement state + webhook sync
from shelfscan.billing.store import (
    EntitlementStore,
    InMemoryEntitlementStore,
    SqlEntitlementStore,
    Subscription,
)
from shelfscan.billing.webhook import SIGNATURE_HEADER, apply_billing_event, sign, verify_signature

__all__ = [
    "EntitlementStore",
    "InMemoryEntitlementStore",
    "SqlEntitlementStore",
    "Subscription",
    "SIGNATURE_HEADER",
    "apply_billing_event",
    "sign",
    "verify_signature",
]
