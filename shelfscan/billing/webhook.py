"""
Billing webhook: verify the payment processor's signature and mirror its
subscription state into the entitlement store.

Handled event types:
  checkout.session.completed      -> status from payload (default "active")
  invoice.payment_succeeded       -> status from payload (default "active")
  customer.subscription.updated   -> status from payload
  customer.subscription.deleted   -> "canceled" unless the payload says otherwise

Every event carries ``data.owner_id``; events without one, and any other
event type, are acknowledged and ignored.
"""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime
from typing import Any, Dict, Optional

from shelfscan.billing.store import EntitlementStore
from shelfscan.errors import InvalidInput
from shelfscan.log import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Billing-Signature"

_DEFAULT_STATUS = {
    "checkout.session.completed": "active",
    "invoice.payment_succeeded": "active",
    "customer.subscription.updated": None,
    "customer.subscription.deleted": "canceled",
}


def sign(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> None:
    """Raise InvalidInput unless *signature* is the HMAC-SHA256 hex of *body*."""
    if not secret:
        raise InvalidInput("Webhook Error: signing secret is not configured")
    if not signature:
        raise InvalidInput("Webhook Error: missing signature")
    if not hmac.compare_digest(sign(secret, body), signature.strip().lower()):
        raise InvalidInput("Webhook Error: signature mismatch")


def _period_end(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value))
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning("ignoring unparseable current_period_end %r", value)
        return None


def apply_billing_event(store: EntitlementStore, event: Dict[str, Any]) -> bool:
    """Apply one webhook event. Returns True if a subscription row was written."""
    event_type = event.get("type")
    if event_type not in _DEFAULT_STATUS:
        logger.info("ignoring billing event type %r", event_type)
        return False

    data = event.get("data") or {}
    if not isinstance(data, dict):
        raise InvalidInput("Webhook Error: 'data' must be an object")
    owner = str(data.get("owner_id") or "").strip()
    if not owner:
        logger.warning("billing event %s has no owner_id; ignored", event_type)
        return False

    status = str(data.get("status") or "").strip() or _DEFAULT_STATUS[event_type]
    if not status:
        logger.warning("billing event %s for %s has no status; ignored", event_type, owner)
        return False

    sub = store.upsert(
        owner,
        status,
        customer_id=data.get("customer_id") or None,
        subscription_id=data.get("subscription_id") or None,
        current_period_end=_period_end(data.get("current_period_end")),
    )
    logger.info("subscription owner=%s -> %s (%s)", owner, sub.status, event_type)
    return True
