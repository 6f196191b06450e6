"""
Entitlement store: one subscription row per owner.

The rest of the service only asks ``is_active(owner)``; status strings other
than "active" (inactive, canceled, past_due, ...) all mean "not entitled".
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from shelfscan.db.models import SubscriptionRow
from shelfscan.errors import StorageError
from shelfscan.log import get_logger

logger = get_logger(__name__)

ACTIVE = "active"


@dataclass(frozen=True)
class Subscription:
    owner_id: str
    status: str = "inactive"
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "customerId": self.customer_id,
            "subscriptionId": self.subscription_id,
            "currentPeriodEnd": self.current_period_end.isoformat() if self.current_period_end else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class EntitlementStore(ABC):

    @abstractmethod
    def get(self, owner: str) -> Optional[Subscription]:
        ...

    @abstractmethod
    def upsert(
        self,
        owner: str,
        status: str,
        *,
        customer_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        current_period_end: Optional[datetime] = None,
    ) -> Subscription:
        """Set *status*; optional fields left as None keep their stored value."""

    def is_active(self, owner: str) -> bool:
        sub = self.get(owner)
        return sub is not None and sub.is_active


class InMemoryEntitlementStore(EntitlementStore):
    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._rows: Dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def get(self, owner):
        with self._lock:
            return self._rows.get(owner)

    def upsert(self, owner, status, *, customer_id=None, subscription_id=None, current_period_end=None):
        with self._lock:
            current = self._rows.get(owner) or Subscription(owner_id=owner)
            updated = replace(
                current,
                status=status,
                customer_id=customer_id or current.customer_id,
                subscription_id=subscription_id or current.subscription_id,
                current_period_end=current_period_end or current.current_period_end,
                updated_at=self._clock(),
            )
            self._rows[owner] = updated
        return updated


def _from_row(row: SubscriptionRow) -> Subscription:
    return Subscription(
        owner_id=row.owner_id,
        status=row.status,
        customer_id=row.customer_id,
        subscription_id=row.subscription_id,
        current_period_end=row.current_period_end,
        updated_at=row.updated_at,
    )


class SqlEntitlementStore(EntitlementStore):
    def __init__(self, engine: Engine, clock: Callable[[], datetime] = datetime.now):
        self._engine = engine
        self._clock = clock

    def get(self, owner):
        try:
            with Session(self._engine) as session:
                row = session.get(SubscriptionRow, owner)
                return _from_row(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"failed to load subscription: {e}") from e

    def upsert(self, owner, status, *, customer_id=None, subscription_id=None, current_period_end=None):
        try:
            with Session(self._engine) as session:
                row = session.get(SubscriptionRow, owner)
                if row is None:
                    row = SubscriptionRow(owner_id=owner)
                row.status = status
                if customer_id:
                    row.customer_id = customer_id
                if subscription_id:
                    row.subscription_id = subscription_id
                if current_period_end:
                    row.current_period_end = current_period_end
                row.updated_at = self._clock()
                session.add(row)
                session.commit()
                session.refresh(row)
                return _from_row(row)
        except SQLAlchemyError as e:
            logger.error("subscription upsert failed owner=%s: %s", owner, e)
            raise StorageError(f"failed to save subscription: {e}") from e
