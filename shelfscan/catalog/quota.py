"""
Monthly quota ledger.

The window opens at local midnight on the 1st of the current month. Admission
is all-or-nothing for a batch and is decided on the number of *extracted*
candidates, before any of them is resolved, so a batch can be rejected even
if some of its candidates would later have been dropped.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from shelfscan.catalog.store import QuotaGuard, RecordStore
from shelfscan.errors import QuotaExceeded
from shelfscan.log import get_logger

logger = get_logger(__name__)


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class QuotaLedger:
    def __init__(
        self,
        store: RecordStore,
        monthly_limit: int,
        clock: Callable[[], datetime] = datetime.now,
    ):
        if monthly_limit < 0:
            raise ValueError("monthly_limit must be >= 0")
        self.store = store
        self.monthly_limit = monthly_limit
        self._clock = clock

    def count_since(self, owner: str, since: datetime) -> int:
        return self.store.count_since(owner, since)

    def window_start(self, now: Optional[datetime] = None) -> datetime:
        return start_of_month(now or self._clock())

    def monthly_count(self, owner: str, now: Optional[datetime] = None) -> int:
        return self.count_since(owner, self.window_start(now))

    def remaining(self, owner: str, now: Optional[datetime] = None) -> int:
        return max(0, self.monthly_limit - self.monthly_count(owner, now))

    def check_admission(self, owner: str, incoming: int, now: Optional[datetime] = None) -> int:
        """Raise QuotaExceeded if *incoming* more rows would pass the limit; return rows used so far."""
        used = self.monthly_count(owner, now)
        if used + incoming > self.monthly_limit:
            logger.info(
                "quota rejected owner=%s used=%d incoming=%d limit=%d",
                owner, used, incoming, self.monthly_limit,
            )
            raise QuotaExceeded(self.monthly_limit, used, incoming)
        return used

    def guard(self, now: Optional[datetime] = None) -> QuotaGuard:
        """Write-time guard for the current window (strict mode)."""
        return QuotaGuard(limit=self.monthly_limit, since=self.window_start(now))
