"""Outbound quota policy for the fixture provider.

The provider is metered per call, so fresh fetches are bounded by a daily
budget (UTC calendar day) and a minimum spacing between calls. The policy
itself is pure; the atomic claim that records an attempt lives in
``SyncRequestRepository.claim_slot``.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

DAILY_LIMIT = 100
MIN_INTERVAL = timedelta(minutes=15)


@dataclass(frozen=True)
class RateLimiter:
    daily_limit: int = DAILY_LIMIT
    min_interval: timedelta = MIN_INTERVAL

    @classmethod
    def from_settings(cls, settings) -> "RateLimiter":
        return cls(
            daily_limit=settings.SYNC_DAILY_REQUEST_LIMIT,
            min_interval=timedelta(minutes=settings.SYNC_MIN_INTERVAL_MINUTES),
        )

    def is_permitted(
        self,
        count_today: int,
        last_request: Optional[datetime],
        now: datetime,
    ) -> bool:
        """
        Whether a provider call may be made at ``now``.

        Args:
            count_today: Calls already logged for the current UTC day
            last_request: Most recent call today, or None if there was none
            now: Current time (naive UTC)
        """
        if count_today >= self.daily_limit:
            return False
        if last_request is None:
            return True
        return now - last_request >= self.min_interval
