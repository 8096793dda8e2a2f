"""
Sync Request Repository: the outbound call log for the fixture provider.

Rows are append-only. ``claim_slot`` combines the quota check and the log
write: the new row takes ``sequence = calls already logged today`` and the
``(request_day, sequence)`` unique constraint rejects a second claimer that
raced on the same count.
"""
from datetime import date, datetime
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from matchday.core.errors import StoreError
from matchday.core.logging import get_logger
from matchday.models import SyncRequestLog
from matchday.repositories.base import BaseRepository
from matchday.services.football.rate_limiter import RateLimiter
from matchday.utils.timezone import utc_day

logger = get_logger(__name__)


class SyncRequestRepository(BaseRepository[SyncRequestLog]):
    """Repository for the provider request log."""

    def __init__(self, db):
        super().__init__(SyncRequestLog, db)

    def usage_for_day(self, day: date) -> Tuple[int, Optional[datetime]]:
        """
        Calls logged on a UTC day and the time of the most recent one.

        Raises:
            StoreError: step ``request_count``
        """
        try:
            count, last = (
                self.db.query(
                    func.count(SyncRequestLog.id),
                    func.max(SyncRequestLog.requested_at),
                )
                .filter(SyncRequestLog.request_day == day)
                .one()
            )
        except SQLAlchemyError as e:
            raise StoreError(
                "Error reading provider request log",
                step="request_count",
                details=str(e),
            ) from e
        return count or 0, last

    def claim_slot(self, limiter: RateLimiter, now: datetime) -> Optional[SyncRequestLog]:
        """
        Atomically check the quota and log a provider call.

        Commits the new row on success.

        Returns:
            The logged request, or None if the quota or spacing forbids a call
            (including losing a race to a concurrent claimer)
        """
        day = utc_day(now)
        count, last = self.usage_for_day(day)
        if not limiter.is_permitted(count, last, now):
            return None

        entry = SyncRequestLog(requested_at=now, request_day=day, sequence=count)
        self.add(entry)
        try:
            self.save()
        except IntegrityError:
            self.rollback()
            logger.info(f"Provider slot {day.isoformat()}#{count} already claimed by another request")
            return None
        except SQLAlchemyError as e:
            self.rollback()
            raise StoreError(
                "Error logging provider request",
                step="request_count",
                details=str(e),
            ) from e
        return entry
