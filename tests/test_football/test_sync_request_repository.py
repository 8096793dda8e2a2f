"""Integration tests for the provider request log and slot claims."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from matchday.models import SyncRequestLog
from matchday.repositories.sync_request_repository import SyncRequestRepository
from matchday.services.football.rate_limiter import RateLimiter

NOW = datetime(2026, 10, 19, 10, 0, 0)


class TestUsageForDay:

    def test_empty_day(self, db_session: Session):
        assert SyncRequestRepository(db_session).usage_for_day(NOW.date()) == (0, None)

    def test_counts_only_that_day(self, db_session: Session):
        repo = SyncRequestRepository(db_session)
        limiter = RateLimiter(min_interval=timedelta(0))

        repo.claim_slot(limiter, NOW - timedelta(days=1))
        repo.claim_slot(limiter, NOW)
        repo.claim_slot(limiter, NOW + timedelta(minutes=1))

        count, last = repo.usage_for_day(NOW.date())
        assert count == 2
        assert last == NOW + timedelta(minutes=1)


class TestClaimSlot:
    """claim_slot() enforces the quota atomically."""

    def test_daily_ceiling(self, db_session: Session):
        """Never more than daily_limit logged calls in one UTC day."""
        repo = SyncRequestRepository(db_session)
        limiter = RateLimiter(daily_limit=100, min_interval=timedelta(0))

        claims = [repo.claim_slot(limiter, NOW + timedelta(seconds=i)) for i in range(105)]

        granted = [c for c in claims if c is not None]
        assert len(granted) == 100
        assert [c.sequence for c in granted] == list(range(100))
        assert db_session.query(SyncRequestLog).count() == 100

    def test_ceiling_resets_next_utc_day(self, db_session: Session):
        repo = SyncRequestRepository(db_session)
        limiter = RateLimiter(daily_limit=1, min_interval=timedelta(0))
        late = datetime(2026, 10, 19, 23, 59)

        assert repo.claim_slot(limiter, late) is not None
        assert repo.claim_slot(limiter, late + timedelta(seconds=30)) is None
        # 00:01 UTC is a new bucket even though only two minutes passed
        assert repo.claim_slot(limiter, late + timedelta(minutes=2)) is not None

    def test_minimum_spacing(self, db_session: Session):
        """Consecutive granted claims are at least 15 minutes apart."""
        repo = SyncRequestRepository(db_session)
        limiter = RateLimiter()

        assert repo.claim_slot(limiter, NOW) is not None
        assert repo.claim_slot(limiter, NOW + timedelta(minutes=5)) is None
        assert repo.claim_slot(limiter, NOW + timedelta(minutes=14, seconds=59)) is None
        assert repo.claim_slot(limiter, NOW + timedelta(minutes=15)) is not None

        times = sorted(r.requested_at for r in db_session.query(SyncRequestLog).all())
        assert times[1] - times[0] >= timedelta(minutes=15)

    def test_lost_race_is_denied(self, db_session: Session, monkeypatch):
        """Two claimers that read the same count cannot both win the slot."""
        repo = SyncRequestRepository(db_session)
        limiter = RateLimiter()

        winner = repo.claim_slot(limiter, NOW)
        assert winner is not None and winner.sequence == 0

        # The loser observed the log before the winner's row was written
        monkeypatch.setattr(repo, "usage_for_day", lambda day: (0, None))

        assert repo.claim_slot(limiter, NOW) is None
        assert db_session.query(SyncRequestLog).count() == 1
