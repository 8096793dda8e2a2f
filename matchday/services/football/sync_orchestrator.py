"""Fixture sync orchestrator: cache-first, rate-limited provider sync.

Read path for ``GET /football-matches``:
1. Read today's provider usage (call count, last call) from the request log
2. Read the requested page of today's fixtures from the store
3. Page has fixtures → serve it (cache hit)
4. Otherwise claim a provider slot; denied → serve whatever is cached
5. Granted → fetch, normalize, upsert leagues then fixtures, re-read page

``refresh`` runs steps 4-5 unconditionally (still rate-limited) and is what
an external scheduler calls to pick up live scores and final results.

Nothing is ever deleted here. Upserts are committed one at a time: a
failure aborts the batch but keeps what was already written.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matchday.core import metrics
from matchday.core.config import settings
from matchday.core.errors import StoreError
from matchday.models import League, Match
from matchday.repositories.fixture_repository import FixtureRepository
from matchday.repositories.sync_request_repository import SyncRequestRepository
from matchday.services.football.api_football_client import ApiFootballClient
from matchday.services.football.normalizer import NormalizedBatch, normalize
from matchday.services.football.rate_limiter import RateLimiter
from matchday.utils.timezone import utc_day, utc_day_bounds, utcnow

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class FixtureFetcher(Protocol):
    async def fetch_fixtures(self, date_iso: str) -> List[Any]: ...

    async def close(self) -> None: ...


def clamp_pagination(offset: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """Default and bound the paging parameters (offset ≥ 0, 1 ≤ limit ≤ 100)."""
    offset = max(0, offset or 0)
    if limit is None:
        limit = DEFAULT_PAGE_SIZE
    limit = min(max(1, limit), MAX_PAGE_SIZE)
    return offset, limit


@dataclass
class FixturePage:
    """One page of a day's fixtures plus provider usage."""

    step: str
    matches: List[Match]
    leagues: List[League]
    requests_count: int
    last_request: Optional[datetime]
    offset: int
    limit: int
    total: int

    @property
    def cacheable(self) -> bool:
        """Whether downstream caches may reuse the response."""
        return self.step in ("db_cache", "rate_limited")


@dataclass
class SyncResult:
    """Outcome of one provider refresh."""

    synced: bool
    day: date
    requests_count: int
    last_request: Optional[datetime]
    leagues: int = 0
    fixtures: int = 0
    duration_ms: int = 0
    statuses: dict = field(default_factory=dict)


class FixtureSyncOrchestrator:
    """
    Coordinates the rate limiter, provider client, normalizer and store.

    Every collaborator is injected; defaults are built from settings.
    """

    def __init__(
        self,
        db: Session,
        fetcher_factory: Optional[Callable[[], FixtureFetcher]] = None,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the orchestrator.

        Args:
            db: SQLAlchemy session for this invocation
            fetcher_factory: Builds the provider client when a fetch is needed.
                The default raises ConfigurationError if FOOTBALL_API_KEY is unset.
            rate_limiter: Outbound quota policy
            clock: Returns the current naive UTC time
        """
        self.db = db
        self.fixtures = FixtureRepository(db)
        self.requests = SyncRequestRepository(db)
        self.rate_limiter = rate_limiter or RateLimiter.from_settings(settings)
        self._fetcher_factory = fetcher_factory or (lambda: ApiFootballClient.from_settings(settings))
        self.clock = clock

    async def get_todays_fixtures(
        self,
        offset: Optional[int] = 0,
        limit: Optional[int] = DEFAULT_PAGE_SIZE,
    ) -> FixturePage:
        """
        Serve a page of today's fixtures, syncing from the provider on a miss.

        Raises:
            StoreError: Request log, query or upsert failure
            ProviderError: Fetch, status, JSON or payload failure
            ConfigurationError: Provider key missing when a fetch is needed
        """
        offset, limit = clamp_pagination(offset, limit)
        now = self.clock()
        day = utc_day(now)

        count, last = self.requests.usage_for_day(day)
        matches, leagues, total = self._read_page(day, offset, limit, step="db_query")

        # A stored day is a hit even when the page is past its end
        if matches or total > 0:
            metrics.record_sync_outcome("db_cache")
            return FixturePage("db_cache", matches, leagues, count, last, offset, limit, total)

        result = await self.refresh(day=day, now=now)
        if not result.synced:
            metrics.record_sync_outcome("rate_limited")
            return FixturePage(
                "rate_limited", matches, leagues,
                result.requests_count, result.last_request, offset, limit, total,
            )

        matches, leagues, total = self._read_page(day, offset, limit, step="final_query")
        metrics.record_sync_outcome("success")
        return FixturePage(
            "success", matches, leagues,
            result.requests_count, result.last_request, offset, limit, total,
        )

    async def refresh(self, day: Optional[date] = None, now: Optional[datetime] = None) -> SyncResult:
        """
        Fetch a day's fixtures from the provider and upsert them, if the quota allows.

        Args:
            day: UTC date to fetch (defaults to today)
            now: Current time (defaults to the orchestrator clock)

        Returns:
            SyncResult with ``synced=False`` when the rate limiter denied the call
        """
        now = now or self.clock()
        day = day or utc_day(now)
        quota_day = utc_day(now)

        count, last = self.requests.usage_for_day(quota_day)
        if not self.rate_limiter.is_permitted(count, last, now):
            logger.info(
                f"Provider call not permitted: {count} calls today, last at {last}"
            )
            return SyncResult(False, day, count, last)

        # Resolve the client before claiming so a missing key does not burn quota
        fetcher = self._fetcher_factory()

        claim = self.requests.claim_slot(self.rate_limiter, now)
        if claim is None:
            count, last = self.requests.usage_for_day(quota_day)
            return SyncResult(False, day, count, last)

        started = time.perf_counter()
        try:
            raw_fixtures = await fetcher.fetch_fixtures(day.isoformat())
        finally:
            await fetcher.close()

        batch = normalize(raw_fixtures)
        self._store_batch(batch)

        duration_ms = int((time.perf_counter() - started) * 1000)
        statuses: dict = {}
        for fixture in batch.fixtures:
            statuses[fixture.status] = statuses.get(fixture.status, 0) + 1

        logger.info(
            f"Fixture sync for {day.isoformat()} complete: {len(batch.leagues)} leagues, "
            f"{len(batch.fixtures)} fixtures ({duration_ms}ms)",
            extra={"statuses": statuses},
        )
        return SyncResult(
            synced=True,
            day=day,
            requests_count=claim.sequence + 1,
            last_request=claim.requested_at,
            leagues=len(batch.leagues),
            fixtures=len(batch.fixtures),
            duration_ms=duration_ms,
            statuses=statuses,
        )

    def _store_batch(self, batch: NormalizedBatch) -> None:
        # Leagues first so fixtures never reference a league name that is not stored yet
        for league in batch.leagues:
            self.fixtures.upsert_league(league)
            self._commit(step="league_upsert")
        for fixture in batch.fixtures:
            self.fixtures.upsert_fixture(fixture)
            self._commit(step="match_upsert")

    def _commit(self, step: str) -> None:
        try:
            self.fixtures.save()
        except SQLAlchemyError as e:
            self.fixtures.rollback()
            raise StoreError("Error committing sync batch item", step=step, details=str(e)) from e

    def _read_page(self, day: date, offset: int, limit: int, step: str):
        start, end = utc_day_bounds(day)
        try:
            matches = self.fixtures.query_by_date_range(start, end, offset=offset, limit=limit)
            leagues = self.fixtures.query_all_leagues()
            total = self.fixtures.count_by_date_range(start, end)
        except SQLAlchemyError as e:
            raise StoreError("Error querying fixtures", step=step, details=str(e)) from e
        return matches, leagues, total
