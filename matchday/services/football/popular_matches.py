"""
Popular matches: a once-per-day snapshot from the secondary provider.

The provider payload is stored verbatim, keyed by UTC date. The first
request of the day fetches and stores it; every later request that day is
served from the store. ``cache_date`` is unique, so when two first requests
race the loser re-reads the winner's row instead of failing.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Protocol

import httpx
from pybreaker import CircuitBreaker, CircuitBreakerError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from matchday.core import metrics
from matchday.core.config import settings
from matchday.core.errors import ProviderError, StoreError
from matchday.core.logging import get_logger
from matchday.repositories.popular_matches_repository import PopularMatchesRepository
from matchday.services.circuit_breaker import popular_matches_breaker, tripping_error
from matchday.utils.timezone import utc_day, utcnow

logger = get_logger(__name__)

PROVIDER_NAME = "popular_matches"


class PopularMatchesClient:
    """Async client for the RapidAPI popular events feed."""

    def __init__(
        self,
        api_key: str,
        host: str,
        url: str,
        timeout: float = 30.0,
        breaker: CircuitBreaker = popular_matches_breaker,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.host = host
        self.url = url
        self.timeout = timeout
        self.breaker = breaker
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings) -> "PopularMatchesClient":
        """
        Raises:
            ConfigurationError: If POPULAR_MATCHES_API_KEY is not set
        """
        return cls(
            api_key=settings.require_popular_matches_api_key(),
            host=settings.POPULAR_MATCHES_API_HOST,
            url=settings.POPULAR_MATCHES_API_URL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    def _get_headers(self) -> Dict[str, str]:
        return {
            "x-rapidapi-key": self.api_key,
            "x-rapidapi-host": self.host,
            "Accept": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def fetch_events(self) -> Any:
        """
        Fetch the current popular events payload.

        Raises:
            ProviderError: api_fetch, api_response or api_json
        """
        client = await self._get_client()

        try:
            with self.breaker.calling():
                response = await client.get(self.url, headers=self._get_headers())
                if not response.is_success:
                    raise ProviderError(
                        "Error fetching popular matches",
                        step="api_response",
                        status_code=response.status_code,
                        details=response.reason_phrase,
                    )
        except ProviderError as e:
            metrics.record_provider_failure(PROVIDER_NAME, e.step)
            logger.error(f"Popular matches provider returned HTTP {e.status_code}")
            raise
        except CircuitBreakerError as e:
            tripped_by = tripping_error(e)
            if isinstance(tripped_by, ProviderError):
                metrics.record_provider_failure(PROVIDER_NAME, tripped_by.step)
                logger.error(
                    f"Popular matches provider returned HTTP {tripped_by.status_code}; "
                    f"circuit breaker opened"
                )
                raise tripped_by
            metrics.record_provider_failure(PROVIDER_NAME, "api_fetch")
            raise ProviderError(
                "Popular matches provider temporarily unavailable (circuit open)",
                step="api_fetch",
                details=str(e),
            ) from e
        except httpx.HTTPError as e:
            metrics.record_provider_failure(PROVIDER_NAME, "api_fetch")
            logger.error(f"Popular matches request failed: {e!r}")
            raise ProviderError(
                "Error calling popular matches provider",
                step="api_fetch",
                details=repr(e),
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            metrics.record_provider_failure(PROVIDER_NAME, "api_json")
            raise ProviderError(
                "Error parsing JSON from popular matches provider",
                step="api_json",
                details=str(e),
            ) from e

        metrics.record_provider_success(PROVIDER_NAME)
        return payload


class EventsFetcher(Protocol):
    async def fetch_events(self) -> Any: ...

    async def close(self) -> None: ...


@dataclass
class PopularMatches:
    cache_date: date
    payload: Any
    cached: bool


class PopularMatchesService:
    """Serves the day's popular matches, fetching at most once per UTC day."""

    def __init__(
        self,
        db: Session,
        fetcher_factory: Optional[Callable[[], EventsFetcher]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = PopularMatchesRepository(db)
        self._fetcher_factory = fetcher_factory or (lambda: PopularMatchesClient.from_settings(settings))
        self.clock = clock

    async def get_today(self) -> PopularMatches:
        """
        Raises:
            StoreError: Cache read or write failure
            ProviderError: Provider failure on a cache miss
            ConfigurationError: Provider key missing on a cache miss
        """
        today = utc_day(self.clock())

        cached = self._find(today)
        if cached is not None:
            metrics.record_popular_matches_cache("hit")
            return PopularMatches(today, cached.payload, cached=True)

        metrics.record_popular_matches_cache("miss")
        fetcher = self._fetcher_factory()
        try:
            payload = await fetcher.fetch_events()
        finally:
            await fetcher.close()

        try:
            self.repository.insert(today, payload)
        except IntegrityError:
            # Another request stored today's snapshot first
            self.repository.rollback()
            metrics.record_popular_matches_cache("race")
            existing = self._find(today)
            if existing is None:
                raise StoreError(
                    "Popular matches cache row vanished after conflict",
                    step="db_query",
                    details={"cache_date": today.isoformat()},
                )
            logger.info(f"Popular matches for {today.isoformat()} already cached; using stored row")
            return PopularMatches(today, existing.payload, cached=True)
        except SQLAlchemyError as e:
            self.repository.rollback()
            raise StoreError("Error caching popular matches", step="cache_insert", details=str(e)) from e

        logger.info(f"Cached popular matches for {today.isoformat()}")
        return PopularMatches(today, payload, cached=False)

    def _find(self, cache_date: date):
        try:
            return self.repository.find_by_date(cache_date)
        except SQLAlchemyError as e:
            raise StoreError("Error reading popular matches cache", step="db_query", details=str(e)) from e
