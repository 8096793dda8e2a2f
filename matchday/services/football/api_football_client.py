"""
API-Football client for fetching the day's fixtures.

Endpoint: GET {FOOTBALL_API_URL}/fixtures?date=YYYY-MM-DD
Auth headers: x-apisports-key, x-rapidapi-host

The client is read-only and never retries. Every failure is raised as a
ProviderError whose ``step`` tells the caller what went wrong:
- api_fetch: transport error, timeout, circuit breaker open
- api_response: non-2xx status or an ``errors`` object in the envelope
- api_json: body is not JSON or has no ``response`` list
"""
from typing import Any, Dict, List, Optional

import httpx
from pybreaker import CircuitBreaker, CircuitBreakerError

from matchday.core import metrics
from matchday.core.errors import ProviderError
from matchday.core.logging import get_logger
from matchday.services.circuit_breaker import football_api_breaker, tripping_error

logger = get_logger(__name__)

PROVIDER_NAME = "api_football"


class ApiFootballClient:
    """Async client for the API-Football v3 fixtures endpoint."""

    def __init__(
        self,
        api_key: str,
        host: str,
        base_url: str,
        timeout: float = 30.0,
        breaker: CircuitBreaker = football_api_breaker,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: API-Football key
            host: Value for the x-rapidapi-host header
            base_url: Provider base URL (without trailing slash)
            timeout: Request timeout in seconds
            breaker: Circuit breaker guarding provider calls
            client: Optional pre-built HTTP client (tests inject a MockTransport)
        """
        self.api_key = api_key
        self.host = host
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.breaker = breaker
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings) -> "ApiFootballClient":
        """
        Build a client from application settings.

        Raises:
            ConfigurationError: If FOOTBALL_API_KEY is not set
        """
        return cls(
            api_key=settings.require_football_api_key(),
            host=settings.FOOTBALL_API_HOST,
            base_url=settings.FOOTBALL_API_URL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    def _get_headers(self) -> Dict[str, str]:
        return {
            "x-apisports-key": self.api_key,
            "x-rapidapi-host": self.host,
            "Accept": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def fetch_fixtures(self, date_iso: str) -> List[Dict[str, Any]]:
        """
        Fetch all fixtures scheduled on a date.

        Args:
            date_iso: Date as YYYY-MM-DD (UTC)

        Returns:
            The provider's raw ``response`` list

        Raises:
            ProviderError: On transport, status or body failures
        """
        client = await self._get_client()
        url = f"{self.base_url}/fixtures"

        try:
            with self.breaker.calling():
                response = await client.get(
                    url, params={"date": date_iso}, headers=self._get_headers()
                )
                if not response.is_success:
                    raise ProviderError(
                        "Error fetching fixtures from provider",
                        step="api_response",
                        status_code=response.status_code,
                        details=response.reason_phrase,
                    )
        except ProviderError as e:
            metrics.record_provider_failure(PROVIDER_NAME, e.step)
            logger.error(f"API-Football returned HTTP {e.status_code} for {date_iso}")
            raise
        except CircuitBreakerError as e:
            tripped_by = tripping_error(e)
            if isinstance(tripped_by, ProviderError):
                # The call that opened the breaker still reports its own failure
                metrics.record_provider_failure(PROVIDER_NAME, tripped_by.step)
                logger.error(
                    f"API-Football returned HTTP {tripped_by.status_code} for {date_iso}; "
                    f"circuit breaker opened"
                )
                raise tripped_by
            metrics.record_provider_failure(PROVIDER_NAME, "api_fetch")
            logger.error(f"API-Football circuit breaker open: {e}")
            raise ProviderError(
                "Fixture provider temporarily unavailable (circuit open)",
                step="api_fetch",
                details=str(e),
            ) from e
        except httpx.HTTPError as e:
            metrics.record_provider_failure(PROVIDER_NAME, "api_fetch")
            logger.error(f"API-Football request failed for {date_iso}: {e!r}")
            raise ProviderError(
                "Error calling fixture provider",
                step="api_fetch",
                details=repr(e),
            ) from e

        fixtures = self._parse_envelope(response)
        metrics.record_provider_success(PROVIDER_NAME)
        logger.info(f"Fetched {len(fixtures)} fixtures from API-Football for {date_iso}")
        return fixtures

    def _parse_envelope(self, response: httpx.Response) -> List[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as e:
            metrics.record_provider_failure(PROVIDER_NAME, "api_json")
            raise ProviderError(
                "Error parsing JSON from fixture provider",
                step="api_json",
                details=str(e),
            ) from e

        # API-Football reports auth/quota problems with HTTP 200 and an errors object
        errors = data.get("errors") if isinstance(data, dict) else None
        if errors:
            metrics.record_provider_failure(PROVIDER_NAME, "api_response")
            raise ProviderError(
                "Fixture provider reported errors",
                step="api_response",
                status_code=response.status_code,
                details=errors,
            )

        if not isinstance(data, dict) or not isinstance(data.get("response"), list):
            metrics.record_provider_failure(PROVIDER_NAME, "api_json")
            raise ProviderError(
                "Fixture provider body has no 'response' list",
                step="api_json",
                details=type(data).__name__,
            )

        return data["response"]
