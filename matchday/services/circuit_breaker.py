"""
Circuit breakers for third-party data providers.

Uses the pybreaker library. A breaker opens after ``DEFAULT_FAIL_MAX``
consecutive failures and rejects calls immediately until
``DEFAULT_RESET_TIMEOUT`` seconds have passed, after which one trial call
is let through (half-open).

Breakers never retry; they only stop hammering a provider that is down.

Circuit Breakers:
- football_api_breaker: API-Football fixture calls
- popular_matches_breaker: popular matches provider calls
"""
from typing import Optional

from pybreaker import CircuitBreaker, CircuitBreakerError

from matchday.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FAIL_MAX = 5
DEFAULT_RESET_TIMEOUT = 60

football_api_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="football_api",
)

popular_matches_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="popular_matches",
)

ALL_BREAKERS = (football_api_breaker, popular_matches_breaker)


def get_all_breaker_states() -> dict[str, str]:
    """Map breaker name to its state ('closed', 'open' or 'half-open')."""
    return {breaker.name: breaker.current_state for breaker in ALL_BREAKERS}


def reset_all_breakers() -> None:
    """Force every breaker closed (used by operators and tests)."""
    for breaker in ALL_BREAKERS:
        breaker.close()
    logger.info("All circuit breakers reset to closed")


def tripping_error(exc: CircuitBreakerError) -> Optional[BaseException]:
    """
    The failure that opened the breaker, if ``exc`` was raised while tripping it.

    pybreaker raises CircuitBreakerError in place of the call's own error on
    the call that reaches ``fail_max``; that error is kept as the context.
    Rejections of an already open breaker have none.
    """
    original = exc.__cause__ or exc.__context__
    if isinstance(original, CircuitBreakerError):
        return None
    return original


__all__ = [
    "CircuitBreakerError",
    "football_api_breaker",
    "popular_matches_breaker",
    "get_all_breaker_states",
    "reset_all_breakers",
    "tripping_error",
]
