"""
Inbound request rate limiting (slowapi).

60/minute per client by default; prediction submission is limited to
10/minute. Storage is in-memory unless RATE_LIMIT_STORAGE=redis.
"""
from starlette.requests import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from matchday.core.config import settings

DEFAULT_LIMIT = "60/minute"
PREDICTION_SUBMIT_LIMIT = "10/minute"


def get_rate_limit_key(request: Request) -> str:
    """
    Get the rate limit key for a request.

    Uses IP address, with fallback to X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[DEFAULT_LIMIT],
    storage_uri=settings.REDIS_URL if settings.RATE_LIMIT_STORAGE == "redis" else "memory://",
    enabled=settings.RATE_LIMIT_ENABLED
)
