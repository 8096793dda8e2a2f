"""
Prometheus metrics for the Matchday API.

Metrics exposed:
- Provider call counters (success / failure by pipeline step)
- Fixture sync outcome counter (cache hit, rate limited, synced, failed)
- Settlement counters (settled, skipped, failed predictions)
- Popular matches cache counter
"""
from prometheus_client import Counter

provider_requests_success_total = Counter(
    "provider_requests_success_total",
    "Successful calls to third-party data providers",
    ["provider"]
)

provider_requests_failure_total = Counter(
    "provider_requests_failure_total",
    "Failed calls to third-party data providers",
    ["provider", "step"]
)

fixture_sync_total = Counter(
    "fixture_sync_total",
    "Fixture read requests by outcome",
    ["outcome"]  # db_cache, rate_limited, success, error
)

settlement_predictions_total = Counter(
    "settlement_predictions_total",
    "Predictions processed by settlement runs",
    ["result"]  # settled, skipped, failed
)

popular_matches_cache_total = Counter(
    "popular_matches_cache_total",
    "Popular matches lookups by cache result",
    ["result"]  # hit, miss, race
)


def record_provider_success(provider: str) -> None:
    provider_requests_success_total.labels(provider=provider).inc()


def record_provider_failure(provider: str, step: str) -> None:
    provider_requests_failure_total.labels(provider=provider, step=step).inc()


def record_sync_outcome(outcome: str) -> None:
    fixture_sync_total.labels(outcome=outcome).inc()


def record_settlement(settled: int, skipped: int, failed: int) -> None:
    """Add one settlement run's counts."""
    if settled:
        settlement_predictions_total.labels(result="settled").inc(settled)
    if skipped:
        settlement_predictions_total.labels(result="skipped").inc(skipped)
    if failed:
        settlement_predictions_total.labels(result="failed").inc(failed)


def record_popular_matches_cache(result: str) -> None:
    popular_matches_cache_total.labels(result=result).inc()
