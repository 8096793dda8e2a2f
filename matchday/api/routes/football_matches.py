"""
Football fixtures routes.

GET  /football-matches          today's fixtures, cache-first with a rate-limited provider sync
POST /football-matches/refresh  operator-triggered provider refresh (scores and results)
"""
import logging
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from matchday.core.auth import require_admin_token
from matchday.core.database import get_db
from matchday.core.rate_limit import limiter
from matchday.models import League, Match
from matchday.services.football.sync_orchestrator import DEFAULT_PAGE_SIZE, FixtureSyncOrchestrator
from matchday.utils.timezone import isoformat_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/football-matches", tags=["football-matches"])

CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=300"


def get_orchestrator(db: Session = Depends(get_db)) -> FixtureSyncOrchestrator:
    """Dependency to get sync orchestrator instance."""
    return FixtureSyncOrchestrator(db)


def match_to_dict(match: Match) -> dict:
    return {
        "id": match.id,
        "external_id": match.external_id,
        "home_team": match.home_team,
        "away_team": match.away_team,
        "home_logo": match.home_logo,
        "away_logo": match.away_logo,
        "league": match.league,
        "match_date": isoformat_utc(match.match_date),
        "start_timestamp": match.start_timestamp,
        "status": match.status,
        "api_status": match.api_status,
        "home_score": match.home_score,
        "away_score": match.away_score,
        "created_at": isoformat_utc(match.created_at),
        "updated_at": isoformat_utc(match.updated_at),
    }


def league_to_dict(league: League) -> dict:
    return {
        "id": league.id,
        "name": league.name,
        "logo": league.logo,
        "country": league.country,
        "season": league.season,
    }


@router.get("")
@limiter.limit("60/minute")
async def get_football_matches(
    request: Request,
    response: Response,
    offset: int = Query(0),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    orchestrator: FixtureSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """
    Get today's fixtures (UTC day), paginated by kickoff time.

    ``offset`` below 0 is read as 0 and ``limit`` is clamped to 1..100.

    ``step`` tells where the data came from:
    - db_cache: stored fixtures, no provider call
    - rate_limited: stored fixtures (possibly none), provider quota exhausted
    - success: freshly synced from the provider
    """
    page = await orchestrator.get_todays_fixtures(offset=offset, limit=limit)

    if page.cacheable:
        response.headers["Cache-Control"] = CACHE_CONTROL

    return {
        "step": page.step,
        "cached": page.cacheable,
        "matches": [match_to_dict(m) for m in page.matches],
        "leagues": [league_to_dict(lg) for lg in page.leagues],
        "requestsCount": page.requests_count,
        "lastRequest": isoformat_utc(page.last_request),
        "pagination": {
            "offset": page.offset,
            "limit": page.limit,
            "total": page.total,
        },
    }


@router.post("/refresh", dependencies=[Depends(require_admin_token)])
async def refresh_football_matches(
    day: Optional[date] = Query(None, description="UTC date to refresh (default: today)"),
    orchestrator: FixtureSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """
    Re-fetch a day's fixtures from the provider, within the same outbound quota.

    Intended for an external scheduler so live scores and final results
    reach the store even while the read path is serving cached fixtures.
    """
    result = await orchestrator.refresh(day=day)
    return {
        "synced": result.synced,
        "date": result.day.isoformat(),
        "leagues": result.leagues,
        "fixtures": result.fixtures,
        "statuses": result.statuses,
        "requestsCount": result.requests_count,
        "lastRequest": isoformat_utc(result.last_request),
    }
