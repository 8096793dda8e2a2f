"""Normalize API-Football fixtures into League and Match records.

Data transformation:
- Raw provider fixture list → validated ProviderFixture models
- Provider status code (``fixture.status.short``) → upcoming / live / finished
- Leagues deduplicated by provider id (last occurrence wins)
- Kickoff times converted to naive UTC

Pure functions only; no I/O.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from matchday.core.errors import PayloadValidationError
from matchday.models import MATCH_STATUS_FINISHED, MATCH_STATUS_LIVE, MATCH_STATUS_UPCOMING
from matchday.services.football.schemas import ProviderFixture
from matchday.utils.timezone import to_naive_utc

logger = logging.getLogger(__name__)

# Provider codes for matches in play (including breaks and interruptions)
LIVE_STATUS_CODES = frozenset({
    "1H", "HT", "2H", "ET", "BT", "P", "LIVE", "INT", "BREAK", "SUSP",
})

# Provider codes for matches that will not be played any further
FINISHED_STATUS_CODES = frozenset({
    "FT", "AET", "PEN", "FT_PEN", "FT_AET", "AWD", "WO", "CANC", "ABD",
})


def map_status(api_status: Optional[str]) -> str:
    """
    Classify a provider status code.

    Total function: codes in neither set (NS, TBD, PST, unknown or missing)
    are ``upcoming``.
    """
    if not api_status:
        return MATCH_STATUS_UPCOMING
    code = api_status.strip().upper()
    if code in LIVE_STATUS_CODES:
        return MATCH_STATUS_LIVE
    if code in FINISHED_STATUS_CODES:
        return MATCH_STATUS_FINISHED
    return MATCH_STATUS_UPCOMING


@dataclass(frozen=True)
class NormalizedLeague:
    id: int
    name: str
    logo: Optional[str] = None
    country: Optional[str] = None
    season: Optional[int] = None


@dataclass(frozen=True)
class NormalizedFixture:
    external_id: int
    home_team: str
    away_team: str
    league: str
    match_date: datetime
    status: str
    api_status: Optional[str] = None
    home_logo: Optional[str] = None
    away_logo: Optional[str] = None
    start_timestamp: Optional[int] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None


@dataclass
class NormalizedBatch:
    leagues: List[NormalizedLeague] = field(default_factory=list)
    fixtures: List[NormalizedFixture] = field(default_factory=list)


def parse_fixture(raw: Any, index: int = 0) -> ProviderFixture:
    """
    Validate one raw provider fixture.

    Raises:
        PayloadValidationError: If required fields are missing or ill-typed
    """
    try:
        return ProviderFixture.model_validate(raw)
    except ValidationError as e:
        fixture_id = None
        if isinstance(raw, dict) and isinstance(raw.get("fixture"), dict):
            fixture_id = raw["fixture"].get("id")
        raise PayloadValidationError(
            "Unexpected fixture payload from provider",
            details={
                "index": index,
                "fixture_id": fixture_id,
                "errors": e.errors(include_url=False, include_context=False, include_input=False),
            },
        ) from e


def normalize_league(item: ProviderFixture) -> NormalizedLeague:
    league = item.league
    return NormalizedLeague(
        id=league.id,
        name=league.name,
        logo=league.logo,
        country=league.country,
        season=league.season,
    )


def normalize_fixture(item: ProviderFixture) -> NormalizedFixture:
    info = item.fixture
    return NormalizedFixture(
        external_id=info.id,
        home_team=item.teams.home.name,
        away_team=item.teams.away.name,
        home_logo=item.teams.home.logo,
        away_logo=item.teams.away.logo,
        league=item.league.name,
        match_date=to_naive_utc(info.date),
        start_timestamp=info.timestamp,
        status=map_status(info.status.short),
        api_status=info.status.short,
        home_score=item.goals.home,
        away_score=item.goals.away,
    )


def dedupe_leagues(leagues: Iterable[NormalizedLeague]) -> List[NormalizedLeague]:
    """Keep one league per id: the last one seen, at its first-seen position."""
    by_id: Dict[int, NormalizedLeague] = {}
    for league in leagues:
        by_id[league.id] = league
    return list(by_id.values())


def normalize(raw_fixtures: List[Any]) -> NormalizedBatch:
    """
    Validate and normalize a provider fixture list.

    The whole batch is validated before anything is returned, so a single
    malformed item rejects the batch instead of producing a partial one.
    """
    parsed = [parse_fixture(raw, index) for index, raw in enumerate(raw_fixtures)]

    batch = NormalizedBatch(
        leagues=dedupe_leagues(normalize_league(item) for item in parsed),
        fixtures=[normalize_fixture(item) for item in parsed],
    )

    logger.debug(
        f"Normalized {len(batch.fixtures)} fixtures across {len(batch.leagues)} leagues"
    )
    return batch
