"""
API-Football v3 payload schema.

Only the fields the sync pipeline consumes are modelled; anything else the
provider sends is ignored. Identifiers and team names are strict: a string
where an int is expected (or a missing team) is rejected rather than
coerced, so a provider format change fails loudly at the normalization
boundary.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ProviderStatus(_ProviderModel):
    short: Optional[StrictStr] = None
    long: Optional[str] = None
    elapsed: Optional[int] = None


class ProviderFixtureInfo(_ProviderModel):
    id: StrictInt
    date: datetime
    timestamp: Optional[StrictInt] = None
    status: ProviderStatus


class ProviderLeague(_ProviderModel):
    id: StrictInt
    name: StrictStr
    logo: Optional[str] = None
    country: Optional[str] = None
    season: Optional[StrictInt] = None


class ProviderTeam(_ProviderModel):
    name: StrictStr
    logo: Optional[str] = None


class ProviderTeams(_ProviderModel):
    home: ProviderTeam
    away: ProviderTeam


class ProviderGoals(_ProviderModel):
    home: Optional[StrictInt] = None
    away: Optional[StrictInt] = None


class ProviderFixture(_ProviderModel):
    """One entry of the ``response`` list returned by ``GET /fixtures``."""

    fixture: ProviderFixtureInfo
    league: ProviderLeague
    teams: ProviderTeams
    goals: ProviderGoals = ProviderGoals()
