"""
Database models.

Usage:
    from matchday.models import Match, Prediction
"""
from matchday.models.models import (
    Base,
    League,
    Match,
    SyncRequestLog,
    Prediction,
    UserStats,
    PopularMatchesCache,
    MATCH_STATUS_UPCOMING,
    MATCH_STATUS_LIVE,
    MATCH_STATUS_FINISHED,
    MATCH_STATUSES,
)

__all__ = [
    "Base",
    "League",
    "Match",
    "SyncRequestLog",
    "Prediction",
    "UserStats",
    "PopularMatchesCache",
    "MATCH_STATUS_UPCOMING",
    "MATCH_STATUS_LIVE",
    "MATCH_STATUS_FINISHED",
    "MATCH_STATUSES",
]
