"""
Repository layer for data access.

Every repository takes the SQLAlchemy session it operates on:

    from matchday.repositories import FixtureRepository
    from matchday.core.database import SessionLocal

    db = SessionLocal()
    fixtures = FixtureRepository(db)
    finished = fixtures.find_finished_with_scores()
    db.close()
"""

from matchday.repositories.base import BaseRepository
from matchday.repositories.fixture_repository import FixtureRepository
from matchday.repositories.sync_request_repository import SyncRequestRepository
from matchday.repositories.prediction_repository import PredictionRepository
from matchday.repositories.user_stats_repository import UserStatsRepository
from matchday.repositories.popular_matches_repository import PopularMatchesRepository

__all__ = [
    "BaseRepository",
    "FixtureRepository",
    "SyncRequestRepository",
    "PredictionRepository",
    "UserStatsRepository",
    "PopularMatchesRepository",
]
