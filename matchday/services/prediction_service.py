"""
Prediction service: submission, listing with stats, and the leaderboard.

Users pick an outcome ("local", "empate", "visitante") and may add an exact
scoreline. Without one, the outcome's default scoreline is stored (1-0, 0-0,
0-1) so settlement can always score a concrete result. Predictions are
accepted only while the match is upcoming.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matchday.core.errors import StoreError
from matchday.models import MATCH_STATUS_UPCOMING, Match, Prediction, UserStats
from matchday.repositories.prediction_repository import PredictionRepository
from matchday.repositories.user_stats_repository import UserStatsRepository, accuracy_percentage
from matchday.services.settlement.scoring import (
    PREDICTION_CHOICES,
    classify_outcome,
    default_scoreline,
)

logger = logging.getLogger(__name__)


class MatchNotFoundError(LookupError):
    pass


class InvalidPredictionError(ValueError):
    pass


def resolve_scoreline(
    choice: str,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Turn a submitted outcome (and optional scoreline) into the stored scores.

    Raises:
        InvalidPredictionError: Unknown outcome, half a scoreline, a negative
            score, or a scoreline that contradicts the outcome
    """
    outcome = PREDICTION_CHOICES.get(choice)
    if outcome is None:
        raise InvalidPredictionError(
            f"Invalid prediction '{choice}'; expected one of {', '.join(PREDICTION_CHOICES)}"
        )

    if home_score is None and away_score is None:
        return default_scoreline(outcome)

    if home_score is None or away_score is None:
        raise InvalidPredictionError("homeScore and awayScore must be provided together")
    if home_score < 0 or away_score < 0:
        raise InvalidPredictionError("Scores must be zero or greater")
    if classify_outcome(home_score, away_score) != outcome:
        raise InvalidPredictionError(
            f"Score {home_score}-{away_score} does not match prediction '{choice}'"
        )
    return home_score, away_score


class PredictionService:
    """User-facing prediction operations."""

    def __init__(self, db: Session):
        self.db = db
        self.predictions = PredictionRepository(db)
        self.user_stats = UserStatsRepository(db)

    def submit(
        self,
        user_id: str,
        match_id: str,
        choice: str,
        home_score: Optional[int] = None,
        away_score: Optional[int] = None,
    ) -> Prediction:
        """
        Create or revise the user's prediction for a match.

        Raises:
            InvalidPredictionError: Bad outcome/scoreline or match not upcoming
            MatchNotFoundError: Unknown match id
            StoreError: Database failure
        """
        predicted_home, predicted_away = resolve_scoreline(choice, home_score, away_score)

        try:
            match = self.db.get(Match, match_id)
        except SQLAlchemyError as e:
            raise StoreError("Error loading match", step="db_query", details=str(e)) from e

        if match is None:
            raise MatchNotFoundError(f"Match {match_id} not found")
        if match.status != MATCH_STATUS_UPCOMING:
            raise InvalidPredictionError(
                f"Predictions are closed for this match (status: {match.status})"
            )

        try:
            prediction = self.predictions.upsert_for_user(
                user_id, match_id, predicted_home, predicted_away
            )
        except SQLAlchemyError as e:
            self.predictions.rollback()
            raise StoreError("Error saving prediction", step="prediction_upsert", details=str(e)) from e

        logger.info(
            f"User {user_id} predicted {predicted_home}-{predicted_away} for match {match_id}"
        )
        return prediction

    def list_for_user(self, user_id: str) -> Tuple[List[Prediction], Dict[str, Any]]:
        """The user's predictions (newest first) and their summary stats."""
        try:
            predictions = self.predictions.find_by_user_with_match(user_id)
        except SQLAlchemyError as e:
            raise StoreError("Error loading predictions", step="db_query", details=str(e)) from e

        correct = sum(1 for p in predictions if p.is_correct)
        stats = {
            "totalPredictions": len(predictions),
            "correctPredictions": correct,
            "accuracy": accuracy_percentage(correct, len(predictions)),
            "totalPoints": sum(p.points_earned or 0 for p in predictions),
        }
        return predictions, stats

    def leaderboard(self, limit: int = 20) -> List[UserStats]:
        try:
            return self.user_stats.top(limit)
        except SQLAlchemyError as e:
            raise StoreError("Error loading leaderboard", step="db_query", details=str(e)) from e
