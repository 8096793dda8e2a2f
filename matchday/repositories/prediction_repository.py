"""
Prediction Repository for user predictions and their settlement.

Usage:
    repo = PredictionRepository(db)
    repo.upsert_for_user(user_id, match_id, 1, 0)
    pending = repo.find_unsettled_for_match(match_id)
    repo.settle(pending[0].id, is_correct=True, points_earned=3)
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from matchday.models import Prediction
from matchday.repositories.base import BaseRepository
from matchday.utils.timezone import utcnow


class PredictionRepository(BaseRepository[Prediction]):
    """Repository for prediction data access."""

    def __init__(self, db):
        super().__init__(Prediction, db)

    # ========================================================================
    # User-facing queries
    # ========================================================================

    def find_by_user_and_match(self, user_id: str, match_id: str) -> Optional[Prediction]:
        return self.where_first(
            Prediction.user_id == user_id,
            Prediction.match_id == match_id,
        )

    def find_by_user_with_match(self, user_id: str) -> List[Prediction]:
        """A user's predictions, newest first, with their match loaded."""
        return (
            self.query()
            .options(joinedload(Prediction.match))
            .filter(Prediction.user_id == user_id)
            .order_by(Prediction.created_at.desc(), Prediction.id.asc())
            .all()
        )

    def upsert_for_user(
        self,
        user_id: str,
        match_id: str,
        predicted_home_score: int,
        predicted_away_score: int,
        confidence: int = 5,
    ) -> Prediction:
        """
        Create or revise a user's prediction for a match and commit it.

        Keyed by (user_id, match_id). Revising keeps the row id and
        creation time.
        """
        try:
            prediction = self._write(
                user_id, match_id, predicted_home_score, predicted_away_score, confidence
            )
            self.save()
        except IntegrityError:
            # Concurrent first submission by the same user; update the winner's row
            self.rollback()
            prediction = self._write(
                user_id, match_id, predicted_home_score, predicted_away_score, confidence
            )
            self.save()
        return prediction

    def _write(
        self,
        user_id: str,
        match_id: str,
        predicted_home_score: int,
        predicted_away_score: int,
        confidence: int,
    ) -> Prediction:
        prediction = self.find_by_user_and_match(user_id, match_id)
        if prediction is None:
            prediction = Prediction(user_id=user_id, match_id=match_id)
            self.add(prediction)
        prediction.predicted_home_score = predicted_home_score
        prediction.predicted_away_score = predicted_away_score
        prediction.confidence = confidence
        prediction.updated_at = utcnow()
        self.flush()
        return prediction

    # ========================================================================
    # Settlement
    # ========================================================================

    def find_unsettled_for_match(self, match_id: str) -> List[Prediction]:
        return (
            self.query()
            .filter(Prediction.match_id == match_id, Prediction.is_correct.is_(None))
            .order_by(Prediction.created_at.asc(), Prediction.id.asc())
            .all()
        )

    def settle(self, prediction_id: str, is_correct: bool, points_earned: int) -> bool:
        """
        Write a settlement result if the prediction is still unsettled.

        Single conditional UPDATE (``WHERE is_correct IS NULL``), so two
        concurrent settlement runs cannot both score the same prediction.

        Returns:
            True if this call settled the prediction, False if it was already
            settled
        """
        updated = (
            self.query()
            .filter(Prediction.id == prediction_id, Prediction.is_correct.is_(None))
            .update(
                {
                    Prediction.is_correct: is_correct,
                    Prediction.points_earned: points_earned,
                    Prediction.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    # ========================================================================
    # Aggregates
    # ========================================================================

    def aggregate_by_user(self, user_ids: Optional[Iterable[str]] = None) -> Dict[str, Dict[str, int]]:
        """
        Totals per user: predictions, correct predictions and points.

        Args:
            user_ids: Restrict to these users (all users when None)
        """
        query = self.db.query(
            Prediction.user_id,
            func.count(Prediction.id),
            func.sum(case((Prediction.is_correct == True, 1), else_=0)),  # noqa: E712
            func.sum(func.coalesce(Prediction.points_earned, 0)),
        )
        if user_ids is not None:
            query = query.filter(Prediction.user_id.in_(list(user_ids)))

        return {
            user_id: {
                "total_predictions": total or 0,
                "correct_predictions": int(correct or 0),
                "total_points": int(points or 0),
            }
            for user_id, total, correct, points in query.group_by(Prediction.user_id).all()
        }
