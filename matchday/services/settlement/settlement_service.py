"""
Settlement Service: score pending predictions once their fixture has finished.

One run walks every finished fixture that has both scores, one match at a
time, and settles each unsettled prediction with its own conditional update
and commit. A prediction already settled by a concurrent run is counted as
skipped; a failing prediction is rolled back, logged and counted as failed.
Re-running is safe: settled predictions are never touched again.

After the loop the user_stats totals of every user with a newly settled
prediction are recomputed from the predictions table and leaderboard ranks
are reassigned.
"""
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matchday.core import metrics
from matchday.core.errors import StoreError
from matchday.models import Match
from matchday.repositories.fixture_repository import FixtureRepository
from matchday.repositories.prediction_repository import PredictionRepository
from matchday.repositories.user_stats_repository import UserStatsRepository
from matchday.services.settlement.scoring import Score, score_prediction

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    processed_matches: int = 0
    settled: int = 0
    skipped: int = 0
    failed: int = 0
    stats_updated: int = 0
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "processedMatches": self.processed_matches,
            "settled": self.settled,
            "skipped": self.skipped,
            "failed": self.failed,
        }


class SettlementService:
    """Settles predictions for finished fixtures and refreshes user stats."""

    def __init__(self, db: Session):
        self.db = db
        self.fixtures = FixtureRepository(db)
        self.predictions = PredictionRepository(db)
        self.user_stats = UserStatsRepository(db)

    def run(self) -> SettlementResult:
        """
        Run one settlement pass.

        Returns:
            SettlementResult with per-prediction counts

        Raises:
            StoreError: If finished fixtures or their predictions cannot be read,
                or user stats cannot be written
        """
        started = time.perf_counter()
        result = SettlementResult()
        touched_users: Set[str] = set()

        try:
            finished = self.fixtures.find_finished_with_scores()
        except SQLAlchemyError as e:
            raise StoreError("Error fetching finished matches", step="db_query", details=str(e)) from e

        for match in finished:
            self._settle_match(match, result, touched_users)
            result.processed_matches += 1

        if touched_users:
            result.stats_updated = self.refresh_user_stats(touched_users)

        result.duration_ms = int((time.perf_counter() - started) * 1000)
        metrics.record_settlement(result.settled, result.skipped, result.failed)
        logger.info(
            f"Settlement complete: {result.processed_matches} matches, "
            f"{result.settled} settled, {result.skipped} skipped, {result.failed} failed "
            f"({result.duration_ms}ms)"
        )
        return result

    def _settle_match(self, match: Match, result: SettlementResult, touched_users: Set[str]) -> None:
        try:
            pending = self.predictions.find_unsettled_for_match(match.id)
        except SQLAlchemyError as e:
            raise StoreError(
                "Error fetching predictions",
                step="db_query",
                details={"match_id": match.id, "error": str(e)},
            ) from e

        if not pending:
            return

        # Plain values: every per-prediction commit expires the loaded rows
        actual = (match.home_score, match.away_score)
        rows = [
            (p.id, p.user_id, p.predicted_home_score, p.predicted_away_score)
            for p in pending
        ]
        logger.debug(
            f"Settling {len(rows)} predictions for {match.home_team} vs {match.away_team} "
            f"({actual[0]}-{actual[1]})"
        )
        for prediction_id, user_id, predicted_home, predicted_away in rows:
            score = score_prediction(predicted_home, predicted_away, *actual)
            self._settle_prediction(prediction_id, user_id, score, result, touched_users)

    def _settle_prediction(
        self,
        prediction_id: str,
        user_id: str,
        score: Score,
        result: SettlementResult,
        touched_users: Set[str],
    ) -> None:
        try:
            settled = self.predictions.settle(prediction_id, score.is_correct, score.points)
            self.predictions.save()
        except SQLAlchemyError as e:
            self.predictions.rollback()
            result.failed += 1
            logger.error(f"Error settling prediction {prediction_id}: {e}")
            return

        if settled:
            result.settled += 1
            touched_users.add(user_id)
        else:
            result.skipped += 1
            logger.debug(f"Prediction {prediction_id} already settled")

    def refresh_user_stats(self, user_ids: Optional[Iterable[str]] = None) -> int:
        """
        Recompute user_stats totals from predictions and reassign ranks.

        Args:
            user_ids: Users to recompute (every user with predictions when None)

        Returns:
            Number of users whose totals were written
        """
        try:
            totals = self.predictions.aggregate_by_user(user_ids)
            for user_id, user_totals in totals.items():
                self.user_stats.upsert_totals(user_id, user_totals)
            self.user_stats.flush()
            self.user_stats.reassign_ranks()
            self.user_stats.save()
        except SQLAlchemyError as e:
            self.user_stats.rollback()
            raise StoreError("Error updating user stats", step="user_stats", details=str(e)) from e

        logger.info(f"Refreshed stats for {len(totals)} users")
        return len(totals)
