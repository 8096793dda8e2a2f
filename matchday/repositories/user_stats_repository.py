"""
User Stats Repository: per-user totals and leaderboard ranks.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List

from matchday.models import UserStats
from matchday.repositories.base import BaseRepository
from matchday.utils.timezone import utcnow


def accuracy_percentage(correct: int, total: int) -> float:
    """Share of correct predictions in percent, rounded half up to 2 decimals."""
    if total <= 0:
        return 0.0
    percent = Decimal(correct * 100) / Decimal(total)
    return float(percent.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class UserStatsRepository(BaseRepository[UserStats]):
    """Repository for the user_stats table."""

    def __init__(self, db):
        super().__init__(UserStats, db)

    def find_by_user(self, user_id: str):
        return self.where_first(UserStats.user_id == user_id)

    def upsert_totals(self, user_id: str, totals: Dict[str, int]) -> UserStats:
        """Overwrite a user's totals (not committed)."""
        stats = self.find_by_user(user_id)
        if stats is None:
            stats = self.add(UserStats(user_id=user_id))

        stats.total_predictions = totals["total_predictions"]
        stats.correct_predictions = totals["correct_predictions"]
        stats.total_points = totals["total_points"]
        stats.accuracy_percentage = accuracy_percentage(
            totals["correct_predictions"], totals["total_predictions"]
        )
        stats.updated_at = utcnow()
        return stats

    def reassign_ranks(self) -> int:
        """
        Rank every user by points, then correct predictions (not committed).

        Ties on both keep a stable order by user id but get distinct ranks.

        Returns:
            Number of ranked users
        """
        ordered = (
            self.query()
            .order_by(
                UserStats.total_points.desc(),
                UserStats.correct_predictions.desc(),
                UserStats.user_id.asc(),
            )
            .all()
        )
        for position, stats in enumerate(ordered, start=1):
            stats.rank_position = position
        return len(ordered)

    def top(self, limit: int = 20) -> List[UserStats]:
        return (
            self.query()
            .filter(UserStats.rank_position.isnot(None))
            .order_by(UserStats.rank_position.asc())
            .limit(limit)
            .all()
        )
