"""
Fixture Repository: the fixture store.

Persists normalized leagues and fixtures from the sync pipeline and serves
the cached read path and the settlement scanner.

Upserts are keyed by provider id and idempotent. A fixture upsert never
moves status backwards (upcoming → live → finished) and never erases a
score the store already knows. Each upsert is expected to be committed by
the caller before the next one starts, so a failure only discards the item
being written.

Usage:
    repo = FixtureRepository(db)
    repo.upsert_fixture(normalized)
    repo.save()
    page = repo.query_by_date_range(start, end, offset=0, limit=20)
"""
from dataclasses import asdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from matchday.core.errors import StoreError
from matchday.core.logging import get_logger
from matchday.models import (
    League, Match, Prediction, MATCH_STATUSES, MATCH_STATUS_FINISHED,
)
from matchday.repositories.base import BaseRepository
from matchday.services.football.normalizer import NormalizedFixture, NormalizedLeague
from matchday.utils.timezone import utcnow

logger = get_logger(__name__)

STATUS_RANK = {status: rank for rank, status in enumerate(MATCH_STATUSES)}


def merge_status(current: Optional[str], incoming: str) -> str:
    """Return whichever status is further along the match lifecycle."""
    if current is None:
        return incoming
    if STATUS_RANK.get(incoming, 0) >= STATUS_RANK.get(current, 0):
        return incoming
    return current


class FixtureRepository(BaseRepository[Match]):
    """Repository for fixtures (matches) and leagues."""

    def __init__(self, db):
        super().__init__(Match, db)

    # ========================================================================
    # Lookups
    # ========================================================================

    def find_by_external_id(self, external_id: int) -> Optional[Match]:
        return self.where_first(Match.external_id == external_id)

    # ========================================================================
    # Upserts
    # ========================================================================

    def upsert_league(self, league: NormalizedLeague) -> League:
        """
        Insert or update a league keyed by provider id.

        Raises:
            StoreError: step ``league_upsert``, identifying the league
        """
        try:
            return self._write_league(league)
        except IntegrityError:
            # Another writer inserted the same id first; apply ours as an update
            self.db.rollback()
            try:
                return self._write_league(league)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise self._league_error(league, e) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._league_error(league, e) from e

    def _write_league(self, league: NormalizedLeague) -> League:
        row = self.db.get(League, league.id)
        if row is None:
            row = League(id=league.id)
            self.db.add(row)
        row.name = league.name
        row.logo = league.logo
        row.country = league.country
        row.season = league.season
        row.updated_at = utcnow()
        self.db.flush()
        return row

    @staticmethod
    def _league_error(league: NormalizedLeague, e: Exception) -> StoreError:
        return StoreError(
            f"Error saving league {league.id}",
            step="league_upsert",
            details={"league": asdict(league), "error": str(e)},
        )

    def upsert_fixture(self, fixture: NormalizedFixture) -> Match:
        """
        Insert or update a fixture keyed by provider external id.

        Raises:
            StoreError: step ``match_upsert``, identifying the fixture
        """
        try:
            return self._write_fixture(fixture)
        except IntegrityError:
            self.db.rollback()
            try:
                return self._write_fixture(fixture)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise self._fixture_error(fixture, e) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._fixture_error(fixture, e) from e

    def _write_fixture(self, fixture: NormalizedFixture) -> Match:
        row = self.find_by_external_id(fixture.external_id)
        if row is None:
            row = Match(external_id=fixture.external_id)
            self.db.add(row)

        row.home_team = fixture.home_team
        row.away_team = fixture.away_team
        row.home_logo = fixture.home_logo
        row.away_logo = fixture.away_logo
        row.league = fixture.league
        row.match_date = fixture.match_date
        row.start_timestamp = fixture.start_timestamp

        status = merge_status(row.status, fixture.status)
        if status == fixture.status:
            row.api_status = fixture.api_status
        else:
            logger.warning(
                f"Ignoring status regression for fixture {fixture.external_id}: "
                f"{row.status} -> {fixture.status} ({fixture.api_status})"
            )
        row.status = status

        # Scores only move from unknown to known
        if fixture.home_score is not None:
            row.home_score = fixture.home_score
        if fixture.away_score is not None:
            row.away_score = fixture.away_score

        row.updated_at = utcnow()
        self.db.flush()
        return row

    @staticmethod
    def _fixture_error(fixture: NormalizedFixture, e: Exception) -> StoreError:
        payload = asdict(fixture)
        payload["match_date"] = fixture.match_date.isoformat()
        return StoreError(
            f"Error saving fixture {fixture.external_id}",
            step="match_upsert",
            details={"match": payload, "error": str(e)},
        )

    # ========================================================================
    # Read path
    # ========================================================================

    def query_by_date_range(
        self,
        start: datetime,
        end: datetime,
        offset: int = 0,
        limit: int = 20,
    ) -> List[Match]:
        """
        Fixtures kicking off in ``[start, end)``, ordered by kickoff.

        External id breaks kickoff ties so consecutive pages never overlap.
        """
        return (
            self.query()
            .filter(Match.match_date >= start, Match.match_date < end)
            .order_by(Match.match_date.asc(), Match.external_id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_by_date_range(self, start: datetime, end: datetime) -> int:
        return self.count(Match.match_date >= start, Match.match_date < end)

    def query_all_leagues(self) -> List[League]:
        return self.db.query(League).order_by(League.name.asc(), League.id.asc()).all()

    def find_finished_with_scores(self) -> List[Match]:
        """Finished fixtures with both scores known, any date."""
        return (
            self.query()
            .filter(
                Match.status == MATCH_STATUS_FINISHED,
                Match.home_score.isnot(None),
                Match.away_score.isnot(None),
            )
            .order_by(Match.match_date.asc())
            .all()
        )

    # ========================================================================
    # Maintenance
    # ========================================================================

    def _unreferenced(self):
        return ~exists().where(Prediction.match_id == Match.id)

    def prune_stale(self, before: datetime, dry_run: bool = False) -> Dict[str, int]:
        """
        Delete fixtures and leagues not refreshed since ``before``.

        Fixtures that have predictions are kept.
        """
        matches = self.query().filter(Match.updated_at < before, self._unreferenced())
        leagues = self.db.query(League).filter(League.updated_at < before)

        if dry_run:
            return {"matches": matches.count(), "leagues": leagues.count()}

        result = {
            "matches": matches.delete(synchronize_session=False),
            "leagues": leagues.delete(synchronize_session=False),
        }
        self.save()
        logger.info(
            f"Pruned {result['matches']} fixtures and {result['leagues']} leagues "
            f"not updated since {before.isoformat()}"
        )
        return result

    def clear_all(self, dry_run: bool = False) -> Dict[str, int]:
        """
        Delete every league and every fixture without predictions.

        Operator action only; the sync path never calls it.
        """
        matches = self.query().filter(self._unreferenced())
        leagues = self.db.query(League)

        if dry_run:
            return {"matches": matches.count(), "leagues": leagues.count()}

        result = {
            "matches": matches.delete(synchronize_session=False),
            "leagues": leagues.delete(synchronize_session=False),
        }
        self.save()
        logger.warning(
            f"Cleared {result['matches']} fixtures and {result['leagues']} leagues"
        )
        return result
