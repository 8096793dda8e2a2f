"""Tests for prediction submission, listing and the leaderboard."""
import sys
from datetime import timedelta
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

sys.path.insert(0, str(Path(__file__).parent))
from conftest import NOW, create_match, create_prediction

from matchday.models import Prediction
from matchday.services.prediction_service import (
    InvalidPredictionError,
    MatchNotFoundError,
    PredictionService,
    resolve_scoreline,
)


class TestResolveScoreline:

    @pytest.mark.parametrize("choice,expected", [
        ("local", (1, 0)),
        ("empate", (0, 0)),
        ("visitante", (0, 1)),
    ])
    def test_defaults(self, choice, expected):
        assert resolve_scoreline(choice) == expected

    def test_explicit_score_matching_outcome(self):
        assert resolve_scoreline("local", 3, 1) == (3, 1)
        assert resolve_scoreline("empate", 2, 2) == (2, 2)

    @pytest.mark.parametrize("choice,home,away", [
        ("local", 1, 1),
        ("empate", 2, 0),
        ("visitante", 3, 0),
        ("local", 2, None),
        ("local", None, 0),
        ("local", -1, -2),
        ("home", None, None),
    ])
    def test_rejected(self, choice, home, away):
        with pytest.raises(InvalidPredictionError):
            resolve_scoreline(choice, home, away)


class TestPredictionService:

    def test_submit_creates_prediction(self, db_session: Session):
        match = create_match(db_session, 1)

        prediction = PredictionService(db_session).submit("alice", match.id, "visitante")

        assert (prediction.predicted_home_score, prediction.predicted_away_score) == (0, 1)
        assert prediction.confidence == 5
        assert prediction.is_correct is None

    def test_resubmit_updates_same_row(self, db_session: Session):
        match = create_match(db_session, 1)
        service = PredictionService(db_session)

        first = service.submit("alice", match.id, "local")
        first_id = first.id
        second = service.submit("alice", match.id, "empate", 1, 1)

        assert second.id == first_id
        assert db_session.query(Prediction).count() == 1
        assert (second.predicted_home_score, second.predicted_away_score) == (1, 1)

    def test_unknown_match(self, db_session: Session):
        with pytest.raises(MatchNotFoundError):
            PredictionService(db_session).submit("alice", "does-not-exist", "local")

    @pytest.mark.parametrize("status", ["live", "finished"])
    def test_closed_match(self, db_session: Session, status):
        match = create_match(db_session, 1, status=status)

        with pytest.raises(InvalidPredictionError):
            PredictionService(db_session).submit("alice", match.id, "local")

    def test_list_with_stats(self, db_session: Session):
        m1 = create_match(db_session, 1, status="finished", home_score=1, away_score=0)
        m2 = create_match(db_session, 2, status="finished", home_score=0, away_score=0)
        m3 = create_match(db_session, 3, match_date=NOW + timedelta(days=1))
        create_prediction(db_session, "alice", m1, 1, 0, is_correct=True, points_earned=4)
        create_prediction(db_session, "alice", m2, 1, 0, is_correct=False, points_earned=0)
        create_prediction(db_session, "alice", m3, 0, 0)
        create_prediction(db_session, "bob", m1, 0, 1)

        predictions, stats = PredictionService(db_session).list_for_user("alice")

        assert len(predictions) == 3
        assert all(p.match is not None for p in predictions)
        assert stats == {
            "totalPredictions": 3,
            "correctPredictions": 1,
            "accuracy": 33.33,
            "totalPoints": 4,
        }

    def test_list_empty(self, db_session: Session):
        predictions, stats = PredictionService(db_session).list_for_user("nobody")

        assert predictions == []
        assert stats["accuracy"] == 0.0
