"""Shared pytest fixtures for matchday tests."""
import os
import sys
from pathlib import Path
from datetime import datetime, timedelta
from typing import Any, Dict, Generator, List, Optional

# Test environment must be in place before matchday settings are imported
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["LOG_JSON"] = "false"
os.environ.setdefault("FOOTBALL_API_KEY", "test-football-key")
os.environ.setdefault("POPULAR_MATCHES_API_KEY", "test-popular-key")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

ADMIN_TOKEN = "test-admin-token"

# Fixed "now" for tests that care about the UTC day: 2026-10-19 14:00 UTC
NOW = datetime(2026, 10, 19, 14, 0, 0)


@pytest.fixture(autouse=True)
def reset_breakers():
    """Circuit breakers are module-level; start every test closed."""
    from matchday.services.circuit_breaker import reset_all_breakers

    reset_all_breakers()
    yield
    reset_all_breakers()


@pytest.fixture(scope="function")
def db_engine():
    """Isolated in-memory SQLite database shared by every session of one test."""
    from matchday.models import Base

    # StaticPool keeps a single connection so TestClient's worker threads
    # see the same in-memory database as the test body.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    TestSessionLocal = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = TestSessionLocal()

    yield session

    session.close()


@pytest.fixture(scope="function")
def test_client(db_session):
    """
    Create FastAPI TestClient with a fresh database for each test.

    Note: We don't use context manager (with TestClient) because it conflicts
    with Prometheus middleware that's added during app module initialization.
    """
    from fastapi.testclient import TestClient
    from matchday.main import app
    from matchday.core.database import get_db

    test_db_session = db_session

    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


# =============================================================================
# PROVIDER PAYLOAD BUILDERS
# =============================================================================

def make_raw_fixture(
    fixture_id: int,
    home: str = "Real Madrid",
    away: str = "Barcelona",
    kickoff: Optional[datetime] = None,
    status: Optional[str] = "NS",
    home_goals: Optional[int] = None,
    away_goals: Optional[int] = None,
    league_id: int = 140,
    league_name: str = "La Liga",
) -> Dict[str, Any]:
    """Build one API-Football fixture item as returned under ``response``."""
    kickoff = kickoff or NOW.replace(hour=19)
    return {
        "fixture": {
            "id": fixture_id,
            "date": kickoff.isoformat() + "+00:00",
            "timestamp": int((kickoff - datetime(1970, 1, 1)).total_seconds()),
            "status": {"short": status, "long": "Match"},
        },
        "league": {
            "id": league_id,
            "name": league_name,
            "logo": f"https://media.example.com/leagues/{league_id}.png",
            "country": "Spain",
            "season": 2026,
        },
        "teams": {
            "home": {"id": fixture_id * 10, "name": home, "logo": f"https://media.example.com/{home}.png"},
            "away": {"id": fixture_id * 10 + 1, "name": away, "logo": f"https://media.example.com/{away}.png"},
        },
        "goals": {"home": home_goals, "away": away_goals},
    }


def make_envelope(fixtures: List[Dict[str, Any]], errors: Any = None) -> Dict[str, Any]:
    return {
        "get": "fixtures",
        "errors": errors if errors is not None else [],
        "results": len(fixtures),
        "response": fixtures,
    }


class FakeFetcher:
    """In-memory stand-in for ApiFootballClient."""

    def __init__(self, fixtures: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.fixtures = fixtures or []
        self.error = error
        self.calls: List[str] = []
        self.closed = False

    async def fetch_fixtures(self, date_iso: str) -> List[Dict[str, Any]]:
        self.calls.append(date_iso)
        if self.error is not None:
            raise self.error
        return self.fixtures

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# DATABASE ROW BUILDERS
# =============================================================================

def create_match(db: Session, external_id: int = 1001, **kwargs):
    """Insert a Match row with sensible defaults and commit."""
    from matchday.models import Match, MATCH_STATUS_UPCOMING

    values = {
        "external_id": external_id,
        "home_team": "Real Madrid",
        "away_team": "Barcelona",
        "league": "La Liga",
        "match_date": NOW.replace(hour=19),
        "status": MATCH_STATUS_UPCOMING,
        "api_status": "NS",
    }
    values.update(kwargs)
    match = Match(**values)
    db.add(match)
    db.commit()
    return match


def create_prediction(db: Session, user_id: str, match, home: int, away: int, **kwargs):
    """Insert a Prediction row and commit."""
    from matchday.models import Prediction

    prediction = Prediction(
        user_id=user_id,
        match_id=match.id,
        predicted_home_score=home,
        predicted_away_score=away,
        **kwargs,
    )
    db.add(prediction)
    db.commit()
    return prediction


@pytest.fixture
def fixed_clock():
    """Clock returning NOW; tests advance it by reassigning ``fixed_clock.now``."""
    class _Clock:
        def __init__(self):
            self.now = NOW

        def __call__(self):
            return self.now

        def advance(self, **kwargs):
            self.now = self.now + timedelta(**kwargs)

    return _Clock()
