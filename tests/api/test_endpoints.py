"""
HTTP endpoint integration tests for the Matchday API.

These tests verify that FastAPI endpoints:
- Return correct HTTP status codes
- Validate request bodies and identity headers
- Translate pipeline failures into step-tagged 500 responses
- Run the fixture → prediction → settlement flow end to end

Uses FastAPI TestClient for in-memory HTTP testing with the provider faked.
"""
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(PROJECT_ROOT / "tests"))
from conftest import ADMIN_TOKEN, NOW, FakeFetcher, create_match, create_prediction, make_raw_fixture

from matchday.core.errors import ProviderError
from matchday.main import app
from matchday.api.routes import football_matches
from matchday.services.football.rate_limiter import RateLimiter
from matchday.services.football.sync_orchestrator import FixtureSyncOrchestrator

USER = {"X-User-Id": "user-alice"}
ADMIN = {"X-Admin-Token": ADMIN_TOKEN}


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fetcher():
    return FakeFetcher([
        make_raw_fixture(1001, home="Real Madrid", away="Barcelona", kickoff=NOW.replace(hour=20)),
        make_raw_fixture(1002, home="Arsenal", away="Chelsea", kickoff=NOW.replace(hour=16),
                         league_id=39, league_name="Premier League"),
    ])


@pytest.fixture
def provider(db_session, fetcher, fixed_clock):
    """Route the fixture endpoints through a fake provider and fixed clock."""
    def override_orchestrator():
        return FixtureSyncOrchestrator(
            db_session,
            fetcher_factory=lambda: fetcher,
            rate_limiter=RateLimiter(),
            clock=fixed_clock,
        )

    app.dependency_overrides[football_matches.get_orchestrator] = override_orchestrator
    yield fetcher


# =============================================================================
# HEALTH
# =============================================================================

class TestHealthEndpoints:

    def test_health_endpoint(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"]["status"] == "connected"
        assert data["components"]["circuit_breakers"]["football_api"] == "closed"

    def test_correlation_id_echoed(self, test_client: TestClient):
        response = test_client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"


# =============================================================================
# FOOTBALL MATCHES
# =============================================================================

class TestFootballMatchesEndpoint:

    def test_first_request_syncs(self, test_client: TestClient, provider):
        response = test_client.get("/api/football-matches")

        assert response.status_code == 200
        data = response.json()
        assert data["step"] == "success"
        assert [m["external_id"] for m in data["matches"]] == [1002, 1001]
        assert {lg["name"] for lg in data["leagues"]} == {"La Liga", "Premier League"}
        assert data["requestsCount"] == 1
        assert data["lastRequest"] == "2026-10-19T14:00:00Z"
        assert data["pagination"] == {"offset": 0, "limit": 20, "total": 2}
        assert data["matches"][0]["status"] == "upcoming"
        assert data["cached"] is False
        assert "Cache-Control" not in response.headers

    def test_second_request_served_from_cache(self, test_client: TestClient, provider):
        test_client.get("/api/football-matches")
        response = test_client.get("/api/football-matches")

        data = response.json()
        assert data["step"] == "db_cache"
        assert data["cached"] is True
        assert response.headers["Cache-Control"] == "public, s-maxage=60, stale-while-revalidate=300"
        assert len(provider.calls) == 1

    def test_pagination_params(self, test_client: TestClient, provider):
        response = test_client.get("/api/football-matches?offset=1&limit=1")

        data = response.json()
        assert [m["external_id"] for m in data["matches"]] == [1001]
        assert data["pagination"] == {"offset": 1, "limit": 1, "total": 2}

    @pytest.mark.parametrize("query,expected", [
        ("limit=500", {"offset": 0, "limit": 100, "total": 2}),
        ("limit=0", {"offset": 0, "limit": 1, "total": 2}),
        ("offset=-5&limit=20", {"offset": 0, "limit": 20, "total": 2}),
    ])
    def test_out_of_range_pagination_is_clamped(self, test_client: TestClient, provider, query, expected):
        response = test_client.get(f"/api/football-matches?{query}")

        assert response.status_code == 200
        assert response.json()["pagination"] == expected

    def test_page_past_end_served_from_cache_when_provider_down(
        self, test_client: TestClient, provider, fixed_clock
    ):
        test_client.get("/api/football-matches")
        fixed_clock.advance(minutes=30)
        provider.error = ProviderError("down", step="api_fetch")

        response = test_client.get("/api/football-matches?offset=20&limit=20")

        assert response.status_code == 200
        data = response.json()
        assert data["step"] == "db_cache"
        assert data["cached"] is True
        assert data["matches"] == []
        assert data["pagination"] == {"offset": 20, "limit": 20, "total": 2}
        assert len(provider.calls) == 1

    def test_provider_failure_is_step_tagged_500(self, test_client: TestClient, provider):
        provider.error = ProviderError("Error fetching fixtures", step="api_response", status_code=429)

        response = test_client.get("/api/football-matches")

        assert response.status_code == 500
        body = response.json()
        assert body["step"] == "api_response"
        assert body["status"] == 429
        assert "error" in body

    def test_refresh_requires_admin(self, test_client: TestClient, provider):
        assert test_client.post("/api/football-matches/refresh").status_code == 401
        assert test_client.post(
            "/api/football-matches/refresh", headers={"X-Admin-Token": "wrong"}
        ).status_code == 403

    def test_refresh(self, test_client: TestClient, provider):
        response = test_client.post("/api/football-matches/refresh", headers=ADMIN)

        assert response.status_code == 200
        data = response.json()
        assert data["synced"] is True
        assert data["fixtures"] == 2
        assert data["date"] == "2026-10-19"


# =============================================================================
# PREDICTIONS
# =============================================================================

class TestPredictionsEndpoints:

    def test_requires_user(self, test_client: TestClient):
        assert test_client.get("/api/predictions").status_code == 401
        assert test_client.post(
            "/api/predictions", json={"matchId": "x", "prediction": "local"}
        ).status_code == 401

    def test_submit_prediction(self, test_client: TestClient, db_session):
        match = create_match(db_session, 1)

        response = test_client.post(
            "/api/predictions",
            json={"matchId": match.id, "prediction": "local"},
            headers=USER,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["prediction"]["user_id"] == "user-alice"
        assert data["prediction"]["predicted_home_score"] == 1
        assert data["prediction"]["predicted_away_score"] == 0

    def test_submit_with_score(self, test_client: TestClient, db_session):
        match = create_match(db_session, 1)

        response = test_client.post(
            "/api/predictions",
            json={"matchId": match.id, "prediction": "visitante", "homeScore": 1, "awayScore": 3},
            headers=USER,
        )

        assert response.status_code == 200
        assert response.json()["prediction"]["predicted_away_score"] == 3

    @pytest.mark.parametrize("body", [
        {"prediction": "local"},
        {"matchId": "m"},
        {"matchId": "m", "prediction": "win"},
        {"matchId": "m", "prediction": "local", "homeScore": -1, "awayScore": 0},
    ])
    def test_invalid_body(self, test_client: TestClient, body):
        response = test_client.post("/api/predictions", json=body, headers=USER)
        assert response.status_code == 400

    def test_score_contradicting_outcome(self, test_client: TestClient, db_session):
        match = create_match(db_session, 1)

        response = test_client.post(
            "/api/predictions",
            json={"matchId": match.id, "prediction": "local", "homeScore": 0, "awayScore": 2},
            headers=USER,
        )

        assert response.status_code == 400

    def test_unknown_match(self, test_client: TestClient):
        response = test_client.post(
            "/api/predictions",
            json={"matchId": "missing", "prediction": "empate"},
            headers=USER,
        )
        assert response.status_code == 404

    def test_match_already_started(self, test_client: TestClient, db_session):
        match = create_match(db_session, 1, status="live", api_status="1H")

        response = test_client.post(
            "/api/predictions",
            json={"matchId": match.id, "prediction": "local"},
            headers=USER,
        )

        assert response.status_code == 400

    def test_list_predictions(self, test_client: TestClient, db_session):
        match = create_match(db_session, 1, status="finished", home_score=2, away_score=0)
        create_prediction(db_session, "user-alice", match, 2, 0, is_correct=True, points_earned=4)
        create_prediction(db_session, "user-bob", match, 0, 0)

        response = test_client.get("/api/predictions", headers=USER)

        assert response.status_code == 200
        data = response.json()
        assert len(data["predictions"]) == 1
        assert data["predictions"][0]["match"]["home_team"] == "Real Madrid"
        assert data["stats"] == {
            "totalPredictions": 1,
            "correctPredictions": 1,
            "accuracy": 100.0,
            "totalPoints": 4,
        }

    def test_update_results_requires_admin(self, test_client: TestClient):
        assert test_client.post("/api/predictions/update-results").status_code == 401
        assert test_client.post(
            "/api/predictions/update-results", headers={"X-Admin-Token": "nope"}
        ).status_code == 403


# =============================================================================
# END TO END
# =============================================================================

class TestPredictionFlow:
    """Sync fixtures → predict → fixture finishes → settle → leaderboard."""

    def test_full_flow(self, test_client: TestClient, provider, fixed_clock):
        matches = test_client.get("/api/football-matches").json()["matches"]
        clasico = next(m for m in matches if m["external_id"] == 1001)

        for user, body in [
            ("user-alice", {"prediction": "local", "homeScore": 2, "awayScore": 1}),
            ("user-bob", {"prediction": "local"}),
            ("user-carol", {"prediction": "empate"}),
        ]:
            response = test_client.post(
                "/api/predictions",
                json={"matchId": clasico["id"], **body},
                headers={"X-User-Id": user},
            )
            assert response.status_code == 200

        # Final whistle: provider now reports 2-1
        provider.fixtures = [
            make_raw_fixture(1001, kickoff=NOW.replace(hour=20), status="FT", home_goals=2, away_goals=1),
        ]
        fixed_clock.advance(hours=9)
        assert test_client.post("/api/football-matches/refresh", headers=ADMIN).json()["synced"] is True

        response = test_client.post("/api/predictions/update-results", headers=ADMIN)
        assert response.status_code == 200
        result = response.json()
        assert result["success"] is True
        assert (result["processedMatches"], result["settled"], result["skipped"], result["failed"]) == (1, 3, 0, 0)

        # Settling again changes nothing
        again = test_client.post("/api/predictions/update-results", headers=ADMIN).json()
        assert again["settled"] == 0

        alice = test_client.get("/api/predictions", headers={"X-User-Id": "user-alice"}).json()
        assert alice["predictions"][0]["points_earned"] == 4
        assert alice["predictions"][0]["match"]["status"] == "finished"

        board = test_client.get("/api/predictions/leaderboard", headers=USER).json()["leaderboard"]
        assert [(e["userId"], e["totalPoints"], e["rank"]) for e in board] == [
            ("user-alice", 4, 1),
            ("user-bob", 3, 2),
            ("user-carol", 0, 3),
        ]

        # Predictions are closed once the match has finished
        late = test_client.post(
            "/api/predictions",
            json={"matchId": clasico["id"], "prediction": "visitante"},
            headers={"X-User-Id": "user-dave"},
        )
        assert late.status_code == 400
