"""
HTTP endpoint integration tests for otg-sports-api.

These tests verify that FastAPI endpoints:
- Return the response envelope with correct HTTP status codes
- Enforce the tenant gateway (credential, scope, rate limit)
- Validate query parameters
- Filter and page match listings

Uses FastAPI TestClient for in-memory HTTP testing.
"""
from datetime import date, datetime, time

import pytest
from sqlalchemy.orm import Session

from app.models import ApiKey, BasketballMatch, SoccerMatch


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def sample_matches(db_session: Session):
    """Three soccer matches over two days and one live basketball match."""
    now = datetime.utcnow()
    db_session.add_all([
        SoccerMatch(
            match_id=4521337, league_id=1204, league_gid=1204, league_name="England: Premier League",
            match_status="FT", match_start_date=date(2024, 12, 22), match_start_time=time(15, 0),
            h_team_id=9260, h_team_name="Arsenal", a_team_id=9092, a_team_name="Chelsea",
            h_team_goals=2, a_team_goals=1, ht_score="[1-0]", ft_score="[2-1]",
            events=[{"type": "goal", "team": "localteam", "player": "B. Saka", "minute": "12"}],
            created_at=now, updated_at=now,
        ),
        SoccerMatch(
            match_id=4521338, league_id=1204, league_gid=1204, league_name="England: Premier League",
            match_status="2H", match_start_date=date(2024, 12, 22), match_start_time=time(17, 30),
            h_team_id=9249, h_team_name="Liverpool", a_team_id=9281, a_team_name="Everton",
            h_team_goals=0, a_team_goals=0, events=[],
            created_at=now, updated_at=now,
        ),
        SoccerMatch(
            match_id=4600001, league_id=1229, league_gid=1229, league_name="Germany: Bundesliga",
            match_status="NS", match_start_date=date(2024, 12, 23), match_start_time=time(20, 30),
            h_team_id=1, h_team_name="Bayern", a_team_id=2, a_team_name="Dortmund",
            events=[],
            created_at=now, updated_at=now,
        ),
        BasketballMatch(
            match_id=330441, league_id=1046, league_gid=1046, league_name="USA: NBA", file_group="nba",
            match_status="Q3", match_date=date(2024, 12, 22), match_time=time(1, 0), timer="07:12",
            h_team_id=1066, h_team_name="Boston Celtics", h_team_score=78, h_team_q1=28, h_team_q2=30, h_team_q3=20,
            a_team_id=1068, a_team_name="Philadelphia 76ers", a_team_score=70, a_team_q1=25, a_team_q2=27, a_team_q3=18,
            created_at=now, updated_at=now,
        ),
    ])
    db_session.commit()


@pytest.fixture
def soccer_key(make_api_key) -> str:
    plaintext, _ = make_api_key(name="Soccer Only", sports=["soccer"], rate_limit=600)
    return plaintext


@pytest.fixture
def all_sports_key(make_api_key) -> str:
    plaintext, _ = make_api_key(name="All Sports", sports=["*"], rate_limit=600)
    return plaintext


def bearer(key: str) -> dict:
    return {"Authorization": f"Bearer {key}"}


# =============================================================================
# PUBLIC ENDPOINTS
# =============================================================================

class TestPublicEndpoints:

    def test_health(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_health_reports_components(self, test_client):
        response = test_client.get("/api/health")
        assert response.status_code == 200
        components = response.json()["components"]
        assert components["database"]["status"] == "connected"
        assert components["scheduler"]["status"] == "disabled"
        assert components["last_used_recorder"]["status"] == "running"

    def test_root(self, test_client):
        assert test_client.get("/").json()["service"] == "OTG Sports API"

    def test_correlation_id_is_echoed(self, test_client):
        response = test_client.get("/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_unknown_route_uses_error_envelope(self, test_client):
        response = test_client.get("/api/v1/cricket/matches")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": {"code": "NOT_FOUND", "message": "Not Found"}}


# =============================================================================
# GATEWAY
# =============================================================================

class TestGatewayOverHttp:

    def test_missing_key(self, test_client):
        response = test_client.get("/api/v1/soccer/matches")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "MISSING_API_KEY"

    def test_invalid_key(self, test_client):
        response = test_client.get("/api/v1/soccer/matches", headers=bearer("sk_live_wrong"))
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_API_KEY"

    def test_x_api_key_header(self, test_client, soccer_key, sample_matches):
        response = test_client.get("/api/v1/soccer/matches", headers={"X-API-Key": soccer_key})
        assert response.status_code == 200

    def test_revoked_key(self, test_client, make_api_key):
        plaintext, _ = make_api_key(is_active=False)
        response = test_client.get("/api/v1/soccer/matches", headers=bearer(plaintext))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "API_KEY_REVOKED"

    def test_expired_key(self, test_client, make_api_key, expired_at):
        plaintext, _ = make_api_key(expires_at=expired_at)
        response = test_client.get("/api/v1/soccer/matches", headers=bearer(plaintext))
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "API_KEY_EXPIRED"

    def test_sport_outside_scope(self, test_client, soccer_key):
        response = test_client.get("/api/v1/basketball/matches", headers=bearer(soccer_key))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "SPORT_NOT_AUTHORIZED"

    def test_rate_limit(self, test_client, make_api_key, sample_matches):
        plaintext, _ = make_api_key(rate_limit=10)  # capacity 1

        assert test_client.get("/api/v1/soccer/leagues", headers=bearer(plaintext)).status_code == 200
        response = test_client.get("/api/v1/soccer/leagues", headers=bearer(plaintext))

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(response.headers["Retry-After"]) >= 1
        assert response.headers["X-RateLimit-Limit"] == "10"

    def test_last_used_is_recorded(self, test_client, database, make_api_key):
        plaintext, api_key = make_api_key()
        api_key_id = api_key.id

        assert test_client.get("/api/v1/soccer/leagues", headers=bearer(plaintext)).status_code == 200
        test_client.portal.call(test_client.app.state.gateway.recorder.flush)

        with database.session_scope() as db:
            assert db.get(ApiKey, api_key_id).last_used_at is not None


# =============================================================================
# SOCCER
# =============================================================================

class TestSoccerEndpoints:

    def test_list_newest_first(self, test_client, soccer_key, sample_matches):
        response = test_client.get("/api/v1/soccer/matches", headers=bearer(soccer_key))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [m["match_id"] for m in body["data"]] == [4600001, 4521338, 4521337]
        assert body["meta"] == {"total": 3, "limit": 50, "offset": 0}
        assert "events" not in body["data"][0]

    def test_filters(self, test_client, soccer_key, sample_matches):
        response = test_client.get(
            "/api/v1/soccer/matches",
            params={"date": "2024-12-22", "status": "FT", "league_id": 1204},
            headers=bearer(soccer_key),
        )
        body = response.json()
        assert [m["match_id"] for m in body["data"]] == [4521337]
        assert body["meta"]["total"] == 1

    def test_paging(self, test_client, soccer_key, sample_matches):
        response = test_client.get(
            "/api/v1/soccer/matches", params={"limit": 1, "offset": 1}, headers=bearer(soccer_key)
        )
        body = response.json()
        assert [m["match_id"] for m in body["data"]] == [4521338]
        assert body["meta"] == {"total": 3, "limit": 1, "offset": 1}

    @pytest.mark.parametrize("params", [{"limit": 500}, {"limit": 0}, {"offset": -1}, {"date": "22.12.2024"}])
    def test_invalid_parameters(self, test_client, soccer_key, params):
        response = test_client.get("/api/v1/soccer/matches", params=params, headers=bearer(soccer_key))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PARAMETER"

    def test_get_match_includes_events(self, test_client, soccer_key, sample_matches):
        response = test_client.get("/api/v1/soccer/matches/4521337", headers=bearer(soccer_key))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["home_team"] == {"id": 9260, "name": "Arsenal", "score": 2}
        assert data["start_date"] == "2024-12-22"
        assert data["start_time"] == "15:00"
        assert data["full_time_score"] == "[2-1]"
        assert data["events"][0]["player"] == "B. Saka"

    def test_unscored_match_omits_score(self, test_client, soccer_key, sample_matches):
        data = test_client.get("/api/v1/soccer/matches/4600001", headers=bearer(soccer_key)).json()["data"]
        assert "score" not in data["home_team"]
        assert "half_time_score" not in data

    def test_unknown_match(self, test_client, soccer_key, sample_matches):
        response = test_client.get("/api/v1/soccer/matches/999", headers=bearer(soccer_key))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_non_numeric_match_id(self, test_client, soccer_key):
        response = test_client.get("/api/v1/soccer/matches/abc", headers=bearer(soccer_key))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ID"

    def test_live(self, test_client, soccer_key, sample_matches):
        body = test_client.get("/api/v1/soccer/matches/live", headers=bearer(soccer_key)).json()
        assert [m["match_id"] for m in body["data"]] == [4521338]

    def test_leagues(self, test_client, soccer_key, sample_matches):
        body = test_client.get("/api/v1/soccer/leagues", headers=bearer(soccer_key)).json()
        assert body["data"] == [
            {"id": 1204, "gid": 1204, "name": "England: Premier League"},
            {"id": 1229, "gid": 1229, "name": "Germany: Bundesliga"},
        ]


# =============================================================================
# BASKETBALL
# =============================================================================

class TestBasketballEndpoints:

    def test_get_match(self, test_client, all_sports_key, sample_matches):
        response = test_client.get("/api/v1/basketball/matches/330441", headers=bearer(all_sports_key))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["sport"] == "basketball"
        assert data["timer"] == "07:12"
        assert data["file_group"] == "nba"
        assert data["quarter_scores"]["q1"] == {"home": 28, "away": 25}
        assert "q4" not in data["quarter_scores"]

    def test_live(self, test_client, all_sports_key, sample_matches):
        body = test_client.get("/api/v1/basketball/matches/live", headers=bearer(all_sports_key)).json()
        assert [m["match_id"] for m in body["data"]] == [330441]

    def test_list(self, test_client, all_sports_key, sample_matches):
        body = test_client.get("/api/v1/basketball/matches", headers=bearer(all_sports_key)).json()
        assert body["meta"]["total"] == 1
