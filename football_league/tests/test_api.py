"""
API integration tests.
Uses TestClient to avoid starting a server. The client is not entered as a
context manager, so the lifespan (and the background advancer) does not run.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from football_league import api
from football_league.api import app
from football_league.auth import create_access_token
from football_league.persistence.db import get_connection

from .conftest import make_team

SEASON = "2024-25"
SCHEDULE_BODY = {"season_start": "2025-01-08T20:00:00", "weekdays": [2, 6]}


@pytest.fixture(autouse=True)
def isolated_db(db_path, monkeypatch):
    """Use a temporary DB for each test; no pause between advancer fixtures."""
    monkeypatch.setenv("ADVANCER_PAUSE_SECONDS", "0")
    monkeypatch.delenv("REQUIRE_AUTH", raising=False)
    yield db_path


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seeded_teams(db_path):
    conn = get_connection()
    try:
        return [
            make_team(conn, f"Club {i}", [("GK", 60), ("DEF", 62 + i), ("MID", 64 + i), ("FWD", 66 + i)])
            for i in range(8)
        ]
    finally:
        conn.close()


@pytest.fixture
def scheduled_leagues(client, seeded_teams):
    """Two 4-team divisions with their schedules. Returns the league dicts."""
    resp = client.post(f"/seasons/{SEASON}/setup", json={"teams_per_league": 4, "seed": 1})
    assert resp.status_code == 200
    leagues = resp.json()["leagues"]
    resp = client.post(f"/seasons/{SEASON}/schedule", json=SCHEDULE_BODY)
    assert resp.status_code == 200
    assert all(o["scheduled"] for o in resp.json()["leagues"])
    return leagues


def _first_fixture_id(client, league_id):
    fixtures = client.get(f"/leagues/{league_id}/seasons/{SEASON}/fixtures").json()["fixtures"]
    return fixtures[0]["id"]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["advancer_running"] is False


def test_request_id_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers.get("X-Request-ID")


def test_setup_creates_divisions(client, seeded_teams):
    resp = client.post(f"/seasons/{SEASON}/setup", json={"teams_per_league": 4, "seed": 3})
    assert resp.status_code == 200
    leagues = resp.json()["leagues"]
    assert [l["name"] for l in leagues] == ["Division 1", "Division 2"]
    assert all(l["season"] == SEASON for l in leagues)


def test_setup_twice_conflicts(client, seeded_teams):
    assert client.post(f"/seasons/{SEASON}/setup", json={"teams_per_league": 4}).status_code == 200
    resp = client.post(f"/seasons/{SEASON}/setup", json={"teams_per_league": 4})
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


def test_setup_without_teams_precondition_failed(client):
    resp = client.post(f"/seasons/{SEASON}/setup")
    assert resp.status_code == 422
    assert resp.json()["error"] == "precondition_failed"


def test_bad_season_label(client):
    assert client.post("/seasons/2024-26/setup").status_code == 422
    assert client.get("/leagues/x/seasons/24-25/standings").status_code == 422


def test_schedule_single_league_then_conflict(client, seeded_teams):
    leagues = client.post(f"/seasons/{SEASON}/setup", json={"teams_per_league": 4}).json()["leagues"]
    league_id = leagues[0]["id"]
    url = f"/leagues/{league_id}/seasons/{SEASON}/schedule"
    resp = client.post(url, json=SCHEDULE_BODY)
    assert resp.status_code == 200
    assert resp.json()["fixtures"] == 12
    assert resp.json()["matchdays"] == 6
    assert client.post(url, json=SCHEDULE_BODY).status_code == 409


def test_schedule_strict_size_rejected(client, seeded_teams):
    leagues = client.post(f"/seasons/{SEASON}/setup", json={"teams_per_league": 4}).json()["leagues"]
    resp = client.post(
        f"/leagues/{leagues[0]['id']}/seasons/{SEASON}/schedule",
        json={**SCHEDULE_BODY, "strict": True},
    )
    # LEAGUE_SIZE defaults to 12
    assert resp.status_code == 422
    assert resp.json()["error"] == "precondition_failed"


def test_schedule_bad_weekdays(client, seeded_teams):
    leagues = client.post(f"/seasons/{SEASON}/setup", json={"teams_per_league": 4}).json()["leagues"]
    resp = client.post(
        f"/leagues/{leagues[0]['id']}/seasons/{SEASON}/schedule",
        json={"season_start": "2025-01-08T20:00:00", "weekdays": [3, 3]},
    )
    assert resp.status_code == 422


def test_schedule_unknown_league(client):
    resp = client.post(f"/leagues/missing/seasons/{SEASON}/schedule", json=SCHEDULE_BODY)
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_fixtures_listing(client, scheduled_leagues):
    league_id = scheduled_leagues[0]["id"]
    data = client.get(f"/leagues/{league_id}/seasons/{SEASON}/fixtures").json()
    assert len(data["fixtures"]) == 12
    assert data["next_matchday"] == 1
    f = data["fixtures"][0]
    for key in ("id", "matchday", "home_team", "away_team", "scheduled_at", "played"):
        assert key in f
    assert f["scheduled_at"] == "2025-01-08T20:00:00"


def test_resolve_fixture_then_conflict(client, scheduled_leagues):
    fixture_id = _first_fixture_id(client, scheduled_leagues[0]["id"])
    resp = client.post(f"/fixtures/{fixture_id}/resolve", json={"seed": 9})
    assert resp.status_code == 200
    result = resp.json()
    assert result["fixture_id"] == fixture_id
    assert result["score"] == f"{result['home_score']}-{result['away_score']}"

    again = client.post(f"/fixtures/{fixture_id}/resolve")
    assert again.status_code == 409
    assert again.json()["error"] == "conflict"


def test_resolve_unknown_fixture(client):
    resp = client.post("/fixtures/nope/resolve")
    assert resp.status_code == 404


def test_resolve_matchday(client, scheduled_leagues):
    league_id = scheduled_leagues[0]["id"]
    resp = client.post(f"/leagues/{league_id}/seasons/{SEASON}/matchdays/1/resolve")
    assert resp.status_code == 200
    assert len(resp.json()["results"]) == 2
    assert client.post(f"/leagues/{league_id}/seasons/{SEASON}/matchdays/0/resolve").status_code == 422


def test_simulate_next_matchday_until_done(client, scheduled_leagues):
    league_id = scheduled_leagues[0]["id"]
    url = f"/leagues/{league_id}/seasons/{SEASON}/simulate-next-matchday"
    for expected in range(1, 7):
        data = client.post(url).json()
        assert data["matchday"] == expected
        assert len(data["results"]) == 2
    done = client.post(url).json()
    assert done["matchday"] is None
    assert done["results"] == []


def test_standings(client, scheduled_leagues):
    league_id = scheduled_leagues[0]["id"]
    client.post(f"/leagues/{league_id}/seasons/{SEASON}/matchdays/1/resolve", json={"seed": 4})
    resp = client.get(f"/leagues/{league_id}/seasons/{SEASON}/standings")
    assert resp.status_code == 200
    table = resp.json()["table"]
    assert len(table) == 4
    assert [row["rank"] for row in table] == [1, 2, 3, 4]
    assert all(row["played"] == 1 for row in table)
    assert sum(row["goals_for"] for row in table) == sum(row["goals_against"] for row in table)


def test_standings_unknown_league(client):
    resp = client.get(f"/leagues/missing/seasons/{SEASON}/standings")
    assert resp.status_code == 404


def test_next_scheduled_overdue(client, scheduled_leagues):
    league_id = scheduled_leagues[0]["id"]
    data = client.get(f"/leagues/{league_id}/seasons/{SEASON}/next-scheduled").json()
    assert data["has_matches"] is True
    assert data["matchday"] == 1
    # Season start is in the past
    assert data["is_overdue"] is True


def test_advancer_run_resolves_overdue(client, scheduled_leagues):
    resp = client.post("/advancer/run")
    assert resp.status_code == 200
    report = resp.json()
    # Both 4-team seasons lie in the past: 2 x 12 fixtures
    assert report["overdue"] == 24
    assert len(report["resolved"]) == 24
    assert report["failed"] == []
    assert client.post("/advancer/run").json()["overdue"] == 0


def test_team_fixtures(client, scheduled_leagues, seeded_teams):
    team_id = seeded_teams[0].id
    resp = client.get(f"/teams/{team_id}/fixtures", params={"season": SEASON})
    assert resp.status_code == 200
    data = resp.json()
    assert data["team"]["id"] == team_id
    assert len(data["upcoming"]) == 6
    assert data["played"] == []
    assert client.get("/teams/missing/fixtures", params={"season": SEASON}).status_code == 404


def test_recent_results(client, scheduled_leagues):
    league_id = scheduled_leagues[0]["id"]
    client.post(f"/leagues/{league_id}/seasons/{SEASON}/simulate-next-matchday")
    client.post(f"/leagues/{league_id}/seasons/{SEASON}/simulate-next-matchday")
    data = client.get("/results/recent", params={"limit": 3}).json()
    assert len(data["results"]) == 3
    assert all(r["played"] for r in data["results"])
    assert len(client.get("/results/recent").json()["results"]) == 4


def test_reset_league_season(client, scheduled_leagues):
    league_id = scheduled_leagues[0]["id"]
    resp = client.delete(f"/leagues/{league_id}/seasons/{SEASON}")
    assert resp.status_code == 200
    assert resp.json()["fixtures_deleted"] == 12
    assert resp.json()["memberships_deleted"] == 4
    assert resp.json()["leagues_deleted"] == 1
    assert client.get(f"/leagues/{league_id}/seasons/{SEASON}/fixtures").status_code == 404
    assert client.delete(f"/leagues/{league_id}/seasons/{SEASON}").status_code == 404


def test_reset_whole_season_then_set_up_again(client, scheduled_leagues):
    for league in scheduled_leagues:
        assert client.delete(f"/leagues/{league['id']}/seasons/{SEASON}").status_code == 200
    resp = client.post(f"/seasons/{SEASON}/setup", json={"teams_per_league": 4, "seed": 2})
    assert resp.status_code == 200
    resp = client.post(f"/seasons/{SEASON}/schedule", json=SCHEDULE_BODY)
    assert resp.status_code == 200
    assert [o["fixtures"] for o in resp.json()["leagues"]] == [12, 12]


def test_resolve_publishes_to_broadcaster(client, scheduled_leagues):
    events = []
    unsubscribe = api.broadcaster.subscribe(events.append)
    try:
        fixture_id = _first_fixture_id(client, scheduled_leagues[0]["id"])
        client.post(f"/fixtures/{fixture_id}/resolve")
    finally:
        unsubscribe()
    assert [e.fixture_id for e in events] == [fixture_id]


# ---------- Auth ----------


def test_admin_endpoints_require_token_when_enabled(client, seeded_teams, monkeypatch):
    monkeypatch.setenv("REQUIRE_AUTH", "true")
    assert client.post(f"/seasons/{SEASON}/setup").status_code == 401
    bad = client.post(f"/seasons/{SEASON}/setup", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401

    token = create_access_token("admin-1")
    resp = client.post(
        f"/seasons/{SEASON}/setup",
        json={"teams_per_league": 4},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 200
    # Reads stay open
    league_id = resp.json()["leagues"][0]["id"]
    assert client.get(f"/leagues/{league_id}/seasons/{SEASON}/standings").status_code == 200


def test_results_websocket_accepts_clients(client):
    with client.websocket_connect("/ws/results") as ws:
        ws.send_text("hello")
