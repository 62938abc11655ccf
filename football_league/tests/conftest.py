"""
Shared fixtures: a temporary SQLite database per test, plus helpers to
seed teams and a scheduled league.
"""
from __future__ import annotations

from datetime import datetime

import pytest

from football_league.models import Season
from football_league.persistence.db import get_connection, init_db, set_db_path
from football_league.persistence.repositories import (
    LeagueRepository,
    MembershipRepository,
    TeamRepository,
)

SEASON = Season("2024-25")
SEASON_START = datetime(2025, 1, 8, 20, 0)  # a Wednesday
WEEKDAYS = (2, 6)


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "league_test.db"
    set_db_path(path)
    init_db(db_path=path)
    return path


@pytest.fixture
def db_conn(db_path):
    """Temporary DB with the full schema."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def make_team(conn, name: str, ratings: list[tuple[str, int]] | None = None):
    """Create a team; ratings is a list of (position, overall_rating)."""
    repo = TeamRepository()
    team = repo.create(conn, name)
    for i, (position, rating) in enumerate(ratings or []):
        repo.add_player(conn, team.id, f"{name} Player {i + 1}", position, rating)
    return team


def make_league(conn, team_count: int, season: Season = SEASON, name: str = "Division 1", level: int = 1):
    """Create a league with team_count fresh members. Returns (league, teams)."""
    teams = [
        make_team(conn, f"{name} Team {i + 1}", [("GK", 60), ("DEF", 60 + i), ("MID", 60 + i), ("FWD", 60 + i)])
        for i in range(team_count)
    ]
    league = LeagueRepository().create(conn, name, division_level=level, season=season, max_teams=12)
    MembershipRepository().bulk_create(conn, league.id, season, [t.id for t in teams])
    return league, teams
