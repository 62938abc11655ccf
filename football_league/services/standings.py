"""
League table from played fixtures. Win 3, draw 1, loss 0.

Ordering: points, then goal difference, then goals for, all descending.
The sort is stable, so teams level on all three keep membership order.
"""
from __future__ import annotations

import sqlite3
from typing import Iterable, Sequence

from football_league.errors import NotFoundError
from football_league.models import Fixture, Season, StandingsRow
from football_league.persistence.repositories import (
    FixtureRepository,
    LeagueRepository,
    MembershipRepository,
    TeamRepository,
)
from football_league.persistence.stores import FixtureStore, LeagueStore, MembershipStore, TeamStore

POINTS_WIN = 3
POINTS_DRAW = 1


def build_standings(
    members: Sequence[tuple[str, str]],
    fixtures: Iterable[Fixture],
) -> list[StandingsRow]:
    """
    Pure reducer. members is (team_id, team_name) in membership order.
    Unplayed fixtures and fixtures involving non-members are ignored.
    """
    table: dict[str, StandingsRow] = {
        team_id: StandingsRow(team_id=team_id, team_name=name) for team_id, name in members
    }
    for f in fixtures:
        if not f.played or f.home_score is None or f.away_score is None:
            continue
        home = table.get(f.home_team_id)
        away = table.get(f.away_team_id)
        if home is None or away is None:
            continue
        home.played += 1
        away.played += 1
        home.goals_for += f.home_score
        home.goals_against += f.away_score
        away.goals_for += f.away_score
        away.goals_against += f.home_score
        if f.home_score > f.away_score:
            home.won += 1
            home.points += POINTS_WIN
            away.lost += 1
        elif f.home_score < f.away_score:
            away.won += 1
            away.points += POINTS_WIN
            home.lost += 1
        else:
            home.drawn += 1
            away.drawn += 1
            home.points += POINTS_DRAW
            away.points += POINTS_DRAW

    rows = list(table.values())
    for row in rows:
        row.goal_difference = row.goals_for - row.goals_against
    rows.sort(key=lambda r: (-r.points, -r.goal_difference, -r.goals_for))
    for i, row in enumerate(rows):
        row.rank = i + 1
    return rows


def compute_standings(
    conn: sqlite3.Connection,
    league_id: str,
    season: Season,
    league_repo: LeagueStore | None = None,
    membership_repo: MembershipStore | None = None,
    fixture_repo: FixtureStore | None = None,
    team_repo: TeamStore | None = None,
) -> list[StandingsRow]:
    """Read-only: load members and played fixtures of (league, season) and reduce them."""
    league_repo = league_repo or LeagueRepository()
    membership_repo = membership_repo or MembershipRepository()
    fixture_repo = fixture_repo or FixtureRepository()
    team_repo = team_repo or TeamRepository()

    if league_repo.get(conn, league_id) is None:
        raise NotFoundError(f"League not found: {league_id}")
    memberships = membership_repo.list_by_league(conn, league_id, season)
    team_ids = [m.team_id for m in memberships]
    names = team_repo.names_by_id(conn, team_ids)
    members = [(tid, names.get(tid, tid)) for tid in team_ids]
    return build_standings(members, fixture_repo.list_played(conn, league_id, season))
