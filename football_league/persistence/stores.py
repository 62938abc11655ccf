"""
Store interfaces the services depend on.
Services receive these explicitly; the SQLite repositories are the default
implementations, tests may pass anything with the same methods.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol, Sequence

from football_league.models import (
    Fixture,
    League,
    Membership,
    Player,
    ScheduledFixture,
    Season,
    Team,
)


class TeamStore(Protocol):
    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None: ...

    def list_all(self, conn: sqlite3.Connection) -> list[Team]: ...

    def list_players(self, conn: sqlite3.Connection, team_id: str) -> list[Player]: ...

    def names_by_id(self, conn: sqlite3.Connection, team_ids: Sequence[str]) -> dict[str, str]: ...


class LeagueStore(Protocol):
    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        division_level: int,
        season: Season,
        max_teams: int,
        id: str | None = None,
        commit: bool = True,
    ) -> League: ...

    def get(self, conn: sqlite3.Connection, league_id: str) -> League | None: ...

    def list_by_season(self, conn: sqlite3.Connection, season: Season) -> list[League]: ...

    def delete(self, conn: sqlite3.Connection, league_id: str, commit: bool = True) -> int: ...


class MembershipStore(Protocol):
    def bulk_create(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        season: Season,
        team_ids: Sequence[str],
        commit: bool = True,
    ) -> list[Membership]: ...

    def list_by_league(self, conn: sqlite3.Connection, league_id: str, season: Season) -> list[Membership]: ...

    def get_for_team(self, conn: sqlite3.Connection, team_id: str, season: Season) -> Membership | None: ...

    def delete_for_league_season(
        self, conn: sqlite3.Connection, league_id: str, season: Season, commit: bool = True
    ) -> int: ...


class FixtureStore(Protocol):
    def get(self, conn: sqlite3.Connection, fixture_id: str) -> Fixture | None: ...

    def bulk_create(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        season: Season,
        fixtures: Sequence[ScheduledFixture],
    ) -> list[Fixture]: ...

    def exists_for_season(self, conn: sqlite3.Connection, league_id: str, season: Season) -> bool: ...

    def list_by_league_season(self, conn: sqlite3.Connection, league_id: str, season: Season) -> list[Fixture]: ...

    def list_played(self, conn: sqlite3.Connection, league_id: str, season: Season) -> list[Fixture]: ...

    def list_by_matchday(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        season: Season,
        matchday: int,
        unplayed_only: bool = False,
    ) -> list[Fixture]: ...

    def list_overdue(self, conn: sqlite3.Connection, now: datetime) -> list[Fixture]: ...

    def next_unplayed_matchday(self, conn: sqlite3.Connection, league_id: str, season: Season) -> int | None: ...

    def next_unplayed(self, conn: sqlite3.Connection, league_id: str, season: Season) -> Fixture | None: ...

    def list_for_team(self, conn: sqlite3.Connection, team_id: str, season: Season) -> list[Fixture]: ...

    def list_recent_played(self, conn: sqlite3.Connection, limit: int = 7) -> list[Fixture]: ...

    def mark_played_if_unplayed(
        self,
        conn: sqlite3.Connection,
        fixture_id: str,
        home_score: int,
        away_score: int,
        played_at: datetime,
    ) -> bool:
        """Set scores and played=1 only where played=0. True if this call did the write."""
        ...

    def delete_for_league_season(
        self, conn: sqlite3.Connection, league_id: str, season: Season, commit: bool = True
    ) -> int: ...
