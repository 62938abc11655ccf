"""
SQLite repositories for league data.
Read/write only, no rules. sqlite3 failures are
translated at this boundary: integrity violations become ConflictError,
everything else DependencyUnavailableError.
"""
from __future__ import annotations

import functools
import sqlite3
import uuid
from datetime import datetime
from typing import Any, Callable, Sequence, TypeVar

from football_league.errors import ConflictError, DependencyUnavailableError
from football_league.models import (
    Fixture,
    League,
    Membership,
    Player,
    ScheduledFixture,
    Season,
    Team,
    to_naive_utc,
    utcnow,
)

F = TypeVar("F", bound=Callable[..., Any])


def _store_call(fn: F) -> F:
    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"{fn.__qualname__}: {e}") from e
        except sqlite3.Error as e:
            raise DependencyUnavailableError(f"{fn.__qualname__}: {e}") from e
    return wrapper  # type: ignore[return-value]


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return to_naive_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))


def _ts(value: datetime) -> str:
    return to_naive_utc(value).isoformat()


# ---------- TeamRepository ----------


class TeamRepository:
    """Read access to the roster collaborator's teams and players. create/add_player exist for seeding."""

    @_store_call
    def create(self, conn: sqlite3.Connection, name: str, owner_id: str | None = None, id: str | None = None) -> Team:
        tid = id or str(uuid.uuid4())
        now = utcnow()
        conn.execute(
            "INSERT INTO teams (id, name, owner_id, created_at) VALUES (?, ?, ?, ?)",
            (tid, name, owner_id, now.isoformat()),
        )
        conn.commit()
        return Team(id=tid, name=name, owner_id=owner_id, created_at=now)

    @_store_call
    def add_player(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        name: str,
        position: str,
        overall_rating: int,
        id: str | None = None,
    ) -> Player:
        pid = id or str(uuid.uuid4())
        conn.execute(
            "INSERT INTO players (id, team_id, name, position, overall_rating) VALUES (?, ?, ?, ?, ?)",
            (pid, team_id, name, position, overall_rating),
        )
        conn.commit()
        return Player(id=pid, team_id=team_id, name=name, position=position, overall_rating=overall_rating)

    @_store_call
    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None:
        row = conn.execute(
            "SELECT id, name, owner_id, created_at FROM teams WHERE id = ?", (team_id,)
        ).fetchone()
        if row is None:
            return None
        return Team(
            id=row["id"],
            name=row["name"],
            owner_id=row["owner_id"],
            created_at=_parse_datetime(row["created_at"]),
        )

    @_store_call
    def list_all(self, conn: sqlite3.Connection) -> list[Team]:
        rows = conn.execute(
            "SELECT id, name, owner_id, created_at FROM teams ORDER BY created_at, rowid"
        ).fetchall()
        return [
            Team(id=r["id"], name=r["name"], owner_id=r["owner_id"], created_at=_parse_datetime(r["created_at"]))
            for r in rows
        ]

    @_store_call
    def list_players(self, conn: sqlite3.Connection, team_id: str) -> list[Player]:
        rows = conn.execute(
            "SELECT id, team_id, name, position, overall_rating FROM players WHERE team_id = ? ORDER BY rowid",
            (team_id,),
        ).fetchall()
        return [
            Player(
                id=r["id"],
                team_id=r["team_id"],
                name=r["name"],
                position=r["position"],
                overall_rating=int(r["overall_rating"]),
            )
            for r in rows
        ]

    @_store_call
    def names_by_id(self, conn: sqlite3.Connection, team_ids: Sequence[str]) -> dict[str, str]:
        if not team_ids:
            return {}
        marks = ", ".join("?" for _ in team_ids)
        rows = conn.execute(f"SELECT id, name FROM teams WHERE id IN ({marks})", tuple(team_ids)).fetchall()
        return {r["id"]: r["name"] for r in rows}


# ---------- LeagueRepository ----------


class LeagueRepository:
    """CRUD for leagues. No business logic."""

    @_store_call
    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        division_level: int,
        season: Season,
        max_teams: int,
        id: str | None = None,
        commit: bool = True,
    ) -> League:
        lid = id or str(uuid.uuid4())
        now = utcnow()
        conn.execute(
            "INSERT INTO leagues (id, name, division_level, season, max_teams, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (lid, name, division_level, str(season), max_teams, now.isoformat()),
        )
        if commit:
            conn.commit()
        return League(
            id=lid, name=name, division_level=division_level, season=season,
            max_teams=max_teams, created_at=now,
        )

    @_store_call
    def get(self, conn: sqlite3.Connection, league_id: str) -> League | None:
        row = conn.execute(
            "SELECT id, name, division_level, season, max_teams, created_at FROM leagues WHERE id = ?",
            (league_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_league(row)

    @_store_call
    def list_by_season(self, conn: sqlite3.Connection, season: Season) -> list[League]:
        rows = conn.execute(
            "SELECT id, name, division_level, season, max_teams, created_at FROM leagues WHERE season = ? ORDER BY division_level",
            (str(season),),
        ).fetchall()
        return [_row_to_league(r) for r in rows]

    @_store_call
    def delete(self, conn: sqlite3.Connection, league_id: str, commit: bool = True) -> int:
        cur = conn.execute("DELETE FROM leagues WHERE id = ?", (league_id,))
        if commit:
            conn.commit()
        return cur.rowcount


def _row_to_league(row: sqlite3.Row) -> League:
    return League(
        id=row["id"],
        name=row["name"],
        division_level=row["division_level"],
        season=Season(row["season"]),
        max_teams=row["max_teams"],
        created_at=_parse_datetime(row["created_at"]),
    )


# ---------- MembershipRepository ----------


class MembershipRepository:
    """CRUD for league_memberships. Rows are only ever inserted or deleted on season reset."""

    @_store_call
    def bulk_create(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        season: Season,
        team_ids: Sequence[str],
        commit: bool = True,
    ) -> list[Membership]:
        """All rows or none. With commit=False the caller owns the transaction."""
        now = utcnow()
        rows = [(league_id, tid, str(season), now.isoformat()) for tid in team_ids]
        sql = "INSERT INTO league_memberships (league_id, team_id, season, joined_at) VALUES (?, ?, ?, ?)"
        if commit:
            with conn:
                conn.executemany(sql, rows)
        else:
            conn.executemany(sql, rows)
        return [Membership(league_id=league_id, team_id=tid, season=season, joined_at=now) for tid in team_ids]

    @_store_call
    def list_by_league(self, conn: sqlite3.Connection, league_id: str, season: Season) -> list[Membership]:
        rows = conn.execute(
            "SELECT league_id, team_id, season, joined_at FROM league_memberships WHERE league_id = ? AND season = ? ORDER BY rowid",
            (league_id, str(season)),
        ).fetchall()
        return [_row_to_membership(r) for r in rows]

    @_store_call
    def get_for_team(self, conn: sqlite3.Connection, team_id: str, season: Season) -> Membership | None:
        row = conn.execute(
            "SELECT league_id, team_id, season, joined_at FROM league_memberships WHERE team_id = ? AND season = ?",
            (team_id, str(season)),
        ).fetchone()
        return _row_to_membership(row) if row is not None else None

    @_store_call
    def delete_for_league_season(
        self, conn: sqlite3.Connection, league_id: str, season: Season, commit: bool = True
    ) -> int:
        cur = conn.execute(
            "DELETE FROM league_memberships WHERE league_id = ? AND season = ?", (league_id, str(season))
        )
        if commit:
            conn.commit()
        return cur.rowcount


def _row_to_membership(row: sqlite3.Row) -> Membership:
    return Membership(
        league_id=row["league_id"],
        team_id=row["team_id"],
        season=Season(row["season"]),
        joined_at=_parse_datetime(row["joined_at"]),
    )


# ---------- FixtureRepository ----------

_FIXTURE_COLS = (
    "id, league_id, season, matchday, home_team_id, away_team_id, scheduled_at, "
    "played, home_score, away_score, played_at, created_at"
)


def _row_to_fixture(row: sqlite3.Row) -> Fixture:
    return Fixture(
        id=row["id"],
        league_id=row["league_id"],
        season=Season(row["season"]),
        matchday=row["matchday"],
        home_team_id=row["home_team_id"],
        away_team_id=row["away_team_id"],
        scheduled_at=_parse_datetime(row["scheduled_at"]),
        played=bool(row["played"]),
        home_score=row["home_score"],
        away_score=row["away_score"],
        played_at=_parse_datetime(row["played_at"]) if row["played_at"] else None,
        created_at=_parse_datetime(row["created_at"]),
    )


class FixtureRepository:
    """CRUD for fixtures. The only mutation after insert is mark_played_if_unplayed."""

    @_store_call
    def get(self, conn: sqlite3.Connection, fixture_id: str) -> Fixture | None:
        row = conn.execute(f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE id = ?", (fixture_id,)).fetchone()
        return _row_to_fixture(row) if row is not None else None

    @_store_call
    def bulk_create(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        season: Season,
        fixtures: Sequence[ScheduledFixture],
    ) -> list[Fixture]:
        """Insert a whole schedule in one transaction: all rows or none."""
        now = utcnow()
        created: list[Fixture] = []
        rows: list[tuple] = []
        for f in fixtures:
            fid = str(uuid.uuid4())
            scheduled_at = to_naive_utc(f.scheduled_at)
            rows.append((
                fid, league_id, str(season), f.matchday, f.home_team_id, f.away_team_id,
                scheduled_at.isoformat(), now.isoformat(),
            ))
            created.append(Fixture(
                id=fid, league_id=league_id, season=season, matchday=f.matchday,
                home_team_id=f.home_team_id, away_team_id=f.away_team_id,
                scheduled_at=scheduled_at, played=False, home_score=None, away_score=None,
                played_at=None, created_at=now,
            ))
        with conn:
            conn.executemany(
                "INSERT INTO fixtures (id, league_id, season, matchday, home_team_id, away_team_id, scheduled_at, played, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)",
                rows,
            )
        return created

    @_store_call
    def exists_for_season(self, conn: sqlite3.Connection, league_id: str, season: Season) -> bool:
        row = conn.execute(
            "SELECT 1 FROM fixtures WHERE league_id = ? AND season = ? LIMIT 1", (league_id, str(season))
        ).fetchone()
        return row is not None

    @_store_call
    def list_by_league_season(self, conn: sqlite3.Connection, league_id: str, season: Season) -> list[Fixture]:
        rows = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE league_id = ? AND season = ? ORDER BY matchday, scheduled_at, rowid",
            (league_id, str(season)),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    @_store_call
    def list_played(self, conn: sqlite3.Connection, league_id: str, season: Season) -> list[Fixture]:
        rows = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE league_id = ? AND season = ? AND played = 1 ORDER BY matchday, rowid",
            (league_id, str(season)),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    @_store_call
    def list_by_matchday(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        season: Season,
        matchday: int,
        unplayed_only: bool = False,
    ) -> list[Fixture]:
        sql = f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE league_id = ? AND season = ? AND matchday = ?"
        if unplayed_only:
            sql += " AND played = 0"
        sql += " ORDER BY scheduled_at, rowid"
        rows = conn.execute(sql, (league_id, str(season), matchday)).fetchall()
        return [_row_to_fixture(r) for r in rows]

    @_store_call
    def list_overdue(self, conn: sqlite3.Connection, now: datetime) -> list[Fixture]:
        """Unplayed fixtures scheduled at or before now, across all leagues, oldest first."""
        rows = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE played = 0 AND scheduled_at <= ? "
            "ORDER BY scheduled_at, matchday, rowid",
            (_ts(now),),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    @_store_call
    def next_unplayed_matchday(self, conn: sqlite3.Connection, league_id: str, season: Season) -> int | None:
        row = conn.execute(
            "SELECT MIN(matchday) AS md FROM fixtures WHERE league_id = ? AND season = ? AND played = 0",
            (league_id, str(season)),
        ).fetchone()
        return row["md"] if row is not None and row["md"] is not None else None

    @_store_call
    def next_unplayed(self, conn: sqlite3.Connection, league_id: str, season: Season) -> Fixture | None:
        row = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE league_id = ? AND season = ? AND played = 0 "
            "ORDER BY scheduled_at, matchday, rowid LIMIT 1",
            (league_id, str(season)),
        ).fetchone()
        return _row_to_fixture(row) if row is not None else None

    @_store_call
    def list_for_team(self, conn: sqlite3.Connection, team_id: str, season: Season) -> list[Fixture]:
        rows = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE season = ? AND (home_team_id = ? OR away_team_id = ?) "
            "ORDER BY matchday, rowid",
            (str(season), team_id, team_id),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    @_store_call
    def list_recent_played(self, conn: sqlite3.Connection, limit: int = 7) -> list[Fixture]:
        rows = conn.execute(
            f"SELECT {_FIXTURE_COLS} FROM fixtures WHERE played = 1 ORDER BY played_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    @_store_call
    def mark_played_if_unplayed(
        self,
        conn: sqlite3.Connection,
        fixture_id: str,
        home_score: int,
        away_score: int,
        played_at: datetime,
    ) -> bool:
        """
        Conditional update: only a row still at played = 0 is touched, so two
        racing resolvers cannot both write. Returns True if this call won.
        """
        cur = conn.execute(
            "UPDATE fixtures SET home_score = ?, away_score = ?, played = 1, played_at = ? "
            "WHERE id = ? AND played = 0",
            (home_score, away_score, _ts(played_at), fixture_id),
        )
        conn.commit()
        return cur.rowcount == 1

    @_store_call
    def delete_for_league_season(
        self, conn: sqlite3.Connection, league_id: str, season: Season, commit: bool = True
    ) -> int:
        cur = conn.execute("DELETE FROM fixtures WHERE league_id = ? AND season = ?", (league_id, str(season)))
        if commit:
            conn.commit()
        return cur.rowcount
