"""
League-centric service: season setup, schedule generation and read-side
fixture queries. Persistence is delegated to repositories.
"""
from __future__ import annotations

import logging
import math
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from football_league.errors import ConflictError, LeagueError, NotFoundError, PreconditionFailedError
from football_league.models import Fixture, League, Season, Team, utcnow
from football_league.persistence.repositories import (
    FixtureRepository,
    LeagueRepository,
    MembershipRepository,
    TeamRepository,
)
from football_league.persistence.stores import FixtureStore, LeagueStore, MembershipStore, TeamStore
from football_league.services.scheduling import generate_season_schedule
from football_league.simulation.rng import SeededRNG

logger = logging.getLogger(__name__)

DEFAULT_TEAMS_PER_LEAGUE = 12


@dataclass
class ScheduleOutcome:
    league_id: str
    league_name: str
    scheduled: bool
    fixtures: int = 0
    matchdays: int = 0
    error: str | None = None
    error_kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "league_id": self.league_id,
            "league_name": self.league_name,
            "scheduled": self.scheduled,
            "fixtures": self.fixtures,
            "matchdays": self.matchdays,
            "error": self.error,
            "error_kind": self.error_kind,
        }


def division_sizes(team_count: int, teams_per_league: int) -> list[int]:
    """ceil(team_count / teams_per_league) divisions whose sizes differ by at most one, larger first."""
    num_leagues = math.ceil(team_count / teams_per_league)
    base, extra = divmod(team_count, num_leagues)
    return [base + 1 if i < extra else base for i in range(num_leagues)]


class LeagueService:
    """
    Domain logic for leagues: setup, scheduling, reset and fixture queries.
    """

    def __init__(
        self,
        league_repo: LeagueStore | None = None,
        membership_repo: MembershipStore | None = None,
        fixture_repo: FixtureStore | None = None,
        team_repo: TeamStore | None = None,
    ) -> None:
        self._league_repo = league_repo or LeagueRepository()
        self._member_repo = membership_repo or MembershipRepository()
        self._fixture_repo = fixture_repo or FixtureRepository()
        self._team_repo = team_repo or TeamRepository()

    def get_league(self, conn: sqlite3.Connection, league_id: str) -> League:
        league = self._league_repo.get(conn, league_id)
        if league is None:
            raise NotFoundError(f"League not found: {league_id}")
        return league

    # ---------- Setup ----------

    def setup_leagues(
        self,
        conn: sqlite3.Connection,
        season: Season,
        teams_per_league: int = DEFAULT_TEAMS_PER_LEAGUE,
        seed: int | None = None,
    ) -> list[League]:
        """
        Split every team into "Division k" leagues of at most teams_per_league,
        shuffling the team order first. One-off per season.
        Teams are spread so division sizes differ by at most one, and every
        league row and membership is written in one transaction.
        """
        if teams_per_league < 2:
            raise PreconditionFailedError("teams_per_league must be at least 2")
        if self._league_repo.list_by_season(conn, season):
            raise ConflictError(f"Leagues already set up for season {season}")
        teams = self._team_repo.list_all(conn)
        if len(teams) < 2:
            raise PreconditionFailedError(f"Need at least 2 teams to set up leagues, got {len(teams)}")

        shuffled: list[Team] = list(teams)
        rng = SeededRNG(seed)
        rng.shuffle(shuffled)
        sizes = division_sizes(len(shuffled), teams_per_league)
        logger.info(
            "Creating %d league(s) for %d teams, season %s (shuffle seed %s)",
            len(sizes), len(shuffled), season, rng.seed,
        )

        leagues: list[League] = []
        start = 0
        with conn:
            for i, size in enumerate(sizes):
                level = i + 1
                league = self._league_repo.create(
                    conn, f"Division {level}", division_level=level, season=season,
                    max_teams=teams_per_league, commit=False,
                )
                chunk = shuffled[start : start + size]
                start += size
                self._member_repo.bulk_create(conn, league.id, season, [t.id for t in chunk], commit=False)
                leagues.append(league)
        for league, size in zip(leagues, sizes):
            logger.info("Created %s with %d teams", league.name, size)
        return leagues

    # ---------- Scheduling ----------

    def schedule_season(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        season: Season,
        season_start: datetime,
        weekdays: tuple[int, int],
        strict_size: int | None = None,
    ) -> list[Fixture]:
        """
        Generate and store the full double round-robin for (league, season).
        All fixtures are written in one transaction or none are.
        """
        league = self.get_league(conn, league_id)
        if league.season != season:
            raise PreconditionFailedError(f"{league.name} belongs to season {league.season}, not {season}")
        if self._fixture_repo.exists_for_season(conn, league_id, season):
            raise ConflictError(f"{league.name} already has a {season} schedule")
        members = self._member_repo.list_by_league(conn, league_id, season)
        team_ids = [m.team_id for m in members]
        schedule = generate_season_schedule(team_ids, season_start, weekdays, required_size=strict_size)
        fixtures = self._fixture_repo.bulk_create(conn, league_id, season, schedule)
        logger.info(
            "Scheduled %s: %d fixtures across %d matchdays",
            league.name, len(fixtures), max(f.matchday for f in fixtures),
        )
        return fixtures

    def schedule_all(
        self,
        conn: sqlite3.Connection,
        season: Season,
        season_start: datetime,
        weekdays: tuple[int, int],
        strict_size: int | None = None,
    ) -> list[ScheduleOutcome]:
        """Schedule every league of the season. One league failing does not stop the others."""
        outcomes: list[ScheduleOutcome] = []
        for league in self._league_repo.list_by_season(conn, season):
            try:
                fixtures = self.schedule_season(conn, league.id, season, season_start, weekdays, strict_size)
            except LeagueError as e:
                logger.warning("Skipping %s: %s", league.name, e.message)
                outcomes.append(ScheduleOutcome(
                    league_id=league.id, league_name=league.name, scheduled=False,
                    error=e.message, error_kind=e.kind,
                ))
                continue
            outcomes.append(ScheduleOutcome(
                league_id=league.id, league_name=league.name, scheduled=True,
                fixtures=len(fixtures), matchdays=max(f.matchday for f in fixtures),
            ))
        return outcomes

    def reset_season(self, conn: sqlite3.Connection, league_id: str, season: Season) -> dict[str, int]:
        """
        Delete fixtures, memberships and the league row of (league, season) in
        one transaction. The only deletion path; once every division of the
        season is reset, setup_leagues can run again.
        """
        league = self.get_league(conn, league_id)
        if league.season != season:
            raise PreconditionFailedError(f"{league.name} belongs to season {league.season}, not {season}")
        with conn:
            fixtures = self._fixture_repo.delete_for_league_season(conn, league_id, season, commit=False)
            members = self._member_repo.delete_for_league_season(conn, league_id, season, commit=False)
            leagues = self._league_repo.delete(conn, league_id, commit=False)
        logger.info(
            "Reset %s season %s: %d fixtures, %d memberships removed",
            league.name, season, fixtures, members,
        )
        return {"fixtures_deleted": fixtures, "memberships_deleted": members, "leagues_deleted": leagues}

    # ---------- Queries ----------

    def list_fixtures(self, conn: sqlite3.Connection, league_id: str, season: Season) -> dict[str, Any]:
        """All fixtures by matchday, plus the next matchday still to be played."""
        self.get_league(conn, league_id)
        fixtures = self._fixture_repo.list_by_league_season(conn, league_id, season)
        names = self._team_names(conn, fixtures)
        return {
            "fixtures": [_fixture_view(f, names) for f in fixtures],
            "next_matchday": self._fixture_repo.next_unplayed_matchday(conn, league_id, season),
        }

    def team_fixtures(self, conn: sqlite3.Connection, team_id: str, season: Season) -> dict[str, Any]:
        """A team's league plus its played and upcoming fixtures."""
        team = self._team_repo.get(conn, team_id)
        if team is None:
            raise NotFoundError(f"Team not found: {team_id}")
        membership = self._member_repo.get_for_team(conn, team_id, season)
        if membership is None:
            raise NotFoundError(f"{team.name} is not in a league for season {season}")
        league = self.get_league(conn, membership.league_id)
        fixtures = [
            f for f in self._fixture_repo.list_for_team(conn, team_id, season)
            if f.league_id == league.id
        ]
        names = self._team_names(conn, fixtures)
        return {
            "team": team.to_dict(),
            "league": league.to_dict(),
            "played": [_fixture_view(f, names) for f in fixtures if f.played],
            "upcoming": [_fixture_view(f, names) for f in fixtures if not f.played],
        }

    def next_scheduled(
        self, conn: sqlite3.Connection, league_id: str, season: Season, now: datetime | None = None
    ) -> dict[str, Any]:
        """Countdown to the next unplayed fixture of the league."""
        self.get_league(conn, league_id)
        nxt = self._fixture_repo.next_unplayed(conn, league_id, season)
        if nxt is None:
            return {"has_matches": False, "message": "Season complete"}
        now = now or utcnow()
        seconds_until = (nxt.scheduled_at - now).total_seconds()
        return {
            "has_matches": True,
            "matchday": nxt.matchday,
            "scheduled_at": nxt.scheduled_at.isoformat(),
            "is_overdue": nxt.scheduled_at < now,
            "minutes_until": math.floor(seconds_until / 60),
            "hours_until": math.floor(seconds_until / 3600),
        }

    def recent_results(self, conn: sqlite3.Connection, limit: int = 7) -> list[dict[str, Any]]:
        fixtures = self._fixture_repo.list_recent_played(conn, limit)
        names = self._team_names(conn, fixtures)
        return [_fixture_view(f, names) for f in fixtures]

    def _team_names(self, conn: sqlite3.Connection, fixtures: list[Fixture]) -> dict[str, str]:
        ids = sorted({f.home_team_id for f in fixtures} | {f.away_team_id for f in fixtures})
        return self._team_repo.names_by_id(conn, ids)


def _fixture_view(f: Fixture, names: dict[str, str]) -> dict[str, Any]:
    d = f.to_dict()
    d["home_team"] = names.get(f.home_team_id, f.home_team_id)
    d["away_team"] = names.get(f.away_team_id, f.away_team_id)
    return d
