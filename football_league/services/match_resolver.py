"""
Match Resolver: strength -> score -> conditional write for one fixture.

The played flag is claimed with a single conditional UPDATE
(mark_played_if_unplayed) rather than read-then-write, so the background
advancer and a request-triggered resolve can race on the same fixture and
only one of them records a score.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Callable

from football_league.errors import ConflictError, LeagueError, NotFoundError
from football_league.models import MatchResult, Season, utcnow
from football_league.persistence.repositories import FixtureRepository, TeamRepository
from football_league.persistence.stores import FixtureStore, TeamStore
from football_league.services.broadcast import ResultBroadcaster
from football_league.services.team_strength import compute_team_strength
from football_league.simulation.score_generator import ScoreGenerator

logger = logging.getLogger(__name__)


class MatchResolver:
    """
    Resolves fixtures. Stores, score generator, broadcaster and clock are
    injected; defaults are the SQLite repositories and an unseeded generator.
    """

    def __init__(
        self,
        fixture_store: FixtureStore | None = None,
        team_store: TeamStore | None = None,
        score_generator: ScoreGenerator | None = None,
        broadcaster: ResultBroadcaster | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._fixtures = fixture_store or FixtureRepository()
        self._teams = team_store or TeamRepository()
        self._scores = score_generator or ScoreGenerator()
        self._broadcaster = broadcaster
        self._clock = clock

    def resolve_fixture(self, conn: sqlite3.Connection, fixture_id: str) -> MatchResult:
        """
        Simulate and persist one fixture.
        NotFoundError if it does not exist; ConflictError if it is already
        played or another resolver claimed it first. Nothing is written on failure.
        """
        fixture = self._fixtures.get(conn, fixture_id)
        if fixture is None:
            raise NotFoundError(f"Fixture not found: {fixture_id}")
        if fixture.played:
            raise ConflictError(f"Fixture already played: {fixture_id}")

        # Every read happens before the conditional write; after it only logging and broadcast remain.
        home_team = self._teams.get(conn, fixture.home_team_id)
        away_team = self._teams.get(conn, fixture.away_team_id)
        home_strength = compute_team_strength(conn, fixture.home_team_id, self._teams)
        away_strength = compute_team_strength(conn, fixture.away_team_id, self._teams)
        home_goals, away_goals = self._scores.generate(home_strength, away_strength)
        played_at = self._clock()

        if not self._fixtures.mark_played_if_unplayed(conn, fixture_id, home_goals, away_goals, played_at):
            raise ConflictError(f"Fixture already played: {fixture_id}")

        result = MatchResult(
            fixture_id=fixture.id,
            league_id=fixture.league_id,
            matchday=fixture.matchday,
            home_team_id=fixture.home_team_id,
            away_team_id=fixture.away_team_id,
            home_team_name=home_team.name if home_team else fixture.home_team_id,
            away_team_name=away_team.name if away_team else fixture.away_team_id,
            home_goals=home_goals,
            away_goals=away_goals,
            home_strength=home_strength,
            away_strength=away_strength,
            played_at=played_at,
        )
        logger.info(
            "Resolved fixture %s (matchday %d): %s %s %s [strength %d v %d]",
            fixture.id, fixture.matchday, result.home_team_name, result.score,
            result.away_team_name, home_strength, away_strength,
        )
        if self._broadcaster is not None:
            self._broadcaster.publish(result)
        return result

    def resolve_matchday(
        self, conn: sqlite3.Connection, league_id: str, season: Season, matchday: int
    ) -> list[MatchResult]:
        """Resolve every unplayed fixture of one matchday. A failing fixture is logged and skipped."""
        fixtures = self._fixtures.list_by_matchday(conn, league_id, season, matchday, unplayed_only=True)
        results: list[MatchResult] = []
        for f in fixtures:
            try:
                results.append(self.resolve_fixture(conn, f.id))
            except LeagueError as e:
                logger.error("Error simulating fixture %s: %s", f.id, e.message)
        return results

    def simulate_next_matchday(
        self, conn: sqlite3.Connection, league_id: str, season: Season
    ) -> tuple[int | None, list[MatchResult]]:
        """Resolve the lowest matchday that still has unplayed fixtures. (None, []) once the season is done."""
        matchday = self._fixtures.next_unplayed_matchday(conn, league_id, season)
        if matchday is None:
            return None, []
        return matchday, self.resolve_matchday(conn, league_id, season, matchday)
