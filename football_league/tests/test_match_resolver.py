"""
Tests for the match resolver: single resolution, no writes on failure,
matchday batches and result broadcast.
"""
from __future__ import annotations

import pytest

from football_league.errors import ConflictError, DependencyUnavailableError, NotFoundError
from football_league.models import utcnow
from football_league.persistence.repositories import FixtureRepository, TeamRepository
from football_league.services.broadcast import ResultBroadcaster
from football_league.services.league_service import LeagueService
from football_league.services.match_resolver import MatchResolver
from football_league.simulation.rng import SeededRNG
from football_league.simulation.score_generator import ScoreGenerator

from .conftest import SEASON, SEASON_START, WEEKDAYS, make_league


@pytest.fixture
def scheduled(db_conn):
    """Four-team league with its full schedule. Returns (league, teams, fixtures)."""
    league, teams = make_league(db_conn, 4)
    fixtures = LeagueService().schedule_season(db_conn, league.id, SEASON, SEASON_START, WEEKDAYS)
    return league, teams, fixtures


def _resolver(**kwargs) -> MatchResolver:
    kwargs.setdefault("score_generator", ScoreGenerator(SeededRNG(1)))
    return MatchResolver(**kwargs)


class _LosingFixtureStore(FixtureRepository):
    """Behaves like the real store but always loses the conditional update."""

    def mark_played_if_unplayed(self, conn, fixture_id, home_score, away_score, played_at):
        return False


def test_resolve_fixture_persists_result(db_conn, scheduled):
    _, teams, fixtures = scheduled
    f = fixtures[0]
    result = _resolver().resolve_fixture(db_conn, f.id)
    assert result.fixture_id == f.id
    assert result.home_goals >= 0 and result.away_goals >= 0
    assert result.score == f"{result.home_goals}-{result.away_goals}"
    names = {t.id: t.name for t in teams}
    assert result.home_team_name == names[f.home_team_id]

    stored = FixtureRepository().get(db_conn, f.id)
    assert stored.played is True
    assert (stored.home_score, stored.away_score) == (result.home_goals, result.away_goals)
    assert stored.played_at is not None


def test_resolve_fixture_uses_clock(db_conn, scheduled):
    _, _, fixtures = scheduled
    when = utcnow().replace(microsecond=0)
    result = _resolver(clock=lambda: when).resolve_fixture(db_conn, fixtures[0].id)
    assert result.played_at == when
    assert FixtureRepository().get(db_conn, fixtures[0].id).played_at == when


def test_resolve_twice_conflicts_and_keeps_score(db_conn, scheduled):
    _, _, fixtures = scheduled
    first = _resolver().resolve_fixture(db_conn, fixtures[0].id)
    with pytest.raises(ConflictError):
        _resolver(score_generator=ScoreGenerator(SeededRNG(999))).resolve_fixture(db_conn, fixtures[0].id)
    stored = FixtureRepository().get(db_conn, fixtures[0].id)
    assert (stored.home_score, stored.away_score) == (first.home_goals, first.away_goals)


def test_unknown_fixture_not_found(db_conn):
    with pytest.raises(NotFoundError):
        _resolver().resolve_fixture(db_conn, "no-such-fixture")


def test_team_store_failure_writes_nothing(db_conn, scheduled):
    _, _, fixtures = scheduled

    class BrokenTeams(TeamRepository):
        def list_players(self, conn, team_id):
            raise DependencyUnavailableError("roster store down")

    with pytest.raises(DependencyUnavailableError):
        _resolver(team_store=BrokenTeams()).resolve_fixture(db_conn, fixtures[0].id)
    stored = FixtureRepository().get(db_conn, fixtures[0].id)
    assert stored.played is False
    assert stored.home_score is None and stored.away_score is None


def test_team_lookup_failure_leaves_fixture_unplayed(db_conn, scheduled):
    _, _, fixtures = scheduled
    events = []
    broadcaster = ResultBroadcaster()
    broadcaster.subscribe(events.append)

    class BrokenTeamLookup(TeamRepository):
        def get(self, conn, team_id):
            raise DependencyUnavailableError("team store down")

    resolver = _resolver(team_store=BrokenTeamLookup(), broadcaster=broadcaster)
    with pytest.raises(DependencyUnavailableError):
        resolver.resolve_fixture(db_conn, fixtures[0].id)
    stored = FixtureRepository().get(db_conn, fixtures[0].id)
    assert stored.played is False
    assert stored.home_score is None and stored.away_score is None
    assert events == []
    # Once the store recovers the same fixture resolves normally
    assert _resolver().resolve_fixture(db_conn, fixtures[0].id).fixture_id == fixtures[0].id


def test_lost_race_raises_conflict_without_broadcast(db_conn, scheduled):
    _, _, fixtures = scheduled
    events = []
    broadcaster = ResultBroadcaster()
    broadcaster.subscribe(events.append)
    resolver = _resolver(fixture_store=_LosingFixtureStore(), broadcaster=broadcaster)
    with pytest.raises(ConflictError):
        resolver.resolve_fixture(db_conn, fixtures[0].id)
    assert events == []
    assert FixtureRepository().get(db_conn, fixtures[0].id).played is False


def test_conditional_update_only_first_wins(db_conn, scheduled):
    _, _, fixtures = scheduled
    repo = FixtureRepository()
    now = utcnow()
    assert repo.mark_played_if_unplayed(db_conn, fixtures[0].id, 2, 1, now) is True
    assert repo.mark_played_if_unplayed(db_conn, fixtures[0].id, 0, 0, now) is False
    stored = repo.get(db_conn, fixtures[0].id)
    assert (stored.home_score, stored.away_score) == (2, 1)


def test_resolve_matchday_plays_all_fixtures(db_conn, scheduled):
    league, _, _ = scheduled
    results = _resolver().resolve_matchday(db_conn, league.id, SEASON, 1)
    assert len(results) == 2
    md1 = FixtureRepository().list_by_matchday(db_conn, league.id, SEASON, 1)
    assert all(f.played for f in md1)


def test_resolve_matchday_skips_already_played(db_conn, scheduled):
    league, _, fixtures = scheduled
    first_md1 = next(f for f in fixtures if f.matchday == 1)
    _resolver().resolve_fixture(db_conn, first_md1.id)
    results = _resolver().resolve_matchday(db_conn, league.id, SEASON, 1)
    assert len(results) == 1
    assert results[0].fixture_id != first_md1.id


def test_simulate_next_matchday_walks_the_season(db_conn, scheduled):
    league, _, _ = scheduled
    resolver = _resolver()
    played_matchdays = []
    while True:
        matchday, results = resolver.simulate_next_matchday(db_conn, league.id, SEASON)
        if matchday is None:
            assert results == []
            break
        assert len(results) == 2
        played_matchdays.append(matchday)
    assert played_matchdays == [1, 2, 3, 4, 5, 6]
    assert FixtureRepository().next_unplayed_matchday(db_conn, league.id, SEASON) is None


def test_broadcast_once_per_resolution(db_conn, scheduled):
    _, _, fixtures = scheduled
    events = []
    broadcaster = ResultBroadcaster()
    broadcaster.subscribe(events.append)
    result = _resolver(broadcaster=broadcaster).resolve_fixture(db_conn, fixtures[0].id)
    assert len(events) == 1
    event = events[0]
    assert event.fixture_id == result.fixture_id
    assert (event.home_score, event.away_score) == (result.home_goals, result.away_goals)
    assert event.to_dict()["type"] == "match_result"


def test_failing_listener_does_not_affect_result(db_conn, scheduled):
    _, _, fixtures = scheduled
    received = []
    broadcaster = ResultBroadcaster()

    def boom(event):
        raise RuntimeError("listener down")

    broadcaster.subscribe(boom)
    broadcaster.subscribe(received.append)
    result = _resolver(broadcaster=broadcaster).resolve_fixture(db_conn, fixtures[0].id)
    assert len(received) == 1
    stored = FixtureRepository().get(db_conn, fixtures[0].id)
    assert (stored.home_score, stored.away_score) == (result.home_goals, result.away_goals)


def test_unsubscribe_stops_delivery(db_conn, scheduled):
    _, _, fixtures = scheduled
    events = []
    broadcaster = ResultBroadcaster()
    unsubscribe = broadcaster.subscribe(events.append)
    resolver = _resolver(broadcaster=broadcaster)
    resolver.resolve_fixture(db_conn, fixtures[0].id)
    unsubscribe()
    resolver.resolve_fixture(db_conn, fixtures[1].id)
    assert len(events) == 1
