"""
Deterministic double round-robin schedule generation for leagues.

Circle method: fix the first slot, rotate the others one step each round
(the last slot moves to position 1). Round r pairs slot i with slot N-1-i, so
N-1 rounds give every team every other team exactly once. Home and away swap
on odd rounds to break up long runs at one venue. The second half of the
season is the first half reversed (same pairings, venues swapped) with the
matchday offset by the number of first-half rounds.

BYE handling: with an odd number of teams a virtual BYE slot is added and any
pairing involving it is dropped, so each round one team sits out.

Same team list ordering yields the same schedule.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

from football_league.errors import PreconditionFailedError
from football_league.models import ScheduledFixture

# Sentinel for bye when number of teams is odd
BYE = "BYE"


def round_robin_rounds(team_ids: Sequence[str]) -> list[list[tuple[str, str]]]:
    """
    One full round robin as a list of rounds of (home_team_id, away_team_id).
    Pairings with the BYE slot are left out.
    """
    if not team_ids:
        return []
    ids = list(team_ids)
    if len(ids) % 2 == 1:
        ids.append(BYE)
    n = len(ids)
    order = list(range(n))
    rounds: list[list[tuple[str, str]]] = []
    for rnd in range(n - 1):
        pairs: list[tuple[str, str]] = []
        for i in range(n // 2):
            home, away = ids[order[i]], ids[order[n - 1 - i]]
            if rnd % 2 == 1:
                home, away = away, home
            if home == BYE or away == BYE:
                continue
            pairs.append((home, away))
        rounds.append(pairs)
        order = [order[0], order[n - 1]] + order[1 : n - 1]
    return rounds


def double_round_robin_rounds(team_ids: Sequence[str]) -> list[list[tuple[str, str]]]:
    """First half plus its exact reversal."""
    first_half = round_robin_rounds(team_ids)
    second_half = [[(away, home) for home, away in rnd] for rnd in first_half]
    return first_half + second_half


def matchday_datetime(matchday: int, season_start: datetime, weekdays: tuple[int, int]) -> datetime:
    """
    Two matchdays per week: odd matchdays on weekdays[0], even ones on weekdays[1]
    of the same week. Matchday 1 is the first weekdays[0] on or after season_start,
    at season_start's time of day.
    """
    if matchday < 1:
        raise ValueError(f"matchday must be >= 1, got {matchday}")
    first, second = weekdays
    anchor = season_start + timedelta(days=(first - season_start.weekday()) % 7)
    weeks_passed = (matchday - 1) // 2
    offset = 0 if matchday % 2 == 1 else (second - first) % 7
    return anchor + timedelta(days=weeks_passed * 7 + offset)


def _check_round(matchday: int, pairs: list[tuple[str, str]]) -> None:
    seen: set[str] = set()
    for home, away in pairs:
        if home == away:
            raise RuntimeError(f"Team {home} drawn against itself on matchday {matchday}")
        if home in seen or away in seen:
            raise RuntimeError(f"Duplicate team on matchday {matchday}")
        seen.add(home)
        seen.add(away)


def generate_season_schedule(
    team_ids: Sequence[str],
    season_start: datetime,
    weekdays: tuple[int, int],
    required_size: int | None = None,
) -> list[ScheduledFixture]:
    """
    Full double round-robin with matchday numbers and kick-off times.
    N teams give N*(N-1) fixtures over 2*(N-1) matchdays (2*N with a bye).
    Raises PreconditionFailedError for fewer than 2 teams, duplicate ids, or
    a count different from required_size when one is given.
    """
    if len(team_ids) < 2:
        raise PreconditionFailedError(f"Need at least 2 teams to schedule, got {len(team_ids)}")
    if len(set(team_ids)) != len(team_ids):
        raise PreconditionFailedError("Duplicate team in league membership")
    if required_size is not None and len(team_ids) != required_size:
        raise PreconditionFailedError(
            f"League needs exactly {required_size} teams to schedule, has {len(team_ids)}"
        )
    fixtures: list[ScheduledFixture] = []
    for idx, pairs in enumerate(double_round_robin_rounds(team_ids)):
        matchday = idx + 1
        _check_round(matchday, pairs)
        kickoff = matchday_datetime(matchday, season_start, weekdays)
        for home, away in pairs:
            fixtures.append(ScheduledFixture(
                matchday=matchday, home_team_id=home, away_team_id=away, scheduled_at=kickoff,
            ))
    return fixtures
