"""
Data models for the league engine.
Plain dataclasses; storage and HTTP concerns live elsewhere.

Teams and players are owned by the roster collaborator; the engine reads them
and writes only leagues, memberships and fixtures.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_SEASON_RE = re.compile(r"^(\d{4})-(\d{2})$")


def utcnow() -> datetime:
    """Naive UTC now. All stored timestamps are naive UTC so ISO strings sort correctly."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ---------- Season ----------
@dataclass(frozen=True)
class Season:
    """
    Season label such as "2024-25". Passed explicitly through every call;
    the second half must be the year after the first.
    """
    label: str

    def __post_init__(self) -> None:
        m = _SEASON_RE.match(self.label)
        if m is None:
            raise ValueError(f"Season label must look like 2024-25, got {self.label!r}")
        start, end = int(m.group(1)), int(m.group(2))
        if (start + 1) % 100 != end:
            raise ValueError(f"Season {self.label!r} must span consecutive years")

    @classmethod
    def parse(cls, label: str | Season) -> Season:
        if isinstance(label, Season):
            return label
        return cls(label.strip())

    @property
    def start_year(self) -> int:
        return int(self.label[:4])

    def __str__(self) -> str:
        return self.label


# ---------- Position ----------
class Position(str, Enum):
    GOALKEEPER = "GK"
    DEFENDER = "DEF"
    MIDFIELDER = "MID"
    FORWARD = "FWD"


# ---------- League ----------
@dataclass
class League:
    """
    One division for one season. Immutable after creation apart from its members.
    division_level 1 is the top tier.
    """
    id: str
    name: str
    division_level: int
    season: Season
    max_teams: int
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "division_level": self.division_level,
            "season": str(self.season),
            "max_teams": self.max_teams,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Team / Player (read-only collaborator records) ----------
@dataclass
class Team:
    id: str
    name: str
    owner_id: str | None
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Player:
    id: str
    team_id: str
    name: str
    position: str  # Position value; unknown positions are tolerated
    overall_rating: int


# ---------- Membership ----------
@dataclass
class Membership:
    """(team, league, season). A team belongs to exactly one league per season."""
    league_id: str
    team_id: str
    season: Season
    joined_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "league_id": self.league_id,
            "team_id": self.team_id,
            "season": str(self.season),
            "joined_at": self.joined_at.isoformat(),
        }


# ---------- Fixture ----------
@dataclass
class Fixture:
    """
    A scheduled league match. played flips false -> true exactly once, together
    with both scores and played_at; scores never change afterwards.
    """
    id: str
    league_id: str
    season: Season
    matchday: int
    home_team_id: str
    away_team_id: str
    scheduled_at: datetime
    played: bool
    home_score: int | None
    away_score: int | None
    played_at: datetime | None
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "league_id": self.league_id,
            "season": str(self.season),
            "matchday": self.matchday,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "scheduled_at": self.scheduled_at.isoformat(),
            "played": self.played,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "played_at": self.played_at.isoformat() if self.played_at else None,
        }


@dataclass(frozen=True)
class ScheduledFixture:
    """Scheduler output before persistence."""
    matchday: int
    home_team_id: str
    away_team_id: str
    scheduled_at: datetime


# ---------- Results ----------
@dataclass
class MatchResult:
    fixture_id: str
    league_id: str
    matchday: int
    home_team_id: str
    away_team_id: str
    home_team_name: str
    away_team_name: str
    home_goals: int
    away_goals: int
    home_strength: int
    away_strength: int
    played_at: datetime

    @property
    def score(self) -> str:
        return f"{self.home_goals}-{self.away_goals}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "fixture_id": self.fixture_id,
            "league_id": self.league_id,
            "matchday": self.matchday,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "home_team": self.home_team_name,
            "away_team": self.away_team_name,
            "home_score": self.home_goals,
            "away_score": self.away_goals,
            "score": self.score,
            "home_strength": self.home_strength,
            "away_strength": self.away_strength,
            "played_at": self.played_at.isoformat(),
        }


# ---------- Standings ----------
@dataclass
class StandingsRow:
    team_id: str
    team_name: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    rank: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
        }
