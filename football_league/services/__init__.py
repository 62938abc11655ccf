"""
Service layer: scheduling, simulation orchestration, standings, season advancement.
Pure computations (scheduling, standings reducer, strength) do no I/O;
the resolver, advancer and league service orchestrate persistence.
"""
from .broadcast import ResultBroadcaster, ResultEvent
from .league_service import LeagueService, ScheduleOutcome
from .match_resolver import MatchResolver
from .scheduling import generate_season_schedule, matchday_datetime, round_robin_rounds
from .season_advancer import AdvanceReport, PeriodicTicker, SeasonAdvancer
from .standings import build_standings, compute_standings
from .team_strength import compute_team_strength, weighted_strength

__all__ = [
    "ResultBroadcaster",
    "ResultEvent",
    "LeagueService",
    "ScheduleOutcome",
    "MatchResolver",
    "generate_season_schedule",
    "matchday_datetime",
    "round_robin_rounds",
    "AdvanceReport",
    "PeriodicTicker",
    "SeasonAdvancer",
    "build_standings",
    "compute_standings",
    "compute_team_strength",
    "weighted_strength",
]
