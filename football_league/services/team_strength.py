"""
Team strength: position-weighted mean of the squad's overall ratings.
Recomputed on every resolution; ratings may change between matches, so nothing is cached.
"""
from __future__ import annotations

import math
import sqlite3
from typing import Iterable

from football_league.models import Player, Position
from football_league.persistence.repositories import TeamRepository
from football_league.persistence.stores import TeamStore

DEFAULT_STRENGTH = 60

# Attack-biased positions influence scoring more than the goalkeeper does.
POSITION_WEIGHTS: dict[str, float] = {
    Position.GOALKEEPER.value: 0.8,
    Position.DEFENDER.value: 1.0,
    Position.MIDFIELDER.value: 1.1,
    Position.FORWARD.value: 1.2,
}
UNKNOWN_POSITION_WEIGHT = 1.0


def weighted_strength(players: Iterable[Player]) -> int:
    """Weighted mean rounded half-up; DEFAULT_STRENGTH for an empty squad."""
    total_rating = 0.0
    total_weight = 0.0
    for p in players:
        weight = POSITION_WEIGHTS.get(p.position, UNKNOWN_POSITION_WEIGHT)
        total_rating += p.overall_rating * weight
        total_weight += weight
    if total_weight == 0:
        return DEFAULT_STRENGTH
    return int(math.floor(total_rating / total_weight + 0.5))


def compute_team_strength(
    conn: sqlite3.Connection,
    team_id: str,
    team_store: TeamStore | None = None,
) -> int:
    """Fetch the team's current players and reduce them to one strength value. Store errors propagate."""
    store = team_store or TeamRepository()
    return weighted_strength(store.list_players(conn, team_id))
