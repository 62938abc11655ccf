"""
Result broadcast: fan a resolved fixture out to interested listeners
(scoreboard WebSocket, notifications). Not needed for correctness; a failing
listener is logged and never affects the stored result or other listeners.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from football_league.models import MatchResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResultEvent:
    fixture_id: str
    league_id: str
    matchday: int
    home_team: str
    away_team: str
    home_score: int
    away_score: int
    timestamp: datetime

    @classmethod
    def from_result(cls, result: MatchResult) -> ResultEvent:
        return cls(
            fixture_id=result.fixture_id,
            league_id=result.league_id,
            matchday=result.matchday,
            home_team=result.home_team_name,
            away_team=result.away_team_name,
            home_score=result.home_goals,
            away_score=result.away_goals,
            timestamp=result.played_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "match_result",
            "fixture_id": self.fixture_id,
            "league_id": self.league_id,
            "matchday": self.matchday,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "timestamp": self.timestamp.isoformat(),
        }


Listener = Callable[[ResultEvent], None]


class ResultBroadcaster:
    """Synchronous publish/subscribe. Safe to publish from the advancer thread."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def publish(self, result: MatchResult) -> ResultEvent:
        event = ResultEvent.from_result(result)
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Result listener failed for fixture %s", event.fixture_id)
        return event
