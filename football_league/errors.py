"""
Error taxonomy shared by services and the API edge.
Every error carries a stable `kind` plus a human-readable message.
"""
from __future__ import annotations


class LeagueError(Exception):
    """Base class for all league engine failures."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "detail": self.message}


class NotFoundError(LeagueError):
    """Fixture, league, team or membership does not exist."""

    kind = "not_found"


class ConflictError(LeagueError):
    """Fixture already played, or a schedule already exists."""

    kind = "conflict"


class PreconditionFailedError(LeagueError):
    """Insufficient or wrong member count for scheduling; league not ready."""

    kind = "precondition_failed"


class DependencyUnavailableError(LeagueError):
    """The persistent store call failed."""

    kind = "dependency_unavailable"
