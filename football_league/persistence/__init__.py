"""
League storage: SQLite connection handling, schema, repositories
and the store interfaces the services are typed against.
"""
from .db import get_connection, get_db_path, init_db, set_db_path
from .repositories import (
    FixtureRepository,
    LeagueRepository,
    MembershipRepository,
    TeamRepository,
)
from .stores import FixtureStore, LeagueStore, MembershipStore, TeamStore

__all__ = [
    "get_connection",
    "get_db_path",
    "init_db",
    "set_db_path",
    "FixtureRepository",
    "LeagueRepository",
    "MembershipRepository",
    "TeamRepository",
    "FixtureStore",
    "LeagueStore",
    "MembershipStore",
    "TeamStore",
]
