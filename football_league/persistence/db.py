"""
Database connection and initialization.
"""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from football_league.config import get_settings
from football_league.errors import DependencyUnavailableError

from .schema import all_schema_sql

logger = logging.getLogger(__name__)

_db_path: Path | None = None


def set_db_path(path: str | Path) -> None:
    """Set the database path. Call before first get_connection if not using the configured one."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    """Return the current database path (explicit override, else LEAGUE_DB_PATH, else default)."""
    if _db_path is not None:
        return _db_path
    return get_settings().db_path


def get_connection(db_path: str | Path | None = None, timeout: float | None = None) -> sqlite3.Connection:
    """
    Return a new SQLite connection.
    Use as context manager or ensure close() is called. Connections may be
    handed to a worker thread (check_same_thread off) but never shared between threads.
    """
    path = Path(db_path) if db_path else get_db_path()
    if timeout is None:
        timeout = get_settings().db_timeout_seconds
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(path), timeout=timeout, check_same_thread=False)
    except (OSError, sqlite3.Error) as e:
        raise DependencyUnavailableError(f"Cannot open database at {path}: {e}") from e
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str | Path | None = None) -> None:
    """Create or ensure all tables exist."""
    path = Path(db_path) if db_path else get_db_path()
    conn = get_connection(path)
    try:
        conn.executescript(all_schema_sql())
        conn.commit()
    finally:
        conn.close()
    logger.info("Database ready at %s", path)
