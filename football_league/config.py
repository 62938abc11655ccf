"""
Runtime configuration read from the environment.
Every setting has a development default so the app starts with no env at all.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

# Wednesday 20:00, then Sunday of the same week
DEFAULT_SEASON_START = "2025-01-08T20:00:00"
DEFAULT_MATCH_WEEKDAYS = (2, 6)
DEFAULT_LEAGUE_SIZE = 12


def _default_db_path() -> Path:
    return Path(__file__).resolve().parent.parent / "data" / "league.db"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_weekdays(raw: str) -> tuple[int, int]:
    """Parse "2,6" into (2, 6). Monday is 0, as in datetime.weekday()."""
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    if len(parts) != 2:
        raise ValueError(f"MATCH_WEEKDAYS needs exactly two weekdays, got {raw!r}")
    first, second = int(parts[0]), int(parts[1])
    for d in (first, second):
        if not 0 <= d <= 6:
            raise ValueError(f"Weekday out of range 0-6: {d}")
    if first == second:
        raise ValueError("MATCH_WEEKDAYS must name two different weekdays")
    return first, second


@dataclass
class Settings:
    db_path: Path = field(default_factory=_default_db_path)
    db_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    advancer_enabled: bool = True
    advancer_interval_minutes: float = 5.0
    advancer_pause_seconds: float = 0.1
    season_start: datetime = field(default_factory=lambda: datetime.fromisoformat(DEFAULT_SEASON_START))
    match_weekdays: tuple[int, int] = DEFAULT_MATCH_WEEKDAYS
    league_size: int = DEFAULT_LEAGUE_SIZE
    jwt_secret_key: str = "league-dev-secret-change-in-production"
    require_auth: bool = False

    @property
    def advancer_interval_seconds(self) -> float:
        return self.advancer_interval_minutes * 60.0


def get_settings() -> Settings:
    """Build Settings from environment variables."""
    env = os.environ
    db_path = env.get("LEAGUE_DB_PATH")
    return Settings(
        db_path=Path(db_path) if db_path else _default_db_path(),
        db_timeout_seconds=float(env.get("DB_TIMEOUT_SECONDS", "5")),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        advancer_enabled=_env_bool("ADVANCER_ENABLED", True),
        advancer_interval_minutes=float(env.get("ADVANCER_INTERVAL_MINUTES", "5")),
        advancer_pause_seconds=float(env.get("ADVANCER_PAUSE_SECONDS", "0.1")),
        season_start=datetime.fromisoformat(env.get("SEASON_START", DEFAULT_SEASON_START)),
        match_weekdays=parse_weekdays(env.get("MATCH_WEEKDAYS", "2,6")),
        league_size=int(env.get("LEAGUE_SIZE", str(DEFAULT_LEAGUE_SIZE))),
        jwt_secret_key=env.get("JWT_SECRET_KEY", "league-dev-secret-change-in-production"),
        require_auth=_env_bool("REQUIRE_AUTH", False),
    )
