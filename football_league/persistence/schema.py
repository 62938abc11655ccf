"""
SQLite schema for league entities.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def teams_schema() -> str:
    """Teams are owned by the roster collaborator; the engine only reads them."""
    return """
    CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        owner_id TEXT,
        created_at TEXT NOT NULL
    );
    """


def players_schema() -> str:
    """position: GK | DEF | MID | FWD. overall_rating on a 1-99 scale."""
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        team_id TEXT,
        name TEXT NOT NULL,
        position TEXT NOT NULL,
        overall_rating INTEGER NOT NULL,
        FOREIGN KEY (team_id) REFERENCES teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_players_team ON players(team_id);
    """


def leagues_schema() -> str:
    """One row per division per season."""
    return """
    CREATE TABLE IF NOT EXISTS leagues (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        division_level INTEGER NOT NULL,
        season TEXT NOT NULL,
        max_teams INTEGER NOT NULL,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_leagues_season ON leagues(season);
    CREATE UNIQUE INDEX IF NOT EXISTS ix_leagues_season_level ON leagues(season, division_level);
    """


def league_memberships_schema() -> str:
    """(team, league, season). A team is in exactly one league per season."""
    return """
    CREATE TABLE IF NOT EXISTS league_memberships (
        league_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        season TEXT NOT NULL,
        joined_at TEXT NOT NULL,
        PRIMARY KEY (team_id, season),
        FOREIGN KEY (league_id) REFERENCES leagues(id),
        FOREIGN KEY (team_id) REFERENCES teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_memberships_league ON league_memberships(league_id, season);
    """


def fixtures_schema() -> str:
    """Scores stay NULL until played = 1; both are written by the same UPDATE."""
    return """
    CREATE TABLE IF NOT EXISTS fixtures (
        id TEXT PRIMARY KEY,
        league_id TEXT NOT NULL,
        season TEXT NOT NULL,
        matchday INTEGER NOT NULL CHECK (matchday >= 1),
        home_team_id TEXT NOT NULL,
        away_team_id TEXT NOT NULL,
        scheduled_at TEXT NOT NULL,
        played INTEGER NOT NULL DEFAULT 0,
        home_score INTEGER,
        away_score INTEGER,
        played_at TEXT,
        created_at TEXT NOT NULL,
        CHECK (home_team_id <> away_team_id),
        CHECK (played = 0 OR (home_score IS NOT NULL AND away_score IS NOT NULL AND played_at IS NOT NULL)),
        FOREIGN KEY (league_id) REFERENCES leagues(id),
        FOREIGN KEY (home_team_id) REFERENCES teams(id),
        FOREIGN KEY (away_team_id) REFERENCES teams(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_fixtures_slot
        ON fixtures(league_id, season, matchday, home_team_id, away_team_id);
    CREATE INDEX IF NOT EXISTS ix_fixtures_league_season ON fixtures(league_id, season, matchday);
    CREATE INDEX IF NOT EXISTS ix_fixtures_due ON fixtures(played, scheduled_at);
    CREATE INDEX IF NOT EXISTS ix_fixtures_home ON fixtures(home_team_id);
    CREATE INDEX IF NOT EXISTS ix_fixtures_away ON fixtures(away_team_id);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Order: teams, players, leagues, league_memberships, fixtures."""
    return "\n".join([
        teams_schema(),
        players_schema(),
        leagues_schema(),
        league_memberships_schema(),
        fixtures_schema(),
    ])
