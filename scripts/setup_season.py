#!/usr/bin/env python3
"""
Set up a season: split teams into divisions, then schedule every division.
Run from project root: python3 scripts/setup_season.py 2024-25 --demo-teams 24
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from football_league.config import get_settings, parse_weekdays
from football_league.errors import LeagueError
from football_league.logging_setup import configure_logging
from football_league.models import Position, Season
from football_league.persistence import FixtureRepository, TeamRepository, get_connection, init_db, set_db_path
from football_league.services.league_service import LeagueService
from football_league.simulation.rng import SeededRNG

FIRST_NAMES = [
    "James", "Lucas", "Mason", "Oliver", "Henry", "Carlos", "Diego", "Marco",
    "Luis", "Javier", "Miguel", "Sebastian", "Ethan", "Jack", "Ryan", "Daniel",
]
LAST_NAMES = [
    "Smith", "Garcia", "Silva", "Rossi", "Costa", "Walker", "Torres", "Nguyen",
    "Santos", "Romano", "Ferreira", "Campbell", "Mitchell", "Carter", "Hill", "Baker",
]
CLUB_PREFIXES = ["Northfield", "Riverside", "Eastbury", "Westham", "Kingsport", "Ashford", "Millbrook", "Stonegate"]
CLUB_SUFFIXES = ["United", "Rovers", "Athletic", "City", "Wanderers", "Albion"]

# 25-man squad
SQUAD_SHAPE = (
    (Position.GOALKEEPER, 3),
    (Position.DEFENDER, 8),
    (Position.MIDFIELDER, 8),
    (Position.FORWARD, 6),
)


def seed_demo_teams(conn, count: int, rng: SeededRNG) -> None:
    """Create count teams with full random squads (ratings 50-85)."""
    team_repo = TeamRepository()
    for i in range(count):
        name = f"{CLUB_PREFIXES[i % len(CLUB_PREFIXES)]} {CLUB_SUFFIXES[(i // len(CLUB_PREFIXES)) % len(CLUB_SUFFIXES)]}"
        if i >= len(CLUB_PREFIXES) * len(CLUB_SUFFIXES):
            name = f"{name} {i + 1}"
        team = team_repo.create(conn, name, owner_id=f"demo-owner-{i + 1}")
        for position, n in SQUAD_SHAPE:
            for _ in range(n):
                player_name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"
                team_repo.add_player(conn, team.id, player_name, position.value, rng.randint(50, 85))
    print(f"Seeded {count} demo teams")


def run(
    season: Season,
    db_path: Path | None = None,
    demo_teams: int = 0,
    teams_per_league: int | None = None,
    season_start: datetime | None = None,
    weekdays: tuple[int, int] | None = None,
    seed: int | None = None,
) -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    if db_path is not None:
        set_db_path(db_path)
    init_db()

    conn = get_connection()
    try:
        if demo_teams:
            seed_demo_teams(conn, demo_teams, SeededRNG(seed))

        service = LeagueService()
        leagues = service.setup_leagues(
            conn, season, teams_per_league=teams_per_league or settings.league_size, seed=seed
        )
        outcomes = service.schedule_all(
            conn, season, season_start or settings.season_start, weekdays or settings.match_weekdays
        )

        print(f"\n  Season {season}: {len(leagues)} division(s)")
        print("  " + "-" * 56)
        for o in outcomes:
            if o.scheduled:
                print(f"  {o.league_name:<14} {o.fixtures:>4} fixtures over {o.matchdays} matchdays")
            else:
                print(f"  {o.league_name:<14} NOT SCHEDULED: {o.error}")

        fixture_repo = FixtureRepository()
        for league in leagues[:1]:
            fixtures = fixture_repo.list_by_league_season(conn, league.id, season)
            print(f"\n  {league.name}, first matchdays:")
            shown = [f for f in fixtures if f.matchday <= 5]
            for md in sorted({f.matchday for f in shown}):
                kickoff = next(f.scheduled_at for f in shown if f.matchday == md)
                count = sum(1 for f in shown if f.matchday == md)
                print(f"    Matchday {md}: {kickoff:%a %d %b %Y %H:%M} ({count} matches)")
    except LeagueError as e:
        raise SystemExit(f"{e.kind}: {e.message}")
    finally:
        conn.close()


def main():
    parser = argparse.ArgumentParser(description="Create divisions for a season and schedule every one.")
    parser.add_argument("season", help="Season label, e.g. 2024-25")
    parser.add_argument("--db", type=Path, default=None, help="SQLite file (default: LEAGUE_DB_PATH)")
    parser.add_argument("--demo-teams", type=int, default=0, help="Seed this many demo teams with squads first")
    parser.add_argument("--teams-per-league", type=int, default=None, help="Division size (default: LEAGUE_SIZE)")
    parser.add_argument("--start", default=None, help="Matchday 1 kick-off, ISO format (default: SEASON_START)")
    parser.add_argument("--weekdays", default=None, help="Two match weekdays, Monday=0, e.g. 2,6")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for the team shuffle and demo squads")
    args = parser.parse_args()
    try:
        season = Season.parse(args.season)
        start = datetime.fromisoformat(args.start) if args.start else None
        weekdays = parse_weekdays(args.weekdays) if args.weekdays else None
    except ValueError as e:
        parser.error(str(e))
    run(
        season,
        db_path=args.db,
        demo_teams=args.demo_teams,
        teams_per_league=args.teams_per_league,
        season_start=start,
        weekdays=weekdays,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
