#!/usr/bin/env python3
"""
Run the Season Advancer on its own, without the API.
Run from project root: python3 scripts/run_advancer.py [--once]
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from football_league.config import get_settings
from football_league.logging_setup import configure_logging
from football_league.persistence import get_connection, init_db, set_db_path
from football_league.services.broadcast import ResultBroadcaster, ResultEvent
from football_league.services.match_resolver import MatchResolver
from football_league.services.season_advancer import PeriodicTicker, SeasonAdvancer
from football_league.simulation.rng import SeededRNG
from football_league.simulation.score_generator import ScoreGenerator


def _print_result(event: ResultEvent) -> None:
    print(f"  [MD {event.matchday:>2}] {event.home_team} {event.home_score}-{event.away_score} {event.away_team}")


def build_advancer(seed: int | None = None) -> SeasonAdvancer:
    settings = get_settings()
    broadcaster = ResultBroadcaster()
    broadcaster.subscribe(_print_result)
    resolver = MatchResolver(score_generator=ScoreGenerator(SeededRNG(seed)), broadcaster=broadcaster)
    return SeasonAdvancer(resolver, connection_factory=get_connection, pause_seconds=settings.advancer_pause_seconds)


async def _run_forever(advancer: SeasonAdvancer, interval_seconds: float) -> None:
    ticker = PeriodicTicker(advancer.process_overdue, interval_seconds=interval_seconds, name="season-advancer")
    ticker.start()
    try:
        await asyncio.Event().wait()
    finally:
        await ticker.stop()


def run(once: bool = False, seed: int | None = None, db_path: Path | None = None, interval_minutes: float | None = None) -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    if db_path is not None:
        set_db_path(db_path)
    init_db()
    advancer = build_advancer(seed)
    if once:
        report = advancer.process_overdue()
        print(f"\n  {len(report.resolved)} resolved, {len(report.failed)} failed of {report.overdue} overdue")
        return
    interval = (interval_minutes * 60.0) if interval_minutes else settings.advancer_interval_seconds
    try:
        asyncio.run(_run_forever(advancer, interval))
    except KeyboardInterrupt:
        print("\n  Stopped")


def main():
    parser = argparse.ArgumentParser(description="Simulate overdue fixtures now and on a fixed interval.")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducible scores")
    parser.add_argument("--db", type=Path, default=None, help="SQLite file (default: LEAGUE_DB_PATH)")
    parser.add_argument("--interval-minutes", type=float, default=None, help="Tick interval (default: ADVANCER_INTERVAL_MINUTES)")
    args = parser.parse_args()
    run(once=args.once, seed=args.seed, db_path=args.db, interval_minutes=args.interval_minutes)


if __name__ == "__main__":
    main()
