"""
Season Advancer: simulates every fixture whose kick-off time has passed.

Two pieces kept apart so the resolution logic can be tested without real time:
- SeasonAdvancer.process_overdue(): one synchronous pass.
- PeriodicTicker: calls a function once at start and then on a fixed interval,
  in a worker thread, until stopped.

Runs as a single active instance. A failing fixture is logged and skipped; it
never blocks the rest of the overdue batch.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from football_league.models import MatchResult, utcnow
from football_league.persistence.repositories import FixtureRepository
from football_league.persistence.stores import FixtureStore
from football_league.services.match_resolver import MatchResolver

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5 * 60
DEFAULT_PAUSE_SECONDS = 0.1


@dataclass
class AdvanceReport:
    checked_at: datetime
    overdue: int = 0
    resolved: list[MatchResult] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked_at": self.checked_at.isoformat(),
            "overdue": self.overdue,
            "resolved": [r.to_dict() for r in self.resolved],
            "failed": list(self.failed),
        }


class SeasonAdvancer:
    """One pass = find overdue unplayed fixtures, resolve them oldest first."""

    def __init__(
        self,
        resolver: MatchResolver,
        connection_factory: Callable[[], sqlite3.Connection],
        fixture_store: FixtureStore | None = None,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._resolver = resolver
        self._connect = connection_factory
        self._fixtures = fixture_store or FixtureRepository()
        self._pause = pause_seconds
        self._clock = clock
        self._sleep = sleep

    def process_overdue(self, now: datetime | None = None) -> AdvanceReport:
        now = now or self._clock()
        report = AdvanceReport(checked_at=now)
        conn = self._connect()
        try:
            logger.info("Checking for overdue fixtures at %s", now.isoformat())
            overdue = self._fixtures.list_overdue(conn, now)
            report.overdue = len(overdue)
            if not overdue:
                logger.info("No overdue fixtures found")
                return report
            logger.info("Found %d overdue fixture(s); simulating", len(overdue))
            for i, fixture in enumerate(overdue):
                if i > 0 and self._pause > 0:
                    self._sleep(self._pause)
                try:
                    result = self._resolver.resolve_fixture(conn, fixture.id)
                except Exception:
                    logger.exception("Failed to simulate fixture %s", fixture.id)
                    report.failed.append(fixture.id)
                    continue
                report.resolved.append(result)
        finally:
            conn.close()
        logger.info(
            "Auto-simulation complete: %d resolved, %d failed", len(report.resolved), len(report.failed)
        )
        return report


class PeriodicTicker:
    """
    Runs func once immediately and then every interval_seconds on the running
    event loop, executing func in the default thread pool. No business logic here.
    """

    def __init__(self, func: Callable[[], Any], interval_seconds: float = DEFAULT_INTERVAL_SECONDS, name: str = "ticker") -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._func = func
        self.interval_seconds = interval_seconds
        self.name = name
        self._task: asyncio.Task | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        logger.info("%s started; running every %.0f s", self.name, self.interval_seconds)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("%s stopped", self.name)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            try:
                await loop.run_in_executor(None, self._func)
            except Exception:
                logger.exception("%s tick failed", self.name)
            self.ticks += 1
            await asyncio.sleep(self.interval_seconds)
