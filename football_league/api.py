"""
REST API for the league engine.
Thin wrappers around the services; the background Season Advancer is
started and stopped by the app lifespan.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Generator

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from football_league.auth import decode_token
from football_league.config import get_settings
from football_league.errors import LeagueError
from football_league.logging_setup import configure_logging
from football_league.models import Season, utcnow
from football_league.persistence import get_connection, get_db_path, init_db
from football_league.services.broadcast import ResultBroadcaster, ResultEvent
from football_league.services.league_service import DEFAULT_TEAMS_PER_LEAGUE, LeagueService
from football_league.services.match_resolver import MatchResolver
from football_league.services.season_advancer import PeriodicTicker, SeasonAdvancer
from football_league.services.standings import compute_standings
from football_league.simulation.rng import SeededRNG
from football_league.simulation.score_generator import ScoreGenerator

logger = logging.getLogger("football_league.api")

_STATUS_BY_KIND = {
    "not_found": 404,
    "conflict": 409,
    "precondition_failed": 422,
    "dependency_unavailable": 503,
}

# ---------- Shared process state ----------
broadcaster = ResultBroadcaster()
_ws_clients: set[WebSocket] = set()
_main_loop: asyncio.AbstractEventLoop | None = None
_ticker: PeriodicTicker | None = None


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def _resolver(seed: int | None = None) -> MatchResolver:
    return MatchResolver(score_generator=ScoreGenerator(SeededRNG(seed)), broadcaster=broadcaster)


def _advancer() -> SeasonAdvancer:
    return SeasonAdvancer(
        _resolver(),
        connection_factory=get_connection,
        pause_seconds=get_settings().advancer_pause_seconds,
    )


# ---------- Result broadcast over WebSocket ----------


async def _fan_out(payload: dict[str, Any]) -> None:
    for ws in list(_ws_clients):
        try:
            await ws.send_json(payload)
        except Exception:
            logger.debug("Dropping WebSocket client after failed send")
            _ws_clients.discard(ws)


def _ws_listener(event: ResultEvent) -> None:
    """Called from request or advancer threads; hands the send to the event loop."""
    loop = _main_loop
    if loop is None or not _ws_clients:
        return
    asyncio.run_coroutine_threadsafe(_fan_out(event.to_dict()), loop)


broadcaster.subscribe(_ws_listener)


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    global _main_loop, _ticker
    settings = get_settings()
    configure_logging(settings.log_level)
    init_db(db_path=get_db_path())
    _main_loop = asyncio.get_running_loop()
    if settings.advancer_enabled:
        _ticker = PeriodicTicker(
            lambda: _advancer().process_overdue(),
            interval_seconds=settings.advancer_interval_seconds,
            name="season-advancer",
        )
        _ticker.start()
    try:
        yield
    finally:
        if _ticker is not None:
            await _ticker.stop()
            _ticker = None
        _main_loop = None


# ---------- FastAPI app ----------
app = FastAPI(
    title="Football League Engine",
    description="Fixture scheduling, match simulation, standings and automatic season advancement",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    duration_ms = (time.perf_counter() - start) * 1000.0
    logger.info(json.dumps({
        "msg": "request",
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "duration_ms": round(duration_ms, 2),
    }, separators=(",", ":")))
    return response


@app.exception_handler(LeagueError)
async def league_error_handler(request: Request, exc: LeagueError) -> JSONResponse:
    status = _STATUS_BY_KIND.get(exc.kind, 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status, content=exc.to_dict())


# ---------- Request models ----------

security = HTTPBearer(auto_error=False)


class SetupLeaguesRequest(BaseModel):
    teams_per_league: int = Field(DEFAULT_TEAMS_PER_LEAGUE, ge=2, le=40)
    seed: int | None = Field(None, description="RNG seed for the team shuffle")


class ScheduleRequest(BaseModel):
    season_start: datetime | None = Field(None, description="Kick-off of matchday 1; defaults to SEASON_START")
    weekdays: tuple[int, int] | None = Field(None, description="Two weekdays, Monday=0; defaults to MATCH_WEEKDAYS")
    strict: bool = Field(False, description="Require exactly LEAGUE_SIZE members")


class SimulateRequest(BaseModel):
    seed: int | None = Field(None, description="RNG seed for reproducible scores")


def _require_admin(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str | None:
    """Return the token subject; only enforced when REQUIRE_AUTH is on."""
    if not get_settings().require_auth:
        return None
    if credentials is None:
        raise HTTPException(status_code=401, detail="Login required")
    subject = decode_token(credentials.credentials)
    if subject is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return subject


def _season(label: str) -> Season:
    try:
        return Season.parse(label)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _schedule_args(req: ScheduleRequest | None) -> tuple[datetime, tuple[int, int], int | None]:
    settings = get_settings()
    req = req or ScheduleRequest()
    weekdays = req.weekdays or settings.match_weekdays
    if weekdays[0] == weekdays[1] or not all(0 <= d <= 6 for d in weekdays):
        raise HTTPException(status_code=422, detail="weekdays must be two different values in 0-6")
    return (
        req.season_start or settings.season_start,
        weekdays,
        settings.league_size if req.strict else None,
    )


# ---------- Endpoints ----------


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "advancer_running": _ticker is not None and _ticker.running,
        "timestamp": utcnow().isoformat(),
    }


@app.post("/seasons/{season}/setup")
def setup_season(
    season: str,
    req: SetupLeaguesRequest | None = None,
    _admin: str | None = Depends(_require_admin),
) -> dict[str, Any]:
    """Create divisions for the season and assign every team to one."""
    s = _season(season)
    req = req or SetupLeaguesRequest()
    with db_conn() as conn:
        leagues = LeagueService().setup_leagues(conn, s, teams_per_league=req.teams_per_league, seed=req.seed)
        return {"season": str(s), "leagues": [l.to_dict() for l in leagues]}


@app.post("/leagues/{league_id}/seasons/{season}/schedule")
def schedule_league(
    league_id: str,
    season: str,
    req: ScheduleRequest | None = None,
    _admin: str | None = Depends(_require_admin),
) -> dict[str, Any]:
    """Generate the double round-robin for one league."""
    s = _season(season)
    start, weekdays, strict_size = _schedule_args(req)
    with db_conn() as conn:
        fixtures = LeagueService().schedule_season(conn, league_id, s, start, weekdays, strict_size)
        return {
            "league_id": league_id,
            "season": str(s),
            "fixtures": len(fixtures),
            "matchdays": max(f.matchday for f in fixtures),
        }


@app.post("/seasons/{season}/schedule")
def schedule_all_leagues(
    season: str,
    req: ScheduleRequest | None = None,
    _admin: str | None = Depends(_require_admin),
) -> dict[str, Any]:
    """Schedule every league of the season; failures are reported per league."""
    s = _season(season)
    start, weekdays, strict_size = _schedule_args(req)
    with db_conn() as conn:
        outcomes = LeagueService().schedule_all(conn, s, start, weekdays, strict_size)
        return {"season": str(s), "leagues": [o.to_dict() for o in outcomes]}


@app.delete("/leagues/{league_id}/seasons/{season}")
def reset_league_season(
    league_id: str,
    season: str,
    _admin: str | None = Depends(_require_admin),
) -> dict[str, Any]:
    s = _season(season)
    with db_conn() as conn:
        removed = LeagueService().reset_season(conn, league_id, s)
        return {"league_id": league_id, "season": str(s), **removed}


@app.get("/leagues/{league_id}/seasons/{season}/fixtures")
def get_league_fixtures(league_id: str, season: str) -> dict[str, Any]:
    s = _season(season)
    with db_conn() as conn:
        return {"league_id": league_id, "season": str(s), **LeagueService().list_fixtures(conn, league_id, s)}


@app.get("/leagues/{league_id}/seasons/{season}/standings")
def get_league_standings(league_id: str, season: str) -> dict[str, Any]:
    """League table: played, won, drawn, lost, goals, goal difference, points, rank."""
    s = _season(season)
    with db_conn() as conn:
        rows = compute_standings(conn, league_id, s)
        return {"league_id": league_id, "season": str(s), "table": [r.to_dict() for r in rows]}


@app.get("/leagues/{league_id}/seasons/{season}/next-scheduled")
def get_next_scheduled(league_id: str, season: str) -> dict[str, Any]:
    s = _season(season)
    with db_conn() as conn:
        return LeagueService().next_scheduled(conn, league_id, s)


@app.post("/fixtures/{fixture_id}/resolve")
def resolve_fixture(
    fixture_id: str,
    req: SimulateRequest | None = None,
    _admin: str | None = Depends(_require_admin),
) -> dict[str, Any]:
    """Simulate one fixture now. 409 if it has already been played."""
    with db_conn() as conn:
        result = _resolver(req.seed if req else None).resolve_fixture(conn, fixture_id)
        return result.to_dict()


@app.post("/leagues/{league_id}/seasons/{season}/matchdays/{matchday}/resolve")
def resolve_matchday(
    league_id: str,
    season: str,
    matchday: int,
    req: SimulateRequest | None = None,
    _admin: str | None = Depends(_require_admin),
) -> dict[str, Any]:
    s = _season(season)
    if matchday < 1:
        raise HTTPException(status_code=422, detail="matchday must be >= 1")
    with db_conn() as conn:
        LeagueService().get_league(conn, league_id)
        results = _resolver(req.seed if req else None).resolve_matchday(conn, league_id, s, matchday)
        return {"matchday": matchday, "results": [r.to_dict() for r in results]}


@app.post("/leagues/{league_id}/seasons/{season}/simulate-next-matchday")
def simulate_next_matchday(
    league_id: str,
    season: str,
    req: SimulateRequest | None = None,
    _admin: str | None = Depends(_require_admin),
) -> dict[str, Any]:
    s = _season(season)
    with db_conn() as conn:
        LeagueService().get_league(conn, league_id)
        matchday, results = _resolver(req.seed if req else None).simulate_next_matchday(conn, league_id, s)
        if matchday is None:
            return {"matchday": None, "results": [], "message": "All matches played"}
        return {"matchday": matchday, "results": [r.to_dict() for r in results]}


@app.post("/advancer/run")
def run_advancer_once(_admin: str | None = Depends(_require_admin)) -> dict[str, Any]:
    """Run one Season Advancer pass now instead of waiting for the next tick."""
    return _advancer().process_overdue().to_dict()


@app.get("/teams/{team_id}/fixtures")
def get_team_fixtures(team_id: str, season: str = Query(..., description="Season label, e.g. 2024-25")) -> dict[str, Any]:
    s = _season(season)
    with db_conn() as conn:
        return LeagueService().team_fixtures(conn, team_id, s)


@app.get("/results/recent")
def get_recent_results(limit: int = Query(7, ge=1, le=100)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"results": LeagueService().recent_results(conn, limit)}


@app.websocket("/ws/results")
async def results_socket(websocket: WebSocket) -> None:
    """Push one match_result message per resolved fixture."""
    await websocket.accept()
    _ws_clients.add(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        _ws_clients.discard(websocket)


# ---------- Run with: uvicorn football_league.api:app --reload ----------
