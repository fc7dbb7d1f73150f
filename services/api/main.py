import asyncio
import itertools
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field, ValidationError
from redis.exceptions import RedisError

from imperium.commands import COMMANDS
from imperium.infra.redis_streams import RedisStreams
from imperium.models import GAME_CONFIG
from imperium.models.game_config import ShipCustomization
from imperium.models.session_state import GameSession
from imperium.persistence import SessionStore
from imperium.session import create_session
from imperium.simulation import advance_simulation
from imperium.state_utils import session_to_dict, summary_from_session
from imperium.worker.protocol import SimulateRequest


@dataclass(frozen=True)
class ApiConfig:
    cors_allow_origins: str
    max_ticks_per_request: int
    port: int


def _load_config() -> ApiConfig:
    return ApiConfig(
        cors_allow_origins=os.environ.get("CORS_ALLOW_ORIGINS", "*"),
        max_ticks_per_request=int(os.environ.get("MAX_TICKS_PER_REQUEST", "500")),
        port=int(os.environ.get("PORT", "8000")),
    )


_CONFIG = _load_config()

app = FastAPI(title="Imperium API", version="0.1.0")

cors_origins = _CONFIG.cors_allow_origins
origins = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_streams: Optional[RedisStreams] = None
# integer worker request ids, seeded from the clock
_job_ids = itertools.count(int(time.time() * 1000))


def get_streams() -> RedisStreams:
    global _streams
    if _streams is None:
        _streams = RedisStreams()
    return _streams


def get_store(streams: RedisStreams = Depends(get_streams)) -> SessionStore:
    return SessionStore(streams)


class CreateSessionRequest(BaseModel):
    seed: Optional[str] = Field(None, description="Galaxy seed; defaults to the configured seed")
    label: Optional[str] = None
    system_count: Optional[int] = Field(None, ge=2, le=200)


class SimulateIn(BaseModel):
    ticks: int = Field(1, ge=1)


class CommandIn(BaseModel):
    """Keyword arguments for the command, e.g. {"system_id": "SYS-002-1234"}."""

    args: Dict[str, Any] = Field(default_factory=dict)


async def _load_session(store: SessionStore, session_id: str) -> GameSession:
    result = await store.load(key=store.streams.session_key(session_id))
    if result.success and result.session is not None:
        return result.session
    if result.reason == "NOT_FOUND":
        raise HTTPException(status_code=404, detail="session not found")
    if result.reason == "PARSE_ERROR":
        raise HTTPException(status_code=422, detail="stored session is unreadable")
    raise HTTPException(status_code=503, detail=result.reason or "storage error")


async def _save_session(store: SessionStore, session: GameSession) -> None:
    result = await store.save(session, key=store.streams.session_key(session.id))
    if not result.success:
        raise HTTPException(status_code=503, detail=result.reason or "storage error")


def _coerce_args(name: str, args: Dict[str, Any]) -> Dict[str, Any]:
    if name == "queue_ship_build" and isinstance(args.get("customization"), dict):
        args = dict(args)
        args["customization"] = ShipCustomization.model_validate(args["customization"])
    return args


@app.get("/health")
async def health(streams: RedisStreams = Depends(get_streams)) -> Dict[str, str]:
    try:
        await streams.client.ping()
    except RedisError as exc:
        raise HTTPException(status_code=503, detail=f"redis error: {exc}") from exc
    return {"status": "ok"}


@app.get("/commands")
async def list_commands() -> List[str]:
    return sorted(COMMANDS)


@app.post("/sessions")
async def new_session(
    payload: CreateSessionRequest, store: SessionStore = Depends(get_store)
) -> Dict[str, Any]:
    session = create_session(
        payload.seed or GAME_CONFIG.default_galaxy.seed,
        GAME_CONFIG,
        label=payload.label,
        system_count=payload.system_count,
    )
    await _save_session(store, session)
    logger.info(f"[api] session created id={session.id} systems={len(session.galaxy.systems)}")
    return session_to_dict(session)


@app.get("/sessions/{session_id}")
async def get_session(session_id: str, store: SessionStore = Depends(get_store)) -> Dict[str, Any]:
    return session_to_dict(await _load_session(store, session_id))


@app.get("/sessions/{session_id}/summary")
async def get_summary(session_id: str, store: SessionStore = Depends(get_store)) -> Dict[str, Any]:
    return summary_from_session(await _load_session(store, session_id))


@app.post("/sessions/{session_id}/simulate")
async def simulate(
    session_id: str, payload: SimulateIn, store: SessionStore = Depends(get_store)
) -> Dict[str, Any]:
    """
    Advance a stored session in-process and save the result.
    """
    if payload.ticks > _CONFIG.max_ticks_per_request:
        raise HTTPException(status_code=400, detail="too many ticks")
    session = await _load_session(store, session_id)
    session = await asyncio.to_thread(advance_simulation, session, payload.ticks, GAME_CONFIG)
    await _save_session(store, session)
    return session_to_dict(session)


@app.post("/sessions/{session_id}/jobs", status_code=202)
async def enqueue_simulation(
    session_id: str, payload: SimulateIn, store: SessionStore = Depends(get_store)
) -> Dict[str, Any]:
    """
    Hand a simulate request to the worker pool. Results appear on /results.
    """
    if payload.ticks > _CONFIG.max_ticks_per_request:
        raise HTTPException(status_code=400, detail="too many ticks")
    session = await _load_session(store, session_id)
    request = SimulateRequest(id=next(_job_ids), session=session_to_dict(session), ticks=payload.ticks)
    try:
        entry_id = await store.streams.append_request(request.model_dump())
    except RedisError as exc:
        raise HTTPException(status_code=503, detail=f"redis error: {exc}") from exc
    return {"request_id": request.id, "stream_id": entry_id}


@app.get("/results")
async def results(
    after: str = "0-0", count: int = 20, streams: RedisStreams = Depends(get_streams)
) -> List[Dict[str, Any]]:
    """
    Worker responses after a given stream id.
    """
    entries = await streams.read_results(last_id=after, count=count, block_ms=None)
    out: List[Dict[str, Any]] = []
    for entry_id, payload in entries:
        item = dict(payload)
        item["stream_id"] = entry_id
        out.append(item)
    return out


@app.post("/sessions/{session_id}/commands/{name}")
async def run_command(
    session_id: str,
    name: str,
    payload: CommandIn,
    store: SessionStore = Depends(get_store),
) -> Dict[str, Any]:
    command = COMMANDS.get(name)
    if command is None:
        raise HTTPException(status_code=404, detail="unknown command")
    session = await _load_session(store, session_id)
    try:
        result = command(session, config=GAME_CONFIG, **_coerce_args(name, payload.args))
    except (TypeError, ValidationError) as exc:
        raise HTTPException(status_code=422, detail=f"bad arguments: {exc}") from exc
    if not result.success:
        # some rejections still carry an updated session (e.g. a notification)
        if result.session is not None:
            await _save_session(store, result.session)
        raise HTTPException(status_code=409, detail=result.reason)
    await _save_session(store, result.session)
    return session_to_dict(result.session)


if __name__ == "__main__":
    uvicorn.run(
        "services.api.main:app", host="0.0.0.0", port=_CONFIG.port, reload=False
    )
