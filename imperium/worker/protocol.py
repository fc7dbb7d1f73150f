"""
Messages exchanged between a simulation host and a worker.

Sessions and configs travel as plain JSON-compatible dicts so the same
payloads work over a process pipe and over a Redis stream.
"""
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel

from imperium.models.game_config import GAME_CONFIG, GameConfig
from imperium.simulation import advance_simulation
from imperium.state_utils import session_from_dict, session_to_dict


class SimulateRequest(BaseModel):
    type: Literal["simulate"] = "simulate"
    id: int
    session: Dict[str, Any]
    ticks: int
    config: Optional[Dict[str, Any]] = None


class ResultResponse(BaseModel):
    type: Literal["result"] = "result"
    id: int
    session: Dict[str, Any]


class ReadyResponse(BaseModel):
    type: Literal["ready"] = "ready"


def handle_request(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run one simulate request. Raises pydantic.ValidationError for a payload
    that is not a well-formed request.
    """
    request = SimulateRequest.model_validate(payload)
    config = GameConfig.model_validate(request.config) if request.config else GAME_CONFIG
    session = advance_simulation(session_from_dict(request.session), request.ticks, config)
    return ResultResponse(id=request.id, session=session_to_dict(session)).model_dump()
