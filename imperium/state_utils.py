#!/usr/bin/env python3
"""
Helpers for moving sessions across process and storage boundaries, and for
building compact public-facing summaries.
"""
from __future__ import annotations

from typing import Any, Dict

from pydantic import TypeAdapter

from imperium.models.session_state import GameSession

SESSION_ADAPTER: TypeAdapter[GameSession] = TypeAdapter(GameSession)


def session_to_dict(session: GameSession) -> Dict[str, Any]:
    """JSON-safe dict; tuples come out as lists."""
    return SESSION_ADAPTER.dump_python(session, mode="json")


def session_from_dict(data: Dict[str, Any]) -> GameSession:
    """Raises pydantic.ValidationError when the payload does not describe a session."""
    return SESSION_ADAPTER.validate_python(data)


def session_to_json(session: GameSession) -> str:
    return SESSION_ADAPTER.dump_json(session).decode("utf-8")


def session_from_json(raw: str | bytes) -> GameSession:
    return SESSION_ADAPTER.validate_json(raw)


def summary_from_session(session: GameSession) -> dict:
    """
    A small payload for dashboards: the clock, stockpiles, empire standings
    and the most recent notifications, without the full galaxy.
    """
    surveyed = sum(1 for s in session.galaxy.systems if s.visibility == "surveyed")
    return {
        "id": session.id,
        "label": session.label,
        "tick": session.clock.tick,
        "is_running": session.clock.is_running,
        "systems": len(session.galaxy.systems),
        "surveyed_systems": surveyed,
        "planets": len(session.economy.planets),
        "resources": {
            kind: round(ledger.amount, 2) for kind, ledger in session.economy.resources.items()
        },
        "empires": [
            {
                "id": e.id,
                "name": e.name,
                "opinion": e.opinion,
                "war_status": e.war_status,
            }
            for e in session.empires
        ],
        "fleets": len(session.fleets),
        "active_event": session.events.active.title if session.events.active else None,
        "notifications": [
            {"tick": n.tick, "kind": n.kind, "message": n.message} for n in session.notifications
        ],
    }
