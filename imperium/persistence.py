#!/usr/bin/env python3
"""
Versioned session save/load on top of Redis.

The stored document is `{"version": 1, "saved_at": <epoch ms>, "session": {...}}`.
Nothing here raises for storage or parse problems; callers get a
StorageResult with a reason code instead.
"""
from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from typing import Optional

from loguru import logger
from pydantic import ValidationError
from redis.exceptions import RedisError

from imperium.infra.redis_streams import RedisStreams
from imperium.models.session_state import GameSession
from imperium.state_utils import session_from_dict, session_to_dict

SAVE_VERSION = 1


@dataclass(frozen=True)
class StorageResult:
    success: bool
    reason: Optional[str] = None
    session: Optional[GameSession] = None
    saved_at: Optional[float] = None


def _now_ms() -> float:
    return time.time() * 1000


def serialize_session(session: GameSession, saved_at: float) -> str:
    # a wall-clock stamp is meaningless after a reload
    stored = replace(session, clock=replace(session.clock, last_update=None))
    return json.dumps(
        {"version": SAVE_VERSION, "saved_at": saved_at, "session": session_to_dict(stored)}
    )


def deserialize_session(raw: str, now: float) -> StorageResult:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning(f"[persistence] save is not valid JSON: {exc}")
        return StorageResult(success=False, reason="PARSE_ERROR")
    if (
        not isinstance(payload, dict)
        or payload.get("version") != SAVE_VERSION
        or not payload.get("session")
    ):
        logger.warning("[persistence] save has an unsupported version or no session")
        return StorageResult(success=False, reason="PARSE_ERROR")
    try:
        session = session_from_dict(payload["session"])
    except ValidationError as exc:
        logger.warning(f"[persistence] save failed validation: {exc.error_count()} errors")
        return StorageResult(success=False, reason="PARSE_ERROR")
    session = replace(session, clock=replace(session.clock, last_update=now))
    return StorageResult(success=True, session=session, saved_at=payload.get("saved_at"))


class SessionStore:
    def __init__(self, streams: RedisStreams) -> None:
        self.streams = streams

    def _key(self, key: Optional[str]) -> str:
        return key or self.streams.save_key

    async def save(
        self,
        session: Optional[GameSession],
        key: Optional[str] = None,
        now: Optional[float] = None,
    ) -> StorageResult:
        if session is None:
            return StorageResult(success=False, reason="NO_SESSION")
        saved_at = _now_ms() if now is None else now
        try:
            await self.streams.set_value(self._key(key), serialize_session(session, saved_at))
        except RedisError as exc:
            logger.warning(f"[persistence] write failed: {exc}")
            return StorageResult(success=False, reason="WRITE_FAILED")
        return StorageResult(success=True, session=session, saved_at=saved_at)

    async def load(self, key: Optional[str] = None, now: Optional[float] = None) -> StorageResult:
        try:
            raw = await self.streams.get_value(self._key(key))
        except RedisError as exc:
            logger.warning(f"[persistence] storage unavailable: {exc}")
            return StorageResult(success=False, reason="STORAGE_UNAVAILABLE")
        if raw is None:
            return StorageResult(success=False, reason="NOT_FOUND")
        return deserialize_session(raw, _now_ms() if now is None else now)

    async def has_saved_session(self, key: Optional[str] = None) -> bool:
        try:
            return await self.streams.has_value(self._key(key))
        except RedisError as exc:
            logger.warning(f"[persistence] storage unavailable: {exc}")
            return False
