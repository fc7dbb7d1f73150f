#!/usr/bin/env python3
"""
Redis access for the simulation worker, the API and the session store.

Simulate requests and results travel on two streams, each entry holding a
JSON document in its `data` field. Saved sessions are plain string keys.
"""
from __future__ import annotations

import json
from typing import Any, Iterable, Optional

from redis import asyncio as aioredis
from redis.exceptions import ResponseError

from imperium.models.redis_config import REDIS_SETTINGS, RedisSettings


def _decode(fields: dict) -> dict:
    payload_raw = fields.get("data")
    return json.loads(payload_raw) if payload_raw else {}


class RedisStreams:
    def __init__(
        self,
        settings: RedisSettings | None = None,
        client: Any = None,
    ) -> None:
        settings = settings or REDIS_SETTINGS
        self.url = str(settings.redis_url)
        self.request_stream = settings.request_stream
        self.result_stream = settings.result_stream
        self.session_key_prefix = settings.session_key_prefix
        self.save_key = settings.save_key
        # str in, str out
        self._redis = client or aioredis.from_url(self.url, decode_responses=True)

    @property
    def client(self):
        return self._redis

    async def close(self) -> None:
        await self._redis.aclose()

    # --- Requests (consumer group) ---
    async def ensure_consumer_group(self, stream: str, group: str) -> None:
        """Create the group (and the stream) unless it exists already."""
        try:
            await self._redis.xgroup_create(stream, group, id="0", mkstream=True)
        except ResponseError as exc:
            if "BUSYGROUP" in str(exc):
                return
            raise

    async def read_requests(
        self,
        group: str,
        consumer: str,
        count: int = 10,
        block_ms: int = 1000,
    ) -> list[tuple[str, dict]]:
        """
        Read simulate requests via consumer group semantics.
        Returns a list of (message_id, payload_dict).
        """
        entries = await self._redis.xreadgroup(
            groupname=group,
            consumername=consumer,
            streams={self.request_stream: ">"},
            count=count,
            block=block_ms,
        )
        if not entries:
            return []
        return [
            (message_id, _decode(fields))
            for _, messages in entries
            for message_id, fields in messages
        ]

    async def ack_requests(self, ids: Iterable[str], group: str) -> None:
        ids = list(ids)
        if not ids:
            return
        await self._redis.xack(self.request_stream, group, *ids)

    # --- Stream writes ---
    async def _append(self, stream: str, payload: dict, maxlen: Optional[int]) -> str:
        # field name 'data' holds the JSON payload
        return await self._redis.xadd(
            name=stream,
            fields={"data": json.dumps(payload)},
            maxlen=maxlen,
            approximate=True,
        )

    async def append_request(self, payload: dict, maxlen: Optional[int] = 1000) -> str:
        return await self._append(self.request_stream, payload, maxlen)

    async def append_result(self, payload: dict, maxlen: Optional[int] = 1000) -> str:
        return await self._append(self.result_stream, payload, maxlen)

    async def read_results(
        self,
        last_id: str = "$",
        count: int = 50,
        block_ms: int | None = None,
    ) -> list[tuple[str, dict]]:
        """
        Read results after last_id. Use last_id="$" to block for new entries.
        """
        entries = await self._redis.xread(
            streams={self.result_stream: last_id},
            count=count,
            block=block_ms,
        )
        if not entries:
            return []
        return [
            (message_id, _decode(fields))
            for _, messages in entries
            for message_id, fields in messages
        ]

    # --- Saved sessions ---
    def session_key(self, session_id: str) -> str:
        return f"{self.session_key_prefix}:{session_id}"

    async def set_value(self, key: str, raw: str) -> None:
        await self._redis.set(key, raw)

    async def get_value(self, key: str) -> Optional[str]:
        return await self._redis.get(key)

    async def has_value(self, key: str) -> bool:
        return bool(await self._redis.exists(key))
