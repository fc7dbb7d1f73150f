#!/usr/bin/env python3
"""
Simulation worker.

Consumes simulate requests from a Redis stream consumer group, advances the
session with the pure simulation core and appends the result to the result
stream. The worker keeps no session state of its own: every request carries
the full session snapshot.
"""
from __future__ import annotations

import asyncio
import os
import signal
import socket
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError
from redis.exceptions import RedisError

from imperium.infra.redis_streams import RedisStreams
from imperium.worker.protocol import ReadyResponse, handle_request


@dataclass(frozen=True)
class WorkerConfig:
    request_group: str
    consumer: str
    worker_id: str
    block_ms: int
    batch_size: int
    result_maxlen: int
    idle_sleep_s: float


def _load_config() -> WorkerConfig:
    return WorkerConfig(
        request_group=os.environ.get("REQUEST_GROUP", "sim"),
        consumer=os.environ.get("REQUEST_CONSUMER", f"sim-{os.getpid()}"),
        worker_id=os.environ.get("WORKER_ID", socket.gethostname()),
        block_ms=int(os.environ.get("REQUEST_BLOCK_MS", 1000)),
        batch_size=int(os.environ.get("REQUEST_BATCH_SIZE", 10)),
        result_maxlen=int(os.environ.get("RESULT_STREAM_MAXLEN", 1000)),
        idle_sleep_s=float(os.environ.get("IDLE_SLEEP_S", 0.1)),
    )


_CONFIG = _load_config()


class SimulationWorker:
    def __init__(
        self,
        streams: Optional[RedisStreams] = None,
        config: WorkerConfig = _CONFIG,
    ) -> None:
        self.streams = streams or RedisStreams()
        self.config = config
        self._stop = asyncio.Event()

    async def setup(self) -> None:
        await self.streams.ensure_consumer_group(
            self.streams.request_stream, self.config.request_group
        )
        await self.streams.append_result(ReadyResponse().model_dump(), maxlen=self.config.result_maxlen)
        logger.info(
            f"[sim-worker] ready worker_id={self.config.worker_id} "
            f"stream={self.streams.request_stream} group={self.config.request_group}"
        )

    async def handle_message(self, message_id: str, payload: dict) -> None:
        try:
            response = await asyncio.to_thread(handle_request, payload)
        except ValidationError as exc:
            logger.warning(f"[sim-worker] rejected message {message_id}: {exc.error_count()} errors")
            return
        except Exception as exc:
            logger.exception(f"[sim-worker] failed to simulate message {message_id}: {exc}")
            return
        await self.streams.append_result(response, maxlen=self.config.result_maxlen)

    async def process_batch(self) -> int:
        """Read one batch, handle each message and ack all of them. Returns the batch size."""
        messages = await self.streams.read_requests(
            group=self.config.request_group,
            consumer=self.config.consumer,
            count=self.config.batch_size,
            block_ms=self.config.block_ms,
        )
        handled: List[str] = []
        for message_id, payload in messages:
            # poison messages are acked too, so they never block the stream
            await self.handle_message(message_id, payload)
            handled.append(message_id)
        await self.streams.ack_requests(handled, self.config.request_group)
        return len(handled)

    async def run(self) -> None:
        try:
            await self.setup()
        except RedisError as exc:
            logger.error(f"[sim-worker] redis unavailable: {exc}")
            return

        try:
            while not self._stop.is_set():
                try:
                    count = await self.process_batch()
                except RedisError as exc:
                    logger.error(f"[sim-worker] error reading requests: {exc}")
                    count = 0
                if count == 0:
                    await asyncio.sleep(self.config.idle_sleep_s)
        finally:
            await self.streams.close()
            logger.info("[sim-worker] stopping loop")

    def stop(self) -> None:
        self._stop.set()


async def main() -> None:
    worker = SimulationWorker()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    await worker.run()


if __name__ == "__main__":
    asyncio.run(main())
