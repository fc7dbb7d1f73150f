"""
Offloads simulation ticks to a child process.

Only the most recent request is wanted: every new request replaces the
outstanding id, and a response carrying any other id is dropped.
"""
from __future__ import annotations

import asyncio
import itertools
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import Any, Dict, Optional

from loguru import logger

from imperium.models.game_config import GAME_CONFIG, GameConfig
from imperium.models.session_state import GameSession
from imperium.simulation import advance_simulation
from imperium.state_utils import session_from_dict, session_to_dict
from imperium.worker.protocol import SimulateRequest, handle_request


class SimulationClient:
    def __init__(
        self,
        config: GameConfig = GAME_CONFIG,
        executor: Optional[Executor] = None,
        max_workers: int = 1,
    ) -> None:
        self.config = config
        self._executor = executor
        self._max_workers = max_workers
        self._counter = itertools.count(1)
        self.outstanding_id: Optional[int] = None

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=self._max_workers)
        return self._executor

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def next_request(self, session: GameSession, ticks: int) -> SimulateRequest:
        request_id = next(self._counter)
        self.outstanding_id = request_id
        return SimulateRequest(
            id=request_id,
            session=session_to_dict(session),
            ticks=ticks,
            config=self.config.model_dump() if self.config is not GAME_CONFIG else None,
        )

    def accept(self, response: Dict[str, Any]) -> Optional[GameSession]:
        """Return the session from a response for the outstanding request; None otherwise."""
        if response.get("type") != "result" or response.get("id") != self.outstanding_id:
            logger.debug(f"[sim-client] dropping stale response id={response.get('id')}")
            return None
        self.outstanding_id = None
        return session_from_dict(response["session"])

    def _run_locally(self, session: GameSession, ticks: int, request_id: int) -> Dict[str, Any]:
        result = advance_simulation(session, ticks, self.config)
        return {"type": "result", "id": request_id, "session": session_to_dict(result)}

    def simulate(self, session: GameSession, ticks: int) -> GameSession:
        """
        Advance `ticks` in the child process, or on this thread if the child
        fails. Blocks until the result is back.
        """
        if ticks <= 0:
            return session
        request = self.next_request(session, ticks)
        try:
            response = self.executor.submit(handle_request, request.model_dump()).result()
        except Exception as exc:
            logger.warning(f"[sim-client] worker failed ({exc!r}); simulating in-process")
            response = self._run_locally(session, ticks, request.id)
        accepted = self.accept(response)
        return accepted if accepted is not None else session

    async def simulate_async(self, session: GameSession, ticks: int) -> Optional[GameSession]:
        """
        Non-blocking variant. Returns None when a newer request was issued
        while this one was in flight.
        """
        if ticks <= 0:
            return session
        request = self.next_request(session, ticks)
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(self.executor, handle_request, request.model_dump())
        except Exception as exc:
            logger.warning(f"[sim-client] worker failed ({exc!r}); simulating in-process")
            response = self._run_locally(session, ticks, request.id)
        return self.accept(response)
