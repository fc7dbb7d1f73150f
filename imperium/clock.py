from __future__ import annotations

import math
from dataclasses import dataclass, replace

from imperium.models.game_config import GameConfig
from imperium.models.session_state import SimulationClock

MIN_TICK_DURATION_MS = 16


@dataclass(frozen=True)
class ClockAdvance:
    clock: SimulationClock
    ticks: int


def create_clock() -> SimulationClock:
    return SimulationClock()


def tick_duration_ms(config: GameConfig) -> int:
    return max(MIN_TICK_DURATION_MS, round(1000 / config.ticks_per_second))


def advance_clock(
    clock: SimulationClock, elapsed_ms: float, tick_duration: float, now: float
) -> ClockAdvance:
    """
    Accumulate wall-clock time and report how many whole ticks are due. The
    sub-tick remainder stays in `elapsed_ms`; `tick` itself is advanced by
    the simulation, not here. A paused clock only records `now`.
    """
    if not clock.is_running:
        return ClockAdvance(clock=replace(clock, last_update=now), ticks=0)
    total = clock.elapsed_ms + max(0.0, elapsed_ms) * clock.speed_multiplier
    ticks = math.floor(total / tick_duration) if tick_duration > 0 else 0
    return ClockAdvance(
        clock=replace(clock, elapsed_ms=total - ticks * tick_duration, last_update=now),
        ticks=ticks,
    )


def set_clock_running(clock: SimulationClock, running: bool, now: float) -> SimulationClock:
    return replace(clock, is_running=running, last_update=now)


def set_clock_speed(clock: SimulationClock, speed: float) -> SimulationClock:
    return replace(clock, speed_multiplier=max(0.0, speed))
