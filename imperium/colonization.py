#!/usr/bin/env python3
"""
Colonization missions: preparing -> traveling -> colonizing -> planet.

Stages with a zero duration are skipped both when a task is created and when
it moves on, so a mission never sits in an empty stage.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from loguru import logger

from imperium.helper.rng import IdFactory
from imperium.models.game_config import ColonizationConfig
from imperium.models.session_state import (
    ColonizationStatus,
    ColonizationTask,
    EconomyState,
    Planet,
    Population,
    StarSystem,
)

STAGE_ORDER: Tuple[ColonizationStatus, ...] = ("preparing", "traveling", "colonizing")

NEW_COLONY_STABILITY = 60
NEW_COLONY_HAPPINESS = 60


class ColonizationError(ValueError):
    """Raised when a task is requested for a system that cannot be colonized."""


@dataclass(frozen=True)
class CompletedColony:
    system_id: str
    planet_name: str


@dataclass(frozen=True)
class ColonizationAdvance:
    tasks: Tuple[ColonizationTask, ...]
    economy: EconomyState
    completed: Tuple[CompletedColony, ...]


def get_stage_durations(config: ColonizationConfig) -> Dict[ColonizationStatus, int]:
    # the terminal stage always lasts at least one tick
    return {
        "preparing": max(0, config.preparation_ticks),
        "traveling": max(0, config.travel_ticks),
        "colonizing": max(1, config.duration_ticks),
    }


def get_initial_status(durations: Dict[ColonizationStatus, int]) -> ColonizationStatus:
    for status in STAGE_ORDER:
        if durations[status] > 0:
            return status
    return "colonizing"


def get_next_status(
    current: ColonizationStatus, durations: Dict[ColonizationStatus, int]
) -> Optional[ColonizationStatus]:
    for status in STAGE_ORDER[STAGE_ORDER.index(current) + 1 :]:
        if durations[status] > 0:
            return status
    return None


def create_colonization_task(
    system: StarSystem,
    config: ColonizationConfig,
    ship_id: Optional[str],
    ids: IdFactory,
) -> ColonizationTask:
    if system.habitable_world is None:
        raise ColonizationError(f"system {system.id} has no habitable world")
    durations = get_stage_durations(config)
    status = get_initial_status(durations)
    mission_total = sum(durations[stage] for stage in STAGE_ORDER)
    return ColonizationTask(
        id=ids(f"CLN-{system.id}"),
        system_id=system.id,
        planet_template=system.habitable_world,
        status=status,
        ticks_remaining=durations[status],
        total_ticks=durations[status],
        mission_elapsed_ticks=0,
        mission_total_ticks=mission_total or durations["colonizing"],
        ship_id=ship_id,
    )


def create_planet_from_task(task: ColonizationTask, ids: IdFactory) -> Planet:
    template = task.planet_template
    return Planet(
        id=ids(f"COL-{task.system_id}"),
        name=template.name,
        system_id=task.system_id,
        kind=template.kind,
        size=template.size,
        habitability=template.habitability,
        population=Population(total=1, workers=1),
        base_production=dict(template.base_production),
        upkeep=dict(template.upkeep),
        districts={},
        stability=NEW_COLONY_STABILITY,
        happiness=NEW_COLONY_HAPPINESS,
    )


def advance_colonization(
    tasks: Tuple[ColonizationTask, ...],
    economy: EconomyState,
    config: ColonizationConfig,
    ids: IdFactory,
) -> ColonizationAdvance:
    """
    Move every task one tick along its pipeline. Planets for finished
    missions are appended to the economy in a single batch, after the
    existing planets.
    """
    if not tasks:
        return ColonizationAdvance(tasks=tasks, economy=economy, completed=())

    durations = get_stage_durations(config)
    remaining: List[ColonizationTask] = []
    planets: List[Planet] = []
    completed: List[CompletedColony] = []

    for task in tasks:
        ticks_remaining = task.ticks_remaining - 1
        elapsed = min(task.mission_total_ticks, task.mission_elapsed_ticks + 1)
        if ticks_remaining > 0:
            remaining.append(
                replace(task, ticks_remaining=ticks_remaining, mission_elapsed_ticks=elapsed)
            )
            continue
        next_status = None if task.status == "colonizing" else get_next_status(task.status, durations)
        if next_status is not None:
            remaining.append(
                replace(
                    task,
                    status=next_status,
                    ticks_remaining=durations[next_status],
                    total_ticks=durations[next_status],
                    mission_elapsed_ticks=elapsed,
                )
            )
            continue
        planet = create_planet_from_task(task, ids)
        planets.append(planet)
        completed.append(CompletedColony(system_id=task.system_id, planet_name=planet.name))
        logger.debug(f"[colonization] colony founded system={task.system_id} planet={planet.name}")

    if planets:
        economy = replace(economy, planets=economy.planets + tuple(planets))
    return ColonizationAdvance(
        tasks=tuple(remaining), economy=economy, completed=tuple(completed)
    )
