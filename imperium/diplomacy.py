#!/usr/bin/env python3
"""
AI opinion drift, war/peace transitions and war-zone hostility.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from loguru import logger

from imperium.helper.rng import IdFactory
from imperium.models.game_config import DiplomacyConfig, WarZoneConfig
from imperium.models.session_state import (
    PLAYER_ID,
    Empire,
    GalaxyState,
    GameNotification,
    WarStatus,
)

OPINION_MIN = -100
OPINION_MAX = 100
INTENSIFY_PERIOD = 8

# peace heuristic
PEACE_OPINION_FLOOR = -20
PEACE_FLEET_POWER = 12
PEACE_NEUTRAL_BAND = 15


def clamp_opinion(value: float) -> float:
    return max(OPINION_MIN, min(OPINION_MAX, value))


@dataclass(frozen=True)
class DiplomacyAdvance:
    empires: Tuple[Empire, ...]
    notifications: Tuple[GameNotification, ...] = ()
    wars_started: Tuple[str, ...] = ()
    wars_ended: Tuple[str, ...] = ()


def evaluate_peace_acceptance(empire: Empire, player_fleet_power: float) -> bool:
    needs_peace = empire.opinion > PEACE_OPINION_FLOOR and player_fleet_power > PEACE_FLEET_POWER
    return needs_peace or abs(empire.opinion) < PEACE_NEUTRAL_BAND


def advance_diplomacy(
    empires: Tuple[Empire, ...],
    config: DiplomacyConfig,
    tick: int,
    player_fleet_power: float,
    ids: IdFactory,
) -> DiplomacyAdvance:
    """
    Periodic opinion check. Off-cadence ticks, and galaxies with a single
    empire, hand back the very same empires tuple so callers can skip work.
    Each AI empire makes at most one transition per check.
    """
    if len(empires) <= 1 or tick % max(1, config.auto_check_interval) != 0:
        return DiplomacyAdvance(empires=empires)

    updated: List[Empire] = []
    notifications: List[GameNotification] = []
    started: List[str] = []
    ended: List[str] = []

    for empire in empires:
        if empire.kind == "player":
            updated.append(empire)
            continue
        empire = replace(empire, opinion=clamp_opinion(empire.opinion + config.opinion_drift_per_check))
        if empire.war_status == "peace" and empire.opinion <= config.war_threshold:
            empire = replace(empire, war_status="war", war_since=tick)
            started.append(empire.id)
            notifications.append(
                GameNotification(
                    id=ids("notif"),
                    tick=tick,
                    kind="warDeclared",
                    message=f"{empire.name} has declared war!",
                )
            )
            logger.debug(f"[diplomacy] war declared empire={empire.id} tick={tick}")
        elif empire.war_status == "war" and (
            empire.opinion >= config.peace_threshold
            or evaluate_peace_acceptance(empire, player_fleet_power)
        ):
            empire = replace(empire, war_status="peace", war_since=None)
            ended.append(empire.id)
            notifications.append(
                GameNotification(
                    id=ids("notif"),
                    tick=tick,
                    kind="peaceAccepted",
                    message=f"{empire.name} accepts a truce.",
                )
            )
            logger.debug(f"[diplomacy] peace accepted empire={empire.id} tick={tick}")
        updated.append(empire)

    return DiplomacyAdvance(
        empires=tuple(updated),
        notifications=tuple(notifications),
        wars_started=tuple(started),
        wars_ended=tuple(ended),
    )


# ---------- War zones ----------


def _raise_hostility(galaxy: GalaxyState, raises: Iterable[Tuple[int, float]]) -> GalaxyState:
    systems = list(galaxy.systems)
    for index, power in raises:
        if 0 <= index < len(systems):
            system = systems[index]
            systems[index] = replace(system, hostile_power=max(system.hostile_power, power))
    return replace(galaxy, systems=tuple(systems))


def apply_war_pressure_to_galaxy(
    galaxy: GalaxyState,
    wars_started: Sequence[str],
    tick: int,
    config: WarZoneConfig,
) -> GalaxyState:
    """
    Seed hostility on `count` systems per newly started war. Index 0 is the
    player's home and is never picked; existing hostility is never lowered.
    """
    if not wars_started:
        return galaxy
    max_index = max(1, len(galaxy.systems) - 1)
    power_span = max(1, config.power_max - config.power_min)
    raises = []
    for idx, _ in enumerate(wars_started):
        for offset in range(config.count):
            index = 1 + (tick + idx * 3 + offset) % max_index
            raises.append((index, config.power_min + (tick + offset + idx) % power_span))
    return _raise_hostility(galaxy, raises)


def intensify_war_zones(
    galaxy: GalaxyState,
    empires: Sequence[Empire],
    tick: int,
    config: WarZoneConfig,
) -> GalaxyState:
    """Every 8th tick, each AI empire still at war reinforces one frontier system."""
    at_war = [e for e in empires if e.kind == "ai" and e.war_status == "war"]
    if not at_war or tick % INTENSIFY_PERIOD != 0:
        return galaxy
    max_index = max(1, len(galaxy.systems) - 1)
    power_span = max(1, config.power_max - config.power_min)
    raises = [
        (1 + (tick + idx) % max_index, config.power_min + (tick + idx) % power_span)
        for idx, _ in enumerate(at_war)
    ]
    return _raise_hostility(galaxy, raises)


def assign_borders_to_player(galaxy: GalaxyState, colonized_systems: Set[str]) -> GalaxyState:
    """The home system and every colonized system belong to the player."""
    if not colonized_systems:
        return galaxy
    changed = False
    systems = []
    for index, system in enumerate(galaxy.systems):
        if (index == 0 or system.id in colonized_systems) and system.owner_id != PLAYER_ID:
            system = replace(system, owner_id=PLAYER_ID)
            changed = True
        systems.append(system)
    return replace(galaxy, systems=tuple(systems)) if changed else galaxy


# ---------- Player actions ----------


def set_empire_war_status(
    empires: Tuple[Empire, ...],
    empire_id: str,
    status: WarStatus,
    opinion_delta: float,
    war_since: Optional[int],
) -> Tuple[Empire, ...]:
    return tuple(
        replace(
            empire,
            war_status=status,
            war_since=war_since,
            opinion=clamp_opinion(empire.opinion + opinion_delta),
        )
        if empire.id == empire_id
        else empire
        for empire in empires
    )


def grant_border_access(
    empires: Tuple[Empire, ...], empire_id: str, opinion_delta: float
) -> Tuple[Empire, ...]:
    return tuple(
        replace(
            empire,
            access_to_player=True,
            opinion=clamp_opinion(empire.opinion + opinion_delta),
        )
        if empire.id == empire_id
        else empire
        for empire in empires
    )
