#!/usr/bin/env python3
"""
Science ship state machine: idle -> traveling -> surveying -> idle.

Ships are folded in array order and each one sees the galaxy left behind by
the previous ship, so two ships never claim the same unknown system.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from imperium.helper.rng import IdFactory
from imperium.models.game_config import ExplorationConfig
from imperium.models.session_state import GalaxyState, ScienceShip, Visibility

VISIBILITY_RANK: Dict[str, int] = {
    "unknown": 0,
    "revealed": 1,
    "surveyed": 2,
}

PATHFINDER_NAME = "ISS Pathfinder"


@dataclass(frozen=True)
class ExplorationAdvance:
    galaxy: GalaxyState
    science_ships: Tuple[ScienceShip, ...]


def upgrade_system_visibility(
    galaxy: GalaxyState, system_id: str, visibility: Visibility
) -> GalaxyState:
    """
    Raise a system's visibility. Requests at or below the current rank are
    no-ops and return the galaxy unchanged.
    """
    updated = False
    systems = []
    for system in galaxy.systems:
        if (
            system.id == system_id
            and VISIBILITY_RANK[visibility] > VISIBILITY_RANK[system.visibility]
        ):
            system = replace(system, visibility=visibility)
            updated = True
        systems.append(system)
    return replace(galaxy, systems=tuple(systems)) if updated else galaxy


def _assign_next_target(
    ship: ScienceShip, galaxy: GalaxyState, config: ExplorationConfig
) -> Tuple[ScienceShip, GalaxyState]:
    # first unknown system in array order
    target = next((s for s in galaxy.systems if s.visibility == "unknown"), None)
    if target is None:
        return ship, galaxy
    ship = replace(
        ship,
        status="traveling",
        target_system_id=target.id,
        ticks_remaining=max(1, config.travel_ticks),
    )
    return ship, upgrade_system_visibility(galaxy, target.id, "revealed")


def tick_ship(
    ship: ScienceShip, galaxy: GalaxyState, config: ExplorationConfig
) -> Tuple[ScienceShip, GalaxyState]:
    if ship.status == "traveling":
        ship = replace(ship, ticks_remaining=max(0, ship.ticks_remaining - 1))
        if ship.ticks_remaining == 0 and ship.target_system_id:
            ship = replace(
                ship,
                status="surveying",
                current_system_id=ship.target_system_id,
                target_system_id=None,
                ticks_remaining=max(1, config.survey_ticks),
            )
            galaxy = upgrade_system_visibility(galaxy, ship.current_system_id, "revealed")
    elif ship.status == "surveying":
        ship = replace(ship, ticks_remaining=max(0, ship.ticks_remaining - 1))
        if ship.ticks_remaining == 0:
            ship = replace(ship, status="idle", ticks_remaining=0)
            galaxy = upgrade_system_visibility(galaxy, ship.current_system_id, "surveyed")

    if ship.status == "idle" and ship.auto_explore:
        return _assign_next_target(ship, galaxy, config)
    return ship, galaxy


def advance_exploration(
    galaxy: GalaxyState,
    ships: Tuple[ScienceShip, ...],
    config: ExplorationConfig,
) -> ExplorationAdvance:
    if not ships:
        return ExplorationAdvance(galaxy=galaxy, science_ships=ships)
    updated = []
    for ship in ships:
        ship, galaxy = tick_ship(ship, galaxy, config)
        updated.append(ship)
    return ExplorationAdvance(galaxy=galaxy, science_ships=tuple(updated))


def create_initial_science_ships(
    galaxy: GalaxyState, count: int, ids: IdFactory
) -> Tuple[ScienceShip, ...]:
    if not galaxy.systems or count <= 0:
        return ()
    home = galaxy.systems[0]
    ships = []
    for index in range(count):
        name = PATHFINDER_NAME if index == 0 else f"{PATHFINDER_NAME} {index + 1}"
        ships.append(
            ScienceShip(
                id=ids("SCI"),
                name=name,
                current_system_id=home.id,
            )
        )
    return tuple(ships)


# ---------- Manual orders ----------


def order_science_ship(
    galaxy: GalaxyState,
    ships: Tuple[ScienceShip, ...],
    ship_id: str,
    system_id: str,
    config: ExplorationConfig,
) -> Tuple[Optional[str], Tuple[ScienceShip, ...], GalaxyState]:
    """
    Send a ship to a known system by hand. Auto explore is switched off.
    Returns (reason, ships, galaxy); reason is None on success.
    """
    ship = next((s for s in ships if s.id == ship_id), None)
    if ship is None:
        return "SHIP_NOT_FOUND", ships, galaxy
    target = next((s for s in galaxy.systems if s.id == system_id), None)
    if target is None:
        return "SYSTEM_NOT_FOUND", ships, galaxy
    if target.visibility == "unknown":
        return "SYSTEM_UNKNOWN", ships, galaxy
    ordered = replace(
        ship,
        auto_explore=False,
        status="traveling",
        target_system_id=target.id,
        ticks_remaining=max(1, config.travel_ticks),
    )
    ships = tuple(ordered if s.id == ship_id else s for s in ships)
    return None, ships, upgrade_system_visibility(galaxy, target.id, "revealed")


def set_science_auto_explore(
    ships: Tuple[ScienceShip, ...], ship_id: str, enabled: bool
) -> Tuple[ScienceShip, ...]:
    return tuple(
        replace(s, auto_explore=enabled) if s.id == ship_id else s for s in ships
    )


def stop_science_ship(
    ships: Tuple[ScienceShip, ...], ship_id: str
) -> Tuple[ScienceShip, ...]:
    return tuple(
        replace(s, status="idle", target_system_id=None, ticks_remaining=0)
        if s.id == ship_id
        else s
        for s in ships
    )
