#!/usr/bin/env python3
"""
Ship designs, the shipyard queue, fleet movement and combat.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from loguru import logger

from imperium.helper.galaxy_helpers import find_system, route_length
from imperium.helper.rng import IdFactory
from imperium.models.game_config import (
    FleetConfig,
    MilitaryConfig,
    ShipCustomization,
    ShipDesign,
    ShipTemplate,
)
from imperium.models.session_state import (
    PLAYER_ID,
    CombatReport,
    CombatResult,
    Empire,
    Fleet,
    FleetLoss,
    FleetShip,
    GalaxyState,
    ScienceShip,
    ShipyardTask,
)

DEFENSE_MITIGATION = 0.5
TRAVEL_DISTANCE_SCALE = 60

ROLE_FLEET_NAMES = {
    "construction": "Construction Fleet",
    "colony": "Colony Fleet",
    "military": "Military Fleet",
}


class UnknownShipDesignError(KeyError):
    """Raised when a design id is not in the military config."""


# ---------- Designs ----------


def get_ship_design(config: MilitaryConfig, design_id: str) -> ShipDesign:
    for design in config.ship_designs:
        if design.id == design_id:
            return design
    raise UnknownShipDesignError(design_id)


def find_template(config: MilitaryConfig, template_id: Optional[str]) -> Optional[ShipTemplate]:
    if not template_id:
        return None
    return next((t for t in config.templates if t.id == template_id), None)


def _scale_cost(design: ShipDesign, multiplier: float) -> Dict[str, float]:
    return {kind: round(value * multiplier) for kind, value in design.build_cost.items()}


def compose_design(
    design: ShipDesign,
    template: Optional[ShipTemplate] = None,
    customization: Optional[ShipCustomization] = None,
) -> ShipDesign:
    """
    Layer a template, then a customization, on a base design. A template for a
    different base is ignored. The id stays the base design id.
    """
    if template is not None and template.base == design.id:
        design = design.model_copy(
            update={
                "name": f"{design.name} - {template.name}",
                "attack": design.attack + template.attack,
                "defense": design.defense + template.defense,
                "hull_points": design.hull_points + template.hull,
                "build_cost": _scale_cost(design, template.cost_multiplier),
            }
        )
    if customization is not None:
        design = design.model_copy(
            update={
                "name": f"{design.name} - {customization.name}" if customization.name else design.name,
                "attack": design.attack + customization.attack_bonus,
                "defense": design.defense + customization.defense_bonus,
                "hull_points": design.hull_points + customization.hull_bonus,
                "build_cost": _scale_cost(design, customization.cost_multiplier),
            }
        )
    return design


def create_fleet_ship(
    design: ShipDesign, ids: IdFactory, base: Optional[ShipDesign] = None
) -> FleetShip:
    """`base` is the unmodified design when `design` came out of compose_design."""
    base = base or design
    return FleetShip(
        id=ids("SHIP"),
        design_id=design.id,
        hull_points=design.hull_points,
        attack_bonus=design.attack - base.attack,
        defense_bonus=design.defense - base.defense,
    )


# ---------- Shipyard ----------


def create_shipyard_task(
    design: ShipDesign,
    ids: IdFactory,
    template_id: Optional[str] = None,
    customization: Optional[ShipCustomization] = None,
) -> ShipyardTask:
    return ShipyardTask(
        id=ids("YARD"),
        design_id=design.id,
        ticks_remaining=design.build_time,
        total_ticks=design.build_time,
        template_id=template_id,
        customization=customization,
    )


@dataclass(frozen=True)
class ShipyardAdvance:
    tasks: Tuple[ShipyardTask, ...]
    fleets: Tuple[Fleet, ...]
    science_ships: Tuple[ScienceShip, ...]


def _ship_role(config: MilitaryConfig, design_id: str) -> str:
    try:
        return get_ship_design(config, design_id).role
    except UnknownShipDesignError:
        return "military"


def _role_fleet_index(fleets: List[Fleet], role: str, config: MilitaryConfig) -> Optional[int]:
    for index, fleet in enumerate(fleets):
        if fleet.owner_id not in (None, PLAYER_ID) or not fleet.ships:
            continue
        if all(_ship_role(config, ship.design_id) == role for ship in fleet.ships):
            return index
    return None


def advance_shipyard(
    tasks: Tuple[ShipyardTask, ...],
    fleets: Tuple[Fleet, ...],
    science_ships: Tuple[ScienceShip, ...],
    config: MilitaryConfig,
    fallback_system_id: str,
    ids: IdFactory,
) -> ShipyardAdvance:
    """
    Count down the build queue. Finished science vessels join the survey
    corps; everything else joins the first player fleet made up only of its
    role, or a new one parked at `fallback_system_id`.
    """
    if not tasks:
        return ShipyardAdvance(tasks=tasks, fleets=fleets, science_ships=science_ships)

    remaining: List[ShipyardTask] = []
    updated_fleets = list(fleets)
    updated_science = list(science_ships)

    for task in tasks:
        ticks = max(0, task.ticks_remaining - 1)
        if ticks > 0:
            remaining.append(replace(task, ticks_remaining=ticks))
            continue
        base = get_ship_design(config, task.design_id)
        design = compose_design(base, find_template(config, task.template_id), task.customization)
        if base.role == "science":
            updated_science.append(
                ScienceShip(id=ids("SCI"), name=design.name, current_system_id=fallback_system_id)
            )
            continue
        ship = create_fleet_ship(design, ids, base)
        index = _role_fleet_index(updated_fleets, base.role, config)
        if index is None:
            count = sum(
                1 for f in updated_fleets if f.name.startswith(ROLE_FLEET_NAMES[base.role])
            )
            updated_fleets.append(
                Fleet(
                    id=ids("FLEET"),
                    name=f"{ROLE_FLEET_NAMES[base.role]} {count + 1}",
                    owner_id=PLAYER_ID,
                    system_id=fallback_system_id,
                    ships=(ship,),
                )
            )
        else:
            fleet = updated_fleets[index]
            updated_fleets[index] = replace(fleet, ships=fleet.ships + (ship,))

    return ShipyardAdvance(
        tasks=tuple(remaining),
        fleets=tuple(updated_fleets),
        science_ships=tuple(updated_science),
    )


def advance_shipyard_construction(galaxy: GalaxyState) -> GalaxyState:
    """Count down shipyards under construction; a finished one defaults to player ownership."""
    if not any(s.shipyard_build for s in galaxy.systems):
        return galaxy
    systems = []
    for system in galaxy.systems:
        build = system.shipyard_build
        if build is not None:
            ticks = max(0, build.ticks_remaining - 1)
            if ticks == 0:
                system = replace(
                    system,
                    has_shipyard=True,
                    shipyard_build=None,
                    owner_id=system.owner_id or PLAYER_ID,
                )
            else:
                system = replace(system, shipyard_build=replace(build, ticks_remaining=ticks))
        systems.append(system)
    return replace(galaxy, systems=tuple(systems))


# ---------- Combat ----------


def _design_map(config: MilitaryConfig) -> Dict[str, ShipDesign]:
    return {design.id: design for design in config.ship_designs}


def _ship_attack(ship: FleetShip, designs: Dict[str, ShipDesign]) -> float:
    design = designs.get(ship.design_id)
    return (design.attack if design else 0) + ship.attack_bonus


def _ship_defense(ship: FleetShip, designs: Dict[str, ShipDesign]) -> float:
    design = designs.get(ship.design_id)
    return (design.defense if design else 0) + ship.defense_bonus


def fleet_attack(fleet: Fleet, designs: Dict[str, ShipDesign]) -> float:
    return sum(_ship_attack(ship, designs) for ship in fleet.ships)


def fleet_defense(fleet: Fleet, designs: Dict[str, ShipDesign]) -> float:
    return sum(_ship_defense(ship, designs) for ship in fleet.ships)


def calculate_player_fleet_power(fleets: Tuple[Fleet, ...], config: MilitaryConfig) -> float:
    designs = _design_map(config)
    return sum(
        fleet_attack(fleet, designs)
        for fleet in fleets
        if fleet.owner_id is None or fleet.owner_id == PLAYER_ID
    )


def apply_damage(ships: Tuple[FleetShip, ...], damage: float) -> Tuple[Tuple[FleetShip, ...], int]:
    """Damage hits ships in order; each ship absorbs up to its hull. Returns (survivors, lost)."""
    if damage <= 0:
        return ships, 0
    survivors: List[FleetShip] = []
    lost = 0
    for ship in ships:
        if damage >= ship.hull_points:
            damage -= ship.hull_points
            lost += 1
        else:
            survivors.append(replace(ship, hull_points=ship.hull_points - damage))
            damage = 0
    return tuple(survivors), lost


def _combat_result(hostile_remaining: float, survivors: int) -> CombatResult:
    if hostile_remaining <= 0 and survivors == 0:
        return "mutualDestruction"
    if hostile_remaining > 0 and survivors == 0:
        return "playerDefeat"
    if hostile_remaining > 0:
        return "stalemate"
    return "playerVictory"


@dataclass(frozen=True)
class FleetAdvance:
    fleets: Tuple[Fleet, ...]
    galaxy: GalaxyState
    reports: Tuple[CombatReport, ...] = ()
    hostiles_cleared: Tuple[str, ...] = ()


def advance_fleets(
    fleets: Tuple[Fleet, ...],
    galaxy: GalaxyState,
    config: MilitaryConfig,
    tick: int,
    ids: IdFactory,
) -> FleetAdvance:
    """
    Move every fleet one tick, then fight whatever hostiles sit in its
    system. Fleets are resolved in order against the hostility left behind
    by the previous one. A fleet that loses all its ships is removed.
    """
    if not fleets:
        return FleetAdvance(fleets=fleets, galaxy=galaxy)

    designs = _design_map(config)
    systems = list(galaxy.systems)
    index_of = {system.id: index for index, system in enumerate(systems)}
    updated: List[Fleet] = []
    reports: List[CombatReport] = []
    cleared: List[str] = []

    for fleet in fleets:
        if fleet.target_system_id and fleet.ticks_to_arrival > 0:
            ticks = fleet.ticks_to_arrival - 1
            if ticks == 0:
                fleet = replace(fleet, system_id=fleet.target_system_id, target_system_id=None, ticks_to_arrival=0)
            else:
                fleet = replace(fleet, ticks_to_arrival=ticks)

        index = index_of.get(fleet.system_id)
        if not fleet.ships or index is None or systems[index].hostile_power <= 0:
            updated.append(fleet)
            continue

        system = systems[index]
        hostile = system.hostile_power
        attack = fleet_attack(fleet, designs)
        defense = fleet_defense(fleet, designs)
        incoming = max(0, hostile - round(defense * DEFENSE_MITIGATION))
        remaining_hostile = max(0, hostile - attack)
        survivors, lost = apply_damage(fleet.ships, incoming)
        result = _combat_result(remaining_hostile, len(survivors))

        systems[index] = replace(system, hostile_power=remaining_hostile)
        if remaining_hostile <= 0:
            cleared.append(system.id)
        reports.append(
            CombatReport(
                id=ids(f"COMBAT-{system.id}-{tick}"),
                system_id=system.id,
                tick=tick,
                player_power=attack,
                player_defense=defense,
                damage_taken=incoming,
                hostile_power=hostile,
                result=result,
                losses=(FleetLoss(fleet_id=fleet.id, ships_lost=lost),),
            )
        )
        logger.debug(f"[fleets] combat system={system.id} tick={tick} result={result}")
        if survivors:
            updated.append(replace(fleet, ships=survivors))

    return FleetAdvance(
        fleets=tuple(updated),
        galaxy=replace(galaxy, systems=tuple(systems)) if reports else galaxy,
        reports=tuple(reports),
        hostiles_cleared=tuple(cleared),
    )


# ---------- Orders ----------


def calculate_travel_ticks(
    galaxy: GalaxyState, from_system_id: str, to_system_id: str, config: FleetConfig
) -> int:
    if from_system_id == to_system_id:
        return 0
    if find_system(galaxy, from_system_id) is None or find_system(galaxy, to_system_id) is None:
        return config.base_travel_ticks
    length = route_length(galaxy, from_system_id, to_system_id)
    return max(1, round(config.base_travel_ticks + length / TRAVEL_DISTANCE_SCALE))


def detach_colony_ship(
    fleets: Tuple[Fleet, ...], colony_design_id: str
) -> Optional[Tuple[str, Tuple[Fleet, ...]]]:
    """
    Take the first player colony ship out of its fleet. Returns (ship id,
    fleets) or None; a fleet left empty is dropped.
    """
    for fleet in fleets:
        if fleet.owner_id not in (None, PLAYER_ID):
            continue
        ship = next((s for s in fleet.ships if s.design_id == colony_design_id), None)
        if ship is None:
            continue
        rest = tuple(s for s in fleet.ships if s.id != ship.id)
        if rest:
            updated = tuple(replace(f, ships=rest) if f.id == fleet.id else f for f in fleets)
        else:
            updated = tuple(f for f in fleets if f.id != fleet.id)
        return ship.id, updated
    return None


def has_constructor_in_system(
    fleets: Tuple[Fleet, ...], system_id: str, config: MilitaryConfig
) -> bool:
    return any(
        _ship_role(config, ship.design_id) == "construction"
        for fleet in fleets
        if fleet.system_id == system_id and fleet.owner_id in (None, PLAYER_ID)
        for ship in fleet.ships
    )


def order_fleet_move(
    fleets: Tuple[Fleet, ...],
    galaxy: GalaxyState,
    empires: Tuple[Empire, ...],
    fleet_id: str,
    system_id: str,
    config: FleetConfig,
) -> Tuple[Optional[str], Tuple[Fleet, ...]]:
    fleet = next((f for f in fleets if f.id == fleet_id), None)
    if fleet is None:
        return "FLEET_NOT_FOUND", fleets
    system = find_system(galaxy, system_id)
    if system is None:
        return "SYSTEM_NOT_FOUND", fleets
    owner = next((e for e in empires if e.id == system.owner_id), None)
    if owner is not None and owner.kind == "ai" and owner.war_status == "peace" and not owner.access_to_player:
        return "BORDER_CLOSED", fleets
    if fleet.system_id == system_id and fleet.target_system_id is None:
        return "ALREADY_IN_SYSTEM", fleets
    if not fleet.ships:
        return "NO_SHIPS", fleets
    ticks = calculate_travel_ticks(galaxy, fleet.system_id, system_id, config)
    moved = replace(fleet, target_system_id=system_id, ticks_to_arrival=ticks)
    return None, tuple(moved if f.id == fleet_id else f for f in fleets)


def merge_fleets(
    fleets: Tuple[Fleet, ...], source_id: str, target_id: str
) -> Tuple[Optional[str], Tuple[Fleet, ...]]:
    if source_id == target_id:
        return "SAME_FLEET", fleets
    source = next((f for f in fleets if f.id == source_id), None)
    target = next((f for f in fleets if f.id == target_id), None)
    if source is None:
        return "FLEET_NOT_FOUND", fleets
    if target is None:
        return "TARGET_NOT_FOUND", fleets
    if source.system_id != target.system_id:
        return "DIFFERENT_SYSTEM", fleets
    merged = replace(target, ships=target.ships + source.ships)
    return None, tuple(merged if f.id == target_id else f for f in fleets if f.id != source_id)


def split_fleet(
    fleets: Tuple[Fleet, ...], fleet_id: str, ids: IdFactory
) -> Tuple[Optional[str], Tuple[Fleet, ...]]:
    """The last ship of the fleet leaves to form a new fleet in the same system."""
    fleet = next((f for f in fleets if f.id == fleet_id), None)
    if fleet is None:
        return "FLEET_NOT_FOUND", fleets
    if len(fleet.ships) <= 1:
        return "INSUFFICIENT_SHIPS", fleets
    detached = Fleet(
        id=ids("FLEET"),
        name=f"{fleet.name} Detachment",
        owner_id=fleet.owner_id,
        system_id=fleet.system_id,
        ships=fleet.ships[-1:],
    )
    kept = replace(fleet, ships=fleet.ships[:-1])
    return None, tuple(kept if f.id == fleet_id else f for f in fleets) + (detached,)


def stop_fleet(fleets: Tuple[Fleet, ...], fleet_id: str) -> Tuple[Fleet, ...]:
    return tuple(
        replace(f, target_system_id=None, ticks_to_arrival=0) if f.id == fleet_id else f
        for f in fleets
    )
