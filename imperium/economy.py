#!/usr/bin/env python3
"""
Resource ledgers, planet morale, production and district construction.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from imperium.helper.rng import IdFactory
from imperium.models.game_config import (
    DistrictDefinition,
    EconomyConfig,
    HomeworldConfig,
    MoraleConfig,
    ResourceCost,
    ResourceType,
)
from imperium.models.session_state import (
    DistrictConstructionTask,
    EconomyState,
    Planet,
    Population,
    ResourceLedger,
)

if TYPE_CHECKING:
    from imperium.progression import ProgressionModifiers

RESOURCE_TYPES: Tuple[ResourceType, ...] = (
    "energy",
    "minerals",
    "food",
    "research",
    "influence",
)
JOB_IDS = ("workers", "specialists", "researchers")

LEDGER_AMOUNT_MAX = 999999
LEDGER_RATE_LIMIT = 99999


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ---------- Ledger ----------


def create_ledger(starting: ResourceCost) -> Dict[ResourceType, ResourceLedger]:
    return {kind: ResourceLedger(amount=starting.get(kind, 0)) for kind in RESOURCE_TYPES}


def create_homeworld(system_id: str, config: HomeworldConfig, morale: MoraleConfig) -> Planet:
    return Planet(
        id=f"HOME-{system_id}",
        name=config.name,
        system_id=system_id,
        kind=config.kind,
        size=config.size,
        habitability=config.habitability,
        population=Population(total=config.population, workers=config.population),
        base_production=dict(config.base_production),
        upkeep=dict(config.upkeep),
        districts=dict(config.districts),
        stability=morale.base_stability,
        happiness=morale.base_stability,
    )


def create_initial_economy(home_system_id: str, config: EconomyConfig) -> EconomyState:
    return EconomyState(
        resources=create_ledger(config.starting_resources),
        planets=(create_homeworld(home_system_id, config.homeworld, config.morale),),
    )


def can_afford_cost(economy: EconomyState, cost: ResourceCost) -> bool:
    for kind, amount in cost.items():
        if not amount:
            continue
        ledger = economy.resources.get(kind)
        if ledger is None or ledger.amount < amount:
            return False
    return True


def spend_resources(economy: EconomyState, cost: ResourceCost) -> EconomyState:
    """Deduct a cost; amounts never drop below zero."""
    resources = dict(economy.resources)
    for kind, amount in cost.items():
        ledger = resources.get(kind)
        if not amount or ledger is None:
            continue
        resources[kind] = replace(ledger, amount=max(0, ledger.amount - amount))
    return replace(economy, resources=resources)


def refund_resources(economy: EconomyState, cost: ResourceCost) -> EconomyState:
    resources = dict(economy.resources)
    for kind, amount in cost.items():
        if not amount:
            continue
        ledger = resources.get(kind, ResourceLedger())
        resources[kind] = replace(ledger, amount=ledger.amount + amount)
    return replace(economy, resources=resources)


# ---------- Production ----------


@dataclass(frozen=True)
class ResourceContribution:
    base: float = 0
    districts: float = 0
    population: float = 0
    upkeep: float = 0
    net: float = 0


@dataclass(frozen=True)
class PlanetMorale:
    stability: float
    happiness: float
    modifier: float


def _population_count(population: Population, job_id: str) -> int:
    return getattr(population, job_id, 0)


def compute_planet_production(
    planet: Planet, config: EconomyConfig
) -> Dict[ResourceType, ResourceContribution]:
    """Unmodified per-resource breakdown of what a planet yields and consumes."""
    base = {kind: planet.base_production.get(kind, 0) for kind in RESOURCE_TYPES}
    districts = {kind: 0.0 for kind in RESOURCE_TYPES}
    population = {kind: 0.0 for kind in RESOURCE_TYPES}
    upkeep = {kind: planet.upkeep.get(kind, 0) for kind in RESOURCE_TYPES}

    lookup = {definition.id: definition for definition in config.districts}
    for district_id, count in planet.districts.items():
        definition = lookup.get(district_id)
        if definition is None or count <= 0:
            continue
        for kind in RESOURCE_TYPES:
            districts[kind] += definition.production.get(kind, 0) * count
            upkeep[kind] += definition.upkeep.get(kind, 0) * count

    for job in config.population_jobs:
        assigned = _population_count(planet.population, job.id)
        if assigned <= 0:
            continue
        for kind in RESOURCE_TYPES:
            population[kind] += job.production.get(kind, 0) * assigned
            upkeep[kind] += job.upkeep.get(kind, 0) * assigned

    return {
        kind: ResourceContribution(
            base=base[kind],
            districts=districts[kind],
            population=population[kind],
            upkeep=upkeep[kind],
            net=base[kind] + districts[kind] + population[kind] - upkeep[kind],
        )
        for kind in RESOURCE_TYPES
    }


def calculate_planet_morale(
    planet: Planet, economy: EconomyState, config: EconomyConfig
) -> PlanetMorale:
    """
    Stability starts from the configured base and loses points for
    overcrowding, stockpiles below the deficit threshold and poor
    habitability. Happiness follows stability, nudged by the job mix.
    """
    morale = config.morale
    safe_capacity = max(0.0, planet.size / morale.overcrowding_threshold)
    crowding = max(0.0, planet.population.total - safe_capacity) * morale.overcrowding_penalty
    deficit = 0.0
    for kind in RESOURCE_TYPES:
        ledger = economy.resources.get(kind)
        amount = ledger.amount if ledger else 0
        if amount >= morale.deficit_threshold:
            continue
        severity = (morale.deficit_threshold - amount) / morale.deficit_threshold
        deficit += severity * morale.deficit_penalty
    habitability_penalty = (
        round((1 - planet.habitability) * 20) if planet.habitability < 1 else 0
    )
    stability = _clamp(
        morale.base_stability - crowding - deficit - habitability_penalty,
        morale.min,
        morale.max,
    )
    skilled = planet.population.specialists + planet.population.researchers
    happiness = _clamp(
        stability
        + skilled * morale.happiness_bonus_per_specialist
        - planet.population.workers * morale.happiness_penalty_per_worker,
        morale.min,
        morale.max,
    )
    return PlanetMorale(stability=stability, happiness=happiness, modifier=stability / 100)


@dataclass(frozen=True)
class EconomyAdvance:
    economy: EconomyState
    net_production: Dict[ResourceType, float]


def advance_economy(
    economy: EconomyState,
    config: EconomyConfig,
    modifiers: Optional["ProgressionModifiers"] = None,
) -> EconomyAdvance:
    """
    One tick of production and upkeep. Yields are scaled by each planet's
    morale modifier and by progression income multipliers; upkeep is not.
    """
    multipliers = modifiers.income_multipliers if modifiers else {}
    influence_flat = modifiers.influence_flat if modifiers else 0.0

    def boosted(value: float, kind: ResourceType) -> float:
        return value * (1 + multipliers.get(kind, 0))

    income = {kind: 0.0 for kind in RESOURCE_TYPES}
    upkeep = {kind: 0.0 for kind in RESOURCE_TYPES}
    lookup = {definition.id: definition for definition in config.districts}
    planets: List[Planet] = []

    for planet in economy.planets:
        morale = calculate_planet_morale(planet, economy, config)
        for kind in RESOURCE_TYPES:
            income[kind] += boosted(planet.base_production.get(kind, 0) * morale.modifier, kind)
            upkeep[kind] += planet.upkeep.get(kind, 0)
        for district_id, count in planet.districts.items():
            definition = lookup.get(district_id)
            if definition is None or count <= 0:
                continue
            for kind in RESOURCE_TYPES:
                income[kind] += boosted(definition.production.get(kind, 0) * morale.modifier, kind) * count
                upkeep[kind] += definition.upkeep.get(kind, 0) * count
        for job in config.population_jobs:
            count = _population_count(planet.population, job.id)
            if count <= 0:
                continue
            for kind in RESOURCE_TYPES:
                income[kind] += boosted(job.production.get(kind, 0) * morale.modifier, kind) * count
                upkeep[kind] += job.upkeep.get(kind, 0) * count
        planets.append(replace(planet, stability=morale.stability, happiness=morale.happiness))

    income["influence"] += influence_flat

    resources = dict(economy.resources)
    net_production: Dict[ResourceType, float] = {}
    for kind in RESOURCE_TYPES:
        net = income[kind] - upkeep[kind]
        net_production[kind] = net
        current = resources.get(kind, ResourceLedger())
        resources[kind] = ResourceLedger(
            amount=_clamp(current.amount + net, 0, LEDGER_AMOUNT_MAX),
            income=_clamp(income[kind], -LEDGER_RATE_LIMIT, LEDGER_RATE_LIMIT),
            upkeep=_clamp(upkeep[kind], -LEDGER_RATE_LIMIT, LEDGER_RATE_LIMIT),
        )

    return EconomyAdvance(
        economy=replace(economy, resources=resources, planets=tuple(planets)),
        net_production=net_production,
    )


# ---------- Districts ----------


def find_district(config: EconomyConfig, district_id: str) -> Optional[DistrictDefinition]:
    return next((d for d in config.districts if d.id == district_id), None)


def create_district_task(
    planet_id: str, district_id: str, build_time: int, ids: IdFactory
) -> DistrictConstructionTask:
    build_time = max(1, build_time)
    return DistrictConstructionTask(
        id=ids(f"DIST-{planet_id}-{district_id}"),
        planet_id=planet_id,
        district_id=district_id,
        ticks_remaining=build_time,
        total_ticks=build_time,
    )


@dataclass(frozen=True)
class DistrictAdvance:
    tasks: Tuple[DistrictConstructionTask, ...]
    economy: EconomyState
    completed: Tuple[DistrictConstructionTask, ...]
    suspended: Tuple[DistrictConstructionTask, ...] = ()


def _apply_district(planet: Planet, district_id: str) -> Planet:
    districts = dict(planet.districts)
    districts[district_id] = districts.get(district_id, 0) + 1
    return replace(planet, districts=districts)


def advance_district_construction(
    tasks: Tuple[DistrictConstructionTask, ...],
    economy: EconomyState,
    config: EconomyConfig,
) -> DistrictAdvance:
    """
    Count down every construction task. A finished district only lands on
    planets that meet its colonist requirement; otherwise it is reported as
    suspended and the planet is left untouched.
    """
    if not tasks:
        return DistrictAdvance(tasks=tasks, economy=economy, completed=())
    remaining: List[DistrictConstructionTask] = []
    completed: List[DistrictConstructionTask] = []
    suspended: List[DistrictConstructionTask] = []
    for task in tasks:
        ticks = max(0, task.ticks_remaining - 1)
        if ticks > 0:
            remaining.append(replace(task, ticks_remaining=ticks))
            continue
        completed.append(task)
        planet = next((p for p in economy.planets if p.id == task.planet_id), None)
        definition = find_district(config, task.district_id)
        required = definition.requires_colonists if definition else None
        population = planet.population.total if planet else 0
        if required and population < required:
            suspended.append(task)
            continue
        economy = replace(
            economy,
            planets=tuple(
                _apply_district(p, task.district_id) if p.id == task.planet_id else p
                for p in economy.planets
            ),
        )
    return DistrictAdvance(
        tasks=tuple(remaining),
        economy=economy,
        completed=tuple(completed),
        suspended=tuple(suspended),
    )
