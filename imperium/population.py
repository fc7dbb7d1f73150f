from __future__ import annotations

import math
from dataclasses import replace
from typing import Dict, List, Optional

from imperium.economy import JOB_IDS, RESOURCE_TYPES
from imperium.models.game_config import (
    EconomyConfig,
    PopulationAutomationConfig,
    PopulationJobDefinition,
    ResourceType,
)
from imperium.models.session_state import EconomyState, Planet, Population

WORKER_JOB = "workers"


def job_net_contribution(job: PopulationJobDefinition, resource: ResourceType) -> float:
    return job.production.get(resource, 0) - job.upkeep.get(resource, 0)


def shift_population(population: Population, source: str, target: str) -> Population:
    """Move one pop from `source` to `target`; the total is unchanged."""
    return replace(
        population,
        **{
            source: max(0, getattr(population, source) - 1),
            target: getattr(population, target) + 1,
        },
    )


def _best_jobs(config: EconomyConfig) -> Dict[ResourceType, PopulationJobDefinition]:
    best: Dict[ResourceType, PopulationJobDefinition] = {}
    for resource in RESOURCE_TYPES:
        current: Optional[PopulationJobDefinition] = None
        for job in config.population_jobs:
            if job.id == WORKER_JOB:
                continue
            value = job_net_contribution(job, resource)
            if value <= 0:
                continue
            if current is None or value > job_net_contribution(current, resource):
                current = job
        if current is not None:
            best[resource] = current
    return best


def _rebalance_planet(
    planet: Planet,
    worker_job: PopulationJobDefinition,
    best_jobs: Dict[ResourceType, PopulationJobDefinition],
    deficits: Dict[ResourceType, float],
    surpluses: Dict[ResourceType, float],
    automation: PopulationAutomationConfig,
) -> Planet:
    population = planet.population

    for resource in automation.priorities:
        remaining = deficits.get(resource)
        if remaining is None or remaining <= automation.deficit_threshold:
            continue
        job = best_jobs.get(resource)
        if job is None:
            continue
        delta = job_net_contribution(job, resource) - job_net_contribution(worker_job, resource)
        if delta <= 0 or population.workers <= 0:
            continue
        promotions = min(population.workers, math.ceil(remaining / delta))
        for _ in range(promotions):
            if population.workers <= 0:
                break
            population = shift_population(population, WORKER_JOB, job.id)
            remaining = max(0.0, remaining - delta)
            deficits[resource] = remaining
            if remaining <= automation.deficit_threshold:
                break

    for resource in automation.priorities:
        remaining = surpluses.get(resource)
        if remaining is None or remaining <= automation.surplus_threshold:
            continue
        job = best_jobs.get(resource)
        if job is None or getattr(population, job.id) <= 0:
            continue
        delta = job_net_contribution(job, resource) - job_net_contribution(worker_job, resource)
        if delta <= 0:
            continue
        demotions = min(
            getattr(population, job.id),
            math.ceil((remaining - automation.surplus_threshold) / delta),
        )
        for _ in range(demotions):
            if getattr(population, job.id) <= 0:
                break
            population = shift_population(population, job.id, WORKER_JOB)
            remaining = max(automation.surplus_threshold, remaining - delta)
            surpluses[resource] = remaining
            if remaining <= automation.surplus_threshold:
                break

    if population == planet.population:
        return planet
    return replace(planet, population=population)


def auto_balance_population(economy: EconomyState, config: EconomyConfig) -> EconomyState:
    """
    Shift pops between workers and the best job for each priority resource.
    A resource whose last-tick trend (income - upkeep) is below the negative
    deficit threshold gets workers promoted; one above the surplus threshold
    gets specialists demoted. Targets are shared across planets, so a deficit
    covered on the first planet is not covered again on the next.
    """
    automation = config.population_automation
    if automation is None or not automation.enabled:
        return economy
    worker_job = next((j for j in config.population_jobs if j.id == WORKER_JOB), None)
    if worker_job is None:
        return economy

    deficits: Dict[ResourceType, float] = {}
    surpluses: Dict[ResourceType, float] = {}
    for resource in automation.priorities:
        ledger = economy.resources.get(resource)
        trend = (ledger.income - ledger.upkeep) if ledger else 0
        if trend < -automation.deficit_threshold:
            deficits[resource] = abs(trend)
        elif trend > automation.surplus_threshold:
            surpluses[resource] = trend
    if not deficits and not surpluses:
        return economy

    best_jobs = _best_jobs(config)
    planets: List[Planet] = [
        _rebalance_planet(planet, worker_job, best_jobs, deficits, surpluses, automation)
        for planet in economy.planets
    ]
    return replace(economy, planets=tuple(planets))


# ---------- Manual assignment ----------


def promote_population(
    economy: EconomyState, planet_id: str, job_id: str
) -> tuple[Optional[str], EconomyState]:
    if job_id == WORKER_JOB or job_id not in JOB_IDS:
        return "INVALID_JOB", economy
    planet = next((p for p in economy.planets if p.id == planet_id), None)
    if planet is None:
        return "PLANET_NOT_FOUND", economy
    if planet.population.workers <= 0:
        return "NO_WORKERS", economy
    updated = replace(planet, population=shift_population(planet.population, WORKER_JOB, job_id))
    return None, replace(
        economy,
        planets=tuple(updated if p.id == planet_id else p for p in economy.planets),
    )


def demote_population(
    economy: EconomyState, planet_id: str, job_id: str
) -> tuple[Optional[str], EconomyState]:
    if job_id == WORKER_JOB or job_id not in JOB_IDS:
        return "INVALID_JOB", economy
    planet = next((p for p in economy.planets if p.id == planet_id), None)
    if planet is None:
        return "PLANET_NOT_FOUND", economy
    if getattr(planet.population, job_id, 0) <= 0:
        return "NO_POPULATION", economy
    updated = replace(planet, population=shift_population(planet.population, job_id, WORKER_JOB))
    return None, replace(
        economy,
        planets=tuple(updated if p.id == planet_id else p for p in economy.planets),
    )
