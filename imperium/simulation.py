#!/usr/bin/env python3
"""
The tick orchestrator. `advance_simulation` folds every engine over the
session once per tick, in a fixed order, and never mutates its input.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional, Set

from loguru import logger

from imperium.clock import advance_clock, tick_duration_ms
from imperium.colonization import advance_colonization
from imperium.diplomacy import (
    advance_diplomacy,
    apply_war_pressure_to_galaxy,
    assign_borders_to_player,
    intensify_war_zones,
)
from imperium.economy import advance_district_construction, advance_economy, find_district
from imperium.events import maybe_spawn_event
from imperium.exploration import advance_exploration
from imperium.fleets import (
    advance_fleets,
    advance_shipyard,
    advance_shipyard_construction,
    calculate_player_fleet_power,
)
from imperium.helper.galaxy_helpers import find_system
from imperium.helper.rng import create_id_factory, create_random, derive_seed
from imperium.models.game_config import GAME_CONFIG, GameConfig
from imperium.models.session_state import (
    CombatResult,
    EventState,
    GameNotification,
    GameSession,
    WarEvent,
)
from imperium.population import auto_balance_population
from imperium.progression import (
    advance_research,
    advance_traditions,
    derive_progression_modifiers,
)

SimulateFn = Callable[[GameSession, int, GameConfig], GameSession]

COMBAT_RESULT_LABELS = {
    "playerVictory": "Victory",
    "playerDefeat": "Defeat",
    "mutualDestruction": "Mutual destruction",
    "stalemate": "Stalemate",
}


def _combat_label(result: CombatResult) -> str:
    return COMBAT_RESULT_LABELS.get(result, result)


def advance_tick(session: GameSession, config: GameConfig) -> GameSession:
    tick = session.clock.tick + 1
    ids = create_id_factory(f"{session.id}:{tick}")
    notifications: List[GameNotification] = []

    def notify(kind, message, notification_id=None, at=tick):
        notifications.append(
            GameNotification(id=notification_id or ids("notif"), tick=at, kind=kind, message=message)
        )

    # 1. clock
    clock = replace(session.clock, tick=tick)

    # 2. exploration
    exploration = advance_exploration(session.galaxy, session.science_ships, config.exploration)
    galaxy = exploration.galaxy

    # 3. colonization, borders, districts
    colonization = advance_colonization(
        session.colonization_tasks, session.economy, config.colonization, ids
    )
    colonized: Set[str] = {planet.system_id for planet in colonization.economy.planets}
    colonized.update(entry.system_id for entry in colonization.completed)
    galaxy = assign_borders_to_player(galaxy, colonized)
    for entry in colonization.completed:
        notify("colonizationCompleted", f"Colony founded on {entry.planet_name} ({entry.system_id}).")

    districts = advance_district_construction(
        session.district_construction_queue, colonization.economy, config.economy
    )
    suspended_ids = {task.id for task in districts.suspended}
    for task in districts.completed:
        planet = next((p for p in districts.economy.planets if p.id == task.planet_id), None)
        definition = find_district(config.economy, task.district_id)
        label = definition.label if definition else task.district_id
        planet_name = planet.name if planet else task.planet_id
        if task.id in suspended_ids:
            notify("districtSuspended", f"{label} on {planet_name} is waiting for colonists.")
        else:
            notify("districtComplete", f"{label} completed on {planet_name}.")

    # 4. shipyard output, fleet movement and combat
    fallback_system_id = (
        session.fleets[0].system_id
        if session.fleets
        else (galaxy.systems[0].id if galaxy.systems else "unknown")
    )
    shipyard = advance_shipyard(
        session.shipyard_queue,
        session.fleets,
        exploration.science_ships,
        config.military,
        fallback_system_id,
        ids,
    )
    fleets = advance_fleets(shipyard.fleets, galaxy, config.military, tick, ids)
    galaxy = fleets.galaxy
    for report in fleets.reports:
        system = find_system(galaxy, report.system_id)
        name = system.name if system else report.system_id
        notify(
            "combatReport",
            f"Combat at {name}: {_combat_label(report.result)} "
            f"(strength {report.player_power:g} vs {report.hostile_power:g}).",
            at=report.tick,
        )
    for system_id in fleets.hostiles_cleared:
        system = find_system(galaxy, system_id)
        notify("combatReport", f"Hostiles neutralized in {system.name if system else system_id}.")

    # 5. economy, research, traditions
    modifiers = derive_progression_modifiers(
        session.research, session.traditions, config.research, config.traditions
    )
    balanced = auto_balance_population(districts.economy, config.economy)
    economy = advance_economy(balanced, config.economy, modifiers)
    research = advance_research(
        session.research, max(0.0, economy.net_production.get("research", 0)), config.research
    )
    traditions = advance_traditions(
        session.traditions, max(0.0, economy.net_production.get("influence", 0)), config.traditions
    )
    for tech in research.completed:
        notify("researchCompleted", f"Research complete: {tech.name}.", f"notif-tech-{tech.id}-{tick}")

    # 6. diplomacy
    diplomacy = advance_diplomacy(
        session.empires,
        config.diplomacy,
        tick,
        calculate_player_fleet_power(fleets.fleets, config.military),
        ids,
    )
    notifications.extend(diplomacy.notifications)
    war_events = list(session.war_events)
    for empire_id in diplomacy.wars_started:
        war_events.append(
            WarEvent(id=ids("war"), type="warStart", empire_id=empire_id, tick=tick, message="War declared.")
        )
    for empire_id in diplomacy.wars_ended:
        war_events.append(
            WarEvent(id=ids("war"), type="warEnd", empire_id=empire_id, tick=tick, message="Peace reached.")
        )

    # 7. war zones
    galaxy = apply_war_pressure_to_galaxy(
        galaxy, diplomacy.wars_started, tick, config.diplomacy.war_zones
    )
    galaxy = intensify_war_zones(galaxy, diplomacy.empires, tick, config.diplomacy.war_zones)

    # 8. shipyard construction
    galaxy = advance_shipyard_construction(galaxy)

    # 9. events
    queue = session.events.queue
    active = session.events.active
    if active is None and queue:
        active, queue = queue[0], queue[1:]
    if active is None:
        spawned = maybe_spawn_event(
            session,
            config.events,
            tick,
            create_random(derive_seed(galaxy.seed, "events", tick)),
            ids,
        )
        if spawned is not None:
            active = spawned
            notify("eventStarted", f"New event: {spawned.title}", f"notif-evt-{spawned.id}")
            logger.debug(f"[simulation] event spawned id={spawned.definition_id} tick={tick}")

    # 10. trim
    limits = config.limits
    return replace(
        session,
        clock=clock,
        galaxy=galaxy,
        science_ships=shipyard.science_ships,
        empires=diplomacy.empires,
        research=research.research,
        traditions=traditions,
        economy=economy.economy,
        events=EventState(active=active, queue=queue, log=session.events.log[-limits.max_event_log:]),
        war_events=tuple(war_events[-config.diplomacy.war_event_log_limit:]),
        colonization_tasks=colonization.tasks,
        district_construction_queue=districts.tasks,
        shipyard_queue=shipyard.tasks,
        fleets=fleets.fleets,
        combat_reports=(session.combat_reports + fleets.reports)[-limits.max_combat_reports:],
        notifications=(session.notifications + tuple(notifications))[-limits.max_notifications:],
    )


def advance_simulation(
    session: GameSession, ticks: int, config: GameConfig = GAME_CONFIG
) -> GameSession:
    for _ in range(max(0, ticks)):
        session = advance_tick(session, config)
    return session


def advance_clock_by(
    session: GameSession,
    elapsed_ms: float,
    now: float,
    config: GameConfig = GAME_CONFIG,
    simulate: Optional[SimulateFn] = None,
) -> GameSession:
    """
    Drive the simulation from wall-clock time. At most
    `limits.max_ticks_per_advance` ticks run per call; anything beyond that
    is dropped so a stalled caller does not trigger a burst of catch-up ticks.
    """
    result = advance_clock(session.clock, elapsed_ms, tick_duration_ms(config), now)
    session = replace(session, clock=result.clock)
    ticks = min(result.ticks, config.limits.max_ticks_per_advance)
    if ticks <= 0:
        return session
    return (simulate or advance_simulation)(session, ticks, config)
