#!/usr/bin/env python3
"""
Player commands. Each takes the current session (or None) and returns a
CommandResult; precondition failures come back as a reason code rather than
an exception. The returned session replaces the caller's copy.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional

from imperium import diplomacy, economy, exploration, fleets, population, progression
from imperium.clock import set_clock_running, set_clock_speed
from imperium.colonization import create_colonization_task
from imperium.events import apply_option_cost, can_afford_option, resolve_event
from imperium.helper.galaxy_helpers import find_system
from imperium.helper.rng import IdFactory, uuid_id_factory
from imperium.models.game_config import GAME_CONFIG, GameConfig, ShipCustomization
from imperium.models.session_state import (
    PLAYER_ID,
    GameNotification,
    GameSession,
    NotificationKind,
    ShipyardBuild,
    WarEvent,
    WarEventType,
)

WAR_DECLARATION_OPINION = -15
PEACE_OPINION = 10
BORDER_ACCESS_OPINION = 5


@dataclass(frozen=True)
class CommandResult:
    success: bool
    reason: Optional[str] = None
    session: Optional[GameSession] = None


def ok(session: GameSession) -> CommandResult:
    return CommandResult(success=True, session=session)


def rejected(reason: str, session: Optional[GameSession] = None) -> CommandResult:
    return CommandResult(success=False, reason=reason, session=session)


NO_SESSION = rejected("NO_SESSION")

# name -> command, used by the HTTP surface
COMMANDS: Dict[str, Callable[..., CommandResult]] = {}


def command(fn: Callable[..., CommandResult]) -> Callable[..., CommandResult]:
    COMMANDS[fn.__name__] = fn
    return fn


def append_notification(
    session: GameSession,
    message: str,
    kind: NotificationKind,
    ids: IdFactory,
    config: GameConfig,
    notification_id: Optional[str] = None,
    tick: Optional[int] = None,
) -> GameSession:
    entry_tick = session.clock.tick if tick is None else tick
    entry = GameNotification(
        id=notification_id or ids("notif"), tick=entry_tick, kind=kind, message=message
    )
    notifications = (session.notifications + (entry,))[-config.limits.max_notifications:]
    return replace(session, notifications=notifications)


def append_war_event(
    session: GameSession,
    event_type: WarEventType,
    empire_id: str,
    tick: int,
    message: str,
    ids: IdFactory,
    config: GameConfig,
) -> GameSession:
    entry = WarEvent(id=ids("war"), type=event_type, empire_id=empire_id, tick=tick, message=message)
    limit = config.diplomacy.war_event_log_limit
    return replace(session, war_events=(session.war_events + (entry,))[-limit:])


# ---------- Colonization ----------


@command
def start_colonization(
    session: Optional[GameSession],
    system_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    system = find_system(session.galaxy, system_id)
    if system is None:
        return rejected("SYSTEM_NOT_FOUND")
    if system.visibility == "unknown":
        return rejected("SYSTEM_UNKNOWN")
    has_planet = any(p.system_id == system_id for p in session.economy.planets)
    if system.visibility != "surveyed" and not has_planet:
        return rejected("SYSTEM_NOT_SURVEYED")
    if system.habitable_world is None:
        return rejected("NO_HABITABLE_WORLD")
    if has_planet:
        return rejected("ALREADY_COLONIZED")
    if any(task.system_id == system_id for task in session.colonization_tasks):
        return rejected("TASK_IN_PROGRESS")
    cost = config.colonization.cost
    if not economy.can_afford_cost(session.economy, cost):
        return rejected("INSUFFICIENT_RESOURCES")
    detached = fleets.detach_colony_ship(session.fleets, config.military.colony_ship_design_id)
    if detached is None:
        return rejected("NO_COLONY_SHIP")

    ship_id, remaining_fleets = detached
    task = create_colonization_task(system, config.colonization, ship_id, ids)
    updated = replace(
        session,
        economy=economy.spend_resources(session.economy, cost),
        fleets=remaining_fleets,
        colonization_tasks=session.colonization_tasks + (task,),
    )
    return ok(
        append_notification(
            updated, f"Colonization mission launched to {system.name}.", "colonizationStarted", ids, config
        )
    )


# ---------- Shipyard ----------


@command
def queue_ship_build(
    session: Optional[GameSession],
    design_id: str,
    template_id: Optional[str] = None,
    customization: Optional[ShipCustomization] = None,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    try:
        base = fleets.get_ship_design(config.military, design_id)
    except fleets.UnknownShipDesignError:
        return rejected("INVALID_DESIGN")
    if len(session.shipyard_queue) >= config.military.shipyard.queue_size:
        return rejected("QUEUE_FULL")
    template = fleets.find_template(config.military, template_id)
    design = fleets.compose_design(base, template, customization)
    if not economy.can_afford_cost(session.economy, design.build_cost):
        return rejected("INSUFFICIENT_RESOURCES")
    task = fleets.create_shipyard_task(
        base,
        ids,
        template_id=template.id if template and template.base == base.id else None,
        customization=customization,
    )
    return ok(
        replace(
            session,
            economy=economy.spend_resources(session.economy, design.build_cost),
            shipyard_queue=session.shipyard_queue + (task,),
        )
    )


@command
def build_shipyard(
    session: Optional[GameSession],
    system_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    system = find_system(session.galaxy, system_id)
    if system is None:
        return rejected("SYSTEM_NOT_FOUND")
    if system.visibility != "surveyed":
        return rejected("SYSTEM_NOT_SURVEYED")
    if system.shipyard_build is not None:
        return rejected("IN_PROGRESS")
    if system.has_shipyard:
        return rejected("ALREADY_BUILT")
    shipyard = config.military.shipyard
    if not any(shipyard.required_tech in b.completed for b in session.research.branches.values()):
        return rejected("TECH_MISSING")
    if not fleets.has_constructor_in_system(session.fleets, system_id, config.military):
        return rejected("NO_CONSTRUCTOR")
    if not economy.can_afford_cost(session.economy, shipyard.build_cost):
        return rejected("INSUFFICIENT_RESOURCES")

    build = ShipyardBuild(ticks_remaining=shipyard.build_ticks, total_ticks=shipyard.build_ticks)
    systems = tuple(
        replace(s, owner_id=PLAYER_ID, shipyard_build=build) if s.id == system_id else s
        for s in session.galaxy.systems
    )
    return ok(
        replace(
            session,
            economy=economy.spend_resources(session.economy, shipyard.build_cost),
            galaxy=replace(session.galaxy, systems=systems),
        )
    )


# ---------- Districts ----------


@command
def queue_district_construction(
    session: Optional[GameSession],
    planet_id: str,
    district_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    if not any(p.id == planet_id for p in session.economy.planets):
        return rejected("PLANET_NOT_FOUND")
    definition = economy.find_district(config.economy, district_id)
    if definition is None:
        return rejected("INVALID_DISTRICT")
    if not economy.can_afford_cost(session.economy, definition.cost):
        # the suspension is still reported to the player
        return rejected(
            "INSUFFICIENT_RESOURCES",
            append_notification(
                session,
                f"{definition.label} suspended: insufficient resources.",
                "districtSuspended",
                ids,
                config,
            ),
        )
    task = economy.create_district_task(planet_id, district_id, definition.build_time, ids)
    return ok(
        replace(
            session,
            economy=economy.spend_resources(session.economy, definition.cost),
            district_construction_queue=session.district_construction_queue + (task,),
        )
    )


@command
def cancel_district_task(
    session: Optional[GameSession],
    task_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    """Drop a queued district and refund its full cost."""
    if session is None:
        return NO_SESSION
    task = next((t for t in session.district_construction_queue if t.id == task_id), None)
    if task is None:
        return rejected("TASK_NOT_FOUND")
    if not any(p.id == task.planet_id for p in session.economy.planets):
        return rejected("PLANET_NOT_FOUND")
    definition = economy.find_district(config.economy, task.district_id)
    refunded = (
        economy.refund_resources(session.economy, definition.cost) if definition else session.economy
    )
    return ok(
        replace(
            session,
            economy=refunded,
            district_construction_queue=tuple(
                t for t in session.district_construction_queue if t.id != task_id
            ),
        )
    )


@command
def prioritize_district_task(
    session: Optional[GameSession],
    task_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    queue = session.district_construction_queue
    task = next((t for t in queue if t.id == task_id), None)
    if task is None:
        return rejected("TASK_NOT_FOUND")
    return ok(
        replace(
            session,
            district_construction_queue=(task,) + tuple(t for t in queue if t.id != task_id),
        )
    )


@command
def remove_built_district(
    session: Optional[GameSession],
    planet_id: str,
    district_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    planet = next((p for p in session.economy.planets if p.id == planet_id), None)
    if planet is None:
        return rejected("PLANET_NOT_FOUND")
    if economy.find_district(config.economy, district_id) is None:
        return rejected("INVALID_DISTRICT")
    count = planet.districts.get(district_id, 0)
    if count <= 0:
        return rejected("NONE_BUILT")
    districts = dict(planet.districts)
    districts[district_id] = count - 1
    planets = tuple(
        replace(p, districts=districts) if p.id == planet_id else p for p in session.economy.planets
    )
    return ok(replace(session, economy=replace(session.economy, planets=planets)))


# ---------- Population ----------


@command
def promote_population(
    session: Optional[GameSession],
    planet_id: str,
    job_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    reason, updated = population.promote_population(session.economy, planet_id, job_id)
    if reason:
        return rejected(reason)
    return ok(replace(session, economy=updated))


@command
def demote_population(
    session: Optional[GameSession],
    planet_id: str,
    job_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    reason, updated = population.demote_population(session.economy, planet_id, job_id)
    if reason:
        return rejected(reason)
    return ok(replace(session, economy=updated))


# ---------- Progression ----------


@command
def begin_research(
    session: Optional[GameSession],
    branch: str,
    tech_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    reason, research = progression.start_research(branch, tech_id, session.research, config.research)
    if reason:
        return rejected(reason)
    return ok(replace(session, research=research))


@command
def unlock_tradition_perk(
    session: Optional[GameSession],
    perk_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    reason, traditions = progression.unlock_tradition(perk_id, session.traditions, config.traditions)
    if reason:
        return rejected(reason)
    return ok(replace(session, traditions=traditions))


# ---------- Events ----------


@command
def resolve_active_event(
    session: Optional[GameSession],
    option_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None or session.events.active is None:
        return rejected("NO_EVENT")
    event = session.events.active
    option = next((o for o in event.options if o.id == option_id), None)
    if option is None:
        return rejected("OPTION_NOT_FOUND")
    if not can_afford_option(session, option):
        return rejected("INSUFFICIENT_RESOURCES")

    charged = replace(session, economy=apply_option_cost(session, option))
    resolution = resolve_event(charged, event, option, session.clock.tick, config, ids)
    events = replace(
        resolution.session.events,
        active=None,
        queue=resolution.session.events.queue + resolution.queued,
        log=(resolution.session.events.log + (resolution.log_entry,))[-config.limits.max_event_log:],
    )
    updated = replace(resolution.session, events=events)
    return ok(
        append_notification(
            updated,
            f"{event.title}: {option.label}",
            "eventResolved",
            ids,
            config,
            notification_id=f"notif-evt-resolved-{event.id}",
        )
    )


# ---------- Exploration ----------


@command
def order_science_ship(
    session: Optional[GameSession],
    ship_id: str,
    system_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    reason, ships, galaxy = exploration.order_science_ship(
        session.galaxy, session.science_ships, ship_id, system_id, config.exploration
    )
    if reason:
        return rejected(reason)
    return ok(replace(session, science_ships=ships, galaxy=galaxy))


@command
def set_science_auto_explore(
    session: Optional[GameSession],
    ship_id: str,
    enabled: bool,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    if not any(s.id == ship_id for s in session.science_ships):
        return rejected("SHIP_NOT_FOUND")
    ships = exploration.set_science_auto_explore(session.science_ships, ship_id, enabled)
    return ok(replace(session, science_ships=ships))


@command
def stop_science_ship(
    session: Optional[GameSession],
    ship_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    if not any(s.id == ship_id for s in session.science_ships):
        return rejected("SHIP_NOT_FOUND")
    return ok(
        replace(session, science_ships=exploration.stop_science_ship(session.science_ships, ship_id))
    )


# ---------- Fleets ----------


@command
def order_fleet_move(
    session: Optional[GameSession],
    fleet_id: str,
    system_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    reason, updated = fleets.order_fleet_move(
        session.fleets, session.galaxy, session.empires, fleet_id, system_id, config.military.fleet
    )
    if reason:
        return rejected(reason)
    return ok(replace(session, fleets=updated))


@command
def merge_fleets(
    session: Optional[GameSession],
    source_id: str,
    target_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    reason, updated = fleets.merge_fleets(session.fleets, source_id, target_id)
    if reason:
        return rejected(reason)
    return ok(replace(session, fleets=updated))


@command
def split_fleet(
    session: Optional[GameSession],
    fleet_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    reason, updated = fleets.split_fleet(session.fleets, fleet_id, ids)
    if reason:
        return rejected(reason)
    return ok(replace(session, fleets=updated))


@command
def stop_fleet(
    session: Optional[GameSession],
    fleet_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    if not any(f.id == fleet_id for f in session.fleets):
        return rejected("FLEET_NOT_FOUND")
    return ok(replace(session, fleets=fleets.stop_fleet(session.fleets, fleet_id)))


# ---------- Diplomacy ----------


def _ai_target(session: GameSession, empire_id: str):
    target = next((e for e in session.empires if e.id == empire_id), None)
    if target is None:
        return None, "EMPIRE_NOT_FOUND"
    if target.kind == "player":
        return None, "INVALID_TARGET"
    return target, None


@command
def declare_war(
    session: Optional[GameSession],
    empire_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    target, reason = _ai_target(session, empire_id)
    if reason:
        return rejected(reason)
    if target.war_status == "war":
        return rejected("ALREADY_IN_STATE")
    # the war takes effect on the coming tick
    tick = session.clock.tick + 1
    updated = replace(
        session,
        empires=diplomacy.set_empire_war_status(
            session.empires, empire_id, "war", WAR_DECLARATION_OPINION, tick
        ),
        galaxy=diplomacy.apply_war_pressure_to_galaxy(
            session.galaxy, [empire_id], tick, config.diplomacy.war_zones
        ),
    )
    message = f"War declared on {target.name}."
    updated = append_war_event(updated, "warStart", empire_id, tick, message, ids, config)
    return ok(append_notification(updated, message, "warDeclared", ids, config))


@command
def propose_peace(
    session: Optional[GameSession],
    empire_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    target, reason = _ai_target(session, empire_id)
    if reason:
        return rejected(reason)
    if target.war_status == "peace":
        return rejected("ALREADY_IN_STATE")
    updated = replace(
        session,
        empires=diplomacy.set_empire_war_status(
            session.empires, empire_id, "peace", PEACE_OPINION, None
        ),
    )
    updated = append_war_event(
        updated, "warEnd", empire_id, session.clock.tick, f"Peace reached with {target.name}.", ids, config
    )
    return ok(append_notification(updated, f"Truce signed with {target.name}.", "peaceAccepted", ids, config))


@command
def request_border_access(
    session: Optional[GameSession],
    empire_id: str,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    target, reason = _ai_target(session, empire_id)
    if reason:
        return rejected(reason)
    if target.access_to_player:
        return rejected("ALREADY_GRANTED")
    updated = replace(
        session,
        empires=diplomacy.grant_border_access(session.empires, empire_id, BORDER_ACCESS_OPINION),
    )
    return ok(append_notification(updated, f"{target.name} opens its borders.", "peaceAccepted", ids, config))


# ---------- Clock ----------


@command
def set_simulation_running(
    session: Optional[GameSession],
    running: bool,
    now: float = 0,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    return ok(replace(session, clock=set_clock_running(session.clock, running, now)))


@command
def set_simulation_speed(
    session: Optional[GameSession],
    speed: float,
    config: GameConfig = GAME_CONFIG,
    ids: IdFactory = uuid_id_factory,
) -> CommandResult:
    if session is None:
        return NO_SESSION
    return ok(replace(session, clock=set_clock_speed(session.clock, speed)))
