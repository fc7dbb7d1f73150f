#!/usr/bin/env python3
"""
Event spawning and option resolution.

An option's negative `resource` effects are its cost: they are checked and
charged up front by `apply_option_cost` and skipped when the effects are
applied, so a cost is only ever paid once.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple, TypeVar

from loguru import logger

from imperium.economy import can_afford_cost, spend_resources
from imperium.helper.rng import IdFactory, RandomStream
from imperium.models.game_config import (
    EventDefinition,
    EventEffect,
    EventOption,
    EventsConfig,
    GameConfig,
    HostileSpawnEffect,
    InfluenceEffect,
    InsightEffect,
    ResourceCost,
    ResourceEffect,
    StabilityEffect,
    TriggerEventEffect,
)
from imperium.models.session_state import (
    EconomyState,
    EventLogEntry,
    GameEvent,
    GameSession,
    ResourceLedger,
)

STABILITY_MIN = 20
STABILITY_MAX = 95

# cool-downs, in ticks
LOG_COOLDOWN = 8
WAR_EVENT_COOLDOWN = 5
EVENT_STARTED_COOLDOWN = 4
WARTIME_SKIP_CHANCE = 0.2

CRISIS_MIN_TICK = 40
ANOMALY_MIN_TICK = 15
NARRATIVE_MIN_TICK = 10

T = TypeVar("T")


@dataclass(frozen=True)
class EventResolution:
    session: GameSession
    log_entry: EventLogEntry
    queued: Tuple[GameEvent, ...] = ()


def instantiate_event(
    definition: EventDefinition, ids: IdFactory, system_id: Optional[str] = None
) -> GameEvent:
    return GameEvent(
        id=ids(definition.id),
        definition_id=definition.id,
        kind=definition.kind,
        title=definition.title,
        description=definition.description,
        options=tuple(definition.options),
        system_id=system_id,
    )


def find_event_definition(config: EventsConfig, event_id: str) -> Optional[EventDefinition]:
    for pool in (config.narrative, config.anomalies, config.crisis):
        for definition in pool:
            if definition.id == event_id:
                return definition
    return None


# ---------- Costs ----------


def option_cost(option: EventOption) -> ResourceCost:
    cost: ResourceCost = {}
    for effect in option.effects:
        if isinstance(effect, ResourceEffect) and effect.amount < 0:
            cost[effect.target] = abs(effect.amount)
    return cost


def can_afford_option(session: GameSession, option: EventOption) -> bool:
    cost = option_cost(option)
    return not cost or can_afford_cost(session.economy, cost)


def apply_option_cost(session: GameSession, option: EventOption) -> EconomyState:
    return spend_resources(session.economy, option_cost(option))


# ---------- Effects ----------


def _add_to_ledger(session: GameSession, kind: str, delta: float) -> GameSession:
    resources = dict(session.economy.resources)
    ledger = resources.get(kind, ResourceLedger())
    resources[kind] = replace(ledger, amount=max(0, ledger.amount + delta))
    return replace(session, economy=replace(session.economy, resources=resources))


def apply_effect(
    session: GameSession,
    effect: EventEffect,
    config: GameConfig,
    ids: IdFactory,
    fallback_system_id: Optional[str] = None,
) -> Tuple[GameSession, Optional[GameEvent]]:
    """Apply one effect. Returns the updated session and an event to queue, if any."""
    if isinstance(effect, ResourceEffect):
        if effect.amount <= 0 or effect.target not in session.economy.resources:
            return session, None
        return _add_to_ledger(session, effect.target, effect.amount), None

    if isinstance(effect, InfluenceEffect):
        if effect.amount == 0:
            return session, None
        return _add_to_ledger(session, "influence", effect.amount), None

    if isinstance(effect, HostileSpawnEffect):
        target = effect.system_id or fallback_system_id
        if not target or effect.amount == 0:
            return session, None
        systems = tuple(
            replace(s, hostile_power=max(0, s.hostile_power + effect.amount)) if s.id == target else s
            for s in session.galaxy.systems
        )
        return replace(session, galaxy=replace(session.galaxy, systems=systems)), None

    if isinstance(effect, StabilityEffect):
        if effect.amount == 0:
            return session, None
        planets = tuple(
            replace(
                p,
                stability=max(STABILITY_MIN, min(STABILITY_MAX, p.stability + effect.amount)),
            )
            for p in session.economy.planets
        )
        return replace(session, economy=replace(session.economy, planets=planets)), None

    if isinstance(effect, TriggerEventEffect):
        definition = find_event_definition(config.events, effect.next_event_id)
        if definition is None:
            logger.warning(f"[events] unknown follow-up event {effect.next_event_id}")
            return session, None
        return session, instantiate_event(definition, ids, fallback_system_id)

    if isinstance(effect, InsightEffect):
        return _apply_insight(session, effect, config), None

    return session, None


def _apply_insight(session: GameSession, effect: InsightEffect, config: GameConfig) -> GameSession:
    if effect.tech_id:
        tech = next((t for t in config.research.techs if t.id == effect.tech_id), None)
        research = session.research
        if tech is not None:
            branch = research.branches.get(tech.branch)
            completed = branch is not None and tech.id in branch.completed
            queued = any(entry.id == tech.id for entry in research.backlog)
            if not completed and not queued:
                session = replace(
                    session, research=replace(research, backlog=research.backlog + (tech,))
                )
    if effect.perk_id:
        perk = next((p for p in config.traditions.perks if p.id == effect.perk_id), None)
        traditions = session.traditions
        if perk is not None:
            unlocked = perk.id in traditions.unlocked
            queued = any(entry.id == perk.id for entry in traditions.backlog)
            if not unlocked and not queued:
                session = replace(
                    session, traditions=replace(traditions, backlog=traditions.backlog + (perk,))
                )
    return session


def resolve_event(
    session: GameSession,
    event: GameEvent,
    option: EventOption,
    tick: int,
    config: GameConfig,
    ids: IdFactory,
) -> EventResolution:
    """
    Apply every effect of the chosen option in order. Follow-up events are
    returned in `queued` rather than activated.
    """
    queued: List[GameEvent] = []
    for effect in option.effects:
        session, follow_up = apply_effect(session, effect, config, ids, event.system_id)
        if follow_up is not None:
            queued.append(follow_up)
    entry = EventLogEntry(
        id=f"evt-log-{event.id}",
        tick=tick,
        title=event.title,
        result=option.label,
    )
    return EventResolution(session=session, log_entry=entry, queued=tuple(queued))


# ---------- Spawning ----------


def _pick(items: Sequence[T], random: RandomStream) -> Optional[T]:
    if not items:
        return None
    return items[math.floor(random() * len(items))]


def maybe_spawn_event(
    session: GameSession,
    config: EventsConfig,
    tick: int,
    random: RandomStream,
    ids: IdFactory,
) -> Optional[GameEvent]:
    """
    Roll for a new event. Crises take precedence over anomalies, anomalies
    over narrative events. Returns None during any cool-down.
    """
    log = session.events.log
    if log and tick - log[-1].tick < LOG_COOLDOWN:
        return None
    if session.war_events and tick - session.war_events[-1].tick < WAR_EVENT_COOLDOWN:
        return None
    if any(
        n.kind == "eventStarted" and tick - n.tick < EVENT_STARTED_COOLDOWN
        for n in session.notifications
    ):
        return None
    if session.war_events and random() < WARTIME_SKIP_CHANCE:
        return None

    surveyed = [s for s in session.galaxy.systems if s.visibility == "surveyed"]

    if tick > CRISIS_MIN_TICK and tick % config.crisis_interval_ticks == 0:
        target = _pick(surveyed, random)
        definition = _pick(config.crisis, random) if target else None
        return instantiate_event(definition, ids, target.id) if definition and target else None

    if tick > ANOMALY_MIN_TICK and tick % config.anomaly_interval_ticks == 0:
        target = _pick([s for s in surveyed if s.hostile_power == 0], random)
        definition = _pick(config.anomalies, random) if target else None
        return instantiate_event(definition, ids, target.id) if definition and target else None

    if tick > NARRATIVE_MIN_TICK and tick % config.narrative_interval_ticks == 0:
        definition = _pick(config.narrative, random)
        return instantiate_event(definition, ids) if definition else None

    return None
