#!/usr/bin/env python3
"""
New-game setup: galaxy, empires, starting fleets and the initial economy.
"""
from __future__ import annotations

import time
from dataclasses import replace
from typing import List, Optional, Tuple

from imperium.clock import create_clock
from imperium.diplomacy import clamp_opinion
from imperium.economy import create_initial_economy
from imperium.exploration import create_initial_science_ships
from imperium.fleets import create_fleet_ship, get_ship_design
from imperium.helper.galaxy_helpers import create_test_galaxy
from imperium.helper.rng import IdFactory, create_random, uuid_id_factory
from imperium.models.game_config import GAME_CONFIG, DiplomacyConfig, GameConfig, MilitaryConfig
from imperium.models.session_state import (
    PLAYER_ID,
    Empire,
    EventState,
    Fleet,
    FleetShip,
    GameSession,
)
from imperium.progression import create_initial_research, create_initial_traditions

PLAYER_NAME = "Player Empire"
PLAYER_COLOR = "#9fc1ff"
AI_NAMES = ("Arcturus Empire", "Lyra Confederacy", "Vega League")
AI_PALETTE = ("#ff9b5f", "#8bcf8a", "#f6e05e", "#dd97ff")
AI_COUNT = 2


def now_ms() -> float:
    return time.time() * 1000


def create_empires(seed: str, config: DiplomacyConfig) -> Tuple[Empire, ...]:
    """
    The player plus two AI empires. Starting opinions are drawn from the
    session seed so the same seed always meets the same neighbours.
    """
    random = create_random(seed)
    span = config.ai_starting_opinion.max - config.ai_starting_opinion.min
    empires: List[Empire] = [
        Empire(id=PLAYER_ID, name=PLAYER_NAME, kind="player", color=PLAYER_COLOR)
    ]
    for index in range(AI_COUNT):
        opinion = clamp_opinion(round(config.ai_starting_opinion.min + random() * span))
        empires.append(
            Empire(
                id=f"ai-{index + 1}",
                name=AI_NAMES[index] if index < len(AI_NAMES) else f"Empire {index + 1}",
                kind="ai",
                color=AI_PALETTE[index % len(AI_PALETTE)],
                opinion=opinion,
                personality="expansionist" if opinion < 0 else "pragmatic",
            )
        )
    return tuple(empires)


def _make_ships(config: MilitaryConfig, design_id: str, count: int, ids: IdFactory) -> Tuple[FleetShip, ...]:
    if count <= 0:
        return ()
    design = get_ship_design(config, design_id)
    return tuple(create_fleet_ship(design, ids) for _ in range(count))


def create_starting_fleets(
    home_system_id: str, config: MilitaryConfig, ids: IdFactory
) -> Tuple[Fleet, ...]:
    starting = config.starting_ships
    military: Tuple[FleetShip, ...] = ()
    for entry in starting.military:
        military += _make_ships(config, entry.design_id, entry.count, ids)
    groups = (
        ("1st Fleet", military),
        ("Colony Fleet", _make_ships(config, config.colony_ship_design_id, starting.colony, ids)),
        (
            "Construction Fleet",
            _make_ships(config, config.construction_ship_design_id, starting.construction, ids),
        ),
    )
    return tuple(
        Fleet(id=ids("FLEET"), name=name, owner_id=PLAYER_ID, system_id=home_system_id, ships=ships)
        for name, ships in groups
        if ships
    )


def create_session(
    seed: str,
    config: GameConfig = GAME_CONFIG,
    label: Optional[str] = None,
    ids: IdFactory = uuid_id_factory,
    now: Optional[float] = None,
    system_count: Optional[int] = None,
    galaxy_radius: Optional[float] = None,
) -> GameSession:
    created_at = now_ms() if now is None else now
    galaxy = create_test_galaxy(
        seed,
        system_count=system_count or config.default_galaxy.system_count,
        galaxy_radius=galaxy_radius or config.default_galaxy.galaxy_radius,
        star_classes=config.star_classes,
        layout=config.galaxy_layout,
    )
    owners = {0: PLAYER_ID, 1: "ai-1"}
    galaxy = replace(
        galaxy,
        systems=tuple(
            replace(system, owner_id=owners[index]) if index in owners else system
            for index, system in enumerate(galaxy.systems)
        ),
    )
    home_system_id = galaxy.systems[0].id if galaxy.systems else "unknown"

    return GameSession(
        id=ids("SESSION"),
        label=label or f"Session {time.strftime('%H:%M:%S', time.localtime(created_at / 1000))}",
        created_at=created_at,
        galaxy=galaxy,
        empires=create_empires(seed, config.diplomacy),
        research=create_initial_research(config.research),
        traditions=create_initial_traditions(config.traditions),
        events=EventState(),
        clock=create_clock(),
        economy=create_initial_economy(home_system_id, config.economy),
        science_ships=create_initial_science_ships(
            galaxy, config.military.starting_ships.science, ids
        ),
        fleets=create_starting_fleets(home_system_id, config.military, ids),
    )
