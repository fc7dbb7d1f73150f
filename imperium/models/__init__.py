from .game_config import GAME_CONFIG, GameConfig
from .redis_config import REDIS_SETTINGS, RedisSettings
from .session_state import (
    PLAYER_ID,
    ColonizationTask,
    CombatReport,
    DistrictConstructionTask,
    EconomyState,
    Empire,
    EventLogEntry,
    EventState,
    Fleet,
    FleetShip,
    GalaxyState,
    GameEvent,
    GameNotification,
    GameSession,
    HabitableWorldTemplate,
    Planet,
    Population,
    ResearchState,
    ResourceLedger,
    ScienceShip,
    ShipyardTask,
    SimulationClock,
    StarSystem,
    TraditionState,
    WarEvent,
)

__all__ = [
    "GAME_CONFIG",
    "GameConfig",
    "REDIS_SETTINGS",
    "RedisSettings",
    "PLAYER_ID",
    "ColonizationTask",
    "CombatReport",
    "DistrictConstructionTask",
    "EconomyState",
    "Empire",
    "EventLogEntry",
    "EventState",
    "Fleet",
    "FleetShip",
    "GalaxyState",
    "GameEvent",
    "GameNotification",
    "GameSession",
    "HabitableWorldTemplate",
    "Planet",
    "Population",
    "ResearchState",
    "ResourceLedger",
    "ScienceShip",
    "ShipyardTask",
    "SimulationClock",
    "StarSystem",
    "TraditionState",
    "WarEvent",
]
