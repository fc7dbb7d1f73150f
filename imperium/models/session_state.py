from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple, Literal

from .game_config import (
    EventKind,
    EventOption,
    PlanetKind,
    ResearchTech,
    ResourceType,
    ShipCustomization,
    TraditionPerk,
)

Visibility = Literal["unknown", "revealed", "surveyed"]
ScienceShipStatus = Literal["idle", "traveling", "surveying"]
ColonizationStatus = Literal["preparing", "traveling", "colonizing"]
EmpireKind = Literal["player", "ai"]
WarStatus = Literal["peace", "war"]
CombatResult = Literal["playerVictory", "playerDefeat", "mutualDestruction", "stalemate"]
WarEventType = Literal["warStart", "warEnd"]
NotificationKind = Literal[
    "colonizationStarted",
    "colonizationCompleted",
    "districtComplete",
    "districtSuspended",
    "combatReport",
    "researchCompleted",
    "warDeclared",
    "peaceAccepted",
    "eventStarted",
    "eventResolved",
]

PLAYER_ID = "player"


@dataclass(frozen=True)
class Vector2:
    x: float
    y: float


@dataclass(frozen=True)
class HabitableWorldTemplate:
    name: str
    kind: PlanetKind
    size: int
    habitability: float
    base_production: Dict[ResourceType, float] = field(default_factory=dict)
    upkeep: Dict[ResourceType, float] = field(default_factory=dict)


@dataclass(frozen=True)
class OrbitingPlanet:
    id: str
    name: str
    orbit_radius: float
    size: float
    orbit_speed: float


@dataclass(frozen=True)
class ShipyardBuild:
    ticks_remaining: int
    total_ticks: int


@dataclass(frozen=True)
class StarSystem:
    id: str
    name: str
    star_class: str
    position: Vector2
    visibility: Visibility = "unknown"
    habitable_world: Optional[HabitableWorldTemplate] = None
    orbiting_planets: Tuple[OrbitingPlanet, ...] = ()
    hostile_power: float = 0  # never negative
    owner_id: Optional[str] = None
    has_shipyard: bool = False
    shipyard_build: Optional[ShipyardBuild] = None


@dataclass(frozen=True)
class GalaxyState:
    seed: str
    systems: Tuple[StarSystem, ...]
    lanes: Tuple[Tuple[int, int], ...] = ()  # index pairs into systems


@dataclass(frozen=True)
class ScienceShip:
    id: str
    name: str
    current_system_id: str
    target_system_id: Optional[str] = None
    status: ScienceShipStatus = "idle"
    ticks_remaining: int = 0
    auto_explore: bool = True


@dataclass(frozen=True)
class ColonizationTask:
    id: str
    system_id: str
    planet_template: HabitableWorldTemplate
    status: ColonizationStatus
    ticks_remaining: int
    total_ticks: int
    mission_elapsed_ticks: int
    mission_total_ticks: int
    ship_id: Optional[str] = None


@dataclass(frozen=True)
class Population:
    total: int
    workers: int
    specialists: int = 0
    researchers: int = 0


@dataclass(frozen=True)
class Planet:
    id: str
    name: str
    system_id: str
    kind: PlanetKind
    size: int
    habitability: float
    population: Population
    base_production: Dict[ResourceType, float] = field(default_factory=dict)
    upkeep: Dict[ResourceType, float] = field(default_factory=dict)
    districts: Dict[str, int] = field(default_factory=dict)
    stability: float = 60
    happiness: float = 60


@dataclass(frozen=True)
class ResourceLedger:
    amount: float = 0
    income: float = 0
    upkeep: float = 0


@dataclass(frozen=True)
class EconomyState:
    resources: Dict[ResourceType, ResourceLedger]
    planets: Tuple[Planet, ...] = ()


@dataclass(frozen=True)
class Empire:
    id: str
    name: str
    kind: EmpireKind
    color: str
    opinion: float = 0  # [-100, 100]
    war_status: WarStatus = "peace"
    war_since: Optional[int] = None
    personality: Optional[str] = None
    access_to_player: bool = False


@dataclass(frozen=True)
class ResearchBranchState:
    current_tech_id: Optional[str] = None
    progress: float = 0
    completed: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResearchState:
    branches: Dict[str, ResearchBranchState]
    backlog: Tuple[ResearchTech, ...] = ()
    current_era: int = 1
    unlocked_eras: Tuple[int, ...] = (1,)
    exclusive_picks: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TraditionState:
    available_points: float = 0
    unlocked: Tuple[str, ...] = ()
    backlog: Tuple[TraditionPerk, ...] = ()
    current_era: int = 1
    unlocked_eras: Tuple[int, ...] = (1,)
    exclusive_picks: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GameEvent:
    id: str
    definition_id: str
    kind: EventKind
    title: str
    description: str
    options: Tuple[EventOption, ...]
    system_id: Optional[str] = None
    resolved_option_id: Optional[str] = None


@dataclass(frozen=True)
class EventLogEntry:
    id: str
    tick: int
    title: str
    result: str


@dataclass(frozen=True)
class EventState:
    active: Optional[GameEvent] = None
    queue: Tuple[GameEvent, ...] = ()
    log: Tuple[EventLogEntry, ...] = ()


@dataclass(frozen=True)
class WarEvent:
    id: str
    type: WarEventType
    empire_id: str
    tick: int
    message: str


@dataclass(frozen=True)
class GameNotification:
    id: str
    tick: int
    kind: NotificationKind
    message: str


@dataclass(frozen=True)
class FleetShip:
    id: str
    design_id: str
    hull_points: float
    # template/customization stats on top of the base design
    attack_bonus: float = 0
    defense_bonus: float = 0


@dataclass(frozen=True)
class Fleet:
    id: str
    name: str
    owner_id: Optional[str]
    system_id: str
    target_system_id: Optional[str] = None
    ticks_to_arrival: int = 0
    ships: Tuple[FleetShip, ...] = ()


@dataclass(frozen=True)
class ShipyardTask:
    id: str
    design_id: str
    ticks_remaining: int
    total_ticks: int
    template_id: Optional[str] = None
    customization: Optional[ShipCustomization] = None


@dataclass(frozen=True)
class DistrictConstructionTask:
    id: str
    planet_id: str
    district_id: str
    ticks_remaining: int
    total_ticks: int


@dataclass(frozen=True)
class FleetLoss:
    fleet_id: str
    ships_lost: int


@dataclass(frozen=True)
class CombatReport:
    id: str
    system_id: str
    tick: int
    player_power: float
    player_defense: float
    damage_taken: float
    hostile_power: float
    result: CombatResult
    losses: Tuple[FleetLoss, ...] = ()


@dataclass(frozen=True)
class SimulationClock:
    tick: int = 0
    elapsed_ms: float = 0
    speed_multiplier: float = 1
    is_running: bool = False
    last_update: Optional[float] = None  # epoch ms


@dataclass(frozen=True)
class GameSession:
    """Root aggregate; replaced wholesale on every tick and command."""

    id: str
    label: str
    created_at: float
    galaxy: GalaxyState
    empires: Tuple[Empire, ...]
    research: ResearchState
    traditions: TraditionState
    events: EventState
    clock: SimulationClock
    economy: EconomyState
    war_events: Tuple[WarEvent, ...] = ()
    science_ships: Tuple[ScienceShip, ...] = ()
    colonization_tasks: Tuple[ColonizationTask, ...] = ()
    fleets: Tuple[Fleet, ...] = ()
    shipyard_queue: Tuple[ShipyardTask, ...] = ()
    district_construction_queue: Tuple[DistrictConstructionTask, ...] = ()
    combat_reports: Tuple[CombatReport, ...] = ()
    notifications: Tuple[GameNotification, ...] = ()
