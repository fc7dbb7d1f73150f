import json
from pathlib import Path
from pydantic import BaseModel, ConfigDict, NonNegativeInt, PositiveInt, PositiveFloat
from pydantic import Field  # type: ignore
from typing import Annotated, Dict, List, Literal, Optional, Union

# # NOTE: Each service imports this module in its own process. The loaded config
# # is read-only; sessions never write back into it.

ResourceType = Literal["energy", "minerals", "food", "research", "influence"]
ResourceCost = Dict[ResourceType, float]
PlanetKind = Literal["terrestrial", "desert", "tundra"]
PopulationJobId = Literal["workers", "specialists", "researchers"]
ShipRole = Literal["science", "construction", "colony", "military"]
EventKind = Literal["narrative", "anomaly", "crisis"]


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------- Tagged effects ----------


class IncomeMultiplierEffect(FrozenModel):
    kind: Literal["income_multiplier"] = "income_multiplier"
    resource: ResourceType
    value: float


class InfluenceFlatEffect(FrozenModel):
    kind: Literal["influence_flat"] = "influence_flat"
    value: float


ProgressionEffect = Annotated[
    Union[IncomeMultiplierEffect, InfluenceFlatEffect],
    Field(discriminator="kind"),
]


class ResourceEffect(FrozenModel):
    kind: Literal["resource"] = "resource"
    target: ResourceType
    amount: float


class InfluenceEffect(FrozenModel):
    kind: Literal["influence"] = "influence"
    amount: float


class HostileSpawnEffect(FrozenModel):
    kind: Literal["hostile_spawn"] = "hostile_spawn"
    amount: float
    system_id: Optional[str] = None


class StabilityEffect(FrozenModel):
    kind: Literal["stability"] = "stability"
    amount: float


class TriggerEventEffect(FrozenModel):
    kind: Literal["trigger_event"] = "trigger_event"
    next_event_id: str


class InsightEffect(FrozenModel):
    kind: Literal["insight"] = "insight"
    tech_id: Optional[str] = None
    perk_id: Optional[str] = None


EventEffect = Annotated[
    Union[
        ResourceEffect,
        InfluenceEffect,
        HostileSpawnEffect,
        StabilityEffect,
        TriggerEventEffect,
        InsightEffect,
    ],
    Field(discriminator="kind"),
]


# ---------- Galaxy ----------


class GalaxyGenerationSettings(FrozenModel):
    seed: Annotated[str, Field(min_length=1)]
    system_count: PositiveInt
    galaxy_radius: PositiveFloat


class GalaxyLayout(FrozenModel):
    minimum_system_distance: Annotated[float, Field(ge=0)]
    maximum_placement_attempts: PositiveInt
    lanes_per_system: Annotated[PositiveInt, Field(ge=2)]
    maximum_lane_length: PositiveFloat  # fraction of the galaxy radius


class StarClassWeight(FrozenModel):
    id: str
    weight: PositiveFloat


class ExplorationConfig(FrozenModel):
    travel_ticks: NonNegativeInt
    survey_ticks: NonNegativeInt


# ---------- Economy ----------


class HomeworldConfig(FrozenModel):
    name: str
    kind: PlanetKind
    size: PositiveInt
    habitability: Annotated[float, Field(ge=0, le=1)] = 1.0
    population: PositiveInt
    base_production: ResourceCost
    upkeep: ResourceCost
    districts: Dict[str, int] = Field(default_factory=dict)


class DistrictDefinition(FrozenModel):
    id: str
    label: str
    cost: ResourceCost
    production: ResourceCost
    upkeep: ResourceCost = Field(default_factory=dict)
    build_time: PositiveInt
    requires_colonists: Optional[PositiveInt] = None


class PopulationJobDefinition(FrozenModel):
    id: PopulationJobId
    label: str
    production: ResourceCost
    upkeep: ResourceCost = Field(default_factory=dict)


class PopulationAutomationConfig(FrozenModel):
    enabled: bool
    priorities: List[ResourceType]
    deficit_threshold: Annotated[float, Field(ge=0)]
    surplus_threshold: Annotated[float, Field(ge=0)]


class MoraleConfig(FrozenModel):
    base_stability: float = 65
    min: float = 20
    max: float = 95
    overcrowding_threshold: PositiveFloat = 2
    overcrowding_penalty: float = 2
    deficit_threshold: PositiveFloat = 25
    deficit_penalty: float = 5
    happiness_bonus_per_specialist: float = 0.5
    happiness_penalty_per_worker: float = 0.2


class EconomyConfig(FrozenModel):
    starting_resources: ResourceCost
    homeworld: HomeworldConfig
    districts: List[DistrictDefinition]
    population_jobs: List[PopulationJobDefinition]
    population_automation: Optional[PopulationAutomationConfig] = None
    morale: MoraleConfig = MoraleConfig()


# ---------- Progression ----------


class ResearchBranchConfig(FrozenModel):
    id: str
    label: str
    description: str = ""


class ResearchEra(FrozenModel):
    id: PositiveInt
    label: str
    gateway_techs: List[str] = Field(default_factory=list)


class ResearchTech(FrozenModel):
    id: str
    branch: str
    name: str
    description: str = ""
    cost: PositiveFloat
    era: PositiveInt = 1
    kind: Optional[Literal["foundation", "feature", "rare"]] = None
    prerequisites: List[str] = Field(default_factory=list)
    mutually_exclusive_group: Optional[str] = None
    effects: List[ProgressionEffect] = Field(default_factory=list)


class ResearchConfig(FrozenModel):
    eras: List[ResearchEra]
    branches: List[ResearchBranchConfig]
    techs: List[ResearchTech]
    points_per_research_income: PositiveFloat


class TraditionTreeConfig(FrozenModel):
    id: str
    label: str
    description: str = ""


class TraditionPerk(FrozenModel):
    id: str
    tree: str
    name: str
    description: str = ""
    cost: PositiveFloat
    era: PositiveInt = 1
    prerequisites: List[str] = Field(default_factory=list)
    mutually_exclusive_group: Optional[str] = None
    effects: List[ProgressionEffect] = Field(default_factory=list)


class TraditionConfig(FrozenModel):
    trees: List[TraditionTreeConfig]
    perks: List[TraditionPerk]
    points_per_influence_income: PositiveFloat


# ---------- Events ----------


class EventOption(FrozenModel):
    id: str
    label: str
    description: str = ""
    effects: List[EventEffect] = Field(default_factory=list)


class EventDefinition(FrozenModel):
    id: str
    kind: EventKind
    title: str
    description: str = ""
    options: List[EventOption]


class EventsConfig(FrozenModel):
    narrative: List[EventDefinition]
    anomalies: List[EventDefinition]
    crisis: List[EventDefinition]
    narrative_interval_ticks: PositiveInt
    anomaly_interval_ticks: PositiveInt
    crisis_interval_ticks: PositiveInt


# ---------- Colonization / diplomacy ----------


class ColonizationConfig(FrozenModel):
    cost: ResourceCost
    preparation_ticks: NonNegativeInt
    travel_ticks: NonNegativeInt
    duration_ticks: NonNegativeInt


class OpinionRange(FrozenModel):
    min: Annotated[float, Field(ge=-100, le=100)]
    max: Annotated[float, Field(ge=-100, le=100)]


class WarZoneConfig(FrozenModel):
    count: NonNegativeInt
    power_min: Annotated[int, Field(ge=0)]
    power_max: Annotated[int, Field(ge=0)]


class DiplomacyConfig(FrozenModel):
    ai_starting_opinion: OpinionRange
    war_threshold: float
    peace_threshold: float
    auto_check_interval: int
    opinion_drift_per_check: float
    war_zones: WarZoneConfig
    war_event_log_limit: PositiveInt


# ---------- Military ----------


class ShipDesign(FrozenModel):
    id: str
    name: str
    role: ShipRole
    build_cost: ResourceCost
    build_time: PositiveInt
    attack: float
    defense: float
    hull_points: float


class ShipTemplate(FrozenModel):
    id: str
    base: str
    name: str
    attack: float = 0
    defense: float = 0
    hull: float = 0
    cost_multiplier: PositiveFloat = 1.0


class ShipCustomization(FrozenModel):
    attack_bonus: float = 0
    defense_bonus: float = 0
    hull_bonus: float = 0
    cost_multiplier: PositiveFloat = 1.0
    name: Optional[str] = None


class ShipyardConfig(FrozenModel):
    queue_size: PositiveInt
    build_cost: ResourceCost
    build_ticks: PositiveInt = 10
    required_tech: str = "orbital-shipyard"


class FleetConfig(FrozenModel):
    base_travel_ticks: NonNegativeInt


class StartingMilitaryShips(FrozenModel):
    design_id: str
    count: NonNegativeInt


class StartingShips(FrozenModel):
    science: NonNegativeInt = 1
    construction: NonNegativeInt = 0
    colony: NonNegativeInt = 0
    military: List[StartingMilitaryShips] = Field(default_factory=list)


class MilitaryConfig(FrozenModel):
    shipyard: ShipyardConfig
    fleet: FleetConfig
    colony_ship_design_id: str
    construction_ship_design_id: str
    starting_ships: StartingShips
    ship_designs: List[ShipDesign]
    templates: List[ShipTemplate] = Field(default_factory=list)


class SessionLimits(FrozenModel):
    max_notifications: PositiveInt = 6
    max_combat_reports: PositiveInt = 8
    max_event_log: PositiveInt = 20
    max_ticks_per_advance: PositiveInt = 5


class GameConfig(FrozenModel):
    ticks_per_second: PositiveFloat
    default_galaxy: GalaxyGenerationSettings
    galaxy_layout: GalaxyLayout
    star_classes: List[StarClassWeight]
    exploration: ExplorationConfig
    economy: EconomyConfig
    research: ResearchConfig
    traditions: TraditionConfig
    events: EventsConfig
    colonization: ColonizationConfig
    diplomacy: DiplomacyConfig
    military: MilitaryConfig
    limits: SessionLimits = SessionLimits()

    @classmethod
    def load_json(cls, path: str | Path) -> "GameConfig":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data)


_BASE_DIR = Path(__file__).resolve().parents[1]
_CONFIG_PATH = _BASE_DIR / "config" / "game_config.json"

GAME_CONFIG = GameConfig.model_validate_json(
    _CONFIG_PATH.read_text(encoding="utf-8")
)
