import math
from collections import deque
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

# Delaunay method + Edge pruning for lane generation
from scipy.spatial import Delaunay  # type: ignore
from scipy.spatial import QhullError  # type: ignore

from imperium.models import GAME_CONFIG
from imperium.models.game_config import GalaxyLayout, PlanetKind, StarClassWeight
from imperium.models.session_state import (
    GalaxyState,
    HabitableWorldTemplate,
    OrbitingPlanet,
    StarSystem,
    Vector2,
)

from .rng import RandomStream, create_random

PLANET_KINDS: Tuple[PlanetKind, ...] = ("terrestrial", "desert", "tundra")

# per-kind yields and upkeep of a system's habitable world
BASE_PRODUCTION_BY_KIND: Dict[str, Dict[str, float]] = {
    "terrestrial": {"food": 4, "energy": 2, "minerals": 2},
    "desert": {"minerals": 4, "energy": 3},
    "tundra": {"minerals": 3, "research": 2},
}
UPKEEP_BY_KIND: Dict[str, Dict[str, float]] = {
    "terrestrial": {"food": 2},
    "desert": {"food": 3},
    "tundra": {"food": 4},
}
HABITABILITY_BY_KIND: Dict[str, float] = {
    "terrestrial": 0.9,
    "desert": 0.6,
    "tundra": 0.65,
}

HABITABLE_CHANCE = 0.45
HOSTILE_CHANCE = 0.35
# lane length cap grows until the graph connects, bounded by the disc diameter
LANE_GROWTH = 1.25
MAX_LANE_FACTOR = 2.0


# ---------- Galaxy generation ----------


def pick_star_class(random: RandomStream, star_classes: Sequence[StarClassWeight]) -> str:
    total = sum(entry.weight for entry in star_classes)
    roll = random() * total
    for entry in star_classes:
        roll -= entry.weight
        if roll < 0:
            return entry.id
    return star_classes[-1].id


def create_habitable_world(
    random: RandomStream, system_name: str
) -> Optional[HabitableWorldTemplate]:
    if random() > HABITABLE_CHANCE:
        return None
    kind = PLANET_KINDS[min(len(PLANET_KINDS) - 1, math.floor(random() * len(PLANET_KINDS)))]
    size = 12 + round(random() * 8)
    return HabitableWorldTemplate(
        name=f"{system_name} Prime",
        kind=kind,
        size=size,
        habitability=HABITABILITY_BY_KIND[kind],
        base_production=dict(BASE_PRODUCTION_BY_KIND[kind]),
        upkeep=dict(UPKEEP_BY_KIND[kind]),
    )


def create_orbiting_planets(
    random: RandomStream, system_name: str
) -> Tuple[OrbitingPlanet, ...]:
    count = 2 + math.floor(random() * 3)
    planets: List[OrbitingPlanet] = []
    for index in range(count):
        planets.append(
            OrbitingPlanet(
                id=f"{system_name}-ORB-{index}",
                name=f"{system_name}-{chr(65 + index)}",
                orbit_radius=8 + index * 5 + random() * 3,
                size=0.6 + random() * 0.8,
                orbit_speed=0.7 + random() * 0.9,
            )
        )
    return tuple(planets)


def _place_system(
    random: RandomStream,
    placed: List[Tuple[float, float]],
    galaxy_radius: float,
    layout: GalaxyLayout,
) -> Tuple[float, float]:
    """
    Polar draw inside the galaxy disc (sqrt keeps density uniform). Candidates
    closer than the minimum distance to an existing system are redrawn.
    """

    def draw() -> Tuple[float, float]:
        angle = random() * math.pi * 2
        radius = math.sqrt(random()) * galaxy_radius
        return math.cos(angle) * radius, math.sin(angle) * radius

    x, y = draw()
    if not placed or layout.minimum_system_distance <= 0:
        return x, y
    existing = np.array(placed)
    for _ in range(layout.maximum_placement_attempts):
        dists = np.hypot(existing[:, 0] - x, existing[:, 1] - y)
        if float(dists.min()) >= layout.minimum_system_distance:
            break
        x, y = draw()
    return x, y


def create_star_system(
    random: RandomStream,
    index: int,
    placed: List[Tuple[float, float]],
    galaxy_radius: float,
    star_classes: Sequence[StarClassWeight],
    layout: GalaxyLayout,
) -> StarSystem:
    x, y = _place_system(random, placed, galaxy_radius, layout)
    placed.append((x, y))
    star_class = pick_star_class(random, star_classes)
    name = f"SYS-{index + 1:03d}"
    system_id = f"{name}-{round(random() * 10000)}"
    habitable_world = create_habitable_world(random, name)
    orbiting_planets = create_orbiting_planets(random, name)
    # home system is never hostile; no draw is consumed for it
    if index == 0 or random() > HOSTILE_CHANCE:
        hostile_power = 0
    else:
        hostile_power = round(6 + random() * 10)
    return StarSystem(
        id=system_id,
        name=name,
        star_class=star_class,
        position=Vector2(x=x, y=y),
        visibility="surveyed" if index == 0 else "unknown",
        habitable_world=habitable_world,
        orbiting_planets=orbiting_planets,
        hostile_power=hostile_power,
    )


def _candidate_edges(points: np.ndarray) -> List[Tuple[float, int, int]]:
    count = len(points)
    edge_set: set[Tuple[int, int]] = set()
    triangulated = False
    if count >= 3:
        try:
            tri = Delaunay(points)  # type: ignore
            for simplex in tri.simplices:  # type: ignore
                a, b, c = (int(v) for v in simplex)
                for u, v in ((a, b), (b, c), (c, a)):
                    edge_set.add((u, v) if u < v else (v, u))
            triangulated = True
        except QhullError:
            # collinear or duplicated points
            triangulated = False
    if not triangulated:
        edge_set = {(i, j) for i in range(count) for j in range(i + 1, count)}
    edges = [
        (float(np.hypot(*(points[a] - points[b]))), a, b) for a, b in edge_set
    ]
    edges.sort(key=lambda t: (t[0], t[1], t[2]))
    return edges


def _spanning_lanes(
    count: int,
    edges: List[Tuple[float, int, int]],
    max_degree: Optional[int],
    max_length: Optional[float],
) -> Optional[List[Tuple[int, int]]]:
    """Kruskal backbone under an optional degree cap and length cap."""
    parent = list(range(count))
    degree = [0] * count
    lanes: List[Tuple[int, int]] = []

    def find(x: int) -> int:
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for length, a, b in edges:
        if max_length is not None and length > max_length:
            break
        if max_degree is not None and (degree[a] >= max_degree or degree[b] >= max_degree):
            continue
        ra, rb = find(a), find(b)
        if ra == rb:
            continue
        parent[ra] = rb
        degree[a] += 1
        degree[b] += 1
        lanes.append((a, b))

    if len({find(i) for i in range(count)}) > 1:
        return None
    return lanes


def build_lanes(
    positions: Sequence[Tuple[float, float]],
    galaxy_radius: float,
    layout: GalaxyLayout,
) -> Tuple[Tuple[int, int], ...]:
    """
    Connected hyperlane graph over system indices. Delaunay edges are pruned
    with Kruskal under a per-system degree cap; the length cap grows until the
    backbone spans every system.
    """
    count = len(positions)
    if count < 2:
        return ()
    edges = _candidate_edges(np.array(positions, dtype=float))

    max_length = layout.maximum_lane_length * galaxy_radius
    max_allowed = MAX_LANE_FACTOR * galaxy_radius
    while max_length <= max_allowed + 1e-9:
        lanes = _spanning_lanes(count, edges, layout.lanes_per_system, max_length)
        if lanes is not None:
            return tuple(sorted(lanes))
        max_length *= LANE_GROWTH

    lanes = _spanning_lanes(count, edges, None, None)
    return tuple(sorted(lanes or []))


def create_test_galaxy(
    seed: str,
    system_count: int = 12,
    galaxy_radius: float = 200,
    star_classes: Optional[Sequence[StarClassWeight]] = None,
    layout: Optional[GalaxyLayout] = None,
) -> GalaxyState:
    """
    Generate a galaxy from a seed. The same arguments always give the same
    systems, positions and lanes.
    """
    random = create_random(seed)
    classes = list(star_classes or GAME_CONFIG.star_classes)
    layout = layout or GAME_CONFIG.galaxy_layout
    placed: List[Tuple[float, float]] = []
    systems = tuple(
        create_star_system(random, index, placed, galaxy_radius, classes, layout)
        for index in range(system_count)
    )
    lanes = build_lanes(placed, galaxy_radius, layout)
    return GalaxyState(seed=seed, systems=systems, lanes=lanes)


# ---------- Routing ----------


def system_index(galaxy: GalaxyState, system_id: str) -> Optional[int]:
    for index, system in enumerate(galaxy.systems):
        if system.id == system_id:
            return index
    return None


def find_system(galaxy: GalaxyState, system_id: Optional[str]) -> Optional[StarSystem]:
    if system_id is None:
        return None
    index = system_index(galaxy, system_id)
    return galaxy.systems[index] if index is not None else None


def find_route(galaxy: GalaxyState, start_id: str, end_id: str) -> Optional[List[int]]:
    """BFS over lanes; returns system indices from start to end inclusive."""
    start = system_index(galaxy, start_id)
    end = system_index(galaxy, end_id)
    if start is None or end is None:
        return None
    if start == end:
        return [start]
    neighbors: Dict[int, List[int]] = {}
    for a, b in galaxy.lanes:
        neighbors.setdefault(a, []).append(b)
        neighbors.setdefault(b, []).append(a)
    queue = deque([start])
    prev: Dict[int, int] = {start: start}
    while queue:
        current = queue.popleft()
        for neigh in neighbors.get(current, []):
            if neigh in prev:
                continue
            prev[neigh] = current
            if neigh == end:
                path = [end]
                while path[-1] != start:
                    path.append(prev[path[-1]])
                return list(reversed(path))
            queue.append(neigh)
    return None


def distance(a: StarSystem, b: StarSystem) -> float:
    return math.hypot(a.position.x - b.position.x, a.position.y - b.position.y)


def route_length(galaxy: GalaxyState, start_id: str, end_id: str) -> float:
    """
    Length of the lane route between two systems, or the straight-line
    distance when the lanes do not connect them.
    """
    start = find_system(galaxy, start_id)
    end = find_system(galaxy, end_id)
    if start is None or end is None or start.id == end.id:
        return 0.0
    path = find_route(galaxy, start_id, end_id)
    if not path:
        return distance(start, end)
    return sum(
        distance(galaxy.systems[a], galaxy.systems[b]) for a, b in zip(path, path[1:])
    )
