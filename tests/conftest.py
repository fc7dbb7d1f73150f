"""Shared fixtures: a small deterministic session and hand-built galaxies."""

import pytest

from imperium.helper.rng import create_id_factory
from imperium.models import GAME_CONFIG
from imperium.models.session_state import (
    GalaxyState,
    HabitableWorldTemplate,
    StarSystem,
    Vector2,
)
from imperium.session import create_session


def make_session(seed: str = "alpha", system_count: int = 12):
    """Same arguments always give an identical session, ids included."""
    return create_session(
        seed,
        GAME_CONFIG,
        label="test",
        ids=create_id_factory(f"test:{seed}"),
        now=0,
        system_count=system_count,
    )


def make_world(name: str = "Kepler Prime") -> HabitableWorldTemplate:
    return HabitableWorldTemplate(
        name=name,
        kind="terrestrial",
        size=14,
        habitability=0.9,
        base_production={"food": 4, "energy": 2},
        upkeep={"food": 2},
    )


def make_line_galaxy(count: int = 3, hostile: float = 0) -> GalaxyState:
    """Systems SYS-A, SYS-B, ... in a row, 60 units apart, joined by lanes."""
    systems = tuple(
        StarSystem(
            id=f"SYS-{chr(65 + index)}",
            name=f"System {chr(65 + index)}",
            star_class="G",
            position=Vector2(x=index * 60.0, y=0.0),
            visibility="surveyed" if index == 0 else "unknown",
            hostile_power=hostile if index > 0 else 0,
        )
        for index in range(count)
    )
    lanes = tuple((index, index + 1) for index in range(count - 1))
    return GalaxyState(seed="line", systems=systems, lanes=lanes)


@pytest.fixture
def ids():
    return create_id_factory("test")


@pytest.fixture
def session():
    return make_session()


@pytest.fixture
def config():
    return GAME_CONFIG
