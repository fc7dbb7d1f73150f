"""Tests for galaxy generation and lane routing."""

import math

import pytest

from imperium.helper.galaxy_helpers import (
    build_lanes,
    create_test_galaxy,
    find_route,
    find_system,
    route_length,
)
from imperium.models import GAME_CONFIG

from tests.conftest import make_line_galaxy


@pytest.mark.unit
class TestCreateTestGalaxy:
    def test_same_seed_same_galaxy(self):
        assert create_test_galaxy("X", 12) == create_test_galaxy("X", 12)

    def test_different_seed_different_layout(self):
        a = create_test_galaxy("X", 12)
        b = create_test_galaxy("Y", 12)
        assert [s.position for s in a.systems] != [s.position for s in b.systems]

    def test_system_count_and_visibility(self):
        galaxy = create_test_galaxy("X", 12)
        assert len(galaxy.systems) == 12
        assert galaxy.systems[0].visibility == "surveyed"
        assert all(s.visibility == "unknown" for s in galaxy.systems[1:])

    def test_home_is_never_hostile(self):
        for seed in ("X", "Y", "alpha", "debug-seed"):
            galaxy = create_test_galaxy(seed, 12)
            assert galaxy.systems[0].hostile_power == 0
            assert all(s.hostile_power >= 0 for s in galaxy.systems)

    def test_systems_inside_disc(self):
        galaxy = create_test_galaxy("X", 24, galaxy_radius=150)
        for system in galaxy.systems:
            assert math.hypot(system.position.x, system.position.y) <= 150 + 1e-9

    def test_lanes_connect_every_system(self):
        galaxy = create_test_galaxy("X", 18)
        home = galaxy.systems[0].id
        for system in galaxy.systems[1:]:
            assert find_route(galaxy, home, system.id) is not None

    def test_lanes_are_sorted_index_pairs(self):
        galaxy = create_test_galaxy("X", 18)
        assert list(galaxy.lanes) == sorted(galaxy.lanes)
        for a, b in galaxy.lanes:
            assert 0 <= a < b < 18


@pytest.mark.unit
class TestBuildLanes:
    def test_single_system_has_no_lanes(self):
        assert build_lanes([(0.0, 0.0)], 100, GAME_CONFIG.galaxy_layout) == ()

    def test_two_systems_are_joined(self):
        assert build_lanes([(0.0, 0.0), (10.0, 0.0)], 100, GAME_CONFIG.galaxy_layout) == ((0, 1),)

    def test_collinear_points_still_connect(self):
        lanes = build_lanes(
            [(0.0, 0.0), (10.0, 0.0), (20.0, 0.0)], 100, GAME_CONFIG.galaxy_layout
        )
        assert lanes == ((0, 1), (1, 2))


@pytest.mark.unit
class TestRouting:
    def test_route_to_self(self):
        galaxy = make_line_galaxy()
        assert find_route(galaxy, "SYS-A", "SYS-A") == [0]

    def test_route_follows_lanes(self):
        galaxy = make_line_galaxy(4)
        assert find_route(galaxy, "SYS-A", "SYS-D") == [0, 1, 2, 3]

    def test_unknown_system(self):
        galaxy = make_line_galaxy()
        assert find_route(galaxy, "SYS-A", "nope") is None
        assert find_system(galaxy, "nope") is None
        assert find_system(galaxy, None) is None

    def test_route_length(self):
        galaxy = make_line_galaxy(3)
        assert route_length(galaxy, "SYS-A", "SYS-C") == pytest.approx(120.0)
        assert route_length(galaxy, "SYS-B", "SYS-B") == 0.0
