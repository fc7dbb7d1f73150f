"""Tests for colonization missions."""

from dataclasses import replace

import pytest

from imperium.colonization import (
    ColonizationError,
    advance_colonization,
    create_colonization_task,
)
from imperium.economy import create_initial_economy
from imperium.helper.rng import create_id_factory
from imperium.models import GAME_CONFIG
from imperium.models.game_config import ColonizationConfig

from tests.conftest import make_line_galaxy, make_world


def _config(prep: int = 2, travel: int = 3, duration: int = 6) -> ColonizationConfig:
    return ColonizationConfig(
        cost={}, preparation_ticks=prep, travel_ticks=travel, duration_ticks=duration
    )


def _target():
    system = make_line_galaxy().systems[1]
    return replace(system, visibility="surveyed", habitable_world=make_world())


def _economy():
    return create_initial_economy("SYS-A", GAME_CONFIG.economy)


@pytest.mark.unit
class TestCreateTask:
    def test_mission_total(self):
        task = create_colonization_task(_target(), _config(), "SHIP-1", create_id_factory("c"))
        assert task.mission_total_ticks == 11
        assert task.status == "preparing"
        assert task.ticks_remaining == 2
        assert task.mission_elapsed_ticks == 0
        assert task.ship_id == "SHIP-1"

    def test_zero_length_stages_are_skipped(self):
        task = create_colonization_task(_target(), _config(prep=0), None, create_id_factory("c"))
        assert task.status == "traveling"
        assert task.ticks_remaining == 3

    def test_all_zero_still_takes_a_tick(self):
        task = create_colonization_task(
            _target(), _config(prep=0, travel=0, duration=0), None, create_id_factory("c")
        )
        assert task.status == "colonizing"
        assert task.ticks_remaining == 1
        assert task.mission_total_ticks == 1

    def test_system_without_world_raises(self):
        system = make_line_galaxy().systems[1]
        with pytest.raises(ColonizationError):
            create_colonization_task(system, _config(), None, create_id_factory("c"))


@pytest.mark.unit
class TestAdvanceColonization:
    def test_eleven_ticks_found_one_colony(self):
        ids = create_id_factory("c")
        config = _config()
        tasks = (create_colonization_task(_target(), config, None, ids),)
        economy = _economy()
        planets_before = len(economy.planets)

        for tick in range(10):
            result = advance_colonization(tasks, economy, config, ids)
            tasks, economy = result.tasks, result.economy
            assert len(tasks) == 1
            assert tasks[0].mission_elapsed_ticks == tick + 1
        result = advance_colonization(tasks, economy, config, ids)

        assert result.tasks == ()
        assert len(result.economy.planets) == planets_before + 1
        colony = result.economy.planets[-1]
        assert colony.name == "Kepler Prime"
        assert colony.system_id == "SYS-B"
        assert colony.population.total == 1
        assert result.completed[0].planet_name == "Kepler Prime"

    def test_stage_progression(self):
        ids = create_id_factory("c")
        config = _config()
        tasks = (create_colonization_task(_target(), config, None, ids),)
        economy = _economy()
        statuses = []
        for _ in range(10):
            result = advance_colonization(tasks, economy, config, ids)
            tasks = result.tasks
            statuses.append(tasks[0].status)
        assert statuses[:2] == ["preparing", "traveling"]
        assert statuses[4] == "colonizing"
        assert statuses[-1] == "colonizing"

    def test_task_count_is_conserved(self):
        ids = create_id_factory("c")
        config = _config(prep=1, travel=1, duration=1)
        world_b = _target()
        world_c = replace(make_line_galaxy().systems[2], habitable_world=make_world("Vega Prime"))
        tasks = (
            create_colonization_task(world_b, config, None, ids),
            create_colonization_task(world_c, _config(prep=3, travel=1, duration=1), None, ids),
        )
        economy = _economy()
        for _ in range(6):
            before = len(tasks) + len(economy.planets)
            result = advance_colonization(tasks, economy, config, ids)
            tasks, economy = result.tasks, result.economy
            assert len(tasks) + len(economy.planets) == before

    def test_no_tasks_returns_same_economy(self):
        economy = _economy()
        result = advance_colonization((), economy, _config(), create_id_factory("c"))
        assert result.economy is economy
        assert result.completed == ()
