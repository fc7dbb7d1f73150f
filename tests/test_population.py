"""Tests for job assignment and population automation."""

from dataclasses import replace

import pytest

from imperium.economy import create_initial_economy
from imperium.models import GAME_CONFIG
from imperium.population import (
    auto_balance_population,
    demote_population,
    promote_population,
    shift_population,
)
from imperium.models.session_state import Population

ECONOMY = GAME_CONFIG.economy


def _economy():
    return create_initial_economy("SYS-A", ECONOMY)


def _with_trend(economy, kind, income, upkeep):
    resources = dict(economy.resources)
    resources[kind] = replace(resources[kind], income=income, upkeep=upkeep)
    return replace(economy, resources=resources)


@pytest.mark.unit
class TestManualAssignment:
    def test_promote(self):
        economy = _economy()
        home = economy.planets[0]
        reason, updated = promote_population(economy, home.id, "researchers")
        assert reason is None
        population = updated.planets[0].population
        assert population.researchers == 1
        assert population.workers == home.population.workers - 1
        assert population.total == home.population.total

    def test_demote_without_population(self):
        economy = _economy()
        reason, updated = demote_population(economy, economy.planets[0].id, "specialists")
        assert reason == "NO_POPULATION"
        assert updated is economy

    def test_invalid_job(self):
        economy = _economy()
        assert promote_population(economy, economy.planets[0].id, "workers")[0] == "INVALID_JOB"
        assert promote_population(economy, economy.planets[0].id, "pilots")[0] == "INVALID_JOB"

    def test_unknown_planet(self):
        assert promote_population(_economy(), "nope", "specialists")[0] == "PLANET_NOT_FOUND"

    def test_no_workers(self):
        economy = _economy()
        home = replace(economy.planets[0], population=Population(total=2, workers=0, specialists=2))
        economy = replace(economy, planets=(home,))
        assert promote_population(economy, home.id, "researchers")[0] == "NO_WORKERS"

    def test_shift_keeps_total(self):
        population = shift_population(Population(total=3, workers=3), "workers", "specialists")
        assert population == Population(total=3, workers=2, specialists=1)


@pytest.mark.unit
class TestAutoBalance:
    def test_energy_deficit_promotes_specialists(self):
        economy = _with_trend(_economy(), "energy", income=0, upkeep=10)
        balanced = auto_balance_population(economy, ECONOMY)
        population = balanced.planets[0].population
        assert population.specialists > 0
        assert population.workers + population.specialists + population.researchers == population.total

    def test_balanced_economy_untouched(self):
        economy = _economy()
        assert auto_balance_population(economy, ECONOMY) is economy

    def test_surplus_demotes_specialists(self):
        economy = _with_trend(_economy(), "energy", income=100, upkeep=0)
        home = replace(
            economy.planets[0], population=Population(total=6, workers=2, specialists=4)
        )
        economy = replace(economy, planets=(home,))
        balanced = auto_balance_population(economy, ECONOMY)
        assert balanced.planets[0].population.specialists < 4

    def test_disabled_automation(self):
        automation = ECONOMY.population_automation.model_copy(update={"enabled": False})
        config = ECONOMY.model_copy(update={"population_automation": automation})
        economy = _with_trend(_economy(), "energy", income=0, upkeep=10)
        assert auto_balance_population(economy, config) is economy
