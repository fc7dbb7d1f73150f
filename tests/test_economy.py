"""Tests for ledgers, production, morale and district construction."""

from dataclasses import replace

import pytest

from imperium.economy import (
    LEDGER_AMOUNT_MAX,
    advance_district_construction,
    advance_economy,
    calculate_planet_morale,
    can_afford_cost,
    compute_planet_production,
    create_district_task,
    create_initial_economy,
    refund_resources,
    spend_resources,
)
from imperium.helper.rng import create_id_factory
from imperium.models import GAME_CONFIG
from imperium.models.session_state import Planet, Population, ResourceLedger
from imperium.progression import ProgressionModifiers

ECONOMY = GAME_CONFIG.economy


def _economy():
    return create_initial_economy("SYS-A", ECONOMY)


def _with_amounts(economy, **amounts):
    resources = dict(economy.resources)
    for kind, amount in amounts.items():
        resources[kind] = replace(resources[kind], amount=amount)
    return replace(economy, resources=resources)


def _colony(population: int = 1) -> Planet:
    return Planet(
        id="COL-1",
        name="Kepler Prime",
        system_id="SYS-B",
        kind="terrestrial",
        size=14,
        habitability=0.9,
        population=Population(total=population, workers=population),
        base_production={"food": 4},
        upkeep={"food": 2},
    )


@pytest.mark.unit
class TestLedger:
    def test_initial_economy(self):
        economy = _economy()
        assert economy.resources["minerals"].amount == 150
        assert len(economy.planets) == 1
        assert economy.planets[0].name == "Nova Prime"
        assert economy.planets[0].districts == {"farming": 1, "mining": 1}

    def test_can_afford(self):
        economy = _economy()
        assert can_afford_cost(economy, {"minerals": 150})
        assert not can_afford_cost(economy, {"minerals": 151})
        assert can_afford_cost(economy, {})

    def test_spend_never_goes_negative(self):
        economy = spend_resources(_economy(), {"food": 500})
        assert economy.resources["food"].amount == 0

    def test_refund(self):
        economy = refund_resources(_economy(), {"energy": 25})
        assert economy.resources["energy"].amount == 125


@pytest.mark.unit
class TestProduction:
    def test_breakdown_net(self):
        planet = _economy().planets[0]
        breakdown = compute_planet_production(planet, ECONOMY)
        for contribution in breakdown.values():
            assert contribution.net == pytest.approx(
                contribution.base + contribution.districts + contribution.population - contribution.upkeep
            )
        assert breakdown["food"].districts == 4

    def test_advance_updates_ledgers(self):
        economy = _economy()
        result = advance_economy(economy, ECONOMY)
        for kind, ledger in result.economy.resources.items():
            expected = max(0, economy.resources[kind].amount + result.net_production[kind])
            assert ledger.amount == pytest.approx(min(LEDGER_AMOUNT_MAX, expected))

    def test_amounts_clamped_to_range(self):
        economy = _with_amounts(_economy(), energy=LEDGER_AMOUNT_MAX, food=0)
        home = economy.planets[0]
        heavy = replace(
            home, upkeep={"food": 500}, base_production={**home.base_production, "energy": 50}
        )
        economy = replace(economy, planets=(heavy,))
        result = advance_economy(economy, ECONOMY)
        assert result.economy.resources["energy"].amount == LEDGER_AMOUNT_MAX
        assert result.economy.resources["food"].amount == 0

    def test_income_multiplier_boosts_yield(self):
        economy = _economy()
        plain = advance_economy(economy, ECONOMY)
        boosted = advance_economy(
            economy, ECONOMY, ProgressionModifiers(income_multipliers={"energy": 0.5})
        )
        assert boosted.economy.resources["energy"].income > plain.economy.resources["energy"].income
        assert boosted.economy.resources["energy"].upkeep == plain.economy.resources["energy"].upkeep

    def test_influence_flat(self):
        economy = _economy()
        plain = advance_economy(economy, ECONOMY)
        flat = advance_economy(economy, ECONOMY, ProgressionModifiers(influence_flat=1.0))
        assert flat.economy.resources["influence"].income == pytest.approx(
            plain.economy.resources["influence"].income + 1.0
        )

    def test_input_not_mutated(self):
        economy = _economy()
        before = economy.resources["food"]
        advance_economy(economy, ECONOMY)
        assert economy.resources["food"] is before


@pytest.mark.unit
class TestMorale:
    def test_within_bounds(self):
        economy = _with_amounts(_economy(), energy=0, minerals=0, food=0, research=0, influence=0)
        crowded = replace(economy.planets[0], population=Population(total=60, workers=60))
        morale = calculate_planet_morale(crowded, economy, ECONOMY)
        assert morale.stability == ECONOMY.morale.min
        assert ECONOMY.morale.min <= morale.happiness <= ECONOMY.morale.max

    def test_comfortable_homeworld(self):
        economy = _with_amounts(_economy(), research=100, influence=100)
        morale = calculate_planet_morale(economy.planets[0], economy, ECONOMY)
        assert morale.stability == ECONOMY.morale.base_stability
        assert morale.modifier == pytest.approx(morale.stability / 100)


@pytest.mark.unit
class TestDistricts:
    def test_completes_after_build_time(self):
        economy = _economy()
        home = economy.planets[0]
        tasks = (create_district_task(home.id, "generator", 3, create_id_factory("d")),)
        for _ in range(2):
            result = advance_district_construction(tasks, economy, ECONOMY)
            tasks, economy = result.tasks, result.economy
            assert result.completed == ()
        result = advance_district_construction(tasks, economy, ECONOMY)
        assert result.tasks == ()
        assert result.economy.planets[0].districts["generator"] == 1
        assert len(result.completed) == 1

    def test_colonist_requirement_suspends(self):
        economy = replace(_economy(), planets=(_colony(population=1),))
        tasks = (create_district_task("COL-1", "research-lab", 1, create_id_factory("d")),)
        result = advance_district_construction(tasks, economy, ECONOMY)
        assert len(result.suspended) == 1
        assert result.economy.planets[0].districts == {}

    def test_build_time_at_least_one(self):
        task = create_district_task("P", "generator", 0, create_id_factory("d"))
        assert task.ticks_remaining == 1

    def test_ledger_defaults(self):
        assert ResourceLedger() == ResourceLedger(amount=0, income=0, upkeep=0)
