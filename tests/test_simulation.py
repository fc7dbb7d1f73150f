"""Tests for the tick orchestrator."""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from imperium.colonization import create_colonization_task
from imperium.fleets import create_fleet_ship, get_ship_design
from imperium.helper.rng import create_id_factory
from imperium.models import GAME_CONFIG
from imperium.models.session_state import PLAYER_ID
from imperium.simulation import advance_clock_by, advance_simulation, advance_tick
from imperium.state_utils import session_to_dict

from tests.conftest import make_session, make_world


@pytest.mark.unit
class TestAdvanceSimulation:
    def test_zero_ticks_is_identity(self, session):
        assert advance_simulation(session, 0) is session

    def test_input_is_not_mutated(self, session):
        before = session_to_dict(session)
        advanced = advance_simulation(session, 3)
        assert advanced.clock.tick == 3
        assert session.clock.tick == 0
        assert session_to_dict(session) == before

    def test_deterministic(self):
        a = advance_simulation(make_session(), 40)
        b = advance_simulation(make_session(), 40)
        assert session_to_dict(a) == session_to_dict(b)

    def test_first_tick_sends_science_ship(self, session):
        advanced = advance_tick(session, GAME_CONFIG)
        assert advanced.science_ships[0].status == "traveling"
        assert advanced.galaxy.systems[1].visibility == "revealed"

    def test_logs_are_trimmed(self, session):
        advanced = advance_simulation(session, 120)
        limits = GAME_CONFIG.limits
        assert len(advanced.notifications) <= limits.max_notifications
        assert len(advanced.combat_reports) <= limits.max_combat_reports
        assert len(advanced.events.log) <= limits.max_event_log
        assert len(advanced.war_events) <= GAME_CONFIG.diplomacy.war_event_log_limit

    def test_diplomacy_checks_on_interval(self, session):
        interval = GAME_CONFIG.diplomacy.auto_check_interval
        drift = GAME_CONFIG.diplomacy.opinion_drift_per_check
        before = {e.id: e.opinion for e in session.empires}
        almost = advance_simulation(session, interval - 1)
        assert {e.id: e.opinion for e in almost.empires} == before
        checked = advance_simulation(almost, 1)
        for empire in checked.empires:
            if empire.kind == "ai":
                assert empire.opinion == pytest.approx(before[empire.id] + drift)

    def test_colony_founded_and_owned(self, session):
        target = replace(session.galaxy.systems[2], visibility="surveyed", habitable_world=make_world())
        systems = session.galaxy.systems[:2] + (target,) + session.galaxy.systems[3:]
        task = create_colonization_task(target, GAME_CONFIG.colonization, None, create_id_factory("c"))
        session = replace(
            session,
            galaxy=replace(session.galaxy, systems=systems),
            colonization_tasks=(task,),
        )
        advanced = advance_simulation(session, task.mission_total_ticks)
        assert advanced.colonization_tasks == ()
        assert any(p.name == "Kepler Prime" for p in advanced.economy.planets)
        assert advanced.galaxy.systems[2].owner_id == PLAYER_ID
        assert any(n.kind == "colonizationCompleted" for n in advanced.notifications)

    def test_war_declared_by_drift(self, session):
        config = GAME_CONFIG.model_copy(
            update={
                "diplomacy": GAME_CONFIG.diplomacy.model_copy(
                    update={"auto_check_interval": 1, "opinion_drift_per_check": -100}
                )
            }
        )
        advanced = advance_tick(session, config)
        assert all(e.war_status == "war" for e in advanced.empires if e.kind == "ai")
        assert [w.type for w in advanced.war_events] == ["warStart", "warStart"]
        assert any(s.hostile_power > 0 for s in advanced.galaxy.systems[1:])

    def test_fleet_power_feeds_peace_check(self, session):
        config = GAME_CONFIG.model_copy(
            update={
                "diplomacy": GAME_CONFIG.diplomacy.model_copy(
                    update={"auto_check_interval": 1, "opinion_drift_per_check": 0, "peace_threshold": 50}
                )
            }
        )
        empires = tuple(
            replace(e, opinion=-18, war_status="war", war_since=0) if e.id == "ai-1" else e
            for e in session.empires
        )
        at_war = replace(session, empires=empires)
        # two starting corvettes: attack 12, not enough
        assert advance_tick(at_war, config).empires[1].war_status == "war"

        corvette = create_fleet_ship(get_ship_design(config.military, "corvette"), create_id_factory("extra"))
        first = at_war.fleets[0]
        reinforced = replace(
            at_war,
            fleets=(replace(first, ships=first.ships + (corvette,)),) + at_war.fleets[1:],
        )
        assert advance_tick(reinforced, config).empires[1].war_status == "peace"


@pytest.mark.unit
class TestAdvanceClockBy:
    def test_paused_session_does_not_tick(self, session):
        simulate = MagicMock()
        advanced = advance_clock_by(session, 10_000, now=5, simulate=simulate)
        simulate.assert_not_called()
        assert advanced.clock.tick == 0
        assert advanced.clock.last_update == 5

    def test_catch_up_is_capped(self, session):
        session = replace(session, clock=replace(session.clock, is_running=True))
        simulate = MagicMock(side_effect=lambda s, ticks, config: s)
        advance_clock_by(session, 60_000, now=1, simulate=simulate)
        assert simulate.call_args[0][1] == GAME_CONFIG.limits.max_ticks_per_advance

    def test_runs_due_ticks(self, session):
        session = replace(session, clock=replace(session.clock, is_running=True))
        advanced = advance_clock_by(session, 2000, now=1)
        assert advanced.clock.tick == 2
