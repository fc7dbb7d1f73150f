"""Tests for event spawning and option resolution."""

from dataclasses import replace
from unittest.mock import patch

import pytest

from imperium.events import (
    apply_effect,
    apply_option_cost,
    can_afford_option,
    find_event_definition,
    instantiate_event,
    maybe_spawn_event,
    option_cost,
    resolve_event,
)
from imperium.helper.rng import create_id_factory, create_random
from imperium.models import GAME_CONFIG
from imperium.models.game_config import InsightEffect, TriggerEventEffect
from imperium.models.session_state import EventLogEntry, EventState, GameNotification, WarEvent

from tests.conftest import make_session

EVENTS = GAME_CONFIG.events


def _event(definition_id: str, system_id=None):
    definition = find_event_definition(EVENTS, definition_id)
    return instantiate_event(definition, create_id_factory("e"), system_id)


def _option(event, option_id):
    return next(o for o in event.options if o.id == option_id)


@pytest.mark.unit
class TestCosts:
    def test_negative_resource_effects_are_the_cost(self):
        event = _event("support-request")
        assert option_cost(_option(event, "fund")) == {"minerals": 20}
        assert option_cost(_option(event, "decline")) == {}

    def test_affordability(self):
        session = make_session()
        option = _option(_event("support-request"), "fund")
        assert can_afford_option(session, option)
        resources = dict(session.economy.resources)
        resources["minerals"] = replace(resources["minerals"], amount=5)
        broke = replace(session, economy=replace(session.economy, resources=resources))
        assert not can_afford_option(broke, option)


@pytest.mark.unit
class TestResolveEvent:
    def test_cost_charged_once(self):
        session = make_session()
        event = _event("support-request")
        option = _option(event, "fund")
        charged = replace(session, economy=apply_option_cost(session, option))
        result = resolve_event(charged, event, option, 12, GAME_CONFIG, create_id_factory("r"))
        assert result.session.economy.resources["minerals"].amount == 130
        home = result.session.economy.planets[0]
        assert home.stability == session.economy.planets[0].stability + 4
        assert result.log_entry.id == f"evt-log-{event.id}"
        assert result.log_entry.tick == 12
        assert result.log_entry.result == option.label

    def test_positive_resources_are_granted(self):
        session = make_session()
        event = _event("science-breakthrough")
        result = resolve_event(session, event, _option(event, "publish"), 3, GAME_CONFIG, create_id_factory("r"))
        resources = result.session.economy.resources
        assert resources["research"].amount == session.economy.resources["research"].amount + 12
        assert resources["influence"].amount == session.economy.resources["influence"].amount + 1

    def test_hostile_spawn_targets_event_system(self):
        session = make_session()
        target = session.galaxy.systems[3].id
        event = _event("external-raid", target)
        result = resolve_event(session, event, _option(event, "alert"), 50, GAME_CONFIG, create_id_factory("r"))
        system = next(s for s in result.session.galaxy.systems if s.id == target)
        assert system.hostile_power == session.galaxy.systems[3].hostile_power + 15

    def test_follow_up_is_queued_not_activated(self):
        session = make_session()
        event = _event("external-raid", session.galaxy.systems[0].id)
        result = resolve_event(session, event, _option(event, "negotiate"), 50, GAME_CONFIG, create_id_factory("r"))
        assert [e.definition_id for e in result.queued] == ["support-request"]
        assert result.session.events.active is None

    def test_unknown_follow_up_is_logged(self):
        session = make_session()
        with patch("imperium.events.logger") as mock_logger:
            updated, queued = apply_effect(
                session, TriggerEventEffect(next_event_id="missing"), GAME_CONFIG, create_id_factory("r")
            )
        assert queued is None
        assert updated is session
        mock_logger.warning.assert_called_once()

    def test_insight_queues_tech_once(self):
        session = make_session()
        session = replace(session, research=replace(session.research, backlog=()))
        effect = InsightEffect(tech_id="sensor-arrays")
        updated, _ = apply_effect(session, effect, GAME_CONFIG, create_id_factory("r"))
        assert [t.id for t in updated.research.backlog] == ["sensor-arrays"]
        again, _ = apply_effect(updated, effect, GAME_CONFIG, create_id_factory("r"))
        assert again is updated

    def test_stability_clamped(self):
        session = make_session()
        event = _event("support-request")
        option = _option(event, "decline")
        for _ in range(30):
            session = resolve_event(session, event, option, 1, GAME_CONFIG, create_id_factory("r")).session
        assert session.economy.planets[0].stability == 20


@pytest.mark.unit
class TestSpawning:
    def test_narrative_on_interval(self):
        event = maybe_spawn_event(make_session(), EVENTS, 12, create_random("x"), create_id_factory("s"))
        assert event is not None
        assert event.kind == "narrative"

    def test_nothing_between_intervals(self):
        assert maybe_spawn_event(make_session(), EVENTS, 13, create_random("x"), create_id_factory("s")) is None

    def test_anomaly_targets_quiet_surveyed_system(self):
        session = make_session()
        event = maybe_spawn_event(session, EVENTS, 28, create_random("x"), create_id_factory("s"))
        assert event.kind == "anomaly"
        assert event.system_id == session.galaxy.systems[0].id

    def test_crisis_takes_precedence(self):
        session = make_session()
        # 252 is a multiple of every interval
        event = maybe_spawn_event(session, EVENTS, 252, create_random("x"), create_id_factory("s"))
        assert event.kind == "crisis"
        assert event.system_id == session.galaxy.systems[0].id

    def test_log_cooldown(self):
        session = make_session()
        session = replace(
            session, events=EventState(log=(EventLogEntry(id="l", tick=10, title="t", result="r"),))
        )
        assert maybe_spawn_event(session, EVENTS, 12, create_random("x"), create_id_factory("s")) is None

    def test_war_cooldown(self):
        session = make_session()
        war = WarEvent(id="w", type="warStart", empire_id="ai-1", tick=10, message="War.")
        session = replace(session, war_events=(war,))
        assert maybe_spawn_event(session, EVENTS, 12, create_random("x"), create_id_factory("s")) is None

    def test_recent_event_notification_cooldown(self):
        session = make_session()
        notice = GameNotification(id="n", tick=10, kind="eventStarted", message="New event")
        session = replace(session, notifications=(notice,))
        assert maybe_spawn_event(session, EVENTS, 12, create_random("x"), create_id_factory("s")) is None

    def test_same_stream_same_event(self):
        session = make_session()
        a = maybe_spawn_event(session, EVENTS, 24, create_random("x"), create_id_factory("s"))
        b = maybe_spawn_event(session, EVENTS, 24, create_random("x"), create_id_factory("s"))
        assert a == b
