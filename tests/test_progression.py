"""Tests for research, traditions and the modifiers they grant."""

from dataclasses import replace

import pytest

from imperium.models import GAME_CONFIG
from imperium.progression import (
    advance_research,
    advance_traditions,
    create_initial_research,
    create_initial_traditions,
    derive_progression_modifiers,
    list_available_techs,
    list_tradition_choices,
    start_research,
    unlock_tradition,
)

RESEARCH = GAME_CONFIG.research
TRADITIONS = GAME_CONFIG.traditions


def _started(*picks):
    state = create_initial_research(RESEARCH)
    for branch, tech_id in picks:
        reason, state = start_research(branch, tech_id, state, RESEARCH)
        assert reason is None
    return state


@pytest.mark.unit
class TestStartResearch:
    def test_initial_state(self):
        state = create_initial_research(RESEARCH)
        assert set(state.branches) == {"physics", "society", "engineering"}
        assert state.current_era == 1
        assert state.unlocked_eras == (1,)

    def test_accepts_valid_tech(self):
        state = _started(("physics", "fusion-reactors"))
        assert state.branches["physics"].current_tech_id == "fusion-reactors"
        assert state.branches["physics"].progress == 0

    @pytest.mark.parametrize(
        "branch, tech_id, reason",
        [
            ("physics", "warp-drive", "INVALID_TECH"),
            ("society", "fusion-reactors", "BRANCH_MISMATCH"),
            ("physics", "subspace-theory", "PREREQ_NOT_MET"),
            ("engineering", "deep-core-mining", "PREREQ_NOT_MET"),
        ],
    )
    def test_rejections(self, branch, tech_id, reason):
        state = create_initial_research(RESEARCH)
        got, unchanged = start_research(branch, tech_id, state, RESEARCH)
        assert got == reason
        assert unchanged is state

    def test_exclusive_group_locks_alternative(self):
        state = replace(create_initial_research(RESEARCH), current_era=2, unlocked_eras=(1, 2))
        reason, state = start_research("society", "unity-doctrine", state, RESEARCH)
        assert reason is None
        assert state.exclusive_picks == {"doctrine": "unity-doctrine"}
        reason, _ = start_research("society", "market-doctrine", state, RESEARCH)
        assert reason == "PREREQ_NOT_MET"


@pytest.mark.unit
class TestAdvanceResearch:
    def test_income_split_across_branches(self):
        state = _started(("physics", "fusion-reactors"))
        result = advance_research(state, 30, RESEARCH)
        assert result.research.branches["physics"].progress == pytest.approx(10)
        assert result.completed == ()

    def test_completion(self):
        state = _started(("physics", "fusion-reactors"))
        result = advance_research(state, 120, RESEARCH)
        branch = result.research.branches["physics"]
        assert branch.completed == ("fusion-reactors",)
        assert branch.current_tech_id is None
        assert [t.id for t in result.completed] == ["fusion-reactors"]

    def test_gateways_open_next_era(self):
        state = _started(("physics", "fusion-reactors"), ("society", "xenobiology"))
        result = advance_research(state, 120, RESEARCH)
        assert result.research.current_era == 2
        assert result.research.unlocked_eras == (1, 2)

    def test_one_gateway_is_not_enough(self):
        state = _started(("physics", "fusion-reactors"))
        assert advance_research(state, 120, RESEARCH).research.current_era == 1

    def test_no_income_returns_same_state(self):
        state = _started(("physics", "fusion-reactors"))
        assert advance_research(state, 0, RESEARCH).research is state

    def test_available_techs(self):
        state = create_initial_research(RESEARCH)
        ids = [t.id for t in list_available_techs("engineering", state, RESEARCH)]
        assert ids == ["orbital-shipyard"]
        assert list_available_techs("nope", state, RESEARCH) == []


@pytest.mark.unit
class TestTraditions:
    def test_points_from_influence(self):
        state = advance_traditions(create_initial_traditions(TRADITIONS), 40, TRADITIONS)
        assert state.available_points == pytest.approx(2)

    def test_no_influence_no_change(self):
        state = create_initial_traditions(TRADITIONS)
        assert advance_traditions(state, -5, TRADITIONS) is state

    def test_unlock(self):
        state = replace(create_initial_traditions(TRADITIONS), available_points=5)
        reason, state = unlock_tradition("survey-speed", state, TRADITIONS)
        assert reason is None
        assert state.unlocked == ("survey-speed",)
        assert state.available_points == 3
        assert unlock_tradition("survey-speed", state, TRADITIONS)[0] == "ALREADY_UNLOCKED"

    def test_unlock_rejections(self):
        poor = create_initial_traditions(TRADITIONS)
        rich = replace(poor, available_points=50)
        assert unlock_tradition("nope", rich, TRADITIONS)[0] == "INVALID_PERK"
        assert unlock_tradition("survey-speed", poor, TRADITIONS)[0] == "INSUFFICIENT_POINTS"
        assert unlock_tradition("planetary-planning", rich, TRADITIONS)[0] == "PREREQ_NOT_MET"
        assert unlock_tradition("frontier-charter", rich, TRADITIONS)[0] == "PREREQ_NOT_MET"

    def test_era_two_after_most_of_era_one(self):
        state = replace(create_initial_traditions(TRADITIONS), available_points=50)
        for perk_id in ("survey-speed", "logistics", "bureaucrats"):
            reason, state = unlock_tradition(perk_id, state, TRADITIONS)
            assert reason is None
        assert state.current_era == 2
        assert unlock_tradition("frontier-charter", state, TRADITIONS)[0] is None

    def test_choices(self):
        state = create_initial_traditions(TRADITIONS)
        ids = {p.id for p in list_tradition_choices(state, TRADITIONS)}
        assert ids == {"survey-speed", "logistics", "bureaucrats"}


@pytest.mark.unit
class TestModifiers:
    def test_folds_techs_and_perks(self):
        research = advance_research(_started(("physics", "fusion-reactors")), 120, RESEARCH).research
        traditions = replace(create_initial_traditions(TRADITIONS), unlocked=("bureaucrats", "logistics"))
        modifiers = derive_progression_modifiers(research, traditions, RESEARCH, TRADITIONS)
        assert modifiers.income_multipliers["energy"] == pytest.approx(0.15)
        assert modifiers.influence_flat == pytest.approx(0.5)

    def test_empty(self):
        modifiers = derive_progression_modifiers(
            create_initial_research(RESEARCH), create_initial_traditions(TRADITIONS), RESEARCH, TRADITIONS
        )
        assert modifiers.income_multipliers == {}
        assert modifiers.influence_flat == 0
