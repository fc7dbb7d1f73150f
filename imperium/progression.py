#!/usr/bin/env python3
"""
Research branches, tradition perks and the income modifiers they grant.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union

from imperium.models.game_config import (
    IncomeMultiplierEffect,
    InfluenceFlatEffect,
    ResearchConfig,
    ResearchTech,
    ResourceType,
    TraditionConfig,
    TraditionPerk,
)
from imperium.models.session_state import (
    ResearchBranchState,
    ResearchState,
    TraditionState,
)

# share of gateway techs (or previous-era perks) needed to open an era
ERA_UNLOCK_SHARE = 0.6
# research income is split evenly across the three branches
RESEARCH_BRANCH_SPLIT = 3


@dataclass(frozen=True)
class ProgressionModifiers:
    income_multipliers: Dict[ResourceType, float] = field(default_factory=dict)
    influence_flat: float = 0.0


@dataclass(frozen=True)
class ResearchAdvance:
    research: ResearchState
    completed: Tuple[ResearchTech, ...] = ()


def _required(count: int) -> int:
    return max(1, math.ceil(count * ERA_UNLOCK_SHARE))


def _excluded(group: Optional[str], item_id: str, picks: Dict[str, str]) -> bool:
    return bool(group and picks.get(group) and picks[group] != item_id)


# ---------- Research ----------


def get_tech(config: ResearchConfig, tech_id: str) -> Optional[ResearchTech]:
    return next((tech for tech in config.techs if tech.id == tech_id), None)


def create_initial_research(config: ResearchConfig) -> ResearchState:
    first_era = config.eras[0].id if config.eras else 1
    return ResearchState(
        branches={branch.id: ResearchBranchState() for branch in config.branches},
        backlog=tuple(config.techs),
        current_era=first_era,
        unlocked_eras=(first_era,),
        exclusive_picks={},
    )


def start_research(
    branch: str, tech_id: str, state: ResearchState, config: ResearchConfig
) -> Tuple[Optional[str], ResearchState]:
    """
    Point a branch at a tech. Returns (reason, state); reason is None when the
    tech was accepted. Choosing a tech from an exclusive group locks the group.
    """
    tech = get_tech(config, tech_id)
    if tech is None:
        return "INVALID_TECH", state
    if tech.branch != branch or branch not in state.branches:
        return "BRANCH_MISMATCH", state
    if tech.era > state.current_era:
        return "PREREQ_NOT_MET", state
    branch_state = state.branches[branch]
    if tech_id in branch_state.completed:
        return "ALREADY_COMPLETED", state
    if not all(req in branch_state.completed for req in tech.prerequisites):
        return "PREREQ_NOT_MET", state
    if _excluded(tech.mutually_exclusive_group, tech.id, state.exclusive_picks):
        return "PREREQ_NOT_MET", state

    branches = dict(state.branches)
    branches[branch] = replace(branch_state, current_tech_id=tech_id, progress=0)
    picks = dict(state.exclusive_picks)
    if tech.mutually_exclusive_group and tech.mutually_exclusive_group not in picks:
        picks[tech.mutually_exclusive_group] = tech.id
    return None, replace(state, branches=branches, exclusive_picks=picks)


def _research_eras(state: ResearchState, config: ResearchConfig) -> Tuple[int, Tuple[int, ...]]:
    completed = {tech_id for b in state.branches.values() for tech_id in b.completed}
    unlocked = set(state.unlocked_eras)
    for era in sorted(config.eras, key=lambda e: e.id):
        if era.id in unlocked:
            continue
        gateways = era.gateway_techs
        if not gateways or sum(1 for g in gateways if g in completed) >= _required(len(gateways)):
            unlocked.add(era.id)
    return max(unlocked), tuple(sorted(unlocked))


def advance_research(
    state: ResearchState, research_income: float, config: ResearchConfig
) -> ResearchAdvance:
    if research_income <= 0:
        return ResearchAdvance(research=state)
    per_branch = research_income * config.points_per_research_income / RESEARCH_BRANCH_SPLIT
    branches = dict(state.branches)
    picks = dict(state.exclusive_picks)
    completed: List[ResearchTech] = []

    for branch_id, branch_state in state.branches.items():
        if not branch_state.current_tech_id:
            continue
        tech = get_tech(config, branch_state.current_tech_id)
        if tech is None:
            continue
        progress = branch_state.progress + per_branch
        if progress < tech.cost:
            branches[branch_id] = replace(branch_state, progress=progress)
            continue
        if tech.mutually_exclusive_group and tech.mutually_exclusive_group not in picks:
            picks[tech.mutually_exclusive_group] = tech.id
        branches[branch_id] = ResearchBranchState(
            current_tech_id=None,
            progress=0,
            completed=branch_state.completed + (tech.id,),
        )
        completed.append(tech)

    updated = replace(state, branches=branches, exclusive_picks=picks)
    current_era, unlocked = _research_eras(updated, config)
    return ResearchAdvance(
        research=replace(updated, current_era=current_era, unlocked_eras=unlocked),
        completed=tuple(completed),
    )


def list_available_techs(
    branch: str, state: ResearchState, config: ResearchConfig
) -> List[ResearchTech]:
    branch_state = state.branches.get(branch)
    if branch_state is None:
        return []
    return [
        tech
        for tech in config.techs
        if tech.branch == branch
        and tech.era <= state.current_era
        and tech.id not in branch_state.completed
        and not _excluded(tech.mutually_exclusive_group, tech.id, state.exclusive_picks)
        and all(req in branch_state.completed for req in tech.prerequisites)
    ]


# ---------- Traditions ----------


def get_perk(config: TraditionConfig, perk_id: str) -> Optional[TraditionPerk]:
    return next((perk for perk in config.perks if perk.id == perk_id), None)


def create_initial_traditions(config: TraditionConfig) -> TraditionState:
    return TraditionState(backlog=tuple(config.perks))


def _tradition_eras(state: TraditionState, config: TraditionConfig) -> Tuple[int, Tuple[int, ...]]:
    eras = sorted({perk.era for perk in config.perks})
    if not eras:
        return 1, (1,)
    unlocked = {eras[0]}
    owned = set(state.unlocked)
    for previous, era in zip(eras, eras[1:]):
        previous_perks = [perk for perk in config.perks if perk.era == previous]
        done = sum(1 for perk in previous_perks if perk.id in owned)
        if done >= _required(len(previous_perks)):
            unlocked.add(era)
    return max(unlocked), tuple(sorted(unlocked))


def advance_traditions(
    state: TraditionState, influence_income: float, config: TraditionConfig
) -> TraditionState:
    gained = max(0.0, influence_income * config.points_per_influence_income)
    if gained <= 0:
        return state
    updated = replace(state, available_points=state.available_points + gained)
    current_era, unlocked = _tradition_eras(updated, config)
    return replace(updated, current_era=current_era, unlocked_eras=unlocked)


def unlock_tradition(
    perk_id: str, state: TraditionState, config: TraditionConfig
) -> Tuple[Optional[str], TraditionState]:
    perk = get_perk(config, perk_id)
    if perk is None:
        return "INVALID_PERK", state
    if perk.era > state.current_era:
        return "PREREQ_NOT_MET", state
    if perk.id in state.unlocked:
        return "ALREADY_UNLOCKED", state
    if not all(req in state.unlocked for req in perk.prerequisites):
        return "PREREQ_NOT_MET", state
    if state.available_points < perk.cost:
        return "INSUFFICIENT_POINTS", state
    if _excluded(perk.mutually_exclusive_group, perk.id, state.exclusive_picks):
        return "PREREQ_NOT_MET", state

    picks = dict(state.exclusive_picks)
    if perk.mutually_exclusive_group:
        picks[perk.mutually_exclusive_group] = perk.id
    updated = replace(
        state,
        available_points=state.available_points - perk.cost,
        unlocked=state.unlocked + (perk.id,),
        exclusive_picks=picks,
    )
    current_era, unlocked = _tradition_eras(updated, config)
    return None, replace(updated, current_era=current_era, unlocked_eras=unlocked)


def list_tradition_choices(state: TraditionState, config: TraditionConfig) -> List[TraditionPerk]:
    return [
        perk
        for perk in config.perks
        if perk.era <= state.current_era
        and perk.id not in state.unlocked
        and all(req in state.unlocked for req in perk.prerequisites)
        and not (perk.mutually_exclusive_group and state.exclusive_picks.get(perk.mutually_exclusive_group))
    ]


# ---------- Modifiers ----------


def _fold_effect(
    effect: Union[IncomeMultiplierEffect, InfluenceFlatEffect],
    multipliers: Dict[ResourceType, float],
    influence_flat: float,
) -> float:
    if isinstance(effect, IncomeMultiplierEffect):
        multipliers[effect.resource] = multipliers.get(effect.resource, 0) + effect.value
        return influence_flat
    return influence_flat + effect.value


def derive_progression_modifiers(
    research: ResearchState,
    traditions: TraditionState,
    research_config: ResearchConfig,
    tradition_config: TraditionConfig,
) -> ProgressionModifiers:
    """Sum the effects of every completed tech and unlocked perk."""
    multipliers: Dict[ResourceType, float] = {}
    influence_flat = 0.0
    for tech in research_config.techs:
        branch = research.branches.get(tech.branch)
        if branch is None or tech.id not in branch.completed:
            continue
        for effect in tech.effects:
            influence_flat = _fold_effect(effect, multipliers, influence_flat)
    for perk in tradition_config.perks:
        if perk.id not in traditions.unlocked:
            continue
        for effect in perk.effects:
            influence_flat = _fold_effect(effect, multipliers, influence_flat)
    return ProgressionModifiers(income_multipliers=multipliers, influence_flat=influence_flat)
