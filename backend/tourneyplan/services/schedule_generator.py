"""
Schedule Generator — group stage pairings, slot/field assignment, bracket skeleton.

Pipeline:
1. Split teams into groups (team.group labels, or round-robin distribution
   when no team carries a label).
2. Circle-method pairings per group (``pairing_rules``).
3. Greedy first-fit slot filling: for every slot, fields are filled with the
   first pending matches (ordered by round, group, pairing order) whose teams
   are free in that slot and rested. A match that cannot be placed spills
   into a later slot; no match is ever dropped.
4. Home/away balancing (swap sides only, slot and field are unchanged).
5. Bracket skeleton from the finals preset (``bracket_presets``), slotted
   after the group stage. Sequential bracket rounds take a slot of their own.
6. Wall-clock stamping per phase.

Either a complete ``Schedule`` is returned or ``ScheduleGenerationError`` is
raised; there is no partial result.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from tourneyplan.services.bracket_presets import (
    STAGE_ORDER,
    BracketMatchDefinition,
    build_bracket_plan,
    is_parallel_allowed,
)
from tourneyplan.services.errors import ScheduleGenerationError
from tourneyplan.services.pairing_rules import rr_matches_per_group, rr_pairings_by_round, rr_round_count
from tourneyplan.services.tournament_model import (
    Match,
    Phase,
    Schedule,
    Team,
    TournamentConfig,
)
from tourneyplan.utils.placeholders import (
    LoserOf,
    Resolved,
    WinnerOf,
    canonical_group_key,
    group_label_for_index,
)
from tourneyplan.utils.rest_rules import RestStateTracker, check_rest_compatibility, earliest_allowed_slot

logger = logging.getLogger(__name__)

GROUP_STAGE = "groupStage"

PHASE_LABELS: Dict[str, str] = {
    GROUP_STAGE: "Group stage",
    "roundOf16": "Round of 16",
    "quarterfinal": "Quarterfinals",
    "semifinal": "Semifinals",
    "final": "Finals",
}

# Placement matches are reported under the final phase
STAGE_TO_PHASE: Dict[str, str] = {
    "roundOf16": "roundOf16",
    "quarterfinal": "quarterfinal",
    "semifinal": "semifinal",
    "placement": "final",
    "final": "final",
}


# =============================================================================
# Validation / grouping
# =============================================================================


def _validate(config: TournamentConfig, teams: Sequence[Team]) -> None:
    if not teams:
        raise ScheduleGenerationError("INVALID_CONFIGURATION: at least one team is required", field="teams")
    if config.number_of_fields < 1:
        raise ScheduleGenerationError(
            f"INVALID_CONFIGURATION: number_of_fields must be >= 1, got {config.number_of_fields}",
            field="number_of_fields",
        )
    ids = [t.id for t in teams]
    if len(ids) != len(set(ids)):
        raise ScheduleGenerationError("INVALID_CONFIGURATION: team ids must be unique", field="teams")


def assign_groups(config: TournamentConfig, teams: Sequence[Team]) -> Dict[str, List[Team]]:
    """
    Return canonical group key -> teams, in key order.

    - roundRobin: every team in group "A"
    - groupsAndFinals with labelled teams: labels folded by canonical_group_key
    - groupsAndFinals without labels: team i goes to group i % number_of_groups
    """
    groups: Dict[str, List[Team]] = {}

    if config.group_system == "roundRobin":
        groups["A"] = list(teams)
        return groups

    labelled = [t for t in teams if canonical_group_key(t.group)]
    if labelled and len(labelled) != len(teams):
        raise ScheduleGenerationError(
            "INVALID_CONFIGURATION: either all teams or no team must have a group", field="teams"
        )

    if labelled:
        for team in teams:
            groups.setdefault(canonical_group_key(team.group), []).append(team)
        return {key: groups[key] for key in sorted(groups, key=lambda k: (len(k), k))}

    for i in range(config.number_of_groups):
        groups[group_label_for_index(i)] = []
    for i, team in enumerate(teams):
        groups[group_label_for_index(i % config.number_of_groups)].append(team)
    return {key: members for key, members in groups.items() if members}


def _standing_count(members: List[Team]) -> int:
    """Teams the group's standings will hold once the group stage is scored."""
    # A lone team without a group label shows up in no match and no table
    if len(members) == 1 and not canonical_group_key(members[0].group):
        return 0
    return len(members)


# =============================================================================
# Group stage
# =============================================================================


def _group_stage_pairings(groups: Dict[str, List[Team]]) -> List[Match]:
    """Unslotted group matches, in (round, group, pairing order) priority."""
    keyed: List[Tuple[Tuple[int, int, int], Match]] = []
    for group_index, (key, members) in enumerate(groups.items()):
        logger.debug(
            "Group %s: %d teams, %d rounds, %d matches",
            key,
            len(members),
            rr_round_count(len(members)),
            rr_matches_per_group(len(members)),
        )
        for round_num, seq, idx_a, idx_b in rr_pairings_by_round(len(members)):
            match = Match(
                id="",
                round=round_num,
                field=0,
                team_a=Resolved(members[idx_a].id),
                team_b=Resolved(members[idx_b].id),
                group=key,
            )
            keyed.append(((round_num, group_index, seq), match))

    keyed.sort(key=lambda item: item[0])
    return [m for _, m in keyed]


def _assign_group_slots(pending: List[Match], number_of_fields: int, min_rest_slots: int) -> List[Match]:
    """Greedy first-fit of pending matches into (slot, field)."""
    tracker = RestStateTracker(min_rest_slots)
    scheduled: List[Match] = []
    remaining = list(pending)
    slot = 0
    idle_slots = 0

    while remaining:
        busy = set()
        placed: List[Match] = []
        for match in remaining:
            if len(placed) == number_of_fields:
                break
            team_ids = (match.team_a.team_id, match.team_b.team_id)
            if busy.intersection(team_ids):
                continue
            compatible, _ = check_rest_compatibility(slot, team_ids, tracker)
            if not compatible:
                continue
            placed.append(replace(match, slot=slot, field=len(placed) + 1))
            busy.update(team_ids)

        if not placed:
            # Everything left is waiting on rest; skip to the first slot that frees a match
            next_slot = min(
                earliest_allowed_slot((m.team_a.team_id, m.team_b.team_id), tracker) for m in remaining
            )
            next_slot = max(next_slot, slot + 1)
            idle_slots += next_slot - slot
            slot = next_slot
            continue
        for match in placed:
            tracker.update_team_state(match.team_a.team_id, slot)
            tracker.update_team_state(match.team_b.team_id, slot)
        placed_keys = {(m.team_a, m.team_b) for m in placed}
        remaining = [m for m in remaining if (m.team_a, m.team_b) not in placed_keys]
        scheduled.extend(placed)
        slot += 1

    if idle_slots:
        logger.info("Group stage: %d slot(s) left idle to honor min_rest_slots=%d", idle_slots, min_rest_slots)

    return [replace(m, id=f"g{i}") for i, m in enumerate(scheduled, start=1)]


def balance_home_away(matches: Sequence[Match]) -> List[Match]:
    """
    Swap team_a/team_b where it lowers the combined home/away imbalance of
    both teams. Matches with a placeholder side are left alone.
    """
    home: Dict[str, int] = defaultdict(int)
    away: Dict[str, int] = defaultdict(int)
    for m in matches:
        if isinstance(m.team_a, Resolved) and isinstance(m.team_b, Resolved):
            home[m.team_a.team_id] += 1
            away[m.team_b.team_id] += 1

    result: List[Match] = []
    for m in matches:
        if not (isinstance(m.team_a, Resolved) and isinstance(m.team_b, Resolved)):
            result.append(m)
            continue
        a, b = m.team_a.team_id, m.team_b.team_id
        current = abs(home[a] - away[a]) + abs(home[b] - away[b])
        swapped = abs((home[a] - 1) - (away[a] + 1)) + abs((home[b] + 1) - (away[b] - 1))
        if swapped < current:
            home[a] -= 1
            away[a] += 1
            home[b] += 1
            away[b] -= 1
            result.append(replace(m, team_a=m.team_b, team_b=m.team_a))
        else:
            result.append(m)
    return result


# =============================================================================
# Bracket
# =============================================================================


def _assign_bracket_slots(
    definitions: List[BracketMatchDefinition],
    config: TournamentConfig,
    first_slot: int,
    first_round: int,
) -> List[Match]:
    """Slot bracket matches after the group stage, honoring dependencies."""
    stage_rank = {
        value: rank for rank, value in enumerate(sorted({STAGE_ORDER[d.stage] for d in definitions}), start=1)
    }

    slot_of: Dict[str, int] = {}
    fields_used: Dict[int, int] = defaultdict(int)
    exclusive: set = set()
    matches: List[Match] = []

    for d in definitions:
        outcome_refs = {s.match_id for s in (d.team_a, d.team_b) if isinstance(s, (WinnerOf, LoserOf))}
        earliest = 0
        for dep in d.depends_on:
            if dep not in slot_of:
                continue
            gap = 1 + (config.min_rest_slots if dep in outcome_refs else 0)
            earliest = max(earliest, slot_of[dep] + gap)

        parallel = is_parallel_allowed(d, config.finals)
        rel = earliest
        while True:
            if rel in exclusive:
                rel += 1
                continue
            if parallel and fields_used[rel] < config.number_of_fields:
                break
            if not parallel and fields_used[rel] == 0:
                break
            rel += 1

        fields_used[rel] += 1
        if not parallel:
            exclusive.add(rel)
        slot_of[d.id] = rel

        matches.append(
            Match(
                id=d.id,
                round=first_round + stage_rank[STAGE_ORDER[d.stage]],
                field=fields_used[rel],
                team_a=d.team_a,
                team_b=d.team_b,
                slot=first_slot + rel,
                is_final=True,
                final_type=d.final_type,
                label=d.label,
            )
        )

    return matches


# =============================================================================
# Time stamping / phases
# =============================================================================


def _stamp_times(
    group_matches: List[Match], bracket_matches: List[Match], config: TournamentConfig
) -> Tuple[List[Match], List[Match], datetime]:
    group_step = config.group_phase_game_duration + config.group_phase_break_duration
    stamped_group = [
        replace(m, scheduled_time=config.start_time + timedelta(minutes=m.slot * group_step)) for m in group_matches
    ]

    if stamped_group:
        last_group_start = max(m.scheduled_time for m in stamped_group)
        group_end = last_group_start + timedelta(minutes=config.group_phase_game_duration)
        bracket_base_slot = max(m.slot for m in stamped_group) + 1
    else:
        group_end = config.start_time
        bracket_base_slot = 0

    finals_start = group_end + timedelta(minutes=config.break_between_phases)
    final_step = config.final_game_duration + config.final_break_duration
    stamped_bracket = [
        replace(m, scheduled_time=finals_start + timedelta(minutes=(m.slot - bracket_base_slot) * final_step))
        for m in bracket_matches
    ]

    ends = [m.scheduled_time + timedelta(minutes=config.group_phase_game_duration) for m in stamped_group]
    ends += [m.scheduled_time + timedelta(minutes=config.final_game_duration) for m in stamped_bracket]
    end_time = max(ends) if ends else config.start_time
    return stamped_group, stamped_bracket, end_time


def _build_phases(
    group_matches: List[Match],
    bracket_matches: List[Match],
    bracket_stages: Dict[str, str],
    config: TournamentConfig,
) -> List[Phase]:
    by_phase: Dict[str, List[Match]] = defaultdict(list)
    for m in group_matches:
        by_phase[GROUP_STAGE].append(m)
    for m in bracket_matches:
        by_phase[STAGE_TO_PHASE[bracket_stages[m.id]]].append(m)

    phases: List[Phase] = []
    for name in PHASE_LABELS:
        members = by_phase.get(name)
        if not members:
            continue
        duration = config.group_phase_game_duration if name == GROUP_STAGE else config.final_game_duration
        phases.append(
            Phase(
                name=name,
                label=PHASE_LABELS[name],
                match_ids=tuple(m.id for m in members),
                start_time=min(m.scheduled_time for m in members),
                end_time=max(m.scheduled_time for m in members) + timedelta(minutes=duration),
            )
        )
    return phases


# =============================================================================
# Entry point
# =============================================================================


def generate(config: TournamentConfig, teams: Sequence[Team]) -> Schedule:
    """
    Generate the complete schedule for a tournament.

    Raises:
        ScheduleGenerationError: no teams, number_of_fields < 1, duplicate
            team ids or partially grouped teams
    """
    _validate(config, teams)

    groups = assign_groups(config, teams)
    pending = _group_stage_pairings(groups)
    group_matches = _assign_group_slots(pending, config.number_of_fields, config.min_rest_slots)
    group_matches = balance_home_away(group_matches)

    notes: List[str] = []
    bracket_matches: List[Match] = []
    bracket_stages: Dict[str, str] = {}

    if config.has_finals:
        plan = build_bracket_plan(
            config.finals,
            len(groups),
            group_sizes={key: _standing_count(members) for key, members in groups.items()},
        )
        notes.extend(plan.notes)
        if plan.definitions:
            first_slot = max((m.slot for m in group_matches), default=-1) + 1
            first_round = max((m.round for m in group_matches), default=0)
            bracket_matches = _assign_bracket_slots(plan.definitions, config, first_slot, first_round)
            bracket_stages = {d.id: d.stage for d in plan.definitions}

    group_matches, bracket_matches, end_time = _stamp_times(group_matches, bracket_matches, config)
    phases = _build_phases(group_matches, bracket_matches, bracket_stages, config)

    all_matches = group_matches + bracket_matches
    total_duration = int((end_time - config.start_time).total_seconds() // 60)

    logger.info(
        "Generated schedule: %d group matches, %d bracket matches, %d groups, %d minutes",
        len(group_matches),
        len(bracket_matches),
        len(groups),
        total_duration,
    )

    return Schedule(
        matches=tuple(all_matches),
        phases=tuple(phases),
        start_time=config.start_time,
        end_time=end_time,
        total_duration=total_duration,
        notes=tuple(notes),
    )
