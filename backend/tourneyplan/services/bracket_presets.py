"""
Bracket Presets — finals skeletons per preset and group count.

Every preset is expanded into a list of ``BracketMatchDefinition`` whose
sides are placeholders (group standings, winners/losers of earlier bracket
matches). The generator schedules them; the resolver fills them in.

Preset fallback policy (explicit, reported in ``BracketPlan.notes``):
- fewer than 2 groups: no bracket
- top-16 needs 8 groups, otherwise top-8
- top-8 needs 4 groups, otherwise top-4
- all-places with 3 groups plays top-4

Definitions whose group-standing references cannot be produced by the
actual group sizes (e.g. a 4th place in a group of 3) are omitted, together
with anything that depends on them, instead of being emitted with an
unresolvable reference.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from tourneyplan.services.tournament_model import FinalsConfig, FinalsPreset
from tourneyplan.utils.placeholders import (
    BestSecond,
    GroupStanding,
    LoserOf,
    TeamSlot,
    WinnerOf,
    group_label_for_index,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

MIN_GROUPS: Dict[str, int] = {
    "final-only": 2,
    "top-4": 2,
    "top-8": 4,
    "top-16": 8,
    "all-places": 2,
}

# Scheduling order of bracket stages (earlier stages play first)
STAGE_ORDER: Dict[str, int] = {
    "roundOf16": 1,
    "quarterfinal": 2,
    "semifinal": 3,
    "placement": 4,
    "final": 4,
}


@dataclass(frozen=True)
class BracketMatchDefinition:
    id: str
    label: str
    stage: str  # roundOf16 | quarterfinal | semifinal | placement | final
    team_a: TeamSlot
    team_b: TeamSlot
    final_type: Optional[str] = None
    depends_on: Tuple[str, ...] = ()


@dataclass
class BracketPlan:
    requested_preset: str
    effective_preset: str
    definitions: List[BracketMatchDefinition] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


def _gs(group_index: int, position: int) -> GroupStanding:
    return GroupStanding(group=group_label_for_index(group_index), position=position)


# =============================================================================
# Preset policy
# =============================================================================


def effective_preset(preset: FinalsPreset, number_of_groups: int) -> Tuple[str, List[str]]:
    """Apply the fallback policy. Returns (preset, notes)."""
    notes: List[str] = []
    if preset == "none":
        return "none", notes

    if number_of_groups < 2:
        notes.append(f"Preset '{preset}' needs at least 2 groups; no bracket generated")
        return "none", notes

    current = preset
    if current == "top-16" and number_of_groups < MIN_GROUPS["top-16"]:
        notes.append(f"Preset 'top-16' needs 8 groups, got {number_of_groups}; falling back to 'top-8'")
        current = "top-8"
    if current == "top-8" and number_of_groups < MIN_GROUPS["top-8"]:
        notes.append(f"Preset 'top-8' needs 4 groups, got {number_of_groups}; falling back to 'top-4'")
        current = "top-4"
    if current == "all-places" and number_of_groups == 3:
        notes.append("Preset 'all-places' with 3 groups plays 'top-4'")
        current = "top-4"
    return current, notes


def recommended_finals_preset(number_of_groups: int) -> str:
    """Default preset offered for a given group count."""
    if number_of_groups in (2, 3):
        return "top-4"
    if 4 <= number_of_groups < 8:
        return "top-8"
    if number_of_groups >= 8:
        return "top-16"
    return "none"


# =============================================================================
# Preset generators
# =============================================================================


def _finals_pair(semi_ids: Tuple[str, str]) -> List[BracketMatchDefinition]:
    s1, s2 = semi_ids
    third = BracketMatchDefinition(
        id="third-place",
        label="Third place",
        stage="placement",
        team_a=LoserOf(s1),
        team_b=LoserOf(s2),
        final_type="thirdPlace",
        depends_on=(s1, s2),
    )
    final = BracketMatchDefinition(
        id="final",
        label="Final",
        stage="final",
        team_a=WinnerOf(s1),
        team_b=WinnerOf(s2),
        final_type="final",
        depends_on=(s1, s2, "third-place"),
    )
    return [third, final]


def _final_only(number_of_groups: int) -> List[BracketMatchDefinition]:
    return [
        BracketMatchDefinition(
            id="final",
            label="Final",
            stage="final",
            team_a=_gs(0, 1),
            team_b=_gs(1, 1),
            final_type="final",
        )
    ]


def _semifinals(number_of_groups: int) -> List[BracketMatchDefinition]:
    if number_of_groups == 2:
        # Cross pairing: 1A-2B, 1B-2A
        pairs = [(_gs(0, 1), _gs(1, 2)), (_gs(1, 1), _gs(0, 2))]
    elif number_of_groups == 3:
        # Group winners plus the best runner-up. BestSecond currently picks
        # the first second place found (group A), so it meets 1C.
        pairs = [(_gs(0, 1), _gs(1, 1)), (_gs(2, 1), BestSecond())]
    else:
        pairs = [(_gs(0, 1), _gs(3, 1)), (_gs(1, 1), _gs(2, 1))]

    return [
        BracketMatchDefinition(
            id=f"semi{i}",
            label=f"Semifinal {i}",
            stage="semifinal",
            team_a=a,
            team_b=b,
        )
        for i, (a, b) in enumerate(pairs, start=1)
    ]


def _top4(number_of_groups: int) -> List[BracketMatchDefinition]:
    return _semifinals(number_of_groups) + _finals_pair(("semi1", "semi2"))


def _quarterfinals_from_groups() -> List[BracketMatchDefinition]:
    # 1A-2D, 1B-2C, 1C-2B, 1D-2A
    pairs = [(0, 3), (1, 2), (2, 1), (3, 0)]
    return [
        BracketMatchDefinition(
            id=f"qf{i}",
            label=f"Quarterfinal {i}",
            stage="quarterfinal",
            team_a=_gs(winner_group, 1),
            team_b=_gs(runner_up_group, 2),
        )
        for i, (winner_group, runner_up_group) in enumerate(pairs, start=1)
    ]


def _semis_from_quarterfinals() -> List[BracketMatchDefinition]:
    return [
        BracketMatchDefinition(
            id="semi1",
            label="Semifinal 1",
            stage="semifinal",
            team_a=WinnerOf("qf1"),
            team_b=WinnerOf("qf4"),
            depends_on=("qf1", "qf4"),
        ),
        BracketMatchDefinition(
            id="semi2",
            label="Semifinal 2",
            stage="semifinal",
            team_a=WinnerOf("qf2"),
            team_b=WinnerOf("qf3"),
            depends_on=("qf2", "qf3"),
        ),
    ]


def _top8(number_of_groups: int) -> List[BracketMatchDefinition]:
    return _quarterfinals_from_groups() + _semis_from_quarterfinals() + _finals_pair(("semi1", "semi2"))


def _top16(number_of_groups: int) -> List[BracketMatchDefinition]:
    # 1A-2H, 1B-2G, 1C-2F, 1D-2E, 1E-2D, 1F-2C, 1G-2B, 1H-2A
    r16 = [
        BracketMatchDefinition(
            id=f"r16-{i}",
            label=f"Round of 16 - {i}",
            stage="roundOf16",
            team_a=_gs(i - 1, 1),
            team_b=_gs(8 - i, 2),
        )
        for i in range(1, 9)
    ]
    qf_sources = [(1, 8), (2, 7), (3, 6), (4, 5)]
    qfs = [
        BracketMatchDefinition(
            id=f"qf{i}",
            label=f"Quarterfinal {i}",
            stage="quarterfinal",
            team_a=WinnerOf(f"r16-{a}"),
            team_b=WinnerOf(f"r16-{b}"),
            depends_on=(f"r16-{a}", f"r16-{b}"),
        )
        for i, (a, b) in enumerate(qf_sources, start=1)
    ]
    return r16 + qfs + _semis_from_quarterfinals() + _finals_pair(("semi1", "semi2"))


def _all_places(number_of_groups: int) -> List[BracketMatchDefinition]:
    if number_of_groups == 2:
        semis = _semifinals(2)
        placement = [
            BracketMatchDefinition(
                id="place78-direct",
                label="7th place",
                stage="placement",
                team_a=_gs(0, 4),
                team_b=_gs(1, 4),
                final_type="seventhEighth",
                depends_on=("semi1", "semi2"),
            ),
            BracketMatchDefinition(
                id="place56-direct",
                label="5th place",
                stage="placement",
                team_a=_gs(0, 3),
                team_b=_gs(1, 3),
                final_type="fifthSixth",
                depends_on=("semi1", "semi2"),
            ),
        ]
        third, final = _finals_pair(("semi1", "semi2"))
        # Final is played last, after every placement match
        final = replace(final, depends_on=final.depends_on + ("place78-direct", "place56-direct"))
        return semis + placement + [third, final]

    qfs = _quarterfinals_from_groups()
    placement = [
        BracketMatchDefinition(
            id="place56",
            label="5th place",
            stage="placement",
            team_a=LoserOf("qf1"),
            team_b=LoserOf("qf2"),
            final_type="fifthSixth",
            depends_on=("qf1", "qf2"),
        ),
        BracketMatchDefinition(
            id="place78",
            label="7th place",
            stage="placement",
            team_a=LoserOf("qf3"),
            team_b=LoserOf("qf4"),
            final_type="seventhEighth",
            depends_on=("qf3", "qf4"),
        ),
    ]
    return qfs + _semis_from_quarterfinals() + placement + _finals_pair(("semi1", "semi2"))


_GENERATORS = {
    "final-only": _final_only,
    "top-4": _top4,
    "top-8": _top8,
    "top-16": _top16,
    "all-places": _all_places,
}


# =============================================================================
# Viability filter
# =============================================================================


def _slot_viable(slot: TeamSlot, group_sizes: Dict[str, int], viable_ids: set) -> bool:
    if isinstance(slot, GroupStanding):
        return group_sizes.get(slot.group, 0) >= slot.position
    if isinstance(slot, BestSecond):
        return any(size >= 2 for size in group_sizes.values())
    if isinstance(slot, (WinnerOf, LoserOf)):
        return slot.match_id in viable_ids
    return True


def _drop_unproducible(
    definitions: List[BracketMatchDefinition], group_sizes: Dict[str, int]
) -> Tuple[List[BracketMatchDefinition], List[str]]:
    """Drop definitions referencing finishers the groups cannot produce."""
    viable: List[BracketMatchDefinition] = []
    viable_ids: set = set()
    dropped: List[str] = []

    # Definitions are listed in dependency order, so one walk is enough.
    for d in definitions:
        if _slot_viable(d.team_a, group_sizes, viable_ids) and _slot_viable(d.team_b, group_sizes, viable_ids):
            viable.append(d)
            viable_ids.add(d.id)
        else:
            dropped.append(d.id)

    kept = [replace(d, depends_on=tuple(dep for dep in d.depends_on if dep in viable_ids)) for d in viable]
    notes = [f"Omitted '{match_id}': groups too small to produce its participants" for match_id in dropped]
    return kept, notes


def _map_group_keys(
    definitions: List[BracketMatchDefinition], group_keys: List[str]
) -> List[BracketMatchDefinition]:
    by_label = {group_label_for_index(i): key for i, key in enumerate(group_keys)}

    def _map(slot: TeamSlot) -> TeamSlot:
        if isinstance(slot, GroupStanding) and slot.group in by_label:
            return GroupStanding(group=by_label[slot.group], position=slot.position)
        return slot

    return [replace(d, team_a=_map(d.team_a), team_b=_map(d.team_b)) for d in definitions]


# =============================================================================
# Entry point
# =============================================================================


def build_bracket_plan(
    finals: FinalsConfig,
    number_of_groups: int,
    group_sizes: Optional[Dict[str, int]] = None,
) -> BracketPlan:
    """
    Expand a finals preset into bracket match definitions.

    Args:
        finals: Finals configuration (preset + parallel flags)
        number_of_groups: Number of groups in the group stage
        group_sizes: Optional canonical group key -> team count, in group
                     order. When given, the i-th group of the preset is
                     mapped onto the i-th key and unproducible matches are
                     omitted.
    """
    preset, notes = effective_preset(finals.preset, number_of_groups)
    plan = BracketPlan(requested_preset=finals.preset, effective_preset=preset, notes=notes)
    if preset == "none":
        return plan

    definitions = _GENERATORS[preset](number_of_groups)
    if group_sizes is not None:
        definitions = _map_group_keys(definitions, list(group_sizes))
        definitions, dropped_notes = _drop_unproducible(definitions, group_sizes)
        plan.notes.extend(dropped_notes)

    plan.definitions = definitions
    for note in plan.notes:
        logger.info("Bracket plan: %s", note)
    return plan


def is_parallel_allowed(definition: BracketMatchDefinition, finals: FinalsConfig) -> bool:
    """Whether matches of this definition's stage may share a slot across fields."""
    if definition.stage == "final":
        return False
    if definition.stage == "semifinal":
        return finals.parallel_semifinals
    if definition.stage == "quarterfinal":
        return finals.parallel_quarterfinals
    if definition.stage == "roundOf16":
        return finals.parallel_round_of16
    return True
