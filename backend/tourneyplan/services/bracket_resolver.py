"""
Bracket Resolver — replaces bracket placeholders with concrete teams.

Resolution rules per placeholder:
- GroupStanding(group, n): every match of the group is scored and its
  standings hold at least n teams
- BestSecond: every group is complete; the second place of the first group
  (in key order) that has one is taken
- WinnerOf / LoserOf(match): the referenced match has two concrete teams and
  a decisive score; a draw blocks resolution
- Unknown: never

One call walks the bracket rounds in ascending order. Inside a round every
side is evaluated against the same snapshot and the results are applied
together, so the outcome does not depend on match order within a round;
later rounds then see the earlier rounds' results. A concrete side is never
touched again, and scores or group matches are never modified.

Nothing here raises: an unresolvable side simply stays a placeholder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from tourneyplan.services.standings import calculate, group_keys
from tourneyplan.services.tournament_model import Match, Standing, TournamentState
from tourneyplan.utils.placeholders import (
    BestSecond,
    GroupStanding,
    LoserOf,
    Resolved,
    TeamSlot,
    WinnerOf,
    canonical_group_key,
    format_team_slot,
)

logger = logging.getLogger(__name__)

MSG_GROUP_PHASE_INCOMPLETE = "group phase not yet complete"
MSG_ALREADY_RESOLVED = "bracket already fully resolved"
MSG_NOTHING_RESOLVABLE = "no bracket matches could be resolved"
MSG_NO_BRACKET = "tournament has no bracket matches"


@dataclass
class ResolutionResult:
    """Outcome of a resolution pass; ``tournament`` is the new state."""

    resolved: bool
    updated_count: int
    updated_match_ids: List[str]
    message: str
    tournament: TournamentState

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolved": self.resolved,
            "updated_count": self.updated_count,
            "updated_match_ids": list(self.updated_match_ids),
            "message": self.message,
        }


# =============================================================================
# Queries
# =============================================================================


def _group_matches(tournament: TournamentState) -> List[Match]:
    return [m for m in tournament.matches if not m.is_final]


def _bracket_matches(tournament: TournamentState) -> List[Match]:
    return [m for m in tournament.matches if m.is_final]


def is_group_phase_complete(tournament: TournamentState) -> bool:
    """True iff there is at least one group match and every group match is scored."""
    matches = _group_matches(tournament)
    return bool(matches) and all(m.is_complete for m in matches)


def is_group_complete(tournament: TournamentState, group: str) -> bool:
    """
    Every match tagged with the group is scored. A group without matches (a
    single labelled team) is complete as soon as it has a member.
    """
    key = canonical_group_key(group)
    matches = [m for m in _group_matches(tournament) if canonical_group_key(m.group) == key]
    if matches:
        return all(m.is_complete for m in matches)
    return any(canonical_group_key(t.group) == key for t in tournament.teams)


def needs_resolution(tournament: TournamentState) -> bool:
    """True iff any bracket match still holds a placeholder on either side."""
    return any(m.has_placeholder for m in _bracket_matches(tournament))


# =============================================================================
# Slot resolution
# =============================================================================


class _StandingsCache:
    """Group standings computed at most once per pass."""

    def __init__(self, tournament: TournamentState):
        self.tournament = tournament
        self._cache: Dict[str, List[Standing]] = {}

    def get(self, group: str) -> List[Standing]:
        if group not in self._cache:
            self._cache[group] = calculate(
                self.tournament.teams, self.tournament.matches, self.tournament.config, group=group
            )
        return self._cache[group]


def _resolve_group_standing(
    slot: GroupStanding, tournament: TournamentState, standings: _StandingsCache
) -> Optional[Resolved]:
    if not is_group_complete(tournament, slot.group):
        return None
    table = standings.get(slot.group)
    if slot.position < 1 or len(table) < slot.position:
        return None
    return Resolved(table[slot.position - 1].team.id)


def _resolve_best_second(tournament: TournamentState, standings: _StandingsCache) -> Optional[Resolved]:
    # First second place found, not compared across groups
    if not is_group_phase_complete(tournament):
        return None
    for key in group_keys(tournament.matches):
        table = standings.get(key)
        if len(table) >= 2:
            return Resolved(table[1].team.id)
    return None


def _resolve_outcome(slot: TeamSlot, snapshot: Dict[str, Match]) -> Optional[Resolved]:
    ref = snapshot.get(slot.match_id)
    if ref is None or not ref.is_complete:
        return None
    if not (isinstance(ref.team_a, Resolved) and isinstance(ref.team_b, Resolved)):
        return None
    if ref.score_a == ref.score_b:
        return None

    a_won = ref.score_a > ref.score_b
    if isinstance(slot, WinnerOf):
        return ref.team_a if a_won else ref.team_b
    return ref.team_b if a_won else ref.team_a


def resolve_slot(
    slot: TeamSlot,
    tournament: TournamentState,
    snapshot: Dict[str, Match],
    standings: _StandingsCache,
) -> Optional[Resolved]:
    """Concrete team for ``slot`` or None if it cannot be resolved yet."""
    if isinstance(slot, Resolved):
        return slot
    if isinstance(slot, GroupStanding):
        return _resolve_group_standing(slot, tournament, standings)
    if isinstance(slot, BestSecond):
        return _resolve_best_second(tournament, standings)
    if isinstance(slot, (WinnerOf, LoserOf)):
        return _resolve_outcome(slot, snapshot)
    return None


# =============================================================================
# Passes
# =============================================================================


def resolve_pass(tournament: TournamentState) -> ResolutionResult:
    """
    Resolve every bracket placeholder whose prerequisites are met.

    Idempotent: a second call without new scores returns
    ``resolved=False, updated_count=0`` and an unchanged tournament.
    """
    bracket = _bracket_matches(tournament)
    if not bracket:
        return ResolutionResult(False, 0, [], MSG_NO_BRACKET, tournament)
    if not needs_resolution(tournament):
        return ResolutionResult(False, 0, [], MSG_ALREADY_RESOLVED, tournament)

    standings = _StandingsCache(tournament)
    working: Dict[str, Match] = tournament.match_by_id()
    updated_ids: List[str] = []

    for round_num in sorted({m.round for m in bracket}):
        snapshot = dict(working)
        updates: Dict[str, Match] = {}
        for match in bracket:
            if match.round != round_num or not match.has_placeholder:
                continue
            current = snapshot[match.id]
            team_a = resolve_slot(current.team_a, tournament, snapshot, standings) or current.team_a
            team_b = resolve_slot(current.team_b, tournament, snapshot, standings) or current.team_b
            if (team_a, team_b) != (current.team_a, current.team_b):
                updates[match.id] = replace(current, team_a=team_a, team_b=team_b)
                logger.debug(
                    "Resolved %s: %s vs %s -> %s vs %s",
                    match.id,
                    format_team_slot(current.team_a),
                    format_team_slot(current.team_b),
                    format_team_slot(team_a),
                    format_team_slot(team_b),
                )
        working.update(updates)
        updated_ids.extend(updates)

    if not updated_ids:
        message = MSG_NOTHING_RESOLVABLE if is_group_phase_complete(tournament) else MSG_GROUP_PHASE_INCOMPLETE
        return ResolutionResult(False, 0, [], message, tournament)

    new_state = tournament.with_matches(working[m.id] for m in tournament.matches)
    noun = "match" if len(updated_ids) == 1 else "matches"
    message = f"{len(updated_ids)} bracket {noun} resolved"
    logger.info("Bracket resolution: %s (%s)", message, ", ".join(updated_ids))
    return ResolutionResult(True, len(updated_ids), updated_ids, message, new_state)


def auto_resolve_if_ready(tournament: TournamentState) -> Optional[ResolutionResult]:
    """Run a pass only once the group phase is complete and placeholders remain."""
    if not is_group_phase_complete(tournament) or not needs_resolution(tournament):
        return None
    return resolve_pass(tournament)


@dataclass
class BracketStatus:
    group_phase_complete: bool
    needs_resolution: bool
    unresolved_match_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_phase_complete": self.group_phase_complete,
            "needs_resolution": self.needs_resolution,
            "unresolved_match_ids": list(self.unresolved_match_ids),
        }


def bracket_status(tournament: TournamentState) -> BracketStatus:
    return BracketStatus(
        group_phase_complete=is_group_phase_complete(tournament),
        needs_resolution=needs_resolution(tournament),
        unresolved_match_ids=[m.id for m in _bracket_matches(tournament) if m.has_placeholder],
    )
