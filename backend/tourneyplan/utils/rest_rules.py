"""
Rest Rules — per-team rest enforcement in time slots.

A team that played in slot ``s`` may play again at the earliest in slot
``s + min_rest_slots + 1``: ``min_rest_slots`` is the number of empty slots
a team sits out between two of its matches. ``min_rest_slots = 0`` allows
back-to-back matches but never two matches in the same slot.

Placeholder sides (team not known yet) are skipped by the rest check.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


# ============================================================================
# Team Rest State Tracking
# ============================================================================


class TeamRestState:
    """Tracks the slots a single team has been scheduled in"""

    def __init__(self):
        self.slots: List[int] = []

    def update(self, slot: int):
        """Record a new match slot for this team"""
        self.slots.append(slot)

    def has_previous_match(self) -> bool:
        return bool(self.slots)

    @property
    def last_slot(self) -> Optional[int]:
        return max(self.slots) if self.slots else None


class RestStateTracker:
    """Tracks rest state for all teams during slot assignment"""

    def __init__(self, min_rest_slots: int):
        self.min_rest_slots = min_rest_slots
        self.team_states: Dict[str, TeamRestState] = {}

    def get_or_create_state(self, team_id: str) -> TeamRestState:
        if team_id not in self.team_states:
            self.team_states[team_id] = TeamRestState()
        return self.team_states[team_id]

    def get_team_state(self, team_id: str) -> Optional[TeamRestState]:
        return self.team_states.get(team_id)

    def update_team_state(self, team_id: str, slot: int):
        self.get_or_create_state(team_id).update(slot)


# ============================================================================
# Rest Compatibility Check
# ============================================================================


@dataclass
class RestViolation:
    team_id: str
    slot: int
    conflicting_slot: int
    required_gap: int
    actual_gap: int


def check_rest_compatibility(
    slot: int, team_ids: Tuple[Optional[str], ...], rest_tracker: RestStateTracker
) -> Tuple[bool, List[RestViolation]]:
    """
    Check whether all given teams may play in ``slot``.

    The check runs in both directions: a match spilled into a later slot can
    leave room for a team's next match in an earlier slot, so every
    already-scheduled slot of the team is compared, not only the last one.

    Returns:
        (is_compatible, violations)
    """
    required_gap = rest_tracker.min_rest_slots + 1
    violations: List[RestViolation] = []

    for team_id in team_ids:
        if team_id is None:
            continue
        state = rest_tracker.get_team_state(team_id)
        if not state or not state.has_previous_match():
            continue
        for other in state.slots:
            gap = abs(slot - other)
            if gap < required_gap:
                violations.append(
                    RestViolation(
                        team_id=team_id,
                        slot=slot,
                        conflicting_slot=other,
                        required_gap=required_gap,
                        actual_gap=gap,
                    )
                )

    return len(violations) == 0, violations


def earliest_allowed_slot(team_ids: Tuple[Optional[str], ...], rest_tracker: RestStateTracker) -> int:
    """Earliest slot after every team's last match that satisfies rest."""
    earliest = 0
    for team_id in team_ids:
        if team_id is None:
            continue
        state = rest_tracker.get_team_state(team_id)
        if state and state.last_slot is not None:
            earliest = max(earliest, state.last_slot + rest_tracker.min_rest_slots + 1)
    return earliest
