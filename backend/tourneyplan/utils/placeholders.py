"""
Canonical parser for team references and group keys.

A match side is either a concrete team (``Resolved``) or a symbolic
placeholder. Placeholders travel as strings in exchanged match records
("group-a-1st", "bestSecond", "semi1-winner", "qf2-loser", "TBD") and are
parsed exactly once, here, into the tagged union below. Everything past this
module works with the parsed values only.

Group labels show up as "A", "a" or "Gruppe A" depending on where the data
came from; ``canonical_group_key`` is the single place that folds them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

# =============================================================================
# Tagged union
# =============================================================================


@dataclass(frozen=True)
class Resolved:
    team_id: str


@dataclass(frozen=True)
class GroupStanding:
    group: str  # canonical key, e.g. "A"
    position: int  # 1-based


@dataclass(frozen=True)
class BestSecond:
    pass


@dataclass(frozen=True)
class WinnerOf:
    match_id: str


@dataclass(frozen=True)
class LoserOf:
    match_id: str


@dataclass(frozen=True)
class Unknown:
    pass


Placeholder = Union[GroupStanding, BestSecond, WinnerOf, LoserOf, Unknown]
TeamSlot = Union[Resolved, GroupStanding, BestSecond, WinnerOf, LoserOf, Unknown]

UNKNOWN_TOKEN = "TBD"
BEST_SECOND_TOKEN = "bestSecond"

_GROUP_STANDING_RE = re.compile(r"^group-([a-z0-9]+)-(\d+)(?:st|nd|rd|th)$", re.IGNORECASE)
_BRACKET_RE = re.compile(r"^(.+)-(winner|loser)$")
_GROUP_PREFIX_RE = re.compile(r"^(?:gruppe|group)\s+", re.IGNORECASE)


# =============================================================================
# Group keys
# =============================================================================


def canonical_group_key(label: Optional[str]) -> Optional[str]:
    """
    Fold a group label to its canonical key.

    - None or "" -> None
    - "A", "a", " A " -> "A"
    - "Gruppe A", "Group a" -> "A"
    """
    if label is None:
        return None
    s = str(label).strip()
    if not s:
        return None
    s = _GROUP_PREFIX_RE.sub("", s).strip()
    return s.upper()


def group_label_for_index(index: int) -> str:
    """0 -> "A", 1 -> "B", ... 25 -> "Z", 26 -> "AA"."""
    label = ""
    n = index
    while True:
        label = chr(ord("A") + n % 26) + label
        n = n // 26 - 1
        if n < 0:
            return label


# =============================================================================
# Parsing / formatting
# =============================================================================


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def parse_placeholder(token: str) -> Optional[Placeholder]:
    """Parse a placeholder token. Returns None if the string is not one."""
    if token is None:
        return None
    s = token.strip()
    if s == UNKNOWN_TOKEN:
        return Unknown()
    if s == BEST_SECOND_TOKEN:
        return BestSecond()

    m = _GROUP_STANDING_RE.match(s)
    if m:
        return GroupStanding(group=canonical_group_key(m.group(1)), position=int(m.group(2)))

    m = _BRACKET_RE.match(s)
    if m:
        if m.group(2) == "winner":
            return WinnerOf(match_id=m.group(1))
        return LoserOf(match_id=m.group(1))

    return None


def parse_team_ref(
    ref: str,
    team_ids: Iterable[str] = (),
    id_by_name: Optional[dict] = None,
) -> TeamSlot:
    """
    Parse a team reference from an exchanged match record.

    Known team ids win over everything, then team display names (normalized
    to the id), then placeholder tokens. Any other string is kept as a
    concrete id so that imported data referring to a removed team does not
    turn back into a placeholder.
    """
    if ref is None or not str(ref).strip():
        return Unknown()
    s = str(ref).strip()

    if s in set(team_ids):
        return Resolved(s)
    if id_by_name and s in id_by_name:
        return Resolved(id_by_name[s])

    placeholder = parse_placeholder(s)
    if placeholder is not None:
        return placeholder
    return Resolved(s)


def format_team_slot(slot: TeamSlot) -> str:
    """Inverse of ``parse_team_ref`` for the exchanged record format."""
    if isinstance(slot, Resolved):
        return slot.team_id
    if isinstance(slot, GroupStanding):
        return f"group-{slot.group.lower()}-{ordinal(slot.position)}"
    if isinstance(slot, BestSecond):
        return BEST_SECOND_TOKEN
    if isinstance(slot, WinnerOf):
        return f"{slot.match_id}-winner"
    if isinstance(slot, LoserOf):
        return f"{slot.match_id}-loser"
    return UNKNOWN_TOKEN


def is_placeholder(slot: TeamSlot) -> bool:
    return not isinstance(slot, Resolved)


def team_id_of(slot: TeamSlot) -> Optional[str]:
    if isinstance(slot, Resolved):
        return slot.team_id
    return None
