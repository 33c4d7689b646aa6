"""
Tournament Domain Model — immutable inputs and outputs of the core services.

The schedule generator, standings calculator and bracket resolver all work on
these types. Nothing here touches the database; the SQLModel tables in
``tourneyplan.models`` are converted to and from these types at the edge
(see ``tourneyplan.services.tournament_store``).

Configuration objects are pydantic models so they can be validated once at
the boundary and stored as JSON. Runtime records (teams, matches, standings)
are frozen dataclasses: every operation returns a new value instead of
mutating a shared list.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tourneyplan.utils.placeholders import TeamSlot, is_placeholder

# =============================================================================
# Vocabulary
# =============================================================================

GroupSystem = Literal["roundRobin", "groupsAndFinals"]
FinalsPreset = Literal["none", "final-only", "top-4", "top-8", "top-16", "all-places"]
FinalType = Literal["final", "thirdPlace", "fifthSixth", "seventhEighth"]
CriterionId = Literal["points", "goalDifference", "goalsFor", "directComparison"]

DEFAULT_PLACEMENT_ORDER: Tuple[str, ...] = ("points", "goalDifference", "goalsFor", "directComparison")


# =============================================================================
# Configuration (validated at the boundary)
# =============================================================================
#
# Fields accept snake_case or the camelCase keys used by the wizard and
# import files ("numberOfFields", "minRestSlots", "finalsConfig", ...).


class PointSystem(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    win: float = 3
    draw: float = 1
    loss: float = 0


class PlacementCriterion(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: CriterionId
    enabled: bool = True
    label: Optional[str] = None


def default_placement_logic() -> List[PlacementCriterion]:
    return [PlacementCriterion(id=c) for c in DEFAULT_PLACEMENT_ORDER]


class FinalsConfig(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    preset: FinalsPreset = "none"
    parallel_semifinals: bool = True
    parallel_quarterfinals: bool = True
    parallel_round_of16: bool = True


class TournamentConfig(BaseModel):
    """Everything the core needs to know about how a tournament is played."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    group_system: GroupSystem = "roundRobin"
    number_of_groups: int = Field(default=1, ge=1)
    number_of_fields: int = 1
    start_time: datetime = Field(default_factory=lambda: datetime(2026, 1, 1, 9, 0))

    group_phase_game_duration: int = Field(default=10, ge=1)
    group_phase_break_duration: int = Field(default=0, ge=0)
    final_round_game_duration: Optional[int] = Field(default=None, ge=1)
    final_round_break_duration: Optional[int] = Field(default=None, ge=0)
    break_between_phases: int = Field(default=0, ge=0)

    min_rest_slots: int = Field(default=1, ge=0)

    finals: FinalsConfig = Field(default_factory=FinalsConfig)
    point_system: PointSystem = Field(default_factory=PointSystem)
    placement_logic: List[PlacementCriterion] = Field(default_factory=default_placement_logic)

    @model_validator(mode="before")
    @classmethod
    def accept_flat_finals(cls, data):
        # {"finalsConfig": {...}} or a flat {"finalsPreset": "top-4"}
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "finalsConfig" in data and "finals" not in data:
            data["finals"] = data.pop("finalsConfig")
        if "finalsPreset" in data:
            finals = data.get("finals") or {}
            if isinstance(finals, BaseModel):
                finals = finals.model_dump()
            finals = dict(finals)
            finals.setdefault("preset", data.pop("finalsPreset"))
            data["finals"] = finals
        return data

    @field_validator("placement_logic")
    @classmethod
    def validate_unique_criteria(cls, v):
        ids = [c.id for c in v]
        if len(ids) != len(set(ids)):
            raise ValueError("placement_logic criteria must be unique")
        return v

    @model_validator(mode="after")
    def validate_groups(self):
        if self.group_system == "roundRobin" and self.number_of_groups != 1:
            raise ValueError("roundRobin tournaments have exactly one group")
        return self

    # Final round falls back to group phase timing when not configured
    @property
    def final_game_duration(self) -> int:
        if self.final_round_game_duration is not None:
            return self.final_round_game_duration
        return self.group_phase_game_duration

    @property
    def final_break_duration(self) -> int:
        if self.final_round_break_duration is not None:
            return self.final_round_break_duration
        return self.group_phase_break_duration

    @property
    def has_finals(self) -> bool:
        return self.group_system == "groupsAndFinals" and self.finals.preset != "none"


# =============================================================================
# Runtime records
# =============================================================================


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    group: Optional[str] = None


@dataclass(frozen=True)
class Match:
    """One scheduled game. ``team_a``/``team_b`` are parsed team slots."""

    id: str
    round: int
    field: int
    team_a: TeamSlot
    team_b: TeamSlot
    slot: Optional[int] = None
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    group: Optional[str] = None
    is_final: Optional[bool] = None  # None: not stated (group match)
    final_type: Optional[FinalType] = None
    label: Optional[str] = None
    scheduled_time: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.score_a is not None and self.score_b is not None

    @property
    def is_group_match(self) -> bool:
        return not self.is_final and self.group is not None

    @property
    def has_placeholder(self) -> bool:
        return is_placeholder(self.team_a) or is_placeholder(self.team_b)

    def with_score(self, score_a: Optional[int], score_b: Optional[int]) -> "Match":
        return replace(self, score_a=score_a, score_b=score_b)


@dataclass(frozen=True)
class Standing:
    team: Team
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: float = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


@dataclass(frozen=True)
class TournamentState:
    """The tournament aggregate handed between the core services.

    ``version`` is bumped by the persistence layer on each write and lets the
    HTTP layer reject stale updates.
    """

    config: TournamentConfig
    teams: Tuple[Team, ...]
    matches: Tuple[Match, ...] = ()
    version: int = 0

    def match_by_id(self) -> Dict[str, Match]:
        return {m.id: m for m in self.matches}

    def with_matches(self, matches) -> "TournamentState":
        return replace(self, matches=tuple(matches))


# =============================================================================
# Schedule output
# =============================================================================


@dataclass(frozen=True)
class Phase:
    name: str  # groupStage | roundOf16 | quarterfinal | semifinal | final
    label: str
    match_ids: Tuple[str, ...]
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class Schedule:
    matches: Tuple[Match, ...]
    phases: Tuple[Phase, ...]
    start_time: datetime
    end_time: datetime
    total_duration: int  # minutes
    notes: Tuple[str, ...] = field(default_factory=tuple)
