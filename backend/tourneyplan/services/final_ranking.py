"""
Tournament placements from decided bracket matches.

final -> 1/2, thirdPlace -> 3/4, fifthSixth -> 5/6, seventhEighth -> 7/8.
The ranks of a placement match are reserved as soon as the match exists:
while it is undecided its concrete participants are listed as pending at
the top of that range, and group-stage ranks start after every reserved
range. Teams not placed by a bracket match follow in overall group-stage
order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from tourneyplan.services.standings import TeamLookup, calculate
from tourneyplan.services.tournament_model import Match, Team, TournamentState

FINAL_TYPE_RANKS: Dict[str, tuple] = {
    "final": (1, 2),
    "thirdPlace": (3, 4),
    "fifthSixth": (5, 6),
    "seventhEighth": (7, 8),
}

FINAL_TYPE_LABELS: Dict[str, str] = {
    "final": "Final",
    "thirdPlace": "Third place",
    "fifthSixth": "5th place",
    "seventhEighth": "7th place",
}


@dataclass(frozen=True)
class FinalPlacement:
    rank: int
    team: Team
    decided_by: str  # playoff | pending | groupStage
    match_label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "team_id": self.team.id,
            "team_name": self.team.name,
            "decided_by": self.decided_by,
            "match_label": self.match_label,
        }


@dataclass
class FinalsPlacementResult:
    placements: List[FinalPlacement] = field(default_factory=list)
    pending: List[FinalPlacement] = field(default_factory=list)
    reserved_ranks: int = 0
    completed_finals_count: int = 0
    total_finals_count: int = 0

    @property
    def all_finals_completed(self) -> bool:
        return self.total_finals_count > 0 and self.completed_finals_count == self.total_finals_count

    @property
    def playoff_status(self) -> str:
        if self.completed_finals_count == 0:
            return "not-started"
        if self.all_finals_completed:
            return "completed"
        return "in-progress"


def _winner_loser(match: Match, lookup: TeamLookup):
    if not match.is_complete or match.score_a == match.score_b:
        return None
    team_a = lookup.find(match.team_a)
    team_b = lookup.find(match.team_b)
    if team_a is None or team_b is None:
        return None
    if match.score_a > match.score_b:
        return team_a, team_b
    return team_b, team_a


def calculate_finals_placement(teams: Sequence[Team], matches: Sequence[Match]) -> FinalsPlacementResult:
    """
    Placements decided by completed, decisive bracket matches.

    Concrete participants of placement matches that are not decided yet end
    up in ``pending`` with the best rank of the match's range.
    """
    finals = [m for m in matches if m.is_final]
    completed = [m for m in finals if m.is_complete]
    result = FinalsPlacementResult(completed_finals_count=len(completed), total_finals_count=len(finals))

    lookup = TeamLookup(teams)
    placed = set()
    for final_type, (winner_rank, loser_rank) in FINAL_TYPE_RANKS.items():
        match = next((m for m in finals if m.final_type == final_type), None)
        if match is None:
            continue
        result.reserved_ranks = max(result.reserved_ranks, loser_rank)
        label = FINAL_TYPE_LABELS[final_type]

        outcome = _winner_loser(match, lookup)
        if outcome is None:
            for side in (match.team_a, match.team_b):
                team = lookup.find(side)
                if team is None or team.id in placed:
                    continue
                result.pending.append(
                    FinalPlacement(rank=winner_rank, team=team, decided_by="pending", match_label=label)
                )
                placed.add(team.id)
            continue

        for team, rank in zip(outcome, (winner_rank, loser_rank)):
            if team.id in placed:
                continue
            result.placements.append(FinalPlacement(rank=rank, team=team, decided_by="playoff", match_label=label))
            placed.add(team.id)

    result.placements.sort(key=lambda p: p.rank)
    return result


def merged_final_ranking(tournament: TournamentState) -> Dict[str, Any]:
    """
    Complete ranking: playoff placements and pending finalists first (by
    rank), then the remaining teams in overall group-stage standings order.
    """
    finals_result = calculate_finals_placement(tournament.teams, tournament.matches)
    ranking: List[FinalPlacement] = sorted(finals_result.placements + finals_result.pending, key=lambda p: p.rank)
    placed = {p.team.id for p in ranking}
    next_rank = max([finals_result.reserved_ranks] + [p.rank for p in ranking]) + 1

    for standing in calculate(tournament.teams, tournament.matches, tournament.config):
        if standing.team.id in placed:
            continue
        ranking.append(FinalPlacement(rank=next_rank, team=standing.team, decided_by="groupStage"))
        placed.add(standing.team.id)
        next_rank += 1

    return {
        "ranking": [p.to_dict() for p in ranking],
        "playoff_status": finals_result.playoff_status,
        "completed_finals_count": finals_result.completed_finals_count,
        "total_finals_count": finals_result.total_finals_count,
    }
