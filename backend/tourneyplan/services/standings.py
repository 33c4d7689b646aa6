"""
Standings Calculator — ranked group (or overall) tables from match results.

Pure function of (teams, matches, config). Bracket matches never count. Only
matches with both scores present contribute.

Ordering applies the enabled placement criteria in configured order as a
chain of stable refinements: teams start in input order inside one tied
bucket, and each criterion splits the buckets that are still tied. Teams
left tied after the last criterion keep their input order.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from tourneyplan.services.tournament_model import Match, Standing, Team, TournamentConfig
from tourneyplan.utils.placeholders import Resolved, canonical_group_key


# =============================================================================
# Team lookup
# =============================================================================


class TeamLookup:
    """Maps a match-side reference (team id or, for imported data, team name) to a Team."""

    def __init__(self, teams: Iterable[Team]):
        self.by_id: Dict[str, Team] = {}
        self.by_name: Dict[str, Team] = {}
        for team in teams:
            self.by_id[team.id] = team
            self.by_name.setdefault(team.name, team)

    def find(self, slot) -> Optional[Team]:
        if not isinstance(slot, Resolved):
            return None
        return self.by_id.get(slot.team_id) or self.by_name.get(slot.team_id)


def filter_group_matches(matches: Iterable[Match], group: Optional[str] = None) -> List[Match]:
    """Non-bracket matches, optionally restricted to one group (canonical key match)."""
    key = canonical_group_key(group) if group is not None else None
    result = []
    for m in matches:
        if m.is_final:
            continue
        if key is not None and canonical_group_key(m.group) != key:
            continue
        result.append(m)
    return result


# =============================================================================
# Tally
# =============================================================================


def _tally(
    teams: Sequence[Team], matches: Sequence[Match], lookup: TeamLookup, config: TournamentConfig
) -> List[Standing]:
    stats: Dict[str, Standing] = {t.id: Standing(team=t) for t in teams}
    ps = config.point_system

    for m in matches:
        if not m.is_complete:
            continue
        team_a = lookup.find(m.team_a)
        team_b = lookup.find(m.team_b)
        if team_a is None or team_b is None or team_a.id not in stats or team_b.id not in stats:
            continue

        for team, scored, conceded in ((team_a, m.score_a, m.score_b), (team_b, m.score_b, m.score_a)):
            s = stats[team.id]
            if scored > conceded:
                outcome = {"won": s.won + 1, "points": s.points + ps.win}
            elif scored == conceded:
                outcome = {"drawn": s.drawn + 1, "points": s.points + ps.draw}
            else:
                outcome = {"lost": s.lost + 1, "points": s.points + ps.loss}
            stats[team.id] = replace(
                s,
                played=s.played + 1,
                goals_for=s.goals_for + scored,
                goals_against=s.goals_against + conceded,
                **outcome,
            )

    return [stats[t.id] for t in teams]


# =============================================================================
# Tie-break chain
# =============================================================================


def _head_to_head(
    a: Standing, b: Standing, matches: Sequence[Match], lookup: TeamLookup, config: TournamentConfig
) -> int:
    """
    Compare two teams on their completed direct matches.

    Mini table: points (configured point system), then goal difference, then
    goals scored. Returns > 0 if ``a`` ranks higher, < 0 if ``b`` does, 0 if
    undecided or the teams never met.
    """
    ps = config.point_system
    a_points = b_points = 0.0
    a_goals = b_goals = 0
    met = False

    for m in matches:
        if not m.is_complete:
            continue
        team_a = lookup.find(m.team_a)
        team_b = lookup.find(m.team_b)
        if team_a is None or team_b is None:
            continue
        if (team_a.id, team_b.id) == (a.team.id, b.team.id):
            a_score, b_score = m.score_a, m.score_b
        elif (team_a.id, team_b.id) == (b.team.id, a.team.id):
            a_score, b_score = m.score_b, m.score_a
        else:
            continue

        met = True
        a_goals += a_score
        b_goals += b_score
        if a_score > b_score:
            a_points += ps.win
            b_points += ps.loss
        elif a_score < b_score:
            a_points += ps.loss
            b_points += ps.win
        else:
            a_points += ps.draw
            b_points += ps.draw

    if not met:
        return 0
    for left, right in ((a_points, b_points), (a_goals - b_goals, b_goals - a_goals), (a_goals, b_goals)):
        if left != right:
            return 1 if left > right else -1
    return 0


_SORT_KEYS: Dict[str, Callable[[Standing], float]] = {
    "points": lambda s: s.points,
    "goalDifference": lambda s: s.goal_difference,
    "goalsFor": lambda s: s.goals_for,
}


def _split_by_key(bucket: List[Standing], key: Callable[[Standing], float]) -> List[List[Standing]]:
    ordered = sorted(bucket, key=key, reverse=True)  # stable
    result: List[List[Standing]] = []
    for s in ordered:
        if result and key(result[-1][0]) == key(s):
            result[-1].append(s)
        else:
            result.append([s])
    return result


def _split_by_direct_comparison(
    bucket: List[Standing], matches: Sequence[Match], lookup: TeamLookup, config: TournamentConfig
) -> List[List[Standing]]:
    # Only a tie between exactly two teams is decided head-to-head
    if len(bucket) != 2:
        return [bucket]
    a, b = bucket
    cmp = _head_to_head(a, b, matches, lookup, config)
    if cmp > 0:
        return [[a], [b]]
    if cmp < 0:
        return [[b], [a]]
    return [bucket]


def sort_standings(
    standings: List[Standing],
    matches: Sequence[Match],
    config: TournamentConfig,
    lookup: Optional[TeamLookup] = None,
) -> List[Standing]:
    """Order standings by the enabled placement criteria, in configured order."""
    if lookup is None:
        lookup = TeamLookup(s.team for s in standings)

    buckets: List[List[Standing]] = [list(standings)] if standings else []
    for criterion in config.placement_logic:
        if not criterion.enabled:
            continue
        refined: List[List[Standing]] = []
        for bucket in buckets:
            if len(bucket) < 2:
                refined.append(bucket)
            elif criterion.id == "directComparison":
                refined.extend(_split_by_direct_comparison(bucket, matches, lookup, config))
            else:
                refined.extend(_split_by_key(bucket, _SORT_KEYS[criterion.id]))
        buckets = refined

    return [s for bucket in buckets for s in bucket]


# =============================================================================
# Entry point
# =============================================================================


def _teams_for_group(teams: Sequence[Team], matches: Sequence[Match], group: str, lookup: TeamLookup) -> List[Team]:
    """Teams labelled with the group, plus teams that only appear in its matches."""
    key = canonical_group_key(group)
    selected: List[Team] = [t for t in teams if canonical_group_key(t.group) == key]
    seen = {t.id for t in selected}
    referenced: set = set()
    for m in matches:
        for side in (m.team_a, m.team_b):
            team = lookup.find(side)
            if team is not None:
                referenced.add(team.id)
    for t in teams:
        if t.id in referenced and t.id not in seen:
            selected.append(t)
            seen.add(t.id)
    return selected


def calculate(
    teams: Sequence[Team],
    matches: Sequence[Match],
    config: TournamentConfig,
    group: Optional[str] = None,
) -> List[Standing]:
    """
    Ranked standings, best first.

    Args:
        teams: Tournament teams (their order is the final tie-break)
        matches: Any matches; bracket matches and incomplete matches are ignored
        config: Supplies point_system and placement_logic
        group: Optional group label ("A", "Gruppe A", ...); restricts teams and matches
    """
    lookup = TeamLookup(teams)
    relevant = filter_group_matches(matches, group)
    selected = list(teams) if group is None else _teams_for_group(teams, relevant, group, lookup)

    standings = _tally(selected, relevant, lookup, config)
    return sort_standings(standings, relevant, config, lookup)


def group_keys(matches: Iterable[Match]) -> List[str]:
    """Canonical keys of all groups that have group-stage matches, in key order."""
    keys = {canonical_group_key(m.group) for m in matches if not m.is_final and m.group}
    return sorted(keys, key=lambda k: (len(k), k))

