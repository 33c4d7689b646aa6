"""
Informational fairness analysis of a generated schedule.

Checks:
1. Back-to-back: teams playing in two consecutive slots
2. Match count balance: all teams of a group play equally often
3. Home/away balance: |home - away| <= 1 per team

Warnings never block generation or resolution; they are reported only.
Rest is counted in slots sat out between two matches of a team.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from tourneyplan.services.tournament_model import Match
from tourneyplan.utils.placeholders import Resolved

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of a single fairness check."""
    name: str
    passed: bool
    summary: str
    details: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "summary": self.summary,
            "details": self.details[:20],
            "detail_count": len(self.details),
        }


@dataclass
class TeamFairnessStats:
    team_id: str
    match_slots: List[int]
    min_rest: int
    max_rest: int
    avg_rest: float
    field_distribution: Dict[int, int]
    home: int
    away: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "match_slots": self.match_slots,
            "min_rest": self.min_rest,
            "max_rest": self.max_rest,
            "avg_rest": round(self.avg_rest, 2),
            "field_distribution": {str(k): v for k, v in sorted(self.field_distribution.items())},
            "home": self.home,
            "away": self.away,
        }


@dataclass
class FairnessReport:
    teams: List[TeamFairnessStats]
    checks: List[CheckResult]
    global_min_rest: int
    global_max_rest: int
    avg_rest: float

    @property
    def warnings(self) -> List[str]:
        return [c.summary for c in self.checks if not c.passed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "teams": [t.to_dict() for t in self.teams],
            "checks": [c.to_dict() for c in self.checks],
            "warnings": self.warnings,
            "global_min_rest": self.global_min_rest,
            "global_max_rest": self.global_max_rest,
            "avg_rest": round(self.avg_rest, 2),
        }


def analyze_schedule_fairness(matches: Sequence[Match]) -> FairnessReport:
    """Analyze slot, field and home/away distribution of concrete group matches."""
    slots: Dict[str, List[int]] = defaultdict(list)
    fields: Dict[str, Dict[int, int]] = defaultdict(lambda: defaultdict(int))
    home: Dict[str, int] = defaultdict(int)
    away: Dict[str, int] = defaultdict(int)
    group_of: Dict[str, str] = {}

    for m in matches:
        if m.slot is None or not (isinstance(m.team_a, Resolved) and isinstance(m.team_b, Resolved)):
            continue
        for team_id in (m.team_a.team_id, m.team_b.team_id):
            slots[team_id].append(m.slot)
            fields[team_id][m.field] += 1
            if m.group and not m.is_final:
                group_of.setdefault(team_id, m.group)
        home[m.team_a.team_id] += 1
        away[m.team_b.team_id] += 1

    stats: List[TeamFairnessStats] = []
    back_to_back: List[str] = []
    home_away: List[str] = []

    for team_id in sorted(slots):
        team_slots = sorted(slots[team_id])
        rests = [b - a - 1 for a, b in zip(team_slots, team_slots[1:])]
        for a, b in zip(team_slots, team_slots[1:]):
            if b - a == 1:
                back_to_back.append(f"Team {team_id}: slots {a} and {b}")
        if abs(home[team_id] - away[team_id]) > 1:
            home_away.append(f"Team {team_id}: {home[team_id]} home / {away[team_id]} away")
        stats.append(
            TeamFairnessStats(
                team_id=team_id,
                match_slots=team_slots,
                min_rest=min(rests) if rests else 0,
                max_rest=max(rests) if rests else 0,
                avg_rest=sum(rests) / len(rests) if rests else 0.0,
                field_distribution=dict(fields[team_id]),
                home=home[team_id],
                away=away[team_id],
            )
        )

    # Group-stage match counts per team, per group
    counts_by_group: Dict[str, Dict[str, int]] = defaultdict(dict)
    for m in matches:
        if m.is_final or not m.group:
            continue
        for side in (m.team_a, m.team_b):
            if isinstance(side, Resolved):
                counts = counts_by_group[m.group]
                counts[side.team_id] = counts.get(side.team_id, 0) + 1
    uneven = [
        f"Group {group}: between {min(counts.values())} and {max(counts.values())} matches per team"
        for group, counts in sorted(counts_by_group.items())
        if counts and min(counts.values()) != max(counts.values())
    ]

    checks = [
        CheckResult(
            name="back_to_back",
            passed=not back_to_back,
            summary=f"{len(back_to_back)} back-to-back match pair(s)" if back_to_back else "No back-to-back matches",
            details=back_to_back,
        ),
        CheckResult(
            name="match_count_balance",
            passed=not uneven,
            summary="Uneven match count within a group" if uneven else "All teams of a group play equally often",
            details=uneven,
        ),
        CheckResult(
            name="home_away_balance",
            passed=not home_away,
            summary=f"{len(home_away)} team(s) with home/away imbalance" if home_away else "Home/away balanced",
            details=home_away,
        ),
    ]

    all_rests = [t for s in stats for t in (s.min_rest, s.max_rest) if len(s.match_slots) > 1]
    report = FairnessReport(
        teams=stats,
        checks=checks,
        global_min_rest=min(all_rests) if all_rests else 0,
        global_max_rest=max(all_rests) if all_rests else 0,
        avg_rest=(sum(s.avg_rest for s in stats) / len(stats)) if stats else 0.0,
    )
    if report.warnings:
        logger.info("Schedule fairness warnings: %s", "; ".join(report.warnings))
    return report
