"""
Row <-> TournamentState conversion for tournaments, teams and matches.

The core services are pure; this module is the only place that reads or
writes tournament rows. Every write bumps ``Tournament.version`` so that
routes can reject updates based on a stale read.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List

from sqlmodel import Session, select

from tourneyplan.models.match import Match as MatchRow
from tourneyplan.models.team import Team as TeamRow
from tourneyplan.models.tournament import Tournament
from tourneyplan.services.tournament_model import Match, Schedule, Team, TournamentConfig, TournamentState
from tourneyplan.utils.match_records import match_from_record
from tourneyplan.utils.placeholders import format_team_slot

logger = logging.getLogger(__name__)


def load_config(tournament: Tournament) -> TournamentConfig:
    return TournamentConfig.model_validate(tournament.config_json or {})


def load_teams(session: Session, tournament_id: int) -> List[Team]:
    rows = session.exec(select(TeamRow).where(TeamRow.tournament_id == tournament_id).order_by(TeamRow.id)).all()
    return [Team(id=r.team_key, name=r.name, group=r.group_label) for r in rows]


def _row_to_record(row: MatchRow) -> Dict[str, Any]:
    return {
        "id": row.match_key,
        "round": row.round_number,
        "field": row.field_number,
        "slot": row.slot_index,
        "teamA": row.team_a,
        "teamB": row.team_b,
        "scoreA": row.score_a,
        "scoreB": row.score_b,
        "group": row.group_label,
        "isFinal": row.is_final,
        "finalType": row.final_type,
        "label": row.label,
    }


def _match_rows(session: Session, tournament_id: int) -> List[MatchRow]:
    return session.exec(
        select(MatchRow).where(MatchRow.tournament_id == tournament_id).order_by(MatchRow.id)
    ).all()


def load_state(session: Session, tournament: Tournament) -> TournamentState:
    """Build the immutable aggregate from the tournament's rows."""
    teams = load_teams(session, tournament.id)
    matches: List[Match] = []
    for row in _match_rows(session, tournament.id):
        match = match_from_record(_row_to_record(row), teams)
        matches.append(replace(match, scheduled_time=row.scheduled_time))
    return TournamentState(
        config=load_config(tournament),
        teams=tuple(teams),
        matches=tuple(matches),
        version=tournament.version,
    )


def _bump(tournament: Tournament) -> None:
    tournament.version += 1
    tournament.updated_at = datetime.utcnow()


def save_schedule(session: Session, tournament: Tournament, schedule: Schedule) -> None:
    """Replace all match rows of the tournament with a freshly generated schedule."""
    for row in _match_rows(session, tournament.id):
        session.delete(row)
    session.flush()

    for m in schedule.matches:
        session.add(
            MatchRow(
                tournament_id=tournament.id,
                match_key=m.id,
                round_number=m.round,
                field_number=m.field,
                slot_index=m.slot,
                team_a=format_team_slot(m.team_a),
                team_b=format_team_slot(m.team_b),
                score_a=m.score_a,
                score_b=m.score_b,
                group_label=m.group,
                is_final=m.is_final,
                final_type=m.final_type,
                label=m.label,
                scheduled_time=m.scheduled_time,
            )
        )

    tournament.schedule_generated = True
    tournament.schedule_notes = list(schedule.notes)
    _bump(tournament)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    logger.info("Saved schedule for tournament %s: %d matches", tournament.id, len(schedule.matches))


def save_state(session: Session, tournament: Tournament, state: TournamentState) -> int:
    """
    Persist team sides and scores of ``state`` that differ from the stored rows.

    Returns:
        Number of match rows updated (the version is bumped only if > 0)
    """
    by_key = {m.id: m for m in state.matches}
    changed = 0
    for row in _match_rows(session, tournament.id):
        match = by_key.get(row.match_key)
        if match is None:
            continue
        team_a = format_team_slot(match.team_a)
        team_b = format_team_slot(match.team_b)
        if (row.team_a, row.team_b, row.score_a, row.score_b) == (team_a, team_b, match.score_a, match.score_b):
            continue
        row.team_a = team_a
        row.team_b = team_b
        row.score_a = match.score_a
        row.score_b = match.score_b
        session.add(row)
        changed += 1

    if changed:
        _bump(tournament)
        session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return changed
