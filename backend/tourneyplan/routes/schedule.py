"""
Schedule API Routes
Generate the schedule (group stage + bracket skeleton), read it back, export
match records and report fairness warnings.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from tourneyplan.database import get_session
from tourneyplan.services.errors import ScheduleGenerationError
from tourneyplan.services.schedule_fairness import analyze_schedule_fairness
from tourneyplan.services.schedule_generator import generate
from tourneyplan.services.tournament_model import Match
from tourneyplan.services.tournament_store import load_state, save_schedule
from tourneyplan.utils.match_records import matches_to_records
from tourneyplan.utils.placeholders import format_team_slot
from tourneyplan.utils.version_guards import require_expected_version, require_tournament

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class ScheduleGenerateRequest(BaseModel):
    expected_version: Optional[int] = None


class MatchResponse(BaseModel):
    id: str
    round: int
    field: int
    slot: Optional[int] = None
    team_a: str
    team_b: str
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    group: Optional[str] = None
    is_final: bool = False
    final_type: Optional[str] = None
    label: Optional[str] = None
    scheduled_time: Optional[datetime] = None


class PhaseResponse(BaseModel):
    name: str
    label: str
    match_ids: List[str]
    start_time: datetime
    end_time: datetime


class ScheduleGenerateResponse(BaseModel):
    tournament_id: int
    version: int
    start_time: datetime
    end_time: datetime
    total_duration: int
    phases: List[PhaseResponse]
    matches: List[MatchResponse]
    notes: List[str] = []


class ScheduleResponse(BaseModel):
    tournament_id: int
    version: int
    matches: List[MatchResponse]
    notes: List[str] = []


def match_response(m: Match) -> MatchResponse:
    return MatchResponse(
        id=m.id,
        round=m.round,
        field=m.field,
        slot=m.slot,
        team_a=format_team_slot(m.team_a),
        team_b=format_team_slot(m.team_b),
        score_a=m.score_a,
        score_b=m.score_b,
        group=m.group,
        is_final=bool(m.is_final),
        final_type=m.final_type,
        label=m.label,
        scheduled_time=m.scheduled_time,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/tournaments/{tournament_id}/schedule/generate",
    response_model=ScheduleGenerateResponse,
)
def generate_schedule(
    tournament_id: int,
    payload: Optional[ScheduleGenerateRequest] = None,
    session: Session = Depends(get_session),
) -> ScheduleGenerateResponse:
    """
    Generate (or regenerate) the full schedule. Replaces existing matches and
    their scores. Either the whole schedule is stored or nothing is.
    """
    tournament = require_tournament(session, tournament_id)
    require_expected_version(tournament, payload.expected_version if payload else None)

    state = load_state(session, tournament)
    try:
        schedule = generate(state.config, state.teams)
    except ScheduleGenerationError as e:
        raise HTTPException(status_code=400, detail=e.message)

    save_schedule(session, tournament, schedule)
    logger.info("Tournament %s: schedule generated (version %s)", tournament_id, tournament.version)

    return ScheduleGenerateResponse(
        tournament_id=tournament_id,
        version=tournament.version,
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        total_duration=schedule.total_duration,
        phases=[
            PhaseResponse(
                name=p.name,
                label=p.label,
                match_ids=list(p.match_ids),
                start_time=p.start_time,
                end_time=p.end_time,
            )
            for p in schedule.phases
        ],
        matches=[match_response(m) for m in schedule.matches],
        notes=list(schedule.notes),
    )


@router.get("/tournaments/{tournament_id}/schedule", response_model=ScheduleResponse)
def get_schedule(tournament_id: int, session: Session = Depends(get_session)) -> ScheduleResponse:
    """Current matches (with resolved or pending sides and scores)"""
    tournament = require_tournament(session, tournament_id)
    state = load_state(session, tournament)
    return ScheduleResponse(
        tournament_id=tournament_id,
        version=tournament.version,
        matches=[match_response(m) for m in state.matches],
        notes=tournament.schedule_notes or [],
    )


@router.get("/tournaments/{tournament_id}/schedule/export", response_model=List[Dict[str, Any]])
def export_match_records(tournament_id: int, session: Session = Depends(get_session)) -> List[Dict[str, Any]]:
    """Matches in the exchanged record format (camelCase, absent keys omitted)"""
    tournament = require_tournament(session, tournament_id)
    state = load_state(session, tournament)
    return matches_to_records(state.matches)


@router.get("/tournaments/{tournament_id}/schedule/fairness", response_model=Dict[str, Any])
def get_schedule_fairness(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Informational fairness report; warnings never block anything"""
    tournament = require_tournament(session, tournament_id)
    state = load_state(session, tournament)
    if not state.matches:
        raise HTTPException(status_code=404, detail="SCHEDULE_NOT_FOUND: No schedule generated yet")
    return analyze_schedule_fairness(state.matches).to_dict()
