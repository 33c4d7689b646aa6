"""
Runtime: score entry and bracket resolution. No schedule mutation.
After every score change the bracket resolver runs; resolved bracket sides
are never reverted.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator
from sqlmodel import Session

from tourneyplan.database import get_session
from tourneyplan.routes.schedule import MatchResponse, match_response
from tourneyplan.services.bracket_resolver import bracket_status, needs_resolution, resolve_pass
from tourneyplan.services.tournament_store import load_state, save_state
from tourneyplan.utils.version_guards import require_expected_version, require_tournament

logger = logging.getLogger(__name__)

router = APIRouter()


class ScoreUpdate(BaseModel):
    score_a: Optional[int] = Field(default=None, ge=0)
    score_b: Optional[int] = Field(default=None, ge=0)
    expected_version: Optional[int] = None

    @model_validator(mode="after")
    def validate_pair(self):
        if (self.score_a is None) != (self.score_b is None):
            raise ValueError("score_a and score_b must both be set or both be null")
        return self


class ResolveRequest(BaseModel):
    expected_version: Optional[int] = None


class ResolutionResponse(BaseModel):
    resolved: bool
    updated_count: int
    updated_match_ids: List[str]
    message: str


class ScoreUpdateResponse(BaseModel):
    match: MatchResponse
    version: int
    resolution: Optional[ResolutionResponse] = None


class ResolveResponse(ResolutionResponse):
    version: int


@router.patch(
    "/tournaments/{tournament_id}/matches/{match_id}/score",
    response_model=ScoreUpdateResponse,
)
def update_match_score(
    tournament_id: int,
    match_id: str,
    payload: ScoreUpdate,
    session: Session = Depends(get_session),
) -> ScoreUpdateResponse:
    """Record (or clear) a score. Bracket placeholders are resolved afterwards."""
    tournament = require_tournament(session, tournament_id)
    require_expected_version(tournament, payload.expected_version)

    state = load_state(session, tournament)
    match = state.match_by_id().get(match_id)
    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")
    if match.has_placeholder and payload.score_a is not None:
        raise HTTPException(
            status_code=409,
            detail=f"MATCH_NOT_READY: Match {match_id} still has an unresolved team",
        )

    updated = match.with_score(payload.score_a, payload.score_b)
    state = state.with_matches(updated if m.id == match_id else m for m in state.matches)

    resolution = None
    if needs_resolution(state):
        result = resolve_pass(state)
        state = result.tournament
        resolution = ResolutionResponse(**result.to_dict())

    save_state(session, tournament, state)
    logger.info("Tournament %s: score %s recorded for %s", tournament_id, (payload.score_a, payload.score_b), match_id)

    return ScoreUpdateResponse(
        match=match_response(state.match_by_id()[match_id]),
        version=tournament.version,
        resolution=resolution,
    )


@router.post("/tournaments/{tournament_id}/bracket/resolve", response_model=ResolveResponse)
def resolve_bracket(
    tournament_id: int,
    payload: Optional[ResolveRequest] = None,
    session: Session = Depends(get_session),
) -> ResolveResponse:
    """Run a resolution pass explicitly (idempotent)"""
    tournament = require_tournament(session, tournament_id)
    require_expected_version(tournament, payload.expected_version if payload else None)

    result = resolve_pass(load_state(session, tournament))
    if result.resolved:
        save_state(session, tournament, result.tournament)
    return ResolveResponse(version=tournament.version, **result.to_dict())


@router.get("/tournaments/{tournament_id}/bracket/status", response_model=Dict[str, Any])
def get_bracket_status(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Group phase completion and remaining placeholders"""
    tournament = require_tournament(session, tournament_id)
    return bracket_status(load_state(session, tournament)).to_dict()
