from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlmodel import Session

from tourneyplan.database import get_session
from tourneyplan.services.final_ranking import merged_final_ranking
from tourneyplan.services.standings import calculate
from tourneyplan.services.tournament_store import load_state
from tourneyplan.utils.version_guards import require_tournament

router = APIRouter()


class StandingResponse(BaseModel):
    rank: int
    team_id: str
    team_name: str
    group: Optional[str] = None
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int
    goals_against: int
    goal_difference: int
    points: float


@router.get("/tournaments/{tournament_id}/standings", response_model=List[StandingResponse])
def get_standings(
    tournament_id: int,
    group: Optional[str] = Query(default=None, description='Group label, e.g. "A" or "Gruppe A"'),
    session: Session = Depends(get_session),
) -> List[StandingResponse]:
    """Ranked group standings (or overall standings without ``group``)"""
    tournament = require_tournament(session, tournament_id)
    state = load_state(session, tournament)
    standings = calculate(state.teams, state.matches, state.config, group=group)
    return [
        StandingResponse(
            rank=rank,
            team_id=s.team.id,
            team_name=s.team.name,
            group=s.team.group,
            played=s.played,
            won=s.won,
            drawn=s.drawn,
            lost=s.lost,
            goals_for=s.goals_for,
            goals_against=s.goals_against,
            goal_difference=s.goal_difference,
            points=s.points,
        )
        for rank, s in enumerate(standings, start=1)
    ]


@router.get("/tournaments/{tournament_id}/ranking", response_model=Dict[str, Any])
def get_final_ranking(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Final ranking: bracket placements first, then group-stage order"""
    tournament = require_tournament(session, tournament_id)
    return merged_final_ranking(load_state(session, tournament))
