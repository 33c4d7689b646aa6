"""
Team API Routes
Teams of a tournament. The team list is frozen once a schedule exists.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from tourneyplan.database import get_session
from tourneyplan.models.team import Team
from tourneyplan.utils.placeholders import canonical_group_key, parse_placeholder
from tourneyplan.utils.version_guards import require_teams_editable, require_tournament

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TeamCreateRequest(BaseModel):
    name: str
    group: Optional[str] = None
    team_key: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("team_key")
    @classmethod
    def validate_team_key(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("team_key must not be blank")
        # Keys must not collide with placeholder tokens
        if parse_placeholder(v) is not None:
            raise ValueError(f"team_key '{v}' is reserved for placeholders")
        return v


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    team_key: str
    name: str
    group_label: Optional[str] = None
    created_at: datetime


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def get_teams(tournament_id: int, session: Session = Depends(get_session)):
    """Get all teams of a tournament in creation order"""
    require_tournament(session, tournament_id)
    return session.exec(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.id)).all()


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(tournament_id: int, team_data: TeamCreateRequest, session: Session = Depends(get_session)):
    """
    Add a team.

    Raises 409 once the schedule is generated, 400 on duplicate name or key.
    """
    tournament = require_tournament(session, tournament_id)
    require_teams_editable(tournament)

    existing = session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    if any(t.name == team_data.name for t in existing):
        raise HTTPException(status_code=400, detail=f"DUPLICATE_TEAM: Team name '{team_data.name}' already exists")

    team_key = team_data.team_key or f"t{len(existing) + 1}"
    taken = {t.team_key for t in existing}
    if team_data.team_key and team_key in taken:
        raise HTTPException(status_code=400, detail=f"DUPLICATE_TEAM: Team key '{team_key}' already exists")
    n = len(existing) + 1
    while team_key in taken:
        n += 1
        team_key = f"t{n}"

    team = Team(
        tournament_id=tournament_id,
        team_key=team_key,
        name=team_data.name,
        group_label=canonical_group_key(team_data.group),
    )
    session.add(team)
    session.commit()
    session.refresh(team)
    return team
