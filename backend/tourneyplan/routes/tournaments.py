from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session, select

from tourneyplan.database import get_session
from tourneyplan.models.tournament import Tournament
from tourneyplan.services.bracket_presets import effective_preset, recommended_finals_preset
from tourneyplan.services.tournament_model import TournamentConfig
from tourneyplan.utils.version_guards import require_tournament

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    config: TournamentConfig = Field(default_factory=TournamentConfig)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TournamentResponse(BaseModel):
    id: int
    name: str
    config: Dict[str, Any]
    version: int
    schedule_generated: bool
    schedule_notes: Optional[List[str]] = None
    recommended_finals_preset: str
    effective_finals_preset: str
    created_at: datetime
    updated_at: datetime


def _to_response(tournament: Tournament) -> TournamentResponse:
    config = TournamentConfig.model_validate(tournament.config_json or {})
    preset = "none"
    if config.group_system == "groupsAndFinals":
        preset, _ = effective_preset(config.finals.preset, config.number_of_groups)
    return TournamentResponse(
        id=tournament.id,
        name=tournament.name,
        config=tournament.config_json,
        version=tournament.version,
        schedule_generated=tournament.schedule_generated,
        schedule_notes=tournament.schedule_notes,
        recommended_finals_preset=recommended_finals_preset(config.number_of_groups),
        effective_finals_preset=preset,
        created_at=tournament.created_at,
        updated_at=tournament.updated_at,
    )


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    tournaments = session.exec(select(Tournament).order_by(Tournament.id)).all()
    return [_to_response(t) for t in tournaments]


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    """Create a new tournament with a validated configuration"""
    tournament = Tournament(
        name=tournament_data.name,
        config_json=tournament_data.config.model_dump(mode="json"),
    )
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return _to_response(tournament)


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return _to_response(require_tournament(session, tournament_id))
