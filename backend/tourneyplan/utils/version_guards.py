"""
Tournament Guards

Reusable guards for tournament routes:
- Tournament existence
- Optimistic concurrency (expected version)
- Team list frozen once a schedule exists
"""

from typing import Optional

from fastapi import HTTPException
from sqlmodel import Session

from tourneyplan.models.tournament import Tournament


def require_tournament(session: Session, tournament_id: int) -> Tournament:
    """
    Load a tournament or raise 404.

    Raises:
        HTTPException 404: Tournament not found
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def require_expected_version(tournament: Tournament, expected_version: Optional[int]) -> None:
    """
    Reject a write based on a stale read.

    ``expected_version=None`` skips the check (single-editor clients).

    Raises:
        HTTPException 409: Tournament was modified since the client read it
    """
    if expected_version is None:
        return
    if tournament.version != expected_version:
        raise HTTPException(
            status_code=409,
            detail=f"VERSION_CONFLICT: Tournament {tournament.id} is at version {tournament.version}, "
            f"request was based on version {expected_version}. Reload and retry.",
        )


def require_teams_editable(tournament: Tournament) -> None:
    """
    Teams may not change once a schedule exists.

    Raises:
        HTTPException 409: Schedule already generated
    """
    if tournament.schedule_generated:
        raise HTTPException(
            status_code=409,
            detail=f"TEAMS_LOCKED: Tournament {tournament.id} already has a schedule; "
            "teams cannot be changed after scheduling.",
        )
