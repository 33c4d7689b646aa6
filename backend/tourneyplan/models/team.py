from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from tourneyplan.models.tournament import Tournament


class Team(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "team_key", name="uq_tournament_team_key"),
        SAUniqueConstraint("tournament_id", "name", name="uq_tournament_team_name"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    team_key: str  # Stable team id used in match records ("t1", "t2", ...)
    name: str
    group_label: Optional[str] = Field(default=None)  # "A", "Gruppe A", ... (folded on read)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="teams")
