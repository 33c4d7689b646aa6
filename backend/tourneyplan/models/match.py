from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from tourneyplan.models.tournament import Tournament


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "match_key", name="uq_tournament_match_key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    match_key: str  # "g1".., "semi1", "final", ...
    round_number: int
    field_number: int
    slot_index: Optional[int] = Field(default=None)

    # Team id or placeholder token ("group-a-1st", "semi1-winner", "TBD")
    team_a: str
    team_b: str

    score_a: Optional[int] = Field(default=None)
    score_b: Optional[int] = Field(default=None)

    group_label: Optional[str] = Field(default=None)  # None for bracket matches
    is_final: Optional[bool] = Field(default=None)
    final_type: Optional[str] = Field(default=None)  # final | thirdPlace | fifthSixth | seventhEighth
    label: Optional[str] = Field(default=None)
    scheduled_time: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
