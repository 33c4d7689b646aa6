"""
Canonical codec for exchanged match records.

Record format (camelCase keys, optional keys omitted when absent):
    {id, round, field, slot?, teamA, teamB, scoreA?, scoreB?, group?,
     isFinal?, finalType?, label?}

``teamA``/``teamB`` carry a team id or a placeholder token. On import a team
display name is accepted as well and normalized to the team id. Keys are
kept exactly as given: an explicit ``"isFinal": false`` is exported again.
"""

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tourneyplan.services.tournament_model import FinalType, Match, Team
from tourneyplan.utils.placeholders import format_team_slot, parse_team_ref


class MatchRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    round: int = Field(ge=1)
    field: int = Field(ge=1)
    slot: Optional[int] = Field(default=None, ge=0)
    team_a: str = Field(alias="teamA")
    team_b: str = Field(alias="teamB")
    score_a: Optional[int] = Field(default=None, alias="scoreA", ge=0)
    score_b: Optional[int] = Field(default=None, alias="scoreB", ge=0)
    group: Optional[str] = None
    is_final: Optional[bool] = Field(default=None, alias="isFinal")
    final_type: Optional[FinalType] = Field(default=None, alias="finalType")
    label: Optional[str] = None


def match_to_record(match: Match) -> Dict[str, Any]:
    record = MatchRecord(
        id=match.id,
        round=match.round,
        field=match.field,
        slot=match.slot,
        team_a=format_team_slot(match.team_a),
        team_b=format_team_slot(match.team_b),
        score_a=match.score_a,
        score_b=match.score_b,
        group=match.group,
        is_final=match.is_final,
        final_type=match.final_type,
        label=match.label,
    )
    return record.model_dump(by_alias=True, exclude_none=True)


def match_from_record(data: Dict[str, Any], teams: Iterable[Team] = ()) -> Match:
    """
    Parse one record.

    Raises:
        pydantic.ValidationError: malformed record (missing id, negative score, ...)
    """
    record = MatchRecord.model_validate(data)
    teams = list(teams)
    team_ids = [t.id for t in teams]
    id_by_name = {t.name: t.id for t in teams}

    return Match(
        id=record.id,
        round=record.round,
        field=record.field,
        slot=record.slot,
        team_a=parse_team_ref(record.team_a, team_ids, id_by_name),
        team_b=parse_team_ref(record.team_b, team_ids, id_by_name),
        score_a=record.score_a,
        score_b=record.score_b,
        group=record.group,
        is_final=record.is_final,
        final_type=record.final_type,
        label=record.label,
    )


def matches_to_records(matches: Iterable[Match]) -> List[Dict[str, Any]]:
    return [match_to_record(m) for m in matches]


def matches_from_records(records: Iterable[Dict[str, Any]], teams: Iterable[Team] = ()) -> List[Match]:
    teams = list(teams)
    return [match_from_record(r, teams) for r in records]
