from tourneyplan.models.match import Match
from tourneyplan.models.team import Team
from tourneyplan.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Team",
    "Match",
]
