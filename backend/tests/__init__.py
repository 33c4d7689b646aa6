# Force SQLModel table registration at test discovery time
from tourneyplan.models.match import Match  # noqa: F401
from tourneyplan.models.team import Team  # noqa: F401
from tourneyplan.models.tournament import Tournament  # noqa: F401
