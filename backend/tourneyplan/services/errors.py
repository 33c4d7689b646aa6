"""Domain exceptions raised by the core services."""


class TourneyPlanError(Exception):
    """Base exception for tourneyplan errors"""

    pass


class ScheduleGenerationError(TourneyPlanError):
    """Schedule cannot be generated from the given configuration and teams"""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field
