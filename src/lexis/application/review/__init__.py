# Application Review Package
from .session import (
    GradeResult,
    ReviewSession,
    SessionState,
    SessionStats,
    SessionWarning,
    StartStatus,
)
from .time_tracker import TimeSummary, TimeTracker

__all__ = [
    "ReviewSession",
    "SessionState",
    "SessionStats",
    "SessionWarning",
    "StartStatus",
    "GradeResult",
    "TimeTracker",
    "TimeSummary",
]
