# Domain Package
from .errors import InvalidTransitionError, LexisError, SessionBusyError, SessionError, StoreError
from .interfaces import AnalyticsSink, GamificationSink, KeyValueStore, WordRepository
from .models import (
    QualityRating,
    ReviewEvent,
    ReviewHistoryEntry,
    SessionSummary,
    SrsState,
    UserStats,
    Word,
)

__all__ = [
    "LexisError",
    "SessionError",
    "InvalidTransitionError",
    "SessionBusyError",
    "StoreError",
    "KeyValueStore",
    "WordRepository",
    "AnalyticsSink",
    "GamificationSink",
    "QualityRating",
    "ReviewEvent",
    "ReviewHistoryEntry",
    "SessionSummary",
    "SrsState",
    "UserStats",
    "Word",
]
