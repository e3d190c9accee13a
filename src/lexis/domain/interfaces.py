"""
Ports (interfaces) for the review core.

These define the contracts that infrastructure adapters must implement.
The session and schedulers depend on these abstractions, not on concrete
storage or sinks.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from .models import ReviewEvent, SessionSummary, Word


class KeyValueStore(ABC):
    """
    Port for the host's async key-value persistence service.

    Implementations:
        - MemoryStore: process-local dict.
        - JsonFileStore: a single JSON document on disk.
        - HttpKeyValueStore: remote REST key-value service.
    """

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under key, or default when absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under key."""
        pass


class WordRepository(ABC):
    """
    Port for reading due words and writing back updated records.

    The repository is the single source of truth for persisted SRS state.
    A session reads it once at start and only writes afterwards.
    """

    @abstractmethod
    async def get_due_words(self, now: datetime, limit: int | None = None) -> list[Word]:
        """
        Fetch words whose next review is at or before now.

        Args:
            now: Reference instant.
            limit: Optional cap on the number of words returned.

        Returns:
            Due words sorted ascending by next review. Words without SRS
            state are always due and sort first.
        """
        pass

    @abstractmethod
    async def update_word(self, word_id: str, record: dict[str, Any]) -> bool:
        """
        Replace the stored record of a word.

        Args:
            word_id: Identity of the word.
            record: The full updated record (not a delta).

        Returns:
            True on success, False when the write did not happen.
        """
        pass

    async def next_due_at(self, now: datetime) -> datetime | None:
        """Earliest future review instant, used to report 'nothing to review'."""
        return None


class AnalyticsSink(ABC):
    """Port the session reports reviews and finished sessions to."""

    @abstractmethod
    async def record_review(self, event: ReviewEvent) -> None:
        pass

    @abstractmethod
    async def record_session(self, summary: SessionSummary) -> None:
        pass


class GamificationSink(ABC):
    """Port for XP/streak bookkeeping. The core never computes XP itself."""

    @abstractmethod
    async def handle_review(self, event: ReviewEvent) -> None:
        pass
