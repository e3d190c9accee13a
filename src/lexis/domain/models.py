"""
Domain models for vocabulary review.

These are pure data structures with no I/O. Words and SRS states are frozen
so that a session holds value snapshots; only the repository produces the
authoritative mutated record.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import IntEnum
from typing import Any

from .constants import (
    DEFAULT_EASE_FACTOR,
    MINIMUM_INTERVAL,
    PASSING_QUALITY,
)


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_instant(value: Any) -> datetime | None:
    """
    Read an absolute instant from a persisted value.

    Accepts datetimes, ISO-8601 strings and epoch milliseconds. Naive values
    are taken as UTC. Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, int | float):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def format_instant(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(UTC).isoformat()


class QualityRating(IntEnum):
    """
    Recall strength of one review attempt.

    Values <= 2 are failed attempts for retry gating.
    """

    BLACKOUT = 0  # skipped, or wrong after a hint
    INCORRECT = 1
    HINTED = 2  # correct only with a hint
    HESITANT = 3
    GOOD = 4
    PERFECT = 5

    @property
    def is_failure(self) -> bool:
        return self < PASSING_QUALITY


@dataclass(frozen=True)
class ReviewHistoryEntry:
    """
    One scheduling decision, kept for the adaptive model's trend bonuses.

    Attributes:
        timestamp: When the review happened.
        quality: Rating given (0-5).
        response_time_ms: Time from presentation to answer, if measured.
        previous_interval: Interval before the review (minutes).
        new_interval: Interval assigned by the review (minutes).
        ease_factor: Ease factor after the review.
    """

    timestamp: datetime
    quality: int
    response_time_ms: int | None
    previous_interval: int
    new_interval: int
    ease_factor: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": format_instant(self.timestamp),
            "quality": self.quality,
            "response_time_ms": self.response_time_ms,
            "previous_interval": self.previous_interval,
            "new_interval": self.new_interval,
            "ease_factor": self.ease_factor,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewHistoryEntry | None":
        timestamp = parse_instant(data.get("timestamp"))
        if timestamp is None:
            return None
        try:
            return cls(
                timestamp=timestamp,
                quality=int(data.get("quality", 0)),
                response_time_ms=(
                    int(data["response_time_ms"])
                    if data.get("response_time_ms") is not None
                    else None
                ),
                previous_interval=int(data.get("previous_interval", 0)),
                new_interval=int(data.get("new_interval", 0)),
                ease_factor=float(data.get("ease_factor", DEFAULT_EASE_FACTOR)),
            )
        except (TypeError, ValueError, OverflowError):
            return None


@dataclass(frozen=True)
class SrsState:
    """
    Scheduling state of a word. Only a Scheduler produces new instances.

    Attributes:
        repetitions: Consecutive passing reviews.
        interval: Current interval in minutes.
        ease_factor: Interval growth rate on success.
        next_review: Absolute instant the word becomes due; None means due now.
        last_quality: Rating of the most recent review.
        last_reviewed_at: Instant of the most recent review.
        review_history: Most recent scheduling decisions, oldest first.
    """

    repetitions: int = 0
    interval: int = MINIMUM_INTERVAL
    ease_factor: float = DEFAULT_EASE_FACTOR
    next_review: datetime | None = None
    last_quality: int | None = None
    last_reviewed_at: datetime | None = None
    review_history: tuple[ReviewHistoryEntry, ...] = ()

    def is_due(self, now: datetime) -> bool:
        return self.next_review is None or now >= self.next_review

    def to_dict(self) -> dict[str, Any]:
        return {
            "repetitions": self.repetitions,
            "interval": self.interval,
            "ease_factor": self.ease_factor,
            "next_review": format_instant(self.next_review),
            "last_quality": self.last_quality,
            "last_reviewed_at": format_instant(self.last_reviewed_at),
            "review_history": [entry.to_dict() for entry in self.review_history],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SrsState":
        """
        Lenient reader. Missing or unusable fields fall back to first-review
        defaults instead of raising.
        """
        if not isinstance(data, dict):
            return cls()

        def _number(key: str, default, cast):
            try:
                value = cast(data.get(key, default))
            except (TypeError, ValueError, OverflowError):
                return default
            if isinstance(value, float) and not math.isfinite(value):
                return default
            return value

        history_raw = data.get("review_history") or []
        history = tuple(
            entry
            for entry in (
                ReviewHistoryEntry.from_dict(item)
                for item in history_raw
                if isinstance(item, dict)
            )
            if entry is not None
        )

        last_quality = data.get("last_quality")
        return cls(
            repetitions=max(0, _number("repetitions", 0, int)),
            interval=_number("interval", MINIMUM_INTERVAL, int),
            ease_factor=_number("ease_factor", DEFAULT_EASE_FACTOR, float),
            next_review=parse_instant(data.get("next_review")),
            last_quality=int(last_quality) if isinstance(last_quality, int) else None,
            last_reviewed_at=parse_instant(data.get("last_reviewed_at")),
            review_history=history,
        )


@dataclass(frozen=True)
class Word:
    """The unit of study."""

    id: str
    word: str
    meaning: str
    example: str | None = None
    phonetic: str | None = None
    audio_url: str | None = None
    category: str | None = None
    difficulty: str = "medium"
    srs: SrsState | None = None
    created_at: datetime | None = None

    def is_due(self, now: datetime) -> bool:
        return self.srs is None or self.srs.is_due(now)

    def with_srs(self, srs: SrsState) -> "Word":
        return replace(self, srs=srs)

    def to_record(self) -> dict[str, Any]:
        """Full persisted record. Repositories write it whole (last write wins)."""
        return {
            "id": self.id,
            "word": self.word,
            "meaning": self.meaning,
            "example": self.example,
            "phonetic": self.phonetic,
            "audio_url": self.audio_url,
            "category": self.category,
            "difficulty": self.difficulty,
            "created_at": format_instant(self.created_at),
            "srs": self.srs.to_dict() if self.srs else None,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Word":
        if not record.get("id") or not record.get("word"):
            raise ValueError(f"Word record needs 'id' and 'word': {record!r}")
        srs_raw = record.get("srs")
        return cls(
            id=str(record["id"]),
            word=str(record["word"]),
            meaning=str(record.get("meaning") or ""),
            example=record.get("example"),
            phonetic=record.get("phonetic"),
            audio_url=record.get("audio_url"),
            category=record.get("category"),
            difficulty=record.get("difficulty") or "medium",
            srs=SrsState.from_dict(srs_raw) if srs_raw is not None else None,
            created_at=parse_instant(record.get("created_at")),
        )


@dataclass
class UserStats:
    """
    Learner performance fed to the adaptive scheduler.

    accuracy is None when nothing has been graded yet.
    """

    accuracy: float | None = None
    category_accuracy: dict[str, float] = field(default_factory=dict)
    streak: int = 0


@dataclass(frozen=True)
class ReviewEvent:
    """Emitted to the analytics and gamification sinks after each finalized grading."""

    word_id: str
    is_correct: bool
    quality: int
    time_spent_ms: int


@dataclass(frozen=True)
class SessionSummary:
    """Final session statistics, reported once on completion."""

    reviewed_count: int
    correct_count: int
    active_time_ms: int
    window_time_ms: int
    remaining_count: int
    started_at: datetime
    ended_at: datetime

    @property
    def accuracy(self) -> float:
        if self.reviewed_count == 0:
            return 0.0
        return self.correct_count / self.reviewed_count

    @property
    def active_minutes(self) -> int:
        return round(self.active_time_ms / 60000)

    @property
    def duration(self) -> timedelta:
        return self.ended_at - self.started_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "reviewed_count": self.reviewed_count,
            "correct_count": self.correct_count,
            "accuracy": round(self.accuracy, 4),
            "active_time_ms": self.active_time_ms,
            "window_time_ms": self.window_time_ms,
            "remaining_count": self.remaining_count,
            "started_at": format_instant(self.started_at),
            "ended_at": format_instant(self.ended_at),
        }
