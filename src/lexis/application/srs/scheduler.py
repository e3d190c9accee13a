"""
SM-2 scheduling core.

Pure computation, no I/O. Intervals are minutes. Callers own persistence.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timedelta

from lexis.domain.constants import (
    DEFAULT_EASE_FACTOR,
    FAILURE_EASE_PENALTY,
    MAX_EASE_FACTOR,
    MAXIMUM_INTERVAL,
    MIN_EASE_FACTOR,
    MINIMUM_INTERVAL,
    NEAR_MISS_INTERVAL,
    PASSING_QUALITY,
)
from lexis.domain.models import SrsState, UserStats, Word, utcnow

logger = logging.getLogger(__name__)


class Scheduler(ABC):
    """
    Scheduling capability chosen once per session.

    Implementations:
        - BasicScheduler: SM-2 core.
        - AdaptiveScheduler: learner-aware model wrapping a BasicScheduler.
    """

    @abstractmethod
    def schedule(
        self,
        word: Word,
        quality: int,
        *,
        response_time_ms: int | None = None,
        user_stats: UserStats | None = None,
        now: datetime | None = None,
    ) -> SrsState:
        """Return the word's next SRS state for the given rating."""
        pass


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_interval(minutes: float) -> int:
    return int(clamp(minutes, MINIMUM_INTERVAL, MAXIMUM_INTERVAL))


def clamp_quality(quality: int) -> int:
    return int(clamp(int(quality), 0, 5))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def ease_delta(quality: int) -> float:
    """SM-2 ease adjustment: +0.1 at q=5, 0 at q=4, -0.14 at q=3."""
    miss = 5 - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def _usable_number(value) -> bool:
    """Real, finite number. Integers of any size count; bools do not."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def normalize_state(srs: SrsState | None) -> SrsState:
    """
    Coerce a possibly malformed state into one the math can trust.

    Missing state means a first-ever review. Unusable numbers fall back to
    their first-review defaults; interval and ease factor are clamped to
    their bounds.
    """
    if srs is None:
        return SrsState()

    repetitions = srs.repetitions if isinstance(srs.repetitions, int) else 0
    interval = srs.interval
    if not _usable_number(interval) or interval <= 0:
        interval = MINIMUM_INTERVAL
    ease = srs.ease_factor
    if not _usable_number(ease):
        ease = DEFAULT_EASE_FACTOR

    return replace(
        srs,
        repetitions=max(0, repetitions),
        interval=clamp_interval(interval),
        ease_factor=float(clamp(ease, MIN_EASE_FACTOR, MAX_EASE_FACTOR)),
    )


class BasicScheduler(Scheduler):
    """
    SM-2 (SuperMemo 2) spaced repetition.

    Total for every quality in 0..5 and every state, including None.
    """

    def update(self, srs: SrsState | None, quality: int, now: datetime | None = None) -> SrsState:
        """
        Calculate the next SRS state based on recall quality.

        Args:
            srs: Current state; None or malformed means first review.
            quality: Quality of recall (0-5); out-of-range values are clamped.
            now: Reference instant, defaults to the current UTC time.

        Returns:
            New SrsState with next_review = now + interval minutes.
        """
        now = now or utcnow()
        state = normalize_state(srs)
        quality = clamp_quality(quality)

        if quality >= PASSING_QUALITY:
            repetitions = state.repetitions + 1
            interval = round_half_up(state.interval * state.ease_factor)
            ease = state.ease_factor + ease_delta(quality)
        else:
            # Failed recall - reset
            repetitions = 0
            interval = MINIMUM_INTERVAL if quality <= 1 else NEAR_MISS_INTERVAL
            ease = state.ease_factor - FAILURE_EASE_PENALTY

        interval = clamp_interval(interval)
        ease = round(clamp(ease, MIN_EASE_FACTOR, MAX_EASE_FACTOR), 4)

        return SrsState(
            repetitions=repetitions,
            interval=interval,
            ease_factor=ease,
            next_review=now + timedelta(minutes=interval),
            last_quality=quality,
            last_reviewed_at=now,
            review_history=state.review_history,
        )

    def schedule(
        self,
        word: Word,
        quality: int,
        *,
        response_time_ms: int | None = None,
        user_stats: UserStats | None = None,
        now: datetime | None = None,
    ) -> SrsState:
        return self.update(word.srs, quality, now)


# Default scheduler instance
default_scheduler = BasicScheduler()
