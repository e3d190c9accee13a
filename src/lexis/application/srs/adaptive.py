"""
Adaptive scheduling: SM-2 growth scaled by learner accuracy, overdue-ness
and response time.

Any internal failure falls back to the wrapped BasicScheduler so a word
always gets a valid next review time.
"""

import logging
import math
from collections.abc import Sequence
from datetime import datetime, timedelta

from lexis.domain.constants import (
    CONSISTENCY_WINDOW,
    DEFAULT_ACCURACY,
    EXPECTED_RESPONSE_MS,
    FAILURE_EASE_PENALTY,
    FORGETTING_CURVE_FLOOR,
    HIGH_ACCURACY,
    LOW_ACCURACY,
    MAX_EASE_FACTOR,
    MAX_STREAK_BONUS,
    MIN_EASE_FACTOR,
    MINIMUM_INTERVAL,
    NEAR_MISS_INTERVAL,
    NEAR_MISS_RETENTION,
    PASSING_QUALITY,
    REVIEW_HISTORY_LIMIT,
    STREAK_BONUS_PER_REVIEW,
)
from lexis.domain.models import ReviewHistoryEntry, SrsState, UserStats, Word, utcnow

from .scheduler import (
    BasicScheduler,
    Scheduler,
    clamp,
    clamp_interval,
    clamp_quality,
    ease_delta,
    normalize_state,
)

logger = logging.getLogger(__name__)


def _finite(name: str, value: float) -> float:
    if not math.isfinite(value):
        raise ArithmeticError(f"{name} is not finite: {value}")
    return value


def calculate_adaptive_factor(stats: UserStats | None, category: str | None = None) -> float:
    """
    Widen intervals for accurate learners, narrow them for struggling ones.

    Category accuracy wins over overall accuracy when known. An active streak
    adds up to +0.2 on top of the high-accuracy factor.
    """
    stats = stats or UserStats()
    overall = DEFAULT_ACCURACY if stats.accuracy is None else stats.accuracy
    accuracy = stats.category_accuracy.get(category, overall) if category else overall
    _finite("accuracy", accuracy)
    if not 0.0 <= accuracy <= 1.0:
        raise ValueError(f"accuracy out of range: {accuracy}")

    streak_bonus = min(MAX_STREAK_BONUS, max(0, stats.streak) * STREAK_BONUS_PER_REVIEW)
    if accuracy >= HIGH_ACCURACY:
        return 1.2 + streak_bonus
    if accuracy < LOW_ACCURACY:
        return 0.8
    return 1.0


def calculate_forgetting_curve(
    minutes_since_review: float, scheduled_interval: float, ease_factor: float
) -> float:
    """
    Retention multiplier for an overdue word.

    1.0 when reviewed on time; decays exponentially with the overdue ratio,
    faster for hard words (low ease), never below FORGETTING_CURVE_FLOOR.
    """
    if minutes_since_review <= 0 or scheduled_interval <= 0:
        return 1.0
    overdue_ratio = minutes_since_review / scheduled_interval
    if overdue_ratio <= 1.0:
        return 1.0
    adjustment = math.exp(-(overdue_ratio - 1) / ease_factor)
    return max(FORGETTING_CURVE_FLOOR, adjustment)


def analyze_response_time(response_time_ms: int | None, difficulty: str = "medium") -> float:
    """Small interval bonus for fast answers, small penalty for slow ones."""
    if response_time_ms is None or response_time_ms <= 0:
        return 1.0
    expected = EXPECTED_RESPONSE_MS.get(difficulty, EXPECTED_RESPONSE_MS["medium"])
    ratio = response_time_ms / expected
    if ratio < 0.5:
        return 1.1
    if ratio < 1.0:
        return 1.05
    if ratio < 2.0:
        return 1.0
    return 0.95


def calculate_consistency_bonus(history: Sequence[ReviewHistoryEntry]) -> float:
    """Ease bonus for a run of strong recent reviews."""
    if len(history) < CONSISTENCY_WINDOW:
        return 0.0
    recent = history[-CONSISTENCY_WINDOW:]
    average = sum(entry.quality for entry in recent) / len(recent)
    if average >= 4.0:
        return 0.05
    if average >= 3.5:
        return 0.02
    return 0.0


class AdaptiveScheduler(Scheduler):
    """
    Learner-aware scheduler.

    Wraps a BasicScheduler rather than extending it: the basic one is only
    consulted when the adaptive computation fails.
    """

    def __init__(self, fallback: BasicScheduler | None = None):
        self._fallback = fallback or BasicScheduler()

    def schedule(
        self,
        word: Word,
        quality: int,
        *,
        response_time_ms: int | None = None,
        user_stats: UserStats | None = None,
        now: datetime | None = None,
    ) -> SrsState:
        now = now or utcnow()
        try:
            return self.update(word, quality, response_time_ms, user_stats, now)
        except Exception as e:
            logger.warning(
                f"Adaptive scheduling failed for word {word.id}, using SM-2: {e}"
            )
            return self._fallback.update(word.srs, quality, now)

    def update(
        self,
        word: Word,
        quality: int,
        response_time_ms: int | None,
        user_stats: UserStats | None,
        now: datetime,
    ) -> SrsState:
        """
        Compute the next state. Raises on bad input; schedule() handles that.
        """
        state = normalize_state(word.srs)
        quality = clamp_quality(quality)

        adaptive_factor = calculate_adaptive_factor(user_stats, word.category)
        minutes_since = (
            (now - state.last_reviewed_at).total_seconds() / 60
            if state.last_reviewed_at
            else 0.0
        )
        forgetting = calculate_forgetting_curve(
            minutes_since, state.interval, state.ease_factor
        )
        response_bonus = analyze_response_time(response_time_ms, word.difficulty)

        if quality >= PASSING_QUALITY:
            repetitions = state.repetitions + 1
            raw_interval = math.ceil(
                _finite(
                    "interval",
                    state.interval
                    * state.ease_factor
                    * adaptive_factor
                    * forgetting
                    * response_bonus,
                )
            )
            ease = (
                state.ease_factor
                + ease_delta(quality)
                + calculate_consistency_bonus(state.review_history)
            )
        else:
            repetitions = 0
            if quality <= 1:
                raw_interval = MINIMUM_INTERVAL
            else:
                raw_interval = max(
                    NEAR_MISS_INTERVAL,
                    math.floor(state.interval * forgetting * NEAR_MISS_RETENTION),
                )
            ease = state.ease_factor - FAILURE_EASE_PENALTY

        interval = clamp_interval(raw_interval)
        ease = round(clamp(_finite("ease", ease), MIN_EASE_FACTOR, MAX_EASE_FACTOR), 4)

        entry = ReviewHistoryEntry(
            timestamp=now,
            quality=quality,
            response_time_ms=response_time_ms,
            previous_interval=state.interval,
            new_interval=interval,
            ease_factor=ease,
        )
        history = (*state.review_history, entry)[-REVIEW_HISTORY_LIMIT:]

        logger.debug(
            f"Adaptive schedule {word.id}: q={quality} factor={adaptive_factor:.2f} "
            f"forgetting={forgetting:.3f} response={response_bonus:.2f} -> {interval}m"
        )

        return SrsState(
            repetitions=repetitions,
            interval=interval,
            ease_factor=ease,
            next_review=now + timedelta(minutes=interval),
            last_quality=quality,
            last_reviewed_at=now,
            review_history=history,
        )
