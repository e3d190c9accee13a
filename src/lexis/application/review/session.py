"""
Review session state machine.

One session walks a queue of due words:

    PRESENTING -> GRADED -> [RETRY_REQUIRED] -> ADVANCING -> PRESENTING | COMPLETE

with PAUSED reachable from PRESENTING/GRADED and COMPLETE reachable at any
time through end(). Transitions are serialized: an input that arrives while
another transition is still awaiting I/O is rejected, so only one word is
ever graded or persisted at a time.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from lexis.application.srs.quality import determine_quality
from lexis.application.srs.scheduler import Scheduler, default_scheduler
from lexis.domain.constants import STREAK_WINDOW
from lexis.domain.errors import InvalidTransitionError, SessionBusyError
from lexis.domain.interfaces import AnalyticsSink, GamificationSink, WordRepository
from lexis.domain.models import (
    QualityRating,
    ReviewEvent,
    SessionSummary,
    UserStats,
    Word,
    utcnow,
)

from .time_tracker import TimeTracker

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    PRESENTING = "presenting"
    GRADED = "graded"
    RETRY_REQUIRED = "retry_required"
    ADVANCING = "advancing"
    PAUSED = "paused"
    COMPLETE = "complete"


class StartStatus(str, Enum):
    READY = "ready"
    NOTHING_TO_REVIEW = "nothing_to_review"


ACTIVE_STATES = frozenset(
    {
        SessionState.PRESENTING,
        SessionState.GRADED,
        SessionState.RETRY_REQUIRED,
        SessionState.ADVANCING,
        SessionState.PAUSED,
    }
)


@dataclass(frozen=True)
class SessionStats:
    """Running counters. Each word's grading is counted exactly once."""

    reviewed: int = 0
    correct: int = 0
    started_at: datetime | None = None

    @property
    def accuracy(self) -> float:
        if self.reviewed == 0:
            return 0.0
        return self.correct / self.reviewed


@dataclass(frozen=True)
class GradeResult:
    """What the learner is shown after answering."""

    word_id: str
    expected: str
    answer: str | None
    is_correct: bool
    quality: QualityRating | None  # None while waiting for a self-rating
    used_hint: bool
    skipped: bool


@dataclass(frozen=True)
class SessionWarning:
    """A non-fatal failure: the session moved on, the caller may retry later."""

    word_id: str | None
    source: str  # "repository", "analytics" or "gamification"
    message: str
    record: dict | None = None


@dataclass
class _WordContext:
    """Per-word flags, replaced on every advance."""

    presented_at: float
    used_hint: bool = False
    skipped: bool = False
    draft: str = ""
    answer: str | None = None
    is_correct: bool | None = None
    quality: QualityRating | None = None
    response_time_ms: int | None = None
    retry_attempts: int = 0
    paused_at: float | None = None
    paused_seconds: float = 0.0
    user_stats: UserStats = field(default_factory=UserStats)


def answers_match(answer: str | None, expected: str) -> bool:
    """Case-insensitive exact match, ignoring surrounding whitespace."""
    if answer is None:
        return False
    return answer.strip().casefold() == expected.strip().casefold()


class ReviewSession:
    """
    Drives one review of the words due at start.

    Args:
        repository: Source of due words and sink for updated records.
        scheduler: Scheduling model; SM-2 when omitted.
        analytics: Optional analytics sink.
        gamification: Optional gamification sink.
        retry_on_mistake: Require retyping the word after a failed grading.
        retry_on_skip: Also require retyping after a skip.
        limit: Optional cap on the number of words in the session.
        time_tracker: Tracker for active time; a fresh one when omitted.
        now: Wall clock returning aware datetimes.
        monotonic: Monotonic clock in seconds for response times.
        on_warning: Called with each SessionWarning as it happens.
    """

    def __init__(
        self,
        repository: WordRepository,
        scheduler: Scheduler | None = None,
        analytics: AnalyticsSink | None = None,
        gamification: GamificationSink | None = None,
        *,
        retry_on_mistake: bool = True,
        retry_on_skip: bool = False,
        limit: int | None = None,
        time_tracker: TimeTracker | None = None,
        now: Callable[[], datetime] = utcnow,
        monotonic: Callable[[], float] = time.monotonic,
        on_warning: Callable[[SessionWarning], None] | None = None,
    ):
        self._repo = repository
        self._scheduler = scheduler or default_scheduler
        self._analytics = analytics
        self._gamification = gamification
        self.retry_on_mistake = retry_on_mistake
        self.retry_on_skip = retry_on_skip
        self.limit = limit
        self._now = now
        self._monotonic = monotonic
        self.time_tracker = time_tracker or TimeTracker(clock=monotonic)
        self._on_warning = on_warning

        self._lock = asyncio.Lock()
        self._state = SessionState.IDLE
        self._resume_state: SessionState | None = None
        self._queue: list[Word] = []
        self._ctx: _WordContext | None = None
        self._stats = SessionStats()
        self._recent_qualities: deque[int] = deque(maxlen=STREAK_WINDOW)
        self._category_counts: dict[str, list[int]] = {}

        self.last_result: GradeResult | None = None
        self.warnings: list[SessionWarning] = []
        self.updated_words: dict[str, Word] = {}
        self.next_due_at: datetime | None = None
        self._summary: SessionSummary | None = None

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stats(self) -> SessionStats:
        return self._stats

    @property
    def current_word(self) -> Word | None:
        if self._state in ACTIVE_STATES and self._queue:
            return self._queue[0]
        return None

    @property
    def queue(self) -> tuple[Word, ...]:
        return tuple(self._queue)

    @property
    def remaining(self) -> int:
        return len(self._queue)

    @property
    def awaiting_rating(self) -> bool:
        return (
            self._current_state() is SessionState.GRADED
            and self._ctx is not None
            and self._ctx.quality is None
        )

    @property
    def used_hint(self) -> bool:
        return bool(self._ctx and self._ctx.used_hint)

    @property
    def draft(self) -> str:
        return self._ctx.draft if self._ctx else ""

    @property
    def retry_attempts(self) -> int:
        return self._ctx.retry_attempts if self._ctx else 0

    @property
    def summary(self) -> SessionSummary | None:
        return self._summary

    def _current_state(self) -> SessionState:
        """The effective state, looking through PAUSED."""
        if self._state is SessionState.PAUSED and self._resume_state is not None:
            return self._resume_state
        return self._state

    # ------------------------------------------------------------------
    # Transition guards
    # ------------------------------------------------------------------

    def _guard(self, event: str, *allowed: SessionState) -> None:
        if self._lock.locked():
            raise SessionBusyError(f"Cannot handle '{event}': a transition is in progress")
        if self._state not in allowed:
            raise InvalidTransitionError(event, self._state.value)

    @asynccontextmanager
    async def _transition(self, event: str, *allowed: SessionState):
        self._guard(event, *allowed)
        async with self._lock:
            logger.debug(f"Session event '{event}' in state {self._state.value}")
            yield

    # ------------------------------------------------------------------
    # Input events
    # ------------------------------------------------------------------

    async def start(self) -> StartStatus:
        """Load the due queue and present the first word."""
        async with self._transition("start", SessionState.IDLE):
            now = self._now()
            self._stats = SessionStats(started_at=now)
            words = await self._repo.get_due_words(now, self.limit)

            seen: set[str] = set()
            for word in words:
                if word.id not in seen:
                    seen.add(word.id)
                    self._queue.append(word)
            if self.limit is not None:
                self._queue = self._queue[: self.limit]

            if not self._queue:
                self.next_due_at = await self._repo.next_due_at(now)
                logger.info("Nothing to review")
                self._state = SessionState.COMPLETE
                self._summary = SessionSummary(
                    reviewed_count=0,
                    correct_count=0,
                    active_time_ms=0,
                    window_time_ms=0,
                    remaining_count=0,
                    started_at=now,
                    ended_at=now,
                )
                return StartStatus.NOTHING_TO_REVIEW

            logger.info(f"Review session started with {len(self._queue)} words")
            self.time_tracker.start()
            self._present()
            return StartStatus.READY

    def show_hint(self) -> None:
        """Reveal the hint for the current word. Cannot be undone."""
        self._guard("show_hint", SessionState.PRESENTING)
        self._ctx.used_hint = True
        self.time_tracker.record_activity()

    def update_draft(self, text: str) -> None:
        """Keep the in-progress answer; it survives pause and resume."""
        self._guard("update_draft", SessionState.PRESENTING, SessionState.PAUSED)
        self._ctx.draft = text
        if self._state is SessionState.PRESENTING:
            self.time_tracker.record_activity()

    async def submit_answer(self, answer: str, rating: int | None = None) -> GradeResult:
        """
        Grade a typed answer.

        A correct answer without a hint needs a self-rating (3-5). When none
        is passed the session waits in GRADED for select_quality().
        """
        async with self._transition("submit_answer", SessionState.PRESENTING):
            word = self._queue[0]
            ctx = self._ctx
            ctx.answer = answer
            ctx.draft = answer
            ctx.is_correct = answers_match(answer, word.word)
            ctx.response_time_ms = self._response_time_ms()
            self.time_tracker.record_activity()
            self._state = SessionState.GRADED

            if ctx.is_correct and not ctx.used_hint and rating is None:
                self.last_result = self._result(word)
                return self.last_result

            quality = determine_quality(ctx.is_correct, ctx.used_hint, False, rating)
            result = self._grade(word, quality)
            await self._after_grade()
            return result

    async def skip(self) -> GradeResult:
        """Give up on the current word (quality 0)."""
        async with self._transition("skip", SessionState.PRESENTING):
            word = self._queue[0]
            ctx = self._ctx
            ctx.skipped = True
            ctx.is_correct = False
            ctx.response_time_ms = self._response_time_ms()
            self.time_tracker.record_activity()
            self._state = SessionState.GRADED

            quality = determine_quality(False, ctx.used_hint, True)
            result = self._grade(word, quality)
            await self._after_grade()
            return result

    async def select_quality(self, rating: int) -> GradeResult:
        """Self-rate a correct, unhinted answer."""
        async with self._transition("select_quality", SessionState.GRADED):
            if self._ctx.quality is not None:
                raise InvalidTransitionError("select_quality", "graded (already rated)")
            word = self._queue[0]
            self.time_tracker.record_activity()
            quality = determine_quality(True, False, False, rating)
            result = self._grade(word, quality)
            await self._after_grade()
            return result

    async def submit_retry(self, text: str) -> bool:
        """
        Retype the word after a failed grading.

        A mismatch re-prompts (no attempt limit, stats untouched). A match
        finalizes the word and moves on.
        """
        async with self._transition("submit_retry", SessionState.RETRY_REQUIRED):
            word = self._queue[0]
            self.time_tracker.record_activity()
            if not answers_match(text, word.word):
                self._ctx.retry_attempts += 1
                logger.debug(f"Retry mismatch for {word.id} (attempt {self._ctx.retry_attempts})")
                return False
            await self._advance()
            return True

    def pause(self) -> None:
        self._guard("pause", SessionState.PRESENTING, SessionState.GRADED)
        self._resume_state = self._state
        self._state = SessionState.PAUSED
        self._ctx.paused_at = self._monotonic()
        self.time_tracker.pause()

    def resume(self) -> None:
        self._guard("resume", SessionState.PAUSED)
        self._state = self._resume_state
        self._resume_state = None
        self._unfreeze_response_timer()
        self.time_tracker.resume()

    async def end(self) -> SessionSummary:
        """
        Terminate early.

        A word whose grading is already final is still scheduled and
        persisted; a word that is only being presented is left untouched.
        """
        if self._state is SessionState.COMPLETE:
            return self._summary
        async with self._transition("end", *ACTIVE_STATES, SessionState.IDLE):
            if self._state is SessionState.PAUSED:
                self._state = self._resume_state
                self._resume_state = None
                self._unfreeze_response_timer()

            if self._state in (SessionState.GRADED, SessionState.RETRY_REQUIRED):
                if self._ctx.quality is None:
                    # Correct but never self-rated: the determiner's default.
                    self._grade(
                        self._queue[0],
                        determine_quality(True, False, False, None),
                    )
                await self._advance(present_next=False)

            return await self._complete()

    async def complete(self) -> SessionSummary:
        """Finish the session. Safe to call repeatedly; reports only once."""
        if self._state is SessionState.COMPLETE:
            return self._summary
        return await self.end()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _present(self) -> None:
        self._ctx = _WordContext(presented_at=self._monotonic())
        self._state = SessionState.PRESENTING
        logger.debug(f"Presenting {self._queue[0].id} ({len(self._queue)} left)")

    def _response_time_ms(self) -> int:
        ctx = self._ctx
        elapsed = self._monotonic() - ctx.presented_at - ctx.paused_seconds
        return max(0, int(elapsed * 1000))

    def _unfreeze_response_timer(self) -> None:
        if self._ctx and self._ctx.paused_at is not None:
            self._ctx.paused_seconds += self._monotonic() - self._ctx.paused_at
            self._ctx.paused_at = None

    def _user_stats(self) -> UserStats:
        accuracy = self._stats.accuracy if self._stats.reviewed else None
        streak = 0
        for quality in reversed(self._recent_qualities):
            if quality < QualityRating.HESITANT:
                break
            streak += 1
        category_accuracy = {
            category: correct / reviewed
            for category, (reviewed, correct) in self._category_counts.items()
            if reviewed
        }
        return UserStats(accuracy=accuracy, category_accuracy=category_accuracy, streak=streak)

    def _result(self, word: Word) -> GradeResult:
        ctx = self._ctx
        return GradeResult(
            word_id=word.id,
            expected=word.word,
            answer=ctx.answer,
            is_correct=bool(ctx.is_correct),
            quality=ctx.quality,
            used_hint=ctx.used_hint,
            skipped=ctx.skipped,
        )

    def _grade(self, word: Word, quality: QualityRating) -> GradeResult:
        """Make the grade final and count it. Runs once per word."""
        ctx = self._ctx
        ctx.user_stats = self._user_stats()
        ctx.quality = quality

        passed = not quality.is_failure
        self._stats = replace(
            self._stats,
            reviewed=self._stats.reviewed + 1,
            correct=self._stats.correct + (1 if passed else 0),
        )
        self._recent_qualities.append(int(quality))
        if word.category:
            reviewed, correct = self._category_counts.get(word.category, [0, 0])
            self._category_counts[word.category] = [reviewed + 1, correct + (1 if passed else 0)]

        self.last_result = self._result(word)
        logger.debug(f"Graded {word.id}: quality={int(quality)} correct={ctx.is_correct}")
        return self.last_result

    def _needs_retry(self) -> bool:
        ctx = self._ctx
        if not self.retry_on_mistake or not ctx.quality.is_failure:
            return False
        if ctx.skipped and not self.retry_on_skip:
            return False
        return True

    async def _after_grade(self) -> None:
        if self._needs_retry():
            self._state = SessionState.RETRY_REQUIRED
            return
        await self._advance()

    async def _advance(self, present_next: bool = True) -> None:
        """Schedule, dequeue, persist and report the word in flight."""
        self._state = SessionState.ADVANCING
        word = self._queue[0]
        ctx = self._ctx

        srs = self._scheduler.schedule(
            word,
            int(ctx.quality),
            response_time_ms=ctx.response_time_ms,
            user_stats=ctx.user_stats,
            now=self._now(),
        )
        updated = word.with_srs(srs)
        self.updated_words[word.id] = updated
        self._queue = [w for w in self._queue if w.id != word.id]

        record = updated.to_record()
        try:
            ok = await self._repo.update_word(word.id, record)
            if not ok:
                self._warn(word.id, "repository", "update_word reported failure", record)
        except Exception as e:
            self._warn(word.id, "repository", str(e), record)

        event = ReviewEvent(
            word_id=word.id,
            is_correct=bool(ctx.is_correct),
            quality=int(ctx.quality),
            time_spent_ms=ctx.response_time_ms or 0,
        )
        if self._analytics is not None:
            try:
                await self._analytics.record_review(event)
            except Exception as e:
                self._warn(word.id, "analytics", str(e))
        if self._gamification is not None:
            try:
                await self._gamification.handle_review(event)
            except Exception as e:
                self._warn(word.id, "gamification", str(e))

        self._ctx = None
        if not present_next:
            return
        if self._queue:
            self._present()
        else:
            await self._complete()

    async def _complete(self) -> SessionSummary:
        self._ctx = None
        self._state = SessionState.COMPLETE
        timing = self.time_tracker.finalize()
        self._summary = SessionSummary(
            reviewed_count=self._stats.reviewed,
            correct_count=self._stats.correct,
            active_time_ms=timing.active_ms,
            window_time_ms=timing.window_ms,
            remaining_count=len(self._queue),
            started_at=self._stats.started_at or self._now(),
            ended_at=self._now(),
        )
        logger.info(
            f"Review session complete: {self._summary.reviewed_count} reviewed, "
            f"{self._summary.correct_count} correct, {self._summary.remaining_count} remaining"
        )
        if self._analytics is not None:
            try:
                await self._analytics.record_session(self._summary)
            except Exception as e:
                self._warn(None, "analytics", str(e))
        return self._summary

    def _warn(self, word_id: str | None, source: str, message: str, record: dict | None = None):
        warning = SessionWarning(word_id=word_id, source=source, message=message, record=record)
        self.warnings.append(warning)
        logger.warning(f"{source} failure for {word_id or 'session'}: {message}")
        if self._on_warning is not None:
            try:
                self._on_warning(warning)
            except Exception:
                logger.exception(f"on_warning callback failed for {word_id or 'session'}")
