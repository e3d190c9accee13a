"""
Active study time tracking.

Active time only accrues while the tracker is running (started, focused,
not paused, not finalized) and only up to the inactivity threshold after the
last input. The tracker owns no timer: the presentation layer polls tick().
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from lexis.domain.constants import INACTIVITY_THRESHOLD_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeSummary:
    active_ms: int
    window_ms: int

    @property
    def active_minutes(self) -> int:
        return round(self.active_ms / 60000)

    @property
    def active_ratio(self) -> float:
        if self.window_ms <= 0:
            return 0.0
        return self.active_ms / self.window_ms


class TimeTracker:
    """
    Measures engaged time separately from wall-clock time.

    Args:
        inactivity_threshold: Seconds after the last activity that still count.
        clock: Monotonic clock in seconds, injectable for tests.
    """

    def __init__(
        self,
        inactivity_threshold: float = INACTIVITY_THRESHOLD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if inactivity_threshold <= 0:
            raise ValueError("inactivity_threshold must be positive")
        self.inactivity_threshold = inactivity_threshold
        self._clock = clock

        self._opened_at: float | None = None
        self._last_activity = 0.0
        self._accounted_until = 0.0
        self._active_seconds = 0.0

        self._focused = True
        self._paused = False
        self._summary: TimeSummary | None = None

    @property
    def started(self) -> bool:
        return self._opened_at is not None

    @property
    def finalized(self) -> bool:
        return self._summary is not None

    @property
    def running(self) -> bool:
        return self.started and self._focused and not self._paused and not self.finalized

    def start(self) -> None:
        if self.started:
            return
        now = self._clock()
        self._opened_at = now
        self._last_activity = now
        self._accounted_until = now
        logger.debug("Time tracking started")

    def _pending(self, now: float) -> float:
        if not self.running:
            return 0.0
        end = min(now, self._last_activity + self.inactivity_threshold)
        return max(0.0, end - self._accounted_until)

    def _accrue(self, now: float) -> None:
        self._active_seconds += self._pending(now)
        self._accounted_until = now

    def _set_running(self, focused: bool, paused: bool) -> None:
        was_running = self.running
        now = self._clock()
        if was_running:
            self._accrue(now)
        self._focused = focused
        self._paused = paused
        if self.running and not was_running:
            # Returning counts as activity.
            self._accounted_until = now
            self._last_activity = now

    def record_activity(self) -> None:
        """Input, pointer or scroll event."""
        if not self.started or self.finalized:
            return
        now = self._clock()
        self._accrue(now)
        self._last_activity = now

    def focus(self) -> None:
        if self.started and not self.finalized:
            self._set_running(True, self._paused)

    def blur(self) -> None:
        if self.started and not self.finalized:
            self._set_running(False, self._paused)

    def pause(self) -> None:
        if self.started and not self.finalized:
            self._set_running(self._focused, True)

    def resume(self) -> None:
        if self.started and not self.finalized:
            self._set_running(self._focused, False)

    def tick(self) -> int:
        """Cooperative poll for live displays. Returns active minutes so far."""
        if self.running:
            self._accrue(self._clock())
        return self.active_minutes

    @property
    def active_ms(self) -> int:
        """Active time including the in-progress stretch. Never decreases."""
        if self._summary is not None:
            return self._summary.active_ms
        pending = self._pending(self._clock())
        return int((self._active_seconds + pending) * 1000)

    @property
    def active_minutes(self) -> int:
        return round(self.active_ms / 60000)

    def finalize(self) -> TimeSummary:
        """Stop tracking and return the summary. Repeated calls return the same one."""
        if self._summary is not None:
            return self._summary
        now = self._clock()
        if not self.started:
            self._summary = TimeSummary(active_ms=0, window_ms=0)
            return self._summary
        if self.running:
            self._accrue(now)
        self._summary = TimeSummary(
            active_ms=int(self._active_seconds * 1000),
            window_ms=int((now - self._opened_at) * 1000),
        )
        logger.debug(
            f"Time tracking finalized: active={self._summary.active_ms}ms "
            f"window={self._summary.window_ms}ms"
        )
        return self._summary
