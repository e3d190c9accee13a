"""
Analytics and gamification sinks.

The core only emits events; dashboards, XP and streak tables live elsewhere
and read what these sinks record.
"""

import logging
from dataclasses import asdict

from lexis.domain.constants import (
    MAX_STORED_REVIEW_EVENTS,
    MAX_STORED_SESSIONS,
    REVIEW_EVENTS_KEY,
    SESSION_EVENTS_KEY,
)
from lexis.domain.interfaces import AnalyticsSink, GamificationSink, KeyValueStore
from lexis.domain.models import ReviewEvent, SessionSummary, format_instant, utcnow

logger = logging.getLogger(__name__)


class StoreAnalyticsSink(AnalyticsSink):
    """Appends review events and session summaries to bounded lists in a store."""

    def __init__(
        self,
        store: KeyValueStore,
        max_reviews: int = MAX_STORED_REVIEW_EVENTS,
        max_sessions: int = MAX_STORED_SESSIONS,
    ):
        self.store = store
        self.max_reviews = max_reviews
        self.max_sessions = max_sessions

    async def _append(self, key: str, item: dict, limit: int) -> None:
        items = await self.store.get(key, [])
        if not isinstance(items, list):
            items = []
        items.append(item)
        await self.store.set(key, items[-limit:])

    async def record_review(self, event: ReviewEvent) -> None:
        item = {**asdict(event), "recorded_at": format_instant(utcnow())}
        await self._append(REVIEW_EVENTS_KEY, item, self.max_reviews)

    async def record_session(self, summary: SessionSummary) -> None:
        await self._append(SESSION_EVENTS_KEY, summary.to_dict(), self.max_sessions)

    async def recent_reviews(self) -> list[dict]:
        return await self.store.get(REVIEW_EVENTS_KEY, [])

    async def recent_sessions(self) -> list[dict]:
        return await self.store.get(SESSION_EVENTS_KEY, [])


class LoggingGamificationSink(GamificationSink):
    """Hands review outcomes to external XP/streak bookkeeping via the log."""

    def __init__(self, logger_name: str = "lexis.gamification"):
        self.logger = logging.getLogger(logger_name)

    async def handle_review(self, event: ReviewEvent) -> None:
        self.logger.info(
            f"review word={event.word_id} correct={event.is_correct} "
            f"quality={event.quality} time_ms={event.time_spent_ms}"
        )
