"""
Review Factory
Centralizes the selection of storage backend, scheduler and sinks from config.
"""

import logging
import time

from lexis.application.config import AppConfig
from lexis.application.review.session import ReviewSession
from lexis.application.review.time_tracker import TimeTracker
from lexis.application.srs.adaptive import AdaptiveScheduler
from lexis.application.srs.scheduler import BasicScheduler, Scheduler
from lexis.domain.interfaces import KeyValueStore
from lexis.infrastructure.adapters.sinks import LoggingGamificationSink, StoreAnalyticsSink
from lexis.infrastructure.adapters.stores import HttpKeyValueStore, JsonFileStore, MemoryStore
from lexis.infrastructure.adapters.word_repository import KeyValueWordRepository

logger = logging.getLogger(__name__)


def get_key_value_store(config: AppConfig) -> KeyValueStore:
    """Returns the KeyValueStore implementation selected by config."""
    if config.store_backend == "http":
        return HttpKeyValueStore(config.store_url, token=config.store_token)
    if config.store_backend == "memory":
        return MemoryStore()
    return JsonFileStore(config.data_file)


def get_scheduler(config: AppConfig) -> Scheduler:
    if config.scheduler == "basic":
        return BasicScheduler()
    return AdaptiveScheduler(fallback=BasicScheduler())


def get_word_repository(
    config: AppConfig, store: KeyValueStore | None = None
) -> KeyValueWordRepository:
    return KeyValueWordRepository(store or get_key_value_store(config))


def build_review_session(config: AppConfig, store: KeyValueStore | None = None, **kwargs) -> ReviewSession:
    """
    Wire a ReviewSession with the configured repository, scheduler and sinks.

    Extra keyword arguments are passed through to ReviewSession.
    """
    store = store or get_key_value_store(config)
    time_tracker = kwargs.pop("time_tracker", None) or TimeTracker(
        config.inactivity_threshold_seconds,
        clock=kwargs.get("monotonic", time.monotonic),
    )
    logger.debug(
        f"Building review session: backend={config.store_backend} scheduler={config.scheduler}"
    )
    return ReviewSession(
        get_word_repository(config, store),
        get_scheduler(config),
        StoreAnalyticsSink(store),
        LoggingGamificationSink(),
        retry_on_mistake=config.retry_on_mistake,
        retry_on_skip=config.retry_on_skip,
        limit=config.session_limit,
        time_tracker=time_tracker,
        **kwargs,
    )
