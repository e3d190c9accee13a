from pathlib import Path

from lexis.application.config import AppConfig
from lexis.application.factory import (
    build_review_session,
    get_key_value_store,
    get_scheduler,
)
from lexis.application.review.time_tracker import TimeTracker
from lexis.application.srs.adaptive import AdaptiveScheduler
from lexis.application.srs.scheduler import BasicScheduler
from lexis.infrastructure.adapters.stores import HttpKeyValueStore, JsonFileStore, MemoryStore


def make_config(**kwargs):
    return AppConfig.model_construct(
        **{
            "store_backend": "json",
            "data_file": Path("/tmp/lexis-test.json"),
            "store_url": "http://kv.test",
            "store_token": None,
            "scheduler": "adaptive",
            "retry_on_mistake": True,
            "retry_on_skip": False,
            "inactivity_threshold_seconds": 30.0,
            "session_limit": None,
            **kwargs,
        }
    )


def test_store_selection():
    assert isinstance(get_key_value_store(make_config()), JsonFileStore)
    assert isinstance(get_key_value_store(make_config(store_backend="memory")), MemoryStore)
    http_store = get_key_value_store(make_config(store_backend="http", store_token="t"))
    assert isinstance(http_store, HttpKeyValueStore)
    assert http_store.url == "http://kv.test"


def test_scheduler_selection():
    assert isinstance(get_scheduler(make_config()), AdaptiveScheduler)
    assert type(get_scheduler(make_config(scheduler="basic"))) is BasicScheduler


def test_build_review_session_applies_config(clock):
    config = make_config(
        retry_on_mistake=False,
        retry_on_skip=True,
        session_limit=5,
        inactivity_threshold_seconds=12.0,
    )
    session = build_review_session(config, MemoryStore(), monotonic=clock)

    assert session.retry_on_mistake is False
    assert session.retry_on_skip is True
    assert session.limit == 5
    assert session.time_tracker.inactivity_threshold == 12.0


def test_build_review_session_accepts_own_time_tracker(clock):
    tracker = TimeTracker(5, clock=clock)
    session = build_review_session(make_config(), MemoryStore(), monotonic=clock, time_tracker=tracker)

    assert session.time_tracker is tracker
