import json
from datetime import UTC, datetime, timedelta

import pytest

from lexis.domain.models import (
    QualityRating,
    ReviewHistoryEntry,
    SessionSummary,
    SrsState,
    Word,
    parse_instant,
)


def test_parse_instant_accepts_iso_and_epoch_millis():
    expected = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
    assert parse_instant("2024-03-01T12:00:00+00:00") == expected
    assert parse_instant("2024-03-01T12:00:00Z") == expected
    assert parse_instant(int(expected.timestamp() * 1000)) == expected


def test_parse_instant_naive_is_utc():
    assert parse_instant("2024-03-01T12:00:00").tzinfo is UTC
    assert parse_instant(datetime(2024, 3, 1)).tzinfo is UTC


@pytest.mark.parametrize("value", [None, "not a date", float("nan"), True, {"a": 1}])
def test_parse_instant_rejects_garbage(value):
    assert parse_instant(value) is None


def test_quality_rating_failure_boundary():
    assert QualityRating.BLACKOUT.is_failure
    assert QualityRating.HINTED.is_failure
    assert not QualityRating.HESITANT.is_failure
    assert not QualityRating.PERFECT.is_failure


def test_srs_state_due_when_next_review_missing(now):
    assert SrsState().is_due(now)
    assert SrsState(next_review=now).is_due(now)
    assert not SrsState(next_review=now + timedelta(minutes=1)).is_due(now)


def test_srs_state_from_dict_is_lenient():
    state = SrsState.from_dict(
        {
            "repetitions": "3",
            "interval": "oops",
            "ease_factor": float("inf"),
            "next_review": "garbage",
            "review_history": [{"timestamp": None}, "junk"],
        }
    )
    assert state.repetitions == 3
    assert state.interval == 10
    assert state.ease_factor == 2.5
    assert state.next_review is None
    assert state.review_history == ()

    assert SrsState.from_dict(None) == SrsState()
    assert SrsState.from_dict("nonsense") == SrsState()


def test_word_record_preserves_srs_and_history(now):
    entry = ReviewHistoryEntry(
        timestamp=now,
        quality=4,
        response_time_ms=2500,
        previous_interval=10,
        new_interval=25,
        ease_factor=2.5,
    )
    word = Word(
        id="w1",
        word="serendipity",
        meaning="a happy accident",
        category="nouns",
        srs=SrsState(
            repetitions=1,
            interval=25,
            next_review=now + timedelta(minutes=25),
            last_reviewed_at=now,
            review_history=(entry,),
        ),
        created_at=now,
    )

    record = word.to_record()
    assert record["srs"]["next_review"] == "2024-03-01T12:25:00+00:00"

    restored = Word.from_record(record)
    assert restored == word


def test_word_from_record_requires_id_and_word():
    with pytest.raises(ValueError):
        Word.from_record({"id": "", "word": "x"})
    with pytest.raises(ValueError):
        Word.from_record({"id": "w1"})


def test_word_without_srs_is_always_due(now):
    word = Word(id="w1", word="a", meaning="b")
    assert word.is_due(now)
    assert Word.from_record(word.to_record()).srs is None


def test_session_summary_accuracy_and_dict(now):
    summary = SessionSummary(
        reviewed_count=4,
        correct_count=3,
        active_time_ms=90_000,
        window_time_ms=120_000,
        remaining_count=0,
        started_at=now,
        ended_at=now + timedelta(minutes=2),
    )
    assert summary.accuracy == 0.75
    assert summary.active_minutes == 2
    assert summary.duration == timedelta(minutes=2)
    assert summary.to_dict()["accuracy"] == 0.75

    empty = SessionSummary(0, 0, 0, 0, 0, now, now)
    assert empty.accuracy == 0.0


def test_srs_state_from_dict_survives_overflowing_numbers():
    state = SrsState.from_dict(
        json.loads(
            '{"repetitions": Infinity, "interval": Infinity, "ease_factor": 1e400,'
            ' "review_history": [{"timestamp": "2024-03-01T12:00:00Z", "quality": Infinity}]}'
        )
    )
    assert state.repetitions == 0
    assert state.interval == 10
    assert state.ease_factor == 2.5
    assert state.review_history == ()


def test_word_from_record_with_infinite_interval_uses_defaults():
    word = Word.from_record(json.loads('{"id": "w1", "word": "x", "srs": {"interval": -Infinity}}'))
    assert word.srs.interval == 10
