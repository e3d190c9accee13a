import random
from datetime import timedelta

import pytest

from lexis.application.srs.scheduler import (
    BasicScheduler,
    ease_delta,
    normalize_state,
    round_half_up,
)
from lexis.domain.models import SrsState, Word


@pytest.fixture
def scheduler():
    return BasicScheduler()


def test_first_review_good(scheduler, now):
    state = scheduler.update(None, 4, now)
    assert state.repetitions == 1
    assert state.interval == 25
    assert state.ease_factor == 2.5
    assert state.next_review == now + timedelta(minutes=25)
    assert state.last_reviewed_at == now
    assert state.last_quality == 4


def test_failed_review_resets(scheduler, now):
    state = scheduler.update(SrsState(repetitions=4, interval=1440), 1, now)
    assert state.repetitions == 0
    assert state.interval == 10
    assert state.ease_factor == pytest.approx(2.3)
    assert state.next_review == now + timedelta(minutes=10)


def test_near_miss_gets_longer_interval(scheduler, now):
    state = scheduler.update(SrsState(repetitions=2, interval=600), 2, now)
    assert state.repetitions == 0
    assert state.interval == 30
    assert state.ease_factor == pytest.approx(2.3)


def test_hesitant_pass_lowers_ease(scheduler, now):
    state = scheduler.update(SrsState(), 3, now)
    assert state.repetitions == 1
    assert state.interval == 25
    assert state.ease_factor == pytest.approx(2.36)


def test_perfect_is_capped_at_max_ease(scheduler, now):
    assert scheduler.update(SrsState(), 5, now).ease_factor == 2.5


def test_ease_never_drops_below_minimum(scheduler, now):
    state = SrsState(ease_factor=1.35)
    for _ in range(5):
        state = scheduler.update(state, 0, now)
    assert state.ease_factor == 1.3


def test_interval_capped_at_one_year(scheduler, now):
    state = scheduler.update(SrsState(repetitions=9, interval=400_000, ease_factor=2.5), 5, now)
    assert state.interval == 525600


def test_out_of_range_quality_is_clamped(scheduler, now):
    assert scheduler.update(None, 9, now) == scheduler.update(None, 5, now)
    assert scheduler.update(None, -3, now) == scheduler.update(None, 0, now)


def test_malformed_state_is_normalized():
    state = normalize_state(
        SrsState(repetitions=-2, interval=float("nan"), ease_factor=float("inf"))
    )
    assert state.repetitions == 0
    assert state.interval == 10
    assert state.ease_factor == 2.5

    assert normalize_state(SrsState(ease_factor=0.2)).ease_factor == 1.3


def test_random_sequences_stay_in_bounds(scheduler, now):
    rng = random.Random(42)
    for _ in range(50):
        state = None
        for _ in range(30):
            state = scheduler.update(state, rng.randint(0, 5), now)
            assert 1.3 <= state.ease_factor <= 2.5
            assert 10 <= state.interval <= 525600
            assert state.next_review > now


def test_passing_sequence_grows_interval(scheduler, now):
    state = None
    intervals = []
    for _ in range(4):
        state = scheduler.update(state, 4, now)
        intervals.append(state.interval)
    assert intervals == [25, 63, 158, 395]


def test_schedule_uses_word_state(scheduler, now):
    word = Word(id="w1", word="x", meaning="y", srs=SrsState(repetitions=1, interval=25))
    assert scheduler.schedule(word, 4, now=now) == scheduler.update(word.srs, 4, now)


def test_ease_delta_matches_sm2():
    assert ease_delta(5) == pytest.approx(0.1)
    assert ease_delta(4) == pytest.approx(0.0)
    assert ease_delta(3) == pytest.approx(-0.14)


def test_round_half_up():
    assert round_half_up(62.5) == 63
    assert round_half_up(2.4) == 2


def test_huge_interval_is_capped_not_overflowing(scheduler, now):
    state = scheduler.update(SrsState(repetitions=3, interval=10**400), 4, now)
    assert state.interval == 525_600
    assert state.next_review == now + timedelta(minutes=525_600)

    normalized = normalize_state(SrsState(interval=10**400, ease_factor=10**400))
    assert normalized.interval == 525_600
    assert normalized.ease_factor == 2.5
