from datetime import timedelta

import pytest

from lexis.application.utils.time_format import (
    READY_NOW,
    format_interval,
    format_time_until_review,
)


@pytest.mark.parametrize(
    "minutes,expected",
    [
        (1, "1 minute"),
        (10, "10 minutes"),
        (24.2, "25 minutes"),
        (60, "1 hour"),
        (90, "1.5 hours"),
        (1440, "1 day"),
        (4320, "3 days"),
        (20160, "2 weeks"),
        (525600, "12.2 months"),
    ],
)
def test_format_interval(minutes, expected):
    assert format_interval(minutes) == expected


def test_format_time_until_review(now):
    assert format_time_until_review(None, now) == READY_NOW
    assert format_time_until_review(now - timedelta(minutes=5), now) == READY_NOW
    assert format_time_until_review(now, now) == READY_NOW
    assert format_time_until_review(now + timedelta(hours=3), now) == "3 hours"
