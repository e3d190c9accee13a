"""Human-readable review intervals (intervals are minutes)."""

import math
from datetime import datetime

from lexis.domain.models import utcnow

READY_NOW = "Ready now"


def format_interval(minutes: float) -> str:
    """
    Bucket a duration into minutes, hours, days, weeks or months.

    Hours and larger units keep one decimal, e.g. "1.5 hours".
    """
    if minutes < 60:
        value, unit = math.ceil(minutes), "minute"
    elif minutes < 1440:
        value, unit = round(minutes / 60, 1), "hour"
    elif minutes < 10080:
        value, unit = round(minutes / 1440, 1), "day"
    elif minutes < 43200:
        value, unit = round(minutes / 10080, 1), "week"
    else:
        value, unit = round(minutes / 43200, 1), "month"
    return f"{value:g} {unit}" + ("" if value == 1 else "s")


def format_time_until_review(next_review: datetime | None, now: datetime | None = None) -> str:
    if next_review is None:
        return READY_NOW
    now = now or utcnow()
    if next_review <= now:
        return READY_NOW
    return format_interval((next_review - now).total_seconds() / 60)
