"""
Time helpers.

Timestamps are persisted as naive UTC. Calendar math (midnight, week start,
month start, local hour) happens in the analytics timezone and is converted
back to naive UTC before it reaches a query.
"""

from datetime import datetime, timedelta, timezone, tzinfo
from typing import NamedTuple


def utc_now() -> datetime:
    """Current time as naive UTC (the storage representation)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize any datetime to naive UTC. Naive input is assumed to be UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime, tz: tzinfo) -> datetime:
    """Convert a stored naive UTC datetime into ``tz``"""
    return value.replace(tzinfo=timezone.utc).astimezone(tz)


class PeriodStarts(NamedTuple):
    today: datetime
    week: datetime
    month: datetime


def local_midnight(now_utc: datetime, tz: tzinfo) -> datetime:
    """Start of the local calendar day containing ``now_utc`` (aware, in ``tz``)"""
    return to_local(now_utc, tz).replace(hour=0, minute=0, second=0, microsecond=0)


def period_starts(now_utc: datetime, tz: tzinfo, week_start_day: int = 6) -> PeriodStarts:
    """
    Calendar-aligned period boundaries as naive UTC.

    Args:
        now_utc: Reference time (naive UTC)
        tz: Timezone defining local midnight
        week_start_day: First day of the week, 0 = Monday ... 6 = Sunday

    Returns:
        PeriodStarts(today, week, month)
    """
    today = local_midnight(now_utc, tz)
    week = today - timedelta(days=(today.weekday() - week_start_day) % 7)
    month = today.replace(day=1)
    return PeriodStarts(
        today=to_utc_naive(today),
        week=to_utc_naive(week),
        month=to_utc_naive(month),
    )
