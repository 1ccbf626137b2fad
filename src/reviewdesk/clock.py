"""UTC clock and statistics windows. Timestamps are stored as naive UTC."""
from datetime import datetime, timedelta, timezone
import enum


class Period(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def period_start(period: Period, now: datetime | None = None) -> datetime | None:
    """
    Inclusive lower bound of a calendar-aligned UTC window.
    Weeks start on Monday. Returns None for Period.ALL.
    """
    now = now or utcnow()
    day = start_of_day(now)
    if period == Period.DAY:
        return day
    if period == Period.WEEK:
        return day - timedelta(days=day.weekday())
    if period == Period.MONTH:
        return day.replace(day=1)
    if period == Period.YEAR:
        return day.replace(month=1, day=1)
    return None
