"""
Calendar-window helpers shared by the engines.

All windows are inclusive on both ends and listed oldest → newest, so index i
of every time-indexed array refers to the same calendar day.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from momentum.core.errors import InvalidInputError

PERIOD_DAYS: dict[str, int] = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}


def today() -> date:
    return datetime.now(tz=timezone.utc).date()


def period_days(period: str) -> int:
    try:
        return PERIOD_DAYS[period]
    except KeyError:
        raise InvalidInputError(
            field="period",
            message=f"Unknown period '{period}'. Expected one of: {', '.join(PERIOD_DAYS)}.",
            value=period,
        ) from None


def window_days(end: date, n: int) -> list[date]:
    """[end - (n-1), end] inclusive, oldest → newest."""
    return [end - timedelta(days=i) for i in range(n - 1, -1, -1)]


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def day_end(day: date) -> datetime:
    """Exclusive upper bound: midnight of the following day."""
    return day_start(day + timedelta(days=1))


def as_utc(ts: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def time_of_day(hour: int) -> str:
    if hour < 6:
        return "night"
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"
