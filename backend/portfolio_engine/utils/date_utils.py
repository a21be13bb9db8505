# backend/portfolio_engine/utils/date_utils.py
"""
Calendar month helpers.

Ledger timestamps are stored timezone-aware, but rows written by older
importers may be naive; those are interpreted as UTC.

Usage:
    from portfolio_engine.utils.date_utils import month_key, iter_months

    key = month_key(event_time, ZoneInfo("Europe/Amsterdam"))  # (2024, 3)
"""

from collections.abc import Iterator
from datetime import date, datetime, timezone, tzinfo

MonthKey = tuple[int, int]

_MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def as_utc(moment: datetime) -> datetime:
    """Return an aware UTC datetime; naive input is assumed to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_local(moment: datetime | date, tz: tzinfo) -> date:
    """
    Convert a timestamp to the calendar date it falls on in ``tz``.

    Plain dates are returned unchanged; naive datetimes are treated as UTC.
    """
    if not isinstance(moment, datetime):
        return moment
    return as_utc(moment).astimezone(tz).date()


def month_key(moment: datetime | date, tz: tzinfo) -> MonthKey:
    """Return the (year, month) a timestamp falls in, in ``tz``."""
    local = to_local(moment, tz)
    return local.year, local.month


def next_month(key: MonthKey) -> MonthKey:
    year, month = key
    if month == 12:
        return year + 1, 1
    return year, month + 1


def iter_months(start: MonthKey, end: MonthKey) -> Iterator[MonthKey]:
    """
    Yield every month from ``start`` to ``end`` inclusive.

    Yields nothing when ``start`` is after ``end``.
    """
    current = start
    while current <= end:
        yield current
        current = next_month(current)


def format_month(key: MonthKey) -> str:
    """Format a month key as ``YYYY-MM``."""
    return f"{key[0]:04d}-{key[1]:02d}"


def month_label(key: MonthKey) -> str:
    """Format a month key for charts, e.g. ``Jan 2024``."""
    return f"{_MONTH_ABBREVIATIONS[key[1] - 1]} {key[0]}"
