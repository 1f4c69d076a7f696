"""Date helpers shared by ingestion, interpolation and the facade."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator


def parse_date(value: str | date) -> date:
    """Parse a date string in ISO format to :class:`date`."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def iter_days_between(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day strictly between ``start`` and ``end``."""

    current = start + timedelta(days=1)
    while current < end:
        yield current
        current += timedelta(days=1)


def ordinal_offset(day: date) -> int:
    """Return the day count of ``day`` since the proleptic Gregorian epoch."""

    return day.toordinal()


__all__ = ["iter_days_between", "ordinal_offset", "parse_date"]
