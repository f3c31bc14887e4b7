# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Calendar date helpers — pure computation, no I/O.

Calendar dates are plain ``datetime.date`` values (no time of day). Instants are
timezone-aware ``datetime`` values in UTC. Every helper returns a new value and
never mutates its input.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Iterator, NamedTuple

from dateutil.relativedelta import relativedelta

from coparent.core.errors import ValidationError

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Ordering(str, Enum):
    BEFORE = "before"
    EQUAL = "equal"
    AFTER = "after"


class InstantRange(NamedTuple):
    start: datetime
    end: datetime


# ── Conversions ──

def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string. Raises ValidationError otherwise."""
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        raise ValidationError(f"Invalid date format (YYYY-MM-DD): {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Not a real calendar date: {value!r}")


def format_date(value: date) -> str:
    return value.isoformat()


def to_utc(value: datetime) -> datetime:
    """Normalise an instant to aware UTC. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def instant_to_date(value: datetime) -> date:
    """UTC calendar day an instant falls on."""
    return to_utc(value).date()


def to_instant_at_start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def to_instant_at_end_of_day(value: date) -> datetime:
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


def today() -> date:
    """Current local calendar day."""
    return date.today()


# ── Arithmetic ──

def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def subtract_days(value: date, days: int) -> date:
    return value - timedelta(days=days)


def add_months(value: date, months: int) -> date:
    """Month arithmetic clamping the day to the target month (Jan 31 + 1 -> Feb 28/29)."""
    return value + relativedelta(months=months)


def subtract_months(value: date, months: int) -> date:
    return value - relativedelta(months=months)


def days_between(start: date, end: date) -> int:
    """Whole days from ``start`` to ``end`` (negative when end is earlier)."""
    return (end - start).days


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


# ── Comparison ──

def compare(a: date, b: date) -> Ordering:
    if a < b:
        return Ordering.BEFORE
    if a > b:
        return Ordering.AFTER
    return Ordering.EQUAL


def is_before(a: date, b: date) -> bool:
    return compare(a, b) is Ordering.BEFORE


def is_after(a: date, b: date) -> bool:
    return compare(a, b) is Ordering.AFTER


def dates_equal(a: date, b: date) -> bool:
    return compare(a, b) is Ordering.EQUAL


# ── Ranges ──

def date_range_around_center(
    center: date,
    months_before: int = 1,
    months_after: int = 2,
) -> InstantRange:
    """
    Default scheduling query window: one month back, two months forward.
    Bounds are returned as UTC instants at the start of each bounding day,
    ready to be used in storage queries.
    """
    start = subtract_months(center, months_before)
    end = add_months(center, months_after)
    return InstantRange(
        start=to_instant_at_start_of_day(start),
        end=to_instant_at_start_of_day(end),
    )
