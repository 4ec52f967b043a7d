"""Interval and wall-clock helpers shared by the availability and conflict services."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterator

from dateutil import tz as dateutil_tz

from tutorcenter.domain.errors import ValidationError

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Indexed by Sunday-based day of week (0 = Sunday).
DAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


def parse_hhmm(value: str | time) -> time:
    """Parse a 24-hour ``HH:MM`` string into a :class:`time`.

    ``time`` instances pass through unchanged so already-parsed model fields
    can be revalidated.
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Expected an HH:MM time string, got {value!r}")
    m = _HHMM_RE.match(value)
    if not m:
        raise ValidationError(f"Malformed time {value!r}, expected HH:MM")
    return time(int(m.group(1)), int(m.group(2)))


def parse_iso_date(value: str | date) -> date:
    """Parse a ``YYYY-MM-DD`` string into a :class:`date`."""
    if isinstance(value, datetime):
        raise ValidationError(f"Expected a calendar date, got timestamp {value!r}")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
        raise ValidationError(f"Malformed date {value!r}, expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Malformed date {value!r}: {exc}") from exc


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA zone name (``"UTC"``, ``"Asia/Jerusalem"``...)."""
    zone = dateutil_tz.gettz(name)
    if zone is None:
        raise ValidationError(f"Unknown timezone {name!r}")
    return zone


def ensure_interval(start: datetime, end: datetime) -> None:
    """Reject naive or non-chronological timestamp pairs."""
    if start.tzinfo is None or end.tzinfo is None:
        raise ValidationError("Timestamps must be timezone-aware")
    if start >= end:
        raise ValidationError("end must be after start")


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open overlap test: ``[a) ∩ [b) ≠ ∅``.

    Touching ranges (``end_a == start_b``) do not overlap.
    """
    return start_a < end_b and end_a > start_b


def to_wall_clock(instant: datetime, zone: tzinfo) -> datetime:
    """Convert an aware instant to a naive wall-clock datetime in *zone*."""
    return instant.astimezone(zone).replace(tzinfo=None)


def sunday_based_weekday(day: date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def day_portions(
    start: datetime, end: datetime
) -> Iterator[tuple[date, datetime, datetime]]:
    """Split a naive wall-clock range into per-calendar-day pieces.

    Yields ``(day, piece_start, piece_end)`` for every day the half-open range
    touches. A range ending exactly at midnight does not touch the next day.
    """
    day = start.date()
    while True:
        day_start = datetime.combine(day, time.min)
        next_day = day_start + timedelta(days=1)
        lo = max(start, day_start)
        hi = min(end, next_day)
        if lo < hi:
            yield day, lo, hi
        if end <= next_day:
            return
        day += timedelta(days=1)
