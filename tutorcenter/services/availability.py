"""Service deciding whether a teacher may teach during a proposed window."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Iterable, Sequence

from tutorcenter.domain.models import (
    AvailabilityException,
    AvailabilityResult,
    ExceptionType,
    TimeWindow,
    WeeklyAvailabilitySlot,
)
from tutorcenter.services.timeutils import (
    DAY_NAMES,
    day_portions,
    ensure_interval,
    intervals_overlap,
    sunday_based_weekday,
    to_wall_clock,
)

logger = logging.getLogger(__name__)


def check_availability(
    weekly_slots: Sequence[WeeklyAvailabilitySlot],
    exceptions: Sequence[AvailabilityException],
    candidate_start: datetime,
    candidate_end: datetime,
    *,
    tz: tzinfo = timezone.utc,
) -> AvailabilityResult:
    """Evaluate a candidate window against a teacher's schedule.

    Both timestamps must be timezone-aware; they are converted into *tz*, the
    organization's reference zone, before calendar date, day of week and
    wall-clock time are derived.

    Precedence:
      1. an ``unavailable`` exception touching the window blocks it,
      2. otherwise an ``available`` exception touching the window opens it,
      3. otherwise some weekly slot for that day must contain the window
         (boundaries inclusive).

    A window that crosses midnight in *tz* can never fit a weekly slot.
    Raises :class:`~tutorcenter.domain.errors.ValidationError` on naive or
    non-chronological input; "no slot" is a normal negative result.
    """
    ensure_interval(candidate_start, candidate_end)
    start = to_wall_clock(candidate_start, tz)
    end = to_wall_clock(candidate_end, tz)

    for exc in _applicable(exceptions, ExceptionType.UNAVAILABLE, start, end):
        reason = (
            f"Teacher unavailable: {exc.reason}"
            if exc.reason
            else "Teacher unavailable due to exception"
        )
        logger.debug("Blocked by exception %s: %s", exc.id, reason)
        return AvailabilityResult.unavailable(reason)

    for exc in _applicable(exceptions, ExceptionType.AVAILABLE, start, end):
        logger.debug("Opened by exception %s", exc.id)
        return AvailabilityResult.available()

    day_of_week = sunday_based_weekday(start.date())
    day_name = DAY_NAMES[day_of_week]

    # Slots end at 23:59 at the latest, so anything ending on a later date
    # (midnight included) cannot fit.
    if end.date() != start.date():
        return AvailabilityResult.unavailable(
            f"Teacher not available on {day_name} at this time (lesson spans midnight)"
        )

    if any(
        slot.day_of_week == day_of_week and slot.contains(start.time(), end.time())
        for slot in weekly_slots
    ):
        return AvailabilityResult.available()

    return AvailabilityResult.unavailable(
        f"Teacher not available on {day_name} at this time"
    )


def _applicable(
    exceptions: Iterable[AvailabilityException],
    kind: ExceptionType,
    start: datetime,
    end: datetime,
) -> Iterable[AvailabilityException]:
    """Exceptions of *kind* whose date range and scope touch ``[start, end)``."""
    for exc in exceptions:
        if exc.type == kind and _touches(exc, start, end):
            yield exc


def _touches(exc: AvailabilityException, start: datetime, end: datetime) -> bool:
    for day, piece_start, piece_end in day_portions(start, end):
        if not exc.covers_date(day):
            continue
        if not isinstance(exc.scope, TimeWindow):
            return True
        window_start = datetime.combine(day, exc.scope.start_time)
        window_end = datetime.combine(day, exc.scope.end_time)
        if intervals_overlap(piece_start, piece_end, window_start, window_end):
            return True
    return False

