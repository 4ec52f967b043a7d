"""Service for expanding a group's weekly schedule rule into lessons."""

from __future__ import annotations

from datetime import date, datetime, time, tzinfo

from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from tutorcenter.domain.errors import ValidationError
from tutorcenter.domain.models import Group, Lesson, LessonType

# Sunday-based day numbers (0 = Sunday) to dateutil weekday constants.
_WEEKDAY_MAP = {0: SU, 1: MO, 2: TU, 3: WE, 4: TH, 5: FR, 6: SA}


def expand_schedule_rule(
    group: Group,
    start_date: date,
    end_date: date,
    *,
    tz: tzinfo,
) -> list[Lesson]:
    """Build (unsaved) lessons for every rule day in ``[start_date, end_date]``.

    Rule times are wall-clock times in *tz*. A group without a schedule rule
    yields no lessons.
    """
    if end_date < start_date:
        raise ValidationError("end_date must be on or after start_date")
    rule = group.schedule_rule
    if rule is None:
        return []

    days = rrule(
        WEEKLY,
        byweekday=[_WEEKDAY_MAP[d] for d in rule.days_of_week],
        dtstart=datetime.combine(start_date, time.min),
        until=datetime.combine(end_date, time.min),
    )

    lessons: list[Lesson] = []
    for day in days:
        lessons.append(
            Lesson(
                title=group.name,
                start_at=datetime.combine(day.date(), rule.start_time, tz),
                end_at=datetime.combine(day.date(), rule.end_time, tz),
                type=LessonType.GROUP,
                teacher_id=group.teacher_id,
                room_id=rule.room_id or group.room_id,
                group_id=group.id,
            )
        )
    return lessons
