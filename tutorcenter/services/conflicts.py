"""Service for detecting scheduling conflicts between lessons."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Mapping

from tutorcenter.domain.models import (
    AvailabilityResult,
    ConflictReport,
    Lesson,
    LessonCandidate,
    LessonStatus,
    ScheduleConflict,
)
from tutorcenter.services.timeutils import ensure_interval, intervals_overlap

logger = logging.getLogger(__name__)


def find_conflicts(
    new_start: datetime,
    new_end: datetime,
    existing_lessons: Iterable[Lesson],
) -> list[Lesson]:
    """Return existing lessons that overlap with the given time range.

    Overlap rule: conflict if existing.start_at < new_end AND existing.end_at > new_start.
    Exact boundary touches (end == start) are NOT considered conflicts.
    """
    return [
        lesson
        for lesson in existing_lessons
        if intervals_overlap(lesson.start_at, lesson.end_at, new_start, new_end)
    ]


def detect_conflicts(
    candidate: LessonCandidate,
    existing_lessons: Iterable[Lesson],
    availability: AvailabilityResult,
) -> ConflictReport:
    """Combine teacher/room double-booking with an availability verdict.

    *existing_lessons* may be pre-filtered to a time neighbourhood or be the
    full lesson set. Cancelled lessons and the candidate's own lesson are
    ignored. Room collisions are only considered when the candidate has a room.
    """
    ensure_interval(candidate.start_at, candidate.end_at)

    active = [
        lesson
        for lesson in existing_lessons
        if lesson.status != LessonStatus.CANCELLED
        and (candidate.lesson_id is None or lesson.id != candidate.lesson_id)
    ]

    teacher = find_conflicts(
        candidate.start_at,
        candidate.end_at,
        (lesson for lesson in active if lesson.teacher_id == candidate.teacher_id),
    )

    room: list[Lesson] = []
    if candidate.room_id is not None:
        room = find_conflicts(
            candidate.start_at,
            candidate.end_at,
            (lesson for lesson in active if lesson.room_id == candidate.room_id),
        )

    messages: list[str] = []
    if not availability.is_available:
        messages.append(availability.reason or "Teacher not available at this time")

    report = ConflictReport(teacher=teacher, room=room, availability=messages)
    if not report.is_clean:
        logger.debug(
            "Conflicts for teacher %s: %d teacher, %d room, availability=%s",
            candidate.teacher_id,
            len(teacher),
            len(room),
            messages,
        )
    return report


def detect_all_conflicts(
    lessons: Iterable[Lesson],
    *,
    teacher_names: Mapping[str, str] | None = None,
    room_names: Mapping[str, str] | None = None,
) -> list[ScheduleConflict]:
    """Scan a whole schedule for pairwise teacher and room double-bookings.

    Lessons are swept in start order; each overlapping pair yields at most one
    teacher conflict and one room conflict.
    """
    teacher_names = teacher_names or {}
    room_names = room_names or {}
    ordered = sorted(
        (lesson for lesson in lessons if lesson.status != LessonStatus.CANCELLED),
        key=lambda lesson: lesson.start_at,
    )

    conflicts: list[ScheduleConflict] = []
    for i, first in enumerate(ordered):
        for second in ordered[i + 1 :]:
            # Sorted by start: nothing later can overlap `first` either.
            if second.start_at >= first.end_at:
                break
            pair = [first.id, second.id]
            if first.teacher_id == second.teacher_id:
                name = teacher_names.get(first.teacher_id, "Teacher")
                conflicts.append(
                    ScheduleConflict(
                        type="teacher",
                        description=f"{name} has overlapping lessons",
                        lesson_ids=pair,
                    )
                )
            if first.room_id is not None and first.room_id == second.room_id:
                name = room_names.get(first.room_id, "Room")
                conflicts.append(
                    ScheduleConflict(
                        type="room",
                        description=f"{name} is double-booked",
                        lesson_ids=pair,
                    )
                )
    return conflicts
