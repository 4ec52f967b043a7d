"""Lesson create/update orchestration around the availability and conflict checks."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any

from tutorcenter.domain.bus import EventBus
from tutorcenter.domain.errors import ConflictError, NotFoundError, ValidationError
from tutorcenter.domain.events import (
    ConflictOverridden,
    LessonCancelled,
    LessonRescheduled,
    LessonScheduled,
)
from tutorcenter.domain.models import (
    ConflictReport,
    CreateLessonRequest,
    GeneratedLesson,
    GenerationResult,
    Lesson,
    LessonCandidate,
    LessonStatus,
    LessonType,
    RoomStatus,
    Teacher,
)
from tutorcenter.repos.memory import (
    GroupRepository,
    LessonRepository,
    RoomRepository,
    TeacherRepository,
)
from tutorcenter.services.availability import check_availability
from tutorcenter.services.conflicts import detect_conflicts
from tutorcenter.services.generation import expand_schedule_rule
from tutorcenter.services.timeutils import ensure_interval

logger = logging.getLogger(__name__)

# Fields whose change requires a fresh conflict check.
_SCHEDULING_FIELDS = ("start_at", "end_at", "teacher_id", "room_id")


class LessonScheduler:
    """Turns availability and conflict verdicts into create/update decisions.

    Reads and writes go through the repositories it is given. The check and the
    write are not atomic: two concurrent requests may both see a clean report.
    """

    def __init__(
        self,
        bus: EventBus,
        teacher_repo: TeacherRepository,
        room_repo: RoomRepository,
        group_repo: GroupRepository,
        lesson_repo: LessonRepository,
        tz: tzinfo = timezone.utc,
        window_padding: timedelta = timedelta(hours=24),
    ) -> None:
        self.bus = bus
        self.teacher_repo = teacher_repo
        self.room_repo = room_repo
        self.group_repo = group_repo
        self.lesson_repo = lesson_repo
        self.tz = tz
        self.window_padding = window_padding

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check(
        self, candidate: LessonCandidate, extra_lessons: list[Lesson] | None = None
    ) -> ConflictReport:
        """Build the conflict report for *candidate* without writing anything."""
        ensure_interval(candidate.start_at, candidate.end_at)
        teacher = self._teacher_for(candidate.teacher_id)

        availability = check_availability(
            teacher.weekly_availability,
            teacher.availability_exceptions,
            candidate.start_at,
            candidate.end_at,
            tz=self.tz,
        )
        nearby = self.lesson_repo.list_window(
            candidate.start_at - self.window_padding,
            candidate.end_at + self.window_padding,
        )
        if extra_lessons:
            nearby = nearby + extra_lessons
        return detect_conflicts(candidate, nearby, availability)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_lesson(
        self, request: CreateLessonRequest, *, force_create: bool = False
    ) -> Lesson:
        """Store a new lesson unless it conflicts and the caller did not force it."""
        ensure_interval(request.start_at, request.end_at)
        self._validate_room(request.room_id)
        if request.type == LessonType.GROUP:
            if not request.group_id:
                raise ValidationError("group_id is required for group lessons")
            if self.group_repo.get(request.group_id) is None:
                raise ValidationError(f"Group {request.group_id} not found")
        elif not request.student_id:
            raise ValidationError("student_id is required for one-on-one lessons")

        candidate = LessonCandidate(
            teacher_id=request.teacher_id,
            room_id=request.room_id,
            start_at=request.start_at,
            end_at=request.end_at,
        )
        report = self.check(candidate)
        self._enforce(report, forced=force_create)

        lesson = Lesson(
            **request.model_dump(exclude={"force_create"}),
        )
        self.lesson_repo.add(lesson)
        self._publish_scheduled(lesson.id, report, forced=force_create)
        return lesson

    def update_lesson(
        self, lesson_id: str, changes: dict[str, Any], *, force_update: bool = False
    ) -> Lesson:
        """Apply *changes* to a stored lesson.

        Moving a lesson or reactivating a cancelled one re-runs the conflict
        check; cancelling it through *changes* publishes ``LessonCancelled``.
        """
        existing = self._lesson(lesson_id)
        if "room_id" in changes:
            self._validate_room(changes["room_id"])

        merged = existing.model_dump()
        merged.update(changes)
        moved = [field for field in _SCHEDULING_FIELDS if field in changes]

        was_cancelled = existing.status == LessonStatus.CANCELLED
        now_cancelled = merged["status"] == LessonStatus.CANCELLED
        if was_cancelled and not now_cancelled:
            moved.append("status")

        report = ConflictReport()
        if moved and not now_cancelled:
            candidate = LessonCandidate(
                teacher_id=merged["teacher_id"],
                room_id=merged["room_id"],
                start_at=merged["start_at"],
                end_at=merged["end_at"],
                lesson_id=lesson_id,
            )
            report = self.check(candidate)
            self._enforce(report, forced=force_update)

        merged["updated_at"] = datetime.now(timezone.utc)
        updated = Lesson(**merged)
        self.lesson_repo.add(updated)

        if moved:
            self.bus.publish(
                LessonRescheduled(
                    lesson_id=lesson_id,
                    changed_fields=moved,
                    forced=force_update and not report.is_clean,
                )
            )
            self._publish_override(lesson_id, report)
        if now_cancelled and not was_cancelled:
            self.bus.publish(LessonCancelled(lesson_id=lesson_id))
        return updated

    def cancel_lesson(self, lesson_id: str) -> Lesson:
        """Soft-delete a lesson; cancelled lessons never count as conflicts."""
        existing = self._lesson(lesson_id)
        cancelled = existing.model_copy(
            update={
                "status": LessonStatus.CANCELLED,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self.lesson_repo.add(cancelled)
        self.bus.publish(LessonCancelled(lesson_id=lesson_id))
        return cancelled

    def generate_for_group(
        self,
        group_id: str,
        start_date: date,
        end_date: date,
        *,
        dry_run: bool = False,
        skip_conflicting: bool = False,
    ) -> GenerationResult:
        """Expand a group's schedule rule and store (or preview) the lessons.

        Each generated lesson is checked against stored lessons and against the
        lessons generated before it in the same batch.
        """
        group = self.group_repo.get(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} not found")

        result = GenerationResult()
        batch: list[Lesson] = []
        for lesson in expand_schedule_rule(group, start_date, end_date, tz=self.tz):
            report = self.check(LessonCandidate.from_lesson(lesson), extra_lessons=batch)
            if not report.is_clean:
                result.conflicts.append(GeneratedLesson(lesson=lesson, report=report))
                if skip_conflicting:
                    result.skipped.append(lesson)
                    continue
            batch.append(lesson)
            result.created.append(lesson)

        if not dry_run:
            for lesson in result.created:
                self.lesson_repo.add(lesson)
                self.bus.publish(LessonScheduled(lesson_id=lesson.id))
        logger.info(
            "Generated %d lessons for group %s (%d skipped, %d with conflicts, dry_run=%s)",
            len(result.created),
            group_id,
            len(result.skipped),
            len(result.conflicts),
            dry_run,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _teacher_for(self, teacher_id: str) -> Teacher:
        teacher = self.teacher_repo.get(teacher_id)
        if teacher is None:
            raise ValidationError(f"Teacher {teacher_id} not found")
        return teacher

    def _lesson(self, lesson_id: str) -> Lesson:
        lesson = self.lesson_repo.get(lesson_id)
        if lesson is None:
            raise NotFoundError(f"Lesson {lesson_id} not found")
        return lesson

    def _validate_room(self, room_id: str | None) -> None:
        if room_id is None:
            return
        room = self.room_repo.get(room_id)
        if room is None:
            raise ValidationError(f"Room {room_id} not found")
        if room.status == RoomStatus.MAINTENANCE:
            raise ValidationError(f"Room {room.name} is under maintenance")

    def _enforce(self, report: ConflictReport, *, forced: bool) -> None:
        if report.is_clean or forced:
            return
        logger.info(
            "Rejected lesson: %d teacher, %d room, %d availability conflicts",
            len(report.teacher),
            len(report.room),
            len(report.availability),
        )
        raise ConflictError(report)

    def _publish_scheduled(
        self, lesson_id: str, report: ConflictReport, *, forced: bool
    ) -> None:
        self.bus.publish(
            LessonScheduled(lesson_id=lesson_id, forced=forced and not report.is_clean)
        )
        self._publish_override(lesson_id, report)

    def _publish_override(self, lesson_id: str, report: ConflictReport) -> None:
        # Only reached after _enforce, so a non-clean report means it was forced.
        if report.is_clean:
            return
        self.bus.publish(
            ConflictOverridden(
                lesson_id=lesson_id,
                teacher_conflict_ids=[lesson.id for lesson in report.teacher],
                room_conflict_ids=[lesson.id for lesson in report.room],
                availability=report.availability,
            )
        )
