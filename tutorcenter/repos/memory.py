"""In-memory repositories for teachers, rooms, groups, lessons and audit entries."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from tutorcenter.domain.models import (
    AuditEntry,
    AvailabilityException,
    ExceptionType,
    Group,
    Lesson,
    LessonStatus,
    LessonType,
    Room,
    ScheduleRule,
    Teacher,
    WeeklyAvailabilitySlot,
)


class TeacherRepository:
    """Dict-backed store for Teacher instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Teacher] = {}

    def add(self, teacher: Teacher) -> None:
        self._store[teacher.id] = teacher

    def get(self, teacher_id: str) -> Teacher | None:
        return self._store.get(teacher_id)

    def list_all(self) -> list[Teacher]:
        return list(self._store.values())


class RoomRepository:
    """Dict-backed store for Room instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Room] = {}

    def add(self, room: Room) -> None:
        self._store[room.id] = room

    def get(self, room_id: str) -> Room | None:
        return self._store.get(room_id)

    def list_all(self) -> list[Room]:
        return list(self._store.values())


class GroupRepository:
    """Dict-backed store for Group instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Group] = {}

    def add(self, group: Group) -> None:
        self._store[group.id] = group

    def get(self, group_id: str) -> Group | None:
        return self._store.get(group_id)


class LessonRepository:
    """Dict-backed store for Lesson instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Lesson] = {}

    def add(self, lesson: Lesson) -> None:
        self._store[lesson.id] = lesson

    def get(self, lesson_id: str) -> Lesson | None:
        return self._store.get(lesson_id)

    def list_all(self) -> list[Lesson]:
        return sorted(self._store.values(), key=lambda lesson: lesson.start_at)

    def list_window(self, start: datetime, end: datetime) -> list[Lesson]:
        """Lessons overlapping ``[start, end)``, cancelled ones included."""
        return [
            lesson
            for lesson in self.list_all()
            if lesson.start_at < end and lesson.end_at > start
        ]

    def list_filtered(
        self,
        *,
        teacher_id: str | None = None,
        room_id: str | None = None,
        status: LessonStatus | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Lesson]:
        """Filter lessons; ``start``/``end`` bound the lesson's start time."""
        lessons = self.list_all()
        if teacher_id is not None:
            lessons = [lesson for lesson in lessons if lesson.teacher_id == teacher_id]
        if room_id is not None:
            lessons = [lesson for lesson in lessons if lesson.room_id == room_id]
        if status is not None:
            lessons = [lesson for lesson in lessons if lesson.status == status]
        if start is not None:
            lessons = [lesson for lesson in lessons if lesson.start_at >= start]
        if end is not None:
            lessons = [lesson for lesson in lessons if lesson.start_at <= end]
        return lessons


class AuditRepository:
    """List-backed store for AuditEntry instances."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def add(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def list_for_lesson(self, lesson_id: str) -> list[AuditEntry]:
        return sorted(
            [e for e in self._entries if e.lesson_id == lesson_id],
            key=lambda e: e.timestamp,
        )


# ---------------------------------------------------------------------------
# Seed data – a small center useful for trying out conflict checks
# ---------------------------------------------------------------------------


def seed_demo_data(
    teacher_repo: TeacherRepository,
    room_repo: RoomRepository,
    group_repo: GroupRepository,
    lesson_repo: LessonRepository,
    today: date | None = None,
) -> None:
    """Load two teachers, two rooms, a group and a few lessons for next Monday."""
    today = today or datetime.now(timezone.utc).date()
    monday = today + timedelta(days=(7 - today.weekday()) % 7 or 7)

    weekdays = [
        WeeklyAvailabilitySlot(day_of_week=d, start_time="09:00", end_time="17:00")
        for d in range(1, 6)
    ]
    maya = Teacher(
        full_name="Maya Cohen",
        email="maya@example.com",
        subjects=["Math", "Physics"],
        weekly_availability=weekdays,
        availability_exceptions=[
            AvailabilityException(
                type=ExceptionType.UNAVAILABLE,
                start_date=(monday + timedelta(days=3)).isoformat(),
                end_date=(monday + timedelta(days=4)).isoformat(),
                all_day=True,
                reason="Conference",
            )
        ],
    )
    omer = Teacher(
        full_name="Omer Levi",
        email="omer@example.com",
        subjects=["English"],
        weekly_availability=[
            WeeklyAvailabilitySlot(day_of_week=0, start_time="14:00", end_time="20:00"),
            WeeklyAvailabilitySlot(day_of_week=2, start_time="14:00", end_time="20:00"),
        ],
    )
    teacher_repo.add(maya)
    teacher_repo.add(omer)

    room_a = Room(name="Room A", capacity=12, floor="1")
    lab = Room(name="Science Lab", capacity=8, floor="2", equipment=["projector"])
    room_repo.add(room_a)
    room_repo.add(lab)

    group = Group(
        name="Algebra 9",
        teacher_id=maya.id,
        room_id=room_a.id,
        schedule_rule=ScheduleRule(
            days_of_week=[1, 3], start_time="16:00", end_time="17:00"
        ),
    )
    group_repo.add(group)

    def at(hour: int) -> datetime:
        return datetime.combine(monday, datetime.min.time(), timezone.utc).replace(hour=hour)

    lesson_repo.add(
        Lesson(
            title="Algebra 9",
            start_at=at(10),
            end_at=at(11),
            type=LessonType.GROUP,
            teacher_id=maya.id,
            room_id=room_a.id,
            group_id=group.id,
        )
    )
    lesson_repo.add(
        Lesson(
            title="Physics tutoring",
            start_at=at(12),
            end_at=at(13),
            teacher_id=maya.id,
            room_id=lab.id,
            student_id="student-demo-1",
        )
    )
    lesson_repo.add(
        Lesson(
            title="Cancelled tutoring",
            start_at=at(14),
            end_at=at(15),
            teacher_id=maya.id,
            room_id=lab.id,
            student_id="student-demo-2",
            status=LessonStatus.CANCELLED,
        )
    )
