"""Tests for lesson orchestration: rejecting, forcing, moving and cancelling lessons."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from tutorcenter.domain.bus import EventBus
from tutorcenter.domain.errors import ConflictError, NotFoundError, ValidationError
from tutorcenter.domain.handlers import AuditTrail
from tutorcenter.domain.models import (
    AuditEntryType,
    CreateLessonRequest,
    LessonCandidate,
    LessonStatus,
    LessonType,
    Room,
    RoomStatus,
    Teacher,
    WeeklyAvailabilitySlot,
)
from tutorcenter.repos.memory import (
    AuditRepository,
    GroupRepository,
    LessonRepository,
    RoomRepository,
    TeacherRepository,
    seed_demo_data,
)
from tutorcenter.services.conflicts import detect_all_conflicts
from tutorcenter.services.scheduling import LessonScheduler


def _at(hour: int, minute: int = 0, day: int = 9) -> datetime:
    # February 2026: the 9th is a Monday, the 11th a Wednesday.
    return datetime(2026, 2, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture()
def env():
    """Fresh bus + repos + scheduler, with one Monday teacher and one room."""
    bus = EventBus()
    teacher_repo = TeacherRepository()
    room_repo = RoomRepository()
    group_repo = GroupRepository()
    lesson_repo = LessonRepository()
    audit_repo = AuditRepository()
    AuditTrail(bus=bus, audit_repo=audit_repo)

    teacher = Teacher(
        full_name="Maya Cohen",
        email="maya@example.com",
        weekly_availability=[
            WeeklyAvailabilitySlot(day_of_week=1, start_time="09:00", end_time="17:00")
        ],
    )
    teacher_repo.add(teacher)
    room = Room(name="Room A", capacity=10)
    room_repo.add(room)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.teacher = teacher
    e.room = room
    e.room_repo = room_repo
    e.lesson_repo = lesson_repo
    e.audit_repo = audit_repo
    e.scheduler = LessonScheduler(
        bus=bus,
        teacher_repo=teacher_repo,
        room_repo=room_repo,
        group_repo=group_repo,
        lesson_repo=lesson_repo,
    )
    return e


def _request(env, start: datetime, end: datetime, **overrides) -> CreateLessonRequest:
    defaults = dict(
        title="Algebra",
        start_at=start,
        end_at=end,
        type=LessonType.ONE_ON_ONE,
        teacher_id=env.teacher.id,
        room_id=env.room.id,
        student_id="s1",
    )
    defaults.update(overrides)
    return CreateLessonRequest(**defaults)


def test_clean_lesson_is_created_and_audited(env):
    lesson = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))

    assert env.lesson_repo.get(lesson.id) is not None
    entries = env.audit_repo.list_for_lesson(lesson.id)
    assert [e.type for e in entries] == [AuditEntryType.SCHEDULED]
    assert entries[0].payload == {"forced": False}


def test_conflicting_lesson_is_rejected_with_report(env):
    first = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))

    with pytest.raises(ConflictError) as excinfo:
        env.scheduler.create_lesson(_request(env, _at(10, 30), _at(11, 30)))

    report = excinfo.value.report
    assert [l.id for l in report.teacher] == [first.id]
    assert [l.id for l in report.room] == [first.id]
    assert len(env.lesson_repo.list_all()) == 1


def test_unavailable_time_is_rejected(env):
    with pytest.raises(ConflictError) as excinfo:
        env.scheduler.create_lesson(_request(env, _at(10, day=11), _at(11, day=11)))
    assert excinfo.value.report.availability == [
        "Teacher not available on Wednesday at this time"
    ]


def test_force_create_overrides_and_records_override(env):
    env.scheduler.create_lesson(_request(env, _at(10), _at(11)))

    forced = env.scheduler.create_lesson(
        _request(env, _at(10, 30), _at(11, 30)), force_create=True
    )

    assert len(env.lesson_repo.list_all()) == 2
    types = [e.type for e in env.audit_repo.list_for_lesson(forced.id)]
    assert AuditEntryType.CONFLICT_OVERRIDDEN in types


def test_force_on_clean_lesson_is_not_an_override(env):
    lesson = env.scheduler.create_lesson(
        _request(env, _at(10), _at(11)), force_create=True
    )
    types = [e.type for e in env.audit_repo.list_for_lesson(lesson.id)]
    assert types == [AuditEntryType.SCHEDULED]


def test_cancelled_lesson_frees_the_slot(env):
    first = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))
    env.scheduler.cancel_lesson(first.id)

    second = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))
    assert second.id != first.id
    assert env.lesson_repo.get(first.id).status == LessonStatus.CANCELLED


def test_reactivating_cancelled_lesson_is_rejected_unless_forced(env):
    first = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))
    env.scheduler.cancel_lesson(first.id)
    second = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))

    with pytest.raises(ConflictError) as excinfo:
        env.scheduler.update_lesson(first.id, {"status": LessonStatus.UPCOMING})
    assert [l.id for l in excinfo.value.report.teacher] == [second.id]
    assert env.lesson_repo.get(first.id).status == LessonStatus.CANCELLED

    env.scheduler.update_lesson(
        first.id, {"status": LessonStatus.UPCOMING}, force_update=True
    )
    types = [e.type for e in env.audit_repo.list_for_lesson(first.id)]
    assert types[-2:] == [AuditEntryType.RESCHEDULED, AuditEntryType.CONFLICT_OVERRIDDEN]


def test_reactivating_into_free_slot_needs_no_force(env):
    lesson = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))
    env.scheduler.cancel_lesson(lesson.id)

    restored = env.scheduler.update_lesson(lesson.id, {"status": LessonStatus.UPCOMING})

    assert restored.status == LessonStatus.UPCOMING
    last = env.audit_repo.list_for_lesson(lesson.id)[-1]
    assert last.payload == {"changed_fields": ["status"], "forced": False}


def test_cancelling_through_update_is_audited(env):
    lesson = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))

    env.scheduler.update_lesson(lesson.id, {"status": LessonStatus.CANCELLED})

    types = [e.type for e in env.audit_repo.list_for_lesson(lesson.id)]
    assert types == [AuditEntryType.SCHEDULED, AuditEntryType.CANCELLED]


def test_unknown_teacher_is_a_validation_error(env):
    with pytest.raises(ValidationError):
        env.scheduler.create_lesson(_request(env, _at(10), _at(11), teacher_id="nobody"))


def test_room_under_maintenance_is_rejected(env):
    env.room_repo.add(env.room.model_copy(update={"status": RoomStatus.MAINTENANCE}))
    with pytest.raises(ValidationError):
        env.scheduler.create_lesson(_request(env, _at(10), _at(11)))


def test_one_on_one_requires_student(env):
    with pytest.raises(ValidationError):
        env.scheduler.create_lesson(_request(env, _at(10), _at(11), student_id=None))


def test_inverted_window_is_a_validation_error(env):
    with pytest.raises(ValidationError):
        env.scheduler.create_lesson(_request(env, _at(11), _at(10)))


def test_moving_lesson_does_not_conflict_with_itself(env):
    lesson = env.scheduler.create_lesson(_request(env, _at(10), _at(11)))

    moved = env.scheduler.update_lesson(
        lesson.id, {"start_at": _at(10, 30), "end_at": _at(11, 30)}
    )

    assert moved.start_at == _at(10, 30)
    types = [e.type for e in env.audit_repo.list_for_lesson(lesson.id)]
    assert types == [AuditEntryType.SCHEDULED, AuditEntryType.RESCHEDULED]


def test_moving_onto_another_lesson_is_rejected_unless_forced(env):
    env.scheduler.create_lesson(_request(env, _at(10), _at(11)))
    other = env.scheduler.create_lesson(_request(env, _at(12), _at(13)))

    with pytest.raises(ConflictError):
        env.scheduler.update_lesson(other.id, {"start_at": _at(10, 30), "end_at": _at(11, 30)})
    assert env.lesson_repo.get(other.id).start_at == _at(12)

    env.scheduler.update_lesson(
        other.id, {"start_at": _at(10, 30), "end_at": _at(11, 30)}, force_update=True
    )
    assert env.lesson_repo.get(other.id).start_at == _at(10, 30)


def test_title_change_skips_conflict_check(env):
    lesson = env.scheduler.create_lesson(
        _request(env, _at(10, day=11), _at(11, day=11)), force_create=True
    )
    renamed = env.scheduler.update_lesson(lesson.id, {"title": "Geometry"})
    assert renamed.title == "Geometry"


def test_room_conflicts_only_when_candidate_has_room(env):
    env.scheduler.create_lesson(_request(env, _at(10), _at(11)))
    other_teacher = Teacher(
        full_name="Omer Levi",
        email="omer@example.com",
        weekly_availability=[
            WeeklyAvailabilitySlot(day_of_week=1, start_time="09:00", end_time="17:00")
        ],
    )
    env.scheduler.teacher_repo.add(other_teacher)

    report = env.scheduler.check(
        LessonCandidate(teacher_id=other_teacher.id, room_id=env.room.id, start_at=_at(10), end_at=_at(11))
    )
    assert len(report.room) == 1

    report = env.scheduler.check(
        LessonCandidate(teacher_id=other_teacher.id, start_at=_at(10), end_at=_at(11))
    )
    assert report.is_clean


def test_update_unknown_lesson_is_not_found(env):
    with pytest.raises(NotFoundError):
        env.scheduler.update_lesson("missing", {"title": "x"})


def test_cancel_unknown_lesson_is_not_found(env):
    with pytest.raises(NotFoundError):
        env.scheduler.cancel_lesson("missing")


def test_demo_seed_is_conflict_free_and_blocks_conference():
    teacher_repo = TeacherRepository()
    room_repo = RoomRepository()
    group_repo = GroupRepository()
    lesson_repo = LessonRepository()
    # 2026-02-09 is a Monday, so the seed targets Monday 2026-02-16.
    seed_demo_data(teacher_repo, room_repo, group_repo, lesson_repo, today=date(2026, 2, 9))

    assert detect_all_conflicts(lesson_repo.list_all()) == []

    maya = next(t for t in teacher_repo.list_all() if t.full_name == "Maya Cohen")
    scheduler = LessonScheduler(
        bus=EventBus(),
        teacher_repo=teacher_repo,
        room_repo=room_repo,
        group_repo=group_repo,
        lesson_repo=lesson_repo,
    )
    report = scheduler.check(
        LessonCandidate(teacher_id=maya.id, start_at=_at(10, day=19), end_at=_at(11, day=19))
    )
    assert report.availability == ["Teacher unavailable: Conference"]
