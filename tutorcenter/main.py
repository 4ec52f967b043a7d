"""FastAPI application: entry point for the tutoring-center scheduling service."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import AwareDatetime

from tutorcenter.config import Settings
from tutorcenter.domain.bus import EventBus
from tutorcenter.domain.errors import ConflictError, NotFoundError, ValidationError
from tutorcenter.domain.handlers import AuditTrail
from tutorcenter.domain.models import (
    AuditEntry,
    AvailabilityResult,
    CheckConflictsRequest,
    ConflictReport,
    ConflictResponse,
    CreateLessonRequest,
    GenerateLessonsRequest,
    GenerationResult,
    Group,
    Lesson,
    LessonCandidate,
    LessonStatus,
    Room,
    ScheduleConflict,
    Teacher,
    UpdateLessonRequest,
)
from tutorcenter.repos.memory import (
    AuditRepository,
    GroupRepository,
    LessonRepository,
    RoomRepository,
    TeacherRepository,
    seed_demo_data,
)
from tutorcenter.services.availability import check_availability
from tutorcenter.services.conflicts import detect_all_conflicts
from tutorcenter.services.scheduling import LessonScheduler

settings = Settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Tutoring Center Scheduling Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
teacher_repo = TeacherRepository()
room_repo = RoomRepository()
group_repo = GroupRepository()
lesson_repo = LessonRepository()
audit_repo = AuditRepository()

audit_trail = AuditTrail(bus=event_bus, audit_repo=audit_repo)
scheduler = LessonScheduler(
    bus=event_bus,
    teacher_repo=teacher_repo,
    room_repo=room_repo,
    group_repo=group_repo,
    lesson_repo=lesson_repo,
    tz=settings.reference_tz,
    window_padding=timedelta(hours=settings.conflict_window_padding_hours),
)

if settings.seed_demo_data:
    seed_demo_data(teacher_repo, room_repo, group_repo, lesson_repo)


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(ValidationError)
def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    body = ConflictResponse(
        detail=f"{exc}. Set force_create/force_update to override.",
        conflicts=exc.report,
    )
    return JSONResponse(status_code=409, content=body.model_dump(mode="json"))


# ── Teachers, rooms, groups ───────────────────────────────────────────


@app.post("/teachers", response_model=Teacher, status_code=201)
def create_teacher(teacher: Teacher) -> Teacher:
    """Register a teacher together with weekly availability and exceptions."""
    teacher_repo.add(teacher)
    return teacher


@app.get("/teachers/{teacher_id}", response_model=Teacher)
def get_teacher(teacher_id: str) -> Teacher:
    teacher = teacher_repo.get(teacher_id)
    if teacher is None:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return teacher


@app.get("/teachers/{teacher_id}/availability", response_model=AvailabilityResult)
def get_teacher_availability(
    teacher_id: str, start_at: datetime, end_at: datetime
) -> AvailabilityResult:
    """Evaluate whether the teacher may teach in ``[start_at, end_at)``."""
    teacher = teacher_repo.get(teacher_id)
    if teacher is None:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return check_availability(
        teacher.weekly_availability,
        teacher.availability_exceptions,
        start_at,
        end_at,
        tz=scheduler.tz,
    )


@app.post("/rooms", response_model=Room, status_code=201)
def create_room(room: Room) -> Room:
    room_repo.add(room)
    return room


@app.post("/groups", response_model=Group, status_code=201)
def create_group(group: Group) -> Group:
    if teacher_repo.get(group.teacher_id) is None:
        raise ValidationError(f"Teacher {group.teacher_id} not found")
    group_repo.add(group)
    return group


# ── Lessons ───────────────────────────────────────────────────────────


@app.get("/lessons", response_model=list[Lesson])
def list_lessons(
    teacher_id: str | None = None,
    room_id: str | None = None,
    status: LessonStatus | None = None,
    start: AwareDatetime | None = Query(default=None, description="Earliest lesson start"),
    end: AwareDatetime | None = Query(default=None, description="Latest lesson start"),
) -> list[Lesson]:
    """Return stored lessons ordered by start time."""
    return lesson_repo.list_filtered(
        teacher_id=teacher_id, room_id=room_id, status=status, start=start, end=end
    )


@app.get("/lessons/{lesson_id}", response_model=Lesson)
def get_lesson(lesson_id: str) -> Lesson:
    lesson = lesson_repo.get(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


@app.post("/lessons", response_model=Lesson, status_code=201)
def create_lesson(body: CreateLessonRequest) -> Lesson:
    """Create a lesson; 409 with the conflict report unless ``force_create`` is set."""
    return scheduler.create_lesson(body, force_create=body.force_create)


@app.patch("/lessons/{lesson_id}", response_model=Lesson)
def update_lesson(lesson_id: str, body: UpdateLessonRequest) -> Lesson:
    """Update a lesson; moving it re-runs the conflict check."""
    return scheduler.update_lesson(
        lesson_id, body.changes(), force_update=body.force_update
    )


@app.delete("/lessons/{lesson_id}", response_model=Lesson)
def cancel_lesson(lesson_id: str) -> Lesson:
    """Cancel (soft-delete) a lesson."""
    return scheduler.cancel_lesson(lesson_id)


@app.get("/lessons/{lesson_id}/audit", response_model=list[AuditEntry])
def get_lesson_audit(lesson_id: str) -> list[AuditEntry]:
    if lesson_repo.get(lesson_id) is None:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return audit_repo.list_for_lesson(lesson_id)


# ── Scheduling ────────────────────────────────────────────────────────


@app.post("/scheduling/check-conflicts", response_model=ConflictReport)
def check_conflicts(body: CheckConflictsRequest) -> ConflictReport:
    """Dry-run the conflict check for a proposed lesson."""
    candidate = LessonCandidate(
        teacher_id=body.teacher_id,
        room_id=body.room_id,
        start_at=body.start_at,
        end_at=body.end_at,
        lesson_id=body.exclude_lesson_id,
    )
    return scheduler.check(candidate)


@app.get("/scheduling/conflicts", response_model=list[ScheduleConflict])
def list_schedule_conflicts(
    start: AwareDatetime | None = None, end: AwareDatetime | None = None
) -> list[ScheduleConflict]:
    """Scan stored lessons (optionally by start-time range) for double-bookings."""
    lessons = lesson_repo.list_filtered(start=start, end=end)
    return detect_all_conflicts(
        lessons,
        teacher_names={t.id: t.full_name for t in teacher_repo.list_all()},
        room_names={r.id: r.name for r in room_repo.list_all()},
    )


@app.post("/scheduling/generate", response_model=GenerationResult)
def generate_group_lessons(body: GenerateLessonsRequest) -> GenerationResult:
    """Generate (or preview with ``dry_run``) a group's lessons from its rule."""
    return scheduler.generate_for_group(
        body.group_id,
        body.start_date,
        body.end_date,
        dry_run=body.dry_run,
        skip_conflicting=body.skip_conflicting,
    )
