"""Domain models for the tutoring-center scheduling service."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AwareDatetime,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from tutorcenter.services.timeutils import parse_hhmm, parse_iso_date


class ExceptionType(StrEnum):
    UNAVAILABLE = "unavailable"
    AVAILABLE = "available"


class LessonStatus(StrEnum):
    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LessonType(StrEnum):
    GROUP = "group"
    ONE_ON_ONE = "one_on_one"


class RoomStatus(StrEnum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class TeacherStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AuditEntryType(StrEnum):
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    CONFLICT_OVERRIDDEN = "conflict_overridden"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# Strict wire formats: "HH:MM" and "YYYY-MM-DD".
HHMM = Annotated[time, BeforeValidator(parse_hhmm)]
ISODate = Annotated[date, BeforeValidator(parse_iso_date)]


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


class WeeklyAvailabilitySlot(BaseModel):
    """A recurring weekly window; never spans midnight."""

    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday
    start_time: HHMM
    end_time: HHMM

    @model_validator(mode="after")
    def _start_before_end(self) -> WeeklyAvailabilitySlot:
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    def contains(self, start: time, end: time) -> bool:
        """Inclusive containment of a same-day wall-clock range."""
        return self.start_time <= start and end <= self.end_time


class WholeDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["all_day"] = "all_day"


class TimeWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["window"] = "window"
    start_time: HHMM
    end_time: HHMM

    @model_validator(mode="after")
    def _start_before_end(self) -> TimeWindow:
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


ExceptionScope = Annotated[Union[WholeDay, TimeWindow], Field(discriminator="kind")]

_FLAT_SCOPE_KEYS = {"all_day", "start_time", "end_time"}


class AvailabilityException(BaseModel):
    """A date-range override of the weekly schedule.

    ``scope`` is either the whole day or a time window applied to every date
    in ``[start_date, end_date]``. The flat ``all_day`` / ``start_time`` /
    ``end_time`` shape used by API clients is accepted and converted.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    type: ExceptionType
    start_date: ISODate
    end_date: ISODate
    scope: ExceptionScope = Field(default_factory=WholeDay)
    reason: str | None = Field(default=None, max_length=500)

    @model_validator(mode="before")
    @classmethod
    def _flat_scope(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not data.keys() & _FLAT_SCOPE_KEYS:
            return data
        if "scope" in data:
            raise ValueError("scope cannot be combined with all_day/start_time/end_time")
        data = dict(data)
        all_day = data.pop("all_day", None)
        start = data.pop("start_time", None)
        end = data.pop("end_time", None)
        if all_day is None:
            # Times without all_day describe a window.
            all_day = start is None and end is None
        if all_day:
            if start is not None or end is not None:
                raise ValueError("start_time/end_time are not allowed on all-day exceptions")
            data["scope"] = {"kind": "all_day"}
        else:
            if start is None or end is None:
                raise ValueError("start_time and end_time are required when all_day is false")
            data["scope"] = {"kind": "window", "start_time": start, "end_time": end}
        return data

    @model_validator(mode="after")
    def _dates_in_order(self) -> AvailabilityException:
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    @property
    def all_day(self) -> bool:
        return isinstance(self.scope, WholeDay)

    def covers_date(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class AvailabilityResult(BaseModel):
    is_available: bool
    reason: str | None = None

    @classmethod
    def available(cls) -> AvailabilityResult:
        return cls(is_available=True)

    @classmethod
    def unavailable(cls, reason: str) -> AvailabilityResult:
        return cls(is_available=False, reason=reason)


# ---------------------------------------------------------------------------
# Core entities
# ---------------------------------------------------------------------------


class Teacher(BaseModel):
    id: str = Field(default_factory=_new_id)
    full_name: str = Field(min_length=2, max_length=100)
    email: str
    phone: str | None = None
    subjects: list[str] = Field(default_factory=list)
    status: TeacherStatus = TeacherStatus.ACTIVE
    weekly_availability: list[WeeklyAvailabilitySlot] = Field(default_factory=list)
    availability_exceptions: list[AvailabilityException] = Field(default_factory=list)
    max_hours: int = Field(default=25, ge=1, le=60)


class Room(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1, max_length=100)
    capacity: int = Field(ge=1, le=500)
    status: RoomStatus = RoomStatus.AVAILABLE
    floor: str | None = None
    equipment: list[str] = Field(default_factory=list)


class ScheduleRule(BaseModel):
    """Weekly recurrence used to generate a group's lessons."""

    days_of_week: list[int] = Field(min_length=1)
    start_time: HHMM
    end_time: HHMM
    room_id: str | None = None

    @field_validator("days_of_week")
    @classmethod
    def _valid_days(cls, value: list[int]) -> list[int]:
        if any(d < 0 or d > 6 for d in value):
            raise ValueError("days_of_week entries must be between 0 and 6")
        return sorted(set(value))

    @model_validator(mode="after")
    def _start_before_end(self) -> ScheduleRule:
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class Group(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=2, max_length=100)
    teacher_id: str
    room_id: str | None = None
    student_ids: list[str] = Field(default_factory=list)
    schedule_rule: ScheduleRule | None = None


class Lesson(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    start_at: AwareDatetime
    end_at: AwareDatetime
    type: LessonType = LessonType.ONE_ON_ONE
    teacher_id: str
    room_id: str | None = None
    group_id: str | None = None
    student_id: str | None = None
    status: LessonStatus = LessonStatus.UPCOMING
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> Lesson:
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class LessonCandidate(BaseModel):
    """A proposed (teacher, room, window) tuple to evaluate.

    ``lesson_id`` is set when an existing lesson is being moved so it does not
    collide with itself. Window ordering is checked by the services.
    """

    teacher_id: str
    room_id: str | None = None
    start_at: AwareDatetime
    end_at: AwareDatetime
    lesson_id: str | None = None

    @classmethod
    def from_lesson(cls, lesson: Lesson) -> LessonCandidate:
        return cls(
            teacher_id=lesson.teacher_id,
            room_id=lesson.room_id,
            start_at=lesson.start_at,
            end_at=lesson.end_at,
            lesson_id=lesson.id,
        )


class ConflictReport(BaseModel):
    teacher: list[Lesson] = Field(default_factory=list)
    room: list[Lesson] = Field(default_factory=list)
    availability: list[str] = Field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.teacher or self.room or self.availability)


class ScheduleConflict(BaseModel):
    """One pairwise collision found by a schedule-wide scan."""

    id: str = Field(default_factory=_new_id)
    type: Literal["teacher", "room"]
    description: str
    lesson_ids: list[str]
    severity: Literal["low", "medium", "high"] = "high"


class GeneratedLesson(BaseModel):
    lesson: Lesson
    report: ConflictReport


class GenerationResult(BaseModel):
    created: list[Lesson] = Field(default_factory=list)
    skipped: list[Lesson] = Field(default_factory=list)
    conflicts: list[GeneratedLesson] = Field(default_factory=list)


class AuditEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    lesson_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: AuditEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateLessonRequest(BaseModel):
    title: str = Field(min_length=2, max_length=200)
    start_at: AwareDatetime
    end_at: AwareDatetime
    type: LessonType
    teacher_id: str = Field(min_length=1)
    room_id: str | None = None
    group_id: str | None = None
    student_id: str | None = None
    status: LessonStatus = LessonStatus.UPCOMING
    force_create: bool = False


class UpdateLessonRequest(BaseModel):
    title: str | None = Field(default=None, min_length=2, max_length=200)
    start_at: AwareDatetime | None = None
    end_at: AwareDatetime | None = None
    teacher_id: str | None = None
    # Explicit null detaches the room; omission leaves it unchanged.
    room_id: str | None = None
    status: LessonStatus | None = None
    force_update: bool = False

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, minus the override flag.

        Nulls are dropped except for ``room_id``, where null means "no room".
        """
        sent = self.model_dump(exclude_unset=True, exclude={"force_update"})
        return {k: v for k, v in sent.items() if v is not None or k == "room_id"}


class CheckConflictsRequest(BaseModel):
    teacher_id: str = Field(min_length=1)
    room_id: str | None = None
    start_at: AwareDatetime
    end_at: AwareDatetime
    exclude_lesson_id: str | None = None


class GenerateLessonsRequest(BaseModel):
    group_id: str = Field(min_length=1)
    start_date: ISODate
    end_date: ISODate
    dry_run: bool = False
    skip_conflicting: bool = False


class ConflictResponse(BaseModel):
    detail: str
    conflicts: ConflictReport
