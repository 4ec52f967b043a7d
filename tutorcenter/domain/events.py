"""Domain events emitted while lessons are scheduled, moved and cancelled."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LessonScheduled(BaseModel):
    """Fired when a new Lesson is stored."""

    lesson_id: str
    forced: bool = False


class LessonRescheduled(BaseModel):
    """Fired when a stored Lesson is moved or reactivated."""

    lesson_id: str
    changed_fields: list[str]
    forced: bool = False


class LessonCancelled(BaseModel):
    """Fired when a Lesson is soft-deleted."""

    lesson_id: str


class ConflictOverridden(BaseModel):
    """Fired when an administrator forces a lesson through a non-clean report."""

    lesson_id: str
    teacher_conflict_ids: list[str] = Field(default_factory=list)
    room_conflict_ids: list[str] = Field(default_factory=list)
    availability: list[str] = Field(default_factory=list)
