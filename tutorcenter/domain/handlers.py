"""Domain-event handlers that keep the lesson audit trail."""

from __future__ import annotations

import logging

from tutorcenter.domain.bus import EventBus
from tutorcenter.domain.events import (
    ConflictOverridden,
    LessonCancelled,
    LessonRescheduled,
    LessonScheduled,
)
from tutorcenter.domain.models import AuditEntry, AuditEntryType
from tutorcenter.repos.memory import AuditRepository

logger = logging.getLogger(__name__)


class AuditTrail:
    """Wires audit handlers to the bus and records one entry per event."""

    def __init__(self, bus: EventBus, audit_repo: AuditRepository) -> None:
        self.bus = bus
        self.audit_repo = audit_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(LessonScheduled, self.on_lesson_scheduled)
        self.bus.subscribe(LessonRescheduled, self.on_lesson_rescheduled)
        self.bus.subscribe(LessonCancelled, self.on_lesson_cancelled)
        self.bus.subscribe(ConflictOverridden, self.on_conflict_overridden)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_lesson_scheduled(self, event: LessonScheduled) -> None:
        logger.info("Lesson %s scheduled (forced=%s)", event.lesson_id, event.forced)
        self.audit_repo.add(
            AuditEntry(
                lesson_id=event.lesson_id,
                type=AuditEntryType.SCHEDULED,
                payload={"forced": event.forced},
            )
        )

    def on_lesson_rescheduled(self, event: LessonRescheduled) -> None:
        logger.info(
            "Lesson %s updated: %s", event.lesson_id, ", ".join(event.changed_fields)
        )
        self.audit_repo.add(
            AuditEntry(
                lesson_id=event.lesson_id,
                type=AuditEntryType.RESCHEDULED,
                payload={"changed_fields": event.changed_fields, "forced": event.forced},
            )
        )

    def on_lesson_cancelled(self, event: LessonCancelled) -> None:
        logger.info("Lesson %s cancelled", event.lesson_id)
        self.audit_repo.add(
            AuditEntry(lesson_id=event.lesson_id, type=AuditEntryType.CANCELLED)
        )

    def on_conflict_overridden(self, event: ConflictOverridden) -> None:
        logger.warning(
            "Lesson %s forced through conflicts: teacher=%s room=%s availability=%s",
            event.lesson_id,
            event.teacher_conflict_ids,
            event.room_conflict_ids,
            event.availability,
        )
        self.audit_repo.add(
            AuditEntry(
                lesson_id=event.lesson_id,
                type=AuditEntryType.CONFLICT_OVERRIDDEN,
                payload={
                    "teacher_conflict_ids": event.teacher_conflict_ids,
                    "room_conflict_ids": event.room_conflict_ids,
                    "availability": event.availability,
                },
            )
        )
