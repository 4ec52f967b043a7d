"""Error taxonomy for scheduling decisions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tutorcenter.domain.models import ConflictReport


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling core."""


class ValidationError(SchedulingError, ValueError):
    """Malformed caller input: bad interval, time or date string, unknown reference."""


class NotFoundError(SchedulingError):
    """An entity addressed by id does not exist."""


class ConflictError(SchedulingError):
    """A proposed lesson collides with existing commitments and was not forced.

    The full report is kept on the exception so the caller can render which
    lessons collide and which availability rule was violated.
    """

    def __init__(self, report: ConflictReport, message: str | None = None) -> None:
        self.report = report
        super().__init__(message or "Schedule conflicts detected")
