"""Domain errors raised by the meeting store and the scheduling service."""

from __future__ import annotations

from scheduler.domain.models import ConflictReport


class SchedulingError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed or missing fields, or an invalid time interval."""


class PermissionDenied(SchedulingError):
    """The acting user's role or ownership does not allow the operation."""


class NotFound(SchedulingError):
    """No record exists with the requested id."""


class ConflictError(SchedulingError):
    """One or more participants already have an overlapping meeting."""

    def __init__(self, reports: list[ConflictReport], message: str | None = None) -> None:
        super().__init__(message or "Scheduling conflict detected for one or more participants")
        self.reports = reports
