"""Field checks shared by the meeting store and the scheduling service."""

from __future__ import annotations

from datetime import datetime

from scheduler.domain.errors import ValidationError


def validate_meeting_fields(title: str | None, start_time: datetime, end_time: datetime) -> None:
    """Raise ValidationError unless the title is non-blank and start < end."""
    if title is None or not title.strip():
        raise ValidationError("Title is required")
    if start_time >= end_time:
        raise ValidationError("End time must be after start time")


def dedupe(ids: list[str]) -> list[str]:
    """Drop repeated ids, keeping the first occurrence of each."""
    return list(dict.fromkeys(ids))
