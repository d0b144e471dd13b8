"""Domain events emitted by the scheduling service."""

from __future__ import annotations

from pydantic import BaseModel


class MeetingScheduled(BaseModel):
    """Fired when a new Meeting is persisted."""

    meeting_id: str
    organizer_id: str
    participant_ids: list[str]


class MeetingRescheduled(BaseModel):
    """Fired after an update to an existing Meeting is committed."""

    meeting_id: str
    actor_id: str
    changed_fields: list[str]


class MeetingCancelled(BaseModel):
    """Fired when a Meeting is deleted."""

    meeting_id: str
    actor_id: str
    title: str


class ConflictDetected(BaseModel):
    """Fired when a create or update is rejected for overlapping commitments.

    ``meeting_id`` is only set for rejected updates.
    """

    meeting_id: str | None = None
    actor_id: str
    participant_ids: list[str]
    conflicting_meeting_ids: list[str]
