"""Domain models and wire DTOs for the meeting scheduler."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scheduler.domain.intervals import Interval


class Role(StrEnum):
    ORGANIZER = "ORGANIZER"
    PARTICIPANT = "PARTICIPANT"


class ActivityType(StrEnum):
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    CONFLICT_REJECTED = "conflict_rejected"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every stored instant is comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class User(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    email: str
    role: Role = Role.PARTICIPANT
    password_hash: str = Field(default="", exclude=True, repr=False)
    created_at: datetime = Field(default_factory=_utcnow)


class Meeting(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    organizer_id: str
    participant_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("start_time", "end_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)

    def involves(self, user_id: str) -> bool:
        """True if the user organizes or is invited to this meeting."""
        return self.organizer_id == user_id or user_id in self.participant_ids


class ConflictReport(BaseModel):
    """One participant's existing meetings that overlap a candidate interval."""

    participant_id: str
    conflicting_meetings: list[Meeting]


class ActivityEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    meeting_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: ActivityType
    actor_id: str | None = None
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request DTOs
# ---------------------------------------------------------------------------


class MeetingRequest(BaseModel):
    """Body of ``POST /meetings`` and ``PUT /meetings/{id}``."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str | None = None
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    participants: list[str] = Field(default_factory=list)

    @field_validator("start_time", "end_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6)
    role: Role = Role.PARTICIPANT


class LoginRequest(BaseModel):
    email: str
    password: str


# ---------------------------------------------------------------------------
# Response DTOs (field names follow the client's wire contract)
# ---------------------------------------------------------------------------


class WireModel(BaseModel):
    """Serialized by alias; constructed by field name."""

    model_config = ConfigDict(populate_by_name=True)


class UserView(WireModel):
    id: str = Field(alias="_id")
    name: str
    email: str

    @classmethod
    def of(cls, user: User) -> UserView:
        return cls(id=user.id, name=user.name, email=user.email)


class UserProfile(UserView):
    role: Role

    @classmethod
    def of(cls, user: User) -> UserProfile:
        return cls(id=user.id, name=user.name, email=user.email, role=user.role)


class MeetingView(WireModel):
    id: str = Field(alias="_id")
    title: str
    description: str | None = None
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    organizer: UserView
    participants: list[UserView]
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class ConflictingMeetingView(WireModel):
    id: str = Field(alias="_id")
    title: str
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")


class ParticipantRef(WireModel):
    id: str = Field(alias="_id")
    name: str


class ConflictView(WireModel):
    participant: ParticipantRef
    conflicting_meetings: list[ConflictingMeetingView] = Field(alias="conflictingMeetings")


class ConflictResponse(WireModel):
    message: str
    conflicts: list[ConflictView]


class MeetingEnvelope(WireModel):
    meeting: MeetingView


class MeetingList(WireModel):
    meetings: list[MeetingView]


class ParticipantList(WireModel):
    participants: list[UserView]


class AuthResponse(WireModel):
    token: str
    user: UserProfile


class ProfileEnvelope(WireModel):
    user: UserProfile


class ActivityList(BaseModel):
    activity: list[ActivityEntry]
