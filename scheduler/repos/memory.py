"""In-memory repositories for users, meetings, and meeting activity."""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError as PydanticValidationError

from scheduler.domain.errors import NotFound, ValidationError
from scheduler.domain.models import ActivityEntry, Meeting, Role, User
from scheduler.domain.validation import dedupe, validate_meeting_fields

_IMMUTABLE_FIELDS = frozenset({"id", "organizer_id", "created_at"})


def _chronological(meetings) -> list[Meeting]:
    return sorted(meetings, key=lambda m: (m.start_time, m.end_time, m.id))


class MeetingRepository:
    """Dict-backed store for Meeting records, keyed by id.

    Every method holds the same re-entrant lock, so reads see a consistent
    snapshot. Returned meetings are copies and never alias stored state.
    """

    def __init__(self) -> None:
        self._store: dict[str, Meeting] = {}
        self._lock = threading.RLock()

    def create(self, meeting: Meeting) -> str:
        """Persist *meeting* under a fresh id and return that id."""
        validate_meeting_fields(meeting.title, meeting.start_time, meeting.end_time)
        with self._lock:
            meeting_id = str(uuid.uuid4())
            while meeting_id in self._store:
                meeting_id = str(uuid.uuid4())
            self._store[meeting_id] = meeting.model_copy(
                update={
                    "id": meeting_id,
                    "participant_ids": dedupe(meeting.participant_ids),
                },
                deep=True,
            )
            return meeting_id

    def get(self, meeting_id: str) -> Meeting:
        with self._lock:
            meeting = self._store.get(meeting_id)
            if meeting is None:
                raise NotFound("Meeting not found")
            return meeting.model_copy(deep=True)

    def update(self, meeting_id: str, fields: dict) -> Meeting:
        """Merge *fields* into the stored meeting and return the result."""
        frozen = _IMMUTABLE_FIELDS.intersection(fields)
        if frozen:
            raise ValidationError(f"Cannot change {', '.join(sorted(frozen))}")
        unknown = set(fields) - set(Meeting.model_fields)
        if unknown:
            raise ValidationError(f"Unknown meeting fields: {', '.join(sorted(unknown))}")

        with self._lock:
            current = self._store.get(meeting_id)
            if current is None:
                raise NotFound("Meeting not found")
            changes = dict(fields)
            changes["updated_at"] = datetime.now(timezone.utc)
            try:
                merged = Meeting.model_validate({**current.model_dump(), **changes})
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid meeting fields: {exc.errors()[0]['msg']}") from exc
            merged.participant_ids = dedupe(merged.participant_ids)
            validate_meeting_fields(merged.title, merged.start_time, merged.end_time)
            self._store[meeting_id] = merged
            return merged.model_copy(deep=True)

    def delete(self, meeting_id: str) -> None:
        with self._lock:
            if self._store.pop(meeting_id, None) is None:
                raise NotFound("Meeting not found")

    def find_by_participant(self, user_id: str) -> list[Meeting]:
        """All meetings the user organizes or is invited to, by start time."""
        with self._lock:
            return _chronological(
                m.model_copy(deep=True) for m in self._store.values() if m.involves(user_id)
            )

    def find_by_organizer(self, user_id: str) -> list[Meeting]:
        with self._lock:
            return _chronological(
                m.model_copy(deep=True)
                for m in self._store.values()
                if m.organizer_id == user_id
            )

    def list_all(self) -> list[Meeting]:
        with self._lock:
            return _chronological(m.model_copy(deep=True) for m in self._store.values())


class UserRepository:
    """Dict-backed store for User instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, User] = {}
        self._lock = threading.Lock()

    def add(self, user: User) -> None:
        with self._lock:
            if any(u.email.lower() == user.email.lower() for u in self._store.values()):
                raise ValidationError("User already exists with this email")
            self._store[user.id] = user

    def get(self, user_id: str) -> User | None:
        with self._lock:
            return self._store.get(user_id)

    def get_by_email(self, email: str) -> User | None:
        email = email.strip().lower()
        with self._lock:
            for user in self._store.values():
                if user.email.lower() == email:
                    return user
        return None

    def list_by_role(self, role: Role) -> list[User]:
        with self._lock:
            matching = [u for u in self._store.values() if u.role == role]
        return sorted(matching, key=lambda u: (u.name, u.id))


class ActivityRepository:
    """List-backed store for ActivityEntry instances."""

    def __init__(self) -> None:
        self._entries: list[ActivityEntry] = []
        self._lock = threading.Lock()

    def add(self, entry: ActivityEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def list_for_meeting(self, meeting_id: str) -> list[ActivityEntry]:
        with self._lock:
            entries = [e for e in self._entries if e.meeting_id == meeting_id]
        return sorted(entries, key=lambda e: e.timestamp)


# ---------------------------------------------------------------------------
# Seed data – one organizer, two participants, one upcoming meeting
# ---------------------------------------------------------------------------

DEMO_ORGANIZER_EMAIL = "olivia@example.com"


def seed_demo_data(
    user_repo: UserRepository,
    meeting_repo: MeetingRepository,
    password_hash: str,
) -> None:
    """Load sample users and a meeting; every seeded user shares *password_hash*."""
    organizer = User(
        name="Olivia Organizer",
        email=DEMO_ORGANIZER_EMAIL,
        role=Role.ORGANIZER,
        password_hash=password_hash,
    )
    alice = User(name="Alice Participant", email="alice@example.com", password_hash=password_hash)
    bob = User(name="Bob Participant", email="bob@example.com", password_hash=password_hash)
    for user in (organizer, alice, bob):
        user_repo.add(user)

    start = (datetime.now(timezone.utc) + timedelta(days=1)).replace(
        hour=10, minute=0, second=0, microsecond=0
    )
    meeting_repo.create(
        Meeting(
            title="Weekly sync",
            description="Status round for the team",
            start_time=start,
            end_time=start + timedelta(hours=1),
            organizer_id=organizer.id,
            participant_ids=[alice.id, bob.id],
        )
    )
