"""Create/update/delete workflow for meetings and the conflict-rejection policy."""

from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator

import structlog

from scheduler.domain.bus import EventBus
from scheduler.domain.errors import ConflictError, PermissionDenied, ValidationError
from scheduler.domain.events import (
    ConflictDetected,
    MeetingCancelled,
    MeetingRescheduled,
    MeetingScheduled,
)
from scheduler.domain.intervals import Interval
from scheduler.domain.models import (
    ConflictReport,
    ConflictView,
    ConflictingMeetingView,
    Meeting,
    MeetingRequest,
    MeetingView,
    ParticipantRef,
    Role,
    User,
    UserView,
)
from scheduler.domain.validation import dedupe, validate_meeting_fields
from scheduler.repos.memory import MeetingRepository, UserRepository
from scheduler.services.conflicts import detect

logger = structlog.get_logger(__name__)

_EDITABLE_FIELDS = ("title", "description", "start_time", "end_time", "participant_ids")


class KeyedLocks:
    """Hands out one lock per key and acquires groups of them in sorted order.

    Two writers that share any key are serialized; writers with disjoint
    keys proceed in parallel. Sorted acquisition rules out lock-order
    deadlocks.

    Entries are reference counted: a key's lock is dropped once no writer
    holds or waits on it, so the table only spans in-flight keys.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = defaultdict(int)
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        ordered = sorted(set(keys))
        with self._guard:
            for key in ordered:
                self._users[key] += 1
            locks = [self._locks.setdefault(key, threading.Lock()) for key in ordered]
        try:
            with ExitStack() as stack:
                for lock in locks:
                    stack.enter_context(lock)
                yield
        finally:
            with self._guard:
                for key in ordered:
                    self._users[key] -= 1
                    if self._users[key] == 0:
                        del self._users[key]
                        del self._locks[key]


def _meeting_key(meeting_id: str) -> str:
    return f"meeting:{meeting_id}"


class SchedulingService:
    """Runs conflict detection before every meeting write.

    The conflict check and the write it guards run while holding the locks
    of every affected user, so two overlapping writes for the same person
    can never both commit.
    """

    def __init__(
        self,
        meeting_repo: MeetingRepository,
        user_repo: UserRepository,
        bus: EventBus,
    ) -> None:
        self.meeting_repo = meeting_repo
        self.user_repo = user_repo
        self.bus = bus
        self._locks = KeyedLocks()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_meeting(self, request: MeetingRequest, acting_user: User) -> Meeting:
        if acting_user.role != Role.ORGANIZER:
            raise PermissionDenied("Only organizers can create meetings")
        participant_ids = self._validate(request)
        interval = Interval(start=request.start_time, end=request.end_time)

        with self._locks.hold([*participant_ids, acting_user.id]):
            reports = detect(
                interval, participant_ids, self.meeting_repo, organizer_id=acting_user.id
            )
            if not reports:
                meeting_id = self.meeting_repo.create(
                    Meeting(
                        title=request.title.strip(),
                        description=request.description,
                        start_time=request.start_time,
                        end_time=request.end_time,
                        organizer_id=acting_user.id,
                        participant_ids=participant_ids,
                    )
                )
                meeting = self.meeting_repo.get(meeting_id)

        if reports:
            self._reject(reports, acting_user)

        logger.info("meeting.created", meeting_id=meeting.id, organizer_id=acting_user.id)
        self.bus.publish(
            MeetingScheduled(
                meeting_id=meeting.id,
                organizer_id=meeting.organizer_id,
                participant_ids=meeting.participant_ids,
            )
        )
        return meeting

    def update_meeting(
        self, meeting_id: str, request: MeetingRequest, acting_user: User
    ) -> Meeting:
        existing = self.meeting_repo.get(meeting_id)
        self._require_owner(existing, acting_user, "update")
        participant_ids = self._validate(request)
        interval = Interval(start=request.start_time, end=request.end_time)

        keys = [
            _meeting_key(meeting_id),
            *participant_ids,
            *existing.participant_ids,
            existing.organizer_id,
        ]
        with self._locks.hold(keys):
            # Re-read under the lock; a concurrent delete surfaces as NotFound.
            current = self.meeting_repo.get(meeting_id)
            reports = detect(
                interval,
                participant_ids,
                self.meeting_repo,
                organizer_id=current.organizer_id,
                exclude_meeting_id=meeting_id,
            )
            if not reports:
                fields = {
                    "title": request.title.strip(),
                    "description": request.description,
                    "start_time": request.start_time,
                    "end_time": request.end_time,
                    "participant_ids": participant_ids,
                }
                changed = [name for name in _EDITABLE_FIELDS if getattr(current, name) != fields[name]]
                meeting = self.meeting_repo.update(meeting_id, fields)

        if reports:
            self._reject(reports, acting_user, meeting_id=meeting_id)

        logger.info("meeting.updated", meeting_id=meeting_id, changed_fields=changed)
        self.bus.publish(
            MeetingRescheduled(
                meeting_id=meeting_id, actor_id=acting_user.id, changed_fields=changed
            )
        )
        return meeting

    def delete_meeting(self, meeting_id: str, acting_user: User) -> None:
        existing = self.meeting_repo.get(meeting_id)
        self._require_owner(existing, acting_user, "delete")
        with self._locks.hold([_meeting_key(meeting_id)]):
            self.meeting_repo.delete(meeting_id)

        logger.info("meeting.deleted", meeting_id=meeting_id, organizer_id=acting_user.id)
        self.bus.publish(
            MeetingCancelled(meeting_id=meeting_id, actor_id=acting_user.id, title=existing.title)
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_meeting(self, meeting_id: str, acting_user: User) -> Meeting:
        meeting = self.meeting_repo.get(meeting_id)
        if not meeting.involves(acting_user.id):
            raise PermissionDenied("Not authorized to view this meeting")
        return meeting

    def list_meetings_for(self, acting_user: User) -> list[Meeting]:
        """Organizers see what they organize; participants see what they attend."""
        if acting_user.role == Role.ORGANIZER:
            return self.meeting_repo.find_by_organizer(acting_user.id)
        return self.meeting_repo.find_by_participant(acting_user.id)

    def list_participants(self) -> list[User]:
        return self.user_repo.list_by_role(Role.PARTICIPANT)

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------

    def present(self, meeting: Meeting) -> MeetingView:
        """Build the wire view with organizer and participants populated."""
        organizer = self.user_repo.get(meeting.organizer_id)
        participants = [
            UserView.of(user)
            for user in (self.user_repo.get(pid) for pid in meeting.participant_ids)
            if user is not None
        ]
        return MeetingView(
            id=meeting.id,
            title=meeting.title,
            description=meeting.description,
            start_time=meeting.start_time,
            end_time=meeting.end_time,
            organizer=(
                UserView.of(organizer)
                if organizer is not None
                else UserView(id=meeting.organizer_id, name="Unknown user", email="")
            ),
            participants=participants,
            created_at=meeting.created_at,
            updated_at=meeting.updated_at,
        )

    def present_conflicts(self, reports: list[ConflictReport]) -> list[ConflictView]:
        views = []
        for report in reports:
            user = self.user_repo.get(report.participant_id)
            views.append(
                ConflictView(
                    participant=ParticipantRef(
                        id=report.participant_id,
                        name=user.name if user is not None else "Unknown user",
                    ),
                    conflicting_meetings=[
                        ConflictingMeetingView(
                            id=m.id, title=m.title, start_time=m.start_time, end_time=m.end_time
                        )
                        for m in report.conflicting_meetings
                    ],
                )
            )
        return views

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_owner(self, meeting: Meeting, acting_user: User, action: str) -> None:
        if acting_user.role != Role.ORGANIZER or meeting.organizer_id != acting_user.id:
            raise PermissionDenied(f"Not authorized to {action} this meeting")

    def _validate(self, request: MeetingRequest) -> list[str]:
        """Check the request and return its de-duplicated participant ids."""
        validate_meeting_fields(request.title, request.start_time, request.end_time)
        participant_ids = dedupe(request.participants)
        for participant_id in participant_ids:
            if not participant_id.strip():
                raise ValidationError("Participant ids must be non-empty")
            if self.user_repo.get(participant_id) is None:
                raise ValidationError(f"Participant not found: {participant_id}")
        return participant_ids

    def _reject(
        self,
        reports: list[ConflictReport],
        acting_user: User,
        meeting_id: str | None = None,
    ) -> None:
        self.bus.publish(
            ConflictDetected(
                meeting_id=meeting_id,
                actor_id=acting_user.id,
                participant_ids=[r.participant_id for r in reports],
                conflicting_meeting_ids=dedupe(
                    [m.id for r in reports for m in r.conflicting_meetings]
                ),
            )
        )
        raise ConflictError(reports)
