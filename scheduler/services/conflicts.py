"""Service for detecting scheduling conflicts between meetings."""

from __future__ import annotations

from scheduler.domain.intervals import Interval, overlaps
from scheduler.domain.models import ConflictReport
from scheduler.domain.validation import dedupe
from scheduler.repos.memory import MeetingRepository


def detect(
    interval: Interval,
    participant_ids: list[str],
    store: MeetingRepository,
    organizer_id: str | None = None,
    exclude_meeting_id: str | None = None,
) -> list[ConflictReport]:
    """Report, per participant, the existing meetings that overlap *interval*.

    The organizer counts as a participant and is checked after the invited
    ids. Participants without overlapping meetings get no report, so an
    empty result means the slot is free for everyone. Reports follow the
    participant order and list meetings by start time.
    """
    candidates = list(participant_ids)
    if organizer_id is not None:
        candidates.append(organizer_id)

    reports: list[ConflictReport] = []
    for participant_id in dedupe(candidates):
        overlapping = [
            meeting
            for meeting in store.find_by_participant(participant_id)
            if meeting.id != exclude_meeting_id and overlaps(interval, meeting.interval)
        ]
        if overlapping:
            reports.append(
                ConflictReport(participant_id=participant_id, conflicting_meetings=overlapping)
            )
    return reports
