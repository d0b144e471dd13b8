"""Domain event handlers that keep the per-meeting activity log."""

from __future__ import annotations

import structlog

from scheduler.domain.bus import EventBus
from scheduler.domain.events import (
    ConflictDetected,
    MeetingCancelled,
    MeetingRescheduled,
    MeetingScheduled,
)
from scheduler.domain.models import ActivityEntry, ActivityType
from scheduler.repos.memory import ActivityRepository

logger = structlog.get_logger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus."""

    def __init__(self, bus: EventBus, activity_repo: ActivityRepository) -> None:
        self.bus = bus
        self.activity_repo = activity_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(MeetingScheduled, self.on_meeting_scheduled)
        self.bus.subscribe(MeetingRescheduled, self.on_meeting_rescheduled)
        self.bus.subscribe(MeetingCancelled, self.on_meeting_cancelled)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_meeting_scheduled(self, event: MeetingScheduled) -> None:
        self.activity_repo.add(
            ActivityEntry(
                meeting_id=event.meeting_id,
                type=ActivityType.SCHEDULED,
                actor_id=event.organizer_id,
                payload={"participant_ids": event.participant_ids},
            )
        )
        logger.info(
            "meeting.scheduled",
            meeting_id=event.meeting_id,
            participants=len(event.participant_ids),
        )

    def on_meeting_rescheduled(self, event: MeetingRescheduled) -> None:
        self.activity_repo.add(
            ActivityEntry(
                meeting_id=event.meeting_id,
                type=ActivityType.RESCHEDULED,
                actor_id=event.actor_id,
                payload={"changed_fields": event.changed_fields},
            )
        )
        logger.info(
            "meeting.rescheduled",
            meeting_id=event.meeting_id,
            changed_fields=event.changed_fields,
        )

    def on_meeting_cancelled(self, event: MeetingCancelled) -> None:
        self.activity_repo.add(
            ActivityEntry(
                meeting_id=event.meeting_id,
                type=ActivityType.CANCELLED,
                actor_id=event.actor_id,
                payload={"title": event.title},
            )
        )
        logger.info("meeting.cancelled", meeting_id=event.meeting_id)

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        logger.warning(
            "meeting.conflict",
            meeting_id=event.meeting_id,
            participant_ids=event.participant_ids,
            conflicting_meeting_ids=event.conflicting_meeting_ids,
        )
        # A rejected create has no meeting of its own to attach the entry to
        if event.meeting_id is None:
            return
        self.activity_repo.add(
            ActivityEntry(
                meeting_id=event.meeting_id,
                type=ActivityType.CONFLICT_REJECTED,
                actor_id=event.actor_id,
                payload={
                    "participant_ids": event.participant_ids,
                    "conflicting_meeting_ids": event.conflicting_meeting_ids,
                },
            )
        )
