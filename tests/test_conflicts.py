"""Tests for the conflict-detection service."""

from datetime import datetime, timezone

import pytest

from scheduler.domain.intervals import Interval
from scheduler.domain.models import Meeting
from scheduler.repos.memory import MeetingRepository
from scheduler.services.conflicts import detect


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 1, hour, minute, tzinfo=timezone.utc)


@pytest.fixture()
def store() -> MeetingRepository:
    return MeetingRepository()


def _add(
    store: MeetingRepository,
    start: datetime,
    end: datetime,
    title: str = "Existing",
    organizer: str = "org-1",
    participants: list[str] | None = None,
) -> str:
    return store.create(
        Meeting(
            title=title,
            start_time=start,
            end_time=end,
            organizer_id=organizer,
            participant_ids=participants or [],
        )
    )


def test_no_overlap(store):
    """Meetings that don't overlap should not be reported."""
    _add(store, _at(8), _at(9), participants=["p"])
    reports = detect(Interval(start=_at(10), end=_at(11)), ["p"], store)
    assert reports == []


def test_partial_overlap(store):
    """P has A [10:00, 11:00); a candidate [10:30, 11:30) conflicts with A."""
    a_id = _add(store, _at(10), _at(11), title="A", participants=["p"])
    reports = detect(Interval(start=_at(10, 30), end=_at(11, 30)), ["p"], store)

    assert len(reports) == 1
    assert reports[0].participant_id == "p"
    assert [m.id for m in reports[0].conflicting_meetings] == [a_id]


def test_exact_boundary_no_conflict(store):
    """When existing.end_time == candidate start, there is no conflict."""
    _add(store, _at(10), _at(11), participants=["p"])
    reports = detect(Interval(start=_at(11), end=_at(12)), ["p"], store)
    assert reports == []


def test_participant_without_meetings_gets_no_report(store):
    _add(store, _at(10), _at(11), participants=["p"])
    reports = detect(Interval(start=_at(10), end=_at(11)), ["p", "q"], store)
    assert [r.participant_id for r in reports] == ["p"]


def test_organizer_counts_as_participant(store):
    """The organizer's own commitments are checked even if not invited."""
    _add(store, _at(10), _at(11), organizer="boss")
    reports = detect(
        Interval(start=_at(10, 15), end=_at(10, 45)), [], store, organizer_id="boss"
    )
    assert [r.participant_id for r in reports] == ["boss"]


def test_exclude_meeting_id_skips_self(store):
    own = _add(store, _at(10), _at(11), participants=["p"])
    reports = detect(
        Interval(start=_at(10), end=_at(11)), ["p"], store, exclude_meeting_id=own
    )
    assert reports == []


def test_duplicate_participants_are_deduplicated(store):
    _add(store, _at(10), _at(11), participants=["p"])
    reports = detect(Interval(start=_at(10), end=_at(11)), ["p", "p", "p"], store)
    assert len(reports) == 1


def test_organizer_also_listed_is_reported_once(store):
    _add(store, _at(10), _at(11), organizer="boss")
    reports = detect(
        Interval(start=_at(10), end=_at(11)), ["boss"], store, organizer_id="boss"
    )
    assert len(reports) == 1


def test_conflicting_meetings_ordered_by_start(store):
    late = _add(store, _at(11), _at(12), title="Late", participants=["p"])
    early = _add(store, _at(9), _at(10, 30), title="Early", participants=["p"])
    reports = detect(Interval(start=_at(10), end=_at(11, 30)), ["p"], store)
    assert [m.id for m in reports[0].conflicting_meetings] == [early, late]


def test_reports_follow_participant_order_and_are_deterministic(store):
    _add(store, _at(10), _at(11), participants=["p", "q"], organizer="boss")
    candidate = Interval(start=_at(10), end=_at(11))

    first = detect(candidate, ["q", "p"], store, organizer_id="boss")
    second = detect(candidate, ["q", "p"], store, organizer_id="boss")

    assert [r.participant_id for r in first] == ["q", "p", "boss"]
    assert first == second


def test_naive_meeting_is_compared_as_utc(store):
    a_id = _add(
        store, datetime(2025, 1, 1, 10, 0), datetime(2025, 1, 1, 11, 0), participants=["p"]
    )
    reports = detect(Interval(start=_at(10, 30), end=_at(11, 30)), ["p"], store)
    assert [m.id for m in reports[0].conflicting_meetings] == [a_id]
