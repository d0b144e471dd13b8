"""Tests for the half-open interval overlap rule."""

from datetime import datetime, timedelta, timezone
from itertools import product

import pytest
from pydantic import ValidationError

from scheduler.domain.intervals import Interval, overlaps

_BASE = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)


def _iv(start_h: float, end_h: float) -> Interval:
    return Interval(start=_BASE + timedelta(hours=start_h), end=_BASE + timedelta(hours=end_h))


_SAMPLES = [
    _iv(0, 1),
    _iv(0.5, 1.5),
    _iv(1, 2),
    _iv(0, 3),
    _iv(2, 2.5),
    _iv(1.25, 1.75),
]


@pytest.mark.parametrize("a,b", list(product(_SAMPLES, repeat=2)))
def test_overlap_is_symmetric(a, b):
    assert overlaps(a, b) == overlaps(b, a)


def test_partial_overlap():
    assert overlaps(_iv(1, 2), _iv(1.5, 2.5))


def test_containment_overlaps():
    assert overlaps(_iv(0, 3), _iv(1, 2))


def test_touching_boundary_does_not_overlap():
    """[10:00, 11:00) and [11:00, 12:00) share no instant."""
    assert not overlaps(_iv(1, 2), _iv(2, 3))
    assert not overlaps(_iv(2, 3), _iv(1, 2))


def test_disjoint():
    assert not overlaps(_iv(0, 1), _iv(5, 6))


def test_interval_is_immutable():
    iv = _iv(0, 1)
    with pytest.raises(ValidationError):
        iv.start = _BASE
