"""Half-open time intervals and the overlap rule used for conflict checks."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Interval(BaseModel):
    """A half-open interval ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True if the two intervals share any instant.

    Intervals that only touch (``a.end == b.start``) do not overlap.
    """
    return a.start < b.end and b.start < a.end
