"""Half-open time interval helpers used for classroom conflict detection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from classbook.shared.utils import ensure_utc


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Return True when [start_a, end_a) and [start_b, end_b) share any instant.

    Touching intervals (end_a == start_b) do not overlap.
    """
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True, slots=True)
class Interval:
    """Half-open [start, end) time range."""

    start: datetime
    end: datetime

    def overlaps(self, other: Interval) -> bool:
        return overlaps(self.start, self.end, other.start, other.end)


def occupied_interval(start: datetime, duration_minutes: int) -> Interval:
    """Return the range a lesson reserves in its classroom."""
    return Interval(start=start, end=start + timedelta(minutes=duration_minutes))


def day_window(day: date | datetime) -> Interval:
    """Return [midnight, next midnight) of the given calendar day in UTC."""
    if isinstance(day, datetime):
        day = ensure_utc(day).date()
    midnight = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return Interval(start=midnight, end=midnight + timedelta(days=1))
