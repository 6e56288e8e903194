"""Classroom conflict queries."""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

from classbook.modules.lessons.models import MAX_LESSON_DURATION_MINUTES, Lesson
from classbook.modules.lessons.repository import LessonsRepository
from classbook.shared.intervals import Interval, occupied_interval
from classbook.shared.utils import ensure_utc

# No stored lesson is longer than this, so nothing starting earlier than
# candidate.start - MAX_LESSON_SPAN can reach the candidate.
MAX_LESSON_SPAN = timedelta(minutes=MAX_LESSON_DURATION_MINUTES)


def lesson_interval(lesson: Lesson) -> Interval:
    """Return the occupied interval of a stored lesson."""
    return occupied_interval(ensure_utc(lesson.scheduled_time), lesson.duration_minutes)


class ConflictQueryService:
    """Read-only lookup of lessons that would collide with a placement."""

    def __init__(self, repository: LessonsRepository) -> None:
        self.repository = repository

    async def find_conflicts(
        self,
        classroom: str,
        start: datetime,
        duration_minutes: int,
        exclude_id: UUID | None = None,
    ) -> list[Lesson]:
        """Return every lesson in `classroom` overlapping the candidate range.

        The storage query only narrows by classroom and a coarse start window;
        the overlap decision itself is made here on the exact intervals.
        """
        candidate = occupied_interval(ensure_utc(start), duration_minutes)
        nearby = await self.repository.list_classroom_lessons_starting_between(
            classroom=classroom,
            starts_from=candidate.start - MAX_LESSON_SPAN,
            starts_before=candidate.end,
            exclude_id=exclude_id,
        )
        return [
            lesson
            for lesson in nearby
            if lesson.id != exclude_id and lesson_interval(lesson).overlaps(candidate)
        ]
