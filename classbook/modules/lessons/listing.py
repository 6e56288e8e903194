"""Lesson listing with optional filters."""

from __future__ import annotations

from classbook.modules.lessons.models import Lesson
from classbook.modules.lessons.repository import LessonsRepository, ListingCriteria
from classbook.modules.lessons.schemas import LessonFilter
from classbook.shared.intervals import day_window


def criteria_from_filter(filters: LessonFilter | None) -> ListingCriteria:
    """Translate API filters into storage predicates."""
    if filters is None:
        return ListingCriteria()

    starts_from = starts_before = None
    if filters.date is not None:
        window = day_window(filters.date)
        starts_from, starts_before = window.start, window.end

    return ListingCriteria(
        teacher=filters.teacher,
        classroom=filters.classroom,
        starts_from=starts_from,
        starts_before=starts_before,
    )


class LessonListingService:
    """Lists lessons ordered by start time, then id."""

    def __init__(self, repository: LessonsRepository) -> None:
        self.repository = repository

    async def list_lessons(self, filters: LessonFilter | None = None) -> list[Lesson]:
        return await self.repository.list_lessons(criteria_from_filter(filters))
