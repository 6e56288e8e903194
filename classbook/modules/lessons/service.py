"""Lessons business logic layer."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from classbook.core.config import get_settings
from classbook.core.database import get_db_session
from classbook.core.metrics import record_lesson_conflict
from classbook.modules.lessons.conflicts import ConflictQueryService, lesson_interval
from classbook.modules.lessons.listing import LessonListingService
from classbook.modules.lessons.models import MAX_LESSON_DURATION_MINUTES, Lesson
from classbook.modules.lessons.repository import LessonsRepository
from classbook.modules.lessons.schemas import (
    ConflictQuery,
    LessonCreate,
    LessonFilter,
    LessonRead,
    LessonUpdate,
)
from classbook.shared.exceptions import ConflictException, NotFoundException, ValidationException
from classbook.shared.utils import ensure_utc, utc_now

settings = get_settings()
logger = logging.getLogger(__name__)

_LABEL_FIELDS = ("subject", "teacher", "classroom")


def _validate_fields(values: dict[str, Any]) -> None:
    """Re-check field rules the request schemas already enforce."""
    for name in _LABEL_FIELDS:
        if name in values and not str(values[name]).strip():
            raise ValidationException(f"Lesson {name} must not be empty")
    if "duration_minutes" in values:
        duration = values["duration_minutes"]
        if not 0 < duration <= MAX_LESSON_DURATION_MINUTES:
            raise ValidationException(
                f"Lesson duration must be between 1 and {MAX_LESSON_DURATION_MINUTES} minutes",
            )


class LessonsService:
    """Lessons domain service keeping classrooms free of double bookings.

    Every write that places a lesson (create, or an update touching classroom,
    start or duration) runs under a per-classroom advisory lock held until the
    request transaction ends, so check-then-write cannot interleave with
    another writer for the same classroom. Each write commits before it
    returns, so a failed commit surfaces as a StorageException to the caller.
    """

    def __init__(self, repository: LessonsRepository, lock_classrooms: bool = True) -> None:
        self.repository = repository
        self.lock_classrooms = lock_classrooms
        self.conflicts = ConflictQueryService(repository)
        self.listing = LessonListingService(repository)

    async def _ensure_classroom_free(
        self,
        classroom: str,
        start: datetime,
        duration_minutes: int,
        exclude_id: UUID | None,
        operation: str,
    ) -> None:
        if self.lock_classrooms:
            await self.repository.lock_classroom(classroom)

        conflicts = await self.conflicts.find_conflicts(
            classroom,
            start,
            duration_minutes,
            exclude_id=exclude_id,
        )
        if conflicts:
            record_lesson_conflict(operation)
            logger.warning(
                "Rejected lesson %s in classroom %s: %d conflicting lesson(s)",
                operation,
                classroom,
                len(conflicts),
            )
            raise ConflictException(classroom, [lesson_interval(lesson) for lesson in conflicts])

    async def create_lesson(self, payload: LessonCreate) -> Lesson:
        """Book a classroom for a new lesson."""
        _validate_fields(payload.model_dump())
        scheduled_time = ensure_utc(payload.scheduled_time)

        await self._ensure_classroom_free(
            payload.classroom,
            scheduled_time,
            payload.duration_minutes,
            exclude_id=None,
            operation="create",
        )

        lesson = await self.repository.create_lesson(
            subject=payload.subject,
            teacher=payload.teacher,
            classroom=payload.classroom,
            scheduled_time=scheduled_time,
            duration_minutes=payload.duration_minutes,
            created_at=utc_now(),
        )
        await self.repository.commit()
        logger.info("Lesson %s booked in classroom %s", lesson.id, lesson.classroom)
        return lesson

    async def update_lesson(self, lesson_id: UUID, payload: LessonUpdate) -> Lesson:
        """Apply a partial update, re-checking the classroom when placement changes."""
        lesson = await self.repository.get_lesson_for_update(lesson_id)
        if lesson is None:
            raise NotFoundException("Lesson not found")

        changes = payload.changes()
        if not changes:
            return lesson
        if "scheduled_time" in changes:
            changes["scheduled_time"] = ensure_utc(changes["scheduled_time"])
        _validate_fields(changes)

        candidate = LessonRead.model_validate(lesson).model_copy(update=changes)
        if payload.touches_schedule():
            await self._ensure_classroom_free(
                candidate.classroom,
                candidate.scheduled_time,
                candidate.duration_minutes,
                exclude_id=lesson.id,
                operation="update",
            )

        lesson = await self.repository.update_lesson(lesson, **changes)
        await self.repository.commit()
        logger.info("Lesson %s updated: %s", lesson.id, ", ".join(sorted(changes)))
        return lesson

    async def delete_lesson(self, lesson_id: UUID) -> bool:
        """Remove lesson if present; report whether anything was removed."""
        deleted = await self.repository.delete_lesson(lesson_id)
        await self.repository.commit()
        if deleted:
            logger.info("Lesson %s deleted", lesson_id)
        return deleted

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return await self.repository.get_lesson_by_id(lesson_id)

    async def list_lessons(self, filters: LessonFilter | None = None) -> list[Lesson]:
        return await self.listing.list_lessons(filters)

    async def find_conflicts(self, query: ConflictQuery) -> list[Lesson]:
        """Check a placement without writing anything."""
        return await self.conflicts.find_conflicts(
            query.classroom,
            query.scheduled_time,
            query.duration_minutes,
            exclude_id=query.exclude_id,
        )


async def get_lessons_service(session: AsyncSession = Depends(get_db_session)) -> LessonsService:
    """Dependency provider for lessons service."""
    return LessonsService(LessonsRepository(session), lock_classrooms=settings.classroom_lock_enabled)
