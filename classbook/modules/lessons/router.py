"""Lessons API router."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from classbook.modules.lessons.models import MAX_LESSON_DURATION_MINUTES
from classbook.modules.lessons.schemas import (
    ConflictQuery,
    LessonCreate,
    LessonDeleteResult,
    LessonFilter,
    LessonRead,
    LessonUpdate,
)
from classbook.modules.lessons.service import LessonsService, get_lessons_service

router = APIRouter(prefix="/lessons", tags=["lessons"])


@router.post("", response_model=LessonRead, status_code=status.HTTP_201_CREATED)
async def create_lesson(
    payload: LessonCreate,
    service: LessonsService = Depends(get_lessons_service),
) -> LessonRead:
    """Book a classroom for a lesson."""
    lesson = await service.create_lesson(payload)
    return LessonRead.model_validate(lesson)


@router.get("", response_model=list[LessonRead])
async def list_lessons(
    teacher: str | None = Query(default=None),
    classroom: str | None = Query(default=None),
    on_date: date | datetime | None = Query(default=None, alias="date"),
    service: LessonsService = Depends(get_lessons_service),
) -> list[LessonRead]:
    """List lessons ordered by start time."""
    filters = LessonFilter(teacher=teacher, classroom=classroom, date=on_date)
    items = await service.list_lessons(filters)
    return [LessonRead.model_validate(item) for item in items]


@router.get("/conflicts", response_model=list[LessonRead])
async def find_conflicts(
    classroom: str = Query(min_length=1, max_length=255),
    scheduled_time: datetime = Query(),
    duration_minutes: int = Query(gt=0, le=MAX_LESSON_DURATION_MINUTES),
    exclude_id: UUID | None = Query(default=None),
    service: LessonsService = Depends(get_lessons_service),
) -> list[LessonRead]:
    """Lessons that would collide with the given placement."""
    query = ConflictQuery(
        classroom=classroom,
        scheduled_time=scheduled_time,
        duration_minutes=duration_minutes,
        exclude_id=exclude_id,
    )
    items = await service.find_conflicts(query)
    return [LessonRead.model_validate(item) for item in items]


@router.get("/{lesson_id}", response_model=LessonRead | None)
async def get_lesson(
    lesson_id: UUID,
    service: LessonsService = Depends(get_lessons_service),
) -> LessonRead | None:
    """Get lesson by id; null when absent."""
    lesson = await service.get_lesson(lesson_id)
    if lesson is None:
        return None
    return LessonRead.model_validate(lesson)


@router.patch("/{lesson_id}", response_model=LessonRead)
async def update_lesson(
    lesson_id: UUID,
    payload: LessonUpdate,
    service: LessonsService = Depends(get_lessons_service),
) -> LessonRead:
    """Update lesson fields."""
    lesson = await service.update_lesson(lesson_id, payload)
    return LessonRead.model_validate(lesson)


@router.delete("/{lesson_id}", response_model=LessonDeleteResult)
async def delete_lesson(
    lesson_id: UUID,
    service: LessonsService = Depends(get_lessons_service),
) -> LessonDeleteResult:
    """Delete lesson; deleting a missing lesson is not an error."""
    deleted = await service.delete_lesson(lesson_id)
    return LessonDeleteResult(deleted=deleted)
