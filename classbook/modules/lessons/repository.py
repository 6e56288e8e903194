"""Lessons repository layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import Delete, Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from classbook.core.database import storage_errors
from classbook.modules.lessons.models import Lesson


@dataclass(frozen=True, slots=True)
class ListingCriteria:
    """Storage-level listing predicates; None means unconstrained."""

    teacher: str | None = None
    classroom: str | None = None
    starts_from: datetime | None = None
    starts_before: datetime | None = None


def build_list_statement(criteria: ListingCriteria) -> Select[tuple[Lesson]]:
    stmt: Select[tuple[Lesson]] = select(Lesson)
    if criteria.teacher is not None:
        stmt = stmt.where(Lesson.teacher == criteria.teacher)
    if criteria.classroom is not None:
        stmt = stmt.where(Lesson.classroom == criteria.classroom)
    if criteria.starts_from is not None:
        stmt = stmt.where(Lesson.scheduled_time >= criteria.starts_from)
    if criteria.starts_before is not None:
        stmt = stmt.where(Lesson.scheduled_time < criteria.starts_before)
    return stmt.order_by(Lesson.scheduled_time.asc(), Lesson.id.asc())


def build_classroom_window_statement(
    classroom: str,
    starts_from: datetime,
    starts_before: datetime,
    exclude_id: UUID | None,
) -> Select[tuple[Lesson]]:
    """Select same-classroom lessons starting in [starts_from, starts_before)."""
    stmt = build_list_statement(
        ListingCriteria(classroom=classroom, starts_from=starts_from, starts_before=starts_before),
    )
    if exclude_id is not None:
        stmt = stmt.where(Lesson.id != exclude_id)
    return stmt


def build_classroom_lock_statement(classroom: str) -> Select:
    """Transaction-scoped advisory lock keyed by classroom name."""
    return select(func.pg_advisory_xact_lock(func.hashtext(classroom)))


def build_delete_statement(lesson_id: UUID) -> Delete:
    return delete(Lesson).where(Lesson.id == lesson_id).returning(Lesson.id)


class LessonsRepository:
    """DB operations for lessons domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lock_classroom(self, classroom: str) -> None:
        """Block until no other transaction is writing into this classroom."""
        with storage_errors("classroom lock"):
            await self.session.execute(build_classroom_lock_statement(classroom))

    async def create_lesson(
        self,
        subject: str,
        teacher: str,
        classroom: str,
        scheduled_time: datetime,
        duration_minutes: int,
        created_at: datetime,
    ) -> Lesson:
        lesson = Lesson(
            subject=subject,
            teacher=teacher,
            classroom=classroom,
            scheduled_time=scheduled_time,
            duration_minutes=duration_minutes,
            created_at=created_at,
        )
        with storage_errors("lesson insert"):
            self.session.add(lesson)
            await self.session.flush()
        return lesson

    async def get_lesson_by_id(self, lesson_id: UUID) -> Lesson | None:
        stmt = select(Lesson).where(Lesson.id == lesson_id)
        with storage_errors("lesson lookup"):
            return await self.session.scalar(stmt)

    async def get_lesson_for_update(self, lesson_id: UUID) -> Lesson | None:
        """Load a lesson with a row lock held until the transaction ends."""
        stmt = (
            select(Lesson)
            .where(Lesson.id == lesson_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        with storage_errors("lesson lookup"):
            return await self.session.scalar(stmt)

    async def list_lessons(self, criteria: ListingCriteria) -> list[Lesson]:
        with storage_errors("lesson listing"):
            return list((await self.session.scalars(build_list_statement(criteria))).all())

    async def list_classroom_lessons_starting_between(
        self,
        classroom: str,
        starts_from: datetime,
        starts_before: datetime,
        exclude_id: UUID | None = None,
    ) -> list[Lesson]:
        stmt = build_classroom_window_statement(classroom, starts_from, starts_before, exclude_id)
        with storage_errors("conflict scan"):
            return list((await self.session.scalars(stmt)).all())

    async def update_lesson(self, lesson: Lesson, **changes) -> Lesson:
        for key, value in changes.items():
            setattr(lesson, key, value)
        with storage_errors("lesson update"):
            await self.session.flush()
        return lesson

    async def delete_lesson(self, lesson_id: UUID) -> bool:
        with storage_errors("lesson delete"):
            result = await self.session.execute(build_delete_statement(lesson_id))
            return result.scalar_one_or_none() is not None

    async def commit(self) -> None:
        """Commit the request transaction, releasing its row and classroom locks."""
        with storage_errors("commit"):
            await self.session.commit()
