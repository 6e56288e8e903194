"""Lessons ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from classbook.core.database import Base, BaseModelMixin

MAX_LESSON_DURATION_MINUTES = 480


class Lesson(BaseModelMixin, Base):
    """Lesson occupying one classroom for a contiguous time range."""

    __tablename__ = "lessons"
    __table_args__ = (
        CheckConstraint(
            f"duration_minutes > 0 AND duration_minutes <= {MAX_LESSON_DURATION_MINUTES}",
            name="duration_minutes_range",
        ),
        Index("ix_lessons_classroom_scheduled_time", "classroom", "scheduled_time"),
    )

    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    teacher: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    classroom: Mapped[str] = mapped_column(String(255), nullable=False)
    scheduled_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
