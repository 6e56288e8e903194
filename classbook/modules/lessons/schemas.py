"""Lessons schemas."""

from __future__ import annotations

import datetime as dt
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from classbook.modules.lessons.models import MAX_LESSON_DURATION_MINUTES

CONFLICT_FIELDS = frozenset({"classroom", "scheduled_time", "duration_minutes"})


class LessonCreate(BaseModel):
    """Create lesson request."""

    subject: str = Field(min_length=1, max_length=255)
    teacher: str = Field(min_length=1, max_length=255)
    classroom: str = Field(min_length=1, max_length=255)
    scheduled_time: datetime
    duration_minutes: int = Field(gt=0, le=MAX_LESSON_DURATION_MINUTES)


class LessonUpdate(BaseModel):
    """Partial lesson update; omitted fields keep their stored value."""

    subject: str | None = Field(default=None, min_length=1, max_length=255)
    teacher: str | None = Field(default=None, min_length=1, max_length=255)
    classroom: str | None = Field(default=None, min_length=1, max_length=255)
    scheduled_time: datetime | None = None
    duration_minutes: int | None = Field(default=None, gt=0, le=MAX_LESSON_DURATION_MINUTES)

    @model_validator(mode="before")
    @classmethod
    def reject_explicit_nulls(cls, data: Any) -> Any:
        """Lesson fields are not nullable, so null is never a valid new value."""
        if isinstance(data, dict):
            nulls = sorted(key for key, value in data.items() if value is None)
            if nulls:
                raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return data

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)

    def touches_schedule(self) -> bool:
        """True when classroom, start or duration is being changed."""
        return bool(CONFLICT_FIELDS & self.model_fields_set)


class LessonFilter(BaseModel):
    """Optional, AND-combined listing filters."""

    teacher: str | None = None
    classroom: str | None = None
    date: dt.date | dt.datetime | None = None


class ConflictQuery(BaseModel):
    """Hypothetical lesson placement to check for conflicts."""

    classroom: str = Field(min_length=1, max_length=255)
    scheduled_time: datetime
    duration_minutes: int = Field(gt=0, le=MAX_LESSON_DURATION_MINUTES)
    exclude_id: UUID | None = None


class LessonRead(BaseModel):
    """Lesson response schema."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    subject: str
    teacher: str
    classroom: str
    scheduled_time: datetime
    duration_minutes: int
    created_at: datetime


class LessonDeleteResult(BaseModel):
    """Delete lesson response."""

    deleted: bool
