from __future__ import annotations

import pytest

from classbook.modules.lessons.service import LessonsService
from lesson_fakes import FakeLessonsRepository, FakeLessonStore


@pytest.fixture
def lesson_store() -> FakeLessonStore:
    return FakeLessonStore()


@pytest.fixture
def lessons_repo(lesson_store: FakeLessonStore) -> FakeLessonsRepository:
    return FakeLessonsRepository(lesson_store)


@pytest.fixture
def lessons_service(lessons_repo: FakeLessonsRepository) -> LessonsService:
    return LessonsService(lessons_repo)
