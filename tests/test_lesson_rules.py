from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, datetime, timedelta
from itertools import combinations
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

import classbook.modules.lessons.service as lessons_service_module
from classbook.modules.lessons.conflicts import lesson_interval
from classbook.modules.lessons.schemas import ConflictQuery, LessonCreate, LessonFilter, LessonUpdate
from classbook.modules.lessons.service import LessonsService
from classbook.shared.exceptions import (
    ConflictException,
    NotFoundException,
    StorageException,
    ValidationException,
)
from lesson_fakes import FakeLessonsRepository, at


def make_payload(
    classroom: str,
    scheduled_time: datetime,
    duration_minutes: int,
    subject: str = "Biology",
    teacher: str = "Mr. Okafor",
) -> LessonCreate:
    return LessonCreate(
        subject=subject,
        teacher=teacher,
        classroom=classroom,
        scheduled_time=scheduled_time,
        duration_minutes=duration_minutes,
    )


def assert_no_double_booking(repo: FakeLessonsRepository) -> None:
    for first, second in combinations(repo.store.lessons.values(), 2):
        if first.classroom == second.classroom:
            assert not lesson_interval(first).overlaps(lesson_interval(second)), (first, second)


def conflict_count(operation: str) -> float:
    value = REGISTRY.get_sample_value(
        "classbook_lesson_conflicts_total",
        {"operation": operation},
    )
    return value or 0.0


@pytest.mark.asyncio
async def test_classroom_scenario_overlap_touching_and_other_room(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    await lessons_service.create_lesson(make_payload("R1", at(9), 60))

    with pytest.raises(ConflictException):
        await lessons_service.create_lesson(make_payload("R1", at(9, 30), 90))

    touching = await lessons_service.create_lesson(make_payload("R1", at(10), 60))
    other_room = await lessons_service.create_lesson(make_payload("R2", at(9, 30), 90))

    assert touching.classroom == "R1"
    assert other_room.classroom == "R2"
    assert len(lessons_repo.store.lessons) == 3
    assert_no_double_booking(lessons_repo)


@pytest.mark.asyncio
async def test_conflicting_create_persists_nothing(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)
    lessons_repo.seed(classroom="R1", scheduled_time=at(10), duration_minutes=60)
    before = conflict_count("create")

    with pytest.raises(ConflictException) as exc:
        await lessons_service.create_lesson(make_payload("R1", at(9, 30), 60))

    assert len(lessons_repo.store.lessons) == 2
    assert exc.value.classroom == "R1"
    assert [(i.start, i.end) for i in exc.value.intervals] == [(at(9), at(10)), (at(10), at(11))]
    assert "Classroom R1 is already booked" in exc.value.message
    assert conflict_count("create") == before + 1


@pytest.mark.asyncio
async def test_create_stamps_id_and_created_at(
    monkeypatch: pytest.MonkeyPatch,
    lessons_service: LessonsService,
) -> None:
    fixed_now = datetime(2026, 2, 19, 12, 0, tzinfo=UTC)
    monkeypatch.setattr(lessons_service_module, "utc_now", lambda: fixed_now)

    lesson = await lessons_service.create_lesson(make_payload("R1", at(9), 60))

    assert lesson.id is not None
    assert lesson.created_at == fixed_now
    assert lesson.scheduled_time == at(9)


@pytest.mark.asyncio
async def test_create_locks_classroom_before_scanning(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    await lessons_service.create_lesson(make_payload("LAB-1", at(9), 60))

    assert lessons_repo.locked_classrooms == ["LAB-1"]
    assert lessons_repo.scan_calls == 1


@pytest.mark.asyncio
async def test_classroom_lock_can_be_disabled(lessons_repo: FakeLessonsRepository) -> None:
    service = LessonsService(lessons_repo, lock_classrooms=False)

    await service.create_lesson(make_payload("R1", at(9), 60))

    assert lessons_repo.locked_classrooms == []
    assert lessons_repo.scan_calls == 1


@pytest.mark.asyncio
async def test_create_rechecks_blank_labels(lessons_service: LessonsService) -> None:
    payload = LessonCreate.model_construct(
        subject="   ",
        teacher="Mr. Okafor",
        classroom="R1",
        scheduled_time=at(9),
        duration_minutes=60,
    )

    with pytest.raises(ValidationException):
        await lessons_service.create_lesson(payload)


@pytest.mark.asyncio
async def test_create_rechecks_duration_bounds(lessons_service: LessonsService) -> None:
    payload = LessonCreate.model_construct(
        subject="Biology",
        teacher="Mr. Okafor",
        classroom="R1",
        scheduled_time=at(9),
        duration_minutes=481,
    )

    with pytest.raises(ValidationException):
        await lessons_service.create_lesson(payload)


@pytest.mark.asyncio
async def test_update_unknown_lesson_raises_not_found(lessons_service: LessonsService) -> None:
    with pytest.raises(NotFoundException):
        await lessons_service.update_lesson(uuid4(), LessonUpdate(subject="Physics"))


@pytest.mark.asyncio
async def test_conflicting_update_leaves_record_unchanged(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)
    moving = lessons_repo.seed(classroom="R2", scheduled_time=at(9), duration_minutes=60)
    original = asdict(moving)
    before = conflict_count("update")

    with pytest.raises(ConflictException):
        await lessons_service.update_lesson(
            moving.id,
            LessonUpdate(classroom="R1", subject="Moved"),
        )

    assert asdict(lessons_repo.store.lessons[moving.id]) == original
    assert conflict_count("update") == before + 1


@pytest.mark.asyncio
async def test_subject_only_update_skips_conflict_check(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)

    updated = await lessons_service.update_lesson(
        lesson.id,
        LessonUpdate(subject="Physics", teacher="Dr. Haas"),
    )

    assert updated.subject == "Physics"
    assert updated.teacher == "Dr. Haas"
    assert lessons_repo.scan_calls == 0
    assert lessons_repo.locked_classrooms == []


@pytest.mark.asyncio
async def test_update_does_not_conflict_with_itself(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)

    updated = await lessons_service.update_lesson(lesson.id, LessonUpdate(duration_minutes=90))

    assert updated.duration_minutes == 90
    assert updated.scheduled_time == at(9)
    assert lessons_repo.scan_calls == 1


@pytest.mark.asyncio
async def test_update_validates_with_unchanged_fields(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lessons_repo.seed(classroom="R1", scheduled_time=at(11), duration_minutes=60)
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)

    # Stored start 09:00 plus new duration 150 minutes reaches into 11:00.
    with pytest.raises(ConflictException):
        await lessons_service.update_lesson(lesson.id, LessonUpdate(duration_minutes=150))

    updated = await lessons_service.update_lesson(lesson.id, LessonUpdate(duration_minutes=120))
    assert updated.duration_minutes == 120


@pytest.mark.asyncio
async def test_update_moving_classroom_locks_destination(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)

    updated = await lessons_service.update_lesson(lesson.id, LessonUpdate(classroom="R2"))

    assert updated.classroom == "R2"
    assert lessons_repo.locked_classrooms == ["R2"]


@pytest.mark.asyncio
async def test_update_never_touches_id_or_created_at(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)
    lesson_id, created_at = lesson.id, lesson.created_at

    updated = await lessons_service.update_lesson(
        lesson.id,
        LessonUpdate(scheduled_time=at(14), classroom="R3"),
    )

    assert updated.id == lesson_id
    assert updated.created_at == created_at
    assert updated.scheduled_time == at(14)


@pytest.mark.asyncio
async def test_empty_update_returns_record_untouched(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)
    original = asdict(lesson)

    updated = await lessons_service.update_lesson(lesson.id, LessonUpdate())

    assert asdict(updated) == original
    assert lessons_repo.scan_calls == 0


@pytest.mark.asyncio
async def test_delete_reports_whether_lesson_existed(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)

    assert await lessons_service.delete_lesson(lesson.id) is True
    assert await lessons_service.delete_lesson(lesson.id) is False
    assert await lessons_service.delete_lesson(uuid4()) is False
    assert lessons_repo.store.lessons == {}


@pytest.mark.asyncio
async def test_writes_commit_before_returning(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = await lessons_service.create_lesson(make_payload("R1", at(9), 60))
    assert lessons_repo.commits == 1

    await lessons_service.update_lesson(lesson.id, LessonUpdate(subject="Physics"))
    assert lessons_repo.commits == 2

    await lessons_service.delete_lesson(lesson.id)
    assert lessons_repo.commits == 3


@pytest.mark.asyncio
async def test_rejected_and_empty_writes_do_not_commit(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)

    with pytest.raises(ConflictException):
        await lessons_service.create_lesson(make_payload("R1", at(9, 30), 60))
    await lessons_service.update_lesson(lesson.id, LessonUpdate())

    assert lessons_repo.commits == 0


@pytest.mark.asyncio
async def test_failed_commit_raises_storage_exception(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lessons_repo.fail_commit = True

    with pytest.raises(StorageException) as exc:
        await lessons_service.create_lesson(make_payload("R1", at(9), 60))

    assert exc.value.message == "Storage failure during commit"


@pytest.mark.asyncio
async def test_get_returns_none_for_unknown_id(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    lesson = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)

    assert await lessons_service.get_lesson(lesson.id) is lesson
    assert await lessons_service.get_lesson(uuid4()) is None


@pytest.mark.asyncio
async def test_find_conflicts_is_read_only(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    booked = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)

    conflicts = await lessons_service.find_conflicts(
        ConflictQuery(classroom="R1", scheduled_time=at(9, 30), duration_minutes=60),
    )
    excluded = await lessons_service.find_conflicts(
        ConflictQuery(
            classroom="R1",
            scheduled_time=at(9, 30),
            duration_minutes=60,
            exclude_id=booked.id,
        ),
    )

    assert [lesson.id for lesson in conflicts] == [booked.id]
    assert excluded == []
    assert lessons_repo.locked_classrooms == []
    assert len(lessons_repo.store.lessons) == 1


@pytest.mark.asyncio
async def test_list_delegates_to_listing_filters(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    late = lessons_repo.seed(classroom="R1", scheduled_time=at(14), duration_minutes=60)
    early = lessons_repo.seed(classroom="R1", scheduled_time=at(9), duration_minutes=60)
    lessons_repo.seed(classroom="R2", scheduled_time=at(9), duration_minutes=60)

    items = await lessons_service.list_lessons(LessonFilter(classroom="R1"))

    assert [lesson.id for lesson in items] == [early.id, late.id]


@pytest.mark.asyncio
async def test_invariant_holds_over_mixed_operations(
    lessons_service: LessonsService,
    lessons_repo: FakeLessonsRepository,
) -> None:
    created = []
    for offset in range(0, 600, 25):
        try:
            created.append(
                await lessons_service.create_lesson(
                    make_payload("R1", at(8) + timedelta(minutes=offset), 50),
                ),
            )
        except ConflictException:
            pass

    for lesson in list(created):
        try:
            await lessons_service.update_lesson(
                lesson.id,
                LessonUpdate(scheduled_time=lesson.scheduled_time + timedelta(minutes=10)),
            )
        except ConflictException:
            pass

    await lessons_service.delete_lesson(created[0].id)
    await lessons_service.create_lesson(make_payload("R1", at(8), 50))

    assert len(created) > 1
    assert_no_double_booking(lessons_repo)
