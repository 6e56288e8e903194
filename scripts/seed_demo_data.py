"""Seed idempotent demo lessons for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from classbook.core.config import get_settings
from classbook.core.database import SessionLocal, close_engine
from classbook.modules.lessons.repository import LessonsRepository
from classbook.modules.lessons.schemas import ConflictQuery, LessonCreate
from classbook.modules.lessons.service import LessonsService
from classbook.shared.exceptions import ConflictException

DEMO_DAY_OFFSETS = (1, 2, 3, 4, 5)

# (start hour, duration minutes, subject, teacher, classroom)
DEMO_TIMETABLE = (
    (9, 60, "Algebra", "Ms. Novak", "R101"),
    (10, 45, "Geometry", "Ms. Novak", "R101"),
    (9, 90, "Chemistry", "Mr. Okafor", "LAB-1"),
    (11, 60, "Physics", "Mr. Okafor", "LAB-1"),
    (13, 120, "Literature", "Dr. Haas", "R204"),
)


@dataclass(slots=True)
class SeedStats:
    lessons_created: int = 0
    lessons_existing: int = 0
    lessons_conflicting: int = 0


def _build_demo_lessons(today: date) -> list[LessonCreate]:
    lessons: list[LessonCreate] = []
    for day_offset in DEMO_DAY_OFFSETS:
        target_date = today + timedelta(days=day_offset)
        for hour, duration, subject, teacher, classroom in DEMO_TIMETABLE:
            lessons.append(
                LessonCreate(
                    subject=subject,
                    teacher=teacher,
                    classroom=classroom,
                    scheduled_time=datetime.combine(target_date, time(hour=hour, tzinfo=UTC)),
                    duration_minutes=duration,
                ),
            )
    return lessons


async def _seed_lesson(service: LessonsService, payload: LessonCreate, stats: SeedStats) -> None:
    try:
        await service.create_lesson(payload)
    except ConflictException:
        existing = await service.find_conflicts(
            ConflictQuery(
                classroom=payload.classroom,
                scheduled_time=payload.scheduled_time,
                duration_minutes=payload.duration_minutes,
            ),
        )
        if any(
            lesson.subject == payload.subject
            and lesson.teacher == payload.teacher
            and lesson.scheduled_time == payload.scheduled_time
            and lesson.duration_minutes == payload.duration_minutes
            for lesson in existing
        ):
            stats.lessons_existing += 1
        else:
            stats.lessons_conflicting += 1
        return
    stats.lessons_created += 1


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with SessionLocal() as session:
        try:
            service = LessonsService(
                LessonsRepository(session),
                lock_classrooms=settings.classroom_lock_enabled,
            )
            for payload in _build_demo_lessons(datetime.now(UTC).date()):
                await _seed_lesson(service, payload, stats)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed idempotent demo lessons for Classbook (five days of timetable).",
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Lessons created: {stats.lessons_created}")
    print(f"- Lessons already present: {stats.lessons_existing}")
    print(f"- Lessons skipped (classroom taken): {stats.lessons_conflicting}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
