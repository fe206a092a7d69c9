"""Progress arithmetic. Pure functions, no I/O.

An empty course (zero lessons) is vacuously complete: 100%.  This is
what lets an enrollment in a course with no lessons certify on the
first completion check.
"""

from __future__ import annotations

import math
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from uuid import UUID

from app.models.course import Lesson, Module


@dataclass(frozen=True, slots=True)
class ModuleProgress:
    module_id: UUID
    title: str
    total_lessons: int
    completed_lessons: int
    percent: int
    lessons: tuple[tuple[UUID, str, bool], ...] = ()  # (lesson_id, title, is_completed)


def percent(part: int, whole: int) -> int:
    # Half-up, not Python's banker's rounding: 1/8 -> 13, 2/3 -> 67.
    return min(100, math.floor(part * 100 / whole + 0.5))


def compute_progress(completed_lesson_ids: Iterable[UUID], total_lesson_count: int) -> int:
    """Integer percent 0-100 of distinct completed lessons over the total."""
    if total_lesson_count <= 0:
        return 100
    return percent(len(set(completed_lesson_ids)), total_lesson_count)


def compute_module_breakdown(
    modules: list[Module],
    lessons_by_module: Mapping[UUID, list[Lesson]],
    completed_lesson_ids: Collection[UUID],
) -> list[ModuleProgress]:
    """Per-module {total, completed, percent} for progress reporting.

    Independent from completion decisions: an empty module reports 0%,
    not the vacuous 100% used for whole courses.
    """
    done = set(completed_lesson_ids)
    breakdown: list[ModuleProgress] = []
    for module in modules:
        lessons = lessons_by_module.get(module.id, [])
        completed = sum(1 for lesson in lessons if lesson.id in done)
        breakdown.append(
            ModuleProgress(
                module_id=module.id,
                title=module.title,
                total_lessons=len(lessons),
                completed_lessons=completed,
                percent=percent(completed, len(lessons)) if lessons else 0,
                lessons=tuple(
                    (lesson.id, lesson.title, lesson.id in done) for lesson in lessons
                ),
            )
        )
    return breakdown
