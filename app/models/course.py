from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    """Catalog entry. ``duration`` is derived: the sum of all lesson
    ``video_duration`` values, recomputed by the content reconciler."""

    id: UUID
    slug: str
    title: str
    instructor_id: str
    instructor_name: str = ""
    is_published: bool = False
    duration: int = 0  # seconds

    @staticmethod
    def new(
        *,
        slug: str,
        title: str,
        instructor_id: str,
        instructor_name: str = "",
        is_published: bool = False,
    ) -> Course:
        return Course(
            id=uuid4(),
            slug=slug,
            title=title,
            instructor_id=instructor_id,
            instructor_name=instructor_name,
            is_published=is_published,
        )


@dataclass(frozen=True, slots=True)
class Module:
    id: UUID
    course_id: UUID
    order: int  # zero-based; unique within the course, gaps allowed
    title: str

    @staticmethod
    def new(*, course_id: UUID, order: int, title: str) -> Module:
        return Module(id=uuid4(), course_id=course_id, order=order, title=title)


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    module_id: UUID
    title: str
    order: int
    is_published: bool = False
    is_free: bool = False
    video_duration: int = 0  # seconds, >= 0

    @staticmethod
    def new(
        *,
        module_id: UUID,
        title: str,
        order: int,
        is_published: bool = False,
        is_free: bool = False,
        video_duration: int = 0,
    ) -> Lesson:
        if video_duration < 0:
            raise ValueError("video_duration must be >= 0")
        return Lesson(
            id=uuid4(),
            module_id=module_id,
            title=title,
            order=order,
            is_published=is_published,
            is_free=is_free,
            video_duration=video_duration,
        )
