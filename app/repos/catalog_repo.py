from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.course import Course, Lesson, Module


class CatalogRepo(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def get_course_by_slug(self, slug: str) -> Course | None: ...
    async def list_courses(self) -> list[Course]: ...
    async def add_course(self, course: Course) -> None: ...
    async def set_course_duration(self, course_id: UUID, duration: int) -> None: ...
    async def get_module(self, module_id: UUID) -> Module | None: ...
    async def list_modules(self, course_id: UUID) -> list[Module]: ...
    async def add_module(self, module: Module) -> None: ...
    async def delete_module(self, module_id: UUID) -> int: ...
    async def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    async def list_lessons(
        self, module_ids: list[UUID], *, published_only: bool = False
    ) -> list[Lesson]: ...
    async def add_lesson(self, lesson: Lesson) -> None: ...
    async def update_lesson(self, lesson: Lesson) -> None: ...
    async def delete_lesson(self, lesson_id: UUID) -> bool: ...


def order_lessons(lessons: list[Lesson], module_ids: list[UUID]) -> list[Lesson]:
    """Traversal order: module position in ``module_ids``, then lesson order."""
    rank = {module_id: i for i, module_id in enumerate(module_ids)}
    return sorted(lessons, key=lambda lesson: (rank[lesson.module_id], lesson.order))


class InMemoryCatalogRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._modules: dict[UUID, Module] = {}
        self._lessons: dict[UUID, Lesson] = {}

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_course_by_slug(self, slug: str) -> Course | None:
        return next((c for c in self._courses.values() if c.slug == slug), None)

    async def list_courses(self) -> list[Course]:
        return list(self._courses.values())

    async def add_course(self, course: Course) -> None:
        if any(c.slug == course.slug for c in self._courses.values()):
            raise ValueError("slug already exists")
        self._courses[course.id] = course

    async def set_course_duration(self, course_id: UUID, duration: int) -> None:
        c = self._courses.get(course_id)
        if c is None:
            raise KeyError("course not found")
        self._courses[course_id] = replace(c, duration=duration)

    async def get_module(self, module_id: UUID) -> Module | None:
        return self._modules.get(module_id)

    async def list_modules(self, course_id: UUID) -> list[Module]:
        modules = [m for m in self._modules.values() if m.course_id == course_id]
        return sorted(modules, key=lambda m: m.order)

    async def add_module(self, module: Module) -> None:
        if any(
            m.course_id == module.course_id and m.order == module.order
            for m in self._modules.values()
        ):
            raise ValueError("module order already used in this course")
        self._modules[module.id] = module

    async def delete_module(self, module_id: UUID) -> int:
        """Delete a module and its lessons; returns the number of lessons removed."""
        self._modules.pop(module_id, None)
        doomed = [i for i, lesson in self._lessons.items() if lesson.module_id == module_id]
        for lesson_id in doomed:
            del self._lessons[lesson_id]
        return len(doomed)

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    async def list_lessons(
        self, module_ids: list[UUID], *, published_only: bool = False
    ) -> list[Lesson]:
        wanted = set(module_ids)
        lessons = [
            lesson
            for lesson in self._lessons.values()
            if lesson.module_id in wanted and (lesson.is_published or not published_only)
        ]
        return order_lessons(lessons, module_ids)

    async def add_lesson(self, lesson: Lesson) -> None:
        self._lessons[lesson.id] = lesson

    async def update_lesson(self, lesson: Lesson) -> None:
        if lesson.id not in self._lessons:
            raise KeyError("lesson not found")
        self._lessons[lesson.id] = lesson

    async def delete_lesson(self, lesson_id: UUID) -> bool:
        return self._lessons.pop(lesson_id, None) is not None
