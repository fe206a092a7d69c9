"""Catalog reader: read-only access to a course's module/lesson tree.

Two visibility rules exist and callers must pick deliberately:

  viewer_is_privileged=False  published lessons only (what a learner sees)
  viewer_is_privileged=True   every lesson (owner/admin views, and the
                              completion denominator, which must not shift
                              when an instructor completes a draft lesson)
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.exceptions import (
    CourseModuleNotFoundError,
    CourseNotFoundError,
    LessonNotFoundError,
)
from app.models.course import Course, Lesson, Module
from app.models.principal import Principal
from app.repos.catalog_repo import CatalogRepo


@dataclass(frozen=True, slots=True)
class LessonContext:
    lesson: Lesson
    module: Module
    course: Course


def can_author(principal: Principal, course: Course) -> bool:
    return principal.is_admin() or principal.user_id == course.instructor_id


async def get_course(catalog: CatalogRepo, course_id: UUID) -> Course:
    course = await catalog.get_course(course_id)
    if course is None:
        raise CourseNotFoundError(str(course_id))
    return course


async def find_course(catalog: CatalogRepo, id_or_slug: str) -> Course:
    """Look a course up by UUID, falling back to its slug."""
    try:
        course = await catalog.get_course(UUID(id_or_slug))
    except ValueError:
        course = None
    if course is None:
        course = await catalog.get_course_by_slug(id_or_slug)
    if course is None:
        raise CourseNotFoundError(id_or_slug)
    return course


async def resolve_module(catalog: CatalogRepo, module_id: UUID) -> tuple[Module, Course]:
    module = await catalog.get_module(module_id)
    if module is None:
        raise CourseModuleNotFoundError(str(module_id))
    return module, await get_course(catalog, module.course_id)


async def resolve_lesson(catalog: CatalogRepo, lesson_id: UUID) -> LessonContext:
    """Walk lesson -> module -> course; NotFound on any broken link."""
    lesson = await catalog.get_lesson(lesson_id)
    if lesson is None:
        raise LessonNotFoundError(str(lesson_id))
    module, course = await resolve_module(catalog, lesson.module_id)
    return LessonContext(lesson=lesson, module=module, course=course)


async def list_lessons(
    catalog: CatalogRepo, course_id: UUID, *, viewer_is_privileged: bool
) -> tuple[list[Module], list[Lesson]]:
    await get_course(catalog, course_id)
    modules = await catalog.list_modules(course_id)
    lessons = await catalog.list_lessons(
        [m.id for m in modules], published_only=not viewer_is_privileged
    )
    return modules, lessons


async def list_lesson_ids(
    catalog: CatalogRepo, course_id: UUID, *, viewer_is_privileged: bool
) -> list[UUID]:
    """Lesson ids of the course in traversal order (module order, lesson order)."""
    _, lessons = await list_lessons(
        catalog, course_id, viewer_is_privileged=viewer_is_privileged
    )
    return [lesson.id for lesson in lessons]
