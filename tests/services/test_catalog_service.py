from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from app.exceptions import (
    CourseModuleNotFoundError,
    CourseNotFoundError,
    LessonNotFoundError,
    NotFoundError,
)
from app.models.course import Lesson, Module
from app.models.principal import Principal
from app.repos.store import Store
from app.services import catalog_service
from tests.conftest import INSTRUCTOR_ID, seed_course


def test_resolve_lesson_walks_to_course(store: Store) -> None:
    seeded = asyncio.run(seed_course(store))
    ctx = asyncio.run(catalog_service.resolve_lesson(store.catalog, seeded.lessons[1].id))
    assert ctx.lesson == seeded.lessons[1]
    assert ctx.module == seeded.modules[0]
    assert ctx.course.id == seeded.course.id


def test_resolve_unknown_lesson(store: Store) -> None:
    with pytest.raises(LessonNotFoundError):
        asyncio.run(catalog_service.resolve_lesson(store.catalog, uuid4()))


def test_resolve_lesson_with_missing_module(store: Store) -> None:
    orphan = Lesson.new(module_id=uuid4(), title="Orphan", order=0)
    asyncio.run(store.catalog.add_lesson(orphan))
    with pytest.raises(CourseModuleNotFoundError) as exc_info:
        asyncio.run(catalog_service.resolve_lesson(store.catalog, orphan.id))
    # A domain 404, not an import failure.
    assert isinstance(exc_info.value, NotFoundError)
    assert not isinstance(exc_info.value, ImportError)


def test_resolve_module_with_missing_course(store: Store) -> None:
    module = Module.new(course_id=uuid4(), order=0, title="Lost")
    asyncio.run(store.catalog.add_module(module))
    with pytest.raises(CourseNotFoundError):
        asyncio.run(catalog_service.resolve_module(store.catalog, module.id))


def test_list_lesson_ids_filters_drafts_for_learners(store: Store) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(2, 2)))
    draft = Lesson.new(module_id=seeded.modules[0].id, title="Draft", order=5)
    asyncio.run(store.catalog.add_lesson(draft))

    learner_view = asyncio.run(
        catalog_service.list_lesson_ids(
            store.catalog, seeded.course.id, viewer_is_privileged=False
        )
    )
    full_view = asyncio.run(
        catalog_service.list_lesson_ids(
            store.catalog, seeded.course.id, viewer_is_privileged=True
        )
    )

    assert learner_view == [lesson.id for lesson in seeded.lessons]
    # Traversal order: module order first, then lesson order.
    assert full_view == [
        seeded.lessons[0].id,
        seeded.lessons[1].id,
        draft.id,
        seeded.lessons[2].id,
        seeded.lessons[3].id,
    ]


def test_list_lesson_ids_unknown_course(store: Store) -> None:
    with pytest.raises(CourseNotFoundError):
        asyncio.run(
            catalog_service.list_lesson_ids(store.catalog, uuid4(), viewer_is_privileged=True)
        )


def test_find_course_by_slug_or_id(store: Store) -> None:
    seeded = asyncio.run(seed_course(store, slug="intro-sql"))
    by_slug = asyncio.run(catalog_service.find_course(store.catalog, "intro-sql"))
    by_id = asyncio.run(catalog_service.find_course(store.catalog, str(seeded.course.id)))
    assert by_slug.id == by_id.id == seeded.course.id
    with pytest.raises(CourseNotFoundError):
        asyncio.run(catalog_service.find_course(store.catalog, "nope"))


def test_can_author(store: Store) -> None:
    course = asyncio.run(seed_course(store)).course
    assert catalog_service.can_author(Principal(INSTRUCTOR_ID, frozenset({"instructor"})), course)
    assert catalog_service.can_author(Principal("root", frozenset({"admin"})), course)
    assert not catalog_service.can_author(
        Principal("someone-else", frozenset({"instructor"})), course
    )