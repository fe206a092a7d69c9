from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from app.exceptions import CourseModuleNotFoundError, LessonNotFoundError, NotCourseOwnerError
from app.models.principal import Principal
from app.repos.store import Store
from app.services import authoring_service
from app.services.authoring_service import LessonDraft
from tests.conftest import INSTRUCTOR_ID, seed_course

AUTHOR = Principal(user_id=INSTRUCTOR_ID, roles=frozenset({"instructor"}))
ADMIN = Principal(user_id="root", roles=frozenset({"admin"}))
OTHER = Principal(user_id="other-instructor", roles=frozenset({"instructor"}))


def test_create_lesson_appends_after_last(store: Store, notifier) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(3,)))

    lesson = asyncio.run(
        authoring_service.create_lesson(
            store, notifier, AUTHOR, seeded.modules[0].id, LessonDraft(title="Next")
        )
    )

    assert lesson.order == 3
    assert not lesson.is_published
    assert asyncio.run(store.catalog.get_lesson(lesson.id)) == lesson


def test_create_lesson_in_empty_module_starts_at_zero(store: Store, notifier) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(0,)))

    lesson = asyncio.run(
        authoring_service.create_lesson(
            store, notifier, AUTHOR, seeded.modules[0].id, LessonDraft(title="First")
        )
    )

    assert lesson.order == 0


def test_create_lesson_keeps_explicit_order(store: Store, notifier) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(2,)))

    lesson = asyncio.run(
        authoring_service.create_lesson(
            store, notifier, AUTHOR, seeded.modules[0].id, LessonDraft(title="Intro", order=7)
        )
    )

    assert lesson.order == 7


def test_update_ignores_unknown_and_null_fields(store: Store, notifier) -> None:
    seeded = asyncio.run(seed_course(store))
    original = seeded.lessons[0]

    updated = asyncio.run(
        authoring_service.update_lesson(
            store,
            notifier,
            AUTHOR,
            original.id,
            {"title": "Renamed", "is_free": None, "module_id": uuid4()},
        )
    )

    assert updated.title == "Renamed"
    assert updated.is_free == original.is_free
    assert updated.module_id == original.module_id


def test_update_rejects_negative_duration(store: Store, notifier) -> None:
    seeded = asyncio.run(seed_course(store))

    with pytest.raises(ValueError):
        asyncio.run(
            authoring_service.update_lesson(
                store, notifier, AUTHOR, seeded.lessons[0].id, {"video_duration": -5}
            )
        )


def test_non_owner_cannot_author(store: Store, notifier) -> None:
    seeded = asyncio.run(seed_course(store))

    with pytest.raises(NotCourseOwnerError):
        asyncio.run(authoring_service.delete_lesson(store, OTHER, seeded.lessons[0].id))
    with pytest.raises(NotCourseOwnerError):
        asyncio.run(
            authoring_service.create_lesson(
                store, notifier, OTHER, seeded.modules[0].id, LessonDraft(title="x")
            )
        )
    with pytest.raises(NotCourseOwnerError):
        asyncio.run(authoring_service.delete_module(store, OTHER, seeded.modules[0].id))
    assert asyncio.run(store.catalog.get_lesson(seeded.lessons[0].id)) is not None


def test_admin_can_author_any_course(store: Store) -> None:
    seeded = asyncio.run(seed_course(store))

    asyncio.run(authoring_service.delete_lesson(store, ADMIN, seeded.lessons[0].id))

    assert asyncio.run(store.catalog.get_lesson(seeded.lessons[0].id)) is None


def test_unknown_targets(store: Store, notifier) -> None:
    with pytest.raises(LessonNotFoundError):
        asyncio.run(authoring_service.delete_lesson(store, AUTHOR, uuid4()))
    with pytest.raises(LessonNotFoundError):
        asyncio.run(authoring_service.update_lesson(store, notifier, AUTHOR, uuid4(), {}))
    with pytest.raises(CourseModuleNotFoundError):
        asyncio.run(authoring_service.delete_module(store, AUTHOR, uuid4()))
    with pytest.raises(CourseModuleNotFoundError):
        asyncio.run(
            authoring_service.create_lesson(store, notifier, AUTHOR, uuid4(), LessonDraft(title="x"))
        )
