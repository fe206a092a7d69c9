"""Lesson/module authoring entry points.

Each write goes through the content reconciler afterwards so course
duration and enrollment completion follow the new content tree.  Only
the course's instructor or an admin may author.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from uuid import UUID

from app.exceptions import LessonNotFoundError, NotCourseOwnerError
from app.models.course import Course, Lesson
from app.models.principal import Principal
from app.repos.store import Store
from app.services import catalog_service, content_reconciler
from app.services.notification_service import NotificationSink

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset({"title", "order", "is_published", "is_free", "video_duration"})


@dataclass(frozen=True, slots=True)
class LessonDraft:
    title: str
    order: int | None = None
    is_published: bool = False
    is_free: bool = False
    video_duration: int = 0


def _require_author(principal: Principal, course: Course, action: str) -> None:
    if not catalog_service.can_author(principal, course):
        logger.warning(
            "Authoring denied: user=%s action=%s course=%s",
            principal.user_id,
            action,
            course.id,
        )
        raise NotCourseOwnerError(f"Not authorized to {action}")


async def create_lesson(
    store: Store,
    notifier: NotificationSink,
    principal: Principal,
    module_id: UUID,
    draft: LessonDraft,
) -> Lesson:
    module, course = await catalog_service.resolve_module(store.catalog, module_id)
    _require_author(principal, course, "add lessons to this module")

    order = draft.order
    if order is None:
        siblings = await store.catalog.list_lessons([module.id])
        order = max((s.order for s in siblings), default=-1) + 1

    lesson = Lesson.new(
        module_id=module.id,
        title=draft.title,
        order=order,
        is_published=draft.is_published,
        is_free=draft.is_free,
        video_duration=draft.video_duration,
    )
    await store.catalog.add_lesson(lesson)
    logger.info("Lesson %s created in module=%s", lesson.id, module.id)
    await content_reconciler.on_lesson_created(store, notifier, course, lesson)
    return lesson


async def update_lesson(
    store: Store,
    notifier: NotificationSink,
    principal: Principal,
    lesson_id: UUID,
    changes: dict,
) -> Lesson:
    """Apply a partial update. Unknown keys are ignored."""
    ctx = await catalog_service.resolve_lesson(store.catalog, lesson_id)
    _require_author(principal, ctx.course, "update this lesson")

    fields = {k: v for k, v in changes.items() if k in _EDITABLE_FIELDS and v is not None}
    if fields.get("video_duration", 0) < 0:
        raise ValueError("video_duration must be >= 0")
    updated = replace(ctx.lesson, **fields)
    if updated == ctx.lesson:
        return ctx.lesson

    await store.catalog.update_lesson(updated)
    await content_reconciler.on_lesson_updated(
        store, notifier, ctx.course, ctx.lesson, updated
    )
    return updated


async def delete_lesson(store: Store, principal: Principal, lesson_id: UUID) -> None:
    ctx = await catalog_service.resolve_lesson(store.catalog, lesson_id)
    _require_author(principal, ctx.course, "delete this lesson")
    if not await store.catalog.delete_lesson(lesson_id):
        raise LessonNotFoundError(str(lesson_id))
    logger.info("Lesson %s deleted from course=%s", lesson_id, ctx.course.id)
    await content_reconciler.on_lesson_deleted(store, ctx.course)


async def delete_module(store: Store, principal: Principal, module_id: UUID) -> int:
    """Delete a module with all its lessons. Returns the lesson count removed."""
    module, course = await catalog_service.resolve_module(store.catalog, module_id)
    _require_author(principal, course, "delete this module")
    removed = await store.catalog.delete_module(module.id)
    logger.info(
        "Module %s deleted from course=%s with %d lesson(s)", module.id, course.id, removed
    )
    await content_reconciler.on_module_deleted(store, course)
    return removed
