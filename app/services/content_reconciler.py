"""Keeps derived state consistent with the live content tree.

Two pieces of derived state depend on a course's lessons:

  1. Course.duration, the sum of every lesson's video_duration.  It is
     always recomputed from the full lesson set, never adjusted by a
     delta, so concurrent edits converge: whichever recompute runs last
     writes the true sum.

  2. Enrollment completion.  A completed enrollment earned its 100%
     against the old lesson count.  When a lesson becomes visible
     (created published, or published later) the enrollment goes back
     to active and its completed_at is cleared.

Deleting content only shrinks the denominator, which cannot take an
enrollment below 100%, so deletions recompute duration and nothing else.
Certificates are never touched here: reopening an enrollment does not
revoke what was already issued.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from app.core.metrics import ENROLLMENTS_REOPENED
from app.models.course import Course, Lesson
from app.models.enrollment import EnrollmentStatus
from app.models.notification import NotificationType
from app.repos.store import Store
from app.services.notification_service import NotificationSink
from app.services.progress_calculator import compute_progress

logger = logging.getLogger(__name__)

_NOTIFIED_STATUSES = (EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED)


@dataclass(frozen=True, slots=True)
class DurationUpdate:
    course_id: UUID
    title: str
    duration: int


async def recalculate_course_duration(store: Store, course_id: UUID) -> int:
    modules = await store.catalog.list_modules(course_id)
    lessons = await store.catalog.list_lessons([m.id for m in modules])
    duration = sum(lesson.video_duration for lesson in lessons)
    await store.catalog.set_course_duration(course_id, duration)
    logger.info("Course %s duration recomputed: %ds", course_id, duration)
    return duration


async def recalculate_all_durations(store: Store) -> list[DurationUpdate]:
    """Admin repair: recompute every course's duration from its lessons."""
    updates: list[DurationUpdate] = []
    for course in await store.catalog.list_courses():
        duration = await recalculate_course_duration(store, course.id)
        updates.append(DurationUpdate(course_id=course.id, title=course.title, duration=duration))
    logger.info("Recomputed durations for %d course(s)", len(updates))
    return updates


async def _announce_new_content(
    store: Store,
    notifier: NotificationSink,
    course: Course,
    lesson: Lesson,
    message: str,
) -> int:
    """Notify active/completed learners and reopen completed enrollments.

    Returns how many enrollments were reopened.
    """
    enrollments = await store.enrollments.list_by_course(course.id, _NOTIFIED_STATUSES)
    await notifier.notify_many(
        [e.user_id for e in enrollments],
        NotificationType.NEW_COURSE_CONTENT,
        "New Lesson Available",
        message,
        f"/courses/{course.slug or course.id}/learn",
    )

    modules = await store.catalog.list_modules(course.id)
    lesson_ids = {
        existing.id
        for existing in await store.catalog.list_lessons([m.id for m in modules])
    }
    reopened = 0
    for enrollment in enrollments:
        progress = compute_progress(
            (done for done in enrollment.completed_lessons if done in lesson_ids),
            len(lesson_ids),
        )
        if enrollment.is_completed:
            reopened += 1
        elif progress == enrollment.progress:
            continue
        await store.enrollments.update_progress(
            enrollment.id,
            status=EnrollmentStatus.ACTIVE,
            progress=progress,
            completed_at=None,
        )

    if reopened:
        ENROLLMENTS_REOPENED.inc(reopened)
        logger.info(
            "Lesson %s reopened %d completed enrollment(s) in course=%s",
            lesson.id,
            reopened,
            course.id,
        )
    return reopened


async def on_lesson_created(
    store: Store, notifier: NotificationSink, course: Course, lesson: Lesson
) -> None:
    await recalculate_course_duration(store, course.id)
    if lesson.is_published:
        await _announce_new_content(
            store,
            notifier,
            course,
            lesson,
            f'A new lesson "{lesson.title}" has been added to "{course.title}"',
        )


async def on_lesson_updated(
    store: Store,
    notifier: NotificationSink,
    course: Course,
    before: Lesson,
    after: Lesson,
) -> None:
    if before.video_duration != after.video_duration:
        await recalculate_course_duration(store, course.id)
    if not before.is_published and after.is_published:
        await _announce_new_content(
            store,
            notifier,
            course,
            after,
            f'A new lesson "{after.title}" is now available in "{course.title}"',
        )


async def on_lesson_deleted(store: Store, course: Course) -> None:
    await recalculate_course_duration(store, course.id)


async def on_module_deleted(store: Store, course: Course) -> None:
    await recalculate_course_duration(store, course.id)
