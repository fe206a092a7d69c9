"""Free enrollment and the per-course progress report."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from app.exceptions import CourseNotFoundError, EnrollmentNotFoundError
from app.models.course import Lesson
from app.models.enrollment import Enrollment
from app.models.notification import NotificationType
from app.models.principal import Principal
from app.repos.store import Store
from app.services import catalog_service
from app.services.notification_service import NotificationSink
from app.services.progress_calculator import ModuleProgress, compute_module_breakdown

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressReport:
    enrollment: Enrollment
    total_lessons: int
    completed_lessons: int
    modules: list[ModuleProgress]


async def enroll(
    store: Store,
    notifier: NotificationSink,
    principal: Principal,
    course_ref: str,
    *,
    now: datetime | None = None,
) -> Enrollment:
    """Join a course for free.

    Raises CourseNotFoundError for unknown courses and for unpublished
    ones the caller cannot author, AlreadyEnrolledError on a repeat.
    Payment checks live outside this service.
    """
    course = await catalog_service.find_course(store.catalog, course_ref)
    if not course.is_published and not catalog_service.can_author(principal, course):
        raise CourseNotFoundError(course_ref)

    enrollment = Enrollment.new(
        user_id=principal.user_id, course_id=course.id, started_at=now or datetime.now(UTC)
    )
    await store.enrollments.add(enrollment)
    logger.info("User=%s enrolled in course=%s", principal.user_id, course.id)

    await notifier.notify(
        principal.user_id,
        NotificationType.COURSE_ENROLLED,
        "Enrollment Successful",
        f'You have successfully enrolled in "{course.title}"',
        f"/courses/{course.slug or course.id}",
    )
    return enrollment


async def get_course_progress(
    store: Store, principal: Principal, course_ref: str
) -> ProgressReport:
    """What the learner sees: published lessons only, grouped per module."""
    course = await catalog_service.find_course(store.catalog, course_ref)
    enrollment = await store.enrollments.get(principal.user_id, course.id)
    if enrollment is None:
        raise EnrollmentNotFoundError(course_ref)

    modules, lessons = await catalog_service.list_lessons(
        store.catalog, course.id, viewer_is_privileged=False
    )
    by_module: dict[UUID, list[Lesson]] = defaultdict(list)
    for lesson in lessons:
        by_module[lesson.module_id].append(lesson)

    done = set(enrollment.completed_lessons)
    return ProgressReport(
        enrollment=enrollment,
        total_lessons=len(lessons),
        completed_lessons=sum(1 for lesson in lessons if lesson.id in done),
        modules=compute_module_breakdown(modules, by_module, done),
    )
