"""Completion state machine: the "mark lesson complete" operation.

Enrollment lifecycle:

    active --lesson done, progress < 100--> active
    active --lesson done, progress == 100--> completed   (certificate issued)
    completed --new published content--> active         (content reconciler)
    expired                                               (dead end here)

A learner whose enrollment is completed can still complete a lesson:
that only happens after content changed, so the enrollment drops back
to active before the new lesson is counted.

The denominator is every lesson of the course, published or not, so an
instructor or admin completing a draft lesson cannot push the numerator
past the total.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from app.core.metrics import COURSE_COMPLETIONS, LESSONS_COMPLETED
from app.exceptions import AlreadyEnrolledError, NotEnrolledError
from app.models.enrollment import Enrollment, EnrollmentStatus
from app.models.notification import NotificationType
from app.models.principal import Principal
from app.repos.store import Store
from app.services import catalog_service
from app.services.certificate_service import CertificateIssuer
from app.services.notification_service import NotificationSink
from app.services.progress_calculator import compute_progress

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompletionResult:
    progress: int
    completed_lesson_count: int
    total_lesson_count: int
    is_completed: bool
    certificate_issued: bool
    already_completed: bool = False


async def _resolve_enrollment(
    store: Store, principal: Principal, course_id: UUID, now: datetime
) -> Enrollment:
    enrollment = await store.enrollments.get(principal.user_id, course_id)
    if enrollment is not None and enrollment.status is not EnrollmentStatus.EXPIRED:
        return enrollment
    if enrollment is None and principal.is_admin():
        enrollment = Enrollment.new(
            user_id=principal.user_id, course_id=course_id, started_at=now
        )
        try:
            await store.enrollments.add(enrollment)
        except AlreadyEnrolledError:
            # A parallel request enrolled the admin first; use its row.
            enrollment = await store.enrollments.get(principal.user_id, course_id)
            if enrollment is None:
                raise NotEnrolledError() from None
            return enrollment
        logger.info("Auto-enrolled admin user=%s in course=%s", principal.user_id, course_id)
        return enrollment
    raise NotEnrolledError()


async def mark_lesson_complete(
    store: Store,
    principal: Principal,
    lesson_id: UUID,
    *,
    issuer: CertificateIssuer,
    notifier: NotificationSink,
    now: datetime | None = None,
) -> CompletionResult:
    """Record ``lesson_id`` as done for the caller and advance the enrollment.

    Safe to retry: a lesson that is already recorded returns the stored
    progress and writes nothing.

    Raises:
        LessonNotFoundError, CourseModuleNotFoundError, CourseNotFoundError:
            the lesson -> module -> course chain is broken.
        NotEnrolledError: the caller has no usable enrollment and is not
            an admin.
    """
    now = now or datetime.now(UTC)
    ctx = await catalog_service.resolve_lesson(store.catalog, lesson_id)
    course = ctx.course
    enrollment = await _resolve_enrollment(store, principal, course.id, now)

    lesson_ids = await catalog_service.list_lesson_ids(
        store.catalog, course.id, viewer_is_privileged=True
    )
    total = len(lesson_ids)

    enrollment, appended = await store.enrollments.add_completed_lesson(
        enrollment.id, lesson_id
    )
    live = set(lesson_ids)
    completed_count = sum(1 for done in set(enrollment.completed_lessons) if done in live)

    if not appended:
        LESSONS_COMPLETED.labels(outcome="duplicate").inc()
        logger.debug("Lesson %s already completed by user=%s", lesson_id, principal.user_id)
        return CompletionResult(
            progress=enrollment.progress,
            completed_lesson_count=completed_count,
            total_lesson_count=total,
            is_completed=enrollment.is_completed,
            certificate_issued=False,
            already_completed=True,
        )

    LESSONS_COMPLETED.labels(outcome="recorded").inc()
    progress = compute_progress(
        (done for done in enrollment.completed_lessons if done in live), total
    )

    if progress < 100:
        if enrollment.is_completed:
            logger.info(
                "Enrollment %s reopened by new lesson %s", enrollment.id, lesson_id
            )
        enrollment = await store.enrollments.update_progress(
            enrollment.id,
            status=EnrollmentStatus.ACTIVE,
            progress=progress,
            completed_at=None,
        )
        return CompletionResult(
            progress=progress,
            completed_lesson_count=completed_count,
            total_lesson_count=total,
            is_completed=False,
            certificate_issued=False,
        )

    enrollment = await store.enrollments.update_progress(
        enrollment.id,
        status=EnrollmentStatus.COMPLETED,
        progress=100,
        completed_at=now,
    )
    COURSE_COMPLETIONS.inc()
    logger.info("User=%s completed course=%s", principal.user_id, course.id)

    issued = await issuer.issue_if_absent(
        principal.user_id, course, recipient_name=principal.name, now=now
    )
    await notifier.notify(
        principal.user_id,
        NotificationType.COURSE_COMPLETED,
        "Course Completed",
        f'Congratulations! You\'ve completed "{course.title}"',
        f"/courses/{course.id}",
    )
    return CompletionResult(
        progress=100,
        completed_lesson_count=completed_count,
        total_lesson_count=total,
        is_completed=True,
        certificate_issued=issued.created,
    )
