"""Certificate issuance, listing, verification and file backfill.

AT MOST ONE CERTIFICATE PER (user, course)
-------------------------------------------
An existence check before insert is not enough: two completions racing
on the same enrollment can both see "no certificate yet".  The real
guard is the storage layer, which rejects the second insert with
CertificateConflictError.  The issuer treats that as a benign outcome:

  key = user_course         someone else won; re-read and return theirs
  key = certificate_number  our random number collided with another
                            learner's; draw a new one and retry

The record is inserted first, with no URL, and rendered afterwards.  A
racing loser therefore never renders, and a failed render leaves a
valid record behind whose URL is backfilled later, either by the worker
(certificate_render queue) or on demand by the download endpoint.  The
task is queued through the store's post-commit hook, so the worker never
looks for a row that is not yet visible or was rolled back.
"""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from app.core.metrics import (
    CERTIFICATE_CONFLICTS,
    CERTIFICATE_RENDER_FAILURES,
    CERTIFICATES_ISSUED,
)
from app.exceptions import (
    CertificateConflictError,
    CertificateNotFoundError,
    CourseNotFoundError,
    NotCertificateOwnerError,
    RenderError,
)
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.notification import NotificationType
from app.models.principal import Principal
from app.repos.catalog_repo import CatalogRepo
from app.repos.certificate_repo import CertificateRepo
from app.repos.store import PostCommitCallback
from app.services.certificate_renderer import CertificateRenderer
from app.services.notification_service import NotificationSink
from app.services.task_queue import CERTIFICATE_RENDER_QUEUE, TaskQueue

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 5
DEFAULT_RECIPIENT_NAME = "Student"

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_number(now: datetime | None = None) -> str:
    """``CERT-YYYYMM-XXXXXXXX`` with 8 random uppercase alphanumerics.

    36**8 (about 2.8e12) values per month: collisions are rare but
    possible, which is why the number also has its own unique key.
    """
    now = now or datetime.now(UTC)
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(8))
    return f"CERT-{now:%Y%m}-{suffix}"


@dataclass(frozen=True, slots=True)
class IssueResult:
    created: bool
    certificate: Certificate


@dataclass(frozen=True, slots=True)
class CertificateVerification:
    certificate_number: str
    recipient_name: str
    course_title: str
    issued_at: datetime


class CertificateIssuer:
    def __init__(
        self,
        certificates: CertificateRepo,
        renderer: CertificateRenderer,
        notifier: NotificationSink,
        task_queue: TaskQueue,
        organization_name: str | None = None,
        on_commit: Callable[[PostCommitCallback], None] | None = None,
    ) -> None:
        self._certificates = certificates
        self._renderer = renderer
        self._notifier = notifier
        self._task_queue = task_queue
        self._organization_name = organization_name
        # None when no transaction wraps the issuer: queue immediately.
        self._on_commit = on_commit

    async def issue_if_absent(
        self,
        user_id: str,
        course: Course,
        *,
        recipient_name: str = "",
        now: datetime | None = None,
    ) -> IssueResult:
        """Return the pair's certificate, creating it if there is none yet."""
        existing = await self._certificates.get_by_user_course(user_id, course.id)
        if existing is not None:
            logger.debug("Certificate already exists for user=%s course=%s", user_id, course.id)
            return IssueResult(created=False, certificate=existing)

        issued_at = now or datetime.now(UTC)
        certificate = await self._insert(
            user_id, course.id, recipient_name or DEFAULT_RECIPIENT_NAME, issued_at
        )
        if certificate is None:
            winner = await self._certificates.get_by_user_course(user_id, course.id)
            if winner is None:
                # Conflict reported but no row visible: nothing sane to return.
                raise CertificateConflictError(CertificateConflictError.USER_COURSE)
            return IssueResult(created=False, certificate=winner)

        certificate = await self._render_and_store(certificate, course)
        CERTIFICATES_ISSUED.labels(
            rendered="true" if certificate.certificate_url else "false"
        ).inc()
        logger.info(
            "Certificate %s issued to user=%s for course=%s",
            certificate.certificate_number,
            user_id,
            course.id,
        )

        await self._notifier.notify(
            user_id,
            NotificationType.CERTIFICATE_ISSUED,
            "Certificate Issued",
            f'Congratulations! You\'ve earned a certificate for completing "{course.title}"',
            f"/certificates/{certificate.id}",
        )
        return IssueResult(created=True, certificate=certificate)

    async def _insert(
        self, user_id: str, course_id: UUID, recipient_name: str, issued_at: datetime
    ) -> Certificate | None:
        """Insert with a fresh number; None if the pair already holds one."""
        last_error: CertificateConflictError | None = None
        for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
            certificate = Certificate.new(
                user_id=user_id,
                course_id=course_id,
                certificate_number=generate_certificate_number(issued_at),
                issued_at=issued_at,
                recipient_name=recipient_name,
            )
            try:
                await self._certificates.add(certificate)
            except CertificateConflictError as e:
                CERTIFICATE_CONFLICTS.labels(key=e.key).inc()
                if e.key == CertificateConflictError.USER_COURSE:
                    logger.info(
                        "Lost certificate race for user=%s course=%s", user_id, course_id
                    )
                    return None
                logger.warning(
                    "Certificate number %s collided (attempt %d/%d)",
                    certificate.certificate_number,
                    attempt,
                    MAX_NUMBER_ATTEMPTS,
                )
                last_error = e
                continue
            return certificate
        assert last_error is not None
        raise last_error

    async def _render_and_store(self, certificate: Certificate, course: Course) -> Certificate:
        result = await self._renderer.render(
            certificate.recipient_name,
            course.title,
            certificate.issued_at,
            certificate.certificate_number,
            course.instructor_name or None,
            self._organization_name,
        )
        if result.success and result.file_url:
            updated = await self._certificates.set_url(certificate.id, result.file_url)
            return updated or certificate

        CERTIFICATE_RENDER_FAILURES.inc()
        logger.warning(
            "Rendering %s failed, queued for backfill: %s",
            certificate.certificate_number,
            result.error,
        )
        if self._on_commit is None:
            await self._queue_backfill(certificate)
        else:
            # The worker reads the row in its own session: queue once it is visible.
            self._on_commit(lambda: self._queue_backfill(certificate))
        return certificate

    async def _queue_backfill(self, certificate: Certificate) -> None:
        try:
            await self._task_queue.enqueue(
                CERTIFICATE_RENDER_QUEUE, {"certificate_id": str(certificate.id)}
            )
        except Exception:
            # The download endpoint still renders on demand.
            logger.exception(
                "Could not queue backfill for %s", certificate.certificate_number
            )

    async def backfill(self, certificate: Certificate, course: Course) -> Certificate:
        """Render a URL-less certificate and store its URL.

        Raises RenderError if the renderer fails again; the caller
        decides whether that is a 5xx (download) or a logged task failure
        (worker).
        """
        if certificate.certificate_url:
            return certificate
        result = await self._renderer.render(
            certificate.recipient_name or DEFAULT_RECIPIENT_NAME,
            course.title,
            certificate.issued_at,
            certificate.certificate_number,
            course.instructor_name or None,
            self._organization_name,
        )
        if not result.success or not result.file_url:
            CERTIFICATE_RENDER_FAILURES.inc()
            raise RenderError(result.error or "renderer returned no file")
        updated = await self._certificates.set_url(certificate.id, result.file_url)
        if updated is None:
            raise CertificateNotFoundError(str(certificate.id))
        logger.info("Backfilled file for certificate %s", certificate.certificate_number)
        return updated


async def list_certificates(certificates: CertificateRepo, user_id: str) -> list[Certificate]:
    return await certificates.list_by_user(user_id)


async def verify_certificate(
    certificates: CertificateRepo, catalog: CatalogRepo, certificate_number: str
) -> CertificateVerification:
    """Public lookup by number. Unknown numbers are NotFound."""
    certificate = await certificates.get_by_number(certificate_number.strip().upper())
    if certificate is None:
        raise CertificateNotFoundError(certificate_number)
    course = await catalog.get_course(certificate.course_id)
    return CertificateVerification(
        certificate_number=certificate.certificate_number,
        recipient_name=certificate.recipient_name or DEFAULT_RECIPIENT_NAME,
        course_title=course.title if course is not None else "",
        issued_at=certificate.issued_at,
    )


async def ensure_certificate_file(
    certificates: CertificateRepo,
    catalog: CatalogRepo,
    issuer: CertificateIssuer,
    certificate_id: UUID,
    principal: Principal,
) -> Certificate:
    """Owner or admin only. Returns the certificate with its URL set,
    rendering and backfilling it first when issuance left it empty."""
    certificate = await certificates.get_by_id(certificate_id)
    if certificate is None:
        raise CertificateNotFoundError(str(certificate_id))
    if certificate.user_id != principal.user_id and not principal.is_admin():
        raise NotCertificateOwnerError("Not authorized to download this certificate")
    if certificate.certificate_url:
        return certificate
    course = await catalog.get_course(certificate.course_id)
    if course is None:
        raise CourseNotFoundError(str(certificate.course_id))
    return await issuer.backfill(certificate, course)
