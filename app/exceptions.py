"""Domain exception classes for the progress & completion engine.

Raised by service-layer code; app/api/errors.py maps them to HTTP
responses:

  NotFoundError   -> 404
  ForbiddenError  -> 403
  ConflictError   -> 409 (certificate conflicts never get this far;
                          the issuer absorbs them)
  TransientError  -> 503, only from the certificate download path;
                     during completion, renderer and notifier failures
                     are logged and tolerated
"""

from __future__ import annotations


class NotFoundError(Exception):
    """Base class for a required entity that cannot be resolved."""

    entity = "Resource"

    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"{self.entity} not found: {identifier}")


class CourseNotFoundError(NotFoundError):
    entity = "Course"


class CourseModuleNotFoundError(NotFoundError):
    entity = "Module"


class LessonNotFoundError(NotFoundError):
    entity = "Lesson"


class EnrollmentNotFoundError(NotFoundError):
    entity = "Enrollment"


class CertificateNotFoundError(NotFoundError):
    entity = "Certificate"


class ForbiddenError(Exception):
    """Caller is identified but not entitled to the operation."""


class NotEnrolledError(ForbiddenError):
    """Raised when progress is recorded by a caller with no enrollment."""

    def __init__(self, message: str = "You must be enrolled in this course to track progress"):
        super().__init__(message)


class NotCourseOwnerError(ForbiddenError):
    """Raised when a non-owner, non-admin tries to author course content."""


class NotCertificateOwnerError(ForbiddenError):
    """Raised when a caller asks for someone else's certificate file."""


class ConflictError(Exception):
    """A storage-level uniqueness constraint rejected a write."""


class AlreadyEnrolledError(ConflictError):
    """Raised when an enrollment already exists for the (user, course) pair."""


class CertificateConflictError(ConflictError):
    """Raised by certificate repos when a unique key is already taken.

    ``key`` is ``"user_course"`` when the (user, course) pair already holds
    a certificate, or ``"certificate_number"`` when only the number collided.
    """

    USER_COURSE = "user_course"
    CERTIFICATE_NUMBER = "certificate_number"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Certificate uniqueness violated on {key}")


class TransientError(Exception):
    """Best-effort collaborator failure (renderer, notifier, queue)."""


class RenderError(TransientError):
    """Raised when the certificate renderer cannot produce a file."""
