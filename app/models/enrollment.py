from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One learner's relationship to one course.

    ``completed_at`` is set if and only if ``status`` is COMPLETED.
    ``completed_lessons`` is a set in meaning; the tuple keeps insertion
    order only so that persisted rows are stable.
    """

    id: UUID
    user_id: str
    course_id: UUID
    started_at: datetime
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    progress: int = 0
    completed_lessons: tuple[UUID, ...] = ()
    completed_at: datetime | None = None
    expires_at: datetime | None = None

    @staticmethod
    def new(*, user_id: str, course_id: UUID, started_at: datetime) -> Enrollment:
        return Enrollment(
            id=uuid4(), user_id=user_id, course_id=course_id, started_at=started_at
        )

    @property
    def is_completed(self) -> bool:
        return self.status is EnrollmentStatus.COMPLETED

    def has_completed(self, lesson_id: UUID) -> bool:
        return lesson_id in self.completed_lessons
