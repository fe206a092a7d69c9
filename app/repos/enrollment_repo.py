from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import UUID

from app.exceptions import AlreadyEnrolledError, EnrollmentNotFoundError
from app.models.enrollment import Enrollment, EnrollmentStatus


class EnrollmentRepo(Protocol):
    async def get(self, user_id: str, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def add_completed_lesson(
        self, enrollment_id: UUID, lesson_id: UUID
    ) -> tuple[Enrollment, bool]: ...
    async def update_progress(
        self,
        enrollment_id: UUID,
        *,
        status: EnrollmentStatus,
        progress: int,
        completed_at: datetime | None,
    ) -> Enrollment: ...
    async def list_by_course(
        self, course_id: UUID, statuses: Iterable[EnrollmentStatus]
    ) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    """Keyed by (user_id, course_id), the same uniqueness the table enforces."""

    def __init__(self) -> None:
        self._store: dict[tuple[str, UUID], Enrollment] = {}

    def _key_for(self, enrollment_id: UUID) -> tuple[str, UUID]:
        for key, e in self._store.items():
            if e.id == enrollment_id:
                return key
        raise EnrollmentNotFoundError(str(enrollment_id))

    async def get(self, user_id: str, course_id: UUID) -> Enrollment | None:
        return self._store.get((user_id, course_id))

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.user_id, enrollment.course_id)
        if key in self._store:
            raise AlreadyEnrolledError(f"{enrollment.user_id}:{enrollment.course_id}")
        self._store[key] = enrollment

    async def add_completed_lesson(
        self, enrollment_id: UUID, lesson_id: UUID
    ) -> tuple[Enrollment, bool]:
        """Append ``lesson_id`` unless present. Returns (enrollment, appended)."""
        key = self._key_for(enrollment_id)
        e = self._store[key]
        if e.has_completed(lesson_id):
            return e, False
        updated = replace(e, completed_lessons=(*e.completed_lessons, lesson_id))
        self._store[key] = updated
        return updated, True

    async def update_progress(
        self,
        enrollment_id: UUID,
        *,
        status: EnrollmentStatus,
        progress: int,
        completed_at: datetime | None,
    ) -> Enrollment:
        key = self._key_for(enrollment_id)
        updated = replace(
            self._store[key], status=status, progress=progress, completed_at=completed_at
        )
        self._store[key] = updated
        return updated

    async def list_by_course(
        self, course_id: UUID, statuses: Iterable[EnrollmentStatus]
    ) -> list[Enrollment]:
        wanted = set(statuses)
        return [
            e
            for e in self._store.values()
            if e.course_id == course_id and e.status in wanted
        ]
