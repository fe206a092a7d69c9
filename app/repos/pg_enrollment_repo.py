"""PostgreSQL implementation of EnrollmentRepo.

add_completed_lesson is a single conditional UPDATE, so two requests
completing different lessons at once cannot overwrite each other's append.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, not_, select, update
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import cast

from app.db.tables import ENROLLMENT_USER_COURSE_KEY, EnrollmentRow
from app.exceptions import AlreadyEnrolledError, EnrollmentNotFoundError
from app.models.enrollment import Enrollment, EnrollmentStatus


class PgEnrollmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_row(self, enrollment_id: UUID) -> EnrollmentRow:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            raise EnrollmentNotFoundError(str(enrollment_id))
        return row

    async def get(self, user_id: str, course_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.user_id == user_id, EnrollmentRow.course_id == course_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row is not None else None

    async def add(self, enrollment: Enrollment) -> None:
        row = EnrollmentRow(
            id=enrollment.id,
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            status=enrollment.status.value,
            progress=enrollment.progress,
            completed_lessons=list(enrollment.completed_lessons),
            started_at=enrollment.started_at,
            completed_at=enrollment.completed_at,
            expires_at=enrollment.expires_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as e:
            if ENROLLMENT_USER_COURSE_KEY in str(e.orig):
                raise AlreadyEnrolledError(
                    f"{enrollment.user_id}:{enrollment.course_id}"
                ) from None
            raise

    async def add_completed_lesson(
        self, enrollment_id: UUID, lesson_id: UUID
    ) -> tuple[Enrollment, bool]:
        lesson_param = cast(lesson_id, PgUUID(as_uuid=True))
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.id == enrollment_id,
                not_(EnrollmentRow.completed_lessons.any(lesson_param)),
            )
            .values(
                completed_lessons=func.array_append(
                    EnrollmentRow.completed_lessons, lesson_param
                )
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        row = await self._get_row(enrollment_id)
        return _row_to_enrollment(row), bool(result.rowcount)

    async def update_progress(
        self,
        enrollment_id: UUID,
        *,
        status: EnrollmentStatus,
        progress: int,
        completed_at: datetime | None,
    ) -> Enrollment:
        stmt = (
            update(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .values(status=status.value, progress=progress, completed_at=completed_at)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
        return _row_to_enrollment(await self._get_row(enrollment_id))

    async def list_by_course(
        self, course_id: UUID, statuses: Iterable[EnrollmentStatus]
    ) -> list[Enrollment]:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.course_id == course_id,
            EnrollmentRow.status.in_([s.value for s in statuses]),
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        started_at=row.started_at,
        status=EnrollmentStatus(row.status),
        progress=row.progress,
        completed_lessons=tuple(row.completed_lessons or ()),
        completed_at=row.completed_at,
        expires_at=row.expires_at,
    )
