"""PostgreSQL implementation of CertificateRepo.

Inserts run inside a SAVEPOINT so that a unique-key violation can be
translated into CertificateConflictError without aborting the caller's
transaction (the enrollment update in the same request must still commit).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import (
    CERTIFICATE_NUMBER_KEY,
    CERTIFICATE_USER_COURSE_KEY,
    CertificateRow,
)
from app.exceptions import CertificateConflictError
from app.models.certificate import Certificate


class PgCertificateRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _one(self, stmt) -> Certificate | None:
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_certificate(row) if row is not None else None

    async def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        return await self._one(select(CertificateRow).where(CertificateRow.id == certificate_id))

    async def get_by_user_course(
        self, user_id: str, course_id: UUID
    ) -> Certificate | None:
        return await self._one(
            select(CertificateRow).where(
                CertificateRow.user_id == user_id, CertificateRow.course_id == course_id
            )
        )

    async def get_by_number(self, certificate_number: str) -> Certificate | None:
        return await self._one(
            select(CertificateRow).where(
                CertificateRow.certificate_number == certificate_number
            )
        )

    async def list_by_user(self, user_id: str) -> list[Certificate]:
        stmt = (
            select(CertificateRow)
            .where(CertificateRow.user_id == user_id)
            .order_by(CertificateRow.issued_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_certificate(r) for r in rows]

    async def add(self, certificate: Certificate) -> None:
        row = CertificateRow(
            id=certificate.id,
            user_id=certificate.user_id,
            course_id=certificate.course_id,
            certificate_number=certificate.certificate_number,
            recipient_name=certificate.recipient_name,
            certificate_url=certificate.certificate_url,
            issued_at=certificate.issued_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as e:
            detail = str(e.orig)
            if CERTIFICATE_USER_COURSE_KEY in detail:
                raise CertificateConflictError(CertificateConflictError.USER_COURSE) from None
            if CERTIFICATE_NUMBER_KEY in detail:
                raise CertificateConflictError(
                    CertificateConflictError.CERTIFICATE_NUMBER
                ) from None
            raise

    async def set_url(
        self, certificate_id: UUID, certificate_url: str
    ) -> Certificate | None:
        stmt = (
            update(CertificateRow)
            .where(CertificateRow.id == certificate_id)
            .values(certificate_url=certificate_url)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self._one(
            select(CertificateRow)
            .where(CertificateRow.id == certificate_id)
            .execution_options(populate_existing=True)
        )


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        certificate_number=row.certificate_number,
        issued_at=row.issued_at,
        certificate_url=row.certificate_url,
        recipient_name=row.recipient_name,
    )
