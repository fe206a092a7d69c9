from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.exceptions import CertificateConflictError
from app.models.certificate import Certificate


class CertificateRepo(Protocol):
    async def get_by_id(self, certificate_id: UUID) -> Certificate | None: ...
    async def get_by_user_course(
        self, user_id: str, course_id: UUID
    ) -> Certificate | None: ...
    async def get_by_number(self, certificate_number: str) -> Certificate | None: ...
    async def list_by_user(self, user_id: str) -> list[Certificate]: ...
    async def add(self, certificate: Certificate) -> None: ...
    async def set_url(
        self, certificate_id: UUID, certificate_url: str
    ) -> Certificate | None: ...


class InMemoryCertificateRepo:
    """Enforces both unique keys on insert, like the certificates table."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, Certificate] = {}
        self._by_pair: dict[tuple[str, UUID], UUID] = {}
        self._by_number: dict[str, UUID] = {}

    async def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        return self._by_id.get(certificate_id)

    async def get_by_user_course(
        self, user_id: str, course_id: UUID
    ) -> Certificate | None:
        cert_id = self._by_pair.get((user_id, course_id))
        return self._by_id.get(cert_id) if cert_id is not None else None

    async def get_by_number(self, certificate_number: str) -> Certificate | None:
        cert_id = self._by_number.get(certificate_number)
        return self._by_id.get(cert_id) if cert_id is not None else None

    async def list_by_user(self, user_id: str) -> list[Certificate]:
        certs = [c for c in self._by_id.values() if c.user_id == user_id]
        return sorted(certs, key=lambda c: c.issued_at, reverse=True)

    async def add(self, certificate: Certificate) -> None:
        pair = (certificate.user_id, certificate.course_id)
        if pair in self._by_pair:
            raise CertificateConflictError(CertificateConflictError.USER_COURSE)
        if certificate.certificate_number in self._by_number:
            raise CertificateConflictError(CertificateConflictError.CERTIFICATE_NUMBER)
        self._by_id[certificate.id] = certificate
        self._by_pair[pair] = certificate.id
        self._by_number[certificate.certificate_number] = certificate.id

    async def set_url(
        self, certificate_id: UUID, certificate_url: str
    ) -> Certificate | None:
        c = self._by_id.get(certificate_id)
        if c is None:
            return None
        updated = replace(c, certificate_url=certificate_url)
        self._by_id[certificate_id] = updated
        return updated
