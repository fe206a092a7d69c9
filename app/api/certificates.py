"""Certificate endpoints.

  GET /v1/certificates                          caller's certificates
  GET /v1/certificates/verify/{number}          public, no token needed
  GET /v1/certificates/{certificate_id}/download
      owner or admin; renders the file first if issuance could not
      (503 if the renderer is still failing)
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.dependencies import IssuerDep, StoreDep, UserDep
from app.models.certificate import Certificate
from app.services import certificate_service

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


class CertificateOut(BaseModel):
    id: UUID
    course_id: UUID
    certificate_number: str
    certificate_url: str | None
    issued_at: datetime

    @classmethod
    def from_certificate(cls, c: Certificate) -> CertificateOut:
        return cls(
            id=c.id,
            course_id=c.course_id,
            certificate_number=c.certificate_number,
            certificate_url=c.certificate_url,
            issued_at=c.issued_at,
        )


class VerificationOut(BaseModel):
    valid: bool
    certificate_number: str
    recipient_name: str
    course_title: str
    issued_at: datetime


@router.get("", response_model=list[CertificateOut])
async def list_my_certificates(principal: UserDep, store: StoreDep) -> list[CertificateOut]:
    certs = await certificate_service.list_certificates(store.certificates, principal.user_id)
    return [CertificateOut.from_certificate(c) for c in certs]


@router.get("/verify/{certificate_number}", response_model=VerificationOut)
async def verify(certificate_number: str, store: StoreDep) -> VerificationOut:
    v = await certificate_service.verify_certificate(
        store.certificates, store.catalog, certificate_number
    )
    return VerificationOut(
        valid=True,
        certificate_number=v.certificate_number,
        recipient_name=v.recipient_name,
        course_title=v.course_title,
        issued_at=v.issued_at,
    )


@router.get("/{certificate_id}/download", response_model=CertificateOut)
async def download(
    certificate_id: UUID,
    principal: UserDep,
    store: StoreDep,
    issuer: IssuerDep,
) -> CertificateOut:
    cert = await certificate_service.ensure_certificate_file(
        store.certificates, store.catalog, issuer, certificate_id, principal
    )
    return CertificateOut.from_certificate(cert)
