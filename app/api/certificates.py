"""Certificate endpoints.

- POST   /v1/certificates/issue         : issuer issues directly by email
- GET    /v1/certificates/mine          : holder's certificates
- GET    /v1/certificates/issued        : issuer's certificates
- GET    /v1/certificates/{id}          : public lookup (counts a view)
- DELETE /v1/certificates/{id}/revoke   : issuing organization revokes
- GET    /v1/verify/{certificate_id}    : public verification
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.api.dependencies import (
    get_issuer,
    get_verification,
    require_role,
    require_user,
)
from app.models.certificate import Certificate, CertificateStatus
from app.models.principal import Principal, Role
from app.services.certificate_issuer import CertificateIssuer
from app.services.verification import VerificationService

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])
verify_router = APIRouter(prefix="/v1/verify", tags=["verification"])

VerificationDep = Annotated[VerificationService, Depends(get_verification)]
IssuerDep = Annotated[Principal, Depends(require_role(Role.ISSUER))]


class CertificateIssueIn(BaseModel):
    recipient_email: str
    name: str
    description: str | None = None
    issued_date: date | None = None
    expiry_date: date | None = None
    skills: list[str] = []


class CertificateOut(BaseModel):
    id: str
    name: str
    description: str | None
    issued_date: date
    expiry_date: date | None
    status: CertificateStatus
    integrity_hash: str | None
    qr_code: str | None
    views: int
    holder_id: str
    issuer_id: str
    skills: list[str]
    created_at: datetime

    @staticmethod
    def of(certificate: Certificate) -> CertificateOut:
        return CertificateOut(
            id=str(certificate.id),
            name=certificate.name,
            description=certificate.description,
            issued_date=certificate.issued_date,
            expiry_date=certificate.expiry_date,
            status=certificate.status,
            integrity_hash=certificate.integrity_hash,
            qr_code=certificate.qr_code,
            views=certificate.views,
            holder_id=str(certificate.holder_id),
            issuer_id=str(certificate.issuer_id),
            skills=sorted(certificate.skills),
            created_at=certificate.created_at,
        )


class VerificationOut(BaseModel):
    certificate: CertificateOut
    valid: bool


@router.post(
    "/issue",
    response_model=CertificateOut,
    status_code=status.HTTP_201_CREATED,
)
async def issue_certificate(
    body: CertificateIssueIn,
    principal: IssuerDep,
    issuer: Annotated[CertificateIssuer, Depends(get_issuer)],
) -> CertificateOut:
    certificate = await issuer.issue_to_email(
        principal,
        body.recipient_email,
        body.name,
        body.description,
        body.issued_date,
        body.expiry_date,
        body.skills,
    )
    return CertificateOut.of(certificate)


@router.get("/mine", response_model=list[CertificateOut])
async def list_my_certificates(
    principal: Annotated[Principal, Depends(require_user)],
    verification: VerificationDep,
) -> list[CertificateOut]:
    return [CertificateOut.of(c) for c in await verification.list_held(principal)]


@router.get("/issued", response_model=list[CertificateOut])
async def list_issued_certificates(
    principal: IssuerDep,
    verification: VerificationDep,
) -> list[CertificateOut]:
    return [CertificateOut.of(c) for c in await verification.list_issued(principal)]


@router.get("/{certificate_id}", response_model=CertificateOut)
async def get_certificate(
    certificate_id: UUID,
    verification: VerificationDep,
) -> CertificateOut:
    return CertificateOut.of(await verification.resolve_by_id(certificate_id))


@router.delete("/{certificate_id}/revoke", response_model=CertificateOut)
async def revoke_certificate(
    certificate_id: UUID,
    principal: IssuerDep,
    verification: VerificationDep,
) -> CertificateOut:
    return CertificateOut.of(await verification.revoke(certificate_id, principal))


# The id stays a plain string here so malformed values reach the service
# and come back as bad_request rather than a 422 from path validation.
@verify_router.get("/{certificate_id}", response_model=VerificationOut)
async def verify_certificate(
    certificate_id: str,
    verification: VerificationDep,
) -> VerificationOut:
    certificate = await verification.verify(certificate_id)
    return VerificationOut(
        certificate=CertificateOut.of(certificate),
        valid=certificate.status == CertificateStatus.ACTIVE,
    )
