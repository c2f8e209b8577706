"""Certificate request endpoints.

- POST /v1/certificate-requests                 : holder asks an issuer
- GET  /v1/certificate-requests/mine            : holder's own requests
- GET  /v1/certificate-requests/incoming        : issuer's inbox (?status=)
- POST /v1/certificate-requests/{id}/approve    : issuer mints the certificate
- POST /v1/certificate-requests/{id}/reject     : issuer declines with a reason
- POST /v1/certificate-requests/{id}/payment    : holder records the paid fee
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from app.api.dependencies import get_workflow, require_role, require_user
from app.models.certificate_request import CertificateRequest, RequestStatus
from app.models.principal import Principal, Role
from app.services.request_workflow import RequestWorkflow

router = APIRouter(prefix="/v1/certificate-requests", tags=["certificate-requests"])

WorkflowDep = Annotated[RequestWorkflow, Depends(get_workflow)]
IssuerDep = Annotated[Principal, Depends(require_role(Role.ISSUER))]


class CertificateRequestIn(BaseModel):
    issuer_username: str
    message: str
    skills: list[str] = Field(min_length=1)


class ApproveIn(BaseModel):
    name: str
    description: str | None = None
    issued_date: date | None = None
    expiry_date: date | None = None


class RejectIn(BaseModel):
    reason: str


class PaymentIn(BaseModel):
    transaction_id: str


class CertificateRequestOut(BaseModel):
    id: str
    requester_id: str
    issuer_id: str
    message: str
    skills: list[str]
    status: RequestStatus
    requested_at: datetime
    responded_at: datetime | None
    rejection_reason: str | None
    payment_amount: Decimal
    payment_currency: str
    is_paid: bool
    payment_transaction_id: str | None
    paid_at: datetime | None
    certificate_id: str | None

    @staticmethod
    def of(request: CertificateRequest) -> CertificateRequestOut:
        return CertificateRequestOut(
            id=str(request.id),
            requester_id=str(request.requester_id),
            issuer_id=str(request.issuer_id),
            message=request.message,
            skills=sorted(request.skills),
            status=request.status,
            requested_at=request.requested_at,
            responded_at=request.responded_at,
            rejection_reason=request.rejection_reason,
            payment_amount=request.payment_amount,
            payment_currency=request.payment_currency,
            is_paid=request.is_paid,
            payment_transaction_id=request.payment_transaction_id,
            paid_at=request.paid_at,
            certificate_id=(
                None if request.certificate_id is None else str(request.certificate_id)
            ),
        )


@router.post(
    "",
    response_model=CertificateRequestOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_request(
    body: CertificateRequestIn,
    principal: Annotated[Principal, Depends(require_role(Role.INDIVIDUAL))],
    workflow: WorkflowDep,
) -> CertificateRequestOut:
    request = await workflow.create_request(
        principal, body.issuer_username, body.message, body.skills
    )
    return CertificateRequestOut.of(request)


@router.get("/mine", response_model=list[CertificateRequestOut])
async def list_my_requests(
    principal: Annotated[Principal, Depends(require_user)],
    workflow: WorkflowDep,
) -> list[CertificateRequestOut]:
    return [
        CertificateRequestOut.of(r) for r in await workflow.list_by_requester(principal)
    ]


@router.get("/incoming", response_model=list[CertificateRequestOut])
async def list_incoming_requests(
    principal: IssuerDep,
    workflow: WorkflowDep,
    status: RequestStatus | None = None,
) -> list[CertificateRequestOut]:
    requests = await workflow.list_by_issuer(principal, status)
    return [CertificateRequestOut.of(r) for r in requests]


@router.post("/{request_id}/approve", response_model=CertificateRequestOut)
async def approve_request(
    request_id: UUID,
    body: ApproveIn,
    principal: IssuerDep,
    workflow: WorkflowDep,
) -> CertificateRequestOut:
    request = await workflow.approve(
        request_id,
        principal,
        body.name,
        body.description,
        body.issued_date,
        body.expiry_date,
    )
    return CertificateRequestOut.of(request)


@router.post("/{request_id}/reject", response_model=CertificateRequestOut)
async def reject_request(
    request_id: UUID,
    body: RejectIn,
    principal: IssuerDep,
    workflow: WorkflowDep,
) -> CertificateRequestOut:
    request = await workflow.reject(request_id, principal, body.reason)
    return CertificateRequestOut.of(request)


@router.post("/{request_id}/payment", response_model=CertificateRequestOut)
async def record_payment(
    request_id: UUID,
    body: PaymentIn,
    principal: Annotated[Principal, Depends(require_user)],
    workflow: WorkflowDep,
) -> CertificateRequestOut:
    request = await workflow.record_payment(request_id, principal, body.transaction_id)
    return CertificateRequestOut.of(request)
