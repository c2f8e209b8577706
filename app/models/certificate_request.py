from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4

MAX_TRANSACTION_ID_LENGTH = 255
CURRENCY_CODE_LENGTH = 3


class RequestStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True, slots=True)
class CertificateRequest:
    """A holder's ask for a credential, awaiting the named issuer.

    responded_at is set iff status != PENDING; rejection_reason is set iff
    status == REJECTED.  Both transitions go through approved()/rejected(),
    which refuse to leave a non-PENDING state.
    """

    id: UUID
    requester_id: UUID
    issuer_id: UUID
    message: str
    skills: frozenset[str]
    requested_at: datetime
    payment_amount: Decimal
    payment_currency: str
    status: RequestStatus = RequestStatus.PENDING
    responded_at: datetime | None = None
    rejection_reason: str | None = None
    is_paid: bool = False
    payment_transaction_id: str | None = None
    paid_at: datetime | None = None
    certificate_id: UUID | None = None

    @staticmethod
    def new(
        *,
        requester_id: UUID,
        issuer_id: UUID,
        message: str,
        skills: frozenset[str],
        requested_at: datetime,
        payment_amount: Decimal,
        payment_currency: str,
    ) -> CertificateRequest:
        return CertificateRequest(
            id=uuid4(),
            requester_id=requester_id,
            issuer_id=issuer_id,
            message=message,
            skills=skills,
            requested_at=requested_at,
            payment_amount=payment_amount,
            payment_currency=payment_currency,
        )

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def approved(self, *, at: datetime, certificate_id: UUID) -> CertificateRequest:
        if not self.is_pending:
            raise ValueError(f"request is already {self.status.lower()}")
        return replace(
            self,
            status=RequestStatus.APPROVED,
            responded_at=at,
            certificate_id=certificate_id,
        )

    def rejected(self, *, at: datetime, reason: str) -> CertificateRequest:
        if not self.is_pending:
            raise ValueError(f"request is already {self.status.lower()}")
        return replace(
            self,
            status=RequestStatus.REJECTED,
            responded_at=at,
            rejection_reason=reason,
        )

    def paid(self, *, at: datetime, transaction_id: str) -> CertificateRequest:
        return replace(
            self, is_paid=True, payment_transaction_id=transaction_id, paid_at=at
        )
