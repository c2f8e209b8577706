from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from uuid import UUID, uuid4

MAX_CERTIFICATE_NAME_LENGTH = 255


class CertificateStatus(StrEnum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


@dataclass(frozen=True, slots=True)
class Certificate:
    id: UUID
    name: str
    description: str | None
    issued_date: date
    expiry_date: date | None
    holder_id: UUID
    issuer_id: UUID
    skills: frozenset[str]
    created_at: datetime
    status: CertificateStatus = CertificateStatus.ACTIVE
    integrity_hash: str | None = None  # immutable once set
    qr_code: str | None = None
    views: int = 0

    @staticmethod
    def new(
        *,
        name: str,
        description: str | None,
        issued_date: date,
        expiry_date: date | None,
        holder_id: UUID,
        issuer_id: UUID,
        skills: frozenset[str],
        created_at: datetime,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            name=name,
            description=description,
            issued_date=issued_date,
            expiry_date=expiry_date,
            holder_id=holder_id,
            issuer_id=issuer_id,
            skills=skills,
            created_at=created_at,
        )

    def is_expired(self, today: date) -> bool:
        return self.expiry_date is not None and today > self.expiry_date

    def is_expiring_soon(self, days: int, today: date) -> bool:
        return (
            self.expiry_date is not None
            and today + timedelta(days=days) > self.expiry_date
            and not self.is_expired(today)
        )
