"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in app/models/.
Repos convert between rows and dataclasses.  Relations are one-directional:
rows hold foreign ids; skill sets live in link tables keyed by the
normalized skill name.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base
from app.models.certificate import MAX_CERTIFICATE_NAME_LENGTH
from app.models.certificate_request import (
    CURRENCY_CODE_LENGTH,
    MAX_TRANSACTION_ID_LENGTH,
)
from app.models.skill import MAX_SKILL_NAME_LENGTH
from app.models.user import MAX_EMAIL_LENGTH, MAX_ORGANIZATION_LENGTH


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH), unique=True, nullable=False
    )
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(
        String(16), nullable=False
    )  # ADMIN|ISSUER|INDIVIDUAL|EMPLOYER
    organization: Mapped[str | None] = mapped_column(
        String(MAX_ORGANIZATION_LENGTH), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class SkillRow(Base):
    __tablename__ = "skills"

    name: Mapped[str] = mapped_column(
        String(MAX_SKILL_NAME_LENGTH), primary_key=True
    )  # normalized
    display_name: Mapped[str] = mapped_column(
        String(MAX_SKILL_NAME_LENGTH), nullable=False
    )
    endorsements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CertificateRequestRow(Base):
    __tablename__ = "certificate_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    requester_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    issuer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="PENDING"
    )  # PENDING|APPROVED|REJECTED
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_currency: Mapped[str] = mapped_column(
        String(CURRENCY_CODE_LENGTH), nullable=False
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_transaction_id: Mapped[str | None] = mapped_column(
        String(MAX_TRANSACTION_ID_LENGTH), nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    certificate_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("certificates.id"), nullable=True
    )

    __table_args__ = (
        Index("ix_certificate_requests_requester", "requester_id", "requested_at"),
        Index("ix_certificate_requests_issuer", "issuer_id", "status"),
    )


class CertificateRequestSkillRow(Base):
    __tablename__ = "certificate_request_skills"

    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("certificate_requests.id"), primary_key=True
    )
    skill_name: Mapped[str] = mapped_column(
        String(MAX_SKILL_NAME_LENGTH), ForeignKey("skills.name"), primary_key=True
    )


class CertificateRow(Base):
    __tablename__ = "certificates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(
        String(MAX_CERTIFICATE_NAME_LENGTH), nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    issued_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="ACTIVE"
    )  # ACTIVE|EXPIRED|REVOKED
    integrity_hash: Mapped[str | None] = mapped_column(
        String(66), unique=True, nullable=True
    )
    qr_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    holder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    issuer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("ix_certificates_holder", "holder_id"),
        Index("ix_certificates_issuer", "issuer_id"),
    )


class CertificateSkillRow(Base):
    __tablename__ = "certificate_skills"

    certificate_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("certificates.id"), primary_key=True
    )
    skill_name: Mapped[str] = mapped_column(
        String(MAX_SKILL_NAME_LENGTH), ForeignKey("skills.name"), primary_key=True
    )
