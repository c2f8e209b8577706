"""initial credential schema

Revision ID: 3b1f6c2d9a10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f6c2d9a10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("username", sa.String(length=64), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("organization", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "skills",
        sa.Column("name", sa.String(length=100), primary_key=True),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("endorsements", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "certificates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("issued_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="ACTIVE"
        ),
        sa.Column("integrity_hash", sa.String(length=66), nullable=True, unique=True),
        sa.Column("qr_code", sa.Text(), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "holder_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "issuer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_certificates_holder", "certificates", ["holder_id"])
    op.create_index("ix_certificates_issuer", "certificates", ["issuer_id"])

    op.create_table(
        "certificate_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "requester_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "issuer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="PENDING"
        ),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("payment_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_currency", sa.String(length=3), nullable=False),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_transaction_id", sa.String(length=255), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "certificate_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("certificates.id"),
            nullable=True,
        ),
    )
    op.create_index(
        "ix_certificate_requests_requester",
        "certificate_requests",
        ["requester_id", "requested_at"],
    )
    op.create_index(
        "ix_certificate_requests_issuer",
        "certificate_requests",
        ["issuer_id", "status"],
    )

    op.create_table(
        "certificate_request_skills",
        sa.Column(
            "request_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("certificate_requests.id"),
            primary_key=True,
        ),
        sa.Column(
            "skill_name",
            sa.String(length=100),
            sa.ForeignKey("skills.name"),
            primary_key=True,
        ),
    )

    op.create_table(
        "certificate_skills",
        sa.Column(
            "certificate_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("certificates.id"),
            primary_key=True,
        ),
        sa.Column(
            "skill_name",
            sa.String(length=100),
            sa.ForeignKey("skills.name"),
            primary_key=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("certificate_skills")
    op.drop_table("certificate_request_skills")
    op.drop_index("ix_certificate_requests_issuer", table_name="certificate_requests")
    op.drop_index(
        "ix_certificate_requests_requester", table_name="certificate_requests"
    )
    op.drop_table("certificate_requests")
    op.drop_index("ix_certificates_issuer", table_name="certificates")
    op.drop_index("ix_certificates_holder", table_name="certificates")
    op.drop_table("certificates")
    op.drop_table("skills")
    op.drop_table("users")
