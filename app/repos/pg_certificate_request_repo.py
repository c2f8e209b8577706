"""PostgreSQL implementation of CertificateRequestRepo."""

from __future__ import annotations

from collections import defaultdict
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CertificateRequestRow, CertificateRequestSkillRow, SkillRow
from app.models.certificate_request import CertificateRequest, RequestStatus
from app.models.skill import normalize_skill_name


class PgCertificateRequestRepo:
    """Satisfies the CertificateRequestRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, request: CertificateRequest) -> None:
        self._session.add(
            CertificateRequestRow(
                id=request.id,
                requester_id=request.requester_id,
                issuer_id=request.issuer_id,
                message=request.message,
                status=request.status.value,
                requested_at=request.requested_at,
                responded_at=request.responded_at,
                rejection_reason=request.rejection_reason,
                payment_amount=request.payment_amount,
                payment_currency=request.payment_currency,
                is_paid=request.is_paid,
                payment_transaction_id=request.payment_transaction_id,
                paid_at=request.paid_at,
                certificate_id=request.certificate_id,
            )
        )
        # Parent row must exist before its link rows.
        await self._session.flush()
        for display_name in request.skills:
            self._session.add(
                CertificateRequestSkillRow(
                    request_id=request.id,
                    skill_name=normalize_skill_name(display_name),
                )
            )
        await self._session.flush()

    async def get(self, request_id: UUID) -> CertificateRequest | None:
        stmt = select(CertificateRequestRow).where(
            CertificateRequestRow.id == request_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        skills = await self._skills_for([row.id])
        return _row_to_request(row, skills.get(row.id, frozenset()))

    async def list_by_requester(self, requester_id: UUID) -> list[CertificateRequest]:
        stmt = (
            select(CertificateRequestRow)
            .where(CertificateRequestRow.requester_id == requester_id)
            .order_by(CertificateRequestRow.requested_at.desc())
        )
        return await self._load(stmt)

    async def list_by_issuer(
        self, issuer_id: UUID, status: RequestStatus | None = None
    ) -> list[CertificateRequest]:
        stmt = select(CertificateRequestRow).where(
            CertificateRequestRow.issuer_id == issuer_id
        )
        if status is not None:
            stmt = stmt.where(CertificateRequestRow.status == status.value)
        stmt = stmt.order_by(CertificateRequestRow.requested_at.desc())
        return await self._load(stmt)

    async def transition(self, updated: CertificateRequest) -> bool:
        # The WHERE status = 'PENDING' clause is the commit gate: a
        # concurrent UPDATE blocks on the row lock, then matches 0 rows.
        stmt = (
            update(CertificateRequestRow)
            .where(CertificateRequestRow.id == updated.id)
            .where(CertificateRequestRow.status == RequestStatus.PENDING.value)
            .values(
                status=updated.status.value,
                responded_at=updated.responded_at,
                rejection_reason=updated.rejection_reason,
                certificate_id=updated.certificate_id,
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def mark_paid(self, updated: CertificateRequest) -> bool:
        stmt = (
            update(CertificateRequestRow)
            .where(CertificateRequestRow.id == updated.id)
            .where(CertificateRequestRow.is_paid.is_(False))
            .values(
                is_paid=True,
                payment_transaction_id=updated.payment_transaction_id,
                paid_at=updated.paid_at,
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def _load(self, stmt) -> list[CertificateRequest]:
        rows = list((await self._session.execute(stmt)).scalars())
        skills = await self._skills_for([r.id for r in rows])
        return [_row_to_request(r, skills.get(r.id, frozenset())) for r in rows]

    async def _skills_for(self, request_ids: list[UUID]) -> dict[UUID, frozenset[str]]:
        if not request_ids:
            return {}
        stmt = (
            select(CertificateRequestSkillRow.request_id, SkillRow.display_name)
            .join(SkillRow, SkillRow.name == CertificateRequestSkillRow.skill_name)
            .where(CertificateRequestSkillRow.request_id.in_(request_ids))
        )
        grouped: dict[UUID, set[str]] = defaultdict(set)
        for request_id, display_name in await self._session.execute(stmt):
            grouped[request_id].add(display_name)
        return {k: frozenset(v) for k, v in grouped.items()}


def _row_to_request(
    row: CertificateRequestRow, skills: frozenset[str]
) -> CertificateRequest:
    return CertificateRequest(
        id=row.id,
        requester_id=row.requester_id,
        issuer_id=row.issuer_id,
        message=row.message,
        skills=skills,
        requested_at=row.requested_at,
        payment_amount=row.payment_amount,
        payment_currency=row.payment_currency,
        status=RequestStatus(row.status),
        responded_at=row.responded_at,
        rejection_reason=row.rejection_reason,
        is_paid=row.is_paid,
        payment_transaction_id=row.payment_transaction_id,
        paid_at=row.paid_at,
        certificate_id=row.certificate_id,
    )
