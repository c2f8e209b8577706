"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from collections import defaultdict
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StoreIntegrityError
from app.db.tables import CertificateRow, CertificateSkillRow, SkillRow
from app.models.certificate import Certificate, CertificateStatus
from app.models.skill import normalize_skill_name


class PgCertificateRepo:
    """Satisfies the CertificateRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, certificate: Certificate) -> None:
        self._session.add(
            CertificateRow(
                id=certificate.id,
                name=certificate.name,
                description=certificate.description,
                issued_date=certificate.issued_date,
                expiry_date=certificate.expiry_date,
                status=certificate.status.value,
                integrity_hash=certificate.integrity_hash,
                qr_code=certificate.qr_code,
                views=certificate.views,
                holder_id=certificate.holder_id,
                issuer_id=certificate.issuer_id,
                created_at=certificate.created_at,
            )
        )
        await self._session.flush()
        for display_name in certificate.skills:
            self._session.add(
                CertificateSkillRow(
                    certificate_id=certificate.id,
                    skill_name=normalize_skill_name(display_name),
                )
            )
        await self._session.flush()

    async def get(self, certificate_id: UUID) -> Certificate | None:
        stmt = select(CertificateRow).where(CertificateRow.id == certificate_id)
        return await self._load_one(stmt)

    async def set_integrity_hash(
        self, certificate_id: UUID, integrity_hash: str
    ) -> Certificate | None:
        stmt = (
            update(CertificateRow)
            .where(CertificateRow.id == certificate_id)
            .where(CertificateRow.integrity_hash.is_(None))
            .values(integrity_hash=integrity_hash)
        )
        try:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
        except IntegrityError:
            raise StoreIntegrityError("integrity hash collision") from None
        if result.rowcount == 0:
            return None
        return await self.get(certificate_id)

    async def set_qr_code(self, certificate_id: UUID, qr_code: str) -> Certificate | None:
        stmt = (
            update(CertificateRow)
            .where(CertificateRow.id == certificate_id)
            .values(qr_code=qr_code)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get(certificate_id)

    async def increment_views(self, certificate_id: UUID) -> Certificate | None:
        # Increment in SQL so concurrent views never lose an update.
        stmt = (
            update(CertificateRow)
            .where(CertificateRow.id == certificate_id)
            .values(views=CertificateRow.views + 1)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get(certificate_id)

    async def set_status(
        self,
        certificate_id: UUID,
        status: CertificateStatus,
        *,
        only_from: frozenset[CertificateStatus] | None = None,
    ) -> Certificate | None:
        stmt = update(CertificateRow).where(CertificateRow.id == certificate_id)
        if only_from is not None:
            stmt = stmt.where(CertificateRow.status.in_([s.value for s in only_from]))
        await self._session.execute(stmt.values(status=status.value))
        return await self.get(certificate_id)

    async def list_by_holder(self, holder_id: UUID) -> list[Certificate]:
        stmt = (
            select(CertificateRow)
            .where(CertificateRow.holder_id == holder_id)
            .order_by(CertificateRow.created_at.desc())
        )
        return await self._load(stmt)

    async def list_by_issuer(self, issuer_id: UUID) -> list[Certificate]:
        stmt = (
            select(CertificateRow)
            .where(CertificateRow.issuer_id == issuer_id)
            .order_by(CertificateRow.created_at.desc())
        )
        return await self._load(stmt)

    async def _load_one(self, stmt) -> Certificate | None:
        # populate_existing: re-read values changed by bulk UPDATEs above
        row = (
            await self._session.execute(stmt.execution_options(populate_existing=True))
        ).scalar_one_or_none()
        if row is None:
            return None
        skills = await self._skills_for([row.id])
        return _row_to_certificate(row, skills.get(row.id, frozenset()))

    async def _load(self, stmt) -> list[Certificate]:
        rows = list(
            (
                await self._session.execute(
                    stmt.execution_options(populate_existing=True)
                )
            ).scalars()
        )
        skills = await self._skills_for([r.id for r in rows])
        return [_row_to_certificate(r, skills.get(r.id, frozenset())) for r in rows]

    async def _skills_for(
        self, certificate_ids: list[UUID]
    ) -> dict[UUID, frozenset[str]]:
        if not certificate_ids:
            return {}
        stmt = (
            select(CertificateSkillRow.certificate_id, SkillRow.display_name)
            .join(SkillRow, SkillRow.name == CertificateSkillRow.skill_name)
            .where(CertificateSkillRow.certificate_id.in_(certificate_ids))
        )
        grouped: dict[UUID, set[str]] = defaultdict(set)
        for certificate_id, display_name in await self._session.execute(stmt):
            grouped[certificate_id].add(display_name)
        return {k: frozenset(v) for k, v in grouped.items()}


def _row_to_certificate(row: CertificateRow, skills: frozenset[str]) -> Certificate:
    return Certificate(
        id=row.id,
        name=row.name,
        description=row.description,
        issued_date=row.issued_date,
        expiry_date=row.expiry_date,
        holder_id=row.holder_id,
        issuer_id=row.issuer_id,
        skills=skills,
        created_at=row.created_at,
        status=CertificateStatus(row.status),
        integrity_hash=row.integrity_hash,
        qr_code=row.qr_code,
        views=row.views,
    )
