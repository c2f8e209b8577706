"""Certificate issuance.

issue() is the single place certificates are minted.  It runs inside a
store transaction (joining the caller's when approve() invokes it) so a
failure at any step leaves no certificate behind.  The verification
artifact is the one best-effort step: a generator failure is logged and
counted, and the certificate is returned without it.

An omitted issued date is today on the issuer clock (UTC), the same clock
verification uses to decide expiry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime
from uuid import UUID

from app.core.errors import (
    AuthorizationError,
    NotFoundError,
    StoreIntegrityError,
    ValidationError,
)
from app.core.metrics import ARTIFACT_FAILURES, CERTIFICATES_ISSUED
from app.models.certificate import MAX_CERTIFICATE_NAME_LENGTH, Certificate
from app.models.principal import Principal, Role
from app.repos.store import CredentialStore
from app.services.artifacts import ArtifactGenerator, verification_url
from app.services.integrity import compute_integrity_hash
from app.services.skill_catalog import SkillCatalog

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CertificateIssuer:
    def __init__(
        self,
        store: CredentialStore,
        catalog: SkillCatalog,
        artifacts: ArtifactGenerator,
        *,
        frontend_url: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._artifacts = artifacts
        self._frontend_url = frontend_url
        self._clock = clock

    async def issue(
        self,
        issuer: Principal,
        holder_id: UUID,
        name: str,
        description: str | None,
        issued_date: date | None,
        expiry_date: date | None,
        skill_names: Iterable[str],
    ) -> Certificate:
        name = (name or "").strip()
        if not name:
            raise ValidationError("certificate name must not be empty")
        if len(name) > MAX_CERTIFICATE_NAME_LENGTH:
            raise ValidationError(
                "certificate name must be at most "
                f"{MAX_CERTIFICATE_NAME_LENGTH} characters"
            )
        if issued_date is None:
            issued_date = self._clock().date()
        if expiry_date is not None and expiry_date < issued_date:
            raise ValidationError("expiry date must not precede issued date")

        async with self._store.transaction():
            holder = await self._store.users.get_by_id(holder_id)
            if holder is None:
                raise NotFoundError("recipient must register first")
            issuing_user = await self._store.users.get_by_id(issuer.user_id)
            if issuing_user is None:
                raise NotFoundError("issuer not found")

            skills = await self._catalog.resolve(skill_names)

            certificate = Certificate.new(
                name=name,
                description=description,
                issued_date=issued_date,
                expiry_date=expiry_date,
                holder_id=holder.id,
                issuer_id=issuing_user.id,
                skills=frozenset(s.display_name for s in skills),
                created_at=self._clock(),
            )
            await self._store.certificates.add(certificate)

            integrity_hash = compute_integrity_hash(
                certificate_id=certificate.id,
                holder_email=holder.email,
                issuer_email=issuing_user.email,
                name=certificate.name,
            )
            hashed = await self._store.certificates.set_integrity_hash(
                certificate.id, integrity_hash
            )
            if hashed is None:
                raise StoreIntegrityError("integrity hash was already set")
            certificate = hashed

            certificate = await self._attach_artifact(certificate)

        logger.info(
            "Certificate issued certificate_id=%s holder_id=%s issuer_id=%s",
            certificate.id,
            certificate.holder_id,
            certificate.issuer_id,
        )
        return certificate

    async def issue_to_email(
        self,
        issuer: Principal,
        recipient_email: str,
        name: str,
        description: str | None,
        issued_date: date | None,
        expiry_date: date | None,
        skill_names: Iterable[str],
    ) -> Certificate:
        """Issue directly to a registered recipient, skipping the request flow."""
        if not issuer.has_role(Role.ISSUER):
            raise AuthorizationError("only issuers can issue certificates")

        async with self._store.transaction():
            recipient = await self._store.users.get_by_email(recipient_email or "")
            if recipient is None:
                raise NotFoundError("recipient must register first")
            certificate = await self.issue(
                issuer,
                recipient.id,
                name,
                description,
                issued_date,
                expiry_date,
                skill_names,
            )

        CERTIFICATES_ISSUED.labels(path="direct").inc()
        return certificate

    async def _attach_artifact(self, certificate: Certificate) -> Certificate:
        url = verification_url(self._frontend_url, certificate.id)
        try:
            qr_code = self._artifacts.for_verification_url(url)
        except Exception:
            ARTIFACT_FAILURES.inc()
            logger.exception(
                "Verification artifact failed certificate_id=%s", certificate.id
            )
            return certificate

        updated = await self._store.certificates.set_qr_code(certificate.id, qr_code)
        return certificate if updated is None else updated
