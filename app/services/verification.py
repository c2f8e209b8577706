"""Certificate lookup, verification and revocation.

Every resolve counts as a view.  verify() additionally checks the hash
shape and applies date-based expiry, which only ever moves ACTIVE to
EXPIRED; a REVOKED certificate keeps its status whatever its dates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID

from app.core.errors import AuthorizationError, BadRequestError, NotFoundError
from app.core.metrics import VERIFICATIONS
from app.models.certificate import Certificate, CertificateStatus
from app.models.principal import Principal
from app.repos.store import CredentialStore
from app.services.integrity import is_well_formed_hash

logger = logging.getLogger(__name__)

_EXPIRABLE = frozenset({CertificateStatus.ACTIVE})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_certificate_id(value: str) -> UUID:
    """Accept only the canonical 8-4-4-4-12 form (either case)."""
    try:
        parsed = UUID(value)
    except (TypeError, ValueError, AttributeError):
        raise BadRequestError("invalid identifier format") from None
    if str(parsed) != value.lower():
        raise BadRequestError("invalid identifier format")
    return parsed


class VerificationService:
    def __init__(
        self, store: CredentialStore, *, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._store = store
        self._clock = clock

    async def resolve_by_id(self, certificate_id: UUID) -> Certificate:
        certificate = await self._store.certificates.increment_views(certificate_id)
        if certificate is None:
            raise NotFoundError("certificate not found")
        return certificate

    async def verify(self, id_string: str) -> Certificate:
        try:
            certificate_id = parse_certificate_id(id_string)
        except BadRequestError:
            VERIFICATIONS.labels(result="invalid_id").inc()
            raise

        # The view sticks even when the checks below reject the certificate.
        try:
            certificate = await self.resolve_by_id(certificate_id)
        except NotFoundError:
            VERIFICATIONS.labels(result="not_found").inc()
            raise

        if not is_well_formed_hash(certificate.integrity_hash):
            VERIFICATIONS.labels(result="invalid_hash").inc()
            logger.warning(
                "Verification failed certificate_id=%s reason=invalid_hash",
                certificate.id,
            )
            raise BadRequestError("verification failed - invalid hash")

        if certificate.is_expired(self._clock().date()):
            async with self._store.transaction():
                updated = await self._store.certificates.set_status(
                    certificate.id, CertificateStatus.EXPIRED, only_from=_EXPIRABLE
                )
            if updated is not None and updated.status != certificate.status:
                logger.info("Certificate expired certificate_id=%s", certificate.id)
            certificate = updated or certificate

        VERIFICATIONS.labels(result=certificate.status.lower()).inc()
        return certificate

    async def revoke(self, certificate_id: UUID, issuer: Principal) -> Certificate:
        async with self._store.transaction():
            certificate = await self._store.certificates.get(certificate_id)
            if certificate is None:
                raise NotFoundError("certificate not found")
            if certificate.issuer_id != issuer.user_id:
                logger.warning(
                    "Revoke refused certificate_id=%s actor_id=%s",
                    certificate_id,
                    issuer.user_id,
                )
                raise AuthorizationError("only the issuing organization can revoke")
            if certificate.status == CertificateStatus.REVOKED:
                return certificate
            revoked = await self._store.certificates.set_status(
                certificate_id, CertificateStatus.REVOKED
            )

        logger.info("Certificate revoked certificate_id=%s", certificate_id)
        return revoked

    async def list_held(self, holder: Principal) -> list[Certificate]:
        return await self._store.certificates.list_by_holder(holder.user_id)

    async def list_issued(self, issuer: Principal) -> list[Certificate]:
        return await self._store.certificates.list_by_issuer(issuer.user_id)
