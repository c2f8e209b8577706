"""Certificate request lifecycle.

    PENDING ──approve──▶ APPROVED   (certificate minted, certificate_id set)
       │
       └────reject────▶ REJECTED   (reason stored verbatim)

Both exits are terminal and set responded_at exactly once.  Approval is
guarded twice: the per-request ApprovalLock turns a concurrent second
approver away early, and the store's conditional PENDING update is the
commit gate.  Certificate creation and the status write share one store
transaction, so a failed approve leaves the request PENDING with no
certificate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID

from app.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.core.metrics import CERTIFICATE_REQUESTS, CERTIFICATES_ISSUED
from app.models.certificate_request import (
    MAX_TRANSACTION_ID_LENGTH,
    CertificateRequest,
    RequestStatus,
)
from app.models.principal import Principal, Role
from app.repos.store import CredentialStore
from app.services.approval_lock import ApprovalLock
from app.services.certificate_issuer import CertificateIssuer
from app.services.skill_catalog import SkillCatalog

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RequestWorkflow:
    def __init__(
        self,
        store: CredentialStore,
        catalog: SkillCatalog,
        issuer: CertificateIssuer,
        lock: ApprovalLock,
        *,
        fee: Decimal,
        currency: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._issuer = issuer
        self._lock = lock
        self._fee = fee
        self._currency = currency
        self._clock = clock

    async def create_request(
        self,
        requester: Principal,
        issuer_username: str,
        message: str,
        skill_names: Iterable[str],
    ) -> CertificateRequest:
        if not requester.has_role(Role.INDIVIDUAL):
            raise AuthorizationError("only individuals can request certificates")
        if not (message or "").strip():
            raise ValidationError("message must not be empty")
        skill_names = list(skill_names)
        if not skill_names:
            raise ValidationError("at least one skill is required")

        async with self._store.transaction():
            issuer = await self._store.users.get_by_username(issuer_username or "")
            if issuer is None:
                raise NotFoundError("issuer not found")
            if not issuer.principal().has_role(Role.ISSUER):
                raise ValidationError("selected user is not an issuer")

            skills = await self._catalog.resolve(skill_names)
            request = CertificateRequest.new(
                requester_id=requester.user_id,
                issuer_id=issuer.id,
                message=message,
                skills=frozenset(s.display_name for s in skills),
                requested_at=self._clock(),
                payment_amount=self._fee,
                payment_currency=self._currency,
            )
            await self._store.requests.add(request)

        CERTIFICATE_REQUESTS.labels(outcome="created").inc()
        logger.info(
            "Certificate request created request_ref=%s requester_id=%s issuer_id=%s",
            request.id,
            request.requester_id,
            request.issuer_id,
        )
        return request

    async def list_by_requester(self, requester: Principal) -> list[CertificateRequest]:
        return await self._store.requests.list_by_requester(requester.user_id)

    async def list_by_issuer(
        self, issuer: Principal, status: RequestStatus | None = None
    ) -> list[CertificateRequest]:
        return await self._store.requests.list_by_issuer(issuer.user_id, status)

    async def approve(
        self,
        request_id: UUID,
        issuer: Principal,
        name: str,
        description: str | None,
        issued_date: date | None,
        expiry_date: date | None,
    ) -> CertificateRequest:
        self._require_issuer(issuer)

        async with self._lock.hold(request_id):
            async with self._store.transaction():
                request = await self._pending_for(request_id, issuer)
                certificate = await self._issuer.issue(
                    issuer,
                    request.requester_id,
                    name,
                    description,
                    issued_date,
                    expiry_date,
                    request.skills,
                )
                approved = request.approved(
                    at=self._clock(), certificate_id=certificate.id
                )
                if not await self._store.requests.transition(approved):
                    # Raising inside the transaction discards the certificate.
                    raise ConflictError("request is no longer pending")

        CERTIFICATE_REQUESTS.labels(outcome="approved").inc()
        CERTIFICATES_ISSUED.labels(path="approval").inc()
        logger.info(
            "Certificate request approved request_ref=%s certificate_id=%s",
            approved.id,
            certificate.id,
        )
        return approved

    async def reject(
        self, request_id: UUID, issuer: Principal, reason: str
    ) -> CertificateRequest:
        self._require_issuer(issuer)
        if not (reason or "").strip():
            raise ValidationError("rejection reason must not be empty")

        async with self._lock.hold(request_id):
            async with self._store.transaction():
                request = await self._pending_for(request_id, issuer)
                rejected = request.rejected(at=self._clock(), reason=reason)
                if not await self._store.requests.transition(rejected):
                    raise ConflictError("request is no longer pending")

        CERTIFICATE_REQUESTS.labels(outcome="rejected").inc()
        logger.info("Certificate request rejected request_ref=%s", rejected.id)
        return rejected

    async def record_payment(
        self, request_id: UUID, requester: Principal, transaction_id: str
    ) -> CertificateRequest:
        """Record an externally settled payment against the request fee."""
        transaction_id = (transaction_id or "").strip()
        if not transaction_id:
            raise ValidationError("transaction id must not be empty")
        if len(transaction_id) > MAX_TRANSACTION_ID_LENGTH:
            raise ValidationError(
                f"transaction id must be at most {MAX_TRANSACTION_ID_LENGTH} characters"
            )

        async with self._store.transaction():
            request = await self._store.requests.get(request_id)
            # Foreign requests look the same as missing ones.
            if request is None or request.requester_id != requester.user_id:
                raise NotFoundError("certificate request not found")
            if request.is_paid:
                raise ConflictError("request is already paid")
            paid = request.paid(at=self._clock(), transaction_id=transaction_id)
            if not await self._store.requests.mark_paid(paid):
                raise ConflictError("request is already paid")

        CERTIFICATE_REQUESTS.labels(outcome="paid").inc()
        logger.info("Certificate request paid request_ref=%s", paid.id)
        return paid

    async def _pending_for(
        self, request_id: UUID, issuer: Principal
    ) -> CertificateRequest:
        request = await self._store.requests.get(request_id)
        if request is None or request.issuer_id != issuer.user_id:
            raise NotFoundError("certificate request not found")
        if not request.is_pending:
            logger.warning(
                "Certificate request not pending request_ref=%s status=%s",
                request.id,
                request.status,
            )
            raise ConflictError(f"request has already been {request.status.lower()}")
        return request

    @staticmethod
    def _require_issuer(principal: Principal) -> None:
        if not principal.has_role(Role.ISSUER):
            raise AuthorizationError("only issuers can respond to requests")
