from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.certificate_request import CertificateRequest, RequestStatus
from app.repos.undo_log import record_undo


class CertificateRequestRepo(Protocol):
    async def add(self, request: CertificateRequest) -> None: ...
    async def get(self, request_id: UUID) -> CertificateRequest | None: ...
    async def list_by_requester(
        self, requester_id: UUID
    ) -> list[CertificateRequest]: ...
    async def list_by_issuer(
        self, issuer_id: UUID, status: RequestStatus | None = None
    ) -> list[CertificateRequest]: ...
    async def transition(self, updated: CertificateRequest) -> bool:
        """Persist a status change only if the stored row is still PENDING.

        Returns False when another caller already moved the request on.
        """
        ...

    async def mark_paid(self, updated: CertificateRequest) -> bool:
        """Persist payment fields only if the stored row is not yet paid."""
        ...


class InMemoryCertificateRequestRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, CertificateRequest] = {}

    async def add(self, request: CertificateRequest) -> None:
        if request.id in self._by_id:
            raise ValueError("request already exists")
        self._by_id[request.id] = request
        record_undo(lambda: self._by_id.pop(request.id, None))

    async def get(self, request_id: UUID) -> CertificateRequest | None:
        return self._by_id.get(request_id)

    async def list_by_requester(self, requester_id: UUID) -> list[CertificateRequest]:
        return _newest_first(
            r for r in self._by_id.values() if r.requester_id == requester_id
        )

    async def list_by_issuer(
        self, issuer_id: UUID, status: RequestStatus | None = None
    ) -> list[CertificateRequest]:
        return _newest_first(
            r
            for r in self._by_id.values()
            if r.issuer_id == issuer_id and (status is None or r.status == status)
        )

    async def transition(self, updated: CertificateRequest) -> bool:
        current = self._by_id.get(updated.id)
        if current is None or current.status != RequestStatus.PENDING:
            return False
        self._replace(current, updated)
        return True

    async def mark_paid(self, updated: CertificateRequest) -> bool:
        current = self._by_id.get(updated.id)
        if current is None or current.is_paid:
            return False
        self._replace(current, updated)
        return True

    def _replace(self, previous: CertificateRequest, updated: CertificateRequest) -> None:
        self._by_id[updated.id] = updated
        record_undo(lambda: self._by_id.__setitem__(previous.id, previous))

    def clear(self) -> None:
        self._by_id.clear()


def _newest_first(requests) -> list[CertificateRequest]:
    return sorted(requests, key=lambda r: r.requested_at, reverse=True)
