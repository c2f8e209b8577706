from __future__ import annotations

import dataclasses
from typing import Protocol
from uuid import UUID

from app.core.errors import StoreIntegrityError
from app.models.certificate import Certificate, CertificateStatus
from app.repos.undo_log import record_undo


class CertificateRepo(Protocol):
    async def add(self, certificate: Certificate) -> None: ...
    async def get(self, certificate_id: UUID) -> Certificate | None: ...
    async def set_integrity_hash(
        self, certificate_id: UUID, integrity_hash: str
    ) -> Certificate | None:
        """Set the hash once.  Returns None if absent or already hashed.

        Raises StoreIntegrityError if another certificate holds the hash.
        """
        ...

    async def set_qr_code(
        self, certificate_id: UUID, qr_code: str
    ) -> Certificate | None: ...
    async def increment_views(self, certificate_id: UUID) -> Certificate | None: ...
    async def set_status(
        self,
        certificate_id: UUID,
        status: CertificateStatus,
        *,
        only_from: frozenset[CertificateStatus] | None = None,
    ) -> Certificate | None:
        """Update status, conditionally on the current status.

        Returns the stored certificate after the call (updated or not),
        or None if it does not exist.
        """
        ...

    async def list_by_holder(self, holder_id: UUID) -> list[Certificate]: ...
    async def list_by_issuer(self, issuer_id: UUID) -> list[Certificate]: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Certificate] = {}
        self._by_hash: dict[str, UUID] = {}

    async def add(self, certificate: Certificate) -> None:
        if certificate.id in self._by_id:
            raise ValueError("certificate already exists")
        self._by_id[certificate.id] = certificate
        record_undo(lambda: self._by_id.pop(certificate.id, None))

    async def get(self, certificate_id: UUID) -> Certificate | None:
        return self._by_id.get(certificate_id)

    async def set_integrity_hash(
        self, certificate_id: UUID, integrity_hash: str
    ) -> Certificate | None:
        current = self._by_id.get(certificate_id)
        if current is None or current.integrity_hash is not None:
            return None
        if integrity_hash in self._by_hash:
            raise StoreIntegrityError("integrity hash collision")
        self._by_hash[integrity_hash] = certificate_id
        record_undo(lambda: self._by_hash.pop(integrity_hash, None))
        return self._update(current, integrity_hash=integrity_hash)

    async def set_qr_code(self, certificate_id: UUID, qr_code: str) -> Certificate | None:
        current = self._by_id.get(certificate_id)
        if current is None:
            return None
        return self._update(current, qr_code=qr_code)

    async def increment_views(self, certificate_id: UUID) -> Certificate | None:
        current = self._by_id.get(certificate_id)
        if current is None:
            return None
        return self._update(current, views=current.views + 1)

    async def set_status(
        self,
        certificate_id: UUID,
        status: CertificateStatus,
        *,
        only_from: frozenset[CertificateStatus] | None = None,
    ) -> Certificate | None:
        current = self._by_id.get(certificate_id)
        if current is None:
            return None
        if current.status == status:
            return current
        if only_from is not None and current.status not in only_from:
            return current
        return self._update(current, status=status)

    async def list_by_holder(self, holder_id: UUID) -> list[Certificate]:
        return _newest_first(c for c in self._by_id.values() if c.holder_id == holder_id)

    async def list_by_issuer(self, issuer_id: UUID) -> list[Certificate]:
        return _newest_first(c for c in self._by_id.values() if c.issuer_id == issuer_id)

    def _update(self, previous: Certificate, **changes) -> Certificate:
        updated = dataclasses.replace(previous, **changes)
        self._by_id[previous.id] = updated
        record_undo(lambda: self._by_id.__setitem__(previous.id, previous))
        return updated

    def clear(self) -> None:
        self._by_id.clear()
        self._by_hash.clear()


def _newest_first(certificates) -> list[Certificate]:
    return sorted(certificates, key=lambda c: c.created_at, reverse=True)
