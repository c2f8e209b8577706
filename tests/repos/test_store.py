from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import StoreIntegrityError
from app.models.certificate import Certificate, CertificateStatus
from app.models.certificate_request import CertificateRequest, RequestStatus
from app.models.skill import Skill
from app.models.user import User
from app.repos.store import InMemoryStore


def _cert(**overrides) -> Certificate:
    fields = dict(
        name="Cert",
        description=None,
        issued_date=datetime.now(UTC).date(),
        expiry_date=None,
        holder_id=uuid4(),
        issuer_id=uuid4(),
        skills=frozenset({"Go"}),
        created_at=datetime.now(UTC),
    )
    fields.update(overrides)
    return Certificate.new(**fields)


def _request() -> CertificateRequest:
    return CertificateRequest.new(
        requester_id=uuid4(),
        issuer_id=uuid4(),
        message="hi",
        skills=frozenset({"Go"}),
        requested_at=datetime.now(UTC),
        payment_amount=Decimal("10.00"),
        payment_currency="INR",
    )


def test_transaction_commits_all_writes() -> None:
    store = InMemoryStore()
    cert = _cert()

    async def body() -> None:
        async with store.transaction():
            await store.skills.add(Skill.new("Go"))
            await store.certificates.add(cert)

    asyncio.run(body())

    assert asyncio.run(store.skills.get_by_name("go")) is not None
    assert asyncio.run(store.certificates.get(cert.id)) == cert


def test_transaction_rolls_back_every_repo_on_error() -> None:
    store = InMemoryStore()
    request = _request()
    asyncio.run(store.requests.add(request))
    cert = _cert()

    async def body() -> None:
        async with store.transaction():
            await store.users.add(
                User.new(email="a@example.com", username="a", password_hash="x")
            )
            await store.skills.add(Skill.new("Go"))
            await store.certificates.add(cert)
            await store.certificates.set_integrity_hash(cert.id, "0x" + "a" * 64)
            await store.requests.transition(
                request.approved(at=datetime.now(UTC), certificate_id=cert.id)
            )
            raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        asyncio.run(body())

    assert asyncio.run(store.users.get_by_email("a@example.com")) is None
    assert asyncio.run(store.skills.get_by_name("go")) is None
    assert asyncio.run(store.certificates.get(cert.id)) is None
    stored = asyncio.run(store.requests.get(request.id))
    assert stored.status == RequestStatus.PENDING

    # The hash reservation went away with the certificate.
    other = _cert()
    asyncio.run(store.certificates.add(other))
    assert asyncio.run(store.certificates.set_integrity_hash(other.id, "0x" + "a" * 64))


def test_nested_transaction_joins_outer() -> None:
    store = InMemoryStore()

    async def body() -> None:
        async with store.transaction():
            async with store.transaction():
                await store.skills.add(Skill.new("Inner"))
            raise RuntimeError("outer fails")

    with pytest.raises(RuntimeError):
        asyncio.run(body())

    assert asyncio.run(store.skills.get_by_name("inner")) is None


def test_writes_outside_transaction_are_immediate() -> None:
    store = InMemoryStore()
    asyncio.run(store.skills.add(Skill.new("Go")))
    assert asyncio.run(store.skills.get_by_name("go")) is not None


def test_transition_only_from_pending() -> None:
    store = InMemoryStore()
    request = _request()
    asyncio.run(store.requests.add(request))
    now = datetime.now(UTC)

    assert asyncio.run(
        store.requests.transition(request.rejected(at=now, reason="no"))
    )
    assert not asyncio.run(
        store.requests.transition(request.approved(at=now, certificate_id=uuid4()))
    )
    assert asyncio.run(store.requests.get(request.id)).status == RequestStatus.REJECTED


def test_mark_paid_only_once() -> None:
    store = InMemoryStore()
    request = _request()
    asyncio.run(store.requests.add(request))
    now = datetime.now(UTC)

    assert asyncio.run(store.requests.mark_paid(request.paid(at=now, transaction_id="a")))
    assert not asyncio.run(
        store.requests.mark_paid(request.paid(at=now, transaction_id="b"))
    )
    assert asyncio.run(store.requests.get(request.id)).payment_transaction_id == "a"


def test_integrity_hash_is_set_once_and_unique() -> None:
    store = InMemoryStore()
    first, second = _cert(), _cert()
    asyncio.run(store.certificates.add(first))
    asyncio.run(store.certificates.add(second))
    value = "0x" + "b" * 64

    assert asyncio.run(store.certificates.set_integrity_hash(first.id, value))
    assert asyncio.run(store.certificates.set_integrity_hash(first.id, "0x" + "c" * 64)) is None
    with pytest.raises(StoreIntegrityError):
        asyncio.run(store.certificates.set_integrity_hash(second.id, value))
    assert asyncio.run(store.certificates.get(first.id)).integrity_hash == value
    assert asyncio.run(store.certificates.get(second.id)).integrity_hash is None


def test_set_status_only_from() -> None:
    store = InMemoryStore()
    cert = _cert()
    asyncio.run(store.certificates.add(cert))
    revoked = asyncio.run(
        store.certificates.set_status(cert.id, CertificateStatus.REVOKED)
    )
    assert revoked.status == CertificateStatus.REVOKED

    after = asyncio.run(
        store.certificates.set_status(
            cert.id,
            CertificateStatus.EXPIRED,
            only_from=frozenset({CertificateStatus.ACTIVE}),
        )
    )
    assert after.status == CertificateStatus.REVOKED


def test_clear_empties_every_repo() -> None:
    store = InMemoryStore()
    asyncio.run(store.skills.add(Skill.new("Go")))
    asyncio.run(store.requests.add(_request()))
    store.clear()
    assert asyncio.run(store.skills.get_by_name("go")) is None
