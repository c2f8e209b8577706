from __future__ import annotations

import asyncio
import re
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.models.certificate import CertificateStatus
from app.models.certificate_request import (
    MAX_TRANSACTION_ID_LENGTH,
    CertificateRequest,
    RequestStatus,
)
from app.models.principal import Role
from app.models.user import User
from tests.conftest import Services, add_user

TODAY = datetime.now(UTC).date()


def _create(services: Services, requester: User, issuer_username: str = "bob", **kw):
    return asyncio.run(
        services.workflow.create_request(
            requester.principal(),
            issuer_username,
            kw.get("message", "Please certify me"),
            kw.get("skills", ["Go", "SQL"]),
        )
    )


def _approve(services: Services, request_id, issuer: User, name: str = "Backend Cert"):
    return asyncio.run(
        services.workflow.approve(
            request_id, issuer.principal(), name, None, TODAY, None
        )
    )


def _assert_lifecycle_invariants(request: CertificateRequest) -> None:
    assert (request.status != RequestStatus.PENDING) == (
        request.responded_at is not None
    )
    assert (request.status == RequestStatus.REJECTED) == (
        request.rejection_reason is not None
    )


# ---- create_request ----


def test_create_request_records_pending_with_fee(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)

    assert request.status == RequestStatus.PENDING
    assert request.requester_id == alice.id
    assert request.issuer_id == bob.id
    assert request.skills == frozenset({"Go", "SQL"})
    assert request.payment_amount == Decimal("10.00")
    assert request.payment_currency == "INR"
    assert request.is_paid is False
    assert request.requested_at is not None
    _assert_lifecycle_invariants(request)


def test_create_request_unknown_issuer(services: Services, alice: User) -> None:
    with pytest.raises(NotFoundError):
        _create(services, alice, issuer_username="nobody")


def test_create_request_target_must_be_issuer(
    services: Services, alice: User, store
) -> None:
    add_user("carol", Role.INDIVIDUAL, store=store)
    with pytest.raises(ValidationError):
        _create(services, alice, issuer_username="carol")


def test_create_request_requires_individual_role(
    services: Services, bob: User, store
) -> None:
    employer = add_user("erin", Role.EMPLOYER, store=store)
    with pytest.raises(AuthorizationError):
        _create(services, employer)


@pytest.mark.parametrize(
    "kw",
    [{"message": "  "}, {"skills": []}, {"skills": ["Go", " "]}],
    ids=["blank-message", "no-skills", "blank-skill"],
)
def test_create_request_validates_input(
    services: Services, alice: User, bob: User, kw: dict
) -> None:
    with pytest.raises(ValidationError):
        _create(services, alice, **kw)
    assert asyncio.run(services.workflow.list_by_requester(alice.principal())) == []


# ---- listings ----


def test_listings_are_newest_first_and_filterable(
    services: Services, alice: User, bob: User
) -> None:
    first = _create(services, alice, message="first")
    second = _create(services, alice, message="second")
    _approve(services, first.id, bob)

    mine = asyncio.run(services.workflow.list_by_requester(alice.principal()))
    assert [r.id for r in mine] == [second.id, first.id]

    pending = asyncio.run(
        services.workflow.list_by_issuer(bob.principal(), RequestStatus.PENDING)
    )
    assert [r.id for r in pending] == [second.id]

    everything = asyncio.run(services.workflow.list_by_issuer(bob.principal()))
    assert len(everything) == 2


# ---- approve ----


def test_end_to_end_request_and_approve(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice, skills=["Go", "SQL"])

    approved = _approve(services, request.id, bob, name="Backend Cert")

    assert approved.status == RequestStatus.APPROVED
    assert approved.responded_at is not None
    _assert_lifecycle_invariants(approved)

    cert = asyncio.run(services.store.certificates.get(approved.certificate_id))
    assert cert.status == CertificateStatus.ACTIVE
    assert cert.name == "Backend Cert"
    assert cert.skills == frozenset({"Go", "SQL"})
    assert len(cert.integrity_hash) == 66
    assert re.fullmatch(r"0x[0-9a-f]{64}", cert.integrity_hash)
    assert cert.holder_id == alice.id
    assert cert.issuer_id == bob.id

    stored = asyncio.run(services.store.requests.get(request.id))
    assert stored.status == RequestStatus.APPROVED
    assert stored.responded_at is not None


def test_second_approve_conflicts_and_issues_nothing(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)
    _approve(services, request.id, bob)

    with pytest.raises(ConflictError, match="request has already been approved"):
        _approve(services, request.id, bob)

    certs = asyncio.run(services.store.certificates.list_by_issuer(bob.id))
    assert len(certs) == 1


def test_concurrent_approvals_issue_exactly_one_certificate(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)

    async def race():
        return await asyncio.gather(
            *(
                services.workflow.approve(
                    request.id, bob.principal(), "Backend Cert", None, TODAY, None
                )
                for _ in range(5)
            ),
            return_exceptions=True,
        )

    results = asyncio.run(race())

    successes = [r for r in results if isinstance(r, CertificateRequest)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == 4
    certs = asyncio.run(services.store.certificates.list_by_issuer(bob.id))
    assert len(certs) == 1


def test_approve_by_other_issuer_is_not_found(
    services: Services, alice: User, bob: User, store
) -> None:
    other = add_user("olga", Role.ISSUER, organization="Other", store=store)
    request = _create(services, alice)

    with pytest.raises(NotFoundError):
        _approve(services, request.id, other)


def test_approve_unknown_request(services: Services, bob: User) -> None:
    with pytest.raises(NotFoundError):
        _approve(services, uuid4(), bob)


def test_approve_requires_issuer_role(services: Services, alice: User, bob: User) -> None:
    request = _create(services, alice)
    with pytest.raises(AuthorizationError):
        _approve(services, request.id, alice)


def test_failed_approve_leaves_request_pending(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)

    with pytest.raises(ValidationError):
        asyncio.run(
            services.workflow.approve(
                request.id,
                bob.principal(),
                "Backend Cert",
                None,
                TODAY,
                TODAY - timedelta(days=1),
            )
        )

    stored = asyncio.run(services.store.requests.get(request.id))
    assert stored.status == RequestStatus.PENDING
    assert stored.responded_at is None
    assert asyncio.run(services.store.certificates.list_by_holder(alice.id)) == []


def test_lost_commit_gate_rolls_back_certificate(
    services: Services, alice: User, bob: User, monkeypatch: pytest.MonkeyPatch
) -> None:
    request = _create(services, alice)

    async def gate_closed(updated):
        return False

    monkeypatch.setattr(services.store.requests, "transition", gate_closed)

    with pytest.raises(ConflictError):
        _approve(services, request.id, bob)

    assert asyncio.run(services.store.certificates.list_by_holder(alice.id)) == []
    stored = asyncio.run(services.store.requests.get(request.id))
    assert stored.status == RequestStatus.PENDING


# ---- reject ----


def test_end_to_end_reject(services: Services, alice: User, bob: User) -> None:
    request = _create(services, alice)

    rejected = asyncio.run(
        services.workflow.reject(request.id, bob.principal(), "insufficient evidence")
    )

    assert rejected.status == RequestStatus.REJECTED
    assert rejected.rejection_reason == "insufficient evidence"
    assert rejected.certificate_id is None
    _assert_lifecycle_invariants(rejected)
    assert asyncio.run(services.store.certificates.list_by_holder(alice.id)) == []


def test_reject_requires_reason(services: Services, alice: User, bob: User) -> None:
    request = _create(services, alice)
    with pytest.raises(ValidationError):
        asyncio.run(services.workflow.reject(request.id, bob.principal(), "  "))


def test_reject_after_approve_conflicts(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)
    _approve(services, request.id, bob)

    with pytest.raises(ConflictError):
        asyncio.run(services.workflow.reject(request.id, bob.principal(), "late"))


def test_approve_after_reject_conflicts(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)
    asyncio.run(services.workflow.reject(request.id, bob.principal(), "no"))

    with pytest.raises(ConflictError, match="request has already been rejected"):
        _approve(services, request.id, bob)


# ---- record_payment ----


def test_record_payment(services: Services, alice: User, bob: User) -> None:
    request = _create(services, alice)

    paid = asyncio.run(
        services.workflow.record_payment(request.id, alice.principal(), "txn_123")
    )

    assert paid.is_paid is True
    assert paid.payment_transaction_id == "txn_123"
    assert paid.paid_at is not None
    assert paid.status == RequestStatus.PENDING


def test_record_payment_twice_conflicts(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)
    asyncio.run(services.workflow.record_payment(request.id, alice.principal(), "a"))

    with pytest.raises(ConflictError, match="already paid"):
        asyncio.run(
            services.workflow.record_payment(request.id, alice.principal(), "b")
        )


def test_record_payment_hides_foreign_requests(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)
    with pytest.raises(NotFoundError):
        asyncio.run(services.workflow.record_payment(request.id, bob.principal(), "t"))


def test_record_payment_rejects_oversized_transaction_id(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)
    too_long = "t" * (MAX_TRANSACTION_ID_LENGTH + 1)

    with pytest.raises(ValidationError, match="at most 255"):
        asyncio.run(
            services.workflow.record_payment(request.id, alice.principal(), too_long)
        )

    stored = asyncio.run(services.store.requests.get(request.id))
    assert stored.is_paid is False


def test_approve_without_issued_date_uses_today(
    services: Services, alice: User, bob: User
) -> None:
    request = _create(services, alice)

    approved = asyncio.run(
        services.workflow.approve(
            request.id, bob.principal(), "Backend Cert", None, None, None
        )
    )

    cert = asyncio.run(services.store.certificates.get(approved.certificate_id))
    assert cert.issued_date == datetime.now(UTC).date()
