from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.models.principal import Role
from app.models.user import User
from tests.conftest import add_user, auth_header


@pytest.fixture
def holder() -> User:
    return add_user("alice", Role.INDIVIDUAL)


@pytest.fixture
def issuer() -> User:
    return add_user("bob", Role.ISSUER, organization="Bob Academy")


def _issue(client: TestClient, issuer: User, **overrides) -> dict:
    body = {
        "recipient_email": "alice@example.com",
        "name": "Data Engineering",
        "skills": ["Python", "Spark"],
    }
    body.update(overrides)
    resp = client.post("/v1/certificates/issue", json=body, headers=auth_header(issuer))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_direct_issue(client: TestClient, holder: User, issuer: User) -> None:
    cert = _issue(client, issuer, recipient_email="ALICE@example.com")

    assert cert["status"] == "ACTIVE"
    assert cert["holder_id"] == str(holder.id)
    assert cert["issuer_id"] == str(issuer.id)
    assert cert["issued_date"] == datetime.now(UTC).date().isoformat()
    assert cert["skills"] == ["Python", "Spark"]
    assert cert["integrity_hash"].startswith("0x")
    assert len(cert["integrity_hash"]) == 66
    assert cert["views"] == 0


def test_direct_issue_to_unregistered_email_is_404(
    client: TestClient, issuer: User
) -> None:
    resp = client.post(
        "/v1/certificates/issue",
        json={"recipient_email": "ghost@example.com", "name": "X"},
        headers=auth_header(issuer),
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "recipient must register first"


def test_direct_issue_with_oversized_name_is_400(
    client: TestClient, holder: User, issuer: User
) -> None:
    resp = client.post(
        "/v1/certificates/issue",
        json={"recipient_email": "alice@example.com", "name": "N" * 256},
        headers=auth_header(issuer),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation"


def test_direct_issue_requires_issuer(client: TestClient, holder: User) -> None:
    resp = client.post(
        "/v1/certificates/issue",
        json={"recipient_email": "alice@example.com", "name": "X"},
        headers=auth_header(holder),
    )
    assert resp.status_code == 403


def test_mine_and_issued(client: TestClient, holder: User, issuer: User) -> None:
    cert = _issue(client, issuer)

    mine = client.get("/v1/certificates/mine", headers=auth_header(holder))
    issued = client.get("/v1/certificates/issued", headers=auth_header(issuer))

    assert [c["id"] for c in mine.json()] == [cert["id"]]
    assert [c["id"] for c in issued.json()] == [cert["id"]]
    assert client.get("/v1/certificates/mine", headers=auth_header(issuer)).json() == []


def test_get_certificate_counts_views(
    client: TestClient, holder: User, issuer: User
) -> None:
    cert = _issue(client, issuer)

    client.get(f"/v1/certificates/{cert['id']}")
    resp = client.get(f"/v1/certificates/{cert['id']}")

    assert resp.status_code == 200
    assert resp.json()["views"] == 2


def test_get_unknown_certificate_is_404(client: TestClient) -> None:
    resp = client.get(f"/v1/certificates/{uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "not_found", "message": "certificate not found"}


def test_verify_past_due_certificate_reports_expired(
    client: TestClient, holder: User, issuer: User
) -> None:
    yesterday = datetime.now(UTC).date() - timedelta(days=1)
    cert = _issue(
        client,
        issuer,
        issued_date=(yesterday - timedelta(days=365)).isoformat(),
        expiry_date=yesterday.isoformat(),
    )

    resp = client.get(f"/v1/verify/{cert['id']}")

    assert resp.status_code == 200
    assert resp.json()["valid"] is False
    assert resp.json()["certificate"]["status"] == "EXPIRED"


@pytest.mark.parametrize("raw", ["not-a-uuid", "1234", "0" * 32])
def test_verify_malformed_id_is_400(client: TestClient, raw: str) -> None:
    resp = client.get(f"/v1/verify/{raw}")
    assert resp.status_code == 400
    assert resp.json() == {"error": "bad_request", "message": "invalid identifier format"}


def test_verify_unknown_id_is_404(client: TestClient) -> None:
    assert client.get(f"/v1/verify/{uuid4()}").status_code == 404


def test_revoke_flow(client: TestClient, holder: User, issuer: User) -> None:
    cert = _issue(client, issuer)
    url = f"/v1/certificates/{cert['id']}/revoke"

    first = client.delete(url, headers=auth_header(issuer))
    second = client.delete(url, headers=auth_header(issuer))

    assert first.status_code == 200
    assert first.json()["status"] == "REVOKED"
    assert second.status_code == 200
    assert second.json()["status"] == "REVOKED"

    verified = client.get(f"/v1/verify/{cert['id']}")
    assert verified.json()["valid"] is False
    assert verified.json()["certificate"]["status"] == "REVOKED"


def test_revoke_by_other_organization_is_403(
    client: TestClient, holder: User, issuer: User
) -> None:
    cert = _issue(client, issuer)
    other = add_user("olga", Role.ISSUER, organization="Other")

    resp = client.delete(
        f"/v1/certificates/{cert['id']}/revoke", headers=auth_header(other)
    )

    assert resp.status_code == 403
    assert resp.json()["error"] == "authorization"


def test_revoke_requires_issuer_role(
    client: TestClient, holder: User, issuer: User
) -> None:
    cert = _issue(client, issuer)
    resp = client.delete(
        f"/v1/certificates/{cert['id']}/revoke", headers=auth_header(holder)
    )
    assert resp.status_code == 403
    assert "error" not in resp.json()


def test_revoke_unknown_is_404(client: TestClient, issuer: User) -> None:
    resp = client.delete(
        f"/v1/certificates/{uuid4()}/revoke", headers=auth_header(issuer)
    )
    assert resp.status_code == 404
