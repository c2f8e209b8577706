"""Demo: walk request → approve → verify → revoke using FastAPI TestClient.

Run with:
    python scripts/demo_issuance_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import app

PASSWORD = "demo-password"


def _register(client: TestClient, **fields) -> str:
    r = client.post("/auth/register", json={"password": PASSWORD, **fields})
    assert r.status_code == 201, r.text
    return r.json()["accessToken"]


def main() -> None:
    client = TestClient(app)

    # ── Seed accounts ───────────────────────────────────────────────
    alice = _register(client, email="alice@example.com", username="alice")
    bob = _register(
        client,
        email="bob@example.com",
        username="bob",
        role="ISSUER",
        organization="Bob Academy",
    )
    alice_h = {"Authorization": f"Bearer {alice}"}
    bob_h = {"Authorization": f"Bearer {bob}"}

    # ── Step 1: alice asks bob for a certificate ────────────────────
    r = client.post(
        "/v1/certificate-requests",
        json={
            "issuer_username": "bob",
            "message": "Please certify my backend work",
            "skills": ["Go", "SQL"],
        },
        headers=alice_h,
    )
    request_id = r.json()["id"]
    print(f"1. POST request            → {r.status_code}  status={r.json()['status']}")

    # ── Step 2: bob sees it in his inbox ────────────────────────────
    r = client.get(
        "/v1/certificate-requests/incoming", params={"status": "PENDING"}, headers=bob_h
    )
    print(f"2. GET  incoming           → {r.status_code}  pending={len(r.json())}")

    # ── Step 3: bob approves ────────────────────────────────────────
    r = client.post(
        f"/v1/certificate-requests/{request_id}/approve",
        json={"name": "Backend Cert"},
        headers=bob_h,
    )
    certificate_id = r.json()["certificate_id"]
    print(f"3. POST approve            → {r.status_code}  certificate={certificate_id}")

    # ── Step 4: approving again is a conflict ───────────────────────
    r = client.post(
        f"/v1/certificate-requests/{request_id}/approve",
        json={"name": "Backend Cert"},
        headers=bob_h,
    )
    print(f"4. POST approve (again)    → {r.status_code}  {r.json()['message']}")

    # ── Step 5: anyone verifies ─────────────────────────────────────
    r = client.get(f"/v1/verify/{certificate_id}")
    body = r.json()
    print(
        f"5. GET  verify             → {r.status_code}  valid={body['valid']} "
        f"hash={body['certificate']['integrity_hash'][:18]}…"
    )

    # ── Step 6: bob revokes, verify reports it ──────────────────────
    r = client.delete(f"/v1/certificates/{certificate_id}/revoke", headers=bob_h)
    print(f"6. DELETE revoke           → {r.status_code}  status={r.json()['status']}")
    r = client.get(f"/v1/verify/{certificate_id}")
    print(f"7. GET  verify             → {r.status_code}  valid={r.json()['valid']}")

    # ── Step 8: malformed id ────────────────────────────────────────
    r = client.get("/v1/verify/not-a-uuid")
    print(f"8. GET  verify (bad id)    → {r.status_code}  {r.json()['error']}")


if __name__ == "__main__":
    main()
