from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api import dependencies
from app.main import app
from app.models.principal import Role
from app.models.user import User
from app.repos.store import InMemoryStore
from app.services import token_service
from app.services.approval_lock import InMemoryApprovalLock
from app.services.certificate_issuer import CertificateIssuer
from app.services.request_workflow import RequestWorkflow
from app.services.skill_catalog import SkillCatalog
from app.services.verification import VerificationService

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

FRONTEND_URL = "http://frontend.test"


@pytest.fixture(autouse=True)
def reset_memory_store() -> None:
    """Clear the app's in-memory store between tests."""
    dependencies.memory_store.clear()


@pytest.fixture(autouse=True)
def reset_approval_lock() -> None:
    if isinstance(dependencies.approval_lock, InMemoryApprovalLock):
        dependencies.approval_lock.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(user: User) -> str:
    """Create a valid ES256 JWT for an existing user."""
    return token_service.create_access_token(
        sub=str(user.id), role=user.role.value, org=user.organization
    )


def auth_header(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user)}"}


def add_user(
    username: str,
    role: Role = Role.INDIVIDUAL,
    organization: str | None = None,
    store: InMemoryStore | None = None,
) -> User:
    """Create and persist a user (defaults to the app's in-memory store)."""
    target = dependencies.memory_store if store is None else store
    user = User.new(
        email=f"{username}@example.com",
        username=username,
        password_hash="x",
        role=role,
        organization=organization,
    )
    asyncio.run(target.users.add(user))
    return user


# ---------------------------------------------------------------------------
# Service-level wiring over a fresh store
# ---------------------------------------------------------------------------


class StaticArtifacts:
    def __init__(self) -> None:
        self.urls: list[str] = []

    def for_verification_url(self, url: str) -> str:
        self.urls.append(url)
        return f"data:image/png;base64,{len(self.urls)}"


@dataclass
class Services:
    store: InMemoryStore
    catalog: SkillCatalog
    issuer: CertificateIssuer
    workflow: RequestWorkflow
    verification: VerificationService
    artifacts: StaticArtifacts


def build_services(store: InMemoryStore, artifacts=None) -> Services:
    artifacts = StaticArtifacts() if artifacts is None else artifacts
    catalog = SkillCatalog(store.skills)
    issuer = CertificateIssuer(store, catalog, artifacts, frontend_url=FRONTEND_URL)
    workflow = RequestWorkflow(
        store,
        catalog,
        issuer,
        InMemoryApprovalLock(),
        fee=Decimal("10.00"),
        currency="INR",
    )
    return Services(
        store=store,
        catalog=catalog,
        issuer=issuer,
        workflow=workflow,
        verification=VerificationService(store),
        artifacts=artifacts,
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def services(store: InMemoryStore) -> Services:
    return build_services(store)


@pytest.fixture
def alice(store: InMemoryStore) -> User:
    return add_user("alice", Role.INDIVIDUAL, store=store)


@pytest.fixture
def bob(store: InMemoryStore) -> User:
    return add_user("bob", Role.ISSUER, organization="Bob Academy", store=store)
