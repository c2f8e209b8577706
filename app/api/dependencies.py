from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.core.config import SETTINGS
from app.core.errors import CredentialError
from app.db.engine import async_session_factory, get_async_session
from app.db.redis import redis_pool
from app.middleware.request_context import user_id_var
from app.models.principal import Principal, Role
from app.repos.pg_store import PgStore
from app.repos.store import CredentialStore, InMemoryStore
from app.services import token_service
from app.services.approval_lock import InMemoryApprovalLock, RedisApprovalLock
from app.services.artifacts import QRCodeArtifactGenerator
from app.services.certificate_issuer import CertificateIssuer
from app.services.request_workflow import RequestWorkflow
from app.services.skill_catalog import SkillCatalog
from app.services.verification import VerificationService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

# ---------------------------------------------------------------------------
# Module-level singletons (reset between tests by tests/conftest.py)
# ---------------------------------------------------------------------------
# Same selection rule as engine.py and redis.py: a configured URL picks the
# shared backend, otherwise everything stays in process.

memory_store = InMemoryStore()

if redis_pool is None:
    approval_lock: InMemoryApprovalLock | RedisApprovalLock = InMemoryApprovalLock()
else:
    approval_lock = RedisApprovalLock(
        redis_pool, ttl_seconds=SETTINGS.approval_lock_ttl_seconds
    )

artifact_generator = QRCodeArtifactGenerator()

_session_scope = asynccontextmanager(get_async_session)


async def get_store() -> AsyncIterator[CredentialStore]:
    """Yield the request's CredentialStore.

    With DATABASE_URL set, a PgStore over a request-scoped session that
    commits when the route returns and rolls back if it raises.  A
    CredentialError is a clean rejection: the services have already rolled
    back their own SAVEPOINTs, so what is left (view counts) is committed.
    """
    if async_session_factory is None:
        yield memory_store
        return
    async with _session_scope() as session:
        try:
            yield PgStore(session)
        except CredentialError:
            await session.commit()
            raise


StoreDep = Annotated[CredentialStore, Depends(get_store)]


def get_verification(store: StoreDep) -> VerificationService:
    return VerificationService(store)


def get_issuer(store: StoreDep) -> CertificateIssuer:
    return CertificateIssuer(
        store,
        SkillCatalog(store.skills),
        artifact_generator,
        frontend_url=SETTINGS.frontend_url,
    )


def get_workflow(
    store: StoreDep,
    issuer: Annotated[CertificateIssuer, Depends(get_issuer)],
) -> RequestWorkflow:
    return RequestWorkflow(
        store,
        SkillCatalog(store.skills),
        issuer,
        approval_lock,
        fee=SETTINGS.request_fee,
        currency=SETTINGS.fee_currency,
    )


# ---------------------------------------------------------------------------
# Authentication guards
# ---------------------------------------------------------------------------


async def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
        principal = token_service.principal_from_claims(claims)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except (jwt.InvalidTokenError, ValueError) as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    user_id_var.set(str(principal.user_id))
    logger.debug(
        "Token validated for user=%s role=%s", principal.user_id, principal.role
    )
    return principal


def require_role(role: Role):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role(Role.ISSUER))
    Returns the Principal if the role matches, else 403.
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s role=%s required=%s",
                principal.user_id,
                principal.role,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard
