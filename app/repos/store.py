"""CredentialStore: the persistence collaborator consumed by the services.

A store bundles the four repositories and provides ``transaction()``, the
unit of work that makes approve-and-issue atomic.

Two implementations satisfy the Protocol:

  InMemoryStore (here): dict-backed repos.  Transactions are serialized by
    an asyncio.Lock and rolled back by replaying the undo log.

  PgStore (app/repos/pg_store.py): Pg*Repo classes over one AsyncSession;
    transactions are SAVEPOINTs inside the request-scoped session.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

from app.repos import undo_log
from app.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from app.repos.certificate_request_repo import (
    CertificateRequestRepo,
    InMemoryCertificateRequestRepo,
)
from app.repos.skill_repo import InMemorySkillRepo, SkillRepo
from app.repos.user_repo import InMemoryUserRepo, UserRepo


class CredentialStore(Protocol):
    users: UserRepo
    skills: SkillRepo
    requests: CertificateRequestRepo
    certificates: CertificateRepo

    def transaction(self) -> AbstractAsyncContextManager[None]: ...


class InMemoryStore:
    def __init__(self) -> None:
        self.users = InMemoryUserRepo()
        self.skills = InMemorySkillRepo()
        self.requests = InMemoryCertificateRequestRepo()
        self.certificates = InMemoryCertificateRepo()
        self._tx_lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        # Nested transactions join the outer one.
        if undo_log.in_transaction():
            yield
            return

        async with self._tx_lock:
            log, token = undo_log.begin()
            try:
                yield
            except BaseException:
                undo_log.rollback(log)
                raise
            finally:
                undo_log.end(token)

    def clear(self) -> None:
        self.users.clear()
        self.skills.clear()
        self.requests.clear()
        self.certificates.clear()
        self._tx_lock = asyncio.Lock()
