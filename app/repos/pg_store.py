"""PostgreSQL CredentialStore over one request-scoped AsyncSession."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from app.repos.pg_certificate_repo import PgCertificateRepo
from app.repos.pg_certificate_request_repo import PgCertificateRequestRepo
from app.repos.pg_skill_repo import PgSkillRepo
from app.repos.pg_user_repo import PgUserRepo


class PgStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.users = PgUserRepo(session)
        self.skills = PgSkillRepo(session)
        self.requests = PgCertificateRequestRepo(session)
        self.certificates = PgCertificateRepo(session)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        # The outer commit belongs to get_async_session(); a SAVEPOINT here
        # lets a failed unit of work roll back without ending the session.
        async with self._session.begin_nested():
            yield
