from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.user import User
from app.repos.undo_log import record_undo


class UserRepo(Protocol):
    """Identity resolver consumed by the credential services."""

    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def get_by_username(self, username: str) -> User | None: ...
    async def add(self, user: User) -> None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}
        self._by_email: dict[str, User] = {}
        self._by_username: dict[str, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email.strip().lower())

    async def get_by_username(self, username: str) -> User | None:
        return self._by_username.get(username.strip())

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise ValueError("email already exists")
        if user.username in self._by_username:
            raise ValueError("username already exists")
        self._by_id[user.id] = user
        self._by_email[user.email] = user
        self._by_username[user.username] = user
        record_undo(lambda: self._forget(user))

    def _forget(self, user: User) -> None:
        self._by_id.pop(user.id, None)
        self._by_email.pop(user.email, None)
        self._by_username.pop(user.username, None)

    def clear(self) -> None:
        self._by_id.clear()
        self._by_email.clear()
        self._by_username.clear()
