from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from app.models.principal import Principal, Role

# Column widths of the users table.
MAX_EMAIL_LENGTH = 320
MAX_ORGANIZATION_LENGTH = 100


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    username: str
    password_hash: str
    role: Role = Role.INDIVIDUAL
    organization: str | None = None
    is_active: bool = True

    @staticmethod
    def new(
        *,
        email: str,
        username: str,
        password_hash: str,
        role: Role = Role.INDIVIDUAL,
        organization: str | None = None,
    ) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            username=username.strip(),
            password_hash=password_hash,
            role=role,
            organization=organization,
            is_active=True,
        )

    def principal(self) -> Principal:
        return Principal(
            user_id=self.id, role=self.role, organization=self.organization
        )
