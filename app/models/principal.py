from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class Role(StrEnum):
    ADMIN = "ADMIN"
    ISSUER = "ISSUER"
    INDIVIDUAL = "INDIVIDUAL"
    EMPLOYER = "EMPLOYER"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity as seen by the credential services.

    Produced by the identity layer (JWT bearer token, or User.principal()
    in tests and seed code).  The services only read it; role-gated
    decisions are explicit checks inside each operation.
    """

    user_id: UUID
    role: Role
    organization: str | None = None

    def has_role(self, role: Role) -> bool:
        return self.role == role
