from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from app.models.principal import Role
from app.models.user import User
from app.repos.user_repo import UserRepo

# Argon2 hash strings encode parameters + salt
logger = logging.getLogger(__name__)

_ph = PasswordHasher()

# ADMIN is seed-only; self-registration can pick any other role.
REGISTRABLE_ROLES = frozenset({Role.INDIVIDUAL, Role.ISSUER, Role.EMPLOYER})


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


# verify_password() must catch Argon2 exceptions and return False
def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


async def register_user(
    repo: UserRepo,
    *,
    email: str,
    username: str,
    password: str,
    role: Role = Role.INDIVIDUAL,
    organization: str | None = None,
) -> User:
    """Create an account.  Raises ValueError on bad input or duplicates."""
    if role not in REGISTRABLE_ROLES:
        raise ValueError(f"role {role} cannot be self-registered")
    if role == Role.ISSUER and not (organization or "").strip():
        raise ValueError("issuers must name an organization")
    user = User.new(
        email=email,
        username=username,
        password_hash=hash_password(password),
        role=role,
        organization=(organization or "").strip() or None,
    )
    await repo.add(user)
    logger.info("User registered user_id=%s role=%s", user.id, user.role)
    return user


async def authenticate_user(repo: UserRepo, login: str, password: str) -> User | None:
    """Look up by email, falling back to username."""
    user = await repo.get_by_email(login)
    if user is None:
        user = await repo.get_by_username(login)
    if user is None:
        return None
    if not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


# email, username, role, organization
_DEV_USERS = [
    ("admin@certifypro.com", "admin", Role.ADMIN, None),
    ("issuer@certifypro.com", "issuer", Role.ISSUER, "TechCorp Academy"),
    ("john@example.com", "johndoe", Role.INDIVIDUAL, None),
    ("recruiter@techcorp.com", "sarah_recruiter", Role.EMPLOYER, "TechCorp Inc."),
]
DEV_PASSWORD = "password123"


async def seed_dev_users(repo: UserRepo) -> None:
    """Seed one user per role for development. Skip any already present."""
    for email, username, role, organization in _DEV_USERS:
        if await repo.get_by_email(email) is not None:
            continue
        await repo.add(
            User.new(
                email=email,
                username=username,
                password_hash=hash_password(DEV_PASSWORD),
                role=role,
                organization=organization,
            )
        )
        logger.info("Seeded dev user username=%s role=%s", username, role)
