"""JSON auth endpoints (/auth/register, /auth/login).

Both return { accessToken, user } so a client can store the token in
memory and call the credential endpoints immediately.
"""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from app.api.dependencies import StoreDep
from app.models.principal import Role
from app.models.user import MAX_EMAIL_LENGTH, MAX_ORGANIZATION_LENGTH, User
from app.services import auth_service, token_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# --- Request / Response schemas -------------------------------------------


class LoginIn(BaseModel):
    login: str  # email or username
    password: str


class RegisterIn(BaseModel):
    email: str
    username: str
    password: str
    role: Role = Role.INDIVIDUAL
    organization: str | None = None


class UserOut(BaseModel):
    id: str
    email: str
    username: str
    role: str
    organization: str | None


class AuthResponse(BaseModel):
    accessToken: str
    user: UserOut


def _auth_response(user: User) -> AuthResponse:
    access_token = token_service.create_access_token(
        sub=str(user.id), role=user.role.value, org=user.organization
    )
    return AuthResponse(
        accessToken=access_token,
        user=UserOut(
            id=str(user.id),
            email=user.email,
            username=user.username,
            role=user.role.value,
            organization=user.organization,
        ),
    )


# --- POST /auth/login -----------------------------------------------------


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginIn, store: StoreDep) -> AuthResponse:
    login_name = payload.login.strip()

    user = await auth_service.authenticate_user(
        store.users, login_name, payload.password
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid credentials"},
        )

    logger.info("Login succeeded  user_id=%s role=%s", user.id, user.role)
    return _auth_response(user)


# --- POST /auth/register --------------------------------------------------


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(payload: RegisterIn, store: StoreDep) -> AuthResponse:
    email = payload.email.lower().strip()
    username = payload.username.strip()

    if len(email) > MAX_EMAIL_LENGTH or not re.match(
        r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email
    ):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Invalid email address"},
        )

    if not re.match(r"^[A-Za-z0-9_.-]{3,64}$", username):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Username must be 3-64 letters, digits, or _.-"},
        )

    if len(payload.password) < 8:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Password must be at least 8 characters"},
        )

    if payload.role not in auth_service.REGISTRABLE_ROLES:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Role cannot be self-registered"},
        )

    if payload.role == Role.ISSUER and not (payload.organization or "").strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Issuers must name an organization"},
        )

    if len((payload.organization or "").strip()) > MAX_ORGANIZATION_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": f"Organization must be at most {MAX_ORGANIZATION_LENGTH} "
                "characters"
            },
        )

    try:
        user = await auth_service.register_user(
            store.users,
            email=email,
            username=username,
            password=payload.password,
            role=payload.role,
            organization=payload.organization,
        )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "A user with this email or username already exists"},
        ) from None

    return _auth_response(user)
