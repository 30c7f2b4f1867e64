"""Auth service — registration, password login, JWT issuance."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from jose import jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.auth.models import User
from attendly.auth.schemas import (
    CallerContext,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserOut,
)
from attendly.common.exceptions import (
    AuthenticationException,
    ConflictError,
    ForbiddenException,
)
from attendly.config import settings
from attendly.leave.ledger import BalanceLedger

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _today() -> date:
    return datetime.now(timezone.utc).date()


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


# ── JWT helpers ─────────────────────────────────────────────────────

def create_access_token(user: User) -> str:
    """Issue a signed access token carrying the user id and admin flag."""
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "is_admin": bool(user.is_admin),
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user),
        expires_in=settings.JWT_EXPIRY_HOURS * 3600,
        user=UserOut.model_validate(user),
    )


# ── Lookups ─────────────────────────────────────────────────────────

async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalars().first()


# ── Register / login ───────────────────────────────────────────────

async def register_user(
    db: AsyncSession,
    data: RegisterRequest,
    *,
    is_admin: bool = False,
) -> TokenResponse:
    """Create an account and seed its leave balances for the current year."""
    if await get_user_by_email(db, data.email) is not None:
        raise ConflictError("email", data.email, "Email already registered.")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        is_admin=is_admin,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("email", data.email, "Email already registered.")

    seeded = await BalanceLedger.seed_for_user(db, user.id, _today().year)
    logger.info("Registered user %s (%d balance rows seeded)", user.id, seeded)

    return _token_response(user)


async def login_user(db: AsyncSession, data: LoginRequest) -> TokenResponse:
    user = await get_user_by_email(db, data.email)
    if user is None or not verify_password(data.password, user.password_hash):
        raise AuthenticationException("Invalid email or password.")
    return _token_response(user)


# ── Users (admin) ───────────────────────────────────────────────────

async def list_users(db: AsyncSession, caller: CallerContext) -> list[UserOut]:
    if not caller.is_admin:
        raise ForbiddenException(detail="Admin access required.")
    result = await db.execute(
        select(User).order_by(User.created_at.desc(), User.id.desc())
    )
    return [UserOut.model_validate(u) for u in result.scalars().all()]
