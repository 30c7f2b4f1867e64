"""Auth dependencies — JWT validation and admin enforcement."""

from __future__ import annotations

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.auth.models import User
from attendly.auth.schemas import CallerContext
from attendly.common.exceptions import AuthenticationException, ForbiddenException
from attendly.config import settings
from attendly.database import get_db


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationException("Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CallerContext:
    """Validate the JWT and return the caller's identity."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise AuthenticationException("Token has expired.")
    except JWTError:
        raise AuthenticationException("Invalid token.")

    if payload.get("type") != "access":
        raise AuthenticationException("Invalid token type.")

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationException("Invalid token subject.")

    # The account must still exist; the admin flag is read fresh from the row.
    result = await db.execute(select(User.is_admin).where(User.id == user_id))
    is_admin = result.scalar_one_or_none()
    if is_admin is None:
        raise AuthenticationException("User account not found.")

    return CallerContext(user_id=user_id, is_admin=bool(is_admin))


# ── Admin dependency ────────────────────────────────────────────────

async def require_admin(
    caller: CallerContext = Depends(get_current_user),
) -> CallerContext:
    if not caller.is_admin:
        raise ForbiddenException(detail="Admin access required.")
    return caller
