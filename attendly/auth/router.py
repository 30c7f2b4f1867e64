"""Auth router — register, password login, current user; admin user listing."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.auth.dependencies import get_current_user, require_admin
from attendly.auth.models import User
from attendly.auth.schemas import (
    CallerContext,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserOut,
)
from attendly.auth.service import list_users, login_user, register_user
from attendly.common.exceptions import NotFoundException
from attendly.common.rate_limit import limiter
from attendly.config import settings
from attendly.database import get_db

router = APIRouter(prefix="", tags=["auth"])
users_router = APIRouter(prefix="", tags=["users"])


# ── POST /register ──────────────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=201)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    return await register_user(db, body)


# ── POST /login ─────────────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    return await login_user(db, body)


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, caller.user_id)
    if user is None:
        raise NotFoundException("User", caller.user_id)
    return UserOut.model_validate(user)


# ── GET /users ──────────────────────────────────────────────────────

@users_router.get("", response_model=list[UserOut])
async def all_users(
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await list_users(db, caller)
