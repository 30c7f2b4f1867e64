"""Leave routers — requests and approvals, leave types, balances.

All endpoints require authentication. Approval queues, leave type writes and
other users' balances are admin only.
"""


from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.auth.dependencies import get_current_user, require_admin
from attendly.auth.models import User
from attendly.auth.schemas import CallerContext
from attendly.common.constants import LeaveStatus
from attendly.common.exceptions import NotFoundException
from attendly.database import get_db
from attendly.leave.ledger import BalanceLedger
from attendly.leave.schemas import (
    LeaveApprovalOut,
    LeaveBalanceOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveTypeCreate,
    LeaveTypeOut,
    LeaveTypeUpdate,
)
from attendly.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])
leave_types_router = APIRouter(prefix="", tags=["leave-types"])
balances_router = APIRouter(prefix="", tags=["leave-balances"])


def _current_year() -> int:
    return datetime.now(timezone.utc).year


# ═════════════════════════════════════════════════════════════════════
# Leave requests — /leaves
# ═════════════════════════════════════════════════════════════════════


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=LeaveRequestOut, status_code=201)
async def create_leave_request(
    body: LeaveRequestCreate,
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request. Validates range, backdating, overlap and balance."""
    return await LeaveService.create_request(db, caller, body)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[LeaveRequestOut])
async def my_leave_requests(
    status: Optional[LeaveStatus] = Query(None),
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own leave requests, newest first."""
    return await LeaveService.list_for_owner(db, caller, status)


# ── GET /pending ────────────────────────────────────────────────────

@router.get("/pending", response_model=list[LeaveRequestOut])
async def pending_leave_requests(
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_pending(db, caller)


# ── GET /all ────────────────────────────────────────────────────────

@router.get("/all", response_model=list[LeaveRequestOut])
async def all_leave_requests(
    status: Optional[LeaveStatus] = Query(None),
    user_id: Optional[int] = Query(None),
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_all(db, caller, status, user_id)


# ── PUT /{id}/approve ───────────────────────────────────────────────

@router.put("/{request_id}/approve", response_model=LeaveApprovalOut)
async def approve_leave_request(
    request_id: int,
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending request. Deducts balance and backfills attendance."""
    return await LeaveService.approve_request(db, caller, request_id)


# ── PUT /{id}/reject ────────────────────────────────────────────────

@router.put("/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_leave_request(
    request_id: int,
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.reject_request(db, caller, request_id)


# ═════════════════════════════════════════════════════════════════════
# Leave types — /leave-types
# ═════════════════════════════════════════════════════════════════════


@leave_types_router.get("", response_model=list[LeaveTypeOut])
async def list_leave_types(
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_leave_types(db)


@leave_types_router.post("", response_model=LeaveTypeOut, status_code=201)
async def create_leave_type(
    body: LeaveTypeCreate,
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a leave type; every existing user gets a balance for this year."""
    return await LeaveService.create_leave_type(db, caller, body)


@leave_types_router.put("/{leave_type_id}", response_model=LeaveTypeOut)
async def update_leave_type(
    leave_type_id: int,
    body: LeaveTypeUpdate,
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.update_leave_type(db, caller, leave_type_id, body)


@leave_types_router.delete("/{leave_type_id}", status_code=204)
async def delete_leave_type(
    leave_type_id: int,
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await LeaveService.delete_leave_type(db, caller, leave_type_id)
    return Response(status_code=204)


# ═════════════════════════════════════════════════════════════════════
# Balances — /leave-balances
# ═════════════════════════════════════════════════════════════════════


@balances_router.get("", response_model=list[LeaveBalanceOut])
async def my_balances(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's balances for *year* (default: current year)."""
    return await BalanceLedger.get_balances(db, caller.user_id, year or _current_year())


@balances_router.get("/user/{user_id}", response_model=list[LeaveBalanceOut])
async def user_balances(
    user_id: int,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if await db.get(User, user_id) is None:
        raise NotFoundException("User", user_id)
    return await BalanceLedger.get_balances(db, user_id, year or _current_year())
