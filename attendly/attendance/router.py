"""Attendance router — mark today's (or any day's) attendance and read history."""


from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.attendance.schemas import (
    AttendanceListResponse,
    AttendanceMarkRequest,
    AttendanceRecordOut,
)
from attendly.attendance.service import AttendanceService
from attendly.auth.dependencies import get_current_user
from attendly.auth.schemas import CallerContext
from attendly.common.constants import AttendanceType
from attendly.common.pagination import PaginationParams
from attendly.database import get_db

router = APIRouter(prefix="", tags=["attendance"])


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=AttendanceRecordOut, status_code=201)
async def mark_attendance(
    body: AttendanceMarkRequest,
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark attendance for one date. One record per user per date."""
    return await AttendanceService.mark_manual(db, caller.user_id, body.date, body.has_consent)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[AttendanceRecordOut])
async def my_attendance(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.list_for_user(db, caller.user_id, start_date, end_date)


# ── GET /records ────────────────────────────────────────────────────

@router.get("/records", response_model=AttendanceListResponse)
async def my_attendance_records(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    type: Optional[AttendanceType] = Query(None),
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Paginated history with leave details for leave-derived days."""
    return await AttendanceService.list_detailed(
        db,
        caller.user_id,
        start_date=start_date,
        end_date=end_date,
        type=type,
        page=pagination.page,
        limit=pagination.limit,
    )
