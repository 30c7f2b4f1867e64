"""Reports router — CSV downloads and leave statistics."""


from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.auth.dependencies import get_current_user, require_admin
from attendly.auth.schemas import CallerContext
from attendly.database import get_db
from attendly.reports.schemas import LeaveStatisticsOut
from attendly.reports.service import ReportService

router = APIRouter(prefix="", tags=["reports"])


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/my-attendance")
async def my_attendance_report(
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _csv_response(
        await ReportService.my_attendance_csv(db, caller.user_id), "my-attendance.csv",
    )


@router.get("/all-attendance")
async def all_attendance_report(
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return _csv_response(
        await ReportService.all_attendance_csv(db, caller), "all-users-attendance.csv",
    )


@router.get("/my-leaves")
async def my_leaves_report(
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _csv_response(await ReportService.my_leaves_csv(db, caller.user_id), "my-leaves.csv")


@router.get("/all-leaves")
async def all_leaves_report(
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return _csv_response(await ReportService.all_leaves_csv(db, caller), "all-leaves.csv")


@router.get("/leave-statistics", response_model=LeaveStatisticsOut)
async def leave_statistics(
    caller: CallerContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService.leave_statistics(db, caller)
