"""Report service — CSV exports and leave statistics.

Pure read projections over attendance and leave requests; nothing here
mutates state.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from attendly.attendance.models import AttendanceRecord
from attendly.auth.models import User
from attendly.auth.schemas import CallerContext
from attendly.common.constants import TOP_REQUESTERS_LIMIT
from attendly.common.dates import inclusive_days
from attendly.common.exceptions import ForbiddenException
from attendly.leave.models import LeaveRequest, LeaveType
from attendly.reports.csv_export import build_csv
from attendly.reports.schemas import CountByLabel, LeaveStatisticsOut

MY_ATTENDANCE_HEADERS = ["Date", "Consent Given", "Type", "Submitted At"]
ALL_ATTENDANCE_HEADERS = ["User Name", "Email"] + MY_ATTENDANCE_HEADERS
MY_LEAVES_HEADERS = [
    "Leave Type",
    "Start Date",
    "End Date",
    "Days",
    "Reason",
    "Status",
    "Approved By",
    "Submitted At",
    "Decided At",
]
ALL_LEAVES_HEADERS = ["Employee Name", "Email"] + MY_LEAVES_HEADERS

_Approver = aliased(User)


def _require_admin(caller: CallerContext) -> None:
    if not caller.is_admin:
        raise ForbiddenException(detail="Admin access required.")


def _leave_query():
    return (
        select(
            User.name,
            User.email,
            LeaveType.name,
            LeaveRequest.start_date,
            LeaveRequest.end_date,
            LeaveRequest.reason,
            LeaveRequest.status,
            _Approver.name,
            LeaveRequest.created_at,
            LeaveRequest.approved_at,
        )
        .select_from(LeaveRequest)
        .join(User, User.id == LeaveRequest.user_id)
        .join(LeaveType, LeaveType.id == LeaveRequest.leave_type_id)
        .outerjoin(_Approver, _Approver.id == LeaveRequest.approved_by)
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
    )


def _leave_row(row) -> list:
    (name, email, type_name, start, end, reason, status,
     approver, created_at, decided_at) = row
    return [
        name, email, type_name, start, end, inclusive_days(start, end),
        reason, status, approver, created_at, decided_at,
    ]


class ReportService:
    """CSV and statistics builders."""

    # ── Attendance ──────────────────────────────────────────────────

    @staticmethod
    async def my_attendance_csv(db: AsyncSession, user_id: int) -> str:
        result = await db.execute(
            select(
                AttendanceRecord.date,
                AttendanceRecord.has_consent,
                AttendanceRecord.type,
                AttendanceRecord.created_at,
            )
            .where(AttendanceRecord.user_id == user_id)
            .order_by(AttendanceRecord.date.desc())
        )
        return build_csv(MY_ATTENDANCE_HEADERS, result.all())

    @staticmethod
    async def all_attendance_csv(db: AsyncSession, caller: CallerContext) -> str:
        _require_admin(caller)
        result = await db.execute(
            select(
                User.name,
                User.email,
                AttendanceRecord.date,
                AttendanceRecord.has_consent,
                AttendanceRecord.type,
                AttendanceRecord.created_at,
            )
            .select_from(AttendanceRecord)
            .join(User, User.id == AttendanceRecord.user_id)
            .order_by(AttendanceRecord.date.desc(), User.name.asc())
        )
        return build_csv(ALL_ATTENDANCE_HEADERS, result.all())

    # ── Leaves ──────────────────────────────────────────────────────

    @staticmethod
    async def my_leaves_csv(db: AsyncSession, user_id: int) -> str:
        result = await db.execute(_leave_query().where(LeaveRequest.user_id == user_id))
        return build_csv(MY_LEAVES_HEADERS, (_leave_row(r)[2:] for r in result.all()))

    @staticmethod
    async def all_leaves_csv(db: AsyncSession, caller: CallerContext) -> str:
        _require_admin(caller)
        result = await db.execute(_leave_query())
        return build_csv(ALL_LEAVES_HEADERS, (_leave_row(r) for r in result.all()))

    @staticmethod
    async def leave_statistics(
        db: AsyncSession,
        caller: CallerContext,
    ) -> LeaveStatisticsOut:
        """Request counts by status, by leave type, and the top requesters."""
        _require_admin(caller)

        by_status = await db.execute(
            select(LeaveRequest.status, func.count())
            .group_by(LeaveRequest.status)
            .order_by(LeaveRequest.status)
        )
        by_type = await db.execute(
            select(LeaveType.name, func.count())
            .select_from(LeaveRequest)
            .join(LeaveType, LeaveType.id == LeaveRequest.leave_type_id)
            .group_by(LeaveType.name)
            .order_by(LeaveType.name)
        )
        count_col = func.count().label("request_count")
        top_users = await db.execute(
            select(User.name, count_col)
            .select_from(LeaveRequest)
            .join(User, User.id == LeaveRequest.user_id)
            .group_by(User.id, User.name)
            .order_by(count_col.desc(), User.name.asc())
            .limit(TOP_REQUESTERS_LIMIT)
        )

        return LeaveStatisticsOut(
            by_status=[CountByLabel(label=s.value, count=c) for s, c in by_status.all()],
            by_type=[CountByLabel(label=n, count=c) for n, c in by_type.all()],
            top_users=[CountByLabel(label=n, count=c) for n, c in top_users.all()],
        )
