"""Attendance service layer — manual marking, leave backfill, reads.

Business logic:
  - One record per user per calendar date, manual or leave-derived
  - Strict YYYY-MM-DD input for manual marking
  - Plain and paginated, leave-enriched read views
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.attendance.models import AttendanceRecord
from attendly.attendance.schemas import (
    AttendanceDetailOut,
    AttendanceListResponse,
    AttendanceRecordOut,
)
from attendly.common.constants import DEFAULT_PAGE_SIZE, AttendanceType
from attendly.common.dates import parse_strict_date
from attendly.common.exceptions import ConflictError, ValidationException
from attendly.common.pagination import PaginationMeta
from attendly.leave.models import LeaveRequest, LeaveType

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:
    """Async attendance operations: mark, backfill, read."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _filters(
        user_id: int,
        start_date: Optional[date],
        end_date: Optional[date],
        type: Optional[AttendanceType] = None,
    ) -> list:
        # Each bound is independent; either may be omitted.
        conditions = [AttendanceRecord.user_id == user_id]
        if start_date is not None:
            conditions.append(AttendanceRecord.date >= start_date)
        if end_date is not None:
            conditions.append(AttendanceRecord.date <= end_date)
        if type is not None:
            conditions.append(AttendanceRecord.type == type)
        return conditions

    @staticmethod
    async def find_existing_dates(
        db: AsyncSession,
        user_id: int,
        start_date: date,
        end_date: date,
    ) -> list[date]:
        """Dates in [start_date, end_date] that already hold a record."""
        result = await db.execute(
            select(AttendanceRecord.date)
            .where(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date >= start_date,
                AttendanceRecord.date <= end_date,
            )
            .order_by(AttendanceRecord.date)
        )
        return list(result.scalars().all())

    # ── Mark ────────────────────────────────────────────────────────

    @staticmethod
    async def mark_manual(
        db: AsyncSession,
        user_id: int,
        date_str: str,
        has_consent: bool,
    ) -> AttendanceRecordOut:
        """Record the caller's attendance for one date."""
        try:
            day = parse_strict_date(date_str)
        except ValueError:
            raise ValidationException({"date": ["Invalid date format. Use YYYY-MM-DD."]})

        existing = await db.execute(
            select(AttendanceRecord.id).where(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date == day,
            )
        )
        if existing.scalar() is not None:
            raise ConflictError(
                "date", day.isoformat(), "Attendance already marked for this date.",
            )

        record = AttendanceRecord(
            user_id=user_id,
            date=day,
            has_consent=has_consent,
            type=AttendanceType.manual,
        )
        db.add(record)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(
                "date", day.isoformat(), "Attendance already marked for this date.",
            )
        return AttendanceRecordOut.model_validate(record)

    @staticmethod
    async def add_leave_days(
        db: AsyncSession,
        user_id: int,
        leave_request_id: int,
        dates: Iterable[date],
    ) -> list[AttendanceRecord]:
        """Bulk-insert leave-derived records, one per date."""
        records = [
            AttendanceRecord(
                user_id=user_id,
                date=day,
                has_consent=True,
                type=AttendanceType.leave,
                leave_request_id=leave_request_id,
            )
            for day in dates
        ]
        db.add_all(records)
        await db.flush()
        return records

    # ── Read ────────────────────────────────────────────────────────

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[AttendanceRecordOut]:
        query = (
            select(AttendanceRecord)
            .where(*AttendanceService._filters(user_id, start_date, end_date))
            .order_by(AttendanceRecord.date.desc())
        )
        result = await db.execute(query)
        return [AttendanceRecordOut.model_validate(r) for r in result.scalars().all()]

    @staticmethod
    async def list_detailed(
        db: AsyncSession,
        user_id: int,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        type: Optional[AttendanceType] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> AttendanceListResponse:
        """Paginated records with leave type name and reason for leave days."""
        conditions = AttendanceService._filters(user_id, start_date, end_date, type)

        count_q = select(func.count()).select_from(AttendanceRecord).where(*conditions)
        total: int = (await db.execute(count_q)).scalar_one()

        query = (
            select(AttendanceRecord, LeaveType.name, LeaveRequest.reason)
            .select_from(AttendanceRecord)
            .outerjoin(LeaveRequest, LeaveRequest.id == AttendanceRecord.leave_request_id)
            .outerjoin(LeaveType, LeaveType.id == LeaveRequest.leave_type_id)
            .where(*conditions)
            .order_by(AttendanceRecord.date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows: Sequence = (await db.execute(query)).all()

        records: list[AttendanceDetailOut] = []
        for record, type_name, reason in rows:
            out = AttendanceDetailOut.model_validate(record)
            out.leave_type_name = type_name
            out.leave_reason = reason
            records.append(out)

        return AttendanceListResponse(
            records=records,
            pagination=PaginationMeta.build(page=page, limit=limit, total=total),
        )
