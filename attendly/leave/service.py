"""Leave service layer — leave types, request lifecycle, approvals.

Business logic:
  - Leave type administration with ledger seeding for every user
  - Request creation with ordered validation: presence, range, backdating,
    leave type, overlap with live requests, balance sufficiency
  - Approval that deducts the balance and backfills one attendance record
    per day, all inside the caller's transaction
  - Owner, pending-queue and admin views
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from attendly.attendance.service import AttendanceService
from attendly.auth.models import User
from attendly.auth.schemas import CallerContext
from attendly.common.constants import (
    BACKDATE_LIMIT_DAYS,
    BLOCKING_LEAVE_STATUSES,
    LeaveStatus,
)
from attendly.common.dates import earliest_allowed_start, inclusive_days, iter_dates
from attendly.common.exceptions import (
    ConflictError,
    ForbiddenException,
    InsufficientBalanceException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from attendly.leave.ledger import BalanceLedger
from attendly.leave.models import LeaveBalance, LeaveRequest, LeaveType
from attendly.leave.schemas import (
    LeaveApprovalOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveTypeCreate,
    LeaveTypeOut,
    LeaveTypeUpdate,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _today() -> date:
    return _now().date()


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: types, requests, approvals."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _require_admin(caller: CallerContext) -> None:
        if not caller.is_admin:
            raise ForbiddenException(detail="Admin access required.")

    @staticmethod
    async def _load_request(
        db: AsyncSession,
        request_id: int,
        *,
        for_update: bool = False,
    ) -> LeaveRequest:
        query = select(LeaveRequest).where(LeaveRequest.id == request_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", request_id)
        return leave_req

    @staticmethod
    def _build_request_response(req: LeaveRequest, **extra) -> LeaveRequestOut:
        out = LeaveRequestOut.model_validate(req)
        out.days = inclusive_days(req.start_date, req.end_date)
        for key, value in extra.items():
            setattr(out, key, value)
        return out

    @staticmethod
    def _with_relations(query):
        return query.options(
            selectinload(LeaveRequest.user),
            selectinload(LeaveRequest.approver),
            selectinload(LeaveRequest.leave_type),
        )

    @staticmethod
    def _enriched(req: LeaveRequest, *, include_user: bool) -> LeaveRequestOut:
        extra = {
            "leave_type_name": req.leave_type.name if req.leave_type else None,
            "approver_name": req.approver.name if req.approver else None,
        }
        if include_user and req.user:
            extra["user_name"] = req.user.name
            extra["user_email"] = req.user.email
        return LeaveService._build_request_response(req, **extra)

    @staticmethod
    async def _get_leave_type(db: AsyncSession, leave_type_id: int) -> LeaveType:
        leave_type = await db.get(LeaveType, leave_type_id)
        if leave_type is None:
            raise NotFoundException("LeaveType", leave_type_id)
        return leave_type

    @staticmethod
    async def _ensure_unique_type_name(
        db: AsyncSession,
        name: str,
        *,
        exclude_id: Optional[int] = None,
    ) -> None:
        query = select(LeaveType.id).where(func.lower(LeaveType.name) == name.lower())
        if exclude_id is not None:
            query = query.where(LeaveType.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError("name", name, "Leave type name already exists.")

    # ─────────────────────────────────────────────────────────────────
    # Leave Types
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_leave_types(db: AsyncSession) -> list[LeaveTypeOut]:
        result = await db.execute(select(LeaveType).order_by(LeaveType.name))
        return [LeaveTypeOut.model_validate(lt) for lt in result.scalars().all()]

    @staticmethod
    async def create_leave_type(
        db: AsyncSession,
        caller: CallerContext,
        data: LeaveTypeCreate,
    ) -> LeaveTypeOut:
        """Create a leave type and seed a current-year balance for every user."""
        LeaveService._require_admin(caller)
        await LeaveService._ensure_unique_type_name(db, data.name)

        leave_type = LeaveType(name=data.name, default_days=data.default_days)
        db.add(leave_type)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", data.name, "Leave type name already exists.")

        seeded = await BalanceLedger.seed_for_leave_type(db, leave_type.id, _today().year)
        logger.info(
            "Leave type %s '%s' created by %s (%d balances seeded)",
            leave_type.id, leave_type.name, caller.user_id, seeded,
        )
        return LeaveTypeOut.model_validate(leave_type)

    @staticmethod
    async def update_leave_type(
        db: AsyncSession,
        caller: CallerContext,
        leave_type_id: int,
        data: LeaveTypeUpdate,
    ) -> LeaveTypeOut:
        """Rename / re-size a leave type. Existing balances are left as they are."""
        LeaveService._require_admin(caller)
        leave_type = await LeaveService._get_leave_type(db, leave_type_id)
        await LeaveService._ensure_unique_type_name(db, data.name, exclude_id=leave_type_id)

        leave_type.name = data.name
        leave_type.default_days = data.default_days
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", data.name, "Leave type name already exists.")
        return LeaveTypeOut.model_validate(leave_type)

    @staticmethod
    async def delete_leave_type(
        db: AsyncSession,
        caller: CallerContext,
        leave_type_id: int,
    ) -> None:
        """Delete a leave type and its balances unless requests still reference it."""
        LeaveService._require_admin(caller)
        leave_type = await LeaveService._get_leave_type(db, leave_type_id)

        in_use = await db.execute(
            select(func.count()).select_from(LeaveRequest).where(
                LeaveRequest.leave_type_id == leave_type_id,
            )
        )
        if in_use.scalar_one() > 0:
            raise ConflictError(
                "leave_type_id",
                leave_type_id,
                "Cannot delete a leave type that has leave requests.",
            )

        balances = await db.execute(
            select(LeaveBalance).where(LeaveBalance.leave_type_id == leave_type_id)
        )
        for balance in balances.scalars().all():
            await db.delete(balance)
        await db.delete(leave_type)
        await db.flush()
        logger.info("Leave type %s deleted by %s", leave_type_id, caller.user_id)

    # ─────────────────────────────────────────────────────────────────
    # Create Request
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_request(
        db: AsyncSession,
        caller: CallerContext,
        data: LeaveRequestCreate,
    ) -> LeaveRequestOut:
        """Submit a leave request for the caller.

        Checks run in a fixed order and the first failure is reported:
          1. leave_type_id, start_date and end_date present
          2. start_date <= end_date
          3. start_date no more than BACKDATE_LIMIT_DAYS in the past
          4. leave type exists
          5. no pending/approved request of the caller overlaps the range
          6. current-year balance covers the inclusive day count

        The balance is checked, not reserved.
        """
        today = _today()

        # ── 1. Presence ─────────────────────────────────────────────
        missing = {
            field: ["This field is required."]
            for field in ("leave_type_id", "start_date", "end_date")
            if getattr(data, field) is None
        }
        if missing:
            raise ValidationException(missing)

        # ── 2. Range ────────────────────────────────────────────────
        if data.start_date > data.end_date:
            raise ValidationException(
                {"end_date": ["End date must be on or after start date."]}
            )

        # ── 3. Backdating ───────────────────────────────────────────
        if data.start_date < earliest_allowed_start(today):
            raise ValidationException(
                {"start_date": [
                    f"Leave cannot be backdated more than {BACKDATE_LIMIT_DAYS} days."
                ]}
            )

        # ── 4. Leave type ───────────────────────────────────────────
        await LeaveService._get_leave_type(db, data.leave_type_id)

        # ── 5. Overlap ──────────────────────────────────────────────
        overlap_result = await db.execute(
            select(func.count()).select_from(LeaveRequest).where(
                LeaveRequest.user_id == caller.user_id,
                LeaveRequest.status.in_(BLOCKING_LEAVE_STATUSES),
                LeaveRequest.start_date <= data.end_date,
                LeaveRequest.end_date >= data.start_date,
            )
        )
        if overlap_result.scalar_one() > 0:
            raise ConflictError(
                "dates",
                f"{data.start_date.isoformat()}..{data.end_date.isoformat()}",
                "You already have a pending or approved leave request "
                "overlapping with these dates.",
            )

        # ── 6. Balance ──────────────────────────────────────────────
        days = inclusive_days(data.start_date, data.end_date)
        if not await BalanceLedger.sufficient_balance(
            db, caller.user_id, data.leave_type_id, days, today.year,
        ):
            remaining = await BalanceLedger.remaining_days(
                db, caller.user_id, data.leave_type_id, today.year,
            )
            raise InsufficientBalanceException(days, remaining)

        leave_request = LeaveRequest(
            user_id=caller.user_id,
            leave_type_id=data.leave_type_id,
            start_date=data.start_date,
            end_date=data.end_date,
            reason=data.reason,
            status=LeaveStatus.pending,
        )
        db.add(leave_request)
        await db.flush()

        logger.info(
            "Leave request %s created by user %s (%s..%s, %d days)",
            leave_request.id, caller.user_id, data.start_date, data.end_date, days,
        )
        return LeaveService._build_request_response(leave_request)

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def approve_request(
        db: AsyncSession,
        caller: CallerContext,
        request_id: int,
    ) -> LeaveApprovalOut:
        """Approve a pending request.

        Re-checks the balance (another request may have consumed it since
        submission), refuses if any day in the range already has an
        attendance record, then deducts the balance, inserts one leave
        attendance record per day and marks the request approved. Nothing
        is committed here; an error at any step leaves the session to be
        rolled back as a whole by its owner.
        """
        LeaveService._require_admin(caller)
        leave_req = await LeaveService._load_request(db, request_id, for_update=True)

        if leave_req.status != LeaveStatus.pending:
            raise InvalidStateException("Leave request", leave_req.status.value)

        year = _today().year
        days = inclusive_days(leave_req.start_date, leave_req.end_date)

        if not await BalanceLedger.sufficient_balance(
            db, leave_req.user_id, leave_req.leave_type_id, days, year,
        ):
            remaining = await BalanceLedger.remaining_days(
                db, leave_req.user_id, leave_req.leave_type_id, year,
            )
            raise InsufficientBalanceException(days, remaining)

        taken = await AttendanceService.find_existing_dates(
            db, leave_req.user_id, leave_req.start_date, leave_req.end_date,
        )
        if taken:
            raise ConflictError(
                "dates",
                ", ".join(d.isoformat() for d in taken),
                "Attendance is already recorded for: "
                + ", ".join(d.isoformat() for d in taken),
            )

        balance = await BalanceLedger.consume(
            db, leave_req.user_id, leave_req.leave_type_id, days, year,
        )
        dates = list(iter_dates(leave_req.start_date, leave_req.end_date))
        await AttendanceService.add_leave_days(db, leave_req.user_id, leave_req.id, dates)

        leave_req.status = LeaveStatus.approved
        leave_req.approved_by = caller.user_id
        leave_req.approved_at = _now()
        await db.flush()

        logger.info(
            "Leave request %s approved by %s (%d days, %d remaining)",
            leave_req.id, caller.user_id, days, balance.remaining_days,
        )
        return LeaveApprovalOut(
            request=LeaveService._build_request_response(leave_req),
            days=days,
            attendance_dates=dates,
            remaining_days=balance.remaining_days,
        )

    @staticmethod
    async def reject_request(
        db: AsyncSession,
        caller: CallerContext,
        request_id: int,
    ) -> LeaveRequestOut:
        """Reject a pending request. No ledger or attendance effect."""
        LeaveService._require_admin(caller)
        leave_req = await LeaveService._load_request(db, request_id, for_update=True)

        if leave_req.status != LeaveStatus.pending:
            raise InvalidStateException("Leave request", leave_req.status.value)

        leave_req.status = LeaveStatus.rejected
        leave_req.approved_by = caller.user_id
        leave_req.approved_at = _now()
        await db.flush()

        logger.info("Leave request %s rejected by %s", leave_req.id, caller.user_id)
        return LeaveService._build_request_response(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Listings
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_for_owner(
        db: AsyncSession,
        caller: CallerContext,
        status: Optional[LeaveStatus] = None,
    ) -> list[LeaveRequestOut]:
        """The caller's own requests, newest first."""
        query = LeaveService._with_relations(
            select(LeaveRequest).where(LeaveRequest.user_id == caller.user_id)
        )
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        query = query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())

        result = await db.execute(query)
        return [
            LeaveService._enriched(req, include_user=False)
            for req in result.scalars().all()
        ]

    @staticmethod
    async def list_pending(
        db: AsyncSession,
        caller: CallerContext,
    ) -> list[LeaveRequestOut]:
        """Admin approval queue, oldest first, with the requester's remaining days."""
        LeaveService._require_admin(caller)
        year = _today().year

        result = await db.execute(
            select(
                LeaveRequest,
                User.name,
                User.email,
                LeaveType.name,
                LeaveBalance.remaining_days,
            )
            .join(User, User.id == LeaveRequest.user_id)
            .join(LeaveType, LeaveType.id == LeaveRequest.leave_type_id)
            .outerjoin(
                LeaveBalance,
                and_(
                    LeaveBalance.user_id == LeaveRequest.user_id,
                    LeaveBalance.leave_type_id == LeaveRequest.leave_type_id,
                    LeaveBalance.year == year,
                ),
            )
            .where(LeaveRequest.status == LeaveStatus.pending)
            .order_by(LeaveRequest.created_at.asc(), LeaveRequest.id.asc())
        )
        return [
            LeaveService._build_request_response(
                req,
                user_name=user_name,
                user_email=user_email,
                leave_type_name=type_name,
                remaining_days=remaining,
            )
            for req, user_name, user_email, type_name, remaining in result.all()
        ]

    @staticmethod
    async def list_all(
        db: AsyncSession,
        caller: CallerContext,
        status: Optional[LeaveStatus] = None,
        user_id: Optional[int] = None,
    ) -> list[LeaveRequestOut]:
        """Every request in the system, newest first."""
        LeaveService._require_admin(caller)

        query = LeaveService._with_relations(select(LeaveRequest))
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        if user_id is not None:
            query = query.where(LeaveRequest.user_id == user_id)
        query = query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())

        result = await db.execute(query)
        return [
            LeaveService._enriched(req, include_user=True)
            for req in result.scalars().all()
        ]
