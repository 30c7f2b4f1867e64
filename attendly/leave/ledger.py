"""Balance ledger — per-user, per-leave-type, per-year day accounting.

Every row keeps ``remaining_days == total_days - used_days``. Rows are
created lazily (when a user registers or a leave type is added) and only
ever for an explicitly supplied year; there is no rollover.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.auth.models import User
from attendly.common.exceptions import InsufficientBalanceException, NotFoundException
from attendly.leave.models import LeaveBalance, LeaveType
from attendly.leave.schemas import LeaveBalanceOut

logger = logging.getLogger(__name__)


class BalanceLedger:
    """Async balance operations. The caller owns the session and its transaction."""

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_balance(
        db: AsyncSession,
        user_id: int,
        leave_type_id: int,
        year: int,
        *,
        for_update: bool = False,
    ) -> LeaveBalance | None:
        query = select(LeaveBalance).where(
            LeaveBalance.user_id == user_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def remaining_days(
        db: AsyncSession,
        user_id: int,
        leave_type_id: int,
        year: int,
    ) -> int | None:
        balance = await BalanceLedger.get_balance(db, user_id, leave_type_id, year)
        return balance.remaining_days if balance else None

    @staticmethod
    async def sufficient_balance(
        db: AsyncSession,
        user_id: int,
        leave_type_id: int,
        days_required: int,
        year: int,
    ) -> bool:
        """True when a row exists and covers *days_required*; never raises."""
        remaining = await BalanceLedger.remaining_days(db, user_id, leave_type_id, year)
        return remaining is not None and remaining >= days_required

    @staticmethod
    async def get_balances(
        db: AsyncSession,
        user_id: int,
        year: int,
    ) -> list[LeaveBalanceOut]:
        """All balances of a user for *year*, ordered by leave type name."""
        result = await db.execute(
            select(LeaveBalance, LeaveType.name)
            .join(LeaveType, LeaveType.id == LeaveBalance.leave_type_id)
            .where(LeaveBalance.user_id == user_id, LeaveBalance.year == year)
            .order_by(LeaveType.name)
        )
        output: list[LeaveBalanceOut] = []
        for balance, type_name in result.all():
            out = LeaveBalanceOut.model_validate(balance)
            out.leave_type_name = type_name
            output.append(out)
        return output

    # ── Mutation ────────────────────────────────────────────────────

    @staticmethod
    async def consume(
        db: AsyncSession,
        user_id: int,
        leave_type_id: int,
        days_used: int,
        year: int,
    ) -> LeaveBalance:
        """Move *days_used* from remaining to used under a row lock.

        A missing row is a data-integrity failure (the request passed the
        sufficiency check earlier) and raises NotFoundException. A deduction
        that would drive remaining below zero is refused before any change.
        """
        balance = await BalanceLedger.get_balance(
            db, user_id, leave_type_id, year, for_update=True,
        )
        if balance is None:
            raise NotFoundException(
                "LeaveBalance", f"user={user_id},leave_type={leave_type_id},year={year}",
            )
        if balance.remaining_days < days_used:
            raise InsufficientBalanceException(days_used, balance.remaining_days)

        balance.used_days += days_used
        balance.remaining_days = balance.total_days - balance.used_days
        await db.flush()
        return balance

    # ── Seeding ─────────────────────────────────────────────────────

    @staticmethod
    async def _existing_keys(
        db: AsyncSession,
        year: int,
        *,
        user_id: int | None = None,
        leave_type_id: int | None = None,
    ) -> set[tuple[int, int]]:
        query = select(LeaveBalance.user_id, LeaveBalance.leave_type_id).where(
            LeaveBalance.year == year,
        )
        if user_id is not None:
            query = query.where(LeaveBalance.user_id == user_id)
        if leave_type_id is not None:
            query = query.where(LeaveBalance.leave_type_id == leave_type_id)
        result = await db.execute(query)
        return {(row[0], row[1]) for row in result.all()}

    @staticmethod
    async def _seed_pairs(
        db: AsyncSession,
        pairs: list[tuple[int, int, int]],
        existing: set[tuple[int, int]],
        year: int,
    ) -> int:
        created = 0
        for user_id, leave_type_id, default_days in pairs:
            if (user_id, leave_type_id) in existing:
                continue
            db.add(
                LeaveBalance(
                    user_id=user_id,
                    leave_type_id=leave_type_id,
                    year=year,
                    total_days=default_days,
                    used_days=0,
                    remaining_days=default_days,
                )
            )
            existing.add((user_id, leave_type_id))
            created += 1
        if created:
            await db.flush()
        return created

    @staticmethod
    async def seed_for_user(db: AsyncSession, user_id: int, year: int) -> int:
        """Create any missing balance rows for one user across all leave types."""
        types = (await db.execute(select(LeaveType.id, LeaveType.default_days))).all()
        existing = await BalanceLedger._existing_keys(db, year, user_id=user_id)
        return await BalanceLedger._seed_pairs(
            db, [(user_id, lt_id, days) for lt_id, days in types], existing, year,
        )

    @staticmethod
    async def seed_for_leave_type(db: AsyncSession, leave_type_id: int, year: int) -> int:
        """Create any missing balance rows for one leave type across all users."""
        leave_type = await db.get(LeaveType, leave_type_id)
        if leave_type is None:
            raise NotFoundException("LeaveType", leave_type_id)
        user_ids = (await db.execute(select(User.id))).scalars().all()
        existing = await BalanceLedger._existing_keys(db, year, leave_type_id=leave_type_id)
        return await BalanceLedger._seed_pairs(
            db,
            [(uid, leave_type.id, leave_type.default_days) for uid in user_ids],
            existing,
            year,
        )

    @staticmethod
    async def seed_all(db: AsyncSession, year: int) -> int:
        """Create every missing (user, leave type) row for *year*."""
        user_ids = (await db.execute(select(User.id).order_by(User.id))).scalars().all()
        types = (
            await db.execute(
                select(LeaveType.id, LeaveType.default_days).order_by(LeaveType.id)
            )
        ).all()
        existing = await BalanceLedger._existing_keys(db, year)
        pairs = [(uid, lt_id, days) for uid in user_ids for lt_id, days in types]
        created = await BalanceLedger._seed_pairs(db, pairs, existing, year)
        logger.info("Seeded %d leave balance rows for %d", created, year)
        return created
