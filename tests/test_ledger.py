"""Balance ledger tests — sufficiency, consumption, seeding, read projection."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.common.exceptions import InsufficientBalanceException, NotFoundException
from attendly.leave.ledger import BalanceLedger
from attendly.leave.models import LeaveBalance
from tests.conftest import make_balance, make_leave_type, make_user


async def _balance_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(LeaveBalance))).scalar_one()


# ═════════════════════════════════════════════════════════════════════
# 1. Sufficiency
# ═════════════════════════════════════════════════════════════════════


class TestSufficientBalance:

    async def test_missing_row_is_insufficient(self, db: AsyncSession):
        user = await make_user(db)
        lt = await make_leave_type(db)

        assert await BalanceLedger.sufficient_balance(db, user.id, lt.id, 1, 2024) is False

    async def test_exact_remaining_is_sufficient(self, db: AsyncSession):
        user = await make_user(db)
        lt = await make_leave_type(db)
        await make_balance(db, user.id, lt.id, total_days=5, used_days=3)

        assert await BalanceLedger.sufficient_balance(db, user.id, lt.id, 2, 2024) is True
        assert await BalanceLedger.sufficient_balance(db, user.id, lt.id, 3, 2024) is False

    async def test_other_year_not_considered(self, db: AsyncSession):
        user = await make_user(db)
        lt = await make_leave_type(db)
        await make_balance(db, user.id, lt.id, year=2023, total_days=20)

        assert await BalanceLedger.sufficient_balance(db, user.id, lt.id, 1, 2024) is False


# ═════════════════════════════════════════════════════════════════════
# 2. Consume
# ═════════════════════════════════════════════════════════════════════


class TestConsume:

    async def test_consume_moves_days_to_used(self, db: AsyncSession):
        user = await make_user(db)
        lt = await make_leave_type(db)
        await make_balance(db, user.id, lt.id, total_days=12, used_days=2)

        balance = await BalanceLedger.consume(db, user.id, lt.id, 3, 2024)

        assert balance.used_days == 5
        assert balance.remaining_days == 7
        assert balance.total_days - balance.used_days == balance.remaining_days

    async def test_consume_down_to_zero(self, db: AsyncSession):
        user = await make_user(db)
        lt = await make_leave_type(db)
        await make_balance(db, user.id, lt.id, total_days=2)

        balance = await BalanceLedger.consume(db, user.id, lt.id, 2, 2024)
        assert balance.remaining_days == 0

    async def test_consume_missing_row_raises(self, db: AsyncSession):
        user = await make_user(db)
        lt = await make_leave_type(db)

        with pytest.raises(NotFoundException):
            await BalanceLedger.consume(db, user.id, lt.id, 1, 2024)

    async def test_consume_beyond_remaining_refused_without_change(self, db: AsyncSession):
        user = await make_user(db)
        lt = await make_leave_type(db)
        await make_balance(db, user.id, lt.id, total_days=2)

        with pytest.raises(InsufficientBalanceException):
            await BalanceLedger.consume(db, user.id, lt.id, 3, 2024)

        balance = await BalanceLedger.get_balance(db, user.id, lt.id, 2024)
        assert balance.used_days == 0
        assert balance.remaining_days == 2


# ═════════════════════════════════════════════════════════════════════
# 3. Seeding
# ═════════════════════════════════════════════════════════════════════


class TestSeeding:

    async def test_seed_for_user_creates_row_per_type(self, db: AsyncSession):
        await make_leave_type(db, name="Annual", default_days=12)
        await make_leave_type(db, name="Sick", default_days=6)
        user = await make_user(db)

        created = await BalanceLedger.seed_for_user(db, user.id, 2024)

        assert created == 2
        balances = await BalanceLedger.get_balances(db, user.id, 2024)
        assert [(b.leave_type_name, b.total_days, b.used_days, b.remaining_days) for b in balances] == [
            ("Annual", 12, 0, 12),
            ("Sick", 6, 0, 6),
        ]

    async def test_seed_for_user_is_idempotent(self, db: AsyncSession):
        await make_leave_type(db)
        user = await make_user(db)

        assert await BalanceLedger.seed_for_user(db, user.id, 2024) == 1
        assert await BalanceLedger.seed_for_user(db, user.id, 2024) == 0
        assert await _balance_count(db) == 1

    async def test_seed_does_not_touch_existing_row(self, db: AsyncSession):
        lt = await make_leave_type(db, default_days=12)
        user = await make_user(db)
        await make_balance(db, user.id, lt.id, total_days=12, used_days=4)

        assert await BalanceLedger.seed_for_user(db, user.id, 2024) == 0
        balance = await BalanceLedger.get_balance(db, user.id, lt.id, 2024)
        assert balance.used_days == 4

    async def test_seed_for_leave_type_covers_all_users(self, db: AsyncSession):
        u1 = await make_user(db, email="a@example.com")
        u2 = await make_user(db, email="b@example.com")
        lt = await make_leave_type(db, default_days=10)

        assert await BalanceLedger.seed_for_leave_type(db, lt.id, 2024) == 2
        assert await BalanceLedger.seed_for_leave_type(db, lt.id, 2024) == 0
        for user in (u1, u2):
            balance = await BalanceLedger.get_balance(db, user.id, lt.id, 2024)
            assert balance.remaining_days == 10

    async def test_seed_for_unknown_leave_type(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await BalanceLedger.seed_for_leave_type(db, 999, 2024)

    async def test_seed_all_fills_gaps_only(self, db: AsyncSession):
        u1 = await make_user(db, email="a@example.com")
        await make_user(db, email="b@example.com")
        lt1 = await make_leave_type(db, name="Annual")
        await make_leave_type(db, name="Sick")
        await make_balance(db, u1.id, lt1.id)

        assert await BalanceLedger.seed_all(db, 2024) == 3
        assert await BalanceLedger.seed_all(db, 2024) == 0
        assert await _balance_count(db) == 4

    async def test_seeding_is_per_year(self, db: AsyncSession):
        await make_leave_type(db)
        user = await make_user(db)

        await BalanceLedger.seed_for_user(db, user.id, 2024)
        assert await BalanceLedger.seed_for_user(db, user.id, 2025) == 1
        assert len(await BalanceLedger.get_balances(db, user.id, 2025)) == 1
