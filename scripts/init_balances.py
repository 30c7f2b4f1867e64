#!/usr/bin/env python3
"""Initialise leave balances — create any missing (user, leave type) rows for a year.

Safe to re-run: rows that already exist are left untouched.

Usage:
    python -m scripts.init_balances                # current year
    python -m scripts.init_balances --year 2025
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone

from attendly.database import Base, async_session_factory, engine
from attendly.leave.ledger import BalanceLedger
import attendly.attendance.models  # noqa: F401
import attendly.auth.models  # noqa: F401
import attendly.leave.models  # noqa: F401

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("init_balances")


async def run(year: int) -> int:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        async with session.begin():
            created = await BalanceLedger.seed_all(session, year)
    await engine.dispose()
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Create missing leave balances for a year")
    parser.add_argument(
        "--year",
        type=int,
        default=datetime.now(timezone.utc).year,
        help="Balance year (default: current year)",
    )
    args = parser.parse_args()

    created = asyncio.run(run(args.year))
    if created:
        logger.info("Created %d leave balance rows for %d", created, args.year)
    else:
        logger.info("All users already have balances for %d", args.year)


if __name__ == "__main__":
    main()
